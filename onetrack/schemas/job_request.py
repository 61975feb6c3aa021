# onetrack/schemas/job_request.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel

JobStatus = Literal["pending", "in_progress", "completed"]
StatusFilter = Literal["all", "pending", "in_progress", "completed"]


class RequestCreate(SQLModel):
    """
    Payload for a new job.

    Customers send the project they are requesting for; admins and
    technicians pick any customer and may add serial / parts info.
    Backend derives:
      - status = 'pending'
      - created_by from token
      - title / contact snapshot from project, falling back to customer
    """

    model_config = ConfigDict(extra="forbid")

    customer_id: uuid.UUID | None = None
    project_id: uuid.UUID | None = None

    ac_brand: str | None = None
    ac_type: str | None = None
    ac_capacity_pk: str | None = None
    room_location: str | None = None
    serial_number: str | None = None

    trouble_description: str | None = None
    replaced_parts: str | None = None
    reconditioned_parts: str | None = None

    @field_validator(
        "ac_brand",
        "ac_type",
        "ac_capacity_pk",
        "room_location",
        "serial_number",
        "trouble_description",
        "replaced_parts",
        "reconditioned_parts",
        mode="before",
    )
    @classmethod
    def normalize_text(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = str(v).strip()
        return v or None


class RequestRead(SQLModel):
    """
    Normalized job as shown in lists and detail views.

    status is always one of the known values; anything else read from
    storage is reported as 'pending'.
    """

    id: uuid.UUID
    title: str
    status: JobStatus
    status_label: str
    customer_id: uuid.UUID | None
    project_id: uuid.UUID | None
    customer_name: str
    customer_phone: str
    location: str
    address: str
    ac_brand: str
    ac_type: str
    ac_capacity_pk: str
    room_location: str
    serial_number: str
    trouble_description: str
    replaced_parts: str
    reconditioned_parts: str
    before_photo_url: str | None
    progress_photo_url: str | None
    after_photo_url: str | None
    created_by: uuid.UUID | None
    created_at: datetime
    updated_at: datetime | None


class RequestStatusUpdate(SQLModel):
    """Admin / technician payload to change job status."""

    model_config = ConfigDict(extra="forbid")

    status: JobStatus


class PhotoUploadRead(SQLModel):
    category: str
    url: str
