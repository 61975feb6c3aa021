# onetrack/models/job_request.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class JobRequest(SQLModel, table=True):
    """
    Maintenance job ("request").

    Status lifecycle (intended, not enforced):
      pending -> in_progress -> completed

    Photo URLs are weak references into the job-photos bucket.
    created_by is a weak reference to the creating identity.
    """

    __tablename__ = "requests"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    title: str | None = None

    # pending | in_progress | completed
    status: str = Field(
        default="pending",
        index=True,
        description="Job status lifecycle",
    )

    customer_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="master_customers.id",
        index=True,
    )
    project_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="master_projects.id",
        index=True,
    )

    # Snapshot of the customer / project contact at creation time
    customer_name: str | None = None
    customer_phone: str | None = None
    location: str | None = None
    address: str | None = None

    # Unit details (free text copied from the AC catalogs)
    ac_brand: str | None = None
    ac_type: str | None = None
    ac_capacity_pk: str | None = None
    room_location: str | None = None
    serial_number: str | None = None

    trouble_description: str | None = None
    replaced_parts: str | None = None
    reconditioned_parts: str | None = None

    before_photo_url: str | None = None
    progress_photo_url: str | None = None
    after_photo_url: str | None = None

    created_by: uuid.UUID | None = Field(default=None, index=True)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime | None = None
