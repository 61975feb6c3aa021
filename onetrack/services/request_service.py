# onetrack/services/request_service.py
import logging
import uuid
from datetime import datetime, timezone

from fastapi import HTTPException, status
from sqlmodel import Session

from onetrack.core.auth import CurrentUser
from onetrack.core.realtime import ChangeFeed
from onetrack.core.storage_utils import StorageError, upload_job_photo
from onetrack.models.customer import Customer, Project
from onetrack.models.job_request import JobRequest
from onetrack.repositories.customer_repo import CustomerRepository
from onetrack.repositories.request_repo import RequestRepository
from onetrack.schemas.job_request import (
    RequestCreate,
    RequestRead,
    RequestStatusUpdate,
    StatusFilter,
)

logger = logging.getLogger(__name__)

STATUS_LABELS: dict[str, str] = {
    "pending": "PENDING",
    "in_progress": "IN PROGRESS",
    "completed": "COMPLETED",
}

DEFAULT_STATUS = "pending"
UNTITLED_JOB = "Untitled job"

# Roles that work on jobs (see every job, update status, upload photos)
STAFF_ROLES = {"admin", "technician"}


def normalize_status(raw: object) -> str:
    """
    Map a stored status to a known value.

    Anything unknown or missing reads back as 'pending'. This is a read-side
    normalization only; the stored value is left alone.
    """
    value = str(raw if raw is not None else "").strip().lower()
    return value if value in STATUS_LABELS else DEFAULT_STATUS


def status_label(raw: object) -> str:
    return STATUS_LABELS[normalize_status(raw)]


def _text(value: str | None) -> str:
    return value if value else "-"


def to_read(job: JobRequest) -> RequestRead:
    """Compose the normalized view of a job."""
    status_value = normalize_status(job.status)
    return RequestRead(
        id=job.id,
        title=job.title or UNTITLED_JOB,
        status=status_value,
        status_label=STATUS_LABELS[status_value],
        customer_id=job.customer_id,
        project_id=job.project_id,
        customer_name=_text(job.customer_name),
        customer_phone=_text(job.customer_phone),
        location=_text(job.location),
        address=_text(job.address),
        ac_brand=_text(job.ac_brand),
        ac_type=_text(job.ac_type),
        ac_capacity_pk=_text(job.ac_capacity_pk),
        room_location=_text(job.room_location),
        serial_number=_text(job.serial_number),
        trouble_description=_text(job.trouble_description),
        replaced_parts=_text(job.replaced_parts),
        reconditioned_parts=_text(job.reconditioned_parts),
        before_photo_url=job.before_photo_url or None,
        progress_photo_url=job.progress_photo_url or None,
        after_photo_url=job.after_photo_url or None,
        created_by=job.created_by,
        created_at=job.created_at,
        updated_at=job.updated_at,
    )


class RequestService:
    """
    Business logic for jobs.

    Responsibilities:
      - create jobs from the customer form and the admin "new job" form
      - list with status filter / search, normalized for display
      - status changes (no transition enforcement; 'completed' needs an
        after photo)
      - photo uploads, which also advance status
    """

    def __init__(
        self,
        repo: RequestRepository,
        customer_repo: CustomerRepository,
        feed: ChangeFeed,
    ):
        self.repo = repo
        self.customer_repo = customer_repo
        self.feed = feed

    # -------- Queries --------

    def list_requests(
        self,
        session: Session,
        user: CurrentUser,
        status_filter: StatusFilter = "all",
        search: str | None = None,
    ) -> list[RequestRead]:
        created_by = None if user.role in STAFF_ROLES else user.id
        items = [to_read(job) for job in self.repo.list(session, created_by=created_by)]

        if status_filter != "all":
            items = [item for item in items if item.status == status_filter]

        keyword = (search or "").strip().lower()
        if keyword:
            items = [
                item
                for item in items
                if keyword
                in " ".join(
                    [
                        item.title,
                        item.customer_name,
                        item.location,
                        item.address,
                        item.ac_brand,
                        item.serial_number,
                    ]
                ).lower()
            ]
        return items

    def get_request(
        self,
        session: Session,
        user: CurrentUser,
        request_id: uuid.UUID,
    ) -> JobRequest:
        """
        Raises:
            HTTPException(404): if not found, or not visible to a customer.
        """
        job = self.repo.get_by_id(session, request_id)
        if job is None or (user.role not in STAFF_ROLES and job.created_by != user.id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Request not found",
            )
        return job

    # -------- Create --------

    def create_request(
        self,
        session: Session,
        user: CurrentUser,
        payload: RequestCreate,
    ) -> RequestRead:
        """
        Create a pending job.

        Customers:
          - must be linked to a customer record (by user_id or email)
          - must send brand, type, PK and room location
        Admins / technicians:
          - may target any customer and add serial / parts details
        """
        if user.role in STAFF_ROLES:
            customer, project = self._staff_target(session, payload)
        else:
            customer, project = self._customer_target(session, user, payload)

        job = JobRequest(
            title=(project.project_name if project else customer.project_name) or "",
            status=DEFAULT_STATUS,
            location=(project.location if project else None) or customer.location or "",
            customer_name=customer.name or user.email or "Customer",
            customer_phone=(project.phone if project else None) or customer.phone or "",
            address=(project.address if project else None) or customer.address or "",
            customer_id=customer.id,
            project_id=project.id if project else None,
            ac_brand=payload.ac_brand,
            ac_type=payload.ac_type,
            ac_capacity_pk=payload.ac_capacity_pk,
            room_location=payload.room_location,
            trouble_description=payload.trouble_description,
            created_by=user.id,
        )
        if user.role in STAFF_ROLES:
            job.serial_number = payload.serial_number
            job.replaced_parts = payload.replaced_parts
            job.reconditioned_parts = payload.reconditioned_parts

        job = self.repo.save(session, job)
        self.feed.notify("requests", "INSERT", job.id)
        return to_read(job)

    def _customer_target(
        self,
        session: Session,
        user: CurrentUser,
        payload: RequestCreate,
    ) -> tuple[Customer, Project | None]:
        linked = {c.id: c for c in self.customer_repo.list_linked(session, user.id, user.email)}
        if not linked:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Customer data is not linked to this account. Contact the admin.",
            )

        missing = [
            field
            for field in ("ac_brand", "ac_type", "ac_capacity_pk", "room_location")
            if not getattr(payload, field)
        ]
        if missing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Missing required fields: {', '.join(missing)}",
            )

        project = None
        if payload.project_id is not None:
            project = self.customer_repo.get_project(session, payload.project_id)
            if project is None or project.customer_id not in linked:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Project does not belong to this customer",
                )
            return linked[project.customer_id], project

        if payload.customer_id is not None:
            if payload.customer_id not in linked:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Customer does not belong to this account",
                )
            return linked[payload.customer_id], None

        customers = sorted(linked.values(), key=lambda c: c.name or "")
        return customers[0], None

    def _staff_target(
        self,
        session: Session,
        payload: RequestCreate,
    ) -> tuple[Customer, Project | None]:
        project = None
        if payload.project_id is not None:
            project = self.customer_repo.get_project(session, payload.project_id)
            if project is None:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Project not found",
                )

        customer_id = payload.customer_id or (project.customer_id if project else None)
        if customer_id is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="customer_id is required",
            )
        customer = self.customer_repo.get_by_id(session, customer_id)
        if customer is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Customer not found",
            )
        return customer, project

    # -------- Status / photos --------

    def update_status(
        self,
        session: Session,
        user: CurrentUser,
        request_id: uuid.UUID,
        payload: RequestStatusUpdate,
    ) -> RequestRead:
        """
        Set any known status directly (no transition table).

        'completed' requires an after photo to be on file.
        """
        job = self.get_request(session, user, request_id)
        if payload.status == job.status:
            return to_read(job)

        if payload.status == "completed" and not job.after_photo_url:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Completed status requires an after photo",
            )

        job.status = payload.status
        job.updated_at = datetime.now(timezone.utc)
        job = self.repo.save(session, job)
        self.feed.notify("requests", "UPDATE", job.id)
        return to_read(job)

    def save_photos(
        self,
        session: Session,
        user: CurrentUser,
        request_id: uuid.UUID,
        photos: dict[str, tuple[str, bytes]],
    ) -> RequestRead:
        """
        Upload before / progress / after photos and store their URLs.

        Status side effects:
          - after photo                      -> completed
          - progress photo on a pending job  -> in_progress

        Args:
            photos: category -> (content_type, file_bytes)
        """
        job = self.get_request(session, user, request_id)
        if not photos:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Select at least one photo to save",
            )

        urls: dict[str, str] = {}
        for category, (content_type, file_bytes) in photos.items():
            urls[category] = self._upload(user.id, category, content_type, file_bytes)

        if "before" in urls:
            job.before_photo_url = urls["before"]
        if "progress" in urls:
            job.progress_photo_url = urls["progress"]
        if "after" in urls:
            job.after_photo_url = urls["after"]

        current = normalize_status(job.status)
        if "after" in urls:
            job.status = "completed"
        elif "progress" in urls and current == "pending":
            job.status = "in_progress"

        job.updated_at = datetime.now(timezone.utc)
        job = self.repo.save(session, job)
        self.feed.notify("requests", "UPDATE", job.id)
        return to_read(job)

    def upload_capture(
        self,
        user: CurrentUser,
        category: str,
        content_type: str,
        file_bytes: bytes,
    ) -> str:
        """Store a single capture (e.g. a serial-number scan) and return its URL."""
        return self._upload(user.id, category, content_type, file_bytes)

    @staticmethod
    def _upload(
        uploader_id: uuid.UUID,
        category: str,
        content_type: str,
        file_bytes: bytes,
    ) -> str:
        try:
            return upload_job_photo(uploader_id, category, content_type, file_bytes)
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(exc),
            )
        except StorageError as exc:
            logger.error("photo upload failed: %s", exc)
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail={"message": "Photo upload failed", "details": str(exc), "hint": None},
            )

    # -------- Delete --------

    def delete_request(self, session: Session, user: CurrentUser, request_id: uuid.UUID) -> None:
        job = self.get_request(session, user, request_id)
        self.repo.delete(session, job)
        self.feed.notify("requests", "DELETE", request_id)
