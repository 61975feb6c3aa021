# onetrack/routers/requests.py
import uuid

from fastapi import (
    APIRouter,
    Depends,
    File,
    HTTPException,
    UploadFile,
    status,
)
from sqlmodel import Session

from onetrack.core.auth import (
    CurrentUser,
    get_current_user,
    require_admin,
    require_roles,
)
from onetrack.core.realtime import feed
from onetrack.database import get_session
from onetrack.repositories.customer_repo import CustomerRepository
from onetrack.repositories.request_repo import RequestRepository
from onetrack.schemas.job_request import (
    PhotoUploadRead,
    RequestCreate,
    RequestRead,
    RequestStatusUpdate,
    StatusFilter,
)
from onetrack.services.request_service import RequestService, to_read

router = APIRouter(prefix="/requests", tags=["Requests"])
uploads_router = APIRouter(prefix="/uploads", tags=["Uploads"])

repo = RequestRepository()
service = RequestService(repo, CustomerRepository(), feed)

require_staff = require_roles("admin", "technician")


def _read_upload(file: UploadFile | None) -> tuple[str, bytes] | None:
    if file is None:
        return None
    if not file.content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing content-type for uploaded file",
        )
    return file.content_type, file.file.read()


@router.get("", response_model=list[RequestRead])
def list_requests(
    status_filter: StatusFilter = "all",
    search: str | None = None,
    user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """
    List jobs, newest first.

    - Admin / technician: every job.
    - Customer: only jobs they created.
    - `status_filter` is `all` or one status; `search` is free text.
    """
    return service.list_requests(session, user, status_filter=status_filter, search=search)


@router.get("/{request_id}", response_model=RequestRead)
def get_request(
    request_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return to_read(service.get_request(session, user, request_id))


@router.post(
    "",
    response_model=RequestRead,
    status_code=status.HTTP_201_CREATED,
)
def create_request(
    payload: RequestCreate,
    user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """
    Create a pending job.

    - Customers: for one of their linked customers / projects; AC brand,
      type, PK and room location are required.
    - Admin / technician: for any customer.
    """
    return service.create_request(session, user, payload)


@router.patch("/{request_id}/status", response_model=RequestRead)
def update_request_status(
    request_id: uuid.UUID,
    payload: RequestStatusUpdate,
    user: CurrentUser = Depends(require_staff),
    session: Session = Depends(get_session),
):
    """
    Change a job's status (admin / technician).

    - 'completed' requires an after photo.
    """
    return service.update_status(session, user, request_id, payload)


@router.post(
    "/{request_id}/photos",
    response_model=RequestRead,
    summary="Upload before / progress / after photos for a job",
)
def upload_request_photos(
    request_id: uuid.UUID,
    before: UploadFile | None = File(None),
    progress: UploadFile | None = File(None),
    after: UploadFile | None = File(None),
    user: CurrentUser = Depends(require_staff),
    session: Session = Depends(get_session),
):
    """
    Upload job photos (admin / technician).

    - Accepts JPEG, PNG, WEBP; at least one photo.
    - after photo => completed; progress photo on a pending job => in_progress.
    """
    photos: dict[str, tuple[str, bytes]] = {}
    for category, file in (("before", before), ("progress", progress), ("after", after)):
        upload = _read_upload(file)
        if upload is not None:
            photos[category] = upload
    return service.save_photos(session, user, request_id, photos)


@router.delete(
    "/{request_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_request(
    request_id: uuid.UUID,
    user: CurrentUser = Depends(require_admin),
    session: Session = Depends(get_session),
):
    """Delete a job (admin only)."""
    service.delete_request(session, user, request_id)
    return None


@uploads_router.post(
    "/{category}",
    response_model=PhotoUploadRead,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a single captured image",
)
def upload_capture(
    category: str,
    file: UploadFile = File(...),
    user: CurrentUser = Depends(get_current_user),
):
    """
    Store one capture (e.g. the serial-number scan) and return its URL.

    - category is one of before, progress, after, serial-scan.
    """
    content_type, file_bytes = _read_upload(file)
    url = service.upload_capture(user, category, content_type, file_bytes)
    return PhotoUploadRead(category=category, url=url)
