# onetrack/routers/profiles.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from onetrack.core.auth import CurrentUser, get_current_user, require_admin
from onetrack.core.identity_gateway import IdentityGateway, get_identity_gateway
from onetrack.core.realtime import feed
from onetrack.database import get_session
from onetrack.repositories.customer_repo import CustomerRepository
from onetrack.repositories.profile_repo import ProfileRepository
from onetrack.repositories.request_repo import RequestRepository
from onetrack.repositories.role_repo import RoleRepository
from onetrack.schemas.profile import ProfileAdminUpdate, ProfileRead, ProfileSelfUpdate
from onetrack.services.profile_service import ProfileService
from onetrack.services.provisioning_service import ProvisioningService

router = APIRouter(prefix="/profiles", tags=["Profiles"])

repo = ProfileRepository()
role_repo = RoleRepository()
provisioning = ProvisioningService(role_repo, repo, CustomerRepository(), RequestRepository(), feed)
service = ProfileService(repo, role_repo, provisioning, feed)


@router.get("/me", response_model=ProfileRead)
def get_me(
    user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """
    Return the current user's profile.

    - Requires valid Supabase JWT in Authorization header.
    """
    return service.get_me(session, user)


@router.patch("/me", response_model=ProfileRead)
def update_me(
    payload: ProfileSelfUpdate,
    user: CurrentUser = Depends(get_current_user),
    gateway: IdentityGateway = Depends(get_identity_gateway),
    session: Session = Depends(get_session),
):
    """
    Update the current user's name, email and phone.

    - first_name and email are required.
    - Auth metadata is updated first, then the profile row.
    """
    return service.update_me(session, gateway, user, payload)


@router.get(
    "",
    response_model=list[ProfileRead],
    dependencies=[Depends(require_admin)],
)
def list_profiles(
    role: str | None = None,
    search: str | None = None,
    session: Session = Depends(get_session),
):
    """
    List every profile, newest first (admin only).

    - `role` restricts to one role.
    - `search` matches name, email, phone and role.
    """
    return service.list_profiles(session, role=role, search=search)


@router.patch(
    "/{profile_id}",
    response_model=ProfileRead,
    dependencies=[Depends(require_admin)],
)
def update_profile(
    profile_id: uuid.UUID,
    payload: ProfileAdminUpdate,
    gateway: IdentityGateway = Depends(get_identity_gateway),
    session: Session = Depends(get_session),
):
    """
    Edit another user's profile (admin only).

    - A non-empty `password` also resets their login password.
    """
    return service.admin_update(session, gateway, profile_id, payload)
