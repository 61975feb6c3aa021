# onetrack/services/profile_service.py
import uuid
from datetime import datetime, timezone

from fastapi import HTTPException, status
from sqlmodel import Session

from onetrack.core.auth import CurrentUser
from onetrack.core.identity_gateway import IdentityGateway, IdentityProviderError
from onetrack.core.realtime import ChangeFeed
from onetrack.models.profile import Profile
from onetrack.repositories.profile_repo import ProfileRepository
from onetrack.repositories.role_repo import RoleRepository
from onetrack.schemas.profile import ProfileAdminUpdate, ProfileRead, ProfileSelfUpdate
from onetrack.schemas.provisioning import UpdatePasswordPayload
from onetrack.services.provisioning_service import ProvisioningService


def display_name(profile: Profile) -> str:
    """'first last' -> name -> email -> '-'"""
    composed = f"{profile.first_name or ''} {profile.last_name or ''}".strip()
    return (
        composed
        or (profile.name or "").strip()
        or (profile.email or "").strip()
        or "-"
    )


def to_read(profile: Profile) -> ProfileRead:
    return ProfileRead(
        id=profile.id,
        name=profile.name,
        first_name=profile.first_name,
        last_name=profile.last_name,
        email=profile.email,
        phone=profile.phone,
        role=profile.role,
        display_name=display_name(profile),
        created_at=profile.created_at,
        updated_at=profile.updated_at,
    )


class ProfileService:
    """
    Business logic for profiles (own profile page + admin user list).

    Password changes for other users go through the provisioning
    service so the same validation applies.
    """

    def __init__(
        self,
        repo: ProfileRepository,
        role_repo: RoleRepository,
        provisioning: ProvisioningService,
        feed: ChangeFeed,
    ):
        self.repo = repo
        self.role_repo = role_repo
        self.provisioning = provisioning
        self.feed = feed

    def _get(self, session: Session, profile_id: uuid.UUID) -> Profile:
        profile = self.repo.get_by_id(session, profile_id)
        if profile is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Profile not found",
            )
        return profile

    # ----- Self profile -----

    def get_me(self, session: Session, user: CurrentUser) -> ProfileRead:
        return to_read(self._get(session, user.id))

    def update_me(
        self,
        session: Session,
        gateway: IdentityGateway,
        user: CurrentUser,
        payload: ProfileSelfUpdate,
    ) -> ProfileRead:
        """
        Update identity metadata first (and email when it changed),
        then mirror the same fields into the profile row.
        """
        profile = self._get(session, user.id)
        email = str(payload.email)
        metadata = {
            "first_name": payload.first_name,
            "last_name": payload.last_name,
            "full_name": f"{payload.first_name} {payload.last_name}".strip(),
            "phone": payload.phone,
        }
        try:
            gateway.update_user(
                user.id,
                email=email if email != (profile.email or "") else None,
                metadata=metadata,
            )
        except IdentityProviderError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=exc.as_detail(),
            )

        profile.first_name = payload.first_name
        profile.last_name = payload.last_name
        profile.name = metadata["full_name"]
        profile.email = email
        profile.phone = payload.phone
        profile.updated_at = datetime.now(timezone.utc)
        profile = self.repo.save(session, profile)
        self.feed.notify("profiles", "UPDATE", profile.id)
        return to_read(profile)

    # ----- Admin operations -----

    def list_profiles(
        self,
        session: Session,
        role: str | None = None,
        search: str | None = None,
    ) -> list[ProfileRead]:
        items = [to_read(p) for p in self.repo.list(session, role=role or None)]
        keyword = (search or "").strip().lower()
        if keyword:
            items = [
                item
                for item in items
                if keyword
                in f"{item.display_name} {item.email or ''} {item.phone or ''} {item.role}".lower()
            ]
        return items

    def admin_update(
        self,
        session: Session,
        gateway: IdentityGateway,
        profile_id: uuid.UUID,
        payload: ProfileAdminUpdate,
    ) -> ProfileRead:
        """
        Edit another user's profile; optionally reset their password.

        The password is reset before the profile row is written, so a
        provider failure leaves the profile untouched.

        Raises:
            HTTPException(404): unknown profile.
            HTTPException(400): role not in the catalog / bad password.
        """
        profile = self._get(session, profile_id)
        if payload.password:
            self.provisioning.check_password(payload.password)

        if payload.role is not None and payload.role != profile.role:
            if self.role_repo.get_by_name(session, payload.role.lower()) is None:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Role not valid: {payload.role}",
                )
            profile.role = payload.role.lower()

        if payload.password:
            self.provisioning.update_password(
                gateway,
                UpdatePasswordPayload(user_id=str(profile_id), password=payload.password),
            )

        if payload.first_name is not None:
            profile.first_name = payload.first_name
        if payload.last_name is not None:
            profile.last_name = payload.last_name
        if payload.first_name is not None or payload.last_name is not None:
            profile.name = f"{profile.first_name or ''} {profile.last_name or ''}".strip() or profile.name
        if payload.email is not None:
            profile.email = str(payload.email)
        if payload.phone is not None:
            profile.phone = payload.phone

        profile.updated_at = datetime.now(timezone.utc)
        profile = self.repo.save(session, profile)
        self.feed.notify("profiles", "UPDATE", profile.id)
        return to_read(profile)
