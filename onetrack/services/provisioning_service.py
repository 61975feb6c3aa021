# onetrack/services/provisioning_service.py
import logging
import time
import uuid
from typing import Any, TypeVar

from fastapi import HTTPException, status
from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from onetrack.core.config import get_settings
from onetrack.core.identity_gateway import IdentityGateway, IdentityProviderError
from onetrack.core.realtime import ChangeFeed
from onetrack.models.profile import Profile
from onetrack.repositories.customer_repo import CustomerRepository
from onetrack.repositories.profile_repo import ProfileRepository
from onetrack.repositories.request_repo import RequestRepository
from onetrack.repositories.role_repo import RoleRepository
from onetrack.schemas.provisioning import (
    CreateUserPayload,
    CreateUserResult,
    DeleteUserPayload,
    SuccessResult,
    UpdatePasswordPayload,
)

logger = logging.getLogger(__name__)

settings = get_settings()

P = TypeVar("P", bound=BaseModel)


def parse_payload(model: type[P], body: Any) -> P:
    """
    Validate an already-decoded JSON body.

    Raises:
        HTTPException(400): if the body does not fit the payload model.
    """
    if not isinstance(body, dict):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid JSON body",
        )
    try:
        return model.model_validate(body)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid request body: {exc.errors()[0]['msg']}",
        )


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


def _provider_error(exc: IdentityProviderError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=exc.as_detail(),
    )


def _parse_user_id(raw: str) -> uuid.UUID:
    try:
        return uuid.UUID(raw)
    except ValueError:
        raise _bad_request("user_id is not a valid id")


class ProvisioningService:
    """
    Admin account provisioning.

    Every method assumes the caller was already authorized as admin
    (see `require_function_admin`). Steps inside one call run strictly
    in order: validate -> mutate identity -> mutate profile.

    Partial failures:
      - identity creation fails  => 400, no profile written
      - profile insert fails     => retried, then logged; the call still
                                    succeeds and the identity is kept
      - identity already deleted => treated as success, cleanup continues
    """

    def __init__(
        self,
        role_repo: RoleRepository,
        profile_repo: ProfileRepository,
        customer_repo: CustomerRepository,
        request_repo: RequestRepository,
        feed: ChangeFeed,
    ):
        self.role_repo = role_repo
        self.profile_repo = profile_repo
        self.customer_repo = customer_repo
        self.request_repo = request_repo
        self.feed = feed

    # ----- Validation helpers -----

    @staticmethod
    def check_password(password: str) -> None:
        if len(password) < settings.MIN_PASSWORD_LENGTH:
            raise _bad_request(
                f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters"
            )

    def _resolve_role(self, session: Session, role_input: str) -> str:
        """
        Look the role up in master_roles. Never defaults silently.

        Raises:
            HTTPException(500): if the catalog query fails.
            HTTPException(400): if no such role exists.
        """
        try:
            role = self.role_repo.get_by_name(session, role_input)
        except SQLAlchemyError as exc:
            session.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail={
                    "message": f"Role validation failed: {exc.__class__.__name__}",
                    "details": str(exc),
                    "hint": None,
                },
            )
        if role is None:
            raise _bad_request(f"Role not valid: {role_input}")
        return role.name

    # ----- create-user -----

    def create_user(
        self,
        session: Session,
        gateway: IdentityGateway,
        payload: CreateUserPayload,
    ) -> CreateUserResult:
        """
        Create a pre-confirmed identity and its profile.

        Steps:
          1. email + password present, password long enough.
          2. role exists in master_roles.
          3. create identity with role / names / phone as metadata.
          4. upsert profile keyed by the new identity id.
        """
        if not payload.email or not payload.password:
            raise _bad_request("email and password are required")
        self.check_password(payload.password)

        role = self._resolve_role(session, payload.role)

        metadata = {
            "role": role,
            "first_name": payload.first_name,
            "last_name": payload.last_name,
            "full_name": payload.full_name or payload.display_name,
            "phone": payload.phone,
        }
        try:
            identity = gateway.create_user(payload.email, payload.password, metadata)
        except IdentityProviderError as exc:
            logger.error("admin-create-user error: %s", exc.message)
            raise _provider_error(exc)

        email = identity.email or payload.email
        profile = Profile(
            id=identity.id,
            name=payload.display_name or email.split("@", 1)[0],
            email=email,
            first_name=payload.first_name,
            last_name=payload.last_name,
            phone=payload.phone,
            role=role,
        )
        if self._save_profile_with_retry(session, profile):
            self.feed.notify("profiles", "INSERT", identity.id)

        return CreateUserResult(user_id=identity.id, email=email, role=role)

    def _save_profile_with_retry(self, session: Session, profile: Profile) -> bool:
        """
        Upsert the profile row, retrying a bounded number of times.

        A database trigger may already have created the row, so an existing
        row is updated instead of inserted.

        Returns:
            True if the profile was stored, False if every attempt failed.
        """
        attempts = max(1, settings.PROFILE_INSERT_ATTEMPTS)
        for attempt in range(1, attempts + 1):
            try:
                existing = self.profile_repo.get_by_id(session, profile.id)
                if existing is not None:
                    for field in ("name", "email", "first_name", "last_name", "phone", "role"):
                        setattr(existing, field, getattr(profile, field))
                    self.profile_repo.save(session, existing)
                else:
                    self.profile_repo.save(session, profile)
                return True
            except Exception as exc:
                session.rollback()
                logger.warning(
                    "profile insert attempt %s/%s failed for %s: %s",
                    attempt,
                    attempts,
                    profile.id,
                    exc,
                )
                if attempt < attempts:
                    time.sleep(settings.PROFILE_INSERT_BACKOFF_SECONDS * attempt)

        logger.error(
            "profile insert error: identity %s (%s) has no profile",
            profile.id,
            profile.email,
        )
        return False

    # ----- update-user-password -----

    def update_password(
        self,
        gateway: IdentityGateway,
        payload: UpdatePasswordPayload,
    ) -> SuccessResult:
        """Overwrite an identity's credential. Profiles are not touched."""
        if not payload.user_id or not payload.password:
            raise _bad_request("user_id and password are required")
        self.check_password(payload.password)
        user_id = _parse_user_id(payload.user_id)

        try:
            gateway.update_user(user_id, password=payload.password)
        except IdentityProviderError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=exc.message,
            )
        return SuccessResult()

    # ----- delete-user -----

    def delete_user(
        self,
        session: Session,
        gateway: IdentityGateway,
        payload: DeleteUserPayload,
    ) -> SuccessResult:
        """
        Converge to "no identity, no profile, no linked customer".

        A missing identity is not an error, so deleting twice succeeds.
        Linked customers are removed by convention (weak user_id), not by
        a database cascade, together with their jobs and projects.
        """
        if not payload.user_id:
            raise _bad_request("user_id is required")
        user_id = _parse_user_id(payload.user_id)

        try:
            gateway.delete_user(user_id)
        except IdentityProviderError as exc:
            if not exc.is_not_found:
                raise _provider_error(exc)
            logger.info("identity %s already absent, cleaning up profile", user_id)

        removed_jobs = 0
        try:
            for customer in self.customer_repo.list_by_user_id(session, user_id):
                removed_jobs += self.request_repo.delete_for_customer(session, customer.id)
                self.customer_repo.delete_projects_for_customer(session, customer.id)
            removed_customers = self.customer_repo.delete_by_user_id(session, user_id)
            removed_profile = self.profile_repo.delete_by_id(session, user_id)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("profile cleanup failed for %s: %s", user_id, exc)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail={
                    "message": "Profile cleanup failed",
                    "details": str(exc),
                    "hint": None,
                },
            )

        if removed_profile:
            self.feed.notify("profiles", "DELETE", user_id)
        if removed_customers:
            self.feed.notify("master_customers", "DELETE", user_id)
        if removed_jobs:
            self.feed.notify("requests", "DELETE", None)
        return SuccessResult()
