# onetrack/core/identity_gateway.py
"""
Thin wrapper around the Supabase Auth admin API.

The gateway owns no business rules. It only:
  - talks to Supabase Auth with the service role key
  - converts provider responses into `IdentityRecord`
  - converts provider failures into `IdentityProviderError`

Routers receive it through the `get_identity_gateway` dependency so tests
can swap in an in-memory implementation.
"""
import logging
import uuid
from typing import Any

from fastapi import HTTPException, status
from pydantic import BaseModel, Field

from onetrack.core.config import get_settings
from onetrack.core.supabase_client import supabase_admin, supabase_for_token

logger = logging.getLogger(__name__)

settings = get_settings()


class IdentityRecord(BaseModel):
    """Request-scoped copy of a Supabase auth.users row."""

    id: uuid.UUID
    email: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class IdentityProviderError(Exception):
    """
    Failure reported by the auth provider.

    Carries the provider's message plus optional details / hint so the
    service layer can surface them in the JSON error body.
    """

    def __init__(
        self,
        message: str,
        details: str | None = None,
        hint: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details
        self.hint = hint
        self.status_code = status_code

    @property
    def is_not_found(self) -> bool:
        """True for the 'user not found' class of errors."""
        if self.status_code == 404:
            return True
        return "user not found" in self.message.lower()

    def as_detail(self) -> dict[str, str | None]:
        return {"message": self.message, "details": self.details, "hint": self.hint}


def _to_provider_error(exc: Exception) -> IdentityProviderError:
    return IdentityProviderError(
        message=str(getattr(exc, "message", None) or exc),
        details=getattr(exc, "details", None),
        hint=getattr(exc, "hint", None),
        status_code=getattr(exc, "status", None),
    )


def _to_record(user: Any) -> IdentityRecord:
    return IdentityRecord(
        id=uuid.UUID(str(user.id)),
        email=user.email,
        metadata=dict(user.user_metadata or {}),
    )


class IdentityGateway:
    """Supabase Auth admin operations used by the provisioning functions."""

    def get_user(self, user_id: uuid.UUID) -> IdentityRecord | None:
        """Return the identity, or None if the provider does not know it."""
        try:
            response = supabase_admin().auth.admin.get_user_by_id(str(user_id))
        except Exception as exc:
            error = _to_provider_error(exc)
            if error.is_not_found:
                return None
            raise error from exc
        if response is None or response.user is None:
            return None
        return _to_record(response.user)

    def create_user(
        self,
        email: str,
        password: str,
        metadata: dict[str, Any],
    ) -> IdentityRecord:
        """
        Create a pre-confirmed identity (no email verification round trip).
        """
        try:
            response = supabase_admin().auth.admin.create_user(
                {
                    "email": email,
                    "password": password,
                    "email_confirm": True,
                    "user_metadata": metadata,
                }
            )
        except Exception as exc:
            raise _to_provider_error(exc) from exc
        if response is None or response.user is None:
            raise IdentityProviderError("Identity provider returned no user")
        return _to_record(response.user)

    def update_user(
        self,
        user_id: uuid.UUID,
        password: str | None = None,
        email: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        attributes: dict[str, Any] = {}
        if password is not None:
            attributes["password"] = password
        if email is not None:
            attributes["email"] = email
        if metadata is not None:
            attributes["user_metadata"] = metadata
        if not attributes:
            return
        try:
            supabase_admin().auth.admin.update_user_by_id(str(user_id), attributes)
        except Exception as exc:
            raise _to_provider_error(exc) from exc

    def delete_user(self, user_id: uuid.UUID) -> None:
        try:
            supabase_admin().auth.admin.delete_user(str(user_id))
        except Exception as exc:
            raise _to_provider_error(exc) from exc

    def is_admin(self, token: str) -> bool | None:
        """
        Ask the database-side `is_admin()` function, evaluated as the caller.

        Returns:
            True / False when the function answered with a boolean,
            None when it is missing or failed. Anything but True falls back
            to profiles.role in the caller.
        """
        try:
            response = supabase_for_token(token).rpc("is_admin").execute()
        except Exception as exc:
            logger.info("is_admin rpc unavailable, falling back to profile: %s", exc)
            return None
        if isinstance(response.data, bool):
            return response.data
        return None


def get_identity_gateway() -> IdentityGateway:
    """
    FastAPI dependency for the identity gateway.

    Raises:
        HTTPException(500): if the provider URL / keys are not configured.
    """
    if not settings.provider_configured:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Missing Supabase env vars",
        )
    return IdentityGateway()
