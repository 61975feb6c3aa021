# onetrack/core/auth.py
import logging
import uuid
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from pydantic import BaseModel
from sqlmodel import Session

from onetrack.core.config import get_settings
from onetrack.core.identity_gateway import (
    IdentityGateway,
    IdentityProviderError,
    get_identity_gateway,
)
from onetrack.database import get_session
from onetrack.models.profile import Profile

logger = logging.getLogger(__name__)

settings = get_settings()

# HTTP Bearer scheme:
# - auto_error=False => missing Authorization header will NOT raise immediately
#   so each dependency decides between "guest" and 401.
bearer_scheme = HTTPBearer(auto_error=False)

ADMIN_ROLE = "admin"


class CallerIdentity(BaseModel):
    """Identity proven by the bearer token of the current request."""

    id: uuid.UUID
    email: str | None = None
    token: str


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify a Supabase access token (JWT).

    Verification:
      - signature (HS256 using SUPABASE_JWT_SECRET)
      - expiration time (exp)
      - audience is NOT verified (Supabase 'aud' may vary)

    Raises:
        HTTPException(401): if token is invalid/expired.
    """
    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.SUPABASE_JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


def identity_from_token(token: str) -> CallerIdentity:
    """
    Resolve the token owner from its claims.

    Raises:
        HTTPException(401): if the token is invalid or has no usable 'sub'.
    """
    payload = decode_access_token(token)
    sub = payload.get("sub")
    if not sub:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing sub",
        )

    # Supabase provides sub as a string; enforce UUID
    try:
        sub_uuid = uuid.UUID(str(sub))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid sub in token",
        )

    return CallerIdentity(id=sub_uuid, email=payload.get("email"), token=token)


def get_caller(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> CallerIdentity | None:
    """
    Resolve the caller from a Supabase JWT.

    Returns:
        CallerIdentity if a bearer token is present, else None (guest).

    Raises:
        HTTPException(401): if a token is present but invalid.
    """
    if credentials is None:
        return None
    return identity_from_token(credentials.credentials)


def require_auth(caller: CallerIdentity | None = Depends(get_caller)) -> CallerIdentity:
    """
    Enforce authentication.

    Raises:
        HTTPException(401): if no token was sent.
    """
    if caller is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return caller


class CurrentUser(BaseModel):
    """Authenticated caller plus the role re-read from profiles."""

    id: uuid.UUID
    email: str | None = None
    role: str
    token: str


def get_current_user(
    caller: CallerIdentity = Depends(require_auth),
    session: Session = Depends(get_session),
) -> CurrentUser:
    """
    Load the caller's profile role from the database.

    The role is read on every request; nothing the client asserts
    about its role is trusted.

    Raises:
        HTTPException(403): if the caller has no profile yet.
    """
    profile = session.get(Profile, caller.id)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Profile not found for this account",
        )
    return CurrentUser(
        id=caller.id,
        email=profile.email or caller.email,
        role=profile.role,
        token=caller.token,
    )


def require_roles(*roles: str):
    """
    Dependency factory enforcing one of the given roles.

    Usage:

        @router.get("/x", dependencies=[Depends(require_roles("admin", "technician"))])
    """
    allowed = set(roles)

    def dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient role for this operation",
            )
        return user

    return dependency


require_admin = require_roles(ADMIN_ROLE)


# ---------------------------------------------------------------------------
# Admin provisioning functions
#
# Order is fixed: configuration -> authenticate -> authorize. The request
# body is only read after this dependency returns.
# ---------------------------------------------------------------------------


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
    )


def _forbidden() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Forbidden",
    )


def require_function_admin(
    gateway: IdentityGateway = Depends(get_identity_gateway),
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> CallerIdentity:
    """
    Authorize a call to an admin provisioning function.

    Flow:
      1. Missing token, bad JWT, or a 'sub' the auth provider does not
         know => 401.
      2. Ask the database `is_admin()` function as the caller. Only a
         True answer allows the call outright; False, an error or a
         missing function fall back to profiles.role of the caller.
      3. Profile missing or role != 'admin' => 403.
    """
    if credentials is None or not credentials.credentials.strip():
        raise _unauthorized()

    token = credentials.credentials.strip()
    try:
        caller = identity_from_token(token)
    except HTTPException:
        raise _unauthorized()

    try:
        identity = gateway.get_user(caller.id)
    except IdentityProviderError as exc:
        logger.warning("Caller lookup failed: %s", exc.message)
        raise _unauthorized()
    if identity is None:
        raise _unauthorized()

    if gateway.is_admin(token) is True:
        return caller

    profile = session.get(Profile, caller.id)
    if profile is None or profile.role != ADMIN_ROLE:
        raise _forbidden()
    return caller
