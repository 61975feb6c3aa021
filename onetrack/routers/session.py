# onetrack/routers/session.py
from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from onetrack.core.auth import CallerIdentity, get_caller, require_auth
from onetrack.database import get_session
from onetrack.repositories.profile_repo import ProfileRepository
from onetrack.schemas.session import GuardDecisionRead, MenuEntryRead, SessionRead
from onetrack.services.session_service import (
    SessionContext,
    allowed_roles_for,
    guard,
    home_path,
    menu_for,
)

router = APIRouter(prefix="/session", tags=["Session"])

profile_repo = ProfileRepository()


@router.get("", response_model=SessionRead)
def get_session_view(
    caller: CallerIdentity = Depends(require_auth),
    session: Session = Depends(get_session),
):
    """
    Who is logged in, their home page and their menu.

    - 403 when the profile is missing or has an unknown role.
    """
    context = SessionContext(caller.id, caller.email, profile_repo).resolve(session)
    if context.role is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No usable role for this account",
        )
    return SessionRead(
        user_id=caller.id,
        email=caller.email,
        role=context.role.value,
        home=home_path(context.role),
        menu=[MenuEntryRead(name=m.name, href=m.href) for m in menu_for(context.role)],
    )


@router.get("/guard", response_model=GuardDecisionRead)
def check_route(
    path: str,
    caller: CallerIdentity | None = Depends(get_caller),
    session: Session = Depends(get_session),
):
    """
    Route guard decision for a client path.

    - No token => redirected to login (never 401).
    - Role not allowed on the path => redirected to login.
    """
    if caller is None:
        context = SessionContext(None)
    else:
        context = SessionContext(caller.id, caller.email, profile_repo)
    decision = guard(context.resolve(session), allowed_roles_for(path))
    return GuardDecisionRead(
        path=path,
        decision=decision.decision,
        redirect_to=decision.redirect_to,
    )
