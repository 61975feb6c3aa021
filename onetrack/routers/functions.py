# onetrack/routers/functions.py
import json
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import PlainTextResponse
from sqlmodel import Session

from onetrack.core.auth import CallerIdentity, require_function_admin
from onetrack.core.identity_gateway import IdentityGateway, get_identity_gateway
from onetrack.core.realtime import feed
from onetrack.database import get_session
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
from onetrack.services.provisioning_service import ProvisioningService, parse_payload

router = APIRouter(tags=["Admin Functions"])

service = ProvisioningService(
    RoleRepository(),
    ProfileRepository(),
    CustomerRepository(),
    RequestRepository(),
    feed,
)

# Browser preflight answer shared by every function
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


async def admin_json_body(
    request: Request,
    caller: CallerIdentity = Depends(require_function_admin),
) -> Any:
    """
    Read the JSON body, but only after the caller is authorized.

    Raises:
        HTTPException(400): if the body is not valid JSON.
    """
    raw = await request.body()
    try:
        return json.loads(raw or b"null")
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid JSON body",
        )


@router.options("/admin-create-user", include_in_schema=False)
@router.options("/admin-update-user-password", include_in_schema=False)
@router.options("/admin-delete-user", include_in_schema=False)
def preflight() -> PlainTextResponse:
    return PlainTextResponse("ok", headers=CORS_HEADERS)


@router.post("/admin-create-user", response_model=CreateUserResult)
def admin_create_user(
    body: Any = Depends(admin_json_body),
    gateway: IdentityGateway = Depends(get_identity_gateway),
    session: Session = Depends(get_session),
):
    """
    Create a confirmed login plus its profile (admin only).

    - role must exist in master_roles (default 'customer').
    - A failed profile insert is logged; the login is still returned.
    """
    payload = parse_payload(CreateUserPayload, body)
    return service.create_user(session, gateway, payload)


@router.post("/admin-update-user-password", response_model=SuccessResult)
def admin_update_user_password(
    body: Any = Depends(admin_json_body),
    gateway: IdentityGateway = Depends(get_identity_gateway),
):
    """
    Overwrite another user's password (admin only).
    """
    payload = parse_payload(UpdatePasswordPayload, body)
    return service.update_password(gateway, payload)


@router.post("/admin-delete-user", response_model=SuccessResult)
def admin_delete_user(
    body: Any = Depends(admin_json_body),
    gateway: IdentityGateway = Depends(get_identity_gateway),
    session: Session = Depends(get_session),
):
    """
    Delete a login, its profile and any customer linked to it (admin only).

    - Deleting an already-deleted user still succeeds.
    """
    payload = parse_payload(DeleteUserPayload, body)
    return service.delete_user(session, gateway, payload)
