# onetrack/routers/master_data.py
import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from onetrack.core.auth import CurrentUser, get_current_user, require_admin
from onetrack.core.identity_gateway import IdentityGateway, get_identity_gateway
from onetrack.core.realtime import feed
from onetrack.database import get_session
from onetrack.models.catalog import AcBrand, AcPk, AcType
from onetrack.repositories.catalog_repo import CatalogRepository
from onetrack.repositories.customer_repo import CustomerRepository
from onetrack.repositories.profile_repo import ProfileRepository
from onetrack.repositories.request_repo import RequestRepository
from onetrack.repositories.role_repo import RoleRepository
from onetrack.schemas.master_data import (
    AcPkRead,
    AcPkWrite,
    CatalogNameRead,
    CatalogNameWrite,
    CustomerCreate,
    CustomerImpact,
    CustomerRead,
    CustomerUpdate,
    ProjectCreate,
    ProjectRead,
    ProjectUpdate,
    RoleRead,
    RoleWrite,
)
from onetrack.services.master_data_service import (
    CatalogService,
    CustomerService,
    RoleService,
)
from onetrack.services.provisioning_service import ProvisioningService

router = APIRouter(tags=["Master Data"])

role_repo = RoleRepository()
customer_repo = CustomerRepository()
profile_repo = ProfileRepository()
request_repo = RequestRepository()

role_service = RoleService(role_repo)
brand_service = CatalogService(CatalogRepository(AcBrand, "name"), "name", "AC brand")
type_service = CatalogService(CatalogRepository(AcType, "name"), "name", "AC type")
pk_service = CatalogService(CatalogRepository(AcPk, "label"), "label", "AC PK")
customer_service = CustomerService(
    customer_repo,
    request_repo,
    profile_repo,
    ProvisioningService(role_repo, profile_repo, customer_repo, request_repo, feed),
    feed,
)


# -------- Roles --------


@router.get(
    "/roles",
    response_model=list[RoleRead],
    dependencies=[Depends(get_current_user)],
)
def list_roles(session: Session = Depends(get_session)):
    """List roles by name (any signed-in user; used by forms)."""
    return role_service.list_roles(session)


@router.post(
    "/roles",
    response_model=RoleRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_role(payload: RoleWrite, session: Session = Depends(get_session)):
    return role_service.create_role(session, payload)


@router.patch(
    "/roles/{role_id}",
    response_model=RoleRead,
    dependencies=[Depends(require_admin)],
)
def rename_role(
    role_id: uuid.UUID,
    payload: RoleWrite,
    session: Session = Depends(get_session),
):
    return role_service.rename_role(session, role_id, payload)


@router.delete(
    "/roles/{role_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_role(role_id: uuid.UUID, session: Session = Depends(get_session)):
    """
    Delete a role (admin only).

    - 409 while profiles still use it.
    """
    role_service.delete_role(session, role_id)
    return None


# -------- AC brands --------


@router.get(
    "/brands",
    response_model=list[CatalogNameRead],
    dependencies=[Depends(get_current_user)],
)
def list_brands(session: Session = Depends(get_session)):
    return brand_service.list_items(session)


@router.post(
    "/brands",
    response_model=CatalogNameRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_brand(payload: CatalogNameWrite, session: Session = Depends(get_session)):
    return brand_service.create_item(session, payload.name)


@router.patch(
    "/brands/{item_id}",
    response_model=CatalogNameRead,
    dependencies=[Depends(require_admin)],
)
def rename_brand(
    item_id: uuid.UUID,
    payload: CatalogNameWrite,
    session: Session = Depends(get_session),
):
    return brand_service.update_item(session, item_id, payload.name)


@router.delete(
    "/brands/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_brand(item_id: uuid.UUID, session: Session = Depends(get_session)):
    brand_service.delete_item(session, item_id)
    return None


# -------- AC types --------


@router.get(
    "/types",
    response_model=list[CatalogNameRead],
    dependencies=[Depends(get_current_user)],
)
def list_types(session: Session = Depends(get_session)):
    return type_service.list_items(session)


@router.post(
    "/types",
    response_model=CatalogNameRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_type(payload: CatalogNameWrite, session: Session = Depends(get_session)):
    return type_service.create_item(session, payload.name)


@router.patch(
    "/types/{item_id}",
    response_model=CatalogNameRead,
    dependencies=[Depends(require_admin)],
)
def rename_type(
    item_id: uuid.UUID,
    payload: CatalogNameWrite,
    session: Session = Depends(get_session),
):
    return type_service.update_item(session, item_id, payload.name)


@router.delete(
    "/types/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_type(item_id: uuid.UUID, session: Session = Depends(get_session)):
    type_service.delete_item(session, item_id)
    return None


# -------- AC capacities (PK) --------


@router.get(
    "/pks",
    response_model=list[AcPkRead],
    dependencies=[Depends(get_current_user)],
)
def list_pks(session: Session = Depends(get_session)):
    return pk_service.list_items(session)


@router.post(
    "/pks",
    response_model=AcPkRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_pk(payload: AcPkWrite, session: Session = Depends(get_session)):
    return pk_service.create_item(session, payload.label)


@router.patch(
    "/pks/{item_id}",
    response_model=AcPkRead,
    dependencies=[Depends(require_admin)],
)
def relabel_pk(
    item_id: uuid.UUID,
    payload: AcPkWrite,
    session: Session = Depends(get_session),
):
    return pk_service.update_item(session, item_id, payload.label)


@router.delete(
    "/pks/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_pk(item_id: uuid.UUID, session: Session = Depends(get_session)):
    pk_service.delete_item(session, item_id)
    return None


# -------- Customers --------


@router.get("/customers/mine", response_model=list[CustomerRead])
def list_my_customers(
    user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """
    Customers linked to the caller (by user_id or email).

    - Used by the customer request form.
    """
    return customer_service.list_mine(session, user)


@router.get(
    "/customers",
    response_model=list[CustomerRead],
    dependencies=[Depends(require_admin)],
)
def list_customers(session: Session = Depends(get_session)):
    return customer_service.list_customers(session)


@router.post(
    "/customers",
    response_model=CustomerRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_customer(
    payload: CustomerCreate,
    gateway: IdentityGateway = Depends(get_identity_gateway),
    session: Session = Depends(get_session),
):
    """
    Create a customer together with its login (admin only).

    - email + password are required.
    - The login gets role 'customer'; the new profile is linked via user_id.
    """
    return customer_service.create_customer(session, gateway, payload)


@router.patch(
    "/customers/{customer_id}",
    response_model=CustomerRead,
    dependencies=[Depends(require_admin)],
)
def update_customer(
    customer_id: uuid.UUID,
    payload: CustomerUpdate,
    session: Session = Depends(get_session),
):
    return customer_service.update_customer(session, customer_id, payload)


@router.get(
    "/customers/{customer_id}/impact",
    response_model=CustomerImpact,
    dependencies=[Depends(require_admin)],
)
def customer_delete_impact(
    customer_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """Number of jobs a delete of this customer would remove."""
    return customer_service.deletion_impact(session, customer_id)


@router.delete(
    "/customers/{customer_id}",
    response_model=CustomerImpact,
    dependencies=[Depends(require_admin)],
)
def delete_customer(
    customer_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Delete a customer, its jobs and its projects (admin only).

    - Returns how many jobs were removed.
    """
    return customer_service.delete_customer(session, customer_id)


# -------- Projects --------


@router.get("/projects/mine", response_model=list[ProjectRead])
def list_my_projects(
    user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return customer_service.list_my_projects(session, user)


@router.get(
    "/projects",
    response_model=list[ProjectRead],
    dependencies=[Depends(require_admin)],
)
def list_projects(
    customer_id: uuid.UUID | None = None,
    session: Session = Depends(get_session),
):
    return customer_service.list_projects(session, customer_id)


@router.post(
    "/projects",
    response_model=ProjectRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_project(payload: ProjectCreate, session: Session = Depends(get_session)):
    return customer_service.create_project(session, payload)


@router.patch(
    "/projects/{project_id}",
    response_model=ProjectRead,
    dependencies=[Depends(require_admin)],
)
def update_project(
    project_id: uuid.UUID,
    payload: ProjectUpdate,
    session: Session = Depends(get_session),
):
    return customer_service.update_project(session, project_id, payload)


@router.delete(
    "/projects/{project_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_project(project_id: uuid.UUID, session: Session = Depends(get_session)):
    customer_service.delete_project(session, project_id)
    return None
