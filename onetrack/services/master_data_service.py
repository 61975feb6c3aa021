# onetrack/services/master_data_service.py
import uuid
from typing import Generic, TypeVar

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlmodel import SQLModel, Session

from onetrack.core.auth import CurrentUser
from onetrack.core.identity_gateway import IdentityGateway
from onetrack.core.realtime import ChangeFeed
from onetrack.models.customer import Customer, Project
from onetrack.models.role import Role
from onetrack.repositories.catalog_repo import CatalogRepository
from onetrack.repositories.customer_repo import CustomerRepository
from onetrack.repositories.profile_repo import ProfileRepository
from onetrack.repositories.request_repo import RequestRepository
from onetrack.repositories.role_repo import RoleRepository
from onetrack.schemas.master_data import (
    CustomerCreate,
    CustomerImpact,
    CustomerUpdate,
    ProjectCreate,
    ProjectUpdate,
    RoleWrite,
)
from onetrack.schemas.provisioning import CreateUserPayload
from onetrack.services.provisioning_service import ProvisioningService

T = TypeVar("T", bound=SQLModel)


def _not_found(what: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"{what} not found",
    )


def split_name(full_name: str) -> tuple[str, str]:
    """'Budi Santoso Jr' -> ('Budi', 'Santoso Jr')"""
    parts = full_name.split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


class RoleService:
    """Role catalog maintenance (admin only)."""

    def __init__(self, repo: RoleRepository):
        self.repo = repo

    def list_roles(self, session: Session) -> list[Role]:
        return self.repo.list(session)

    def create_role(self, session: Session, payload: RoleWrite) -> Role:
        if self.repo.get_by_name(session, payload.name) is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Role already exists: {payload.name}",
            )
        return self.repo.save(session, Role(name=payload.name))

    def rename_role(self, session: Session, role_id: uuid.UUID, payload: RoleWrite) -> Role:
        role = self.repo.get_by_id(session, role_id)
        if role is None:
            raise _not_found("Role")
        role.name = payload.name
        try:
            return self.repo.save(session, role)
        except IntegrityError:
            session.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Role is in use or already exists",
            )

    def delete_role(self, session: Session, role_id: uuid.UUID) -> None:
        role = self.repo.get_by_id(session, role_id)
        if role is None:
            raise _not_found("Role")
        try:
            self.repo.delete(session, role)
        except IntegrityError:
            session.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Role is still assigned to profiles",
            )


class CatalogService(Generic[T]):
    """
    CRUD for one AC lookup table.

    `field` is the single editable column ("name" or "label").
    """

    def __init__(self, repo: CatalogRepository[T], field: str, label: str):
        self.repo = repo
        self.field = field
        self.label = label

    def list_items(self, session: Session) -> list[T]:
        return self.repo.list(session)

    def create_item(self, session: Session, value: str) -> T:
        item = self.repo.model(**{self.field: value})
        return self.repo.save(session, item)

    def update_item(self, session: Session, item_id: uuid.UUID, value: str) -> T:
        item = self.repo.get_by_id(session, item_id)
        if item is None:
            raise _not_found(self.label)
        setattr(item, self.field, value)
        return self.repo.save(session, item)

    def delete_item(self, session: Session, item_id: uuid.UUID) -> None:
        item = self.repo.get_by_id(session, item_id)
        if item is None:
            raise _not_found(self.label)
        self.repo.delete(session, item)


class CustomerService:
    """
    Customer and project master data.

    Creating a customer with email + password provisions its login
    through the same create-user flow the admin functions use, then
    links the customer to the new profile.
    """

    def __init__(
        self,
        repo: CustomerRepository,
        request_repo: RequestRepository,
        profile_repo: ProfileRepository,
        provisioning: ProvisioningService,
        feed: ChangeFeed,
    ):
        self.repo = repo
        self.request_repo = request_repo
        self.profile_repo = profile_repo
        self.provisioning = provisioning
        self.feed = feed

    # ----- Customers -----

    def list_customers(self, session: Session) -> list[Customer]:
        return self.repo.list(session)

    def list_mine(self, session: Session, user: CurrentUser) -> list[Customer]:
        """Customers linked to the caller by user_id or email, deduplicated."""
        linked = {c.id: c for c in self.repo.list_linked(session, user.id, user.email)}
        return sorted(linked.values(), key=lambda c: c.name or "")

    def get_customer(self, session: Session, customer_id: uuid.UUID) -> Customer:
        customer = self.repo.get_by_id(session, customer_id)
        if customer is None:
            raise _not_found("Customer")
        return customer

    def create_customer(
        self,
        session: Session,
        gateway: IdentityGateway,
        payload: CustomerCreate,
    ) -> Customer:
        """
        Steps:
          1. email + password required for a new customer.
          2. create-user with role 'customer'.
          3. find the new profile by email and link it.
          4. insert the customer row.
        """
        if not payload.email or not payload.password:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Customer email and password are required",
            )

        email = str(payload.email).lower()
        first_name, last_name = split_name(payload.name)
        result = self.provisioning.create_user(
            session,
            gateway,
            CreateUserPayload(
                email=email,
                password=payload.password,
                role="customer",
                first_name=first_name,
                last_name=last_name,
                full_name=payload.name,
                phone=payload.phone or "",
            ),
        )

        linked = self.profile_repo.get_by_email(session, result.email)
        customer = Customer(
            name=payload.name,
            pic_name=payload.name,
            project_name=payload.project_name,
            location=payload.location,
            phone=payload.phone,
            email=email,
            address=payload.address,
            user_id=linked.id if linked else result.user_id,
        )
        customer = self.repo.save(session, customer)
        self.feed.notify("master_customers", "INSERT", customer.id)
        return customer

    def update_customer(
        self,
        session: Session,
        customer_id: uuid.UUID,
        payload: CustomerUpdate,
    ) -> Customer:
        customer = self.get_customer(session, customer_id)
        if payload.name is not None:
            customer.name = payload.name
            customer.pic_name = payload.name
        for field in ("project_name", "location", "phone", "address"):
            value = getattr(payload, field)
            if value is not None:
                setattr(customer, field, value)
        if payload.email is not None:
            customer.email = str(payload.email).lower()
        customer = self.repo.save(session, customer)
        self.feed.notify("master_customers", "UPDATE", customer.id)
        return customer

    def deletion_impact(self, session: Session, customer_id: uuid.UUID) -> CustomerImpact:
        """How many jobs a delete would remove (shown in the confirm dialog)."""
        self.get_customer(session, customer_id)
        return CustomerImpact(
            customer_id=customer_id,
            request_count=self.request_repo.count_for_customer(session, customer_id),
        )

    def delete_customer(self, session: Session, customer_id: uuid.UUID) -> CustomerImpact:
        """
        Delete a customer together with its jobs and projects.

        The login linked through user_id is kept; removing it is a
        separate admin-delete-user call.
        """
        customer = self.get_customer(session, customer_id)
        removed_jobs = self.request_repo.delete_for_customer(session, customer_id)
        self.repo.delete_projects_for_customer(session, customer_id)
        self.repo.delete(session, customer)

        self.feed.notify("master_customers", "DELETE", customer_id)
        if removed_jobs:
            self.feed.notify("requests", "DELETE", None)
        return CustomerImpact(customer_id=customer_id, request_count=removed_jobs)

    # ----- Projects -----

    def list_projects(
        self,
        session: Session,
        customer_id: uuid.UUID | None = None,
    ) -> list[Project]:
        return self.repo.list_projects(
            session, [customer_id] if customer_id is not None else None
        )

    def list_my_projects(self, session: Session, user: CurrentUser) -> list[Project]:
        customer_ids = [c.id for c in self.list_mine(session, user)]
        if not customer_ids:
            return []
        return self.repo.list_projects(session, customer_ids)

    def create_project(self, session: Session, payload: ProjectCreate) -> Project:
        self.get_customer(session, payload.customer_id)
        project = Project(**payload.model_dump())
        return self.repo.save_project(session, project)

    def update_project(
        self,
        session: Session,
        project_id: uuid.UUID,
        payload: ProjectUpdate,
    ) -> Project:
        project = self.repo.get_project(session, project_id)
        if project is None:
            raise _not_found("Project")
        if payload.customer_id is not None:
            self.get_customer(session, payload.customer_id)
        for field, value in payload.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(project, field, value)
        return self.repo.save_project(session, project)

    def delete_project(self, session: Session, project_id: uuid.UUID) -> None:
        """Delete a project. Its jobs are kept with project_id cleared."""
        project = self.repo.get_project(session, project_id)
        if project is None:
            raise _not_found("Project")
        detached = self.request_repo.detach_project(session, project_id)
        self.repo.delete_project(session, project)
        if detached:
            self.feed.notify("requests", "UPDATE", None)
