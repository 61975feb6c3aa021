# onetrack/models/customer.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Customer(SQLModel, table=True):
    """
    Customer master data.

    user_id is a weak reference to profiles.id (no FK): it links the
    customer to its login, and is cleared by convention when that login
    is deleted. email is the correlation key when user_id is absent.
    """

    __tablename__ = "master_customers"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(max_length=200)
    pic_name: str | None = Field(default=None, description="Person in charge")
    project_name: str | None = None
    location: str | None = None
    phone: str | None = None
    email: str | None = Field(default=None, index=True)
    address: str | None = None

    user_id: uuid.UUID | None = Field(
        default=None,
        index=True,
        description="Weak reference to profiles.id",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class Project(SQLModel, table=True):
    """
    A site / project. Belongs to exactly one customer.
    """

    __tablename__ = "master_projects"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    customer_id: uuid.UUID = Field(
        foreign_key="master_customers.id",
        index=True,
    )

    project_name: str = Field(max_length=200)
    location: str | None = None
    phone: str | None = None
    address: str | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
