# onetrack/schemas/master_data.py
import uuid
from datetime import datetime

from pydantic import ConfigDict, EmailStr, field_validator
from sqlmodel import SQLModel, Field


def _required(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("field cannot be empty")
    return v


def _optional(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    return v or None


# ----- Roles -----


class RoleWrite(SQLModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=50)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        return _required(v).lower()


class RoleRead(SQLModel):
    id: uuid.UUID
    name: str
    created_at: datetime


# ----- AC catalogs -----


class CatalogNameWrite(SQLModel):
    """Payload for AC brands and AC types."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=100)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        return _required(v)


class CatalogNameRead(SQLModel):
    id: uuid.UUID
    name: str


class AcPkWrite(SQLModel):
    model_config = ConfigDict(extra="forbid")

    label: str = Field(max_length=50)

    @field_validator("label")
    @classmethod
    def normalize_label(cls, v: str) -> str:
        return _required(v)


class AcPkRead(SQLModel):
    id: uuid.UUID
    label: str


# ----- Customers -----


class CustomerCreate(SQLModel):
    """
    New customer from the master-data form.

    email + password provision the customer's login at the same time.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=200)
    project_name: str | None = None
    location: str | None = None
    phone: str | None = None
    address: str | None = None
    email: EmailStr | None = None
    password: str | None = None

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        return _required(v)

    @field_validator("project_name", "location", "phone", "address")
    @classmethod
    def normalize_optional(cls, v: str | None) -> str | None:
        return _optional(v)


class CustomerUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=200)
    project_name: str | None = None
    location: str | None = None
    phone: str | None = None
    address: str | None = None
    email: EmailStr | None = None

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return _required(v)


class CustomerRead(SQLModel):
    id: uuid.UUID
    name: str
    pic_name: str | None
    project_name: str | None
    location: str | None
    phone: str | None
    email: str | None
    address: str | None
    user_id: uuid.UUID | None
    created_at: datetime


class CustomerImpact(SQLModel):
    """What a customer delete would take with it."""

    customer_id: uuid.UUID
    request_count: int


# ----- Projects -----


class ProjectCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    customer_id: uuid.UUID
    project_name: str = Field(max_length=200)
    location: str | None = None
    phone: str | None = None
    address: str | None = None

    @field_validator("project_name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        return _required(v)

    @field_validator("location", "phone", "address")
    @classmethod
    def normalize_optional(cls, v: str | None) -> str | None:
        return _optional(v)


class ProjectUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    customer_id: uuid.UUID | None = None
    project_name: str | None = Field(default=None, max_length=200)
    location: str | None = None
    phone: str | None = None
    address: str | None = None


class ProjectRead(SQLModel):
    id: uuid.UUID
    customer_id: uuid.UUID
    project_name: str
    location: str | None
    phone: str | None
    address: str | None
    created_at: datetime
