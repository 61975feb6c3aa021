# onetrack/schemas/profile.py
import uuid
from datetime import datetime

from pydantic import ConfigDict, EmailStr, field_validator
from sqlmodel import SQLModel, Field


class ProfileRead(SQLModel):
    """Response schema returned to clients."""

    id: uuid.UUID
    name: str | None
    first_name: str | None
    last_name: str | None
    email: str | None
    phone: str | None
    role: str
    display_name: str
    created_at: datetime
    updated_at: datetime | None


class ProfileSelfUpdate(SQLModel):
    """
    Profile page payload.

    first_name and email are required; the rest may be blank.
    """

    model_config = ConfigDict(extra="forbid")

    first_name: str = Field(max_length=100)
    last_name: str = Field(default="", max_length=100)
    email: EmailStr
    phone: str = Field(default="", max_length=50)

    @field_validator("first_name")
    @classmethod
    def first_name_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("first_name cannot be empty")
        return v

    @field_validator("last_name", "phone")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()


class ProfileAdminUpdate(SQLModel):
    """
    Admin user-form payload (edit mode).

    A non-empty password is forwarded to the password update flow.
    """

    model_config = ConfigDict(extra="forbid")

    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=50)
    role: str | None = None
    password: str | None = None

    @field_validator("first_name", "last_name", "phone", "role", "password")
    @classmethod
    def strip_text(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return v.strip()
