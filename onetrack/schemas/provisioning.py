# onetrack/schemas/provisioning.py
import uuid
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def _as_text(v: Any) -> str:
    """Coerce loose JSON values (None, numbers) to trimmed text."""
    if v is None:
        return ""
    return str(v).strip()


class CreateUserPayload(BaseModel):
    """
    Body of admin-create-user.

    Accepts both snake_case and camelCase name keys, as sent by the
    admin user form and the customer master-data form.
    Presence / length checks live in the service so they run after
    authorization and return the function's own error messages.
    """

    model_config = ConfigDict(extra="ignore")

    email: str = ""
    password: str = ""
    role: str = "customer"
    first_name: str = Field(
        default="",
        validation_alias=AliasChoices("first_name", "firstName"),
    )
    last_name: str = Field(
        default="",
        validation_alias=AliasChoices("last_name", "lastName"),
    )
    full_name: str = Field(
        default="",
        validation_alias=AliasChoices("full_name", "fullName", "name"),
    )
    phone: str = ""

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: Any) -> str:
        return _as_text(v).lower()

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, v: Any) -> str:
        return _as_text(v).lower() or "customer"

    @field_validator("first_name", "last_name", "full_name", "phone", mode="before")
    @classmethod
    def normalize_text(cls, v: Any) -> str:
        return _as_text(v)

    @field_validator("password", mode="before")
    @classmethod
    def keep_password(cls, v: Any) -> str:
        # Passwords are not trimmed
        return "" if v is None else str(v)

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class UpdatePasswordPayload(BaseModel):
    """Body of admin-update-user-password."""

    model_config = ConfigDict(extra="ignore")

    user_id: str = ""
    password: str = ""

    @field_validator("user_id", mode="before")
    @classmethod
    def normalize_user_id(cls, v: Any) -> str:
        return _as_text(v)

    @field_validator("password", mode="before")
    @classmethod
    def keep_password(cls, v: Any) -> str:
        return "" if v is None else str(v)


class DeleteUserPayload(BaseModel):
    """Body of admin-delete-user."""

    model_config = ConfigDict(extra="ignore")

    user_id: str = ""

    @field_validator("user_id", mode="before")
    @classmethod
    def normalize_user_id(cls, v: Any) -> str:
        return _as_text(v)


class CreateUserResult(BaseModel):
    success: bool = True
    user_id: uuid.UUID | None
    email: str
    role: str


class SuccessResult(BaseModel):
    success: bool = True
