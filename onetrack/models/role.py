# onetrack/models/role.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Role(SQLModel, table=True):
    """
    Role catalog. The authoritative set of assignable roles.

    A profile can only be given a role whose name exists here.
    """

    __tablename__ = "master_roles"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        unique=True,
        index=True,
        max_length=50,
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
