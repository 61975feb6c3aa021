# onetrack/models/profile.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Profile(SQLModel, table=True):
    """
    Business-facing user record, keyed 1:1 to a Supabase identity.

    Identity:
      - id: MUST match Supabase auth.users.id (UUID from JWT "sub")

    Role:
      - must be a name present in master_roles
      - authoritative for privilege checks (identity metadata is not)

    This table is *not* responsible for password hashes. Supabase Auth
    stores the credential in its own schema. Name/email/phone are
    duplicated here for query convenience.
    """

    __tablename__ = "profiles"

    id: uuid.UUID = Field(
        primary_key=True,
        index=True,
        description="Matches Supabase auth.users.id",
    )

    name: str | None = Field(
        default=None,
        max_length=200,
        description="Display name; 'first last' or the email local-part",
    )
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)

    email: str | None = Field(
        default=None,
        index=True,
        description="Denormalized copy of auth.users.email",
    )
    phone: str | None = Field(default=None, max_length=50)

    role: str = Field(
        foreign_key="master_roles.name",
        index=True,
        description="Application role: admin | technician | customer",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime | None = Field(default=None)
