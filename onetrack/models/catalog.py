# onetrack/models/catalog.py
import uuid

from sqlmodel import SQLModel, Field


# AC lookup sets. Requests copy the chosen value as free text,
# so there is no FK from requests to these tables.


class AcBrand(SQLModel, table=True):
    __tablename__ = "master_ac_brands"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)
    name: str = Field(max_length=100, index=True)


class AcType(SQLModel, table=True):
    __tablename__ = "master_ac_types"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)
    name: str = Field(max_length=100, index=True)


class AcPk(SQLModel, table=True):
    """Capacity label, e.g. '1 PK', '1.5 PK'."""

    __tablename__ = "master_ac_pks"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)
    label: str = Field(max_length=50, index=True)
