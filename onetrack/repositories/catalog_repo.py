# onetrack/repositories/catalog_repo.py
import uuid
from typing import Generic, TypeVar

from sqlmodel import SQLModel, Session, select

T = TypeVar("T", bound=SQLModel)


class CatalogRepository(Generic[T]):
    """
    CRUD for the simple AC lookup tables.

    One instance per table; `order_field` is the column lists sort by
    ("name" for brands / types, "label" for PKs).
    """

    def __init__(self, model: type[T], order_field: str):
        self.model = model
        self.order_field = order_field

    def list(self, session: Session) -> list[T]:
        stmt = select(self.model).order_by(getattr(self.model, self.order_field))
        return list(session.exec(stmt).all())

    def get_by_id(self, session: Session, item_id: uuid.UUID) -> T | None:
        return session.get(self.model, item_id)

    def save(self, session: Session, item: T) -> T:
        session.add(item)
        session.commit()
        session.refresh(item)
        return item

    def delete(self, session: Session, item: T) -> None:
        session.delete(item)
        session.commit()
