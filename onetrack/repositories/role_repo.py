# onetrack/repositories/role_repo.py
import uuid

from sqlmodel import Session, select

from onetrack.models.role import Role


class RoleRepository:
    """Data access layer for the role catalog (master_roles)."""

    def get_by_name(self, session: Session, name: str) -> Role | None:
        stmt = select(Role).where(Role.name == name)
        return session.exec(stmt).first()

    def get_by_id(self, session: Session, role_id: uuid.UUID) -> Role | None:
        return session.get(Role, role_id)

    def list(self, session: Session) -> list[Role]:
        stmt = select(Role).order_by(Role.name)
        return list(session.exec(stmt).all())

    def save(self, session: Session, role: Role) -> Role:
        session.add(role)
        session.commit()
        session.refresh(role)
        return role

    def delete(self, session: Session, role: Role) -> None:
        session.delete(role)
        session.commit()
