# onetrack/repositories/profile_repo.py
import uuid

from sqlmodel import Session, select

from onetrack.models.profile import Profile


class ProfileRepository:
    """
    Data access layer for Profile.

    Responsibilities:
      - Pure DB operations (CRUD + queries)
      - No FastAPI, no HTTP, no business logic
    """

    def get_by_id(self, session: Session, profile_id: uuid.UUID) -> Profile | None:
        """Return a Profile by primary key, or None if not found."""
        return session.get(Profile, profile_id)

    def get_by_email(self, session: Session, email: str) -> Profile | None:
        stmt = select(Profile).where(Profile.email == email)
        return session.exec(stmt).first()

    def list(self, session: Session, role: str | None = None) -> list[Profile]:
        """All profiles, newest first, optionally restricted to one role."""
        stmt = select(Profile)
        if role:
            stmt = stmt.where(Profile.role == role)
        stmt = stmt.order_by(Profile.created_at.desc())
        return list(session.exec(stmt).all())

    def save(self, session: Session, profile: Profile) -> Profile:
        """Insert or update a Profile and return the persisted row."""
        session.add(profile)
        session.commit()
        session.refresh(profile)
        return profile

    def delete_by_id(self, session: Session, profile_id: uuid.UUID) -> bool:
        """
        Delete a Profile if present. Returns True if a row was removed.

        NOTE: no commit; delete-user commits profile + linked customers together.
        """
        profile = session.get(Profile, profile_id)
        if profile is None:
            return False
        session.delete(profile)
        return True
