# onetrack/repositories/stats_repo.py
import uuid
from datetime import datetime

from sqlmodel import Session, select

from onetrack.models.job_request import JobRequest


class StatsRepository:
    """
    Read-only aggregated queries for dashboards and reports.
    """

    def status_rows(
        self,
        session: Session,
        created_by: uuid.UUID | None = None,
    ) -> list[str | None]:
        """Raw status of every job (normalized by the service)."""
        stmt = select(JobRequest.status)
        if created_by is not None:
            stmt = stmt.where(JobRequest.created_by == created_by)
        return list(session.exec(stmt).all())

    def created_since(self, session: Session, since: datetime) -> list[datetime]:
        """created_at of every job created at or after `since`."""
        stmt = select(JobRequest.created_at).where(JobRequest.created_at >= since)
        return list(session.exec(stmt).all())

    def all_requests(self, session: Session) -> list[JobRequest]:
        """Every job, newest first (CSV export)."""
        stmt = select(JobRequest).order_by(JobRequest.created_at.desc())
        return list(session.exec(stmt).all())
