# onetrack/repositories/request_repo.py
import uuid

from sqlalchemy import func
from sqlmodel import Session, select

from onetrack.models.job_request import JobRequest


class RequestRepository:
    """
    Data access layer for jobs (requests table).
    """

    def list(
        self,
        session: Session,
        created_by: uuid.UUID | None = None,
    ) -> list[JobRequest]:
        """All jobs newest first, optionally only those a user created."""
        stmt = select(JobRequest)
        if created_by is not None:
            stmt = stmt.where(JobRequest.created_by == created_by)
        stmt = stmt.order_by(JobRequest.created_at.desc())
        return list(session.exec(stmt).all())

    def get_by_id(self, session: Session, request_id: uuid.UUID) -> JobRequest | None:
        return session.get(JobRequest, request_id)

    def count_for_customer(self, session: Session, customer_id: uuid.UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(JobRequest)
            .where(JobRequest.customer_id == customer_id)
        )
        return int(session.exec(stmt).one() or 0)

    def save(self, session: Session, job: JobRequest) -> JobRequest:
        session.add(job)
        session.commit()
        session.refresh(job)
        return job

    def delete(self, session: Session, job: JobRequest) -> None:
        session.delete(job)
        session.commit()

    def delete_for_customer(self, session: Session, customer_id: uuid.UUID) -> int:
        """
        Remove every job of a customer.

        NOTE: no commit; the caller commits together with the customer delete.
        """
        stmt = select(JobRequest).where(JobRequest.customer_id == customer_id)
        jobs = list(session.exec(stmt).all())
        for job in jobs:
            session.delete(job)
        session.flush()
        return len(jobs)

    def detach_project(self, session: Session, project_id: uuid.UUID) -> int:
        """
        Clear project_id on every job that points at the project.

        NOTE: no commit; the caller commits together with the project delete.
        """
        stmt = select(JobRequest).where(JobRequest.project_id == project_id)
        jobs = list(session.exec(stmt).all())
        for job in jobs:
            job.project_id = None
            session.add(job)
        session.flush()
        return len(jobs)
