# onetrack/repositories/customer_repo.py
from __future__ import annotations

import uuid

from sqlmodel import Session, select

from onetrack.models.customer import Customer, Project
from onetrack.models.job_request import JobRequest


class CustomerRepository:
    """
    Data access layer for master_customers and master_projects.
    """

    # ---- Customers ----

    def list(self, session: Session) -> list[Customer]:
        stmt = select(Customer).order_by(Customer.created_at.desc())
        return list(session.exec(stmt).all())

    def get_by_id(self, session: Session, customer_id: uuid.UUID) -> Customer | None:
        return session.get(Customer, customer_id)

    def list_linked(
        self,
        session: Session,
        user_id: uuid.UUID,
        email: str | None,
    ) -> list[Customer]:
        """
        Customers linked to a login, either by user_id or by email.
        """
        stmt = select(Customer).where(Customer.user_id == user_id)
        linked = list(session.exec(stmt).all())
        if email:
            stmt = select(Customer).where(Customer.email == email)
            linked.extend(session.exec(stmt).all())
        return linked

    def save(self, session: Session, customer: Customer) -> Customer:
        session.add(customer)
        session.commit()
        session.refresh(customer)
        return customer

    def delete(self, session: Session, customer: Customer) -> None:
        session.delete(customer)
        session.commit()

    def list_by_user_id(self, session: Session, user_id: uuid.UUID) -> list[Customer]:
        stmt = select(Customer).where(Customer.user_id == user_id)
        return list(session.exec(stmt).all())

    def delete_by_user_id(self, session: Session, user_id: uuid.UUID) -> int:
        """
        Remove customers whose weak user_id points at the given login.

        NOTE: no commit; the caller commits together with the profile delete.
        Their projects and jobs must already be gone.
        """
        customers = self.list_by_user_id(session, user_id)
        for customer in customers:
            session.delete(customer)
        session.flush()
        return len(customers)

    # ---- Projects ----

    def list_projects(
        self,
        session: Session,
        customer_ids: list[uuid.UUID] | None = None,
    ) -> list[Project]:
        stmt = select(Project)
        if customer_ids is not None:
            stmt = stmt.where(Project.customer_id.in_(customer_ids))
        stmt = stmt.order_by(Project.project_name)
        return list(session.exec(stmt).all())

    def get_project(self, session: Session, project_id: uuid.UUID) -> Project | None:
        return session.get(Project, project_id)

    def save_project(self, session: Session, project: Project) -> Project:
        session.add(project)
        session.commit()
        session.refresh(project)
        return project

    def delete_project(self, session: Session, project: Project) -> None:
        session.delete(project)
        session.commit()

    def delete_projects_for_customer(
        self,
        session: Session,
        customer_id: uuid.UUID,
    ) -> int:
        """
        Remove a customer's projects. Jobs of other customers that still
        point at one of them lose their project_id.

        NOTE: no commit, same as delete_by_user_id.
        """
        projects = self.list_projects(session, [customer_id])
        if projects:
            stmt = select(JobRequest).where(
                JobRequest.project_id.in_([p.id for p in projects])
            )
            for job in session.exec(stmt).all():
                job.project_id = None
                session.add(job)
            session.flush()
        for project in projects:
            session.delete(project)
        session.flush()
        return len(projects)
