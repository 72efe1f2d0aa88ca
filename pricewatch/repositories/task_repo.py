import uuid

from sqlmodel import Session, col, select

from pricewatch.models.task import DelegatedTask


class TaskRepository:
    """
    Data access layer for delegated_tasks.

    Status filtering is not done here: expiry is derived from the
    deadline at read time, so callers filter on the effective status.
    """

    def list_for_company(
        self,
        session: Session,
        company_id: uuid.UUID | None,
    ) -> list[DelegatedTask]:
        """Tasks owned by `company_id`; None means tasks with no company."""
        stmt = select(DelegatedTask)
        if company_id is None:
            stmt = stmt.where(col(DelegatedTask.company_id).is_(None))
        else:
            stmt = stmt.where(DelegatedTask.company_id == company_id)
        stmt = stmt.order_by(col(DelegatedTask.deadline))
        return list(session.exec(stmt).all())

    def list_for_auditor(
        self,
        session: Session,
        auditor_id: uuid.UUID,
    ) -> list[DelegatedTask]:
        stmt = (
            select(DelegatedTask)
            .where(DelegatedTask.auditor_id == auditor_id)
            .order_by(col(DelegatedTask.deadline))
        )
        return list(session.exec(stmt).all())

    def get_by_id(self, session: Session, task_id: uuid.UUID) -> DelegatedTask | None:
        return session.get(DelegatedTask, task_id)

    def create(self, session: Session, task: DelegatedTask) -> DelegatedTask:
        session.add(task)
        session.commit()
        session.refresh(task)
        return task

    def update(self, session: Session, task: DelegatedTask) -> DelegatedTask:
        """Stage changes; the service commits."""
        session.add(task)
        session.flush()
        return task
