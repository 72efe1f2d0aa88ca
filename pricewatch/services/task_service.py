import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from pricewatch.core.time_utils import as_utc, utcnow
from pricewatch.models.price import PriceRecord
from pricewatch.models.task import DelegatedTask
from pricewatch.models.user import User
from pricewatch.repositories.market_repo import MarketRepository
from pricewatch.repositories.price_repo import PriceRepository
from pricewatch.repositories.product_repo import ProductRepository
from pricewatch.repositories.task_repo import TaskRepository
from pricewatch.repositories.user_repo import UserRepository
from pricewatch.schemas.price import round_price
from pricewatch.schemas.task import (
    TERMINAL_STATUSES,
    TaskComplete,
    TaskCreate,
    TaskPartitionRead,
    TaskRead,
)

logger = logging.getLogger(__name__)


# -------- Lifecycle rules --------


def effective_status(task: DelegatedTask, now: datetime) -> str:
    """
    Status a task is in at `now`.

    Expiry is always computed on read: a stored "pending" whose
    deadline has passed is expired, whatever the stored field says.
    Terminal stored statuses are returned as-is.
    """
    if task.status == "pending" and as_utc(task.deadline) < as_utc(now):
        return "expired"
    return task.status


def is_terminal(task: DelegatedTask, now: datetime) -> bool:
    return effective_status(task, now) in TERMINAL_STATUSES


@dataclass
class TaskPartition:
    pending: list[DelegatedTask] = field(default_factory=list)
    completed: list[DelegatedTask] = field(default_factory=list)
    expired: list[DelegatedTask] = field(default_factory=list)

    def counts(self) -> dict[str, int]:
        return {
            "pending": len(self.pending),
            "completed": len(self.completed),
            "expired": len(self.expired),
        }


def partition_tasks(tasks: Iterable[DelegatedTask], now: datetime) -> TaskPartition:
    """Split tasks by effective status, preserving input order."""
    partition = TaskPartition()
    for task in tasks:
        getattr(partition, effective_status(task, now)).append(task)
    return partition


def completion_rate(counts: dict[str, int]) -> int:
    """Completed share of all tasks, as a whole percentage."""
    total = sum(counts.values())
    if total == 0:
        return 0
    return round(counts.get("completed", 0) * 100 / total)


def to_task_read(task: DelegatedTask, now: datetime) -> TaskRead:
    return TaskRead(
        id=task.id,
        product_id=task.product_id,
        market_id=task.market_id,
        city=task.city,
        state=task.state,
        auditor_id=task.auditor_id,
        deadline=task.deadline,
        status=effective_status(task, now),
        stored_status=task.status,
        completed_at=task.completed_at,
        collected_price=task.collected_price,
        notes=task.notes,
        company_id=task.company_id,
        created_at=task.created_at,
    )


class TaskService:
    """
    Business logic for delegated tasks.

    Responsibilities:
      - Create tasks for auditors (admin)
      - Query tasks by effective status (admin, auditor)
      - Complete a pending task with the collected price (auditor)

    State machine:
      pending   -> completed  (auditor submits a price before the deadline)
      pending   -> expired    (deadline passes; derived on read)
      completed -> (no change)
      expired   -> (no change)
    """

    def __init__(
        self,
        task_repo: TaskRepository,
        price_repo: PriceRepository,
        product_repo: ProductRepository,
        market_repo: MarketRepository,
        user_repo: UserRepository,
    ):
        self.task_repo = task_repo
        self.price_repo = price_repo
        self.product_repo = product_repo
        self.market_repo = market_repo
        self.user_repo = user_repo

    # -------- Admin operations --------

    def create_task(
        self,
        session: Session,
        admin: User,
        payload: TaskCreate,
        now: datetime | None = None,
    ) -> TaskRead:
        """
        Delegate a task to an auditor.

        Rules:
          - product and market must exist
          - assignee must be an auditor
          - deadline must be in the future
        """
        now = now or utcnow()

        if as_utc(payload.deadline) <= now:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Deadline must be in the future",
            )

        if self.product_repo.get_by_id(session, payload.product_id) is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )

        market = self.market_repo.get_by_id(session, payload.market_id)
        if market is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Market not found",
            )

        auditor = self.user_repo.get_by_id(session, payload.auditor_id)
        if auditor is None or auditor.role != "auditor":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Tasks can only be assigned to auditors",
            )

        task = DelegatedTask(
            product_id=payload.product_id,
            market_id=market.id,
            city=payload.city or market.city,
            state=payload.state or market.state,
            auditor_id=auditor.id,
            deadline=as_utc(payload.deadline),
            status="pending",
            notes=payload.notes,
            company_id=admin.company_id,
        )
        task = self.task_repo.create(session, task)
        logger.info("Task %s delegated to auditor %s", task.id, auditor.id)
        return to_task_read(task, now)

    def list_company_tasks(
        self,
        session: Session,
        admin: User,
        status_filter: str | None = None,
        search: str | None = None,
        now: datetime | None = None,
    ) -> list[TaskRead]:
        """
        All tasks of the admin's company.

        status_filter applies to the effective status. search matches
        product, market or auditor names (case-insensitive).
        """
        now = now or utcnow()
        tasks = self.task_repo.list_for_company(session, admin.company_id)

        if status_filter:
            tasks = [t for t in tasks if effective_status(t, now) == status_filter]

        if search:
            tasks = self._search(session, tasks, search)

        return [to_task_read(t, now) for t in tasks]

    def _search(
        self,
        session: Session,
        tasks: list[DelegatedTask],
        search: str,
    ) -> list[DelegatedTask]:
        term = search.casefold()
        products = {
            p.id: p.name
            for p in self.product_repo.list_by_ids(session, {t.product_id for t in tasks})
        }
        markets = {m.id: m.name for m in self.market_repo.list_all(session)}
        auditors = {
            u.id: u.name
            for u in self.user_repo.list_by_ids(session, {t.auditor_id for t in tasks})
        }

        def matches(task: DelegatedTask) -> bool:
            names = (
                products.get(task.product_id, ""),
                markets.get(task.market_id, ""),
                auditors.get(task.auditor_id, ""),
            )
            return any(term in name.casefold() for name in names)

        return [t for t in tasks if matches(t)]

    # -------- Auditor operations --------

    def partition_for_auditor(
        self,
        session: Session,
        auditor: User,
        now: datetime | None = None,
    ) -> TaskPartitionRead:
        now = now or utcnow()
        partition = partition_tasks(
            self.task_repo.list_for_auditor(session, auditor.id), now
        )
        return TaskPartitionRead(
            pending=[to_task_read(t, now) for t in partition.pending],
            completed=[to_task_read(t, now) for t in partition.completed],
            expired=[to_task_read(t, now) for t in partition.expired],
        )

    def complete_task(
        self,
        session: Session,
        auditor: User,
        task_id: uuid.UUID,
        payload: TaskComplete,
        now: datetime | None = None,
    ) -> TaskRead:
        """
        pending -> completed.

        Steps:
          1. Task must exist and be assigned to this auditor (404 otherwise).
          2. A collected price is required (400, nothing stored).
          3. Task must still be effectively pending (409 otherwise).
          4. Stamp completion time, price and notes.
          5. Append an auditor price record for the task's pair.
          6. Commit both in one transaction.
        """
        now = now or utcnow()

        task = self.task_repo.get_by_id(session, task_id)
        if task is None or task.auditor_id != auditor.id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Task not found",
            )

        if payload.collected_price is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Please provide the collected price",
            )

        current = effective_status(task, now)
        if current != "pending":
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Invalid status transition: {current} -> completed",
            )

        price = round_price(payload.collected_price)

        try:
            task.status = "completed"
            task.completed_at = now
            task.collected_price = price
            if payload.notes is not None:
                task.notes = payload.notes
            self.task_repo.update(session, task)

            self.price_repo.add(
                session,
                PriceRecord(
                    product_id=task.product_id,
                    market_id=task.market_id,
                    price=price,
                    collected_at=now,
                    user_id=auditor.id,
                    company_id=task.company_id,
                    origin="auditor",
                    notes=payload.notes,
                ),
            )
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Could not complete task %s: %s", task_id, exc)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Could not save the task, please try again",
            )

        session.refresh(task)
        logger.info("Task %s completed by auditor %s", task.id, auditor.id)
        return to_task_read(task, now)
