import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from pricewatch.core.auth import require_admin, require_auditor
from pricewatch.database import get_session
from pricewatch.models.user import User
from pricewatch.repositories.market_repo import MarketRepository
from pricewatch.repositories.price_repo import PriceRepository
from pricewatch.repositories.product_repo import ProductRepository
from pricewatch.repositories.task_repo import TaskRepository
from pricewatch.repositories.user_repo import UserRepository
from pricewatch.schemas.task import (
    TaskComplete,
    TaskCreate,
    TaskPartitionRead,
    TaskRead,
    TaskStatus,
)
from pricewatch.services.task_service import TaskService

router = APIRouter(prefix="/tasks", tags=["Tasks"])

service = TaskService(
    TaskRepository(),
    PriceRepository(),
    ProductRepository(),
    MarketRepository(),
    UserRepository(),
)


# -------- Auditor endpoints --------


@router.get("/me", response_model=TaskPartitionRead)
def list_my_tasks(
    session: Session = Depends(get_session),
    auditor: User = Depends(require_auditor),
):
    """
    The auditor's tasks split into pending / completed / expired.

    A pending task past its deadline is listed as expired.
    """
    return service.partition_for_auditor(session, auditor)


@router.post("/{task_id}/complete", response_model=TaskRead)
def complete_task(
    task_id: uuid.UUID,
    payload: TaskComplete,
    session: Session = Depends(get_session),
    auditor: User = Depends(require_auditor),
):
    """
    Fulfil a pending task with the collected price.

      pending   -> completed

      completed -> (no change)

      expired   -> (no change)

    """
    return service.complete_task(session, auditor, task_id, payload)


# -------- Admin endpoints --------


@router.get("", response_model=list[TaskRead])
def list_tasks(
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
    status_filter: TaskStatus | None = None,
    search: str | None = None,
):
    """
    Tasks of the admin's company.

    - `status_filter`: effective status (pending past deadline = expired)
    - `search`: product, market or auditor name contains
    """
    return service.list_company_tasks(
        session, admin, status_filter=status_filter, search=search
    )


@router.post(
    "",
    response_model=TaskRead,
    status_code=status.HTTP_201_CREATED,
)
def create_task(
    payload: TaskCreate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    """
    Delegate a collection task to an auditor (admin only).
    """
    return service.create_task(session, admin, payload)
