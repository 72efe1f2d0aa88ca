import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from pricewatch.core.auth import require_admin
from pricewatch.database import get_session
from pricewatch.models.user import User
from pricewatch.repositories.market_repo import MarketRepository
from pricewatch.schemas.market import MarketCreate, MarketRead, MarketUpdate
from pricewatch.services.market_service import MarketService

router = APIRouter(prefix="/markets", tags=["Markets"])

repo = MarketRepository()
service = MarketService(repo)


# -------- Public endpoints --------


@router.get("", response_model=list[MarketRead])
def list_markets(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
    search: str | None = None,
    city: str | None = None,
):
    """
    List markets.

    - `search` matches name, city or neighborhood (case-insensitive).
    - `city` is an exact match.
    """
    return service.list_markets(
        session, skip=skip, limit=limit, search=search, city=city
    )


@router.get("/{market_id}", response_model=MarketRead)
def get_market(
    market_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    return service.get_market(session, market_id)


# -------- Admin endpoints --------


@router.post(
    "",
    response_model=MarketRead,
    status_code=status.HTTP_201_CREATED,
)
def create_market(
    payload: MarketCreate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    """
    Create a market (admin only).
    """
    return service.create_market(session, admin, payload)


@router.patch(
    "/{market_id}",
    response_model=MarketRead,
    dependencies=[Depends(require_admin)],
)
def update_market(
    market_id: uuid.UUID,
    payload: MarketUpdate,
    session: Session = Depends(get_session),
):
    return service.update_market(session, market_id, payload)


@router.delete(
    "/{market_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_market(
    market_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    service.delete_market(session, market_id)
    return None
