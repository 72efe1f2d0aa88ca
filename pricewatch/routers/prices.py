import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from pricewatch.core.auth import require_collector
from pricewatch.core.config import get_settings
from pricewatch.database import get_session
from pricewatch.models.user import User
from pricewatch.repositories.market_repo import MarketRepository
from pricewatch.repositories.price_repo import PriceRepository
from pricewatch.repositories.product_repo import ProductRepository
from pricewatch.schemas.market import LocationFilters
from pricewatch.schemas.price import LatestPriceRead, PriceRecordRead, PriceSubmit
from pricewatch.services.price_service import PriceService

settings = get_settings()

router = APIRouter(prefix="/prices", tags=["Prices"])

service = PriceService(PriceRepository(), ProductRepository(), MarketRepository())


# -------- Public endpoints --------


@router.get("/latest", response_model=list[LatestPriceRead])
def list_latest_prices(
    session: Session = Depends(get_session),
    search: str = "",
    city: str = "",
    neighborhood: str = "",
):
    """
    Current price of every product at every market.

    - `search`: product name or brand contains (case-insensitive)
    - `city`: exact city
    - `neighborhood`: exact neighborhood, ignored unless `city` is set
    """
    return service.list_latest_prices(
        session,
        search=search.strip(),
        city=city,
        neighborhood=neighborhood,
    )


@router.get("/filters", response_model=LocationFilters)
def get_location_filters(
    session: Session = Depends(get_session),
    city: str = "",
):
    """
    Cities with markets, and the neighborhoods of `city` (empty without one).
    """
    return service.location_filters(session, city=city)


@router.get("/history", response_model=list[PriceRecordRead])
def get_price_history(
    product_id: uuid.UUID,
    market_id: uuid.UUID | None = None,
    market_name: str | None = None,
    limit: int = Query(default=50, ge=1, le=500),
    session: Session = Depends(get_session),
):
    """
    Observations of a product (optionally at one market), newest first.
    """
    return service.get_history(
        session,
        product_id,
        market_id=market_id,
        market_name=market_name,
        limit=limit,
    )


# -------- Collector endpoints --------


@router.post(
    "",
    response_model=PriceRecordRead,
    status_code=status.HTTP_201_CREATED,
)
def submit_price(
    payload: PriceSubmit,
    session: Session = Depends(get_session),
    collector: User = Depends(require_collector),
):
    """
    Register a price observation.

    Auth:
      - auditors and contributors; origin follows the caller's role.
    """
    return service.submit_price(session, collector, payload)


@router.get("/me", response_model=list[PriceRecordRead])
def list_my_prices(
    session: Session = Depends(get_session),
    collector: User = Depends(require_collector),
    limit: int = Query(default=settings.HISTORY_LIMIT, ge=1, le=100),
):
    """
    The caller's most recent submissions.
    """
    return service.list_my_history(session, collector, limit)
