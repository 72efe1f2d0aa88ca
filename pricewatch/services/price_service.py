import logging
import uuid

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from pricewatch.core.time_utils import as_utc, utcnow
from pricewatch.models.price import PriceRecord
from pricewatch.models.product import Product
from pricewatch.models.user import User
from pricewatch.repositories.market_repo import MarketRepository
from pricewatch.repositories.price_repo import PriceRepository
from pricewatch.repositories.product_repo import ProductRepository
from pricewatch.schemas.market import LocationFilters, MarketRead
from pricewatch.schemas.price import LatestPriceRead, PriceSubmit
from pricewatch.schemas.product import ProductRead
from pricewatch.services.price_aggregation import (
    city_choices,
    filter_records,
    latest_per_pair,
    neighborhood_choices,
    normalize_market_name,
)

logger = logging.getLogger(__name__)

# Price origin follows the collector's role.
ORIGIN_BY_ROLE: dict[str, str] = {
    "auditor": "auditor",
    "contributor": "contributor",
}


class PriceService:
    """
    Business logic for price observations.

    Responsibilities:
      - Resolve the product (id, barcode, or manual entry) and market
      - Tag each record with the collector's origin
      - Serve the public "latest price" view and per-pair history
    """

    def __init__(
        self,
        price_repo: PriceRepository,
        product_repo: ProductRepository,
        market_repo: MarketRepository,
    ):
        self.price_repo = price_repo
        self.product_repo = product_repo
        self.market_repo = market_repo

    # -------- Submission --------

    def submit_price(
        self,
        session: Session,
        collector: User,
        payload: PriceSubmit,
    ) -> PriceRecord:
        """
        Record a new observation.

        Steps:
          1. Derive origin from the collector's role.
          2. Resolve the product; a manual entry with an unknown barcode
             creates the product.
          3. Validate the market when referenced by id.
          4. Insert the record and commit (product + record together).

        A failed insert rolls back: neither the product nor the record
        is kept.
        """
        origin = ORIGIN_BY_ROLE.get(collector.role)
        if origin is None:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only auditors and contributors can submit prices",
            )

        try:
            product = self._resolve_product(session, collector, payload)

            if payload.market_id is not None:
                if self.market_repo.get_by_id(session, payload.market_id) is None:
                    raise HTTPException(
                        status_code=status.HTTP_404_NOT_FOUND,
                        detail="Market not found",
                    )

            record = self.price_repo.add(
                session,
                PriceRecord(
                    product_id=product.id,
                    market_id=payload.market_id,
                    market_name=payload.market_name,
                    price=payload.price,
                    collected_at=utcnow(),
                    user_id=collector.id,
                    company_id=collector.company_id,
                    origin=origin,
                    notes=payload.notes,
                ),
            )
            session.commit()
        except HTTPException:
            session.rollback()
            raise
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Could not save price for user %s: %s", collector.id, exc)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Could not save the price, please try again",
            )

        session.refresh(record)
        return record

    def _resolve_product(
        self,
        session: Session,
        collector: User,
        payload: PriceSubmit,
    ) -> Product:
        if payload.product_id is not None:
            product = self.product_repo.get_by_id(session, payload.product_id)
            if product is None:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Product not found",
                )
            return product

        product = self.product_repo.get_by_barcode(session, payload.barcode)
        if product is not None:
            return product

        if payload.product_name is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found. Please use manual entry.",
            )

        return self.product_repo.add(
            session,
            Product(
                name=payload.product_name,
                brand=payload.brand,
                barcode=payload.barcode,
                company_id=collector.company_id,
            ),
        )

    def list_my_history(
        self,
        session: Session,
        collector: User,
        limit: int,
    ) -> list[PriceRecord]:
        """Latest submissions of the collector, newest first."""
        return self.price_repo.list_for_user(session, collector.id, limit=limit)

    # -------- Public views --------

    def list_latest_prices(
        self,
        session: Session,
        search: str = "",
        city: str = "",
        neighborhood: str = "",
    ) -> list[LatestPriceRead]:
        """
        Current price per (product, market), filtered, newest first.
        """
        records = self.price_repo.list_all(session)
        latest = latest_per_pair(records).values()

        products = {
            p.id: p
            for p in self.product_repo.list_by_ids(
                session, {r.product_id for r in latest}
            )
        }
        markets = {m.id: m for m in self.market_repo.list_all(session)}

        filtered = filter_records(
            latest,
            products,
            markets,
            search=search,
            city=city,
            neighborhood=neighborhood,
        )
        filtered.sort(key=lambda r: as_utc(r.collected_at), reverse=True)

        result: list[LatestPriceRead] = []
        for record in filtered:
            market = markets.get(record.market_id) if record.market_id else None
            result.append(
                LatestPriceRead(
                    **record.model_dump(),
                    product=ProductRead.model_validate(
                        products[record.product_id], from_attributes=True
                    ),
                    market=(
                        MarketRead.model_validate(market, from_attributes=True)
                        if market
                        else None
                    ),
                )
            )
        return result

    def get_history(
        self,
        session: Session,
        product_id: uuid.UUID,
        market_id: uuid.UUID | None = None,
        market_name: str | None = None,
        limit: int = 50,
    ) -> list[PriceRecord]:
        if self.product_repo.get_by_id(session, product_id) is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        if market_id is None and market_name is not None:
            # Free-text names are matched the way the latest view groups them.
            wanted = normalize_market_name(market_name)
            records = self.price_repo.list_history(
                session, product_id, free_text=True, limit=None
            )
            return [
                r for r in records if normalize_market_name(r.market_name) == wanted
            ][:limit]
        return self.price_repo.list_history(
            session, product_id, market_id=market_id, limit=limit
        )

    def location_filters(self, session: Session, city: str = "") -> LocationFilters:
        markets = self.market_repo.list_all(session)
        return LocationFilters(
            cities=city_choices(markets),
            neighborhoods=neighborhood_choices(markets, city),
        )
