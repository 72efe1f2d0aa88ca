import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from pricewatch.models.market import Market
from pricewatch.models.user import User
from pricewatch.repositories.market_repo import MarketRepository
from pricewatch.schemas.market import MarketCreate, MarketUpdate


class MarketService:
    """
    Business logic for markets (admin-managed, publicly listed).
    """

    def __init__(self, repo: MarketRepository):
        self.repo = repo

    def list_markets(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        search: str | None = None,
        city: str | None = None,
    ) -> list[Market]:
        return self.repo.list_markets(
            session, skip=skip, limit=limit, search=search, city=city
        )

    def get_market(self, session: Session, market_id: uuid.UUID) -> Market:
        market = self.repo.get_by_id(session, market_id)
        if not market:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Market not found",
            )
        return market

    def create_market(
        self,
        session: Session,
        admin: User,
        payload: MarketCreate,
    ) -> Market:
        market = Market(**payload.model_dump(), company_id=admin.company_id)
        return self.repo.create(session, market)

    def update_market(
        self,
        session: Session,
        market_id: uuid.UUID,
        payload: MarketUpdate,
    ) -> Market:
        market = self.get_market(session, market_id)
        for key, value in payload.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(market, key, value)
        return self.repo.update(session, market)

    def delete_market(self, session: Session, market_id: uuid.UUID) -> None:
        market = self.get_market(session, market_id)
        self.repo.delete(session, market)
