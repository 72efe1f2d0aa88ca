import uuid

from sqlmodel import Session, col, or_, select

from pricewatch.models.market import Market


class MarketRepository:
    """
    Data access layer for markets.
    """

    def list_markets(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        search: str | None = None,
        city: str | None = None,
    ) -> list[Market]:
        """
        search: case-insensitive match on name, city or neighborhood.
        city: exact match.
        """
        stmt = select(Market)
        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(
                    col(Market.name).ilike(pattern),
                    col(Market.city).ilike(pattern),
                    col(Market.neighborhood).ilike(pattern),
                )
            )
        if city:
            stmt = stmt.where(Market.city == city)
        stmt = stmt.order_by(Market.name).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    def list_all(self, session: Session) -> list[Market]:
        return list(session.exec(select(Market)).all())

    def get_by_id(self, session: Session, market_id: uuid.UUID) -> Market | None:
        return session.get(Market, market_id)

    def create(self, session: Session, market: Market) -> Market:
        session.add(market)
        session.commit()
        session.refresh(market)
        return market

    def update(self, session: Session, market: Market) -> Market:
        session.add(market)
        session.commit()
        session.refresh(market)
        return market

    def delete(self, session: Session, market: Market) -> None:
        session.delete(market)
        session.commit()
