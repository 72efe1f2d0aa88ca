import uuid

from sqlmodel import Session, col, select

from pricewatch.models.price import PriceRecord


class PriceRepository:
    """
    Data access layer for price_records.

    NOTE:
      - `add` does not commit; a task completion writes the task and
        its price record in one transaction and the service commits.
      - There is no update/delete: price records are append-only.
    """

    def list_all(self, session: Session) -> list[PriceRecord]:
        """Full snapshot used by the public latest-price view."""
        return list(session.exec(select(PriceRecord)).all())

    def list_for_company(
        self,
        session: Session,
        company_id: uuid.UUID | None,
    ) -> list[PriceRecord]:
        """Records of `company_id`; None means records with no company."""
        stmt = select(PriceRecord)
        if company_id is None:
            stmt = stmt.where(col(PriceRecord.company_id).is_(None))
        else:
            stmt = stmt.where(PriceRecord.company_id == company_id)
        return list(session.exec(stmt).all())

    def list_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        limit: int = 5,
    ) -> list[PriceRecord]:
        stmt = (
            select(PriceRecord)
            .where(PriceRecord.user_id == user_id)
            .order_by(col(PriceRecord.collected_at).desc())
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def list_history(
        self,
        session: Session,
        product_id: uuid.UUID,
        market_id: uuid.UUID | None = None,
        free_text: bool = False,
        limit: int | None = 50,
    ) -> list[PriceRecord]:
        """
        Observations for a product, newest first, optionally narrowed to
        one market id or to records with a free-text market only.
        """
        stmt = select(PriceRecord).where(PriceRecord.product_id == product_id)
        if market_id is not None:
            stmt = stmt.where(PriceRecord.market_id == market_id)
        elif free_text:
            stmt = stmt.where(col(PriceRecord.market_id).is_(None))
        stmt = stmt.order_by(col(PriceRecord.collected_at).desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(session.exec(stmt).all())

    def add(self, session: Session, record: PriceRecord) -> PriceRecord:
        """
        Insert a PriceRecord without committing, but ensure id is populated.
        """
        session.add(record)
        session.flush()
        session.refresh(record)
        return record
