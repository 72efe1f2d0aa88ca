import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class PriceRecord(SQLModel, table=True):
    """
    A single price observation.

    Append-only: rows are never updated or deleted, a newer row for the
    same (product, market) pair supersedes older ones.

    The market is referenced by id when the collector picked a known
    market, or by free text (market_name) when typed by a contributor.
    """

    __tablename__ = "price_records"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    market_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="markets.id",
        index=True,
    )

    market_name: str | None = Field(
        default=None,
        max_length=150,
    )

    price: float = Field(
        gt=0,
        description="Observed price, 2 decimals",
    )

    collected_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
        description="Collector",
    )

    company_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="companies.id",
        index=True,
    )

    # auditor | contributor
    origin: str = Field(
        index=True,
        description="Role of the collector at submission time",
    )

    notes: str | None = Field(default=None)
