import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Market(SQLModel, table=True):
    """
    Retail point where prices are collected.

    type: hypermarket | supermarket | wholesale
    """

    __tablename__ = "markets"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(max_length=150, index=True)

    city: str = Field(max_length=100, index=True)

    state: str = Field(max_length=2, description="State abbreviation (UF)")

    neighborhood: str = Field(max_length=100)

    type: str = Field(
        default="supermarket",
        description="hypermarket | supermarket | wholesale",
    )

    company_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="companies.id",
        index=True,
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
