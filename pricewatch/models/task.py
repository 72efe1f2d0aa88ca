import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class DelegatedTask(SQLModel, table=True):
    """
    Price-collection task delegated to an auditor.

    Stored status is "pending" or "completed". Expiry is derived on read
    from the deadline (see services.task_service.effective_status).
    """

    __tablename__ = "delegated_tasks"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    market_id: uuid.UUID = Field(
        foreign_key="markets.id",
        index=True,
    )

    city: str = Field(max_length=100)
    state: str = Field(max_length=2)

    auditor_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    deadline: datetime = Field(index=True)

    # pending | completed | expired
    status: str = Field(
        default="pending",
        index=True,
    )

    completed_at: datetime | None = Field(default=None)

    collected_price: float | None = Field(default=None)

    notes: str | None = Field(default=None)

    company_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="companies.id",
        index=True,
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
