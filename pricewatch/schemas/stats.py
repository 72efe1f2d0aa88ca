import uuid

from pydantic import ConfigDict
from sqlmodel import SQLModel

from pricewatch.schemas.price import PriceRecordRead


class TaskStatusCounts(SQLModel):
    """
    Tasks per effective status.
    """
    model_config = ConfigDict(extra="forbid")

    pending: int
    completed: int
    expired: int


class OriginCounts(SQLModel):
    model_config = ConfigDict(extra="forbid")

    auditor: int
    contributor: int


class ProductAverage(SQLModel):
    """
    Mean observed price for one of the most collected products.
    """
    model_config = ConfigDict(extra="forbid")

    product_id: uuid.UUID
    name: str
    record_count: int
    average_price: float


class AdminDashboardStats(SQLModel):
    """
    Full payload for admin dashboard.
    """
    model_config = ConfigDict(extra="forbid")

    total_tasks: int
    task_status: TaskStatusCounts
    completion_rate: int
    total_prices: int
    prices_by_origin: OriginCounts
    product_averages: list[ProductAverage]
    latest_prices: list[PriceRecordRead]
