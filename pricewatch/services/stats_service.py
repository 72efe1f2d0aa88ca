from datetime import datetime

from fastapi import HTTPException, status
from sqlmodel import Session

from pricewatch.core.time_utils import as_utc, utcnow
from pricewatch.models.user import User
from pricewatch.repositories.price_repo import PriceRepository
from pricewatch.repositories.product_repo import ProductRepository
from pricewatch.repositories.task_repo import TaskRepository
from pricewatch.schemas.price import PriceRecordRead
from pricewatch.schemas.stats import (
    AdminDashboardStats,
    OriginCounts,
    ProductAverage,
    TaskStatusCounts,
)
from pricewatch.services.price_aggregation import (
    average_price_by_product,
    count_by_origin,
    top_products_by_count,
)
from pricewatch.services.task_service import completion_rate, partition_tasks


class StatsService:
    """
    Orchestrates aggregated admin dashboard statistics.

    Tasks and prices are loaded for the admin's company and aggregated
    in memory, so the figures follow the same rules as the task and
    price views (effective expiry, origin tags).
    """

    def __init__(
        self,
        task_repo: TaskRepository,
        price_repo: PriceRepository,
        product_repo: ProductRepository,
    ):
        self.task_repo = task_repo
        self.price_repo = price_repo
        self.product_repo = product_repo

    def get_admin_dashboard_stats(
        self,
        session: Session,
        admin: User,
        top_n_products: int = 4,
        latest_n_prices: int = 5,
        now: datetime | None = None,
    ) -> AdminDashboardStats:
        if top_n_products < 1 or latest_n_prices < 1:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="limits must be positive",
            )
        now = now or utcnow()

        # Tasks by effective status
        tasks = self.task_repo.list_for_company(session, admin.company_id)
        counts = partition_tasks(tasks, now).counts()

        # Prices by origin
        records = self.price_repo.list_for_company(session, admin.company_id)
        origins = count_by_origin(records)

        # Average price of the most collected products
        top = top_products_by_count(records, top_n_products)
        averages = average_price_by_product(records)
        names = {
            p.id: p.name
            for p in self.product_repo.list_by_ids(session, {pid for pid, _ in top})
        }
        product_averages: list[ProductAverage] = []
        for product_id, record_count in top:
            product_averages.append(
                ProductAverage(
                    product_id=product_id,
                    name=names.get(product_id, ""),
                    record_count=record_count,
                    average_price=averages[product_id],
                )
            )

        latest = sorted(
            records,
            key=lambda r: (as_utc(r.collected_at), str(r.id)),
            reverse=True,
        )
        latest_prices = [
            PriceRecordRead.model_validate(r, from_attributes=True)
            for r in latest[:latest_n_prices]
        ]

        return AdminDashboardStats(
            total_tasks=len(tasks),
            task_status=TaskStatusCounts(**counts),
            completion_rate=completion_rate(counts),
            total_prices=len(records),
            prices_by_origin=OriginCounts(
                auditor=origins["auditor"],
                contributor=origins["contributor"],
            ),
            product_averages=product_averages,
            latest_prices=latest_prices,
        )
