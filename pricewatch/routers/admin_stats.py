from fastapi import APIRouter, Depends
from sqlmodel import Session

from pricewatch.core.auth import require_admin
from pricewatch.core.config import get_settings
from pricewatch.database import get_session
from pricewatch.models.user import User
from pricewatch.repositories.price_repo import PriceRepository
from pricewatch.repositories.product_repo import ProductRepository
from pricewatch.repositories.task_repo import TaskRepository
from pricewatch.schemas.stats import AdminDashboardStats
from pricewatch.services.stats_service import StatsService

settings = get_settings()

router = APIRouter(prefix="/admin/stats", tags=["Admin Stats"])

service = StatsService(TaskRepository(), PriceRepository(), ProductRepository())


@router.get("", response_model=AdminDashboardStats)
def get_admin_dashboard_stats(
    top_products: int = settings.TOP_PRODUCTS_LIMIT,
    latest_prices: int = 5,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    """
    Aggregated statistics for the admin dashboard.

    Query params (optional):
      - top_products: how many products to average (most collected first)
      - latest_prices: how many recent records to include

    Only accessible to users with role='admin'.
    """
    return service.get_admin_dashboard_stats(
        session=session,
        admin=admin,
        top_n_products=top_products,
        latest_n_prices=latest_prices,
    )
