# pricewatch/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI

from pricewatch.core.config import get_settings
from pricewatch.database import create_db_and_tables

# Import models so SQLModel metadata is populated before create_all()
from pricewatch.models import user as _user_models  # noqa: F401
from pricewatch.models import product as _product_models  # noqa: F401
from pricewatch.models import market as _market_models  # noqa: F401
from pricewatch.models import price as _price_models  # noqa: F401
from pricewatch.models import task as _task_models  # noqa: F401


# Routers
from pricewatch.routers.users import router as users_router
from pricewatch.routers.products import router as products_router
from pricewatch.routers.markets import router as markets_router
from pricewatch.routers.prices import router as prices_router
from pricewatch.routers.tasks import router as tasks_router
from pricewatch.routers.admin_stats import router as admin_stats_router
from pricewatch.routers.navigation import router as navigation_router

settings = get_settings()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Verify DB connectivity and create tables.

    Shutdown:
      - No special cleanup needed for sync engine.
    """
    logger.info("Startup: connecting to Supabase Postgres...")
    try:
        create_db_and_tables()
        logger.info("Startup: DB connection OK, tables verified.")
    except Exception as e:
        logger.error(f"Startup: DB connection FAILED: {e}")
        raise
    yield


app = FastAPI(
    title=settings.PROJECT_NAME or "Pricewatch API",
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Versioned API prefix, e.g. /api/v1
app.include_router(users_router, prefix=settings.API_V1_STR)
app.include_router(products_router, prefix=settings.API_V1_STR)
app.include_router(markets_router, prefix=settings.API_V1_STR)
app.include_router(prices_router, prefix=settings.API_V1_STR)
app.include_router(tasks_router, prefix=settings.API_V1_STR)
app.include_router(admin_stats_router, prefix=settings.API_V1_STR)
app.include_router(navigation_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "pricewatch-backend"}
