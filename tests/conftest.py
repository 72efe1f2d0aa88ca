"""
Shared fixtures: in-memory SQLite database, API client and seed rows
(company, one user per role, a product, a market).
"""

import os
import uuid

# Settings are read on first import of pricewatch; set them before that.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SUPABASE_URL"] = "http://localhost:54321"
os.environ["SUPABASE_KEY"] = "test-anon-key"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session

from pricewatch.database import engine
from pricewatch.main import app
from pricewatch.models.market import Market
from pricewatch.models.price import PriceRecord
from pricewatch.models.product import Product
from pricewatch.models.task import DelegatedTask
from pricewatch.models.user import Company, User


@pytest.fixture
def db_session():
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def client(db_session):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def company(db_session):
    company = Company(name="Acme Varejo", tax_id="12345678000199", email="ops@acme.com.br")
    db_session.add(company)
    db_session.commit()
    db_session.refresh(company)
    return company


def _make_user(db_session, company, role: str, email: str, name: str) -> User:
    user = User(id=uuid.uuid4(), email=email, name=name, role=role, company_id=company.id)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def admin(db_session, company):
    return _make_user(db_session, company, "admin", "admin@acme.com.br", "Ana Admin")


@pytest.fixture
def auditor(db_session, company):
    return _make_user(db_session, company, "auditor", "auditor@acme.com.br", "Otto Auditor")


@pytest.fixture
def contributor(db_session, company):
    return _make_user(db_session, company, "contributor", "contrib@acme.com.br", "Cora Contributor")


@pytest.fixture
def product(db_session, company):
    product = Product(
        name="Leite Integral 1L",
        brand="Piracanjuba",
        barcode="7891234567890",
        company_id=company.id,
    )
    db_session.add(product)
    db_session.commit()
    db_session.refresh(product)
    return product


@pytest.fixture
def market(db_session, company):
    market = Market(
        name="Mercado Central",
        city="Campinas",
        state="SP",
        neighborhood="Cambuí",
        type="supermarket",
        company_id=company.id,
    )
    db_session.add(market)
    db_session.commit()
    db_session.refresh(market)
    return market


@pytest.fixture
def make_task(db_session, company, product, market, auditor):
    def factory(deadline: datetime, status: str = "pending", **overrides) -> DelegatedTask:
        fields = dict(
            product_id=product.id,
            market_id=market.id,
            city=market.city,
            state=market.state,
            auditor_id=auditor.id,
            deadline=deadline,
            status=status,
            company_id=company.id,
        )
        fields.update(overrides)
        task = DelegatedTask(**fields)
        db_session.add(task)
        db_session.commit()
        db_session.refresh(task)
        return task

    return factory


@pytest.fixture
def make_price(db_session, company, product, market, contributor):
    def factory(price: float, days_ago: int = 0, **overrides) -> PriceRecord:
        fields = dict(
            product_id=product.id,
            market_id=market.id,
            price=price,
            collected_at=datetime.now(timezone.utc) - timedelta(days=days_ago),
            user_id=contributor.id,
            company_id=company.id,
            origin="contributor",
        )
        fields.update(overrides)
        record = PriceRecord(**fields)
        db_session.add(record)
        db_session.commit()
        db_session.refresh(record)
        return record

    return factory
