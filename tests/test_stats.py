import uuid
from datetime import datetime, timedelta, timezone

from pricewatch.models.user import User
from tests.helpers import auth_headers


def test_dashboard_stats(client, admin, auditor, product, market, make_task, make_price):
    now = datetime.now(timezone.utc)
    make_task(now + timedelta(days=1))
    make_task(now - timedelta(days=2))
    make_task(now - timedelta(days=2), status="completed")
    make_task(now + timedelta(days=3), status="completed")

    make_price(4.0, days_ago=3)
    make_price(5.0, days_ago=2)
    newest = make_price(6.0, days_ago=0, origin="auditor", user_id=auditor.id)

    response = client.get("/api/v1/admin/stats", headers=auth_headers(admin))

    assert response.status_code == 200
    body = response.json()
    assert body["total_tasks"] == 4
    assert body["task_status"] == {"pending": 1, "completed": 2, "expired": 1}
    assert body["completion_rate"] == 50
    assert body["total_prices"] == 3
    assert body["prices_by_origin"] == {"auditor": 1, "contributor": 2}
    assert body["product_averages"] == [
        {
            "product_id": str(product.id),
            "name": product.name,
            "record_count": 3,
            "average_price": 5.0,
        }
    ]
    assert body["latest_prices"][0]["id"] == str(newest.id)


def test_dashboard_on_empty_company(client, admin):
    body = client.get("/api/v1/admin/stats", headers=auth_headers(admin)).json()

    assert body["total_tasks"] == 0
    assert body["completion_rate"] == 0
    assert body["prices_by_origin"] == {"auditor": 0, "contributor": 0}
    assert body["product_averages"] == []


def test_dashboard_is_admin_only(client, contributor):
    response = client.get("/api/v1/admin/stats", headers=auth_headers(contributor))

    assert response.status_code == 403


def test_admin_without_company_sees_no_company_data(client, db_session, make_task, make_price):
    make_task(datetime.now(timezone.utc) + timedelta(days=1))
    make_price(4.0)
    loner = User(id=uuid.uuid4(), email="solo@acme.com.br", name="Solo Admin", role="admin")
    db_session.add(loner)
    db_session.commit()

    tasks = client.get("/api/v1/tasks", headers=auth_headers(loner)).json()
    body = client.get("/api/v1/admin/stats", headers=auth_headers(loner)).json()

    assert tasks == []
    assert body["total_tasks"] == 0
    assert body["total_prices"] == 0
