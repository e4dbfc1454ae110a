from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker

from budgets import local_now
from database import Base, build_engine
from main import app, get_db


@pytest.fixture()
def client():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(engine)
    TestingSession = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    engine.dispose()


@pytest.fixture()
def owner(client):
    response = client.post(
        "/api/v1/users", json={"name": "Ada", "email": "ada@example.com"}
    )
    assert response.status_code == 201
    return {"X-User-Id": str(response.json()["id"])}


def test_health(client) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_budget_lifecycle(client, owner) -> None:
    now = local_now()
    today = now.date()
    wallet = client.post("/api/v1/wallets", json={"name": "Checking"}, headers=owner).json()
    food = client.post(
        "/api/v1/categories", json={"name": "Food", "color": "#F97316"}, headers=owner
    ).json()
    window = {
        "starts_at": (now - timedelta(days=1)).isoformat(),
        "ends_at": (now + timedelta(days=20)).isoformat(),
    }

    created = client.post(
        "/api/v1/budgets",
        json={"name": "Food", "amount": "100.00", "category_id": food["id"], **window},
        headers=owner,
    )
    assert created.status_code == 201
    budget_id = created.json()["id"]

    for amount in ("60.00", "25.00"):
        response = client.post(
            "/api/v1/expenses",
            json={
                "wallet_id": wallet["id"],
                "category_id": food["id"],
                "amount": amount,
                "transaction_date": today.isoformat(),
            },
            headers=owner,
        )
        assert response.status_code == 201

    budget = client.get(f"/api/v1/budgets/{budget_id}", headers=owner).json()
    assert Decimal(budget["spent"]) == Decimal("85.00")
    assert Decimal(budget["spent_percentage"]) == Decimal("85.00")
    assert budget["should_alert"] is True
    assert budget["is_over_budget"] is False
    assert budget["category_name"] == "Food"

    overlap = client.get(
        "/api/v1/budgets/overlap",
        params={"category_id": food["id"], **window},
        headers=owner,
    ).json()
    assert overlap["overlaps"] is True

    duplicate = client.post(
        "/api/v1/budgets",
        json={"name": "Food again", "amount": "50.00", "category_id": food["id"], **window},
        headers=owner,
    )
    assert duplicate.status_code == 400

    summary = client.get("/api/v1/budgets/summary", headers=owner).json()
    assert summary["active_budgets"] == 1
    assert len(summary["alerting_budgets_list"]) == 1

    dashboard = client.get("/api/v1/analytics/dashboard", headers=owner).json()
    assert Decimal(dashboard["current_month_expenses"]) == Decimal("85.00")
    [alert] = dashboard["budget_alerts"]
    assert alert["alert_type"] == "THRESHOLD"

    wallets = client.get("/api/v1/wallets", headers=owner).json()
    assert Decimal(wallets[0]["balance"]) == Decimal("-85.00")

    assert client.delete(f"/api/v1/budgets/{budget_id}", headers=owner).status_code == 204
    assert client.get("/api/v1/budgets", headers=owner).json() == []


def test_analytics_endpoints(client, owner) -> None:
    today = local_now().date()
    response = client.get(
        "/api/v1/analytics/expenses",
        params={"start": today.replace(day=1).isoformat(), "end": today.isoformat()},
        headers=owner,
    )
    assert response.status_code == 200
    assert len(response.json()["daily_trends"]) == today.day

    assert client.get("/api/v1/analytics/expenses/current-month", headers=owner).status_code == 200
    assert client.get("/api/v1/analytics/expenses/last-month", headers=owner).status_code == 200
    trends = client.get("/api/v1/analytics/trends", params={"months": 3}, headers=owner)
    assert trends.status_code == 200
    assert len(trends.json()["monthly_trends"]) == 4

    inverted = client.get(
        "/api/v1/analytics/expenses",
        params={"start": "2024-02-01", "end": "2024-01-01"},
        headers=owner,
    )
    assert inverted.status_code == 400


def test_errors_map_to_status_codes(client, owner) -> None:
    assert client.get("/api/v1/budgets/999", headers=owner).status_code == 404
    assert client.get("/api/v1/analytics/dashboard", headers={"X-User-Id": "42"}).status_code == 404

    out_of_range = client.post(
        "/api/v1/budgets",
        json={
            "name": "Too strict",
            "amount": "10.00",
            "starts_at": "2024-01-01T00:00:00",
            "ends_at": "2024-01-31T00:00:00",
            "alert_threshold": "150",
        },
        headers=owner,
    )
    assert out_of_range.status_code == 422

    inverted = client.post(
        "/api/v1/budgets",
        json={
            "name": "Backwards",
            "amount": "10.00",
            "starts_at": "2024-02-01T00:00:00",
            "ends_at": "2024-01-01T00:00:00",
        },
        headers=owner,
    )
    assert inverted.status_code == 400


def test_offset_windows_are_compared_as_local_time(client, owner) -> None:
    food = client.post("/api/v1/categories", json={"name": "Food"}, headers=owner).json()
    first = client.post(
        "/api/v1/budgets",
        json={
            "name": "January",
            "amount": "100.00",
            "category_id": food["id"],
            "starts_at": "2024-01-01T00:00:00Z",
            "ends_at": "2024-01-31T00:00:00Z",
        },
        headers=owner,
    )
    assert first.status_code == 201
    assert first.json()["starts_at"] == "2024-01-01T00:00:00"

    second = client.post(
        "/api/v1/budgets",
        json={
            "name": "Mid January",
            "amount": "100.00",
            "category_id": food["id"],
            "starts_at": "2024-01-15T00:00:00Z",
            "ends_at": "2024-02-15T00:00:00+00:00",
        },
        headers=owner,
    )
    assert second.status_code == 400
    assert "already exists" in second.json()["detail"]

    overlap = client.get(
        "/api/v1/budgets/overlap",
        params={
            "category_id": food["id"],
            "starts_at": "2024-01-15T00:00:00Z",
            "ends_at": "2024-02-15T00:00:00Z",
        },
        headers=owner,
    )
    assert overlap.status_code == 200
    assert overlap.json()["overlaps"] is True


def test_overlap_check_requires_a_known_owner_and_category(client, owner) -> None:
    food = client.post("/api/v1/categories", json={"name": "Food"}, headers=owner).json()
    window = {"starts_at": "2024-01-01T00:00:00", "ends_at": "2024-01-31T00:00:00"}

    unknown_owner = client.get(
        "/api/v1/budgets/overlap",
        params={"category_id": food["id"], **window},
        headers={"X-User-Id": "999"},
    )
    assert unknown_owner.status_code == 404
    assert "User not found" in unknown_owner.json()["detail"]

    unknown_category = client.get(
        "/api/v1/budgets/overlap",
        params={"category_id": 12345, **window},
        headers=owner,
    )
    assert unknown_category.status_code == 404
