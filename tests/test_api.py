from datetime import timezone

import pytest
from fastapi.testclient import TestClient

from budget_insights.core import dependencies
from budget_insights.db.records import RecordStoreAdapter
from budget_insights.db.store import MemoryRecordStore
from budget_insights.main import app
from budget_insights.utils.aggregator import Aggregator
from budget_insights.utils.insight_pipeline import InsightPipeline

from conftest import FakeReasoningService

HEADERS = {"X-Owner-Id": "owner-1"}


@pytest.fixture
def client():
    store = MemoryRecordStore()
    records = RecordStoreAdapter(store, tz=timezone.utc)
    pipeline = InsightPipeline(records, FakeReasoningService())

    app.dependency_overrides[dependencies.get_store] = lambda: store
    app.dependency_overrides[dependencies.get_records] = lambda: records
    app.dependency_overrides[dependencies.get_pipeline] = lambda: pipeline
    app.dependency_overrides[dependencies.get_aggregator] = lambda: Aggregator(tz=timezone.utc)
    yield TestClient(app)
    app.dependency_overrides.clear()


def add_expense(client, title, amount, category, when):
    response = client.post(
        "/api/expenses/",
        json={"title": title, "amount": amount, "category": category, "occurred_at": when},
        headers=HEADERS,
    )
    assert response.status_code == 201
    return response.json()


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"

    status = client.get("/api/status").json()
    assert status["services"]["store"]["connected"] is True


def test_missing_owner_is_unauthorized(client):
    response = client.get("/api/expenses/grouped")
    assert response.status_code == 401
    assert response.json()["detail"] == "User not authenticated"


def test_expense_lifecycle(client):
    created = add_expense(client, "Lunch", 12.5, "Food", "2025-02-03T12:00:00Z")
    assert created["ownerId"] == "owner-1"
    assert created["time"] == "12:00 PM"
    assert created["icon"] == "fork-knife"

    daily = client.get("/api/expenses/daily/2025-02-03", headers=HEADERS).json()
    assert daily["total"] == 12.5

    updated = client.put(f"/api/expenses/{created['id']}", json={"amount": 20}, headers=HEADERS)
    assert updated.status_code == 200
    assert updated.json()["amount"] == 20

    other = {"X-Owner-Id": "owner-2"}
    assert client.delete(f"/api/expenses/{created['id']}", headers=other).status_code == 404
    assert client.delete(f"/api/expenses/{created['id']}", headers=HEADERS).status_code == 204
    assert client.get("/api/expenses/grouped", headers=HEADERS).json() == {"months": []}


def test_invalid_expense_is_bad_request(client):
    response = client.post(
        "/api/expenses/",
        json={"title": "Lunch", "amount": -3, "category": "Food"},
        headers=HEADERS,
    )
    assert response.status_code == 400


def test_budget_comparison(client):
    add_expense(client, "Dinner", 45, "Food", "2025-02-10T19:00:00Z")
    add_expense(client, "Train", 10, "Transport", "2025-02-11T08:00:00Z")

    defaults = client.get("/api/budget/", headers=HEADERS).json()
    assert defaults["monthlyBudget"] == 0
    assert len(defaults["categoryBudgets"]) == 5

    client.put(
        "/api/budget/",
        json={
            "monthly_budget": 200,
            "category_budgets": [
                {"category": "Food", "amount": 50},
                {"category": "Transport", "amount": 0},
            ],
        },
        headers=HEADERS,
    )
    summary = client.get("/api/budget/comparison/2025-02", headers=HEADERS).json()
    assert summary["spent"] == 55
    assert summary["remaining"] == 145
    assert [(row["category"], row["severity"]) for row in summary["categories"]] == [
        ("Food", "near"),
        ("Transport", "unknown"),
    ]

    assert client.get("/api/budget/comparison/2025-2x", headers=HEADERS).status_code == 400


def test_analytics(client):
    add_expense(client, "Dinner", 40, "Food", "2025-01-10T19:00:00Z")
    add_expense(client, "Dinner", 60, "Food", "2025-02-10T19:00:00Z")

    buckets = client.get(
        "/api/analytics/buckets",
        params={"granularity": "month", "window": 3, "reference": "2025-02-15"},
        headers=HEADERS,
    ).json()["buckets"]
    assert [(b["label"], b["total"]) for b in buckets] == [("2024-12", 0), ("2025-01", 40), ("2025-02", 60)]

    growth = client.get("/api/analytics/growth/Food/2025-02", headers=HEADERS).json()
    assert growth["growth"] == 50.0

    hours = client.get("/api/analytics/pattern/hourly", headers=HEADERS).json()["hours"]
    assert hours[19]["amount"] == 100


def test_forecast_uses_completed_months(client):
    add_expense(client, "Dinner", 40, "Food", "2025-01-10T19:00:00Z")
    add_expense(client, "Dinner", 60, "Food", "2025-02-10T19:00:00Z")
    add_expense(client, "Coffee", 3, "Food", "2025-03-01T08:00:00Z")

    forecast = client.get(
        "/api/analytics/forecast", params={"history": 2, "horizon": 1, "reference": "2025-03-05"}, headers=HEADERS
    ).json()
    assert [(p["month"], p["actual"]) for p in forecast["points"][:2]] == [("2025-01", 40), ("2025-02", 60)]
    assert forecast["points"][-1]["month"] == "2025-03"
    assert forecast["points"][-1]["predicted"] == 80.0
    assert forecast["forecast"]["predicted_total"] == 80.0
    assert forecast["sufficient_data"] is True


def test_forecast_without_history(client):
    forecast = client.get("/api/analytics/forecast", params={"reference": "2025-03-05"}, headers=HEADERS).json()
    assert forecast["sufficient_data"] is False
    assert forecast["forecast"]["sufficient_data"] is False
    assert all(p["predicted"] in (None, 0.0) for p in forecast["points"])


def test_daily_insight_is_generated_once(client):
    first = client.post("/api/insights/daily", headers=HEADERS).json()
    second = client.post("/api/insights/daily", headers=HEADERS).json()
    assert first["created"] is True
    assert second["created"] is False
    assert second["insight"]["id"] == first["insight"]["id"]

    forced = client.post("/api/insights/daily", params={"force": True}, headers=HEADERS).json()
    assert forced["created"] is True

    recent = client.get("/api/insights/recent", headers=HEADERS).json()
    assert recent["count"] == 2


def test_schedule_without_running_scheduler(client):
    enabled = client.post("/api/insights/schedule", json={"hour": 7, "minute": 30}, headers=HEADERS).json()
    assert enabled["enabled"] is True
    assert enabled["service_running"] is False
    assert enabled["next_run"] is None

    stored = client.get("/api/insights/schedule", headers=HEADERS).json()
    assert stored == {"service_running": False, "enabled": True, "hour": 7, "minute": 30, "next_run": None}

    assert client.delete("/api/insights/schedule", headers=HEADERS).json() == {"enabled": False, "removed": False}
    disabled = client.get("/api/insights/schedule", headers=HEADERS).json()
    assert (disabled["enabled"], disabled["hour"], disabled["minute"]) == (False, 7, 30)

    other = client.get("/api/insights/schedule", headers={"X-Owner-Id": "owner-2"}).json()
    assert other["enabled"] is False
    assert other["hour"] is None
