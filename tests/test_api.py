"""Tests for the FastAPI spending analytics API."""
import pytest
from fastapi.testclient import TestClient


NOW_ISO = "2026-10-18T12:00:00"


def netflix_payload():
    """Four monthly Netflix payments as JSON records."""
    return [
        {"amount": 260_000, "merchant": "Netflix", "category": "Entertainment", "transaction_date": day}
        for day in ["2026-06-14", "2026-07-15", "2026-08-12", "2026-09-12"]
    ]


class TestAnalyticsAPI:
    """Tests for the analytics API endpoints."""

    @pytest.fixture
    def temp_service(self, now):
        """Create a service with a fixed clock and no cache."""
        from spending_analytics.api.analytics_service import AnalyticsService

        with AnalyticsService(clock=lambda: now, cache_ttl=0) as service:
            yield service

    @pytest.fixture
    def client(self, temp_service):
        """Create test client with temp service."""
        from spending_analytics.web.api import app, get_service

        # Override the dependency
        app.dependency_overrides[get_service] = lambda: temp_service
        yield TestClient(app)
        app.dependency_overrides.clear()

    # === Health ===

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    # === Recurring ===

    def test_recurring_empty(self, client):
        response = client.post("/api/recurring", json={"transactions": []})
        assert response.status_code == 200
        assert response.json() == []

    def test_recurring_with_pattern(self, client):
        response = client.post("/api/recurring", json={"transactions": netflix_payload()})
        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["merchant"] == "Netflix"
        assert data[0]["frequency"] == "monthly"
        assert data[0]["next_expected_date"] == "2026-10-12"

    def test_explicit_now_overrides_clock(self, client):
        """Seen from far in the future, the subscription looks missed."""
        response = client.post("/api/recurring", json={
            "transactions": netflix_payload(),
            "now": "2026-12-01T09:00:00",
        })
        assert response.json()[0]["missed_payment"] is True

    def test_invalid_transaction_rejected(self, client):
        response = client.post("/api/recurring", json={"transactions": [
            {"amount": -5, "merchant": "Shop", "transaction_date": "2026-10-01"}
        ]})
        assert response.status_code == 422

    # === Budgets ===

    def test_budget_predictions(self, client):
        response = client.post("/api/budgets/predictions", json={
            "transactions": [
                {"amount": 1_000_000, "merchant": "Big C", "category": "Food", "transaction_date": "2026-10-02"},
            ],
            "budgets": [{"category": "Food", "amount": 3_000_000, "month": "2026-10"}],
            "now": NOW_ISO,
        })
        assert response.status_code == 200
        data = response.json()
        assert data[0]["category"] == "Food"
        assert data[0]["days_remaining"] == 13
        assert data[0]["status"] == "safe"

    def test_budget_alerts(self, client):
        response = client.post("/api/budgets/alerts", json={
            "transactions": [
                {"amount": 4_000_000, "merchant": "Big C", "category": "Food", "transaction_date": "2026-10-02"},
            ],
            "budgets": [{"category": "Food", "amount": 3_000_000, "month": "2026-10"}],
        })
        assert response.status_code == 200
        assert [a["id"] for a in response.json()] == ["exceeded-Food"]

    def test_budget_recommendations(self, client):
        response = client.post("/api/budgets/recommendations", json={"transactions": netflix_payload()})
        assert response.status_code == 200
        assert response.json()[0]["category"] == "Entertainment"

    # === Insights ===

    def test_insights(self, client):
        response = client.post("/api/insights", json={"transactions": netflix_payload()})
        assert response.status_code == 200
        titles = [i["title"] for i in response.json()]
        assert "29 day no-spend streak!" in titles

    def test_merchants_top_n(self, client):
        payload = netflix_payload() + [
            {"amount": 10_000, "merchant": "Cafe", "category": "Food", "transaction_date": "2026-10-01"}
        ]
        response = client.post("/api/merchants?top_n=1", json={"transactions": payload})
        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["merchant"] == "Netflix"

    def test_merchants_isolated_between_requests(self, now):
        """A caching service never answers one request with another's data."""
        from spending_analytics.api.analytics_service import AnalyticsService
        from spending_analytics.web.api import app, get_service

        def payload(merchant, amount):
            return [
                {"amount": amount, "merchant": merchant, "category": "Bills", "transaction_date": day}
                for day in ["2026-07-01", "2026-08-01", "2026-09-01", "2026-10-01"]
            ]

        with AnalyticsService(clock=lambda: now) as service:
            app.dependency_overrides[get_service] = lambda: service
            try:
                client = TestClient(app)
                alice = client.post("/api/merchants", json={"transactions": payload("Alice Rent", 260_000)})
                bob = client.post("/api/merchants", json={"transactions": payload("Bob Coffee", 5_000)})
            finally:
                app.dependency_overrides.clear()

        assert alice.json()[0]["merchant"] == "Alice Rent"
        assert bob.json()[0]["merchant"] == "Bob Coffee"
        assert bob.json()[0]["total_spent"] == 20_000

    def test_analyze(self, client):
        response = client.post("/api/analyze", json={"transactions": netflix_payload()})
        assert response.status_code == 200
        data = response.json()
        assert data["summary"]["total_transactions"] == 4
        assert len(data["recurring_patterns"]) == 1
        assert data["budget_predictions"] == []

    # === Import ===

    def test_import_preview(self, client):
        content = b"Date,Amount,Merchant\n2026-10-01,-45.99,NETFLIX\n2026-10-02,100.00,EMPLOYER\n"
        response = client.post(
            "/api/import/preview",
            files={"file": ("bank.csv", content, "text/csv")}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["filename"] == "bank.csv"
        assert data["total"] == 1
        assert data["transactions"][0]["amount"] == 45.99

    def test_import_preview_bad_file(self, client):
        response = client.post(
            "/api/import/preview",
            files={"file": ("broken.xlsx", b"not a spreadsheet", "application/octet-stream")}
        )
        assert response.status_code == 400
