"""Integration tests for API endpoints"""

import uuid
from datetime import timedelta
import pytest
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient
from budget_copilot.domain.exceptions import FinancialStateError
from budget_copilot.domain.models import Debt, FinancialSnapshot

SNAPSHOT_PATCH = "budget_copilot.infrastructure.clients.financial_state.FinancialStateClient.get_snapshot"


@pytest.fixture
def critical_snapshot(snapshot_factory, today) -> FinancialSnapshot:
    """$100 cash against a $150 overdue electric bill"""
    return snapshot_factory(
        cash_cents=10000,
        monthly_spend_cents=60000,
        bills=[("Electric", 15000, today)],
    )


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "budget_copilot_decision" in response.text
    assert "http_request_duration_seconds" in response.text


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


@patch(SNAPSHOT_PATCH)
def test_decision_endpoint_computes_then_reuses(
    mock_snapshot: AsyncMock,
    client: TestClient,
    comfortable_snapshot: FinancialSnapshot,
):
    """Test GET /v1/decision twice on the same day"""
    mock_snapshot.return_value = comfortable_snapshot

    first = client.get("/v1/decision", params={"user_id": "user_1"})
    second = client.get("/v1/decision", params={"user_id": "user_1"})

    assert first.status_code == 200
    data = first.json()
    assert data["is_new"] is True
    assert data["risk_level"] == "safe"
    assert data["primary_command"]["type"] == "pay"
    assert data["primary_command"]["target"] == "CardA"
    assert data["next_action"]["url"] == "/debts/card_a"
    assert len(data["warnings"]) <= 2
    assert data["context"]["cash_available_cents"] == 900000
    assert data["acknowledged_at"] is None

    assert second.status_code == 200
    assert second.json()["is_new"] is False
    assert second.json()["id"] == data["id"]
    mock_snapshot.assert_awaited_once_with("user_1")


@patch(SNAPSHOT_PATCH)
def test_decision_endpoint_critical(
    mock_snapshot: AsyncMock,
    client: TestClient,
    critical_snapshot: FinancialSnapshot,
):
    """Test GET /v1/decision when bills exceed cash"""
    mock_snapshot.return_value = critical_snapshot

    response = client.get("/v1/decision", params={"user_id": "user_critical"})

    assert response.status_code == 200
    data = response.json()
    assert data["risk_level"] == "critical"
    assert data["primary_command"]["type"] == "freeze"
    assert data["primary_command"]["amount_cents"] == 5000
    assert "Electric" in data["warnings"][0]


@patch(SNAPSHOT_PATCH)
def test_decision_endpoint_provider_unavailable(mock_snapshot: AsyncMock, client: TestClient):
    """Test GET /v1/decision when the financial state API is down"""
    mock_snapshot.side_effect = FinancialStateError("Financial state API timeout")

    response = client.get("/v1/decision", params={"user_id": "user_1"})

    assert response.status_code == 503


@patch(SNAPSHOT_PATCH)
def test_decision_endpoint_rejects_malformed_debt(
    mock_snapshot: AsyncMock,
    client: TestClient,
    snapshot_factory,
    today,
):
    """A debt with a negative APR is bad input, not a server error"""
    mock_snapshot.return_value = snapshot_factory(
        cash_cents=900000,
        monthly_spend_cents=150000,
        payday=today + timedelta(days=10),
        debts=[Debt(debt_id="bad", name="Bad", balance_cents=10000, apr_percent=-5.0, minimum_payment_cents=1000)],
    )

    response = client.get("/v1/decision", params={"user_id": "user_1"})

    assert response.status_code == 422
    assert "negative APR" in response.json()["detail"]

    history = client.get("/v1/decision/history", params={"user_id": "user_1"})
    assert history.json()["decisions"] == []


def test_decision_endpoint_requires_user_id(client: TestClient):
    response = client.get("/v1/decision")
    assert response.status_code == 422


@patch(SNAPSHOT_PATCH)
def test_acknowledge_endpoint(
    mock_snapshot: AsyncMock,
    client: TestClient,
    comfortable_snapshot: FinancialSnapshot,
):
    """Test POST /v1/decision/acknowledge is idempotent"""
    mock_snapshot.return_value = comfortable_snapshot
    decision_id = client.get("/v1/decision", params={"user_id": "user_1"}).json()["id"]

    first = client.post("/v1/decision/acknowledge", json={"decision_id": decision_id})
    second = client.post("/v1/decision/acknowledge", json={"decision_id": decision_id})

    assert first.status_code == 200
    assert first.json()["success"] is True
    assert second.json()["acknowledged_at"] == first.json()["acknowledged_at"]

    reread = client.get("/v1/decision", params={"user_id": "user_1"}).json()
    assert reread["id"] == decision_id
    assert reread["acknowledged_at"] is not None


def test_acknowledge_invalid_id(client: TestClient):
    response = client.post("/v1/decision/acknowledge", json={"decision_id": "not-a-uuid"})
    assert response.status_code == 400


def test_acknowledge_unknown_id(client: TestClient):
    response = client.post("/v1/decision/acknowledge", json={"decision_id": str(uuid.uuid4())})
    assert response.status_code == 404


@patch(SNAPSHOT_PATCH)
def test_history_endpoint(
    mock_snapshot: AsyncMock,
    client: TestClient,
    comfortable_snapshot: FinancialSnapshot,
):
    """Test GET /v1/decision/history"""
    mock_snapshot.return_value = comfortable_snapshot
    decision_id = client.get("/v1/decision", params={"user_id": "user_1"}).json()["id"]

    response = client.get("/v1/decision/history", params={"user_id": "user_1"})

    assert response.status_code == 200
    data = response.json()
    assert data["user_id"] == "user_1"
    assert [d["decision_id"] for d in data["decisions"]] == [decision_id]
    assert data["decisions"][0]["is_locked"] is False


def test_history_endpoint_empty(client: TestClient):
    response = client.get("/v1/decision/history", params={"user_id": "nobody"})
    assert response.status_code == 200
    assert response.json()["decisions"] == []


@patch(SNAPSHOT_PATCH)
def test_strategies_endpoint(
    mock_snapshot: AsyncMock,
    client: TestClient,
    comfortable_snapshot: FinancialSnapshot,
):
    """Test GET /v1/debts/strategies"""
    mock_snapshot.return_value = comfortable_snapshot

    response = client.get("/v1/debts/strategies", params={"user_id": "user_1", "extra_payment_cents": 10000})

    assert response.status_code == 200
    data = response.json()
    assert [d["id"] for d in data["avalanche"]["order"]] == ["card_a", "card_b"]
    assert [d["id"] for d in data["snowball"]["order"]] == ["card_b", "card_a"]
    assert data["recommendation"] == "snowball"
    assert data["savings_with_avalanche"] > 0
    assert data["avalanche"]["unresolved"] is False
    assert data["avalanche"]["total_interest_cents"] <= data["snowball"]["total_interest_cents"]

    entry = data["avalanche"]["order"][0]
    assert abs(entry["total_paid"] - entry["balance"] - entry["interest_paid"]) <= 1
    assert entry["interest_paid"] > 0
    assert data["avalanche"]["interest_saved_cents"] > 0


@patch(SNAPSHOT_PATCH)
def test_strategies_endpoint_excluded_ids(
    mock_snapshot: AsyncMock,
    client: TestClient,
    comfortable_snapshot: FinancialSnapshot,
):
    mock_snapshot.return_value = comfortable_snapshot

    response = client.get("/v1/debts/strategies", params={"user_id": "user_1", "excluded_ids": ["card_b"]})

    assert response.status_code == 200
    assert [d["id"] for d in response.json()["avalanche"]["order"]] == ["card_a"]


def test_strategies_endpoint_rejects_negative_extra(client: TestClient):
    response = client.get("/v1/debts/strategies", params={"user_id": "user_1", "extra_payment_cents": -1})
    assert response.status_code == 422


@patch(SNAPSHOT_PATCH)
def test_strategies_endpoint_provider_unavailable(mock_snapshot: AsyncMock, client: TestClient):
    mock_snapshot.side_effect = FinancialStateError("Financial state API error: 500")

    response = client.get("/v1/debts/strategies", params={"user_id": "user_1"})

    assert response.status_code == 503


@patch(SNAPSHOT_PATCH)
def test_summary_endpoint(
    mock_snapshot: AsyncMock,
    client: TestClient,
    comfortable_snapshot: FinancialSnapshot,
):
    """Test GET /v1/debts/summary"""
    mock_snapshot.return_value = comfortable_snapshot

    response = client.get("/v1/debts/summary", params={"user_id": "user_1"})

    assert response.status_code == 200
    data = response.json()
    assert data["total_debt_cents"] == 250000
    assert data["debt_count"] == 2
    assert data["highest_apr_percent"] == 24.0
    assert [d["id"] for d in data["debts"]] == ["card_a", "card_b"]
    assert data["debts"][0]["danger_score"] == 50
    assert data["debts"][0]["monthly_interest_cents"] == 4000
    assert data["debts"][0]["payoff_date"] is not None
    assert data["debts"][0]["monthly_payment_needed_cents"] > 0


@patch(SNAPSHOT_PATCH)
def test_what_if_endpoint(
    mock_snapshot: AsyncMock,
    client: TestClient,
    comfortable_snapshot: FinancialSnapshot,
):
    """Test GET /v1/debts/{debt_id}/what-if"""
    mock_snapshot.return_value = comfortable_snapshot

    response = client.get(
        "/v1/debts/card_a/what-if",
        params={"user_id": "user_1", "extra_monthly_cents": 5000},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["debt_id"] == "card_a"
    assert data["months_saved"] > 0
    assert data["interest_saved_cents"] > 0


@patch(SNAPSHOT_PATCH)
def test_what_if_endpoint_unknown_debt(
    mock_snapshot: AsyncMock,
    client: TestClient,
    comfortable_snapshot: FinancialSnapshot,
):
    mock_snapshot.return_value = comfortable_snapshot

    response = client.get(
        "/v1/debts/nope/what-if",
        params={"user_id": "user_1", "extra_monthly_cents": 5000},
    )

    assert response.status_code == 404


def test_apr_estimate_endpoint(client: TestClient):
    """Test POST /v1/debts/apr-estimate"""
    response = client.post(
        "/v1/debts/apr-estimate",
        json={"principal_cents": 1000000, "monthly_payment_cents": 37164, "term_months": 36},
    )

    assert response.status_code == 200
    assert response.json()["apr_percent"] == pytest.approx(20.0, abs=0.01)


def test_apr_estimate_endpoint_unresolvable(client: TestClient):
    response = client.post(
        "/v1/debts/apr-estimate",
        json={"principal_cents": 120000, "monthly_payment_cents": 9000, "term_months": 12},
    )

    assert response.status_code == 200
    assert response.json() == {"error": "unresolvable"}


def test_payment_plan_endpoint(client: TestClient):
    """Test POST /v1/debts/payment-plan"""
    response = client.post(
        "/v1/debts/payment-plan",
        json={"principal_cents": 1000000, "apr_percent": 20.0, "term_months": 36},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["monthly_payment_cents"] == 37164
    assert data["total_interest_cents"] == pytest.approx(37164 * 36 - 1000000, abs=36)


def test_payment_plan_endpoint_invalid_term(client: TestClient):
    response = client.post(
        "/v1/debts/payment-plan",
        json={"principal_cents": 1000000, "apr_percent": 20.0, "term_months": 0},
    )

    assert response.status_code == 422
