"""
Tests for the alert API endpoints using FastAPI's TestClient.

The engine is built over in-memory storage and never started; alerts are
placed directly into its active set.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from intelligent_alerts.engine import IntelligentAlertEngine
from intelligent_alerts.models.alerts import AlertSeverity, AlertType
from services.alert_api.app import create_app


@pytest.fixture
def client(engine) -> TestClient:
    with TestClient(create_app(engine)) as test_client:
        yield test_client


@pytest.fixture
def seeded(engine, make_alert, now):
    """Three active alerts of different severity and type."""
    alerts = [
        make_alert(id="perf-high", severity=AlertSeverity.HIGH),
        make_alert(
            id="biz-critical",
            type=AlertType.BUSINESS,
            metric="revenue",
            severity=AlertSeverity.CRITICAL,
        ),
        make_alert(
            id="wf-medium",
            type=AlertType.WORKFLOW,
            metric="workflow_failure_rate",
            severity=AlertSeverity.MEDIUM,
        ),
    ]
    for alert in alerts:
        engine.storage.add(alert)
    return alerts


def mock_client(ping_result=True, error=None) -> MagicMock:
    client = MagicMock()
    client.ping = AsyncMock(return_value=ping_result, side_effect=error)
    return client


class TestAlertsEndpoints:
    """Test cases for /api/alerts."""

    def test_list_active_alerts(self, client, seeded):
        response = client.get("/api/alerts")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 3
        assert {a["id"] for a in data["alerts"]} == {"perf-high", "biz-critical", "wf-medium"}

    def test_filter_by_severity(self, client, seeded):
        response = client.get("/api/alerts", params={"severity": "critical,high"})

        assert {a["id"] for a in response.json()["alerts"]} == {"perf-high", "biz-critical"}

    def test_filter_by_type(self, client, seeded):
        response = client.get("/api/alerts", params={"type": "Workflow"})

        assert [a["id"] for a in response.json()["alerts"]] == ["wf-medium"]

    def test_statistics(self, client, seeded):
        response = client.get("/api/alerts/statistics")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 3
        assert data["by_severity"] == {"high": 1, "critical": 1, "medium": 1}
        assert data["resolved_count"] == 0

    def test_acknowledge(self, client, seeded, engine):
        response = client.post("/api/alerts/perf-high/acknowledge")

        assert response.status_code == 200
        assert response.json() == {"alert_id": "perf-high", "status": "acknowledged"}
        assert engine.get_alert("perf-high").acknowledged is True

    def test_resolve(self, client, seeded, engine, repository):
        response = client.post("/api/alerts/biz-critical/resolve")

        assert response.status_code == 200
        assert engine.get_alert("biz-critical") is None
        assert repository.alerts["biz-critical"].resolved is True
        assert client.get("/api/alerts").json()["total"] == 2

    @pytest.mark.parametrize("action", ["acknowledge", "resolve"])
    def test_unknown_alert_returns_404(self, client, action):
        response = client.post(f"/api/alerts/missing/{action}")

        assert response.status_code == 404

    def test_no_engine_returns_503(self):
        client = TestClient(create_app())

        assert client.get("/api/alerts").status_code == 503


class TestThresholdEndpoints:
    """Test cases for /api/thresholds."""

    def test_list_thresholds(self, client):
        response = client.get("/api/thresholds")

        assert response.status_code == 200
        assert [t["metric"] for t in response.json()] == [
            "revenue",
            "conversion_rate",
            "response_time",
            "error_rate",
        ]

    def test_partial_update(self, client, engine):
        response = client.patch("/api/thresholds/response_time", json={"warning_max": 2500})

        assert response.status_code == 200
        data = response.json()
        assert data["warning_max"] == 2500
        assert data["critical_max"] == 5000
        assert engine.thresholds.get("response_time").warning_max == 2500

    def test_unknown_metric_returns_404(self, client):
        response = client.patch("/api/thresholds/latency", json={"warning_max": 1})

        assert response.status_code == 404

    def test_inconsistent_bounds_return_422(self, client, engine):
        response = client.patch("/api/thresholds/error_rate", json={"warning_max": 20})

        assert response.status_code == 422
        assert engine.thresholds.get("error_rate").warning_max == 5

    def test_unknown_field_returns_422(self, client):
        response = client.patch("/api/thresholds/error_rate", json={"metric": "other"})

        assert response.status_code == 422


class TestHealthEndpoint:
    """Test cases for /api/health."""

    def test_stopped_engine_is_unhealthy(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "unhealthy"
        assert data["engine_running"] is False
        assert data["infrastructure"] == {
            "redis": "not_configured",
            "postgres": "not_configured",
        }

    def running_engine_app(self, redis=None, postgres=None):
        engine = MagicMock(spec=IntelligentAlertEngine)
        engine.is_running = True
        engine.get_active_alerts.return_value = []
        app = create_app(engine)
        app.state.redis_client = redis
        app.state.postgres_client = postgres
        return app

    def test_healthy(self):
        app = self.running_engine_app(redis=mock_client(), postgres=mock_client())

        data = TestClient(app).get("/api/health").json()

        assert data["status"] == "healthy"
        assert data["infrastructure"] == {"redis": "connected", "postgres": "connected"}

    def test_redis_down_is_degraded(self):
        app = self.running_engine_app(
            redis=mock_client(error=ConnectionError("refused")),
            postgres=mock_client(),
        )

        data = TestClient(app).get("/api/health").json()

        assert data["status"] == "degraded"
        assert data["infrastructure"]["redis"] == "disconnected"

    def test_postgres_down_is_unhealthy(self):
        app = self.running_engine_app(postgres=mock_client(ping_result=False))

        data = TestClient(app).get("/api/health").json()

        assert data["status"] == "unhealthy"
