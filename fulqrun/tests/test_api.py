"""
API Router Test Module

Exercises the FastAPI routers through TestClient with dependency overrides:
- get_clock is pinned to AS_OF
- get_settings_dependency returns mock settings
- get_db_session yields a mocked asyncpg connection

The lifespan is not entered (no `with TestClient(...)`), so no database pool
is created.
"""

from datetime import timedelta
from typing import Any, Dict
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from fulqrun.core.clock import fixed_clock
from fulqrun.core.config import Settings
from fulqrun.core.database import DatabaseNotConfiguredError, init_db
from fulqrun.core.dependencies import get_clock, get_db_session, get_settings_dependency
from fulqrun.main import app
from fulqrun.tests.conftest import AS_OF, days_ago, uniform_scores


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def client(mock_settings, mock_connection):
    """TestClient with clock, settings and database overridden."""
    async def override_db_session():
        yield mock_connection

    app.dependency_overrides[get_clock] = lambda: fixed_clock(AS_OF)
    app.dependency_overrides[get_settings_dependency] = lambda: mock_settings
    app.dependency_overrides[get_db_session] = override_db_session

    yield TestClient(app)

    app.dependency_overrides.clear()


def snapshot_payload(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "id": "deal-001",
        "name": "Enterprise Software Deal",
        "value": 50000,
        "stage": "engage",
        "probability": 45,
        "daysInStage": 5,
        "totalDaysInPipeline": 20,
        "lastActivity": days_ago(2).isoformat(),
        "meddpiccScores": uniform_scores(80),
        "closeDate": (AS_OF + timedelta(days=30)).isoformat(),
        "contacts": [{"id": "c-1", "name": "Dana", "role": "decision-maker"}],
        "activities": [{"id": "a-1", "type": "demo", "notes": "Demo"}],
    }
    payload.update(overrides)
    return payload


# =============================================================================
# Service Endpoints
# =============================================================================


class TestServiceEndpoints:
    """GET /health and GET /."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_root(self, client):
        body = client.get("/").json()
        assert body["name"] == "FulQrun Deal Analytics API"


# =============================================================================
# Progression Endpoints
# =============================================================================


@pytest.mark.integration
class TestProgressionEndpoints:
    """/progression routes."""

    def test_evaluate(self, client):
        payload = snapshot_payload(meddpiccScores=uniform_scores(60))

        response = client.post("/progression/evaluate", json={"snapshot": payload})

        assert response.status_code == 200
        body = response.json()
        assert body["canAdvance"] is False
        assert body["confidence"] == 67
        assert body["requiredActions"] == [
            "Develop internal champion who will advocate for your solution",
        ]
        assert body["nextStage"] == "acquire"

    def test_evaluate_unknown_stage_is_not_an_error(self, client):
        response = client.post(
            "/progression/evaluate",
            json={"snapshot": snapshot_payload(), "stage": "bogus"},
        )
        assert response.status_code == 200
        assert response.json()["requiredActions"] == ["Stage configuration not found"]

    def test_evaluate_rejects_invalid_snapshot(self, client):
        response = client.post(
            "/progression/evaluate",
            json={"snapshot": snapshot_payload(probability=150)},
        )
        assert response.status_code == 422

    def test_auto_advance(self, client):
        response = client.post("/progression/auto-advance", json=snapshot_payload())
        assert response.json() == {"canAdvance": True, "nextStage": "acquire", "confidence": 100}

    def test_auto_advance_threshold_from_settings(self, client, mock_settings):
        mock_settings.auto_advance_min_confidence = 100
        response = client.post("/progression/auto-advance", json=snapshot_payload())
        assert response.json()["canAdvance"] is False

    def test_stage_requirements(self, client):
        body = client.get("/progression/stages/prospect/requirements").json()
        assert body["stage"] == "prospect"
        assert body["nextStage"] == "engage"
        assert len(body["requirements"]) == 3

    def test_terminal_stage_requirements(self, client):
        body = client.get("/progression/stages/closed-won/requirements").json()
        assert body == {"stage": "closed-won", "nextStage": None, "requirements": []}


# =============================================================================
# Analytics Endpoints
# =============================================================================


@pytest.mark.integration
class TestAnalyticsEndpoints:
    """/analytics routes."""

    def test_deal(self, client):
        payload = snapshot_payload(
            daysInStage=45,
            lastActivity=days_ago(20).isoformat(),
            meddpiccScores=uniform_scores(40),
        )

        body = client.post("/analytics/deal", json=payload).json()

        assert body["score"] == 55
        assert body["dealHealth"] == "critical"
        assert body["trends"] == {"velocity": "slowing", "engagement": "decreasing", "competitive": "strong"}

    def test_deal_with_nan_and_out_of_range_scores(self, client):
        # NaN is not valid JSON for the client encoder; send the raw body
        body = (
            '{"id": "d", "stage": "engage", "value": 50000,'
            ' "meddpiccScores": {"identifyPain": NaN, "champion": -500, "metrics": 5000}}'
        )

        response = client.post(
            "/analytics/deal",
            content=body,
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 200
        assert response.json()["score"] == 90
        assert "Low MEDDPICC qualification score" in response.json()["riskFactors"]

    def test_deal_uses_settings_thresholds(self, client, mock_settings):
        mock_settings.stagnation_days = 3
        body = client.post("/analytics/deal", json=snapshot_payload()).json()
        assert body["score"] == 85

    def test_portfolio_empty(self, client):
        body = client.post("/analytics/portfolio", json=[]).json()
        assert body["totalOpportunities"] == 0
        assert body["averageValue"] == 0

    def test_portfolio(self, client):
        body = client.post(
            "/analytics/portfolio",
            json=[snapshot_payload(id="a"), snapshot_payload(id="b", value=150000)],
        ).json()
        assert body["totalOpportunities"] == 2
        assert body["totalValue"] == 200000
        assert body["stageDistribution"] == {"engage": 2}

    def test_opportunity(self, client, make_opportunity):
        opportunity = make_opportunity()
        body = client.post("/analytics/opportunity", json=opportunity.model_dump(mode="json")).json()

        assert body["opportunityId"] == "opp-001"
        assert body["canAutoAdvance"] is True
        assert body["progressionResults"]["prospect"]["confidence"] == 100

    def test_opportunity_stage_case_normalized(self, client, make_opportunity):
        payload = make_opportunity().model_dump(mode="json")
        payload["stage"] = "Prospect"

        body = client.post("/analytics/opportunity", json=payload).json()

        assert body["currentStage"] == "prospect"
        assert list(body["progressionResults"]) == ["prospect"]


# =============================================================================
# Opportunity Endpoints (mocked database)
# =============================================================================


@pytest.mark.integration
class TestOpportunityEndpoints:
    """/opportunities routes."""

    def test_analytics_not_found(self, client):
        response = client.get("/opportunities/missing/analytics")
        assert response.status_code == 404

    def test_analytics(self, client, mock_connection, opportunity_row):
        mock_connection.fetchrow.return_value = opportunity_row

        response = client.get("/opportunities/opp-001/analytics")

        assert response.status_code == 200
        body = response.json()
        assert body["currentStage"] == "prospect"
        assert body["dealHealth"] == "healthy"

    def test_portfolio(self, client, mock_connection, opportunity_row):
        mock_connection.fetch.return_value = [opportunity_row]
        body = client.get("/opportunities/portfolio").json()
        assert body["totalOpportunities"] == 1
        assert body["stageDistribution"] == {"prospect": 1}

    def test_pipeline_metrics(self, client, mock_connection, opportunity_row):
        mock_connection.fetch.return_value = [opportunity_row]
        body = client.get("/opportunities/pipeline-metrics").json()
        assert body["totalOpportunities"] == 1
        assert body["averageSalesCycle"] == 40
        assert body["stageDistribution"]["prospect"] == 1

    def test_upcoming_closes(self, client, mock_connection, opportunity_row):
        mock_connection.fetch.return_value = [opportunity_row]
        assert len(client.get("/opportunities/upcoming-closes", params={"days": 60}).json()) == 1
        assert client.get("/opportunities/upcoming-closes", params={"days": 10}).json() == []

    def test_advance(self, client, mock_connection, opportunity_row):
        mock_connection.fetchrow.side_effect = [opportunity_row, None]

        response = client.post(
            "/opportunities/opp-001/advance",
            json={"newStage": "engage", "reason": "Budget confirmed"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["previousStage"] == "prospect"
        assert body["newStage"] == "engage"
        assert body["manualOverride"] is False
        assert body["progression"]["stageHistory"][-1]["advancementReason"] == "Budget confirmed"
        assert mock_connection.execute.await_count == 2

    def test_advance_override_flagged(self, client, mock_connection, opportunity_row):
        mock_connection.fetchrow.side_effect = [opportunity_row, None]
        body = client.post("/opportunities/opp-001/advance", json={"newStage": "keep"}).json()
        assert body["manualOverride"] is True

    def test_advance_to_same_stage(self, client, mock_connection, opportunity_row):
        mock_connection.fetchrow.return_value = opportunity_row
        response = client.post("/opportunities/opp-001/advance", json={"newStage": "prospect"})
        assert response.status_code == 400
        mock_connection.execute.assert_not_awaited()

    def test_advance_requires_stage(self, client):
        response = client.post("/opportunities/opp-001/advance", json={"reason": "x"})
        assert response.status_code == 422

    def test_database_failure_returns_500(self, client, mock_connection):
        mock_connection.fetch.side_effect = RuntimeError("connection reset")
        response = client.get("/opportunities/portfolio")
        assert response.status_code == 500


class TestDatabaseSession:
    """get_db_session behavior."""

    @pytest.mark.asyncio
    async def test_yields_pooled_connection(self, mock_db_pool, mock_connection):
        with patch("fulqrun.core.dependencies.get_db_pool", new=AsyncMock(return_value=mock_db_pool)):
            session = get_db_session()
            assert await session.__anext__() is mock_connection
            await session.aclose()

        mock_db_pool.acquire.assert_called_once()

    def test_returns_503(self, mock_settings):
        app.dependency_overrides[get_settings_dependency] = lambda: mock_settings
        try:
            with patch(
                "fulqrun.core.dependencies.get_db_pool",
                new=AsyncMock(side_effect=OSError("connection refused")),
            ):
                response = TestClient(app).get("/opportunities/portfolio")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 503

    def test_missing_database_url_returns_503(self, mock_settings):
        mock_settings.database_url = None
        app.dependency_overrides[get_settings_dependency] = lambda: mock_settings
        try:
            with patch("fulqrun.core.database._pool", None), patch(
                "fulqrun.core.database.get_settings", return_value=mock_settings
            ):
                client = TestClient(app)
                db_response = client.get("/opportunities/portfolio")
                engine_response = client.post("/progression/auto-advance", json=snapshot_payload())
        finally:
            app.dependency_overrides.clear()

        assert db_response.status_code == 503
        assert engine_response.status_code == 200

    @pytest.mark.asyncio
    async def test_init_db_requires_database_url(self, mock_settings):
        mock_settings.database_url = None
        with patch("fulqrun.core.database._pool", None), patch(
            "fulqrun.core.database.get_settings", return_value=mock_settings
        ):
            with pytest.raises(DatabaseNotConfiguredError):
                await init_db()


class TestSettings:
    """Settings loading."""

    def test_database_url_is_optional(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        settings = Settings(_env_file=None)
        assert settings.database_url is None
        assert settings.stagnation_days == 30
