"""Integration tests for /health, /healthz and /metrics endpoints."""

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from pydantic import SecretStr

from backend.app.api.routes.health import check_db, check_llm, check_redis
from backend.app.config import Settings
from backend.app.utils.metrics import get_metrics


class TestHealthEndpoint:
    """Test /health and /healthz endpoints."""

    def test_health_always_ok(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    @patch("backend.app.api.routes.health.check_db")
    @patch("backend.app.api.routes.health.check_redis")
    @patch("backend.app.api.routes.health.check_llm")
    def test_healthz_returns_200_when_all_ok(
        self,
        mock_check_llm: MagicMock,
        mock_check_redis: MagicMock,
        mock_check_db: MagicMock,
        client: TestClient,
    ) -> None:
        mock_check_db.return_value = (True, "ok")
        mock_check_redis.return_value = (True, "ok")
        mock_check_llm.return_value = (True, "configured")

        response = client.get("/healthz")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["components"] == {"db": "ok", "redis": "ok", "llm": "configured"}

    @patch("backend.app.api.routes.health.check_db")
    @patch("backend.app.api.routes.health.check_redis")
    @patch("backend.app.api.routes.health.check_llm")
    def test_healthz_returns_503_when_db_fails(
        self,
        mock_check_llm: MagicMock,
        mock_check_redis: MagicMock,
        mock_check_db: MagicMock,
        client: TestClient,
    ) -> None:
        mock_check_db.return_value = (False, "connection refused")
        mock_check_redis.return_value = (True, "ok")
        mock_check_llm.return_value = (True, "stub")

        response = client.get("/healthz")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "degraded"
        assert data["components"]["db"] == "connection refused"
        assert data["components"]["redis"] == "ok"

    @patch("backend.app.api.routes.health.check_db")
    @patch("backend.app.api.routes.health.check_redis")
    @patch("backend.app.api.routes.health.check_llm")
    def test_healthz_returns_503_when_redis_fails(
        self,
        mock_check_llm: MagicMock,
        mock_check_redis: MagicMock,
        mock_check_db: MagicMock,
        client: TestClient,
    ) -> None:
        mock_check_db.return_value = (True, "ok")
        mock_check_redis.return_value = (False, "timeout")
        mock_check_llm.return_value = (True, "stub")

        response = client.get("/healthz")

        assert response.status_code == 503
        assert response.json()["components"]["redis"] == "timeout"


class TestHealthChecks:
    """Component checks without external services."""

    @pytest.mark.asyncio
    async def test_unconfigured_components(self, settings: Settings) -> None:
        assert await check_db(settings) == (True, "not_configured")
        assert await check_redis(settings) == (True, "not_configured")
        assert await check_llm(settings) == (True, "stub")

    @pytest.mark.asyncio
    async def test_llm_configured_with_key(self, settings: Settings) -> None:
        configured = settings.model_copy(update={"openai_api_key": SecretStr("sk-test")})

        assert await check_llm(configured) == (True, "configured")


class TestMetricsEndpoint:
    """Test /metrics endpoint."""

    def test_metrics_returns_prometheus_format(self, client: TestClient) -> None:
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]
        assert "# HELP" in response.text

    def test_metrics_includes_pipeline_metrics(self, client: TestClient) -> None:
        metrics = get_metrics()
        metrics.record_extraction("pdf", "success")
        metrics.record_embedding("fallback")
        metrics.record_llm_latency("success", 120.0)
        metrics.record_search(3)

        text = client.get("/metrics").text

        assert "extraction_attempts_total" in text
        assert "embedding_requests_total" in text
        assert "llm_latency_ms" in text
        assert "knowledge_search_results" in text


class TestRootEndpoint:
    def test_root_returns_api_info(self, client: TestClient) -> None:
        response = client.get("/")

        assert response.status_code == 200
        assert response.json() == {"message": "Knowledge Chat API", "version": "0.1.0"}
