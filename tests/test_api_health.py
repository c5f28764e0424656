"""Tests for the /health endpoint."""

import pytest
from unittest.mock import AsyncMock, MagicMock
from fastapi import FastAPI
from fastapi.testclient import TestClient

from deal_analysis.api.routes.health import router


def _make_app(pipeline=None, postgres=None) -> FastAPI:
    app = FastAPI()
    app.include_router(router)
    app.state.pipeline = pipeline
    app.state.postgres = postgres
    return app


class TestHealthRoute:
    def test_health_ok_without_store(self):
        client = TestClient(_make_app(pipeline=MagicMock()))
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {
            "status": "ok",
            "model_configured": True,
            "persistence": "disabled",
        }

    def test_health_ok_with_store(self):
        postgres = AsyncMock()
        postgres.verify_connectivity = AsyncMock(return_value=True)
        client = TestClient(_make_app(pipeline=MagicMock(), postgres=postgres))

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["persistence"] == "ok"

    def test_health_store_down(self):
        postgres = AsyncMock()
        postgres.verify_connectivity = AsyncMock(return_value=False)
        client = TestClient(_make_app(pipeline=MagicMock(), postgres=postgres))

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"

    def test_health_reports_missing_model_config(self):
        client = TestClient(_make_app(pipeline=None))
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["model_configured"] is False

    def test_shallow_check_does_not_call_model(self):
        pipeline = MagicMock()
        pipeline.openai.health_check = AsyncMock(return_value={"healthy": True})
        client = TestClient(_make_app(pipeline=pipeline))

        response = client.get("/health")

        assert "model" not in response.json()
        pipeline.openai.health_check.assert_not_awaited()

    def test_deep_check_probes_model(self):
        pipeline = MagicMock()
        pipeline.openai.health_check = AsyncMock(
            return_value={"healthy": True, "chat_model": "gpt-4.1-mini"}
        )
        client = TestClient(_make_app(pipeline=pipeline))

        response = client.get("/health", params={"deep": "true"})

        assert response.status_code == 200
        assert response.json()["model"] == "ok"
        pipeline.openai.health_check.assert_awaited_once()

    def test_deep_check_model_unreachable(self):
        pipeline = MagicMock()
        pipeline.openai.health_check = AsyncMock(
            return_value={"healthy": False, "error": "invalid api key"}
        )
        client = TestClient(_make_app(pipeline=pipeline))

        response = client.get("/health", params={"deep": "true"})

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "unhealthy"
        assert body["model"] == "unreachable"
        assert body["model_error"] == "invalid api key"
