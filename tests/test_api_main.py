"""Tests for the FastAPI app startup/shutdown, CORS and route wiring."""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from fastapi.testclient import TestClient


def _settings(**overrides) -> MagicMock:
    values = dict(
        OPENAI_API_KEY="sk-test",
        OPENAI_CHAT_MODEL="gpt-4.1-mini",
        STANDARDS_API_URL=None,
        DATABASE_URL=None,
        POSTGRES_SETUP_SCHEMA=False,
        LOG_JSON=False,
        LOG_LEVEL="INFO",
    )
    values.update(overrides)
    settings = MagicMock(**values)
    settings.validate_required.return_value = [] if values["OPENAI_API_KEY"] else ["OPENAI_API_KEY"]
    return settings


class TestLifespan:
    @patch("deal_analysis.api.main.get_settings")
    @patch("deal_analysis.api.main.DealAnalysisPipeline")
    def test_pipeline_built_and_closed(self, mock_pipeline_cls, mock_settings):
        mock_settings.return_value = _settings()
        pipeline = AsyncMock()
        mock_pipeline_cls.from_settings.return_value = pipeline

        from deal_analysis.api.main import app

        with TestClient(app) as client:
            assert app.state.pipeline is pipeline
            assert app.state.postgres is None
            resp = client.get("/health")
            assert resp.status_code == 200
            assert resp.json()["model_configured"] is True

        mock_pipeline_cls.from_settings.assert_called_once_with(
            mock_settings.return_value, postgres_client=None,
        )
        pipeline.close.assert_awaited_once()

    @patch("deal_analysis.api.main.get_settings")
    @patch("deal_analysis.api.main.DealAnalysisPipeline")
    def test_missing_api_key_disables_pipeline(self, mock_pipeline_cls, mock_settings):
        mock_settings.return_value = _settings(OPENAI_API_KEY="")

        from deal_analysis.api.main import app

        with TestClient(app) as client:
            resp = client.post("/analyze", json={"dealData": {}, "dealId": "d", "userId": "u"})

        assert resp.status_code == 500
        assert "not configured" in resp.json()["error"]
        mock_pipeline_cls.from_settings.assert_not_called()

    @patch("deal_analysis.api.main.get_settings")
    @patch("deal_analysis.api.main.PostgresClient")
    @patch("deal_analysis.api.main.DealAnalysisPipeline")
    def test_postgres_connected_and_schema_created(self, mock_pipeline_cls, mock_pg_cls, mock_settings):
        mock_settings.return_value = _settings(
            DATABASE_URL="postgresql://localhost/deals", POSTGRES_SETUP_SCHEMA=True,
        )
        pg = AsyncMock()
        pg.verify_connectivity = AsyncMock(return_value=True)
        mock_pg_cls.return_value = pg
        mock_pipeline_cls.from_settings.return_value = AsyncMock()

        from deal_analysis.api.main import app

        with TestClient(app):
            assert app.state.postgres is pg

        pg.connect.assert_awaited_once()
        pg.setup_schema.assert_awaited_once()
        pg.close.assert_awaited_once()

    @patch("deal_analysis.api.main.get_settings")
    @patch("deal_analysis.api.main.PostgresClient")
    @patch("deal_analysis.api.main.DealAnalysisPipeline")
    def test_unreachable_postgres_is_dropped(self, mock_pipeline_cls, mock_pg_cls, mock_settings):
        mock_settings.return_value = _settings(DATABASE_URL="postgresql://localhost/deals")
        pg = AsyncMock()
        pg.verify_connectivity = AsyncMock(return_value=False)
        mock_pg_cls.return_value = pg
        mock_pipeline_cls.from_settings.return_value = AsyncMock()

        from deal_analysis.api.main import app

        with TestClient(app):
            assert app.state.postgres is None

        pg.close.assert_awaited_once()
        mock_pipeline_cls.from_settings.assert_called_once_with(
            mock_settings.return_value, postgres_client=None,
        )


class TestCors:
    @patch("deal_analysis.api.main.get_settings")
    @patch("deal_analysis.api.main.DealAnalysisPipeline")
    def test_preflight_allows_client_headers(self, mock_pipeline_cls, mock_settings):
        mock_settings.return_value = _settings()
        mock_pipeline_cls.from_settings.return_value = AsyncMock()

        from deal_analysis.api.main import app

        with TestClient(app) as client:
            resp = client.options(
                "/analyze",
                headers={
                    "Origin": "https://app.example.com",
                    "Access-Control-Request-Method": "POST",
                    "Access-Control-Request-Headers": "authorization, x-client-info, apikey, content-type",
                },
            )

        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "*"
