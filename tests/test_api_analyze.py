"""Tests for POST /analyze endpoint."""

import pytest
from unittest.mock import AsyncMock
from fastapi import FastAPI
from fastapi.testclient import TestClient

from deal_analysis.api.routes.analyze import router
from deal_analysis.pipeline.pipeline import DealAnalysisPipeline, PipelineOptions


def _make_app(pipeline=None) -> FastAPI:
    app = FastAPI()
    app.include_router(router)
    app.state.pipeline = pipeline
    return app


@pytest.fixture
def client(fake_openai) -> TestClient:
    pipeline = DealAnalysisPipeline(fake_openai, options=PipelineOptions())
    return TestClient(_make_app(pipeline))


class TestAnalyzeRoute:
    def test_success(self, client, request_body):
        response = client.post("/analyze", json=request_body)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert set(body["analysis"]) == {
            "market", "financial", "risk", "revenue", "expenses", "recommendations", "overall",
        }
        assert body["analysis"]["overall"] == 66
        assert len(body["analysis"]["expenses"]) == 3
        assert body["metadata"]["stage_status"]["financial"] == "parsed"

    def test_unparseable_model_output_still_200(self, client, request_body, model_responses):
        for kind in model_responses:
            model_responses[kind] = "Sorry, here is some prose instead."

        response = client.post("/analyze", json=request_body)

        assert response.status_code == 200
        analysis = response.json()["analysis"]
        assert analysis["market"]["score"] == 50
        assert analysis["market"]["insights"] == "Sorry, here is some prose instead."
        assert analysis["recommendations"][0]["title"] == "Review Analysis"

    def test_missing_user_id_returns_500(self, client, request_body):
        del request_body["userId"]

        response = client.post("/analyze", json=request_body)

        assert response.status_code == 500
        assert "userId" in response.json()["error"]

    def test_invalid_json_returns_500(self, client):
        response = client.post(
            "/analyze",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Request body is not valid JSON"}

    def test_not_configured_returns_500(self, request_body):
        client = TestClient(_make_app(pipeline=None))

        response = client.post("/analyze", json=request_body)

        assert response.status_code == 500
        assert "OPENAI_API_KEY" in response.json()["error"]

    def test_unexpected_error_hides_details(self, request_body):
        pipeline = AsyncMock()
        pipeline.analyze = AsyncMock(side_effect=KeyError("secret internal detail"))
        client = TestClient(_make_app(pipeline))

        response = client.post("/analyze", json=request_body)

        assert response.status_code == 500
        assert response.json() == {"error": "Analysis failed: KeyError"}
