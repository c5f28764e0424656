"""POST /analyze: validate the request and run the deal analysis pipeline."""

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from deal_analysis.errors import DealAnalysisError, RequestValidationError
from deal_analysis.models.request import AnalysisRequest

logger = structlog.get_logger(__name__)

router = APIRouter()


def _error(message: str) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": message})


@router.post("/analyze")
async def analyze_deal(request: Request):
    """Run the full analysis and return it; persistence continues in the background."""
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        logger.error("analyze.not_configured")
        return _error("Analysis service is not configured: OPENAI_API_KEY is missing")

    try:
        body = await request.json()
    except ValueError:
        logger.warning("analyze.invalid_json")
        return _error("Request body is not valid JSON")

    try:
        analysis_request = AnalysisRequest.from_body(body)
    except RequestValidationError as e:
        logger.warning("analyze.invalid_request", error=e.message, **e.context)
        return _error(e.message)

    log = logger.bind(deal_id=analysis_request.deal_id, user_id=analysis_request.user_id)
    log.info("analyze.received")

    try:
        result = await pipeline.analyze(analysis_request)
    except DealAnalysisError as e:
        log.exception("analyze.failed", error_type=type(e).__name__)
        return _error(e.message)
    except Exception as e:
        log.exception("analyze.failed", error_type=type(e).__name__)
        return _error(f"Analysis failed: {type(e).__name__}")

    log.info(
        "analyze.complete",
        analysis_id=result.analysis_id,
        overall=result.report.overall,
        persistence_scheduled=result.persistence_scheduled,
    )
    return result.to_response()
