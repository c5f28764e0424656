"""FastAPI application for the deal analysis service."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from deal_analysis.clients.postgres_client import PostgresClient
from deal_analysis.config import get_settings
from deal_analysis.logging import configure_logging
from deal_analysis.pipeline import DealAnalysisPipeline

from .routes.analyze import router as analyze_router
from .routes.health import router as health_router

logger = structlog.get_logger(__name__)

CORS_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize persistent clients at startup, drain and clean up at shutdown."""
    settings = get_settings()
    configure_logging(json_output=settings.LOG_JSON, log_level=settings.LOG_LEVEL)

    logger.info(
        "lifespan.startup",
        chat_model=settings.OPENAI_CHAT_MODEL,
        standards_configured=bool(settings.STANDARDS_API_URL),
    )

    # Postgres: result store (optional, failure-isolated)
    postgres: PostgresClient | None = None
    if settings.DATABASE_URL:
        pg = PostgresClient(settings.DATABASE_URL)
        await pg.connect()
        if await pg.verify_connectivity():
            if settings.POSTGRES_SETUP_SCHEMA:
                await pg.setup_schema()
            postgres = pg
            logger.info("lifespan.postgres_ready")
        else:
            logger.warning("lifespan.postgres_connectivity_failed")
            await pg.close()

    # Pipeline: unavailable without model credentials, /analyze then returns 500
    pipeline: DealAnalysisPipeline | None = None
    missing = settings.validate_required()
    if missing:
        logger.warning("lifespan.pipeline_disabled", missing=missing)
    else:
        pipeline = DealAnalysisPipeline.from_settings(settings, postgres_client=postgres)

    # Store on app.state for request handlers
    app.state.pipeline = pipeline
    app.state.postgres = postgres

    logger.info("lifespan.ready")
    yield

    # Shutdown: background writes need the store, so drain before closing it
    logger.info("lifespan.shutdown")
    if pipeline is not None:
        await pipeline.close()
    if postgres is not None:
        await postgres.close()


app = FastAPI(
    title="deal-analysis",
    description="Multi-stage AI investment analysis for laundromat deals",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=CORS_HEADERS,
)

app.include_router(health_router)
app.include_router(analyze_router)
