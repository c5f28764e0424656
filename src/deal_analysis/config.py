"""
Configuration management for the deal analysis service.

Loads settings from environment variables (and an optional .env file at the
project root) with sensible defaults. The pipeline itself never reads the
environment: settings are turned into injected clients and PipelineOptions
by the API lifespan or DealAnalysisPipeline.from_settings().
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / '.env'


class Settings(BaseSettings):
    """Service settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=_env_file if _env_file.exists() else None,
        extra='ignore',
    )

    # OpenAI
    OPENAI_API_KEY: str = ''
    OPENAI_CHAT_MODEL: str = 'gpt-4.1-mini'

    # Postgres (optional; persistence is disabled without it)
    DATABASE_URL: str | None = None
    POSTGRES_SETUP_SCHEMA: bool = False

    # Industry standards lookup (optional; prompts omit benchmarks without it)
    STANDARDS_API_URL: str | None = None
    STANDARDS_API_KEY: str | None = None
    STANDARDS_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0, le=60)

    # Pipeline
    MODEL_CALL_TIMEOUT_SECONDS: float = Field(default=45.0, gt=0, le=300)
    MAX_STAGE_CONCURRENCY: int = Field(default=4, ge=1, le=16)
    MAX_EXPENSE_CONCURRENCY: int = Field(default=8, ge=1, le=32)
    PERSISTENCE_RETRY_ATTEMPTS: int = Field(default=3, ge=1, le=10)
    PERSISTENCE_RETRY_WAIT_SECONDS: float = Field(default=1.0, ge=0, le=30)
    RECOMMENDATION_INPUTS: str = 'market,financial,risk'

    # HTTP
    CORS_ORIGINS: str = '*'

    # Logging
    LOG_LEVEL: str = 'INFO'
    LOG_JSON: bool = False

    @property
    def recommendation_inputs(self) -> tuple[str, ...]:
        """Stage names fed to the recommendation synthesizer."""
        return tuple(
            name.strip().lower()
            for name in self.RECOMMENDATION_INPUTS.split(',')
            if name.strip()
        )

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(',') if o.strip()] or ['*']

    def validate_required(self) -> list[str]:
        """
        Validate that required configuration is present.

        Returns:
            List of missing required configuration keys
        """
        missing = []
        if not self.OPENAI_API_KEY:
            missing.append('OPENAI_API_KEY')
        return missing


@lru_cache
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()
