"""Settings and configuration management."""

import logging
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables or a .env file."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # AI Processing
    openrouter_api_key: Optional[str] = Field(None, description="OpenRouter")
    openrouter_model: str = Field(
        "openai/gpt-4o-mini", description="Model used for newsletter generation"
    )

    # Content Sources
    github_token: Optional[str] = Field(
        None, description="GitHub token, raises search API rate limits"
    )

    # Application Settings
    debug: bool = Field(False, description="Debug mode")
    log_level: str = Field("INFO", description="Log level")

    # API Timeout Settings (in seconds)
    openrouter_timeout: float = Field(
        60.0, ge=5.0, le=120.0, description="OpenRouter API request timeout in seconds"
    )
    source_fetch_timeout: Optional[float] = Field(
        None,
        gt=0.0,
        le=300.0,
        description="Per-request timeout for content providers; unset means no explicit timeout",
    )

    # OpenRouter Rate Limiting Settings
    openrouter_min_request_interval: float = Field(
        3.2,
        ge=0.0,
        le=10.0,
        description="Minimum seconds between OpenRouter requests (free tier: 20 req/min)",
    )

    # Trending source cache
    trending_cache_ttl_seconds: float = Field(
        3600.0, ge=0.0, description="How long aggregated sources stay cached"
    )
    trending_cache_max_entries: int = Field(
        100, ge=1, le=10000, description="Cache capacity before oldest entries are evicted"
    )

    # Orchestration
    max_retries: int = Field(
        1, ge=0, le=10, description="Generation retries after a failed attempt"
    )
    enable_verification: bool = Field(
        True, description="Verify citations after generation"
    )

    default_user_agent: str = Field(
        "Briefwise-Bot/1.0",
        min_length=5,
        max_length=100,
        description="Default User-Agent for HTTP requests",
    )

    @model_validator(mode="after")
    def warn_missing_generation_key(self) -> "Settings":
        """Warn early when generation cannot reach the model provider."""
        if not self.openrouter_api_key and self.debug:
            logger.debug(
                "OPENROUTER_API_KEY not set - newsletter generation will fail"
            )
        return self
