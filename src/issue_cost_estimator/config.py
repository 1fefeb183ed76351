"""Configuration settings for Issue Cost Estimator."""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RateLimitConfig(BaseModel):
    """Configuration for inbound request rate limiting.

    Each client gets two independent windows: a long daily window with a
    higher ceiling and a short window with a lower ceiling.
    """

    daily_limit: int = Field(
        default=100,
        ge=1,
        description="Requests allowed per client in the daily window",
    )
    daily_window_seconds: int = Field(
        default=24 * 60 * 60,
        ge=1,
        description="Length of the daily window in seconds",
    )
    short_limit: int = Field(
        default=10,
        ge=1,
        description="Requests allowed per client in the short window",
    )
    short_window_seconds: int = Field(
        default=5 * 60,
        ge=1,
        description="Length of the short window in seconds",
    )
    sweep_interval_seconds: int = Field(
        default=60 * 60,
        ge=1,
        description="How often expired client entries are swept from memory",
    )


class EstimationConfig(BaseModel):
    """Defaults for issue estimation.

    Request-level overrides are merged on top of these values by
    ``resolve_params`` before anything downstream sees them.
    """

    default_model: str = Field(
        default="gpt-4o-mini",
        description="Model used when the caller does not pick one",
    )
    available_models: list[str] = Field(
        default_factory=lambda: ["gpt-4o-mini", "gpt-4o", "gpt-4-turbo", "gpt-3.5-turbo"],
        description="Models offered to callers (informational)",
    )
    min_budget: float = Field(
        default=100,
        ge=0,
        description="Default lower bound of the overall budget (USD)",
    )
    max_budget: float = Field(
        default=1000,
        ge=0,
        description="Default upper bound of the overall budget (USD)",
    )
    temperature: float = Field(
        default=0.3,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for the inference call",
    )
    group_size: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Issues estimated concurrently per group",
    )
    max_retries: int = Field(
        default=2,
        ge=0,
        le=10,
        description="Retries for a failed inference call (transport errors only)",
    )
    retry_base_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Base delay for exponential backoff between retries",
    )

    @model_validator(mode="after")
    def _check_budget_order(self) -> "EstimationConfig":
        if self.min_budget > self.max_budget:
            raise ValueError("min_budget must be less than or equal to max_budget")
        return self


class PacingConfig(BaseModel):
    """Configuration for GitHub request fan-out and stream buffering."""

    issues_per_page: int = Field(
        default=100,
        ge=1,
        le=100,
        description="Page size for issue and comment listing (GitHub max 100)",
    )
    max_concurrent_requests: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Maximum parallel comment-fetch requests",
    )
    stream_queue_size: int = Field(
        default=64,
        ge=1,
        description="Progress events buffered before the producer waits",
    )


class StorageConfig(BaseModel):
    """Configuration for estimation history storage."""

    persist_results: bool = Field(
        default=True,
        description="Record completed runs in the database",
    )


class ServerConfig(BaseModel):
    """Configuration for the HTTP server."""

    host: str = Field(default="127.0.0.1", description="Bind address")
    port: int = Field(default=8000, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Configuration for logging behavior.

    Controls file logging, rotation, and output format.
    """

    log_file: str | None = Field(
        default=None,
        description="Optional path for file logging (enables rotation)",
    )
    rotation: str = Field(
        default="10 MB",
        description="When to rotate log file (e.g., '10 MB', '1 day')",
    )
    retention: str = Field(
        default="7 days",
        description="How long to keep rotated logs",
    )
    serialize: bool = Field(
        default=False,
        description="If True, output JSON format to file",
    )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # --------------------------------------------------------------------------
    # Database
    # --------------------------------------------------------------------------
    database_url: str = Field(
        default="sqlite+aiosqlite:///./issue_estimates.db",
        description="Async SQLite database connection string",
    )

    # --------------------------------------------------------------------------
    # External APIs
    # --------------------------------------------------------------------------
    github_token: str = Field(
        default="",
        description="GitHub personal access token (optional, raises quota)",
    )
    openai_api_key: str = Field(
        default="",
        description="OpenAI API key",
    )

    # --------------------------------------------------------------------------
    # Application
    # --------------------------------------------------------------------------
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # --------------------------------------------------------------------------
    # Sections
    # --------------------------------------------------------------------------
    rate_limit: RateLimitConfig = Field(
        default_factory=RateLimitConfig,
        description="Inbound rate limit configuration",
    )
    estimation: EstimationConfig = Field(
        default_factory=EstimationConfig,
        description="Estimation defaults",
    )
    pacing: PacingConfig = Field(
        default_factory=PacingConfig,
        description="GitHub fan-out and stream buffering",
    )
    storage: StorageConfig = Field(
        default_factory=StorageConfig,
        description="Estimation history storage",
    )
    server: ServerConfig = Field(
        default_factory=ServerConfig,
        description="HTTP server binding",
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration (file output, rotation)",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
