"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables with sensible defaults.
"""

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from readyq.constants import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_QUEUE_NAME,
    BackoffStrategy,
    StoreBackend,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Store
    store_backend: StoreBackend = StoreBackend.REDIS
    redis_url: str = "redis://localhost:6379/0"
    redis_socket_timeout_seconds: float = 5.0
    queue_name: str = DEFAULT_QUEUE_NAME

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Worker Configuration
    worker_id: str | None = None
    worker_poll_interval_seconds: float = 1.0
    worker_batch_size: int = Field(default=DEFAULT_BATCH_SIZE, ge=1)
    worker_heartbeat_interval_seconds: float = 10.0

    # Leasing (disabled when unset)
    lease_seconds: float | None = None

    # Reaper Configuration
    reaper_interval_seconds: float = 10.0
    reaper_batch_size: int = 100

    # Retry policy
    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1)
    backoff_strategy: BackoffStrategy = BackoffStrategy.EXPONENTIAL
    backoff_base_seconds: float = 1.0
    backoff_max_seconds: float = 300.0

    # Observability
    otel_exporter_otlp_endpoint: str = "http://localhost:4317"
    otel_service_name: str = "readyq"
    tracing_enabled: bool = False
    log_level: str = "INFO"
    log_format: str = "json"  # json or console

    @model_validator(mode="after")
    def _heartbeat_within_lease(self) -> "Settings":
        if (
            self.lease_seconds is not None
            and self.worker_heartbeat_interval_seconds >= self.lease_seconds
        ):
            raise ValueError(
                "worker_heartbeat_interval_seconds must be shorter than lease_seconds"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
