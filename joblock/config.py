"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables with sensible defaults.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Store
    store_backend: str = "redis"  # redis or memory
    redis_url: str = "redis://localhost:6379/0"
    redis_socket_timeout_seconds: float = 5.0

    # Lock keys
    lock_key_prefix: str = "lock:"
    lock_key_separator: str = "-"

    # Worker Configuration
    queue_key_prefix: str = "queue:"
    worker_id: str | None = None
    worker_queues: list[str] = ["default"]
    worker_poll_interval_seconds: float = 1.0
    worker_job_modules: list[str] = []

    # Inspector Configuration
    inspector_stale_after_seconds: int = 3600
    inspector_patterns: list[str] = []  # extra scan patterns for custom lock keys

    # Observability
    otel_enabled: bool = False
    otel_exporter_otlp_endpoint: str = "http://localhost:4317"
    otel_service_name: str = "joblock"
    prometheus_port: int = 9090
    log_level: str = "INFO"
    log_format: str = "json"  # json or console


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
