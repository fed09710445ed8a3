from __future__ import annotations

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "GOURMET Enrichment"
    app_version: str = "0.1.0"
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Database
    database_url: str | None = None
    db_pool_min_size: int = 1
    db_pool_max_size: int = 5
    auto_create_schema: bool = False

    # Manus agent (primary enrichment provider)
    manus_api_key: str | None = None
    manus_base_url: str = "https://api.manus.ai/v1"
    manus_task_base_url: str = "https://manus.ai/tasks"
    manus_agent_profile: str = "manus-1.6"
    manus_task_mode: str = "agent"
    manus_timeout_seconds: float = 30.0
    manus_task_ttl_hours: int = 72

    # Lovable AI gateway (synchronous fallback, OpenAI-compatible)
    lovable_api_key: str | None = None
    lovable_base_url: str = "https://ai.gateway.lovable.dev/v1"
    lovable_model: str = "google/gemini-2.5-flash"
    lovable_temperature: float = 0.7

    # Polling
    enrichment_poll_interval_seconds: float = 30.0

    # Metrics
    metrics_backend: str = "stdout"
    metrics_namespace: str = "gourmet"
    metrics_disable: bool = False
    metrics_sample_rate: float = 1.0
    metrics_statsd_host: str = "127.0.0.1"
    metrics_statsd_port: int = 8125

    # Security
    cors_origins: list[str] = []  # Empty by default for security

    # Sentry
    sentry_dsn: str | None = None

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    model_config = ConfigDict(env_file=".env", case_sensitive=False)


settings = Settings()
