"""
Shared configuration management for the Portfolio Roast gateway.
"""

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        populate_by_name=True,
    )

    # Environment
    env: str = Field(default="local", validation_alias=AliasChoices("ACCESS_ENV", "env"))
    log_level: str = Field(default="info", validation_alias=AliasChoices("ACCESS_LOG_LEVEL", "log_level"))

    # Upstream analysis backend
    backend_url: str = Field(
        default="http://localhost:8080",
        validation_alias=AliasChoices("ACCESS_BACKEND_URL", "GO_BACKEND_URL", "backend_url"),
    )
    backend_timeout_seconds: float = Field(
        default=30.0,
        validation_alias=AliasChoices("ACCESS_BACKEND_TIMEOUT_SECONDS", "backend_timeout_seconds"),
    )
    analytics_timeout_seconds: float = Field(
        default=5.0,
        validation_alias=AliasChoices("ACCESS_ANALYTICS_TIMEOUT_SECONDS", "analytics_timeout_seconds"),
    )

    # Analytics ingestion
    analytics_api_key: str = Field(
        default="roast-analytics-dev-key",
        validation_alias=AliasChoices("ACCESS_ANALYTICS_API_KEY", "ANALYTICS_API_KEY", "analytics_api_key"),
    )
    metrics_store_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("ACCESS_METRICS_STORE_URL", "metrics_store_url"),
    )

    # Degradation policy
    default_retry_after_seconds: int = Field(
        default=60,
        validation_alias=AliasChoices("ACCESS_DEFAULT_RETRY_AFTER_SECONDS", "default_retry_after_seconds"),
    )
    fallback_risk_score: int = Field(
        default=50,
        validation_alias=AliasChoices("ACCESS_FALLBACK_RISK_SCORE", "fallback_risk_score"),
    )

    # Observability
    enable_tracing: bool = Field(
        default=False, validation_alias=AliasChoices("ACCESS_ENABLE_TRACING", "enable_tracing")
    )
    otel_exporter: str = Field(
        default="http://localhost:4317", validation_alias=AliasChoices("ACCESS_OTEL_EXPORTER", "otel_exporter")
    )
    enable_console_tracing: bool = Field(
        default=False,
        validation_alias=AliasChoices("ACCESS_ENABLE_CONSOLE_TRACING", "enable_console_tracing"),
    )


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
