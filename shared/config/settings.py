"""
Centralized configuration using Pydantic Settings
Loads from environment variables and .env file
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings for the symbol master sync job
    All settings can be overridden by environment variables
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # =============================================
    # API KEYS
    # =============================================
    finnhub_api_key: str = Field(..., description="Finnhub API key")

    # =============================================
    # POSTGRESQL
    # =============================================
    database_url: str = Field(..., description="PostgreSQL connection URL")
    db_pool_min_size: int = Field(default=1, description="Minimum pool size")
    db_pool_max_size: int = Field(default=5, description="Maximum pool size")
    db_command_timeout: float = Field(default=60.0, description="Query timeout in seconds")

    @property
    def async_database_url(self) -> str:
        """Get PostgreSQL URL for asyncpg (strips SQLAlchemy driver suffixes)"""
        for prefix in ("postgresql+asyncpg://", "postgresql+psycopg2://", "postgres://"):
            if self.database_url.startswith(prefix):
                return "postgresql://" + self.database_url[len(prefix):]
        return self.database_url

    # =============================================
    # FINNHUB
    # =============================================
    finnhub_base_url: str = Field(
        default="https://finnhub.io/api/v1",
        description="Finnhub REST base URL"
    )
    finnhub_requests_per_minute: int = Field(default=60, description="Profile request quota per minute")
    finnhub_max_retries: int = Field(default=3, description="Retries after an HTTP 429 before falling back")
    finnhub_retry_delay_seconds: float = Field(default=2.0, description="Fixed delay between 429 retries")
    finnhub_http_timeout_seconds: float = Field(default=30.0, description="HTTP timeout per request")

    # =============================================
    # SYNC JOB
    # =============================================
    sync_market: str = Field(default="US", description="Exchange filter for the symbol universe")
    active_ratio_threshold: float = Field(
        default=0.9,
        description="Minimum active/universe ratio before a validation error is raised"
    )

    # =============================================
    # LOGGING
    # =============================================
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="json", description="Log format (json or text)")

    # =============================================
    # TELEMETRY
    # =============================================
    otel_service_name: str = Field(default="symbol-sync", description="OpenTelemetry service name")
    otel_exporter_otlp_metrics_endpoint: Optional[str] = Field(
        default=None,
        description="OTLP gRPC endpoint for metrics (disabled when unset)"
    )
    otel_metric_export_interval_ms: int = Field(default=10000, description="Metric export interval")

    @field_validator("finnhub_requests_per_minute", "db_pool_max_size")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be greater than zero")
        return value

    @field_validator("finnhub_max_retries")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must not be negative")
        return value

    @field_validator("active_ratio_threshold")
    @classmethod
    def _ratio(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError("must be between 0 and 1")
        return value

    @field_validator("sync_market")
    @classmethod
    def _upper_market(cls, value: str) -> str:
        return value.strip().upper()

    @property
    def metrics_enabled(self) -> bool:
        return bool(self.otel_exporter_otlp_metrics_endpoint)


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings (process entry point only)"""
    return Settings()
