"""Configuration management for the zenith maintenance system."""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .constants import (
    ARCHIVE_AGE_DAYS,
    DEFAULT_DURATION_HISTORY,
    DEFAULT_MAX_METRICS,
    DEFAULT_SLOW_QUERY_THRESHOLD_MS,
    DEFAULT_TICK_SECONDS,
    METRICS_RETENTION_HOURS,
)
from .types import Environment

TRUE_VALUES = ("true", "1", "yes", "on")


class Settings(BaseModel):
    """Application settings."""

    version: str = Field(default="0.1.0", description="Application version")
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment (development/production/testing)",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    # Database
    database_path: Path | None = Field(
        default=None,
        description="SQLite database file; environment default when unset",
    )

    # Scheduler
    maintenance_enabled: bool = Field(
        default=True, description="Whether the maintenance scheduler is started"
    )
    maintenance_tick_seconds: float = Field(
        default=DEFAULT_TICK_SECONDS,
        gt=0,
        description="Interval between due-task checks in seconds",
    )
    maintenance_duration_history: int = Field(
        default=DEFAULT_DURATION_HISTORY,
        ge=1,
        description="Number of recent run durations kept per task",
    )

    # Performance metrics
    metrics_retention_hours: int = Field(
        default=METRICS_RETENTION_HOURS,
        ge=1,
        description="Metrics older than this are removed by maintenance",
    )
    metrics_max_entries: int = Field(
        default=DEFAULT_MAX_METRICS,
        ge=2,
        description="Maximum number of query metrics kept in memory",
    )
    slow_query_threshold_ms: float = Field(
        default=DEFAULT_SLOW_QUERY_THRESHOLD_MS,
        description="Queries slower than this are reported as slow",
    )

    # Archiving
    archive_age_days: int = Field(
        default=ARCHIVE_AGE_DAYS,
        ge=1,
        description="Completed items older than this can be archived",
    )

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.environment == Environment.TESTING


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in TRUE_VALUES


def load_settings() -> Settings:
    """Load settings from environment variables."""

    # Load .env file if it exists
    load_dotenv()

    database_path = os.getenv("ZENITH_DATABASE_PATH")

    return Settings(
        environment=Environment(os.getenv("ZENITH_ENV", "development")),
        log_level=os.getenv("ZENITH_LOG_LEVEL", "INFO").upper(),
        database_path=Path(database_path) if database_path else None,
        maintenance_enabled=_env_bool("ZENITH_MAINTENANCE_ENABLED", "true"),
        maintenance_tick_seconds=float(
            os.getenv("ZENITH_MAINTENANCE_TICK_SECONDS", str(DEFAULT_TICK_SECONDS))
        ),
        maintenance_duration_history=int(
            os.getenv(
                "ZENITH_MAINTENANCE_DURATION_HISTORY", str(DEFAULT_DURATION_HISTORY)
            )
        ),
        metrics_retention_hours=int(
            os.getenv("ZENITH_METRICS_RETENTION_HOURS", str(METRICS_RETENTION_HOURS))
        ),
        metrics_max_entries=int(
            os.getenv("ZENITH_METRICS_MAX_ENTRIES", str(DEFAULT_MAX_METRICS))
        ),
        slow_query_threshold_ms=float(
            os.getenv(
                "ZENITH_SLOW_QUERY_THRESHOLD_MS", str(DEFAULT_SLOW_QUERY_THRESHOLD_MS)
            )
        ),
        archive_age_days=int(
            os.getenv("ZENITH_ARCHIVE_AGE_DAYS", str(ARCHIVE_AGE_DAYS))
        ),
    )


# Global settings instance
settings = load_settings()
