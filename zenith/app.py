"""Maintenance service wiring and lifecycle."""

import asyncio
from typing import Any

from sqlalchemy.engine import Engine

from zenith.config import Settings
from zenith.config import settings as default_settings
from zenith.database.engine import create_database_engine, create_database_tables
from zenith.log import get_logger, setup_logging
from zenith.maintenance import MaintenanceJobs, MaintenanceScheduler
from zenith.services.data_validator import DataValidator
from zenith.services.performance_monitor import PerformanceMonitor

logger = get_logger(__name__)


class MaintenanceApp:
    """Owns the database engine, the shared services and the scheduler."""

    def __init__(self, settings: Settings | None = None, engine: Engine | None = None):
        self.settings = settings or default_settings

        logger.info("Initializing database...")
        if engine:
            self.engine = engine
        else:
            self.engine = create_database_engine(
                self.settings.environment, db_path=self.settings.database_path
            )
        create_database_tables(self.engine)

        self.monitor = PerformanceMonitor(
            max_metrics=self.settings.metrics_max_entries,
            slow_query_threshold_ms=self.settings.slow_query_threshold_ms,
        )
        self.validator = DataValidator(self.engine, self.monitor)
        self.jobs = MaintenanceJobs(
            monitor=self.monitor,
            validator=self.validator,
            engine=self.engine,
            settings=self.settings,
        )
        self.scheduler = MaintenanceScheduler(
            self.jobs.definitions(),
            tick_seconds=self.settings.maintenance_tick_seconds,
            duration_history_size=self.settings.maintenance_duration_history,
        )

    async def start(self) -> None:
        if not self.settings.maintenance_enabled:
            logger.warning("Maintenance scheduling is disabled")
            return

        await self.scheduler.start()

    async def stop(self) -> None:
        if self.scheduler.is_running:
            await self.scheduler.stop()
        await self.scheduler.wait_stopped()

    async def __aenter__(self) -> "MaintenanceApp":
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.stop()


async def serve(settings: Settings | None = None) -> None:
    """Run the maintenance scheduler until cancelled."""
    async with MaintenanceApp(settings):
        await asyncio.Event().wait()


def main() -> None:
    setup_logging(level=default_settings.log_level)
    try:
        asyncio.run(serve())
    except KeyboardInterrupt:
        logger.info("Maintenance service interrupted")


if __name__ == "__main__":
    main()
