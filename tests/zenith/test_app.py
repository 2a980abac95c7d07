"""Tests for the maintenance app wiring."""

from pathlib import Path

import pytest
from sqlalchemy.engine import Engine

from zenith.app import MaintenanceApp
from zenith.config import Settings
from zenith.types import Environment


@pytest.fixture
def app_settings() -> Settings:
    return Settings(environment=Environment.TESTING, maintenance_tick_seconds=30)


def test_app_wiring(app_settings: Settings, mock_db_engine: Engine) -> None:
    app = MaintenanceApp(app_settings, engine=mock_db_engine)

    assert app.engine is mock_db_engine
    assert app.jobs.engine is mock_db_engine
    assert app.validator.monitor is app.monitor
    assert app.scheduler.tick_seconds == 30
    assert len(app.scheduler.get_tasks()) == 8


def test_app_creates_database(tmp_path: Path) -> None:
    db_path = tmp_path / "zenith.db"
    app = MaintenanceApp(
        Settings(environment=Environment.PRODUCTION, database_path=db_path)
    )

    assert db_path.exists()
    assert app.validator.get_item_count() == 0


@pytest.mark.asyncio
async def test_app_lifecycle(app_settings: Settings, mock_db_engine: Engine) -> None:
    async with MaintenanceApp(app_settings, engine=mock_db_engine) as app:
        assert app.scheduler.is_running is True

    assert app.scheduler.is_running is False


@pytest.mark.asyncio
async def test_app_maintenance_disabled(mock_db_engine: Engine) -> None:
    settings = Settings(environment=Environment.TESTING, maintenance_enabled=False)
    app = MaintenanceApp(settings, engine=mock_db_engine)

    await app.start()
    assert app.scheduler.is_running is False
    await app.stop()


@pytest.mark.asyncio
async def test_manual_run_through_app(
    app_settings: Settings, mock_db_engine: Engine
) -> None:
    app = MaintenanceApp(app_settings, engine=mock_db_engine)

    result = await app.scheduler.run_task_manually("backup_verification")
    assert result.success is True

    stats = app.scheduler.get_maintenance_stats()
    assert stats.tasks_run_today == 1
