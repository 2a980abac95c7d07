"""Global pytest configuration and fixtures."""

from collections.abc import Generator
from logging import Logger
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlmodel import Session

from zenith import setup_test_logging
from zenith.database.engine import create_database_tables
from zenith.services.performance_monitor import PerformanceMonitor


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Setup test logging for all tests."""
    setup_test_logging()


@pytest.fixture(scope="function")
def logger() -> Logger:
    """Provide a logger instance for tests."""
    from zenith import get_logger

    return get_logger("test")


@pytest.fixture(scope="function")
def mock_db_engine(tmp_path: Path) -> Generator[Engine, None, None]:
    """Create a real database engine for testing using a file-based database."""
    db_path = tmp_path / "test.db"
    database_url = f"sqlite:///{db_path}"

    engine = create_engine(
        database_url,
        echo=False,
        connect_args={
            "check_same_thread": False,
            "timeout": 60.0,
        },
        pool_pre_ping=True,
    )
    create_database_tables(engine)

    yield engine

    engine.dispose()


@pytest.fixture(scope="function")
def mock_db_session(mock_db_engine: Engine) -> Generator[Session, None, None]:
    with Session(mock_db_engine) as session:
        yield session


@pytest.fixture
def monitor() -> PerformanceMonitor:
    """Provide an empty performance monitor."""
    return PerformanceMonitor(max_metrics=100, slow_query_threshold_ms=1000.0)
