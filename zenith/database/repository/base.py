"""Base repository with dependency injection pattern."""

import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Generic, TypeVar

from sqlalchemy import func
from sqlmodel import Session, SQLModel, select

from zenith.log import get_logger
from zenith.services.performance_monitor import PerformanceMonitor

logger = get_logger(__name__)

T = TypeVar("T", bound=SQLModel)


class BaseRepository(Generic[T]):
    """Base repository with dependency injection pattern.

    Rows are keyed by a string ``id`` column. When a performance monitor is
    given, every query is timed and reported to it.
    """

    def __init__(
        self,
        model: type[T],
        db: Session,
        monitor: PerformanceMonitor | None = None,
    ) -> None:
        self.model = model
        self.db = db
        self.monitor = monitor

    @property
    def table_name(self) -> str:
        return str(getattr(self.model, "__tablename__", self.model.__name__.lower()))

    @contextmanager
    def _tracked(self, query: str) -> Iterator[None]:
        """Time the wrapped block and report it to the monitor."""
        started = time.perf_counter()
        try:
            yield
        except Exception as exc:
            self._report(query, started, success=False, error=str(exc))
            raise
        self._report(query, started, success=True)

    def _report(
        self, query: str, started: float, success: bool, error: str | None = None
    ) -> None:
        if self.monitor is None:
            return
        duration_ms = (time.perf_counter() - started) * 1000
        self.monitor.track_query(query, duration_ms, success, error=error)

    def create(self, obj: T) -> T:
        try:
            with self._tracked(f"insert into {self.table_name}"):
                self.db.add(obj)
                self.db.commit()
                self.db.refresh(obj)
            logger.debug(f"Created {obj.model_dump()}")
        except Exception as exc:
            self.db.rollback()
            logger.error(f"Failed to create {obj.model_dump()}: {exc}")
            raise

        return obj

    def get_by_id(self, obj_id: str) -> T | None:
        with self._tracked(f"select * from {self.table_name} where id = $1"):
            return self.db.get(self.model, obj_id)

    def get_all(self, skip: int = 0, limit: int = 100) -> list[T]:
        """Get all objects with pagination."""
        statement = select(self.model).offset(skip).limit(limit)
        with self._tracked(f"select * from {self.table_name} limit {limit}"):
            return list(self.db.exec(statement).all())

    def list_all(self) -> list[T]:
        """Get every row of the table."""
        with self._tracked(f"select * from {self.table_name}"):
            return list(self.db.exec(select(self.model)).all())

    def update(self, obj: T) -> T:
        try:
            with self._tracked(f"update {self.table_name}"):
                self.db.add(obj)
                self.db.commit()
                self.db.refresh(obj)
        except Exception:
            self.db.rollback()
            raise
        return obj

    def delete(self, obj_id: str) -> bool:
        """Delete an object by ID."""
        obj = self.get_by_id(obj_id)
        if obj is None:
            return False

        try:
            with self._tracked(f"delete from {self.table_name} where id = $1"):
                self.db.delete(obj)
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return True

    def count(self) -> int:
        """Count all objects."""
        statement = select(func.count()).select_from(self.model)
        with self._tracked(f"select count(*) from {self.table_name}"):
            return int(self.db.exec(statement).one())
