"""Subtask repository."""

from sqlalchemy import delete
from sqlmodel import Session, col, select

from zenith.database.repository.base import BaseRepository
from zenith.log import get_logger
from zenith.models.rows import MindFlowItem, Subtask
from zenith.services.performance_monitor import PerformanceMonitor

logger = get_logger(__name__)


class SubtaskRepository(BaseRepository[Subtask]):
    """Queries against the dependent subtasks table."""

    def __init__(self, db: Session, monitor: PerformanceMonitor | None = None) -> None:
        super().__init__(Subtask, db, monitor)

    def find_orphaned(self) -> list[Subtask]:
        """Subtasks whose parent item no longer exists.

        Subtasks without any parent id are not orphans here; the validator
        reports them as missing a required field instead.
        """
        parent_ids = select(MindFlowItem.id)
        statement = select(Subtask).where(
            col(Subtask.parent_item_id).is_not(None),
            col(Subtask.parent_item_id).not_in(parent_ids),
        )
        with self._tracked(
            "select id, parent_item_id from subtasks "
            "where parent_item_id not in (select id from mind_flow_items)"
        ):
            return list(self.db.exec(statement).all())

    def delete_by_ids(self, ids: list[str]) -> int:
        """Delete subtasks by id and return the number of removed rows."""
        if not ids:
            return 0

        statement = delete(Subtask).where(col(Subtask.id).in_(ids))
        try:
            with self._tracked("delete from subtasks where id in ($1)"):
                # Session.execute for bulk DELETE statements
                result = self.db.execute(statement)
                self.db.commit()
        except Exception as exc:
            self.db.rollback()
            logger.error(f"Failed to delete subtasks {ids}: {exc}")
            raise

        deleted = result.rowcount if result.rowcount is not None else len(ids)
        logger.debug(f"Deleted {deleted} subtasks")
        return int(deleted)
