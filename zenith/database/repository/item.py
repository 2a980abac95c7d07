"""Item repository."""

from typing import Any

from sqlalchemy import func
from sqlmodel import Session, col, select

from zenith.database.repository.base import BaseRepository
from zenith.models.rows import MindFlowItem
from zenith.services.performance_monitor import PerformanceMonitor


class ItemRepository(BaseRepository[MindFlowItem]):
    """Queries against the primary items table."""

    def __init__(self, db: Session, monitor: PerformanceMonitor | None = None) -> None:
        super().__init__(MindFlowItem, db, monitor)

    def count_completed(self) -> int:
        statement = (
            select(func.count())
            .select_from(MindFlowItem)
            .where(col(MindFlowItem.completed).is_(True))
        )
        with self._tracked("select count(*) from mind_flow_items where completed"):
            return int(self.db.exec(statement).one())

    def count_by_type(self) -> dict[str, int]:
        """Count items grouped by item_type (NULL types are skipped)."""
        statement = (
            select(MindFlowItem.item_type, func.count())
            .where(col(MindFlowItem.item_type).is_not(None))
            .group_by(MindFlowItem.item_type)
        )
        with self._tracked(
            "select item_type, count(*) from mind_flow_items group by item_type"
        ):
            rows = self.db.exec(statement).all()
        return {str(item_type): int(count) for item_type, count in rows}

    def list_archivable(self, cutoff: str) -> list[MindFlowItem]:
        """Completed items created before the ISO8601 cutoff."""
        statement = select(MindFlowItem).where(
            col(MindFlowItem.created_at) < cutoff,
            col(MindFlowItem.completed).is_(True),
        )
        with self._tracked(
            "select id from mind_flow_items where created_at < $1 and completed"
        ):
            return list(self.db.exec(statement).all())

    def list_for_duplicate_check(self) -> list[MindFlowItem]:
        """All items, newest first."""
        statement = select(MindFlowItem).order_by(
            col(MindFlowItem.created_at).desc()
        )
        with self._tracked(
            "select id, title, item_type, user_id, created_at from mind_flow_items "
            "order by created_at desc"
        ):
            return list(self.db.exec(statement).all())

    def update_fields(self, item_id: str, **fields: Any) -> bool:
        """Apply column updates to a single item; False when it does not exist."""
        item = self.get_by_id(item_id)
        if item is None:
            return False

        for name, value in fields.items():
            setattr(item, name, value)
        self.update(item)
        return True
