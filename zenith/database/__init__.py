"""Database access for maintenance jobs."""

from .engine import (
    create_database_engine,
    create_database_tables,
    drop_database_tables,
    reset_database,
)
from .repository import BaseRepository, ItemRepository, SubtaskRepository

__all__ = [
    "BaseRepository",
    "ItemRepository",
    "SubtaskRepository",
    "create_database_engine",
    "create_database_tables",
    "drop_database_tables",
    "reset_database",
]
