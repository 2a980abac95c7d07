"""Repositories for the maintenance data store."""

from .base import BaseRepository
from .item import ItemRepository
from .subtask import SubtaskRepository

__all__ = [
    "BaseRepository",
    "ItemRepository",
    "SubtaskRepository",
]
