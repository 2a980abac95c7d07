"""Collaborator services used by maintenance jobs."""

from .performance_monitor import PerformanceMonitor

__all__ = ["PerformanceMonitor"]
