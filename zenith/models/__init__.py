"""Unified models package for the zenith system."""

from zenith.models.domain.maintenance import (
    MaintenanceJob,
    MaintenanceResult,
    MaintenanceSchedule,
    MaintenanceStats,
    MaintenanceTask,
    MaintenanceTaskDefinition,
    TaskScheduleState,
)
from zenith.models.domain.metrics import (
    PerformanceSummary,
    QueryFrequencyStats,
    QueryPerformanceMetric,
)
from zenith.models.domain.validation import (
    DataConsistencyReport,
    FixReport,
    ValidationIssue,
    ValidationResult,
    ValidationWarning,
)
from zenith.models.rows import MindFlowItem, Subtask

__all__ = [
    "MaintenanceJob",
    "MaintenanceResult",
    "MaintenanceSchedule",
    "MaintenanceStats",
    "MaintenanceTask",
    "MaintenanceTaskDefinition",
    "TaskScheduleState",
    "PerformanceSummary",
    "QueryFrequencyStats",
    "QueryPerformanceMetric",
    "DataConsistencyReport",
    "FixReport",
    "ValidationIssue",
    "ValidationResult",
    "ValidationWarning",
    "MindFlowItem",
    "Subtask",
]
