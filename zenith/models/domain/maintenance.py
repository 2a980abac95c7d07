"""Maintenance domain models."""

from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from zenith.types import Frequency, Priority


class MaintenanceResult(BaseModel):
    """Outcome of one maintenance task execution."""

    success: bool
    message: str
    details: dict[str, Any] | None = None
    duration: float = Field(default=0.0, description="Elapsed milliseconds")
    errors: list[str] | None = None


MaintenanceJob = Callable[[], Awaitable[MaintenanceResult]]


class MaintenanceTaskDefinition(BaseModel):
    """Immutable description of a schedulable maintenance task."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    frequency: Frequency
    priority: Priority
    estimated_duration: int = Field(description="Advisory duration in minutes")
    enabled_by_default: bool = True
    run: MaintenanceJob = Field(exclude=True, repr=False)


class TaskScheduleState(BaseModel):
    """Scheduling state of a task; replaced on every change, never mutated."""

    model_config = ConfigDict(frozen=True)

    enabled: bool
    last_run: datetime | None = None
    next_run: datetime | None = None


class MaintenanceTask(BaseModel):
    """Point-in-time view of a registered task."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    frequency: Frequency
    priority: Priority
    estimated_duration: int
    enabled: bool
    last_run: datetime | None = None
    next_run: datetime | None = None
    in_progress: bool = False


class MaintenanceSchedule(BaseModel):
    """Full schedule as reported by the scheduler."""

    tasks: list[MaintenanceTask]
    is_running: bool
    last_maintenance_window: datetime | None = None
    next_maintenance_window: datetime | None = None


class MaintenanceStats(BaseModel):
    """Aggregate maintenance statistics."""

    total_tasks: int
    enabled_tasks: int
    tasks_run_today: int
    average_task_duration: float = Field(description="Mean duration in milliseconds")
    last_maintenance_run: datetime | None = None
