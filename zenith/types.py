"""Common type definitions for the zenith system."""

from enum import Enum


class Environment(str, Enum):
    """Application environment types."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class Frequency(str, Enum):
    """How often a maintenance task is scheduled."""

    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class Priority(str, Enum):
    """Maintenance task priority (critical runs first)."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SchedulerState(str, Enum):
    """Lifecycle state of the maintenance scheduler."""

    STOPPED = "stopped"
    RUNNING = "running"


class Severity(str, Enum):
    """Severity of a data validation error."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ItemType(str, Enum):
    """Kinds of items stored by the productivity app."""

    TASK = "Tarefa"
    IDEA = "Ideia"
    NOTE = "Nota"
    REMINDER = "Lembrete"
    FINANCE = "Financeiro"
    MEETING = "Reunião"
