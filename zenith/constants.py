"""Constants shared across the maintenance subsystem."""

from zenith.types import Priority

# Lower rank runs first
PRIORITY_RANK: dict[Priority, int] = {
    Priority.CRITICAL: 0,
    Priority.HIGH: 1,
    Priority.MEDIUM: 2,
    Priority.LOW: 3,
}

DEFAULT_TICK_SECONDS = 60.0
DEFAULT_DURATION_HISTORY = 20

# Performance monitor
DEFAULT_MAX_METRICS = 10000
DEFAULT_SLOW_QUERY_THRESHOLD_MS = 1000.0
MAX_SANITIZED_QUERY_LENGTH = 500
PATTERN_ANALYSIS_WINDOW = 1000

# Data validation
MAX_TITLE_LENGTH = 500
DUPLICATE_WINDOW_SECONDS = 60

# Built-in job horizons
METRICS_RETENTION_HOURS = 168
ARCHIVE_AGE_DAYS = 365
