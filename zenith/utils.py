"""Utility functions for the application."""

import calendar
from datetime import UTC, datetime, timedelta

from zenith.log import get_logger

logger = get_logger(__name__)


def get_current_timestamp() -> str:
    """Get current timestamp in ISO8601 format."""
    return datetime.now(UTC).isoformat()


def parse_datetime(date_str: str | None) -> datetime | None:
    """Parse datetime string to Python datetime object."""
    if not date_str:
        return None

    try:
        # Try parsing ISO format
        return datetime.fromisoformat(date_str.replace("Z", "+00:00"))
    except ValueError:
        pass

    try:
        return datetime.strptime(date_str, "%Y-%m-%dT%H:%M:%S%z")
    except ValueError:
        logger.warning(f"Could not parse date: {date_str}")
        return None


def add_months(base: datetime, months: int) -> datetime:
    """Add calendar months, letting an out-of-range day spill into the next month.

    The day of month is kept as-is, so Jan 31 + 1 month lands on Mar 3 in a
    common year (Feb 31 does not exist and the three extra days roll over).

    Args:
        base: Starting point
        months: Number of months to add (may be negative)

    Returns:
        Shifted datetime with the time of day preserved
    """
    month_index = base.month - 1 + months
    year = base.year + month_index // 12
    month = month_index % 12 + 1

    days_in_month = calendar.monthrange(year, month)[1]
    overflow = max(0, base.day - days_in_month)
    shifted = base.replace(year=year, month=month, day=min(base.day, days_in_month))
    return shifted + timedelta(days=overflow)


def start_of_day(moment: datetime) -> datetime:
    """Return local midnight of the given moment's calendar day."""
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)
