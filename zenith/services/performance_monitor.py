"""In-memory query performance monitor."""

import re
from datetime import datetime, timedelta

from zenith.constants import (
    DEFAULT_MAX_METRICS,
    DEFAULT_SLOW_QUERY_THRESHOLD_MS,
    MAX_SANITIZED_QUERY_LENGTH,
    PATTERN_ANALYSIS_WINDOW,
)
from zenith.log import format_context, get_logger
from zenith.models.domain.metrics import (
    PerformanceSummary,
    QueryFrequencyStats,
    QueryPerformanceMetric,
)

logger = get_logger(__name__)

_STRING_LITERAL = re.compile(r"'[^']*'")
_POSITIONAL_PARAM = re.compile(r"\$\d+")

QUERY_TYPES = (
    ("select", "SELECT"),
    ("insert", "INSERT"),
    ("update", "UPDATE"),
    ("delete", "DELETE"),
    ("with", "CTE"),
)


class PerformanceMonitor:
    """Keeps a bounded list of recent query measurements.

    When the list grows past ``max_metrics`` only the newest half is kept.
    """

    def __init__(
        self,
        max_metrics: int = DEFAULT_MAX_METRICS,
        slow_query_threshold_ms: float = DEFAULT_SLOW_QUERY_THRESHOLD_MS,
    ) -> None:
        self.max_metrics = max_metrics
        self.slow_query_threshold_ms = slow_query_threshold_ms
        self._metrics: list[QueryPerformanceMetric] = []

    def __len__(self) -> int:
        return len(self._metrics)

    def track_query(
        self,
        query: str,
        duration: float,
        success: bool,
        error: str | None = None,
        row_count: int | None = None,
        user_id: str | None = None,
        timestamp: datetime | None = None,
    ) -> QueryPerformanceMetric:
        """Record one query execution.

        Args:
            query: Raw query text; literals are masked before storing
            duration: Elapsed milliseconds
            success: Whether the query succeeded
            error: Error text for failed queries
            row_count: Rows returned or affected
            user_id: User on whose behalf the query ran
            timestamp: Measurement time, defaults to now

        Returns:
            The stored metric
        """
        metric = QueryPerformanceMetric(
            query=self.sanitize_query(query),
            duration=duration,
            timestamp=timestamp or datetime.now(),
            success=success,
            error=error,
            row_count=row_count,
            user_id=user_id,
        )
        self._metrics.append(metric)

        if len(self._metrics) > self.max_metrics:
            self._metrics = self._metrics[-(self.max_metrics // 2) :]

        if duration > self.slow_query_threshold_ms:
            logger.warning(
                "Slow query detected: "
                + format_context(query=metric.query, duration=duration, user_id=user_id)
            )

        if not success and error:
            logger.error(
                f"Query error: {error} "
                + format_context(query=metric.query, user_id=user_id)
            )

        return metric

    @staticmethod
    def sanitize_query(query: str) -> str:
        """Mask string literals and positional parameters, cap the length."""
        masked = _STRING_LITERAL.sub("'***'", query)
        masked = _POSITIONAL_PARAM.sub("$***", masked)
        return masked[:MAX_SANITIZED_QUERY_LENGTH]

    @staticmethod
    def extract_query_type(query: str) -> str:
        normalized = query.strip().lower()
        for prefix, query_type in QUERY_TYPES:
            if normalized.startswith(prefix):
                return query_type
        return "OTHER"

    def clear_old_metrics(self, older_than_hours: float = 24) -> int:
        """Drop metrics older than the given age.

        Returns:
            Number of removed metrics
        """
        cutoff = datetime.now() - timedelta(hours=older_than_hours)
        before = len(self._metrics)
        self._metrics = [m for m in self._metrics if m.timestamp > cutoff]
        removed = before - len(self._metrics)

        logger.info(
            "Cleared old metrics: "
            + format_context(removed=removed, remaining=len(self._metrics))
        )
        return removed

    def export_metrics(self) -> list[QueryPerformanceMetric]:
        return list(self._metrics)

    def get_slow_queries_report(self, limit: int = 20) -> list[QueryPerformanceMetric]:
        slow = [m for m in self._metrics if m.duration > self.slow_query_threshold_ms]
        return sorted(slow, key=lambda m: m.duration, reverse=True)[:limit]

    def get_error_queries_report(self, limit: int = 20) -> list[QueryPerformanceMetric]:
        failed = [m for m in self._metrics if not m.success]
        return sorted(failed, key=lambda m: m.timestamp, reverse=True)[:limit]

    def get_query_frequency_analysis(self) -> dict[str, QueryFrequencyStats]:
        """Aggregate count, mean duration and error rate per query type."""
        totals: dict[str, list[float]] = {}
        errors: dict[str, int] = {}

        for metric in self._metrics:
            query_type = self.extract_query_type(metric.query)
            totals.setdefault(query_type, []).append(metric.duration)
            if not metric.success:
                errors[query_type] = errors.get(query_type, 0) + 1

        return {
            query_type: QueryFrequencyStats(
                count=len(durations),
                avg_duration=sum(durations) / len(durations),
                error_rate=errors.get(query_type, 0) / len(durations),
            )
            for query_type, durations in totals.items()
        }

    def generate_index_recommendations(self) -> list[str]:
        """Suggest indexes based on patterns in recent queries."""
        user_filtering = date_ranges = text_search = type_filtering = False

        for metric in self._metrics[-PATTERN_ANALYSIS_WINDOW:]:
            query = metric.query.lower()
            user_filtering |= "user_id" in query
            date_ranges |= "due_date" in query or "created_at" in query
            text_search |= "like" in query or "title" in query
            type_filtering |= "type" in query

        recommendations = []
        if user_filtering:
            recommendations.append(
                "Consider composite index on (user_id, created_at) "
                "for better user-specific queries"
            )
        if date_ranges:
            recommendations.append(
                "Consider index on due_date_iso for date range queries"
            )
        if text_search:
            recommendations.append(
                "Consider full-text index on title and summary for text search"
            )
        if type_filtering:
            recommendations.append(
                "Consider index on item_type for type-based filtering"
            )
        return recommendations

    def get_performance_summary(self, window_hours: float = 1) -> PerformanceSummary:
        """Summarise queries recorded within the last ``window_hours``."""
        cutoff = datetime.now() - timedelta(hours=window_hours)
        recent = [m for m in self._metrics if m.timestamp > cutoff]

        successful = [m for m in recent if m.success]
        total = len(recent)
        slow = sorted(
            (m for m in recent if m.duration > self.slow_query_threshold_ms),
            key=lambda m: m.duration,
            reverse=True,
        )

        return PerformanceSummary(
            total_queries=total,
            average_response_time=(
                sum(m.duration for m in successful) / len(successful)
                if successful
                else 0.0
            ),
            slow_query_count=len(slow),
            error_rate=(total - len(successful)) / total if total else 0.0,
            top_slow_queries=[m.query for m in slow[:5]],
            recommendations=self.generate_index_recommendations(),
        )
