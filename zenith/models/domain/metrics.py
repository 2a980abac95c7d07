"""Query performance domain models."""

from datetime import datetime

from pydantic import BaseModel, Field


class QueryPerformanceMetric(BaseModel):
    """One recorded query execution."""

    query: str
    duration: float = Field(description="Elapsed milliseconds")
    timestamp: datetime
    success: bool
    error: str | None = None
    row_count: int | None = None
    user_id: str | None = None


class QueryFrequencyStats(BaseModel):
    """Per query-type aggregate."""

    count: int
    avg_duration: float
    error_rate: float


class PerformanceSummary(BaseModel):
    """Recent query performance overview."""

    total_queries: int
    average_response_time: float
    slow_query_count: int
    error_rate: float
    top_slow_queries: list[str]
    recommendations: list[str] = Field(default_factory=list)
