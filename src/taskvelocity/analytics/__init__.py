"""Derived velocity analytics."""

from taskvelocity.analytics.calculator import (
    MetricsCalculator,
    consistency_rating,
    consistency_score,
    project_completion,
    remaining_tasks,
    rolling_average,
    trend_percent,
)

__all__ = [
    "MetricsCalculator",
    "consistency_rating",
    "consistency_score",
    "project_completion",
    "remaining_tasks",
    "rolling_average",
    "trend_percent",
]
