"""Derived velocity metrics.

Everything here is a pure function of a VelocityData snapshot and a reference
time. No formula raises or returns NaN/infinity on empty or all-zero input.
"""

import math
from collections import Counter
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence

import structlog

from taskvelocity.models.config import VelocitySettings
from taskvelocity.models.metrics import (
    AuthorStats,
    ConsistencyRating,
    RequiredOptionalSplit,
    SpecProgress,
    SpecTimeline,
    TimeDistribution,
    VelocityMetrics,
)
from taskvelocity.models.velocity import VelocityData
from taskvelocity.tracking.aggregator import WeeklyAggregator
from taskvelocity.tracking.weeks import days_between, to_utc, utc_now, week_start_of

logger = structlog.get_logger(__name__)

HIGH_CONSISTENCY = 70
MEDIUM_CONSISTENCY = 40


# ============================================================================
# Formulas
# ============================================================================

def trend_percent(current: int, last: int) -> float:
    """Percent change from last week to this week; 0 when last week is 0."""
    if last <= 0:
        return 0.0
    return round((current - last) / last * 100, 1)


def rolling_average(counts: Sequence[int], weeks: int) -> float:
    """Average of the last ``weeks`` counts; missing weeks count as zero."""
    if weeks <= 0:
        return 0.0
    return sum(counts[-weeks:]) / weeks


def consistency_score(counts: Sequence[int]) -> float:
    """How evenly activity is spread across a window, from 0 to 100.

    The score is 100 minus the coefficient of variation (as a percent),
    clamped to [0, 100]. A window with zero mean scores 0; use
    ``consistency_rating`` to tell that apart from irregular activity.
    """
    if not counts:
        return 0.0
    mean = sum(counts) / len(counts)
    if mean <= 0:
        return 0.0
    variance = sum((value - mean) ** 2 for value in counts) / len(counts)
    variation = math.sqrt(variance) / mean * 100
    return round(100 - min(100.0, max(0.0, variation)), 1)


def consistency_rating(counts: Sequence[int]) -> ConsistencyRating:
    """Band a window's consistency; zero activity is insufficient data."""
    if not counts or sum(counts) <= 0:
        return ConsistencyRating.INSUFFICIENT_DATA
    score = consistency_score(counts)
    if score >= HIGH_CONSISTENCY:
        return ConsistencyRating.HIGH
    if score >= MEDIUM_CONSISTENCY:
        return ConsistencyRating.MEDIUM
    return ConsistencyRating.LOW


def project_completion(now: datetime, remaining_tasks: int, velocity: float) -> Optional[datetime]:
    """Project when the remaining tasks finish at the given weekly velocity.

    Returns:
        The projected date, or None when velocity is zero or nothing remains
    """
    if velocity <= 0 or remaining_tasks <= 0 or not math.isfinite(velocity):
        return None
    return to_utc(now) + timedelta(weeks=remaining_tasks / velocity)


def remaining_tasks(specs: Iterable[SpecProgress]) -> int:
    """Tasks left across specs that are not finished."""
    return sum(spec.remaining_tasks for spec in specs if spec.is_active)


# ============================================================================
# Calculator
# ============================================================================

class MetricsCalculator:
    """Computes VelocityMetrics from a VelocityData snapshot."""

    def __init__(
        self,
        data: VelocityData,
        settings: Optional[VelocitySettings] = None,
        now: Optional[datetime] = None,
    ) -> None:
        """Initialize the calculator.

        Args:
            data: Snapshot to read; it is never modified
            settings: Window sizes and thresholds (defaults to VelocitySettings())
            now: Reference time (defaults to the current time)
        """
        self.data = data
        self.settings = settings or VelocitySettings()
        self.now = to_utc(now) if now else utc_now()
        self.aggregator = WeeklyAggregator(data, daily_history_days=self.settings.daily_history_days)

    def tasks_per_week(self, weeks: int) -> List[int]:
        return [b.completed_count for b in self.aggregator.buckets_for(weeks, self.now)]

    def specs_per_week(self, weeks: int) -> List[int]:
        return [b.completed for b in self.aggregator.spec_buckets_for(weeks, self.now)]

    def week_tasks(self, offset: int) -> int:
        """Completions in the week ``offset`` weeks before the current one."""
        week_start = week_start_of(self.now) - timedelta(weeks=offset)
        bucket = self.aggregator.week_bucket(week_start)
        return bucket.completed_count if bucket else 0

    def required_vs_optional(self) -> RequiredOptionalSplit:
        return RequiredOptionalSplit(
            required=sum(b.required_count for b in self.data.weekly_tasks),
            optional=sum(b.optional_count for b in self.data.weekly_tasks),
        )

    def required_vs_optional_per_week(self, weeks: int) -> List[RequiredOptionalSplit]:
        """Required/optional split of each week in the chart window, oldest first."""
        return [
            RequiredOptionalSplit(required=b.required_count, optional=b.optional_count)
            for b in self.aggregator.buckets_for(weeks, self.now)
        ]

    def completed_durations(self) -> List[int]:
        """Days from first task to completion for each completed spec."""
        return [
            days_between(record.first_task_date, record.completion_date)
            for record in self.data.spec_activity.values()
            if record.first_task_date is not None and record.completion_date is not None
        ]

    def average_time_to_complete(self) -> float:
        durations = self.completed_durations()
        if not durations:
            return 0.0
        return round(sum(durations) / len(durations), 1)

    def time_distribution(self) -> TimeDistribution:
        distribution = TimeDistribution()
        for days in self.completed_durations():
            if days <= self.settings.fast_max_days:
                distribution.fast += 1
            elif days <= self.settings.medium_max_days:
                distribution.medium += 1
            else:
                distribution.slow += 1
        return distribution

    def author_breakdown(self) -> List[AuthorStats]:
        """Completions per author across all weeks and specs, largest first."""
        totals: Counter = Counter()
        for bucket in self.data.weekly_tasks:
            totals.update(bucket.by_author)
        grand_total = sum(totals.values())
        stats = [
            AuthorStats(
                author=author,
                completed=count,
                share_percent=round(count / grand_total * 100, 1) if grand_total else 0.0,
            )
            for author, count in totals.items()
            if count > 0
        ]
        stats.sort(key=lambda s: (-s.completed, s.author))
        return stats

    def active_authors_this_week(self) -> List[str]:
        bucket = self.aggregator.week_bucket(self.now)
        if bucket is None:
            return []
        return sorted(author for author, count in bucket.by_author.items() if count > 0)

    def spec_timelines(self) -> List[SpecTimeline]:
        records = sorted(
            self.data.spec_activity.values(),
            key=lambda r: (r.first_task_date is None, r.first_task_date or self.now, r.spec_id),
        )
        return [
            SpecTimeline(
                spec_id=record.spec_id,
                start_date=record.first_task_date,
                end_date=record.completion_date,
                progress_percent=record.progress_percent,
                total_tasks=record.total_tasks,
                completed_tasks=record.completed_tasks,
            )
            for record in records
        ]

    def calculate(self, current_specs: Optional[Iterable[SpecProgress]] = None) -> VelocityMetrics:
        """Compute the full metrics object.

        Args:
            current_specs: Current progress of tracked specs, for projection

        Returns:
            VelocityMetrics for ``self.now``
        """
        settings = self.settings
        specs = list(current_specs or [])

        chart = self.tasks_per_week(settings.chart_weeks)
        rolling_window = self.tasks_per_week(settings.rolling_window_weeks)
        consistency_window = self.tasks_per_week(settings.consistency_window_weeks)
        current = self.week_tasks(0)
        last = self.week_tasks(1)
        average = rolling_average(rolling_window, settings.rolling_window_weeks)

        spec_chart = self.specs_per_week(settings.chart_weeks)
        spec_consistency_window = self.specs_per_week(settings.consistency_window_weeks)

        remaining = remaining_tasks(specs)
        projected = project_completion(self.now, remaining, average)
        days_remaining = (
            math.ceil((projected - self.now).total_seconds() / 86400) if projected else None
        )

        metrics = VelocityMetrics(
            generated_at=self.now,
            tasks_per_week=chart,
            current_week_tasks=current,
            last_week_tasks=last,
            velocity_trend=trend_percent(current, last),
            average_velocity=average,
            consistency_score=consistency_score(consistency_window),
            consistency_rating=consistency_rating(consistency_window),
            specs_per_week=spec_chart,
            current_week_specs=spec_chart[-1] if spec_chart else 0,
            average_specs=rolling_average(
                self.specs_per_week(settings.rolling_window_weeks), settings.rolling_window_weeks
            ),
            specs_consistency_score=consistency_score(spec_consistency_window),
            specs_consistency_rating=consistency_rating(spec_consistency_window),
            average_time_to_complete=self.average_time_to_complete(),
            time_distribution=self.time_distribution(),
            remaining_tasks=remaining,
            projected_completion_date=projected,
            days_remaining=days_remaining,
            day_of_week_velocity=self.data.day_of_week_tasks.model_dump(),
            required_vs_optional=self.required_vs_optional(),
            required_vs_optional_per_week=self.required_vs_optional_per_week(settings.chart_weeks),
            author_breakdown=self.author_breakdown(),
            active_authors_this_week=self.active_authors_this_week(),
            daily_activity=self.aggregator.daily_counts(settings.heatmap_days, self.now),
            recent_events=list(reversed(self.data.recent_events)),
            spec_timelines=self.spec_timelines(),
            lifecycle_events=list(self.data.spec_lifecycle_events),
        )
        metrics.contributor_count = len(metrics.author_breakdown)

        logger.debug(
            "metrics_calculated",
            current_week_tasks=metrics.current_week_tasks,
            last_week_tasks=metrics.last_week_tasks,
            average_velocity=metrics.average_velocity,
            remaining_tasks=metrics.remaining_tasks,
        )
        return metrics
