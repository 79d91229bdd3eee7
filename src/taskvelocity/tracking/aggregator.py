"""Calendar-week aggregation of task completions."""

from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

import structlog

from taskvelocity.models.velocity import (
    UNKNOWN_AUTHOR,
    DailyTaskCount,
    TaskCompletionEvent,
    VelocityData,
    WeekBucket,
    WeeklySpecBucket,
)
from taskvelocity.tracking.weeks import (
    day_name_of,
    day_of,
    utc_now,
    week_end_of,
    week_start_of,
    weeks_back,
)

logger = structlog.get_logger(__name__)


def _decrement(value: int) -> int:
    return value - 1 if value > 0 else 0


class WeeklyAggregator:
    """Maintains week, weekday and day buckets inside a VelocityData.

    Buckets are created on first use and never deleted; weeks without
    activity are synthesized with zero counts when read.
    """

    def __init__(self, data: VelocityData, daily_history_days: int = 90) -> None:
        """Initialize the aggregator.

        Args:
            data: Aggregate to update in place
            daily_history_days: Days of per-day counts to retain
        """
        self.data = data
        self.daily_history_days = daily_history_days

    # ============================================================================
    # Incremental updates
    # ============================================================================

    def add(self, event: TaskCompletionEvent) -> WeekBucket:
        """Count a completion in its week, weekday and day buckets.

        Args:
            event: Completion event

        Returns:
            The week bucket that was incremented
        """
        bucket = self.week_bucket(event.timestamp, create=True)
        bucket.completed_count += 1
        if event.is_required:
            bucket.required_count += 1
        else:
            bucket.optional_count += 1
        author = event.author or UNKNOWN_AUTHOR
        bucket.by_author[author] = bucket.by_author.get(author, 0) + 1

        day_name = day_name_of(event.timestamp)
        totals = self.data.day_of_week_tasks
        setattr(totals, day_name, getattr(totals, day_name) + 1)

        daily = self._daily_count(day_of(event.timestamp), create=True)
        daily.completed += 1
        if event.is_required:
            daily.required += 1
        else:
            daily.optional += 1
        self._prune_daily_counts()

        return bucket

    def remove(self, event: TaskCompletionEvent) -> None:
        """Reverse ``add`` for a previously counted completion.

        Counts are clamped at zero, so out-of-order or repeated removals
        cannot drive any bucket negative.

        Args:
            event: The completion being withdrawn
        """
        bucket = self.week_bucket(event.timestamp)
        if bucket is None:
            logger.warning(
                "week_bucket_missing_on_remove",
                spec_id=event.spec_id,
                week_start=week_start_of(event.timestamp).isoformat(),
            )
        else:
            bucket.completed_count = _decrement(bucket.completed_count)
            if event.is_required:
                bucket.required_count = _decrement(bucket.required_count)
            else:
                bucket.optional_count = _decrement(bucket.optional_count)
            author = event.author or UNKNOWN_AUTHOR
            remaining = _decrement(bucket.by_author.get(author, 0))
            if remaining:
                bucket.by_author[author] = remaining
            else:
                bucket.by_author.pop(author, None)

        day_name = day_name_of(event.timestamp)
        totals = self.data.day_of_week_tasks
        setattr(totals, day_name, _decrement(getattr(totals, day_name)))

        daily = self._daily_count(day_of(event.timestamp))
        if daily is not None:
            daily.completed = _decrement(daily.completed)
            if event.is_required:
                daily.required = _decrement(daily.required)
            else:
                daily.optional = _decrement(daily.optional)

    def record_spec_started(self, timestamp: datetime) -> None:
        self.spec_bucket(timestamp, create=True).started += 1

    def withdraw_spec_started(self, timestamp: datetime) -> None:
        bucket = self.spec_bucket(timestamp)
        if bucket is not None:
            bucket.started = _decrement(bucket.started)

    def record_spec_completed(self, timestamp: datetime) -> None:
        self.spec_bucket(timestamp, create=True).completed += 1

    # ============================================================================
    # Bucket lookup
    # ============================================================================

    def week_bucket(self, timestamp: datetime, create: bool = False) -> Optional[WeekBucket]:
        """Find the week bucket containing a timestamp.

        Args:
            timestamp: Any time inside the week
            create: Insert an empty bucket (keeping order) when missing

        Returns:
            The bucket, or None when missing and not created
        """
        week_start = week_start_of(timestamp)
        buckets = self.data.weekly_tasks
        for index, bucket in enumerate(buckets):
            if bucket.week_start == week_start:
                return bucket
            if bucket.week_start > week_start:
                if not create:
                    return None
                new_bucket = WeekBucket(week_start=week_start, week_end=week_end_of(week_start))
                buckets.insert(index, new_bucket)
                return new_bucket
        if not create:
            return None
        new_bucket = WeekBucket(week_start=week_start, week_end=week_end_of(week_start))
        buckets.append(new_bucket)
        return new_bucket

    def spec_bucket(self, timestamp: datetime, create: bool = False) -> Optional[WeeklySpecBucket]:
        """Find the weekly spec bucket containing a timestamp."""
        week_start = week_start_of(timestamp)
        buckets = self.data.weekly_specs
        for index, bucket in enumerate(buckets):
            if bucket.week_start == week_start:
                return bucket
            if bucket.week_start > week_start:
                if not create:
                    return None
                new_bucket = WeeklySpecBucket(week_start=week_start, week_end=week_end_of(week_start))
                buckets.insert(index, new_bucket)
                return new_bucket
        if not create:
            return None
        new_bucket = WeeklySpecBucket(week_start=week_start, week_end=week_end_of(week_start))
        buckets.append(new_bucket)
        return new_bucket

    def buckets_for(self, weeks: int, now: Optional[datetime] = None) -> List[WeekBucket]:
        """Get a dense series of week buckets ending with the current week.

        Args:
            weeks: Number of weeks
            now: Reference time (defaults to the current time)

        Returns:
            ``weeks`` buckets, oldest first; missing weeks have zero counts
        """
        existing: Dict[datetime, WeekBucket] = {b.week_start: b for b in self.data.weekly_tasks}
        series = []
        for week_start in weeks_back(weeks, now):
            bucket = existing.get(week_start)
            if bucket is None:
                bucket = WeekBucket(week_start=week_start, week_end=week_end_of(week_start))
            series.append(bucket)
        return series

    def spec_buckets_for(self, weeks: int, now: Optional[datetime] = None) -> List[WeeklySpecBucket]:
        """Dense weekly spec series ending with the current week, oldest first."""
        existing = {b.week_start: b for b in self.data.weekly_specs}
        return [
            existing.get(week_start)
            or WeeklySpecBucket(week_start=week_start, week_end=week_end_of(week_start))
            for week_start in weeks_back(weeks, now)
        ]

    def daily_counts(self, days: int, now: Optional[datetime] = None) -> List[DailyTaskCount]:
        """Dense per-day counts for the last ``days`` days, oldest first."""
        if days <= 0:
            return []
        today = day_of(now or utc_now())
        existing = {d.day: d for d in self.data.daily_task_counts}
        return [
            existing.get(today - timedelta(days=offset))
            or DailyTaskCount(day=today - timedelta(days=offset))
            for offset in range(days - 1, -1, -1)
        ]

    # ============================================================================
    # Internals
    # ============================================================================

    def _daily_count(self, day: date, create: bool = False) -> Optional[DailyTaskCount]:
        for count in self.data.daily_task_counts:
            if count.day == day:
                return count
        if not create:
            return None
        count = DailyTaskCount(day=day)
        self.data.daily_task_counts.append(count)
        self.data.daily_task_counts.sort(key=lambda d: d.day)
        return count

    def _prune_daily_counts(self) -> None:
        """Keep per-day counts within the retention window of the newest day."""
        counts = self.data.daily_task_counts
        if not counts:
            return
        cutoff = counts[-1].day - timedelta(days=self.daily_history_days)
        self.data.daily_task_counts = [d for d in counts if d.day >= cutoff]
