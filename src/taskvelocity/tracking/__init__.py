"""Event recording, week bucketing and spec lifecycle tracking."""

from taskvelocity.tracking.aggregator import WeeklyAggregator
from taskvelocity.tracking.identity import identity_of, normalize_task_text
from taskvelocity.tracking.lifecycle import SpecLifecycleTracker
from taskvelocity.tracking.store import EventStore
from taskvelocity.tracking.weeks import day_name_of, to_utc, utc_now, week_start_of

__all__ = [
    "EventStore",
    "WeeklyAggregator",
    "SpecLifecycleTracker",
    "identity_of",
    "normalize_task_text",
    "week_start_of",
    "day_name_of",
    "to_utc",
    "utc_now",
]
