"""Data models for velocity tracking."""

from taskvelocity.models.commit import CommitMetadata, FileSnapshot
from taskvelocity.models.config import RepositoryConfig, VelocitySettings
from taskvelocity.models.messages import (
    ErrorMessage,
    ImportCompletedMessage,
    ImportHistoryMessage,
    InboundMessage,
    MetricsSnapshotMessage,
    OutboundMessage,
    RequestMetricsMessage,
    ResetMessage,
    TaskCompletedMessage,
    TaskUncompletedMessage,
    parse_inbound,
)
from taskvelocity.models.metrics import (
    AuthorStats,
    ConsistencyRating,
    RequiredOptionalSplit,
    SpecProgress,
    SpecTimeline,
    TimeDistribution,
    VelocityMetrics,
)
from taskvelocity.models.velocity import (
    DailyTaskCount,
    DayOfWeekTotals,
    ImportSummary,
    LifecycleEventType,
    SpecActivityRecord,
    SpecLifecycleEvent,
    TaskCompletionEvent,
    VelocityData,
    WeekBucket,
    WeeklySpecBucket,
)

__all__ = [
    "CommitMetadata",
    "FileSnapshot",
    "RepositoryConfig",
    "VelocitySettings",
    "TaskCompletionEvent",
    "WeekBucket",
    "WeeklySpecBucket",
    "DayOfWeekTotals",
    "DailyTaskCount",
    "SpecActivityRecord",
    "SpecLifecycleEvent",
    "LifecycleEventType",
    "ImportSummary",
    "VelocityData",
    "SpecProgress",
    "SpecTimeline",
    "AuthorStats",
    "ConsistencyRating",
    "RequiredOptionalSplit",
    "TimeDistribution",
    "VelocityMetrics",
    "InboundMessage",
    "OutboundMessage",
    "TaskCompletedMessage",
    "TaskUncompletedMessage",
    "ImportHistoryMessage",
    "RequestMetricsMessage",
    "ResetMessage",
    "MetricsSnapshotMessage",
    "ImportCompletedMessage",
    "ErrorMessage",
    "parse_inbound",
]
