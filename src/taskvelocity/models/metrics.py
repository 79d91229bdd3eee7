"""Derived metrics models returned to the UI layer."""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from taskvelocity.models.velocity import DailyTaskCount, SpecLifecycleEvent, TaskCompletionEvent


class ConsistencyRating(str, Enum):
    """Bands for a consistency score."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INSUFFICIENT_DATA = "insufficient_data"


class SpecProgress(BaseModel):
    """Current progress of a spec as seen in its task document."""

    spec_id: str = Field(..., description="Spec identifier")
    total_tasks: int = Field(0, description="Total checkbox tasks")
    completed_tasks: int = Field(0, description="Checked tasks")
    optional_tasks: int = Field(0, description="Tasks marked optional")

    @property
    def remaining_tasks(self) -> int:
        return max(0, self.total_tasks - self.completed_tasks)

    @property
    def is_active(self) -> bool:
        return self.completed_tasks < self.total_tasks


class RequiredOptionalSplit(BaseModel):
    required: int = 0
    optional: int = 0


class TimeDistribution(BaseModel):
    """Completed specs grouped by how long they took."""

    fast: int = 0
    medium: int = 0
    slow: int = 0


class AuthorStats(BaseModel):
    """Completion totals for a single author."""

    author: str
    completed: int = 0
    share_percent: float = 0.0


class SpecTimeline(BaseModel):
    """Gantt-style span of a spec."""

    spec_id: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    progress_percent: int = 0
    total_tasks: int = 0
    completed_tasks: int = 0


class VelocityMetrics(BaseModel):
    """Everything the analytics view renders, derived from one snapshot."""

    generated_at: datetime = Field(..., description="The 'now' the metrics were computed for")

    # Tasks
    tasks_per_week: List[int] = Field(default_factory=list, description="Dense series, oldest first")
    current_week_tasks: int = 0
    last_week_tasks: int = 0
    velocity_trend: float = Field(0.0, description="Percent change vs last week; 0 when last week is 0")
    average_velocity: float = Field(0.0, description="Rolling average tasks per week")
    consistency_score: float = 0.0
    consistency_rating: ConsistencyRating = ConsistencyRating.INSUFFICIENT_DATA

    # Specs
    specs_per_week: List[int] = Field(default_factory=list)
    current_week_specs: int = 0
    average_specs: float = 0.0
    specs_consistency_score: float = 0.0
    specs_consistency_rating: ConsistencyRating = ConsistencyRating.INSUFFICIENT_DATA

    # Durations and projection
    average_time_to_complete: float = Field(0.0, description="Mean days from first task to completion")
    time_distribution: TimeDistribution = Field(default_factory=TimeDistribution)
    remaining_tasks: int = 0
    projected_completion_date: Optional[datetime] = Field(
        None, description="None when velocity is zero or nothing remains"
    )
    days_remaining: Optional[int] = None

    # Breakdowns
    day_of_week_velocity: Dict[str, int] = Field(default_factory=dict)
    required_vs_optional: RequiredOptionalSplit = Field(default_factory=RequiredOptionalSplit)
    required_vs_optional_per_week: List[RequiredOptionalSplit] = Field(default_factory=list)
    author_breakdown: List[AuthorStats] = Field(default_factory=list)
    contributor_count: int = 0
    active_authors_this_week: List[str] = Field(default_factory=list)

    # Timeline
    daily_activity: List[DailyTaskCount] = Field(default_factory=list)
    recent_events: List[TaskCompletionEvent] = Field(default_factory=list, description="Newest first")
    spec_timelines: List[SpecTimeline] = Field(default_factory=list)
    lifecycle_events: List[SpecLifecycleEvent] = Field(default_factory=list)
