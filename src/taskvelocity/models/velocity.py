"""Data models for the persisted velocity aggregate.

All timestamps are timezone-aware UTC datetimes. Week buckets are keyed by the
Monday 00:00 UTC that starts the week.
"""

from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

UNKNOWN_AUTHOR = "unknown"


class TaskCompletionEvent(BaseModel):
    """One observed transition of a task to the completed state.

    Events are immutable; a reversal is recorded by removing the standing
    completion, never by editing it.
    """

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "timestamp": "2024-01-15T10:30:00Z",
                "spec_id": "auth",
                "task_identity": "9f2c1a0b7d3e4f51",
                "is_required": True,
                "author": "Jane Doe",
                "author_email": "jane@example.com",
                "task_description": "1. Add login form",
            }
        },
    )

    kind: Literal["completion"] = "completion"
    timestamp: datetime = Field(..., description="When the task was completed (UTC)")
    spec_id: str = Field(..., description="Spec the task belongs to")
    task_identity: str = Field(..., description="Content hash of the task text")
    is_required: bool = Field(True, description="False for optional (*) tasks")
    author: Optional[str] = Field(None, description="Author name")
    author_email: Optional[str] = Field(None, description="Author email")
    task_description: Optional[str] = Field(None, description="First 50 characters of the task text")

    @property
    def ledger_key(self) -> str:
        """Key of this event in the completion ledger."""
        return ledger_key(self.spec_id, self.task_identity)


def ledger_key(spec_id: str, task_identity: str) -> str:
    """Build the completion ledger key for a task."""
    return f"{spec_id}:{task_identity}"


class WeekBucket(BaseModel):
    """Task completions for one calendar week."""

    week_start: datetime = Field(..., description="Monday 00:00 UTC")
    week_end: datetime = Field(..., description="Sunday 00:00 UTC (week_start + 6 days)")
    completed_count: int = Field(0, description="Tasks completed in the week")
    required_count: int = Field(0, description="Required tasks completed in the week")
    optional_count: int = Field(0, description="Optional tasks completed in the week")
    by_author: Dict[str, int] = Field(default_factory=dict, description="Completions per author")


class WeeklySpecBucket(BaseModel):
    """Spec starts and completions for one calendar week."""

    week_start: datetime = Field(..., description="Monday 00:00 UTC")
    week_end: datetime = Field(..., description="Sunday 00:00 UTC (week_start + 6 days)")
    started: int = Field(0, description="Specs with their first task event in the week")
    completed: int = Field(0, description="Specs that reached 100% in the week")


class DayOfWeekTotals(BaseModel):
    """Raw completion totals per weekday."""

    monday: int = 0
    tuesday: int = 0
    wednesday: int = 0
    thursday: int = 0
    friday: int = 0
    saturday: int = 0
    sunday: int = 0


class DailyTaskCount(BaseModel):
    """Completions on a single calendar day (UTC)."""

    day: date
    completed: int = 0
    required: int = 0
    optional: int = 0


class SpecActivityRecord(BaseModel):
    """Progress and dates for a single spec."""

    spec_id: str = Field(..., description="Spec identifier")
    first_task_date: Optional[datetime] = Field(None, description="Earliest task event")
    last_task_date: Optional[datetime] = Field(None, description="Latest task event")
    completion_date: Optional[datetime] = Field(
        None, description="First time the spec reached 100%; never cleared"
    )
    completed_by: Optional[str] = Field(None, description="Author of the completing event")
    completed_by_email: Optional[str] = Field(None, description="Email of the completing author")
    total_tasks: int = Field(0, description="Known total task count")
    completed_tasks: int = Field(0, description="Currently completed task count")
    removed_tasks: int = Field(
        0, description="Checked tasks deleted from the document; still counted in their weeks"
    )

    @property
    def progress_percent(self) -> int:
        """Completion percentage, 0 when the total is unknown."""
        if self.total_tasks <= 0:
            return 0
        return min(100, round(self.completed_tasks / self.total_tasks * 100))


class LifecycleEventType(str, Enum):
    """Kinds of spec lifecycle transitions."""

    STARTED = "started"
    COMPLETED = "completed"


class SpecLifecycleEvent(BaseModel):
    """A spec starting or reaching 100%."""

    model_config = ConfigDict(frozen=True)

    spec_id: str
    event_type: LifecycleEventType
    timestamp: datetime
    progress_percent: int = 0
    author: Optional[str] = None


class ImportSummary(BaseModel):
    """Result of a history import."""

    tasks_processed: int = Field(0, description="Completion events replayed")
    uncompletions_processed: int = Field(0, description="Uncompletion events replayed")
    renames_processed: int = Field(0, description="Checked tasks whose text was edited")
    removals_processed: int = Field(0, description="Checked tasks deleted from their document")
    authors: List[str] = Field(default_factory=list, description="Distinct authors seen")
    specs_seen: List[str] = Field(default_factory=list, description="Specs with a readable history")
    specs_completed: List[str] = Field(default_factory=list, description="Specs that reached 100%")
    commits_analyzed: int = Field(0, description="Commits read across all documents")
    available: bool = Field(True, description="False when version control was unavailable")
    imported_at: Optional[datetime] = Field(None, description="When the import finished")


class VelocityData(BaseModel):
    """The full persisted velocity aggregate for one project."""

    version: str = Field("1.0", description="Blob format version")
    weekly_tasks: List[WeekBucket] = Field(default_factory=list)
    weekly_specs: List[WeeklySpecBucket] = Field(default_factory=list)
    spec_activity: Dict[str, SpecActivityRecord] = Field(default_factory=dict)
    day_of_week_tasks: DayOfWeekTotals = Field(default_factory=DayOfWeekTotals)
    daily_task_counts: List[DailyTaskCount] = Field(default_factory=list)
    recent_events: List[TaskCompletionEvent] = Field(
        default_factory=list, description="Ring buffer of recent events, oldest first"
    )
    completion_ledger: Dict[str, TaskCompletionEvent] = Field(
        default_factory=dict, description="Standing completions keyed by spec_id:task_identity"
    )
    spec_lifecycle_events: List[SpecLifecycleEvent] = Field(default_factory=list)
    last_import: Optional[ImportSummary] = None
