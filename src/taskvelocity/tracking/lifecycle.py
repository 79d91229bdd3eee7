"""Per-spec lifecycle tracking.

A spec is active until its completed task count first reaches its total. That
moment is recorded once, with the timestamp and author of the event that
caused it, and is never revoked: later uncompletions make the spec active
again in its counts but leave the completion record alone, and re-reaching
100% does not record a second completion. A spec whose every completion is
withdrawn before it ever completes is forgotten, start included.
"""

from datetime import datetime
from typing import Optional

import structlog

from taskvelocity.models.velocity import (
    LifecycleEventType,
    SpecActivityRecord,
    SpecLifecycleEvent,
    VelocityData,
)
from taskvelocity.tracking.aggregator import WeeklyAggregator
from taskvelocity.tracking.weeks import to_utc

logger = structlog.get_logger(__name__)


class SpecLifecycleTracker:
    """Tracks spec progress and records start/completion transitions."""

    def __init__(self, data: VelocityData, aggregator: WeeklyAggregator) -> None:
        self.data = data
        self.aggregator = aggregator

    def get(self, spec_id: str) -> Optional[SpecActivityRecord]:
        return self.data.spec_activity.get(spec_id)

    def is_completed(self, spec_id: str) -> bool:
        """Whether the spec has ever reached 100%."""
        record = self.data.spec_activity.get(spec_id)
        return record is not None and record.completion_date is not None

    def observe(self, spec_id: str, timestamp: datetime) -> SpecActivityRecord:
        """Note task activity on a spec, creating its record on first sight.

        Args:
            spec_id: Spec identifier
            timestamp: Time of the task event

        Returns:
            The spec's activity record
        """
        ts = to_utc(timestamp)
        record = self.data.spec_activity.get(spec_id)
        if record is None:
            record = SpecActivityRecord(spec_id=spec_id, first_task_date=ts, last_task_date=ts)
            self.data.spec_activity[spec_id] = record
            self.data.spec_lifecycle_events.append(
                SpecLifecycleEvent(
                    spec_id=spec_id,
                    event_type=LifecycleEventType.STARTED,
                    timestamp=ts,
                    progress_percent=record.progress_percent,
                )
            )
            self.aggregator.record_spec_started(ts)
            logger.debug("spec_started", spec_id=spec_id, timestamp=ts.isoformat())
            return record

        if record.first_task_date is None or ts < record.first_task_date:
            record.first_task_date = ts
        if record.last_task_date is None or ts > record.last_task_date:
            record.last_task_date = ts
        return record

    def withdraw(self, spec_id: str) -> bool:
        """Undo ``observe`` for a spec that never completed.

        Drops the spec's record and its start event, and uncounts the start
        from the week it was counted in.

        Returns:
            True if the spec was withdrawn
        """
        record = self.data.spec_activity.get(spec_id)
        if record is None or record.completion_date is not None:
            return False

        del self.data.spec_activity[spec_id]
        events = self.data.spec_lifecycle_events
        for index, event in enumerate(events):
            if event.spec_id == spec_id and event.event_type == LifecycleEventType.STARTED:
                del events[index]
                self.aggregator.withdraw_spec_started(event.timestamp)
                break
        logger.debug("spec_withdrawn", spec_id=spec_id)
        return True

    def set_total(self, spec_id: str, total_tasks: int) -> None:
        """Set the known total task count of a spec, if it has a record."""
        record = self.data.spec_activity.get(spec_id)
        if record is not None and total_tasks >= 0:
            record.total_tasks = total_tasks

    def check_completion(
        self,
        spec_id: str,
        timestamp: datetime,
        author: Optional[str] = None,
        author_email: Optional[str] = None,
    ) -> bool:
        """Record the spec's completion if this event brought it to 100%.

        Args:
            spec_id: Spec identifier
            timestamp: Time of the triggering event
            author: Author of the triggering event
            author_email: Email of the triggering author

        Returns:
            True if a completion was recorded by this call
        """
        record = self.data.spec_activity.get(spec_id)
        if record is None or record.completion_date is not None:
            return False
        if record.total_tasks <= 0 or record.completed_tasks < record.total_tasks:
            return False

        ts = to_utc(timestamp)
        record.completion_date = ts
        record.completed_by = author
        record.completed_by_email = author_email
        self.data.spec_lifecycle_events.append(
            SpecLifecycleEvent(
                spec_id=spec_id,
                event_type=LifecycleEventType.COMPLETED,
                timestamp=ts,
                progress_percent=100,
                author=author,
            )
        )
        self.aggregator.record_spec_completed(ts)
        logger.info("spec_completed", spec_id=spec_id, timestamp=ts.isoformat(), author=author)
        return True

    def update_total(
        self,
        spec_id: str,
        total_tasks: int,
        timestamp: datetime,
        author: Optional[str] = None,
        author_email: Optional[str] = None,
    ) -> bool:
        """Apply a spec's current total from its document and re-check completion.

        Specs without recorded task activity are left alone.

        Returns:
            True if this update recorded the spec's completion
        """
        if spec_id not in self.data.spec_activity:
            return False
        self.set_total(spec_id, total_tasks)
        return self.check_completion(spec_id, timestamp, author, author_email)
