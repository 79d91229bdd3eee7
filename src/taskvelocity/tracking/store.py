"""Event store: the single owner of a project's VelocityData."""

from datetime import datetime
from typing import List, Optional

import structlog

from taskvelocity.models.velocity import TaskCompletionEvent, VelocityData, ledger_key
from taskvelocity.tracking.aggregator import WeeklyAggregator
from taskvelocity.tracking.lifecycle import SpecLifecycleTracker
from taskvelocity.tracking.weeks import to_utc

logger = structlog.get_logger(__name__)

DESCRIPTION_CHARS = 50


class EventStore:
    """Records completion and uncompletion events into the aggregate.

    Each task identity has at most one standing completion in the ledger.
    A second completion for the same identity is a no-op, and an
    uncompletion withdraws the standing completion from every count it
    contributed to.
    """

    def __init__(
        self,
        data: Optional[VelocityData] = None,
        event_buffer_size: int = 100,
        daily_history_days: int = 90,
    ) -> None:
        """Initialize the event store.

        Args:
            data: Existing aggregate (defaults to an empty one)
            event_buffer_size: Recent raw events kept for display
            daily_history_days: Days of per-day counts to retain
        """
        self.event_buffer_size = event_buffer_size
        self.daily_history_days = daily_history_days
        self._bind(data or VelocityData())

    def _bind(self, data: VelocityData) -> None:
        self.data = data
        self.aggregator = WeeklyAggregator(data, daily_history_days=self.daily_history_days)
        self.lifecycle = SpecLifecycleTracker(data, self.aggregator)

    def reset(self, data: Optional[VelocityData] = None) -> None:
        """Replace the aggregate, clearing all history by default."""
        self._bind(data or VelocityData())

    def record_completion(
        self,
        spec_id: str,
        task_identity: str,
        is_required: bool,
        timestamp: datetime,
        author: Optional[str] = None,
        author_email: Optional[str] = None,
        task_description: Optional[str] = None,
        total_tasks: Optional[int] = None,
    ) -> Optional[TaskCompletionEvent]:
        """Record a task completion.

        Args:
            spec_id: Spec the task belongs to
            task_identity: Content identity of the task
            is_required: False for optional tasks
            timestamp: Completion time
            author: Author name
            author_email: Author email
            task_description: Task text, truncated for display
            total_tasks: Spec total, when known

        Returns:
            The recorded event, or None if the task was already completed
        """
        ts = to_utc(timestamp)
        key = ledger_key(spec_id, task_identity)
        if key in self.data.completion_ledger:
            logger.warning("duplicate_completion_ignored", spec_id=spec_id, task_identity=task_identity)
            if total_tasks is not None:
                self.lifecycle.set_total(spec_id, total_tasks)
                self.lifecycle.check_completion(spec_id, ts, author, author_email)
            return None

        event = TaskCompletionEvent(
            timestamp=ts,
            spec_id=spec_id,
            task_identity=task_identity,
            is_required=is_required,
            author=author,
            author_email=author_email,
            task_description=task_description[:DESCRIPTION_CHARS] if task_description else None,
        )
        self.data.completion_ledger[key] = event
        self.aggregator.add(event)
        self._append_recent(event)

        record = self.lifecycle.observe(spec_id, ts)
        record.completed_tasks += 1
        if total_tasks is not None:
            self.lifecycle.set_total(spec_id, total_tasks)
        self.lifecycle.check_completion(spec_id, ts, author, author_email)

        logger.debug(
            "task_completion_recorded",
            spec_id=spec_id,
            task_identity=task_identity,
            required=is_required,
            author=author,
            timestamp=ts.isoformat(),
        )
        return event

    def record_uncompletion(
        self,
        spec_id: str,
        task_identity: str,
        timestamp: datetime,
        total_tasks: Optional[int] = None,
    ) -> Optional[TaskCompletionEvent]:
        """Withdraw the standing completion of a task.

        The spec's completion date is left untouched even if its completed
        count drops below its total again. Withdrawing the last completion of
        a spec that never completed forgets the spec entirely.

        Args:
            spec_id: Spec the task belongs to
            task_identity: Content identity of the task
            timestamp: Time the task was unchecked
            total_tasks: Spec total, when known

        Returns:
            The withdrawn completion, or None if there was nothing to withdraw
        """
        key = ledger_key(spec_id, task_identity)
        event = self.data.completion_ledger.pop(key, None)
        if event is None:
            logger.warning(
                "uncompletion_without_match",
                spec_id=spec_id,
                task_identity=task_identity,
                timestamp=to_utc(timestamp).isoformat(),
            )
            return None

        self.aggregator.remove(event)
        self._drop_recent(key)

        record = self.lifecycle.get(spec_id)
        if record is not None:
            record.completed_tasks = max(0, record.completed_tasks - 1)
            if record.completed_tasks == 0 and record.removed_tasks == 0:
                self.lifecycle.withdraw(spec_id)
            elif total_tasks is not None:
                self.lifecycle.set_total(spec_id, total_tasks)

        logger.debug("task_uncompletion_recorded", spec_id=spec_id, task_identity=task_identity)
        return event

    def rename_task(
        self,
        spec_id: str,
        previous_identity: str,
        task_identity: str,
        task_description: Optional[str] = None,
    ) -> Optional[TaskCompletionEvent]:
        """Carry a standing completion over to the edited text of its task.

        No count changes. If the new identity already has a standing
        completion, the old one is retired instead.

        Args:
            spec_id: Spec the task belongs to
            previous_identity: Identity of the text before the edit
            task_identity: Identity of the text after the edit
            task_description: Edited task text

        Returns:
            The completion under its new identity, or None if nothing was carried
        """
        old_key = ledger_key(spec_id, previous_identity)
        new_key = ledger_key(spec_id, task_identity)
        event = self.data.completion_ledger.get(old_key)
        if event is None:
            logger.warning("rename_without_match", spec_id=spec_id, task_identity=previous_identity)
            return None
        if new_key in self.data.completion_ledger:
            self.retire_task(spec_id, previous_identity)
            return None

        del self.data.completion_ledger[old_key]
        update = {"task_identity": task_identity}
        if task_description:
            update["task_description"] = task_description[:DESCRIPTION_CHARS]
        renamed = event.model_copy(update=update)
        self.data.completion_ledger[new_key] = renamed
        for index, recent in enumerate(self.data.recent_events):
            if recent.ledger_key == old_key:
                self.data.recent_events[index] = renamed

        logger.debug("task_renamed", spec_id=spec_id, previous=previous_identity, task_identity=task_identity)
        return renamed

    def retire_task(
        self, spec_id: str, task_identity: str, total_tasks: Optional[int] = None
    ) -> Optional[TaskCompletionEvent]:
        """Forget the standing completion of a checked task deleted from its document.

        The completion stays in its week, weekday and day counts; only the
        spec's completed count drops.

        Returns:
            The retired completion, or None if none was standing
        """
        event = self.data.completion_ledger.pop(ledger_key(spec_id, task_identity), None)
        if event is None:
            return None

        record = self.lifecycle.get(spec_id)
        if record is not None:
            record.completed_tasks = max(0, record.completed_tasks - 1)
            record.removed_tasks += 1
            if total_tasks is not None:
                self.lifecycle.set_total(spec_id, total_tasks)

        logger.debug("task_retired", spec_id=spec_id, task_identity=task_identity)
        return event

    def is_completed(self, spec_id: str, task_identity: str) -> bool:
        return ledger_key(spec_id, task_identity) in self.data.completion_ledger

    def recent_events(self, limit: Optional[int] = None) -> List[TaskCompletionEvent]:
        """Recent completions, newest first."""
        events = list(reversed(self.data.recent_events))
        return events[:limit] if limit is not None else events

    def _append_recent(self, event: TaskCompletionEvent) -> None:
        self.data.recent_events.append(event)
        overflow = len(self.data.recent_events) - self.event_buffer_size
        if overflow > 0:
            del self.data.recent_events[:overflow]

    def _drop_recent(self, key: str) -> None:
        events = self.data.recent_events
        for index in range(len(events) - 1, -1, -1):
            if events[index].ledger_key == key:
                del events[index]
                return
