"""Velocity engine: one instance per tracked project.

The engine owns the project's EventStore and persists the aggregate after
every mutation. Live toggle events, history imports and metrics requests all
go through it.
"""

import asyncio
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional, Sequence, Union

import structlog
from pydantic import ValidationError

from taskvelocity.analytics.calculator import MetricsCalculator
from taskvelocity.history.miner import HistoryMiner, replay_history
from taskvelocity.models import (
    ErrorMessage,
    ImportCompletedMessage,
    ImportHistoryMessage,
    ImportSummary,
    MetricsSnapshotMessage,
    RequestMetricsMessage,
    ResetMessage,
    SpecProgress,
    TaskCompletedMessage,
    TaskCompletionEvent,
    TaskUncompletedMessage,
    VelocityData,
    VelocityMetrics,
    VelocitySettings,
    parse_inbound,
)
from taskvelocity.storage.state import VelocityStateStore
from taskvelocity.tracking.identity import identity_of
from taskvelocity.tracking.store import EventStore
from taskvelocity.tracking.weeks import to_utc, utc_now

logger = structlog.get_logger(__name__)


class VelocityEngine:
    """Records task activity for one project and serves its metrics."""

    def __init__(
        self,
        state_store: VelocityStateStore,
        settings: Optional[VelocitySettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
        miner: Optional[HistoryMiner] = None,
    ) -> None:
        """Initialize the engine from persisted state.

        Args:
            state_store: Persistence for this project's aggregate
            settings: Engine settings (defaults to VelocitySettings())
            clock: Source of the current time (defaults to UTC now)
            miner: History miner (defaults to one built from the settings)
        """
        self.state_store = state_store
        self.settings = settings or VelocitySettings()
        self.clock = clock or utc_now
        self.miner = miner or HistoryMiner(self.settings, clock=self.clock)
        self.store = EventStore(
            state_store.load(),
            event_buffer_size=self.settings.event_buffer_size,
            daily_history_days=self.settings.daily_history_days,
        )

    @classmethod
    def for_repository(cls, repo_root: Path, settings: Optional[VelocitySettings] = None) -> "VelocityEngine":
        """Create an engine whose state lives in the repository's state directory."""
        settings = settings or VelocitySettings()
        return cls(VelocityStateStore(settings.resolve_state_dir(Path(repo_root))), settings)

    @property
    def data(self) -> VelocityData:
        return self.store.data

    def now(self) -> datetime:
        return to_utc(self.clock())

    def _persist(self) -> None:
        self.state_store.save(self.store.data)

    # ============================================================================
    # Live events
    # ============================================================================

    def on_task_completed(
        self,
        spec_id: str,
        task_text: str,
        is_required: bool = True,
        timestamp: Optional[datetime] = None,
        author: Optional[str] = None,
        author_email: Optional[str] = None,
        total_tasks: Optional[int] = None,
    ) -> Optional[TaskCompletionEvent]:
        """Record that a task was checked.

        Args:
            spec_id: Spec the task belongs to
            task_text: Task description as written in the document
            is_required: False for optional tasks
            timestamp: Completion time (defaults to now)
            author: Author name
            author_email: Author email
            total_tasks: Spec total, when the caller knows it

        Returns:
            The recorded event, or None for a repeated completion
        """
        event = self.store.record_completion(
            spec_id=spec_id,
            task_identity=identity_of(task_text),
            is_required=is_required,
            timestamp=timestamp or self.now(),
            author=author,
            author_email=author_email,
            task_description=task_text,
            total_tasks=total_tasks,
        )
        self._persist()
        return event

    def on_task_uncompleted(
        self,
        spec_id: str,
        task_text: str,
        timestamp: Optional[datetime] = None,
        total_tasks: Optional[int] = None,
    ) -> Optional[TaskCompletionEvent]:
        """Record that a task was unchecked.

        Returns:
            The withdrawn completion, or None if none was standing
        """
        event = self.store.record_uncompletion(
            spec_id=spec_id,
            task_identity=identity_of(task_text),
            timestamp=timestamp or self.now(),
            total_tasks=total_tasks,
        )
        if event is not None:
            self._persist()
        return event

    def update_spec_progress(self, specs: Iterable[SpecProgress], timestamp: Optional[datetime] = None) -> int:
        """Apply current document totals to known specs.

        A spec whose standing completions already cover a smaller total is
        completed now.

        Returns:
            Number of specs completed by this update
        """
        ts = timestamp or self.now()
        completed = sum(
            1 for spec in specs if self.store.lifecycle.update_total(spec.spec_id, spec.total_tasks, ts)
        )
        self._persist()
        return completed

    # ============================================================================
    # History import
    # ============================================================================

    async def import_from_history(
        self,
        repo_root: Path,
        tracked_document_paths: Optional[Sequence[str]] = None,
    ) -> ImportSummary:
        """Rebuild the aggregate from the Git history of tracked documents.

        The log walk runs in a worker thread; the rebuild itself is applied on
        the calling thread. When the repository cannot be read the existing
        aggregate is kept and an empty summary is returned.

        Args:
            repo_root: Repository root
            tracked_document_paths: Documents to walk (defaults to the configured glob)

        Returns:
            ImportSummary of the rebuild
        """
        logger.info("history_import_started", repo_root=str(repo_root))
        history = await asyncio.to_thread(self.miner.mine, Path(repo_root), tracked_document_paths)
        if not history.available:
            return ImportSummary(available=False, imported_at=self.now())

        summary = replay_history(self.store, history, self.now())
        self._persist()
        return summary

    # ============================================================================
    # Metrics
    # ============================================================================

    def get_metrics_snapshot(self, current_specs: Optional[Iterable[SpecProgress]] = None) -> VelocityMetrics:
        """Compute metrics from the current aggregate.

        Args:
            current_specs: Current progress of tracked specs, for the projection

        Returns:
            VelocityMetrics
        """
        return MetricsCalculator(self.store.data, self.settings, now=self.now()).calculate(current_specs)

    def reset(self) -> None:
        """Clear all recorded history."""
        self.store.reset()
        self._persist()
        logger.info("velocity_reset")

    # ============================================================================
    # Messages
    # ============================================================================

    async def handle(
        self, message: Union[Dict[str, Any], TaskCompletedMessage, TaskUncompletedMessage,
                             ImportHistoryMessage, RequestMetricsMessage, ResetMessage]
    ) -> Optional[Union[MetricsSnapshotMessage, ImportCompletedMessage, ErrorMessage]]:
        """Dispatch an inbound message.

        Args:
            message: Inbound message model, or a raw dict to validate first

        Returns:
            The outbound reply, or None for messages that only mutate state
        """
        if isinstance(message, dict):
            try:
                message = parse_inbound(message)
            except ValidationError as e:
                logger.warning("invalid_message", error=str(e))
                return ErrorMessage(message=f"Invalid message: {e.error_count()} validation error(s)")

        if isinstance(message, TaskCompletedMessage):
            self.on_task_completed(
                message.spec_id,
                message.task_text,
                is_required=message.is_required,
                timestamp=message.timestamp,
                author=message.author,
                author_email=message.author_email,
                total_tasks=message.total_tasks,
            )
            return None
        if isinstance(message, TaskUncompletedMessage):
            self.on_task_uncompleted(
                message.spec_id, message.task_text, timestamp=message.timestamp, total_tasks=message.total_tasks
            )
            return None
        if isinstance(message, ImportHistoryMessage):
            summary = await self.import_from_history(message.repo_root, message.tracked_document_paths)
            if not summary.available:
                return ErrorMessage(message=f"Version control unavailable at {message.repo_root}")
            return ImportCompletedMessage(summary=summary)
        if isinstance(message, RequestMetricsMessage):
            return MetricsSnapshotMessage(metrics=self.get_metrics_snapshot(message.current_specs))
        if isinstance(message, ResetMessage):
            self.reset()
            return None
        raise TypeError(f"Unsupported message: {type(message).__name__}")
