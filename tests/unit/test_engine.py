"""Unit tests for the velocity engine and its message handling."""

import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest

from taskvelocity.engine import VelocityEngine
from taskvelocity.models import (
    ErrorMessage,
    ImportCompletedMessage,
    MetricsSnapshotMessage,
    ResetMessage,
    SpecProgress,
    TaskCompletedMessage,
    VelocitySettings,
)
from taskvelocity.storage import VelocityStateStore

UTC = timezone.utc
NOW = datetime(2024, 1, 17, 12, 0, tzinfo=UTC)
TASKS = ".kiro/specs/auth/tasks.md"


@pytest.fixture
def state_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def engine(state_dir):
    settings = VelocitySettings(include_uncommitted=False)
    return VelocityEngine(VelocityStateStore(state_dir), settings, clock=lambda: NOW)


def test_completion_is_persisted(engine, state_dir):
    """Test every mutation is written to the state store."""
    event = engine.on_task_completed("auth", "Add login form", author="alice")

    assert event.timestamp == NOW
    reloaded = VelocityEngine(VelocityStateStore(state_dir), clock=lambda: NOW)
    assert reloaded.data.spec_activity["auth"].completed_tasks == 1


def test_uncompletion_matches_by_text(engine):
    """Test an uncompletion finds its completion through the task text."""
    engine.on_task_completed("auth", "Add login form", timestamp=datetime(2024, 1, 15, tzinfo=UTC))
    withdrawn = engine.on_task_uncompleted("auth", "  Add   login form ")

    assert withdrawn is not None
    assert engine.get_metrics_snapshot().current_week_tasks == 0


def test_metrics_snapshot(engine):
    """Test the snapshot reflects live events and current specs."""
    engine.on_task_completed("auth", "Task one", author="alice")
    engine.on_task_completed("auth", "Task two", is_required=False, author="bob")

    metrics = engine.get_metrics_snapshot([SpecProgress(spec_id="auth", total_tasks=4, completed_tasks=2)])

    assert metrics.generated_at == NOW
    assert metrics.current_week_tasks == 2
    assert metrics.average_velocity == 0.5
    assert metrics.remaining_tasks == 2
    assert metrics.days_remaining == 28
    assert [e.task_description for e in metrics.recent_events] == ["Task two", "Task one"]


def test_update_spec_progress(engine):
    """Test document totals complete specs already covered by standing completions."""
    engine.on_task_completed("auth", "Task one")

    assert engine.update_spec_progress([SpecProgress(spec_id="auth", total_tasks=1, completed_tasks=1)]) == 1
    assert engine.data.spec_activity["auth"].completion_date == NOW


def test_reset(engine, state_dir):
    """Test reset clears and persists an empty aggregate."""
    engine.on_task_completed("auth", "Task one")
    engine.reset()

    assert engine.data.completion_ledger == {}
    assert VelocityStateStore(state_dir).load().completion_ledger == {}


@pytest.mark.asyncio
async def test_import_from_history(engine, test_repo, commit_file):
    """Test importing history replaces live events with the mined history."""
    commit_file(test_repo, TASKS, "- [ ] Login\n- [ ] Logout\n", datetime(2024, 1, 15, 9, 0, tzinfo=UTC))
    commit_file(test_repo, TASKS, "- [x] Login\n- [x] Logout\n", datetime(2024, 1, 16, 9, 0, tzinfo=UTC))
    engine.on_task_completed("legacy", "Old task")

    summary = await engine.import_from_history(Path(test_repo.working_tree_dir), [TASKS])

    assert summary.available
    assert summary.tasks_processed == 2
    assert summary.authors == ["Alice Example"]
    assert summary.specs_seen == ["auth"]
    assert "legacy" not in engine.data.spec_activity
    assert engine.state_store.load().last_import.tasks_processed == 2


@pytest.mark.asyncio
async def test_import_without_repository_keeps_state(engine, state_dir):
    """Test an unavailable repository leaves existing aggregates untouched."""
    engine.on_task_completed("auth", "Task one")

    summary = await engine.import_from_history(state_dir)

    assert summary.available is False
    assert summary.tasks_processed == 0
    assert engine.data.spec_activity["auth"].completed_tasks == 1


@pytest.mark.asyncio
async def test_handle_messages(engine):
    """Test each inbound message kind is dispatched."""
    assert await engine.handle(TaskCompletedMessage(spec_id="auth", task_text="Task one")) is None
    assert await engine.handle({"type": "task_completed", "spec_id": "auth", "task_text": "Task two"}) is None
    assert await engine.handle({"type": "task_uncompleted", "spec_id": "auth", "task_text": "Task two"}) is None

    reply = await engine.handle({"type": "request_metrics", "current_specs": []})
    assert isinstance(reply, MetricsSnapshotMessage)
    assert reply.metrics.current_week_tasks == 1

    assert await engine.handle(ResetMessage()) is None
    assert engine.data.completion_ledger == {}


@pytest.mark.asyncio
async def test_handle_import_message(engine, state_dir, test_repo, commit_file):
    """Test import messages reply with a summary or an error."""
    commit_file(test_repo, TASKS, "- [x] Login\n", datetime(2024, 1, 15, 9, 0, tzinfo=UTC))

    reply = await engine.handle({"type": "import_history", "repo_root": test_repo.working_tree_dir})
    assert isinstance(reply, ImportCompletedMessage)
    assert reply.summary.specs_completed == ["auth"]

    reply = await engine.handle({"type": "import_history", "repo_root": str(state_dir)})
    assert isinstance(reply, ErrorMessage)


@pytest.mark.asyncio
async def test_handle_invalid_message(engine):
    """Test an unknown message type yields an error reply."""
    reply = await engine.handle({"type": "explode"})

    assert isinstance(reply, ErrorMessage)
    assert "Invalid message" in reply.message
