"""Unit tests for rebuilding velocity history from Git."""

import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest

from taskvelocity.history import HistoryMiner, replay_history
from taskvelocity.models import LifecycleEventType, VelocitySettings
from taskvelocity.tracking import EventStore, identity_of

AUTH = ".kiro/specs/auth/tasks.md"
UI = ".kiro/specs/ui/tasks.md"
BOB = ("Bob Example", "bob@example.com")


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


NOW = utc(2024, 1, 26, 12, 0)


@pytest.fixture
def history_repo(test_repo, commit_file):
    """Two specs; auth is completed, partly reopened and completed again."""
    commit_file(test_repo, AUTH, "- [ ] Login\n- [ ] Logout\n- [ ] Reset\n", utc(2024, 1, 15, 9, 0))
    commit_file(test_repo, AUTH, "- [x] Login\n- [ ] Logout\n- [ ] Reset\n", utc(2024, 1, 16, 9, 0))
    commit_file(test_repo, UI, "- [x] Colors\n- [ ] Layout\n", utc(2024, 1, 17, 9, 0))
    commit_file(test_repo, AUTH, "- [x] Login\n- [x] Logout\n- [x] Reset\n", utc(2024, 1, 18, 9, 0), author=BOB)
    # Reordered, and Reset unchecked again
    commit_file(test_repo, AUTH, "- [ ] Reset\n- [x] Logout\n- [x] Login\n", utc(2024, 1, 22, 9, 0))
    commit_file(test_repo, AUTH, "- [x] Reset\n- [x] Logout\n- [x] Login\n", utc(2024, 1, 24, 9, 0), author=BOB)
    return Path(test_repo.working_tree_dir)


@pytest.fixture
def committed_only():
    return HistoryMiner(VelocitySettings(include_uncommitted=False), clock=lambda: NOW)


def test_mine_events(history_repo, committed_only):
    """Test checkbox transitions become dated, attributed events."""
    history = committed_only.mine(history_repo)

    assert history.available
    assert history.documents == [AUTH, UI]
    assert history.commits_analyzed == 6
    assert history.spec_totals == {"auth": 3, "ui": 2}
    assert [(e.spec_id, e.text, e.completed, e.timestamp.day) for e in history.events] == [
        ("auth", "Login", True, 16),
        ("ui", "Colors", True, 17),
        ("auth", "Logout", True, 18),
        ("auth", "Reset", True, 18),
        ("auth", "Reset", False, 22),
        ("auth", "Reset", True, 24),
    ]
    assert history.events[2].author == "Bob Example"
    assert history.events[2].task_identity == identity_of("Logout")


def test_mine_explicit_documents(history_repo, committed_only):
    """Test only the given documents are walked."""
    history = committed_only.mine(history_repo, [UI])

    assert history.specs_seen == ["ui"]
    assert [e.text for e in history.events] == ["Colors"]


def test_replay_rebuilds_aggregate(history_repo, committed_only):
    """Test replayed history drives counts and the exactly-once spec completion."""
    store = EventStore()
    summary = replay_history(store, committed_only.mine(history_repo), NOW)

    assert summary.tasks_processed == 5
    assert summary.uncompletions_processed == 1
    assert summary.authors == ["Alice Example", "Bob Example"]
    assert summary.specs_seen == ["auth", "ui"]
    assert summary.specs_completed == ["auth"]
    assert store.data.last_import == summary

    weeks = {b.week_start.day: b.completed_count for b in store.data.weekly_tasks}
    assert weeks == {15: 3, 22: 1}

    record = store.data.spec_activity["auth"]
    assert record.completion_date == utc(2024, 1, 18, 9, 0)
    assert record.completed_by == "Bob Example"
    assert record.completed_tasks == 3
    completions = [
        e for e in store.data.spec_lifecycle_events if e.event_type == LifecycleEventType.COMPLETED
    ]
    assert len(completions) == 1

    assert store.data.spec_activity["ui"].completion_date is None


def test_replay_is_deterministic(history_repo, committed_only):
    """Test importing the same log twice gives identical aggregates."""
    store = EventStore()
    replay_history(store, committed_only.mine(history_repo), NOW)
    first = store.data.model_dump()

    replay_history(store, committed_only.mine(history_repo), NOW)

    assert store.data.model_dump() == first


def test_replay_clears_existing_state(history_repo, committed_only):
    """Test the import is a full rebuild."""
    store = EventStore()
    store.record_completion("legacy", identity_of("Old task"), True, utc(2023, 6, 1))

    replay_history(store, committed_only.mine(history_repo), NOW)

    assert "legacy" not in store.data.spec_activity


def test_uncommitted_completions(history_repo):
    """Test working-copy completions are attributed to the Git user at import time."""
    (history_repo / UI).write_text("- [x] Colors\n- [x] Layout\n- [ ] Icons\n")
    miner = HistoryMiner(VelocitySettings(include_uncommitted=True), clock=lambda: NOW)

    history = miner.mine(history_repo)

    layout = history.events[-1]
    assert (layout.text, layout.timestamp, layout.author, layout.commit_hash) == (
        "Layout",
        NOW,
        "Test User",
        "WORKTREE",
    )
    assert history.spec_totals["ui"] == 3


def test_not_a_repository(committed_only):
    """Test mining outside a repository degrades to an unavailable result."""
    with tempfile.TemporaryDirectory() as tmpdir:
        history = committed_only.mine(Path(tmpdir))

    assert history.available is False
    assert history.events == []


def test_edited_checked_task_is_not_completed_again(test_repo, commit_file, committed_only):
    """Test editing a checked task's text keeps a single completion and no false spec completion."""
    commit_file(test_repo, AUTH, "- [ ] Login\n- [ ] Logout\n", utc(2024, 1, 15, 9, 0))
    commit_file(test_repo, AUTH, "- [x] Login\n- [ ] Logout\n", utc(2024, 1, 16, 9, 0))
    commit_file(test_repo, AUTH, "- [x] Login form\n- [ ] Logout\n", utc(2024, 1, 17, 9, 0))
    store = EventStore()

    summary = replay_history(store, committed_only.mine(Path(test_repo.working_tree_dir)), NOW)

    assert summary.tasks_processed == 1
    assert summary.renames_processed == 1
    record = store.data.spec_activity["auth"]
    assert (record.completed_tasks, record.total_tasks) == (1, 2)
    assert record.completion_date is None
    assert summary.specs_completed == []
    assert store.is_completed("auth", identity_of("Login form"))
    assert sum(b.completed_count for b in store.data.weekly_tasks) == 1


def test_deleted_checked_task_stops_counting_toward_spec(test_repo, commit_file, committed_only):
    """Test deleting a checked task keeps its week count but not its spec progress."""
    commit_file(test_repo, AUTH, "- [x] Login\n- [ ] Logout\n- [ ] Reset\n", utc(2024, 1, 15, 9, 0))
    commit_file(test_repo, AUTH, "- [ ] Logout\n- [ ] Reset\n", utc(2024, 1, 16, 9, 0))
    commit_file(test_repo, AUTH, "- [x] Logout\n- [ ] Reset\n", utc(2024, 1, 17, 9, 0))
    store = EventStore()

    summary = replay_history(store, committed_only.mine(Path(test_repo.working_tree_dir)), NOW)

    assert summary.tasks_processed == 2
    assert summary.removals_processed == 1
    assert summary.uncompletions_processed == 0
    record = store.data.spec_activity["auth"]
    assert (record.completed_tasks, record.total_tasks, record.removed_tasks) == (1, 2, 1)
    assert record.completion_date is None
    assert store.aggregator.week_bucket(utc(2024, 1, 15)).completed_count == 2


def test_history_follows_renamed_document(test_repo, commit_file, move_file, committed_only):
    """Test completions made before the document was moved keep their dates."""
    old_path = ".kiro/specs/login/tasks.md"
    commit_file(test_repo, old_path, "- [ ] Login\n- [ ] Logout\n", utc(2024, 1, 15, 9, 0))
    commit_file(test_repo, old_path, "- [x] Login\n- [ ] Logout\n", utc(2024, 1, 16, 9, 0))
    move_file(test_repo, old_path, AUTH, utc(2024, 1, 22, 9, 0))
    commit_file(test_repo, AUTH, "- [x] Login\n- [x] Logout\n", utc(2024, 1, 24, 9, 0), author=BOB)

    history = committed_only.mine(Path(test_repo.working_tree_dir))

    assert history.documents == [AUTH]
    assert history.commits_analyzed == 4
    assert [(e.spec_id, e.text, e.timestamp.day) for e in history.events] == [
        ("auth", "Login", 16),
        ("auth", "Logout", 24),
    ]


def test_document_outside_repository_is_skipped(history_repo, committed_only):
    """Test a tracked path outside the repository does not cancel the import."""
    with tempfile.TemporaryDirectory() as tmpdir:
        outside = str(Path(tmpdir) / "tasks.md")
        history = committed_only.mine(history_repo, [outside, UI])

    assert history.available
    assert history.documents == [UI]
    assert [e.text for e in history.events] == ["Colors"]
