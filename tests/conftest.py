"""Shared fixtures: temporary Git repositories with dated task-document commits."""

import tempfile
from datetime import datetime, timezone
from pathlib import Path

import git
import pytest

ALICE = ("Alice Example", "alice@example.com")
BOB = ("Bob Example", "bob@example.com")


def utc(year, month, day, hour=0, minute=0):
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def test_repo():
    """Create an empty temporary Git repository with a configured user."""
    with tempfile.TemporaryDirectory() as tmpdir:
        repo = git.Repo.init(tmpdir)

        # Configure git
        repo.config_writer().set_value("user", "name", "Test User").release()
        repo.config_writer().set_value("user", "email", "test@example.com").release()

        yield repo


@pytest.fixture
def commit_file():
    """Write a file into a repository and commit it at a fixed author date."""

    def _commit(repo, rel_path, content, when, author=ALICE, message="Update tasks"):
        path = Path(repo.working_tree_dir) / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        repo.index.add([rel_path])
        actor = git.Actor(*author)
        stamp = f"{int(when.timestamp())} +0000"
        return repo.index.commit(
            message, author=actor, committer=actor, author_date=stamp, commit_date=stamp
        )

    return _commit


@pytest.fixture
def move_file():
    """Rename a tracked file with ``git mv`` and commit it at a fixed author date."""

    def _move(repo, old_path, new_path, when, author=ALICE, message="Move tasks"):
        (Path(repo.working_tree_dir) / new_path).parent.mkdir(parents=True, exist_ok=True)
        repo.git.mv(old_path, new_path)
        stamp = f"@{int(when.timestamp())} +0000"
        repo.git.commit(
            "-m", message, f"--author={author[0]} <{author[1]}>",
            env={"GIT_AUTHOR_DATE": stamp, "GIT_COMMITTER_DATE": stamp},
        )

    return _move
