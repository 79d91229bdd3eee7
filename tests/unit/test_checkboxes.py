"""Unit tests for markdown checkbox parsing and diffing."""

from pathlib import Path

from taskvelocity.extraction import (
    TransitionKind,
    count_progress,
    diff_checkbox_states,
    find_task_documents,
    parse_tasks,
    scan_specs,
    spec_id_for,
)
from taskvelocity.tracking import identity_of

DOCUMENT = """# Implementation Plan

- [x] 1. Set up project structure
- [ ] 2. Implement data models
  - [x] 2.1 Write the user model
  - [~] 2.2 Write the session model
  - [-] 2.3 Write the token model
- [ ]* 3. Write optional benchmarks
- [X]* 4. Document the API
* [ ] 5. Wire up the CLI

Not a task: [x] inline brackets
"""


def test_parse_tasks():
    """Test task lines, states and optional markers are recognized."""
    tasks = parse_tasks(DOCUMENT)

    assert [t.text for t in tasks] == [
        "1. Set up project structure",
        "2. Implement data models",
        "2.1 Write the user model",
        "2.2 Write the session model",
        "2.3 Write the token model",
        "3. Write optional benchmarks",
        "4. Document the API",
        "5. Wire up the CLI",
    ]
    assert [t.completed for t in tasks] == [True, False, True, False, False, False, True, False]
    assert [t.optional for t in tasks] == [False, False, False, False, False, True, True, False]
    assert tasks[0].line_number == 3
    assert tasks[0].identity == identity_of("1. Set up project structure")


def test_count_progress():
    """Test only checked boxes count as completed."""
    progress = count_progress("auth", DOCUMENT)

    assert progress.total_tasks == 8
    assert progress.completed_tasks == 3
    assert progress.optional_tasks == 2
    assert progress.remaining_tasks == 5


def test_diff_detects_completion():
    """Test an unchecked -> checked line is a completion."""
    old = "- [ ] Write parser\n- [ ] Write lexer\n"
    new = "- [x] Write parser\n- [ ] Write lexer\n"

    transitions = diff_checkbox_states(old, new)

    assert len(transitions) == 1
    assert transitions[0].completed is True
    assert transitions[0].identity == identity_of("Write parser")


def test_diff_detects_uncompletion():
    """Test a checked -> unchecked line is an uncompletion."""
    transitions = diff_checkbox_states("- [x]* Write docs\n", "- [ ]* Write docs\n")

    assert len(transitions) == 1
    assert transitions[0].completed is False
    assert transitions[0].is_required is False


def test_diff_ignores_moved_lines():
    """Test reordering and re-indenting tasks produces no transitions."""
    old = "- [x] Write parser\n- [ ] Write lexer\n"
    new = "Intro paragraph\n\n- [ ] Write lexer\n    - [x] Write parser\n"

    assert diff_checkbox_states(old, new) == []


def test_diff_new_checked_task_is_completion():
    """Test a task added already checked counts as completed."""
    transitions = diff_checkbox_states("", "- [x] Write parser\n- [ ] Write lexer\n")

    assert [(t.text, t.completed) for t in transitions] == [("Write parser", True)]


def test_diff_removed_checked_task():
    """Test deleting a checked task is a removal, not an uncompletion."""
    transitions = diff_checkbox_states("- [x] Write parser\n- [ ] Write lexer\n", "- [ ] Write lexer\n")

    assert [(t.text, t.kind) for t in transitions] == [("Write parser", TransitionKind.REMOVED)]
    assert diff_checkbox_states("- [ ] Write parser\n", "") == []


def test_diff_edited_checked_task_is_rename():
    """Test editing the text of a checked task in place is not a new completion."""
    old = "- [x] Login\n- [ ] Logout\n"
    new = "- [x] Login form\n- [ ] Logout\n"

    transitions = diff_checkbox_states(old, new)

    assert len(transitions) == 1
    assert transitions[0].kind is TransitionKind.RENAMED
    assert transitions[0].completed is False
    assert transitions[0].identity == identity_of("Login form")
    assert transitions[0].previous_identity == identity_of("Login")


def test_diff_edited_and_checked_task_is_completion():
    """Test checking a task while editing its text counts as a completion."""
    transitions = diff_checkbox_states("- [ ] Login\n", "- [x] Login form\n")

    assert [(t.text, t.kind) for t in transitions] == [("Login form", TransitionKind.COMPLETED)]


def test_diff_edited_and_unchecked_task_is_removal():
    """Test unchecking a task while editing its text drops the old completion."""
    transitions = diff_checkbox_states("- [x] Login\n", "- [ ] Login form\n")

    assert [(t.text, t.kind) for t in transitions] == [("Login", TransitionKind.REMOVED)]


def test_diff_in_progress_is_not_completion():
    """Test moving to in-progress or queued is not a completion."""
    assert diff_checkbox_states("- [ ] Write parser\n", "- [~] Write parser\n") == []
    assert diff_checkbox_states("- [ ] Write parser\n", "- [-] Write parser\n") == []


def test_spec_id_for():
    """Test spec ids come from the document's directory or file stem."""
    assert spec_id_for(".kiro/specs/user-auth/tasks.md") == "user-auth"
    assert spec_id_for("TODO.md") == "TODO"


def test_find_and_scan_documents(tmp_path: Path):
    """Test documents are found by glob and scanned for progress."""
    for spec, content in (("beta", "- [x] a\n- [ ] b\n"), ("alpha", "- [x] a\n")):
        path = tmp_path / ".kiro" / "specs" / spec / "tasks.md"
        path.parent.mkdir(parents=True)
        path.write_text(content)
    (tmp_path / "README.md").write_text("- [ ] not tracked\n")

    pattern = ".kiro/specs/*/tasks.md"
    assert find_task_documents(tmp_path, pattern) == [
        ".kiro/specs/alpha/tasks.md",
        ".kiro/specs/beta/tasks.md",
    ]

    progress = {p.spec_id: (p.completed_tasks, p.total_tasks) for p in scan_specs(tmp_path, pattern)}
    assert progress == {"alpha": (1, 1), "beta": (1, 2)}
