"""Markdown checkbox task parsing.

Recognized task lines::

    - [ ] pending            - [x] completed
    - [~] in progress        - [-] queued
    - [ ]* optional pending  - [x]* optional completed

Only ``x``/``X`` counts as completed.
"""

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional

from taskvelocity.models.metrics import SpecProgress
from taskvelocity.tracking.identity import identity_of

TASK_LINE = re.compile(r"^\s*[-*]\s*\[([ xX~-])\](\*)?\s*(.*)$")


@dataclass
class CheckboxTask:
    """A checkbox task line from a markdown document"""
    text: str
    identity: str
    completed: bool
    optional: bool
    line_number: int
    state: str = " "

    @property
    def is_required(self) -> bool:
        return not self.optional


class TransitionKind(str, Enum):
    """How a task changed between two versions of a document"""
    COMPLETED = "completed"
    UNCOMPLETED = "uncompleted"
    RENAMED = "renamed"  # a checked task whose text was edited
    REMOVED = "removed"  # a checked task deleted from the document


@dataclass
class CheckboxTransition:
    """A task whose checkbox or text changed between two versions of a document"""
    identity: str
    text: str
    is_required: bool
    kind: TransitionKind
    line_number: int = 0
    previous_identity: Optional[str] = None  # set for RENAMED

    @property
    def completed(self) -> bool:
        return self.kind is TransitionKind.COMPLETED


def parse_tasks(content: str) -> List[CheckboxTask]:
    """Parse every checkbox task in a markdown document.

    Args:
        content: Document content

    Returns:
        Tasks in document order
    """
    tasks = []
    for i, line in enumerate(content.split("\n")):
        match = TASK_LINE.match(line)
        if not match:
            continue
        state, optional_marker, text = match.groups()
        text = text.strip()
        tasks.append(
            CheckboxTask(
                text=text,
                identity=identity_of(text),
                completed=state.lower() == "x",
                optional=optional_marker == "*",
                line_number=i + 1,
                state=state,
            )
        )
    return tasks


def task_states(content: str) -> Dict[str, CheckboxTask]:
    """Map task identity to task; the first line wins for duplicate text."""
    states: Dict[str, CheckboxTask] = {}
    for task in parse_tasks(content):
        states.setdefault(task.identity, task)
    return states


def _renamed_tasks(old_content: str, new_content: str, old: Dict[str, CheckboxTask],
                   new: Dict[str, CheckboxTask]) -> Dict[str, str]:
    """Pair checked tasks whose text changed in place.

    A checked task that vanished and a newly seen checked task at the same
    position in the task list are the same task with edited text.

    Returns:
        New identity -> previous identity
    """
    old_tasks = parse_tasks(old_content)
    renamed: Dict[str, str] = {}
    for index, task in enumerate(parse_tasks(new_content)):
        if index >= len(old_tasks):
            break
        previous = old_tasks[index]
        if (
            task.completed
            and previous.completed
            and task.identity not in old
            and previous.identity not in new
            and task.identity not in renamed
            and previous.identity not in renamed.values()
        ):
            renamed[task.identity] = previous.identity
    return renamed


def diff_checkbox_states(old_content: str, new_content: str) -> List[CheckboxTransition]:
    """Find checkbox transitions between two versions of a document.

    Tasks are matched by content identity, so moving or re-indenting a line
    is not a transition. A task that first appears already checked counts as
    completed. Editing the text of a checked task in place is a rename, and
    deleting a checked task is a removal; neither is an uncompletion.

    Args:
        old_content: Previous document content ("" if it did not exist)
        new_content: Current document content

    Returns:
        Transitions in the new document's line order: renames and completions,
        then uncompletions, then removals in the old document's line order
    """
    old = task_states(old_content)
    new = task_states(new_content)
    renamed = _renamed_tasks(old_content, new_content, old, new)

    transitions = []
    for identity, task in new.items():
        previous = old.get(identity)
        if identity in renamed:
            transitions.append(
                CheckboxTransition(identity, task.text, task.is_required, TransitionKind.RENAMED,
                                   task.line_number, previous_identity=renamed[identity])
            )
        elif task.completed and (previous is None or not previous.completed):
            transitions.append(
                CheckboxTransition(identity, task.text, task.is_required, TransitionKind.COMPLETED,
                                   task.line_number)
            )
    for identity, task in new.items():
        previous = old.get(identity)
        if not task.completed and previous is not None and previous.completed:
            transitions.append(
                CheckboxTransition(identity, task.text, task.is_required, TransitionKind.UNCOMPLETED,
                                   task.line_number)
            )
    carried = set(renamed.values())
    for identity, task in old.items():
        if task.completed and identity not in new and identity not in carried:
            transitions.append(
                CheckboxTransition(identity, task.text, task.is_required, TransitionKind.REMOVED,
                                   task.line_number)
            )
    return transitions


def spec_id_for(document_path: str) -> str:
    """Derive a spec id from a tracked document path.

    ``.kiro/specs/auth/tasks.md`` belongs to spec ``auth``; a document at the
    repository root is named after its file stem.
    """
    path = PurePosixPath(str(document_path).replace("\\", "/"))
    if path.parent.name:
        return path.parent.name
    return path.stem


def count_progress(spec_id: str, content: str) -> SpecProgress:
    """Count the tasks in a document."""
    tasks = parse_tasks(content)
    return SpecProgress(
        spec_id=spec_id,
        total_tasks=len(tasks),
        completed_tasks=sum(1 for t in tasks if t.completed),
        optional_tasks=sum(1 for t in tasks if t.optional),
    )


def find_task_documents(repo_root: Path, pattern: str) -> List[str]:
    """Find tracked documents under a repository.

    Args:
        repo_root: Repository root
        pattern: Glob relative to the root

    Returns:
        Sorted repository-relative POSIX paths
    """
    root = Path(repo_root)
    return sorted(p.relative_to(root).as_posix() for p in root.glob(pattern) if p.is_file())


def scan_specs(repo_root: Path, pattern: str) -> List[SpecProgress]:
    """Read the current progress of every tracked document in the working copy."""
    root = Path(repo_root)
    progress = []
    for document in find_task_documents(root, pattern):
        content = (root / document).read_text(encoding="utf-8", errors="replace")
        progress.append(count_progress(spec_id_for(document), content))
    return progress
