"""Git and markdown extraction for tracked task documents."""

from taskvelocity.extraction.checkboxes import (
    CheckboxTask,
    CheckboxTransition,
    TransitionKind,
    count_progress,
    diff_checkbox_states,
    find_task_documents,
    parse_tasks,
    scan_specs,
    spec_id_for,
    task_states,
)
from taskvelocity.extraction.git_extractor import GitExtractor

__all__ = [
    "GitExtractor",
    "CheckboxTask",
    "CheckboxTransition",
    "TransitionKind",
    "count_progress",
    "diff_checkbox_states",
    "find_task_documents",
    "parse_tasks",
    "scan_specs",
    "spec_id_for",
    "task_states",
]
