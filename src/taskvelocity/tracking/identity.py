"""Content-based task identity."""

import hashlib
import re

IDENTITY_PREFIX_CHARS = 100

_WHITESPACE = re.compile(r"\s+")


def normalize_task_text(task_text: str) -> str:
    """Normalize task text for hashing.

    Surrounding whitespace is dropped and internal runs of whitespace collapse
    to a single space, so reflowed or re-indented lines keep their identity.

    Args:
        task_text: Task description (text after the checkbox)

    Returns:
        Normalized text truncated to the identity prefix length
    """
    return _WHITESPACE.sub(" ", task_text).strip()[:IDENTITY_PREFIX_CHARS]


def identity_of(task_text: str) -> str:
    """Compute the stable identity of a task from its text.

    The identity ignores where the task sits in its document. Two tasks with
    the same description in one spec share an identity.

    Args:
        task_text: Task description

    Returns:
        16-character hex digest
    """
    normalized = normalize_task_text(task_text)
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()[:16]
