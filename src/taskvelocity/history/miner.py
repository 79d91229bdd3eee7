"""History mining: rebuild task velocity from the Git log of task documents.

Each tracked document is walked commit by commit, oldest first, following
renames of the document itself. Checkbox states are diffed by task identity
between consecutive versions; every unchecked -> checked transition becomes a
completion at the commit's author date, attributed to the commit author, and
every checked -> unchecked transition becomes an uncompletion. A checked task
whose text is edited in place keeps its completion, and a checked task that is
deleted stays counted in its week but no longer counts toward its spec. The
events of all documents are then sorted by time and replayed through a freshly
reset EventStore.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

import git
import structlog

from taskvelocity.extraction.checkboxes import (
    CheckboxTransition,
    TransitionKind,
    diff_checkbox_states,
    find_task_documents,
    spec_id_for,
    task_states,
)
from taskvelocity.extraction.git_extractor import WORKTREE, GitExtractor
from taskvelocity.models import ImportSummary, RepositoryConfig, VelocitySettings
from taskvelocity.models.velocity import UNKNOWN_AUTHOR
from taskvelocity.tracking.store import EventStore
from taskvelocity.tracking.weeks import to_utc, utc_now

logger = structlog.get_logger(__name__)


@dataclass
class MinedTaskEvent:
    """A task transition derived from a document's history"""
    spec_id: str
    task_identity: str
    text: str
    is_required: bool
    kind: TransitionKind
    timestamp: datetime
    author: Optional[str]
    author_email: Optional[str]
    commit_hash: str
    document_index: int
    sequence: int
    previous_identity: Optional[str] = None

    @property
    def completed(self) -> bool:
        return self.kind is TransitionKind.COMPLETED

    @property
    def sort_key(self):
        return (self.timestamp, self.document_index, self.sequence)


@dataclass
class MinedHistory:
    """Everything one walk of the log produced"""
    events: List[MinedTaskEvent] = field(default_factory=list)
    spec_totals: Dict[str, int] = field(default_factory=dict)
    documents: List[str] = field(default_factory=list)
    commits_analyzed: int = 0
    available: bool = True

    @property
    def specs_seen(self) -> List[str]:
        return sorted({spec_id_for(document) for document in self.documents})


class HistoryMiner:
    """Derives task events from the Git history of tracked documents."""

    def __init__(
        self,
        settings: Optional[VelocitySettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the miner

        Args:
            settings: Document glob and uncommitted-change handling
            clock: Source of the current time for uncommitted completions
        """
        self.settings = settings or VelocitySettings()
        self.clock = clock or utc_now

    def mine(self, repo_root: Path, tracked_document_paths: Optional[Sequence[str]] = None) -> MinedHistory:
        """
        Walk the history of every tracked document

        Args:
            repo_root: Repository root
            tracked_document_paths: Documents to walk; found with the configured
                glob when empty

        Returns:
            MinedHistory, with ``available=False`` when the repository cannot be read
        """
        repo_root = Path(repo_root)
        try:
            extractor = GitExtractor(
                RepositoryConfig(repo_path=repo_root, tracked_documents=list(tracked_document_paths or []))
            )
            documents = list(tracked_document_paths or []) or find_task_documents(
                extractor.root, self.settings.tracked_document_glob
            )
            return self._mine_documents(extractor, self._resolve_documents(extractor, documents))
        except (ValueError, git.exc.GitCommandNotFound) as e:
            logger.warning("version_control_unavailable", repo_root=str(repo_root), error=str(e))
            return MinedHistory(available=False)

    @staticmethod
    def _resolve_documents(extractor: GitExtractor, documents: Sequence[str]) -> List[str]:
        resolved = []
        for document in documents:
            try:
                resolved.append(extractor.relative_path(document))
            except ValueError:
                logger.warning(
                    "document_outside_repository", document=str(document), repo_root=str(extractor.root)
                )
        return resolved

    def _mine_documents(self, extractor: GitExtractor, documents: List[str]) -> MinedHistory:
        history = MinedHistory(documents=documents)
        commits_seen = set()
        now = to_utc(self.clock())
        user_name, user_email = extractor.current_user() if self.settings.include_uncommitted else (None, None)

        for index, document in enumerate(documents):
            spec_id = spec_id_for(document)
            sequence = 0
            previous = ""

            try:
                commits = extractor.extract_document_history(document)
            except git.exc.GitCommandError as e:
                logger.warning("document_history_unreadable", document=document, error=str(e))
                commits = []

            for commit, path in commits:
                commits_seen.add(commit.hash)
                snapshot = extractor.extract_file_snapshot(commit.hash, path)
                if not snapshot.exists:
                    # Absent at this commit; the next version is diffed against the last one read
                    continue
                content = snapshot.content
                for transition in diff_checkbox_states(previous, content):
                    history.events.append(
                        self._event(spec_id, transition, commit.timestamp, commit.author_name,
                                    commit.author_email, commit.hash, index, sequence)
                    )
                    sequence += 1
                previous = content

            current = previous
            if self.settings.include_uncommitted:
                working = extractor.extract_working_copy(document)
                if working.exists:
                    for transition in diff_checkbox_states(previous, working.content):
                        # Uncommitted unchecks are not recorded
                        if transition.kind is TransitionKind.UNCOMPLETED:
                            continue
                        history.events.append(
                            self._event(spec_id, transition, now, user_name, user_email,
                                        WORKTREE, index, sequence)
                        )
                        sequence += 1
                    current = working.content

            history.spec_totals[spec_id] = history.spec_totals.get(spec_id, 0) + len(task_states(current))
            logger.debug(
                "document_mined",
                document=document,
                spec_id=spec_id,
                commits=len(commits),
                events=sequence,
            )

        history.events.sort(key=lambda event: event.sort_key)
        history.commits_analyzed = len(commits_seen)
        return history

    @staticmethod
    def _event(
        spec_id: str,
        transition: CheckboxTransition,
        timestamp: datetime,
        author: Optional[str],
        author_email: Optional[str],
        commit_hash: str,
        document_index: int,
        sequence: int,
    ) -> MinedTaskEvent:
        return MinedTaskEvent(
            spec_id=spec_id,
            task_identity=transition.identity,
            text=transition.text,
            is_required=transition.is_required,
            kind=transition.kind,
            timestamp=to_utc(timestamp),
            author=author or None,
            author_email=author_email or None,
            commit_hash=commit_hash,
            document_index=document_index,
            sequence=sequence,
            previous_identity=transition.previous_identity,
        )


def replay_history(store: EventStore, history: MinedHistory, imported_at: datetime) -> ImportSummary:
    """
    Rebuild a store from mined history

    The store is reset first, so replaying the same history always yields the
    same aggregate. Each event carries its spec's current total, which lets a
    spec's completion land on the exact event that first completes it.

    Args:
        store: Store to rebuild
        history: Output of HistoryMiner.mine
        imported_at: Time recorded on the summary

    Returns:
        ImportSummary of the replay
    """
    store.reset()
    summary = ImportSummary(
        specs_seen=history.specs_seen,
        commits_analyzed=history.commits_analyzed,
        available=history.available,
        imported_at=to_utc(imported_at),
    )
    authors = set()

    for event in history.events:
        total = history.spec_totals.get(event.spec_id)
        if event.completed:
            recorded = store.record_completion(
                spec_id=event.spec_id,
                task_identity=event.task_identity,
                is_required=event.is_required,
                timestamp=event.timestamp,
                author=event.author,
                author_email=event.author_email,
                task_description=event.text,
                total_tasks=total,
            )
            if recorded is not None:
                summary.tasks_processed += 1
                authors.add(event.author or UNKNOWN_AUTHOR)
        elif event.kind is TransitionKind.UNCOMPLETED:
            withdrawn = store.record_uncompletion(
                spec_id=event.spec_id,
                task_identity=event.task_identity,
                timestamp=event.timestamp,
                total_tasks=total,
            )
            if withdrawn is not None:
                summary.uncompletions_processed += 1
        elif event.kind is TransitionKind.RENAMED:
            renamed = store.rename_task(
                event.spec_id, event.previous_identity, event.task_identity, event.text
            )
            if renamed is not None:
                summary.renames_processed += 1
        elif store.retire_task(event.spec_id, event.task_identity, total_tasks=total) is not None:
            summary.removals_processed += 1

    summary.authors = sorted(authors)
    summary.specs_completed = sorted(
        spec_id for spec_id, record in store.data.spec_activity.items() if record.completion_date is not None
    )
    store.data.last_import = summary

    logger.info(
        "history_replayed",
        tasks=summary.tasks_processed,
        uncompletions=summary.uncompletions_processed,
        renames=summary.renames_processed,
        removals=summary.removals_processed,
        specs=len(summary.specs_seen),
        authors=len(summary.authors),
        commits=summary.commits_analyzed,
    )
    return summary
