"""Git repository data extraction for tracked task documents."""

from datetime import timezone
from pathlib import Path
from typing import List, Optional, Tuple

import git
import structlog
from git import Commit, Repo

from taskvelocity.models import CommitMetadata, FileSnapshot, RepositoryConfig

logger = structlog.get_logger(__name__)

WORKTREE = "WORKTREE"
RECORD_SEPARATOR = "\x1e"


class GitExtractor:
    """Extracts the history of tracked documents from a Git repository."""

    def __init__(self, config: RepositoryConfig) -> None:
        """Initialize the GitExtractor.

        Args:
            config: Repository configuration

        Raises:
            ValueError: If repository path is invalid
        """
        self.config = config
        if not config.repo_path.exists():
            raise ValueError(f"Repository path does not exist: {config.repo_path}")

        try:
            self.repo = Repo(config.repo_path)
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as e:
            raise ValueError(f"Invalid Git repository: {config.repo_path}") from e

    @property
    def root(self) -> Path:
        return Path(self.repo.working_tree_dir or self.config.repo_path)

    def relative_path(self, file_path: str) -> str:
        """Convert a document path to a repository-relative POSIX path."""
        path = Path(file_path)
        if path.is_absolute():
            path = path.resolve().relative_to(self.root.resolve())
        return path.as_posix()

    def has_commits(self) -> bool:
        try:
            self.repo.head.commit
        except ValueError:
            return False
        return True

    def extract_document_history(self, file_path: str, branch: str = "HEAD") -> List[Tuple[CommitMetadata, str]]:
        """Extract every commit that touched a document, following renames.

        Args:
            file_path: Current document path (absolute or repository-relative)
            branch: Branch to walk (default: HEAD)

        Returns:
            (commit, path the document had in that commit) pairs, oldest first
        """
        if not self.has_commits():
            return []
        rel_path = self.relative_path(file_path)
        output = self.repo.git(c="core.quotePath=false").log(
            branch, "--follow", "--name-only", f"--format={RECORD_SEPARATOR}%H", "--", rel_path
        )

        entries: List[List[str]] = []
        for line in output.splitlines():
            if line.startswith(RECORD_SEPARATOR):
                entries.append([line[len(RECORD_SEPARATOR):].strip(), ""])
            elif line.strip() and entries and not entries[-1][1]:
                entries[-1][1] = line.strip()

        # git lists newest first; merges list no path and keep the newer one's
        history = []
        path = rel_path
        for commit_hash, listed_path in entries:
            path = listed_path or path
            history.append((self._extract_commit_metadata(self.repo.commit(commit_hash)), path))
        history.reverse()
        return history

    def extract_document_commits(self, file_path: str, branch: str = "HEAD") -> List[CommitMetadata]:
        """Extract every commit that touched a document, oldest first.

        Args:
            file_path: Document path (absolute or repository-relative)
            branch: Branch to walk (default: HEAD)

        Returns:
            CommitMetadata objects in chronological order
        """
        return [commit for commit, _ in self.extract_document_history(file_path, branch)]

    def extract_file_snapshot(self, commit_hash: str, file_path: str) -> FileSnapshot:
        """Extract the content of a document at a specific commit.

        Args:
            commit_hash: Commit hash
            file_path: Document path (absolute or repository-relative)

        Returns:
            FileSnapshot; ``exists`` is False when the document is absent,
            oversized or not UTF-8 text at that commit

        Raises:
            ValueError: If commit not found
        """
        rel_path = self.relative_path(file_path)
        try:
            commit = self.repo.commit(commit_hash)
        except (git.exc.BadName, git.exc.BadObject, ValueError) as e:
            raise ValueError(f"Commit not found: {commit_hash}") from e

        timestamp = commit.authored_datetime.astimezone(timezone.utc)
        try:
            blob = commit.tree / rel_path
        except KeyError:
            # File doesn't exist in this commit
            return FileSnapshot(
                commit_hash=commit.hexsha, file_path=rel_path, content="", timestamp=timestamp, exists=False
            )

        if blob.type != "blob" or blob.size > self.config.max_file_size_bytes:
            return FileSnapshot(
                commit_hash=commit.hexsha, file_path=rel_path, content="", timestamp=timestamp, exists=False
            )

        try:
            content = blob.data_stream.read().decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("document_not_utf8", file_path=rel_path, commit=commit.hexsha[:7])
            return FileSnapshot(
                commit_hash=commit.hexsha, file_path=rel_path, content="", timestamp=timestamp, exists=False
            )

        return FileSnapshot(
            commit_hash=commit.hexsha, file_path=rel_path, content=content, timestamp=timestamp
        )

    def extract_head_snapshot(self, file_path: str) -> FileSnapshot:
        """Extract a document as committed at HEAD (empty if never committed)."""
        if not self.has_commits():
            return FileSnapshot(
                commit_hash="HEAD", file_path=self.relative_path(file_path), content="", exists=False
            )
        return self.extract_file_snapshot(self.repo.head.commit.hexsha, file_path)

    def extract_working_copy(self, file_path: str) -> FileSnapshot:
        """Read a document from the working tree."""
        rel_path = self.relative_path(file_path)
        path = self.root / rel_path
        if not path.is_file():
            return FileSnapshot(commit_hash=WORKTREE, file_path=rel_path, content="", exists=False)
        content = path.read_text(encoding="utf-8", errors="replace")
        return FileSnapshot(commit_hash=WORKTREE, file_path=rel_path, content=content)

    def current_user(self) -> Tuple[Optional[str], Optional[str]]:
        """Get the configured Git user name and email.

        Returns:
            (name, email); either is None when not configured
        """
        reader = self.repo.config_reader()
        name = reader.get_value("user", "name", default="")
        email = reader.get_value("user", "email", default="")
        return (str(name) if name else None, str(email) if email else None)

    def _extract_commit_metadata(self, commit: Commit) -> CommitMetadata:
        """Extract metadata from a GitPython Commit object.

        Args:
            commit: GitPython Commit object

        Returns:
            CommitMetadata object
        """
        message = commit.message.strip() if isinstance(commit.message, str) else ""
        message_summary = message.split("\n")[0] if message else ""

        return CommitMetadata(
            hash=commit.hexsha,
            short_hash=commit.hexsha[:7],
            author_name=commit.author.name or "unknown",
            author_email=commit.author.email or "",
            timestamp=commit.authored_datetime.astimezone(timezone.utc),
            message_summary=message_summary,
            parent_hashes=[p.hexsha for p in commit.parents],
            is_merge=len(commit.parents) > 1,
        )
