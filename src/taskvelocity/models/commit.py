"""Data models for Git commit information."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class CommitMetadata(BaseModel):
    """Represents metadata for a single commit touching a tracked document."""

    hash: str = Field(..., description="Full commit SHA hash")
    short_hash: str = Field(..., description="Short commit SHA hash (7 chars)")
    author_name: str = Field(..., description="Author name")
    author_email: str = Field("", description="Author email")
    timestamp: datetime = Field(..., description="Author timestamp (UTC)")
    message_summary: Optional[str] = Field(None, description="First line of commit message")
    parent_hashes: List[str] = Field(default_factory=list, description="Parent commit hashes")
    is_merge: bool = Field(False, description="Whether this is a merge commit")

    class Config:
        """Pydantic config."""
        json_schema_extra = {
            "example": {
                "hash": "abc123def456",
                "short_hash": "abc123d",
                "author_name": "Jane Doe",
                "author_email": "jane@example.com",
                "timestamp": "2024-01-15T10:30:00Z",
                "message_summary": "Check off login form tasks",
                "parent_hashes": ["parent123"],
                "is_merge": False,
            }
        }


class FileSnapshot(BaseModel):
    """Represents the content of a tracked document at a specific commit."""

    commit_hash: str = Field(..., description="Commit hash, or 'WORKTREE' for the working copy")
    file_path: str = Field(..., description="Repository-relative path to the file")
    content: str = Field(..., description="Full file content")
    timestamp: Optional[datetime] = Field(None, description="Commit timestamp")
    exists: bool = Field(True, description="Whether the file exists at this commit")

    class Config:
        """Pydantic config."""
        json_schema_extra = {
            "example": {
                "commit_hash": "abc123def456",
                "file_path": ".kiro/specs/auth/tasks.md",
                "content": "- [x] 1. Add login form\n- [ ] 2. Add logout button\n",
                "timestamp": "2024-01-15T10:30:00Z",
                "exists": True,
            }
        }
