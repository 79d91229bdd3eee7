"""Configuration models."""

from pathlib import Path
from typing import List

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RepositoryConfig(BaseModel):
    """Configuration for a Git repository whose task documents are mined."""

    repo_path: Path = Field(..., description="Path to the Git repository")
    tracked_documents: List[str] = Field(
        default_factory=list,
        description="Repository-relative paths of markdown task documents",
    )
    max_file_size_bytes: int = Field(
        default=1_000_000,  # 1MB
        description="Maximum document size to read",
    )

    class Config:
        """Pydantic config."""
        json_schema_extra = {
            "example": {
                "repo_path": "/path/to/repo",
                "tracked_documents": [".kiro/specs/auth/tasks.md"],
                "max_file_size_bytes": 1000000,
            }
        }


class VelocitySettings(BaseSettings):
    """Velocity engine settings.

    Settings can be loaded from environment variables or .env file.
    All settings are prefixed with TASKVELOCITY_ (e.g., TASKVELOCITY_LOG_LEVEL).
    """

    model_config = SettingsConfigDict(
        env_prefix="TASKVELOCITY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Persistence
    state_dir: Path = Field(
        default=Path(".taskvelocity"),
        description="State directory; relative paths resolve against the repository root",
    )

    # Tracked documents
    tracked_document_glob: str = Field(
        default=".kiro/specs/*/tasks.md",
        description="Glob (relative to the repository) selecting task documents",
    )
    include_uncommitted: bool = Field(
        default=True,
        description="Count working-copy completions that are not committed yet",
    )

    # Retention
    event_buffer_size: int = Field(default=100, description="Recent raw events kept for display")
    daily_history_days: int = Field(default=90, description="Days of per-day counts kept")

    # Metric windows
    chart_weeks: int = Field(default=12, description="Weeks in the tasks/specs per week series")
    rolling_window_weeks: int = Field(default=4, description="Weeks in the rolling average")
    consistency_window_weeks: int = Field(default=8, description="Weeks in the consistency window")
    heatmap_days: int = Field(default=84, description="Days in the daily activity series")

    # Time distribution boundaries (inclusive)
    fast_max_days: int = Field(default=14, description="Longest duration counted as fast")
    medium_max_days: int = Field(default=42, description="Longest duration counted as medium")

    # Logging
    log_level: str = "INFO"

    def resolve_state_dir(self, repo_root: Path) -> Path:
        """Get the state directory for a repository.

        Args:
            repo_root: Repository root

        Returns:
            Absolute state directory
        """
        if self.state_dir.is_absolute():
            return self.state_dir
        return Path(repo_root) / self.state_dir
