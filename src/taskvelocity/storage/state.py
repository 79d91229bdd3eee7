"""Persistent velocity state.

The whole VelocityData aggregate is stored as one JSON document,
``velocity.json``, inside the project's state directory.
"""

import json
import os
import tempfile
from pathlib import Path

import structlog
from pydantic import ValidationError

from taskvelocity.models.velocity import VelocityData

logger = structlog.get_logger(__name__)

STATE_FILENAME = "velocity.json"


class VelocityStateStore:
    """Loads and saves the velocity aggregate of one project.

    A missing or unreadable state file yields an empty aggregate; saving
    writes a temporary file and renames it over the old one.
    """

    def __init__(self, state_dir: Path):
        """Initialize the state store.

        Args:
            state_dir: Directory holding the state file
        """
        self.state_dir = Path(state_dir)
        self.state_file = self.state_dir / STATE_FILENAME

    def _ensure_state_dir(self) -> None:
        self.state_dir.mkdir(parents=True, exist_ok=True)

    def exists(self) -> bool:
        return self.state_file.exists()

    def load(self) -> VelocityData:
        """Load the stored aggregate.

        Returns:
            Stored VelocityData, or an empty one if there is none or it is corrupt
        """
        if not self.state_file.exists():
            return VelocityData()

        try:
            with open(self.state_file, "r", encoding="utf-8") as f:
                raw = json.load(f)
            data = VelocityData.model_validate(raw)
        except (json.JSONDecodeError, ValidationError, UnicodeDecodeError) as e:
            # Corrupt state is replaced by a fresh aggregate
            logger.warning("state_file_unreadable", path=str(self.state_file), error=str(e))
            return VelocityData()

        logger.debug(
            "state_loaded",
            path=str(self.state_file),
            specs=len(data.spec_activity),
            completions=len(data.completion_ledger),
        )
        return data

    def save(self, data: VelocityData) -> None:
        """Save the aggregate to disk using atomic write.

        Args:
            data: Aggregate to persist
        """
        self._ensure_state_dir()

        fd, temp_path = tempfile.mkstemp(dir=self.state_dir, prefix=".velocity_", suffix=".json.tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data.model_dump_json(indent=2))
            os.replace(temp_path, self.state_file)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    def clear(self) -> bool:
        """Delete the state file.

        Returns:
            True if a file was deleted
        """
        if not self.state_file.exists():
            return False
        self.state_file.unlink()
        logger.info("state_cleared", path=str(self.state_file))
        return True
