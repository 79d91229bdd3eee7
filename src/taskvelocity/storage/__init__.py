"""Velocity state persistence."""

from taskvelocity.storage.state import STATE_FILENAME, VelocityStateStore

__all__ = ["STATE_FILENAME", "VelocityStateStore"]
