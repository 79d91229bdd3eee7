"""Rebuilding velocity history from version control."""

from taskvelocity.history.miner import HistoryMiner, MinedHistory, MinedTaskEvent, replay_history

__all__ = ["HistoryMiner", "MinedHistory", "MinedTaskEvent", "replay_history"]
