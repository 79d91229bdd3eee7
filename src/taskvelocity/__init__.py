"""Task velocity analytics for markdown task lists tracked in Git."""

__version__ = "0.1.0"
