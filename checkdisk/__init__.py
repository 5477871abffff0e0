"""Supervise badblocks scans and resume them after an interruption."""

__version__ = "1.0.0"
