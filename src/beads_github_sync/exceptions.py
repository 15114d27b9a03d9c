"""
Custom exception classes for the beads to GitHub sync tool.
"""

from __future__ import annotations


class SyncerError(Exception):
    """Base exception for sync errors."""


class MappingError(SyncerError):
    """Raised when the issue mapping is used inconsistently."""


class MappingFileError(SyncerError):
    """Raised when a persisted mapping file cannot be trusted."""


class ConfigError(SyncerError):
    """Raised when the sync configuration is invalid."""
