"""
beads to GitHub sync

One-way sync of beads issues (issues.jsonl) to GitHub issues, keeping a
persistent mapping so that repeated runs only push what changed.
"""

from __future__ import annotations

from .cli import main
from .diff import compute_diff
from .exceptions import ConfigError, MappingError, MappingFileError, SyncerError
from .mapping import MappingFile, deserialize_mapping, serialize_mapping
from .orchestrator import Syncer
from .parser import parse_beads_file
from .utils import setup_logging

# Package version
__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "MappingError",
    "MappingFile",
    "MappingFileError",
    "Syncer",
    "SyncerError",
    "compute_diff",
    "deserialize_mapping",
    "main",
    "parse_beads_file",
    "serialize_mapping",
    "setup_logging",
]
