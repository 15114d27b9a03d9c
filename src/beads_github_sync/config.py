"""Configuration of a sync run."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from .exceptions import ConfigError
from .models import VALID_PRIORITIES, VALID_STATUSES

if TYPE_CHECKING:
    import argparse

    from .models import BeadsStatus

DEFAULT_BEADS_FILE: Final[str] = ".beads/issues.jsonl"
DEFAULT_MAPPING_FILE: Final[str] = ".beads-sync/mapping.json"


def _split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_status_list(value: str | None) -> list[BeadsStatus]:
    """Parse a comma-separated status list; empty means every status."""
    statuses = _split_csv(value)
    if not statuses:
        return list(VALID_STATUSES)  # pyright: ignore[reportReturnType]
    invalid = [s for s in statuses if s not in VALID_STATUSES]
    if invalid:
        msg = f"Invalid status(es): {', '.join(invalid)}. Valid statuses: {', '.join(VALID_STATUSES)}"
        raise ConfigError(msg)
    return statuses  # pyright: ignore[reportReturnType]


def parse_priority_list(value: str | None) -> list[int]:
    """Parse a comma-separated priority list; empty means every priority."""
    items = _split_csv(value)
    if not items:
        return list(VALID_PRIORITIES)
    priorities: list[int] = []
    for item in items:
        try:
            priority = int(item)
        except ValueError as e:
            msg = f"Invalid priority: {item}"
            raise ConfigError(msg) from e
        if priority not in VALID_PRIORITIES:
            msg = f"Invalid priority: {item}. Valid priorities: 0-4"
            raise ConfigError(msg)
        priorities.append(priority)
    return priorities


def parse_label_list(value: str | None) -> list[str]:
    return _split_csv(value)


@dataclass
class SyncConfig:
    """Options controlling what gets synced and how."""

    repo_path: str
    beads_file: str = DEFAULT_BEADS_FILE
    mapping_file: str = DEFAULT_MAPPING_FILE
    dry_run: bool = False
    sync_comments: bool = True
    sync_statuses: list[BeadsStatus] = field(default_factory=lambda: list(VALID_STATUSES))  # pyright: ignore[reportAssignmentType]
    sync_priorities: list[int] = field(default_factory=lambda: list(VALID_PRIORITIES))
    # Empty means no label filter
    sync_labels: list[str] = field(default_factory=list)
    label_prefix: str = ""
    add_sync_marker: bool = True
    close_deleted: bool = True
    detect_reopen: bool = True
    bootstrap: bool = False

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> SyncConfig:
        """Build the configuration from parsed command line arguments.

        Raises:
            ConfigError: If an option value is invalid
        """
        repo_path: str = args.github_repo.strip()
        parts = repo_path.split("/")
        if len(parts) != 2 or not all(parts):  # noqa: PLR2004
            msg = f"Invalid GitHub repository path '{args.github_repo}'. Expected format: 'owner/repository'"
            raise ConfigError(msg)

        # Bootstrap finds synced issues through the sync marker label
        if args.bootstrap and not args.add_sync_marker:
            msg = "--bootstrap cannot be combined with --no-sync-marker"
            raise ConfigError(msg)

        return cls(
            repo_path=repo_path,
            beads_file=args.beads_file,
            mapping_file=args.mapping_file,
            dry_run=args.dry_run,
            sync_comments=args.sync_comments,
            sync_statuses=parse_status_list(args.sync_statuses),
            sync_priorities=parse_priority_list(args.sync_priorities),
            sync_labels=parse_label_list(args.sync_labels),
            label_prefix=args.label_prefix or "",
            add_sync_marker=args.add_sync_marker,
            close_deleted=args.close_deleted,
            detect_reopen=args.detect_reopen,
            bootstrap=args.bootstrap,
        )
