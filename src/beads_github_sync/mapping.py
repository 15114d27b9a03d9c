"""Persistent identity map between beads issues and GitHub issues.

The map is a plain in-memory structure owned by the caller for the duration
of a run. It is loaded with ``deserialize_mapping`` before the sync and
written back with ``serialize_mapping`` afterwards; nothing in here touches
the filesystem.

Persisted form::

    {
      "version": 1,
      "mappings": {
        "bd-1": {
          "github_issue_number": 42,
          "github_issue_id": 1001,
          "last_sync_at": "...",
          "beads_updated_at": "...",
          "adopted_from_external_ref": false,
          "comments": {"c1": {"github_comment_id": 555}}
        }
      },
      "sync_metadata": {"last_full_sync": "..."}
    }
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Final

from .exceptions import MappingError, MappingFileError
from .models import CommentMapping, IssueMapping, SyncMetadata
from .utils import is_iso_timestamp, utc_now_iso

logger: logging.Logger = logging.getLogger(__name__)

CURRENT_VERSION: Final[int] = 1

# Watermark for links whose beads state was never pushed; older than any real timestamp
NEVER_SYNCED: Final[str] = "1970-01-01T00:00:00Z"


@dataclass
class MappingFile:
    """Versioned container of issue links plus run metadata.

    Holds at most one link per beads id. Uniqueness of GitHub issue numbers
    across links is not enforced.
    """

    version: int = CURRENT_VERSION
    mappings: dict[str, IssueMapping] = field(default_factory=dict)
    sync_metadata: SyncMetadata = field(default_factory=lambda: SyncMetadata(last_full_sync=utc_now_iso()))

    def get_mapping(self, beads_id: str) -> IssueMapping | None:
        return self.mappings.get(beads_id)

    def set_mapping(self, beads_id: str, mapping: IssueMapping) -> None:
        self.mappings[beads_id] = mapping

    def remove_mapping(self, beads_id: str) -> None:
        self.mappings.pop(beads_id, None)

    def mapped_ids(self) -> set[str]:
        return set(self.mappings)

    def get_comment_mapping(self, beads_id: str, comment_id: str) -> int | None:
        """Get the GitHub comment ID for a beads comment, if it was synced."""
        issue_mapping = self.mappings.get(beads_id)
        if issue_mapping is None:
            return None
        comment_mapping = issue_mapping.comments.get(comment_id)
        return comment_mapping.github_comment_id if comment_mapping else None

    def set_comment_mapping(self, beads_id: str, comment_id: str, github_comment_id: int) -> None:
        """Record the GitHub comment created for a beads comment.

        Raises:
            MappingError: If the beads issue itself is not linked
        """
        issue_mapping = self.mappings.get(beads_id)
        if issue_mapping is None:
            msg = f"Cannot link comment {comment_id}: beads issue {beads_id} has no mapping"
            raise MappingError(msg)
        issue_mapping.comments[comment_id] = CommentMapping(github_comment_id=github_comment_id)

    def update_last_sync_time(self) -> None:
        self.sync_metadata.last_full_sync = utc_now_iso()


def create_empty_mapping() -> MappingFile:
    return MappingFile()


def create_issue_mapping(
    github_issue_number: int,
    github_issue_id: int,
    beads_updated_at: str,
    *,
    adopted_from_external_ref: bool = False,
) -> IssueMapping:
    """Create a fresh link, stamped with the current time and no comment links."""
    return IssueMapping(
        github_issue_number=github_issue_number,
        github_issue_id=github_issue_id,
        last_sync_at=utc_now_iso(),
        beads_updated_at=beads_updated_at,
        adopted_from_external_ref=adopted_from_external_ref,
    )


def mark_synced(mapping: IssueMapping, beads_updated_at: str) -> None:
    """Advance the watermark of a link after a successful push."""
    mapping.beads_updated_at = beads_updated_at
    mapping.last_sync_at = utc_now_iso()


def mapping_to_dict(mapping_file: MappingFile) -> dict[str, Any]:
    return asdict(mapping_file)


def serialize_mapping(mapping_file: MappingFile) -> str:
    """Serialize a mapping file to indented JSON."""
    return json.dumps(mapping_to_dict(mapping_file), indent=2) + "\n"


def _require(container: dict[str, Any], key: str, expected: type | tuple[type, ...], context: str) -> Any:  # noqa: ANN401
    if key not in container:
        msg = f"{context}: missing '{key}'"
        raise MappingFileError(msg)
    value = container[key]
    # bool is an int subclass; never accept it where a number is expected
    if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
        msg = f"{context}: '{key}' has unexpected type {type(value).__name__}"
        raise MappingFileError(msg)
    return value


def _issue_mapping_from_dict(beads_id: str, raw: Any) -> IssueMapping:  # noqa: ANN401
    context = f"mapping for {beads_id}"
    if not isinstance(raw, dict):
        msg = f"{context}: expected an object"
        raise MappingFileError(msg)

    comments: dict[str, CommentMapping] = {}
    raw_comments = raw.get("comments", {})
    if not isinstance(raw_comments, dict):
        msg = f"{context}: 'comments' must be an object"
        raise MappingFileError(msg)
    for comment_id, raw_comment in raw_comments.items():
        if not isinstance(raw_comment, dict):
            msg = f"{context}: comment {comment_id} must be an object"
            raise MappingFileError(msg)
        github_comment_id = _require(raw_comment, "github_comment_id", int, f"{context}, comment {comment_id}")
        comments[comment_id] = CommentMapping(github_comment_id=github_comment_id)

    beads_updated_at: str = _require(raw, "beads_updated_at", str, context)
    if not is_iso_timestamp(beads_updated_at):
        msg = f"{context}: 'beads_updated_at' is not an ISO 8601 timestamp: {beads_updated_at!r}"
        raise MappingFileError(msg)

    adopted = False
    if "adopted_from_external_ref" in raw:
        adopted = _require(raw, "adopted_from_external_ref", bool, context)

    return IssueMapping(
        github_issue_number=_require(raw, "github_issue_number", int, context),
        github_issue_id=_require(raw, "github_issue_id", int, context),
        last_sync_at=_require(raw, "last_sync_at", str, context),
        beads_updated_at=beads_updated_at,
        adopted_from_external_ref=adopted,
        comments=comments,
    )


def mapping_from_dict(data: Any) -> MappingFile:  # noqa: ANN401
    """Build a mapping file from its decoded JSON form.

    Raises:
        MappingFileError: If the structure is not a valid mapping file
    """
    if not isinstance(data, dict):
        msg = "Mapping file must contain a JSON object"
        raise MappingFileError(msg)

    version = _require(data, "version", int, "mapping file")
    if version < 1 or version > CURRENT_VERSION:
        msg = f"Unsupported mapping file version {version} (supported: 1..{CURRENT_VERSION})"
        raise MappingFileError(msg)

    raw_mappings = _require(data, "mappings", dict, "mapping file")
    mappings = {beads_id: _issue_mapping_from_dict(beads_id, raw) for beads_id, raw in raw_mappings.items()}

    raw_metadata = data.get("sync_metadata")
    if raw_metadata is None:
        metadata = SyncMetadata(last_full_sync=utc_now_iso())
    elif isinstance(raw_metadata, dict):
        metadata = SyncMetadata(last_full_sync=_require(raw_metadata, "last_full_sync", str, "sync_metadata"))
    else:
        msg = "mapping file: 'sync_metadata' must be an object"
        raise MappingFileError(msg)

    return MappingFile(version=version, mappings=mappings, sync_metadata=metadata)


def deserialize_mapping(content: str) -> MappingFile:
    """Deserialize a mapping file.

    Empty (or whitespace-only) content yields a fresh empty mapping.

    Raises:
        MappingFileError: If non-empty content is not a valid mapping file
    """
    if not content.strip():
        logger.debug("Mapping content is empty, starting with a fresh mapping")
        return create_empty_mapping()

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        msg = f"Mapping file is not valid JSON: {e}"
        raise MappingFileError(msg) from e

    return mapping_from_dict(data)
