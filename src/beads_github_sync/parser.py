"""Parse a beads issues.jsonl export into validated records."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Final

from .models import (
    VALID_DEPENDENCY_TYPES,
    VALID_ISSUE_TYPES,
    VALID_PRIORITIES,
    VALID_STATUSES,
    BeadsComment,
    BeadsDependency,
    BeadsIssue,
)
from .utils import is_iso_timestamp

logger: logging.Logger = logging.getLogger(__name__)

# Length of the offending line kept in a parse error
ERROR_CONTENT_LENGTH: Final[int] = 100


@dataclass(frozen=True)
class ParseError:
    """A line of the beads file that was excluded from the snapshot."""

    line: int
    content: str
    error: str


@dataclass
class ParseResult:
    issues: list[BeadsIssue] = field(default_factory=list)
    errors: list[ParseError] = field(default_factory=list)


def parse_beads_line(line: str) -> Any | None:  # noqa: ANN401
    """Decode one JSONL line.

    Returns:
        The decoded JSON value, or None if the line is blank or not valid JSON
    """
    stripped = line.strip()
    if not stripped:
        return None
    try:
        return json.loads(stripped)
    except json.JSONDecodeError:
        return None


def validate_beads_issue(data: Any) -> str | None:  # noqa: ANN401
    """Check that a decoded line has every required beads issue field.

    Returns:
        None if valid, otherwise the reason the record is rejected
    """
    if not isinstance(data, dict):
        return "Not a JSON object"

    for key in ("id", "title"):
        value = data.get(key)
        if not isinstance(value, str) or not value:
            return f"Missing or empty '{key}'"

    if data.get("status") not in VALID_STATUSES:
        return f"Invalid status: {data.get('status')!r}"

    for key in ("created_at", "updated_at"):
        value = data.get(key)
        if not isinstance(value, str) or not value:
            return f"Missing or empty '{key}'"
        if not is_iso_timestamp(value):
            return f"Invalid timestamp in '{key}': {value!r}"

    return None


def _optional_str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    return value if isinstance(value, str) and value else None


def _parse_priority(issue_id: str, value: Any) -> int | None:  # noqa: ANN401
    if value is None:
        return None
    if isinstance(value, int) and not isinstance(value, bool) and value in VALID_PRIORITIES:
        return value
    logger.debug(f"Ignoring invalid priority {value!r} on {issue_id}")
    return None


def _parse_dependencies(issue_id: str, raw: Any) -> tuple[BeadsDependency, ...]:  # noqa: ANN401
    if not isinstance(raw, list):
        return ()
    dependencies: list[BeadsDependency] = []
    for entry in raw:
        if (
            isinstance(entry, dict)
            and isinstance(entry.get("id"), str)
            and entry["id"]
            and entry.get("type") in VALID_DEPENDENCY_TYPES
        ):
            dependencies.append(BeadsDependency(id=entry["id"], type=entry["type"]))
        else:
            logger.debug(f"Ignoring malformed dependency on {issue_id}: {entry!r}")
    return tuple(dependencies)


def _parse_comments(issue_id: str, raw: Any) -> tuple[BeadsComment, ...]:  # noqa: ANN401
    if not isinstance(raw, list):
        return ()
    comments: list[BeadsComment] = []
    for entry in raw:
        if not isinstance(entry, dict) or entry.get("id") in (None, ""):
            logger.debug(f"Ignoring comment without id on {issue_id}")
            continue
        comments.append(
            BeadsComment(
                # Some exports write numeric comment ids
                id=str(entry["id"]),
                author=str(entry.get("author") or "unknown"),
                created_at=str(entry.get("created_at") or ""),
                body=str(entry.get("body") or ""),
            )
        )
    return tuple(comments)


def issue_from_dict(data: dict[str, Any]) -> BeadsIssue:
    """Build a BeadsIssue from a record that passed ``validate_beads_issue``.

    Optional fields of the wrong shape are dropped rather than rejected.
    """
    issue_id: str = data["id"]

    issue_type = data.get("issue_type")
    if issue_type is not None and issue_type not in VALID_ISSUE_TYPES:
        logger.debug(f"Ignoring unknown issue type {issue_type!r} on {issue_id}")
        issue_type = None

    raw_labels = data.get("labels")
    labels = tuple(label for label in raw_labels if isinstance(label, str) and label) if isinstance(raw_labels, list) else ()

    raw_criteria = data.get("acceptance_criteria")
    if isinstance(raw_criteria, str):
        criteria: tuple[str, ...] = (raw_criteria,) if raw_criteria else ()
    elif isinstance(raw_criteria, list):
        criteria = tuple(c for c in raw_criteria if isinstance(c, str) and c)
    else:
        criteria = ()

    return BeadsIssue(
        id=issue_id,
        title=data["title"],
        status=data["status"],
        created_at=data["created_at"],
        updated_at=data["updated_at"],
        description=_optional_str(data, "description"),
        design=_optional_str(data, "design"),
        acceptance_criteria=criteria,
        notes=_optional_str(data, "notes"),
        priority=_parse_priority(issue_id, data.get("priority")),
        issue_type=issue_type,
        assignee=_optional_str(data, "assignee"),
        labels=labels,
        dependencies=_parse_dependencies(issue_id, data.get("dependencies")),
        external_ref=_optional_str(data, "external_ref"),
        close_reason=_optional_str(data, "close_reason"),
        comments=_parse_comments(issue_id, data.get("comments")),
        estimated_time=_optional_str(data, "estimated_time"),
    )


def parse_beads_file(content: str) -> ParseResult:
    """Parse the content of a beads issues.jsonl file.

    Each non-blank line is parsed independently; lines that are not valid
    JSON or fail validation are reported in ``errors`` and skipped.
    """
    result = ParseResult()

    for line_number, line in enumerate(content.splitlines(), start=1):
        if not line.strip():
            continue

        parsed = parse_beads_line(line)
        if parsed is None:
            result.errors.append(ParseError(line_number, line[:ERROR_CONTENT_LENGTH], "Invalid JSON"))
            continue

        reason = validate_beads_issue(parsed)
        if reason is not None:
            result.errors.append(ParseError(line_number, line[:ERROR_CONTENT_LENGTH], reason))
            continue

        result.issues.append(issue_from_dict(parsed))

    logger.debug(f"Parsed {len(result.issues)} issues with {len(result.errors)} errors")
    return result
