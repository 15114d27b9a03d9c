"""Build GitHub issue bodies and comments from beads data."""

from __future__ import annotations

import datetime as dt
import re
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from .mapping import MappingFile
    from .models import BeadsComment, BeadsIssue

BEADS_SYNC_MARKER_PATTERN: Final[re.Pattern[str]] = re.compile(r"<!-- beads-sync:([A-Za-z0-9._:-]+) -->")
BEADS_COMMENT_MARKER_PATTERN: Final[re.Pattern[str]] = re.compile(r"<!-- beads-comment:([^\s>]+) -->")


def format_timestamp(iso_timestamp: str) -> str:
    """Format ISO 8601 timestamp to human-readable format.

    Args:
        iso_timestamp: ISO 8601 formatted timestamp string

    Returns:
        Formatted timestamp (e.g., "2024-01-15 10:30:45Z").
        Returns original value if parsing fails.
    """
    if not iso_timestamp:
        return iso_timestamp

    try:
        timestamp_dt = dt.datetime.fromisoformat(iso_timestamp)
        formatted = timestamp_dt.isoformat(sep=" ", timespec="seconds")
        return formatted.replace("+00:00", "Z")
    except (ValueError, AttributeError):
        return iso_timestamp


def _details(summary: str, content: str) -> str:
    return f"<details>\n<summary>{summary}</summary>\n\n{content}\n\n</details>"


def generate_issue_body(issue: BeadsIssue, mapping: MappingFile) -> str:
    """Build the complete GitHub issue body for a beads issue.

    Dependencies on linked beads issues are rendered as GitHub references.

    Args:
        issue: The beads issue
        mapping: Current mapping, used to resolve dependency targets

    Returns:
        Markdown body starting with the beads-sync marker
    """
    sections: list[str] = [
        f"<!-- beads-sync:{issue.id} -->",
        (
            "> [!CAUTION]\n"
            "> This issue is synced from beads. Do not edit directly, changes will be overwritten.\n"
            f"> To update, use `bd update {issue.id}` in the source repository."
        ),
    ]

    if issue.description:
        sections.append(issue.description)

    if issue.acceptance_criteria:
        checklist = "\n".join(f"- [ ] {criterion}" for criterion in issue.acceptance_criteria)
        sections.append(_details("Acceptance Criteria", checklist))

    if issue.design:
        sections.append(_details("Design Notes", issue.design))

    if issue.notes:
        sections.append(_details("Working Notes", issue.notes))

    rows = [f"| **Beads ID** | `{issue.id}` |"]

    if issue.dependencies:
        rendered: list[str] = []
        for dependency in issue.dependencies:
            target = mapping.get_mapping(dependency.id)
            if target is not None:
                rendered.append(f"#{target.github_issue_number} ({dependency.type})")
            else:
                rendered.append(f"{dependency.id} ({dependency.type})")
        rows.append(f"| **Dependencies** | {', '.join(rendered)} |")

    if issue.estimated_time:
        rows.append(f"| **Estimated Time** | {issue.estimated_time} |")

    if issue.assignee:
        rows.append(f"| **Assignee (beads)** | {issue.assignee} |")

    if issue.external_ref:
        rows.append(f"| **External Ref** | {issue.external_ref} |")

    sections.append("---")
    sections.append("| Field | Value |\n|-------|-------|\n" + "\n".join(rows))

    return "\n\n".join(sections)


def extract_beads_id_from_body(body: str | None) -> str | None:
    """Extract the beads ID from a GitHub issue body, if it carries the marker."""
    if not body:
        return None
    match = BEADS_SYNC_MARKER_PATTERN.search(body)
    return match.group(1) if match else None


def generate_closing_comment(issue: BeadsIssue) -> str:
    comment = "This issue was closed in beads."
    if issue.close_reason:
        comment += f"\n\n**Reason:** {issue.close_reason}"
    comment += f"\n\n---\n*Synced from beads issue `{issue.id}`*"
    return comment


def generate_deletion_comment(beads_id: str) -> str:
    return f"This issue was deleted from beads tracking.\n\n---\n*Previously tracked as beads issue `{beads_id}`*"


def format_beads_comment(comment: BeadsComment, beads_issue_id: str) -> str:
    """Format a beads comment for GitHub.

    The hidden comment marker lets the comment mapping be rebuilt from GitHub.
    """
    body = f"<!-- beads-comment:{comment.id} -->\n"
    body += f"**{comment.author}** commented on {format_timestamp(comment.created_at)}:\n\n"
    body += f"{comment.body}\n\n"
    body += f"---\n*Synced from beads issue `{beads_issue_id}`*"
    return body


def extract_beads_comment_id(body: str | None) -> str | None:
    if not body:
        return None
    match = BEADS_COMMENT_MARKER_PATTERN.search(body)
    return match.group(1) if match else None
