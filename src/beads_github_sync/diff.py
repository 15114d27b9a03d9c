"""Compute the actions needed to bring GitHub in line with a beads snapshot.

``compute_diff`` is a pure function of the snapshot and the mapping: it reads
no clock, performs no I/O and never mutates the mapping. Staleness is decided
only by comparing a record's ``updated_at`` with the watermark stored in its
link, so re-running the diff after a successful sync yields no actions.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Final

from .models import (
    AdoptAction,
    CloseAction,
    CommentSyncAction,
    CreateAction,
    DiffResult,
    UpdateAction,
)
from .utils import parse_timestamp

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .mapping import MappingFile
    from .models import BeadsIssue, IssueMapping

logger: logging.Logger = logging.getLogger(__name__)

GITHUB_EXTERNAL_REF_PATTERN: Final[re.Pattern[str]] = re.compile(r"gh-(\d+)", re.ASCII)


def parse_external_ref(external_ref: str | None) -> int | None:
    """Parse a GitHub issue number from an external_ref of the form ``gh-NUMBER``.

    Returns:
        The issue number, or None when the reference does not match exactly
    """
    if not external_ref:
        return None
    match = GITHUB_EXTERNAL_REF_PATTERN.fullmatch(external_ref)
    if match is None:
        return None
    return int(match.group(1))


def needs_update(issue: BeadsIssue, mapping: IssueMapping) -> bool:
    """Check whether a beads issue changed since its last successful sync.

    Equal timestamps are not stale.
    """
    return parse_timestamp(issue.updated_at) > parse_timestamp(mapping.beads_updated_at)


def get_new_comments(
    issue: BeadsIssue,
    existing_mapping: IssueMapping | None,
    github_issue_number: int | None,
) -> list[CommentSyncAction]:
    """Get comments of an issue that have not been synced yet."""
    synced_comment_ids = set(existing_mapping.comments) if existing_mapping else set()
    return [
        CommentSyncAction(beads_issue_id=issue.id, github_issue_number=github_issue_number, comment=comment)
        for comment in issue.comments
        if comment.id not in synced_comment_ids
    ]


def compute_diff(issues: Sequence[BeadsIssue], mapping: MappingFile) -> DiffResult:
    """Compute the diff between a beads snapshot and the existing mappings.

    Args:
        issues: Beads issues in snapshot order
        mapping: Current identity map (read only)

    Returns:
        DiffResult with issue actions and comment actions in snapshot order,
        and the linked ids that no longer appear in the snapshot
    """
    result = DiffResult()

    snapshot_ids = {issue.id for issue in issues}
    result.deleted_issue_ids = sorted(mapping.mapped_ids() - snapshot_ids)

    for issue in issues:
        existing_mapping = mapping.get_mapping(issue.id)

        if existing_mapping is None:
            github_issue_number = parse_external_ref(issue.external_ref)
            if github_issue_number is not None:
                result.actions.append(AdoptAction(beads_issue=issue, github_issue_number=github_issue_number))
                # No link yet, so every comment is new
                result.comment_actions.extend(get_new_comments(issue, None, github_issue_number))
                continue

            result.actions.append(CreateAction(beads_issue=issue))
            # The issue number is only known once the create has run
            result.comment_actions.extend(get_new_comments(issue, None, None))
            continue

        if needs_update(issue, existing_mapping):
            if issue.status == "closed":
                result.actions.append(
                    CloseAction(beads_issue=issue, github_issue_number=existing_mapping.github_issue_number)
                )
            else:
                result.actions.append(
                    UpdateAction(beads_issue=issue, github_issue_number=existing_mapping.github_issue_number)
                )

        result.comment_actions.extend(
            get_new_comments(issue, existing_mapping, existing_mapping.github_issue_number)
        )

    logger.debug(
        f"Diff: {len(result.actions)} actions, {len(result.comment_actions)} comments, "
        f"{len(result.deleted_issue_ids)} deletion candidates"
    )
    return result
