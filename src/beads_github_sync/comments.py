"""Sync beads comments to GitHub issue comments."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .issue_builder import format_beads_comment
from .models import SyncErrorRecord

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .mapping import MappingFile
    from .models import CommentSyncAction
    from .protocols import MirrorClient

logger: logging.Logger = logging.getLogger(__name__)


def sync_comments(
    comment_actions: Sequence[CommentSyncAction],
    mapping: MappingFile,
    client: MirrorClient,
    *,
    dry_run: bool = False,
    errors: list[SyncErrorRecord] | None = None,
) -> int:
    """Create the GitHub comments for not yet synced beads comments.

    Must run after the issue-level actions, so that issues created in this run
    are already linked. The target issue is taken from the mapping; a comment
    whose issue is not linked (e.g. its adoption failed) is reported and
    skipped without posting.

    Args:
        comment_actions: Comments to sync, in order
        mapping: Identity map, updated with each created comment
        client: GitHub client
        dry_run: Log what would be done without calling GitHub
        errors: List that failures are appended to

    Returns:
        The number of comments created
    """
    synced = 0

    for action in comment_actions:
        comment = action.comment
        issue_mapping = mapping.get_mapping(action.beads_issue_id)
        issue_number = issue_mapping.github_issue_number if issue_mapping else action.github_issue_number

        if dry_run:
            target = f"#{issue_number}" if issue_number is not None else f"new issue for {action.beads_issue_id}"
            logger.info(
                f"[DRY RUN] Would create comment on {target} (beads comment {comment.id} by {comment.author})"
            )
            continue

        if issue_mapping is None:
            message = f"comment {comment.id} skipped: issue is not linked to GitHub"
            logger.warning(f"{action.beads_issue_id}: {message}")
            if errors is not None:
                errors.append(SyncErrorRecord(action.beads_issue_id, "comment", message))
            continue

        try:
            body = format_beads_comment(comment, action.beads_issue_id)
            created = client.create_comment(issue_mapping.github_issue_number, body)
            mapping.set_comment_mapping(action.beads_issue_id, comment.id, created.id)
        except Exception as e:  # noqa: BLE001
            logger.warning(f"Failed to create comment on #{issue_mapping.github_issue_number}: {e}")
            if errors is not None:
                errors.append(SyncErrorRecord(action.beads_issue_id, "comment", f"comment {comment.id}: {e}"))
            continue

        logger.info(f"Created comment on #{issue_mapping.github_issue_number} (beads comment {comment.id})")
        synced += 1

    return synced
