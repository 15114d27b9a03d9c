"""Rebuild a mapping from the issues already synced to GitHub.

Used when the mapping file is lost: every GitHub issue carrying the sync
marker label is matched back to its beads ID through the ``beads-id:`` label
or the body marker, and comment links are recovered from the comment markers.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .issue_builder import extract_beads_comment_id, extract_beads_id_from_body
from .labels import SYNC_MARKER_LABEL, extract_beads_id_from_labels
from .mapping import NEVER_SYNCED, create_empty_mapping, create_issue_mapping

if TYPE_CHECKING:
    from .mapping import MappingFile
    from .protocols import MirrorClient

logger: logging.Logger = logging.getLogger(__name__)


def bootstrap_mapping(client: MirrorClient, *, label_prefix: str = "") -> MappingFile:
    """Build a mapping from GitHub state.

    Links get the never-synced watermark, so the next sync pushes every
    linked issue once. When several GitHub issues claim the same beads ID the
    lowest issue number wins.

    Args:
        client: GitHub client
        label_prefix: Prefix used for the generated labels

    Returns:
        A new mapping file
    """
    mapping = create_empty_mapping()
    marker_label = f"{label_prefix}{SYNC_MARKER_LABEL.name}"

    issues = sorted(client.list_issues_by_label(marker_label), key=lambda issue: issue.number)
    logger.info(f"Found {len(issues)} GitHub issues labelled {marker_label}")

    for issue in issues:
        beads_id = extract_beads_id_from_labels(issue.labels, label_prefix) or extract_beads_id_from_body(issue.body)
        if beads_id is None:
            logger.debug(f"#{issue.number} has no beads ID, skipping")
            continue

        existing = mapping.get_mapping(beads_id)
        if existing is not None:
            logger.warning(
                f"#{issue.number} also claims {beads_id}, keeping #{existing.github_issue_number}"
            )
            continue

        mapping.set_mapping(beads_id, create_issue_mapping(issue.number, issue.id, NEVER_SYNCED))

        for comment in client.list_comments(issue.number):
            comment_id = extract_beads_comment_id(comment.body)
            if comment_id is not None and mapping.get_comment_mapping(beads_id, comment_id) is None:
                mapping.set_comment_mapping(beads_id, comment_id, comment.id)

    logger.info(f"Bootstrapped mapping with {len(mapping.mappings)} issues")
    return mapping
