"""
Label taxonomy for beads issues synced to GitHub.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from .models import LabelConfig

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .models import BeadsIssue

PRIORITY_LABELS: Final[dict[int, LabelConfig]] = {
    0: LabelConfig("priority:p0", "b60205", "Critical priority"),
    1: LabelConfig("priority:p1", "d93f0b", "High priority"),
    2: LabelConfig("priority:p2", "fbca04", "Medium priority"),
    3: LabelConfig("priority:p3", "0e8a16", "Low priority"),
    4: LabelConfig("priority:p4", "c5def5", "Minimal priority"),
}

TYPE_LABELS: Final[dict[str, LabelConfig]] = {
    "bug": LabelConfig("type:bug", "b60205", "Bug report"),
    "feature": LabelConfig("type:feature", "0e8a16", "New feature"),
    "task": LabelConfig("type:task", "1d76db", "Task"),
    "epic": LabelConfig("type:epic", "5319e7", "Epic"),
    "chore": LabelConfig("type:chore", "c5def5", "Chore/maintenance"),
}

SYNC_MARKER_LABEL: Final = LabelConfig("beads-synced", "6f42c1", "Issue synced from beads")
BLOCKED_LABEL: Final = LabelConfig("beads-blocked", "d93f0b", "Issue has open blockers")
IN_PROGRESS_LABEL: Final = LabelConfig("beads-in-progress", "0075ca", "Issue is in progress in beads")

BEADS_ID_LABEL_PREFIX: Final[str] = "beads-id:"
EPIC_LABEL_COLOR: Final[str] = "5319e7"


def _prefixed(label: LabelConfig, prefix: str) -> LabelConfig:
    return LabelConfig(name=f"{prefix}{label.name}", color=label.color, description=label.description)


def get_beads_id_label(beads_id: str, prefix: str = "") -> str:
    """Label that carries the beads ID, used to rebuild the mapping from GitHub."""
    return f"{prefix}{BEADS_ID_LABEL_PREFIX}{beads_id}"


def parse_beads_id_from_label(label_name: str, prefix: str = "") -> str | None:
    full_prefix = f"{prefix}{BEADS_ID_LABEL_PREFIX}"
    if label_name.startswith(full_prefix):
        return label_name[len(full_prefix) :] or None
    return None


def extract_beads_id_from_labels(label_names: Iterable[str], prefix: str = "") -> str | None:
    """Return the beads ID from the first beads-id label found, if any."""
    for label_name in label_names:
        beads_id = parse_beads_id_from_label(label_name, prefix)
        if beads_id:
            return beads_id
    return None


def get_epic_label(parent_beads_id: str, prefix: str = "") -> str:
    return f"{prefix}epic:{parent_beads_id}"


def create_epic_label_config(parent_beads_id: str, prefix: str = "") -> LabelConfig:
    return LabelConfig(
        name=get_epic_label(parent_beads_id, prefix),
        color=EPIC_LABEL_COLOR,
        description=f"Child of epic {parent_beads_id}",
    )


def collect_epic_ids(issues: Iterable[BeadsIssue]) -> list[str]:
    """Parent ids of every parent-child dependency, in first-seen order."""
    epic_ids: dict[str, None] = {}
    for issue in issues:
        for dependency in issue.dependencies:
            if dependency.type == "parent-child":
                epic_ids.setdefault(dependency.id)
    return list(epic_ids)


def get_labels_for_issue(issue: BeadsIssue, *, add_sync_marker: bool = True, label_prefix: str = "") -> list[str]:
    """Get all labels that should be applied to the GitHub issue of a beads issue.

    The prefix applies to generated labels only; the issue's own labels are
    passed through unchanged.
    """
    labels: list[str] = []

    if add_sync_marker:
        labels.append(f"{label_prefix}{SYNC_MARKER_LABEL.name}")

    labels.append(get_beads_id_label(issue.id, label_prefix))

    if issue.priority is not None and issue.priority in PRIORITY_LABELS:
        labels.append(f"{label_prefix}{PRIORITY_LABELS[issue.priority].name}")

    if issue.issue_type is not None and issue.issue_type in TYPE_LABELS:
        labels.append(f"{label_prefix}{TYPE_LABELS[issue.issue_type].name}")

    if issue.status == "blocked":
        labels.append(f"{label_prefix}{BLOCKED_LABEL.name}")
    elif issue.status == "in_progress":
        labels.append(f"{label_prefix}{IN_PROGRESS_LABEL.name}")

    labels.extend(issue.labels)

    labels.extend(
        get_epic_label(dependency.id, label_prefix)
        for dependency in issue.dependencies
        if dependency.type == "parent-child"
    )

    # Each label once, in first-seen order
    return list(dict.fromkeys(labels))


def get_all_required_labels(prefix: str = "") -> list[LabelConfig]:
    """Get every predefined label that should exist in the repository."""
    labels = [_prefixed(label, prefix) for label in PRIORITY_LABELS.values()]
    labels.extend(_prefixed(label, prefix) for label in TYPE_LABELS.values())
    labels.extend(_prefixed(label, prefix) for label in (SYNC_MARKER_LABEL, BLOCKED_LABEL, IN_PROGRESS_LABEL))
    return labels
