"""Data models shared by the parser, the diff and the sync orchestrator.

Beads records are read-only snapshots of ``issues.jsonl``. The mapping
models (``IssueMapping`` and friends) are the persisted identity links
between beads ids and GitHub issues. Sync actions are ephemeral: produced by
``diff.compute_diff`` and consumed once by the orchestrator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Final, Literal, get_args

BeadsStatus = Literal["open", "in_progress", "blocked", "closed"]
BeadsIssueType = Literal["bug", "feature", "task", "epic", "chore"]
DependencyType = Literal["blocks", "blocked-by", "relates-to", "parent-child"]
SyncActionType = Literal["create", "update", "close", "reopen", "adopt"]
# Error records also cover the phases around the issue-level actions
ErrorActionType = Literal["create", "update", "close", "reopen", "adopt", "comment", "delete", "labels"]

VALID_STATUSES: Final[tuple[str, ...]] = get_args(BeadsStatus)
VALID_ISSUE_TYPES: Final[tuple[str, ...]] = get_args(BeadsIssueType)
VALID_DEPENDENCY_TYPES: Final[tuple[str, ...]] = get_args(DependencyType)
VALID_PRIORITIES: Final[tuple[int, ...]] = (0, 1, 2, 3, 4)


@dataclass(frozen=True)
class BeadsDependency:
    """A typed dependency edge from one beads issue to another."""

    id: str
    type: DependencyType


@dataclass(frozen=True)
class BeadsComment:
    """A comment on a beads issue. ``id`` is unique within its issue."""

    id: str
    author: str
    created_at: str
    body: str


@dataclass(frozen=True)
class BeadsIssue:
    """A beads issue as stored in issues.jsonl.

    Timestamps are kept verbatim as ISO 8601 strings; they are only parsed
    for comparison.
    """

    id: str
    title: str
    status: BeadsStatus
    created_at: str
    updated_at: str
    description: str | None = None
    design: str | None = None
    acceptance_criteria: tuple[str, ...] = ()
    notes: str | None = None
    priority: int | None = None  # 0 = highest, 4 = lowest
    issue_type: BeadsIssueType | None = None
    assignee: str | None = None
    labels: tuple[str, ...] = ()
    dependencies: tuple[BeadsDependency, ...] = ()
    external_ref: str | None = None
    close_reason: str | None = None
    comments: tuple[BeadsComment, ...] = ()
    estimated_time: str | None = None


@dataclass
class CommentMapping:
    """Link from one beads comment to the GitHub comment created for it."""

    github_comment_id: int


@dataclass
class IssueMapping:
    """Link between a beads issue and its GitHub issue.

    ``beads_updated_at`` is the watermark: the beads ``updated_at`` value as
    of the last successful sync.
    """

    github_issue_number: int
    github_issue_id: int
    last_sync_at: str
    beads_updated_at: str
    adopted_from_external_ref: bool = False
    comments: dict[str, CommentMapping] = field(default_factory=dict)


@dataclass
class SyncMetadata:
    last_full_sync: str


@dataclass(frozen=True)
class LabelConfig:
    """A label that the sync creates in the GitHub repository."""

    name: str
    color: str  # Hex color without '#' prefix (e.g., "ff0000")
    description: str = ""


@dataclass(frozen=True)
class CreateAction:
    """Create a new GitHub issue for an unlinked beads issue."""

    kind: ClassVar[SyncActionType] = "create"

    beads_issue: BeadsIssue
    reason: str = "New beads issue"


@dataclass(frozen=True)
class UpdateAction:
    """Push a changed, non-closed beads issue to its linked GitHub issue."""

    kind: ClassVar[SyncActionType] = "update"

    beads_issue: BeadsIssue
    github_issue_number: int
    reason: str = "Beads issue updated"


@dataclass(frozen=True)
class CloseAction:
    """Push the final state of a closed beads issue, then close on GitHub."""

    kind: ClassVar[SyncActionType] = "close"

    beads_issue: BeadsIssue
    github_issue_number: int
    reason: str = "Beads issue closed"


@dataclass(frozen=True)
class ReopenAction:
    """Reopen a GitHub issue whose beads issue is open again.

    Never produced by the diff; the orchestrator derives it from an
    ``UpdateAction`` after reading the live GitHub state.
    """

    kind: ClassVar[SyncActionType] = "reopen"

    beads_issue: BeadsIssue
    github_issue_number: int
    reason: str = "GitHub issue is closed but beads issue is open"


@dataclass(frozen=True)
class AdoptAction:
    """Bind an unlinked beads issue to the GitHub issue named by its external_ref."""

    kind: ClassVar[SyncActionType] = "adopt"

    beads_issue: BeadsIssue
    github_issue_number: int
    reason: str = "Adopting existing GitHub issue from external_ref"


SyncAction = CreateAction | UpdateAction | CloseAction | ReopenAction | AdoptAction


@dataclass(frozen=True)
class CommentSyncAction:
    """A beads comment that has no GitHub counterpart yet.

    ``github_issue_number`` is None when the parent issue is created in the
    same run; the comment sync resolves it from the mapping.
    """

    beads_issue_id: str
    github_issue_number: int | None
    comment: BeadsComment


@dataclass
class DiffResult:
    """Output of the diff: what to do, in snapshot order."""

    actions: list[SyncAction] = field(default_factory=list)
    comment_actions: list[CommentSyncAction] = field(default_factory=list)
    # Linked ids missing from the snapshot; advisory only
    deleted_issue_ids: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SyncErrorRecord:
    """A failure isolated to a single beads issue and action."""

    beads_issue_id: str
    action: ErrorActionType
    message: str

    def __str__(self) -> str:
        return f"{self.beads_issue_id} ({self.action}): {self.message}"


@dataclass
class SyncResult:
    """Summary of a sync run."""

    created: int = 0
    updated: int = 0
    closed: int = 0
    reopened: int = 0
    adopted: int = 0
    deleted_closed: int = 0
    comments_synced: int = 0
    errors: list[SyncErrorRecord] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    def count(self, action: SyncAction) -> None:
        """Increment the counter matching a successfully executed action."""
        match action.kind:
            case "create":
                self.created += 1
            case "update":
                self.updated += 1
            case "close":
                self.closed += 1
            case "reopen":
                self.reopened += 1
            case "adopt":
                self.adopted += 1


@dataclass(frozen=True)
class MirrorIssue:
    """The parts of a GitHub issue the sync reads back."""

    number: int
    id: int
    state: Literal["open", "closed"]
    title: str
    body: str | None = None
    labels: tuple[str, ...] = ()


@dataclass(frozen=True)
class MirrorComment:
    id: int
    body: str | None = None
