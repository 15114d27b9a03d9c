"""Protocol defining the contract of the GitHub side of the sync.

The sync separates concerns into three components:

1. Parser: turns issues.jsonl into a snapshot of beads issues
2. Diff: compares the snapshot with the mapping and plans actions
3. Syncer: applies the actions through a MirrorClient and updates the mapping

The Syncer only talks to GitHub through this protocol, which allows:
- Testing the orchestration with in-memory implementations
- Keeping rate limiting and retries out of the orchestration
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .models import LabelConfig, MirrorComment, MirrorIssue


class MirrorClient(Protocol):
    """Protocol for mutating and reading issues in the GitHub repository.

    Every call handles a single item and raises on failure, except that a
    missing issue in ``get_issue`` is reported as None.

    Implementations:
        - GitHubMirror: PyGithub-backed client for a single repository
    """

    def create_issue(
        self,
        *,
        title: str,
        body: str,
        labels: Sequence[str] = (),
        assignees: Sequence[str] = (),
    ) -> MirrorIssue:
        """Create an issue and return it with its assigned number and ID."""
        ...

    def update_issue(
        self,
        issue_number: int,
        *,
        title: str | None = None,
        body: str | None = None,
        labels: Sequence[str] | None = None,
        assignees: Sequence[str] | None = None,
    ) -> MirrorIssue:
        """Update the given fields of an issue; None leaves a field untouched."""
        ...

    def close_issue(self, issue_number: int, comment: str | None = None) -> MirrorIssue:
        """Close an issue, posting the comment first when one is given."""
        ...

    def reopen_issue(self, issue_number: int) -> MirrorIssue:
        ...

    def get_issue(self, issue_number: int) -> MirrorIssue | None:
        """Get an issue by number.

        Returns:
            The issue, or None if it does not exist
        """
        ...

    def create_comment(self, issue_number: int, body: str) -> MirrorComment:
        ...

    def list_comments(self, issue_number: int) -> list[MirrorComment]:
        ...

    def ensure_labels(self, labels: Sequence[LabelConfig]) -> None:
        """Create every label that does not exist yet."""
        ...

    def filter_valid_assignees(self, assignees: Sequence[str]) -> list[str]:
        """Return the assignees that can be assigned in the repository.

        Invalid assignees are dropped with a warning.
        """
        ...

    def list_issues_by_label(self, label_name: str) -> list[MirrorIssue]:
        """List open and closed issues carrying a label, excluding pull requests."""
        ...
