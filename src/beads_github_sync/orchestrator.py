"""Sync orchestrator that applies a beads snapshot to a GitHub repository.

The Syncer class is the central coordinator of a sync run. It:
1. Filters the snapshot according to the configuration
2. Computes the diff against the mapping
3. Executes the resulting actions through the MirrorClient
4. Updates the mapping as each action succeeds

Sync Flow
---------
Phase 1: Labels
    - Ensure the predefined labels and the epic labels exist on GitHub

Phase 2: Issue actions
    For each action (in snapshot order, one at a time):
        create  - create the issue and link it
        update  - push title/body/labels/assignees, advance the watermark
        close   - push the final state, close with a closing comment
        adopt   - take over the GitHub issue named by external_ref
        reopen  - derived from update when GitHub shows the issue closed

Phase 3: Deleted issues
    - Close GitHub issues whose beads issue disappeared (optional)

Phase 4: Comments
    - Post new beads comments; every issue created in phase 2 is linked by now

Error Handling
--------------
A failure while executing one action is recorded as a SyncErrorRecord and the
run moves on to the next action. The mapping is only changed after the GitHub
side succeeded, so a failed action is retried by the next run. The one
exception is a create or adopt of a closed beads issue whose close fails: the
issue exists on GitHub, so it is linked with a never-synced watermark and the
next run closes it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, assert_never

from .comments import sync_comments
from .diff import compute_diff
from .exceptions import MappingError, SyncerError
from .issue_builder import generate_closing_comment, generate_deletion_comment, generate_issue_body
from .labels import collect_epic_ids, create_epic_label_config, get_all_required_labels, get_labels_for_issue
from .mapping import NEVER_SYNCED, create_issue_mapping, mark_synced
from .models import (
    AdoptAction,
    CloseAction,
    CreateAction,
    ReopenAction,
    SyncErrorRecord,
    SyncResult,
    UpdateAction,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .config import SyncConfig
    from .mapping import MappingFile
    from .models import BeadsIssue, IssueMapping, SyncAction
    from .protocols import MirrorClient

logger: logging.Logger = logging.getLogger(__name__)

# Error records for failures that are not tied to a single beads issue
REPOSITORY_SCOPE = "(repository)"


def filter_issues(issues: Sequence[BeadsIssue], config: SyncConfig) -> list[BeadsIssue]:
    """Keep the issues selected by the status, priority and label filters."""
    filtered: list[BeadsIssue] = []
    for issue in issues:
        if issue.status not in config.sync_statuses:
            continue
        if issue.priority is not None and issue.priority not in config.sync_priorities:
            continue
        if config.sync_labels and not any(label in issue.labels for label in config.sync_labels):
            continue
        filtered.append(issue)
    return filtered


@dataclass(frozen=True)
class IssueContent:
    """Rendered GitHub fields of a beads issue."""

    title: str
    body: str
    labels: list[str]


class Syncer:
    """Applies beads snapshots to GitHub.

    Usage:
        client = GitHubMirror(repo)
        syncer = Syncer(client, config)
        result = syncer.run(issues, mapping)

    The syncer keeps no state between runs: the mapping is passed in, mutated
    in place and persisted by the caller.
    """

    _client: MirrorClient
    _config: SyncConfig

    def __init__(self, client: MirrorClient, config: SyncConfig) -> None:
        self._client = client
        self._config = config

    def run(self, issues: Sequence[BeadsIssue], mapping: MappingFile) -> SyncResult:
        """Execute a full sync of the snapshot.

        Args:
            issues: The full beads snapshot
            mapping: Identity map, updated in place

        Returns:
            SyncResult with counts per action kind and the isolated errors
        """
        result = SyncResult()
        dry_run = self._config.dry_run

        filtered = filter_issues(issues, self._config)
        logger.info(f"Processing {len(filtered)} of {len(issues)} issues")

        if not dry_run:
            self.ensure_labels(filtered, result)

        diff = compute_diff(filtered, mapping)
        # Filtered-out issues still exist in beads and are not deletions
        snapshot_ids = {issue.id for issue in issues}
        deleted_ids = [beads_id for beads_id in diff.deleted_issue_ids if beads_id not in snapshot_ids]
        logger.info(
            f"Diff: {len(diff.actions)} actions, {len(diff.comment_actions)} comments, {len(deleted_ids)} deletions"
        )

        for action in diff.actions:
            self.execute_action(action, mapping, result)

        self.handle_deleted_issues(deleted_ids, mapping, result)

        if self._config.sync_comments:
            result.comments_synced = sync_comments(
                diff.comment_actions, mapping, self._client, dry_run=dry_run, errors=result.errors
            )

        if not dry_run:
            mapping.update_last_sync_time()

        return result

    def ensure_labels(self, issues: Sequence[BeadsIssue], result: SyncResult) -> None:
        """Create the predefined labels and one epic label per parent issue."""
        prefix = self._config.label_prefix
        required = get_all_required_labels(prefix)
        required.extend(create_epic_label_config(epic_id, prefix) for epic_id in collect_epic_ids(issues))

        logger.info("Ensuring required labels exist...")
        try:
            self._client.ensure_labels(required)
        except Exception as e:  # noqa: BLE001
            logger.warning(f"Failed to ensure labels: {e}")
            result.errors.append(SyncErrorRecord(REPOSITORY_SCOPE, "labels", str(e)))

    def execute_action(self, action: SyncAction, mapping: MappingFile, result: SyncResult) -> None:
        """Execute one action, recording its outcome in the result.

        Failures are recorded in ``result.errors`` and never propagate.
        """
        if self._config.dry_run:
            self._log_dry_run(action)
            return

        try:
            if isinstance(action, UpdateAction):
                action = self._resolve_reopen(action)

            if isinstance(action, CreateAction):
                self._create(action, mapping)
            elif isinstance(action, UpdateAction):
                self._update(action, mapping)
            elif isinstance(action, CloseAction):
                self._close(action, mapping)
            elif isinstance(action, ReopenAction):
                self._reopen(action, mapping)
            elif isinstance(action, AdoptAction):
                self._adopt(action, mapping)
            else:
                assert_never(action)
        except Exception as e:  # noqa: BLE001
            error = SyncErrorRecord(action.beads_issue.id, action.kind, str(e))
            logger.warning(f"Failed to {action.kind} {action.beads_issue.id}: {e}")
            result.errors.append(error)
            return

        result.count(action)

    def handle_deleted_issues(self, deleted_ids: Sequence[str], mapping: MappingFile, result: SyncResult) -> None:
        """Close the GitHub issues of beads issues that no longer exist.

        Links are kept; issues that are already closed or gone are skipped,
        so repeated runs post no further comments.
        """
        if not deleted_ids:
            return
        if not self._config.close_deleted:
            logger.info(f"{len(deleted_ids)} linked beads issues no longer exist; leaving GitHub issues untouched")
            return

        for beads_id in deleted_ids:
            issue_mapping = mapping.get_mapping(beads_id)
            if issue_mapping is None:
                continue
            number = issue_mapping.github_issue_number

            if self._config.dry_run:
                logger.info(f"[DRY RUN] Would close #{number} (deleted from beads: {beads_id})")
                continue

            try:
                current = self._client.get_issue(number)
                if current is None or current.state == "closed":
                    logger.debug(f"#{number} for deleted {beads_id} is already closed or missing")
                    continue
                self._client.close_issue(number, generate_deletion_comment(beads_id))
            except Exception as e:  # noqa: BLE001
                logger.warning(f"Failed to close #{number}: {e}")
                result.errors.append(SyncErrorRecord(beads_id, "delete", str(e)))
                continue

            logger.info(f"Closed #{number} (deleted from beads: {beads_id})")
            result.deleted_closed += 1

    def _render(self, issue: BeadsIssue, mapping: MappingFile) -> IssueContent:
        return IssueContent(
            title=issue.title,
            body=generate_issue_body(issue, mapping),
            labels=get_labels_for_issue(
                issue, add_sync_marker=self._config.add_sync_marker, label_prefix=self._config.label_prefix
            ),
        )

    def _assignees(self, issue: BeadsIssue) -> list[str]:
        if not issue.assignee:
            return []
        return self._client.filter_valid_assignees([issue.assignee])

    def _existing_mapping(self, issue: BeadsIssue, mapping: MappingFile) -> IssueMapping:
        issue_mapping = mapping.get_mapping(issue.id)
        if issue_mapping is None:
            msg = f"No mapping for {issue.id}"
            raise MappingError(msg)
        return issue_mapping

    def _resolve_reopen(self, action: UpdateAction) -> UpdateAction | ReopenAction:
        """Turn an update into a reopen when the GitHub issue is closed."""
        if not self._config.detect_reopen:
            return action
        current = self._client.get_issue(action.github_issue_number)
        if current is None:
            msg = f"GitHub issue #{action.github_issue_number} not found"
            raise SyncerError(msg)
        if current.state == "closed":
            return ReopenAction(beads_issue=action.beads_issue, github_issue_number=action.github_issue_number)
        return action

    def _link(
        self, issue: BeadsIssue, issue_mapping: IssueMapping, mapping: MappingFile, *, is_closed: bool, linked_by: str
    ) -> None:
        """Record a new link, then close the GitHub issue if beads has it closed.

        Raises:
            SyncerError: If the close fails; the link is kept so the next run retries the close
        """
        if issue.status != "closed" or is_closed:
            mapping.set_mapping(issue.id, issue_mapping)
            return

        number = issue_mapping.github_issue_number
        synced_at = issue_mapping.beads_updated_at
        issue_mapping.beads_updated_at = NEVER_SYNCED
        mapping.set_mapping(issue.id, issue_mapping)
        try:
            self._client.close_issue(number, generate_closing_comment(issue))
        except Exception as e:
            msg = f"GitHub issue #{number} was {linked_by} and linked, but closing it failed: {e}"
            raise SyncerError(msg) from e
        mark_synced(issue_mapping, synced_at)

    def _create(self, action: CreateAction, mapping: MappingFile) -> None:
        issue = action.beads_issue
        content = self._render(issue, mapping)
        created = self._client.create_issue(
            title=content.title,
            body=content.body,
            labels=content.labels,
            assignees=self._assignees(issue),
        )
        issue_mapping = create_issue_mapping(created.number, created.id, issue.updated_at)
        self._link(issue, issue_mapping, mapping, is_closed=False, linked_by="created")
        logger.info(f"Created issue #{created.number}: {issue.title}")

    def _update(self, action: UpdateAction, mapping: MappingFile) -> None:
        issue = action.beads_issue
        issue_mapping = self._existing_mapping(issue, mapping)
        content = self._render(issue, mapping)
        self._client.update_issue(
            action.github_issue_number,
            title=content.title,
            body=content.body,
            labels=content.labels,
            assignees=self._assignees(issue),
        )
        mark_synced(issue_mapping, issue.updated_at)
        logger.info(f"Updated issue #{action.github_issue_number}: {issue.title}")

    def _close(self, action: CloseAction, mapping: MappingFile) -> None:
        issue = action.beads_issue
        issue_mapping = self._existing_mapping(issue, mapping)
        content = self._render(issue, mapping)
        # The body is pushed first so the closed issue shows the final state
        self._client.update_issue(
            action.github_issue_number, title=content.title, body=content.body, labels=content.labels
        )
        self._client.close_issue(action.github_issue_number, generate_closing_comment(issue))
        mark_synced(issue_mapping, issue.updated_at)
        logger.info(f"Closed issue #{action.github_issue_number}: {issue.title}")

    def _reopen(self, action: ReopenAction, mapping: MappingFile) -> None:
        issue = action.beads_issue
        issue_mapping = self._existing_mapping(issue, mapping)
        content = self._render(issue, mapping)
        self._client.reopen_issue(action.github_issue_number)
        self._client.update_issue(
            action.github_issue_number,
            title=content.title,
            body=content.body,
            labels=content.labels,
            assignees=self._assignees(issue),
        )
        mark_synced(issue_mapping, issue.updated_at)
        logger.info(f"Reopened issue #{action.github_issue_number}: {issue.title}")

    def _adopt(self, action: AdoptAction, mapping: MappingFile) -> None:
        issue = action.beads_issue
        existing = self._client.get_issue(action.github_issue_number)
        if existing is None:
            msg = f"GitHub issue #{action.github_issue_number} not found"
            raise SyncerError(msg)

        if self._config.detect_reopen and existing.state == "closed" and issue.status != "closed":
            self._client.reopen_issue(existing.number)

        content = self._render(issue, mapping)
        self._client.update_issue(
            existing.number,
            title=content.title,
            body=content.body,
            labels=content.labels,
            assignees=self._assignees(issue),
        )
        issue_mapping = create_issue_mapping(
            existing.number, existing.id, issue.updated_at, adopted_from_external_ref=True
        )
        self._link(issue, issue_mapping, mapping, is_closed=existing.state == "closed", linked_by="adopted")
        logger.info(f"Adopted issue #{existing.number} for {issue.id}")

    def _log_dry_run(self, action: SyncAction) -> None:
        issue = action.beads_issue
        if isinstance(action, CreateAction):
            logger.info(f"[DRY RUN] Would create issue: {issue.title}")
        elif isinstance(action, AdoptAction):
            logger.info(f"[DRY RUN] Would adopt issue #{action.github_issue_number} for {issue.id}")
        else:
            logger.info(f"[DRY RUN] Would {action.kind} issue #{action.github_issue_number}: {issue.title}")
