from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Final

from github import Auth, Github, GithubException, UnknownObjectException

from . import utils
from .exceptions import ConfigError
from .models import MirrorComment, MirrorIssue

if TYPE_CHECKING:
    from collections.abc import Sequence

    from github.Issue import Issue as GithubIssue
    from github.Repository import Repository

    from .models import LabelConfig

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)

_TOKEN_ENV_VAR: Final[str] = "GITHUB_TOKEN"  # noqa: S105
_DEFAULT_TOKEN_PASS_PATH: Final[str] = "github/cli/token"  # noqa: S105


def get_token(pass_path: str | None = None) -> str | None:
    """Get GitHub token from pass path, env var GITHUB_TOKEN, or default pass location."""
    if pass_path:
        return utils.get_pass_value(pass_path)

    token: str | None = os.environ.get(_TOKEN_ENV_VAR)
    if token:
        return token

    try:
        return utils.get_pass_value(_DEFAULT_TOKEN_PASS_PATH)
    except (ValueError, utils.PassError):
        logger.warning("No GitHub token specified nor found")
        return None


def get_client(token: str | None = None) -> Github:
    """Get a GitHub client using the token."""
    if token:
        return Github(auth=Auth.Token(token))
    return Github()


def _is_not_found(exc: GithubException) -> bool:
    return isinstance(exc, UnknownObjectException) or exc.status == 404


def _is_already_exists_error(exc: GithubException) -> bool:
    """Check if a GithubException is a 422 'already_exists' validation error."""
    if exc.status != 422 or not isinstance(exc.data, dict):
        return False
    errors: object = exc.data.get("errors")  # pyright: ignore[reportUnknownVariableType]
    if not isinstance(errors, list):
        return False
    return any(isinstance(e, dict) and e.get("code") == "already_exists" for e in errors)  # pyright: ignore[reportUnknownArgumentType,reportUnknownVariableType]


def get_repo(client: Github, repo_path: str) -> Repository | None:
    """Get a repository, or None if it does not exist.

    Raises:
        ConfigError: If the repository path is not of the form owner/repo
    """
    parts = repo_path.strip().split("/")
    if len(parts) != 2 or not all(parts):  # noqa: PLR2004
        msg = f"Invalid GitHub repository path '{repo_path}'. Expected format: 'owner/repository'"
        raise ConfigError(msg)

    try:
        return client.get_repo("/".join(parts))
    except GithubException as e:
        if _is_not_found(e):
            return None
        raise


def to_mirror_issue(issue: GithubIssue) -> MirrorIssue:
    return MirrorIssue(
        number=issue.number,
        id=issue.id,
        state="closed" if issue.state == "closed" else "open",
        title=issue.title,
        body=issue.body,
        labels=tuple(label.name for label in issue.labels),
    )


class GitHubMirror:
    """MirrorClient backed by a PyGithub repository.

    Rate limiting and retries are left to PyGithub's requester.
    """

    def __init__(self, repo: Repository) -> None:
        self.repo: Repository = repo

    def create_issue(
        self,
        *,
        title: str,
        body: str,
        labels: Sequence[str] = (),
        assignees: Sequence[str] = (),
    ) -> MirrorIssue:
        issue = self.repo.create_issue(title=title, body=body, labels=list(labels), assignees=list(assignees))
        logger.debug(f"Created GitHub issue #{issue.number}")
        return to_mirror_issue(issue)

    def update_issue(
        self,
        issue_number: int,
        *,
        title: str | None = None,
        body: str | None = None,
        labels: Sequence[str] | None = None,
        assignees: Sequence[str] | None = None,
    ) -> MirrorIssue:
        issue = self.repo.get_issue(issue_number)
        changes: dict[str, object] = {}
        if title is not None:
            changes["title"] = title
        if body is not None:
            changes["body"] = body
        if labels is not None:
            changes["labels"] = list(labels)
        if assignees is not None:
            changes["assignees"] = list(assignees)
        if changes:
            issue.edit(**changes)  # pyright: ignore[reportArgumentType]
        return to_mirror_issue(issue)

    def close_issue(self, issue_number: int, comment: str | None = None) -> MirrorIssue:
        issue = self.repo.get_issue(issue_number)
        if comment:
            issue.create_comment(comment)
        issue.edit(state="closed")
        return to_mirror_issue(issue)

    def reopen_issue(self, issue_number: int) -> MirrorIssue:
        issue = self.repo.get_issue(issue_number)
        issue.edit(state="open")
        return to_mirror_issue(issue)

    def get_issue(self, issue_number: int) -> MirrorIssue | None:
        try:
            issue = self.repo.get_issue(issue_number)
        except GithubException as e:
            if _is_not_found(e):
                return None
            raise
        return to_mirror_issue(issue)

    def create_comment(self, issue_number: int, body: str) -> MirrorComment:
        comment = self.repo.get_issue(issue_number).create_comment(body)
        return MirrorComment(id=comment.id, body=comment.body)

    def list_comments(self, issue_number: int) -> list[MirrorComment]:
        return [
            MirrorComment(id=comment.id, body=comment.body)
            for comment in self.repo.get_issue(issue_number).get_comments()
        ]

    def ensure_label(self, label: LabelConfig) -> None:
        """Create a label unless it already exists."""
        try:
            self.repo.get_label(label.name)
        except GithubException as e:
            if not _is_not_found(e):
                raise
        else:
            return

        try:
            self.repo.create_label(name=label.name, color=label.color, description=label.description)
            logger.info(f"Created label: {label.name}")
        except GithubException as e:
            if _is_already_exists_error(e):
                # Label appeared between get_label() and create_label()
                logger.debug(f"Label already existed: {label.name}")
                return
            raise

    def ensure_labels(self, labels: Sequence[LabelConfig]) -> None:
        for label in labels:
            self.ensure_label(label)

    def validate_assignee(self, username: str) -> bool:
        try:
            return self.repo.has_in_assignees(username)
        except GithubException as e:
            logger.debug(f"Could not check assignee {username}: {e.status}")
            return False

    def filter_valid_assignees(self, assignees: Sequence[str]) -> list[str]:
        valid: list[str] = []
        for assignee in assignees:
            if self.validate_assignee(assignee):
                valid.append(assignee)
            else:
                logger.warning(f"Assignee '{assignee}' is not valid for this repository")
        return valid

    def list_issues_by_label(self, label_name: str) -> list[MirrorIssue]:
        issues: list[MirrorIssue] = []
        for issue in self.repo.get_issues(state="all", labels=[label_name]):
            # The issues API also returns pull requests
            if issue.pull_request is not None:
                continue
            issues.append(to_mirror_issue(issue))
        return issues
