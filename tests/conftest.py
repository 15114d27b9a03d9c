"""
Pytest configuration and fixtures.

This module configures pytest behavior for different test types:
- Integration tests: Fail on any warnings from the code under test
- Unit tests: Allow warnings

It also provides an in-memory GitHub repository implementing the MirrorClient
protocol, so that sync runs can be tested end to end without network access.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import pytest
from typing_extensions import override

from beads_github_sync.models import BeadsComment, BeadsDependency, BeadsIssue, MirrorComment, MirrorIssue

if TYPE_CHECKING:
    from collections.abc import Callable, Generator, Sequence

    from beads_github_sync.models import LabelConfig

# Store warning records during test execution
_integration_test_warnings: dict[str, list[logging.LogRecord]] = {}


class IntegrationTestWarningHandler(logging.Handler):
    """Custom logging handler to capture warnings during integration tests."""

    test_nodeid: str

    def __init__(self, test_nodeid: str) -> None:
        super().__init__()
        self.test_nodeid = test_nodeid
        self.setLevel(logging.WARNING)

    @override
    def emit(self, record: logging.LogRecord) -> None:
        """Capture WARNING and above level logs."""
        if self.test_nodeid not in _integration_test_warnings:
            _integration_test_warnings[self.test_nodeid] = []
        _integration_test_warnings[self.test_nodeid].append(record)


@pytest.fixture(autouse=True)
def fail_on_log_warnings_for_integration_tests(
    request: pytest.FixtureRequest,
) -> Generator[None]:
    """
    Automatically fail integration tests if any WARNING level logs are emitted from the code under test.

    Warnings are acceptable when running the tool as a user, but a clean sync
    run in the test context is expected to log none.
    """
    is_integration_test = request.node.get_closest_marker("integration") is not None

    if not is_integration_test:
        yield
        return

    test_nodeid = request.node.nodeid
    _integration_test_warnings[test_nodeid] = []

    handler = IntegrationTestWarningHandler(test_nodeid)
    root_logger = logging.getLogger()
    root_logger.addHandler(handler)

    try:
        yield
    finally:
        root_logger.removeHandler(handler)


@pytest.hookimpl(tryfirst=True, hookwrapper=True)
def pytest_runtest_makereport(
    item: pytest.Item, call: pytest.CallInfo[None]
) -> Generator[None]:  # type: ignore[misc]
    """
    Hook to check for warnings after test execution and mark test as failed if warnings were detected.
    """
    outcome = yield
    report = outcome.get_result()

    # Only check during the test call phase (not setup or teardown)
    if call.when == "call" and report.outcome == "passed":
        test_nodeid = item.nodeid
        warning_records = _integration_test_warnings.get(test_nodeid, [])

        if warning_records:
            warning_messages = [
                f"{record.levelname}: {record.getMessage()} (in {record.name}:{record.lineno})"
                for record in warning_records
            ]

            report.outcome = "failed"
            report.longrepr = f"Integration test failed: {len(warning_records)} warning(s) detected:\n" + "\n".join(
                f"  - {msg}" for msg in warning_messages
            )

        _integration_test_warnings.pop(test_nodeid, None)


@dataclass
class FakeIssue:
    number: int
    id: int
    title: str
    body: str
    state: str = "open"
    labels: list[str] = field(default_factory=list)
    assignees: list[str] = field(default_factory=list)
    comments: list[MirrorComment] = field(default_factory=list)

    def to_mirror(self) -> MirrorIssue:
        return MirrorIssue(
            number=self.number,
            id=self.id,
            state="closed" if self.state == "closed" else "open",
            title=self.title,
            body=self.body,
            labels=tuple(self.labels),
        )


class FakeMirror:
    """In-memory GitHub repository implementing the MirrorClient protocol.

    ``fail`` maps a method name to the exception it raises; ``fail_numbers``
    restricts that failure to the given issue numbers.
    """

    def __init__(self, valid_assignees: Sequence[str] = ()) -> None:
        self.issues: dict[int, FakeIssue] = {}
        self.labels: dict[str, LabelConfig] = {}
        self.valid_assignees: set[str] = set(valid_assignees)
        self.calls: list[tuple[str, Any]] = []
        self.fail: dict[str, Exception] = {}
        self.fail_numbers: dict[str, set[int]] = {}
        self._next_number = 1
        self._next_comment_id = 5000

    def _maybe_fail(self, method: str, issue_number: int | None = None) -> None:
        if method not in self.fail:
            return
        numbers = self.fail_numbers.get(method)
        if numbers is None or issue_number in numbers:
            raise self.fail[method]

    def _issue(self, issue_number: int) -> FakeIssue:
        if issue_number not in self.issues:
            msg = f"404 issue #{issue_number} not found"
            raise LookupError(msg)
        return self.issues[issue_number]

    def add_issue(self, title: str, body: str = "", *, state: str = "open", labels: Sequence[str] = ()) -> FakeIssue:
        """Create an issue directly, as if made on GitHub by someone else."""
        number = self._next_number
        self._next_number += 1
        issue = FakeIssue(number=number, id=1000 + number, title=title, body=body, state=state, labels=list(labels))
        self.issues[number] = issue
        return issue

    def add_comment(self, issue_number: int, body: str) -> MirrorComment:
        comment = MirrorComment(id=self._next_comment_id, body=body)
        self._next_comment_id += 1
        self._issue(issue_number).comments.append(comment)
        return comment

    def create_issue(
        self,
        *,
        title: str,
        body: str,
        labels: Sequence[str] = (),
        assignees: Sequence[str] = (),
    ) -> MirrorIssue:
        self.calls.append(("create_issue", title))
        self._maybe_fail("create_issue")
        issue = self.add_issue(title, body, labels=labels)
        issue.assignees = list(assignees)
        return issue.to_mirror()

    def update_issue(
        self,
        issue_number: int,
        *,
        title: str | None = None,
        body: str | None = None,
        labels: Sequence[str] | None = None,
        assignees: Sequence[str] | None = None,
    ) -> MirrorIssue:
        self.calls.append(("update_issue", issue_number))
        self._maybe_fail("update_issue", issue_number)
        issue = self._issue(issue_number)
        if title is not None:
            issue.title = title
        if body is not None:
            issue.body = body
        if labels is not None:
            issue.labels = list(labels)
        if assignees is not None:
            issue.assignees = list(assignees)
        return issue.to_mirror()

    def close_issue(self, issue_number: int, comment: str | None = None) -> MirrorIssue:
        self.calls.append(("close_issue", issue_number))
        self._maybe_fail("close_issue", issue_number)
        issue = self._issue(issue_number)
        if comment:
            self.add_comment(issue_number, comment)
        issue.state = "closed"
        return issue.to_mirror()

    def reopen_issue(self, issue_number: int) -> MirrorIssue:
        self.calls.append(("reopen_issue", issue_number))
        self._maybe_fail("reopen_issue", issue_number)
        issue = self._issue(issue_number)
        issue.state = "open"
        return issue.to_mirror()

    def get_issue(self, issue_number: int) -> MirrorIssue | None:
        self.calls.append(("get_issue", issue_number))
        self._maybe_fail("get_issue", issue_number)
        issue = self.issues.get(issue_number)
        return issue.to_mirror() if issue else None

    def create_comment(self, issue_number: int, body: str) -> MirrorComment:
        self.calls.append(("create_comment", issue_number))
        self._maybe_fail("create_comment", issue_number)
        return self.add_comment(issue_number, body)

    def list_comments(self, issue_number: int) -> list[MirrorComment]:
        return list(self._issue(issue_number).comments)

    def ensure_labels(self, labels: Sequence[LabelConfig]) -> None:
        self.calls.append(("ensure_labels", len(labels)))
        self._maybe_fail("ensure_labels")
        for label in labels:
            self.labels.setdefault(label.name, label)

    def filter_valid_assignees(self, assignees: Sequence[str]) -> list[str]:
        return [assignee for assignee in assignees if assignee in self.valid_assignees]

    def list_issues_by_label(self, label_name: str) -> list[MirrorIssue]:
        return [issue.to_mirror() for issue in self.issues.values() if label_name in issue.labels]

    def mutating_calls(self) -> list[tuple[str, Any]]:
        """Calls that would change GitHub state."""
        read_only = {"get_issue"}
        return [call for call in self.calls if call[0] not in read_only]


@pytest.fixture
def fake_mirror() -> FakeMirror:
    return FakeMirror(valid_assignees=["alice"])


def _make_issue(  # noqa: PLR0913
    issue_id: str = "bd-1",
    title: str = "Test issue",
    status: str = "open",
    updated_at: str = "2024-01-01T00:00:00Z",
    *,
    created_at: str = "2024-01-01T00:00:00Z",
    comments: Sequence[BeadsComment] = (),
    dependencies: Sequence[BeadsDependency] = (),
    **kwargs: Any,  # noqa: ANN401
) -> BeadsIssue:
    return BeadsIssue(
        id=issue_id,
        title=title,
        status=status,  # pyright: ignore[reportArgumentType]
        created_at=created_at,
        updated_at=updated_at,
        comments=tuple(comments),
        dependencies=tuple(dependencies),
        **kwargs,
    )


@pytest.fixture
def make_issue() -> Callable[..., BeadsIssue]:
    """Factory for beads issues with sensible defaults."""
    return _make_issue
