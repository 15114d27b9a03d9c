"""
Tests for CLI module.
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from beads_github_sync.cli import _print_sync_report, main
from beads_github_sync.models import SyncErrorRecord, SyncResult


def _write_beads_file(path: Path, *records: dict[str, object]) -> None:
    lines = []
    for record in records:
        full = {
            "title": "Issue",
            "status": "open",
            "created_at": "2024-01-01T00:00:00Z",
            "updated_at": "2024-01-01T00:00:00Z",
        }
        full.update(record)
        lines.append(json.dumps(full))
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


@pytest.mark.unit
class TestPrintSyncReport:
    """Test sync summary printing."""

    def test_successful_report(self, capsys: pytest.CaptureFixture[str]) -> None:
        _print_sync_report(SyncResult(created=2, updated=1, comments_synced=3))
        captured = capsys.readouterr()

        assert "Created: 2" in captured.out
        assert "Updated: 1" in captured.out
        assert "Comments synced: 3" in captured.out
        assert "Sync complete!" in captured.out

    def test_report_with_errors(self, capsys: pytest.CaptureFixture[str]) -> None:
        result = SyncResult(errors=[SyncErrorRecord("bd-1", "update", "API error")])

        _print_sync_report(result)
        captured = capsys.readouterr()

        assert "Errors: 1" in captured.out
        assert "bd-1 (update): API error" in captured.out
        assert "Sync finished with errors" in captured.out


@pytest.mark.unit
class TestMain:
    """Test the CLI entry point end to end with an in-memory GitHub."""

    @pytest.fixture(autouse=True)
    def _in_tmp_path(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)

    def _main(self, fake_mirror, *argv: str) -> int:
        with patch("beads_github_sync.cli.create_client", return_value=fake_mirror), pytest.raises(SystemExit) as exc:
            main(["owner/repo", *argv])
        return int(exc.value.code or 0)

    def test_sync_writes_mapping(self, tmp_path: Path, fake_mirror) -> None:
        _write_beads_file(tmp_path / "issues.jsonl", {"id": "bd-1"}, {"id": "bd-2", "external_ref": "gh-1"})
        fake_mirror.add_issue("existing")

        code = self._main(
            fake_mirror, "--beads-file", "issues.jsonl", "--mapping-file", "state/mapping.json"
        )

        assert code == 0
        data = json.loads((tmp_path / "state" / "mapping.json").read_text(encoding="utf-8"))
        assert data["mappings"]["bd-1"]["github_issue_number"] == 2
        assert data["mappings"]["bd-2"]["github_issue_number"] == 1
        assert data["mappings"]["bd-2"]["adopted_from_external_ref"] is True

    def test_missing_beads_file(self, tmp_path: Path, fake_mirror, capsys: pytest.CaptureFixture[str]) -> None:
        code = self._main(fake_mirror, "--beads-file", "missing.jsonl")

        assert code == 0
        assert "Nothing to sync" in capsys.readouterr().out
        assert not (tmp_path / ".beads-sync").exists()

    @pytest.mark.parametrize("beads_content", [None, "", "{broken\n"])
    def test_empty_snapshot_closes_linked_issues(
        self, tmp_path: Path, fake_mirror, beads_content: str | None
    ) -> None:
        if beads_content is not None:
            (tmp_path / "issues.jsonl").write_text(beads_content, encoding="utf-8")
        fake_mirror.add_issue("last one")
        (tmp_path / "mapping.json").write_text(
            json.dumps(
                {
                    "version": 1,
                    "mappings": {
                        "bd-1": {
                            "github_issue_number": 1,
                            "github_issue_id": 1001,
                            "last_sync_at": "2024-01-01T00:00:00Z",
                            "beads_updated_at": "2024-01-01T00:00:00Z",
                        }
                    },
                }
            ),
            encoding="utf-8",
        )

        code = self._main(fake_mirror, "--beads-file", "issues.jsonl", "--mapping-file", "mapping.json")

        assert code == 0
        assert fake_mirror.issues[1].state == "closed"
        data = json.loads((tmp_path / "mapping.json").read_text(encoding="utf-8"))
        assert "bd-1" in data["mappings"]

    def test_parse_errors_do_not_abort(self, tmp_path: Path, fake_mirror) -> None:
        (tmp_path / "issues.jsonl").write_text(
            '{broken\n{"id": "bd-1", "title": "T", "status": "open", '
            '"created_at": "2024-01-01T00:00:00Z", "updated_at": "2024-01-01T00:00:00Z"}\n',
            encoding="utf-8",
        )

        code = self._main(fake_mirror, "--beads-file", "issues.jsonl", "--mapping-file", "mapping.json")

        assert code == 0
        assert len(fake_mirror.issues) == 1

    def test_dry_run_does_not_write_mapping(self, tmp_path: Path, fake_mirror) -> None:
        _write_beads_file(tmp_path / "issues.jsonl", {"id": "bd-1"})

        code = self._main(
            fake_mirror, "--beads-file", "issues.jsonl", "--mapping-file", "mapping.json", "--dry-run"
        )

        assert code == 0
        assert not (tmp_path / "mapping.json").exists()
        assert fake_mirror.issues == {}

    def test_malformed_mapping_is_fatal(self, tmp_path: Path, fake_mirror) -> None:
        _write_beads_file(tmp_path / "issues.jsonl", {"id": "bd-1"})
        (tmp_path / "mapping.json").write_text("{not json", encoding="utf-8")

        code = self._main(fake_mirror, "--beads-file", "issues.jsonl", "--mapping-file", "mapping.json")

        assert code == 1
        assert fake_mirror.issues == {}
        assert (tmp_path / "mapping.json").read_text(encoding="utf-8") == "{not json"

    def test_errors_give_exit_code_one(self, tmp_path: Path, fake_mirror) -> None:
        _write_beads_file(tmp_path / "issues.jsonl", {"id": "bd-1"})
        fake_mirror.fail["create_issue"] = RuntimeError("API down")

        code = self._main(fake_mirror, "--beads-file", "issues.jsonl", "--mapping-file", "mapping.json")

        assert code == 1
        data = json.loads((tmp_path / "mapping.json").read_text(encoding="utf-8"))
        assert data["mappings"] == {}

    def test_bootstrap_without_mapping_file(self, tmp_path: Path, fake_mirror) -> None:
        _write_beads_file(tmp_path / "issues.jsonl", {"id": "bd-1"})
        fake_mirror.add_issue("Issue", labels=["beads-synced", "beads-id:bd-1"])

        code = self._main(
            fake_mirror, "--beads-file", "issues.jsonl", "--mapping-file", "mapping.json", "--bootstrap"
        )

        assert code == 0
        assert len(fake_mirror.issues) == 1
        data = json.loads((tmp_path / "mapping.json").read_text(encoding="utf-8"))
        assert data["mappings"]["bd-1"]["github_issue_number"] == 1
        assert data["mappings"]["bd-1"]["beads_updated_at"] == "2024-01-01T00:00:00Z"

    def test_invalid_repo_path(self, fake_mirror) -> None:
        with pytest.raises(SystemExit) as exc:
            main(["not-a-repo"])

        assert exc.value.code == 1
