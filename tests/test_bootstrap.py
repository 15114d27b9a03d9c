"""
Tests for rebuilding the mapping from GitHub.
"""

import pytest

from beads_github_sync.bootstrap import bootstrap_mapping
from beads_github_sync.mapping import NEVER_SYNCED


@pytest.mark.unit
class TestBootstrapMapping:
    """Test recovery of links from labels and markers."""

    def test_links_from_beads_id_label(self, fake_mirror) -> None:
        fake_mirror.add_issue("one", labels=["beads-synced", "beads-id:bd-1"])

        mapping = bootstrap_mapping(fake_mirror)

        link = mapping.get_mapping("bd-1")
        assert link is not None
        assert link.github_issue_number == 1
        assert link.github_issue_id == 1001
        assert link.beads_updated_at == NEVER_SYNCED

    def test_links_from_body_marker(self, fake_mirror) -> None:
        fake_mirror.add_issue("one", "<!-- beads-sync:bd-7 -->\n\nbody", labels=["beads-synced"])

        mapping = bootstrap_mapping(fake_mirror)

        assert mapping.mapped_ids() == {"bd-7"}

    def test_issues_without_marker_label_are_ignored(self, fake_mirror) -> None:
        fake_mirror.add_issue("manual", labels=["beads-id:bd-1"])

        assert bootstrap_mapping(fake_mirror).mappings == {}

    def test_issue_without_beads_id_is_skipped(self, fake_mirror) -> None:
        fake_mirror.add_issue("unknown", "no marker", labels=["beads-synced"])

        assert bootstrap_mapping(fake_mirror).mappings == {}

    def test_lowest_number_wins_on_duplicates(self, fake_mirror) -> None:
        fake_mirror.add_issue("first", labels=["beads-synced", "beads-id:bd-1"])
        fake_mirror.add_issue("second", labels=["beads-synced", "beads-id:bd-1"])

        mapping = bootstrap_mapping(fake_mirror)

        link = mapping.get_mapping("bd-1")
        assert link is not None
        assert link.github_issue_number == 1

    def test_comment_links_are_recovered(self, fake_mirror) -> None:
        fake_mirror.add_issue("one", labels=["beads-synced", "beads-id:bd-1"])
        synced = fake_mirror.add_comment(1, "<!-- beads-comment:c1 -->\n**bob** commented")
        fake_mirror.add_comment(1, "A comment made on GitHub")

        mapping = bootstrap_mapping(fake_mirror)

        assert mapping.get_comment_mapping("bd-1", "c1") == synced.id
        assert len(mapping.mappings["bd-1"].comments) == 1

    def test_label_prefix(self, fake_mirror) -> None:
        fake_mirror.add_issue("one", labels=["bd/beads-synced", "bd/beads-id:bd-1"])
        fake_mirror.add_issue("two", labels=["beads-synced", "beads-id:bd-2"])

        mapping = bootstrap_mapping(fake_mirror, label_prefix="bd/")

        assert mapping.mapped_ids() == {"bd-1"}
