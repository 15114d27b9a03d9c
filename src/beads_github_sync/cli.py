"""
Command-line interface for the beads to GitHub sync tool.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from . import github_utils as ghu
from .bootstrap import bootstrap_mapping
from .config import DEFAULT_BEADS_FILE, DEFAULT_MAPPING_FILE, SyncConfig
from .exceptions import SyncerError
from .mapping import MappingFile, deserialize_mapping, serialize_mapping
from .models import SyncResult
from .orchestrator import Syncer
from .parser import parse_beads_file
from .protocols import MirrorClient
from .utils import PassError, setup_logging

logger: logging.Logger = logging.getLogger(__name__)


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Sync beads issues to GitHub issues")

    _ = parser.add_argument("github_repo", help="GitHub repository path (owner/repo)")

    _ = parser.add_argument(
        "--beads-file", default=DEFAULT_BEADS_FILE, help=f"Path to the beads JSONL file (default: {DEFAULT_BEADS_FILE})"
    )
    _ = parser.add_argument(
        "--mapping-file",
        default=DEFAULT_MAPPING_FILE,
        help=f"Path to the mapping file (default: {DEFAULT_MAPPING_FILE})",
    )
    _ = parser.add_argument("--dry-run", action="store_true", help="Show what would be done without changing anything")
    _ = parser.add_argument(
        "--no-sync-comments", dest="sync_comments", action="store_false", help="Do not sync beads comments"
    )
    _ = parser.add_argument(
        "--sync-statuses", help="Comma-separated statuses to sync (default: open,in_progress,blocked,closed)"
    )
    _ = parser.add_argument("--sync-priorities", help="Comma-separated priorities to sync (default: 0,1,2,3,4)")
    _ = parser.add_argument("--sync-labels", help="Only sync issues having one of these comma-separated labels")
    _ = parser.add_argument("--label-prefix", default="", help="Prefix for labels created by the sync")
    _ = parser.add_argument(
        "--no-sync-marker", dest="add_sync_marker", action="store_false", help="Do not add the beads-synced label"
    )
    _ = parser.add_argument(
        "--no-close-deleted",
        dest="close_deleted",
        action="store_false",
        help="Leave GitHub issues open when their beads issue is deleted",
    )
    _ = parser.add_argument(
        "--no-detect-reopen",
        dest="detect_reopen",
        action="store_false",
        help="Do not check GitHub for closed issues that are open in beads",
    )
    _ = parser.add_argument(
        "--bootstrap",
        action="store_true",
        help="Rebuild the mapping from GitHub issues labelled beads-synced when no mapping file exists",
    )
    _ = parser.add_argument(
        "--github-pass-token", help="Path for GitHub token in pass utility (default: $GITHUB_TOKEN or github/cli/token)"
    )
    _ = parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    return parser.parse_args(argv)


def _read_file_or_empty(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return ""


def _write_mapping(path: Path, mapping: MappingFile) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    _ = path.write_text(serialize_mapping(mapping), encoding="utf-8")
    logger.info(f"Saved mapping file: {path}")


def create_client(config: SyncConfig, github_token_path: str | None) -> MirrorClient:
    """Create the GitHub client for the configured repository."""
    token = ghu.get_token(github_token_path)
    client = ghu.get_client(token)
    repo = ghu.get_repo(client, config.repo_path)
    if repo is None:
        msg = f"GitHub repository {config.repo_path} not found"
        raise SyncerError(msg)
    return ghu.GitHubMirror(repo)


def run(config: SyncConfig, client: MirrorClient) -> SyncResult | None:
    """Run one sync: read the beads file and mapping, sync, persist the mapping.

    Returns:
        The sync result, or None when there was nothing to sync

    Raises:
        MappingFileError: If the mapping file exists but is malformed
    """
    beads_path = Path(config.beads_file)
    mapping_path = Path(config.mapping_file)

    logger.info(f"Repository: {config.repo_path}")
    logger.info(f"Beads file: {beads_path}")
    logger.info(f"Mapping file: {mapping_path}")
    if config.dry_run:
        logger.info("DRY RUN MODE - no changes will be made")

    beads_content = _read_file_or_empty(beads_path)
    if not beads_content.strip():
        logger.warning(f"Beads file not found or empty: {beads_path}")

    parse_result = parse_beads_file(beads_content)
    logger.info(f"Parsed {len(parse_result.issues)} issues")
    if parse_result.errors:
        logger.warning(f"{len(parse_result.errors)} parse errors:")
        for error in parse_result.errors:
            logger.warning(f"  Line {error.line}: {error.error}")

    mapping_content = _read_file_or_empty(mapping_path)
    if not mapping_content.strip() and config.bootstrap:
        logger.info("No mapping file found, rebuilding it from GitHub")
        mapping = bootstrap_mapping(client, label_prefix=config.label_prefix)
    else:
        mapping = deserialize_mapping(mapping_content)

    # An empty snapshot still has to close the issues of linked beads issues
    if not parse_result.issues and not mapping.mappings:
        logger.info("No valid issues to sync")
        return None

    result = Syncer(client, config).run(parse_result.issues, mapping)

    if not config.dry_run:
        _write_mapping(mapping_path, mapping)

    return result


def _print_sync_report(result: SyncResult) -> None:
    """Print the summary of a sync run."""
    print()
    print("=== Sync Summary ===")
    print(f"Created: {result.created}")
    print(f"Updated: {result.updated}")
    print(f"Closed: {result.closed}")
    print(f"Reopened: {result.reopened}")
    print(f"Adopted: {result.adopted}")
    print(f"Closed (deleted in beads): {result.deleted_closed}")
    print(f"Comments synced: {result.comments_synced}")

    if result.errors:
        print(f"Errors: {len(result.errors)}")
        for error in result.errors:
            print(f"  - {error}")
        print("Sync finished with errors")
    else:
        print("Sync complete!")


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = parse_arguments(argv)

    verbose: bool = getattr(args, "verbose", False)
    setup_logging(verbose=verbose)

    try:
        config = SyncConfig.from_args(args)
        client = create_client(config, args.github_pass_token)
        result = run(config, client)
    except (SyncerError, PassError) as e:
        logger.error(f"Sync failed: {e}")  # noqa: TRY400
        sys.exit(1)
    except Exception:
        logger.exception("Sync failed")
        sys.exit(1)

    if result is None:
        print("Nothing to sync")
        sys.exit(0)

    _print_sync_report(result)
    sys.exit(0 if result.success else 1)
