#!/usr/bin/env python3
"""Command-line entry point: print the notes for one release, the unreleased
commits on the default branch, or every release in a date range.

Environment variables are read from ``.env`` before configuration is loaded.
"""

import logging
import sys
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from whatsnew.aggregator.data_aggregator import DataAggregator, ReleaseNotFoundError  # noqa: E402
from whatsnew.clients.github_client import GithubApiError, GithubAuthError  # noqa: E402
from whatsnew.parsers.filter import filter_categories  # noqa: E402
from whatsnew.utils.dates import parse_timestamp  # noqa: E402
from whatsnew.utils.markdown_renderer import (  # noqa: E402
    render_json,
    render_markdown,
    render_range_json,
    render_range_markdown,
    render_unreleased_json,
)
from whatsnew.utils.models import AggregatedReleases, SourceResult, UnreleasedChanges  # noqa: E402

logger = logging.getLogger(__name__)

HINT_AFTER_DAYS = 30

QUIET_LOGGERS = [
    "whatsnew.clients.github_client",
    "whatsnew.clients.bedrock_client",
    "whatsnew.parsers",
    "botocore",
    "urllib3",
]


def parse_repo(value: str) -> Tuple[str, str]:
    """Split ``owner/repo``; raises ValueError on anything else."""
    parts = value.strip().strip("/").split("/")
    if len(parts) != 2 or not all(parts):
        raise ValueError(f"Expected OWNER/REPO, got {value!r}")
    return parts[0], parts[1]


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the release aggregator."""
    import argparse

    parser = argparse.ArgumentParser(
        prog="whatsnew",
        description="Aggregate release notes from GitHub releases, changelog files and commit history",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  whatsnew vercel/next.js
  whatsnew facebook/react --tag v18.2.0 --filter important
  whatsnew owner/repo --format json --no-ai
  whatsnew owner/repo --unreleased
  whatsnew vercel/ai --since 2024-06 --until 2024-06-30 --package ai
        """,
    )
    parser.add_argument("repository", help="Repository as OWNER/REPO")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--tag", help="Release tag (defaults to the latest release)")
    mode.add_argument("--unreleased", action="store_true", help="Show commits since the latest stable release")
    mode.add_argument("--since", "--from", dest="since", help="Aggregate releases published since YYYY[-MM[-DD]]")
    parser.add_argument("--until", "--to", dest="until", help="End of the --since range (defaults to now)")
    parser.add_argument("--package", "-p", help="Monorepo package name; a trailing * matches a tag prefix")
    parser.add_argument("--include-prerelease", action="store_true", help="Let --unreleased start from a pre-release")
    parser.add_argument("--filter", dest="filter_mode", choices=["all", "important", "maintenance"], default="all")
    parser.add_argument("--format", dest="output_format", choices=["markdown", "json"], default="markdown")
    parser.add_argument("--no-ai", dest="ai", action="store_false", default=None, help="Disable AI enhancement")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    args = parser.parse_args(argv)
    if args.until and not args.since:
        parser.error("--until requires --since")

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
    )
    if not args.verbose:
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    try:
        owner, repo = parse_repo(args.repository)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    aggregator = None
    hint = None
    try:
        aggregator = DataAggregator.from_config(enable_ai=args.ai)
        if args.unreleased:
            output = render_unreleased(
                aggregator.get_unreleased_changes(
                    owner, repo, include_prerelease=args.include_prerelease, package_filter=args.package
                ),
                owner, repo, args,
            )
        elif args.since:
            output = render_range(
                aggregator.get_releases_in_range(owner, repo, args.since, args.until, package_filter=args.package),
                args,
            )
        else:
            result = aggregator.get_release(owner, repo, args.tag)
            if not args.tag:
                hint = unreleased_hint(aggregator, owner, repo, result)
            output = render_release(result, owner, repo, args)
    except ReleaseNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except (GithubAuthError, GithubApiError) as e:
        print(f"Error: GitHub request failed [{e.code}]: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        if aggregator is not None:
            aggregator.close()

    print(output)
    if hint:
        print(hint, file=sys.stderr)
    return 0


def render_release(result: SourceResult, owner: str, repo: str, args) -> str:
    result = result.model_copy(update={"categories": filter_categories(result.categories, args.filter_mode)})
    if args.output_format == "json":
        return render_json(result)
    return render_markdown(result, title=f"{owner}/{repo} {result.metadata.tag or args.tag or ''}".strip())


def render_unreleased(changes: UnreleasedChanges, owner: str, repo: str, args) -> str:
    result = changes.result
    changes = changes.model_copy(update={
        "result": result.model_copy(update={"categories": filter_categories(result.categories, args.filter_mode)})
    })
    if args.output_format == "json":
        return render_unreleased_json(changes)
    return render_markdown(changes.result, title=f"{owner}/{repo} unreleased", summary=changes.summary)


def render_range(aggregated: AggregatedReleases, args) -> str:
    packages = tuple(
        pkg.model_copy(update={"categories": filter_categories(pkg.categories, args.filter_mode)})
        for pkg in aggregated.packages
    )
    aggregated = aggregated.model_copy(update={"packages": packages})
    if args.output_format == "json":
        return render_range_json(aggregated)
    return render_range_markdown(aggregated)


def unreleased_hint(aggregator, owner: str, repo: str, result: SourceResult) -> Optional[str]:
    """A note about unreleased commits when the latest release is older than HINT_AFTER_DAYS."""
    meta = result.metadata
    if not meta.date or not meta.tag:
        return None
    try:
        age = datetime.now(timezone.utc) - parse_timestamp(meta.date)
    except ValueError:
        return None
    if age.days <= HINT_AFTER_DAYS:
        return None
    count = aggregator.get_unreleased_commit_count(owner, repo, meta.tag)
    if count <= 0:
        return None
    return f"Note: {count} commits since {meta.tag} ({age.days} days ago). Use --unreleased to see them."


if __name__ == "__main__":
    sys.exit(main())
