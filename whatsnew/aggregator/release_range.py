#!/usr/bin/env python3
"""Every release published in a date range, grouped by package.

Monorepo tags such as ``@scope/pkg@1.2.0`` are grouped under their package;
plain tags like ``v1.2.0`` belong to the repository's main package. Within a
package, items repeated across releases are kept once.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict

from whatsnew.clients.github_client import CHANGELOG_LINK, GithubApiError
from whatsnew.parsers.categorizer.categorize import categorize_items, order_categories
from whatsnew.parsers.extractors.keep_a_changelog import extract_keep_a_changelog
from whatsnew.sources.base import SourceProvider
from whatsnew.sources.github_release import parse_release_body
from whatsnew.utils.dates import DateInput, normalize_date_range
from whatsnew.utils.models import (
    AggregatedReleases,
    Category,
    ExtractedItem,
    PackageChanges,
    ReleaseInfo,
    ReleaseSummary,
)
from whatsnew.utils.version import extract_package_name, extract_version, is_monorepo_tag, version_key

logger = logging.getLogger(__name__)

# Longer bodies are release notes in their own right, not a pointer elsewhere
MAX_REFERENCE_BODY_LENGTH = 300
EMPTY_RANGE_SUMMARY = "No releases found in the specified date range"


class ParsedRelease(BaseModel):
    model_config = ConfigDict(frozen=True)

    release: ReleaseInfo
    categories: Tuple[Category, ...] = ()
    confidence: float = 0.0


def is_changelog_reference(body: str) -> bool:
    """A short body that only links to a CHANGELOG file."""
    body = body or ""
    return len(body) <= MAX_REFERENCE_BODY_LENGTH and bool(CHANGELOG_LINK.search(body))


def parse_release(provider: SourceProvider, owner: str, repo: str, release: ReleaseInfo) -> ParsedRelease:
    """Categorize one release, following a body that just points at the changelog."""
    body = release.body or ""
    if is_changelog_reference(body):
        try:
            changelog = provider.find_changelog(
                owner, repo, release_body=body, package_name=extract_package_name(release.tag), ref=release.tag
            )
        except GithubApiError as e:
            logger.debug(f"Changelog lookup for {release.tag} failed: {e}")
            changelog = None
        if changelog is not None:
            extracted = extract_keep_a_changelog(changelog.content, extract_version(release.tag))
            if extracted.items:
                return ParsedRelease(
                    release=release,
                    categories=categorize_items(extracted.items),
                    confidence=extracted.metadata.format_confidence,
                )

    categories, confidence = parse_release_body(body)
    return ParsedRelease(release=release, categories=categories, confidence=confidence)


def _merge_categories(into: Dict[str, List[ExtractedItem]], categories: Iterable[Category]) -> None:
    for category in categories:
        items = into.setdefault(category.id, [])
        seen = {item.text for item in items}
        for item in category.items:
            if item.text not in seen:
                seen.add(item.text)
                items.append(item)


class PackageAggregator:
    """Groups parsed releases by package and merges their categories."""

    def __init__(self, repo_name: str) -> None:
        self.repo_name = repo_name

    def package_name(self, tag: str) -> str:
        return extract_package_name(tag) if is_monorepo_tag(tag) else self.repo_name

    def summarize(self, release: ReleaseInfo) -> ReleaseSummary:
        return ReleaseSummary(
            tag=release.tag,
            version=extract_version(release.tag),
            package_name=self.package_name(release.tag),
            released_at=release.published_at,
            url=release.url,
        )

    def aggregate(self, releases: Sequence[ParsedRelease]) -> Tuple[List[PackageChanges], List[ReleaseSummary]]:
        grouped: Dict[str, List[ParsedRelease]] = {}
        for parsed in releases:
            grouped.setdefault(self.package_name(parsed.release.tag), []).append(parsed)

        packages = []
        for name, group in grouped.items():
            merged: Dict[str, List[ExtractedItem]] = {}
            titles: Dict[str, str] = {}
            for parsed in group:
                _merge_categories(merged, parsed.categories)
                titles.update({c.id: c.title for c in parsed.categories})
            categories = order_categories(
                Category(id=cid, title=titles[cid], items=tuple(items)) for cid, items in merged.items()
            )
            # Ties keep the first, i.e. newest, release
            latest = max(group, key=lambda p: version_key(p.release.tag))
            packages.append(PackageChanges(
                name=name,
                is_main=name == self.repo_name,
                summary=build_category_summary(categories),
                categories=categories,
                releases=tuple(self.summarize(p.release) for p in group),
                release_count=len(group),
                latest_version=extract_version(latest.release.tag),
                confidence=sum(p.confidence for p in group) / len(group),
            ))

        packages.sort(key=lambda p: (not p.is_main, p.name))
        return packages, [self.summarize(p.release) for p in releases]


def _plural(count: int, word: str, suffix: str = "s") -> str:
    return f"{count} {word}{suffix if count != 1 else ''}"


def _headline_counts(categories: Iterable[Category]) -> Tuple[List[str], int]:
    counts: Dict[str, int] = {}
    total = 0
    for category in categories:
        counts[category.id] = counts.get(category.id, 0) + len(category.items)
        total += len(category.items)
    parts = []
    if counts.get("breaking"):
        parts.append(_plural(counts["breaking"], "breaking change"))
    if counts.get("features"):
        parts.append(_plural(counts["features"], "feature"))
    if counts.get("fixes"):
        parts.append(_plural(counts["fixes"], "fix", "es"))
    return parts, total


def build_category_summary(categories: Iterable[Category]) -> str:
    """e.g. ``2 breaking changes, 3 features, 1 fix``."""
    parts, total = _headline_counts(categories)
    if total == 0:
        return "No changes documented"
    return ", ".join(parts) if parts else _plural(total, "change")


def build_aggregated_summary(packages: Sequence[PackageChanges], release_count: int) -> str:
    """e.g. ``1 breaking change, 4 features across 2 packages in 3 releases``."""
    parts, total = _headline_counts(c for pkg in packages for c in pkg.categories)
    changes = ", ".join(parts) if parts else f"{total} changes"
    across = f" across {len(packages)} packages" if len(packages) > 1 else ""
    return f"{changes}{across} in {_plural(release_count, 'release')}"


def collect_releases_in_range(
    provider: SourceProvider,
    owner: str,
    repo: str,
    since: DateInput,
    until: Optional[DateInput] = None,
    package_filter: Optional[str] = None,
) -> AggregatedReleases:
    """Parse and group every release published between ``since`` and ``until``.

    Raises:
        ValueError: On an unparsable or inverted date range
    """
    start, end = normalize_date_range(since, until)
    releases = provider.get_releases_in_range(owner, repo, start, end, package_filter=package_filter)
    logger.info(f"{len(releases)} releases in {owner}/{repo} between {start.date()} and {end.date()}")

    base = dict(
        repo=f"{owner}/{repo}",
        since=start.isoformat(),
        until=end.isoformat(),
        package_filter=package_filter,
        releases_url=f"https://github.com/{owner}/{repo}/releases",
    )
    if not releases:
        return AggregatedReleases(summary=EMPTY_RANGE_SUMMARY, **base)

    parsed = [parse_release(provider, owner, repo, release) for release in releases]
    packages, summaries = PackageAggregator(repo).aggregate(parsed)
    return AggregatedReleases(
        summary=build_aggregated_summary(packages, len(releases)),
        packages=tuple(packages),
        releases=tuple(summaries),
        release_count=len(releases),
        confidence=sum(p.confidence for p in packages) / len(packages),
        **base,
    )
