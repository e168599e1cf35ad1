#!/usr/bin/env python3
"""Fallback source: commit subjects between the release tag and the previous one.

Always attempted by the pipeline; it is the only source that works for
repositories without releases or changelogs. The same commit parsing also
reports unreleased work: the default branch compared with the last stable release.
"""

import logging
import re
from typing import Iterable, List, Optional

from whatsnew.clients.github_client import GithubApiError
from whatsnew.configs.config import Config
from whatsnew.parsers.categorizer.categorize import categorize_items
from whatsnew.sources.base import QUALITY_THRESHOLDS, SourceProvider
from whatsnew.utils.breaking import is_breaking_change
from whatsnew.utils.item_validator import validate_changelog_item
from whatsnew.utils.models import CommitInfo, CompareResult, ExtractedItem, ReleaseInfo, SourceMetadata, SourceResult
from whatsnew.utils.refs import extract_github_refs, strip_trailing_refs
from whatsnew.utils.version import extract_version, is_prerelease_tag

logger = logging.getLogger(__name__)

CONVENTIONAL_COMMIT = re.compile(r"^(\w+)(?:\(([^)]*)\))?(!)?:\s*(.+)$")
MERGE_COMMIT = re.compile(r"^Merge (branch|pull request|remote-tracking|'[^']+' into)", re.IGNORECASE)

CONVENTIONAL_SCORE = 0.8
CONVENTIONAL_CONFIDENCE = 0.75
PLAIN_CONFIDENCE = 0.6

# Ancestor depth tried first when a repository has no release to compare from
UNRELEASED_SCAN_DEPTH = 300


def _subject(message: str) -> str:
    return (message or "").split("\n", 1)[0].strip()


def commit_to_item(commit: CommitInfo) -> Optional[ExtractedItem]:
    """Turn one commit into an item, or None for merges and noise."""
    subject = _subject(commit.message)
    if not subject or MERGE_COMMIT.match(subject):
        return None
    refs = tuple(extract_github_refs(commit.message))

    m = CONVENTIONAL_COMMIT.match(subject)
    if m:
        cc_type, scope, _bang, raw_subject = m.groups()
        breaking = is_breaking_change(commit.message)
        return ExtractedItem(
            text=strip_trailing_refs(raw_subject).strip(),
            refs=refs,
            conventional_type=cc_type.lower(),
            scope=scope.strip() if scope and scope.strip() else None,
            breaking=True if breaking else None,
            score=CONVENTIONAL_SCORE,
        )

    validation = validate_changelog_item(subject)
    if not validation.valid:
        logger.debug(f"Skipping commit {commit.sha[:7]} ({validation.reason}): {subject[:60]}")
        return None
    return ExtractedItem(text=strip_trailing_refs(subject).strip(), refs=refs, score=validation.score)


def extract_items_from_commits(commits: Iterable[CommitInfo]) -> List[ExtractedItem]:
    items = []
    for commit in commits:
        item = commit_to_item(commit)
        if item is not None and item.text:
            items.append(item)
    return items


def find_previous_tag(tags: List[str], current_tag: str) -> Optional[str]:
    """Next older tag after ``current_tag``; stable releases skip pre-release tags."""
    if current_tag not in tags:
        return None
    index = tags.index(current_tag)
    current_stable = not is_prerelease_tag(current_tag)
    for candidate in tags[index + 1:]:
        if not current_stable or not is_prerelease_tag(candidate):
            return candidate
    return None


class CommitHistorySource:
    name = "commits"
    unreleased_name = "commits.unreleased"
    priority = 3
    min_confidence = QUALITY_THRESHOLDS["commits"]

    def __init__(self, provider: SourceProvider, fallback_depth: Optional[int] = None) -> None:
        self.provider = provider
        self.fallback_depth = fallback_depth or Config.get_pipeline_config()["compare_fallback_depth"]

    def fetch(self, owner: str, repo: str, tag: Optional[str] = None) -> Optional[SourceResult]:
        tags = self.provider.get_tags(owner, repo)
        if not tags:
            logger.info(f"No tags in {owner}/{repo}; commit history unavailable")
            return None

        current = tag or tags[0]
        previous = find_previous_tag(tags, current)
        base = previous or f"{current}~{self.fallback_depth}"
        comparison = self.provider.compare(owner, repo, base, current)
        logger.debug(f"Commit range for {owner}/{repo}: {base}...{current}")
        return self._build_result(comparison, self.name, tag=current, version=extract_version(current))

    def fetch_unreleased(
        self,
        owner: str,
        repo: str,
        include_prerelease: bool = False,
        package_filter: Optional[str] = None,
        baseline: Optional[ReleaseInfo] = None,
    ) -> Optional[SourceResult]:
        """Commits from the latest stable release to the head of the default branch.

        ``baseline`` skips the release lookup. Without any release, the most
        recent history of the default branch is used instead. None when there
        is nothing unreleased.
        """
        if baseline is None:
            baseline = self.find_baseline(owner, repo, include_prerelease, package_filter)
        branch = self.provider.get_default_branch(owner, repo)
        if baseline is not None:
            comparison = self.provider.compare(owner, repo, baseline.tag, branch)
        else:
            logger.info(f"No release in {owner}/{repo}; scanning recent commits on {branch}")
            try:
                comparison = self.provider.compare(owner, repo, f"{branch}~{UNRELEASED_SCAN_DEPTH}", branch)
            except GithubApiError as e:
                # Shorter histories cannot resolve the deep ancestor
                logger.debug(f"{branch}~{UNRELEASED_SCAN_DEPTH} unavailable ({e.code}), retrying shallower")
                comparison = self.provider.compare(owner, repo, f"{branch}~{self.fallback_depth}", branch)
        return self._build_result(
            comparison,
            self.unreleased_name,
            version="unreleased",
            baseline_tag=baseline.tag if baseline else None,
        )

    def find_baseline(
        self, owner: str, repo: str, include_prerelease: bool = False, package_filter: Optional[str] = None
    ) -> Optional[ReleaseInfo]:
        if include_prerelease:
            return self.provider.get_latest_release(owner, repo)
        return self.provider.get_latest_stable_release(owner, repo, package_filter=package_filter)

    def count_unreleased(self, owner: str, repo: str, base_tag: Optional[str] = None) -> int:
        """Commits since ``base_tag`` (default: latest stable release); 0 when unknown."""
        try:
            if base_tag is None:
                baseline = self.provider.get_latest_stable_release(owner, repo)
                if baseline is None:
                    return 0
                base_tag = baseline.tag
            comparison = self.provider.compare(owner, repo, base_tag, self.provider.get_default_branch(owner, repo))
        except GithubApiError as e:
            logger.debug(f"Unreleased commit count unavailable for {owner}/{repo}: {e}")
            return 0
        if comparison.total_commits is not None:
            return comparison.total_commits
        return len(comparison.commits)

    def _build_result(self, comparison: CompareResult, source: str, **metadata) -> Optional[SourceResult]:
        commits = comparison.commits
        if not commits:
            return None

        items = extract_items_from_commits(commits)
        subjects = [_subject(c.message) for c in commits]
        has_conventional = any(CONVENTIONAL_COMMIT.match(s) for s in subjects)
        logger.debug(f"✓ {len(items)}/{len(commits)} commits kept for {source}")

        return SourceResult(
            categories=categorize_items(items),
            confidence=CONVENTIONAL_CONFIDENCE if has_conventional else PLAIN_CONFIDENCE,
            source=source,
            metadata=SourceMetadata(
                compare_url=comparison.url,
                commit_count=len(commits),
                raw_content="\n".join(s for s in subjects if s),
                **metadata,
            ),
        )
