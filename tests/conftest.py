"""Shared fakes for the provider, data source, and AI contracts."""

from typing import Dict, List, Optional

import pytest

from whatsnew.ai.extraction_models import AICategory, AIExtractionResult, AIItem
from whatsnew.utils.models import (
    Category,
    ChangelogFile,
    CommitInfo,
    CompareResult,
    ExtractedItem,
    ReleaseInfo,
    SourceMetadata,
    SourceResult,
)


class FakeProvider:
    """In-memory stand-in for GithubClient."""

    def __init__(
        self,
        releases: Optional[Dict[str, ReleaseInfo]] = None,
        latest: Optional[ReleaseInfo] = None,
        changelog: Optional[ChangelogFile] = None,
        tags: Optional[List[str]] = None,
        commits: Optional[List[CommitInfo]] = None,
        compare_url: Optional[str] = "https://github.com/o/r/compare/a...b",
        stable: Optional[ReleaseInfo] = None,
        default_branch: str = "main",
        range_releases: Optional[List[ReleaseInfo]] = None,
        compare_errors: Optional[Dict[str, Exception]] = None,
        total_commits: Optional[int] = None,
    ) -> None:
        self.releases = releases or {}
        self.latest = latest
        self.changelog = changelog
        self.tags = tags or []
        self.commits = commits or []
        self.compare_url = compare_url
        self.stable = stable
        self.default_branch = default_branch
        self.range_releases = range_releases or []
        self.compare_errors = compare_errors or {}
        self.total_commits = total_commits
        self.compare_calls: List[tuple] = []
        self.changelog_calls: List[dict] = []
        self.stable_calls: List[Optional[str]] = []
        self.range_calls: List[tuple] = []

    def get_latest_release(self, owner, repo):
        return self.latest

    def get_release_by_tag(self, owner, repo, tag):
        return self.releases.get(tag)

    def find_changelog(self, owner, repo, release_body=None, package_name=None, ref=None):
        self.changelog_calls.append({"release_body": release_body, "package_name": package_name, "ref": ref})
        return self.changelog

    def get_tags(self, owner, repo, per_page=None):
        return list(self.tags)

    def compare(self, owner, repo, base, head):
        self.compare_calls.append((base, head))
        if base in self.compare_errors:
            raise self.compare_errors[base]
        return CompareResult(commits=list(self.commits), url=self.compare_url, total_commits=self.total_commits)

    def get_latest_stable_release(self, owner, repo, package_filter=None):
        self.stable_calls.append(package_filter)
        return self.stable

    def get_default_branch(self, owner, repo):
        return self.default_branch

    def get_releases_in_range(self, owner, repo, since, until, package_filter=None):
        self.range_calls.append((since, until, package_filter))
        return list(self.range_releases)

    def close(self):
        pass


class FakeSource:
    def __init__(self, name, priority, min_confidence, result=None, error=None):
        self.name = name
        self.priority = priority
        self.min_confidence = min_confidence
        self.result = result
        self.error = error
        self.calls = 0

    def fetch(self, owner, repo, tag=None):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


class FakeAI:
    def __init__(self, result=None, available=True, error=None):
        self.result = result
        self.available = available
        self.error = error
        self.calls: List[str] = []

    def is_available(self):
        return self.available

    def extract(self, raw_content):
        self.calls.append(raw_content)
        if self.error is not None:
            raise self.error
        return self.result


def make_item(text, refs=(), score=None, **kwargs) -> ExtractedItem:
    return ExtractedItem(text=text, refs=tuple(refs), score=score, **kwargs)


def make_result(categories, confidence=0.9, source="github.release", raw_content=None, **meta) -> SourceResult:
    cats = tuple(
        Category(id=cid, title=cid.title(), items=tuple(items)) for cid, items in categories
    )
    return SourceResult(
        categories=cats,
        confidence=confidence,
        source=source,
        metadata=SourceMetadata(raw_content=raw_content, **meta),
    )


def make_ai_result(categories) -> AIExtractionResult:
    return AIExtractionResult(
        categories=tuple(
            AICategory(id=cid, title=cid, items=tuple(AIItem(**item) for item in items))
            for cid, items in categories
        ),
        has_breaking_changes=False,
    )


@pytest.fixture
def provider_factory():
    return FakeProvider
