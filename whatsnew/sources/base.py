#!/usr/bin/env python3
"""Data source contract shared by the release, changelog and commit sources."""

from datetime import datetime
from typing import List, Optional, Protocol

from whatsnew.utils.models import ChangelogFile, CompareResult, ReleaseInfo, SourceResult

# Minimum confidence at which each source's result is accepted as primary
QUALITY_THRESHOLDS = {
    "github.release": 0.5,
    "changelog.md": 0.4,
    "commits": 0.0,
}

MIN_BODY_LENGTH = 50


class SourceProvider(Protocol):
    """What the sources need from a code host client; ``GithubClient`` satisfies it."""

    def get_latest_release(self, owner: str, repo: str) -> Optional[ReleaseInfo]: ...

    def get_release_by_tag(self, owner: str, repo: str, tag: str) -> Optional[ReleaseInfo]: ...

    def find_changelog(
        self,
        owner: str,
        repo: str,
        release_body: Optional[str] = None,
        package_name: Optional[str] = None,
        ref: Optional[str] = None,
    ) -> Optional[ChangelogFile]: ...

    def get_tags(self, owner: str, repo: str, per_page: Optional[int] = None) -> List[str]: ...

    def compare(self, owner: str, repo: str, base: str, head: str) -> CompareResult: ...

    def get_latest_stable_release(
        self, owner: str, repo: str, package_filter: Optional[str] = None
    ) -> Optional[ReleaseInfo]: ...

    def get_default_branch(self, owner: str, repo: str) -> str: ...

    def get_releases_in_range(
        self,
        owner: str,
        repo: str,
        since: datetime,
        until: datetime,
        package_filter: Optional[str] = None,
    ) -> List[ReleaseInfo]: ...


class DataSource(Protocol):
    name: str
    priority: int
    min_confidence: float

    def fetch(self, owner: str, repo: str, tag: Optional[str] = None) -> Optional[SourceResult]: ...
