#!/usr/bin/env python3
"""Secondary source: a CHANGELOG file in the repository."""

import logging
from typing import Optional

from whatsnew.clients.github_client import GithubApiError
from whatsnew.parsers.categorizer.categorize import categorize_items
from whatsnew.parsers.extractors.keep_a_changelog import extract_keep_a_changelog
from whatsnew.sources.base import QUALITY_THRESHOLDS, SourceProvider
from whatsnew.utils.models import SourceMetadata, SourceResult
from whatsnew.utils.version import extract_package_name, extract_version

logger = logging.getLogger(__name__)


class ChangelogFileSource:
    name = "changelog.md"
    priority = 2
    min_confidence = QUALITY_THRESHOLDS["changelog.md"]

    def __init__(self, provider: SourceProvider) -> None:
        self.provider = provider

    def _release_body(self, owner: str, repo: str, tag: str) -> Optional[str]:
        # Only used to discover a linked changelog path; its absence is fine
        try:
            release = self.provider.get_release_by_tag(owner, repo, tag)
        except GithubApiError as e:
            logger.debug(f"Release lookup for changelog link failed: {e}")
            return None
        return release.body if release else None

    def fetch(self, owner: str, repo: str, tag: Optional[str] = None) -> Optional[SourceResult]:
        release_body = self._release_body(owner, repo, tag) if tag else None
        package_name = extract_package_name(tag) if tag else None

        changelog = self.provider.find_changelog(
            owner, repo, release_body=release_body, package_name=package_name, ref=tag
        )
        if changelog is None:
            return None

        target_version = extract_version(tag) if tag else None
        extracted = extract_keep_a_changelog(changelog.content, target_version)
        if not extracted.items:
            logger.debug(f"{changelog.path} had no entries for {target_version or 'latest'}")
            return None

        logger.debug(f"✓ Parsed {changelog.path}: {len(extracted.items)} items")
        return SourceResult(
            categories=categorize_items(extracted.items),
            confidence=extracted.metadata.format_confidence,
            source=self.name,
            metadata=SourceMetadata(version=target_version, raw_content=changelog.content, tag=tag),
        )
