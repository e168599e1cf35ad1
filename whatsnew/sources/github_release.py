#!/usr/bin/env python3
"""Primary source: the body of a published GitHub release."""

import logging
from typing import Optional, Tuple

from whatsnew.parsers.categorizer.categorize import categorize_items
from whatsnew.parsers.extractors.registry import get_extractor
from whatsnew.parsers.format_detector import calculate_confidence, detect_format
from whatsnew.sources.base import MIN_BODY_LENGTH, QUALITY_THRESHOLDS, SourceProvider
from whatsnew.utils.models import Category, SourceMetadata, SourceResult
from whatsnew.utils.version import extract_version

logger = logging.getLogger(__name__)

SPARSE_BODY_CONFIDENCE = 0.3


def parse_release_body(body: str) -> Tuple[Tuple[Category, ...], float]:
    """Detect the dialect of a release body, extract and categorize its items."""
    fmt = detect_format(body)
    extracted = get_extractor(fmt)(body)
    logger.debug(f"Release body parsed as {fmt}: {len(extracted.items)} items")
    return categorize_items(extracted.items), calculate_confidence(body, fmt)


class GitHubReleaseSource:
    name = "github.release"
    priority = 1
    min_confidence = QUALITY_THRESHOLDS["github.release"]

    def __init__(self, provider: SourceProvider) -> None:
        self.provider = provider

    def fetch(self, owner: str, repo: str, tag: Optional[str] = None) -> Optional[SourceResult]:
        release = (
            self.provider.get_release_by_tag(owner, repo, tag)
            if tag
            else self.provider.get_latest_release(owner, repo)
        )
        if release is None:
            logger.info(f"No GitHub release for {owner}/{repo}{'@' + tag if tag else ''}")
            return None

        body = release.body or ""
        metadata = SourceMetadata(
            version=extract_version(release.tag),
            date=release.published_at,
            raw_content=body,
            tag=release.tag,
        )

        # Sparse bodies still return a result so the fallback chain can continue
        if len(body.strip()) < MIN_BODY_LENGTH:
            logger.debug(f"Release body for {release.tag} is sparse ({len(body.strip())} chars)")
            return SourceResult(
                categories=(), confidence=SPARSE_BODY_CONFIDENCE, source=self.name, metadata=metadata
            )

        categories, confidence = parse_release_body(body)
        logger.debug(f"✓ Parsed release {release.tag}: confidence {confidence}")
        return SourceResult(categories=categories, confidence=confidence, source=self.name, metadata=metadata)
