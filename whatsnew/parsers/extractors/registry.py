#!/usr/bin/env python3
"""Dialect name to extractor lookup, plus detect-and-extract in one call."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

from whatsnew.parsers.extractors.changesets import extract_changesets
from whatsnew.parsers.extractors.conventional_commits import extract_conventional_commits
from whatsnew.parsers.extractors.generic import extract_generic
from whatsnew.parsers.extractors.github_auto import extract_github_auto
from whatsnew.parsers.extractors.gitlab import extract_gitlab
from whatsnew.parsers.extractors.keep_a_changelog import extract_keep_a_changelog
from whatsnew.parsers.format_detector import detect_format
from whatsnew.utils.models import ExtractionResult

logger = logging.getLogger(__name__)

Extractor = Callable[..., ExtractionResult]

EXTRACTORS: Dict[str, Extractor] = {
    "changesets": extract_changesets,
    "conventional-commits": extract_conventional_commits,
    "generic": extract_generic,
    "github-auto": extract_github_auto,
    "gitlab": extract_gitlab,
    "keep-a-changelog": extract_keep_a_changelog,
}


def get_extractor(fmt: str) -> Extractor:
    try:
        return EXTRACTORS[fmt]
    except KeyError:
        raise ValueError(f"Unknown changelog format: {fmt}")


def extract(raw_text: str, target_version: Optional[str] = None) -> ExtractionResult:
    fmt = detect_format(raw_text)
    logger.debug(f"Detected format: {fmt}")
    return get_extractor(fmt)(raw_text, target_version)
