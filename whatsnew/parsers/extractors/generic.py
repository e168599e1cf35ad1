#!/usr/bin/env python3
from __future__ import annotations

import logging
import re
from typing import List, Optional

from whatsnew.parsers.categorizer.signals import map_section_to_category
from whatsnew.parsers.format_detector import calculate_confidence
from whatsnew.utils.item_validator import (
    is_contributor_acknowledgment,
    is_contributor_section,
    validate_changelog_item,
)
from whatsnew.utils.models import ExtractedItem, ExtractionMetadata, ExtractionResult, SourceHint
from whatsnew.utils.refs import extract_github_refs, strip_trailing_refs

logger = logging.getLogger(__name__)

_HEADER = re.compile(r"^#{2,3}\s+(.+)$")
_BULLET = re.compile(r"^[-*•]\s+(.+)$")
_NUMBERED = re.compile(r"^\d+[.)]\s+(.+)$")

DEFAULT_SECTION = "Changes"


def _make_item(text: str, section: str) -> Optional[ExtractedItem]:
    if is_contributor_acknowledgment(text):
        return None
    validation = validate_changelog_item(text)
    if not validation.valid:
        logger.debug(f"Dropped generic entry ({validation.reason}): {text[:60]}")
        return None
    return ExtractedItem(
        text=strip_trailing_refs(text),
        refs=tuple(extract_github_refs(text)),
        score=validation.score,
        source_hint=SourceHint(section=section, suggested_category=map_section_to_category(section)),
    )


def _summary(body: str) -> Optional[str]:
    for line in body.splitlines():
        trimmed = line.strip()
        if trimmed and not trimmed.startswith("#") and not re.match(r"^[-*•\d]", trimmed):
            return trimmed
    return None


def extract_generic(body: str, target_version: Optional[str] = None) -> ExtractionResult:
    """Pull bullet and numbered entries out of free-form notes with optional headings."""
    body = (body or "").replace("\r\n", "\n")
    items: List[ExtractedItem] = []
    section = DEFAULT_SECTION
    skipping = False

    for line in body.split("\n"):
        trimmed = line.strip()
        header = _HEADER.match(trimmed)
        if header:
            section = header.group(1).strip()
            skipping = is_contributor_section(section)
            continue
        if skipping or not trimmed:
            continue
        entry = _BULLET.match(trimmed) or _NUMBERED.match(trimmed)
        if entry:
            item = _make_item(entry.group(1).strip(), section)
            if item:
                items.append(item)

    return ExtractionResult(
        items=tuple(items),
        metadata=ExtractionMetadata(
            format="generic",
            format_confidence=calculate_confidence(body, "generic"),
            summary=_summary(body),
        ),
    )
