#!/usr/bin/env python3
"""Extractor for Keep a Changelog style files and release bodies."""

from __future__ import annotations

import re
from typing import List, Optional, Tuple

from whatsnew.parsers.format_detector import FORMAT_CONFIDENCE
from whatsnew.utils.models import ExtractedItem, ExtractionMetadata, ExtractionResult, SourceHint
from whatsnew.utils.refs import extract_github_refs, strip_trailing_refs

SECTION_TO_CATEGORY = {
    "added": "features",
    "changed": "other",
    "deprecated": "other",
    "removed": "breaking",
    "fixed": "fixes",
    "security": "security",
    "bug fixes": "fixes",
    "features": "features",
    "performance improvements": "perf",
    "miscellaneous chores": "chore",
    "code refactoring": "refactor",
    "documentation": "docs",
    "breaking changes": "breaking",
    "tests": "chore",
    "build": "chore",
    "ci": "chore",
    "chore": "chore",
    "refactor": "refactor",
    "perf": "perf",
    "style": "chore",
}

_VERSION_HEADER = re.compile(r"^##\s+\[?(unreleased|v?\d[^\]\s]*)\]?[^\n]*$", re.MULTILINE | re.IGNORECASE)
_SECTION_HEADER = re.compile(r"^###\s+(.+?)\s*$")
_BULLET = re.compile(r"^[-*]\s+(.+)$")


def _version_blocks(markdown: str) -> List[Tuple[str, str]]:
    """Split a changelog into (version, body) pairs, one per ``## [x.y.z]`` heading."""
    headers = list(_VERSION_HEADER.finditer(markdown))
    blocks = []
    for i, m in enumerate(headers):
        end = headers[i + 1].start() if i + 1 < len(headers) else len(markdown)
        blocks.append((m.group(1).strip(), markdown[m.end():end]))
    return blocks


def _strip_v(version: str) -> str:
    return version[1:] if version.lower().startswith("v") else version


def select_version_block(markdown: str, target_version: Optional[str] = None) -> Optional[Tuple[str, str]]:
    blocks = _version_blocks(markdown)
    if not blocks:
        return None
    if target_version:
        wanted = _strip_v(target_version.strip())
        for version, body in blocks:
            if _strip_v(version) == wanted:
                return version, body
        return None
    for version, body in blocks:
        if version.lower() != "unreleased":
            return version, body
    return None


def _section_items(lines: List[str]) -> List[ExtractedItem]:
    items: List[ExtractedItem] = []
    section: Optional[str] = None
    for line in lines:
        header = _SECTION_HEADER.match(line.strip())
        if header:
            section = header.group(1)
            continue
        if section is None:
            continue
        bullet = _BULLET.match(line)
        if not bullet or not bullet.group(1).strip():
            continue
        raw = bullet.group(1).strip()
        items.append(ExtractedItem(
            text=strip_trailing_refs(raw),
            refs=tuple(extract_github_refs(raw)),
            source_hint=SourceHint(
                section=section,
                suggested_category=SECTION_TO_CATEGORY.get(section.lower().strip(), "other"),
            ),
        ))
    return items


def extract_keep_a_changelog(markdown: str, target_version: Optional[str] = None) -> ExtractionResult:
    """Extract items from the requested version block, or the newest released one.

    When ``target_version`` is given but missing from the file, the whole text
    is parsed so bare ``### Added`` release bodies still work.
    """
    markdown = (markdown or "").replace("\r\n", "\n")
    content = markdown
    summary = None

    block = select_version_block(markdown, target_version)
    if block:
        version, content = block
        summary = f"Version {version}"

    return ExtractionResult(
        items=tuple(_section_items(content.split("\n"))),
        metadata=ExtractionMetadata(
            format="keep-a-changelog",
            format_confidence=FORMAT_CONFIDENCE["keep-a-changelog"],
            summary=summary,
        ),
    )
