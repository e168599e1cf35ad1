#!/usr/bin/env python3
"""Extractor for GitHub's auto-generated release notes ("## What's Changed")."""

from __future__ import annotations

import re
from typing import List, Optional

from whatsnew.parsers.categorizer.signals import map_section_to_category
from whatsnew.parsers.format_detector import FORMAT_CONFIDENCE
from whatsnew.utils.item_validator import is_contributor_acknowledgment, validate_changelog_item
from whatsnew.utils.models import ExtractedItem, ExtractionMetadata, ExtractionResult, SourceHint
from whatsnew.utils.refs import dedupe, extract_github_refs, strip_trailing_refs

GITHUB_CATEGORY_MAP = {
    "features": "features",
    "new features": "features",
    "exciting new features": "features",
    "enhancements": "features",
    "enhancement": "features",
    "bug fixes": "fixes",
    "bug fix": "fixes",
    "bugfixes": "fixes",
    "fixes": "fixes",
    "fixed": "fixes",
    "breaking changes": "breaking",
    "breaking": "breaking",
    "security": "security",
    "security fixes": "security",
    "documentation": "docs",
    "docs": "docs",
    "dependencies": "deps",
    "dependency updates": "deps",
    "performance": "perf",
    "performance improvements": "perf",
    "refactoring": "refactor",
    "refactor": "refactor",
    "chore": "chore",
    "chores": "chore",
    "maintenance": "chore",
    "other": "other",
    "other changes": "other",
    "changes": "other",
}

PR_ENTRY = re.compile(r"^[*-]\s+(.+?)\s+by\s+@([\w-]+)\s+in\s+(https://github\.com/[^\s]+/pull/(\d+))")
_PLAIN_BULLET = re.compile(r"^[*-]\s+(.+)$")


def _suggested_category(section_title: str) -> str:
    normalized = re.sub(r"[^\w\s'&-]", "", section_title.lower()).strip()
    return GITHUB_CATEGORY_MAP.get(normalized) or map_section_to_category(section_title)


def _parse_entries(lines: List[str], section_title: str) -> List[ExtractedItem]:
    hint = SourceHint(section=section_title, suggested_category=_suggested_category(section_title))
    items: List[ExtractedItem] = []
    for line in lines:
        trimmed = line.strip()
        m = PR_ENTRY.match(trimmed)
        if m:
            raw_title, _author, _url, pr_number = m.groups()
            items.append(ExtractedItem(
                text=strip_trailing_refs(raw_title.strip()),
                refs=tuple(dedupe([pr_number] + extract_github_refs(raw_title))),
                source_hint=hint,
            ))
            continue
        plain = _PLAIN_BULLET.match(trimmed)
        if not plain or is_contributor_acknowledgment(plain.group(1)):
            continue
        text = plain.group(1).strip()
        validation = validate_changelog_item(text)
        if validation.valid:
            items.append(ExtractedItem(
                text=strip_trailing_refs(text),
                refs=tuple(extract_github_refs(text)),
                score=validation.score,
                source_hint=hint,
            ))
    return items


def _summary(body: str) -> Optional[str]:
    m = re.match(r"^(.+?)(?=##\s+What'?s Changed)", body, re.DOTALL | re.IGNORECASE)
    if m and m.group(1).strip():
        return m.group(1).strip().split("\n")[0]
    return None


def extract_github_auto(body: str, target_version: Optional[str] = None) -> ExtractionResult:
    body = (body or "").replace("\r\n", "\n")
    items: List[ExtractedItem] = []

    for section in re.split(r"^##\s+", body, flags=re.MULTILINE):
        if not section.strip():
            continue
        lines = section.split("\n")
        header = lines[0].strip()
        lower = header.lower()

        if lower.startswith("new contributors"):
            continue
        if re.match(r"what'?s changed", lower):
            content = "\n".join(lines[1:])
            if re.search(r"^###\s+", content, re.MULTILINE):
                preamble, *subsections = re.split(r"^###\s+", content, flags=re.MULTILINE)
                items.extend(_parse_entries(preamble.split("\n"), "Changes"))
                for sub in subsections:
                    sub_lines = sub.split("\n")
                    if sub_lines[0].strip():
                        items.extend(_parse_entries(sub_lines[1:], sub_lines[0].strip()))
            else:
                items.extend(_parse_entries(lines[1:], "Changes"))
            continue
        if "changelog" not in lower and len(lines) > 1:
            items.extend(_parse_entries(lines[1:], header))

    return ExtractionResult(
        items=tuple(items),
        metadata=ExtractionMetadata(
            format="github-auto",
            format_confidence=FORMAT_CONFIDENCE["github-auto"],
            summary=_summary(body),
        ),
    )
