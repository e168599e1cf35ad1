#!/usr/bin/env python3
from __future__ import annotations

import re
from typing import List, Optional

from whatsnew.parsers.categorizer.signals import CONVENTIONAL_COMMIT_MAP
from whatsnew.parsers.format_detector import FORMAT_CONFIDENCE
from whatsnew.utils.models import ExtractedItem, ExtractionMetadata, ExtractionResult, SourceHint
from whatsnew.utils.refs import extract_github_refs, normalize_whitespace, strip_trailing_refs

CC_LINE = re.compile(
    r"^(?:[-*]\s+)?(feat|fix|docs|style|refactor|perf|test|build|ci|chore)(?:\(([^)]+)\))?(!)?:\s*(.+)$",
    re.IGNORECASE,
)
_BREAKING_FOOTER = re.compile(r"^BREAKING[- ]CHANGE:\s*(.+)$", re.IGNORECASE)
_ANY_CC_START = re.compile(r"^[a-z]+(\([^)]+\))?(!)?:", re.IGNORECASE)


def _breaking_item(description: str) -> ExtractedItem:
    return ExtractedItem(
        text=normalize_whitespace(description),
        refs=(),
        conventional_type="breaking",
        breaking=True,
        source_hint=SourceHint(section="BREAKING CHANGE", suggested_category="breaking"),
    )


def parse_conventional_line(line: str) -> Optional[ExtractedItem]:
    """Parse ``type(scope)!: subject`` into an item, or None when the line is not conventional."""
    m = CC_LINE.match(line.strip())
    if not m:
        return None
    cc_type, scope, bang, raw_subject = m.groups()
    cc_type = cc_type.lower()
    breaking = bang == "!" or "BREAKING" in raw_subject.upper()
    suggested = "breaking" if breaking else CONVENTIONAL_COMMIT_MAP.get(cc_type, "other")
    return ExtractedItem(
        text=strip_trailing_refs(raw_subject),
        refs=tuple(extract_github_refs(raw_subject)),
        conventional_type=cc_type,
        scope=scope.strip() if scope and scope.strip() else None,
        breaking=breaking,
        source_hint=SourceHint(section=cc_type, suggested_category=suggested),
    )


def _summary(body: str) -> Optional[str]:
    for line in body.splitlines():
        trimmed = line.strip()
        if trimmed and not trimmed.startswith("#") and not _ANY_CC_START.match(trimmed) and not CC_LINE.match(trimmed):
            return trimmed
    return None


def extract_conventional_commits(body: str, target_version: Optional[str] = None) -> ExtractionResult:
    body = (body or "").replace("\r\n", "\n")
    items: List[ExtractedItem] = []
    breaking_text: Optional[str] = None

    for line in body.split("\n"):
        trimmed = line.strip()

        footer = _BREAKING_FOOTER.match(trimmed)
        if footer:
            if breaking_text:
                items.append(_breaking_item(breaking_text))
            breaking_text = footer.group(1)
            continue

        if breaking_text is not None:
            # A blank line or the next conventional subject closes the footer
            if trimmed == "" or _ANY_CC_START.match(trimmed):
                items.append(_breaking_item(breaking_text))
                breaking_text = None
            else:
                breaking_text += f" {trimmed}"
                continue

        item = parse_conventional_line(trimmed)
        if item:
            items.append(item)

    if breaking_text:
        items.append(_breaking_item(breaking_text))

    return ExtractionResult(
        items=tuple(items),
        metadata=ExtractionMetadata(
            format="conventional-commits",
            format_confidence=FORMAT_CONFIDENCE["conventional-commits"],
            summary=_summary(body),
        ),
    )
