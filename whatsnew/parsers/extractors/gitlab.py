#!/usr/bin/env python3
"""Extractor for GitLab's official release post format.

Features are ``<details><summary>[Title](docs-url) <code>label</code></summary>``
blocks grouped under ``#### [Tier]`` and ``##### [Stage](url)`` headers.
"""

from __future__ import annotations

import re
from typing import List, Optional, Tuple

from whatsnew.parsers.format_detector import FORMAT_CONFIDENCE
from whatsnew.utils.models import ExtractedItem, ExtractionMetadata, ExtractionResult, SourceHint
from whatsnew.utils.refs import extract_gitlab_refs

GITLAB_STAGE_MAP = {
    "security": "security",
    "security risk management": "security",
    "software supply chain security": "security",
    "vulnerability management": "security",
    "compliance": "security",
    "create": "features",
    "plan": "features",
    "verify": "features",
    "package": "features",
    "deploy": "features",
    "release": "features",
    "configure": "features",
    "monitor": "features",
    "govern": "features",
    "documentation": "docs",
    "enablement": "other",
    "growth": "other",
}

_DETAILS = re.compile(r"<details>\s*<summary>(.*?)</summary>(.*?)</details>", re.IGNORECASE | re.DOTALL)
_LINK = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")
_CODE_TAG = re.compile(r"<code>([^<]+)</code>", re.IGNORECASE)
_ITALIC_TAG = re.compile(r"<i>([^<]+)</i>", re.IGNORECASE)
_TIER_HEADER = re.compile(r"^####\s*\[([^\]]+)\]")
_STAGE_HEADER = re.compile(r"^#####\s*\[([^\]]+)\]")
_STANDALONE = re.compile(r"^[-*]\s+\[([^\]]+)\]\(([^)]+)\).*$", re.MULTILINE)
_SHIELD_BADGE = re.compile(r"!\[[^\]]*\]\(https://img\.shields\.io[^)]+\)")


def map_stage_to_category(stage: Optional[str]) -> str:
    if not stage:
        return "features"
    normalized = stage.lower().strip()
    if normalized in GITLAB_STAGE_MAP:
        return GITLAB_STAGE_MAP[normalized]
    for key, value in GITLAB_STAGE_MAP.items():
        if key in normalized or normalized in key:
            return value
    return "features"


def _split_by_headers(body: str) -> List[Tuple[Optional[str], str]]:
    """Return (stage, content) chunks; tier headers reset the stage."""
    chunks: List[Tuple[Optional[str], str]] = []
    stage: Optional[str] = None
    buf: List[str] = []

    def push():
        if "".join(buf).strip():
            chunks.append((stage, "\n".join(buf)))

    for line in body.split("\n"):
        tier = _TIER_HEADER.match(line)
        stage_m = _STAGE_HEADER.match(line)
        if tier or stage_m:
            push()
            buf = []
            stage = stage_m.group(1).lower() if stage_m else None
            continue
        buf.append(line)
    push()
    return chunks


def _clean_html(text: str) -> str:
    return re.sub(r"\s+", " ", re.sub(r"<[^>]+>", "", text)).strip()


def _parse_block(summary: str, content: str, stage: Optional[str]) -> Optional[ExtractedItem]:
    hint = SourceHint(section=stage or "features", suggested_category=map_stage_to_category(stage))
    refs = tuple(extract_gitlab_refs(f"{summary} {content}"))
    link = _LINK.search(summary)
    if not link:
        text = _clean_html(summary)
        return ExtractedItem(text=text, refs=refs, source_hint=hint) if text else None

    text = link.group(1).strip()
    labels = [m.strip() for m in _CODE_TAG.findall(summary)]
    annotations = [a for a in (m.strip().replace("(", "").replace(")", "") for m in _ITALIC_TAG.findall(summary)) if a]
    if labels:
        text += f" ({', '.join(labels)})"
    if annotations:
        text += f" [{', '.join(annotations)}]"
    return ExtractedItem(text=text, refs=refs, source_hint=hint)


def _summary(body: str) -> Optional[str]:
    for line in body.split("\n"):
        trimmed = line.strip()
        if not trimmed or _SHIELD_BADGE.search(trimmed) or trimmed.startswith(("#", "<")):
            continue
        return trimmed[:200]
    return None


def extract_gitlab(body: str, target_version: Optional[str] = None) -> ExtractionResult:
    body = (body or "").replace("\r\n", "\n")
    items: List[ExtractedItem] = []

    for stage, content in _split_by_headers(body):
        for m in _DETAILS.finditer(content):
            item = _parse_block(m.group(1).strip(), m.group(2).strip(), stage)
            if item:
                items.append(item)

    if not items:
        for m in _STANDALONE.finditer(body):
            items.append(ExtractedItem(
                text=m.group(1).strip(),
                refs=tuple(extract_gitlab_refs(m.group(0))),
                source_hint=SourceHint(section="features", suggested_category="features"),
            ))

    return ExtractionResult(
        items=tuple(items),
        metadata=ExtractionMetadata(
            format="gitlab",
            format_confidence=FORMAT_CONFIDENCE["gitlab"],
            summary=_summary(body),
        ),
    )
