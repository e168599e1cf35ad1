#!/usr/bin/env python3
"""Extractor for Changesets release notes (``### Major|Minor|Patch Changes``)."""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

from whatsnew.parsers.categorizer.signals import CONVENTIONAL_COMMIT_MAP
from whatsnew.parsers.format_detector import FORMAT_CONFIDENCE
from whatsnew.utils.models import ExtractedItem, ExtractionMetadata, ExtractionResult, SourceHint
from whatsnew.utils.refs import dedupe, extract_github_refs, strip_trailing_refs

SECTION_HINTS: Dict[str, Tuple[str, str]] = {
    "major": ("Major Changes", "breaking"),
    "minor": ("Minor Changes", "features"),
    "patch": ("Patch Changes", "fixes"),
}

_SECTION_HEADER = re.compile(r"^#{2,3}\s*(.+?)\s*$")
_DEPS_WITH_HASH = re.compile(r"^-\s+Updated dependencies\s*\[([a-z0-9]+)\]", re.IGNORECASE)
_DEPS_BARE = re.compile(r"^-\s+Updated dependencies\s*$", re.IGNORECASE)
# - [#123](url) [`abc1234`](url) Thanks [@user](url)! - message
_EXTENDED = re.compile(
    r"^-\s+\[#(\d+)\]\([^)]+\)\s*\[`([a-f0-9]+)`\]\([^)]+\)\s*Thanks\s*\[@[^\]]+\]\([^)]+\)!\s*-\s*(.+)$",
    re.IGNORECASE,
)
# - [abc1234] **(pkg-a, pkg-b)** message
_OFFICIAL = re.compile(r"^-\s+\[([a-f0-9]{7,40})\]\s*(?:\*\*\(([^)]+)\)\*\*)?\s*(.+)$", re.IGNORECASE)
# - abc1234: message
_HASH_BULLET = re.compile(r"^-\s+([a-f0-9]{7,40}):\s+(.+)$", re.IGNORECASE)
_PLAIN = re.compile(r"^-\s+(.+)$")
_PACKAGE_LINE = re.compile(r"^\s+-\s+[@\w][\w\-/]*@[\d.]+")


def parse_message(message: str) -> Dict[str, object]:
    """Split an optional conventional prefix off a changeset message."""
    patterns = [
        (re.compile(r"^(\w+)\s*\(([^)]+)\)!:\s*(.+)$"), True),
        (re.compile(r"^(\w+)\s*\(([^)]+)\):\s*(.+)$"), False),
    ]
    for pattern, breaking in patterns:
        m = pattern.match(message)
        if m and m.group(1).lower() in CONVENTIONAL_COMMIT_MAP:
            return {"text": m.group(3), "type": m.group(1).lower(), "scope": m.group(2).strip(), "breaking": breaking}

    m = re.match(r"^(BREAKING(?:\s+CHANGE)?|Breaking):\s*(.+)$", message)
    if m:
        return {"text": m.group(2), "type": "breaking", "scope": None, "breaking": True}

    for pattern, breaking in ((re.compile(r"^(\w+)!:\s*(.+)$"), True), (re.compile(r"^(\w+):\s*(.+)$"), False)):
        m = pattern.match(message)
        if m and m.group(1).lower() in CONVENTIONAL_COMMIT_MAP:
            return {"text": m.group(2), "type": m.group(1).lower(), "scope": None, "breaking": breaking}

    return {"text": message, "type": None, "scope": None, "breaking": False}


class _Pending:
    def __init__(self, message: str, refs: List[str], section_type: str, scope: Optional[str] = None):
        parsed = parse_message(message.strip())
        self.text = str(parsed["text"])
        self.refs = refs
        self.conventional_type = parsed["type"]
        self.scope = parsed["scope"] or scope
        self.breaking = bool(parsed["breaking"]) or section_type == "major"
        self.section_type = section_type

    def finalize(self) -> ExtractedItem:
        section, suggested = SECTION_HINTS[self.section_type]
        return ExtractedItem(
            text=strip_trailing_refs(self.text),
            refs=tuple(dedupe(self.refs + extract_github_refs(self.text))),
            conventional_type=self.conventional_type,
            scope=self.scope or None,
            breaking=self.breaking,
            source_hint=SourceHint(section=section, suggested_category=suggested),
        )


def _deps_item(ref: str) -> ExtractedItem:
    return ExtractedItem(
        text="Updated dependencies",
        refs=(ref,),
        source_hint=SourceHint(section="Updated dependencies", suggested_category="deps"),
    )


def _sections(body: str) -> List[Tuple[str, List[str]]]:
    out: List[Tuple[str, List[str]]] = []
    for line in body.split("\n"):
        header = _SECTION_HEADER.match(line)
        if header:
            out.append((header.group(1), []))
        elif out:
            out[-1][1].append(line)
    return out


def _section_type(title: str) -> Optional[str]:
    m = re.match(r"^(major|minor|patch)\s+changes$", title.strip(), re.IGNORECASE)
    return m.group(1).lower() if m else None


def _extract_section(lines: List[str], section_type: str) -> List[ExtractedItem]:
    items: List[ExtractedItem] = []
    current: Optional[_Pending] = None

    def flush():
        nonlocal current
        if current is not None:
            items.append(current.finalize())
            current = None

    for line in lines:
        dep = _DEPS_WITH_HASH.match(line)
        if dep:
            flush()
            items.append(_deps_item(dep.group(1)))
            continue
        if _DEPS_BARE.match(line):
            flush()
            continue

        m = _EXTENDED.match(line)
        if m:
            flush()
            current = _Pending(m.group(3), [m.group(1), m.group(2)[:7]], section_type)
            continue
        m = _OFFICIAL.match(line)
        if m:
            flush()
            packages = m.group(2).strip() if m.group(2) else None
            current = _Pending(m.group(3), [m.group(1)], section_type, scope=packages)
            continue
        m = _HASH_BULLET.match(line)
        if m:
            flush()
            current = _Pending(m.group(2), [m.group(1)], section_type)
            continue
        m = _PLAIN.match(line)
        if m:
            flush()
            current = _Pending(m.group(1), [], section_type)
            continue

        if current is not None and line.strip() and not _PACKAGE_LINE.match(line):
            current.text += f" {line.strip()}"

    flush()
    return items


def _summary(body: str) -> Optional[str]:
    for line in body.split("\n"):
        trimmed = line.strip()
        if trimmed and not trimmed.startswith("#"):
            return trimmed
    return None


def extract_changesets(body: str, target_version: Optional[str] = None) -> ExtractionResult:
    body = (body or "").replace("\r\n", "\n")
    by_type: Dict[str, List[ExtractedItem]] = {"major": [], "minor": [], "patch": []}
    deps: List[ExtractedItem] = []

    for title, lines in _sections(body):
        section_type = _section_type(title)
        if section_type:
            by_type[section_type].extend(_extract_section(lines, section_type))
        elif title.strip().lower() == "updated dependencies":
            for line in lines:
                dep = _DEPS_WITH_HASH.match(line)
                if dep:
                    deps.append(_deps_item(dep.group(1)))

    items = by_type["major"] + by_type["minor"] + by_type["patch"] + deps
    return ExtractionResult(
        items=tuple(items),
        metadata=ExtractionMetadata(
            format="changesets",
            format_confidence=FORMAT_CONFIDENCE["changesets"],
            summary=_summary(body),
        ),
    )
