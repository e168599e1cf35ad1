#!/usr/bin/env python3
"""Classify a release-notes text block into one known changelog dialect."""

from __future__ import annotations

import re
from typing import Dict, Optional

CONVENTIONAL_LINE = re.compile(
    r"^(?:[-*]\s+)?(feat|fix|docs|style|refactor|perf|test|build|ci|chore)(\([^)]*\))?(!)?:\s*\S",
    re.IGNORECASE,
)

_CHANGESETS_HEADERS = ("### Major Changes", "### Minor Changes", "### Patch Changes")
_KEEP_SECTIONS = ("### Added", "### Changed", "### Deprecated", "### Removed", "### Fixed", "### Security")
_KEEP_VERSION_HEADER = re.compile(r"^##\s*\[[\w.-]+\]", re.MULTILINE)

_GH_WHATS_CHANGED = re.compile(r"##\s*What'?s Changed", re.IGNORECASE)
_GH_PR_ENTRY = re.compile(r"^\*\s+.+\s+by\s+@[\w-]+\s+in\s+https://github\.com/.+/pull/\d+", re.MULTILINE)
_GH_FULL_CHANGELOG = re.compile(r"\*\*Full Changelog\*?\*?:")
_GH_NEW_CONTRIBUTORS = re.compile(r"##\s*New Contributors", re.IGNORECASE)

_GL_DETAILS_LINK = re.compile(r"<details>\s*<summary>\s*\[")
_GL_CODE_IN_SUMMARY = re.compile(r"<summary>[^<]*<code>")
_GL_TIER_HEADER = re.compile(r"^####\s*\[(Ultimate|Premium|Free|Core)\]", re.IGNORECASE | re.MULTILINE)
_GL_STAGE_HEADER = re.compile(r"^#####\s*\[[^\]]+\]\([^)]+\)", re.MULTILINE)

_HEADING = re.compile(r"^#{2,3}\s+\S", re.MULTILINE)

# Fixed confidence per detected dialect
FORMAT_CONFIDENCE: Dict[str, float] = {
    "changesets": 0.9,
    "keep-a-changelog": 0.9,
    "github-auto": 0.9,
    "gitlab": 0.9,
    "conventional-commits": 0.85,
}

GENERIC_HEADINGS_CONFIDENCE = 0.7
GENERIC_PROSE_CONFIDENCE = 0.6
MINIMAL_CONFIDENCE = 0.3
MIN_PROSE_LENGTH = 100


def is_changesets(body: str) -> bool:
    return any(h in body for h in _CHANGESETS_HEADERS)


def is_keep_a_changelog(body: str) -> bool:
    return bool(_KEEP_VERSION_HEADER.search(body)) or any(s in body for s in _KEEP_SECTIONS)


def is_github_auto(body: str) -> bool:
    if _GH_WHATS_CHANGED.search(body):
        return True
    has_pr_entry = bool(_GH_PR_ENTRY.search(body))
    return has_pr_entry and bool(_GH_FULL_CHANGELOG.search(body) or _GH_NEW_CONTRIBUTORS.search(body))


def is_gitlab(body: str) -> bool:
    tiers = bool(_GL_TIER_HEADER.search(body))
    stages = bool(_GL_STAGE_HEADER.search(body))
    if _GL_DETAILS_LINK.search(body):
        return bool(_GL_CODE_IN_SUMMARY.search(body)) or tiers or stages
    return tiers and stages


def is_conventional_commits(body: str) -> bool:
    """True when more than half of the non-empty lines are conventional-commit subjects."""
    lines = [line.strip() for line in body.splitlines() if line.strip()]
    if not lines:
        return False
    matching = sum(1 for line in lines if CONVENTIONAL_LINE.match(line))
    return matching * 2 > len(lines)


def detect_format(body: str) -> str:
    body = body or ""
    if is_changesets(body):
        return "changesets"
    if is_keep_a_changelog(body):
        return "keep-a-changelog"
    if is_github_auto(body):
        return "github-auto"
    if is_gitlab(body):
        return "gitlab"
    if is_conventional_commits(body):
        return "conventional-commits"
    return "generic"


def calculate_confidence(body: str, fmt: Optional[str] = None) -> float:
    """Confidence that ``body`` is structurally what its detected dialect says it is."""
    body = body or ""
    fmt = fmt or detect_format(body)
    if fmt in FORMAT_CONFIDENCE:
        return FORMAT_CONFIDENCE[fmt]
    stripped = body.strip()
    if not stripped:
        return MINIMAL_CONFIDENCE
    if _HEADING.search(body):
        return GENERIC_HEADINGS_CONFIDENCE
    if len(stripped) < MIN_PROSE_LENGTH:
        return MINIMAL_CONFIDENCE
    return GENERIC_PROSE_CONFIDENCE
