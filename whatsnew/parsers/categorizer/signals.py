#!/usr/bin/env python3
"""Category vocabulary: conventional-commit types, keyword signals, section names."""

from __future__ import annotations

import re
from typing import Dict, List, Tuple

from whatsnew.utils.models import CATEGORY_ORDER, CATEGORY_TITLES

CONVENTIONAL_COMMIT_MAP: Dict[str, str] = {
    "feat": "features",
    "feature": "features",
    "fix": "fixes",
    "bug": "fixes",
    "docs": "docs",
    "doc": "docs",
    "refactor": "refactor",
    "perf": "perf",
    "performance": "perf",
    "chore": "chore",
    "build": "chore",
    "ci": "chore",
    "style": "other",
    "test": "other",
    "tests": "other",
    "revert": "other",
    "breaking": "breaking",
}

CATEGORY_SIGNALS: Dict[str, List[str]] = {
    "features": [
        "add", "added", "adding", "new", "introduce", "introducing", "implement",
        "implemented", "support", "enable", "allow", "create", "created",
    ],
    "fixes": [
        "fix", "fixes", "fixed", "fixing", "resolve", "resolved", "bug", "issue",
        "error", "correct", "patch", "repair", "handle",
    ],
    "breaking": [
        "breaking", "remove", "removed", "delete", "deleted", "deprecate",
        "deprecated", "migrate", "migration",
    ],
    "perf": ["performance", "perf", "speed", "faster", "optimize", "optimized", "efficient"],
    "deps": ["bump", "upgrade", "dependency", "dependencies"],
    "docs": ["document", "documentation", "docs", "readme", "jsdoc", "comment"],
    "refactor": [
        "refactor", "refactored", "restructure", "reorganize", "cleanup", "clean up",
        "consolidate", "move", "rename", "renamed",
    ],
    "chore": ["chore", "maintain", "maintenance", "internal", "tooling"],
    "security": ["security", "vulnerability", "cve", "exploit"],
    "other": [],
}

CATEGORY_PRIORITY: Tuple[str, ...] = CATEGORY_ORDER

KEYWORD_THRESHOLD = 1

SECTION_TO_CATEGORY_MAP: Dict[str, str] = {
    "breaking": "breaking",
    "breaking change": "breaking",
    "breaking changes": "breaking",
    "removed": "breaking",
    "removals": "breaking",
    "major changes": "breaking",
    "security": "security",
    "security fixes": "security",
    "features": "features",
    "feature": "features",
    "new features": "features",
    "enhancements": "features",
    "enhancement": "features",
    "improvements": "features",
    "added": "features",
    "new": "features",
    "what's new": "features",
    "minor changes": "features",
    "bug fixes": "fixes",
    "bug fix": "fixes",
    "bugfixes": "fixes",
    "bugfix": "fixes",
    "fixes": "fixes",
    "fixed": "fixes",
    "patch changes": "fixes",
    "performance": "perf",
    "performance improvements": "perf",
    "perf": "perf",
    "dependencies": "deps",
    "dependency": "deps",
    "dependency updates": "deps",
    "updated dependencies": "deps",
    "deps": "deps",
    "documentation": "docs",
    "docs": "docs",
    "doc": "docs",
    "refactor": "refactor",
    "refactoring": "refactor",
    "code refactoring": "refactor",
    "chores": "chore",
    "chore": "chore",
    "maintenance": "chore",
    "internal": "chore",
    "build": "chore",
    "ci": "chore",
    "tooling": "chore",
    "other": "other",
    "other changes": "other",
    "miscellaneous": "other",
    "changed": "other",
    "deprecated": "other",
}

# Substring fallbacks for section titles that are not in the table verbatim
_SECTION_FRAGMENTS: List[Tuple[str, str]] = [
    ("breaking", "breaking"),
    ("security", "security"),
    ("vulnerab", "security"),
    ("bug", "fixes"),
    ("fix", "fixes"),
    ("feature", "features"),
    ("enhancement", "features"),
    ("perf", "perf"),
    ("depend", "deps"),
    ("doc", "docs"),
    ("refactor", "refactor"),
    ("chore", "chore"),
    ("maintenance", "chore"),
]


def normalize_section_name(section: str) -> str:
    """Lowercase a section title and strip leading emoji or symbol decoration."""
    s = (section or "").strip().lower()
    s = re.sub(r"^[^\w\[(]+", "", s)
    s = re.sub(r"[\s:]+$", "", s)
    return s.strip()


def map_section_to_category(section: str) -> str:
    name = normalize_section_name(section)
    if not name:
        return "other"
    if name in SECTION_TO_CATEGORY_MAP:
        return SECTION_TO_CATEGORY_MAP[name]
    for fragment, category in _SECTION_FRAGMENTS:
        if fragment in name:
            return category
    return "other"


def category_title(category_id: str) -> str:
    return CATEGORY_TITLES.get(category_id, category_id)
