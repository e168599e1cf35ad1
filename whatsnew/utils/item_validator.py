#!/usr/bin/env python3
"""Heuristic validation of single changelog entries.

Used by extractors to score items and by the final quality gate for items
that arrive without a pre-computed score.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Optional

from pydantic import BaseModel

NOISE_PATTERNS = [
    # Contributor names
    re.compile(r"^@[\w-]+$"),
    re.compile(r"^\[?@[\w-]+\]?\s*\(https://github\.com"),
    # Git housekeeping
    re.compile(r"^Merge (branch|pull request|remote-tracking)", re.IGNORECASE),
    re.compile(r"^Merge '[^']+' into", re.IGNORECASE),
    # Package version lines
    re.compile(r"^[@\w][\w\-/]*@\d+\.\d+"),
    re.compile(r"^:\w+:$"),
    # Single-word non-descriptive commits
    re.compile(r"^(Update|Polish|Fix|Merge|Cleanup|WIP|Typo|Bump)\s*$", re.IGNORECASE),
    # Acknowledgments
    re.compile(r"made their first contribution", re.IGNORECASE),
    re.compile(r"thanks\s+to\s+@[\w-]+", re.IGNORECASE),
    re.compile(r"contributed\s+by\s+@[\w-]+", re.IGNORECASE),
    # Version-only entries
    re.compile(r"^v?\d+\.\d+\.\d+(-[\w.]+)?$"),
    re.compile(r"^Version\s+v?\d+\.\d+\.\d+(-[\w.]+)?$", re.IGNORECASE),
    re.compile(r"^\s*$"),
    # File path only
    re.compile(r"^[\w\-/.]+\.(ts|js|tsx|jsx|json|md|yml|yaml|py)$"),
]

_CONVENTIONAL_PREFIX = re.compile(r"^(feat|fix|chore|docs|refactor|perf|test|build|ci|style)\b", re.IGNORECASE)
_ACTION_VERB = re.compile(
    r"^(Add|Fix|Update|Remove|Improve|Implement|Support|Enable|Disable|Refactor|Move|Rename|Clean|Bump|Upgrade)",
    re.IGNORECASE,
)

MIN_VALID_SCORE = 0.25


class ValidationResult(BaseModel):
    valid: bool
    score: float
    reason: Optional[str] = None


def _is_emoji_only(text: str) -> bool:
    # So covers pictographs; Mn/Cf cover variation selectors and zero-width joiners
    return all(ch.isspace() or unicodedata.category(ch) in ("So", "Sk", "Mn", "Cf") for ch in text)


def _is_punctuation_only(text: str) -> bool:
    return all(ch.isspace() or unicodedata.category(ch)[0] in ("P", "S") for ch in text)


def is_noise_pattern(text: str) -> bool:
    trimmed = text.strip()
    if _is_emoji_only(trimmed) or _is_punctuation_only(trimmed):
        return True
    return any(p.search(trimmed) for p in NOISE_PATTERNS)


def calculate_item_score(text: str) -> float:
    trimmed = text.strip()
    if not trimmed:
        return 0.0
    score = 0.5

    if _CONVENTIONAL_PREFIX.search(trimmed):
        score += 0.25
    if re.search(r"#\d+", trimmed):
        score += 0.1
    if re.search(r"^\*\*[\w-]+\*\*:", trimmed) or re.search(r"^[\w-]+:", trimmed):
        score += 0.1

    length = len(trimmed)
    if 20 <= length <= 200:
        score += 0.1
    elif length < 10:
        score -= 0.3
    elif length < 20:
        score -= 0.15

    alpha = sum(1 for ch in trimmed if ch.isascii() and ch.isalpha())
    if alpha / length < 0.4:
        score -= 0.2

    if _ACTION_VERB.search(trimmed):
        score += 0.1

    return max(0.0, min(1.0, score))


def validate_changelog_item(text: str) -> ValidationResult:
    trimmed = (text or "").strip()
    if not trimmed:
        return ValidationResult(valid=False, reason="empty", score=0.0)
    if len(trimmed) < 5:
        return ValidationResult(valid=False, reason="too_short", score=0.0)
    if is_noise_pattern(trimmed):
        return ValidationResult(valid=False, reason="noise_pattern", score=0.0)
    score = calculate_item_score(trimmed)
    if score < MIN_VALID_SCORE:
        return ValidationResult(valid=False, reason="low_score", score=score)
    return ValidationResult(valid=True, score=score)


class TextValidator:
    """Callable validator handed to the quality gate; swappable in tests."""

    def validate(self, text: str) -> ValidationResult:
        return validate_changelog_item(text)

    __call__ = validate


def is_contributor_acknowledgment(text: str) -> bool:
    trimmed = text.strip().lower()
    return (
        "made their first contribution" in trimmed
        or "new contributor" in trimmed
        or "first-time contributor" in trimmed
        or bool(re.match(r"^@[\w-]+$", trimmed))
        or bool(re.match(r"^\[?@[\w-]+\]?\s*\(https://github\.com", text.strip()))
        # "Jane Doe (@jdoe)" style credit lines
        or bool(re.match(r"^[A-Z][\w'.-]*(?:\s+[A-Z][\w'.-]*){0,3}\s*\(@[\w-]+\)\s*$", text.strip()))
    )


def is_contributor_section(header: str) -> bool:
    lower = header.lower()
    return any(
        marker in lower
        for marker in ("new contributor", "first-time contributor", "first time contributor", "thanks to", "contributors")
    )
