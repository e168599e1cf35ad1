#!/usr/bin/env python3
"""Tiered category inference for a single extracted item."""

from __future__ import annotations

import re
from typing import Literal, Optional

from pydantic import BaseModel

from whatsnew.parsers.categorizer.keywords import analyze_keywords
from whatsnew.parsers.categorizer.signals import CONVENTIONAL_COMMIT_MAP, KEYWORD_THRESHOLD
from whatsnew.utils.models import CategoryId, ExtractedItem

_TYPE_AT_START = re.compile(r"^(\w+)(?:\s*\([^)]*\))?!?:")
_TYPE_AFTER_LINK = re.compile(r"^\[[^\]]*\]\([^)]*\)\s*(\w+)(?:\s*\([^)]*\))?!?:")
_TYPE_ANYWHERE = re.compile(
    r"\b(feat|fix|chore|docs|refactor|perf|test|build|ci|style|revert)(?:\s*\([^)]*\))?!?:\s",
    re.IGNORECASE,
)

InferenceReason = Literal[
    "breaking_flag",
    "conventional_commit",
    "section_hint",
    "keyword_match",
    "source_hint_fallback",
    "no_signal",
]


class InferenceResult(BaseModel):
    category: CategoryId
    confidence: Literal["high", "medium", "low"]
    reason: InferenceReason


def extract_conventional_commit_type(text: str) -> Optional[str]:
    for pattern in (_TYPE_AT_START, _TYPE_AFTER_LINK, _TYPE_ANYWHERE):
        m = pattern.search(text or "")
        if m and m.group(1).lower() in CONVENTIONAL_COMMIT_MAP:
            return m.group(1).lower()
    return None


def map_conventional_commit_to_category(commit_type: str) -> str:
    return CONVENTIONAL_COMMIT_MAP.get((commit_type or "").lower(), "other")


def infer_item_category(item: ExtractedItem) -> InferenceResult:
    """Resolve the category of one item; the first tier that applies wins.

    Tiers: explicit breaking flag, conventional-commit type, explicit section
    hint, keyword analysis, then the section hint even when it says "other".
    """
    if item.breaking:
        return InferenceResult(category="breaking", confidence="high", reason="breaking_flag")

    cc_type = item.conventional_type or extract_conventional_commit_type(item.text)
    if cc_type:
        return InferenceResult(
            category=map_conventional_commit_to_category(cc_type),
            confidence="high",
            reason="conventional_commit",
        )

    hint = item.source_hint
    if hint and hint.section and hint.suggested_category != "other":
        return InferenceResult(category=hint.suggested_category, confidence="medium", reason="section_hint")

    category, score = analyze_keywords(item.text)
    if score >= KEYWORD_THRESHOLD:
        return InferenceResult(category=category, confidence="medium", reason="keyword_match")

    if hint:
        return InferenceResult(category=hint.suggested_category, confidence="low", reason="source_hint_fallback")

    return InferenceResult(category="other", confidence="low", reason="no_signal")
