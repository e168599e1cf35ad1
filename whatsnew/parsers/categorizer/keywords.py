#!/usr/bin/env python3
from __future__ import annotations

import re
from typing import Dict, Pattern, Tuple

from whatsnew.parsers.categorizer.signals import CATEGORY_PRIORITY, CATEGORY_SIGNALS

_SIGNAL_PATTERNS: Dict[str, Pattern[str]] = {
    signal: re.compile(rf"\b{re.escape(signal)}\b", re.IGNORECASE)
    for signals in CATEGORY_SIGNALS.values()
    for signal in signals
}


def analyze_keywords(text: str) -> Tuple[str, float]:
    """Score text against each category's keyword signals.

    Each whole-word hit counts 1, plus 0.5 when the first word starts with the
    signal. Categories are visited in priority order and only a strictly higher
    score replaces the current best, so ties go to the higher-priority category.
    """
    lower = (text or "").lower()
    words = lower.split()
    first = words[0] if words else ""

    best_category, best_score = "other", 0.0
    for category in CATEGORY_PRIORITY:
        score = 0.0
        for signal in CATEGORY_SIGNALS.get(category, []):
            hits = len(_SIGNAL_PATTERNS[signal].findall(lower))
            if hits:
                score += hits
                if first.startswith(signal):
                    score += 0.5
        if score > best_score:
            best_category, best_score = category, score
    return best_category, best_score
