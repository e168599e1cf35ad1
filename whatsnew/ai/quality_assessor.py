#!/usr/bin/env python3
"""Decide whether a deterministic parse is good enough or should go to the AI extractor."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from whatsnew.configs.config import Config
from whatsnew.utils.models import Category, QualityAssessment

logger = logging.getLogger(__name__)

MAX_OTHER_RATIO = 0.8
MIN_CONTENT_LENGTH = 150
MIN_EXTRACTION_RATIO = 0.5
CHARS_PER_EXPECTED_ITEM = 150
MIN_LENGTH_FOR_EXPECTATION = 100

ALL_OTHER_CAP = 0.4
HIGH_OTHER_CAP = 0.5
EMPTY_CAP = 0.3
MISSING_ITEMS_CAP = 0.5


class QualityAssessor:
    def __init__(self, confidence_threshold: Optional[float] = None) -> None:
        self.confidence_threshold = (
            confidence_threshold if confidence_threshold is not None else Config.get_pipeline_config()["min_confidence"]
        )

    @staticmethod
    def estimate_expected_items(content_length: int) -> int:
        if content_length < MIN_LENGTH_FOR_EXPECTATION:
            return 0
        return content_length // CHARS_PER_EXPECTED_ITEM

    def assess(self, categories: Iterable[Category], confidence: float, raw_content_length: int) -> QualityAssessment:
        """Score a result; every rule that fires adds a reason and caps the score.

        The score starts at ``confidence`` and ends as the minimum of all caps
        that applied. ``should_fallback_to_ai`` is set exactly when a reason fired.
        """
        categories = list(categories)
        reasons: List[str] = []
        score = confidence

        if confidence < self.confidence_threshold:
            reasons.append("low_confidence")

        total = sum(len(c.items) for c in categories)
        other = sum(len(c.items) for c in categories if c.id == "other")

        if total > 0 and other == total:
            reasons.append("all_items_other")
            score = min(score, ALL_OTHER_CAP)
        elif total > 0 and other / total > MAX_OTHER_RATIO:
            reasons.append("high_other_ratio")
            score = min(score, HIGH_OTHER_CAP)

        if total == 0 and raw_content_length > MIN_CONTENT_LENGTH:
            reasons.append("empty_categories")
            score = min(score, EMPTY_CAP)

        expected = self.estimate_expected_items(raw_content_length)
        if expected > 0 and total / expected < MIN_EXTRACTION_RATIO:
            reasons.append("missing_expected_items")
            score = min(score, MISSING_ITEMS_CAP)

        if reasons:
            logger.debug(f"Quality {score:.2f}, reasons: {', '.join(reasons)}")
        return QualityAssessment(score=score, should_fallback_to_ai=bool(reasons), reasons=tuple(reasons))
