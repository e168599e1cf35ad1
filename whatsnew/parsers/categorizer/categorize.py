#!/usr/bin/env python3
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Tuple

from whatsnew.parsers.categorizer.inference import infer_item_category
from whatsnew.parsers.categorizer.signals import CATEGORY_PRIORITY, category_title
from whatsnew.utils.models import Category, ExtractedItem

logger = logging.getLogger(__name__)


def categorize_items(items: Iterable[ExtractedItem]) -> Tuple[Category, ...]:
    """Group items into categories in display order, skipping empty ones.

    Parsing hints are dropped from the output items; an item is marked breaking
    when it was flagged or when it landed in the breaking category.
    """
    buckets: Dict[str, List[ExtractedItem]] = {}
    for item in items:
        result = infer_item_category(item)
        logger.debug(f"{result.category} ({result.reason}): {item.text[:60]}")
        change = ExtractedItem(
            text=item.text,
            refs=item.refs,
            scope=item.scope or None,
            score=item.score,
            breaking=True if (item.breaking or result.category == "breaking") else None,
        )
        buckets.setdefault(result.category, []).append(change)

    return tuple(
        Category(id=cid, title=category_title(cid), items=tuple(buckets[cid]))
        for cid in CATEGORY_PRIORITY
        if buckets.get(cid)
    )


def order_categories(categories: Iterable[Category]) -> Tuple[Category, ...]:
    """Sort categories into display order, dropping empty ones."""
    by_id = {c.id: c for c in categories if c.items}
    return tuple(by_id[cid] for cid in CATEGORY_PRIORITY if cid in by_id)
