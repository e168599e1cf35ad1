#!/usr/bin/env python3
"""Importance filtering over categorized results."""

from __future__ import annotations

from typing import Iterable, List, Literal, Tuple

from whatsnew.utils.models import Category

CategoryFilter = Literal["all", "important", "maintenance"]

IMPORTANT_CATEGORIES: Tuple[str, ...] = ("breaking", "security", "features", "fixes", "perf")
MAINTENANCE_CATEGORIES: Tuple[str, ...] = ("deps", "refactor", "chore", "docs", "other")


def is_important_category(category_id: str) -> bool:
    return category_id in IMPORTANT_CATEGORIES


def is_maintenance_category(category_id: str) -> bool:
    return category_id in MAINTENANCE_CATEGORIES


def filter_categories(categories: Iterable[Category], mode: CategoryFilter = "all") -> Tuple[Category, ...]:
    """Keep user-facing or maintenance categories.

    Breaking items always belong to the important view, even when they sit in a
    maintenance category, and are removed from the maintenance view.
    """
    categories = tuple(categories)
    if mode == "all":
        return categories
    if mode not in ("important", "maintenance"):
        raise ValueError(f"Unknown category filter: {mode}")

    out: List[Category] = []
    for category in categories:
        if mode == "important":
            if is_important_category(category.id):
                out.append(category)
                continue
            items = tuple(i for i in category.items if i.breaking)
        else:
            if not is_maintenance_category(category.id):
                continue
            items = tuple(i for i in category.items if not i.breaking)
        if items:
            out.append(category.model_copy(update={"items": items}))
    return tuple(c for c in out if c.items)
