#!/usr/bin/env python3
"""Aggregation phases: fetch primary, fetch commits, merge, AI enhancement, quality filter.

Each phase is a plain function that takes a ``PipelineContext`` and returns a
new one. Source and AI failures are contained here so a single bad origin never
fails the whole request.
"""

import logging
from typing import Callable, Dict, List, Optional, Sequence, Set

from whatsnew.ai.extraction_models import AIExtractionResult, AIItem
from whatsnew.ai.quality_assessor import QualityAssessor
from whatsnew.aggregator.context import PipelineContext
from whatsnew.configs.config import Config
from whatsnew.parsers.categorizer.categorize import order_categories
from whatsnew.parsers.categorizer.signals import category_title
from whatsnew.sources.base import DataSource
from whatsnew.utils.item_validator import TextValidator
from whatsnew.utils.models import Category, ExtractedItem, SourceResult
from whatsnew.utils.refs import normalize_for_deduplication
from whatsnew.utils.wrap import error_code, with_watchdog

logger = logging.getLogger(__name__)

COMMIT_SOURCE = "commits"
AI_SOURCE = "ai"
AI_CONFIDENCE_FLOOR = 0.8
MIN_MATCH_WORDS = 3


def fetch_primary(ctx: PipelineContext, sources: Sequence[DataSource]) -> PipelineContext:
    """Walk non-commit sources in priority order until one clears its own bar.

    A result below its source's ``min_confidence`` is kept as a fallback only if
    it beats the best one seen so far; iteration then continues.
    """
    primary = ctx.primary_result
    updated = ctx

    for source in sorted(sources, key=lambda s: s.priority):
        if source.name == COMMIT_SOURCE:
            continue
        try:
            result = source.fetch(ctx.owner, ctx.repo, ctx.tag)
        except Exception as e:  # noqa: BLE001
            logger.warning(f"Source {source.name} failed for {ctx.owner}/{ctx.repo}: {e}")
            continue

        if result is None:
            continue
        if result.confidence >= source.min_confidence:
            logger.info(f"Accepted {source.name} (confidence {result.confidence:.2f})")
            primary = result
            updated = updated.add_source(source.name)
            break
        if primary is None or result.confidence > primary.confidence:
            logger.debug(
                f"Keeping {source.name} as fallback ({result.confidence:.2f} < {source.min_confidence})"
            )
            primary = result
            updated = updated.add_source(source.name)

    return updated.with_(primary_result=primary)


def fetch_commits(ctx: PipelineContext, sources: Sequence[DataSource]) -> PipelineContext:
    commit_source = next((s for s in sources if s.name == COMMIT_SOURCE), None)
    if commit_source is None:
        return ctx
    try:
        result = commit_source.fetch(ctx.owner, ctx.repo, ctx.tag)
    except Exception as e:  # noqa: BLE001
        logger.warning(f"Commit history unavailable for {ctx.owner}/{ctx.repo}: {e}")
        return ctx
    if result is None or not result.categories:
        return ctx
    return ctx.add_source(COMMIT_SOURCE).with_(commit_result=result)


def merge_with_commits(primary: SourceResult, commits: SourceResult) -> SourceResult:
    """Add commit items the primary result does not already cover.

    A commit item is skipped when any of its refs is already known or its
    normalized text is already present; admitted items extend both sets.
    """
    known_refs: Set[str] = set()
    known_texts: Set[str] = set()
    buckets: Dict[str, List[ExtractedItem]] = {}
    titles: Dict[str, str] = {}

    for cat in primary.categories:
        buckets[cat.id] = list(cat.items)
        titles[cat.id] = cat.title
        for item in cat.items:
            known_refs.update(item.refs)
            known_texts.add(normalize_for_deduplication(item.text))

    added = 0
    for cat in commits.categories:
        for item in cat.items:
            if any(ref in known_refs for ref in item.refs):
                continue
            normalized = normalize_for_deduplication(item.text)
            if normalized in known_texts:
                continue
            buckets.setdefault(cat.id, []).append(item)
            titles.setdefault(cat.id, cat.title)
            known_refs.update(item.refs)
            known_texts.add(normalized)
            added += 1

    logger.debug(f"✓ Merged {added} commit items into {primary.source}")
    categories = order_categories(
        Category(id=cid, title=titles[cid], items=tuple(items)) for cid, items in buckets.items()
    )
    return primary.model_copy(update={
        "categories": categories,
        "confidence": max(primary.confidence, commits.confidence),
    })


def merge_sources(ctx: PipelineContext) -> PipelineContext:
    primary, commits = ctx.primary_result, ctx.commit_result
    if primary and commits:
        merged = merge_with_commits(primary, commits)
        merged = merged.model_copy(update={"source": f"{primary.source}+{commits.source}"})
        return ctx.with_(final_result=merged)
    if primary:
        return ctx.with_(final_result=primary)
    if commits:
        return ctx.with_(final_result=commits)
    return ctx


def _same_change(a: str, b: str) -> bool:
    """Equal, or one contains the other as a run of at least MIN_MATCH_WORDS whole words."""
    if a == b:
        return True
    shorter, longer = sorted((a, b), key=len)
    if len(shorter.split()) < MIN_MATCH_WORDS:
        return False
    return f" {shorter} " in f" {longer} "


def _match_deterministic_refs(item: AIItem, index: List[tuple]) -> tuple:
    """Refs of the deterministic item this AI item most plausibly summarizes."""
    candidates = [normalize_for_deduplication(item.text)]
    if item.source_quote:
        candidates.append(normalize_for_deduplication(item.source_quote))
    candidates = [c for c in candidates if c]

    for text, refs in index:
        if not text:
            continue
        if any(_same_change(candidate, text) for candidate in candidates):
            return refs
    return ()


def merge_ai_results(deterministic: SourceResult, ai_result: AIExtractionResult) -> SourceResult:
    """Prefer the AI categories, carrying over refs known from the deterministic parse."""
    index = [
        (normalize_for_deduplication(item.text), item.refs)
        for cat in deterministic.categories
        for item in cat.items
        if item.refs
    ]

    buckets: Dict[str, List[ExtractedItem]] = {}
    for cat in ai_result.categories:
        items = buckets.setdefault(cat.id, [])
        for ai_item in cat.items:
            refs = list(ai_item.refs)
            for ref in _match_deterministic_refs(ai_item, index):
                if ref not in refs:
                    refs.append(ref)
            items.append(ExtractedItem(
                text=ai_item.text,
                refs=tuple(refs),
                breaking=True if (ai_item.breaking or cat.id == "breaking") else None,
            ))

    categories = (Category(id=cid, title=category_title(cid), items=tuple(items)) for cid, items in buckets.items())
    return deterministic.model_copy(update={
        "categories": order_categories(categories),
        "confidence": max(deterministic.confidence, AI_CONFIDENCE_FLOOR),
    })


def enhance_with_ai(
    ctx: PipelineContext,
    quality_assessor: QualityAssessor,
    ai_extractor,
    max_runtime_s: Optional[float] = None,
) -> PipelineContext:
    """Re-extract with AI when the deterministic result looks weak.

    Any AI fault keeps the deterministic result.
    """
    result = ctx.final_result
    if result is None or ai_extractor is None:
        return ctx

    raw_content = result.metadata.raw_content or ""
    assessment = quality_assessor.assess(result.categories, result.confidence, len(raw_content))
    if not assessment.should_fallback_to_ai or not raw_content:
        return ctx
    if not ai_extractor.is_available():
        logger.debug(f"AI fallback wanted ({', '.join(assessment.reasons)}) but not available")
        return ctx

    logger.info(f"Enhancing {ctx.owner}/{ctx.repo} with AI ({', '.join(assessment.reasons)})")
    runtime = max_runtime_s if max_runtime_s is not None else Config.AI_MAX_RUNTIME_S
    try:
        ai_result = with_watchdog(lambda: ai_extractor.extract(raw_content), max_runtime_s=runtime)
    except Exception as e:  # noqa: BLE001
        logger.warning(f"AI enhancement failed [{error_code(e)}], keeping deterministic result: {e}")
        return ctx

    if ai_result is None or not ai_result.categories:
        return ctx

    merged = merge_ai_results(result, ai_result)
    return ctx.add_source(AI_SOURCE).with_(final_result=merged, ai_enhanced=True)


def _keep_item(item: ExtractedItem, min_score: float, validate: Callable) -> bool:
    if item.score is not None:
        return item.score >= min_score
    return bool(validate(item.text).valid)


def filter_low_quality_items(
    result: SourceResult, text_validator=None, min_score: Optional[float] = None
) -> SourceResult:
    validator = text_validator or TextValidator()
    threshold = Config.get_pipeline_config()["min_item_score"] if min_score is None else min_score
    categories = []
    for cat in result.categories:
        items = tuple(item for item in cat.items if _keep_item(item, threshold, validator.validate))
        if items:
            categories.append(cat.model_copy(update={"items": items}))
    return result.model_copy(update={"categories": tuple(categories)})


def filter_quality(ctx: PipelineContext, text_validator=None, min_score: Optional[float] = None) -> PipelineContext:
    if ctx.final_result is None:
        return ctx
    return ctx.with_(final_result=filter_low_quality_items(ctx.final_result, text_validator, min_score))
