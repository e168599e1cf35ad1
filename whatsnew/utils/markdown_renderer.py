#!/usr/bin/env python3
from __future__ import annotations

import textwrap
from typing import Iterable, List, Optional

from whatsnew.utils.models import AggregatedReleases, Category, ExtractedItem, SourceResult, UnreleasedChanges

EMPTY_PLACEHOLDER = "No user-facing changes detected."


def escape_md(s: str) -> str:
	if not s:
		return s
	for ch in ["*", "_", "`", "|"]:
		s = s.replace(ch, f"\\{ch}")
	return s


def _wrap(text: str, width: int = 110) -> str:
	return "\n  ".join(textwrap.wrap(text, width=width, replace_whitespace=False, break_long_words=False))


def bullets(items: Iterable[ExtractedItem]) -> str:
	out_lines: List[str] = []
	for it in items or []:
		scope_prefix = f"**{escape_md(it.scope)}:** " if it.scope else ""
		breaking_suffix = " **(breaking)**" if it.breaking else ""
		refs_suffix = " (" + ", ".join(f"#{r}" for r in it.refs) + ")" if it.refs else ""
		out_lines.append("- " + _wrap(f"{scope_prefix}{escape_md(it.text)}{breaking_suffix}{refs_suffix}"))
	return "\n".join(out_lines)


def _category_sections(categories: Iterable[Category], level: str = "##") -> List[str]:
	lines: List[str] = []
	for category in categories:
		if not category.items:
			continue
		lines.extend([f"{level} {escape_md(category.title)}", "", bullets(category.items), ""])
	return lines


def render_markdown(result: SourceResult, *, title: Optional[str] = None, summary: Optional[str] = None) -> str:
	meta = result.metadata
	header = title or f"Release {meta.tag or meta.version or ''}".strip()
	lines = [f"# {escape_md(header)}", ""]
	if summary:
		lines.extend([escape_md(summary), ""])

	facts = []
	if meta.version:
		facts.append(f"Version: {escape_md(meta.version)}")
	if meta.date:
		facts.append(f"Date: {escape_md(meta.date)}")
	facts.append(f"Source: {escape_md(result.source)}")
	facts.append(f"Confidence: {result.confidence:.2f}")
	lines.append(" · ".join(facts))
	if meta.baseline_tag:
		lines.append(f"Since: {escape_md(meta.baseline_tag)}")
	if meta.compare_url:
		lines.append(f"Compare: {meta.compare_url}")
	lines.append("")

	lines.extend(_category_sections(result.categories))
	if not any(c.items for c in result.categories):
		lines.append(EMPTY_PLACEHOLDER)
		lines.append("")
	return "\n".join(lines)


def render_json(result: SourceResult, *, include_raw: bool = False) -> str:
	exclude = None if include_raw else {"metadata": {"raw_content"}}
	return result.model_dump_json(indent=2, exclude=exclude, exclude_none=True)


def render_range_markdown(aggregated: AggregatedReleases, *, title: Optional[str] = None) -> str:
	header = title or f"{aggregated.repo} releases"
	lines = [f"# {escape_md(header)}", "", escape_md(aggregated.summary), ""]
	lines.append(f"Range: {aggregated.since} to {aggregated.until}")
	lines.append(f"Releases ({aggregated.release_count}): {aggregated.releases_url}")
	lines.append("")

	for package in aggregated.packages:
		lines.append(f"## {escape_md(package.name)} {escape_md(package.latest_version)}")
		lines.append("")
		tags = ", ".join(escape_md(r.tag) for r in package.releases)
		lines.append(f"{escape_md(package.summary)} · {tags}")
		lines.append("")
		lines.extend(_category_sections(package.categories, level="###"))

	if not aggregated.packages:
		lines.append(EMPTY_PLACEHOLDER)
		lines.append("")
	return "\n".join(lines)


def render_unreleased_json(changes: UnreleasedChanges, *, include_raw: bool = False) -> str:
	exclude = None if include_raw else {"result": {"metadata": {"raw_content"}}}
	return changes.model_dump_json(indent=2, exclude=exclude, exclude_none=True)


def render_range_json(aggregated: AggregatedReleases) -> str:
	return aggregated.model_dump_json(indent=2, exclude_none=True)
