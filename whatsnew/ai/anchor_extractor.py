#!/usr/bin/env python3
"""Grounding anchors (PR/issue numbers, GitHub URLs, commit SHAs) pulled from raw text."""

from __future__ import annotations

import re

from whatsnew.utils.models import Anchors
from whatsnew.utils.refs import dedupe

_HASH_REF = re.compile(r"#(\d+)")
_GITHUB_URL = re.compile(r"https?://github\.com/[^\s)\]>]+")
_SHA = re.compile(r"\b([a-f0-9]{7,40})\b", re.IGNORECASE)
_URL_REF = re.compile(r"github\.com/[^/\s]+/[^/\s]+/(?:pull|issues)/(\d+)")

MAX_PROMPT_SHAS = 5


def _looks_like_sha(token: str) -> bool:
    return bool(re.search(r"[a-f]", token, re.IGNORECASE)) and bool(re.search(r"\d", token))


def extract_anchors(raw_content: str) -> Anchors:
    """Derive anchors from raw text only; parsed items are never consulted."""
    text = raw_content or ""
    refs = dedupe(_HASH_REF.findall(text) + _URL_REF.findall(text))
    return Anchors(
        # PRs and issues share one number space and cannot be told apart offline
        pr_refs=tuple(refs),
        issue_refs=(),
        commit_shas=tuple(dedupe(s for s in _SHA.findall(text) if _looks_like_sha(s))),
        urls=tuple(dedupe(_GITHUB_URL.findall(text))),
    )


def format_anchors_for_prompt(anchors: Anchors) -> str:
    parts = []
    if anchors.pr_refs:
        parts.append("- PR/Issue refs: " + ", ".join(f"#{r}" for r in anchors.pr_refs))
    else:
        parts.append("- PR/Issue refs: (none found)")
    if anchors.commit_shas:
        shown = ", ".join(anchors.commit_shas[:MAX_PROMPT_SHAS])
        hidden = len(anchors.commit_shas) - MAX_PROMPT_SHAS
        suffix = f" (+{hidden} more)" if hidden > 0 else ""
        parts.append(f"- Commit SHAs: {shown}{suffix}")
    return "\n".join(parts)


def allowed_refs(anchors: Anchors) -> set:
    return set(anchors.pr_refs) | set(anchors.issue_refs) | set(anchors.commit_shas)
