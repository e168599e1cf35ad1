#!/usr/bin/env python3
"""Issue/PR reference helpers and text normalization for deduplication."""
from __future__ import annotations

import re
from typing import Iterable, List

from whatsnew.configs.config import Config

_HASH_REF = re.compile(r"(?<!#)#(\d+)")
_LINK_REF = re.compile(r"\[#(\d+)\]")
_GH_REF = re.compile(r"GH-(\d+)", re.IGNORECASE)

GITLAB_REF_PATTERN = re.compile(
    r"\[issue\s+(\d+)\]|\[!(\d+)\]|(?<![/\w])!(\d+)(?!\d)|(?<![/\w])#(\d+)(?!\d)",
    re.IGNORECASE,
)

# Applied in order until the text stops changing
_STRIP_PASSES = [
    (re.compile(r"\[\[#\d+\]\([^)]+\)"), ""),
    (re.compile(r"\[#\d+\]\([^)]+\)"), ""),
    (re.compile(r"\s*\(\[#\d+\]\([^)]+\)\)\s*$"), ""),
    (re.compile(r"\s*\[#\d+\]\([^)]+\)\s*$"), ""),
    (re.compile(r"\s*\((?:closes?|fixes?|resolves?)?\s*#\d+(?:\s*,\s*#\d+)*\)\s*$", re.IGNORECASE), ""),
    (re.compile(r"\s*\(\s*(?:and|,|\s)+\s*\)\s*"), ""),
    (re.compile(r"\s*\(\s*\)\s*"), ""),
]


def _collapse_spaces(s: str) -> str:
    if not s:
        return s
    s = s.strip()
    if Config.NORMALIZE_COLLAPSE_SPACES:
        s = re.sub(r"\s+", " ", s)
    return s


def dedupe(values: Iterable[str]) -> List[str]:
    """Drop empties and duplicates, keeping first-seen order."""
    return list(dict.fromkeys(v for v in values if v))


def extract_github_refs(text: str) -> List[str]:
    if not text:
        return []
    found = _HASH_REF.findall(text) + _LINK_REF.findall(text) + _GH_REF.findall(text)
    return dedupe(found)


def extract_gitlab_refs(text: str) -> List[str]:
    refs = []
    for m in GITLAB_REF_PATTERN.finditer(text or ""):
        refs.append(m.group(1) or m.group(2) or m.group(3) or m.group(4))
    return dedupe(refs)


def strip_trailing_refs(text: str) -> str:
    """Remove trailing reference groups like ``(#123, #456)`` and inline ``[#N](url)`` links.

    References that sit mid-sentence without a link are kept; they carry context.
    """
    result = text or ""
    previous = None
    while result != previous:
        previous = result
        for pattern, repl in _STRIP_PASSES:
            result = pattern.sub(repl, result)
        result = result.strip()
    return re.sub(r"\s+", " ", result).strip()


def normalize_for_deduplication(text: str) -> str:
    s = (text or "").lower()
    s = re.sub(r"^#\d+\s*[-:]\s*", "", s)
    s = re.sub(r"^\*\*[^*]+\*\*:\s*", "", s)
    s = re.sub(r",?\s*by\s+@[\w-]+", "", s, flags=re.IGNORECASE)
    s = re.sub(r"\s*\((?:closes|fixes|resolves)?\s*#\d+\)\s*$", "", s, flags=re.IGNORECASE)
    s = re.sub(r"\[[^\]]+\]\([^)]+\)", "", s)
    s = re.sub(r"\s+", " ", s).strip()
    return s[:100]


def normalize_whitespace(text: str) -> str:
    return _collapse_spaces(text or "")
