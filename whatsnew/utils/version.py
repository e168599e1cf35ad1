#!/usr/bin/env python3
"""Tag and version string helpers."""

from __future__ import annotations

import re
from typing import Dict, Optional, Tuple, Union

PRERELEASE_PATTERN = re.compile(
    r"-(rc\.|rc\d|alpha|beta|canary|preview|dev|next|nightly)",
    re.IGNORECASE,
)


def extract_version(tag_name: str) -> str:
    """``v1.2.3`` -> ``1.2.3``; ``@scope/pkg@1.2.3`` -> ``1.2.3``."""
    version = re.sub(r"^v", "", tag_name or "")
    return re.sub(r"^@?[^@]+@", "", version)


def extract_package_name(tag_name: str) -> Optional[str]:
    m = re.match(r"^(@?[^@]+)@", tag_name or "")
    return m.group(1) if m else None


def is_monorepo_tag(tag_name: str) -> bool:
    return extract_package_name(tag_name) is not None


def is_prerelease_tag(tag_name: str) -> bool:
    return bool(PRERELEASE_PATTERN.search(tag_name or ""))


def parse_version(version: str) -> Optional[Dict[str, Union[int, str, None]]]:
    m = re.match(r"^(\d+)\.(\d+)\.(\d+)(?:-(.+))?$", version or "")
    if not m:
        return None
    return {
        "major": int(m.group(1)),
        "minor": int(m.group(2)),
        "patch": int(m.group(3)),
        "prerelease": m.group(4),
    }


def matches_package(tag_name: str, package_filter: Optional[str]) -> bool:
    """``pkg`` matches ``pkg@1.0.0`` exactly; a trailing ``*`` matches by tag prefix."""
    if not package_filter:
        return True
    if package_filter.endswith("*"):
        return (tag_name or "").startswith(package_filter[:-1])
    return extract_package_name(tag_name) == package_filter


def version_key(tag_name: str) -> Tuple[int, int, int, int]:
    """Sort key for tags; stable sorts after pre-release, unparsable tags sort first."""
    parsed = parse_version(extract_version(tag_name))
    if parsed is None:
        return (-1, -1, -1, -1)
    return (parsed["major"], parsed["minor"], parsed["patch"], 0 if parsed["prerelease"] else 1)
