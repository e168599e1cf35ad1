#!/usr/bin/env python3
from __future__ import annotations

import re
from typing import Optional

BREAKING_INDICATORS = {
    "conventional_marker": re.compile(r"^[a-z]+(?:\([^)]+\))?!:", re.IGNORECASE),
    "breaking_change_footer": re.compile(r"^BREAKING[- ]CHANGE:\s*(.+)$", re.IGNORECASE | re.MULTILINE),
    "breaking_keyword": re.compile(r"\bbreaking\s*change", re.IGNORECASE),
}


def is_breaking_change(text: str) -> bool:
    """``type!:`` subject, a BREAKING CHANGE footer, or the phrase anywhere."""
    return (
        has_breaking_marker(text)
        or extract_breaking_description(text) is not None
        or bool(BREAKING_INDICATORS["breaking_keyword"].search(text))
    )


def has_breaking_marker(message: str) -> bool:
    return bool(BREAKING_INDICATORS["conventional_marker"].search(message))


def extract_breaking_description(body: str) -> Optional[str]:
    m = BREAKING_INDICATORS["breaking_change_footer"].search(body)
    return m.group(1).strip() if m else None
