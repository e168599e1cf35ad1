#!/usr/bin/env python3
from __future__ import annotations

import json
from typing import Dict

from whatsnew.ai.anchor_extractor import format_anchors_for_prompt
from whatsnew.ai.extraction_models import AIExtractionOutput
from whatsnew.utils.models import Anchors

EXTRACTION_TEMPLATE = """You are a changelog parser. Extract structured information from the following release notes.

IMPORTANT RULES:
1. Only extract information that is explicitly present in the text. Do not invent content.
2. Categorize changes with these ids:
{{ categories }}
3. Do NOT include contributor names or "New Contributors" sections as changelog items.

GROUNDING REQUIREMENTS:
1. For each change item, set "source_quote" to the exact text snippet from the raw content that the item summarizes.
2. ONLY use refs from the AVAILABLE_ANCHORS list below. Do not invent PR or issue numbers.
3. Map each change to the anchor that appears next to its source_quote.
4. Write refs as numbers only (e.g. "123"), without the # symbol.
5. If a change has no associated ref, leave refs as an empty array.

AVAILABLE_ANCHORS (extracted from raw content):
{{ anchors }}

Respond with a single JSON object matching this schema and nothing else:
{{ schema }}

RELEASE NOTES:
{{ content }}
"""

CATEGORY_GUIDE = [
    ("breaking", "Breaking changes that require code modifications"),
    ("features", "New features, enhancements, improvements"),
    ("fixes", "Bug fixes, error corrections"),
    ("security", "Security patches or vulnerabilities"),
    ("perf", "Performance improvements"),
    ("deps", "Dependency updates"),
    ("docs", "Documentation changes"),
    ("refactor", "Code refactoring without behavior changes"),
    ("chore", "Maintenance, tooling, CI/CD"),
    ("other", "Only if truly uncategorizable"),
]

TRUNCATION_MARKER = "\n[... truncated ...]"


def _render_template(template: str, mapping: Dict[str, str]) -> str:
    text = template
    for key, value in mapping.items():
        text = text.replace(f"{{{{ {key} }}}}", value)
    return text


def _bulleted(pairs) -> str:
    return "\n".join(f'   - "{cid}": {desc}' for cid, desc in pairs)


def truncate_content(raw_content: str, max_chars: int) -> str:
    if len(raw_content) <= max_chars:
        return raw_content
    return raw_content[:max_chars] + TRUNCATION_MARKER


def build_extraction_prompt(raw_content: str, anchors: Anchors, *, max_chars: int) -> str:
    schema = json.dumps(AIExtractionOutput.model_json_schema(), separators=(",", ":"))
    return _render_template(EXTRACTION_TEMPLATE, {
        "categories": _bulleted(CATEGORY_GUIDE),
        "anchors": format_anchors_for_prompt(anchors),
        "schema": schema,
        "content": truncate_content(raw_content, max_chars),
    })
