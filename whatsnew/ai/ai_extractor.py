#!/usr/bin/env python3
"""AI-backed extraction used when the deterministic parse looks weak.

Output is grounded: any ref the model returns that is not an anchor found in
the raw text is discarded.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from langsmith.run_helpers import traceable

from whatsnew.ai.anchor_extractor import allowed_refs, extract_anchors
from whatsnew.ai.extraction_models import AICategory, AIExtractionOutput, AIExtractionResult
from whatsnew.ai.prompt_builder import build_extraction_prompt
from whatsnew.clients.bedrock_client import BedrockClient, BedrockError
from whatsnew.configs.config import Config
from whatsnew.parsers.categorizer.signals import category_title
from whatsnew.utils.json_sanitizer import JSONSanitizerError, extract_and_validate
from whatsnew.utils.models import Anchors
from whatsnew.utils.wrap import error_code, with_retries

logger = logging.getLogger(__name__)

# Transport faults are retried inside BedrockClient.complete
RETRY_ON = ("JSON_DECODE",)


class AIExtractionError(Exception):
    def __init__(self, message: str, code: str = "UNKNOWN") -> None:
        super().__init__(message)
        self.code = code


class AIExtractor:
    """AI extraction capability: ``is_available()`` and ``extract(raw_content)``."""

    def __init__(
        self,
        client: Optional[BedrockClient] = None,
        *,
        enabled: Optional[bool] = None,
        client_factory: Optional[Callable[[], BedrockClient]] = None,
    ) -> None:
        ai_cfg = Config.get_ai_config()
        self.enabled = ai_cfg["enabled"] if enabled is None else enabled
        self.max_input_chars = ai_cfg["max_input_chars"]
        self.max_runtime_s = ai_cfg["max_runtime_s"]
        self.retry_max = ai_cfg["retry_max"]
        self.retry_base_sleep = ai_cfg["retry_base_sleep"]
        self._client = client
        self._client_factory = client_factory or BedrockClient

    def _get_client(self) -> BedrockClient:
        if self._client is None:
            self._client = self._client_factory()
        return self._client

    def is_available(self) -> bool:
        if not self.enabled:
            return False
        try:
            self._get_client()
        except Exception as e:  # noqa: BLE001
            logger.warning(f"AI extraction unavailable: {e}")
            return False
        return True

    @traceable(name="ai_extract")
    def extract(self, raw_content: str) -> Optional[AIExtractionResult]:
        if not raw_content or not raw_content.strip():
            return None
        anchors = extract_anchors(raw_content)
        prompt = build_extraction_prompt(raw_content, anchors, max_chars=self.max_input_chars)
        client = self._get_client()
        deadline = time.monotonic() + self.max_runtime_s

        def _call() -> AIExtractionOutput:
            return extract_and_validate(client.complete(prompt, deadline=deadline), AIExtractionOutput)

        logger.info(f"Invoking AI extraction ({len(raw_content)} chars, {len(anchors.pr_refs)} ref anchors)")
        try:
            output = with_retries(
                _call,
                max_attempts=max(1, self.retry_max + 1),
                backoff_s=self.retry_base_sleep,
                retry_on=RETRY_ON,
                classify_exc=error_code,
                deadline=deadline,
            )
        except (BedrockError, JSONSanitizerError) as e:
            raise AIExtractionError(f"AI extraction failed: {e}", code=error_code(e)) from e

        result = self._transform(self._ground_refs(output, anchors))
        logger.debug(f"✓ AI extracted {sum(len(c.items) for c in result.categories)} items")
        return result

    @staticmethod
    def _ground_refs(output: AIExtractionOutput, anchors: Anchors) -> AIExtractionOutput:
        known = allowed_refs(anchors)
        categories = []
        for cat in output.categories:
            items = tuple(
                item.model_copy(update={"refs": tuple(r.lstrip("#") for r in item.refs if r.lstrip("#") in known)})
                for item in cat.items
            )
            categories.append(cat.model_copy(update={"items": items}))
        return output.model_copy(update={"categories": categories})

    @staticmethod
    def _transform(output: AIExtractionOutput) -> AIExtractionResult:
        categories = tuple(
            AICategory(id=cat.id, title=category_title(cat.id), items=cat.items)
            for cat in output.categories
            if cat.items
        )
        return AIExtractionResult(
            categories=categories,
            has_breaking_changes=output.has_breaking_changes,
            version=output.version,
            notes=tuple(output.notes or ()),
        )
