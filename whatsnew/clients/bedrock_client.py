#!/usr/bin/env python3
"""Bedrock runtime client for the Anthropic messages API."""
from __future__ import annotations

import json
import logging
import random
import time
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError, EndpointConnectionError, ReadTimeoutError

from whatsnew.configs.config import Config

logger = logging.getLogger(__name__)

TRANSIENT_CODES = ("TIMEOUT", "NETWORK", "RATE_LIMIT")
MAX_BACKOFF_S = 2.5


class BedrockError(Exception):
	def __init__(self, message: str, code: str = "UNKNOWN") -> None:
		super().__init__(message)
		self.code = code


def classify_error(exc: Exception) -> str:
	"""Error code for a botocore fault."""
	if isinstance(exc, ReadTimeoutError):
		return "TIMEOUT"
	if isinstance(exc, EndpointConnectionError):
		return "NETWORK"
	if not isinstance(exc, ClientError):
		return "UNKNOWN"
	err = exc.response.get("Error", {})
	text = f"{err.get('Code', '')} {err.get('Message', '')}".lower()
	if any(marker in text for marker in ("throttl", "429", "too many")):
		return "RATE_LIMIT"
	if any(marker in text for marker in ("accessdenied", "unauthorized", "unrecognizedclient", "403", "401")):
		return "UNAUTHORIZED"
	return "UNKNOWN"


def assistant_text(payload: Dict[str, Any]) -> str:
	return "".join(
		block.get("text", "")
		for block in payload.get("content", [])
		if isinstance(block, dict) and block.get("type") == "text"
	)


class BedrockClient:
	"""Single-prompt text completion; transient faults are retried with jitter."""

	def __init__(
		self,
		model_id: Optional[str] = None,
		timeout_s: Optional[int] = None,
		max_output_tokens: Optional[int] = None,
		max_attempts: int = 3,
		runtime: Any = None,
	) -> None:
		cfg = Config.get_bedrock_config()
		self.model_id = model_id or cfg["model_id"]
		self.max_output_tokens = int(max_output_tokens or cfg["max_output_tokens"])
		self.max_attempts = max_attempts
		self.temperature = 0.0
		timeout = int(timeout_s if timeout_s is not None else Config.HTTP_TIMEOUT_S)
		# botocore's own retries are disabled; complete() owns the retry policy
		self._runtime = runtime or boto3.client(
			"bedrock-runtime",
			region_name=cfg["region_name"],
			config=BotoConfig(read_timeout=timeout, retries={"max_attempts": 1}),
		)

	def _request_body(self, prompt: str) -> bytes:
		return json.dumps({
			"anthropic_version": "bedrock-2023-05-31",
			"max_tokens": self.max_output_tokens,
			"temperature": self.temperature,
			"messages": [{"role": "user", "content": [{"type": "text", "text": prompt}]}],
		}).encode("utf-8")

	def _invoke(self, prompt: str) -> str:
		response = self._runtime.invoke_model(
			modelId=self.model_id,
			contentType="application/json",
			accept="application/json",
			body=self._request_body(prompt),
		)
		raw = response["body"].read().decode("utf-8", errors="replace")
		try:
			payload = json.loads(raw)
		except json.JSONDecodeError:
			return raw
		return assistant_text(payload) or raw

	def complete(self, prompt: str, deadline: Optional[float] = None) -> str:
		"""Return the assistant text for ``prompt``.

		No retry is started whose backoff would end past ``deadline``, a
		``time.monotonic()`` value.

		Raises:
			BedrockError: With a TIMEOUT, NETWORK, RATE_LIMIT, UNAUTHORIZED or UNKNOWN code
		"""
		for attempt in range(1, self.max_attempts + 1):
			try:
				text = self._invoke(prompt)
				logger.debug(f"✓ Bedrock returned {len(text)} chars")
				return text
			except (ClientError, EndpointConnectionError, ReadTimeoutError) as e:
				code = classify_error(e)
				if code not in TRANSIENT_CODES or attempt == self.max_attempts:
					raise BedrockError(f"Bedrock invoke_model failed: {e}", code=code) from e
				delay = min(MAX_BACKOFF_S, 2 ** (attempt - 1) + random.uniform(0, 1))
				if deadline is not None and time.monotonic() + delay >= deadline:
					raise BedrockError(f"Bedrock invoke_model failed, no time left to retry: {e}", code=code) from e
				logger.debug(f"Bedrock {code} (attempt {attempt}/{self.max_attempts}), retrying in {delay:.1f}s")
				time.sleep(delay)
		raise BedrockError("Bedrock invoke_model made no attempt", code="UNKNOWN")
