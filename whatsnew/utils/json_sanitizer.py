#!/usr/bin/env python3
"""Recover a JSON object from free-form model output and validate it into a model."""
from __future__ import annotations

import json
import re
from typing import List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from whatsnew.utils.refs import dedupe

T = TypeVar("T", bound=BaseModel)

_FENCED_BLOCK = re.compile(r"```[a-zA-Z]*[ \t]*\n(.*?)```", re.DOTALL)
_FENCE_MARKER = re.compile(r"```[a-zA-Z]*")
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F]")

# Applied in order; none of them adds content
_REPAIRS = [
	(re.compile(r"[“”]"), '"'),
	(re.compile(r"[‘’]"), "'"),
	(re.compile(r",\s*([}\]])"), r"\1"),
]


class JSONSanitizerError(Exception):
	def __init__(self, message: str, code: str = "SANITIZE_ERROR") -> None:
		super().__init__(message)
		self.code = code


def _outermost_object(text: str) -> Optional[str]:
	"""Longest balanced ``{...}`` span in ``text``."""
	depth = 0
	start = 0
	best: Optional[str] = None
	for i, ch in enumerate(text):
		if ch == "{":
			if depth == 0:
				start = i
			depth += 1
		elif ch == "}" and depth:
			depth -= 1
			if depth == 0 and (best is None or i + 1 - start > len(best)):
				best = text[start:i + 1]
	return best


def _brace_span(text: str) -> Optional[str]:
	first, last = text.find("{"), text.rfind("}")
	return text[first:last + 1] if first != -1 and last > first else None


def candidate_objects(raw_text: str) -> List[str]:
	"""Strings that may hold the JSON object, most specific first.

	Fenced code blocks come first, then the longest balanced object and the
	first-to-last brace span of the unfenced text, then the text itself.
	"""
	if not raw_text:
		return []
	text = _CONTROL_CHARS.sub(" ", raw_text)
	found = [m.group(1) for m in _FENCED_BLOCK.finditer(text)]
	unfenced = _FENCE_MARKER.sub("", text)
	found.extend([_outermost_object(unfenced), _brace_span(unfenced), unfenced])
	return dedupe(c.strip() for c in found if c and c.strip())


def repair_json(candidate: str) -> str:
	for pattern, repl in _REPAIRS:
		candidate = pattern.sub(repl, candidate)
	return candidate.strip()


def _decode(candidate: str):
	"""Decode ``candidate`` as-is; repair and retry only when that fails."""
	try:
		return json.loads(candidate)
	except json.JSONDecodeError:
		return json.loads(repair_json(candidate))


def extract_and_validate(raw_text: str, model_cls: Type[T]) -> T:
	"""Validate the first decodable candidate in ``raw_text`` into ``model_cls``.

	Raises:
		JSONSanitizerError: ``NO_JSON`` for empty output, ``JSON_DECODE`` when no
			candidate decodes, ``VALIDATION`` when the decoded object does not fit
	"""
	candidates = candidate_objects(raw_text)
	if not candidates:
		raise JSONSanitizerError("Model output is empty", code="NO_JSON")

	decode_error: Optional[json.JSONDecodeError] = None
	for candidate in candidates:
		try:
			data = _decode(candidate)
		except json.JSONDecodeError as e:
			decode_error = decode_error or e
			continue
		try:
			return model_cls.model_validate(data)
		except ValidationError as e:
			raise JSONSanitizerError(f"Output does not match {model_cls.__name__}: {e}", code="VALIDATION")
	raise JSONSanitizerError(f"No decodable JSON in model output: {decode_error}", code="JSON_DECODE")
