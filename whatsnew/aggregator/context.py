#!/usr/bin/env python3
"""Immutable state threaded through the aggregation phases."""

from typing import Any, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from whatsnew.utils.models import SourceResult


class PipelineContext(BaseModel):
	"""Every phase takes a context and returns a new one; nothing is updated in place."""

	model_config = ConfigDict(frozen=True, extra="forbid")

	owner: str
	repo: str
	tag: Optional[str] = None
	primary_result: Optional[SourceResult] = None
	commit_result: Optional[SourceResult] = None
	final_result: Optional[SourceResult] = None
	sources_used: Tuple[str, ...] = ()
	ai_enhanced: bool = False

	def with_(self, **changes: Any) -> "PipelineContext":
		return self.model_copy(update=changes)

	def add_source(self, name: str) -> "PipelineContext":
		return self.with_(sources_used=self.sources_used + (name,))


def create_context(owner: str, repo: str, tag: Optional[str] = None) -> PipelineContext:
	return PipelineContext(owner=owner, repo=repo, tag=tag)
