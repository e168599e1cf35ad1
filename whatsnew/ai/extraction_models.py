#!/usr/bin/env python3
"""Structured-output contract for AI extraction.

The model is asked for JSON matching ``AIExtractionOutput``; the extractor hands
``AIExtractionResult`` to the pipeline after ref grounding.
"""
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from whatsnew.utils.models import CategoryId

NoteType = Literal["migration", "deprecation", "upgrade", "info"]


class AIItem(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    text: str = Field(..., min_length=1, description="Clean, concise description of the change")
    source_quote: Optional[str] = Field(
        default=None,
        description="Exact quote from raw content that this item summarizes. Use null only if no specific source text exists.",
    )
    refs: Tuple[str, ...] = Field(
        default=(),
        description="PR/issue numbers from AVAILABLE_ANCHORS that relate to this change. Numbers only, without the # symbol.",
    )
    breaking: Optional[bool] = Field(default=None, description="True if this is a breaking change")


class AICategory(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: CategoryId = Field(..., description="Category ID for this group of changes")
    title: str = Field(default="", description="Human-readable category title")
    items: Tuple[AIItem, ...] = Field(default=())


class AINote(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    type: NoteType
    text: str


class AIExtractionOutput(BaseModel):
    """Raw model output, validated as-is."""

    model_config = ConfigDict(extra="ignore")

    categories: List[AICategory] = Field(default_factory=list)
    version: Optional[str] = Field(default=None, description="Version number if mentioned")
    has_breaking_changes: bool = Field(default=False, description="True if any breaking changes were identified")
    notes: Optional[List[AINote]] = Field(
        default=None, description="Important notes like migration guides or deprecation warnings"
    )


class AIExtractionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    categories: Tuple[AICategory, ...] = ()
    has_breaking_changes: bool = False
    version: Optional[str] = None
    notes: Tuple[AINote, ...] = ()
