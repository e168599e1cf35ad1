#!/usr/bin/env python3
"""Release data models shared by parsers, sources, and the aggregation pipeline.

Everything produced by the pipeline is a frozen model with tuple-typed
sequences, so a value handed to another phase can never be changed under it.
"""
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, confloat, model_validator

CategoryId = Literal[
	"breaking",
	"security",
	"features",
	"fixes",
	"perf",
	"deps",
	"refactor",
	"docs",
	"chore",
	"other",
]

# Display and sort order for categories in every assembled result
CATEGORY_ORDER: Tuple[str, ...] = (
	"breaking",
	"security",
	"features",
	"fixes",
	"perf",
	"deps",
	"refactor",
	"docs",
	"chore",
	"other",
)

CATEGORY_TITLES: Dict[str, str] = {
	"breaking": "Breaking Changes",
	"security": "Security",
	"features": "New Features",
	"fixes": "Bug Fixes",
	"perf": "Performance",
	"deps": "Dependencies",
	"refactor": "Refactoring",
	"docs": "Documentation",
	"chore": "Chores",
	"other": "Other Changes",
}

ChangelogFormat = Literal[
	"changesets",
	"keep-a-changelog",
	"github-auto",
	"gitlab",
	"conventional-commits",
	"generic",
]

QualityReason = Literal[
	"low_confidence",
	"all_items_other",
	"high_other_ratio",
	"empty_categories",
	"missing_expected_items",
]

Score = confloat(ge=0.0, le=1.0)


class _StrictModel(BaseModel):
	model_config = ConfigDict(extra="forbid")


class _FrozenModel(BaseModel):
	model_config = ConfigDict(extra="forbid", frozen=True)


class SourceHint(_FrozenModel):
	"""Literal section title an item was found under and the category it suggests."""

	section: Optional[str] = None
	suggested_category: CategoryId = "other"


class ExtractedItem(_FrozenModel):
	"""One change entry. Trailing refs are already stripped from ``text``."""

	text: str
	refs: Tuple[str, ...] = ()
	score: Optional[Score] = None
	conventional_type: Optional[str] = None
	scope: Optional[str] = None
	breaking: Optional[bool] = None
	source_hint: Optional[SourceHint] = None


class Category(_FrozenModel):
	id: CategoryId
	title: str
	items: Tuple[ExtractedItem, ...] = ()


class ExtractionMetadata(_FrozenModel):
	format: ChangelogFormat
	format_confidence: Score
	summary: Optional[str] = None


class ExtractionResult(_FrozenModel):
	items: Tuple[ExtractedItem, ...] = ()
	metadata: ExtractionMetadata


class SourceMetadata(_FrozenModel):
	raw_content: Optional[str] = None
	version: Optional[str] = None
	date: Optional[str] = None
	tag: Optional[str] = None
	compare_url: Optional[str] = None
	commit_count: Optional[int] = None
	baseline_tag: Optional[str] = None


class SourceResult(_FrozenModel):
	"""Output of one data source, or of the pipeline as a whole."""

	categories: Tuple[Category, ...] = ()
	confidence: Score
	source: str
	metadata: SourceMetadata = Field(default_factory=SourceMetadata)

	def total_items(self) -> int:
		return sum(len(c.items) for c in self.categories)


class Anchors(_FrozenModel):
	"""Grounding references pulled from raw text, each deduplicated in first-seen order."""

	pr_refs: Tuple[str, ...] = ()
	issue_refs: Tuple[str, ...] = ()
	commit_shas: Tuple[str, ...] = ()
	urls: Tuple[str, ...] = ()


class QualityAssessment(_FrozenModel):
	score: Score
	should_fallback_to_ai: bool
	reasons: Tuple[QualityReason, ...] = ()

	@model_validator(mode="after")
	def _fallback_matches_reasons(self) -> "QualityAssessment":
		if self.should_fallback_to_ai != bool(self.reasons):
			raise ValueError("should_fallback_to_ai must be set exactly when reasons are present")
		return self


# --- Source Provider payloads ---

class ReleaseInfo(_StrictModel):
	tag: str
	body: str = ""
	published_at: Optional[str] = None
	name: Optional[str] = None
	url: Optional[str] = None
	prerelease: bool = False


class ChangelogFile(_StrictModel):
	path: str
	content: str


class CommitInfo(_StrictModel):
	sha: str
	message: str


class CompareResult(_StrictModel):
	commits: List[CommitInfo] = Field(default_factory=list)
	url: Optional[str] = None
	total_commits: Optional[int] = None


# --- Unreleased and date-range results ---

class UnreleasedChanges(_FrozenModel):
	"""Commits on the default branch since the last stable release."""

	result: SourceResult
	summary: str
	baseline_tag: Optional[str] = None
	baseline_date: Optional[str] = None
	commit_count: int = 0


class ReleaseSummary(_FrozenModel):
	tag: str
	version: str
	package_name: str
	released_at: Optional[str] = None
	url: Optional[str] = None


class PackageChanges(_FrozenModel):
	"""Deduplicated changes of one package across every release in a range."""

	name: str
	is_main: bool
	summary: str = ""
	categories: Tuple[Category, ...] = ()
	releases: Tuple[ReleaseSummary, ...] = ()
	release_count: int = 0
	latest_version: str
	confidence: Score = 0.0


class AggregatedReleases(_FrozenModel):
	repo: str
	since: str
	until: str
	package_filter: Optional[str] = None
	summary: str
	packages: Tuple[PackageChanges, ...] = ()
	releases: Tuple[ReleaseSummary, ...] = ()
	release_count: int = 0
	confidence: Score = 0.0
	releases_url: str
	generated_from: Tuple[str, ...] = ("github.releases",)
