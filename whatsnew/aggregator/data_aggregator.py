#!/usr/bin/env python3
"""Runs the aggregation phases over a set of release data sources."""

import logging
from typing import List, Optional, Sequence

from langsmith.run_helpers import traceable

from whatsnew.ai.ai_extractor import AIExtractor
from whatsnew.ai.quality_assessor import QualityAssessor
from whatsnew.aggregator.context import PipelineContext, create_context
from whatsnew.aggregator.phases import enhance_with_ai, fetch_commits, fetch_primary, filter_quality, merge_sources
from whatsnew.aggregator.release_range import collect_releases_in_range
from whatsnew.clients.github_client import GithubClient
from whatsnew.configs.config import Config
from whatsnew.sources.base import DataSource
from whatsnew.sources.changelog_file import ChangelogFileSource
from whatsnew.sources.commit_history import CommitHistorySource
from whatsnew.sources.github_release import GitHubReleaseSource
from whatsnew.utils.dates import DateInput
from whatsnew.utils.item_validator import TextValidator
from whatsnew.utils.models import AggregatedReleases, SourceMetadata, SourceResult, UnreleasedChanges

logger = logging.getLogger(__name__)


class ReleaseNotFoundError(Exception):
    """Raised when no source produced anything for the requested release."""

    def __init__(self, owner: str, repo: str, tag: Optional[str] = None) -> None:
        super().__init__(f"No release data available for {owner}/{repo}{'@' + tag if tag else ''}")
        self.code = "NOT_FOUND"


class DataAggregator:
    """Combines release notes, changelog files and commit history into one result."""

    def __init__(
        self,
        sources: Optional[Sequence[DataSource]] = None,
        ai_extractor=None,
        text_validator=None,
        quality_assessor: Optional[QualityAssessor] = None,
        provider=None,
    ) -> None:
        self.sources: List[DataSource] = sorted(sources or [], key=lambda s: s.priority)
        self.ai_extractor = ai_extractor
        self.text_validator = text_validator or TextValidator()
        self.quality_assessor = quality_assessor or QualityAssessor()
        self.provider = provider

    @classmethod
    def from_config(cls, token: Optional[str] = None, enable_ai: Optional[bool] = None) -> "DataAggregator":
        """Wire the default GitHub-backed sources; AI only when enabled."""
        provider = GithubClient(token=token)
        ai_enabled = Config.AI_ENABLED if enable_ai is None else enable_ai
        aggregator = cls(
            sources=[
                GitHubReleaseSource(provider),
                ChangelogFileSource(provider),
                CommitHistorySource(provider),
            ],
            ai_extractor=AIExtractor(enabled=True) if ai_enabled else None,
            provider=provider,
        )
        return aggregator

    @traceable(name="aggregate_release")
    def aggregate(self, owner: str, repo: str, tag: Optional[str] = None) -> PipelineContext:
        ctx = create_context(owner, repo, tag)
        ctx = fetch_primary(ctx, self.sources)
        ctx = fetch_commits(ctx, self.sources)
        ctx = merge_sources(ctx)
        ctx = enhance_with_ai(ctx, self.quality_assessor, self.ai_extractor)
        ctx = filter_quality(ctx, self.text_validator)
        logger.info(
            f"Aggregated {owner}/{repo}: sources={'+'.join(ctx.sources_used) or 'none'}, ai={ctx.ai_enhanced}"
        )
        return ctx

    def get_release(self, owner: str, repo: str, tag: Optional[str] = None) -> SourceResult:
        """Aggregate and return the final result.

        Raises:
            ReleaseNotFoundError: If no source returned anything
        """
        ctx = self.aggregate(owner, repo, tag)
        if ctx.final_result is None:
            raise ReleaseNotFoundError(owner, repo, tag)
        return ctx.final_result

    def _commit_source(self) -> CommitHistorySource:
        for source in self.sources:
            if isinstance(source, CommitHistorySource):
                return source
        if self.provider is None:
            raise ValueError("Unreleased changes need a commit history source or a provider")
        return CommitHistorySource(self.provider)

    @traceable(name="unreleased_changes")
    def get_unreleased_changes(
        self, owner: str, repo: str, include_prerelease: bool = False, package_filter: Optional[str] = None
    ) -> UnreleasedChanges:
        """Commits on the default branch that no stable release contains yet."""
        source = self._commit_source()
        baseline = source.find_baseline(owner, repo, include_prerelease, package_filter)
        baseline_tag = baseline.tag if baseline else None
        baseline_date = baseline.published_at if baseline else None

        result = source.fetch_unreleased(owner, repo, include_prerelease, package_filter, baseline=baseline)
        if result is None:
            summary = f"No unreleased changes since {baseline_tag}" if baseline else "No releases found"
            empty = SourceResult(
                confidence=1.0,
                source=source.unreleased_name,
                metadata=SourceMetadata(version="unreleased", baseline_tag=baseline_tag),
            )
            return UnreleasedChanges(result=empty, summary=summary, baseline_tag=baseline_tag, baseline_date=baseline_date)

        commit_count = result.metadata.commit_count or 0
        breaking = sum(len(c.items) for c in result.categories if c.id == "breaking")
        summary = f"{commit_count} commits with {result.total_items()} changes since last release"
        if breaking:
            summary += f" ({breaking} breaking)"
        logger.info(f"Unreleased in {owner}/{repo}: {summary}")
        return UnreleasedChanges(
            result=result,
            summary=summary,
            baseline_tag=baseline_tag,
            baseline_date=baseline_date,
            commit_count=commit_count,
        )

    def get_unreleased_commit_count(self, owner: str, repo: str, base_tag: Optional[str] = None) -> int:
        return self._commit_source().count_unreleased(owner, repo, base_tag)

    @traceable(name="releases_in_range")
    def get_releases_in_range(
        self,
        owner: str,
        repo: str,
        since: DateInput,
        until: Optional[DateInput] = None,
        package_filter: Optional[str] = None,
    ) -> AggregatedReleases:
        """Every release published in ``[since, until]``, grouped by package.

        Raises:
            ValueError: On an unparsable or inverted date range, or without a provider
        """
        if self.provider is None:
            raise ValueError("Release ranges need a provider")
        return collect_releases_in_range(self.provider, owner, repo, since, until, package_filter)

    def close(self) -> None:
        if self.provider is not None:
            self.provider.close()
