import pytest

from conftest import FakeProvider, make_item
from whatsnew.aggregator.release_range import (
    PackageAggregator,
    ParsedRelease,
    build_aggregated_summary,
    build_category_summary,
    collect_releases_in_range,
    is_changelog_reference,
    parse_release,
)
from whatsnew.clients.github_client import GithubApiError
from whatsnew.utils.models import Category, ChangelogFile, PackageChanges, ReleaseInfo


def _parsed(tag, categories, confidence=0.8, published_at="2024-06-10T00:00:00Z"):
    return ParsedRelease(
        release=ReleaseInfo(tag=tag, published_at=published_at, url=f"https://github.com/o/r/releases/tag/{tag}"),
        categories=tuple(Category(id=cid, title=cid.title(), items=tuple(items)) for cid, items in categories),
        confidence=confidence,
    )


REFERENCE_BODY = "Please refer to [CHANGELOG.md](https://github.com/o/r/blob/main/CHANGELOG.md) for details."

CHANGELOG = """# Changelog

## [1.2.0] - 2024-06-10
### Added
- Add CSV export for reports (#21)

## [1.1.0] - 2024-05-01
### Fixed
- Older fix
"""


class TestPackageAggregator:
    def test_groups_by_package_with_main_first(self):
        packages, summaries = PackageAggregator("r").aggregate([
            _parsed("web@2.0.0", [("features", [make_item("Add dark mode")])]),
            _parsed("v1.2.0", [("fixes", [make_item("Fix crash on save")])]),
            _parsed("@scope/core@3.1.0", [("fixes", [make_item("Fix parser")])]),
        ])

        assert [p.name for p in packages] == ["r", "@scope/core", "web"]
        assert packages[0].is_main is True
        assert packages[1].is_main is False
        assert [s.package_name for s in summaries] == ["web", "r", "@scope/core"]
        assert summaries[1].version == "1.2.0"

    def test_items_deduplicated_across_releases(self):
        packages, _ = PackageAggregator("r").aggregate([
            _parsed("v1.2.0", [("fixes", [make_item("Fix crash on save"), make_item("Fix typo in help")])], 0.9),
            _parsed("v1.1.0", [("fixes", [make_item("Fix crash on save")]), ("breaking", [make_item("Drop py37")])], 0.5),
        ])

        pkg = packages[0]
        assert pkg.release_count == 2
        assert [c.id for c in pkg.categories] == ["breaking", "fixes"]
        assert [i.text for i in pkg.categories[1].items] == ["Fix crash on save", "Fix typo in help"]
        assert pkg.confidence == pytest.approx(0.7)
        assert pkg.summary == "1 breaking change, 2 fixes"

    def test_latest_version_is_highest(self):
        packages, _ = PackageAggregator("r").aggregate([
            _parsed("v1.10.0-rc.1", []),
            _parsed("v1.9.0", []),
            _parsed("v1.10.0", []),
        ])
        assert packages[0].latest_version == "1.10.0"


class TestSummaries:
    def test_category_summary(self):
        cats = [
            Category(id="features", title="Features", items=(make_item("Add a"), make_item("Add b"))),
            Category(id="fixes", title="Fixes", items=(make_item("Fix c"),)),
        ]
        assert build_category_summary(cats) == "2 features, 1 fix"
        assert build_category_summary([Category(id="docs", title="Docs", items=(make_item("Docs"),))]) == "1 change"
        assert build_category_summary([]) == "No changes documented"

    def test_aggregated_summary(self):
        packages = [
            PackageChanges(name="a", is_main=True, latest_version="1.0.0", categories=(
                Category(id="breaking", title="Breaking", items=(make_item("Drop x"),)),
            )),
            PackageChanges(name="b", is_main=False, latest_version="1.0.0", categories=(
                Category(id="features", title="Features", items=(make_item("Add y"), make_item("Add z"))),
            )),
        ]
        assert build_aggregated_summary(packages, 3) == "1 breaking change, 2 features across 2 packages in 3 releases"
        assert build_aggregated_summary(packages[:1], 1) == "1 breaking change in 1 release"


class TestParseRelease:
    def test_body_parsed_directly(self):
        release = ReleaseInfo(tag="v1.0.0", body="## Bug Fixes\n- Fix crash when saving files (#12)\n")
        parsed = parse_release(FakeProvider(), "o", "r", release)
        assert parsed.categories[0].id == "fixes"
        assert parsed.confidence > 0

    def test_changelog_reference_followed(self):
        provider = FakeProvider(changelog=ChangelogFile(path="CHANGELOG.md", content=CHANGELOG))

        parsed = parse_release(provider, "o", "r", ReleaseInfo(tag="v1.2.0", body=REFERENCE_BODY))

        assert provider.changelog_calls[0]["ref"] == "v1.2.0"
        assert [i.text for c in parsed.categories for i in c.items] == ["Add CSV export for reports"]

    def test_changelog_lookup_failure_uses_body(self):
        class FailingProvider(FakeProvider):
            def find_changelog(self, *args, **kwargs):
                raise GithubApiError("boom", status=500)

        parsed = parse_release(FailingProvider(), "o", "r", ReleaseInfo(tag="v1.2.0", body=REFERENCE_BODY))
        assert isinstance(parsed, ParsedRelease)

    def test_long_body_is_not_a_reference(self):
        assert is_changelog_reference(REFERENCE_BODY) is True
        assert is_changelog_reference(REFERENCE_BODY + "\n- extra" * 60) is False


class TestCollectReleasesInRange:
    def test_empty_range(self):
        provider = FakeProvider()

        aggregated = collect_releases_in_range(provider, "o", "r", "2024-06", "2024-06-30", package_filter="web")

        assert aggregated.summary == "No releases found in the specified date range"
        assert aggregated.release_count == 0
        assert aggregated.confidence == 0
        assert aggregated.package_filter == "web"
        assert aggregated.releases_url == "https://github.com/o/r/releases"
        since, until, package_filter = provider.range_calls[0]
        assert (since.month, until.day, package_filter) == (6, 30, "web")

    def test_releases_grouped_and_summarized(self):
        provider = FakeProvider(range_releases=[
            ReleaseInfo(tag="web@2.0.0", body="## Features\n- Add dark mode to the dashboard\n"),
            ReleaseInfo(tag="v1.2.0", body="## Bug Fixes\n- Fix crash when saving files (#12)\n"),
        ])

        aggregated = collect_releases_in_range(provider, "o", "r", "2024-01-01")

        assert aggregated.repo == "o/r"
        assert aggregated.release_count == 2
        assert [p.name for p in aggregated.packages] == ["r", "web"]
        assert aggregated.summary.endswith("across 2 packages in 2 releases")
        assert 0 < aggregated.confidence <= 1

    def test_inverted_range_rejected(self):
        with pytest.raises(ValueError):
            collect_releases_in_range(FakeProvider(), "o", "r", "2024-07-01", "2024-06-01")
