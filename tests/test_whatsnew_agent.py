import json

import pytest

from conftest import make_item, make_result
from whatsnew.agents import whatsnew_agent
from whatsnew.aggregator.data_aggregator import ReleaseNotFoundError
from whatsnew.clients.github_client import GithubRateLimitError
from whatsnew.utils.models import AggregatedReleases, PackageChanges, ReleaseSummary, UnreleasedChanges


class StubAggregator:
    instances = []

    def __init__(self, result=None, error=None, enable_ai=None, unreleased_count=0):
        self.result = result
        self.error = error
        self.enable_ai = enable_ai
        self.unreleased_count = unreleased_count
        self.closed = False
        self.calls = []

    def get_release(self, owner, repo, tag=None):
        self.calls.append((owner, repo, tag))
        if self.error is not None:
            raise self.error
        return self.result

    def get_unreleased_changes(self, owner, repo, include_prerelease=False, package_filter=None):
        self.calls.append(("unreleased", include_prerelease, package_filter))
        return self.result

    def get_releases_in_range(self, owner, repo, since, until=None, package_filter=None):
        self.calls.append(("range", since, until, package_filter))
        if self.error is not None:
            raise self.error
        return self.result

    def get_unreleased_commit_count(self, owner, repo, base_tag=None):
        self.calls.append(("count", base_tag))
        return self.unreleased_count

    def close(self):
        self.closed = True


@pytest.fixture
def install(monkeypatch):
    def _install(result=None, error=None, unreleased_count=0):
        created = []

        def from_config(token=None, enable_ai=None):
            stub = StubAggregator(result, error, enable_ai, unreleased_count)
            created.append(stub)
            return stub

        monkeypatch.setattr(whatsnew_agent.DataAggregator, "from_config", staticmethod(from_config))
        return created

    return _install


RESULT = make_result(
    [("features", [make_item("Add export")]), ("chore", [make_item("Bump linters")])],
    tag="v1.0.0",
    raw_content="- Add export\n- Bump linters",
)


def test_parse_repo():
    assert whatsnew_agent.parse_repo("owner/repo/") == ("owner", "repo")
    with pytest.raises(ValueError):
        whatsnew_agent.parse_repo("owner")


def test_markdown_output(install, capsys):
    created = install(RESULT)

    assert whatsnew_agent.main(["o/r", "--tag", "v1.0.0"]) == 0

    out = capsys.readouterr().out
    assert out.startswith("# o/r v1.0.0")
    assert "Add export" in out
    assert created[0].calls == [("o", "r", "v1.0.0")]
    assert created[0].closed is True


def test_json_output_with_filter(install, capsys):
    created = install(RESULT)

    assert whatsnew_agent.main(["o/r", "--format", "json", "--filter", "important", "--no-ai"]) == 0

    data = json.loads(capsys.readouterr().out)
    assert [c["id"] for c in data["categories"]] == ["features"]
    assert created[0].enable_ai is False


def test_not_found(install, capsys):
    install(error=ReleaseNotFoundError("o", "r"))
    assert whatsnew_agent.main(["o/r"]) == 1
    assert "No release data available for o/r" in capsys.readouterr().err


def test_github_error(install, capsys):
    install(error=GithubRateLimitError(None))
    assert whatsnew_agent.main(["o/r"]) == 1
    assert "[RATE_LIMIT]" in capsys.readouterr().err


def test_invalid_repository(capsys):
    assert whatsnew_agent.main(["not-a-repo"]) == 1
    assert "OWNER/REPO" in capsys.readouterr().err


UNRELEASED = UnreleasedChanges(
    result=make_result(
        [("features", [make_item("Add export")]), ("chore", [make_item("Bump linters")])],
        source="commits.unreleased",
        version="unreleased",
        baseline_tag="v2.0.0",
    ),
    summary="2 commits with 2 changes since last release",
    baseline_tag="v2.0.0",
    commit_count=2,
)


def test_unreleased_markdown(install, capsys):
    created = install(UNRELEASED)

    assert whatsnew_agent.main(["o/r", "--unreleased", "--package", "core", "--include-prerelease"]) == 0

    out = capsys.readouterr().out
    assert out.startswith("# o/r unreleased")
    assert "2 commits with 2 changes since last release" in out
    assert "Since: v2.0.0" in out
    assert created[0].calls == [("unreleased", True, "core")]


def test_unreleased_json_filtered(install, capsys):
    install(UNRELEASED)

    assert whatsnew_agent.main(["o/r", "--unreleased", "--format", "json", "--filter", "important"]) == 0

    data = json.loads(capsys.readouterr().out)
    assert data["baseline_tag"] == "v2.0.0"
    assert [c["id"] for c in data["result"]["categories"]] == ["features"]
    assert "raw_content" not in data["result"]["metadata"]


RANGE = AggregatedReleases(
    repo="o/r",
    since="2024-06-01T00:00:00+00:00",
    until="2024-06-30T23:59:59.999999+00:00",
    summary="1 feature in 1 release",
    packages=(PackageChanges(
        name="r",
        is_main=True,
        latest_version="1.2.0",
        summary="1 feature",
        categories=make_result([("features", [make_item("Add export")])]).categories,
        releases=(ReleaseSummary(tag="v1.2.0", version="1.2.0", package_name="r"),),
        release_count=1,
        confidence=0.8,
    ),),
    release_count=1,
    confidence=0.8,
    releases_url="https://github.com/o/r/releases",
)


def test_range_markdown(install, capsys):
    created = install(RANGE)

    assert whatsnew_agent.main(["o/r", "--since", "2024-06", "--until", "2024-06-30", "-p", "r"]) == 0

    out = capsys.readouterr().out
    assert out.startswith("# o/r releases")
    assert "## r 1.2.0" in out
    assert "- Add export" in out
    assert created[0].calls == [("range", "2024-06", "2024-06-30", "r")]


def test_range_json(install, capsys):
    install(RANGE)
    assert whatsnew_agent.main(["o/r", "--from", "2024-06", "--format", "json"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["release_count"] == 1
    assert data["packages"][0]["categories"][0]["id"] == "features"


def test_invalid_range_reported(install, capsys):
    install(error=ValueError("Invalid date: 'soon'"))
    assert whatsnew_agent.main(["o/r", "--since", "soon"]) == 1
    assert "Invalid date" in capsys.readouterr().err


def test_until_requires_since(capsys):
    with pytest.raises(SystemExit):
        whatsnew_agent.main(["o/r", "--until", "2024-06-30"])


def test_modes_are_exclusive(capsys):
    with pytest.raises(SystemExit):
        whatsnew_agent.main(["o/r", "--tag", "v1.0.0", "--unreleased"])


def test_hint_for_old_release(install, capsys):
    old = make_result([("features", [make_item("Add export")])], tag="v1.0.0", date="2020-01-01T00:00:00Z")
    created = install(old, unreleased_count=17)

    assert whatsnew_agent.main(["o/r"]) == 0

    err = capsys.readouterr().err
    assert "17 commits since v1.0.0" in err
    assert "--unreleased" in err
    assert ("count", "v1.0.0") in created[0].calls


def test_no_hint_for_explicit_tag(install, capsys):
    old = make_result([("features", [make_item("Add export")])], tag="v1.0.0", date="2020-01-01T00:00:00Z")
    created = install(old, unreleased_count=17)

    assert whatsnew_agent.main(["o/r", "--tag", "v1.0.0"]) == 0

    assert "commits since" not in capsys.readouterr().err
    assert all(call[0] != "count" for call in created[0].calls)
