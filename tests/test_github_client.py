import base64
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
import requests

from whatsnew.clients.github_client import GithubApiError, GithubAuthError, GithubClient, GithubRateLimitError
from whatsnew.configs.config import Config

BASE = "https://api.example.test"


def _response(status=200, data=None, headers=None):
    response = MagicMock()
    response.status_code = status
    response.headers = headers or {}
    response.json.return_value = data
    return response


def _file(text):
    return {"type": "file", "content": base64.b64encode(text.encode("utf-8")).decode("ascii")}


@pytest.fixture
def session():
    s = MagicMock()
    s.headers = {}
    return s


@pytest.fixture
def client(session):
    return GithubClient(token="t0ken", base_url=BASE, timeout_s=5, session=session)


class TestInit:
    def test_token_sets_bearer_header(self, client, session):
        assert session.headers["Authorization"] == "Bearer t0ken"
        assert session.headers["Accept"] == "application/vnd.github+json"

    def test_injected_session_not_mounted(self, client, session):
        session.mount.assert_not_called()


class TestGet:
    def test_latest_release(self, client, session):
        session.get.return_value = _response(data={
            "tag_name": "v1.0.0", "body": "Notes", "published_at": "2024-01-01T00:00:00Z",
            "name": "1.0.0", "html_url": "https://github.com/o/r/releases/v1.0.0",
        })

        release = client.get_latest_release("o", "r")

        assert release.tag == "v1.0.0"
        assert release.body == "Notes"
        assert session.get.call_args[0][0] == f"{BASE}/repos/o/r/releases/latest"
        assert session.get.call_args[1]["timeout"] == 5

    def test_missing_release_is_none(self, client, session):
        session.get.return_value = _response(status=404)
        assert client.get_release_by_tag("o", "r", "v9.9.9") is None

    def test_tag_is_url_quoted(self, client, session):
        session.get.return_value = _response(status=404)
        client.get_release_by_tag("o", "r", "@scope/pkg@1.0.0")
        assert session.get.call_args[0][0].endswith("/releases/tags/%40scope%2Fpkg%401.0.0")

    def test_unauthorized(self, client, session):
        session.get.return_value = _response(status=401)
        with pytest.raises(GithubAuthError) as exc:
            client.get_latest_release("o", "r")
        assert exc.value.code == "UNAUTHORIZED"

    def test_rate_limited(self, client, session):
        session.get.return_value = _response(
            status=403, headers={"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": "1700000000"}
        )
        with pytest.raises(GithubRateLimitError) as exc:
            client.get_tags("o", "r")
        assert exc.value.code == "RATE_LIMIT"
        assert exc.value.reset_at == 1700000000

    def test_forbidden_without_exhausted_quota(self, client, session):
        session.get.return_value = _response(status=403, headers={"X-RateLimit-Remaining": "42"})
        with pytest.raises(GithubApiError) as exc:
            client.get_tags("o", "r")
        assert not isinstance(exc.value, GithubRateLimitError)
        assert exc.value.status == 403

    def test_server_error(self, client, session):
        session.get.return_value = _response(status=500)
        with pytest.raises(GithubApiError) as exc:
            client.compare("o", "r", "v1.0.0", "v1.1.0")
        assert exc.value.code == "HTTP_ERROR"

    def test_network_error(self, client, session):
        session.get.side_effect = requests.ConnectionError("connection refused")
        with pytest.raises(GithubApiError) as exc:
            client.get_latest_release("o", "r")
        assert exc.value.code == "NETWORK"

    @pytest.mark.parametrize("owner, repo", [("bad owner", "r"), ("o", "r/../x"), ("", "r")])
    def test_invalid_names_rejected_before_request(self, client, session, owner, repo):
        with pytest.raises(GithubApiError) as exc:
            client.get_latest_release(owner, repo)
        assert exc.value.code == "INVALID_NAME"
        session.get.assert_not_called()


class TestContent:
    def test_file_decoded(self, client, session):
        session.get.return_value = _response(data=_file("# Changelog\n"))
        assert client.get_file_content("o", "r", "docs/CHANGELOG.md", ref="v1.0.0") == "# Changelog\n"
        assert session.get.call_args[1]["params"] == {"ref": "v1.0.0"}

    def test_directory_is_none(self, client, session):
        session.get.return_value = _response(data=[{"type": "file", "name": "a.md"}])
        assert client.get_file_content("o", "r", "docs") is None

    def test_find_changelog_search_order(self, client, session):
        requested = []

        def fake_get(url, params=None, timeout=None):
            path = url.split("/contents/", 1)[1]
            requested.append(path)
            return _response(data=_file("## [1.0.0]\n- x")) if path == "HISTORY.md" else _response(status=404)

        session.get.side_effect = fake_get
        body = "Details in [CHANGELOG.md](https://github.com/o/r/blob/main/docs/RELEASES.md)"

        found = client.find_changelog("o", "r", release_body=body, package_name="@scope/pkg")

        assert found.path == "HISTORY.md"
        assert requested[0] == "docs/RELEASES.md"
        assert requested[1] == "packages/pkg/CHANGELOG.md"
        assert "packages/%40scope/pkg/CHANGELOG.md" in requested
        assert requested[-3:] == ["CHANGELOG.md", "CHANGELOG", "HISTORY.md"]

    def test_find_changelog_none(self, client, session):
        session.get.return_value = _response(status=404)
        assert client.find_changelog("o", "r") is None


class TestHistory:
    def test_tags(self, client, session):
        session.get.return_value = _response(data=[{"name": "v1.1.0"}, {"name": "v1.0.0"}])
        assert client.get_tags("o", "r", per_page=50) == ["v1.1.0", "v1.0.0"]
        assert session.get.call_args[1]["params"] == {"per_page": 50}

    def test_compare(self, client, session):
        session.get.return_value = _response(data={
            "html_url": "https://github.com/o/r/compare/v1.0.0~30...v1.1.0",
            "commits": [{"sha": "abc1234", "commit": {"message": "feat: x\n\nbody"}}],
        })

        result = client.compare("o", "r", "v1.0.0~30", "v1.1.0")

        assert session.get.call_args[0][0] == f"{BASE}/repos/o/r/compare/v1.0.0~30...v1.1.0"
        assert result.url == "https://github.com/o/r/compare/v1.0.0~30...v1.1.0"
        assert result.commits[0].sha == "abc1234"
        assert result.commits[0].message == "feat: x\n\nbody"

    def test_compare_total_commits(self, client, session):
        session.get.return_value = _response(data={"commits": [], "total_commits": 250})
        assert client.compare("o", "r", "v1.0.0", "main").total_commits == 250

    def test_tags_page_size_from_pipeline_config(self, client, session, monkeypatch):
        monkeypatch.setattr(Config, "TAGS_PER_PAGE", 7)
        session.get.return_value = _response(data=[])
        client.get_tags("o", "r")
        assert session.get.call_args[1]["params"] == {"per_page": 7}

    def test_default_branch(self, client, session):
        session.get.return_value = _response(data={"default_branch": "develop"})
        assert client.get_default_branch("o", "r") == "develop"
        assert session.get.call_args[0][0] == f"{BASE}/repos/o/r"


def _release(tag, published_at="2024-06-10T00:00:00Z", prerelease=False):
    return {"tag_name": tag, "body": "", "published_at": published_at, "prerelease": prerelease}


class TestReleases:
    def test_latest_stable_skips_drafts_and_prereleases(self, client, session):
        session.get.return_value = _response(data=[
            _release("v3.0.0", published_at=None),
            _release("v2.1.0", prerelease=True),
            _release("v2.0.1-beta.1"),
            _release("v2.0.0"),
        ])

        release = client.get_latest_stable_release("o", "r")

        assert release.tag == "v2.0.0"
        assert session.get.call_args[0][0] == f"{BASE}/repos/o/r/releases"

    def test_latest_stable_for_package(self, client, session):
        session.get.return_value = _response(data=[_release("web@2.0.0"), _release("core@1.4.0")])
        assert client.get_latest_stable_release("o", "r", package_filter="core").tag == "core@1.4.0"

    def test_no_stable_release(self, client, session):
        session.get.return_value = _response(data=[_release("v1.0.0-rc.1")])
        assert client.get_latest_stable_release("o", "r") is None

    def test_range_pages_until_older_release(self, client, session):
        session.get.side_effect = [
            _response(data=[
                _release("v1.3.0", "2024-07-02T00:00:00Z"),
                _release("v1.2.0", "2024-06-20T00:00:00Z"),
                _release("v1.2.0-draft", None),
            ]),
            _response(data=[
                _release("v1.1.0", "2024-06-01T00:00:00Z"),
                _release("v1.0.0", "2024-05-01T00:00:00Z"),
                _release("v0.9.0", "2024-04-01T00:00:00Z"),
            ]),
        ]

        releases = client.get_releases_in_range(
            "o", "r", since=datetime(2024, 6, 1, tzinfo=timezone.utc), until=datetime(2024, 6, 30, tzinfo=timezone.utc)
        )

        assert [r.tag for r in releases] == ["v1.2.0", "v1.1.0"]
        assert session.get.call_count == 2
        assert session.get.call_args[1]["params"] == {"per_page": 100, "page": 2}

    def test_range_stops_on_empty_page(self, client, session):
        session.get.side_effect = [_response(data=[_release("core@1.0.0"), _release("web@1.0.0")]), _response(data=[])]
        releases = client.get_releases_in_range(
            "o", "r",
            since=datetime(2024, 1, 1, tzinfo=timezone.utc),
            until=datetime(2024, 12, 31, tzinfo=timezone.utc),
            package_filter="web*",
        )
        assert [r.tag for r in releases] == ["web@1.0.0"]
        assert session.get.call_count == 2

    def test_prerelease_flag_kept(self, client, session):
        session.get.return_value = _response(data=[_release("v2.0.0", prerelease=True)])
        assert client.list_releases("o", "r")[0].prerelease is True
