#!/usr/bin/env python3
"""GitHub REST API client used by the release data sources.

Anonymous access works for public repositories; a token only raises the rate
limit. Missing resources (404) are reported as ``None`` rather than raised.
"""

import base64
import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from whatsnew.configs.config import Config
from whatsnew.utils.dates import parse_timestamp
from whatsnew.utils.models import ChangelogFile, CommitInfo, CompareResult, ReleaseInfo
from whatsnew.utils.version import is_prerelease_tag, matches_package

logger = logging.getLogger(__name__)

VALID_NAME = re.compile(r"^[a-zA-Z0-9._-]+$")

ROOT_CHANGELOG_FILES = [
    "CHANGELOG.md",
    "CHANGELOG",
    "HISTORY.md",
    "CHANGES.md",
    "NEWS.md",
    "RELEASES.md",
    "docs/CHANGELOG.md",
    "doc/CHANGELOG.md",
]

MONOREPO_DIRS = ["packages", "apps", "libs", "modules"]

RELEASES_PER_PAGE = 100
MAX_RELEASE_PAGES = 10

CHANGELOG_LINK = re.compile(r"\[CHANGELOG(?:\.md)?\]\((https://github\.com/[^)]+)\)", re.IGNORECASE)


class GithubAuthError(Exception):
    """Raised when GitHub rejects the credentials."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.code = "UNAUTHORIZED"


class GithubApiError(Exception):
    """Raised when a GitHub API call fails."""

    def __init__(self, message: str, code: str = "HTTP_ERROR", status: Optional[int] = None) -> None:
        super().__init__(message)
        self.code = code
        self.status = status


class GithubRateLimitError(GithubApiError):
    """Raised when the API rate limit is exhausted."""

    def __init__(self, reset_at: Optional[int], status: int = 403) -> None:
        super().__init__(f"GitHub API rate limit exceeded (resets at {reset_at})", code="RATE_LIMIT", status=status)
        self.reset_at = reset_at


class GithubClient:
    """Thin GitHub REST client returning the pipeline's provider models."""

    def __init__(
        self,
        token: Optional[str] = None,
        timeout_s: Optional[int] = None,
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the client.

        Args:
            token: GitHub token (defaults to Config.GITHUB_TOKEN); optional
            timeout_s: Request timeout in seconds (defaults to Config.HTTP_TIMEOUT_S)
            base_url: API root (defaults to Config.GITHUB_API_URL)
            session: Pre-built session, mainly for tests
        """
        github_config = Config.get_github_config()
        self.token = token or github_config["token"]
        self.timeout_s = timeout_s or github_config["timeout_s"]
        self.base_url = (base_url or github_config["base_url"]).rstrip("/")

        self.session = session or requests.Session()
        self.session.headers.update({
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": github_config["user_agent"],
        })
        if self.token:
            self.session.headers["Authorization"] = f"Bearer {self.token}"

        if session is None:
            retry_strategy = Retry(
                total=3,
                status_forcelist=[500, 502, 503, 504],
                backoff_factor=1,
                allowed_methods=["HEAD", "GET", "OPTIONS"],
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            self.session.mount("https://", adapter)
            self.session.mount("http://", adapter)

        logger.debug(f"GitHub client initialized ({'authenticated' if self.token else 'anonymous'})")

    @staticmethod
    def _validate(owner: str, repo: str) -> None:
        for label, value in (("owner", owner), ("repo", repo)):
            if not value or not VALID_NAME.match(value):
                raise GithubApiError(f"Invalid {label} name: {value!r}", code="INVALID_NAME")

    def _get(self, endpoint: str, params: Optional[Dict[str, Any]] = None, allow_404: bool = False) -> Any:
        """GET an endpoint and decode JSON.

        Returns:
            Decoded JSON, or None on 404 when ``allow_404`` is set

        Raises:
            GithubAuthError: On 401
            GithubRateLimitError: On 403/429 with an exhausted quota
            GithubApiError: On any other failure
        """
        url = f"{self.base_url}{endpoint}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout_s)
        except requests.RequestException as e:
            raise GithubApiError(f"Request to {endpoint} failed: {e}", code="NETWORK")

        status = response.status_code
        if status == 401:
            raise GithubAuthError("Invalid GitHub token or insufficient permissions")
        if status in (403, 429) and response.headers.get("X-RateLimit-Remaining") == "0":
            reset = response.headers.get("X-RateLimit-Reset")
            raise GithubRateLimitError(int(reset) if reset and reset.isdigit() else None, status=status)
        if status == 404 and allow_404:
            return None
        if not 200 <= status < 300:
            raise GithubApiError(f"GitHub API error: HTTP {status} for {endpoint}", status=status)

        remaining = response.headers.get("X-RateLimit-Remaining")
        if remaining and remaining.isdigit() and int(remaining) < 10:
            logger.warning(f"GitHub API rate limit low: {remaining} requests remaining")
        return response.json()

    @staticmethod
    def _to_release(data: Dict[str, Any]) -> ReleaseInfo:
        return ReleaseInfo(
            tag=data.get("tag_name") or "",
            body=data.get("body") or "",
            published_at=data.get("published_at"),
            name=data.get("name"),
            url=data.get("html_url"),
            prerelease=bool(data.get("prerelease")),
        )

    def get_latest_release(self, owner: str, repo: str) -> Optional[ReleaseInfo]:
        self._validate(owner, repo)
        logger.info(f"Fetching latest release: {owner}/{repo}")
        data = self._get(f"/repos/{owner}/{repo}/releases/latest", allow_404=True)
        return self._to_release(data) if data else None

    def get_release_by_tag(self, owner: str, repo: str, tag: str) -> Optional[ReleaseInfo]:
        self._validate(owner, repo)
        logger.info(f"Fetching release: {owner}/{repo}@{tag}")
        data = self._get(f"/repos/{owner}/{repo}/releases/tags/{quote(tag, safe='')}", allow_404=True)
        return self._to_release(data) if data else None

    def list_releases(self, owner: str, repo: str, per_page: Optional[int] = None, page: int = 1) -> List[ReleaseInfo]:
        """One page of releases, newest first; drafts have no ``published_at``."""
        self._validate(owner, repo)
        per_page = per_page or Config.get_pipeline_config()["tags_per_page"]
        data = self._get(f"/repos/{owner}/{repo}/releases", params={"per_page": per_page, "page": page}) or []
        return [self._to_release(r) for r in data]

    def get_latest_stable_release(
        self, owner: str, repo: str, package_filter: Optional[str] = None
    ) -> Optional[ReleaseInfo]:
        """Newest published release that is neither flagged nor tagged as a pre-release."""
        for release in self.list_releases(owner, repo):
            if not release.published_at or not matches_package(release.tag, package_filter):
                continue
            if release.prerelease or is_prerelease_tag(release.tag):
                continue
            return release
        return None

    def get_releases_in_range(
        self,
        owner: str,
        repo: str,
        since: datetime,
        until: datetime,
        package_filter: Optional[str] = None,
        max_pages: int = MAX_RELEASE_PAGES,
    ) -> List[ReleaseInfo]:
        """Published releases with ``since <= published_at <= until``, newest first.

        Paging stops at the first release older than ``since``.
        """
        found: List[ReleaseInfo] = []
        for page in range(1, max_pages + 1):
            releases = self.list_releases(owner, repo, per_page=RELEASES_PER_PAGE, page=page)
            if not releases:
                break
            for release in releases:
                if not release.published_at:
                    continue
                published = parse_timestamp(release.published_at)
                if published < since:
                    logger.debug(f"✓ {len(found)} releases in range for {owner}/{repo}")
                    return found
                if published > until or not matches_package(release.tag, package_filter):
                    continue
                found.append(release)
        logger.debug(f"✓ {len(found)} releases in range for {owner}/{repo}")
        return found

    def get_default_branch(self, owner: str, repo: str) -> str:
        self._validate(owner, repo)
        data = self._get(f"/repos/{owner}/{repo}") or {}
        return data.get("default_branch") or "main"

    def get_file_content(self, owner: str, repo: str, path: str, ref: Optional[str] = None) -> Optional[str]:
        """Fetch and decode a repository file.

        Args:
            owner: Repository owner
            repo: Repository name
            path: File path in repository
            ref: Git reference (branch, commit, tag); default branch when omitted

        Returns:
            File text, or None if the path is missing or is not a file
        """
        self._validate(owner, repo)
        encoded = "/".join(quote(segment, safe="") for segment in path.split("/"))
        params = {"ref": ref} if ref else None
        data = self._get(f"/repos/{owner}/{repo}/contents/{encoded}", params=params, allow_404=True)
        if not isinstance(data, dict) or data.get("type") != "file":
            return None
        content = data.get("content") or ""
        logger.debug(f"✓ Retrieved file content: {path}")
        return base64.b64decode(content).decode("utf-8", errors="replace")

    def _changelog_path_from_body(self, body: str, owner: str, repo: str) -> Optional[str]:
        m = CHANGELOG_LINK.search(body or "")
        if not m:
            return None
        path_match = re.search(
            rf"github\.com/{re.escape(owner)}/{re.escape(repo)}/blob/[^/]+/(.+)$", m.group(1), re.IGNORECASE
        )
        return path_match.group(1) if path_match else None

    @staticmethod
    def _package_changelog_paths(package_name: str) -> List[str]:
        name = package_name.split("/")[-1] if package_name.startswith("@") else package_name
        paths = [f"packages/{name}/CHANGELOG.md", f"packages/{name}/CHANGELOG"]
        if name != package_name:
            paths.append(f"packages/{package_name}/CHANGELOG.md")
        paths.extend(f"{d}/{name}/CHANGELOG.md" for d in MONOREPO_DIRS[1:])
        return paths

    def find_changelog(
        self,
        owner: str,
        repo: str,
        release_body: Optional[str] = None,
        package_name: Optional[str] = None,
        ref: Optional[str] = None,
    ) -> Optional[ChangelogFile]:
        """Locate a changelog file, trying the cheapest hints first.

        Search order: a CHANGELOG link in the release body, package-specific
        monorepo paths, then the usual root-level names.
        """
        self._validate(owner, repo)
        candidates: List[str] = []
        linked = self._changelog_path_from_body(release_body, owner, repo) if release_body else None
        if linked:
            candidates.append(linked)
        if package_name:
            candidates.extend(self._package_changelog_paths(package_name))
        candidates.extend(ROOT_CHANGELOG_FILES)

        seen = set()
        for path in candidates:
            if path in seen:
                continue
            seen.add(path)
            content = self.get_file_content(owner, repo, path, ref)
            if content:
                logger.info(f"Found changelog: {owner}/{repo}/{path}")
                return ChangelogFile(path=path, content=content)
        logger.debug(f"No changelog found for {owner}/{repo}")
        return None

    def get_tags(self, owner: str, repo: str, per_page: Optional[int] = None) -> List[str]:
        """List tag names, newest first as returned by the API."""
        self._validate(owner, repo)
        per_page = per_page or Config.get_pipeline_config()["tags_per_page"]
        data = self._get(f"/repos/{owner}/{repo}/tags", params={"per_page": per_page}) or []
        tags = [t.get("name") for t in data if t.get("name")]
        logger.debug(f"✓ Retrieved {len(tags)} tags for {owner}/{repo}")
        return tags

    def compare(self, owner: str, repo: str, base: str, head: str) -> CompareResult:
        """Commits reachable from ``head`` but not ``base``."""
        self._validate(owner, repo)
        logger.info(f"Comparing {owner}/{repo}: {base}...{head}")
        data = self._get(f"/repos/{owner}/{repo}/compare/{quote(base, safe='~^')}...{quote(head, safe='~^')}")
        commits = [
            CommitInfo(sha=c.get("sha", ""), message=(c.get("commit") or {}).get("message", ""))
            for c in data.get("commits", [])
        ]
        logger.debug(f"✓ Retrieved {len(commits)} commits")
        return CompareResult(commits=commits, url=data.get("html_url"), total_commits=data.get("total_commits"))

    def close(self) -> None:
        """Close the HTTP session."""
        if self.session:
            self.session.close()
            logger.debug("GitHub client session closed")
