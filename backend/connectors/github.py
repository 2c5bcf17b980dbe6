"""
GitHub connector – reads commits, contributors and repository metadata.

Authentication is a personal access token sent as a bearer token when one
is configured; without a token the public (rate-limited) API is used.

Every fetch degrades instead of raising: a non-2xx status, a network error
or an unparseable page ends the fetch and the caller gets whatever was
collected before the failure.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional
from urllib.parse import urlparse

import httpx

from config import settings
from connectors.base import BaseConnector, json_count, json_object, json_text
from connectors.models import CommitRecord, ContributorRecord, RepoStats
from services.errors import InvalidRepositoryUrlError

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE: int = 100
USER_AGENT: str = "ProjectTracker-App/1.0"


def parse_repo_url(url: Optional[str]) -> tuple[str, str]:
    """
    Split a GitHub repository URL into (owner, repo).

    Accepts ``https://github.com/owner/repo`` with an optional ``.git``
    suffix or trailing slash.

    Raises:
        InvalidRepositoryUrlError: if the URL has fewer than two path segments
    """
    if not url or not url.strip():
        raise InvalidRepositoryUrlError("Repository URL is empty")

    cleaned: str = url.strip()
    if cleaned.endswith(".git"):
        cleaned = cleaned[: -len(".git")]

    parsed = urlparse(cleaned)
    if not parsed.scheme or not parsed.netloc:
        raise InvalidRepositoryUrlError(f"Invalid GitHub URL format: {url}")

    parts: list[str] = [p for p in parsed.path.strip("/").split("/") if p]
    if len(parts) < 2:
        raise InvalidRepositoryUrlError(f"Invalid GitHub URL format: {url}")
    return parts[0], parts[1]


class GitHubConnector(BaseConnector):
    """Connector for the GitHub REST API."""

    source_system: str = "github"

    def __init__(
        self,
        token: Optional[str] = None,
        *,
        api_base: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ) -> None:
        super().__init__(transport=transport, timeout=timeout)
        self._token = token
        self._api_base: str = (api_base or settings.GITHUB_API_BASE).rstrip("/")

    # ── HTTP helpers ─────────────────────────────────────────────────────

    def _get_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {
            "Accept": "application/vnd.github+json",
            "User-Agent": USER_AGENT,
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    # ── Commits ──────────────────────────────────────────────────────────

    async def fetch_commits(
        self, owner: str, repo: str, max_count: int = MAX_PAGE_SIZE
    ) -> list[CommitRecord]:
        """
        Fetch up to ``max_count`` commits, newest first, page by page.

        Stops when enough commits were collected, a page comes back empty,
        or a request fails. A failed request returns the commits already
        collected.
        """
        commits: list[CommitRecord] = []
        if max_count <= 0:
            return commits

        per_page: int = min(max_count, MAX_PAGE_SIZE)
        page: int = 1
        path: str = f"/repos/{owner}/{repo}/commits"

        try:
            async with self._client(headers=self._get_headers()) as client:
                while len(commits) < max_count:
                    resp: httpx.Response = await client.get(
                        f"{self._api_base}{path}",
                        params={"per_page": per_page, "page": page},
                    )
                    if not resp.is_success:
                        logger.warning(
                            "Failed to fetch commits for %s/%s: %s",
                            owner, repo, resp.status_code,
                        )
                        self.record_error(
                            f"GitHub commits page {page} returned HTTP {resp.status_code}"
                        )
                        break

                    items: Any = resp.json()
                    if not isinstance(items, list):
                        logger.warning(
                            "Unexpected commits payload for %s/%s on page %d",
                            owner, repo, page,
                        )
                        self.record_error(f"GitHub commits page {page} was not a list")
                        break
                    if not items:
                        break

                    for item in items:
                        if len(commits) >= max_count:
                            break
                        record: Optional[CommitRecord] = self._parse_commit_safely(item)
                        if record is not None:
                            commits.append(record)

                    page += 1
        except (httpx.HTTPError, ValueError) as exc:
            logger.error(
                "Error fetching commits for %s/%s", owner, repo, exc_info=True
            )
            self.record_error(f"GitHub commits fetch failed: {exc}")

        return commits

    def _parse_commit_safely(self, item: Any) -> Optional[CommitRecord]:
        """Parse one entry; a malformed entry is recorded and skipped."""
        try:
            return self._parse_commit(item)
        except (TypeError, ValueError) as exc:
            sha: Any = item.get("sha") if isinstance(item, dict) else None
            logger.warning("Skipping malformed commit %r: %s", sha, exc)
            self.record_error(f"GitHub commit {sha!r} could not be parsed: {exc}")
            return None

    @classmethod
    def _parse_commit(cls, item: Any) -> CommitRecord:
        """Normalise one commit listing entry; missing fields become ''."""
        if not isinstance(item, dict):
            raise TypeError(f"commit entry is {type(item).__name__}, not an object")
        commit_data: dict[str, Any] = json_object(item.get("commit"))
        author_info: dict[str, Any] = json_object(commit_data.get("author"))
        gh_author: dict[str, Any] = json_object(item.get("author"))  # GitHub user

        committed_at: datetime = cls._parse_date(author_info.get("date")) or datetime.utcnow()

        return CommitRecord(
            sha=json_text(item.get("sha")),
            message=json_text(commit_data.get("message")),
            author_name=json_text(author_info.get("name")),
            author_email=json_text(author_info.get("email")),
            author_login=json_text(gh_author.get("login")) or None,
            committed_at=committed_at,
            # Need a separate per-commit call for stats
            additions=0,
            deletions=0,
            url=json_text(item.get("html_url")),
        )

    # ── Contributors ─────────────────────────────────────────────────────

    async def fetch_contributors(self, owner: str, repo: str) -> list[ContributorRecord]:
        """List repository contributors; empty on any failure."""
        try:
            async with self._client(headers=self._get_headers()) as client:
                resp: httpx.Response = await client.get(
                    f"{self._api_base}/repos/{owner}/{repo}/contributors"
                )
                if not resp.is_success:
                    logger.warning(
                        "Failed to fetch contributors for %s/%s: %s",
                        owner, repo, resp.status_code,
                    )
                    self.record_error(f"GitHub contributors returned HTTP {resp.status_code}")
                    return []
                data: Any = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Error fetching contributors for %s/%s", owner, repo, exc_info=True)
            self.record_error(f"GitHub contributors fetch failed: {exc}")
            return []

        if not isinstance(data, list):
            return []
        return [
            ContributorRecord(
                login=json_text(c.get("login")),
                avatar_url=json_text(c.get("avatar_url")),
                contributions=json_count(c.get("contributions")),
            )
            for c in data
            if isinstance(c, dict)
        ]

    # ── Repository metadata ──────────────────────────────────────────────

    async def fetch_repo_stats(self, owner: str, repo: str) -> RepoStats:
        """Open issue, star and fork counts; all zero on any failure."""
        try:
            async with self._client(headers=self._get_headers()) as client:
                resp: httpx.Response = await client.get(
                    f"{self._api_base}/repos/{owner}/{repo}"
                )
                if not resp.is_success:
                    logger.warning(
                        "Failed to fetch repo stats for %s/%s: %s",
                        owner, repo, resp.status_code,
                    )
                    self.record_error(f"GitHub repository returned HTTP {resp.status_code}")
                    return RepoStats()
                data: Any = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Error fetching repo stats for %s/%s", owner, repo, exc_info=True)
            self.record_error(f"GitHub repository fetch failed: {exc}")
            return RepoStats()

        if not isinstance(data, dict):
            return RepoStats()
        return RepoStats(
            open_issues=json_count(data.get("open_issues_count")),
            stars=json_count(data.get("stargazers_count")),
            forks=json_count(data.get("forks_count")),
        )
