"""
Jira connector – reads project issues and agile sprints via the REST API.

Authentication is HTTP basic auth with the account email and an API token,
attached only when both are configured. Without a base URL nothing is
requested at all.

Jira Cloud REST API docs: https://developer.atlassian.com/cloud/jira/platform/rest/v3/
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from config import settings
from connectors.base import BaseConnector, json_object, json_text
from connectors.models import IssueRecord, SprintRecord
from models.requirement import DEFAULT_PRIORITY

logger = logging.getLogger(__name__)

RICH_TEXT_PLACEHOLDER: str = "[Rich text content]"
ISSUE_FIELDS: str = "summary,description,status,priority,issuetype,assignee,created,updated"


class JiraConnector(BaseConnector):
    """Connector for Jira – issues and sprints."""

    source_system: str = "jira"

    def __init__(
        self,
        base_url: Optional[str] = None,
        email: Optional[str] = None,
        api_token: Optional[str] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ) -> None:
        super().__init__(transport=transport, timeout=timeout)
        self._base_url: Optional[str] = base_url.rstrip("/") if base_url else None
        self._email = email
        self._api_token = api_token

    # ── REST helpers ─────────────────────────────────────────────────────

    @property
    def is_configured(self) -> bool:
        return bool(self._base_url)

    def _auth(self) -> Optional[httpx.BasicAuth]:
        if self._email and self._api_token:
            return httpx.BasicAuth(self._email, self._api_token)
        return None

    async def _get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> Optional[Any]:
        """
        GET against the Jira REST API.

        Returns parsed JSON, or None when the request failed for any reason
        (the failure is logged and recorded).
        """
        if not self._base_url:
            logger.warning("Jira base URL is not configured; skipping %s", path)
            self.record_error("Jira base URL is not configured")
            return None

        try:
            async with self._client(
                headers={"Accept": "application/json"},
                auth=self._auth(),
            ) as client:
                resp: httpx.Response = await client.get(
                    f"{self._base_url}{path}",
                    params=params,
                )
                if not resp.is_success:
                    logger.warning("Jira request %s failed: %s", path, resp.status_code)
                    self.record_error(f"Jira {path} returned HTTP {resp.status_code}")
                    return None
                return resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Error calling Jira %s", path, exc_info=True)
            self.record_error(f"Jira {path} failed: {exc}")
            return None

    # ── Issues ───────────────────────────────────────────────────────────

    async def fetch_issues(self, project_key: str) -> list[IssueRecord]:
        """
        Fetch the newest issues of a project in one bounded query.

        No pagination beyond JIRA_MAX_RESULTS.
        """
        result: Any = await self._get(
            "/rest/api/3/search",
            {
                "jql": f"project={project_key} ORDER BY created DESC",
                "maxResults": settings.JIRA_MAX_RESULTS,
                "fields": ISSUE_FIELDS,
            },
        )
        if result is None:
            return []

        issues: Any = result.get("issues") if isinstance(result, dict) else None
        if not isinstance(issues, list):
            logger.warning("Unexpected Jira search payload for project %s", project_key)
            self.record_error(f"Jira search for {project_key} returned no issue list")
            return []

        records: list[IssueRecord] = []
        for issue in issues:
            record: Optional[IssueRecord] = self._parse_issue_safely(issue)
            if record is not None:
                records.append(record)
        return records

    async def fetch_issue(self, issue_key: str) -> Optional[IssueRecord]:
        """Fetch a single issue by key; None if missing or unreachable."""
        result: Any = await self._get(f"/rest/api/3/issue/{issue_key}")
        if result is None:
            return None
        return self._parse_issue_safely(result)

    def _parse_issue_safely(self, issue: Any) -> Optional[IssueRecord]:
        """Parse one issue; a malformed issue is recorded and skipped."""
        try:
            return self._parse_issue(issue)
        except (TypeError, ValueError) as exc:
            key: Any = issue.get("key") if isinstance(issue, dict) else None
            logger.warning("Skipping malformed Jira issue %r: %s", key, exc)
            self.record_error(f"Jira issue {key!r} could not be parsed: {exc}")
            return None

    def _parse_issue(self, issue: Any) -> IssueRecord:
        if not isinstance(issue, dict):
            raise TypeError(f"issue entry is {type(issue).__name__}, not an object")
        fields: dict[str, Any] = json_object(issue.get("fields"))
        key: str = json_text(issue.get("key"))

        # Plain strings are kept; ADF documents degrade to a placeholder
        desc_field: Any = fields.get("description")
        description: str
        if isinstance(desc_field, dict):
            description = RICH_TEXT_PLACEHOLDER
        elif isinstance(desc_field, str):
            description = desc_field
        else:
            description = ""

        assignee_data: dict[str, Any] = json_object(fields.get("assignee"))

        return IssueRecord(
            key=key,
            summary=json_text(fields.get("summary")),
            description=description,
            status=json_text(json_object(fields.get("status")).get("name")),
            priority=json_text(json_object(fields.get("priority")).get("name")) or DEFAULT_PRIORITY,
            issue_type=json_text(json_object(fields.get("issuetype")).get("name")),
            assignee_name=json_text(assignee_data.get("displayName")) or None,
            assignee_email=json_text(assignee_data.get("emailAddress")) or None,
            created=self._parse_date(fields.get("created")),
            updated=self._parse_date(fields.get("updated")),
            url=f"{self._base_url or ''}/browse/{key}",
        )

    # ── Sprints ──────────────────────────────────────────────────────────

    async def fetch_sprints(self, board_id: str) -> list[SprintRecord]:
        """List the sprints of an agile board; empty on failure."""
        result: Any = await self._get(f"/rest/agile/1.0/board/{board_id}/sprint")
        values: Any = result.get("values") if isinstance(result, dict) else None
        if not isinstance(values, list):
            return []

        sprints: list[SprintRecord] = []
        for s in values:
            if not isinstance(s, dict) or s.get("id") is None:
                continue
            try:
                sprint_id = int(s["id"])
            except (TypeError, ValueError):
                self.record_error(f"Jira sprint id {s['id']!r} is not a number")
                continue
            sprints.append(
                SprintRecord(
                    id=sprint_id,
                    name=json_text(s.get("name")),
                    state=json_text(s.get("state")),
                    start_date=self._parse_date(s.get("startDate")),
                    end_date=self._parse_date(s.get("endDate")),
                )
            )
        return sprints
