"""
GitHub / Jira integration endpoints.

Endpoints:
- POST /api/integrations/sync/commits/{group_id} - Import new commits for a group
- GET  /api/integrations/commits/{group_id} - Latest 50 imported commits
- POST /api/integrations/sync/issues/{group_id} - Import new Jira issues for a group
- GET  /api/integrations/requirements/{group_id} - Imported requirements
- GET  /api/integrations/repo-stats?repoUrl= - Live repository stats
- GET  /api/integrations/contributors?repoUrl= - Live contributor list
- GET  /api/integrations/jira/issues/{issue_key} - Live single-issue lookup
- GET  /api/integrations/jira/sprints/{board_id} - Live sprint list
"""
from __future__ import annotations

import logging
from typing import Any, NoReturn, Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.auth_middleware import authorize
from connectors.github import GitHubConnector, parse_repo_url
from connectors.jira import JiraConnector
from connectors.models import ContributorRecord, IssueRecord, RepoStats, SprintRecord
from models.database import get_db
from models.github_commit import GitHubCommit
from models.group import Group
from models.requirement import Requirement
from services import integration_sync
from services.credentials import resolve_credentials
from services.errors import (
    GroupNotFoundError,
    IntegrationError,
    IntegrationNotConfiguredError,
    InvalidRepositoryUrlError,
)

router = APIRouter(dependencies=[Depends(authorize)])
logger = logging.getLogger(__name__)

RECENT_COMMITS_LIMIT: int = 50


def get_http_transport() -> Optional[httpx.AsyncBaseTransport]:
    """Transport for outbound calls; None means httpx's default network transport."""
    return None


class SyncResponse(BaseModel):
    """Response model for a sync trigger."""

    message: str
    fetched: int
    imported: int
    skipped: int
    warnings: list[str]


class RepoStatsResponse(BaseModel):
    """Response model for ad hoc repository stats."""

    stats: RepoStats
    contributors: list[ContributorRecord]


def _raise_for_integration_error(exc: IntegrationError) -> NoReturn:
    """Translate service errors to HTTP errors."""
    logger.info("Integration request rejected: %s", exc)
    if isinstance(exc, GroupNotFoundError):
        raise HTTPException(status_code=404, detail="Group not found")
    if isinstance(exc, (IntegrationNotConfiguredError, InvalidRepositoryUrlError)):
        raise HTTPException(status_code=400, detail=str(exc))
    raise HTTPException(status_code=500, detail="Integration failure")


def _parse_repo_url_or_400(repo_url: str) -> tuple[str, str]:
    try:
        return parse_repo_url(repo_url)
    except InvalidRepositoryUrlError:
        raise HTTPException(status_code=400, detail="Invalid GitHub URL")


async def _github_connector(
    session: AsyncSession, transport: Optional[httpx.AsyncBaseTransport]
) -> GitHubConnector:
    credentials = await resolve_credentials(session, "github")
    return GitHubConnector(credentials["token"], transport=transport)


async def _jira_connector(
    session: AsyncSession, transport: Optional[httpx.AsyncBaseTransport]
) -> JiraConnector:
    credentials = await resolve_credentials(session, "jira")
    return JiraConnector(
        credentials["base_url"],
        credentials["email"],
        credentials["api_token"],
        transport=transport,
    )


# =============================================================================
# GitHub
# =============================================================================


@router.post("/sync/commits/{group_id}", response_model=SyncResponse)
async def sync_group_commits(
    group_id: int,
    session: AsyncSession = Depends(get_db),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport),
) -> SyncResponse:
    """Import new commits from the group's repository."""
    try:
        result = await integration_sync.sync_commits(session, group_id, transport=transport)
    except IntegrationError as exc:
        _raise_for_integration_error(exc)

    return SyncResponse(message="GitHub commits synced successfully", **result.to_dict())


@router.get("/commits/{group_id}")
async def list_group_commits(
    group_id: int,
    session: AsyncSession = Depends(get_db),
) -> list[dict[str, Any]]:
    """Most recent imported commits for a group, newest first."""
    result = await session.execute(
        select(GitHubCommit)
        .join(Group, Group.id == GitHubCommit.group_id)
        .where(GitHubCommit.group_id == group_id, Group.active())
        .order_by(GitHubCommit.commit_date.desc())
        .limit(RECENT_COMMITS_LIMIT)
    )
    return [commit.to_dict() for commit in result.scalars().all()]


@router.get("/repo-stats", response_model=RepoStatsResponse)
async def get_repo_stats(
    repo_url: str = Query(..., alias="repoUrl"),
    session: AsyncSession = Depends(get_db),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport),
) -> RepoStatsResponse:
    """Live open-issue / star / fork counts plus contributors. Not persisted."""
    owner, repo = _parse_repo_url_or_400(repo_url)
    connector = await _github_connector(session, transport)
    stats: RepoStats = await connector.fetch_repo_stats(owner, repo)
    contributors: list[ContributorRecord] = await connector.fetch_contributors(owner, repo)
    return RepoStatsResponse(stats=stats, contributors=contributors)


@router.get("/contributors", response_model=list[ContributorRecord])
async def get_contributors(
    repo_url: str = Query(..., alias="repoUrl"),
    session: AsyncSession = Depends(get_db),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport),
) -> list[ContributorRecord]:
    """Live contributor list for a repository."""
    owner, repo = _parse_repo_url_or_400(repo_url)
    connector = await _github_connector(session, transport)
    return await connector.fetch_contributors(owner, repo)


# =============================================================================
# Jira
# =============================================================================


@router.post("/sync/issues/{group_id}", response_model=SyncResponse)
async def sync_group_issues(
    group_id: int,
    session: AsyncSession = Depends(get_db),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport),
) -> SyncResponse:
    """Import new Jira issues of the group's project as requirements."""
    try:
        result = await integration_sync.sync_issues(session, group_id, transport=transport)
    except IntegrationError as exc:
        _raise_for_integration_error(exc)

    return SyncResponse(message="Jira issues synced successfully", **result.to_dict())


@router.get("/requirements/{group_id}")
async def list_group_requirements(
    group_id: int,
    session: AsyncSession = Depends(get_db),
) -> list[dict[str, Any]]:
    """Requirements of a group in import order."""
    result = await session.execute(
        select(Requirement)
        .join(Group, Group.id == Requirement.group_id)
        .where(Requirement.group_id == group_id, Group.active())
        .order_by(Requirement.id)
    )
    return [requirement.to_dict() for requirement in result.scalars().all()]


@router.get("/jira/issues/{issue_key}", response_model=IssueRecord)
async def get_jira_issue(
    issue_key: str,
    session: AsyncSession = Depends(get_db),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport),
) -> IssueRecord:
    """Live lookup of a single Jira issue."""
    connector = await _jira_connector(session, transport)
    issue: Optional[IssueRecord] = await connector.fetch_issue(issue_key)
    if issue is None:
        raise HTTPException(status_code=404, detail="Issue not found")
    return issue


@router.get("/jira/sprints/{board_id}", response_model=list[SprintRecord])
async def get_jira_sprints(
    board_id: str,
    session: AsyncSession = Depends(get_db),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport),
) -> list[SprintRecord]:
    """Live sprint list of a Jira agile board."""
    connector = await _jira_connector(session, transport)
    return await connector.fetch_sprints(board_id)
