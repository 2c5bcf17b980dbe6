"""
One-way, insert-only import of GitHub commits and Jira issues into a group.

Both syncs follow the same pass:

1. Load the group and validate its configuration (no external call yet).
2. Resolve credentials from runtime settings / static config.
3. Fetch external records (fetchers degrade instead of raising).
4. Skip records whose natural key (commit SHA / issue key) already exists
   anywhere in the store, or repeats within the batch.
5. Insert the rest with ON CONFLICT DO NOTHING on the natural key, so a
   concurrent sync that got there first turns into a skip.
6. Commit once for the whole batch.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx
from sqlalchemy import insert, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from connectors.github import GitHubConnector, parse_repo_url
from connectors.jira import JiraConnector
from connectors.models import CommitRecord, IssueRecord
from models.github_commit import MAX_MESSAGE_LENGTH, GitHubCommit
from models.group import Group
from models.requirement import MAX_TITLE_LENGTH, Requirement
from services.credentials import resolve_credentials
from services.errors import GroupNotFoundError, IntegrationNotConfiguredError
from services.identity import IdentityMatcher

logger = logging.getLogger(__name__)

_CONFLICT_INSERTS: dict[str, Any] = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


@dataclass
class SyncResult:
    """Outcome of one sync pass."""

    fetched: int = 0
    imported: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        """True when the external system was partially unreachable."""
        return bool(self.errors)

    def to_dict(self) -> dict[str, Any]:
        return {
            "fetched": self.fetched,
            "imported": self.imported,
            "skipped": self.skipped,
            "warnings": list(self.errors),
        }


async def load_group(session: AsyncSession, group_id: int) -> Group:
    """Return the active group or raise GroupNotFoundError."""
    result = await session.execute(
        select(Group).where(Group.id == group_id, Group.active())
    )
    group: Optional[Group] = result.scalar_one_or_none()
    if group is None:
        raise GroupNotFoundError(group_id)
    return group


async def _insert_if_absent(
    session: AsyncSession,
    model: Any,
    values: dict[str, Any],
    key_column: str,
) -> bool:
    """
    Insert one row unless its natural key already exists.

    Returns True when a row was written.
    """
    dialect_name: str = session.get_bind().dialect.name
    conflict_insert = _CONFLICT_INSERTS.get(dialect_name)
    if conflict_insert is not None:
        stmt = conflict_insert(model).values(**values).on_conflict_do_nothing(
            index_elements=[key_column]
        )
        result = await session.execute(stmt)
        return result.rowcount == 1

    # Other dialects: rely on the unique index and a savepoint
    try:
        async with session.begin_nested():
            await session.execute(insert(model).values(**values))
        return True
    except IntegrityError:
        return False


async def _existing_keys(session: AsyncSession, column: Any, keys: list[str]) -> set[str]:
    if not keys:
        return set()
    result = await session.execute(select(column).where(column.in_(keys)))
    return {row[0] for row in result.all()}


# ── Commits ──────────────────────────────────────────────────────────────


async def sync_commits(
    session: AsyncSession,
    group_id: int,
    owner: Optional[str] = None,
    repo: Optional[str] = None,
    *,
    max_count: Optional[int] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> SyncResult:
    """
    Import new commits from the group's GitHub repository.

    ``owner``/``repo`` default to the group's configured repository URL.

    Raises:
        GroupNotFoundError: group missing or soft-deleted
        IntegrationNotConfiguredError: group has no repository URL
        InvalidRepositoryUrlError: repository URL is not owner/repo shaped
    """
    group: Group = await load_group(session, group_id)
    if not group.github_repo_url and not (owner and repo):
        raise IntegrationNotConfiguredError("Group has no GitHub repo configured")
    if not (owner and repo):
        owner, repo = parse_repo_url(group.github_repo_url)

    credentials: dict[str, Optional[str]] = await resolve_credentials(session, "github")
    connector = GitHubConnector(credentials["token"], transport=transport)
    records: list[CommitRecord] = await connector.fetch_commits(
        owner, repo, max_count or settings.GITHUB_MAX_COMMITS
    )

    result = SyncResult(fetched=len(records), errors=list(connector.errors))
    existing: set[str] = await _existing_keys(
        session, GitHubCommit.commit_sha, [r.sha for r in records if r.sha]
    )
    matcher = IdentityMatcher(session)

    for record in records:
        if not record.sha:
            logger.warning("Skipping commit without SHA for group %s", group_id)
            result.skipped += 1
            continue
        if record.sha in existing:
            result.skipped += 1
            continue
        existing.add(record.sha)

        user_id: Optional[int] = await matcher.match(
            record.author_email, record.author_login or record.author_name
        )
        inserted: bool = await _insert_if_absent(
            session,
            GitHubCommit,
            {
                "commit_sha": record.sha,
                "message": record.message[:MAX_MESSAGE_LENGTH],
                "author_name": record.author_name,
                "author_email": record.author_email,
                "author_login": record.author_login,
                "commit_date": record.committed_at,
                "additions": record.additions,
                "deletions": record.deletions,
                "url": record.url,
                "group_id": group_id,
                "user_id": user_id,
            },
            "commit_sha",
        )
        if inserted:
            result.imported += 1
        else:
            result.skipped += 1

    await session.commit()

    logger.info(
        "Synced %d new commits for group %s (%d skipped)",
        result.imported,
        group_id,
        result.skipped,
        extra={"group_id": group_id, "repo": f"{owner}/{repo}", "warnings": result.errors},
    )
    return result


# ── Issues ───────────────────────────────────────────────────────────────


async def sync_issues(
    session: AsyncSession,
    group_id: int,
    project_key: Optional[str] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> SyncResult:
    """
    Import new Jira issues of the group's project as requirements.

    Existing requirements are never modified.

    Raises:
        GroupNotFoundError: group missing or soft-deleted
        IntegrationNotConfiguredError: group has no Jira project key
    """
    group: Group = await load_group(session, group_id)
    project_key = project_key or group.jira_project_key
    if not project_key:
        raise IntegrationNotConfiguredError("Group has no Jira project configured")

    credentials: dict[str, Optional[str]] = await resolve_credentials(session, "jira")
    connector = JiraConnector(
        credentials["base_url"],
        credentials["email"],
        credentials["api_token"],
        transport=transport,
    )
    records: list[IssueRecord] = await connector.fetch_issues(project_key)

    result = SyncResult(fetched=len(records), errors=list(connector.errors))
    existing: set[str] = await _existing_keys(
        session, Requirement.jira_issue_key, [r.key for r in records if r.key]
    )

    for record in records:
        if not record.key:
            logger.warning("Skipping Jira issue without key for group %s", group_id)
            result.skipped += 1
            continue
        if record.key in existing:
            result.skipped += 1
            continue
        existing.add(record.key)

        inserted: bool = await _insert_if_absent(
            session,
            Requirement,
            {
                "title": record.summary[:MAX_TITLE_LENGTH],
                "description": record.description,
                "jira_issue_key": record.key,
                "jira_issue_url": record.url,
                "priority": record.priority,
                "status": record.status,
                "group_id": group_id,
            },
            "jira_issue_key",
        )
        if inserted:
            result.imported += 1
        else:
            result.skipped += 1

    await session.commit()

    logger.info(
        "Synced %d new issues for group %s (%d skipped)",
        result.imported,
        group_id,
        result.skipped,
        extra={"group_id": group_id, "project_key": project_key, "warnings": result.errors},
    )
    return result
