"""
Canonical Pydantic record models returned by the connectors.

Connectors parse provider payloads into these models; the sync engine
turns them into rows. Fields default to empty values so that a partial
upstream record never fails to parse.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


# ---------------------------------------------------------------------------
# GitHub
# ---------------------------------------------------------------------------


class CommitRecord(BaseModel):
    """A commit from a GitHub repository listing."""

    sha: str = ""
    message: str = ""
    author_name: str = ""
    author_email: str = ""
    author_login: str | None = None
    committed_at: datetime
    additions: int = 0
    deletions: int = 0
    url: str = ""


class ContributorRecord(BaseModel):
    """A repository contributor."""

    login: str = ""
    avatar_url: str = ""
    contributions: int = 0


class RepoStats(BaseModel):
    """Ad hoc repository statistics; never persisted."""

    total_commits: int = 0
    total_contributors: int = 0
    open_issues: int = 0
    stars: int = 0
    forks: int = 0


# ---------------------------------------------------------------------------
# Jira
# ---------------------------------------------------------------------------


class IssueRecord(BaseModel):
    """A Jira issue normalised for import as a requirement."""

    key: str = ""
    summary: str = ""
    description: str = ""
    status: str = ""
    priority: str = "Medium"
    issue_type: str = ""
    assignee_name: str | None = None
    assignee_email: str | None = None
    created: datetime | None = None
    updated: datetime | None = None
    url: str = ""


class SprintRecord(BaseModel):
    """A sprint on a Jira agile board."""

    id: int
    name: str = ""
    state: str = ""
    start_date: datetime | None = None
    end_date: datetime | None = None
