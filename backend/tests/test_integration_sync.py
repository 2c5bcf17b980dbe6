import asyncio
from datetime import datetime

import httpx
import pytest
from sqlalchemy import func, select

from config import settings
from models.github_commit import GitHubCommit
from models.group import Group
from models.integration_setting import (
    JIRA_API_TOKEN_KEY,
    JIRA_BASE_URL_KEY,
    JIRA_EMAIL_KEY,
    IntegrationSetting,
)
from models.requirement import Requirement
from models.user import User
from services import integration_sync
from services.errors import GroupNotFoundError, IntegrationNotConfiguredError

REPO_URL = "https://github.com/acme/tracker"


def _commit(sha: str, email: str = "dev@example.edu", login: str | None = None, message: str | None = None) -> dict:
    return {
        "sha": sha,
        "html_url": f"{REPO_URL}/commit/{sha}",
        "commit": {
            "message": message if message is not None else f"Change {sha}",
            "author": {"name": "Dev", "email": email, "date": "2026-04-01T08:00:00Z"},
        },
        "author": {"login": login} if login else None,
    }


def _issue(key: str, summary: str) -> dict:
    return {
        "key": key,
        "fields": {
            "summary": summary,
            "description": "From Jira",
            "status": {"name": "In Progress"},
            "priority": None,
        },
    }


def _github_transport(commits: list[dict], calls: list[httpx.Request]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if request.url.params.get("page") == "1":
            return httpx.Response(200, json=commits)
        return httpx.Response(200, json=[])

    return httpx.MockTransport(handler)


def _count(session_factory, model) -> int:
    async def _run() -> int:
        async with session_factory() as session:
            return (await session.execute(select(func.count()).select_from(model))).scalar_one()

    return asyncio.run(_run())


def _sync_commits(session_factory, group_id: int, transport, **kwargs):
    async def _run():
        async with session_factory() as session:
            return await integration_sync.sync_commits(session, group_id, transport=transport, **kwargs)

    return asyncio.run(_run())


def _sync_issues(session_factory, group_id: int, transport):
    async def _run():
        async with session_factory() as session:
            return await integration_sync.sync_issues(session, group_id, transport=transport)

    return asyncio.run(_run())


@pytest.fixture
def group(add_rows) -> Group:
    (created,) = add_rows(Group(name="Team 1", github_repo_url=REPO_URL, jira_project_key="PROJ"))
    return created


@pytest.fixture
def jira_settings(add_rows) -> None:
    add_rows(
        IntegrationSetting(key=JIRA_BASE_URL_KEY, value="https://acme.atlassian.net"),
        IntegrationSetting(key=JIRA_EMAIL_KEY, value="bot@acme.io"),
        IntegrationSetting(key=JIRA_API_TOKEN_KEY, value="jira-token"),
    )


def test_sync_commits_skips_existing_sha(session_factory, add_rows, group) -> None:
    add_rows(
        GitHubCommit(
            commit_sha="a1",
            message="already here",
            commit_date=datetime(2026, 3, 1),
            group_id=group.id,
        )
    )
    calls: list[httpx.Request] = []
    transport = _github_transport([_commit("a1"), _commit("b2"), _commit("c3")], calls)

    result = _sync_commits(session_factory, group.id, transport)

    assert (result.fetched, result.imported, result.skipped) == (3, 2, 1)
    assert result.errors == []
    assert _count(session_factory, GitHubCommit) == 3
    assert calls[0].url.path == "/repos/acme/tracker/commits"


def test_sync_commits_is_idempotent(session_factory, group) -> None:
    commits = [_commit("a1"), _commit("b2")]

    first = _sync_commits(session_factory, group.id, _github_transport(commits, []))
    second = _sync_commits(session_factory, group.id, _github_transport(commits, []))

    assert first.imported == 2
    assert (second.imported, second.skipped) == (0, 2)
    assert _count(session_factory, GitHubCommit) == 2


def test_sync_commits_dedups_within_batch(session_factory, group) -> None:
    result = _sync_commits(
        session_factory, group.id, _github_transport([_commit("dup"), _commit("dup")], [])
    )

    assert (result.imported, result.skipped) == (1, 1)


def test_sync_commits_links_authors_and_truncates_message(session_factory, add_rows, group) -> None:
    alice, bob = add_rows(
        User(email="alice@example.edu"),
        User(email="bob@example.edu", github_username="bob-gh"),
    )
    commits = [
        _commit("e1", email="ALICE@example.edu", message="x" * 600),
        _commit("e2", email="bob@personal.example.com", login="bob-gh"),
        _commit("e3", email="stranger@example.com"),
    ]

    _sync_commits(session_factory, group.id, _github_transport(commits, []))

    async def _rows() -> dict[str, GitHubCommit]:
        async with session_factory() as session:
            rows = (await session.execute(select(GitHubCommit))).scalars().all()
            return {row.commit_sha: row for row in rows}

    rows = asyncio.run(_rows())
    assert rows["e1"].user_id == alice.id
    assert len(rows["e1"].message) == 500
    assert rows["e2"].user_id == bob.id
    assert rows["e2"].author_login == "bob-gh"
    assert rows["e3"].user_id is None


def test_sync_commits_reports_partial_failure(session_factory, group) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params["page"] == "1":
            return httpx.Response(200, json=[_commit("p1"), _commit("p2")])
        return httpx.Response(500, json={"message": "boom"})

    result = _sync_commits(session_factory, group.id, httpx.MockTransport(handler), max_count=4)

    assert result.imported == 2
    assert result.degraded
    assert result.to_dict()["warnings"] == result.errors


def test_sync_commits_keeps_valid_commits_beside_malformed_ones(session_factory, group) -> None:
    calls: list[httpx.Request] = []
    commits = [{"sha": "odd", "commit": "oops"}, "junk", _commit("fine")]

    result = _sync_commits(session_factory, group.id, _github_transport(commits, calls))

    assert (result.fetched, result.imported) == (2, 2)
    assert len(result.errors) == 1
    assert _count(session_factory, GitHubCommit) == 2


def test_sync_issues_keeps_valid_issues_beside_malformed_ones(session_factory, group, jira_settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"issues": [{"key": "PROJ-1", "fields": {"status": "Done"}}, _issue("PROJ-2", "Valid")]},
        )

    result = _sync_issues(session_factory, group.id, httpx.MockTransport(handler))

    assert result.errors == []
    assert (result.fetched, result.imported) == (2, 2)
    assert _count(session_factory, Requirement) == 2


def test_sync_commits_without_repo_makes_no_call(session_factory, add_rows) -> None:
    (bare,) = add_rows(Group(name="No repo"))
    calls: list[httpx.Request] = []

    with pytest.raises(IntegrationNotConfiguredError):
        _sync_commits(session_factory, bare.id, _github_transport([], calls))

    assert calls == []


def test_sync_unknown_or_deleted_group(session_factory, add_rows) -> None:
    (deleted,) = add_rows(Group(name="Gone", github_repo_url=REPO_URL, is_deleted=True))

    with pytest.raises(GroupNotFoundError):
        _sync_commits(session_factory, 9999, _github_transport([], []))
    with pytest.raises(GroupNotFoundError):
        _sync_commits(session_factory, deleted.id, _github_transport([], []))


def test_sync_commits_uses_static_token(session_factory, group, monkeypatch) -> None:
    monkeypatch.setattr(settings, "GITHUB_TOKEN", "ghp_static")
    calls: list[httpx.Request] = []

    _sync_commits(session_factory, group.id, _github_transport([], calls))

    assert calls[0].headers["Authorization"] == "Bearer ghp_static"


def test_sync_issues_is_insert_only(session_factory, add_rows, group, jira_settings) -> None:
    add_rows(Requirement(title="Original title", jira_issue_key="PROJ-1", group_id=group.id))
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(
            200, json={"issues": [_issue("PROJ-1", "Renamed in Jira"), _issue("PROJ-2", "New story")]}
        )

    result = _sync_issues(session_factory, group.id, httpx.MockTransport(handler))

    assert (result.fetched, result.imported, result.skipped) == (2, 1, 1)
    assert calls[0].headers["Authorization"].startswith("Basic ")

    async def _rows() -> dict[str, Requirement]:
        async with session_factory() as session:
            rows = (await session.execute(select(Requirement))).scalars().all()
            return {row.jira_issue_key: row for row in rows}

    rows = asyncio.run(_rows())
    assert rows["PROJ-1"].title == "Original title"
    assert rows["PROJ-2"].title == "New story"
    assert rows["PROJ-2"].priority == "Medium"
    assert rows["PROJ-2"].jira_issue_url == "https://acme.atlassian.net/browse/PROJ-2"
    assert rows["PROJ-2"].group_id == group.id


def test_sync_issues_without_project_makes_no_call(session_factory, add_rows, jira_settings) -> None:
    (bare,) = add_rows(Group(name="No project"))
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"issues": []})

    with pytest.raises(IntegrationNotConfiguredError):
        _sync_issues(session_factory, bare.id, httpx.MockTransport(handler))

    assert calls == []


def test_sync_issues_without_jira_url_reports_warning(session_factory, group, monkeypatch) -> None:
    monkeypatch.setattr(settings, "JIRA_BASE_URL", None)
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"issues": []})

    result = _sync_issues(session_factory, group.id, httpx.MockTransport(handler))

    assert result.imported == 0
    assert result.errors == ["Jira base URL is not configured"]
    assert calls == []
