import asyncio
from datetime import datetime

import httpx
import pytest

from connectors.github import GitHubConnector, parse_repo_url
from services.errors import InvalidRepositoryUrlError


def _commit(sha: str, **overrides) -> dict:
    item = {
        "sha": sha,
        "html_url": f"https://github.com/acme/tracker/commit/{sha}",
        "commit": {
            "message": f"commit {sha}",
            "author": {
                "name": "Alice",
                "email": "alice@example.edu",
                "date": "2026-03-01T10:00:00Z",
            },
        },
        "author": {"login": "alice-gh"},
    }
    item.update(overrides)
    return item


def _connector(handler, calls: list, token: str | None = "ghp_secret") -> GitHubConnector:
    def _record(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return handler(request)

    return GitHubConnector(token, transport=httpx.MockTransport(_record))


def test_fetch_commits_pages_until_max_count() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        page = int(request.url.params["page"])
        start = (page - 1) * 100
        return httpx.Response(200, json=[_commit(f"sha{start + i}") for i in range(100)])

    commits = asyncio.run(_connector(handler, calls).fetch_commits("acme", "tracker", 150))

    assert len(commits) == 150
    assert len(calls) == 2
    assert calls[0].url.path == "/repos/acme/tracker/commits"
    assert calls[0].url.params["per_page"] == "100"
    assert calls[1].url.params["page"] == "2"


def test_fetch_commits_small_max_uses_small_page() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[_commit(f"s{i}") for i in range(5)])

    commits = asyncio.run(_connector(handler, calls).fetch_commits("acme", "tracker", 5))

    assert [c.sha for c in commits] == ["s0", "s1", "s2", "s3", "s4"]
    assert len(calls) == 1
    assert calls[0].url.params["per_page"] == "5"


def test_fetch_commits_stops_on_empty_page() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params["page"] == "1":
            return httpx.Response(200, json=[_commit("only")])
        return httpx.Response(200, json=[])

    connector = _connector(handler, calls)
    commits = asyncio.run(connector.fetch_commits("acme", "tracker", 100))

    assert [c.sha for c in commits] == ["only"]
    assert len(calls) == 2
    assert connector.errors == []


def test_failed_page_keeps_earlier_results() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params["page"] == "1":
            return httpx.Response(200, json=[_commit("a"), _commit("b")])
        return httpx.Response(502, json={"message": "bad gateway"})

    connector = _connector(handler, calls)
    commits = asyncio.run(connector.fetch_commits("acme", "tracker", 4))

    assert [c.sha for c in commits] == ["a", "b"]
    assert len(connector.errors) == 1
    assert "502" in connector.errors[0]


def test_non_list_payload_ends_fetch() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"message": "Not a list"})

    connector = _connector(handler, calls)
    commits = asyncio.run(connector.fetch_commits("acme", "tracker", 10))

    assert commits == []
    assert connector.errors


def test_network_error_is_recorded_not_raised() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    connector = _connector(handler, calls)
    commits = asyncio.run(connector.fetch_commits("acme", "tracker", 10))

    assert commits == []
    assert "connection refused" in connector.errors[0]


def test_missing_fields_default_to_empty() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[{"sha": "bare", "author": None}])

    commits = asyncio.run(_connector(handler, calls).fetch_commits("acme", "tracker", 1))

    record = commits[0]
    assert record.sha == "bare"
    assert record.message == ""
    assert record.author_name == ""
    assert record.author_email == ""
    assert record.author_login is None
    assert isinstance(record.committed_at, datetime)
    assert (record.additions, record.deletions) == (0, 0)


def test_commit_date_is_normalised_to_naive_utc() -> None:
    calls: list[httpx.Request] = []
    item = _commit("tz")
    item["commit"]["author"]["date"] = "2026-03-01T12:00:00+02:00"

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[item])

    (record,) = asyncio.run(_connector(handler, calls).fetch_commits("acme", "tracker", 1))

    assert record.committed_at == datetime(2026, 3, 1, 10, 0, 0)


def test_bearer_token_sent_only_when_configured() -> None:
    with_token: list[httpx.Request] = []
    without_token: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[])

    asyncio.run(_connector(handler, with_token, "ghp_secret").fetch_commits("acme", "tracker", 1))
    asyncio.run(_connector(handler, without_token, None).fetch_commits("acme", "tracker", 1))

    assert with_token[0].headers["Authorization"] == "Bearer ghp_secret"
    assert "Authorization" not in without_token[0].headers
    assert without_token[0].headers["User-Agent"]


def test_repo_stats_and_contributors() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/contributors"):
            return httpx.Response(
                200, json=[{"login": "alice-gh", "avatar_url": "https://a", "contributions": 12}]
            )
        return httpx.Response(
            200, json={"open_issues_count": 3, "stargazers_count": 7, "forks_count": 2}
        )

    connector = _connector(handler, calls)
    stats = asyncio.run(connector.fetch_repo_stats("acme", "tracker"))
    contributors = asyncio.run(connector.fetch_contributors("acme", "tracker"))

    assert (stats.open_issues, stats.stars, stats.forks) == (3, 7, 2)
    assert contributors[0].login == "alice-gh"
    assert contributors[0].contributions == 12


def test_repo_stats_degrade_to_zero() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"message": "Not Found"})

    connector = _connector(handler, calls)
    stats = asyncio.run(connector.fetch_repo_stats("acme", "missing"))

    assert stats.model_dump() == {
        "total_commits": 0,
        "total_contributors": 0,
        "open_issues": 0,
        "stars": 0,
        "forks": 0,
    }
    assert asyncio.run(connector.fetch_contributors("acme", "missing")) == []


def test_malformed_commits_do_not_abort_the_page() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params["page"] == "1":
            return httpx.Response(
                200,
                json=[
                    {"sha": "bad", "commit": "oops", "author": "ghost"},
                    {"sha": 123, "commit": {"message": ["not", "text"], "author": 5}},
                    "junk",
                    _commit("good"),
                ],
            )
        return httpx.Response(200, json=[])

    connector = _connector(handler, calls)
    commits = asyncio.run(connector.fetch_commits("acme", "tracker", 10))

    assert [c.sha for c in commits] == ["bad", "123", "good"]
    assert commits[0].message == ""
    assert commits[0].author_login is None
    assert commits[1].message == ""
    assert commits[2].author_email == "alice@example.edu"
    assert len(connector.errors) == 1
    assert "could not be parsed" in connector.errors[0]


def test_contributor_with_bad_count_counts_as_zero() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json=[
                {"login": "alice-gh", "contributions": "many"},
                "junk",
                {"login": "bob-gh", "contributions": 4},
            ],
        )

    contributors = asyncio.run(_connector(handler, calls).fetch_contributors("acme", "tracker"))

    assert [(c.login, c.contributions) for c in contributors] == [("alice-gh", 0), ("bob-gh", 4)]


@pytest.mark.parametrize(
    "url",
    [
        "https://github.com/acme/tracker",
        "https://github.com/acme/tracker.git",
        "https://github.com/acme/tracker/",
        "https://github.com/acme/tracker/tree/main",
    ],
)
def test_parse_repo_url(url: str) -> None:
    assert parse_repo_url(url) == ("acme", "tracker")


@pytest.mark.parametrize("url", ["", "not a url", "https://github.com/acme", None])
def test_parse_repo_url_rejects_malformed(url) -> None:
    with pytest.raises(InvalidRepositoryUrlError):
        parse_repo_url(url)
