"""Tests for the GitHub client module."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from profile_stats.errors import (
    AccessDenied,
    GitHubAPIError,
    NotFound,
    RateLimited,
    RepositoryAccessDenied,
    UpstreamUnavailable,
)
from profile_stats.github.client import GitHubClient


def test_client_instantiation():
    client = GitHubClient(token="test-token")
    assert client._client is not None
    assert "Bearer test-token" in client._client.headers["Authorization"]
    assert client.has_token is True


def test_client_without_token():
    client = GitHubClient()
    assert "Authorization" not in client._client.headers
    assert client.has_token is False


def test_client_default_concurrency():
    client = GitHubClient(token="test-token", concurrency=10)
    assert client._semaphore._value == 10


@pytest.mark.asyncio
async def test_client_context_manager():
    async with GitHubClient(token="test-token") as client:
        assert client is not None


def _make_mock_response(
    status_code: int = 200,
    json_data=None,
    headers: dict | None = None,
):
    resp = MagicMock(spec=httpx.Response)
    resp.status_code = status_code
    resp.json.return_value = json_data if json_data is not None else []
    resp.headers = headers or {"Link": ""}
    resp.raise_for_status = MagicMock()
    if status_code >= 400:
        resp.raise_for_status.side_effect = httpx.HTTPStatusError(
            "error", request=MagicMock(), response=resp
        )
    return resp


def _client_returning(*responses) -> GitHubClient:
    client = GitHubClient(token="test-token")
    if len(responses) == 1:
        client._client.get = AsyncMock(return_value=responses[0])
    else:
        client._client.get = AsyncMock(side_effect=list(responses))
    client._rate_limit.wait_if_needed = AsyncMock()
    client._rate_limit.update = MagicMock()
    return client


def _params_of(client: GitHubClient) -> dict:
    call_args = client._client.get.call_args
    return call_args.kwargs.get("params") or {}


@pytest.mark.asyncio
async def test_get_basic():
    """_get should call httpx client and return response."""
    resp = _make_mock_response(200, json_data={"key": "value"})
    client = _client_returning(resp)

    result = await client._get("/test")
    assert result == resp
    client._rate_limit.wait_if_needed.assert_awaited_once_with("core")


@pytest.mark.asyncio
async def test_get_search_uses_search_bucket():
    client = _client_returning(_make_mock_response(200, json_data={"total_count": 0}))
    await client._get("/search/commits")
    client._rate_limit.wait_if_needed.assert_awaited_once_with("search")


@pytest.mark.asyncio
async def test_get_404_raises_not_found():
    client = _client_returning(_make_mock_response(404))
    with pytest.raises(NotFound) as exc_info:
        await client._get("/users/ghost")
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_get_403_exhausted_quota_raises_rate_limited():
    resp = _make_mock_response(
        403,
        headers={"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": "1700000000"},
    )
    client = _client_returning(resp)
    with pytest.raises(RateLimited) as exc_info:
        await client._get("/users/alice/repos")
    assert exc_info.value.reset_at == 1700000000.0


@pytest.mark.asyncio
async def test_get_403_secondary_rate_limit_message():
    resp = _make_mock_response(
        403, json_data={"message": "You have exceeded a secondary rate limit."}
    )
    client = _client_returning(resp)
    with pytest.raises(RateLimited):
        await client._get("/search/issues")


@pytest.mark.asyncio
async def test_get_429_raises_rate_limited():
    client = _client_returning(_make_mock_response(429))
    with pytest.raises(RateLimited):
        await client._get("/test")


@pytest.mark.asyncio
async def test_get_403_raises_access_denied():
    resp = _make_mock_response(403, json_data={"message": "Resource not accessible"})
    client = _client_returning(resp)
    with pytest.raises(AccessDenied):
        await client._get("/user/repos")


@pytest.mark.asyncio
async def test_get_5xx_raises_upstream_unavailable():
    client = _client_returning(_make_mock_response(502))
    with pytest.raises(UpstreamUnavailable):
        await client._get("/users/alice")


@pytest.mark.asyncio
async def test_get_transport_error_raises_upstream_unavailable():
    client = GitHubClient(token="test-token")
    client._client.get = AsyncMock(side_effect=httpx.ConnectError("boom"))
    client._rate_limit.wait_if_needed = AsyncMock()
    with pytest.raises(UpstreamUnavailable):
        await client._get("/users/alice")


@pytest.mark.asyncio
async def test_paginate_single_page():
    client = _client_returning(_make_mock_response(200, json_data=[{"id": 1}, {"id": 2}]))
    result = await client._paginate("/test")
    assert result == [{"id": 1}, {"id": 2}]


@pytest.mark.asyncio
async def test_paginate_multiple_pages():
    """_paginate should follow Link headers for pagination."""
    resp1 = _make_mock_response(
        200,
        json_data=[{"id": 1}],
        headers={"Link": '<https://api.github.com/test?page=2>; rel="next"'},
    )
    resp2 = _make_mock_response(200, json_data=[{"id": 2}])
    client = _client_returning(resp1, resp2)

    result = await client._paginate("/test")
    assert result == [{"id": 1}, {"id": 2}]


@pytest.mark.asyncio
async def test_paginate_respects_max_pages():
    resp1 = _make_mock_response(
        200,
        json_data=[{"id": 1}],
        headers={"Link": '<https://api.github.com/test?page=2>; rel="next"'},
    )
    resp2 = _make_mock_response(200, json_data=[{"id": 2}])
    client = _client_returning(resp1, resp2)

    result = await client._paginate("/test", max_pages=1)
    assert result == [{"id": 1}]
    assert client._client.get.await_count == 1


@pytest.mark.asyncio
async def test_list_user_repos_page_params():
    client = _client_returning(_make_mock_response(200, json_data=[{"id": 1}]))
    result = await client.list_user_repos("alice", page=3, per_page=500)
    assert result == [{"id": 1}]
    params = _params_of(client)
    assert params["page"] == 3
    assert params["per_page"] == 100
    assert client._client.get.call_args.args[0] == "/users/alice/repos"


@pytest.mark.asyncio
async def test_list_authenticated_repos_params():
    client = _client_returning(_make_mock_response(200, json_data=[]))
    await client.list_authenticated_repos(page=2)
    params = _params_of(client)
    assert params["visibility"] == "all"
    assert "organization_member" in params["affiliation"]
    assert params["page"] == 2


@pytest.mark.asyncio
async def test_list_commits_passes_filters():
    client = _client_returning(_make_mock_response(200, json_data=[]))
    await client.list_commits(
        "o", "r", author="alice", since="2024-01-01T00:00:00Z", until="2024-12-31T23:59:59Z"
    )
    params = _params_of(client)
    assert params.get("author") == "alice"
    assert params.get("since") == "2024-01-01T00:00:00Z"
    assert params.get("until") == "2024-12-31T23:59:59Z"


@pytest.mark.asyncio
async def test_list_commits_409_empty_repo():
    """list_commits should return [] on 409 (empty repo)."""
    client = _client_returning(_make_mock_response(409))
    result = await client.list_commits("owner", "repo")
    assert result == []


@pytest.mark.asyncio
async def test_list_commits_404_raises_repository_access_denied():
    client = _client_returning(_make_mock_response(404))
    with pytest.raises(RepositoryAccessDenied) as exc_info:
        await client.list_commits("owner", "gone")
    assert exc_info.value.full_name == "owner/gone"


@pytest.mark.asyncio
async def test_list_commits_rate_limit_is_not_masked():
    client = _client_returning(_make_mock_response(429))
    with pytest.raises(RateLimited):
        await client.list_commits("owner", "repo")


@pytest.mark.asyncio
async def test_list_pull_requests_filters_creator_and_window():
    prs = [
        {"user": {"login": "Alice"}, "created_at": "2024-06-10T00:00:00Z"},
        {"user": {"login": "bob"}, "created_at": "2024-06-11T00:00:00Z"},
        {"user": {"login": "alice"}, "created_at": "2023-01-01T00:00:00Z"},
        {"user": None, "created_at": "2024-06-12T00:00:00Z"},
    ]
    client = _client_returning(_make_mock_response(200, json_data=prs))
    result = await client.list_pull_requests(
        "o", "r", creator="alice", since="2024-01-01T00:00:00Z", until="2024-12-31T23:59:59Z"
    )
    assert result == [prs[0]]


@pytest.mark.asyncio
async def test_list_issues_excludes_pull_requests():
    issues = [
        {"id": 1, "created_at": "2024-06-10T00:00:00Z"},
        {"id": 2, "created_at": "2024-06-10T00:00:00Z", "pull_request": {}},
    ]
    client = _client_returning(_make_mock_response(200, json_data=issues))
    result = await client.list_issues("o", "r", creator="alice")
    assert [i["id"] for i in result] == [1]
    assert _params_of(client)["creator"] == "alice"


@pytest.mark.asyncio
async def test_list_issues_filters_by_created_at():
    issues = [
        {"id": 1, "created_at": "2024-06-10T00:00:00Z"},
        {"id": 2, "created_at": "2023-12-31T00:00:00Z"},
    ]
    client = _client_returning(_make_mock_response(200, json_data=issues))
    result = await client.list_issues("o", "r", since="2024-01-01T00:00:00Z")
    assert [i["id"] for i in result] == [1]


@pytest.mark.asyncio
async def test_get_languages():
    client = _client_returning(_make_mock_response(200, json_data={"Python": 5000}))
    result = await client.get_languages("owner", "repo")
    assert result == {"Python": 5000}


@pytest.mark.asyncio
async def test_get_languages_forbidden_raises_repository_access_denied():
    resp = _make_mock_response(403, json_data={"message": "Must have admin rights"})
    client = _client_returning(resp)
    with pytest.raises(RepositoryAccessDenied):
        await client.get_languages("owner", "secret")


@pytest.mark.asyncio
async def test_search_commits_returns_total_count():
    client = _client_returning(_make_mock_response(200, json_data={"total_count": 321, "items": []}))
    result = await client.search_commits("author:alice")
    assert result == 321
    assert _params_of(client)["q"] == "author:alice"


@pytest.mark.asyncio
async def test_search_issues_validation_error():
    client = _client_returning(_make_mock_response(422, json_data={"message": "Validation Failed"}))
    with pytest.raises(GitHubAPIError) as exc_info:
        await client.search_issues("author:ghost type:pr")
    assert exc_info.value.status_code == 422


@pytest.mark.asyncio
async def test_list_user_orgs():
    client = _client_returning(_make_mock_response(200, json_data=[{"login": "org1"}]))
    result = await client.list_user_orgs("alice")
    assert result == [{"login": "org1"}]
