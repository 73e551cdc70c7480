"""GitHub REST API client."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from ..errors import (
    AccessDenied,
    GitHubAPIError,
    NotFound,
    RateLimited,
    RepositoryAccessDenied,
    UpstreamUnavailable,
)
from .rate_limit import RateLimitMonitor

logger = logging.getLogger(__name__)

BASE_URL = "https://api.github.com"
MAX_PER_PAGE = 100


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return ""
    if isinstance(data, dict):
        return str(data.get("message", ""))
    return ""


def _translate_error(url: str, response: httpx.Response) -> GitHubAPIError:
    """Map an HTTP error response onto the profile-stats error taxonomy."""
    status = response.status_code
    message = _error_message(response)
    detail = f"GET {url} returned {status}" + (f": {message}" if message else "")

    if status == 404:
        return NotFound(detail, status)
    exhausted = response.headers.get("X-RateLimit-Remaining") == "0"
    if status == 429 or (status == 403 and (exhausted or "rate limit" in message.lower())):
        reset = response.headers.get("X-RateLimit-Reset")
        return RateLimited(detail, status, reset_at=float(reset) if reset else None)
    if status in (401, 403):
        return AccessDenied(detail, status)
    if status >= 500:
        return UpstreamUnavailable(detail, status)
    return GitHubAPIError(detail, status)


def _created_within(item: dict[str, Any], since: str | None, until: str | None) -> bool:
    created = item.get("created_at") or ""
    if since and created < since:
        return False
    if until and created > until:
        return False
    return True


class GitHubClient:
    """Async GitHub REST API client with pagination and rate limit support."""

    def __init__(
        self,
        token: str | None = None,
        concurrency: int = 5,
        base_url: str | None = None,
        verify_ssl: bool = True,
        timeout: float = 30.0,
    ) -> None:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url or BASE_URL,
            headers=headers,
            timeout=timeout,
            verify=verify_ssl,
        )
        self._rate_limit = RateLimitMonitor()
        self._semaphore = asyncio.Semaphore(concurrency)
        self.has_token = bool(token)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def _get(
        self, url: str, params: dict[str, Any] | None = None
    ) -> httpx.Response:
        resource = "search" if url.startswith("/search/") else "core"
        async with self._semaphore:
            await self._rate_limit.wait_if_needed(resource)
            try:
                response = await self._client.get(url, params=params)
            except httpx.TransportError as exc:
                raise UpstreamUnavailable(f"GET {url} failed: {exc}") from exc
            self._rate_limit.update(response)
            try:
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                raise _translate_error(url, exc.response) from exc
            return response

    async def _get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        response = await self._get(url, params)
        return response.json()

    async def _paginate(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        max_pages: int | None = None,
    ) -> list[Any]:
        results: list[Any] = []
        params = dict(params or {})
        params.setdefault("per_page", MAX_PER_PAGE)
        next_url: str | None = url
        pages = 0

        while next_url is not None:
            response = await self._get(next_url, params)
            pages += 1
            data = response.json()
            if isinstance(data, list):
                results.extend(data)
            else:
                results.append(data)

            if max_pages is not None and pages >= max_pages:
                break

            # Follow Link header for next page
            next_url = None
            link_header = response.headers.get("Link", "")
            for part in link_header.split(","):
                if 'rel="next"' in part:
                    next_url = part.split(";")[0].strip().strip("<>")
                    params = {}  # URL already contains params
                    break

        return results

    async def _repo_paginate(
        self,
        owner: str,
        repo: str,
        path: str,
        params: dict[str, Any],
        max_pages: int | None = None,
    ) -> list[Any]:
        try:
            return await self._paginate(
                f"/repos/{owner}/{repo}/{path}", params=params, max_pages=max_pages
            )
        except (NotFound, AccessDenied) as exc:
            raise RepositoryAccessDenied(f"{owner}/{repo}", exc.status_code) from exc

    async def get_user(self, username: str) -> dict[str, Any]:
        """Get a user's public profile."""
        return await self._get_json(f"/users/{username}")

    async def get_authenticated_user(self) -> dict[str, Any]:
        """Get the profile of the token's principal."""
        return await self._get_json("/user")

    async def list_user_repos(
        self,
        username: str,
        page: int = 1,
        per_page: int = MAX_PER_PAGE,
        repo_type: str = "all",
    ) -> list[dict[str, Any]]:
        """Fetch one page of a user's public repositories."""
        return await self._get_json(
            f"/users/{username}/repos",
            params={
                "type": repo_type,
                "sort": "updated",
                "per_page": min(per_page, MAX_PER_PAGE),
                "page": page,
            },
        )

    async def list_authenticated_repos(
        self, page: int = 1, per_page: int = MAX_PER_PAGE
    ) -> list[dict[str, Any]]:
        """Fetch one page of repositories visible to the token's principal."""
        return await self._get_json(
            "/user/repos",
            params={
                "visibility": "all",
                "affiliation": "owner,collaborator,organization_member",
                "per_page": min(per_page, MAX_PER_PAGE),
                "page": page,
            },
        )

    async def list_user_orgs(self, username: str) -> list[dict[str, Any]]:
        """List public organization memberships of a user."""
        return await self._paginate(f"/users/{username}/orgs", max_pages=1)

    async def list_commits(
        self,
        owner: str,
        repo: str,
        author: str | None = None,
        since: str | None = None,
        until: str | None = None,
        per_page: int = MAX_PER_PAGE,
        max_pages: int | None = None,
    ) -> list[dict[str, Any]]:
        """List commits for a repository."""
        params: dict[str, Any] = {"per_page": min(per_page, MAX_PER_PAGE)}
        if author:
            params["author"] = author
        if since:
            params["since"] = since
        if until:
            params["until"] = until
        try:
            return await self._repo_paginate(
                owner, repo, "commits", params, max_pages=max_pages
            )
        except GitHubAPIError as exc:
            # 409: the repository is empty
            if exc.status_code == 409:
                return []
            raise

    async def list_pull_requests(
        self,
        owner: str,
        repo: str,
        state: str = "all",
        creator: str | None = None,
        since: str | None = None,
        until: str | None = None,
        max_pages: int | None = None,
    ) -> list[dict[str, Any]]:
        """List pull requests for a repository.

        The pulls endpoint cannot filter by author, so ``creator`` and the
        created_at window are applied to the fetched pages.
        """
        params: dict[str, Any] = {
            "state": state,
            "sort": "created",
            "direction": "desc",
        }
        results = await self._repo_paginate(
            owner, repo, "pulls", params, max_pages=max_pages
        )
        if creator:
            wanted = creator.lower()
            results = [
                pr
                for pr in results
                if ((pr.get("user") or {}).get("login") or "").lower() == wanted
            ]
        if since or until:
            results = [pr for pr in results if _created_within(pr, since, until)]
        return results

    async def list_issues(
        self,
        owner: str,
        repo: str,
        state: str = "all",
        creator: str | None = None,
        since: str | None = None,
        until: str | None = None,
        max_pages: int | None = None,
    ) -> list[dict[str, Any]]:
        """List issues (excluding pull requests) for a repository."""
        params: dict[str, Any] = {
            "state": state,
            "sort": "created",
            "direction": "desc",
        }
        if creator:
            params["creator"] = creator
        if since:
            # The API's since is updated-at, a superset of created-at
            params["since"] = since
        results = await self._repo_paginate(
            owner, repo, "issues", params, max_pages=max_pages
        )
        # GitHub issues API includes PRs; filter them out
        issues = [i for i in results if "pull_request" not in i]
        if since or until:
            issues = [i for i in issues if _created_within(i, since, until)]
        return issues

    async def get_languages(self, owner: str, repo: str) -> dict[str, int]:
        """Get language breakdown (bytes) for a repository."""
        try:
            return await self._get_json(f"/repos/{owner}/{repo}/languages")
        except (NotFound, AccessDenied) as exc:
            raise RepositoryAccessDenied(f"{owner}/{repo}", exc.status_code) from exc

    async def search_commits(self, query: str) -> int:
        """Return the total number of commits matching a search query."""
        data = await self._get_json(
            "/search/commits", params={"q": query, "per_page": 1}
        )
        return int(data.get("total_count", 0))

    async def search_issues(self, query: str) -> int:
        """Return the total number of issues/PRs matching a search query."""
        data = await self._get_json(
            "/search/issues", params={"q": query, "per_page": 1}
        )
        return int(data.get("total_count", 0))
