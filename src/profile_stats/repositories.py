"""Repository enumeration across the public and authenticated listings."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from .config import DEFAULT_CONFIG, EngineConfig
from .deadline import Deadline, is_expired
from .errors import GitHubAPIError, NotFound, RateLimited, UserNotFound
from .github.client import MAX_PER_PAGE, GitHubClient
from .models import RepositorySummary

logger = logging.getLogger(__name__)

PageFetcher = Callable[[int], Awaitable[list[dict[str, Any]]]]


@dataclass
class RepositoryCollection:
    repositories: list[RepositorySummary] = field(default_factory=list)
    # True when a rate limit or the deadline cut enumeration short
    truncated: bool = False


async def _collect_pages(
    fetch_page: PageFetcher,
    into: dict[int, RepositorySummary],
    config: EngineConfig,
    label: str,
    deadline: Deadline | None = None,
) -> bool:
    """Page through a listing until a short page, merging new ids into ``into``.

    Returns True when the listing was cut short by a rate limit or the
    deadline. Other errors propagate.
    """
    page_size = min(config.per_page, MAX_PER_PAGE)
    for page in range(1, config.max_repo_pages + 1):
        if is_expired(deadline):
            logger.warning("%s: deadline reached after %d page(s)", label, page - 1)
            return True
        try:
            batch = await fetch_page(page)
        except RateLimited:
            logger.warning("%s: rate limited on page %d, keeping partial results", label, page)
            return True
        for payload in batch:
            repo = RepositorySummary.from_api(payload)
            into.setdefault(repo.id, repo)
        if len(batch) < page_size:
            return False
    logger.info("%s: stopped at page limit %d", label, config.max_repo_pages)
    return False


async def _authenticated_listing_allowed(client: GitHubClient, username: str) -> bool:
    if not client.has_token:
        return False
    try:
        principal = await client.get_authenticated_user()
    except GitHubAPIError as exc:
        logger.debug("Authenticated user lookup failed: %s", exc)
        return False
    login = principal.get("login") or ""
    if login.lower() != username.lower():
        logger.debug("Token belongs to %s, not %s; skipping private listing", login, username)
        return False
    return True


async def collect_repositories(
    client: GitHubClient,
    username: str,
    config: EngineConfig = DEFAULT_CONFIG,
    deadline: Deadline | None = None,
    seen: dict[int, RepositorySummary] | None = None,
) -> RepositoryCollection:
    """Collect a user's repositories, deduplicated by id.

    The public listing is authoritative: a 404 there means the user does not
    exist, and an unreachable API propagates. The authenticated listing is
    best-effort and only used when the token belongs to ``username``.

    Repositories land in ``seen`` page by page; a caller that owns it keeps
    the pages already fetched if the listing is cancelled.
    """
    seen = seen if seen is not None else {}

    try:
        truncated = await _collect_pages(
            lambda page: client.list_user_repos(username, page=page, per_page=config.per_page),
            seen,
            config,
            f"{username} public repos",
            deadline,
        )
    except NotFound as exc:
        raise UserNotFound(username) from exc

    if config.include_private and await _authenticated_listing_allowed(client, username):
        try:
            truncated = (
                await _collect_pages(
                    lambda page: client.list_authenticated_repos(
                        page=page, per_page=config.per_page
                    ),
                    seen,
                    config,
                    f"{username} authenticated repos",
                    deadline,
                )
                or truncated
            )
        except GitHubAPIError as exc:
            logger.debug("Authenticated repository listing unavailable: %s", exc)

    return RepositoryCollection(repositories=list(seen.values()), truncated=truncated)
