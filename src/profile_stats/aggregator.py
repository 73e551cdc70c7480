"""Snapshot assembly: run the collectors and derive metrics for one user."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from datetime import datetime, timezone
from typing import Any, TypeVar
from zoneinfo import ZoneInfo

from .analytics import collect_issue_closure, derive_metrics
from .config import DEFAULT_CONFIG, EngineConfig
from .contributions import (
    ScanResult,
    SearchResult,
    merge_sources,
    reconcile_contributions,
)
from .deadline import Deadline
from .errors import GitHubAPIError, NotFound, UpstreamUnavailable, UserNotFound
from .github.client import GitHubClient
from .languages import collect_language_stats, to_language_stats
from .models import (
    IssueClosure,
    RepositorySummary,
    TimeHistogram,
    UserProfile,
    UserStatsSnapshot,
)
from .period import Period, resolve_period
from .repositories import RepositoryCollection, collect_repositories
from .sampling import sample_commit_times

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _fetch_profile(client: GitHubClient, username: str) -> UserProfile:
    try:
        data = await client.get_user(username)
    except NotFound as exc:
        raise UserNotFound(username) from exc
    return UserProfile.from_api(data)


async def _count_organizations(client: GitHubClient, username: str) -> int:
    try:
        return len(await client.list_user_orgs(username))
    except GitHubAPIError as exc:
        logger.warning("Could not list organizations for %s: %s", username, exc)
        return 0


async def _within(
    awaitable: Awaitable[T], deadline: Deadline | None, label: str
) -> tuple[T | None, bool]:
    """Await under the request deadline. Returns (result, timed_out)."""
    remaining = deadline.remaining() if deadline is not None else None
    try:
        return await asyncio.wait_for(awaitable, remaining), False
    except asyncio.TimeoutError:
        logger.warning("%s: deadline exceeded, using partial data", label)
        return None, True


async def build_user_snapshot(
    client: GitHubClient,
    username: str,
    period: str | Period = Period.ALL,
    config: EngineConfig = DEFAULT_CONFIG,
    deadline: Deadline | None = None,
    now: datetime | None = None,
) -> UserStatsSnapshot:
    """Collect, reconcile and derive a full statistics snapshot for ``username``.

    Raises InvalidPeriod before any request is made, UserNotFound when the
    user does not exist and UpstreamUnavailable when the profile or the
    primary repository listing cannot be fetched. Every other failure
    degrades to partial data and marks the snapshot as estimated.
    """
    if now is not None and now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    window = resolve_period(period, now)

    seen: dict[int, RepositorySummary] = {}
    primary = await asyncio.gather(
        _within(_fetch_profile(client, username), deadline, "profile"),
        _within(
            collect_repositories(client, username, config, deadline, seen=seen),
            deadline,
            "repository listing",
        ),
        _within(_count_organizations(client, username), deadline, "organizations"),
        return_exceptions=True,
    )
    # Only UserNotFound and UpstreamUnavailable leave this function.
    for result in primary:
        if isinstance(result, (UserNotFound, UpstreamUnavailable)):
            raise result
        if isinstance(result, GitHubAPIError):
            raise UpstreamUnavailable(str(result), result.status_code) from result
        if isinstance(result, BaseException):
            raise result
    (profile, profile_timed_out), (collection, _), (organizations, _) = primary
    if profile_timed_out or profile is None:
        raise UpstreamUnavailable(f"Timed out fetching profile for {username}")
    if collection is None:
        collection = RepositoryCollection(repositories=list(seen.values()), truncated=True)
    organizations = organizations or 0
    repositories = collection.repositories
    logger.info("%s: %d repositories, %d organizations", profile.login, len(repositories), organizations)

    histogram = TimeHistogram()
    lang_totals: dict[str, int] = {}
    closure = IssueClosure()
    scan = ScanResult()
    search = SearchResult()
    phases: list[tuple[Any, bool]] = await asyncio.gather(
        _within(
            reconcile_contributions(
                client, profile.login, repositories, window, config, deadline,
                scan=scan, search=search,
            ),
            deadline,
            "contributions",
        ),
        _within(
            sample_commit_times(
                client, profile.login, repositories, window, config, deadline, histogram=histogram
            ),
            deadline,
            "commit sampling",
        ),
        _within(
            collect_language_stats(client, repositories, config, deadline, lang_totals=lang_totals),
            deadline,
            "language stats",
        ),
        _within(
            collect_issue_closure(
                client, profile.login, repositories, window, config, deadline, closure=closure
            ),
            deadline,
            "issue sampling",
        ),
    )
    (reconciled, _), *rest = phases

    reasons: list[str] = []
    if collection.truncated:
        reasons.append("repository listing was cut short")
    if reconciled is None:
        reasons.append("contribution counting timed out")
        scan.interrupted = True
        reconciled = merge_sources(scan, search, config.reconcile_threshold)
    if reconciled.is_estimated and reconciled.estimation_reason:
        reasons.append(reconciled.estimation_reason)
    if any(phase_timed_out for _, phase_timed_out in rest):
        reasons.append("activity sampling timed out")

    metrics = derive_metrics(
        reconciled.counts,
        histogram,
        repositories,
        window,
        profile.login,
        issue_closure=closure,
        language_weights=lang_totals or None,
        config=config,
        today=now.astimezone(ZoneInfo(config.timezone)).date() if now else None,
    )

    return UserStatsSnapshot(
        user=profile,
        period=window,
        repositories=repositories,
        counts=reconciled.counts,
        histogram=histogram,
        metrics=metrics,
        languages=to_language_stats(lang_totals),
        organizations=organizations,
        is_estimated=bool(reasons) or reconciled.is_estimated,
        estimation_reason="; ".join(reasons) or None,
    )
