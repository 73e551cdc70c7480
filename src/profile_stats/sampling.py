"""Commit time sampling for hour-of-day and day-of-week histograms."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, tzinfo
from typing import Any
from zoneinfo import ZoneInfo

from .config import DEFAULT_CONFIG, EngineConfig
from .deadline import Deadline, is_expired
from .errors import GitHubAPIError, RateLimited
from .github.client import GitHubClient
from .models import RepositorySummary, TimeHistogram
from .period import PeriodWindow

logger = logging.getLogger(__name__)


def commit_author_time(commit: dict[str, Any], tz: tzinfo) -> datetime | None:
    """Author timestamp of a commit payload in ``tz``, or None if missing."""
    raw = ((commit.get("commit") or {}).get("author") or {}).get("date")
    if not raw:
        return None
    try:
        when = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None
    return when.astimezone(tz)


async def sample_commit_times(
    client: GitHubClient,
    username: str,
    repositories: list[RepositorySummary],
    window: PeriodWindow,
    config: EngineConfig = DEFAULT_CONFIG,
    deadline: Deadline | None = None,
    histogram: TimeHistogram | None = None,
) -> TimeHistogram:
    """Bucket a bounded sample of the user's commits by local hour and weekday.

    Pass ``histogram`` to accumulate into a caller-owned object so that a
    cancelled sample still leaves its partial data behind.
    """
    histogram = histogram if histogram is not None else TimeHistogram()
    tz = ZoneInfo(config.timezone)
    sample = repositories[: config.max_sample_repos]

    for index, repo in enumerate(sample):
        if is_expired(deadline):
            logger.warning("Commit sampling: deadline reached")
            break
        if index and config.sample_delay > 0:
            await asyncio.sleep(config.sample_delay)
        try:
            commits = await client.list_commits(
                repo.owner_login,
                repo.name,
                author=username,
                since=window.api_since,
                until=window.api_until,
                per_page=config.max_commits_per_repo,
                max_pages=1,
            )
        except RateLimited:
            logger.warning("Commit sampling: rate limited at %s, stopping", repo.full_name)
            break
        except GitHubAPIError as exc:
            logger.debug("Commit sampling: skipping %s: %s", repo.full_name, exc)
            continue

        for commit in commits[: config.max_commits_per_repo]:
            when = commit_author_time(commit, tz)
            # the API filters since/until by committer date
            if when is not None and window.contains(when):
                histogram.record(when)

    return histogram
