"""Derived behavioral metrics: streaks, chronotype indices, diversity, ratios."""

from __future__ import annotations

import logging
import math
from collections import Counter
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from zoneinfo import ZoneInfo

from .config import DEFAULT_CONFIG, EngineConfig
from .deadline import Deadline, is_expired
from .errors import GitHubAPIError, RateLimited
from .github.client import GitHubClient
from .models import (
    AdvancedMetrics,
    ContributionCounts,
    IssueClosure,
    RepositorySummary,
    Streak,
    TimeHistogram,
)
from .period import PeriodWindow

logger = logging.getLogger(__name__)

NIGHT_HOURS = [*range(22, 24), *range(0, 6)]
MORNING_HOURS = range(6, 12)
DARK_HOURS = range(0, 6)
WEEKEND_DAYS = (5, 6)  # Saturday, Sunday


def consistency_score(active_days: int, days_in_period: int) -> int:
    """Share of days in the period with at least one commit, 0-100."""
    if days_in_period <= 0:
        return 0
    return max(0, min(100, round(100 * active_days / days_in_period)))


def compute_streak(
    active_dates: Iterable[date], today: date, cap: int = 100
) -> Streak:
    """Longest run of consecutive active dates, and the run ending today.

    The current streak also counts when it ends yesterday, since today may
    simply not have a commit yet.
    """
    dates = sorted(set(active_dates))
    if not dates:
        return Streak()

    longest = run = 1
    for prev, cur in zip(dates, dates[1:]):
        run = run + 1 if (cur - prev).days == 1 else 1
        longest = max(longest, run)

    # run now holds the length of the trailing run
    current = run if (today - dates[-1]).days <= 1 else 0
    return Streak(current=min(current, cap), max=longest)


def streak_power(streak: Streak) -> int:
    if streak.current <= 0:
        return 0
    return round(streak.current * math.log(1 + streak.max))


def owl_index(histogram: TimeHistogram, config: EngineConfig = DEFAULT_CONFIG) -> float:
    """Night-to-morning commit ratio, clamped to the configured bounds."""
    night = histogram.hours_total(NIGHT_HOURS)
    morning = histogram.hours_total(MORNING_HOURS)
    if morning == 0:
        ratio = config.owl_no_morning if night > 0 else 0.0
    else:
        ratio = night / morning
    return round(min(config.owl_ceiling, max(config.owl_floor, ratio)), 2)


def weekend_warrior_score(histogram: TimeHistogram) -> int:
    weekend = sum(histogram.by_day[d] for d in WEEKEND_DAYS)
    weekday = sum(histogram.by_day) - weekend
    if weekend + weekday == 0:
        return 0
    return round(100 * weekend / (weekend + weekday))


def dark_coder_percentage(histogram: TimeHistogram) -> int:
    total = histogram.total
    if total == 0:
        return 0
    return round(100 * histogram.hours_total(DARK_HOURS) / total)


def commit_velocity(commits: int, months_in_period: int) -> int:
    if months_in_period <= 0:
        return 0
    return round(commits / months_in_period)


def primary_language_counts(repositories: Iterable[RepositorySummary]) -> Counter[str]:
    return Counter(r.language for r in repositories if r.language)


def shannon_entropy(weights: Mapping[str, float]) -> float:
    """Shannon entropy in bits of a weight distribution, 0 below two categories."""
    positive = [w for w in weights.values() if w > 0]
    if len(positive) < 2:
        return 0.0
    total = sum(positive)
    entropy = -sum((w / total) * math.log2(w / total) for w in positive)
    return round(entropy, 2)


def collaboration_index(owned: int, total: int) -> float:
    """Fraction of repositories the user does not own."""
    if total <= 0:
        return 0.0
    return round((total - owned) / total, 2)


def split_contributions(commits: int, owned: int, total: int) -> tuple[int, int]:
    """Partition commits into (own, external) by the owned-repository share."""
    own = round(commits * owned / total) if total > 0 else 0
    return own, commits - own


def bug_slayer_score(closure: IssueClosure | None) -> float:
    if closure is None or closure.opened <= 0:
        return 0.0
    return round(closure.closed / closure.opened, 2)


async def collect_issue_closure(
    client: GitHubClient,
    username: str,
    repositories: list[RepositorySummary],
    window: PeriodWindow,
    config: EngineConfig = DEFAULT_CONFIG,
    deadline: Deadline | None = None,
    closure: IssueClosure | None = None,
) -> IssueClosure:
    """Count issues opened by ``username`` in sampled repositories and how many closed."""
    closure = closure if closure is not None else IssueClosure()
    for repo in repositories[: config.max_bug_slayer_repos]:
        if is_expired(deadline):
            break
        try:
            issues = await client.list_issues(
                repo.owner_login,
                repo.name,
                state="all",
                creator=username,
                since=window.api_since,
                until=window.api_until,
                max_pages=config.max_scan_pages,
            )
        except RateLimited:
            logger.warning("Issue sampling: rate limited at %s, stopping", repo.full_name)
            break
        except GitHubAPIError as exc:
            logger.debug("Issue sampling: skipping %s: %s", repo.full_name, exc)
            continue
        closure.opened += len(issues)
        closure.closed += sum(1 for i in issues if i.get("state") == "closed")
    return closure


def derive_metrics(
    counts: ContributionCounts,
    histogram: TimeHistogram,
    repositories: list[RepositorySummary],
    window: PeriodWindow,
    username: str,
    issue_closure: IssueClosure | None = None,
    language_weights: Mapping[str, float] | None = None,
    config: EngineConfig = DEFAULT_CONFIG,
    today: date | None = None,
) -> AdvancedMetrics:
    """Compute every advanced metric from already-collected data.

    ``language_weights`` (language -> bytes) takes precedence over the
    repositories' primary languages for the diversity index when given.
    """
    if today is None:
        today = datetime.now(ZoneInfo(config.timezone)).date()

    total = len(repositories)
    owned = sum(1 for r in repositories if r.is_owned_by(username))
    streak = compute_streak(histogram.active_dates, today, cap=config.streak_cap)
    own, external = split_contributions(counts.commits, owned, total)
    weights = language_weights or primary_language_counts(repositories)

    return AdvancedMetrics(
        consistency_score=consistency_score(
            len(histogram.active_dates), window.days_in_period
        ),
        streak=streak,
        streak_power=streak_power(streak),
        owl_index=owl_index(histogram, config),
        weekend_warrior_score=weekend_warrior_score(histogram),
        dark_coder_percentage=dark_coder_percentage(histogram),
        commit_velocity=commit_velocity(counts.commits, window.months_in_period),
        repo_diversity_index=shannon_entropy(weights),
        collaboration_index=collaboration_index(owned, total),
        bug_slayer_score=bug_slayer_score(issue_closure),
        own_repo_contributions=own,
        external_repo_contributions=external,
    )
