"""Language byte totals across a user's repositories."""

from __future__ import annotations

import logging

from .config import DEFAULT_CONFIG, EngineConfig
from .deadline import Deadline, is_expired
from .errors import GitHubAPIError, RateLimited
from .github.client import GitHubClient
from .models import LanguageStats, RepositorySummary

logger = logging.getLogger(__name__)


def to_language_stats(lang_totals: dict[str, int]) -> list[LanguageStats]:
    total_bytes = sum(lang_totals.values())
    return [
        LanguageStats(
            language=lang,
            bytes=b,
            percentage=round(b / total_bytes * 100, 1) if total_bytes else 0,
        )
        for lang, b in sorted(lang_totals.items(), key=lambda x: x[1], reverse=True)
    ]


def language_percentages(stats: list[LanguageStats]) -> dict[str, float]:
    return {s.language: s.percentage for s in stats}


async def collect_language_stats(
    client: GitHubClient,
    repositories: list[RepositorySummary],
    config: EngineConfig = DEFAULT_CONFIG,
    deadline: Deadline | None = None,
    lang_totals: dict[str, int] | None = None,
) -> list[LanguageStats]:
    """Sum language bytes over a bounded subset of repositories."""
    lang_totals = lang_totals if lang_totals is not None else {}
    for repo in repositories[: config.max_language_repos]:
        if is_expired(deadline):
            logger.warning("Language stats: deadline reached")
            break
        try:
            breakdown = await client.get_languages(repo.owner_login, repo.name)
        except RateLimited:
            logger.warning("Language stats: rate limited at %s, stopping", repo.full_name)
            break
        except GitHubAPIError as exc:
            logger.debug("Language stats: skipping %s: %s", repo.full_name, exc)
            continue
        for lang, b in breakdown.items():
            lang_totals[lang] = lang_totals.get(lang, 0) + b
    return to_language_stats(lang_totals)
