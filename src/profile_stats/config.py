"""Tunable limits and heuristic constants for the analytics engine."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class EngineConfig:
    """Request-volume caps and scoring constants.

    The sampling caps only exist to keep a single snapshot inside the
    GitHub rate limits; raising them makes results more complete at the
    cost of more requests.
    """

    per_page: int = 100
    max_repo_pages: int = 10
    max_scan_repos: int = 30
    max_scan_pages: int = 5
    max_sample_repos: int = 10
    max_commits_per_repo: int = 100
    max_language_repos: int = 50
    max_bug_slayer_repos: int = 10
    sample_delay: float = 0.1
    include_private: bool = True
    timezone: str = "UTC"

    reconcile_threshold: float = 1.5
    streak_cap: int = 100
    owl_floor: float = 0.1
    owl_ceiling: float = 5.0
    owl_no_morning: float = 3.0

    def replace(self, **overrides: Any) -> EngineConfig:
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return dataclasses.replace(self, **changes)


DEFAULT_CONFIG = EngineConfig()
