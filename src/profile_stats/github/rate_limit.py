"""GitHub API rate limit monitoring."""

from __future__ import annotations

import asyncio
import logging
import time

import httpx

from ..errors import RateLimited

logger = logging.getLogger(__name__)


class RateLimitMonitor:
    """Monitors GitHub API rate limits from response headers.

    Core and search requests are metered separately by GitHub, so state is
    kept per ``X-RateLimit-Resource``.
    """

    def __init__(self, threshold: int = 10, max_wait: float = 60.0) -> None:
        self._remaining: dict[str, int] = {}
        self._reset_at: dict[str, float] = {}
        self._threshold = threshold
        self._max_wait = max_wait

    def update(self, response: httpx.Response) -> None:
        resource = response.headers.get("X-RateLimit-Resource") or "core"
        remaining = response.headers.get("X-RateLimit-Remaining")
        reset_at = response.headers.get("X-RateLimit-Reset")
        if remaining is not None:
            self._remaining[resource] = int(remaining)
        if reset_at is not None:
            self._reset_at[resource] = float(reset_at)

    async def wait_if_needed(self, resource: str = "core") -> None:
        """Sleep until reset when the quota is nearly spent.

        Waits longer than ``max_wait`` are not worth blocking a snapshot
        for: an exhausted quota raises RateLimited instead, and a low one
        just proceeds.
        """
        remaining = self._remaining.get(resource)
        reset_at = self._reset_at.get(resource)
        if remaining is None or reset_at is None or remaining > self._threshold:
            return
        wait_seconds = max(0, reset_at - time.time()) + 1
        if wait_seconds <= self._max_wait:
            logger.info(
                "%s rate limit low (%d left), waiting %.0fs", resource, remaining, wait_seconds
            )
            await asyncio.sleep(wait_seconds)
            return
        if remaining == 0:
            raise RateLimited(
                f"{resource} rate limit exhausted until {reset_at:.0f}",
                reset_at=reset_at,
            )
