"""Whole-request deadline shared by the collectors."""

from __future__ import annotations

import time


class Deadline:
    """A monotonic point in time after which collectors stop fetching."""

    def __init__(self, seconds: float | None = None) -> None:
        self._expires_at = (
            time.monotonic() + seconds if seconds is not None else None
        )

    @property
    def expired(self) -> bool:
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    def remaining(self) -> float | None:
        """Seconds left, or None when the request has no deadline."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())


def is_expired(deadline: Deadline | None) -> bool:
    return deadline is not None and deadline.expired
