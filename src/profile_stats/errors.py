"""Exception hierarchy for profile-stats."""

from __future__ import annotations


class ProfileStatsError(Exception):
    """Base class for all profile-stats errors."""


class InvalidPeriod(ProfileStatsError, ValueError):
    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"Invalid period {value!r}")


class UserNotFound(ProfileStatsError):
    def __init__(self, username: str) -> None:
        self.username = username
        super().__init__(f"User '{username}' not found")


class GitHubAPIError(ProfileStatsError):
    """A failed call to the GitHub REST API."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class NotFound(GitHubAPIError):
    pass


class AccessDenied(GitHubAPIError):
    pass


class RateLimited(GitHubAPIError):
    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        reset_at: float | None = None,
    ) -> None:
        self.reset_at = reset_at
        super().__init__(message, status_code)


class UpstreamUnavailable(GitHubAPIError):
    pass


class RepositoryAccessDenied(GitHubAPIError):
    """A per-repository fetch failed; the repository should be skipped."""

    def __init__(self, full_name: str, status_code: int | None = None) -> None:
        self.full_name = full_name
        super().__init__(f"{full_name}: not accessible", status_code)
