"""Data models for profile-stats."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from .period import PeriodWindow


@dataclass
class LanguageStats:
    language: str
    bytes: int
    percentage: float


@dataclass
class UserProfile:
    login: str
    name: str | None = None
    avatar_url: str | None = None
    bio: str | None = None
    public_repos: int = 0
    followers: int = 0
    following: int = 0
    created_at: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> UserProfile:
        return cls(
            login=data["login"],
            name=data.get("name"),
            avatar_url=data.get("avatar_url"),
            bio=data.get("bio"),
            public_repos=data.get("public_repos") or 0,
            followers=data.get("followers") or 0,
            following=data.get("following") or 0,
            created_at=data.get("created_at"),
        )

    @property
    def display_name(self) -> str:
        return self.name or self.login


@dataclass
class RepositorySummary:
    id: int
    owner_login: str
    name: str
    language: str | None = None
    is_private: bool = False
    star_count: int = 0
    fork_count: int = 0

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> RepositorySummary:
        owner = data.get("owner") or {}
        return cls(
            id=data["id"],
            owner_login=owner.get("login", ""),
            name=data["name"],
            language=data.get("language"),
            is_private=bool(data.get("private", False)),
            star_count=data.get("stargazers_count") or 0,
            fork_count=data.get("forks_count") or 0,
        )

    @property
    def full_name(self) -> str:
        return f"{self.owner_login}/{self.name}"

    def is_owned_by(self, username: str) -> bool:
        return self.owner_login.lower() == username.lower()


@dataclass
class ContributionCounts:
    commits: int = 0
    pull_requests: int = 0
    issues: int = 0
    reviews: int = 0

    def __add__(self, other: ContributionCounts) -> ContributionCounts:
        return ContributionCounts(
            commits=self.commits + other.commits,
            pull_requests=self.pull_requests + other.pull_requests,
            issues=self.issues + other.issues,
            reviews=self.reviews + other.reviews,
        )

    @property
    def total(self) -> int:
        return self.commits + self.pull_requests + self.issues + self.reviews


@dataclass
class TimeHistogram:
    """Commit timestamps bucketed by hour, weekday (0 = Monday) and date."""

    by_hour: list[int] = field(default_factory=lambda: [0] * 24)
    by_day: list[int] = field(default_factory=lambda: [0] * 7)
    by_date: dict[date, int] = field(default_factory=dict)

    def record(self, when: datetime) -> None:
        self.by_hour[when.hour] += 1
        self.by_day[when.weekday()] += 1
        day = when.date()
        self.by_date[day] = self.by_date.get(day, 0) + 1

    @property
    def total(self) -> int:
        return sum(self.by_hour)

    @property
    def active_dates(self) -> list[date]:
        return sorted(d for d, count in self.by_date.items() if count > 0)

    def hours_total(self, hours: range | list[int]) -> int:
        return sum(self.by_hour[h] for h in hours)


@dataclass
class Streak:
    current: int = 0
    max: int = 0


@dataclass
class IssueClosure:
    """Issues opened by the user in sampled repositories, and how many closed."""

    opened: int = 0
    closed: int = 0


@dataclass
class AdvancedMetrics:
    consistency_score: int = 0
    streak: Streak = field(default_factory=Streak)
    streak_power: int = 0
    owl_index: float = 0.0
    weekend_warrior_score: int = 0
    dark_coder_percentage: int = 0
    commit_velocity: int = 0
    repo_diversity_index: float = 0.0
    collaboration_index: float = 0.0
    bug_slayer_score: float = 0.0
    own_repo_contributions: int = 0
    external_repo_contributions: int = 0


@dataclass
class UserStatsSnapshot:
    user: UserProfile
    period: PeriodWindow
    repositories: list[RepositorySummary] = field(default_factory=list)
    counts: ContributionCounts = field(default_factory=ContributionCounts)
    histogram: TimeHistogram = field(default_factory=TimeHistogram)
    metrics: AdvancedMetrics = field(default_factory=AdvancedMetrics)
    languages: list[LanguageStats] = field(default_factory=list)
    organizations: int = 0
    is_estimated: bool = False
    estimation_reason: str | None = None

    @property
    def total_repos(self) -> int:
        return len(self.repositories)

    @property
    def public_repos(self) -> int:
        return sum(1 for r in self.repositories if not r.is_private)

    @property
    def private_repos(self) -> int:
        return sum(1 for r in self.repositories if r.is_private)

    @property
    def total_stars(self) -> int:
        return sum(r.star_count for r in self.repositories)

    @property
    def total_forks(self) -> int:
        return sum(r.fork_count for r in self.repositories)
