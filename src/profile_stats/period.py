"""Period resolution: symbolic time windows to concrete date boundaries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum

from .errors import InvalidPeriod

# GitHub's public launch; the lower bound of the "all" window.
GITHUB_FOUNDED = datetime(2008, 4, 10, tzinfo=timezone.utc)
AVG_DAYS_PER_MONTH = 365.25 / 12


class Period(str, Enum):
    ALL = "all"
    YEAR = "year"
    MONTH = "month"
    LAST_YEAR = "last-year"
    LAST_MONTH = "last-month"

    @classmethod
    def parse(cls, value: str | Period) -> Period:
        if isinstance(value, Period):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidPeriod(value) from None

    @classmethod
    def choices(cls) -> list[str]:
        return [p.value for p in cls]


def _iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True)
class PeriodWindow:
    """A resolved period. ``end`` is exclusive; None means "through now"."""

    period: Period
    start: datetime
    end: datetime | None
    days_in_period: int
    months_in_period: int

    @property
    def is_bounded(self) -> bool:
        return self.period is not Period.ALL

    @property
    def api_since(self) -> str | None:
        return _iso(self.start) if self.is_bounded else None

    @property
    def api_until(self) -> str | None:
        if not self.is_bounded or self.end is None:
            return None
        return _iso(self.end - timedelta(seconds=1))

    def search_range(self) -> str | None:
        """Inclusive ``YYYY-MM-DD..YYYY-MM-DD`` range for search qualifiers."""
        if not self.is_bounded or self.end is None:
            return None
        last_day = (self.end - timedelta(days=1)).date()
        return f"{self.start.date().isoformat()}..{last_day.isoformat()}"

    def search_qualifier(self, field: str) -> str:
        date_range = self.search_range()
        return f" {field}:{date_range}" if date_range else ""

    def contains(self, when: datetime) -> bool:
        if not self.is_bounded:
            return True
        if when < self.start:
            return False
        return self.end is None or when < self.end


def _month_start(year: int, month: int) -> datetime:
    return datetime(year, month, 1, tzinfo=timezone.utc)


def _add_months(dt: datetime, months: int) -> datetime:
    index = dt.year * 12 + (dt.month - 1) + months
    return _month_start(index // 12, index % 12 + 1)


def _months_between(start: datetime, end: datetime) -> int:
    return (end.year - start.year) * 12 + (end.month - start.month)


def resolve_period(period: str | Period, now: datetime | None = None) -> PeriodWindow:
    """Resolve ``period`` relative to ``now`` (defaults to the current UTC time).

    Raises InvalidPeriod for anything outside the Period enumeration.
    """
    period = Period.parse(period)
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    this_month = _month_start(now.year, now.month)
    end: datetime | None
    if period is Period.MONTH:
        start, end = this_month, _add_months(this_month, 1)
    elif period is Period.LAST_MONTH:
        start, end = _add_months(this_month, -1), this_month
    elif period is Period.YEAR:
        start = datetime(now.year, 1, 1, tzinfo=timezone.utc)
        end = datetime(now.year + 1, 1, 1, tzinfo=timezone.utc)
    elif period is Period.LAST_YEAR:
        start = datetime(now.year - 1, 1, 1, tzinfo=timezone.utc)
        end = datetime(now.year, 1, 1, tzinfo=timezone.utc)
    else:
        start, end = GITHUB_FOUNDED, None

    if end is None:
        days = (now.date() - start.date()).days + 1
        months = max(1, round(days / AVG_DAYS_PER_MONTH))
    else:
        days = (end - start).days
        months = _months_between(start, end)

    return PeriodWindow(
        period=period,
        start=start,
        end=end,
        days_in_period=days,
        months_in_period=months,
    )
