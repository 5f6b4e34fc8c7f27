"""
app/domain/period.py

Period and filter value objects.

A :class:`Period` is an inclusive ``[start, end]`` range of timezone-aware
UTC datetimes. Periods built from date-only input are end-date-inclusive:
the end is pushed to 23:59:59 of its calendar day.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime, time, timedelta, timezone

from app.domain.errors import InvalidDateFormat, InvalidRange

DATE_FORMAT = "%Y-%m-%d"
DEFAULT_LOOKBACK_DAYS = 30

_END_OF_DAY = time(23, 59, 59)


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass(frozen=True)
class Period:
    """Inclusive time window bounding every aggregation query."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise InvalidRange(
                f"end date cannot be before start date; "
                f"got {self.start.isoformat()} > {self.end.isoformat()}"
            )

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def days(self) -> int:
        """Number of days covered, rounded up and never below one."""
        return max(1, math.ceil(self.duration.total_seconds() / 86400))

    def previous(self) -> Period:
        """
        The immediately preceding period of equal duration::

            prev_end   = start
            prev_start = start - (end - start)
        """
        return Period(start=self.start - self.duration, end=self.start)

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end

    def to_dict(self) -> dict[str, str]:
        return {
            "start_date": self.start.date().isoformat(),
            "end_date": self.end.date().isoformat(),
        }


@dataclass(frozen=True)
class AnalyticsFilters:
    """
    Request-scoped filter set. ``company_id`` is mandatory; every other
    dimension narrows the aggregation when set.

    ``source``, ``status`` and ``campaign`` apply to lead queries;
    ``stage`` applies to deal queries; ``user_id`` applies to both.
    """

    period: Period
    company_id: int
    user_id: int | None = None
    source: str | None = None
    status: str | None = None
    stage: str | None = None
    campaign: str | None = None

    def with_period(self, period: Period) -> AnalyticsFilters:
        return replace(self, period=period)


def parse_date(value: str, field: str) -> datetime:
    """Parse a strict ``YYYY-MM-DD`` string into midnight UTC."""
    try:
        parsed = datetime.strptime(value.strip(), DATE_FORMAT)
    except (AttributeError, ValueError) as exc:
        raise InvalidDateFormat(field, str(value)) from exc
    return parsed.replace(tzinfo=timezone.utc)


def end_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), _END_OF_DAY, tzinfo=value.tzinfo or timezone.utc)


def build_period(
    start_date: str | None = None,
    end_date: str | None = None,
    *,
    now: datetime | None = None,
    lookback_days: int = DEFAULT_LOOKBACK_DAYS,
) -> Period:
    """
    Build a :class:`Period` from optional ``YYYY-MM-DD`` strings.

    * missing start → ``now - lookback_days``
    * missing end   → ``now``
    * the end is always advanced to 23:59:59 of its day

    Raises
    ------
    InvalidDateFormat
        A supplied string is not a valid ``YYYY-MM-DD`` date.
    InvalidRange
        The adjusted end falls before the start.
    """
    current = now or utc_now()

    if start_date:
        start = parse_date(start_date, "start_date")
    else:
        start = current - timedelta(days=lookback_days)

    end = parse_date(end_date, "end_date") if end_date else current
    return Period(start=start, end=end_of_day(end))


def build_filters(
    company_id: int,
    start_date: str | None = None,
    end_date: str | None = None,
    *,
    user_id: int | None = None,
    source: str | None = None,
    status: str | None = None,
    stage: str | None = None,
    campaign: str | None = None,
    now: datetime | None = None,
    lookback_days: int = DEFAULT_LOOKBACK_DAYS,
) -> AnalyticsFilters:
    """Validate raw request input into :class:`AnalyticsFilters`."""
    period = build_period(start_date, end_date, now=now, lookback_days=lookback_days)
    return AnalyticsFilters(
        period=period,
        company_id=company_id,
        user_id=user_id,
        source=source or None,
        status=status or None,
        stage=stage or None,
        campaign=campaign or None,
    )
