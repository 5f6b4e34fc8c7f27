"""
targets/progress.py

Pure target-progress derivation.

Nothing in this module touches the database. Every function is
parameterised by ``now`` so progress can be evaluated at any instant::

    percent_complete = actual / target_value × 100          (0 if target_value == 0)
    time_progress    = elapsed / window × 100, clamped to [0, 100]
    on_track         = time_progress <= 0 or percent_complete >= time_progress
    days_remaining   = end.date() - now.date()               (negative when overdue)

A target that has not started yet is on track by definition; a target
whose window has closed has a time progress of exactly 100.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

from app.domain.metrics import AsDictMixin
from db.base import as_utc
from db.models.target import Target
from kpi.base import percentage, safe_ratio

ACTIVE_STATUS = "active"

IMPROVING = "improving"
DECLINING = "declining"
STABLE = "stable"

PERFORMANCE_CHANGE_BAND = 5.0


@dataclass(frozen=True)
class TargetProgress(AsDictMixin):
    target_id: int
    name: str
    target_type: str
    target_value: float
    actual_value: float
    percent_complete: float
    time_progress: float
    on_track: bool
    days_remaining: int
    start_date: datetime
    end_date: datetime
    period: str
    status: str
    user_id: int | None = None
    team_id: int | None = None


@dataclass(frozen=True)
class TargetPerformanceSummary(AsDictMixin):
    total_targets: int
    active_targets: int
    on_track: int
    behind: int
    achieved: int
    overall_completion_rate: float


@dataclass(frozen=True)
class TargetTypeSummary(AsDictMixin):
    target_type: str
    count: int
    total_target: float
    total_actual: float
    average_progress: float


@dataclass(frozen=True)
class TargetPeriodSummary(AsDictMixin):
    period: str
    count: int
    on_track_count: int
    average_progress: float


@dataclass(frozen=True)
class TargetMonthlyProgress(AsDictMixin):
    month: str
    progress: float


@dataclass(frozen=True)
class TargetComparison(AsDictMixin):
    current_targets: int
    previous_targets: int
    targets_growth: float
    performance_change: str


# ---------------------------------------------------------------------------
# Single-target derivation
# ---------------------------------------------------------------------------


def percent_complete(actual: float, target_value: float) -> float:
    return percentage(actual, target_value)


def time_progress(start: datetime, end: datetime, now: datetime) -> float:
    """
    Share of the target window already elapsed at *now*, in percent.

    A zero-length window that *now* has reached counts as fully elapsed.
    """
    start, end, now = as_utc(start), as_utc(end), as_utc(now)
    if now < start:
        return 0.0
    if now > end:
        return 100.0
    window = (end - start).total_seconds()
    if window <= 0:
        return 100.0
    return (now - start).total_seconds() / window * 100


def is_on_track(percent: float, elapsed: float) -> bool:
    return elapsed <= 0 or percent >= elapsed


def days_remaining(end: datetime, now: datetime) -> int:
    return (as_utc(end).date() - as_utc(now).date()).days


def build_progress(target: Target, *, now: datetime, actual: float | None = None) -> TargetProgress:
    """
    Derive :class:`TargetProgress` for *target* at *now*.

    Parameters
    ----------
    target:
        The persisted target row.
    now:
        Evaluation instant (timezone-aware).
    actual:
        Freshly measured value. Defaults to the cached ``target.actual_value``.
    """
    value = target.actual_value if actual is None else actual
    value = float(value or 0.0)
    percent = percent_complete(value, target.target_value)
    elapsed = time_progress(target.start_date, target.end_date, now)

    return TargetProgress(
        target_id=target.id,
        name=target.name,
        target_type=target.target_type,
        target_value=float(target.target_value),
        actual_value=value,
        percent_complete=percent,
        time_progress=elapsed,
        on_track=is_on_track(percent, elapsed),
        days_remaining=days_remaining(target.end_date, now),
        start_date=as_utc(target.start_date),
        end_date=as_utc(target.end_date),
        period=target.period,
        status=target.status,
        user_id=target.user_id,
        team_id=target.team_id,
    )


# ---------------------------------------------------------------------------
# Collection summaries
# ---------------------------------------------------------------------------


def summarize(progress: Sequence[TargetProgress]) -> TargetPerformanceSummary:
    on_track = sum(1 for p in progress if p.on_track)
    return TargetPerformanceSummary(
        total_targets=len(progress),
        active_targets=sum(1 for p in progress if p.status == ACTIVE_STATUS),
        on_track=on_track,
        behind=len(progress) - on_track,
        achieved=sum(1 for p in progress if p.percent_complete >= 100),
        overall_completion_rate=safe_ratio(
            sum(p.percent_complete for p in progress), len(progress)
        ),
    )


def group_by_type(progress: Iterable[TargetProgress]) -> tuple[TargetTypeSummary, ...]:
    groups: dict[str, list[TargetProgress]] = defaultdict(list)
    for item in progress:
        groups[item.target_type].append(item)

    return tuple(
        TargetTypeSummary(
            target_type=key,
            count=len(items),
            total_target=sum(p.target_value for p in items),
            total_actual=sum(p.actual_value for p in items),
            average_progress=safe_ratio(sum(p.percent_complete for p in items), len(items)),
        )
        for key, items in sorted(groups.items())
    )


def group_by_period(progress: Iterable[TargetProgress]) -> tuple[TargetPeriodSummary, ...]:
    groups: dict[str, list[TargetProgress]] = defaultdict(list)
    for item in progress:
        groups[item.period].append(item)

    return tuple(
        TargetPeriodSummary(
            period=key,
            count=len(items),
            on_track_count=sum(1 for p in items if p.on_track),
            average_progress=safe_ratio(sum(p.percent_complete for p in items), len(items)),
        )
        for key, items in sorted(groups.items())
    )


def monthly_trend(progress: Iterable[TargetProgress]) -> tuple[TargetMonthlyProgress, ...]:
    """Mean completion of targets grouped by the month their window starts."""
    groups: dict[str, list[float]] = defaultdict(list)
    for item in progress:
        groups[item.start_date.strftime("%Y-%m")].append(item.percent_complete)

    return tuple(
        TargetMonthlyProgress(month=month, progress=safe_ratio(sum(values), len(values)))
        for month, values in sorted(groups.items())
    )


def compare_periods(current_count: int, previous_count: int) -> TargetComparison:
    """
    Compare the number of targets live in two periods.

    Growth beyond ±5 % flips the label to ``improving`` / ``declining``.
    With no targets in the previous period the comparison stays ``stable``.
    """
    change = percentage(current_count - previous_count, previous_count)
    if change > PERFORMANCE_CHANGE_BAND:
        label = IMPROVING
    elif change < -PERFORMANCE_CHANGE_BAND:
        label = DECLINING
    else:
        label = STABLE

    return TargetComparison(
        current_targets=current_count,
        previous_targets=previous_count,
        targets_growth=change,
        performance_change=label,
    )
