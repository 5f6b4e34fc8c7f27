"""
tests/test_target_progress.py

Pure target-progress derivation: percent complete, time progress,
on-track status and the collection summaries.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from db.models.target import Target
from targets.progress import (
    TargetProgress,
    build_progress,
    compare_periods,
    days_remaining,
    group_by_period,
    group_by_type,
    monthly_trend,
    summarize,
    time_progress,
)


def _utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def _target(
    *,
    target_value: float = 1000.0,
    actual_value: float = 0.0,
    start: datetime = _utc(2024, 1, 1),
    end: datetime = _utc(2024, 1, 11),
) -> Target:
    return Target(
        id=1,
        company_id=7,
        name="January revenue",
        target_type="revenue",
        target_value=target_value,
        actual_value=actual_value,
        start_date=start,
        end_date=end,
        period="monthly",
        status="active",
        currency="USD",
    )


def _progress(
    percent: float,
    on_track: bool,
    *,
    status: str = "active",
    target_type: str = "revenue",
    period: str = "monthly",
    target_value: float = 100.0,
    start: datetime = _utc(2024, 1, 1),
) -> TargetProgress:
    return TargetProgress(
        target_id=1,
        name="t",
        target_type=target_type,
        target_value=target_value,
        actual_value=target_value * percent / 100,
        percent_complete=percent,
        time_progress=50.0,
        on_track=on_track,
        days_remaining=10,
        start_date=start,
        end_date=_utc(2024, 12, 31),
        period=period,
        status=status,
    )


class TestTimeProgress:
    def test_before_start_is_zero(self) -> None:
        assert time_progress(_utc(2024, 2, 1), _utc(2024, 3, 1), _utc(2024, 1, 15)) == 0.0

    def test_after_end_is_hundred(self) -> None:
        assert time_progress(_utc(2024, 1, 1), _utc(2024, 1, 31), _utc(2024, 2, 5)) == 100.0

    def test_midway(self) -> None:
        assert time_progress(_utc(2024, 1, 1), _utc(2024, 1, 11), _utc(2024, 1, 5)) == pytest.approx(40.0)

    def test_zero_length_window_reached_is_hundred(self) -> None:
        moment = _utc(2024, 1, 1)
        assert time_progress(moment, moment, moment) == 100.0

    def test_naive_datetimes_are_treated_as_utc(self) -> None:
        naive_start = datetime(2024, 1, 1)
        naive_end = datetime(2024, 1, 11)
        assert time_progress(naive_start, naive_end, _utc(2024, 1, 6)) == pytest.approx(50.0)


class TestBuildProgress:
    def test_ahead_of_schedule_is_on_track(self) -> None:
        progress = build_progress(_target(actual_value=500.0), now=_utc(2024, 1, 5))
        assert progress.percent_complete == pytest.approx(50.0)
        assert progress.time_progress == pytest.approx(40.0)
        assert progress.on_track is True

    def test_behind_schedule(self) -> None:
        progress = build_progress(_target(actual_value=300.0), now=_utc(2024, 1, 5))
        assert progress.percent_complete == pytest.approx(30.0)
        assert progress.on_track is False

    def test_not_started_is_on_track(self) -> None:
        target = _target(start=_utc(2024, 2, 1), end=_utc(2024, 2, 29))
        progress = build_progress(target, now=_utc(2024, 1, 15))
        assert progress.time_progress == 0.0
        assert progress.on_track is True

    def test_finished_window(self) -> None:
        progress = build_progress(_target(actual_value=900.0), now=_utc(2024, 1, 20))
        assert progress.time_progress == 100.0
        assert progress.on_track is False
        assert progress.days_remaining == -9

    def test_zero_target_value(self) -> None:
        progress = build_progress(
            _target(target_value=0.0, actual_value=50.0), now=_utc(2024, 1, 5)
        )
        assert progress.percent_complete == 0.0

    def test_measured_value_overrides_cache(self) -> None:
        progress = build_progress(_target(actual_value=10.0), now=_utc(2024, 1, 5), actual=700.0)
        assert progress.actual_value == 700.0
        assert progress.percent_complete == pytest.approx(70.0)

    def test_days_remaining_uses_calendar_days(self) -> None:
        assert days_remaining(_utc(2024, 1, 11, 0), _utc(2024, 1, 5, 23)) == 6


class TestSummaries:
    def test_summarize(self) -> None:
        summary = summarize(
            [
                _progress(120.0, True),
                _progress(50.0, True),
                _progress(10.0, False, status="completed"),
            ]
        )
        assert summary.total_targets == 3
        assert summary.active_targets == 2
        assert summary.on_track == 2
        assert summary.behind == 1
        assert summary.achieved == 1
        assert summary.overall_completion_rate == pytest.approx(60.0)

    def test_summarize_empty(self) -> None:
        summary = summarize([])
        assert summary.total_targets == 0
        assert summary.overall_completion_rate == 0.0

    def test_group_by_type(self) -> None:
        groups = group_by_type(
            [
                _progress(50.0, True, target_value=1000.0),
                _progress(100.0, True, target_value=200.0),
                _progress(20.0, False, target_type="leads"),
            ]
        )
        assert [g.target_type for g in groups] == ["leads", "revenue"]
        revenue = groups[1]
        assert revenue.count == 2
        assert revenue.total_target == pytest.approx(1200.0)
        assert revenue.total_actual == pytest.approx(700.0)
        assert revenue.average_progress == pytest.approx(75.0)

    def test_group_by_period(self) -> None:
        groups = group_by_period(
            [
                _progress(50.0, True, period="monthly"),
                _progress(10.0, False, period="monthly"),
                _progress(90.0, True, period="quarterly"),
            ]
        )
        monthly = groups[0]
        assert (monthly.period, monthly.count, monthly.on_track_count) == ("monthly", 2, 1)
        assert monthly.average_progress == pytest.approx(30.0)

    def test_monthly_trend_by_start_month(self) -> None:
        trend = monthly_trend(
            [
                _progress(40.0, True, start=_utc(2024, 2, 1)),
                _progress(20.0, True, start=_utc(2024, 1, 1)),
                _progress(60.0, True, start=_utc(2024, 2, 15)),
            ]
        )
        assert [(p.month, p.progress) for p in trend] == [
            ("2024-01", pytest.approx(20.0)),
            ("2024-02", pytest.approx(50.0)),
        ]


class TestComparePeriods:
    @pytest.mark.parametrize(
        "current, previous, label",
        [
            (11, 10, "improving"),
            (9, 10, "declining"),
            (10, 10, "stable"),
            (21, 20, "stable"),
            (3, 0, "stable"),
        ],
    )
    def test_performance_change(self, current: int, previous: int, label: str) -> None:
        assert compare_periods(current, previous).performance_change == label

    def test_growth_value(self) -> None:
        assert compare_periods(11, 10).targets_growth == pytest.approx(10.0)
        assert compare_periods(3, 0).targets_growth == 0.0
