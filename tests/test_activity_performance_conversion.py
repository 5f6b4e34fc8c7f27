"""
tests/test_activity_performance_conversion.py

Sales activity, per-user ranking and conversion breakdown calculators.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from app.domain.metrics import (
    ConversionCounts,
    MonthlyConversion,
    RawActivityMetrics,
    RawConversionMetrics,
    RawUserPerformance,
)
from app.domain.period import Period
from kpi.activity import SalesActivityCalculator
from kpi.conversion import ConversionCalculator
from kpi.performance import PerformanceCalculator

TEN_DAYS = Period(
    start=datetime(2024, 1, 1, tzinfo=timezone.utc),
    end=datetime(2024, 1, 11, tzinfo=timezone.utc),
)


class TestSalesActivityCalculator:
    def test_activity_rates(self) -> None:
        result = SalesActivityCalculator().calculate(
            RawActivityMetrics(lead_activities=20, deal_activities=10), TEN_DAYS
        )
        assert result.total_activities == 30
        assert result.activities_per_day == pytest.approx(3.0)
        assert result.pipeline_share == pytest.approx(33.3333, rel=1e-4)

    def test_no_activity(self) -> None:
        result = SalesActivityCalculator().calculate(RawActivityMetrics(), TEN_DAYS)
        assert result.total_activities == 0
        assert result.activities_per_day == 0.0
        assert result.pipeline_share == 0.0


class TestPerformanceCalculator:
    @pytest.fixture()
    def rankings(self):
        raw = [
            RawUserPerformance(user_id=3, leads=5, won_deals=0, revenue=0.0),
            RawUserPerformance(user_id=2, leads=4, won_deals=2, revenue=5000.0),
            RawUserPerformance(user_id=4, leads=0, won_deals=1, revenue=100.0),
            RawUserPerformance(user_id=1, leads=10, won_deals=2, revenue=5000.0),
        ]
        return PerformanceCalculator().calculate(raw, TEN_DAYS)

    def test_ranked_by_revenue_then_wins_then_id(self, rankings) -> None:
        assert [u.user_id for u in rankings.users] == [1, 2, 4, 3]
        assert [u.rank for u in rankings.users] == [1, 2, 3, 4]

    def test_top_performers_are_first_three(self, rankings) -> None:
        assert [u.user_id for u in rankings.top_performers] == [1, 2, 4]

    def test_per_user_ratios(self, rankings) -> None:
        first = rankings.users[0]
        assert first.average_deal_size == pytest.approx(2500.0)
        assert first.conversion_rate == pytest.approx(20.0)
        no_leads = rankings.users[2]
        assert no_leads.conversion_rate == 0.0

    def test_improvement_opportunities_below_team_mean(self, rankings) -> None:
        assert rankings.team_conversion_rate == pytest.approx(17.5)
        assert [u.user_id for u in rankings.improvement_opportunities] == [4, 3]

    def test_top_n_is_configurable(self) -> None:
        raw = [RawUserPerformance(user_id=i, revenue=float(i)) for i in range(1, 6)]
        result = PerformanceCalculator(top_n=1).calculate(raw, TEN_DAYS)
        assert [u.user_id for u in result.top_performers] == [5]

    def test_no_users(self) -> None:
        result = PerformanceCalculator().calculate([], TEN_DAYS)
        assert result.users == ()
        assert result.team_conversion_rate == 0.0


class TestConversionCalculator:
    def test_breakdowns_sorted_by_volume_then_key(self) -> None:
        raw = RawConversionMetrics(
            total_leads=40,
            converted_leads=8,
            by_source={
                "web": ConversionCounts(leads=10, converted=2),
                "ads": ConversionCounts(leads=10, converted=5),
                "referral": ConversionCounts(leads=20, converted=1),
            },
        )
        result = ConversionCalculator().calculate(raw, TEN_DAYS)
        assert result.overall_conversion_rate == pytest.approx(20.0)
        assert [(b.key, b.rate) for b in result.by_source] == [
            ("referral", pytest.approx(5.0)),
            ("ads", pytest.approx(50.0)),
            ("web", pytest.approx(20.0)),
        ]

    def test_trend_rates_guard_empty_months(self) -> None:
        raw = RawConversionMetrics(
            monthly_trend=(
                MonthlyConversion(month="2024-01", leads=0, converted=0),
                MonthlyConversion(month="2024-02", leads=4, converted=1),
            )
        )
        result = ConversionCalculator().calculate(raw, TEN_DAYS)
        assert [p.rate for p in result.trend] == [0.0, pytest.approx(25.0)]

    def test_empty(self) -> None:
        result = ConversionCalculator().calculate(RawConversionMetrics(), TEN_DAYS)
        assert result.overall_conversion_rate == 0.0
        assert result.by_source == ()
        assert result.by_campaign == ()
