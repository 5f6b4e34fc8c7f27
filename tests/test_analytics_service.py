"""
tests/test_analytics_service.py

AnalyticsService end-to-end over an in-memory metric source.

The fake source answers per period start, so current and previous period
requests can be told apart without a database.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from app.config import AnalyticsSettings
from app.domain.errors import AnalyticsError, SourceUnavailable
from app.domain.metrics import (
    ConversionCounts,
    RawActivityMetrics,
    RawConversionMetrics,
    RawDealMetrics,
    RawLeadMetrics,
    RawUserPerformance,
    StageTotals,
)
from app.domain.period import AnalyticsFilters, Period, build_filters
from app.services.analytics_service import AnalyticsService
from app.services.metric_source import MetricSource
from insights.rules import LOW_WIN_RATE, TARGETS_EXCELLENT
from targets.progress import TargetProgress


class FakeSource(MetricSource):
    def __init__(self) -> None:
        self.leads: dict[datetime, RawLeadMetrics] = {}
        self.deals: dict[datetime, RawDealMetrics] = {}
        self.activity: dict[datetime, RawActivityMetrics] = {}
        self.conversion: dict[datetime, RawConversionMetrics] = {}
        self.stages: list[StageTotals] = []
        self.users: list[RawUserPerformance] = []
        self.calls: list[tuple[str, Period]] = []
        self.fail = False

    def _record(self, name: str, filters: AnalyticsFilters) -> None:
        if self.fail:
            raise SourceUnavailable("store offline")
        self.calls.append((name, filters.period))

    def lead_metrics(self, filters):
        self._record("lead_metrics", filters)
        return self.leads.get(filters.period.start, RawLeadMetrics())

    def deal_metrics(self, filters):
        self._record("deal_metrics", filters)
        return self.deals.get(filters.period.start, RawDealMetrics())

    def funnel_stages(self, filters):
        self._record("funnel_stages", filters)
        return list(self.stages)

    def activity_metrics(self, filters):
        self._record("activity_metrics", filters)
        return self.activity.get(filters.period.start, RawActivityMetrics())

    def user_performance(self, filters):
        self._record("user_performance", filters)
        return list(self.users)

    def conversion_metrics(self, filters):
        self._record("conversion_metrics", filters)
        return self.conversion.get(filters.period.start, RawConversionMetrics())

    def target_actual_value(self, target_type, *, company_id, start, end, user_id=None):
        raise AssertionError("not used by the facade")


class FakeTracker:
    def __init__(self, progress: list[TargetProgress], previous_count: int) -> None:
        self._progress = progress
        self._previous_count = previous_count
        self.refreshed: list[AnalyticsFilters] = []

    def refresh_overlapping(self, filters: AnalyticsFilters) -> list[TargetProgress]:
        self.refreshed.append(filters)
        return list(self._progress)

    def count_overlapping(self, company_id: int, period: Period, *, user_id=None) -> int:
        return self._previous_count


def _progress(on_track: bool, percent: float) -> TargetProgress:
    return TargetProgress(
        target_id=1,
        name="t",
        target_type="revenue",
        target_value=100.0,
        actual_value=percent,
        percent_complete=percent,
        time_progress=50.0,
        on_track=on_track,
        days_remaining=5,
        start_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        end_date=datetime(2024, 1, 31, tzinfo=timezone.utc),
        period="monthly",
        status="active",
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def filters() -> AnalyticsFilters:
    return build_filters(7, "2024-01-01", "2024-01-31")


@pytest.fixture()
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture()
def service(source: FakeSource) -> AnalyticsService:
    return AnalyticsService(source, settings=AnalyticsSettings())


def _current(filters: AnalyticsFilters) -> datetime:
    return filters.period.start


def _previous(filters: AnalyticsFilters) -> datetime:
    return filters.period.previous().start


# ---------------------------------------------------------------------------
# Lead & deal analytics
# ---------------------------------------------------------------------------


class TestLeadAnalytics:
    def test_january_scenario(self, service, source, filters) -> None:
        source.leads[_current(filters)] = RawLeadMetrics(total_leads=100, converted_leads=25)
        source.leads[_previous(filters)] = RawLeadMetrics(total_leads=80)

        result = service.lead_analytics(filters)

        assert result.metrics.conversion_rate == pytest.approx(25.0)
        assert result.growth.rate == pytest.approx(25.0)
        assert result.growth.trend == "up"
        assert result.insights == ()

    def test_queries_current_then_previous_period(self, service, source, filters) -> None:
        service.lead_analytics(filters)
        assert [period for _, period in source.calls] == [
            filters.period,
            filters.period.previous(),
        ]

    def test_empty_store_yields_zeroes_and_no_insights(self, service, filters) -> None:
        result = service.lead_analytics(filters)
        assert result.metrics.conversion_rate == 0.0
        assert result.growth.trend == "stable"
        assert result.insights == ()

    def test_to_dict_shape(self, service, source, filters) -> None:
        source.leads[_current(filters)] = RawLeadMetrics(total_leads=10, leads_by_source={"web": 10})
        payload = service.lead_analytics(filters).to_dict()
        assert payload["period"] == {"start_date": "2024-01-01", "end_date": "2024-01-31"}
        assert payload["metrics"]["leads_by_source"] == {"web": 10}
        assert payload["growth"]["trend"] == "stable"

    def test_source_failure_propagates(self, service, source, filters) -> None:
        source.fail = True
        with pytest.raises(SourceUnavailable):
            service.lead_analytics(filters)


class TestDealAnalytics:
    def test_growth_and_win_rate_insight(self, service, source, filters) -> None:
        source.deals[_current(filters)] = RawDealMetrics(
            total_deals=10, won_deals=1, lost_deals=9, total_revenue=1000.0
        )
        source.deals[_previous(filters)] = RawDealMetrics(total_deals=20, total_revenue=500.0)

        result = service.deal_analytics(filters)

        assert result.metrics.win_rate == pytest.approx(10.0)
        assert result.deal_growth.rate == pytest.approx(-50.0)
        assert result.deal_growth.trend == "down"
        assert result.revenue_growth.rate == pytest.approx(100.0)
        assert result.insights == (LOW_WIN_RATE,)


# ---------------------------------------------------------------------------
# Activity, performance, funnel, conversion
# ---------------------------------------------------------------------------


class TestOtherKinds:
    def test_sales_activity_growth(self, service, source, filters) -> None:
        source.activity[_current(filters)] = RawActivityMetrics(lead_activities=20, deal_activities=11)
        source.activity[_previous(filters)] = RawActivityMetrics(lead_activities=31)
        result = service.sales_activity_analytics(filters)
        assert result.metrics.total_activities == 31
        assert result.metrics.activities_per_day == pytest.approx(1.0)
        assert result.growth.trend == "stable"

    def test_performance_rankings(self, service, source, filters) -> None:
        source.users = [
            RawUserPerformance(user_id=1, leads=4, won_deals=1, revenue=10.0),
            RawUserPerformance(user_id=2, leads=4, won_deals=2, revenue=90.0),
        ]
        result = service.performance_analytics(filters)
        assert [u.user_id for u in result.rankings.top_performers] == [2, 1]

    def test_funnel_warning(self, service, source, filters) -> None:
        source.stages = [StageTotals("lead", 100), StageTotals("qualified", 5)]
        result = service.funnel_analytics(filters)
        assert result.funnel.health == "critical"
        assert len(result.insights) == 1
        assert "lead → qualified" in result.insights[0]

    def test_conversion_growth(self, service, source, filters) -> None:
        source.conversion[_current(filters)] = RawConversionMetrics(
            total_leads=10,
            converted_leads=2,
            by_source={"web": ConversionCounts(leads=10, converted=2)},
        )
        source.conversion[_previous(filters)] = RawConversionMetrics(total_leads=10, converted_leads=1)
        result = service.conversion_analytics(filters)
        assert result.metrics.overall_conversion_rate == pytest.approx(20.0)
        assert result.growth.rate == pytest.approx(100.0)
        assert result.insights == ()


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


class TestDashboardAnalytics:
    def test_summary_charts_and_comparison(self, service, source, filters) -> None:
        source.leads[_current(filters)] = RawLeadMetrics(
            total_leads=100, qualified_leads=30, converted_leads=5, leads_by_source={"web": 100}
        )
        source.leads[_previous(filters)] = RawLeadMetrics(total_leads=50)
        source.deals[_current(filters)] = RawDealMetrics(
            total_deals=4, won_deals=2, lost_deals=2, total_revenue=400.0
        )
        source.stages = [StageTotals("lead", 100), StageTotals("qualified", 50)]

        result = service.dashboard_analytics(filters)

        assert result.summary.total_leads == 100
        assert result.summary.conversion_rate == pytest.approx(5.0)
        assert result.summary.win_rate == pytest.approx(50.0)
        assert result.summary.average_deal_value == pytest.approx(200.0)
        assert result.summary.funnel_health == "healthy"
        assert result.charts.leads_by_source == {"web": 100}
        assert result.period_comparison.leads.rate == pytest.approx(100.0)
        assert result.period_comparison.revenue.trend == "stable"
        assert result.insights == (
            "Lead conversion rate is below average. Consider improving lead qualification.",
        )

        payload = result.to_dict()
        assert set(payload) == {"period", "summary", "charts", "period_comparison", "insights"}


# ---------------------------------------------------------------------------
# Targets
# ---------------------------------------------------------------------------


class TestTargetAnalytics:
    def test_requires_tracker(self, service, filters) -> None:
        with pytest.raises(AnalyticsError):
            service.target_analytics(filters)

    def test_summary_comparison_and_insight(self, source, filters) -> None:
        progress = [_progress(True, 60.0) for _ in range(4)] + [_progress(False, 10.0)]
        tracker = FakeTracker(progress, previous_count=4)
        service = AnalyticsService(source, tracker=tracker, settings=AnalyticsSettings())

        result = service.target_analytics(filters)

        assert tracker.refreshed == [filters]
        assert result.summary.total_targets == 5
        assert result.summary.on_track == 4
        assert result.comparison.targets_growth == pytest.approx(25.0)
        assert result.comparison.performance_change == "improving"
        assert result.insights == (TARGETS_EXCELLENT,)
        assert result.to_dict()["targets"][0]["on_track"] is True
