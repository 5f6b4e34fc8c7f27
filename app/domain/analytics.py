"""
app/domain/analytics.py

Composed analytics results returned by :class:`app.services.analytics_service.AnalyticsService`.

One frozen dataclass per analytics kind. ``to_dict()`` renders the
JSON-like shape served by the HTTP adapter, with the period flattened to
``start_date`` / ``end_date`` strings.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from app.domain.metrics import DailyCount, MonthlyRevenue, StageTotals
from app.domain.period import Period
from kpi.activity import ActivityMetrics
from kpi.base import Growth
from kpi.conversion import ConversionMetrics
from kpi.deals import DealMetrics
from kpi.funnel import FunnelHealth
from kpi.leads import LeadMetrics
from kpi.performance import PerformanceRankings
from targets.progress import (
    TargetComparison,
    TargetMonthlyProgress,
    TargetPerformanceSummary,
    TargetPeriodSummary,
    TargetProgress,
    TargetTypeSummary,
)


class AnalyticsResult:
    """Shared ``to_dict`` for result dataclasses carrying a ``period``."""

    period: Period
    insights: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)  # type: ignore[call-overload]
        payload["period"] = self.period.to_dict()
        return payload


@dataclass(frozen=True)
class LeadAnalytics(AnalyticsResult):
    period: Period
    metrics: LeadMetrics
    growth: Growth
    insights: tuple[str, ...] = ()


@dataclass(frozen=True)
class DealAnalytics(AnalyticsResult):
    period: Period
    metrics: DealMetrics
    deal_growth: Growth
    revenue_growth: Growth
    insights: tuple[str, ...] = ()


@dataclass(frozen=True)
class SalesActivityAnalytics(AnalyticsResult):
    period: Period
    metrics: ActivityMetrics
    growth: Growth
    insights: tuple[str, ...] = ()


@dataclass(frozen=True)
class PerformanceAnalytics(AnalyticsResult):
    period: Period
    rankings: PerformanceRankings
    insights: tuple[str, ...] = ()


@dataclass(frozen=True)
class FunnelAnalytics(AnalyticsResult):
    period: Period
    funnel: FunnelHealth
    insights: tuple[str, ...] = ()


@dataclass(frozen=True)
class TargetAnalytics(AnalyticsResult):
    period: Period
    targets: tuple[TargetProgress, ...]
    summary: TargetPerformanceSummary
    targets_by_type: tuple[TargetTypeSummary, ...]
    targets_by_period: tuple[TargetPeriodSummary, ...]
    monthly_trend: tuple[TargetMonthlyProgress, ...]
    comparison: TargetComparison
    insights: tuple[str, ...] = ()


@dataclass(frozen=True)
class DashboardSummary:
    total_leads: int
    qualified_leads: int
    conversion_rate: float
    total_deals: int
    won_deals: int
    total_revenue: float
    average_deal_value: float
    win_rate: float
    funnel_health: str


@dataclass(frozen=True)
class DashboardCharts:
    leads_by_source: dict[str, int]
    deals_by_stage: dict[str, StageTotals]
    revenue_trend: tuple[MonthlyRevenue, ...]
    daily_trend: tuple[DailyCount, ...]


@dataclass(frozen=True)
class PeriodComparison:
    leads: Growth
    deals: Growth
    revenue: Growth


@dataclass(frozen=True)
class DashboardAnalytics(AnalyticsResult):
    period: Period
    summary: DashboardSummary
    charts: DashboardCharts
    period_comparison: PeriodComparison
    insights: tuple[str, ...] = ()


@dataclass(frozen=True)
class ConversionAnalytics(AnalyticsResult):
    period: Period
    metrics: ConversionMetrics
    growth: Growth
    insights: tuple[str, ...] = ()
