"""
app/domain/metrics.py

Raw aggregate values produced by the metric source.

These are produced fresh per query and never persisted. Calculators in
``kpi/`` turn them into derived metrics.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


class AsDictMixin:
    """JSON-like view of a frozen result dataclass."""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)  # type: ignore[call-overload]


@dataclass(frozen=True)
class DailyCount:
    date: str
    count: int


@dataclass(frozen=True)
class MonthlyRevenue:
    month: str
    revenue: float


@dataclass(frozen=True)
class StageTotals:
    """Deal count and summed amount for one pipeline stage."""

    stage: str
    count: int
    value: float = 0.0


@dataclass(frozen=True)
class RawLeadMetrics:
    total_leads: int = 0
    new_leads: int = 0
    qualified_leads: int = 0
    converted_leads: int = 0
    leads_by_source: dict[str, int] = field(default_factory=dict)
    leads_by_status: dict[str, int] = field(default_factory=dict)
    daily_trend: tuple[DailyCount, ...] = ()
    converted_by_source: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class RawDealMetrics:
    total_deals: int = 0
    won_deals: int = 0
    lost_deals: int = 0
    total_revenue: float = 0.0
    deals_by_stage: dict[str, StageTotals] = field(default_factory=dict)
    revenue_trend: tuple[MonthlyRevenue, ...] = ()


@dataclass(frozen=True)
class RawActivityMetrics:
    """Lead and deal creations treated as sales activity."""

    lead_activities: int = 0
    deal_activities: int = 0
    activities_by_day: tuple[DailyCount, ...] = ()

    @property
    def total_activities(self) -> int:
        return self.lead_activities + self.deal_activities


@dataclass(frozen=True)
class RawUserPerformance:
    user_id: int
    leads: int = 0
    won_deals: int = 0
    revenue: float = 0.0


@dataclass(frozen=True)
class ConversionCounts:
    leads: int = 0
    converted: int = 0


@dataclass(frozen=True)
class MonthlyConversion:
    month: str
    leads: int
    converted: int


@dataclass(frozen=True)
class RawConversionMetrics:
    total_leads: int = 0
    converted_leads: int = 0
    by_source: dict[str, ConversionCounts] = field(default_factory=dict)
    by_campaign: dict[str, ConversionCounts] = field(default_factory=dict)
    monthly_trend: tuple[MonthlyConversion, ...] = ()
