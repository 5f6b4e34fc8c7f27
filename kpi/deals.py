"""
kpi/deals.py

Deal-side metric calculation.

Formulas
--------
Win Rate            = won_deals / (won_deals + lost_deals) × 100
Average Deal Value  = total_revenue / won_deals
Open Deals          = total_deals - won_deals - lost_deals

Revenue forecast
----------------
``next_month = revenue × 1.1`` and ``next_quarter = revenue × 3.2`` with a
fixed ``confidence`` of 0.75. This is a placeholder multiplier heuristic,
not a statistical model, and should not be read as an accurate forecast.
The multipliers are configurable through
:class:`app.config.AnalyticsSettings`.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from app.domain.metrics import AsDictMixin, MonthlyRevenue, RawDealMetrics, StageTotals
from app.domain.period import Period
from kpi.base import BaseAnalyticsCalculator, percentage, safe_ratio

DEFAULT_NEXT_MONTH_MULTIPLIER = 1.1
DEFAULT_NEXT_QUARTER_MULTIPLIER = 3.2
DEFAULT_FORECAST_CONFIDENCE = 0.75


@dataclass(frozen=True)
class RevenueForecast(AsDictMixin):
    next_month: float
    next_quarter: float
    confidence: float
    method: str = "fixed_multiplier"


@dataclass(frozen=True)
class DealMetrics(AsDictMixin):
    total_deals: int
    won_deals: int
    lost_deals: int
    open_deals: int
    total_revenue: float
    average_deal_value: float
    win_rate: float
    revenue_forecast: RevenueForecast
    deals_by_stage: dict[str, StageTotals] = field(default_factory=dict)
    revenue_trend: tuple[MonthlyRevenue, ...] = ()


class DealAnalyticsCalculator(BaseAnalyticsCalculator[RawDealMetrics, DealMetrics]):
    """
    Pure deal metric derivation.

    Parameters
    ----------
    next_month_multiplier, next_quarter_multiplier, confidence:
        Forecast heuristic knobs; defaults are 1.1 / 3.2 / 0.75.
    """

    def __init__(
        self,
        *,
        next_month_multiplier: float = DEFAULT_NEXT_MONTH_MULTIPLIER,
        next_quarter_multiplier: float = DEFAULT_NEXT_QUARTER_MULTIPLIER,
        confidence: float = DEFAULT_FORECAST_CONFIDENCE,
    ) -> None:
        self._next_month = next_month_multiplier
        self._next_quarter = next_quarter_multiplier
        self._confidence = confidence

    def calculate(self, raw: RawDealMetrics, period: Period) -> DealMetrics:
        closed = raw.won_deals + raw.lost_deals
        return DealMetrics(
            total_deals=raw.total_deals,
            won_deals=raw.won_deals,
            lost_deals=raw.lost_deals,
            open_deals=max(0, raw.total_deals - closed),
            total_revenue=raw.total_revenue,
            average_deal_value=safe_ratio(raw.total_revenue, raw.won_deals),
            win_rate=percentage(raw.won_deals, closed),
            revenue_forecast=self.forecast(raw.total_revenue),
            deals_by_stage=dict(raw.deals_by_stage),
            revenue_trend=tuple(raw.revenue_trend),
        )

    def forecast(self, total_revenue: float) -> RevenueForecast:
        return RevenueForecast(
            next_month=total_revenue * self._next_month,
            next_quarter=total_revenue * self._next_quarter,
            confidence=self._confidence,
        )
