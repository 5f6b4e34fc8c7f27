"""
kpi/leads.py

Lead-side metric calculation.

Formulas
--------
Conversion Rate     = converted_leads / total_leads × 100
Qualification Rate  = qualified_leads / total_leads × 100
Lead Velocity       = total_leads / days in period
Source Efficiency   = converted_by_source[s] / leads_by_source[s] × 100

Every ratio is ``0.0`` when its denominator is zero.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from app.domain.metrics import AsDictMixin, DailyCount, RawLeadMetrics
from app.domain.period import Period
from kpi.base import BaseAnalyticsCalculator, percentage, safe_ratio


@dataclass(frozen=True)
class LeadMetrics(AsDictMixin):
    total_leads: int
    new_leads: int
    qualified_leads: int
    converted_leads: int
    conversion_rate: float
    qualification_rate: float
    lead_velocity: float
    leads_by_source: dict[str, int] = field(default_factory=dict)
    leads_by_status: dict[str, int] = field(default_factory=dict)
    daily_trend: tuple[DailyCount, ...] = ()
    source_efficiency: dict[str, float] = field(default_factory=dict)


class LeadAnalyticsCalculator(BaseAnalyticsCalculator[RawLeadMetrics, LeadMetrics]):
    """Pure lead metric derivation."""

    def calculate(self, raw: RawLeadMetrics, period: Period) -> LeadMetrics:
        return LeadMetrics(
            total_leads=raw.total_leads,
            new_leads=raw.new_leads,
            qualified_leads=raw.qualified_leads,
            converted_leads=raw.converted_leads,
            conversion_rate=percentage(raw.converted_leads, raw.total_leads),
            qualification_rate=percentage(raw.qualified_leads, raw.total_leads),
            lead_velocity=safe_ratio(raw.total_leads, period.days),
            leads_by_source=dict(raw.leads_by_source),
            leads_by_status=dict(raw.leads_by_status),
            daily_trend=tuple(raw.daily_trend),
            source_efficiency=_source_efficiency(raw),
        )


def _source_efficiency(raw: RawLeadMetrics) -> dict[str, float]:
    return {
        source: percentage(raw.converted_by_source.get(source, 0), count)
        for source, count in raw.leads_by_source.items()
    }
