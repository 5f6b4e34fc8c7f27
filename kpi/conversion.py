"""
kpi/conversion.py

Lead-to-deal conversion breakdowns.

A lead counts as converted when at least one of its deals reached the
``won`` stage.
"""

from __future__ import annotations

from dataclasses import dataclass

from app.domain.metrics import AsDictMixin, ConversionCounts, RawConversionMetrics
from app.domain.period import Period
from kpi.base import BaseAnalyticsCalculator, percentage


@dataclass(frozen=True)
class ConversionBreakdown(AsDictMixin):
    key: str
    leads: int
    converted: int
    rate: float


@dataclass(frozen=True)
class ConversionTrendPoint(AsDictMixin):
    month: str
    leads: int
    converted: int
    rate: float


@dataclass(frozen=True)
class ConversionMetrics(AsDictMixin):
    total_leads: int
    converted_leads: int
    overall_conversion_rate: float
    by_source: tuple[ConversionBreakdown, ...]
    by_campaign: tuple[ConversionBreakdown, ...]
    trend: tuple[ConversionTrendPoint, ...]


class ConversionCalculator(BaseAnalyticsCalculator[RawConversionMetrics, ConversionMetrics]):
    def calculate(self, raw: RawConversionMetrics, period: Period) -> ConversionMetrics:
        return ConversionMetrics(
            total_leads=raw.total_leads,
            converted_leads=raw.converted_leads,
            overall_conversion_rate=percentage(raw.converted_leads, raw.total_leads),
            by_source=_breakdown(raw.by_source),
            by_campaign=_breakdown(raw.by_campaign),
            trend=tuple(
                ConversionTrendPoint(
                    month=point.month,
                    leads=point.leads,
                    converted=point.converted,
                    rate=percentage(point.converted, point.leads),
                )
                for point in raw.monthly_trend
            ),
        )


def _breakdown(groups: dict[str, ConversionCounts]) -> tuple[ConversionBreakdown, ...]:
    """Largest groups first; ties by key."""
    rows = [
        ConversionBreakdown(
            key=key,
            leads=counts.leads,
            converted=counts.converted,
            rate=percentage(counts.converted, counts.leads),
        )
        for key, counts in groups.items()
    ]
    return tuple(sorted(rows, key=lambda row: (-row.leads, row.key)))
