"""
kpi/activity.py

Sales activity metrics.

There is no dedicated activity log: every lead or deal created inside the
period counts as one activity.
"""

from __future__ import annotations

from dataclasses import dataclass

from app.domain.metrics import AsDictMixin, DailyCount, RawActivityMetrics
from app.domain.period import Period
from kpi.base import BaseAnalyticsCalculator, percentage, safe_ratio


@dataclass(frozen=True)
class ActivityMetrics(AsDictMixin):
    total_activities: int
    lead_activities: int
    deal_activities: int
    activities_per_day: float
    pipeline_share: float
    activities_by_day: tuple[DailyCount, ...] = ()


class SalesActivityCalculator(BaseAnalyticsCalculator[RawActivityMetrics, ActivityMetrics]):
    def calculate(self, raw: RawActivityMetrics, period: Period) -> ActivityMetrics:
        total = raw.total_activities
        return ActivityMetrics(
            total_activities=total,
            lead_activities=raw.lead_activities,
            deal_activities=raw.deal_activities,
            activities_per_day=safe_ratio(total, period.days),
            # share of activity that reached the deal pipeline
            pipeline_share=percentage(raw.deal_activities, total),
            activities_by_day=tuple(raw.activities_by_day),
        )
