"""
kpi/performance.py

Per-user performance and rankings.

Ranking order: revenue (desc), then won deals (desc), then user id (asc)
so ties resolve deterministically. ``top_performers`` is the head of the
ranking; ``improvement_opportunities`` lists users converting below the
team mean.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from app.domain.metrics import AsDictMixin, RawUserPerformance
from app.domain.period import Period
from kpi.base import BaseAnalyticsCalculator, percentage, safe_ratio

DEFAULT_TOP_PERFORMERS = 3


@dataclass(frozen=True)
class UserPerformance(AsDictMixin):
    user_id: int
    rank: int
    leads: int
    won_deals: int
    revenue: float
    average_deal_size: float
    conversion_rate: float


@dataclass(frozen=True)
class PerformanceRankings(AsDictMixin):
    users: tuple[UserPerformance, ...]
    top_performers: tuple[UserPerformance, ...]
    improvement_opportunities: tuple[UserPerformance, ...]
    team_conversion_rate: float


class PerformanceCalculator(
    BaseAnalyticsCalculator[Sequence[RawUserPerformance], PerformanceRankings]
):
    def __init__(self, *, top_n: int = DEFAULT_TOP_PERFORMERS) -> None:
        self._top_n = max(1, top_n)

    def calculate(
        self,
        raw: Sequence[RawUserPerformance],
        period: Period,
    ) -> PerformanceRankings:
        ordered = sorted(raw, key=lambda u: (-u.revenue, -u.won_deals, u.user_id))
        users = tuple(
            UserPerformance(
                user_id=row.user_id,
                rank=position,
                leads=row.leads,
                won_deals=row.won_deals,
                revenue=row.revenue,
                average_deal_size=safe_ratio(row.revenue, row.won_deals),
                conversion_rate=percentage(row.won_deals, row.leads),
            )
            for position, row in enumerate(ordered, start=1)
        )

        mean_conversion = safe_ratio(sum(u.conversion_rate for u in users), len(users))
        return PerformanceRankings(
            users=users,
            top_performers=users[: self._top_n],
            improvement_opportunities=tuple(
                u for u in users if u.conversion_rate < mean_conversion
            ),
            team_conversion_rate=mean_conversion,
        )
