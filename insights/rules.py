"""
insights/rules.py

Deterministic, rule-based insight generator for sales analytics.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from insights.base import BaseInsightGenerator, InsightSignals
from kpi.base import percentage
from kpi.funnel import AT_RISK, CRITICAL


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

LOW_CONVERSION = (
    "Lead conversion rate is below average. Consider improving lead qualification."
)
LOW_WIN_RATE = "Deal win rate needs improvement. Focus on better prospect targeting."
TARGETS_BEHIND = (
    "Less than 50% of targets are on track. "
    "Consider reviewing target settings or increasing team focus."
)
TARGETS_EXCELLENT = "Excellent performance! 80% or more of targets are on track."


@dataclass(frozen=True)
class InsightThresholds:
    low_conversion_rate: float = 10.0
    low_win_rate: float = 20.0
    targets_behind_share: float = 50.0
    targets_excellent_share: float = 80.0


# ---------------------------------------------------------------------------
# Generator
# ---------------------------------------------------------------------------

class InsightGenerator(BaseInsightGenerator):
    """
    Rule-table insight generator.

    Rules evaluated (in order)
    --------------------------
    1. Low conversion   – conversion rate below 10 % (needs at least one lead).
    2. Low win rate     – win rate below 20 % (needs at least one closed deal).
    3. Targets behind   – under 50 % of targets on track (needs a target).
    4. Targets on track – 80 % or more of targets on track (needs a target).
    5. Funnel warning   – funnel health is ``critical`` or ``at_risk``.

    Every matching rule contributes one message.
    """

    def __init__(self, thresholds: InsightThresholds | None = None) -> None:
        self._thresholds = thresholds or InsightThresholds()

    def generate(self, signals: InsightSignals) -> list[str]:
        t = self._thresholds
        triggered: List[str] = []

        # Rule 1 – Low conversion
        if signals.total_leads > 0 and signals.conversion_rate < t.low_conversion_rate:
            triggered.append(LOW_CONVERSION)

        # Rule 2 – Low win rate
        if signals.closed_deals > 0 and signals.win_rate < t.low_win_rate:
            triggered.append(LOW_WIN_RATE)

        # Rules 3 & 4 – Target on-track share
        if signals.total_targets > 0:
            share = percentage(signals.on_track_targets, signals.total_targets)
            if share < t.targets_behind_share:
                triggered.append(TARGETS_BEHIND)
            elif share >= t.targets_excellent_share:
                triggered.append(TARGETS_EXCELLENT)

        # Rule 5 – Funnel warning
        if signals.funnel_health in (CRITICAL, AT_RISK):
            triggered.append(funnel_warning(signals.funnel_health, signals.funnel_bottlenecks))

        return triggered


def funnel_warning(health: str, bottlenecks: tuple[str, ...] = ()) -> str:
    label = "critical" if health == CRITICAL else "at risk"
    message = f"Sales funnel health is {label}."
    if bottlenecks:
        message += f" Weakest transitions: {', '.join(bottlenecks)}."
    return message
