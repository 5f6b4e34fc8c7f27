"""
insights/base.py

Abstract base class for insight generators and the signal bundle they read.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class InsightSignals:
    """
    Rates an insight rule may inspect, each with the count it was derived from.

    A rate is only meaningful when its denominator is non-zero; with the
    defaults below no rule has anything to say.
    """

    total_leads: int = 0
    conversion_rate: float = 0.0
    closed_deals: int = 0
    win_rate: float = 0.0
    total_targets: int = 0
    on_track_targets: int = 0
    funnel_health: str | None = None
    funnel_bottlenecks: tuple[str, ...] = ()


class BaseInsightGenerator(ABC):
    """
    Contract for insight generator implementations.

    No I/O, no logging, and no side effects are permitted inside
    :meth:`generate`. Insights annotate metrics; they never change them.
    """

    @abstractmethod
    def generate(self, signals: InsightSignals) -> list[str]:
        """
        Return human-readable recommendations for *signals*.

        Parameters
        ----------
        signals:
            Derived rates and their underlying counts for one period.

        Returns
        -------
        list[str]
            Zero or more recommendation strings, in rule order.
        """
