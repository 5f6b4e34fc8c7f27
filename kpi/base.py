"""
kpi/base.py

Abstract base class for analytics calculators and the shared zero-guard
arithmetic they are built on.

Zero-guard policy: a ratio whose denominator is zero is ``0.0``. "No data
yet" is a normal state for a new company, so nothing here raises on an
empty period. Callers that must tell "no data" from "really zero" inspect
the underlying count alongside the rate.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Generic, TypeVar

from app.domain.metrics import AsDictMixin
from app.domain.period import Period

RawT = TypeVar("RawT")
ResultT = TypeVar("ResultT")

TREND_UP = "up"
TREND_DOWN = "down"
TREND_STABLE = "stable"


class BaseAnalyticsCalculator(ABC, Generic[RawT, ResultT]):
    """
    Contract for calculator implementations.

    Subclasses receive raw aggregates for one period and return a typed
    result. No I/O, no logging and no side effects are permitted inside
    :meth:`calculate`; calling it twice with the same input yields equal
    output.
    """

    @abstractmethod
    def calculate(self, raw: RawT, period: Period) -> ResultT:
        """
        Derive metrics from *raw* for *period*.

        Parameters
        ----------
        raw:
            Aggregates fetched by the metric source.
        period:
            The window the aggregates cover.
        """


@dataclass(frozen=True)
class Growth(AsDictMixin):
    """Change of one metric against the immediately preceding period."""

    current: float
    previous: float
    rate: float
    trend: str


def safe_ratio(numerator: float, denominator: float) -> float:
    """``numerator / denominator``, or ``0.0`` when the denominator is zero."""
    if not denominator:
        return 0.0
    return numerator / denominator


def percentage(part: float, whole: float) -> float:
    """``part / whole × 100`` with the zero-guard."""
    return safe_ratio(part * 100, whole)


def trend_label(rate: float) -> str:
    if rate > 0:
        return TREND_UP
    if rate < 0:
        return TREND_DOWN
    return TREND_STABLE


def growth(current: float, previous: float) -> Growth:
    """
    Growth = (current - previous) / previous × 100.

    ``previous == 0`` yields a rate of ``0.0`` and a ``"stable"`` trend.
    """
    rate = percentage(current - previous, previous)
    return Growth(
        current=current,
        previous=previous,
        rate=rate,
        trend=trend_label(rate),
    )
