"""
kpi/funnel.py

Funnel health evaluation.

Stage-to-stage conversion is computed for each adjacent pair along the
pipeline path::

    rate(i → i+1) = count[i+1] / count[i] × 100      (0 when count[i] == 0)

Terminal off-path stages (``lost`` by default) are reported with the other
stages but do not take part in the adjacent-pair chain.

Health is worst-stage-wins:

* any rate below ``critical_threshold`` (10)  → ``"critical"``
* any rate below ``at_risk_threshold``  (25)  → ``"at_risk"``
* otherwise                                   → ``"healthy"``
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from app.domain.metrics import AsDictMixin, StageTotals
from db.models.deal import CANONICAL_STAGE_ORDER, DealStage
from kpi.base import percentage

HEALTHY = "healthy"
AT_RISK = "at_risk"
CRITICAL = "critical"

DEFAULT_CRITICAL_THRESHOLD = 10.0
DEFAULT_AT_RISK_THRESHOLD = 25.0


@dataclass(frozen=True)
class StageConversion(AsDictMixin):
    from_stage: str
    to_stage: str
    rate: float
    drop_off: int


@dataclass(frozen=True)
class FunnelHealth(AsDictMixin):
    stages: tuple[StageTotals, ...]
    conversion_rates: tuple[StageConversion, ...]
    health: str
    bottlenecks: tuple[StageConversion, ...] = ()
    recommendations: tuple[str, ...] = field(default_factory=tuple)


def order_stages(rows: Iterable[StageTotals]) -> list[StageTotals]:
    """
    Sort stage rows into canonical pipeline order.

    Stages outside :data:`CANONICAL_STAGE_ORDER` go last, alphabetically.
    """
    rank = {stage: index for index, stage in enumerate(CANONICAL_STAGE_ORDER)}
    unknown = len(rank)
    return sorted(rows, key=lambda row: (rank.get(row.stage, unknown), row.stage))


class FunnelHealthEvaluator:
    """
    Stateless funnel classifier.

    Parameters
    ----------
    critical_threshold:
        Conversion percentage below which a transition is critical.
    at_risk_threshold:
        Conversion percentage below which a transition is at risk.
    terminal_stages:
        Stages reported but excluded from the conversion chain.
    """

    def __init__(
        self,
        *,
        critical_threshold: float = DEFAULT_CRITICAL_THRESHOLD,
        at_risk_threshold: float = DEFAULT_AT_RISK_THRESHOLD,
        terminal_stages: Iterable[str] = (DealStage.LOST,),
    ) -> None:
        self._critical = critical_threshold
        self._at_risk = at_risk_threshold
        self._terminal = frozenset(terminal_stages)

    def evaluate(self, stages: Sequence[StageTotals]) -> FunnelHealth:
        """
        Compute adjacent-stage conversion and the whole-funnel label.

        *stages* must already be in pipeline order (see :func:`order_stages`).
        A funnel with fewer than two path stages has no transitions and is
        reported as healthy.
        """
        path = [row for row in stages if row.stage not in self._terminal]
        transitions = tuple(
            StageConversion(
                from_stage=current.stage,
                to_stage=following.stage,
                rate=percentage(following.count, current.count),
                drop_off=max(0, current.count - following.count),
            )
            for current, following in zip(path, path[1:])
        )
        bottlenecks = tuple(t for t in transitions if t.rate < self._at_risk)

        return FunnelHealth(
            stages=tuple(stages),
            conversion_rates=transitions,
            health=self.classify(t.rate for t in transitions),
            bottlenecks=bottlenecks,
            recommendations=tuple(_recommendation(t) for t in bottlenecks),
        )

    def classify(self, rates: Iterable[float]) -> str:
        label = HEALTHY
        for rate in rates:
            if rate < self._critical:
                return CRITICAL
            if rate < self._at_risk:
                label = AT_RISK
        return label


def _recommendation(transition: StageConversion) -> str:
    return (
        f"Improve conversion from {transition.from_stage} to {transition.to_stage} "
        f"({transition.rate:.1f}%, {transition.drop_off} deals dropped)."
    )
