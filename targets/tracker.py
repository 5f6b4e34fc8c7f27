"""
targets/tracker.py

Target progress tracker.

Wires MetricSource → progress derivation → TargetRepository. Two read
paths are kept apart on purpose:

    recompute_and_persist  – measure live, write actual_value back, commit
    read_progress          – derive from the cached actual_value, no I/O
                             beyond loading the target row

Failure contract
----------------
- Unknown target / foreign company  → NotFound
- Measurement failure               → SourceUnavailable (nothing written)
- Write-back or commit failure      → TargetPersistenceError after rollback

Concurrent refreshes of the same target are last-write-wins.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.errors import TargetPersistenceError
from app.domain.period import AnalyticsFilters, Period, utc_now
from app.services.metric_source import MetricSource, SQLAlchemyMetricSource
from db.base import as_utc
from db.models.target import Target
from db.repositories.target_repository import TargetRepository
from targets.progress import ACTIVE_STATUS, TargetProgress, build_progress

logger = logging.getLogger(__name__)


class TargetProgressTracker:
    """
    Request-scoped tracker bound to one database session.

    Parameters
    ----------
    session:
        Active SQLAlchemy session. The tracker commits after a successful
        write-back and rolls back when it fails.
    source:
        Metric source used to measure live values. Defaults to a
        :class:`SQLAlchemyMetricSource` on the same session.
    clock:
        Returns the evaluation instant; injectable for tests.
    """

    def __init__(
        self,
        session: Session,
        source: MetricSource | None = None,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session = session
        self._source = source or SQLAlchemyMetricSource(session)
        self._repository = TargetRepository(session)
        self._clock = clock

    # ------------------------------------------------------------------
    # Single target
    # ------------------------------------------------------------------

    def recompute_and_persist(self, target_id: int, company_id: int) -> TargetProgress:
        """
        Measure the target's live value, write it back and derive progress.

        Raises
        ------
        NotFound
            No such target for *company_id*.
        SourceUnavailable
            The live value could not be aggregated.
        TargetPersistenceError
            The refreshed value could not be committed.
        """
        target = self._repository.get(target_id, company_id)
        return self._refresh([target])[0]

    def read_progress(self, target_id: int, company_id: int) -> TargetProgress:
        target = self._repository.get(target_id, company_id)
        return build_progress(target, now=self._clock())

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    def sweep_active(self, company_id: int) -> list[TargetProgress]:
        """Refresh every active target of the company in one transaction."""
        targets = self._repository.list_targets(company_id, status=ACTIVE_STATUS)
        return self._refresh(targets)

    def refresh_overlapping(self, filters: AnalyticsFilters) -> list[TargetProgress]:
        """Refresh every target whose window overlaps ``filters.period``."""
        targets = self._repository.list_targets(
            filters.company_id,
            user_id=filters.user_id,
            overlapping=filters.period,
        )
        return self._refresh(targets)

    def count_overlapping(
        self,
        company_id: int,
        period: Period,
        *,
        user_id: int | None = None,
    ) -> int:
        """Number of stored targets overlapping *period*; nothing is measured."""
        return len(
            self._repository.list_targets(company_id, user_id=user_id, overlapping=period)
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _refresh(self, targets: Sequence[Target]) -> list[TargetProgress]:
        if not targets:
            return []

        t0 = time.monotonic()
        target_ids = [target.id for target in targets]
        # all measurements complete before the first write
        measured = [(target, self._measure(target)) for target in targets]

        try:
            for target, value in measured:
                self._repository.update_actual_value(target, value)
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            logger.error(
                "target write-back failed ids=%s: %s",
                target_ids,
                exc,
                exc_info=True,
            )
            raise TargetPersistenceError(
                f"Failed to persist target progress for ids={target_ids}: {exc}"
            ) from exc

        now = self._clock()
        progress = [build_progress(target, now=now, actual=value) for target, value in measured]
        logger.debug(
            "refreshed %d target(s) elapsed=%.3fs",
            len(progress),
            time.monotonic() - t0,
        )
        return progress

    def _measure(self, target: Target) -> float:
        return self._source.target_actual_value(
            target.target_type,
            company_id=target.company_id,
            start=as_utc(target.start_date),
            end=as_utc(target.end_date),
            user_id=target.user_id,
        )
