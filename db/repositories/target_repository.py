"""
db/repositories/target_repository.py

Persistence layer for sales Target records.

The caller controls commit/rollback; this repository never commits on its
own. ``update_actual_value`` flushes so that constraint and connection
failures surface inside the caller's ``try`` block.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.domain.errors import InvalidTargetOwnership, NotFound
from app.domain.period import Period
from db.models.target import Target, TargetType


class TargetRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get(self, target_id: int, company_id: int) -> Target:
        """
        Fetch one target scoped to *company_id*.

        Raises
        ------
        NotFound
            When no target with that id exists for the company. A target
            belonging to another company is reported the same way.
        """
        stmt = select(Target).where(Target.id == target_id, Target.company_id == company_id)
        target = self._session.scalars(stmt).one_or_none()
        if target is None:
            raise NotFound(f"Target not found: id={target_id} company={company_id}")
        return target

    def list_targets(
        self,
        company_id: int,
        *,
        status: str | None = None,
        user_id: int | None = None,
        overlapping: Period | None = None,
    ) -> list[Target]:
        """
        List a company's targets, oldest window first.

        Parameters
        ----------
        status:
            Only targets in this status (e.g. ``"active"``).
        user_id:
            Only targets owned by this user.
        overlapping:
            Only targets whose ``[start_date, end_date]`` window intersects
            this period.
        """
        stmt = select(Target).where(Target.company_id == company_id)
        if status is not None:
            stmt = stmt.where(Target.status == status)
        if user_id is not None:
            stmt = stmt.where(Target.user_id == user_id)
        if overlapping is not None:
            stmt = stmt.where(
                Target.start_date <= overlapping.end,
                Target.end_date >= overlapping.start,
            )
        stmt = stmt.order_by(Target.start_date, Target.id)
        return list(self._session.scalars(stmt).all())

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def add(
        self,
        *,
        company_id: int,
        name: str,
        target_type: str,
        target_value: float,
        start_date: datetime,
        end_date: datetime,
        period: str,
        user_id: int | None = None,
        team_id: int | None = None,
        status: str = "active",
        currency: str = "USD",
    ) -> Target:
        """
        Stage a new target on the session (not committed).

        Raises
        ------
        InvalidTargetOwnership
            When both ``user_id`` and ``team_id`` are given.
        ValueError
            For an unknown ``target_type`` or a window ending before it starts.
        """
        if user_id is not None and team_id is not None:
            raise InvalidTargetOwnership(
                f"Target {name!r} cannot belong to both user={user_id} and team={team_id}"
            )
        if target_type not in TargetType.ALL:
            raise ValueError(
                f"Unknown target_type {target_type!r}; expected one of {sorted(TargetType.ALL)}"
            )
        if end_date < start_date:
            raise ValueError(f"Target {name!r} ends before it starts")

        target = Target(
            company_id=company_id,
            name=name,
            target_type=target_type,
            target_value=target_value,
            actual_value=0.0,
            user_id=user_id,
            team_id=team_id,
            start_date=start_date,
            end_date=end_date,
            period=period,
            status=status,
            currency=currency,
        )
        self._session.add(target)
        self._session.flush()
        return target

    def update_actual_value(self, target: Target, value: float) -> Target:
        target.actual_value = value
        self._session.flush()
        return target
