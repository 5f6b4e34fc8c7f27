"""
db/models/target.py

Sales target model.

``actual_value`` is a cache: it is recomputed from leads/deals and written
back every time progress is requested through
:meth:`targets.tracker.TargetProgressTracker.recompute_and_persist`.

Ownership: at most one of ``user_id`` / ``team_id`` is set. Neither set
means the target belongs to the whole company.
"""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class TargetType:
    REVENUE = "revenue"
    LEADS = "leads"
    DEALS = "deals"
    CONVERSION = "conversion"

    ALL: frozenset[str] = frozenset({REVENUE, LEADS, DEALS, CONVERSION})


class Target(Base, TimestampMixin):
    __tablename__ = "targets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    target_type: Mapped[str] = mapped_column(String(50), nullable=False)
    target_value: Mapped[float] = mapped_column(Float, nullable=False)
    actual_value: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    user_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    team_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    period: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="monthly, quarterly, annual",
    )
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="active")
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")

    __table_args__ = (
        CheckConstraint(
            "user_id IS NULL OR team_id IS NULL",
            name="ck_targets_single_owner",
        ),
        Index("ix_targets_company_status", "company_id", "status"),
        Index("ix_targets_company_window", "company_id", "start_date", "end_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<Target id={self.id} type={self.target_type!r} "
            f"value={self.target_value} actual={self.actual_value}>"
        )
