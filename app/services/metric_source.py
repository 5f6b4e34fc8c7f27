"""
app/services/metric_source.py

Aggregation boundary between the CRM tables and the analytics calculators.

Translates ``leads`` / ``deals`` rows into the raw aggregate dataclasses in
:mod:`app.domain.metrics`. No business logic lives here: ratios, growth and
classification belong to ``kpi/`` and ``targets/``.

Query design
------------
Every aggregate is one grouped ``SELECT`` scoped by company, the closed
``[period.start, period.end]`` range on ``created_at`` and whichever
optional filters are set:

    leads  – user (assigned_to_id), source, status, campaign
    deals  – user (assigned_to), stage

Breakdowns are grouped in SQL and only merged in Python; there are no
per-row follow-up queries.

Failure contract
----------------
Any ``SQLAlchemyError`` is logged and re-raised as
:class:`~app.domain.errors.SourceUnavailable`. Nothing is retried.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import Counter
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy import case, distinct, extract, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.errors import SourceUnavailable
from app.domain.metrics import (
    ConversionCounts,
    DailyCount,
    MonthlyConversion,
    MonthlyRevenue,
    RawActivityMetrics,
    RawConversionMetrics,
    RawDealMetrics,
    RawLeadMetrics,
    RawUserPerformance,
    StageTotals,
)
from app.domain.period import AnalyticsFilters
from db.models.deal import Deal, DealStage
from db.models.lead import Lead, LeadStatus
from db.models.target import TargetType
from kpi.base import percentage
from kpi.funnel import order_stages

logger = logging.getLogger(__name__)

UNKNOWN_KEY = "unknown"


class MetricSource(ABC):
    """
    Read-only supplier of raw CRM aggregates.

    Implementations must scope every query by ``filters.company_id`` and
    raise :class:`SourceUnavailable` when the underlying store fails.
    """

    @abstractmethod
    def lead_metrics(self, filters: AnalyticsFilters) -> RawLeadMetrics:
        """Lead counts and breakdowns for ``filters.period``."""

    @abstractmethod
    def deal_metrics(self, filters: AnalyticsFilters) -> RawDealMetrics:
        """Deal counts, revenue and breakdowns for ``filters.period``."""

    @abstractmethod
    def funnel_stages(self, filters: AnalyticsFilters) -> list[StageTotals]:
        """Per-stage deal totals in canonical pipeline order."""

    @abstractmethod
    def activity_metrics(self, filters: AnalyticsFilters) -> RawActivityMetrics:
        """Lead and deal creations for ``filters.period``."""

    @abstractmethod
    def user_performance(self, filters: AnalyticsFilters) -> list[RawUserPerformance]:
        """Per-user lead, won-deal and revenue totals."""

    @abstractmethod
    def conversion_metrics(self, filters: AnalyticsFilters) -> RawConversionMetrics:
        """Lead-to-won-deal conversion by source, campaign and month."""

    @abstractmethod
    def target_actual_value(
        self,
        target_type: str,
        *,
        company_id: int,
        start: datetime,
        end: datetime,
        user_id: int | None = None,
    ) -> float:
        """Live achieved value for a target of *target_type* over ``[start, end]``."""


class SQLAlchemyMetricSource(MetricSource):
    """
    :class:`MetricSource` backed by a SQLAlchemy session.

    All methods are read-only and never mutate session state.

    Parameters
    ----------
    session:
        Active SQLAlchemy session. The caller controls its lifecycle.
    won_stage, lost_stage:
        Stage names that mark closed deals.
    """

    def __init__(
        self,
        session: Session,
        *,
        won_stage: str = DealStage.WON,
        lost_stage: str = DealStage.LOST,
    ) -> None:
        self._session = session
        self._won = won_stage
        self._lost = lost_stage

    # ------------------------------------------------------------------
    # Leads
    # ------------------------------------------------------------------

    def lead_metrics(self, filters: AnalyticsFilters) -> RawLeadMetrics:
        conditions = _lead_conditions(filters)

        with _translate_errors("lead_metrics", filters.company_id):
            totals = self._session.execute(
                select(
                    func.count(Lead.id),
                    func.coalesce(func.sum(case((Lead.status == LeadStatus.NEW, 1), else_=0)), 0),
                    func.coalesce(
                        func.sum(case((Lead.status == LeadStatus.QUALIFIED, 1), else_=0)), 0
                    ),
                ).where(*conditions)
            ).one()

            by_source = _grouped_counts(
                self._session.execute(
                    select(Lead.source, func.count(Lead.id)).where(*conditions).group_by(Lead.source)
                )
            )
            by_status = _grouped_counts(
                self._session.execute(
                    select(Lead.status, func.count(Lead.id)).where(*conditions).group_by(Lead.status)
                )
            )
            converted_by_source = _grouped_counts(
                self._session.execute(
                    select(Lead.source, func.count(distinct(Lead.id)))
                    .join(Deal, Deal.lead_id == Lead.id)
                    .where(*conditions, Deal.stage == self._won)
                    .group_by(Lead.source)
                )
            )
            daily_trend = self._daily_counts(Lead.created_at, Lead.id, conditions)

        raw = RawLeadMetrics(
            total_leads=int(totals[0] or 0),
            new_leads=int(totals[1] or 0),
            qualified_leads=int(totals[2] or 0),
            converted_leads=sum(converted_by_source.values()),
            leads_by_source=by_source,
            leads_by_status=by_status,
            daily_trend=daily_trend,
            converted_by_source=converted_by_source,
        )
        logger.debug(
            "lead_metrics company=%d [%s, %s] → total=%d converted=%d",
            filters.company_id,
            filters.period.start.isoformat(),
            filters.period.end.isoformat(),
            raw.total_leads,
            raw.converted_leads,
        )
        return raw

    # ------------------------------------------------------------------
    # Deals
    # ------------------------------------------------------------------

    def deal_metrics(self, filters: AnalyticsFilters) -> RawDealMetrics:
        conditions = _deal_conditions(filters)

        with _translate_errors("deal_metrics", filters.company_id):
            stages = self._stage_totals(conditions)

            year = extract("year", Deal.created_at)
            month = extract("month", Deal.created_at)
            trend_rows = self._session.execute(
                select(year, month, func.coalesce(func.sum(Deal.amount), 0.0))
                .where(*conditions, Deal.stage == self._won)
                .group_by(year, month)
                .order_by(year, month)
            ).all()

        won = stages.get(self._won, StageTotals(self._won, 0, 0.0))
        lost = stages.get(self._lost, StageTotals(self._lost, 0, 0.0))
        raw = RawDealMetrics(
            total_deals=sum(row.count for row in stages.values()),
            won_deals=won.count,
            lost_deals=lost.count,
            total_revenue=won.value,
            deals_by_stage=stages,
            revenue_trend=tuple(
                MonthlyRevenue(month=_month_key(y, m), revenue=float(revenue or 0.0))
                for y, m, revenue in trend_rows
            ),
        )
        logger.debug(
            "deal_metrics company=%d [%s, %s] → total=%d won=%d lost=%d revenue=%.2f",
            filters.company_id,
            filters.period.start.isoformat(),
            filters.period.end.isoformat(),
            raw.total_deals,
            raw.won_deals,
            raw.lost_deals,
            raw.total_revenue,
        )
        return raw

    def funnel_stages(self, filters: AnalyticsFilters) -> list[StageTotals]:
        with _translate_errors("funnel_stages", filters.company_id):
            stages = self._stage_totals(_deal_conditions(filters))
        return order_stages(stages.values())

    # ------------------------------------------------------------------
    # Activity & performance
    # ------------------------------------------------------------------

    def activity_metrics(self, filters: AnalyticsFilters) -> RawActivityMetrics:
        lead_conditions = _lead_conditions(filters)
        deal_conditions = _deal_conditions(filters)

        with _translate_errors("activity_metrics", filters.company_id):
            lead_days = self._daily_counts(Lead.created_at, Lead.id, lead_conditions)
            deal_days = self._daily_counts(Deal.created_at, Deal.id, deal_conditions)

        merged: Counter[str] = Counter()
        for point in (*lead_days, *deal_days):
            merged[point.date] += point.count

        return RawActivityMetrics(
            lead_activities=sum(p.count for p in lead_days),
            deal_activities=sum(p.count for p in deal_days),
            activities_by_day=tuple(DailyCount(date=d, count=merged[d]) for d in sorted(merged)),
        )

    def user_performance(self, filters: AnalyticsFilters) -> list[RawUserPerformance]:
        lead_conditions = _lead_conditions(filters)
        deal_conditions = _deal_conditions(filters)

        with _translate_errors("user_performance", filters.company_id):
            lead_rows = self._session.execute(
                select(Lead.assigned_to_id, func.count(Lead.id))
                .where(*lead_conditions, Lead.assigned_to_id.is_not(None))
                .group_by(Lead.assigned_to_id)
            ).all()
            deal_rows = self._session.execute(
                select(
                    Deal.assigned_to,
                    func.count(Deal.id),
                    func.coalesce(func.sum(Deal.amount), 0.0),
                )
                .where(*deal_conditions, Deal.assigned_to.is_not(None), Deal.stage == self._won)
                .group_by(Deal.assigned_to)
            ).all()

        leads = {int(user): int(count) for user, count in lead_rows}
        deals = {int(user): (int(count), float(revenue or 0.0)) for user, count, revenue in deal_rows}
        return [
            RawUserPerformance(
                user_id=user_id,
                leads=leads.get(user_id, 0),
                won_deals=deals.get(user_id, (0, 0.0))[0],
                revenue=deals.get(user_id, (0, 0.0))[1],
            )
            for user_id in sorted(leads.keys() | deals.keys())
        ]

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def conversion_metrics(self, filters: AnalyticsFilters) -> RawConversionMetrics:
        conditions = _lead_conditions(filters)
        year = extract("year", Lead.created_at)
        month = extract("month", Lead.created_at)

        with _translate_errors("conversion_metrics", filters.company_id):
            lead_groups = self._session.execute(
                select(Lead.source, Lead.campaign, func.count(Lead.id))
                .where(*conditions)
                .group_by(Lead.source, Lead.campaign)
            ).all()
            converted_groups = self._session.execute(
                select(Lead.source, Lead.campaign, func.count(distinct(Lead.id)))
                .join(Deal, Deal.lead_id == Lead.id)
                .where(*conditions, Deal.stage == self._won)
                .group_by(Lead.source, Lead.campaign)
            ).all()
            monthly_leads = self._session.execute(
                select(year, month, func.count(Lead.id))
                .where(*conditions)
                .group_by(year, month)
                .order_by(year, month)
            ).all()
            monthly_converted = self._session.execute(
                select(year, month, func.count(distinct(Lead.id)))
                .join(Deal, Deal.lead_id == Lead.id)
                .where(*conditions, Deal.stage == self._won)
                .group_by(year, month)
            ).all()

        leads_by_source: Counter[str] = Counter()
        leads_by_campaign: Counter[str] = Counter()
        for source, campaign, count in lead_groups:
            leads_by_source[source or UNKNOWN_KEY] += int(count)
            leads_by_campaign[campaign or UNKNOWN_KEY] += int(count)

        converted_by_source: Counter[str] = Counter()
        converted_by_campaign: Counter[str] = Counter()
        for source, campaign, count in converted_groups:
            converted_by_source[source or UNKNOWN_KEY] += int(count)
            converted_by_campaign[campaign or UNKNOWN_KEY] += int(count)

        converted_by_month = {_month_key(y, m): int(count) for y, m, count in monthly_converted}

        return RawConversionMetrics(
            total_leads=sum(leads_by_source.values()),
            converted_leads=sum(converted_by_source.values()),
            by_source={
                key: ConversionCounts(leads=count, converted=converted_by_source.get(key, 0))
                for key, count in leads_by_source.items()
            },
            by_campaign={
                key: ConversionCounts(leads=count, converted=converted_by_campaign.get(key, 0))
                for key, count in leads_by_campaign.items()
            },
            monthly_trend=tuple(
                MonthlyConversion(
                    month=_month_key(y, m),
                    leads=int(count),
                    converted=converted_by_month.get(_month_key(y, m), 0),
                )
                for y, m, count in monthly_leads
            ),
        )

    # ------------------------------------------------------------------
    # Targets
    # ------------------------------------------------------------------

    def target_actual_value(
        self,
        target_type: str,
        *,
        company_id: int,
        start: datetime,
        end: datetime,
        user_id: int | None = None,
    ) -> float:
        """
        Aggregate the live value a target is measured against.

        ========== ==============================================
        revenue    sum of won-deal amounts created in range
        leads      count of leads created in range
        deals      count of deals created in range
        conversion won deals / leads created × 100 (0 if no leads)
        ========== ==============================================

        Unrecognised target types measure as ``0.0``.
        """
        lead_conditions = [
            Lead.company_id == company_id,
            Lead.created_at >= start,
            Lead.created_at <= end,
        ]
        deal_conditions = [
            Deal.company_id == company_id,
            Deal.created_at >= start,
            Deal.created_at <= end,
        ]
        if user_id is not None:
            lead_conditions.append(Lead.assigned_to_id == user_id)
            deal_conditions.append(Deal.assigned_to == user_id)

        with _translate_errors("target_actual_value", company_id):
            if target_type == TargetType.REVENUE:
                value = self._session.scalar(
                    select(func.coalesce(func.sum(Deal.amount), 0.0)).where(
                        *deal_conditions, Deal.stage == self._won
                    )
                )
            elif target_type == TargetType.LEADS:
                value = self._session.scalar(select(func.count(Lead.id)).where(*lead_conditions))
            elif target_type == TargetType.DEALS:
                value = self._session.scalar(select(func.count(Deal.id)).where(*deal_conditions))
            elif target_type == TargetType.CONVERSION:
                leads = self._session.scalar(select(func.count(Lead.id)).where(*lead_conditions))
                won = self._session.scalar(
                    select(func.count(Deal.id)).where(*deal_conditions, Deal.stage == self._won)
                )
                value = percentage(int(won or 0), int(leads or 0))
            else:
                logger.warning(
                    "target_actual_value: unknown target_type=%r company=%d, measuring as 0",
                    target_type,
                    company_id,
                )
                value = 0.0

        actual = float(value or 0.0)
        logger.debug(
            "target_actual_value type=%r company=%d user=%s [%s, %s] → %.4f",
            target_type,
            company_id,
            user_id,
            start.isoformat(),
            end.isoformat(),
            actual,
        )
        return actual

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _stage_totals(self, conditions: list) -> dict[str, StageTotals]:
        rows = self._session.execute(
            select(Deal.stage, func.count(Deal.id), func.coalesce(func.sum(Deal.amount), 0.0))
            .where(*conditions)
            .group_by(Deal.stage)
        ).all()
        return {
            stage: StageTotals(stage=stage, count=int(count), value=float(value or 0.0))
            for stage, count, value in rows
        }

    def _daily_counts(self, column, key, conditions: list) -> tuple[DailyCount, ...]:
        day = func.date(column)
        rows = self._session.execute(
            select(day, func.count(key)).where(*conditions).group_by(day).order_by(day)
        ).all()
        return tuple(DailyCount(date=str(d), count=int(count)) for d, count in rows)


# ---------------------------------------------------------------------------
# Module-level helpers (no business logic)
# ---------------------------------------------------------------------------


def _lead_conditions(filters: AnalyticsFilters) -> list:
    conditions = [
        Lead.company_id == filters.company_id,
        Lead.created_at >= filters.period.start,
        Lead.created_at <= filters.period.end,
    ]
    if filters.user_id is not None:
        conditions.append(Lead.assigned_to_id == filters.user_id)
    if filters.source:
        conditions.append(Lead.source == filters.source)
    if filters.status:
        conditions.append(Lead.status == filters.status)
    if filters.campaign:
        conditions.append(Lead.campaign == filters.campaign)
    return conditions


def _deal_conditions(filters: AnalyticsFilters) -> list:
    conditions = [
        Deal.company_id == filters.company_id,
        Deal.created_at >= filters.period.start,
        Deal.created_at <= filters.period.end,
    ]
    if filters.user_id is not None:
        conditions.append(Deal.assigned_to == filters.user_id)
    if filters.stage:
        conditions.append(Deal.stage == filters.stage)
    return conditions


def _grouped_counts(rows) -> dict[str, int]:
    counts: Counter[str] = Counter()
    for key, count in rows:
        counts[key or UNKNOWN_KEY] += int(count)
    return dict(counts)


def _month_key(year: object, month: object) -> str:
    return f"{int(year):04d}-{int(month):02d}"


@contextmanager
def _translate_errors(operation: str, company_id: int) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error(
            "%s failed company=%d: %s",
            operation,
            company_id,
            exc,
            exc_info=True,
        )
        raise SourceUnavailable(
            f"Failed to aggregate {operation} for company={company_id}: {exc}"
        ) from exc
