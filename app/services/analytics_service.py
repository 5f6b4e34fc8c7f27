"""
app/services/analytics_service.py

Analytics facade.

Wires MetricSource → calculators → InsightGenerator into one call per
analytics kind. No SQL and no formulas live here; every layer retains its
own responsibility:

    MetricSource            – raw aggregates for a period
    kpi/* calculators       – pure metric derivation
    TargetProgressTracker   – target refresh and write-back
    InsightGenerator        – textual recommendations

Previous period
---------------
Growth compares against the window of equal duration that ends where the
requested one starts::

    previous_start = start - (end - start)
    previous_end   = start

Failure contract
----------------
Filters arrive already validated (see :func:`app.domain.period.build_filters`).
Any ``SourceUnavailable`` raised by the source or the tracker propagates
unchanged; partial results are never returned.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.orm import Session

from app.config import AnalyticsSettings, get_analytics_settings
from app.domain.analytics import (
    AnalyticsResult,
    ConversionAnalytics,
    DashboardAnalytics,
    DashboardCharts,
    DashboardSummary,
    DealAnalytics,
    FunnelAnalytics,
    LeadAnalytics,
    PerformanceAnalytics,
    PeriodComparison,
    SalesActivityAnalytics,
    TargetAnalytics,
)
from app.domain.errors import AnalyticsError
from app.domain.period import AnalyticsFilters
from app.logging_utils import log_event
from app.services.metric_source import MetricSource, SQLAlchemyMetricSource
from insights.base import BaseInsightGenerator, InsightSignals
from insights.rules import InsightGenerator, InsightThresholds
from kpi.activity import SalesActivityCalculator
from kpi.base import growth
from kpi.conversion import ConversionCalculator
from kpi.deals import DealAnalyticsCalculator, DealMetrics
from kpi.funnel import FunnelHealth, FunnelHealthEvaluator
from kpi.leads import LeadAnalyticsCalculator, LeadMetrics
from kpi.performance import PerformanceCalculator
from targets.progress import compare_periods, group_by_period, group_by_type, monthly_trend, summarize
from targets.tracker import TargetProgressTracker

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT", bound=AnalyticsResult)


class AnalyticsService:
    """
    Request-scoped analytics facade.

    The service holds no business data between calls. Build one per
    request with :meth:`from_session`, or inject a custom source for tests.

    Parameters
    ----------
    source:
        Supplier of raw aggregates.
    tracker:
        Target progress tracker; required only by :meth:`target_analytics`.
    settings:
        Thresholds and forecast knobs. Defaults to
        :func:`app.config.get_analytics_settings`.
    insight_generator:
        Overrides the rule table built from *settings*.
    """

    def __init__(
        self,
        source: MetricSource,
        *,
        tracker: TargetProgressTracker | None = None,
        settings: AnalyticsSettings | None = None,
        insight_generator: BaseInsightGenerator | None = None,
    ) -> None:
        cfg = settings or get_analytics_settings()
        self._source = source
        self._tracker = tracker

        self._leads = LeadAnalyticsCalculator()
        self._deals = DealAnalyticsCalculator(
            next_month_multiplier=cfg.forecast_next_month_multiplier,
            next_quarter_multiplier=cfg.forecast_next_quarter_multiplier,
            confidence=cfg.forecast_confidence,
        )
        self._activity = SalesActivityCalculator()
        self._performance = PerformanceCalculator(top_n=cfg.top_performers)
        self._conversion = ConversionCalculator()
        self._funnel = FunnelHealthEvaluator(
            critical_threshold=cfg.funnel_critical_threshold,
            at_risk_threshold=cfg.funnel_at_risk_threshold,
        )
        self._insights = insight_generator or InsightGenerator(
            InsightThresholds(
                low_conversion_rate=cfg.low_conversion_rate,
                low_win_rate=cfg.low_win_rate,
                targets_behind_share=cfg.targets_behind_share,
                targets_excellent_share=cfg.targets_excellent_share,
            )
        )

    @classmethod
    def from_session(
        cls,
        session: Session,
        *,
        settings: AnalyticsSettings | None = None,
    ) -> AnalyticsService:
        source = SQLAlchemyMetricSource(session)
        return cls(
            source,
            tracker=TargetProgressTracker(session, source),
            settings=settings,
        )

    # ------------------------------------------------------------------
    # Leads & deals
    # ------------------------------------------------------------------

    def lead_analytics(self, filters: AnalyticsFilters) -> LeadAnalytics:
        """
        Lead metrics for the period with growth in total leads.

        Example
        -------
        100 leads with 25 converted and 80 leads the period before give a
        ``conversion_rate`` of 25.0 and a growth rate of 25.0 (``"up"``).
        """

        def build() -> LeadAnalytics:
            current, previous = self._lead_pair(filters)
            return LeadAnalytics(
                period=filters.period,
                metrics=current,
                growth=growth(current.total_leads, previous.total_leads),
                insights=self._generate(_lead_signals(current)),
            )

        return self._timed("lead_analytics", filters, build)

    def deal_analytics(self, filters: AnalyticsFilters) -> DealAnalytics:
        def build() -> DealAnalytics:
            current, previous = self._deal_pair(filters)
            return DealAnalytics(
                period=filters.period,
                metrics=current,
                deal_growth=growth(current.total_deals, previous.total_deals),
                revenue_growth=growth(current.total_revenue, previous.total_revenue),
                insights=self._generate(_deal_signals(current)),
            )

        return self._timed("deal_analytics", filters, build)

    # ------------------------------------------------------------------
    # Activity & performance
    # ------------------------------------------------------------------

    def sales_activity_analytics(self, filters: AnalyticsFilters) -> SalesActivityAnalytics:
        def build() -> SalesActivityAnalytics:
            previous_filters = _previous(filters)
            current = self._activity.calculate(
                self._source.activity_metrics(filters), filters.period
            )
            previous = self._activity.calculate(
                self._source.activity_metrics(previous_filters), previous_filters.period
            )
            return SalesActivityAnalytics(
                period=filters.period,
                metrics=current,
                growth=growth(current.total_activities, previous.total_activities),
            )

        return self._timed("sales_activity_analytics", filters, build)

    def performance_analytics(self, filters: AnalyticsFilters) -> PerformanceAnalytics:
        def build() -> PerformanceAnalytics:
            rankings = self._performance.calculate(
                self._source.user_performance(filters), filters.period
            )
            return PerformanceAnalytics(period=filters.period, rankings=rankings)

        return self._timed("performance_analytics", filters, build)

    # ------------------------------------------------------------------
    # Funnel & conversion
    # ------------------------------------------------------------------

    def funnel_analytics(self, filters: AnalyticsFilters) -> FunnelAnalytics:
        def build() -> FunnelAnalytics:
            funnel = self._evaluate_funnel(filters)
            return FunnelAnalytics(
                period=filters.period,
                funnel=funnel,
                insights=self._generate(_funnel_signals(funnel)),
            )

        return self._timed("funnel_analytics", filters, build)

    def conversion_analytics(self, filters: AnalyticsFilters) -> ConversionAnalytics:
        def build() -> ConversionAnalytics:
            previous_filters = _previous(filters)
            current = self._conversion.calculate(
                self._source.conversion_metrics(filters), filters.period
            )
            previous = self._conversion.calculate(
                self._source.conversion_metrics(previous_filters), previous_filters.period
            )
            return ConversionAnalytics(
                period=filters.period,
                metrics=current,
                growth=growth(current.overall_conversion_rate, previous.overall_conversion_rate),
                insights=self._generate(
                    InsightSignals(
                        total_leads=current.total_leads,
                        conversion_rate=current.overall_conversion_rate,
                    )
                ),
            )

        return self._timed("conversion_analytics", filters, build)

    # ------------------------------------------------------------------
    # Targets
    # ------------------------------------------------------------------

    def target_analytics(self, filters: AnalyticsFilters) -> TargetAnalytics:
        """
        Refresh and summarise every target overlapping the period.

        Targets in the period are re-measured and written back. The
        previous-period comparison only counts stored targets; nothing in
        the previous window is re-measured.

        Raises
        ------
        AnalyticsError
            When the service was built without a target tracker.
        TargetPersistenceError
            When the refreshed values cannot be committed.
        """
        tracker = self._tracker
        if tracker is None:
            raise AnalyticsError("target analytics requires a TargetProgressTracker")

        def build() -> TargetAnalytics:
            progress = tracker.refresh_overlapping(filters)
            previous_count = tracker.count_overlapping(
                filters.company_id,
                filters.period.previous(),
                user_id=filters.user_id,
            )
            summary = summarize(progress)
            return TargetAnalytics(
                period=filters.period,
                targets=tuple(progress),
                summary=summary,
                targets_by_type=group_by_type(progress),
                targets_by_period=group_by_period(progress),
                monthly_trend=monthly_trend(progress),
                comparison=compare_periods(len(progress), previous_count),
                insights=self._generate(
                    InsightSignals(
                        total_targets=summary.total_targets,
                        on_track_targets=summary.on_track,
                    )
                ),
            )

        return self._timed("target_analytics", filters, build)

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    def dashboard_analytics(self, filters: AnalyticsFilters) -> DashboardAnalytics:
        def build() -> DashboardAnalytics:
            leads, previous_leads = self._lead_pair(filters)
            deals, previous_deals = self._deal_pair(filters)
            funnel = self._evaluate_funnel(filters)

            signals = InsightSignals(
                total_leads=leads.total_leads,
                conversion_rate=leads.conversion_rate,
                closed_deals=deals.won_deals + deals.lost_deals,
                win_rate=deals.win_rate,
                funnel_health=funnel.health,
                funnel_bottlenecks=_bottleneck_labels(funnel),
            )
            return DashboardAnalytics(
                period=filters.period,
                summary=DashboardSummary(
                    total_leads=leads.total_leads,
                    qualified_leads=leads.qualified_leads,
                    conversion_rate=leads.conversion_rate,
                    total_deals=deals.total_deals,
                    won_deals=deals.won_deals,
                    total_revenue=deals.total_revenue,
                    average_deal_value=deals.average_deal_value,
                    win_rate=deals.win_rate,
                    funnel_health=funnel.health,
                ),
                charts=DashboardCharts(
                    leads_by_source=leads.leads_by_source,
                    deals_by_stage=deals.deals_by_stage,
                    revenue_trend=deals.revenue_trend,
                    daily_trend=leads.daily_trend,
                ),
                period_comparison=PeriodComparison(
                    leads=growth(leads.total_leads, previous_leads.total_leads),
                    deals=growth(deals.total_deals, previous_deals.total_deals),
                    revenue=growth(deals.total_revenue, previous_deals.total_revenue),
                ),
                insights=self._generate(signals),
            )

        return self._timed("dashboard_analytics", filters, build)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _lead_pair(self, filters: AnalyticsFilters) -> tuple[LeadMetrics, LeadMetrics]:
        previous_filters = _previous(filters)
        current = self._leads.calculate(self._source.lead_metrics(filters), filters.period)
        previous = self._leads.calculate(
            self._source.lead_metrics(previous_filters), previous_filters.period
        )
        return current, previous

    def _deal_pair(self, filters: AnalyticsFilters) -> tuple[DealMetrics, DealMetrics]:
        previous_filters = _previous(filters)
        current = self._deals.calculate(self._source.deal_metrics(filters), filters.period)
        previous = self._deals.calculate(
            self._source.deal_metrics(previous_filters), previous_filters.period
        )
        return current, previous

    def _evaluate_funnel(self, filters: AnalyticsFilters) -> FunnelHealth:
        return self._funnel.evaluate(self._source.funnel_stages(filters))

    def _generate(self, signals: InsightSignals) -> tuple[str, ...]:
        return tuple(self._insights.generate(signals))

    def _timed(
        self,
        kind: str,
        filters: AnalyticsFilters,
        build: Callable[[], ResultT],
    ) -> ResultT:
        run_start = time.monotonic()
        logger.info(
            "AnalyticsService.%s started company=%d period=[%s, %s]",
            kind,
            filters.company_id,
            filters.period.start.isoformat(),
            filters.period.end.isoformat(),
        )
        try:
            result = build()
        except AnalyticsError as exc:
            log_event(
                logger,
                logging.WARNING,
                "analytics_failed",
                kind=kind,
                company_id=filters.company_id,
                error=type(exc).__name__,
            )
            raise

        elapsed = time.monotonic() - run_start
        logger.info(
            "AnalyticsService.%s completed company=%d insights=%d elapsed=%.3fs",
            kind,
            filters.company_id,
            len(result.insights),
            elapsed,
        )
        log_event(
            logger,
            logging.INFO,
            "analytics_completed",
            kind=kind,
            company_id=filters.company_id,
            start_date=filters.period.start.date(),
            end_date=filters.period.end.date(),
            elapsed_ms=round(elapsed * 1000, 2),
        )
        return result


# ---------------------------------------------------------------------------
# Helpers (not part of public API)
# ---------------------------------------------------------------------------


def _previous(filters: AnalyticsFilters) -> AnalyticsFilters:
    return filters.with_period(filters.period.previous())


def _lead_signals(metrics: LeadMetrics) -> InsightSignals:
    return InsightSignals(
        total_leads=metrics.total_leads,
        conversion_rate=metrics.conversion_rate,
    )


def _deal_signals(metrics: DealMetrics) -> InsightSignals:
    return InsightSignals(
        closed_deals=metrics.won_deals + metrics.lost_deals,
        win_rate=metrics.win_rate,
    )


def _funnel_signals(funnel: FunnelHealth) -> InsightSignals:
    return InsightSignals(
        funnel_health=funnel.health,
        funnel_bottlenecks=_bottleneck_labels(funnel),
    )


def _bottleneck_labels(funnel: FunnelHealth) -> tuple[str, ...]:
    return tuple(f"{t.from_stage} → {t.to_stage}" for t in funnel.bottlenecks)
