"""
app/api/routers/analytics_router.py

Read-only analytics endpoints, one per analytics kind.

Every kind accepts the same query parameters (``company_id`` is required):

    start_date, end_date   YYYY-MM-DD; default to the last 30 days
    user_id                narrows leads and deals to one assignee
    source, status,
    campaign               narrow lead aggregates
    stage                  narrows deal aggregates

``targets`` is not strictly read-only: it refreshes the cached
``actual_value`` of every target overlapping the period.
"""

from __future__ import annotations

import logging
from enum import Enum

from fastapi import APIRouter, Depends, status

from app.api.dependencies import get_analytics_filters, get_analytics_service, to_http_exception
from app.domain.errors import AnalyticsError
from app.domain.period import AnalyticsFilters
from app.schemas.analytics import AnalyticsResponse
from app.services.analytics_service import AnalyticsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analytics", tags=["analytics"])


class AnalyticsKind(str, Enum):
    LEADS = "leads"
    DEALS = "deals"
    SALES_ACTIVITY = "sales-activity"
    PERFORMANCE = "performance"
    FUNNEL = "funnel"
    TARGETS = "targets"
    DASHBOARD = "dashboard"
    CONVERSION = "conversion"


_HANDLERS = {
    AnalyticsKind.LEADS: AnalyticsService.lead_analytics,
    AnalyticsKind.DEALS: AnalyticsService.deal_analytics,
    AnalyticsKind.SALES_ACTIVITY: AnalyticsService.sales_activity_analytics,
    AnalyticsKind.PERFORMANCE: AnalyticsService.performance_analytics,
    AnalyticsKind.FUNNEL: AnalyticsService.funnel_analytics,
    AnalyticsKind.TARGETS: AnalyticsService.target_analytics,
    AnalyticsKind.DASHBOARD: AnalyticsService.dashboard_analytics,
    AnalyticsKind.CONVERSION: AnalyticsService.conversion_analytics,
}


@router.get(
    "/{kind}",
    response_model=AnalyticsResponse,
    status_code=status.HTTP_200_OK,
)
def get_analytics(
    kind: AnalyticsKind,
    filters: AnalyticsFilters = Depends(get_analytics_filters),
    service: AnalyticsService = Depends(get_analytics_service),
) -> AnalyticsResponse:
    """
    Compute one analytics kind for the requested period.

    Raises HTTP 400 for invalid dates, HTTP 503 when the CRM store fails.
    """
    try:
        result = _HANDLERS[kind](service, filters)
    except AnalyticsError as exc:
        logger.warning("analytics kind=%s company=%d failed: %s", kind.value, filters.company_id, exc)
        raise to_http_exception(exc) from exc
    return AnalyticsResponse(kind=kind.value, data=result.to_dict())
