"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation and service wiring.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.config import get_analytics_settings
from app.domain.errors import (
    AnalyticsError,
    InvalidDateFormat,
    InvalidRange,
    InvalidTargetOwnership,
    NotFound,
    SourceUnavailable,
)
from app.domain.period import AnalyticsFilters, build_filters
from app.services.analytics_service import AnalyticsService
from db.session import get_db
from targets.tracker import TargetProgressTracker


def get_analytics_filters(
    company_id: int = Query(..., ge=1),
    start_date: str | None = Query(None, description="YYYY-MM-DD"),
    end_date: str | None = Query(None, description="YYYY-MM-DD"),
    user_id: int | None = Query(None, ge=1),
    source: str | None = Query(None),
    lead_status: str | None = Query(None, alias="status"),
    stage: str | None = Query(None),
    campaign: str | None = Query(None),
) -> AnalyticsFilters:
    """
    Validate analytics query parameters into :class:`AnalyticsFilters`.

    Raises HTTP 400 for a malformed date or an end date before the start.
    """

    try:
        return build_filters(
            company_id,
            start_date,
            end_date,
            user_id=user_id,
            source=source,
            status=lead_status,
            stage=stage,
            campaign=campaign,
            lookback_days=get_analytics_settings().lookback_days,
        )
    except (InvalidDateFormat, InvalidRange) as exc:
        raise to_http_exception(exc) from exc


def get_analytics_service(db: Session = Depends(get_db)) -> AnalyticsService:
    return AnalyticsService.from_session(db)


def get_target_tracker(db: Session = Depends(get_db)) -> TargetProgressTracker:
    return TargetProgressTracker(db)


def to_http_exception(exc: AnalyticsError) -> HTTPException:
    """
    Map a domain error onto its HTTP status.
    """

    if isinstance(exc, (InvalidDateFormat, InvalidRange, InvalidTargetOwnership)):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, NotFound):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, SourceUnavailable):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(exc))
