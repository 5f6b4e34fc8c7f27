"""
app/api/routers/target_router.py

Target progress endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from app.api.dependencies import get_target_tracker, to_http_exception
from app.domain.errors import AnalyticsError
from app.schemas.analytics import TargetProgressListResponse, TargetProgressResponse
from targets.tracker import TargetProgressTracker

router = APIRouter(prefix="/targets", tags=["targets"])


@router.get(
    "/progress",
    response_model=TargetProgressListResponse,
    status_code=status.HTTP_200_OK,
)
def sweep_target_progress(
    company_id: int = Query(..., ge=1),
    tracker: TargetProgressTracker = Depends(get_target_tracker),
) -> TargetProgressListResponse:
    """
    Refresh every active target of the company and return their progress.
    """
    try:
        progress = tracker.sweep_active(company_id)
    except AnalyticsError as exc:
        raise to_http_exception(exc) from exc
    return TargetProgressListResponse(
        company_id=company_id,
        targets=[TargetProgressResponse.model_validate(item) for item in progress],
    )


@router.get(
    "/{target_id}/progress",
    response_model=TargetProgressResponse,
    status_code=status.HTTP_200_OK,
)
def get_target_progress(
    target_id: int,
    company_id: int = Query(..., ge=1),
    tracker: TargetProgressTracker = Depends(get_target_tracker),
) -> TargetProgressResponse:
    """
    Re-measure one target, persist the new actual value and return progress.

    Raises HTTP 404 for an unknown target, HTTP 503 when measuring or
    persisting fails.
    """
    try:
        progress = tracker.recompute_and_persist(target_id, company_id)
    except AnalyticsError as exc:
        raise to_http_exception(exc) from exc
    return TargetProgressResponse.model_validate(progress)


@router.get(
    "/{target_id}/progress/cached",
    response_model=TargetProgressResponse,
    status_code=status.HTTP_200_OK,
)
def get_cached_target_progress(
    target_id: int,
    company_id: int = Query(..., ge=1),
    tracker: TargetProgressTracker = Depends(get_target_tracker),
) -> TargetProgressResponse:
    """
    Progress from the last persisted actual value; nothing is re-measured.
    """
    try:
        progress = tracker.read_progress(target_id, company_id)
    except AnalyticsError as exc:
        raise to_http_exception(exc) from exc
    return TargetProgressResponse.model_validate(progress)
