"""
app/schemas/analytics.py

Response schemas for analytics and target-progress endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class AnalyticsResponse(BaseModel):
    """
    API response model wrapping one composed analytics result.
    """

    kind: str
    data: dict[str, Any]


class TargetProgressResponse(BaseModel):
    """
    API response model for one target's progress.
    """

    target_id: int
    name: str
    target_type: str
    target_value: float
    actual_value: float
    percent_complete: float
    time_progress: float = Field(..., ge=0, le=100)
    on_track: bool
    days_remaining: int
    start_date: datetime
    end_date: datetime
    period: str
    status: str
    user_id: int | None = None
    team_id: int | None = None

    model_config = {"from_attributes": True}


class TargetProgressListResponse(BaseModel):
    company_id: int
    targets: list[TargetProgressResponse] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str
