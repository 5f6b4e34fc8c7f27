"""
app/schemas package marker.
"""

from app.schemas.analytics import (
    AnalyticsResponse,
    HealthResponse,
    TargetProgressListResponse,
    TargetProgressResponse,
)

__all__ = [
    "AnalyticsResponse",
    "HealthResponse",
    "TargetProgressListResponse",
    "TargetProgressResponse",
]
