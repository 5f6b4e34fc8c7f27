"""
app/domain package marker.
"""

from app.domain.errors import (
    AnalyticsError,
    InvalidDateFormat,
    InvalidRange,
    InvalidTargetOwnership,
    NotFound,
    SourceUnavailable,
    TargetPersistenceError,
)
from app.domain.period import AnalyticsFilters, Period, build_filters, build_period

__all__ = [
    "AnalyticsError",
    "AnalyticsFilters",
    "InvalidDateFormat",
    "InvalidRange",
    "InvalidTargetOwnership",
    "NotFound",
    "Period",
    "SourceUnavailable",
    "TargetPersistenceError",
    "build_filters",
    "build_period",
]
