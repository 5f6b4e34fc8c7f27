"""
app/domain/errors.py

Exception taxonomy for the analytics engine.

Validation errors are raised before any query is issued. Source errors
abort the whole request; partial analytics are never returned.
Division by zero is not an error anywhere in this package.
"""

from __future__ import annotations


class AnalyticsError(Exception):
    """Base exception for analytics and target-progress failures."""


class InvalidDateFormat(AnalyticsError, ValueError):
    """Raised when a date string does not parse as ``YYYY-MM-DD``."""

    def __init__(self, field: str, value: str) -> None:
        super().__init__(f"Invalid {field} format {value!r}. Use YYYY-MM-DD")
        self.field = field
        self.value = value


class InvalidRange(AnalyticsError, ValueError):
    """Raised when a period ends before it starts."""


class NotFound(AnalyticsError, LookupError):
    """Raised when a target (or its company scope) does not exist."""


class SourceUnavailable(AnalyticsError, RuntimeError):
    """Raised when an aggregation query against the CRM store fails."""


class TargetPersistenceError(SourceUnavailable):
    """
    Raised when the refreshed ``actual_value`` cannot be written back.

    The session has been rolled back before this exception is raised.
    """


class InvalidTargetOwnership(AnalyticsError, ValueError):
    """Raised when a target is assigned to both a user and a team."""
