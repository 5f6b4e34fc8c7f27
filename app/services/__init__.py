"""
app/services package marker.
"""

from app.services.metric_source import MetricSource, SQLAlchemyMetricSource

__all__ = [
    "MetricSource",
    "SQLAlchemyMetricSource",
]
