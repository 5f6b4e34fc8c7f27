"""
app/config.py

Application-level configuration helpers.

Every knob has a built-in default; environment
variables override it. Malformed numeric values fall back to the default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


@dataclass(frozen=True)
class AnalyticsSettings:
    """
    Thresholds and heuristics used by the analytics engine.
    """

    lookback_days: int = 30
    funnel_critical_threshold: float = 10.0
    funnel_at_risk_threshold: float = 25.0
    low_conversion_rate: float = 10.0
    low_win_rate: float = 20.0
    targets_behind_share: float = 50.0
    targets_excellent_share: float = 80.0
    forecast_next_month_multiplier: float = 1.1
    forecast_next_quarter_multiplier: float = 3.2
    forecast_confidence: float = 0.75
    top_performers: int = 3


@lru_cache(maxsize=1)
def get_analytics_settings() -> AnalyticsSettings:
    """
    Return cached analytics settings from environment variables.
    """

    return AnalyticsSettings(
        lookback_days=max(1, _get_int_env("ANALYTICS_LOOKBACK_DAYS", 30)),
        funnel_critical_threshold=_get_float_env("ANALYTICS_FUNNEL_CRITICAL_THRESHOLD", 10.0),
        funnel_at_risk_threshold=_get_float_env("ANALYTICS_FUNNEL_AT_RISK_THRESHOLD", 25.0),
        low_conversion_rate=_get_float_env("ANALYTICS_LOW_CONVERSION_RATE", 10.0),
        low_win_rate=_get_float_env("ANALYTICS_LOW_WIN_RATE", 20.0),
        targets_behind_share=_get_float_env("ANALYTICS_TARGETS_BEHIND_SHARE", 50.0),
        targets_excellent_share=_get_float_env("ANALYTICS_TARGETS_EXCELLENT_SHARE", 80.0),
        forecast_next_month_multiplier=_get_float_env("ANALYTICS_FORECAST_NEXT_MONTH", 1.1),
        forecast_next_quarter_multiplier=_get_float_env("ANALYTICS_FORECAST_NEXT_QUARTER", 3.2),
        forecast_confidence=min(
            1.0, max(0.0, _get_float_env("ANALYTICS_FORECAST_CONFIDENCE", 0.75))
        ),
        top_performers=max(1, _get_int_env("ANALYTICS_TOP_PERFORMERS", 3)),
    )
