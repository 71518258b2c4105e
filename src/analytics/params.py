"""Query-parameter coercion shared by the aggregation endpoints.

Numeric parameters are lenient: a missing, zero or non-numeric value falls
back to the endpoint default before clamping, so ``?days=abc`` behaves like
no ``days`` at all instead of failing the request.
"""

import math

GROWTH_DAYS_DEFAULT = 30
GROWTH_DAYS_MAX = 365
TIMELINE_HOURS_DEFAULT = 168
TIMELINE_HOURS_MAX = 168
RECENT_HOURS_DEFAULT = 24
RECENT_HOURS_MAX = 168
MEMORIES_LIMIT_DEFAULT = 50
MEMORIES_LIMIT_MAX = 200
EXPLORE_TOP_K_DEFAULT = 10
EXPLORE_TOP_K_MAX = 50


def coerce_number(raw: str | int | float | None, default: int) -> int:
    """Convert a raw parameter to an int, using default for missing/zero/invalid values."""
    if raw is None or isinstance(raw, bool):
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(value) or value == 0:
        return default
    return int(value)


def clamp(value: int, low: int, high: int) -> int:
    return min(max(value, low), high)


def clamp_param(raw: str | int | float | None, default: int, low: int, high: int) -> int:
    """Coerce then clamp a numeric parameter into [low, high]."""
    return clamp(coerce_number(raw, default), low, high)


def growth_days(raw: str | int | None) -> int:
    return clamp_param(raw, GROWTH_DAYS_DEFAULT, 1, GROWTH_DAYS_MAX)


def timeline_hours(raw: str | int | None) -> int:
    return clamp_param(raw, TIMELINE_HOURS_DEFAULT, 1, TIMELINE_HOURS_MAX)


def recent_hours(raw: str | int | None) -> int:
    return clamp_param(raw, RECENT_HOURS_DEFAULT, 1, RECENT_HOURS_MAX)


def memories_limit(raw: str | int | None) -> int:
    return clamp_param(raw, MEMORIES_LIMIT_DEFAULT, 1, MEMORIES_LIMIT_MAX)


def memories_offset(raw: str | int | None) -> int:
    return max(coerce_number(raw, 0), 0)


def explore_top_k(raw: str | int | float | None) -> int:
    return clamp_param(raw, EXPLORE_TOP_K_DEFAULT, 1, EXPLORE_TOP_K_MAX)
