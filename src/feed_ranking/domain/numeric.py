from __future__ import annotations

import math
import sys
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

HOUR = timedelta(hours=1)
MAX_FLOAT = sys.float_info.max


def coalesce_count(value) -> float:
    # Counters can arrive as None, or negative after racy decrements upstream.
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        x = float(value)
    except OverflowError:
        # Integers beyond float range saturate instead of failing.
        return MAX_FLOAT if value > 0 else 0.0
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(x) or x <= 0:
        return 0.0
    return x


def saturate(value: float) -> float:
    """Map NaN to 0 and infinities to the largest finite float of that sign."""
    if math.isnan(value):
        return 0.0
    return clamp(value, -MAX_FLOAT, MAX_FLOAT)


def clamp(value: float, lower: float, upper: float) -> float:
    return float(min(upper, max(lower, value)))


def safe_ratio(numerator: float, denominator: float, default: float = 0.0) -> float:
    if denominator is None or denominator <= 0:
        return default
    r = numerator / denominator
    if not math.isfinite(r):
        return default
    return float(r)


def as_utc(ts: datetime) -> datetime:
    # Naive datetimes are taken to be UTC.
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def age(created_at: datetime | None, now: datetime) -> timedelta | None:
    """Age of ``created_at`` at ``now``, floored at zero; None when unknown."""
    if created_at is None:
        return None
    delta = as_utc(now) - as_utc(created_at)
    return max(delta, timedelta(0))


def age_hours(created_at: datetime | None, now: datetime) -> float | None:
    a = age(created_at, now)
    if a is None:
        return None
    return a / HOUR


def step_boost(elapsed: timedelta, steps: Iterable[tuple[timedelta, float]], default: float = 0) -> float:
    # First (threshold, boost) with elapsed strictly below the threshold wins.
    for threshold, boost in steps:
        if elapsed < threshold:
            return boost
    return default


def linear_decay(elapsed: float, start: float, rate: float) -> float:
    return max(0.0, start - elapsed * rate)


def exponential_decay(elapsed: float, base: float, period: float) -> float:
    """Multiplier ``base ** (elapsed / period)``: ``base`` per full period elapsed."""
    if period <= 0:
        return 1.0
    return base ** (max(0.0, elapsed) / period)


def round_half_up(value: float, places: int = 2) -> float:
    """Round half away from zero (``round()`` would use banker's rounding)."""
    if not math.isfinite(value):
        return 0.0
    q = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(q, rounding=ROUND_HALF_UP))
