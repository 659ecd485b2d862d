"""Unit conversion and sanitising helpers shared across the integration.

All converters coerce to float and return None on failure.
Canonical units used by the scoring engine:
- wind: kilometres/hour (km/h) on samples, knots (kt) inside scorers
- current: knots (kt)
- temperature: Celsius (°C)
- pressure: hectopascals (hPa)
- wave height: meters (m)
- visibility: kilometers (km)
"""
from __future__ import annotations

import dataclasses
import logging
import math
from datetime import datetime, timezone
from typing import Any, Optional

from .const import PHYSICAL_BOUNDS
from .models import EnvironmentalSample

_LOGGER = logging.getLogger(__name__)

_KMH_TO_KNOTS = 0.539957
_M_S_TO_KNOTS = 1.943844


def _to_float(v: Any) -> Optional[float]:
    try:
        if v is None:
            return None
        f = float(v)
    except Exception:
        return None
    if not math.isfinite(f):
        return None
    return f


# ---- Speed converters ----

def kmh_to_m_s(v: Any) -> Optional[float]:
    """Convert km/h to m/s."""
    f = _to_float(v)
    if f is None:
        return None
    return f * 0.277777778


def m_s_to_kmh(v: Any) -> Optional[float]:
    f = _to_float(v)
    if f is None:
        return None
    return f * 3.6


def kmh_to_knots(v: Any) -> Optional[float]:
    """Convert km/h to knots."""
    f = _to_float(v)
    if f is None:
        return None
    return f * _KMH_TO_KNOTS


def knots_to_kmh(v: Any) -> Optional[float]:
    f = _to_float(v)
    if f is None:
        return None
    return f / _KMH_TO_KNOTS


def m_s_to_knots(v: Any) -> Optional[float]:
    """Convert m/s to knots."""
    f = _to_float(v)
    if f is None:
        return None
    return f * _M_S_TO_KNOTS


def m_to_km(v: Any) -> Optional[float]:
    f = _to_float(v)
    if f is None:
        return None
    return f / 1000.0


# ---- Clamping ----

def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def clamp_0_10(x: Any) -> float:
    """Clamp a score to [0, 10]; anything non-finite becomes 0."""
    f = _to_float(x)
    if f is None:
        return 0.0
    return clamp(f, 0.0, 10.0)


def clamp_to_bounds(key: str, value: Any) -> Optional[float]:
    """Clamp a sample field into its physical range; unknown keys pass through as float."""
    f = _to_float(value)
    if f is None:
        return None
    bounds = PHYSICAL_BOUNDS.get(key)
    if bounds is None:
        return f
    low, high = bounds
    if key == "wind_direction":
        return f % 360.0
    clamped = clamp(f, low, high)
    if clamped != f:
        _LOGGER.debug("Clamped %s from %s to %s", key, f, clamped)
    return clamped


def sanitize_sample(sample: EnvironmentalSample) -> EnvironmentalSample:
    """Return a copy of `sample` with NaN/inf replaced by None and every field clamped."""
    changes = {}
    for key in PHYSICAL_BOUNDS:
        raw = getattr(sample, key, None)
        cleaned = clamp_to_bounds(key, raw)
        if cleaned != raw:
            changes[key] = cleaned
    if not changes:
        return sample
    return dataclasses.replace(sample, **changes)


def angle_difference(a: float, b: float) -> float:
    """Smallest absolute difference between two bearings, 0..180 degrees."""
    diff = abs((float(a) - float(b)) % 360.0)
    return 360.0 - diff if diff > 180.0 else diff


# ---- Time ----

def to_epoch_seconds(ts: Any) -> float:
    """datetime, ISO string or epoch seconds/milliseconds to epoch seconds (UTC).

    Raises ValueError on unrecognized input.
    """
    if isinstance(ts, datetime):
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return ts.timestamp()
    if isinstance(ts, str):
        s = ts.strip()
        try:
            dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
        except ValueError:
            f = _to_float(s)
            if f is None:
                raise ValueError(f"Unrecognized timestamp string: {ts}") from None
            return f / 1000.0 if f > 1e12 else f
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.timestamp()
    f = _to_float(ts)
    if f is None or isinstance(ts, bool):
        raise ValueError(f"Unsupported timestamp: {ts!r}")
    return f / 1000.0 if f > 1e12 else f
