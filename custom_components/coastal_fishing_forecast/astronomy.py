"""Lightweight astronomical approximations used when no ephemeris data is supplied.

These helpers are pure and cheap; the integration layer replaces them with
Skyfield events (see tide_proxy.TideProxy.async_get_astronomy) whenever it can.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

SYNODIC_MONTH_DAYS = 29.53059
# Julian day of a reference new moon (2000-01-06 18:14 UTC)
_REFERENCE_NEW_MOON_JD = 2451550.1
_UNIX_EPOCH_JD = 2440587.5

_PHASE_NAMES = (
    "new_moon",
    "waxing_crescent",
    "first_quarter",
    "waxing_gibbous",
    "full_moon",
    "waning_gibbous",
    "last_quarter",
    "waning_crescent",
)


@dataclass(frozen=True)
class SolunarPeriods:
    major: Tuple[float, ...]
    minor: Tuple[float, ...]


def to_datetime(ts: float, utc_offset_seconds: int = 0) -> datetime:
    """Epoch seconds to an aware datetime shifted into local (offset) time."""
    tz = timezone(timedelta(seconds=int(utc_offset_seconds)))
    return datetime.fromtimestamp(float(ts), tz=timezone.utc).astimezone(tz)


def day_of_year(ts: float, utc_offset_seconds: int = 0) -> int:
    return to_datetime(ts, utc_offset_seconds).timetuple().tm_yday


def is_odd_year(ts: float, utc_offset_seconds: int = 0) -> bool:
    return to_datetime(ts, utc_offset_seconds).year % 2 == 1


def moon_phase(ts: float) -> float:
    """Moon phase as a fraction of the synodic month: 0 new, 0.5 full."""
    jd = float(ts) / 86400.0 + _UNIX_EPOCH_JD
    age = (jd - _REFERENCE_NEW_MOON_JD) % SYNODIC_MONTH_DAYS
    return age / SYNODIC_MONTH_DAYS


def moon_illumination(phase: float) -> float:
    """Illuminated fraction in percent for a phase in [0, 1)."""
    return (1.0 - math.cos(2.0 * math.pi * phase)) / 2.0 * 100.0


def moon_phase_name(phase: float) -> str:
    idx = int(((phase % 1.0) * 8.0) + 0.5) % 8
    return _PHASE_NAMES[idx]


def solunar_periods(ts: float, longitude: float) -> SolunarPeriods:
    """Approximate solunar events around `ts`.

    The moon crosses the local meridian near solar noon at new moon and about
    50 minutes later every following day. Major periods are the overhead and
    underfoot transits, minor periods moonrise and moonset (6 h either side).
    Events are generated for the previous, current and next UTC day so the
    nearest one is always present.
    """
    day_start = math.floor(float(ts) / 86400.0) * 86400.0
    major = []
    minor = []
    for offset_days in (-1, 0, 1):
        base = day_start + offset_days * 86400.0
        days_since_new = moon_phase(base + 43200.0) * SYNODIC_MONTH_DAYS
        overhead_hour = (12.0 - float(longitude) / 15.0 + days_since_new * 50.0 / 60.0) % 24.0
        overhead = base + overhead_hour * 3600.0
        major.extend([overhead, overhead + 12.0 * 3600.0])
        minor.extend([overhead - 6.0 * 3600.0, overhead + 6.0 * 3600.0])
    return SolunarPeriods(major=tuple(sorted(major)), minor=tuple(sorted(minor)))


def is_daylight(ts: float, sunrise: float, sunset: float) -> bool:
    """True when `ts` falls between sunrise and sunset, shifting the pair by whole days."""
    day = 86400.0
    t = float(ts)
    for shift in (-day, 0.0, day):
        if sunrise + shift <= t <= sunset + shift:
            return True
    return False


def estimate_sun_elevation(ts: float, sunrise: Optional[float], sunset: Optional[float], utc_offset_seconds: int = 0) -> float:
    """Rough sun elevation in degrees (negative at night) for mid-latitude coasts."""
    if sunrise is None or sunset is None or sunset <= sunrise:
        return 0.0
    day_length = sunset - sunrise
    since_sunrise = float(ts) - sunrise
    if since_sunrise < 0:
        return max(-10.0, since_sunrise / 3600.0 * 10.0)
    if since_sunrise > day_length:
        return max(-10.0, -(float(ts) - sunset) / 3600.0 * 10.0)
    progress = since_sunrise / day_length
    month = to_datetime(ts, utc_offset_seconds).month
    seasonal_max = 40.0 - 23.0 * math.cos(month * math.pi / 6.0)
    return math.sin(progress * math.pi) * seasonal_max
