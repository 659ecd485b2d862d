"""Per-factor scoring curves.

Every scorer has the same shape:

    scorer(sample, context, tide=None, *, weight=0.0, **species_params) -> FactorResult

Scores are on a 0-10 scale. Missing inputs never raise; they produce a neutral
5.0 with a ``no_*`` description so the weighted total stays meaningful.
Species tables in species_algorithms bind the per-species parameters.

The V1 (legacy) step curves are expressed as band tables consumed by
``score_banded``; V2 curves are smooth.
"""
from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Callable, Dict, Iterable, Mapping, Optional, Sequence, Tuple

from .astronomy import (
    day_of_year,
    is_daylight,
    moon_illumination,
    moon_phase,
    moon_phase_name,
    solunar_periods,
    to_datetime,
)
from .const import (
    DEFAULT_MAX_GUST_KT,
    DEFAULT_MAX_WAVE_M,
    DEFAULT_MAX_WIND_KT,
    DEFAULT_REFERENCE_LONGITUDE,
    IN_SEASON_THRESHOLD,
    NEUTRAL_SCORE,
    PRESSURE_MIN_HISTORY_HOURS,
    PRESSURE_TREND_HOURS,
    SOLUNAR_MAJOR_WINDOW_MIN,
    SOLUNAR_MINOR_WINDOW_MIN,
)
from .models import AlgorithmContext, EnvironmentalSample, FactorResult, TideSnapshot
from .physics_helpers import (
    ceiling_decay,
    estimate_wave_height,
    freshet_status,
    gaussian_band,
    molt_quality_index,
    retrieval_safety,
    scent_hydraulics,
    swell_quality,
    thermal_blockade,
    tidal_treadmill,
    wind_tide_interaction,
)
from .unit_helpers import _to_float, clamp, clamp_0_10, kmh_to_knots

_LOGGER = logging.getLogger(__name__)

INF = math.inf
_DAY_SECONDS = 86400.0
_YEAR_DAYS = 365.0

# (low, high, score) inclusive on both ends; first match wins
Band = Tuple[float, float, float]


# ---- Shared curves ----

def bell_curve(distance: float, spread: float, peak: float = 10.0) -> float:
    if spread <= 0:
        return peak if distance == 0 else 0.0
    return peak * math.exp(-(distance * distance) / (2.0 * spread * spread))


def exp_decay(x: float, k: float) -> float:
    return 10.0 * math.exp(-k * abs(x))


def _linear_within_score_10(value: float, pref_min: float, pref_max: float, tolerance: float) -> float:
    if math.isclose(pref_min, pref_max):
        low = pref_min - tolerance
        high = pref_max + tolerance
    else:
        low = pref_min
        high = pref_max
    span_low = low - tolerance
    span_high = high + tolerance
    if value >= low and value <= high:
        return 10.0
    if value <= span_low or value >= span_high:
        return 0.0
    if value < low:
        return 10.0 * (value - span_low) / (low - span_low)
    if value > high:
        return 10.0 * (span_high - value) / (span_high - high)
    return 0.0


def _band_lookup(value: float, bands: Iterable[Band], default: float) -> float:
    for low, high, score in bands:
        if low <= value <= high:
            return float(score)
    return float(default)


def _result(value, weight: float, score: float, description: Optional[str] = None, **extra) -> FactorResult:
    return FactorResult(value=value, weight=weight, score=clamp_0_10(score), description=description, **extra)


def _neutral(weight: float, description: str, value=None) -> FactorResult:
    return FactorResult(value=value, weight=weight, score=NEUTRAL_SCORE, description=description)


# ---- Input accessors ----

def _local_time(sample: EnvironmentalSample, context: AlgorithmContext) -> datetime:
    return to_datetime(sample.timestamp, context.utc_offset_seconds)


def _current_speed(tide: Optional[TideSnapshot]) -> Optional[float]:
    if tide is None:
        return None
    f = _to_float(tide.current_speed)
    return abs(f) if f is not None else None


def _tidal_range(tide: Optional[TideSnapshot]) -> Optional[float]:
    if tide is None:
        return None
    return _to_float(tide.tidal_range)


def _wind_knots(sample: EnvironmentalSample) -> Optional[float]:
    return kmh_to_knots(sample.wind_speed)


def _wave_height(sample: EnvironmentalSample) -> Optional[float]:
    wave = _to_float(sample.wave_height)
    if wave is not None:
        return wave
    if sample.wind_speed is None:
        return None
    return estimate_wave_height(sample.wind_speed)


def water_temperature(sample: EnvironmentalSample, tide: Optional[TideSnapshot]) -> Optional[float]:
    if tide is not None and _to_float(tide.water_temperature) is not None:
        return float(tide.water_temperature)
    return _to_float(sample.temperature)


def _is_night(sample: EnvironmentalSample, context: AlgorithmContext) -> Optional[bool]:
    if context.sunrise is None or context.sunset is None:
        return None
    return not is_daylight(sample.timestamp, context.sunrise, context.sunset)


_BAND_SOURCES: Dict[str, Callable[[EnvironmentalSample, AlgorithmContext, Optional[TideSnapshot]], Optional[float]]] = {
    "current_speed": lambda s, c, t: _current_speed(t),
    "tidal_range": lambda s, c, t: _tidal_range(t),
    "wind_knots": lambda s, c, t: _wind_knots(s),
    "wave_height": lambda s, c, t: _wave_height(s),
    "water_temp": lambda s, c, t: water_temperature(s, t),
    "precipitation": lambda s, c, t: _to_float(s.precipitation),
    "pressure": lambda s, c, t: _to_float(s.pressure),
    "cloud_cover": lambda s, c, t: _to_float(s.cloud_cover),
    "hour": lambda s, c, t: float(_local_time(s, c).hour),
    "month": lambda s, c, t: float(_local_time(s, c).month),
}


# ---- Legacy step curves ----

def score_banded(
    sample: EnvironmentalSample,
    context: AlgorithmContext,
    tide: Optional[TideSnapshot] = None,
    *,
    weight: float = 0.0,
    source: str,
    bands: Sequence[Band],
    default: float = NEUTRAL_SCORE,
    unsafe_above: Optional[float] = None,
    unsafe_warning: Optional[str] = None,
) -> FactorResult:
    """Step curve over one input; values above `unsafe_above` score 0 and flag the factor unsafe."""
    accessor = _BAND_SOURCES.get(source)
    if accessor is None:
        raise ValueError(f"Unknown band source {source!r} (strict)")
    value = accessor(sample, context, tide)
    if value is None:
        return _neutral(weight, f"no_{source}_data")
    if unsafe_above is not None and value > unsafe_above:
        warning = unsafe_warning or f"{source.replace('_', ' ').capitalize()} above safe limit"
        return _result(round(value, 2), weight, 0.0, "unsafe", is_safe=False, warnings=(warning,))
    return _result(round(value, 2), weight, _band_lookup(value, bands, default))


DEFAULT_LIGHT_HOUR_BANDS: Tuple[Band, ...] = (
    (4, 7, 10.0),
    (18, 21, 10.0),
    (8, 10, 7.0),
    (16, 17, 7.0),
    (11, 15, 4.0),
)

_DEFAULT_PRESSURE_BANDS: Tuple[Band, ...] = (
    (0.0, 1009.99, 10.0),
    (1010.0, 1013.99, 8.0),
    (1014.0, 1020.0, 5.0),
)


def score_light_hour(sample, context, tide=None, *, weight=0.0, bands=DEFAULT_LIGHT_HOUR_BANDS, default=0.0):
    """Clock-hour light score used by the legacy tables."""
    return score_banded(sample, context, tide, weight=weight, source="hour", bands=bands, default=default)


def score_pressure_absolute(sample, context, tide=None, *, weight=0.0, bands=_DEFAULT_PRESSURE_BANDS, default=0.0):
    return score_banded(sample, context, tide, weight=weight, source="pressure", bands=bands, default=default)


def score_other_factors(sample, context, tide=None, *, weight=0.0):
    """Small overcast and water-temperature bonus used by the legacy rockfish table."""
    cloud = _to_float(sample.cloud_cover)
    score = 7.0
    if cloud is not None and cloud >= 50.0:
        score = 8.0
    water = water_temperature(sample, tide)
    if water is not None and 8.0 <= water <= 14.0:
        score += 1.0
    return _result(cloud, weight, min(score, 10.0), "overcast" if score >= 8.0 else None)


# ---- Seasonality ----

def _circular_day_distance(a: float, b: float) -> float:
    d = abs(a - b) % _YEAR_DAYS
    return min(d, _YEAR_DAYS - d)


def _season_gate(
    sample: EnvironmentalSample,
    context: AlgorithmContext,
    odd_years_only: bool,
    closed_months: Sequence[int],
    open_window: Optional[Tuple[int, int]],
) -> Optional[str]:
    """Description of why the fishery is shut at this sample, or None when open."""
    local = _local_time(sample, context)
    if odd_years_only and local.year % 2 == 0:
        return "off_year"
    if context.fishery_open is not None:
        return None if context.fishery_open else "closed_season"
    if closed_months and local.month in closed_months:
        return "closed_season"
    if open_window is not None:
        start, end = open_window
        doy = local.timetuple().tm_yday
        inside = start <= doy <= end if start <= end else (doy >= start or doy <= end)
        if not inside:
            return "closed_season"
    return None


def score_seasonality(
    sample,
    context,
    tide=None,
    *,
    weight=0.0,
    center_day: float,
    spread_days: float,
    plateau_days: float = 0.0,
    floor: float = 0.0,
    peak: float = 10.0,
    odd_years_only: bool = False,
    closed_months: Sequence[int] = (),
    open_window: Optional[Tuple[int, int]] = None,
):
    """Bell curve over day-of-year distance from the run peak.

    ``plateau_days`` keeps the score at ``peak`` across a window either side
    of ``center_day``; ``floor`` is the off-season minimum while the fishery
    is open. Gates (odd years, closed months, open window) force 0.
    """
    doy = day_of_year(sample.timestamp, context.utc_offset_seconds)
    gate = _season_gate(sample, context, odd_years_only, closed_months, open_window)
    if gate is not None:
        return _result(doy, weight, 0.0, gate)

    d = _circular_day_distance(doy, center_day)
    d_eff = max(0.0, d - plateau_days)
    score = floor + (peak - floor) * bell_curve(d_eff, spread_days, 1.0)
    if d_eff == 0.0:
        description = "peak_season"
    elif score > IN_SEASON_THRESHOLD:
        description = "in_season"
    else:
        description = "off_season"
    return _result(doy, weight, score, description)


def score_peak_months(
    sample,
    context,
    tide=None,
    *,
    weight=0.0,
    peak_months: Sequence[int],
    month_scores: Optional[Mapping[int, float]] = None,
    default: Optional[float] = None,
    odd_years_only: bool = False,
    closed_months: Sequence[int] = (),
):
    """Legacy month-based season weight.

    Explicit ``month_scores`` win; otherwise peak months score 10 and every
    month away from the nearest peak month costs 15%, down to 3, unless a
    flat ``default`` is given for the remaining months.
    """
    month = _local_time(sample, context).month
    gate = _season_gate(sample, context, odd_years_only, closed_months, None)
    if gate is not None:
        return _result(month, weight, 0.0, gate)

    if month_scores is not None and month in month_scores:
        score = float(month_scores[month])
    elif month in peak_months:
        score = 10.0
    elif default is not None:
        score = float(default)
    else:
        dist = min(min(abs(month - p), 12 - abs(month - p)) for p in peak_months) if peak_months else 6
        score = max(0.3, 1.0 - 0.15 * dist) * 10.0
    if month in peak_months:
        description = "peak_season"
    elif score > IN_SEASON_THRESHOLD:
        description = "in_season"
    else:
        description = "off_season"
    return _result(month, weight, score, description)


SPOT_PRAWN_OPENING_DAY = 130


def score_intra_season(sample, context, tide=None, *, weight=0.0, opening_day=SPOT_PRAWN_OPENING_DAY, decay_days=30.0, floor=3.5):
    """Position inside a short May-June season: best on opening day, decaying after."""
    local = _local_time(sample, context)
    doy = local.timetuple().tm_yday
    if context.fishery_open is False:
        return _result(doy, weight, 0.0, "closed_season")
    if local.month not in (5, 6):
        return _result(doy, weight, 0.0, "closed_season")
    days_open = doy - opening_day
    if days_open < 0:
        if context.fishery_open:
            days_open = 0
        else:
            return _result(doy, weight, 0.0, "not_yet_open")
    score = floor + (10.0 - floor) * math.exp(-days_open / decay_days)
    if days_open < 7:
        description = "opening_week"
    elif days_open < 21:
        description = "early_season"
    else:
        description = "late_season"
    return _result(doy, weight, score, description)


# ---- Light ----

def _hours_to_twilight(ts: float, sunrise: float, sunset: float) -> Tuple[float, str]:
    best = INF
    which = "dawn"
    for event, label in ((sunrise, "dawn"), (sunset, "dusk")):
        for shift in (-_DAY_SECONDS, 0.0, _DAY_SECONDS):
            d = abs(ts - (event + shift))
            if d < best:
                best, which = d, label
    return best / 3600.0, which


def score_light_time(
    sample,
    context,
    tide=None,
    *,
    weight=0.0,
    midday_score: float = 4.0,
    night_score: float = 2.0,
    cloud_boost: float = 0.0,
    twilight_hours: float = 1.0,
    decay_hours: float = 1.0,
):
    """Crepuscular curve keyed to the real sunrise/sunset.

    Full marks within ``twilight_hours`` of either event, gaussian decay to a
    daytime or night floor. ``cloud_boost`` adds up to that many points in
    daylight under full cloud.
    """
    if context.sunrise is None or context.sunset is None:
        return _neutral(weight, "no_sun_times")
    ts = float(sample.timestamp)
    hours, which = _hours_to_twilight(ts, float(context.sunrise), float(context.sunset))
    excess = max(0.0, hours - twilight_hours)
    crepuscular = bell_curve(excess, decay_hours)
    daylight = is_daylight(ts, context.sunrise, context.sunset)
    score = max(midday_score if daylight else night_score, crepuscular)

    cloud = _to_float(sample.cloud_cover)
    if daylight and cloud_boost and cloud is not None:
        score += cloud_boost * cloud / 100.0

    if excess == 0.0:
        description = which
    elif daylight:
        description = "midday"
    else:
        description = "night"
    return _result(round(hours, 2), weight, score, description)


def score_ambient_light(sample, context, tide=None, *, weight=0.0):
    """Overcast skies and drizzle keep bottom fish up off the structure."""
    if _is_night(sample, context):
        return _result(sample.cloud_cover, weight, 5.0, "night")
    cloud = _to_float(sample.cloud_cover)
    if cloud is None:
        return _neutral(weight, "no_cloud_data")
    if cloud >= 70.0:
        score, description = 10.0, "overcast"
    elif cloud >= 40.0:
        score, description = 8.0, "partly_cloudy"
    else:
        score, description = 6.0, "bright"
    precip = _to_float(sample.precipitation)
    if precip is not None and 0.1 < precip <= 2.0:
        score = max(score, 9.0)
        description = "drizzle"
    return _result(cloud, weight, score, description)


def score_photoperiod(sample, context, tide=None, *, weight=0.0, night_score=10.0, day_score=5.0):
    night = _is_night(sample, context)
    if night is None:
        return _neutral(weight, "no_sun_times")
    if night:
        return _result("night", weight, night_score, "night")
    return _result("day", weight, day_score, "day")


# ---- Pressure ----

def pressure_delta_3h(sample: EnvironmentalSample, context: AlgorithmContext) -> Optional[float]:
    """Pressure change over the trend window in hPa, scaled from shorter history when needed."""
    current = _to_float(sample.pressure)
    history = [p for p in (_to_float(v) for v in context.pressure_history) if p is not None]
    interval_h = float(context.pressure_interval_minutes) / 60.0
    if current is None or not history or interval_h <= 0:
        return None
    needed = max(1, int(round(PRESSURE_TREND_HOURS / interval_h)))
    if len(history) >= needed:
        reference = history[-needed]
        span_h = needed * interval_h
    else:
        reference = history[0]
        span_h = len(history) * interval_h
    if span_h < PRESSURE_MIN_HISTORY_HOURS:
        return None
    return (current - reference) * PRESSURE_TREND_HOURS / span_h


def pressure_trend_label(delta: float) -> str:
    if delta > 3.0:
        return "rising_fast"
    if delta > 1.5:
        return "rising"
    if delta >= -1.5:
        return "stable"
    if delta >= -3.0:
        return "falling"
    return "falling_fast"


_PRESSURE_PROFILES: Dict[str, Dict[str, float]] = {
    "rising": {"rising_fast": 10.0, "rising": 9.0, "stable": 8.0, "falling": 5.0, "falling_fast": 2.0},
    "stable": {"rising_fast": 5.0, "rising": 7.5, "stable": 10.0, "falling": 6.0, "falling_fast": 2.0},
    "barometer": {"rising_fast": 8.0, "rising": 8.0, "stable": 6.0, "falling": 4.0, "falling_fast": 4.0},
}


def score_pressure_trend(sample, context, tide=None, *, weight=0.0, prefer: str = "rising"):
    """Barometer trend over three hours.

    ``prefer="rising"`` rewards a rising glass (9-10), ``"stable"`` a steady
    one, and ``"barometer"`` is the flatter crab soak table.
    """
    profile = _PRESSURE_PROFILES.get(prefer)
    if profile is None:
        raise ValueError(f"Unknown pressure preference {prefer!r} (strict)")
    delta = pressure_delta_3h(sample, context)
    if delta is None:
        return _neutral(weight, "no_pressure_history")
    label = pressure_trend_label(delta)
    score = profile[label]
    if prefer == "rising" and label == "rising":
        score = 9.0 + min(1.0, (delta - 1.5) / 1.5)
    return _result(round(delta, 2), weight, score, label)


# ---- Moon and solunar ----

def score_moon_phase(sample, context, tide=None, *, weight=0.0, mode: str = "new_full"):
    """Moon phase preference: ``new_full``, ``dark`` (crab) or ``quarter`` (halibut)."""
    phase = _to_float(context.moon_phase)
    if phase is None:
        phase = moon_phase(sample.timestamp)
    phase %= 1.0
    illumination = moon_illumination(phase)
    name = moon_phase_name(phase)
    if mode == "dark":
        score = 10.0 * (1.0 - illumination / 100.0)
    elif mode == "quarter":
        if 0.2 <= phase <= 0.3 or 0.7 <= phase <= 0.8:
            score = 10.0
        elif 0.15 <= phase <= 0.35 or 0.65 <= phase <= 0.85:
            score = 7.0
        elif phase <= 0.05 or phase >= 0.95 or 0.45 <= phase <= 0.55:
            score = 1.0
        else:
            score = 5.0
    elif mode == "new_full":
        near_new = phase <= 0.15 or phase >= 0.85
        near_full = abs(phase - 0.5) <= 0.15
        score = 10.0 if (near_new or near_full) else 5.0
    else:
        raise ValueError(f"Unknown moon mode {mode!r} (strict)")
    return _result(round(illumination, 1), weight, score, name)


def score_solunar(sample, context, tide=None, *, weight=0.0):
    """Major (transit) and minor (rise/set) solunar windows."""
    ts = float(sample.timestamp)
    major: Sequence[float] = context.solunar_major
    minor: Sequence[float] = context.solunar_minor
    if not major and not minor:
        lon = context.longitude if context.longitude is not None else DEFAULT_REFERENCE_LONGITUDE
        periods = solunar_periods(ts, lon)
        major, minor = periods.major, periods.minor

    to_major = min((abs(ts - e) / 60.0 for e in major), default=INF)
    to_minor = min((abs(ts - e) / 60.0 for e in minor), default=INF)
    if to_major <= SOLUNAR_MAJOR_WINDOW_MIN:
        score, description = 10.0, "major_period"
    elif to_minor <= SOLUNAR_MINOR_WINDOW_MIN:
        score, description = 7.0, "minor_period"
    elif to_major <= 2 * SOLUNAR_MAJOR_WINDOW_MIN or to_minor <= 2 * SOLUNAR_MINOR_WINDOW_MIN:
        score, description = 5.0, "near_period"
    else:
        score, description = 3.0, "between_periods"
    nearest = min(to_major, to_minor)
    return _result(None if nearest == INF else round(nearest), weight, score, description)


# ---- Catch reports ----

def score_catch_reports(sample, context, tide=None, *, weight=0.0, decay_days=4.0):
    """Recency-weighted catch evidence.

    Returns None when no report data exists at all, so the factor can be
    dropped and the remaining weights rescaled. An empty tuple means data
    exists but nothing was reported, which scores 2.
    """
    reports = context.catch_reports
    if reports is None:
        return None
    evidence = 0.0
    for report in reports:
        days = max(0.0, float(report.days_ago))
        count = max(0, int(report.fish_count))
        strength = math.exp(-days / decay_days)
        strength *= 1.0 if report.success else 0.3
        strength *= 1.0 if report.hotspot_match else 0.7
        strength *= 0.5 + 0.5 * min(count, 5) / 5.0
        evidence += strength
    score = 2.0 + 8.0 * (1.0 - math.exp(-1.5 * evidence))
    if not reports:
        description = "no_recent_reports"
    elif score >= 7.0:
        description = "hot_bite"
    elif score >= 4.0:
        description = "some_activity"
    else:
        description = "slow_reports"
    return _result(round(evidence, 3), weight, score, description)


# ---- Tide ----

def score_tidal_current(sample, context, tide=None, *, weight=0.0, band=(0.5, 2.0), sigma=0.75, rising_bonus=1.0):
    speed = _current_speed(tide)
    if speed is None:
        return _neutral(weight, "no_tide_data")
    low, high = band
    score = gaussian_band(speed, low, high, sigma)
    if rising_bonus and tide.is_rising and score > 3.0:
        score += rising_bonus
    if speed < low:
        description = "slack"
    elif speed <= high:
        description = "optimal_flow"
    else:
        description = "strong_flow"
    return _result(round(speed, 2), weight, score, description)


def score_slack_tide(sample, context, tide=None, *, weight=0.0, k=0.9, floor=0.5):
    """Bottom fishing wants slack water: exponential decay with current speed."""
    speed = _current_speed(tide)
    if speed is None:
        return _neutral(weight, "no_tide_data")
    score = max(floor, exp_decay(speed, k))
    if speed < 0.5:
        description = "slack"
    elif speed < 1.5:
        description = "moderate_flow"
    else:
        description = "strong_flow"
    return _result(round(speed, 2), weight, score, description)


def _range_label(tidal_range: float) -> str:
    if tidal_range < 1.5:
        return "neap"
    if tidal_range < 2.5:
        return "moderate"
    return "spring"


def score_tidal_range(sample, context, tide=None, *, weight=0.0, band=None, sigma=0.8, inverted=False):
    """Spring tides favoured by default; ``inverted`` favours neaps and long slacks."""
    tidal_range = _tidal_range(tide)
    if tidal_range is None:
        return _neutral(weight, "no_tide_data")
    if band is None:
        band = (0.0, 1.2) if inverted else (2.0, 4.0)
    score = gaussian_band(tidal_range, band[0], band[1], sigma)
    return _result(round(tidal_range, 2), weight, score, _range_label(tidal_range))


def score_tide_direction(sample, context, tide=None, *, weight=0.0, flood_score=10.0, ebb_score=7.0):
    if tide is None:
        return _neutral(weight, "no_tide_data")
    if tide.is_rising:
        return _result("flood", weight, flood_score, "flood")
    return _result("ebb", weight, ebb_score, "ebb")


def score_tidal_dynamics(sample, context, tide=None, *, weight=0.0, ebb_bonus=0.1):
    """Lingcod: slack water on a big exchange, with a bonus for a gentle ebb."""
    speed = _current_speed(tide)
    if speed is None:
        return _neutral(weight, "no_tide_data")
    slack_unit = math.exp(-0.9 * speed)
    tidal_range = _tidal_range(tide)
    range_unit = clamp(tidal_range / 3.0, 0.0, 1.0) if tidal_range is not None else 0.5
    unit = slack_unit * (0.5 + 0.5 * range_unit)
    ebbing = not tide.is_rising and 0.3 <= speed <= 1.5
    if ebbing:
        unit += ebb_bonus
    description = "ebb_feeding" if ebbing else ("slack" if speed < 0.5 else "moving_water")
    return _result(round(speed, 2), weight, min(unit, 1.0) * 10.0, description)


def score_tidal_movement(sample, context, tide=None, *, weight=0.0, ebb_bonus=0.1):
    """Chum: moving water on a decent exchange, ebb preferred."""
    speed = _current_speed(tide)
    if speed is None:
        return _neutral(weight, "no_tide_data")
    current_unit = gaussian_band(speed, 0.3, 1.5, 0.6) / 10.0
    tidal_range = _tidal_range(tide)
    range_unit = clamp(tidal_range / 1.8, 0.0, 1.0) if tidal_range is not None else 0.5
    direction_unit = 0.6 if tide.is_rising else 1.0
    unit = 0.5 * current_unit + 0.3 * range_unit + 0.2 * direction_unit
    if not tide.is_rising:
        unit += ebb_bonus
    return _result(round(speed, 2), weight, min(unit, 1.0) * 10.0, "flood" if tide.is_rising else "ebb")


def score_tidal_treadmill(sample, context, tide=None, *, weight=0.0):
    speed = _current_speed(tide)
    if speed is None:
        return _neutral(weight, "no_tide_data")
    result = tidal_treadmill(not tide.is_rising, speed)
    return _result(round(speed, 2), weight, result.score, result.interception_quality, advice=result.recommendation)


# ---- Weather and sea ----

def sea_state_warnings(
    sample: EnvironmentalSample,
    max_wind_kt: float = DEFAULT_MAX_WIND_KT,
    max_gust_kt: float = DEFAULT_MAX_GUST_KT,
    max_wave_m: float = DEFAULT_MAX_WAVE_M,
) -> Tuple[str, ...]:
    """Warnings for every hard sea-state ceiling the sample exceeds."""
    warnings = []
    wind_kt = _wind_knots(sample)
    gust_kt = kmh_to_knots(sample.wind_gust)
    wave = _wave_height(sample)
    if wind_kt is not None and wind_kt > max_wind_kt:
        warnings.append(f"Wind {wind_kt:.0f} kts exceeds {max_wind_kt:.0f} kt limit")
    if gust_kt is not None and gust_kt > max_gust_kt:
        warnings.append(f"Gusts {gust_kt:.0f} kts exceed {max_gust_kt:.0f} kt limit")
    if wave is not None and wave > max_wave_m:
        warnings.append(f"Waves {wave:.1f}m exceed {max_wave_m:.1f}m limit")
    return tuple(warnings)


def score_sea_state(
    sample,
    context,
    tide=None,
    *,
    weight=0.0,
    max_wind_kt=DEFAULT_MAX_WIND_KT,
    max_gust_kt=DEFAULT_MAX_GUST_KT,
    max_wave_m=DEFAULT_MAX_WAVE_M,
):
    """Combined wind and wave comfort; a breached ceiling caps the factor at 1."""
    wind_kt = _wind_knots(sample)
    wave = _wave_height(sample)
    if wind_kt is None and wave is None:
        return _neutral(weight, "no_sea_state_data")
    score = 10.0 * ceiling_decay(wind_kt or 0.0, max_wind_kt) * ceiling_decay(wave or 0.0, max_wave_m)
    warnings = sea_state_warnings(sample, max_wind_kt, max_gust_kt, max_wave_m)
    if warnings:
        return _result(round(wind_kt or 0.0, 1), weight, min(score, 1.0), "unsafe", is_safe=False, warnings=warnings)
    if score >= 8.0:
        description = "calm"
    elif score >= 5.0:
        description = "moderate"
    else:
        description = "rough"
    return _result(round(wind_kt or 0.0, 1), weight, score, description)


def score_wind(sample, context, tide=None, *, weight=0.0, max_kt=20.0):
    wind_kt = _wind_knots(sample)
    if wind_kt is None:
        return _neutral(weight, "no_wind_data")
    if wind_kt > max_kt:
        warning = f"Wind {wind_kt:.0f} kts exceeds {max_kt:.0f} kt limit"
        return _result(round(wind_kt, 1), weight, 0.0, "unsafe", is_safe=False, warnings=(warning,))
    if wind_kt < 5.0:
        description = "calm"
    elif wind_kt < 10.0:
        description = "light"
    elif wind_kt < 15.0:
        description = "moderate"
    else:
        description = "fresh"
    return _result(round(wind_kt, 1), weight, 10.0 * ceiling_decay(wind_kt, max_kt), description)


def score_wave_height(sample, context, tide=None, *, weight=0.0, max_m=1.5):
    wave = _wave_height(sample)
    if wave is None:
        return _neutral(weight, "no_wave_data")
    if wave > max_m:
        warning = f"Waves {wave:.1f}m exceed {max_m:.1f}m limit"
        return _result(round(wave, 2), weight, 0.0, "unsafe", is_safe=False, warnings=(warning,))
    description = "flat" if wave < 0.5 else ("moderate" if wave < 1.0 else "choppy")
    return _result(round(wave, 2), weight, 10.0 * ceiling_decay(wave, max_m), description)


def score_water_temp(sample, context, tide=None, *, weight=0.0, pref_min=8.0, pref_max=14.0, tolerance=4.0):
    """10 inside the preferred band, linear decay over ``tolerance`` degrees either side."""
    temp = water_temperature(sample, tide)
    if temp is None:
        return _neutral(weight, "no_temperature_data")
    score = _linear_within_score_10(temp, float(pref_min), float(pref_max), float(tolerance))
    if temp < pref_min:
        description = "cold"
    elif temp > pref_max:
        description = "warm"
    else:
        description = "optimal"
    return _result(round(temp, 1), weight, score, description)


_PRECIPITATION_BANDS = (
    (0.1, 9.0, "clear"),
    (2.0, 10.0, "light"),
    (5.0, 7.0, "moderate"),
    (10.0, 4.0, "heavy"),
)


def score_precipitation(sample, context, tide=None, *, weight=0.0):
    precip = _to_float(sample.precipitation)
    if precip is None:
        return _neutral(weight, "no_precipitation_data")
    for upper, score, description in _PRECIPITATION_BANDS:
        if precip <= upper:
            return _result(precip, weight, score, description)
    return _result(precip, weight, 2.0, "extreme")


def score_visibility(sample, context, tide=None, *, weight=0.0):
    vis = _to_float(sample.visibility)
    if vis is None:
        return _neutral(weight, "no_visibility_data")
    if vis >= 10.0:
        score, description = 10.0, "clear"
    elif vis >= 5.0:
        score, description = 8.0, "good"
    elif vis >= 2.0:
        score, description = 5.0, "haze"
    elif vis >= 1.0:
        score, description = 3.0, "fog"
    else:
        score, description = 1.0, "dense_fog"
    return _result(vis, weight, score, description)


def score_swell_quality(sample, context, tide=None, *, weight=0.0):
    height = _to_float(sample.wave_height)
    period = _to_float(sample.swell_period)
    if height is None or period is None:
        return _neutral(weight, "no_swell_data")
    result = swell_quality(height, period)
    dangerous = result.comfort == "dangerous"
    warnings = (result.warning,) if result.warning else ()
    return _result(result.ratio, weight, result.score, result.comfort, is_safe=not dangerous, warnings=warnings)


def score_surface_state(sample, context, tide=None, *, weight=0.0, wind_tide_share=0.6, swell_share=0.4):
    """Wind-against-tide chop blended with swell comfort."""
    wind_kt = _wind_knots(sample)
    if wind_kt is None:
        return _neutral(weight, "no_wind_data")
    wind_dir = context.wind_direction if context.wind_direction is not None else sample.wind_direction
    current_dir = context.current_direction
    if current_dir is None and tide is not None:
        current_dir = tide.current_direction
    speed = _current_speed(tide)

    warnings = []
    dangerous = False
    if wind_dir is not None and current_dir is not None and speed is not None:
        interaction = wind_tide_interaction(wind_dir, wind_kt, current_dir, speed)
        wind_tide_score = interaction.score
        severity = interaction.severity
        dangerous = severity == "dangerous"
        if interaction.warning:
            warnings.append(interaction.warning)
    else:
        wind_tide_score = 10.0 * ceiling_decay(wind_kt, DEFAULT_MAX_WIND_KT)
        severity = "calm" if wind_tide_score >= 8.0 else ("moderate" if wind_tide_score >= 5.0 else "rough")

    height = _wave_height(sample)
    period = _to_float(sample.swell_period)
    if height is not None and period is not None:
        swell = swell_quality(height, period)
        swell_score = swell.score
        if swell.comfort == "dangerous":
            dangerous = True
        if swell.warning:
            warnings.append(swell.warning)
    elif height is not None:
        swell_score = 10.0 * ceiling_decay(height, 3.0)
    else:
        swell_score = NEUTRAL_SCORE

    score = wind_tide_share * wind_tide_score + swell_share * swell_score
    description = "dangerous" if dangerous else severity
    return _result(round(wind_kt, 1), weight, score, description, is_safe=not dangerous, warnings=tuple(warnings))


def score_light_tide_interaction(sample, context, tide=None, *, weight=0.0):
    """Halibut: low light counts for more when it lines up with slack water."""
    light = score_light_time(sample, context, tide, weight=weight, midday_score=3.0, night_score=2.0)
    if light.description == "no_sun_times":
        return light
    speed = _current_speed(tide)
    slack_unit = math.exp(-0.9 * speed) if speed is not None else 0.5
    score = (light.score / 10.0) * (0.6 + 0.4 * slack_unit) * 10.0
    return _result(light.value, weight, score, light.description)


# ---- Bait, rivers ----

_BAIT_SCORES = {"none": 3.0, "light": 5.0, "moderate": 7.0, "heavy": 9.0, "massive": 10.0}


def score_bait_presence(sample, context, tide=None, *, weight=0.0):
    level = context.bait_presence
    if level is None:
        return _neutral(weight, "no_bait_data")
    key = str(level).lower()
    if key not in _BAIT_SCORES:
        return _neutral(weight, "unknown_bait_level", value=level)
    return _result(key, weight, _BAIT_SCORES[key], key)


def score_river_turbidity(sample, context, tide=None, *, weight=0.0):
    if context.precipitation_24h is None:
        return _neutral(weight, "no_precipitation_history")
    month = _local_time(sample, context).month
    status = freshet_status(float(context.precipitation_24h), context.max_temp_24h, month)
    warnings = (status.warning,) if status.is_blown_out and status.warning else ()
    return _result(context.precipitation_24h, weight, status.turbidity_score, status.severity, warnings=warnings, advice=status.warning)


def score_thermal_blockade(sample, context, tide=None, *, weight=0.0):
    temp = _to_float(context.river_temperature)
    if temp is None:
        return _neutral(weight, "no_river_temperature")
    result = thermal_blockade(temp)
    return _result(temp, weight, result.score, result.river_status, advice=result.recommendation)


# ---- Crab ----

def score_scent_hydraulics(sample, context, tide=None, *, weight=0.0):
    speeds = list(context.current_speed_window)
    if not speeds:
        speed = _current_speed(tide)
        if speed is not None:
            speeds = [speed]
    result = scent_hydraulics(speeds)
    if not speeds:
        return FactorResult(value=None, weight=weight, score=result.score, description="no_current_data", advice=result.recommendation)
    warnings = (result.recommendation,) if result.trap_roll_risk else ()
    description = "trap_roll_risk" if result.trap_roll_risk else None
    return _result(result.average_current_speed, weight, result.score, description, warnings=warnings, advice=result.recommendation)


def score_molt_quality(sample, context, tide=None, *, weight=0.0):
    temp = water_temperature(sample, tide)
    if temp is None:
        return _neutral(weight, "no_temperature_data")
    result = molt_quality_index(temp)
    return _result(round(temp, 1), weight, result.score, result.quality, advice=result.advice)


def score_retrieval_safety(sample, context, tide=None, *, weight=0.0):
    speed = _current_speed(tide)
    result = retrieval_safety(sample.wind_speed, speed, _wave_height(sample))
    advice = result.recommendations[0] if result.recommendations else None
    description = "unsafe" if not result.is_safe else ("slack" if result.is_slack_tide else None)
    return _result(
        result.wind_speed_knots,
        weight,
        result.score,
        description,
        is_safe=result.is_safe,
        warnings=result.warnings,
        advice=advice,
    )
