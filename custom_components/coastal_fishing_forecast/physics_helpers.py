"""Physical models behind the species-specific factors.

Every helper is pure. Scores here are on the same 0-10 scale as factor
scores; speeds are knots unless the argument name says otherwise.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .const import (
    RETRIEVAL_MAX_CURRENT_KT,
    RETRIEVAL_MAX_WAVE_M,
    RETRIEVAL_MAX_WIND_KT,
    SLACK_CURRENT_KT,
    TRAP_ROLL_CURRENT_KT,
)
from .unit_helpers import angle_difference, clamp, kmh_to_knots

_LOGGER = logging.getLogger(__name__)

_SCENT_BAND_LOW_KT = 0.8
_SCENT_BAND_HIGH_KT = 1.5
_SCENT_SIGMA_BELOW = 0.35
_SCENT_SIGMA_ABOVE = 0.5
_TRAP_ROLL_PENALTY = 0.4

_MOLT_STEEPNESS = 0.35
_MOLT_BASE_SCORE = 6.0
_MOLTING_SCORE = 2.0
_POST_MOLT_SCORE = 10.0

NOCTURNAL_FLOOD_MAX_BONUS = 0.3


@dataclass(frozen=True)
class ScentHydraulicsResult:
    score: float
    average_current_speed: float
    max_current_speed: float
    trap_roll_risk: bool
    recommendation: str


@dataclass(frozen=True)
class MoltQualityResult:
    score: float
    quality: str
    advice: str


@dataclass(frozen=True)
class NocturnalFloodResult:
    multiplier: float
    night_fraction: float
    is_flood_tide: bool
    advice: str


@dataclass(frozen=True)
class RetrievalSafetyResult:
    score: float
    is_safe: bool
    wind_speed_knots: float
    current_speed: float
    is_slack_tide: bool
    warnings: Tuple[str, ...]
    recommendations: Tuple[str, ...]


@dataclass(frozen=True)
class WindTideResult:
    score: float
    is_opposing: bool
    severity: str
    warning: Optional[str] = None


@dataclass(frozen=True)
class SwellQualityResult:
    score: float
    ratio: Optional[float]
    comfort: str
    warning: Optional[str] = None


@dataclass(frozen=True)
class FreshetResult:
    is_blown_out: bool
    severity: str
    turbidity_score: float
    cause: Optional[str] = None
    warning: Optional[str] = None


@dataclass(frozen=True)
class ThermalBlockadeResult:
    score: float
    is_stacking: bool
    river_status: str
    recommendation: str


@dataclass(frozen=True)
class TidalTreadmillResult:
    score: float
    interception_quality: str
    ground_speed: str
    recommendation: str


def _logistic(x: float) -> float:
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    e = math.exp(x)
    return e / (1.0 + e)


def gaussian_band(value: float, low: float, high: float, sigma_low: float, sigma_high: Optional[float] = None) -> float:
    """10 inside [low, high], gaussian decay outside (separate widths per side)."""
    if sigma_high is None:
        sigma_high = sigma_low
    if low <= value <= high:
        return 10.0
    if value < low:
        d, s = low - value, sigma_low
    else:
        d, s = value - high, sigma_high
    if s <= 0:
        return 0.0
    return 10.0 * math.exp(-(d * d) / (2.0 * s * s))


def estimate_wave_height(wind_speed_kmh: Optional[float]) -> float:
    """Very rough fetch-limited wave height (m) when no marine data exists."""
    if wind_speed_kmh is None:
        return 0.0
    return min(max(0.0, float(wind_speed_kmh)) / 3.6 * 0.1, 5.0)


# ---- Crab ----

def scent_hydraulics(current_speeds: Sequence[float]) -> ScentHydraulicsResult:
    """Score bait-plume transport across a soak window of current speeds (kt)."""
    speeds = [abs(float(s)) for s in current_speeds if s is not None and math.isfinite(float(s))]
    if not speeds:
        return ScentHydraulicsResult(
            score=5.0,
            average_current_speed=0.0,
            max_current_speed=0.0,
            trap_roll_risk=False,
            recommendation="No current data available",
        )

    per_sample = [
        gaussian_band(s, _SCENT_BAND_LOW_KT, _SCENT_BAND_HIGH_KT, _SCENT_SIGMA_BELOW, _SCENT_SIGMA_ABOVE)
        for s in speeds
    ]
    score = sum(per_sample) / len(per_sample)
    average = sum(speeds) / len(speeds)
    peak = max(speeds)

    trap_roll_risk = peak > TRAP_ROLL_CURRENT_KT
    if trap_roll_risk:
        score *= _TRAP_ROLL_PENALTY
        recommendation = f"Trap roll risk: current peaks at {peak:.1f} kts - shorten the soak or move to softer water"
    elif _SCENT_BAND_LOW_KT <= average <= _SCENT_BAND_HIGH_KT:
        recommendation = "Optimal scent dispersal - excellent crab recruitment area"
    elif average < 0.5:
        recommendation = "Low current - scent pooling limits attraction radius, time the soak across a tide change"
    elif average > 2.0:
        recommendation = "Fast current - diluted scent and crabs struggle to walk up-current"
    else:
        recommendation = "Moderate scent dispersal conditions"

    return ScentHydraulicsResult(
        score=clamp(score, 0.0, 10.0),
        average_current_speed=round(average, 2),
        max_current_speed=round(peak, 2),
        trap_roll_risk=trap_roll_risk,
        recommendation=recommendation,
    )


def molt_quality_index(water_temp_c: float) -> MoltQualityResult:
    """Shell hardness / meat fill proxy from water temperature.

    13-17 °C is the post-molt window with full, hard crabs; 10-13 °C is the
    soft-shell molt. Band edges blend through logistic steps.
    """
    t = float(water_temp_c)
    k = _MOLT_STEEPNESS
    w_molting = _logistic((t - 10.0) / k) * _logistic((13.0 - t) / k)
    w_post = _logistic((t - 13.0) / k) * _logistic((17.0 - t) / k)
    score = (
        _MOLT_BASE_SCORE
        + (_MOLTING_SCORE - _MOLT_BASE_SCORE) * w_molting
        + (_POST_MOLT_SCORE - _MOLT_BASE_SCORE) * w_post
    )

    if 13.0 <= t <= 17.0:
        quality = "post_molt"
        advice = "Post-molt window - shells hardening and meat fill is high"
    elif 10.0 <= t < 13.0:
        quality = "molting"
        advice = "Molting temperatures - expect soft shells, handle and release with care"
    elif t < 10.0:
        quality = "pre_molt"
        advice = "Cold water - crabs are pre-molt, meat fill is fair"
    else:
        quality = "dormant"
        advice = "Warm water - crabs sluggish, shorten soaks"
    return MoltQualityResult(score=clamp(score, 0.0, 10.0), quality=quality, advice=advice)


def _night_overlap_seconds(start: float, end: float, sunset: float, sunrise: float) -> float:
    """Seconds of [start, end] that fall in any night interval derived from one sunset/sunrise pair."""
    day = 86400.0
    # night runs from a sunset to the following sunrise
    next_sunrise = sunrise if sunrise > sunset else sunrise + day
    night_len = next_sunrise - sunset
    first = math.floor((start - next_sunrise) / day)
    last = math.ceil((end - sunset) / day)
    total = 0.0
    for n in range(int(first), int(last) + 1):
        ns = sunset + n * day
        ne = ns + night_len
        overlap = min(end, ne) - max(start, ns)
        if overlap > 0:
            total += overlap
    return total


def nocturnal_flood_bonus(
    timestamp: float,
    soak_duration_hours: Optional[float],
    sunset: Optional[float],
    sunrise: Optional[float],
    is_flood: bool,
) -> NocturnalFloodResult:
    """Multiplier in [1.0, 1.3] growing with the night share of a flood-tide soak."""
    if not soak_duration_hours or soak_duration_hours <= 0 or sunset is None or sunrise is None:
        return NocturnalFloodResult(1.0, 0.0, bool(is_flood), "No soak window - no nocturnal adjustment")

    start = float(timestamp)
    end = start + float(soak_duration_hours) * 3600.0
    night = _night_overlap_seconds(start, end, float(sunset), float(sunrise))
    fraction = clamp(night / (end - start), 0.0, 1.0)

    if is_flood:
        multiplier = 1.0 + NOCTURNAL_FLOOD_MAX_BONUS * fraction
        if fraction > 0.5:
            advice = "Golden window: flood tide and darkness - crabs moving into the shallows to feed"
        elif fraction > 0.0:
            advice = "Flood tide with partial night overlap"
        else:
            advice = "Flood tide in daylight - reduced crab activity"
    else:
        multiplier = 1.0
        advice = "Ebb tide - crabs moving out, no nocturnal bonus"

    return NocturnalFloodResult(
        multiplier=round(multiplier, 4),
        night_fraction=round(fraction, 4),
        is_flood_tide=bool(is_flood),
        advice=advice,
    )


def ceiling_decay(value: float, ceiling: float) -> float:
    if ceiling <= 0:
        return 0.0
    return max(0.0, 1.0 - (value / ceiling) ** 2)


def retrieval_safety(
    wind_speed_kmh: Optional[float],
    current_knots: Optional[float],
    wave_height_m: Optional[float],
) -> RetrievalSafetyResult:
    """Safety of hauling gear given wind (km/h), current (kt) and waves (m)."""
    wind_kt = kmh_to_knots(wind_speed_kmh) or 0.0
    current = abs(float(current_knots)) if current_knots is not None else 0.0
    wave = float(wave_height_m) if wave_height_m is not None else 0.0

    warnings = []
    recommendations = []
    is_safe = True

    if wind_kt > RETRIEVAL_MAX_WIND_KT:
        is_safe = False
        warnings.append(f"Unsafe wind {wind_kt:.0f} kts - do not retrieve traps")
    if wave > RETRIEVAL_MAX_WAVE_M:
        is_safe = False
        warnings.append(f"Dangerous {wave:.1f}m waves - hauling pots extremely hazardous")
    if current > RETRIEVAL_MAX_CURRENT_KT:
        is_safe = False
        warnings.append(f"Strong current {current:.1f} kts - pot will spin and drag during haul")

    score = 10.0 * (
        ceiling_decay(wind_kt, RETRIEVAL_MAX_WIND_KT)
        * ceiling_decay(wave, RETRIEVAL_MAX_WAVE_M)
        * ceiling_decay(current, RETRIEVAL_MAX_CURRENT_KT)
    )

    is_slack = current < SLACK_CURRENT_KT
    if not is_safe:
        recommendations.append("Wait for a weather window or risk equipment loss")
    elif is_slack:
        recommendations.append("Slack tide - ideal for retrieval (no prop tangle risk)")
    elif current > 1.5:
        recommendations.append("Retrieve at slack tide if possible to avoid tangles")
    if is_safe and wind_kt > 10.0:
        recommendations.append("Moderate wind - manageable but use caution")

    return RetrievalSafetyResult(
        score=clamp(score, 0.0, 10.0),
        is_safe=is_safe,
        wind_speed_knots=round(wind_kt, 1),
        current_speed=current,
        is_slack_tide=is_slack,
        warnings=tuple(warnings),
        recommendations=tuple(recommendations),
    )


# ---- Surface / swell ----

def wind_tide_interaction(
    wind_direction: float,
    wind_speed_kt: float,
    current_direction: float,
    current_speed_kt: float,
) -> WindTideResult:
    """Wind against tide stacks steep chop; wind with tide flattens it."""
    diff = angle_difference(wind_direction, current_direction)
    # wind direction is where it blows FROM, current is where water flows TO
    is_opposing = diff > 135.0
    energy = wind_speed_kt * 0.7 + current_speed_kt * 0.3

    if is_opposing:
        if wind_speed_kt > 20 or energy > 25:
            return WindTideResult(2.0, True, "dangerous", "Dangerous: wind opposing tide creates steep, breaking waves")
        if wind_speed_kt > 15 or energy > 18:
            return WindTideResult(4.0, True, "rough", "Caution: wind opposing tide, expect steep chop")
        if wind_speed_kt > 10 or energy > 12:
            return WindTideResult(6.0, True, "moderate", "Wind opposing tide, some chop expected")
        return WindTideResult(8.0, True, "moderate")

    if diff < 45 and wind_speed_kt < 20:
        return WindTideResult(10.0, False, "calm")
    if wind_speed_kt > 25:
        return WindTideResult(5.0, False, "rough", "Strong winds despite favourable tide alignment")
    if wind_speed_kt > 15:
        return WindTideResult(7.0, False, "moderate")
    return WindTideResult(9.0, False, "calm")


def swell_quality(height_m: float, period_s: float) -> SwellQualityResult:
    """Comfort of the swell from its period/height ratio."""
    if height_m <= 0.3:
        return SwellQualityResult(10.0, None, "flat")
    ratio = period_s / height_m if height_m > 0 else None
    warning = None
    if ratio is None or ratio >= 8.0:
        score, comfort = 10.0, "comfortable"
    elif ratio >= 5.0:
        score, comfort = 8.5, "comfortable"
    elif ratio >= 4.0:
        score, comfort = 7.0, "moderate"
    elif ratio >= 3.5:
        score, comfort = 5.0, "uncomfortable"
        warning = "Short period swell - expect choppy conditions"
    elif ratio >= 3.0:
        score, comfort = 3.0, "uncomfortable"
        warning = "Very short period swell - uncomfortable and potentially dangerous"
    else:
        score, comfort = 1.0, "dangerous"
        warning = "Dangerous: steep breaking waves, not recommended for small craft"

    if height_m > 3.0:
        score = min(score, 3.0)
        comfort = "dangerous"
        warning = f"Dangerous: swell height {height_m:.1f}m exceeds safe threshold"
    elif height_m > 2.0 and ratio is not None and ratio < 5.0:
        score = min(score, 4.0)
        if comfort != "dangerous":
            comfort = "uncomfortable"
        warning = warning or "Large swell with short period - exercise caution"
    return SwellQualityResult(score, round(ratio, 2) if ratio is not None else None, comfort, warning)


# ---- Rivers ----

def freshet_status(precipitation_24h: float, max_temp_24h: Optional[float], month: int) -> FreshetResult:
    """River mouth clarity from 24 h rain and spring snowmelt (month is 1-12)."""
    in_freshet_season = 4 <= month <= 7
    temp = max_temp_24h if max_temp_24h is not None else 0.0
    heavy_rain = precipitation_24h > 40.0
    snowmelt = in_freshet_season and temp > 28.0

    if heavy_rain and snowmelt:
        return FreshetResult(True, "blown_out", 0.0, "both", "Blown out: heavy rain and snowmelt, try offshore or wait 2-3 days")
    if heavy_rain:
        return FreshetResult(True, "blown_out", 1.0, "heavy_rain", "Blown out: heavy rain, wait 24-48 hours")
    if snowmelt:
        return FreshetResult(True, "blown_out", 1.5, "snowmelt", "Freshet: hot weather driving glacial runoff")
    if precipitation_24h > 25.0:
        return FreshetResult(False, "muddy", 4.0, "heavy_rain", "Moderate rain may stain water near river mouths")
    if precipitation_24h > 15.0:
        return FreshetResult(False, "stained", 7.0, "heavy_rain", "Light rain may stain water slightly")
    if in_freshet_season and temp > 20.0:
        return FreshetResult(False, "stained", 6.0, "snowmelt", "Warm temps during freshet season, some glacial runoff possible")
    return FreshetResult(False, "clear", 10.0)


def thermal_blockade(river_temp_c: float) -> ThermalBlockadeResult:
    """Warm rivers hold sockeye in salt water at the river mouth."""
    if river_temp_c >= 19.0:
        return ThermalBlockadeResult(10.0, True, "blocked", "Thermal blockade: river too hot, sockeye stacking in salt water")
    if river_temp_c >= 17.0:
        return ThermalBlockadeResult(8.5, True, "holding", "Warm river - sockeye hesitating at the river mouth")
    if river_temp_c >= 15.0:
        return ThermalBlockadeResult(6.0, False, "passable", "Moderate temps - fish moving through, some holding")
    return ThermalBlockadeResult(3.0, False, "highway", "Cold river - fish running straight through")


def tidal_treadmill(is_ebb: bool, current_speed_kt: float) -> TidalTreadmillResult:
    """Ebbing water makes migrating sockeye hold position against the flow."""
    speed = abs(current_speed_kt)
    if is_ebb:
        if speed > 1.5:
            return TidalTreadmillResult(10.0, "excellent", "holding", "Ebb treadmill: fish holding against current")
        if speed > 0.8:
            return TidalTreadmillResult(8.5, "good", "slow", "Good ebb - fish moving slowly")
        return TidalTreadmillResult(6.0, "fair", "slow", "Light ebb - fish still mobile")
    if speed > 2.0:
        return TidalTreadmillResult(3.0, "poor", "fast", "Strong flood - fish running fast, hard to intercept")
    if speed > 1.0:
        return TidalTreadmillResult(5.0, "fair", "moderate", "Moderate flood - fish moving with the tide")
    return TidalTreadmillResult(7.0, "good", "slow", "Light flood - workable interception")
