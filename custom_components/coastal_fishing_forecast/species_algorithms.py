"""Species dispatch: weight tables, interaction hooks and safety capping.

Each (species, version) pair maps to exactly one SpeciesAlgorithm. The
version is chosen once at the top of scoring; V1 and V2 tables are never
mixed. Unknown species ids score with the generic tables.

The registry is validated at import time: a missing (species, version) pair
or a weight table that does not sum to 1 raises RuntimeError.
"""
from __future__ import annotations

import dataclasses
import logging
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from . import factor_scoring as fs
from .astronomy import estimate_sun_elevation, to_datetime
from .const import (
    COLD_WATER_WARNING_C,
    DEFAULT_MAX_GUST_KT,
    DEFAULT_MAX_WAVE_M,
    DEFAULT_MAX_WIND_KT,
    EXTREME_CURRENT_KT,
    IN_SEASON_THRESHOLD,
    LIGHTNING_UNSAFE_J_KG,
    NEUTRAL_SCORE,
    SAFETY_SCORE_CEILING,
    WEIGHT_SUM_TOLERANCE,
)
from .factor_scoring import INF
from .models import AlgorithmContext, EnvironmentalSample, FactorResult, ScoreResult, TideSnapshot
from .physics_helpers import nocturnal_flood_bonus
from .unit_helpers import _to_float, clamp, kmh_to_knots, sanitize_sample

_LOGGER = logging.getLogger(__name__)

GENERIC_SPECIES_ID = "generic"
UNSAFE_ADVICE = "Unsafe conditions - score capped"


class Species(str, Enum):
    CHINOOK = "chinook"
    COHO = "coho"
    PINK = "pink"
    SOCKEYE = "sockeye"
    CHUM = "chum"
    HALIBUT = "halibut"
    LINGCOD = "lingcod"
    ROCKFISH = "rockfish"
    CRAB = "crab"
    SPOT_PRAWN = "spot-prawn"


class AlgorithmVersion(str, Enum):
    V1 = "v1"
    V2 = "v2"


DEFAULT_VERSION = AlgorithmVersion.V2

SPECIES_ALIASES: Dict[str, Species] = {
    "chinook-salmon": Species.CHINOOK,
    "king": Species.CHINOOK,
    "king-salmon": Species.CHINOOK,
    "spring-salmon": Species.CHINOOK,
    "coho-salmon": Species.COHO,
    "silver": Species.COHO,
    "silver-salmon": Species.COHO,
    "pink-salmon": Species.PINK,
    "humpy": Species.PINK,
    "sockeye-salmon": Species.SOCKEYE,
    "chum-salmon": Species.CHUM,
    "dog-salmon": Species.CHUM,
    "pacific-halibut": Species.HALIBUT,
    "lingcod-fish": Species.LINGCOD,
    "ling-cod": Species.LINGCOD,
    "rock-fish": Species.ROCKFISH,
    "dungeness-crab": Species.CRAB,
    "dungeness": Species.CRAB,
    "red-rock-crab": Species.CRAB,
    "spotprawn": Species.SPOT_PRAWN,
    "spot-prawns": Species.SPOT_PRAWN,
    "spotprawns": Species.SPOT_PRAWN,
    "prawn": Species.SPOT_PRAWN,
    "prawns": Species.SPOT_PRAWN,
}

_SEPARATORS = re.compile(r"[\s_]+")


@dataclass(frozen=True)
class FactorSpec:
    key: str
    weight: float
    scorer: Callable[..., Optional[FactorResult]]
    params: Mapping[str, Any] = field(default_factory=dict)
    optional: bool = False


@dataclass(frozen=True)
class SeaStateCeilings:
    wind_kt: float = DEFAULT_MAX_WIND_KT
    gust_kt: float = DEFAULT_MAX_GUST_KT
    wave_m: float = DEFAULT_MAX_WAVE_M


# (total, factors, sample, context, tide) -> (adjusted total, advice lines)
AdjustHook = Callable[
    [float, Mapping[str, FactorResult], EnvironmentalSample, AlgorithmContext, Optional[TideSnapshot]],
    Tuple[float, Tuple[str, ...]],
]


@dataclass(frozen=True)
class SpeciesAlgorithm:
    species_id: str
    version: AlgorithmVersion
    tag: str
    factors: Tuple[FactorSpec, ...]
    season_key: Optional[str] = None
    ceilings: SeaStateCeilings = SeaStateCeilings()
    adjust: Optional[AdjustHook] = None

    @property
    def factor_keys(self) -> Tuple[str, ...]:
        return tuple(f.key for f in self.factors)

    def weights(self) -> Dict[str, float]:
        return {f.key: f.weight for f in self.factors}


# ---- Normalisation ----

def normalize_species_id(raw: Any) -> str:
    """Lowercase, trim, and hyphenate a species identifier."""
    if raw is None:
        return ""
    text = _SEPARATORS.sub("-", str(raw).strip().lower())
    return re.sub(r"-{2,}", "-", text).strip("-")


def resolve_species(raw: Any) -> Optional[Species]:
    """Species for a raw id or alias; None when the id is unknown."""
    key = normalize_species_id(raw)
    if not key:
        return None
    try:
        return Species(key)
    except ValueError:
        return SPECIES_ALIASES.get(key)


def resolve_version(version: Union[AlgorithmVersion, str, None]) -> AlgorithmVersion:
    if version is None:
        return DEFAULT_VERSION
    if isinstance(version, AlgorithmVersion):
        return version
    key = str(version).strip().lower()
    if not key.startswith("v"):
        key = f"v{key}"
    try:
        return AlgorithmVersion(key.split(".")[0])
    except ValueError:
        _LOGGER.debug("Unknown algorithm version %r, using %s", version, DEFAULT_VERSION.value)
        return DEFAULT_VERSION


# ---- Adjustment hooks ----

def _coho_light_adjust(total, factors, sample, context, tide):
    """Coho spook under high sun on clear days and in glassy calm."""
    advice: List[str] = []
    cloud = _to_float(sample.cloud_cover)
    if cloud is None:
        return total, ()
    elevation = estimate_sun_elevation(sample.timestamp, context.sunrise, context.sunset, context.utc_offset_seconds)
    if elevation > 45.0 and cloud < 25.0:
        total *= 0.7
        advice.append("High sun and clear skies - coho holding deep, fish below 15 m or wait for shade")
    elif elevation > 30.0 and cloud < 50.0:
        total *= 0.85
        advice.append("Bright conditions - lengthen leaders and slow the troll")
    wind_kt = kmh_to_knots(sample.wind_speed)
    if wind_kt is not None and wind_kt < 4.0 and cloud < 50.0:
        total *= 0.85
        advice.append("Glass calm - coho are wary, fish longer lines away from the boat")
    return total, tuple(advice)


_CRAB_SOAK_KEYS = ("scent_hydraulics", "molt_quality", "tide_direction", "photoperiod", "barometer")


def _crab_soak_adjust(total, factors, sample, context, tide):
    """Scale the soak portion of the score by the nocturnal flood multiplier."""
    if tide is None:
        return total, ()
    bonus = nocturnal_flood_bonus(
        sample.timestamp,
        context.soak_duration_hours,
        context.sunset,
        context.sunrise,
        bool(tide.is_rising),
    )
    if bonus.multiplier <= 1.0:
        return total, ()
    soak = sum(factors[k].score * factors[k].weight for k in _CRAB_SOAK_KEYS if k in factors)
    return total + soak * (bonus.multiplier - 1.0), (bonus.advice,)


# ---- Tables ----

F = FactorSpec
_BOTTOM_FISH_CEILINGS = SeaStateCeilings(wind_kt=20.0, gust_kt=30.0, wave_m=1.5)

_NEAP_RANGE_BANDS = ((0.0, 1.0, 10.0), (1.0, 1.5, 8.0), (1.5, 2.0, 6.0), (2.0, 2.5, 4.0))
_SPRING_RANGE_BANDS = ((2.5, INF, 10.0), (2.0, 2.5, 9.0), (1.5, 2.0, 7.0), (1.0, 1.5, 5.0))
_SALMON_WIND_BANDS = ((5.0, 15.0, 10.0), (0.0, 5.0, 7.0))
_CALM_WIND_BANDS = ((0.0, 10.0, 10.0), (10.0, 15.0, 7.0))
_SMALL_WAVE_BANDS = ((0.0, 1.0, 10.0), (1.0, 1.5, 6.0))
_DRIZZLE_BANDS = ((0.0, 0.0, 8.0), (0.0, 5.0, 10.0), (5.0, 10.0, 5.0))
_STEADY_PRESSURE_BANDS = ((1009.0, 1014.0, 10.0), (1006.0, 1017.0, 7.0))
_WIND_UNSAFE = "High winds - unsafe for small craft"
_WAVE_UNSAFE = "Waves too high for safe fishing"
_CURRENT_UNSAFE = "Current too strong for safe boat handling"


def _banded(key, weight, source, bands, default, unsafe_above=None, unsafe_warning=None):
    params = {"source": source, "bands": bands, "default": default}
    if unsafe_above is not None:
        params["unsafe_above"] = unsafe_above
        params["unsafe_warning"] = unsafe_warning
    return F(key, weight, fs.score_banded, params)


def _v1_wind(weight, bands=_SALMON_WIND_BANDS, default=5.0, unsafe_above=20.0):
    return _banded("wind", weight, "wind_knots", bands, default, unsafe_above, _WIND_UNSAFE)


def _v1_wave(weight, bands=_SMALL_WAVE_BANDS, default=3.0, unsafe_above=2.0):
    return _banded("wave_height", weight, "wave_height", bands, default, unsafe_above, _WAVE_UNSAFE)


def _v1_light(weight, bands, default):
    return F("light_time", weight, fs.score_light_hour, {"bands": bands, "default": default})


def _v2(species: Species, factors, season_key=None, ceilings=SeaStateCeilings(), adjust=None) -> SpeciesAlgorithm:
    return SpeciesAlgorithm(species.value, AlgorithmVersion.V2, f"{species.value}-v2.0", tuple(factors), season_key, ceilings, adjust)


def _v1(species: Species, factors, season_key="seasonality", ceilings=SeaStateCeilings()) -> SpeciesAlgorithm:
    return SpeciesAlgorithm(species.value, AlgorithmVersion.V1, f"{species.value}-v1.0", tuple(factors), season_key, ceilings)


_V2_TABLES: Dict[Species, SpeciesAlgorithm] = {
    Species.CHINOOK: _v2(Species.CHINOOK, [
        F("seasonality", 0.20, fs.score_seasonality, {"center_day": 220, "spread_days": 40, "plateau_days": 15, "floor": 1.5}),
        F("catch_reports", 0.15, fs.score_catch_reports, optional=True),
        F("light_time", 0.15, fs.score_light_time, {"midday_score": 4.0, "night_score": 2.0, "cloud_boost": 2.0}),
        F("tidal_current", 0.12, fs.score_tidal_current, {"band": (0.5, 2.0), "sigma": 0.75}),
        F("pressure_trend", 0.10, fs.score_pressure_trend),
        F("solunar", 0.08, fs.score_solunar),
        F("water_temp", 0.08, fs.score_water_temp, {"pref_min": 9.0, "pref_max": 13.0, "tolerance": 4.0}),
        F("sea_state", 0.07, fs.score_sea_state),
        F("precipitation", 0.05, fs.score_precipitation),
    ], season_key="seasonality"),
    Species.COHO: _v2(Species.COHO, [
        F("seasonality", 0.15, fs.score_seasonality, {"center_day": 265, "spread_days": 30, "plateau_days": 10, "floor": 1.0}),
        F("bait_presence", 0.20, fs.score_bait_presence),
        F("light_and_stealth", 0.20, fs.score_light_time, {"midday_score": 3.0, "night_score": 2.0, "cloud_boost": 3.0}),
        F("current_flow", 0.15, fs.score_tidal_current, {"band": (1.5, 3.0), "sigma": 0.8, "rising_bonus": 0.0}),
        F("sea_surface_state", 0.15, fs.score_surface_state),
        F("pressure_trend", 0.10, fs.score_pressure_trend),
        F("river_turbidity", 0.05, fs.score_river_turbidity),
    ], season_key="seasonality", adjust=_coho_light_adjust),
    Species.PINK: _v2(Species.PINK, [
        F("seasonality", 0.25, fs.score_seasonality, {"center_day": 227, "spread_days": 17.7, "odd_years_only": True}),
        F("tidal_phase", 0.20, fs.score_tide_direction, {"flood_score": 10.0, "ebb_score": 6.0}),
        F("light_conditions", 0.10, fs.score_light_time, {"midday_score": 3.0, "night_score": 2.0, "cloud_boost": 3.0}),
        F("current_flow", 0.10, fs.score_tidal_current, {"band": (1.0, 2.5), "sigma": 0.75}),
        F("water_clarity", 0.10, fs.score_river_turbidity),
        F("pressure_trend", 0.05, fs.score_pressure_trend),
        F("water_temp", 0.10, fs.score_water_temp, {"pref_min": 11.0, "pref_max": 16.0, "tolerance": 4.0}),
        F("precipitation", 0.05, fs.score_precipitation),
        F("sea_state", 0.05, fs.score_sea_state),
    ], season_key="seasonality"),
    Species.SOCKEYE: _v2(Species.SOCKEYE, [
        F("run_timing", 0.40, fs.score_seasonality, {"center_day": 216, "spread_days": 12, "plateau_days": 10, "open_window": (182, 258)}),
        F("tidal_phase", 0.20, fs.score_tidal_treadmill),
        F("light_time", 0.15, fs.score_light_time, {"midday_score": 4.0, "night_score": 2.0}),
        F("pressure_trend", 0.10, fs.score_pressure_trend),
        F("river_conditions", 0.10, fs.score_thermal_blockade),
        F("tidal_range", 0.05, fs.score_tidal_range),
    ], season_key="run_timing"),
    Species.CHUM: _v2(Species.CHUM, [
        F("seasonality", 0.20, fs.score_seasonality, {"center_day": 298, "spread_days": 18, "plateau_days": 15, "floor": 1.0}),
        F("tidal_movement", 0.30, fs.score_tidal_movement),
        F("optimal_light", 0.20, fs.score_light_time, {"midday_score": 4.0, "night_score": 2.0, "cloud_boost": 2.0}),
        F("water_temp", 0.10, fs.score_water_temp, {"pref_min": 8.0, "pref_max": 12.0, "tolerance": 4.0}),
        F("pressure_trend", 0.10, fs.score_pressure_trend),
        F("water_clarity", 0.05, fs.score_river_turbidity),
        F("solunar", 0.05, fs.score_solunar),
    ], season_key="seasonality"),
    Species.HALIBUT: _v2(Species.HALIBUT, [
        F("tidal_slope", 0.30, fs.score_slack_tide, {"k": 0.9}),
        F("tidal_range", 0.10, fs.score_tidal_range, {"inverted": True}),
        F("swell_quality", 0.15, fs.score_swell_quality),
        F("wind_tide_safety", 0.15, fs.score_surface_state),
        F("seasonality", 0.10, fs.score_seasonality, {"center_day": 182, "spread_days": 45, "plateau_days": 60, "floor": 2.0, "closed_months": (12, 1, 2)}),
        F("light_tide_interaction", 0.10, fs.score_light_tide_interaction),
        F("bait_scent", 0.10, fs.score_bait_presence),
    ], season_key="seasonality", ceilings=_BOTTOM_FISH_CEILINGS),
    Species.LINGCOD: _v2(Species.LINGCOD, [
        F("tidal_dynamics", 0.40, fs.score_tidal_dynamics),
        F("seasonality", 0.15, fs.score_seasonality, {"center_day": 182, "spread_days": 60, "plateau_days": 75, "floor": 3.0, "closed_months": (1, 2, 3)}),
        F("time_of_day", 0.05, fs.score_light_time, {"midday_score": 6.0, "night_score": 3.0}),
        F("pressure_trend", 0.10, fs.score_pressure_trend),
        F("wind", 0.10, fs.score_wind, {"max_kt": 20.0}),
        F("wave_height", 0.10, fs.score_wave_height, {"max_m": 1.5}),
        F("ambient_light", 0.10, fs.score_ambient_light),
    ], season_key="seasonality", ceilings=_BOTTOM_FISH_CEILINGS),
    Species.ROCKFISH: _v2(Species.ROCKFISH, [
        F("slack_tide", 0.40, fs.score_slack_tide, {"k": 0.9}),
        F("tidal_range", 0.10, fs.score_tidal_range, {"inverted": True}),
        F("time_of_day", 0.10, fs.score_light_time, {"midday_score": 6.0, "night_score": 3.0}),
        F("wind", 0.20, fs.score_wind, {"max_kt": 20.0}),
        F("wave_height", 0.15, fs.score_wave_height, {"max_m": 1.5}),
        F("seasonality", 0.05, fs.score_seasonality, {"center_day": 200, "spread_days": 60, "plateau_days": 60, "floor": 3.0}),
    ], season_key="seasonality", ceilings=_BOTTOM_FISH_CEILINGS),
    Species.SPOT_PRAWN: _v2(Species.SPOT_PRAWN, [
        F("slack_tide", 0.50, fs.score_slack_tide, {"k": 1.2}),
        F("tidal_range", 0.10, fs.score_tidal_range, {"inverted": True}),
        F("time_of_day", 0.20, fs.score_light_time, {"midday_score": 5.0, "night_score": 3.0}),
        F("intra_season_position", 0.15, fs.score_intra_season),
        F("solunar", 0.05, fs.score_solunar),
    ], season_key="intra_season_position", ceilings=_BOTTOM_FISH_CEILINGS),
    Species.CRAB: _v2(Species.CRAB, [
        F("scent_hydraulics", 0.28, fs.score_scent_hydraulics),
        F("molt_quality", 0.175, fs.score_molt_quality),
        F("tide_direction", 0.105, fs.score_tide_direction, {"flood_score": 10.0, "ebb_score": 7.0}),
        F("photoperiod", 0.105, fs.score_photoperiod),
        F("barometer", 0.035, fs.score_pressure_trend, {"prefer": "barometer"}),
        F("retrieval_safety", 0.30, fs.score_retrieval_safety),
    ], season_key="molt_quality", adjust=_crab_soak_adjust),
}

_V1_TABLES: Dict[Species, SpeciesAlgorithm] = {
    Species.CHINOOK: _v1(Species.CHINOOK, [
        _v1_light(0.20, fs.DEFAULT_LIGHT_HOUR_BANDS, 0.0),
        _banded("tidal_range", 0.15, "tidal_range", ((2.5, INF, 10.0), (1.5, 2.5, 8.0), (0.8, 1.5, 6.0)), 4.0),
        _banded("current_flow", 0.15, "current_speed", ((0.5, 2.0, 10.0), (0.3, 3.0, 7.0), (0.0, 0.3, 5.0)), 3.0, 4.0, _CURRENT_UNSAFE),
        F("seasonality", 0.15, fs.score_peak_months, {"peak_months": (2, 3, 4, 6, 7), "month_scores": {5: 8.0, 8: 8.0, 9: 8.0, 10: 5.0, 1: 5.0}, "default": 3.0}),
        F("pressure", 0.10, fs.score_pressure_absolute),
        F("moon_phase", 0.05, fs.score_moon_phase, {"mode": "new_full"}),
        _banded("temperature", 0.05, "water_temp", ((10.0, 15.0, 10.0), (8.0, 17.0, 7.0), (-INF, 8.0, 0.0)), 3.0),
        _v1_wind(0.05),
        _v1_wave(0.05),
        _banded("precipitation", 0.05, "precipitation", _DRIZZLE_BANDS, 3.0),
    ]),
    Species.PINK: _v1(Species.PINK, [
        F("seasonality", 0.30, fs.score_peak_months, {"peak_months": (8,), "month_scores": {9: 8.0, 7: 4.0}, "default": 0.0, "odd_years_only": True}),
        _v1_light(0.15, ((5, 8, 10.0), (18, 21, 10.0), (9, 11, 7.0), (16, 17, 7.0), (12, 15, 3.0)), 2.0),
        _banded("current_flow", 0.15, "current_speed", ((1.0, 2.5, 10.0), (0.5, 3.0, 7.0), (0.0, 0.5, 4.0)), 3.0, 4.0, _CURRENT_UNSAFE),
        _banded("tidal_range", 0.10, "tidal_range", ((1.2, 2.5, 10.0), (0.8, 1.2, 7.0), (2.5, 3.5, 6.0)), 4.0),
        _banded("precipitation", 0.10, "precipitation", _DRIZZLE_BANDS, 3.0),
        _banded("water_temp", 0.10, "water_temp", ((11.0, 16.0, 10.0), (9.0, 18.0, 7.0)), 3.0),
        _v1_wind(0.05),
        _v1_wave(0.05),
    ]),
    Species.HALIBUT: _v1(Species.HALIBUT, [
        _banded("tidal_range", 0.25, "tidal_range", _NEAP_RANGE_BANDS, 1.0),
        _banded("current_flow", 0.25, "current_speed", ((0.5, 2.0, 10.0), (0.3, 0.5, 6.0), (2.0, 2.5, 4.0), (0.0, 0.3, 3.0)), 1.0),
        F("seasonality", 0.15, fs.score_peak_months, {"peak_months": (5, 6, 7), "month_scores": {4: 8.0, 8: 8.0, 3: 6.0, 9: 6.0}, "default": 4.0, "closed_months": (12, 1, 2)}),
        F("moon_phase", 0.10, fs.score_moon_phase, {"mode": "quarter"}),
        _v1_wind(0.10, _CALM_WIND_BANDS, 4.0),
        _v1_wave(0.10, ((0.0, 1.0, 10.0),), 6.0, 1.5),
        _v1_light(0.05, (), 8.0),
    ], ceilings=_BOTTOM_FISH_CEILINGS),
    Species.LINGCOD: _v1(Species.LINGCOD, [
        _banded("slack_tide", 0.30, "current_speed", ((3.0, INF, 1.0), (0.0, 0.1, 10.0), (0.1, 0.3, 9.0), (0.3, 0.5, 7.0), (0.5, 1.0, 5.0), (1.0, 2.0, 3.0)), 2.0),
        _banded("tidal_range", 0.20, "tidal_range", _SPRING_RANGE_BANDS, 3.0),
        F("seasonality", 0.15, fs.score_peak_months, {"peak_months": (4, 5, 6, 7, 8, 9, 10), "closed_months": (11, 12, 1, 2, 3)}),
        _v1_wave(0.10),
        _v1_wind(0.10, _CALM_WIND_BANDS, 4.0),
        _banded("precipitation", 0.05, "precipitation", ((0.0, 0.0, 8.0), (0.0, 5.0, 10.0), (5.0, 10.0, 6.0)), 4.0),
        _v1_light(0.05, ((5, 8, 9.0), (18, 21, 9.0), (9, 11, 7.0), (16, 17, 7.0)), 6.0),
        _banded("water_temp", 0.05, "water_temp", ((8.0, 12.0, 10.0), (6.0, 14.0, 7.0)), 4.0),
    ], ceilings=_BOTTOM_FISH_CEILINGS),
    Species.COHO: _v1(Species.COHO, [
        F("seasonality", 0.25, fs.score_peak_months, {"peak_months": (9,), "month_scores": {8: 9.0, 10: 7.0, 7: 5.0, 11: 5.0}, "default": 2.0}),
        _v1_light(0.20, ((5, 8, 10.0), (18, 21, 10.0), (9, 11, 7.0), (16, 17, 7.0), (12, 15, 2.0)), 3.0),
        _banded("current_flow", 0.20, "current_speed", ((1.5, 3.0, 10.0), (1.0, 1.5, 8.0), (3.0, 4.0, 5.0), (0.5, 1.0, 6.0), (0.0, 0.5, 3.0)), 2.0),
        _banded("tidal_range", 0.10, "tidal_range", _SPRING_RANGE_BANDS, 3.0),
        _banded("precipitation", 0.10, "precipitation", ((0.0, 0.0, 7.0), (0.0, 5.0, 10.0), (5.0, 10.0, 5.0), (10.0, 20.0, 3.0)), 1.0),
        _v1_wind(0.05, ((5.0, 15.0, 10.0), (0.0, 5.0, 6.0)), 4.0),
        _v1_wave(0.05, ((0.0, 1.5, 10.0),), 5.0),
        _banded("water_temp", 0.05, "water_temp", ((11.0, 15.0, 10.0), (9.0, 17.0, 7.0)), 3.0),
    ]),
    Species.ROCKFISH: _v1(Species.ROCKFISH, [
        _banded("slack_tide", 0.35, "current_speed", ((0.0, 0.1, 10.0), (0.1, 0.3, 9.5), (0.3, 0.5, 8.5), (0.5, 1.0, 6.0), (1.0, 1.5, 3.0)), 1.0),
        _v1_wind(0.20, _CALM_WIND_BANDS, 4.0),
        _v1_wave(0.20, ((0.0, 1.0, 10.0),), 5.0, 1.5),
        _banded("tidal_range", 0.10, "tidal_range", _NEAP_RANGE_BANDS, 2.0),
        F("seasonality", 0.10, fs.score_peak_months, {"peak_months": (6, 7, 8, 9), "month_scores": {3: 3.0, 4: 3.0, 5: 3.0, 10: 6.0, 11: 6.0}, "default": 4.0}),
        F("other_factors", 0.05, fs.score_other_factors),
    ], ceilings=_BOTTOM_FISH_CEILINGS),
    Species.CRAB: _v1(Species.CRAB, [
        _banded("soak_time", 0.30, "current_speed", ((0.3, 0.8, 10.0), (0.1, 0.3, 7.0), (0.8, 1.5, 8.0), (0.0, 0.1, 4.0)), 3.0),
        F("seasonality", 0.25, fs.score_peak_months, {"peak_months": (8, 9, 10), "month_scores": {11: 8.0, 5: 6.0, 12: 6.0, 6: 3.0, 7: 3.0}, "default": 5.0}),
        F("moon_phase", 0.15, fs.score_moon_phase, {"mode": "dark"}),
        _banded("wind", 0.10, "wind_knots", ((0.0, 15.0, 10.0), (15.0, 20.0, 6.0)), 2.0),
        _v1_wave(0.10, ((0.0, 1.0, 10.0),), 6.0, 1.5),
        _banded("tidal_range", 0.10, "tidal_range", ((1.5, 2.5, 10.0), (1.0, 3.0, 7.0)), 4.0),
    ]),
    Species.SPOT_PRAWN: _v1(Species.SPOT_PRAWN, [
        F("seasonality", 0.50, fs.score_peak_months, {"peak_months": (5, 6), "default": 0.0}),
        _banded("slack_tide", 0.20, "current_speed", ((0.0, 0.1, 10.0), (0.1, 0.2, 9.0), (0.2, 0.3, 6.0), (0.3, 0.5, 3.0)), 1.0),
        _banded("tidal_range", 0.10, "tidal_range", _NEAP_RANGE_BANDS, 2.0),
        _v1_wind(0.10, ((0.0, 10.0, 10.0), (10.0, 15.0, 6.0)), 0.0, 15.0),
        _v1_wave(0.10, ((0.0, 1.0, 10.0),), 5.0, 1.5),
    ], ceilings=_BOTTOM_FISH_CEILINGS),
    Species.SOCKEYE: _v1(Species.SOCKEYE, [
        F("seasonality", 0.30, fs.score_peak_months, {"peak_months": (6, 7, 8)}),
        _banded("current_flow", 0.20, "current_speed", ((0.5, 2.0, 10.0), (0.3, 2.5, 7.0)), 4.0),
        _banded("tidal_range", 0.15, "tidal_range", ((2.0, INF, 10.0), (1.2, 2.0, 8.0)), 5.0),
        _v1_light(0.15, ((4, 7, 9.0), (18, 21, 8.5), (8, 17, 6.0)), 3.0),
        _banded("water_temp", 0.10, "water_temp", ((8.0, 14.0, 10.0), (6.0, 16.0, 7.0)), 3.0),
        F("pressure", 0.10, fs.score_pressure_absolute, {"bands": _STEADY_PRESSURE_BANDS, "default": 4.0}),
    ]),
    Species.CHUM: _v1(Species.CHUM, [
        F("seasonality", 0.25, fs.score_peak_months, {"peak_months": (9, 10, 11)}),
        _banded("current_flow", 0.20, "current_speed", ((0.3, 1.5, 10.0), (0.2, 2.0, 7.0)), 4.0),
        _banded("tidal_range", 0.20, "tidal_range", ((1.8, INF, 10.0), (1.0, 1.8, 7.0)), 5.0),
        _v1_light(0.10, ((5, 8, 8.0), (16, 19, 7.5), (9, 15, 6.0)), 4.0),
        _banded("water_temp", 0.10, "water_temp", ((7.0, 13.0, 10.0), (5.0, 15.0, 7.0)), 3.0),
        F("pressure", 0.10, fs.score_pressure_absolute, {"bands": _STEADY_PRESSURE_BANDS, "default": 4.0}),
        _banded("precipitation", 0.05, "precipitation", (), 8.0),
    ]),
}

GENERIC_ALGORITHMS: Dict[AlgorithmVersion, SpeciesAlgorithm] = {
    AlgorithmVersion.V2: SpeciesAlgorithm(GENERIC_SPECIES_ID, AlgorithmVersion.V2, "generic-v2.0", (
        F("tidal_current", 0.25, fs.score_tidal_current),
        F("light_time", 0.20, fs.score_light_time),
        F("pressure_trend", 0.15, fs.score_pressure_trend),
        F("sea_state", 0.15, fs.score_sea_state),
        F("solunar", 0.10, fs.score_solunar),
        F("water_temp", 0.05, fs.score_water_temp),
        F("precipitation", 0.05, fs.score_precipitation),
        F("visibility", 0.05, fs.score_visibility),
    )),
    AlgorithmVersion.V1: SpeciesAlgorithm(GENERIC_SPECIES_ID, AlgorithmVersion.V1, "generic-v1.0", (
        _v1_light(0.25, fs.DEFAULT_LIGHT_HOUR_BANDS, 0.0),
        _banded("current_flow", 0.25, "current_speed", ((0.5, 2.0, 10.0), (0.3, 3.0, 7.0), (0.0, 0.3, 5.0)), 3.0),
        _v1_wind(0.15, unsafe_above=DEFAULT_MAX_WIND_KT),
        _v1_wave(0.15),
        F("pressure", 0.10, fs.score_pressure_absolute),
        _banded("precipitation", 0.10, "precipitation", _DRIZZLE_BANDS, 3.0),
    )),
}

ALGORITHMS: Dict[Tuple[Species, AlgorithmVersion], SpeciesAlgorithm] = {}
ALGORITHMS.update({(s, AlgorithmVersion.V2): a for s, a in _V2_TABLES.items()})
ALGORITHMS.update({(s, AlgorithmVersion.V1): a for s, a in _V1_TABLES.items()})


def _validate_registry() -> None:
    candidates = list(ALGORITHMS.values()) + list(GENERIC_ALGORITHMS.values())
    for species in Species:
        for version in AlgorithmVersion:
            if (species, version) not in ALGORITHMS:
                raise RuntimeError(f"No {version.value} algorithm registered for {species.value} (strict)")
    for version in AlgorithmVersion:
        if version not in GENERIC_ALGORITHMS:
            raise RuntimeError(f"No generic {version.value} algorithm registered (strict)")
    for algorithm in candidates:
        total = sum(f.weight for f in algorithm.factors)
        if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
            raise RuntimeError(f"Weights for {algorithm.tag} sum to {total:.6f}, expected 1.0 (strict)")
        keys = algorithm.factor_keys
        if len(set(keys)) != len(keys):
            raise RuntimeError(f"Duplicate factor keys in {algorithm.tag} (strict)")
        if algorithm.season_key is not None and algorithm.season_key not in keys:
            raise RuntimeError(f"Season key {algorithm.season_key} missing from {algorithm.tag} (strict)")


_validate_registry()


def get_algorithm(species_id: Any, version: Union[AlgorithmVersion, str, None] = None) -> SpeciesAlgorithm:
    """Algorithm for a raw species id; unknown ids get the generic table."""
    resolved_version = resolve_version(version)
    species = resolve_species(species_id)
    if species is None:
        return GENERIC_ALGORITHMS[resolved_version]
    return ALGORITHMS[(species, resolved_version)]


def weights_for(species_id: Any, version: Union[AlgorithmVersion, str, None] = None) -> Dict[str, float]:
    return get_algorithm(species_id, version).weights()


# ---- Scoring ----

SEASON_CLOSED_DESCRIPTIONS = frozenset({"off_year", "closed_season", "not_yet_open"})

# (warning, advice) shown when the season factor reports the fishery shut
_CLOSURE_NOTICES: Dict[str, Tuple[str, str]] = {
    Species.PINK.value: ("Even year ({year}) - pink salmon runs are negligible", "Wait for the next odd year for pink runs"),
    Species.SOCKEYE.value: ("Sockeye fishery closed", "Check DFO for emergency openings or test fishery announcements"),
    Species.LINGCOD.value: ("Lingcod season closed (Jan-Mar) - no retention", "Season closed for lingcod spawning protection"),
    Species.HALIBUT.value: ("Halibut season closed (Dec-Feb)", "Target rockfish or crab until halibut reopens"),
    Species.SPOT_PRAWN.value: ("Spot prawn season is closed", "Check DFO for current spot prawn season dates"),
}
_GENERIC_CLOSURE = ("{name} fishery closed", "Target another species while the fishery is closed")


def _closure_notice(algorithm: SpeciesAlgorithm, factors: Mapping[str, FactorResult], sample, context) -> Optional[Tuple[str, str]]:
    """(warning, advice) when the season factor says the fishery is shut."""
    if algorithm.season_key is None:
        return None
    season = factors.get(algorithm.season_key)
    if season is None or season.description not in SEASON_CLOSED_DESCRIPTIONS:
        return None
    warning, advice = _CLOSURE_NOTICES.get(algorithm.species_id, _GENERIC_CLOSURE)
    year = to_datetime(sample.timestamp, context.utc_offset_seconds).year
    name = algorithm.species_id.replace("-", " ").capitalize()
    return warning.format(year=year, name=name), advice


def _run_factor(spec: FactorSpec, sample, context, tide, tag: str) -> Optional[FactorResult]:
    try:
        return spec.scorer(sample, context, tide, weight=spec.weight, **spec.params)
    except Exception:
        _LOGGER.debug("Failed to compute %s factor for %s", spec.key, tag, exc_info=True)
        return FactorResult(value=None, weight=spec.weight, score=NEUTRAL_SCORE, description="unavailable")


def _common_safety_warnings(
    sample: EnvironmentalSample,
    tide: Optional[TideSnapshot],
    ceilings: SeaStateCeilings,
) -> List[str]:
    warnings = list(fs.sea_state_warnings(sample, ceilings.wind_kt, ceilings.gust_kt, ceilings.wave_m))
    cape = _to_float(sample.lightning_potential)
    if cape is not None and cape > LIGHTNING_UNSAFE_J_KG:
        warnings.append(f"Lightning risk: CAPE {cape:.0f} J/kg")
    if tide is not None:
        speed = _to_float(tide.current_speed)
        if speed is not None and abs(speed) > EXTREME_CURRENT_KT:
            warnings.append(f"Extreme current {abs(speed):.1f} kts")
    return warnings


def _cold_water_warning(sample: EnvironmentalSample, tide: Optional[TideSnapshot]) -> Optional[str]:
    water = fs.water_temperature(sample, tide)
    if water is not None and water < COLD_WATER_WARNING_C:
        return f"Cold water {water:.0f}°C - dress for immersion"
    return None


def calculate_species_score(
    species_id: Any,
    sample: EnvironmentalSample,
    context: Optional[AlgorithmContext] = None,
    tide: Optional[TideSnapshot] = None,
    version: Union[AlgorithmVersion, str, None] = None,
) -> ScoreResult:
    """Score one sample for one species.

    Never raises on bad data: missing inputs score neutral, unknown species
    use the generic table and unsafe conditions cap the total at
    SAFETY_SCORE_CEILING. A closed or off-year season scores 0 and is
    reported out of season with a closure warning.
    """
    algorithm = get_algorithm(species_id, version)
    context = context or AlgorithmContext()
    sample = sanitize_sample(sample)

    factors: Dict[str, FactorResult] = {}
    for spec in algorithm.factors:
        result = _run_factor(spec, sample, context, tide, algorithm.tag)
        if result is None:
            continue
        factors[spec.key] = result

    # rescale when optional factors dropped out
    weight_sum = sum(f.weight for f in factors.values())
    if weight_sum > 0 and abs(weight_sum - 1.0) > WEIGHT_SUM_TOLERANCE:
        factors = {k: dataclasses.replace(f, weight=f.weight / weight_sum) for k, f in factors.items()}

    total = sum(f.score * f.weight for f in factors.values())

    advice: List[str] = []
    if algorithm.adjust is not None:
        try:
            total, extra = algorithm.adjust(total, factors, sample, context, tide)
            advice.extend(extra)
        except Exception:
            _LOGGER.debug("Failed to apply %s adjustment", algorithm.tag, exc_info=True)

    safety_warnings = _common_safety_warnings(sample, tide, algorithm.ceilings)
    unsafe = bool(safety_warnings)
    for result in factors.values():
        if not result.is_safe:
            unsafe = True
            safety_warnings.extend(result.warnings)
    cold = _cold_water_warning(sample, tide)
    if cold:
        safety_warnings.append(cold)

    for result in factors.values():
        if result.advice:
            advice.append(result.advice)

    if not math.isfinite(total):
        total = NEUTRAL_SCORE

    # a shut fishery scores 0 whatever the conditions
    closure = _closure_notice(algorithm, factors, sample, context)
    if closure is not None:
        total = 0.0
        safety_warnings.insert(0, closure[0])
        advice.insert(0, closure[1])

    if unsafe:
        total = min(total, SAFETY_SCORE_CEILING)
        advice.insert(0, UNSAFE_ADVICE)
    total = round(clamp(total, 0.0, 10.0), 2)

    if closure is not None:
        in_season = False
    elif algorithm.season_key is not None and algorithm.season_key in factors:
        in_season = factors[algorithm.season_key].score > IN_SEASON_THRESHOLD
    else:
        in_season = True

    return ScoreResult(
        total=total,
        factors=factors,
        is_safe=not unsafe,
        safety_warnings=tuple(dict.fromkeys(safety_warnings)),
        is_in_season=in_season,
        algorithm_version=algorithm.tag,
        strategy_advice=tuple(dict.fromkeys(advice)),
        species_id=algorithm.species_id,
    )


def calculate_batch(
    species_ids: Sequence[Any],
    samples: Sequence[EnvironmentalSample],
    contexts: Optional[Sequence[AlgorithmContext]] = None,
    tides: Optional[Sequence[Optional[TideSnapshot]]] = None,
    version: Union[AlgorithmVersion, str, None] = None,
) -> Dict[str, List[ScoreResult]]:
    """Score every sample for every species; each call is independent.

    ``contexts`` and ``tides`` must be aligned with ``samples`` when given.
    Results are keyed by canonical species id (``generic`` for unknown ids).
    """
    if contexts is not None and len(contexts) != len(samples):
        raise ValueError("contexts length does not match samples (strict)")
    if tides is not None and len(tides) != len(samples):
        raise ValueError("tides length does not match samples (strict)")

    out: Dict[str, List[ScoreResult]] = {}
    for raw_id in species_ids:
        key = get_algorithm(raw_id, version).species_id
        if key in out:
            continue
        out[key] = [
            calculate_species_score(
                raw_id,
                sample,
                contexts[i] if contexts is not None else None,
                tides[i] if tides is not None else None,
                version,
            )
            for i, sample in enumerate(samples)
        ]
    return out
