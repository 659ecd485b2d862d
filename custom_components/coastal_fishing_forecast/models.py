"""Immutable data types shared by the scoring engine and the integration layer."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple


@dataclass(frozen=True)
class EnvironmentalSample:
    """One weather tick. Wind speeds are km/h, pressure hPa, cloud cover %."""

    timestamp: float
    temperature: Optional[float] = None
    wind_speed: Optional[float] = None
    wind_direction: Optional[float] = None
    precipitation: Optional[float] = None
    cloud_cover: Optional[float] = None
    pressure: Optional[float] = None
    lightning_potential: Optional[float] = None
    wind_gust: Optional[float] = None
    wave_height: Optional[float] = None
    swell_period: Optional[float] = None
    visibility: Optional[float] = None


@dataclass(frozen=True)
class TideEvent:
    height: float
    time: float


@dataclass(frozen=True)
class TideSnapshot:
    """Tide and current state at one instant. Current speed is in knots."""

    current_speed: float
    is_rising: bool
    current_height: Optional[float] = None
    tidal_range: Optional[float] = None
    water_temperature: Optional[float] = None
    change_rate: Optional[float] = None
    next_tide: Optional[TideEvent] = None
    previous_tide: Optional[TideEvent] = None
    current_direction: Optional[float] = None


@dataclass(frozen=True)
class CatchReport:
    days_ago: float
    fish_count: int
    success: bool = True
    hotspot_match: bool = True


@dataclass(frozen=True)
class AlgorithmContext:
    """Per-tick context that is not part of the weather sample itself.

    `pressure_history` is ordered oldest to newest and spaced
    `pressure_interval_minutes` apart; its last entry is one interval before
    the sample. `catch_reports=None` means no report data exists at all,
    which is different from an empty tuple (data exists, nothing caught).
    `moon_phase` is a cycle fraction (0 new, 0.5 full) from an ephemeris;
    when None the phase is approximated from the timestamp.
    """

    sunrise: Optional[float] = None
    sunset: Optional[float] = None
    pressure_history: Tuple[float, ...] = ()
    pressure_interval_minutes: float = 15.0
    soak_duration_hours: Optional[float] = None
    wind_direction: Optional[float] = None
    current_direction: Optional[float] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    utc_offset_seconds: int = 0
    catch_reports: Optional[Tuple[CatchReport, ...]] = None
    bait_presence: Optional[str] = None
    current_speed_window: Tuple[float, ...] = ()
    precipitation_24h: Optional[float] = None
    max_temp_24h: Optional[float] = None
    river_temperature: Optional[float] = None
    solunar_major: Tuple[float, ...] = ()
    solunar_minor: Tuple[float, ...] = ()
    fishery_open: Optional[bool] = None
    moon_phase: Optional[float] = None


@dataclass(frozen=True)
class FactorResult:
    value: Any
    weight: float
    score: float
    description: Optional[str] = None
    is_safe: bool = True
    warnings: Tuple[str, ...] = ()
    advice: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "value": self.value,
            "weight": round(self.weight, 4),
            "score": round(self.score, 2),
            "description": self.description,
            "is_safe": self.is_safe,
            "warnings": list(self.warnings),
            "advice": self.advice,
        }


@dataclass(frozen=True)
class ScoreResult:
    total: float
    factors: Mapping[str, FactorResult]
    is_safe: bool
    safety_warnings: Tuple[str, ...]
    is_in_season: bool
    algorithm_version: str
    strategy_advice: Tuple[str, ...] = ()
    species_id: str = "generic"

    @property
    def score_100(self) -> int:
        return int(round(self.total * 10.0))

    def as_dict(self) -> Dict[str, Any]:
        """JSON-safe view used for coordinator data and sensor attributes."""
        return {
            "species_id": self.species_id,
            "total": self.total,
            "score_100": self.score_100,
            "factors": {k: f.as_dict() for k, f in self.factors.items()},
            "is_safe": self.is_safe,
            "safety_warnings": list(self.safety_warnings),
            "is_in_season": self.is_in_season,
            "algorithm_version": self.algorithm_version,
            "strategy_advice": list(self.strategy_advice),
        }


@dataclass(frozen=True)
class ScoringRange:
    range: str
    label: str
    color: str


@dataclass(frozen=True)
class FactorRecommendations:
    excellent: str
    good: str
    fair: str
    poor: str


@dataclass(frozen=True)
class FactorExplanation:
    label: str
    why_it_matters: str
    how_calculated: str
    recommendations: FactorRecommendations
    scoring_ranges: Tuple[ScoringRange, ...] = ()
    scientific_basis: Optional[str] = None


@dataclass(frozen=True)
class WeightShare:
    key: str
    factor: str
    weight: float  # percent
    rationale: str


@dataclass(frozen=True)
class SpeciesExplanationData:
    species_id: str
    display_name: str
    overview: str
    algorithm_version: str
    factors: Mapping[str, FactorExplanation]
    best_conditions: Tuple[str, ...]
    worst_conditions: Tuple[str, ...]
    weight_distribution: Tuple[WeightShare, ...] = field(default_factory=tuple)

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ScoreLabel:
    label: str
    color: str
