"""Data confidence from source availability and tide-station proximity.

Low confidence pulls a score toward neutral instead of hiding it.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from .const import NEUTRAL_SCORE
from .unit_helpers import clamp

TIDE_SOURCE_STATION = "station"
# harmonic model or third-party estimate, not a measured station
TIDE_SOURCE_MODEL = "model"

_DISTANCE_STEPS = ((5.0, 0.95), (10.0, 0.85), (15.0, 0.70), (20.0, 0.50))
_FAR_STATION_CONFIDENCE = 0.30
_MODEL_CONFIDENCE = 0.30

WEATHER_CONFIDENCE = 0.80
WEATHER_CROSS_VALIDATED_CONFIDENCE = 0.90
MARINE_CONFIDENCE = 0.80


@dataclass(frozen=True)
class DataConfidence:
    overall: float
    weather: float
    marine: float
    tide: float
    tide_station_distance_km: Optional[float] = None
    tide_station_name: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def tide_confidence_by_distance(distance_km: Optional[float], source: Optional[str] = None) -> float:
    if source == TIDE_SOURCE_MODEL:
        return _MODEL_CONFIDENCE
    if distance_km is None:
        return 0.0
    for limit, confidence in _DISTANCE_STEPS:
        if distance_km <= limit:
            return confidence
    return _FAR_STATION_CONFIDENCE


def compute_confidence(
    weather: Optional[str],
    marine: Optional[str],
    tide: Optional[str],
    tide_station_distance_km: Optional[float] = None,
    tide_station_name: Optional[str] = None,
    cross_validated: bool = False,
) -> DataConfidence:
    """Confidence per source and their weighted average (weather 0.4, marine 0.2, tide 0.4).

    Each source argument names where the data came from, or is None when
    that source is unavailable.
    """
    if weather:
        weather_conf = WEATHER_CROSS_VALIDATED_CONFIDENCE if cross_validated else WEATHER_CONFIDENCE
    else:
        weather_conf = 0.0
    marine_conf = MARINE_CONFIDENCE if marine else 0.0
    tide_conf = tide_confidence_by_distance(tide_station_distance_km, tide) if tide else 0.0

    overall = weather_conf * 0.40 + marine_conf * 0.20 + tide_conf * 0.40
    return DataConfidence(
        overall=round(overall, 2),
        weather=weather_conf,
        marine=marine_conf,
        tide=tide_conf,
        tide_station_distance_km=tide_station_distance_km,
        tide_station_name=tide_station_name,
    )


def apply_confidence_to_score(raw: float, confidence: float, neutral: float = NEUTRAL_SCORE) -> float:
    adjusted = neutral + (float(raw) - neutral) * float(confidence)
    return clamp(round(adjusted, 2), 0.0, 10.0)
