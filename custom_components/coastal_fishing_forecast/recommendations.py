"""Narrative advice built from a scored forecast.

Input scores are per-factor (0-10) and an overall 0-100 score; the output is
plain text meant for sensor attributes and notifications.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .explanations import (
    ExplanationTable,
    default_explanation_table,
    get_recommendation_for_score,
    get_score_label,
)
from .models import FactorResult, ScoreResult

_LOGGER = logging.getLogger(__name__)

BOTTOM_FISH = ("halibut", "lingcod", "rockfish")

_LIGHT_KEYS = ("light_time", "time_of_day", "optimal_light", "light_conditions", "light_and_stealth", "light")
_TIDE_KEYS = ("tidal_current", "current_flow", "tide_direction", "tidal_movement", "tidal_phase")
_TEMP_KEYS = ("water_temp", "temperature")
_SEA_KEYS = ("sea_state", "wave_height", "sea_surface_state")

# (positive, negative) insight per canonical factor key
_INSIGHTS: Dict[str, Tuple[str, str]] = {
    "seasonality": ("Fish are present in good numbers", "Fish density may be lower than peak season"),
    "light_time": ("Prime feeding window - fish are active", "Fish may be less aggressive, go deeper"),
    "pressure_trend": ("Weather pattern favors active feeding", "Pressure change may slow the bite"),
    "solunar": ("Lunar alignment boosts feeding activity", "Between feeding windows"),
    "catch_reports": ("Recent catches confirm fish presence", "Limited recent intel - scout carefully"),
    "tidal_current": ("Current is moving bait - fish are feeding", "Wait for tide change to improve flow"),
    "sea_state": ("Calm enough for effective fishing", "Rough conditions - fish deeper water"),
    "water_temp": ("Temperature in the comfort zone", "Fish may seek thermal refugia"),
    "precipitation": ("Clear conditions for visibility", "Rain may reduce visibility - use brighter gear"),
    "pressure": ("Pressure is favorable", "Pressure outside ideal range"),
    "tide_direction": ("Tide movement is favorable", "Tide is slowing - wait for change"),
    "tidal_range": ("Good tidal exchange expected", "Minimal tidal movement today"),
    "wind": ("Wind is manageable", "Wind may affect fishing - seek shelter"),
    "wave_height": ("Waves are manageable", "Choppy conditions - fish deeper"),
    "ambient_light": ("Cloud cover reduces glare", "Bright conditions - fish shade"),
    "temperature": ("Comfortable fishing weather", "Dress appropriately for conditions"),
    "visibility": ("Good visibility for presentations", "Limited visibility - use brighter lures"),
    "slack_tide": ("Slack water - gear stays on the bottom", "Current is running - wait for slack"),
    "bait_presence": ("Bait is holding fish in the area", "Little bait around - fish may be roaming"),
    "sea_surface_state": ("Surface conditions are comfortable", "Wind against tide - expect steep chop"),
    "scent_hydraulics": ("Current is spreading the bait plume well", "Poor scent dispersal - adjust soak"),
    "retrieval_safety": ("Safe conditions to haul gear", "Hauling gear will be difficult"),
}

_SUMMARY_BANDS = (
    (
        80,
        "Excellent conditions for {name}! Multiple factors align for a productive day on the water. "
        "Fish should be actively feeding and accessible.",
        'This is a "don\'t miss" day. Fish confidently with proven techniques. Cover water actively and '
        "expect aggressive strikes. Consider extending your trip if possible.",
    ),
    (
        65,
        "Good conditions for {name}. Most factors favor fishing success, with a few minor limitations. "
        "Expect solid action with the right approach.",
        "Fish your proven spots first, then explore. Standard techniques should produce. "
        "Be ready to adjust if the primary pattern isn't working.",
    ),
    (
        50,
        "Fair conditions for {name}. Some factors work in your favor, but others may limit success. "
        "Patience and adaptability will be key.",
        "Focus on areas where favorable factors converge. Slow down your presentation and be more "
        "methodical. Quality over quantity today.",
    ),
    (
        35,
        "Challenging conditions for {name}. Several factors are working against you. Success is possible "
        "but will require extra effort and the right strategy.",
        "Target the most protected, consistent spots. Downsize presentations and slow way down. "
        "Consider focusing on the brief windows when conditions improve.",
    ),
    (
        None,
        "Difficult conditions for {name}. Most factors are unfavorable. Consider whether this is a good day "
        "to be on the water or if another species might be more productive.",
        "If you go out, have realistic expectations. Focus on safety first. "
        "This might be a scouting day rather than a fishing day.",
    ),
)


@dataclass(frozen=True)
class FactorInsight:
    key: str
    factor: str
    score: float
    insight: str


@dataclass(frozen=True)
class OverallRecommendation:
    summary: str
    best_approach: str
    top_factors: Tuple[FactorInsight, ...]
    limiting_factors: Tuple[FactorInsight, ...]
    timing_advice: str
    depth_advice: str
    technique_advice: str
    safety_warnings: Tuple[str, ...] = ()

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _scores(factors: Mapping[str, Any]) -> Dict[str, float]:
    """Factor key to 0-10 score; accepts FactorResult values or bare numbers."""
    out: Dict[str, float] = {}
    for key, item in factors.items():
        score = item.score if isinstance(item, FactorResult) else item
        try:
            out[key] = float(score)
        except (TypeError, ValueError):
            _LOGGER.debug("Ignoring factor %s with non-numeric score %r", key, score)
    return out


def _first(scores: Mapping[str, float], keys: Sequence[str]) -> Optional[float]:
    for key in keys:
        if key in scores:
            return scores[key]
    return None


def _label(table: ExplanationTable, species_id: Any, key: str) -> str:
    explanation = table.factor(species_id, key)
    if explanation is not None:
        return explanation.label
    return key.replace("_", " ").title()


def _insight(table: ExplanationTable, key: str, score: float, positive: bool) -> str:
    pair = _INSIGHTS.get(key) or _INSIGHTS.get(table.canonical_factor(key))
    if pair is None:
        return f"{get_score_label(score).label} conditions" if positive else "Below optimal - adjust approach"
    return pair[0] if positive else pair[1]


def generate_timing_advice(factors: Mapping[str, Any]) -> str:
    scores = _scores(factors)
    parts: List[str] = []

    light = _first(scores, _LIGHT_KEYS)
    if light is not None:
        if light >= 8:
            parts.append("You're in the prime light window")
        elif light < 5:
            parts.append("Wait for dawn/dusk for better activity")

    solunar = scores.get("solunar")
    if solunar is not None and solunar >= 7:
        parts.append("solunar period aligns well")

    tide = _first(scores, _TIDE_KEYS)
    if tide is not None:
        if tide >= 7:
            parts.append("current flow is optimal")
        elif tide < 4:
            parts.append("wait for tide change")

    if not parts:
        return "Standard timing - be patient and persistent."
    return ", ".join(parts) + "."


def generate_depth_advice(factors: Mapping[str, Any], species_id: Any, table: Optional[ExplanationTable] = None) -> str:
    table = table or default_explanation_table()
    if table.species_key(species_id) in BOTTOM_FISH:
        return "Fish the bottom near structure. Use sonar to identify productive humps and ledges."

    scores = _scores(factors)
    conditions = []
    temp = _first(scores, _TEMP_KEYS)
    if temp is not None and temp < 5:
        conditions.append("warmer water")
    light = _first(scores, _LIGHT_KEYS)
    if light is not None and light < 4:
        conditions.append("less light")
    sea = _first(scores, _SEA_KEYS)
    if sea is not None and sea < 5:
        conditions.append("calmer water")

    if conditions:
        return f"Fish deeper to find {' and '.join(conditions)}. Try 40-80 feet as a starting point."
    return "Fish can be at various depths - start shallow and work deeper until you find them."


def generate_technique_advice(
    factors: Mapping[str, Any], species_id: Any, overall_score_100: float, table: Optional[ExplanationTable] = None
) -> str:
    table = table or default_explanation_table()
    species = table.species_key(species_id)

    if species == "chinook":
        if overall_score_100 >= 70:
            return "Active presentations work well - try trolling with cut-plug herring or hoochies. Vary your speed."
        if overall_score_100 >= 50:
            return "Slow down your trolling speed. Consider mooching or jigging for more control."
        return "Finesse is key - slow presentations, smaller baits, and patience. Mooching often outproduces trolling."

    if species == "coho":
        if overall_score_100 >= 70:
            return "Coho are aggressive! Try surface presentations, buzz bombs, or fast-trolled spoons."
        return "Match the hatch with smaller presentations. Coho can be leader-shy in clear water."

    if species == "halibut":
        if overall_score_100 >= 60:
            return "Large baits work well - whole herring, octopus, or salmon bellies. Fish heavy to stay on bottom."
        return "Try scent-enhanced baits and be patient. Halibut may need extra motivation today."

    if overall_score_100 >= 70:
        return "Conditions favor active fishing. Experiment with different presentations to find what works."
    if overall_score_100 >= 50:
        return "Standard techniques should produce. Be methodical and cover water systematically."
    return "Challenging conditions call for finesse. Slow down, downsize, and focus on high-percentage spots."


def generate_safety_warnings(factors: Mapping[str, Any]) -> List[str]:
    scores = _scores(factors)
    warnings: List[str] = []

    sea = _first(scores, _SEA_KEYS)
    if sea is not None and sea <= 2:
        warnings.append("Rough seas - exercise caution and check marine forecast")

    wind = scores.get("wind")
    wind_value = factors["wind"].value if isinstance(factors.get("wind"), FactorResult) else None
    if (wind is not None and wind <= 2) or (isinstance(wind_value, (int, float)) and wind_value > 30):
        warnings.append("High winds - small craft advisory conditions")

    precipitation = scores.get("precipitation")
    if precipitation is not None and precipitation <= 2:
        warnings.append("Severe weather possible - monitor conditions closely")

    return warnings


def generate_overall_recommendation(
    overall_score_100: float,
    factors: Mapping[str, Any],
    species_id: Any,
    table: Optional[ExplanationTable] = None,
) -> OverallRecommendation:
    """Summary, best approach, top/limiting factor insights and timing/depth/technique advice."""
    table = table or default_explanation_table()
    name = table.species(species_id).display_name

    for threshold, summary, best_approach in _SUMMARY_BANDS:
        if threshold is None or overall_score_100 >= threshold:
            break

    scores = _scores(factors)
    ranked = sorted(scores.items(), key=lambda kv: kv[1], reverse=True)
    top = [(k, s) for k, s in ranked[:3] if s >= 6]
    limiting = [(k, s) for k, s in reversed(ranked[-3:]) if s < 6]

    return OverallRecommendation(
        summary=summary.format(name=name),
        best_approach=best_approach,
        top_factors=tuple(
            FactorInsight(k, _label(table, species_id, k), s, _insight(table, k, s, True)) for k, s in top
        ),
        limiting_factors=tuple(
            FactorInsight(k, _label(table, species_id, k), s, _insight(table, k, s, False)) for k, s in limiting
        ),
        timing_advice=generate_timing_advice(factors),
        depth_advice=generate_depth_advice(factors, species_id, table),
        technique_advice=generate_technique_advice(factors, species_id, overall_score_100, table),
        safety_warnings=tuple(generate_safety_warnings(factors)),
    )


def get_quick_recommendation(
    species_id: Any, factor_key: str, score: float, table: Optional[ExplanationTable] = None
) -> str:
    """First sentence of the tiered recommendation, for tooltips."""
    text = get_recommendation_for_score(species_id, factor_key, score, table)
    if not text:
        return ""
    return text.split(".")[0] + "."


def get_score_interpretation(overall_score_100: float, species_id: Any, table: Optional[ExplanationTable] = None) -> str:
    name = (table or default_explanation_table()).species(species_id).display_name
    if overall_score_100 >= 80:
        return f"Excellent {name} conditions"
    if overall_score_100 >= 65:
        return f"Good {name} conditions"
    if overall_score_100 >= 50:
        return f"Fair {name} conditions"
    if overall_score_100 >= 35:
        return f"Challenging for {name}"
    return f"Difficult {name} conditions"


def recommend(result: ScoreResult, table: Optional[ExplanationTable] = None) -> OverallRecommendation:
    """Overall recommendation for a ScoreResult, with its safety warnings folded in."""
    rec = generate_overall_recommendation(result.score_100, result.factors, result.species_id, table)
    warnings = tuple(dict.fromkeys(tuple(result.safety_warnings) + rec.safety_warnings))
    return replace(rec, safety_warnings=warnings)
