"""Per-species factor explanations loaded from species_explanations.json (strict).

The packaged JSON is immutable reference data. Base factor content is shared;
species entries pick the factors they use and may override parts of a base
entry. Overrides are merged once, when the table is built.
"""

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from typing import Any, Dict, Mapping, Optional, Tuple

from .models import (
    FactorExplanation,
    FactorRecommendations,
    ScoreLabel,
    ScoringRange,
    SpeciesExplanationData,
    WeightShare,
)
from .species_algorithms import normalize_species_id, resolve_species

_LOGGER = logging.getLogger(__name__)

EXPLANATIONS_FILE = "species_explanations.json"
DEFAULT_SPECIES_KEY = "default"
_TIERS = ("excellent", "good", "fair", "poor")


class ExplanationDataError(RuntimeError):
    """species_explanations.json is missing or malformed."""


def _require(mapping: Mapping[str, Any], key: str, where: str, kind=str) -> Any:
    value = mapping.get(key)
    if not isinstance(value, kind):
        raise ExplanationDataError(f"{where}: '{key}' missing or has the wrong type (strict)")
    return value


def _merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def _parse_factor(raw: Mapping[str, Any], where: str) -> FactorExplanation:
    if not isinstance(raw, dict):
        raise ExplanationDataError(f"{where}: factor entry is not an object (strict)")
    recs = _require(raw, "recommendations", where, dict)
    for tier in _TIERS:
        _require(recs, tier, f"{where}.recommendations")
    ranges = []
    for item in raw.get("scoring_ranges", []):
        if not isinstance(item, dict):
            raise ExplanationDataError(f"{where}: scoring range is not an object (strict)")
        ranges.append(ScoringRange(
            range=_require(item, "range", where),
            label=_require(item, "label", where),
            color=_require(item, "color", where),
        ))
    return FactorExplanation(
        label=_require(raw, "label", where),
        why_it_matters=_require(raw, "why_it_matters", where),
        how_calculated=_require(raw, "how_calculated", where),
        recommendations=FactorRecommendations(**{tier: recs[tier] for tier in _TIERS}),
        scoring_ranges=tuple(ranges),
        scientific_basis=raw.get("scientific_basis"),
    )


class ExplanationTable:
    """Resolved explanation content for every species in the data file."""

    def __init__(
        self,
        version: str,
        species: Dict[str, SpeciesExplanationData],
        base_factors: Dict[str, FactorExplanation],
        factor_aliases: Dict[str, str],
        aliases: Dict[str, str],
    ) -> None:
        self.version = version
        self._species = species
        self._base_factors = base_factors
        self._factor_aliases = factor_aliases
        self._aliases = aliases

    @classmethod
    def from_dict(cls, data: Any) -> "ExplanationTable":
        if not isinstance(data, dict):
            raise ExplanationDataError("Explanation data root is not an object (strict)")
        raw_base = _require(data, "base_factors", "root", dict)
        raw_species = _require(data, "species", "root", dict)
        factor_aliases = dict(data.get("factor_aliases") or {})
        aliases = {normalize_species_id(k): v for k, v in (data.get("aliases") or {}).items()}

        base_factors = {key: _parse_factor(raw, f"base_factors.{key}") for key, raw in raw_base.items()}
        for alias, target in factor_aliases.items():
            if target not in raw_base:
                raise ExplanationDataError(f"Factor alias {alias} points at unknown factor {target} (strict)")

        species: Dict[str, SpeciesExplanationData] = {}
        for sid, raw in raw_species.items():
            where = f"species.{sid}"
            if not isinstance(raw, dict):
                raise ExplanationDataError(f"{where}: entry is not an object (strict)")
            overrides = raw.get("factor_overrides") or {}
            factors: Dict[str, FactorExplanation] = {}
            for key in _require(raw, "factor_keys", where, list):
                canonical = factor_aliases.get(key, key)
                if canonical not in raw_base:
                    raise ExplanationDataError(f"{where}: no explanation for factor {key} (strict)")
                if key in overrides:
                    factors[key] = _parse_factor(_merge(raw_base[canonical], overrides[key]), f"{where}.{key}")
                else:
                    factors[key] = base_factors[canonical]
            shares = tuple(
                WeightShare(
                    key=_require(item, "key", where),
                    factor=_require(item, "factor", where),
                    weight=float(_require(item, "weight", where, (int, float))),
                    rationale=_require(item, "rationale", where),
                )
                for item in raw.get("weight_distribution", [])
            )
            species[sid] = SpeciesExplanationData(
                species_id=sid,
                display_name=_require(raw, "display_name", where),
                overview=_require(raw, "overview", where),
                algorithm_version=str(raw.get("algorithm_version", "V2")),
                factors=factors,
                best_conditions=tuple(raw.get("best_conditions", [])),
                worst_conditions=tuple(raw.get("worst_conditions", [])),
                weight_distribution=shares,
            )

        if DEFAULT_SPECIES_KEY not in species:
            raise ExplanationDataError("Explanation data has no 'default' species entry (strict)")
        for alias, target in aliases.items():
            if target not in species:
                raise ExplanationDataError(f"Species alias {alias} points at unknown species {target} (strict)")

        return cls(str(data.get("version", "unknown")), species, base_factors, factor_aliases, aliases)

    @property
    def species_ids(self) -> Tuple[str, ...]:
        return tuple(self._species)

    def species_key(self, species_id: Any) -> str:
        """Entry key for a raw species id; unknown ids map to 'default'."""
        key = normalize_species_id(species_id)
        if key in self._species:
            return key
        if key in self._aliases:
            return self._aliases[key]
        resolved = resolve_species(key)
        if resolved is not None and resolved.value in self._species:
            return resolved.value
        return DEFAULT_SPECIES_KEY

    def species(self, species_id: Any) -> SpeciesExplanationData:
        return self._species[self.species_key(species_id)]

    def canonical_factor(self, factor_key: str) -> str:
        return self._factor_aliases.get(factor_key, factor_key)

    def factor(self, species_id: Any, factor_key: str) -> Optional[FactorExplanation]:
        data = self.species(species_id)
        if factor_key in data.factors:
            return data.factors[factor_key]
        # keys the species entry does not list (older tables) fall back to the shared text
        return self._base_factors.get(self.canonical_factor(factor_key))


def load_explanation_table(path: Optional[str] = None) -> ExplanationTable:
    """Read and validate an explanations file; the packaged one by default."""
    json_path = path or os.path.join(os.path.dirname(__file__), EXPLANATIONS_FILE)
    try:
        with open(json_path, "r", encoding="utf-8") as fp:
            data = json.load(fp)
    except FileNotFoundError as exc:
        _LOGGER.exception("%s not found at %s", EXPLANATIONS_FILE, json_path)
        raise ExplanationDataError(f"{EXPLANATIONS_FILE} missing") from exc
    except (OSError, ValueError) as exc:
        _LOGGER.exception("Failed to read %s: %s", json_path, exc)
        raise ExplanationDataError(f"Failed to read {json_path}") from exc

    try:
        table = ExplanationTable.from_dict(data)
    except ExplanationDataError:
        _LOGGER.error("Invalid explanation data in %s", json_path)
        raise
    _LOGGER.info(
        "Loaded %s version %s with %d species", os.path.basename(json_path), table.version, len(table.species_ids)
    )
    return table


@lru_cache(maxsize=1)
def default_explanation_table() -> ExplanationTable:
    return load_explanation_table()


def get_species_explanations(species_id: Any, table: Optional[ExplanationTable] = None) -> SpeciesExplanationData:
    return (table or default_explanation_table()).species(species_id)


def get_factor_explanation(
    species_id: Any, factor_key: str, table: Optional[ExplanationTable] = None
) -> Optional[FactorExplanation]:
    """Explanation for one factor, or None when the factor is unknown."""
    return (table or default_explanation_table()).factor(species_id, factor_key)


def score_tier(score: float) -> str:
    if score >= 8:
        return "excellent"
    if score >= 6:
        return "good"
    if score >= 4:
        return "fair"
    return "poor"


def get_recommendation_for_score(
    species_id: Any, factor_key: str, score: float, table: Optional[ExplanationTable] = None
) -> str:
    explanation = get_factor_explanation(species_id, factor_key, table)
    if explanation is None:
        return ""
    return getattr(explanation.recommendations, score_tier(score))


_SCORE_LABELS = {
    "excellent": ScoreLabel("Excellent", "emerald"),
    "good": ScoreLabel("Good", "blue"),
    "fair": ScoreLabel("Fair", "yellow"),
    "poor": ScoreLabel("Poor", "red"),
}


def get_score_label(score: float) -> ScoreLabel:
    return _SCORE_LABELS[score_tier(score)]
