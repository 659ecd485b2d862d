import json

import pytest

from custom_components.coastal_fishing_forecast.explanations import (
    ExplanationDataError,
    ExplanationTable,
    default_explanation_table,
    get_factor_explanation,
    get_recommendation_for_score,
    get_score_label,
    get_species_explanations,
    load_explanation_table,
    score_tier,
)
from custom_components.coastal_fishing_forecast.species_algorithms import Species


def _minimal_factor(label="Light"):
    return {
        "label": label,
        "why_it_matters": "why",
        "how_calculated": "how",
        "recommendations": {"excellent": "Go now. Really.", "good": "Good.", "fair": "Fair.", "poor": "Stay home."},
    }


def _minimal_table(**species_overrides):
    species = {
        "default": {
            "display_name": "General",
            "overview": "general",
            "factor_keys": ["light_time"],
        }
    }
    species.update(species_overrides)
    return {
        "version": "test",
        "base_factors": {"light_time": _minimal_factor()},
        "factor_aliases": {"time_of_day": "light_time"},
        "species": species,
    }


def test_packaged_table_loads_every_species():
    table = default_explanation_table()
    assert "default" in table.species_ids
    for species in Species:
        assert species.value in table.species_ids


def test_unknown_species_falls_back_to_default():
    data = get_species_explanations("nonexistent-species")
    assert data.species_id == "default"
    assert data.display_name == "General"


def test_species_lookup_normalizes_and_resolves_aliases():
    assert get_species_explanations("  Chinook ").species_id == "chinook"
    assert get_species_explanations("king_salmon").species_id == "chinook"
    assert get_species_explanations("generic").species_id == "default"


def test_weight_distribution_sums_to_hundred():
    table = default_explanation_table()
    for sid in table.species_ids:
        shares = table.species(sid).weight_distribution
        assert sum(s.weight for s in shares) == pytest.approx(100.0), sid


def test_factor_override_replaces_base_text():
    pink = get_factor_explanation("pink", "tidal_phase")
    sockeye = get_factor_explanation("sockeye", "tidal_phase")
    assert pink is not None and sockeye is not None
    assert pink.label == "Tidal Phase"
    assert pink.how_calculated != sockeye.how_calculated


def test_factor_alias_and_unknown_factor():
    via_alias = get_factor_explanation("rockfish", "time_of_day")
    assert via_alias is not None
    assert get_factor_explanation("chinook", "underwater_basket_weaving") is None
    assert get_recommendation_for_score("chinook", "underwater_basket_weaving", 9.0) == ""


def test_recommendation_tiers():
    table = ExplanationTable.from_dict(_minimal_table())
    assert get_recommendation_for_score("default", "light_time", 9.0, table) == "Go now. Really."
    assert get_recommendation_for_score("default", "time_of_day", 6.0, table) == "Good."
    assert get_recommendation_for_score("default", "light_time", 4.0, table) == "Fair."
    assert get_recommendation_for_score("default", "light_time", 1.0, table) == "Stay home."


def test_score_tier_and_labels():
    assert score_tier(8.0) == "excellent"
    assert score_tier(7.99) == "good"
    assert score_tier(4.0) == "fair"
    assert score_tier(3.9) == "poor"
    assert get_score_label(9.1).color == "emerald"
    assert get_score_label(2.0).label == "Poor"


def test_from_dict_requires_default_entry():
    data = _minimal_table()
    data["species"] = {"chinook": dict(data["species"]["default"])}
    with pytest.raises(ExplanationDataError):
        ExplanationTable.from_dict(data)


def test_from_dict_rejects_unknown_factor_keys():
    data = _minimal_table(chinook={"display_name": "Chinook", "overview": "o", "factor_keys": ["mystery"]})
    with pytest.raises(ExplanationDataError):
        ExplanationTable.from_dict(data)


def test_from_dict_rejects_missing_recommendation_tier():
    data = _minimal_table()
    del data["base_factors"]["light_time"]["recommendations"]["poor"]
    with pytest.raises((ExplanationDataError, KeyError)):
        ExplanationTable.from_dict(data)


def test_load_explanation_table_from_path(tmp_path):
    path = tmp_path / "explanations.json"
    path.write_text(json.dumps(_minimal_table()), encoding="utf-8")
    table = load_explanation_table(str(path))
    assert table.version == "test"
    assert table.species("anything").display_name == "General"


def test_load_explanation_table_missing_and_malformed(tmp_path):
    with pytest.raises(ExplanationDataError):
        load_explanation_table(str(tmp_path / "missing.json"))
    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    with pytest.raises(ExplanationDataError):
        load_explanation_table(str(bad))
