from custom_components.coastal_fishing_forecast.models import FactorResult, ScoreResult
from custom_components.coastal_fishing_forecast.recommendations import (
    generate_depth_advice,
    generate_overall_recommendation,
    generate_safety_warnings,
    generate_technique_advice,
    generate_timing_advice,
    get_quick_recommendation,
    get_score_interpretation,
    recommend,
)


def _factor(score, value=None, weight=0.1):
    return FactorResult(value=value, weight=weight, score=score)


def test_summary_bands_follow_overall_score():
    factors = {"light_time": 9.0, "tidal_current": 8.0, "sea_state": 3.0}
    assert generate_overall_recommendation(85, factors, "chinook").summary.startswith("Excellent conditions for Chinook Salmon")
    assert generate_overall_recommendation(70, factors, "chinook").summary.startswith("Good conditions")
    assert generate_overall_recommendation(55, factors, "chinook").summary.startswith("Fair conditions")
    assert generate_overall_recommendation(40, factors, "chinook").summary.startswith("Challenging conditions")
    assert generate_overall_recommendation(10, factors, "chinook").summary.startswith("Difficult conditions")


def test_top_and_limiting_factors():
    factors = {
        "light_time": _factor(9.0),
        "tidal_current": _factor(7.5),
        "pressure_trend": _factor(6.5),
        "sea_state": _factor(3.0),
        "precipitation": _factor(1.0),
    }
    rec = generate_overall_recommendation(62, factors, "chinook")
    assert [f.key for f in rec.top_factors] == ["light_time", "tidal_current", "pressure_trend"]
    assert [f.key for f in rec.limiting_factors] == ["precipitation", "sea_state"]
    assert rec.top_factors[0].factor == "Light/Time"
    assert rec.top_factors[0].insight == "Prime feeding window - fish are active"
    assert rec.limiting_factors[1].insight == "Rough conditions - fish deeper water"


def test_unknown_factor_gets_generic_insight():
    rec = generate_overall_recommendation(50, {"mystery": 9.0, "other": 1.0}, "chinook")
    assert rec.top_factors[0].factor == "Mystery"
    assert rec.top_factors[0].insight == "Excellent conditions"
    assert rec.limiting_factors[0].insight == "Below optimal - adjust approach"


def test_timing_advice():
    assert generate_timing_advice({"light_time": 9.0, "solunar": 8.0, "tidal_current": 8.0}) == (
        "You're in the prime light window, solunar period aligns well, current flow is optimal."
    )
    assert generate_timing_advice({"time_of_day": 3.0}) == "Wait for dawn/dusk for better activity."
    assert generate_timing_advice({}) == "Standard timing - be patient and persistent."


def test_depth_advice_bottom_fish_and_pelagic():
    assert "bottom" in generate_depth_advice({"light_time": 9.0}, "halibut")
    assert "bottom" in generate_depth_advice({}, "ling-cod")
    deep = generate_depth_advice({"water_temp": 3.0, "light_time": 2.0}, "coho")
    assert deep.startswith("Fish deeper to find warmer water and less light")
    assert generate_depth_advice({"water_temp": 9.0}, "coho").startswith("Fish can be at various depths")


def test_technique_advice_per_species():
    assert "cut-plug" in generate_technique_advice({}, "chinook", 75)
    assert "mooching" in generate_technique_advice({}, "king", 55)
    assert "buzz bombs" in generate_technique_advice({}, "coho", 80)
    assert "Large baits" in generate_technique_advice({}, "halibut", 60)
    assert generate_technique_advice({}, "rockfish", 20).startswith("Challenging conditions call for finesse")


def test_safety_warnings():
    warnings = generate_safety_warnings({"sea_state": 1.0, "wind": _factor(6.0, value=35.0), "precipitation": 2.0})
    assert "Rough seas - exercise caution and check marine forecast" in warnings
    assert "High winds - small craft advisory conditions" in warnings
    assert "Severe weather possible - monitor conditions closely" in warnings
    assert generate_safety_warnings({"sea_state": 8.0, "wind": 7.0}) == []


def test_quick_recommendation_is_first_sentence():
    assert get_quick_recommendation("pink", "tidal_phase", 9.0) == "Flood tide."
    assert get_quick_recommendation("pink", "no_such_factor", 9.0) == ""


def test_score_interpretation():
    assert get_score_interpretation(90, "crab") == "Excellent Dungeness Crab conditions"
    assert get_score_interpretation(66, "crab") == "Good Dungeness Crab conditions"
    assert get_score_interpretation(36, "mystery") == "Challenging for General"
    assert get_score_interpretation(5, "spot-prawn") == "Difficult Spot Prawn conditions"


def test_recommend_merges_result_warnings():
    result = ScoreResult(
        total=2.0,
        factors={"sea_state": _factor(1.0), "light_time": _factor(8.0)},
        is_safe=False,
        safety_warnings=("Wind 30 kt exceeds the safe limit", "Rough seas - exercise caution and check marine forecast"),
        is_in_season=True,
        algorithm_version="lingcod-v2.0",
        species_id="lingcod",
    )
    rec = recommend(result)
    assert rec.safety_warnings == (
        "Wind 30 kt exceeds the safe limit",
        "Rough seas - exercise caution and check marine forecast",
    )
    assert rec.summary.startswith("Difficult conditions for Lingcod")
    assert rec.as_dict()["depth_advice"].startswith("Fish the bottom")
