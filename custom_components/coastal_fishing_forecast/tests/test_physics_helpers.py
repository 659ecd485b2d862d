import pytest

from custom_components.coastal_fishing_forecast.physics_helpers import (
    ceiling_decay,
    freshet_status,
    gaussian_band,
    molt_quality_index,
    nocturnal_flood_bonus,
    retrieval_safety,
    scent_hydraulics,
    swell_quality,
    thermal_blockade,
    tidal_treadmill,
    wind_tide_interaction,
)

HOUR = 3600.0


def test_gaussian_band_peak_and_decay():
    assert gaussian_band(1.0, 0.8, 1.5, 0.35) == 10.0
    assert gaussian_band(0.5, 0.8, 1.5, 0.35) < 10.0
    assert gaussian_band(0.0, 0.8, 1.5, 0.35) < gaussian_band(0.5, 0.8, 1.5, 0.35)


def test_scent_hydraulics_optimal_band():
    r = scent_hydraulics([1.0, 1.2, 0.9, 1.1])
    assert r.score == 10.0
    assert not r.trap_roll_risk
    assert "Optimal" in r.recommendation


def test_scent_hydraulics_trap_roll_penalty():
    calm = scent_hydraulics([1.0, 1.2, 1.4])
    rolling = scent_hydraulics([1.0, 1.2, 2.5])
    assert rolling.trap_roll_risk
    assert rolling.max_current_speed == 2.5
    assert rolling.score < calm.score * 0.5
    assert "Trap roll" in rolling.recommendation


def test_scent_hydraulics_no_data_is_neutral():
    r = scent_hydraulics([])
    assert r.score == 5.0
    assert r.average_current_speed == 0.0


def test_molt_quality_windows():
    post = molt_quality_index(15.0)
    molting = molt_quality_index(11.5)
    cold = molt_quality_index(7.0)
    assert post.quality == "post_molt"
    assert molting.quality == "molting"
    assert cold.quality == "pre_molt"
    assert post.score > cold.score > molting.score
    assert post.score == pytest.approx(10.0, abs=0.5)
    assert molting.score == pytest.approx(2.0, abs=0.5)


def test_nocturnal_flood_bonus_full_night():
    sunset = 0.0
    sunrise = 10 * HOUR
    r = nocturnal_flood_bonus(1 * HOUR, 6.0, sunset, sunrise, is_flood=True)
    assert r.night_fraction == 1.0
    assert r.multiplier == pytest.approx(1.3)
    assert "Golden window" in r.advice


def test_nocturnal_flood_bonus_ebb_and_no_soak():
    assert nocturnal_flood_bonus(HOUR, 6.0, 0.0, 10 * HOUR, is_flood=False).multiplier == 1.0
    assert nocturnal_flood_bonus(HOUR, None, 0.0, 10 * HOUR, is_flood=True).multiplier == 1.0
    assert nocturnal_flood_bonus(HOUR, 6.0, None, None, is_flood=True).multiplier == 1.0


def test_nocturnal_flood_bonus_partial_overlap():
    # soak 8h-14h, night 12h-22h
    r = nocturnal_flood_bonus(8 * HOUR, 6.0, 12 * HOUR, 22 * HOUR, is_flood=True)
    assert 0.0 < r.night_fraction < 1.0
    assert 1.0 < r.multiplier < 1.3


def test_ceiling_decay():
    assert ceiling_decay(0.0, 20.0) == 1.0
    assert ceiling_decay(20.0, 20.0) == 0.0
    assert ceiling_decay(30.0, 20.0) == 0.0


def test_retrieval_safety_calm_slack():
    r = retrieval_safety(5.0, 0.2, 0.3)
    assert r.is_safe
    assert r.is_slack_tide
    assert r.score > 9.0
    assert any("Slack tide" in s for s in r.recommendations)


def test_retrieval_safety_unsafe_each_ceiling():
    # 45 km/h is about 24 kt
    assert not retrieval_safety(45.0, 0.2, 0.3).is_safe
    assert not retrieval_safety(5.0, 3.5, 0.3).is_safe
    rough = retrieval_safety(5.0, 0.2, 2.5)
    assert not rough.is_safe
    assert rough.score == 0.0
    assert rough.warnings


def test_wind_tide_interaction_opposing_and_aligned():
    opposing = wind_tide_interaction(0.0, 22.0, 180.0, 2.0)
    assert opposing.is_opposing
    assert opposing.severity == "dangerous"
    aligned = wind_tide_interaction(90.0, 10.0, 100.0, 1.0)
    assert not aligned.is_opposing
    assert aligned.score == 10.0


def test_swell_quality_ratio_bands():
    assert swell_quality(0.2, 5.0).comfort == "flat"
    assert swell_quality(1.0, 10.0).score == 10.0
    steep = swell_quality(1.0, 2.5)
    assert steep.comfort == "dangerous"
    assert steep.warning
    assert swell_quality(3.5, 14.0).score <= 3.0


def test_freshet_status():
    assert freshet_status(50.0, 10.0, 10).is_blown_out
    assert freshet_status(0.0, 30.0, 5).cause == "snowmelt"
    assert freshet_status(0.0, 30.0, 10).severity == "clear"
    assert freshet_status(20.0, None, 10).severity == "stained"


def test_thermal_blockade_bands():
    assert thermal_blockade(20.0).is_stacking
    assert thermal_blockade(20.0).score == 10.0
    assert thermal_blockade(12.0).river_status == "highway"


def test_tidal_treadmill_prefers_strong_ebb():
    assert tidal_treadmill(True, 2.0).score == 10.0
    assert tidal_treadmill(False, 2.5).score == 3.0
    assert tidal_treadmill(True, 2.0).score > tidal_treadmill(False, 0.5).score
