from datetime import datetime, timezone

import pytest

from custom_components.coastal_fishing_forecast import factor_scoring as fs
from custom_components.coastal_fishing_forecast.models import (
    AlgorithmContext,
    CatchReport,
    EnvironmentalSample,
    TideSnapshot,
)

HOUR = 3600.0


def _ts(year, month, day, hour=12, minute=0):
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc).timestamp()


def _sample(ts=None, **kwargs):
    return EnvironmentalSample(timestamp=ts if ts is not None else _ts(2025, 7, 15), **kwargs)


def test_missing_inputs_score_neutral():
    sample = _sample()
    ctx = AlgorithmContext()
    assert fs.score_tidal_current(sample, ctx, None).score == 5.0
    assert fs.score_light_time(sample, ctx).description == "no_sun_times"
    assert fs.score_pressure_trend(sample, ctx).description == "no_pressure_history"
    assert fs.score_water_temp(sample, ctx).score == 5.0
    assert fs.score_visibility(sample, ctx).description == "no_visibility_data"


def test_score_banded_rejects_unknown_source():
    with pytest.raises(ValueError):
        fs.score_banded(_sample(), AlgorithmContext(), source="tea_leaves", bands=())


def test_score_banded_unsafe_above():
    r = fs.score_banded(_sample(wind_speed=50.0), AlgorithmContext(), source="wind_knots", bands=((0, 20, 10.0),), unsafe_above=20.0)
    assert r.score == 0.0
    assert not r.is_safe
    assert r.warnings


def test_water_temp_monotonic_toward_band():
    ctx = AlgorithmContext()
    scores = [fs.score_water_temp(_sample(temperature=t), ctx, pref_min=8, pref_max=14, tolerance=4).score for t in (5, 6, 7, 8)]
    assert all(a < b for a, b in zip(scores, scores[1:]))
    assert scores[-1] == 10.0
    # 0 is the floor beyond the tolerance span
    assert fs.score_water_temp(_sample(temperature=3.0), ctx, pref_min=8, pref_max=14, tolerance=4).score == 0.0
    assert fs.score_water_temp(_sample(temperature=20.0), ctx).score == 0.0


def test_water_temp_prefers_sea_surface_from_tide():
    tide = TideSnapshot(current_speed=1.0, is_rising=True, water_temperature=11.0)
    r = fs.score_water_temp(_sample(temperature=25.0), AlgorithmContext(), tide)
    assert r.value == 11.0
    assert r.score == 10.0


def test_seasonality_monotonic_with_distance_from_peak():
    ctx = AlgorithmContext()
    # peak at day 196 (mid July)
    days = [(2025, 7, 15), (2025, 8, 15), (2025, 9, 15), (2025, 11, 15)]
    scores = [
        fs.score_seasonality(_sample(_ts(*d)), ctx, center_day=196, spread_days=30).score
        for d in days
    ]
    assert scores == sorted(scores, reverse=True)
    assert scores[0] == pytest.approx(10.0, abs=0.2)


def test_seasonality_odd_year_gate():
    ctx = AlgorithmContext()
    odd = fs.score_seasonality(_sample(_ts(2025, 8, 15)), ctx, center_day=227, spread_days=20, odd_years_only=True)
    even = fs.score_seasonality(_sample(_ts(2024, 8, 15)), ctx, center_day=227, spread_days=20, odd_years_only=True)
    assert odd.score > 8.0
    assert even.score == 0.0
    assert even.description == "off_year"


def test_seasonality_fishery_open_override():
    closed = AlgorithmContext(fishery_open=False)
    r = fs.score_seasonality(_sample(_ts(2025, 7, 15)), closed, center_day=196, spread_days=30)
    assert r.score == 0.0
    assert r.description == "closed_season"


def test_intra_season_decays_after_opening():
    ctx = AlgorithmContext()
    opening = fs.score_intra_season(_sample(_ts(2025, 5, 10)), ctx)
    later = fs.score_intra_season(_sample(_ts(2025, 6, 20)), ctx)
    closed = fs.score_intra_season(_sample(_ts(2025, 8, 1)), ctx)
    assert opening.score > later.score >= 3.5
    assert closed.score == 0.0


def test_light_time_twilight_and_midday():
    sunrise = _ts(2025, 7, 15, 5, 0)
    sunset = _ts(2025, 7, 15, 21, 0)
    ctx = AlgorithmContext(sunrise=sunrise, sunset=sunset)
    dawn = fs.score_light_time(_sample(sunrise + 0.5 * HOUR), ctx)
    noon = fs.score_light_time(_sample(_ts(2025, 7, 15, 13)), ctx)
    night = fs.score_light_time(_sample(_ts(2025, 7, 16, 1)), ctx)
    assert dawn.score == 10.0
    assert dawn.description == "dawn"
    assert noon.description == "midday"
    assert noon.score == pytest.approx(4.0, abs=0.01)
    assert night.description == "night"
    assert night.score < noon.score


def test_pressure_trend_rising_and_falling():
    ts = _ts(2025, 7, 15)
    rising = AlgorithmContext(pressure_history=tuple(1008.0 + 0.2 * i for i in range(12)))
    falling = AlgorithmContext(pressure_history=tuple(1020.0 - 0.4 * i for i in range(12)))
    r = fs.score_pressure_trend(_sample(ts, pressure=1010.6), rising)
    f = fs.score_pressure_trend(_sample(ts, pressure=1015.2), falling)
    assert r.description in ("rising", "rising_fast")
    assert r.score >= 9.0
    assert f.description == "falling_fast"
    assert f.score == 2.0


def test_pressure_trend_short_history_is_neutral():
    ctx = AlgorithmContext(pressure_history=(1010.0, 1010.5))
    assert fs.score_pressure_trend(_sample(pressure=1011.0), ctx).score == 5.0


def test_moon_phase_modes():
    new_moon = _ts(2024, 1, 11, 12)
    full_moon = _ts(2024, 1, 25, 18)
    first_quarter = _ts(2024, 1, 18, 4)
    ctx = AlgorithmContext()
    assert fs.score_moon_phase(_sample(new_moon), ctx).score == 10.0
    assert fs.score_moon_phase(_sample(full_moon), ctx).score == 10.0
    assert fs.score_moon_phase(_sample(first_quarter), ctx).score == 5.0
    assert fs.score_moon_phase(_sample(first_quarter), ctx, mode="quarter").score == 10.0
    assert fs.score_moon_phase(_sample(new_moon), ctx, mode="dark").score > 9.5
    with pytest.raises(ValueError):
        fs.score_moon_phase(_sample(new_moon), ctx, mode="blue")


def test_moon_phase_prefers_supplied_phase():
    new_moon = _ts(2024, 1, 11, 12)
    assert fs.score_moon_phase(_sample(new_moon), AlgorithmContext(), mode="quarter").score == 1.0
    quarter = AlgorithmContext(moon_phase=0.25)
    assert fs.score_moon_phase(_sample(new_moon), quarter, mode="quarter").score == 10.0
    full = fs.score_moon_phase(_sample(new_moon), AlgorithmContext(moon_phase=0.5), mode="dark")
    assert full.value == 100.0
    assert full.score == 0.0


def test_solunar_uses_supplied_events():
    ts = _ts(2025, 7, 15)
    ctx = AlgorithmContext(solunar_major=(ts + 20 * 60,), solunar_minor=(ts + 5 * HOUR,))
    assert fs.score_solunar(_sample(ts), ctx).description == "major_period"
    ctx = AlgorithmContext(solunar_major=(ts + 5 * HOUR,), solunar_minor=(ts - 10 * 60,))
    assert fs.score_solunar(_sample(ts), ctx).score == 7.0
    ctx = AlgorithmContext(solunar_major=(ts + 5 * HOUR,), solunar_minor=(ts + 4 * HOUR,))
    assert fs.score_solunar(_sample(ts), ctx).description == "between_periods"


def test_catch_reports_omitted_without_data():
    assert fs.score_catch_reports(_sample(), AlgorithmContext()) is None
    empty = fs.score_catch_reports(_sample(), AlgorithmContext(catch_reports=()))
    assert empty.score == 2.0
    hot = fs.score_catch_reports(
        _sample(), AlgorithmContext(catch_reports=(CatchReport(days_ago=0.5, fish_count=6), CatchReport(days_ago=1, fish_count=4)))
    )
    assert hot.description == "hot_bite"


def test_tidal_current_band_and_rising_bonus():
    flood = TideSnapshot(current_speed=1.2, is_rising=True)
    ebb = TideSnapshot(current_speed=1.2, is_rising=False)
    slack = TideSnapshot(current_speed=0.0, is_rising=False)
    ctx = AlgorithmContext()
    assert fs.score_tidal_current(_sample(), ctx, flood).score == 10.0
    assert fs.score_tidal_current(_sample(), ctx, ebb, rising_bonus=0.0).score == 10.0
    assert fs.score_tidal_current(_sample(), ctx, slack).description == "slack"


def test_slack_tide_decays_with_speed():
    ctx = AlgorithmContext()
    slow = fs.score_slack_tide(_sample(), ctx, TideSnapshot(current_speed=0.1, is_rising=True))
    fast = fs.score_slack_tide(_sample(), ctx, TideSnapshot(current_speed=3.0, is_rising=True))
    assert slow.score > fast.score
    assert fast.score >= 0.5


def test_sea_state_unsafe_caps_factor():
    # 60 km/h is about 32 kt, above the 25 kt ceiling
    r = fs.score_sea_state(_sample(wind_speed=60.0, wave_height=1.0), AlgorithmContext())
    assert not r.is_safe
    assert r.score <= 1.0
    calm = fs.score_sea_state(_sample(wind_speed=5.0, wave_height=0.2), AlgorithmContext())
    assert calm.is_safe
    assert calm.description == "calm"


def test_precipitation_bands():
    ctx = AlgorithmContext()
    assert fs.score_precipitation(_sample(precipitation=0.0), ctx).description == "clear"
    assert fs.score_precipitation(_sample(precipitation=1.0), ctx).score == 10.0
    assert fs.score_precipitation(_sample(precipitation=8.0), ctx).description == "heavy"
    assert fs.score_precipitation(_sample(precipitation=20.0), ctx).score == 2.0


def test_visibility_bands_in_km():
    ctx = AlgorithmContext()
    assert fs.score_visibility(_sample(visibility=24.0), ctx).description == "clear"
    assert fs.score_visibility(_sample(visibility=3.0), ctx).description == "haze"
    assert fs.score_visibility(_sample(visibility=0.4), ctx).score == 1.0


def test_bait_presence_levels():
    assert fs.score_bait_presence(_sample(), AlgorithmContext(bait_presence="heavy")).score == 9.0
    assert fs.score_bait_presence(_sample(), AlgorithmContext(bait_presence="lots")).score == 5.0


def test_scent_hydraulics_factor_uses_soak_window():
    ctx = AlgorithmContext(current_speed_window=(1.0, 1.1, 2.6))
    r = fs.score_scent_hydraulics(_sample(), ctx, TideSnapshot(current_speed=1.0, is_rising=True))
    assert r.description == "trap_roll_risk"
    assert r.warnings
    no_data = fs.score_scent_hydraulics(_sample(), AlgorithmContext(), None)
    assert no_data.description == "no_current_data"
    assert no_data.score == 5.0


def test_retrieval_safety_factor():
    unsafe = fs.score_retrieval_safety(_sample(wind_speed=10.0, wave_height=0.3), AlgorithmContext(), TideSnapshot(current_speed=3.5, is_rising=True))
    assert not unsafe.is_safe
    assert unsafe.description == "unsafe"


def test_tidal_dynamics_ebb_bonus_only_in_feeding_band():
    ctx = AlgorithmContext()
    ebb = fs.score_tidal_dynamics(_sample(), ctx, TideSnapshot(current_speed=0.8, is_rising=False, tidal_range=3.0))
    flood = fs.score_tidal_dynamics(_sample(), ctx, TideSnapshot(current_speed=0.8, is_rising=True, tidal_range=3.0))
    assert ebb.score == pytest.approx(5.8675, abs=1e-3)
    assert flood.score == pytest.approx(4.8675, abs=1e-3)
    assert ebb.description == "ebb_feeding"
    assert flood.description == "moving_water"

    # below 0.3 kt the ebb earns no bonus
    slow_ebb = fs.score_tidal_dynamics(_sample(), ctx, TideSnapshot(current_speed=0.2, is_rising=False, tidal_range=1.5))
    slow_flood = fs.score_tidal_dynamics(_sample(), ctx, TideSnapshot(current_speed=0.2, is_rising=True, tidal_range=1.5))
    assert slow_ebb.score == pytest.approx(6.2645, abs=1e-3)
    assert slow_ebb.score == slow_flood.score
    assert slow_ebb.description == "slack"


def test_tidal_movement_ebb_bonus_at_any_speed():
    ctx = AlgorithmContext()
    ebb = fs.score_tidal_movement(_sample(), ctx, TideSnapshot(current_speed=0.2, is_rising=False, tidal_range=1.0))
    flood = fs.score_tidal_movement(_sample(), ctx, TideSnapshot(current_speed=0.2, is_rising=True, tidal_range=1.0))
    assert ebb.score == pytest.approx(9.5977, abs=1e-3)
    assert flood.score == pytest.approx(7.7977, abs=1e-3)
    assert ebb.description == "ebb"

    fast_ebb = fs.score_tidal_movement(_sample(), ctx, TideSnapshot(current_speed=2.5, is_rising=False, tidal_range=1.8))
    assert fast_ebb.score == pytest.approx(7.2468, abs=1e-3)
    assert fs.score_tidal_movement(_sample(), ctx, None).score == 5.0
