from datetime import datetime, timedelta, timezone

import pytest

from custom_components.coastal_fishing_forecast.data_formatter import DataFormatter

START = datetime(2025, 8, 8, 12, 0, tzinfo=timezone.utc)
TICKS = 16


def _times(n=TICKS, step_min=15):
    return [(START + timedelta(minutes=step_min * i)).strftime("%Y-%m-%dT%H:%M") for i in range(n)]


def _epochs(n=TICKS):
    return [(START + timedelta(minutes=15 * i)).timestamp() for i in range(n)]


def make_payload(n=TICKS, wind=8.0, with_marine=True, with_tide=True):
    payload = {
        "minutely_15": {
            "time": _times(n),
            "temperature_2m": [14.0] * n,
            "wind_speed_10m": [wind] * n,
            "wind_direction_10m": [270.0] * n,
            "precipitation": [0.0] * n,
            "cloud_cover": [40.0] * n,
            "pressure_msl": [1010.0 + 0.1 * i for i in range(n)],
            "visibility": [24000.0] * n,
        },
        "minutely_15_units": {"wind_speed_10m": "km/h"},
        "utc_offset_seconds": -25200,
        "astronomy": {
            "days": [{"sunrise": START.timestamp() + 3600.0, "sunset": START.timestamp() + 15 * 3600.0}],
            "moon_major": [START.timestamp() + 1800.0],
            "moon_minor": [START.timestamp() + 6 * 3600.0],
        },
    }
    if with_marine:
        hours = [(START + timedelta(hours=h)).strftime("%Y-%m-%dT%H:%M") for h in range(n // 4)]
        payload["marine"] = {
            "hourly": {
                "time": hours,
                "wave_height": [0.4] * len(hours),
                "swell_wave_period": [9.0] * len(hours),
                "sea_surface_temperature": [11.0] * len(hours),
            }
        }
    if with_tide:
        payload["tide"] = {
            "tide_height_m": [2.0 + 0.05 * i for i in range(n)],
            "tide_rising": [True] * n,
            "current_speed_kt": [1.0] * n,
            "tidal_range_m": [2.5] * n,
        }
    return payload


def test_validate_scores_every_species_on_every_tick():
    data = DataFormatter().validate(make_payload(), ["chinook", "King", "crab"], latitude=49.3, longitude=-123.1)

    assert data["timestamps"] == _epochs()
    assert set(data["species"]) == {"chinook", "crab"}
    chinook = data["species"]["chinook"]
    forecasts = chinook["per_timestamp_forecasts"]
    assert len(forecasts) == TICKS
    assert forecasts[0]["time"] == "2025-08-08T12:00:00Z"
    for entry in forecasts:
        assert 0.0 <= entry["total"] <= 10.0
        assert 0.0 <= entry["confidence_adjusted_total"] <= 10.0
    assert forecasts[0]["factors"]["light_time"]["description"] != "no_sun_times"
    assert data["confidence"]["overall"] == pytest.approx(0.60)


def test_best_window_and_current():
    data = DataFormatter().validate(make_payload(), ["lingcod"])
    block = data["species"]["lingcod"]
    window = block["best_window"]
    assert window["is_safe"]
    assert 0 <= window["score_100"] <= 100
    start = datetime.fromisoformat(window["start"].replace("Z", "+00:00"))
    end = datetime.fromisoformat(window["end"].replace("Z", "+00:00"))
    assert end - start == timedelta(hours=2)
    # without `now` the first tick is current
    assert block["current"]["timestamp"] == _epochs()[0]
    assert block["current"]["recommendation"]["summary"]


def test_now_drops_past_ticks():
    epochs = _epochs()
    now = epochs[4] + 100.0
    data = DataFormatter().validate(make_payload(), ["coho"], now=now)
    assert data["timestamps"] == epochs[4:]
    assert data["species"]["coho"]["current"]["timestamp"] == epochs[4]
    with pytest.raises(ValueError):
        DataFormatter().validate(make_payload(), ["coho"], now=epochs[-1] + 7200.0)


def test_rough_weather_marks_window_unsafe():
    data = DataFormatter().validate(make_payload(wind=80.0), ["halibut"])
    block = data["species"]["halibut"]
    assert not block["best_window"]["is_safe"]
    assert not block["current"]["is_safe"]
    assert block["current"]["recommendation"]["safety_warnings"]


def test_missing_marine_and_tide_lower_confidence():
    data = DataFormatter().validate(make_payload(with_marine=False, with_tide=False), ["rockfish"])
    assert data["confidence"]["marine"] == 0.0
    assert data["confidence"]["tide"] == 0.0
    assert data["confidence"]["overall"] == pytest.approx(0.32)
    assert data["species"]["rockfish"]["per_timestamp_forecasts"]


def test_catch_reports_from_observations():
    payload = make_payload()
    payload["observations"] = {"catch_reports": [{"days_ago": 1, "fish_count": 5}]}
    data = DataFormatter().validate(payload, ["chinook"])
    assert "catch_reports" in data["species"]["chinook"]["current"]["factors"]

    payload["observations"] = {"catch_reports": "lots"}
    with pytest.raises(ValueError):
        DataFormatter().validate(payload, ["chinook"])


@pytest.mark.parametrize(
    "mutate",
    [
        lambda p: p.pop("minutely_15"),
        lambda p: p["minutely_15"].update(time=[]),
        lambda p: p["minutely_15"].pop("temperature_2m"),
        lambda p: p["minutely_15"].update(wind_speed_10m=[5.0] * 3),
        lambda p: p["minutely_15"]["time"].reverse(),
        lambda p: p["tide"].update(current_speed_kt=[1.0]),
        lambda p: p["tide"].pop("tide_rising"),
        lambda p: p["marine"]["hourly"].update(wave_height=[0.5]),
        lambda p: p["minutely_15_units"].update(wind_speed_10m="furlongs/fortnight"),
        lambda p: p["astronomy"].update(moon_phase=[0.5]),
    ],
)
def test_validate_rejects_bad_payloads(mutate):
    payload = make_payload()
    mutate(payload)
    with pytest.raises(ValueError):
        DataFormatter().validate(payload, ["chinook"])


def test_validate_rejects_non_dict_and_no_species():
    with pytest.raises(ValueError):
        DataFormatter().validate([], ["chinook"])
    with pytest.raises(ValueError):
        DataFormatter().validate(make_payload(), [])


def test_convert_units():
    convert = DataFormatter._convert
    assert convert("wind_speed_10m", 10.0, "m/s", 900.0) == pytest.approx(36.0)
    assert convert("wind_gusts_10m", 10.0, "kn", 900.0) == pytest.approx(18.52, abs=0.01)
    assert convert("wind_speed_10m", 10.0, None, 900.0) == 10.0
    assert convert("visibility", 24000.0, "m", 900.0) == 24.0
    assert convert("visibility", 24.0, "km", 900.0) == 24.0
    assert convert("precipitation", 0.5, "mm", 900.0) == 2.0
    assert convert("temperature_2m", "nan", None, 900.0) is None


def test_marine_aligned_by_preceding_hour():
    epochs = _epochs()
    marine = {
        "hourly": {
            "time": ["2025-08-08T12:00", "2025-08-08T13:00"],
            "wave_height": [1.0, 2.0],
        }
    }
    aligned = DataFormatter()._align_marine(marine, epochs)
    waves = aligned["wave_height"]
    assert waves[3] == 1.0  # 12:45
    assert waves[5] == 2.0  # 13:15
    assert waves[8] is None  # 14:00, outside the marine span
    assert aligned["sea_surface_temperature"] == [None] * TICKS


def test_tide_snapshot_prefers_marine_current():
    marine = {
        "ocean_current_velocity": [3.6],
        "ocean_current_direction": [90.0],
        "sea_surface_temperature": [12.0],
    }
    tide = {"tide_height_m": [2.1], "tide_rising": [False], "current_speed_kt": [0.4]}
    snap = DataFormatter._tide_snapshot(tide, marine, 0)
    assert snap.current_speed == pytest.approx(1.94, abs=0.01)
    assert not snap.is_rising
    assert snap.current_height == 2.1
    assert snap.water_temperature == 12.0

    no_current = dict(marine, ocean_current_velocity=[None])
    assert DataFormatter._tide_snapshot(tide, no_current, 0).current_speed == 0.4
    assert DataFormatter._tide_snapshot(None, no_current, 0) is None


def test_moon_phase_from_astronomy_reaches_scoring():
    full = make_payload()
    full["astronomy"]["moon_phase"] = [0.5] * TICKS
    dark = make_payload()
    dark["astronomy"]["moon_phase"] = [0.0] * TICKS

    full_moon = DataFormatter().validate(full, ["crab"], version="v1")["species"]["crab"]["current"]["factors"]["moon_phase"]
    new_moon = DataFormatter().validate(dark, ["crab"], version="v1")["species"]["crab"]["current"]["factors"]["moon_phase"]
    assert full_moon["value"] == 100.0
    assert new_moon["value"] == 0.0
    assert new_moon["score"] > full_moon["score"]


def test_closed_fishery_scores_zero():
    payload = make_payload()
    payload["observations"] = {"fishery_open": False}
    current = DataFormatter().validate(payload, ["sockeye"])["species"]["sockeye"]["current"]
    assert current["total"] == 0.0
    assert not current["is_in_season"]
    assert "Sockeye fishery closed" in current["safety_warnings"]
