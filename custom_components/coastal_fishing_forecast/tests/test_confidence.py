import pytest

from custom_components.coastal_fishing_forecast.confidence import (
    TIDE_SOURCE_MODEL,
    TIDE_SOURCE_STATION,
    apply_confidence_to_score,
    compute_confidence,
    tide_confidence_by_distance,
)


def test_tide_confidence_steps():
    assert tide_confidence_by_distance(3.0) == 0.95
    assert tide_confidence_by_distance(10.0) == 0.85
    assert tide_confidence_by_distance(12.0) == 0.70
    assert tide_confidence_by_distance(25.0) == 0.30
    assert tide_confidence_by_distance(None) == 0.0
    assert tide_confidence_by_distance(None, TIDE_SOURCE_MODEL) == 0.30


def test_compute_confidence_all_sources():
    conf = compute_confidence("open_meteo", "open_meteo_marine", TIDE_SOURCE_STATION, tide_station_distance_km=3.0)
    assert conf.weather == 0.80
    assert conf.marine == 0.80
    assert conf.tide == 0.95
    assert conf.overall == pytest.approx(0.86)


def test_compute_confidence_missing_sources():
    model = compute_confidence("open_meteo", "open_meteo_marine", TIDE_SOURCE_MODEL)
    assert model.overall == pytest.approx(0.60)
    no_tide = compute_confidence("open_meteo", None, None)
    assert no_tide.marine == 0.0
    assert no_tide.overall == pytest.approx(0.32)
    assert compute_confidence(None, None, None).overall == 0.0
    assert compute_confidence("open_meteo", None, None, cross_validated=True).weather == 0.90


def test_apply_confidence_pulls_toward_neutral():
    assert apply_confidence_to_score(9.0, 1.0) == 9.0
    assert apply_confidence_to_score(9.0, 0.5) == 7.0
    assert apply_confidence_to_score(1.0, 0.0) == 5.0
    assert apply_confidence_to_score(20.0, 1.0) == 10.0


def test_as_dict():
    d = compute_confidence("open_meteo", None, TIDE_SOURCE_STATION, 8.0, "Point Atkinson").as_dict()
    assert d["tide_station_name"] == "Point Atkinson"
    assert d["tide"] == 0.85
