import asyncio

import numpy as np
import pytest

from custom_components.coastal_fishing_forecast.tide_proxy import (
    CONSTITUENT_DEFAULT_RATIOS,
    CONSTITUENT_PERIOD_HOURS,
    CURRENT_KNOTS_PER_M_PER_HR,
    DEFAULT_MEAN_LEVEL_M,
    TideProxy,
)

REF = 946728000.0  # 2000-01-01T12:00Z
DAY = 86400.0
M2_SECONDS = CONSTITUENT_PERIOD_HOURS["M2"] * 3600.0


def _m2_only():
    coef = [0.0] * (2 * len(CONSTITUENT_PERIOD_HOURS))
    coef[0] = 1.0
    return coef


@pytest.fixture
def proxy(tmp_path):
    return TideProxy(None, 49.3, -123.1, data_dir=str(tmp_path))


def test_default_heights_stay_within_amplitude(proxy):
    epochs = np.arange(REF, REF + 3 * DAY, 600.0)
    heights = proxy.predict_heights(epochs)
    bound = sum(CONSTITUENT_DEFAULT_RATIOS.values())
    assert heights.min() >= DEFAULT_MEAN_LEVEL_M - bound - 1e-9
    assert heights.max() <= DEFAULT_MEAN_LEVEL_M + bound + 1e-9
    assert heights.max() - heights.min() > 1.0


def test_m2_only_model_peaks_at_anchor(tmp_path):
    proxy = TideProxy(None, 0.0, 0.0, coef_vec=_m2_only(), bias=0.0, data_dir=str(tmp_path))
    assert proxy.predict_heights([REF])[0] == pytest.approx(1.0)
    assert proxy.predict_rates([REF])[0] == pytest.approx(0.0, abs=1e-9)
    assert proxy.predict_heights([REF + M2_SECONDS / 2])[0] == pytest.approx(-1.0)

    events = proxy.find_extrema(REF + 3600.0, REF + M2_SECONDS + 3600.0)
    assert [e["type"] for e in events] == ["low", "high"]
    assert events[0]["time"] == pytest.approx(REF + M2_SECONDS / 2, abs=2.0)
    assert events[1]["height_m"] == pytest.approx(1.0, abs=1e-3)


def test_extrema_alternate(proxy):
    events = proxy.find_extrema(REF, REF + 2 * DAY)
    assert len(events) >= 4
    for a, b in zip(events, events[1:]):
        assert a["type"] != b["type"]
        assert a["time"] < b["time"]
        if a["type"] == "high":
            assert a["height_m"] > b["height_m"]
        else:
            assert a["height_m"] < b["height_m"]
    assert proxy.find_extrema(REF, REF) == []


def test_get_tide_for_timestamps_shapes(proxy):
    stamps = [REF + i * 900.0 for i in range(96)]
    tide = proxy.get_tide_for_timestamps(stamps)
    for key in ("tide_height_m", "tide_rate_m_per_hr", "tide_rising", "tidal_range_m", "current_speed_kt", "next_tide", "previous_tide"):
        assert len(tide[key]) == len(stamps), key
    for ts, rate, rising, speed, nxt, prev in zip(
        stamps, tide["tide_rate_m_per_hr"], tide["tide_rising"], tide["current_speed_kt"], tide["next_tide"], tide["previous_tide"]
    ):
        assert rising == (rate > 0)
        assert speed == pytest.approx(abs(rate) * CURRENT_KNOTS_PER_M_PER_HR, abs=1e-3)
        assert nxt["time"] > ts
        assert prev["time"] <= ts
    assert all(r is not None and r >= 0 for r in tide["tidal_range_m"])
    # repeated request inside the TTL is served from the cache
    assert proxy.get_tide_for_timestamps(stamps) is tide


def test_empty_timestamps(proxy):
    tide = proxy.get_tide_for_timestamps([])
    assert tide["tide_height_m"] == []
    astro = asyncio.run(proxy.async_get_astronomy([]))
    assert astro["days"] == []


def test_coefficient_validation(tmp_path, proxy):
    with pytest.raises(ValueError):
        TideProxy(None, 0.0, 0.0, coef_vec=[1.0, 0.0], data_dir=str(tmp_path))
    with pytest.raises(ValueError):
        proxy.set_coefficients([1.0])
    proxy.set_coefficients(_m2_only(), bias=3.0)
    heights = proxy.predict_heights(np.arange(REF, REF + DAY, 900.0))
    assert heights.max() == pytest.approx(4.0, abs=0.01)
    assert heights.min() == pytest.approx(2.0, abs=0.01)
