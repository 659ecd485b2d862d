"""Harmonic tide proxy and Skyfield astronomy for one location.

Tide heights come from an in-memory harmonic model (numpy); there is no
station data. Sun and moon events come from Skyfield with the de421
ephemeris, loaded lazily in the executor.
"""
from __future__ import annotations

import asyncio
import logging
import math
import os
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import skyfield
from skyfield import almanac as _almanac
from skyfield.api import Loader, wgs84

from .const import DOMAIN
from .unit_helpers import to_epoch_seconds

_LOGGER = logging.getLogger(__name__)

_DEFAULT_TTL = 15 * 60  # seconds
_TIDE_HALF_DAY_HOURS = 12.42
_SECONDS_PER_HOUR = 3600.0
# 2000-01-01T12:00Z, phase reference for the constituent arguments
_REFERENCE_EPOCH = 946728000.0

EPS_ROOT = 1e-12
BISECT_TOL_SEC = 1.0
GRID_SECONDS_DEFAULT = 300  # 5 minutes
# extrema search reaches this far beyond the requested timestamps
EXTREMA_MARGIN_SECONDS = 14 * 3600

# tidal stream proxy: knots of current per m/hr of height change
CURRENT_KNOTS_PER_M_PER_HR = 1.5
DEFAULT_MEAN_LEVEL_M = 2.0

CONSTITUENT_PERIOD_HOURS: Dict[str, float] = {
    "M2": 12.4206,
    "S2": 12.0,
    "N2": 12.6583,
    "K1": 23.9345,
    "O1": 25.8193,
    "P1": 24.0659,
    "Q1": 26.8683,
    "M4": 12.4206 / 2.0,
    "MS4": 1.0 / (1.0 / 12.4206 + 1.0 / 12.0),
    "M6": 12.4206 / 3.0,
}

# relative amplitudes (not station-specific); M4/MS4/M6 are shallow-water terms
CONSTITUENT_DEFAULT_RATIOS: Dict[str, float] = {
    "M2": 1.00,
    "S2": 0.25,
    "N2": 0.18,
    "K1": 0.45,
    "O1": 0.25,
    "P1": 0.12,
    "Q1": 0.08,
    "M4": 0.06,
    "MS4": 0.03,
    "M6": 0.02,
}


def _find_root_bisection(f, a: float, b: float, maxiter: int = 60, tol: float = BISECT_TOL_SEC) -> Optional[float]:
    fa = f(a)
    fb = f(b)
    if abs(fa) < EPS_ROOT:
        return a
    if abs(fb) < EPS_ROOT:
        return b
    if fa * fb > 0:
        return None
    lo, hi = a, b
    for _ in range(maxiter):
        mid = 0.5 * (lo + hi)
        fm = f(mid)
        if abs(fm) < EPS_ROOT or (hi - lo) < tol:
            return mid
        if fa * fm <= 0:
            hi = mid
        else:
            lo, fa = mid, fm
    return 0.5 * (lo + hi)


def _event(epoch: float, height: float, is_high: bool) -> Dict[str, Any]:
    return {"time": float(epoch), "height_m": round(float(height), 3), "type": "high" if is_high else "low"}


class TideProxy:
    """
    Harmonic tide model plus sun/moon events for a fixed location.

    Public methods used by the integration:
    - predict_heights(epochs) / predict_rates(epochs)
    - find_extrema(start, end)
    - get_tide_for_timestamps(timestamps)
    - async_get_astronomy(timestamps)
    - set_coefficients(coef_vec, bias=None)
    """

    def __init__(
        self,
        hass,
        latitude: float,
        longitude: float,
        ttl: int = _DEFAULT_TTL,
        *,
        coef_vec: Optional[Sequence[float]] = None,
        default_m2_amp: float = 1.0,
        bias: float = DEFAULT_MEAN_LEVEL_M,
        data_dir: Optional[str] = None,
    ) -> None:
        self.hass = hass
        self.latitude = float(latitude)
        self.longitude = float(longitude)
        self._ttl = int(ttl)
        self._cache: Optional[Dict[str, Any]] = None
        self._last_calc: Optional[float] = None

        self._constituents = list(CONSTITUENT_PERIOD_HOURS)
        self._omegas = np.array(
            [2.0 * math.pi / (CONSTITUENT_PERIOD_HOURS[c] * _SECONDS_PER_HOUR) for c in self._constituents],
            dtype=float,
        )
        self._bias = float(bias)
        # high water lags the reference meridian by longitude
        self._t_anchor = _REFERENCE_EPOCH - (self.longitude / 360.0) * _TIDE_HALF_DAY_HOURS * _SECONDS_PER_HOUR

        if coef_vec is not None:
            arr = np.asarray(coef_vec, dtype=float)
            if arr.size != 2 * len(self._constituents):
                raise ValueError(
                    f"coef_vec length {arr.size} != expected {2 * len(self._constituents)} (strict)"
                )
            self._coef_vec = arr.copy()
        else:
            self._coef_vec = self._build_default_coef_vec(default_m2_amp)

        if data_dir is None:
            data_dir = hass.config.path("custom_components", DOMAIN, "data")
        os.makedirs(data_dir, exist_ok=True)
        self._loader = Loader(data_dir)
        self._sf_ts = None
        self._sf_eph = None
        self._load_lock = asyncio.Lock()

        _LOGGER.debug(
            "TideProxy initialized lat=%s lon=%s coef_len=%d bias=%.3f",
            self.latitude,
            self.longitude,
            self._coef_vec.size,
            self._bias,
        )

    def _build_default_coef_vec(self, m2_amp: float) -> np.ndarray:
        vals: List[float] = []
        for c in self._constituents:
            vals.extend([float(m2_amp * CONSTITUENT_DEFAULT_RATIOS.get(c, 0.0)), 0.0])
        return np.asarray(vals, dtype=float)

    def set_coefficients(self, coef_vec: Sequence[float], bias: Optional[float] = None) -> None:
        arr = np.asarray(coef_vec, dtype=float)
        if arr.size != 2 * len(self._constituents):
            raise ValueError(f"coef_vec length {arr.size} != expected {2 * len(self._constituents)} (strict)")
        self._coef_vec = arr.copy()
        if bias is not None:
            self._bias = float(bias)
        self._cache = None
        _LOGGER.info("set_coefficients applied (len=%d) bias=%.3f", arr.size, self._bias)

    # ---- harmonic model ----

    def _phase_args(self, epochs: np.ndarray) -> np.ndarray:
        t_rel = np.asarray(epochs, dtype=float).reshape(-1, 1) - self._t_anchor
        return t_rel * self._omegas.reshape(1, -1)

    def predict_heights(self, epochs: Sequence[float]) -> np.ndarray:
        """Water level in metres above datum at each epoch."""
        args = self._phase_args(np.asarray(epochs, dtype=float))
        a = self._coef_vec[0::2]
        b = self._coef_vec[1::2]
        return self._bias + (np.cos(args) * a + np.sin(args) * b).sum(axis=1)

    def predict_rates(self, epochs: Sequence[float]) -> np.ndarray:
        """Rate of change in m/hr at each epoch (analytic derivative)."""
        args = self._phase_args(np.asarray(epochs, dtype=float))
        a = self._coef_vec[0::2] * self._omegas
        b = self._coef_vec[1::2] * self._omegas
        per_second = (-np.sin(args) * a + np.cos(args) * b).sum(axis=1)
        return per_second * _SECONDS_PER_HOUR

    def _rate_at(self, epoch: float) -> float:
        return float(self.predict_rates([epoch])[0])

    def find_extrema(self, start: float, end: float, step: float = GRID_SECONDS_DEFAULT) -> List[Dict[str, Any]]:
        """High and low waters between start and end, in time order."""
        if end <= start:
            return []
        grid = np.arange(float(start), float(end) + 0.5 * step, step, dtype=float)
        rates = self.predict_rates(grid)
        events: List[Dict[str, Any]] = []
        for idx in np.where(rates[:-1] * rates[1:] < 0)[0]:
            root = _find_root_bisection(self._rate_at, float(grid[idx]), float(grid[idx + 1]))
            if root is None:
                continue
            is_high = rates[idx] > 0
            events.append(_event(root, float(self.predict_heights([root])[0]), is_high))
        return events

    def get_tide_for_timestamps(self, timestamps: Sequence[Any]) -> Dict[str, Any]:
        """Aligned tide arrays for the given timestamps.

        Keys: timestamps (epoch seconds), tide_height_m, tide_rate_m_per_hr,
        tide_rising, tidal_range_m, current_speed_kt, next_tide, previous_tide
        and the full extrema list.
        """
        epochs = [to_epoch_seconds(t) for t in timestamps]
        if not epochs:
            return {
                "timestamps": [],
                "tide_height_m": [],
                "tide_rate_m_per_hr": [],
                "tide_rising": [],
                "tidal_range_m": [],
                "current_speed_kt": [],
                "next_tide": [],
                "previous_tide": [],
                "extrema": [],
                "source": "harmonic_model",
            }

        now = time.time()
        if self._cache is not None and self._last_calc is not None and now - self._last_calc < self._ttl:
            if self._cache.get("timestamps") == epochs:
                return self._cache

        heights = self.predict_heights(epochs)
        rates = self.predict_rates(epochs)
        extrema = self.find_extrema(min(epochs) - EXTREMA_MARGIN_SECONDS, max(epochs) + EXTREMA_MARGIN_SECONDS)
        times = [e["time"] for e in extrema]

        next_tide: List[Optional[Dict[str, Any]]] = []
        previous_tide: List[Optional[Dict[str, Any]]] = []
        ranges: List[Optional[float]] = []
        for epoch in epochs:
            pos = int(np.searchsorted(times, epoch, side="right"))
            prev_evt = extrema[pos - 1] if pos > 0 else None
            next_evt = extrema[pos] if pos < len(extrema) else None
            previous_tide.append(prev_evt)
            next_tide.append(next_evt)
            if prev_evt is not None and next_evt is not None:
                ranges.append(round(abs(next_evt["height_m"] - prev_evt["height_m"]), 3))
            else:
                ranges.append(None)

        result = {
            "timestamps": epochs,
            "tide_height_m": [round(float(v), 3) for v in heights],
            "tide_rate_m_per_hr": [round(float(v), 4) for v in rates],
            "tide_rising": [bool(v > 0) for v in rates],
            "tidal_range_m": ranges,
            "current_speed_kt": [round(abs(float(v)) * CURRENT_KNOTS_PER_M_PER_HR, 3) for v in rates],
            "next_tide": next_tide,
            "previous_tide": previous_tide,
            "extrema": extrema,
            "source": "harmonic_model",
        }
        self._cache = result
        self._last_calc = now
        return result

    # ---- Skyfield astronomy ----

    async def _run_blocking(self, func, *args):
        if self.hass is not None:
            return await self.hass.async_add_executor_job(func, *args)
        return await asyncio.get_running_loop().run_in_executor(None, func, *args)

    async def _ensure_loaded(self) -> None:
        if self._sf_eph is not None and self._sf_ts is not None:
            return
        async with self._load_lock:
            if self._sf_eph is not None and self._sf_ts is not None:
                return

            def _blocking_load():
                return self._loader.timescale(), self._loader("de421.bsp"), getattr(skyfield, "__version__", "unknown")

            try:
                self._sf_ts, self._sf_eph, version = await self._run_blocking(_blocking_load)
            except Exception:
                _LOGGER.exception("Failed to load Skyfield resources")
                raise
            _LOGGER.info("Skyfield loaded version=%s", version)

    def _compute_astronomy(self, start: datetime, end: datetime, epochs: Sequence[float]) -> Dict[str, Any]:
        ts = self._sf_ts
        eph = self._sf_eph
        topos = wgs84.latlon(self.latitude, self.longitude)
        t0 = ts.from_datetime(start)
        t1 = ts.from_datetime(end)

        sun_times, sun_events = _almanac.find_discrete(t0, t1, _almanac.sunrise_sunset(eph, topos))
        days: List[Dict[str, Any]] = []
        pending_sunrise: Optional[float] = None
        for t, is_up in zip(sun_times, sun_events):
            epoch = t.utc_datetime().timestamp()
            if is_up:
                pending_sunrise = epoch
            elif pending_sunrise is not None:
                days.append({
                    "date": datetime.fromtimestamp(pending_sunrise, tz=timezone.utc).date().isoformat(),
                    "sunrise": pending_sunrise,
                    "sunset": epoch,
                })
                pending_sunrise = None

        transit_times, _ = _almanac.find_discrete(t0, t1, _almanac.meridian_transits(eph, eph["moon"], topos))
        rise_times, _ = _almanac.find_discrete(t0, t1, _almanac.risings_and_settings(eph, eph["moon"], topos))

        phases: List[float] = []
        if epochs:
            t_arr = ts.from_datetimes([datetime.fromtimestamp(e, tz=timezone.utc) for e in epochs])
            phases = [round(float(v) / 360.0 % 1.0, 4) for v in _almanac.moon_phase(eph, t_arr).degrees]

        return {
            "days": days,
            "moon_major": [t.utc_datetime().timestamp() for t in transit_times],
            "moon_minor": [t.utc_datetime().timestamp() for t in rise_times],
            "moon_phase": phases,
            "source": "skyfield",
        }

    async def async_get_astronomy(self, timestamps: Sequence[Any]) -> Dict[str, Any]:
        """Sunrise/sunset pairs, moon transits (major) and moonrise/moonset (minor).

        The search window covers the timestamps plus a day either side so the
        first and last ticks still have surrounding events.
        """
        epochs = [to_epoch_seconds(t) for t in timestamps]
        if not epochs:
            return {"days": [], "moon_major": [], "moon_minor": [], "moon_phase": [], "source": "skyfield"}
        await self._ensure_loaded()
        start = datetime.fromtimestamp(min(epochs), tz=timezone.utc) - timedelta(days=1)
        end = datetime.fromtimestamp(max(epochs), tz=timezone.utc) + timedelta(days=1)
        try:
            return await self._run_blocking(self._compute_astronomy, start, end, epochs)
        except Exception as exc:
            _LOGGER.exception("Skyfield astronomy failed for %s,%s", self.latitude, self.longitude)
            raise RuntimeError("Astronomy computation failed") from exc
