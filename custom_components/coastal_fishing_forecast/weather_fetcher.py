"""
Strict WeatherFetcher for Open-Meteo.

- Session is injected (the integration passes Home Assistant's shared session).
- Raises WeatherFetchError on HTTP or payload shape failures.
- Returns raw Open-Meteo payloads; DataFormatter owns normalization.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import aiohttp

from .const import DEFAULT_FORECAST_DAYS, OM_BASE, OM_MARINE_BASE

_LOGGER = logging.getLogger(__name__)

# 15-minute params for the scoring ticks (wind in km/h)
OM_PARAMS_MINUTELY = ",".join(
    [
        "temperature_2m",
        "wind_speed_10m",
        "wind_direction_10m",
        "wind_gusts_10m",
        "precipitation",
        "cloud_cover",
        "pressure_msl",
        "cape",
        "visibility",
    ]
)

# marine hourly params, aligned onto the 15-minute ticks by the formatter
OM_MARINE_PARAMS_HOURLY = ",".join(
    [
        "wave_height",
        "swell_wave_period",
        "sea_surface_temperature",
        "ocean_current_velocity",
        "ocean_current_direction",
    ]
)

REQUEST_TIMEOUT = 60


class WeatherFetchError(RuntimeError):
    """Open-Meteo request failed or returned an unexpected payload."""


class WeatherFetcher:
    """Fetch raw forecast and marine payloads for one location."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        latitude: float,
        longitude: float,
        base_url: str = OM_BASE,
        marine_base_url: str = OM_MARINE_BASE,
    ) -> None:
        try:
            self.latitude = round(float(latitude), 6)
            self.longitude = round(float(longitude), 6)
        except (TypeError, ValueError) as exc:
            raise ValueError("WeatherFetcher requires numeric latitude/longitude (strict)") from exc
        if not -90.0 <= self.latitude <= 90.0 or not -180.0 <= self.longitude <= 180.0:
            raise ValueError("Latitude/longitude out of range (strict)")
        self._session = session
        self._base_url = base_url
        self._marine_base_url = marine_base_url

    def _params(self, days: int) -> Dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "timezone": "UTC",
            "timeformat": "unixtime",
            "wind_speed_unit": "kmh",
            "forecast_days": int(days) + 1,
            # one day back so the first ticks have a pressure history
            "past_days": 1,
        }

    async def _get_json(self, url: str, params: Dict[str, Any], what: str) -> Dict[str, Any]:
        try:
            async with self._session.get(url, params=params, timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT)) as resp:
                resp.raise_for_status()
                data = await resp.json()
        except Exception as exc:
            _LOGGER.exception("Open-Meteo %s fetch failed for %s,%s", what, self.latitude, self.longitude)
            raise WeatherFetchError(f"Open-Meteo {what} fetch failed") from exc
        if not isinstance(data, dict):
            raise WeatherFetchError(f"Open-Meteo returned unexpected {what} payload shape (strict)")
        return data

    async def fetch_forecast(self, days: int = DEFAULT_FORECAST_DAYS) -> Dict[str, Any]:
        """Raw forecast payload with 'minutely_15' arrays."""
        params = self._params(days)
        params["minutely_15"] = OM_PARAMS_MINUTELY
        data = await self._get_json(self._base_url, params, "forecast")
        block = data.get("minutely_15")
        if not isinstance(block, dict) or not isinstance(block.get("time"), list):
            raise WeatherFetchError("Open-Meteo forecast payload missing 'minutely_15.time' (strict)")
        return data

    async def fetch_marine(self, days: int = DEFAULT_FORECAST_DAYS) -> Dict[str, Any]:
        """Raw marine payload with 'hourly' arrays."""
        params = self._params(days)
        params["hourly"] = OM_MARINE_PARAMS_HOURLY
        data = await self._get_json(self._marine_base_url, params, "marine")
        block = data.get("hourly")
        if not isinstance(block, dict) or not isinstance(block.get("time"), list):
            raise WeatherFetchError("Open-Meteo marine payload missing required 'hourly' dict (strict)")
        return data

    async def fetch(self, days: int = DEFAULT_FORECAST_DAYS, include_marine: bool = True) -> Dict[str, Any]:
        """Forecast payload with the marine payload attached under 'marine'.

        Marine failures are logged and leave 'marine' as None: most coastal
        points have forecast coverage but some have no marine grid cell.
        """
        raw = await self.fetch_forecast(days)
        marine: Optional[Dict[str, Any]] = None
        if include_marine:
            try:
                marine = await self.fetch_marine(days)
            except WeatherFetchError:
                _LOGGER.warning("Marine data unavailable for %s,%s; scoring without it", self.latitude, self.longitude)
        raw["marine"] = marine
        return raw
