# Strict coordinator: fetches Open-Meteo, attaches tide and astronomy, propagates strict errors

from datetime import timedelta
import async_timeout
import logging
import time
from typing import List, Optional

from homeassistant.helpers.update_coordinator import DataUpdateCoordinator

from .const import DEFAULT_FORECAST_DAYS, DOMAIN, FETCH_CACHE_TTL
from .tide_proxy import TideProxy

_LOGGER = logging.getLogger(__name__)


class CFFCoordinator(DataUpdateCoordinator):
    def __init__(
        self,
        hass,
        entry_id: str,
        fetcher,
        formatter,
        lat: float,
        lon: float,
        update_interval: int,
        species: List[str],
        algorithm_version: Optional[str] = None,
        forecast_days: int = DEFAULT_FORECAST_DAYS,
        tide_proxy: Optional[TideProxy] = None,
    ):
        """
        - species: canonical species ids scored on every refresh (at least one).
        - algorithm_version: "v1"/"v2" or None for the default table.
        """
        super().__init__(
            hass,
            _LOGGER,
            name=DOMAIN,
            update_interval=timedelta(seconds=update_interval),
        )
        if not species:
            raise ValueError("Coordinator requires at least one species (strict)")
        self.entry_id = entry_id
        self.fetcher = fetcher
        self.formatter = formatter
        self.lat = lat
        self.lon = lon
        self.species = list(species)
        self.algorithm_version = algorithm_version
        self.forecast_days = int(forecast_days)
        self._tide_proxy = tide_proxy or TideProxy(hass, self.lat, self.lon)

    async def _async_update_data(self):
        """Fetch weather and marine, attach tide and astronomy, run formatter. All errors propagate."""
        async with async_timeout.timeout(60):
            cache_dict = self.hass.data.setdefault(DOMAIN, {}).setdefault("fetch_cache", {})
            cache_key = (round(float(self.lat), 4), round(float(self.lon), 4), "minutely_15", self.forecast_days)
            cached = cache_dict.get(cache_key)
            if cached and (time.time() - float(cached.get("fetched_at", 0))) < FETCH_CACHE_TTL:
                raw = dict(cached.get("data"))
                _LOGGER.debug("Using cached Open-Meteo payload for %s", cache_key)
            else:
                raw = await self.fetcher.fetch(days=self.forecast_days)
                cache_dict[cache_key] = {"fetched_at": time.time(), "data": raw}
                raw = dict(raw)

            block = raw.get("minutely_15")
            if not isinstance(block, dict) or not isinstance(block.get("time"), (list, tuple)):
                raise RuntimeError("Raw forecast payload missing required 'minutely_15' arrays (strict)")
            timestamps = block["time"]

            # marine is optional, but when present every hourly array must match its own time axis
            marine = raw.get("marine")
            if marine is not None:
                hourly = marine.get("hourly") if isinstance(marine, dict) else None
                if not isinstance(hourly, dict) or not isinstance(hourly.get("time"), (list, tuple)):
                    raise RuntimeError("Marine payload invalid (strict)")
                ref_len = len(hourly["time"])
                for k, arr in hourly.items():
                    if k == "time":
                        continue
                    if not isinstance(arr, (list, tuple)):
                        raise ValueError(f"Marine hourly key '{k}' is not an array (strict)")
                    if len(arr) != ref_len:
                        raise ValueError(
                            f"Marine hourly array '{k}' length {len(arr)} does not match marine time length {ref_len} (strict)"
                        )

            tide = self._tide_proxy.get_tide_for_timestamps(timestamps)
            if not isinstance(tide, dict):
                raise ValueError("TideProxy returned invalid shape (strict)")
            for k in ("tide_height_m", "tide_rising", "current_speed_kt"):
                if len(tide.get(k, [])) != len(timestamps):
                    raise ValueError(f"Tide array '{k}' does not match timestamps length {len(timestamps)} (strict)")
            raw["tide"] = tide

            try:
                raw["astronomy"] = await self._tide_proxy.async_get_astronomy(timestamps)
            except Exception:
                _LOGGER.exception("Failed to compute sun/moon events from Skyfield (strict)")
                raise

            data = self.formatter.validate(
                raw,
                species=self.species,
                version=self.algorithm_version,
                latitude=self.lat,
                longitude=self.lon,
                now=time.time(),
            )
            _LOGGER.debug(
                "Scored %d ticks for %s (confidence=%s)",
                len(data.get("timestamps", [])),
                list(data.get("species", {}).keys()),
                data.get("confidence", {}).get("overall"),
            )
            return data
