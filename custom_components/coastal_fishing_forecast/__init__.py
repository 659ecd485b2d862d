"""
Coastal Fishing Forecast - per-species fishing quality scores.

The scoring engine (models, factor_scoring, species_algorithms, explanations,
recommendations) has no Home Assistant imports and can be used on its own.
Home Assistant modules are imported inside the entry points only.

Setup is strict: a config entry without coordinates or species fails loudly.
"""
import logging

from .const import (
    CONF_ALGORITHM_VERSION,
    CONF_FORECAST_DAYS,
    CONF_LATITUDE,
    CONF_LONGITUDE,
    CONF_SPECIES,
    DEFAULT_FORECAST_DAYS,
    DEFAULT_UPDATE_INTERVAL,
    DOMAIN,
)

_LOGGER = logging.getLogger(__name__)

PLATFORMS = ["sensor"]


async def async_setup_entry(hass, entry):
    """Set up integration from a config entry (strict)."""
    from homeassistant.helpers import aiohttp_client

    _LOGGER.debug("Starting async_setup_entry for entry %s", entry.entry_id)
    session = aiohttp_client.async_get_clientsession(hass)
    hass.data.setdefault(DOMAIN, {}).setdefault("fetch_cache", {})

    lat = entry.data.get(CONF_LATITUDE)
    lon = entry.data.get(CONF_LONGITUDE)
    if lat is None or lon is None:
        _LOGGER.error("Config entry missing latitude/longitude; aborting setup for entry %s", entry.entry_id)
        return False

    try:
        from .coordinator import CFFCoordinator
        from .weather_fetcher import WeatherFetcher
        from .data_formatter import DataFormatter
        from .explanations import default_explanation_table
    except Exception as exc:
        _LOGGER.exception("Failed to import integration modules for entry %s: %s", entry.entry_id, exc)
        return False

    # Validate packaged explanations at startup; fail fast on schema problems
    try:
        table = await hass.async_add_executor_job(default_explanation_table)
    except Exception as exc:
        _LOGGER.exception("species_explanations.json failed validation: %s", exc)
        return False

    requested = entry.data.get(CONF_SPECIES) or []
    species = []
    for raw_id in requested:
        key = table.species_key(raw_id)
        if key == "default":
            _LOGGER.error("Selected species %r is not known (strict)", raw_id)
            return False
        if key not in species:
            species.append(key)
    if not species:
        _LOGGER.error("Config entry %s has no species selected (strict)", entry.entry_id)
        return False

    fetcher = WeatherFetcher(session, lat, lon)
    coord = CFFCoordinator(
        hass,
        entry.entry_id,
        fetcher=fetcher,
        formatter=DataFormatter(),
        lat=lat,
        lon=lon,
        update_interval=entry.data.get("update_interval", DEFAULT_UPDATE_INTERVAL),
        species=species,
        algorithm_version=entry.data.get(CONF_ALGORITHM_VERSION),
        forecast_days=entry.data.get(CONF_FORECAST_DAYS, DEFAULT_FORECAST_DAYS),
    )
    _LOGGER.debug("CFFCoordinator created for entry %s with species %s", entry.entry_id, species)

    await coord.async_config_entry_first_refresh()

    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = coord

    try:
        await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    except Exception:
        _LOGGER.exception("Failed to forward entry setups for entry %s to sensor platform", entry.entry_id)
        return False

    _LOGGER.debug("async_setup_entry completed for entry %s", entry.entry_id)
    return True


async def async_unload_entry(hass, entry):
    """Unload a config entry."""
    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unload_ok:
        removed = hass.data.get(DOMAIN, {}).pop(entry.entry_id, None)
        _LOGGER.debug("Removed coordinator from hass.data for entry %s: %s", entry.entry_id, removed is not None)
    return unload_ok
