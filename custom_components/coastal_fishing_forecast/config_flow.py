"""Config flow for Coastal Fishing Forecast"""

from __future__ import annotations

import logging
from typing import Any

import voluptuous as vol
from homeassistant import config_entries
from homeassistant.data_entry_flow import FlowResult
from homeassistant.helpers import selector
import homeassistant.helpers.config_validation as cv

from .const import (
    DOMAIN,
    CONF_NAME,
    CONF_LATITUDE,
    CONF_LONGITUDE,
    CONF_SPECIES,
    CONF_ALGORITHM_VERSION,
    CONF_FORECAST_DAYS,
    ALGORITHM_VERSION_V1,
    ALGORITHM_VERSION_V2,
    DEFAULT_FORECAST_DAYS,
    DEFAULT_NAME,
)
from .explanations import ExplanationTable, default_explanation_table

_LOGGER = logging.getLogger(__name__)


def _species_options(table: ExplanationTable) -> list[dict[str, str]]:
    options = [
        {"value": sid, "label": table.species(sid).display_name}
        for sid in table.species_ids
        if sid != "default"
    ]
    options.sort(key=lambda o: o["label"])
    return options


class CoastalFishingConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """Handle a config flow for Coastal Fishing Forecast."""

    VERSION = 1

    def __init__(self) -> None:
        self.location: dict[str, Any] = {}
        self.table: ExplanationTable | None = None

    async def _async_table(self) -> ExplanationTable:
        if self.table is None:
            # file read off the event loop
            self.table = await self.hass.async_add_executor_job(default_explanation_table)
        return self.table

    async def async_step_user(self, user_input: dict[str, Any] | None = None) -> FlowResult:
        """Configure the fishing spot (name and coordinates)."""
        errors: dict[str, str] = {}
        if user_input is not None:
            try:
                lat = float(user_input[CONF_LATITUDE])
                lon = float(user_input[CONF_LONGITUDE])
                if not (-90 <= lat <= 90 and -180 <= lon <= 180):
                    errors["base"] = "invalid_coordinates"
            except (ValueError, KeyError, TypeError):
                errors["base"] = "invalid_coordinates"

            if not errors:
                submitted_title = str(user_input.get(CONF_NAME, "")).strip()
                for e in self.hass.config_entries.async_entries(DOMAIN):
                    if e.title == submitted_title:
                        _LOGGER.debug("Attempt to create entry with duplicate title '%s' rejected", submitted_title)
                        errors["base"] = "title_exists"
                        break

            if not errors:
                self.location = {
                    CONF_NAME: str(user_input[CONF_NAME]).strip(),
                    CONF_LATITUDE: lat,
                    CONF_LONGITUDE: lon,
                }
                return await self.async_step_species()

        default_name = user_input.get(CONF_NAME, DEFAULT_NAME) if user_input else DEFAULT_NAME
        default_lat = user_input.get(CONF_LATITUDE, self.hass.config.latitude) if user_input else self.hass.config.latitude
        default_lon = user_input.get(CONF_LONGITUDE, self.hass.config.longitude) if user_input else self.hass.config.longitude

        return self.async_show_form(
            step_id="user",
            data_schema=vol.Schema(
                {
                    vol.Required(CONF_NAME, default=default_name): str,
                    vol.Required(CONF_LATITUDE, default=default_lat): cv.latitude,
                    vol.Required(CONF_LONGITUDE, default=default_lon): cv.longitude,
                }
            ),
            errors=errors,
        )

    async def async_step_species(self, user_input: dict[str, Any] | None = None) -> FlowResult:
        """Pick one or more target species and the scoring algorithm version."""
        table = await self._async_table()
        options = _species_options(table)
        errors: dict[str, str] = {}

        if user_input is not None:
            chosen = [s for s in user_input.get(CONF_SPECIES) or [] if s in table.species_ids and s != "default"]
            if not chosen:
                errors["base"] = "no_species"
            else:
                data = dict(self.location)
                data[CONF_SPECIES] = chosen
                data[CONF_ALGORITHM_VERSION] = user_input.get(CONF_ALGORITHM_VERSION, ALGORITHM_VERSION_V2)
                data[CONF_FORECAST_DAYS] = int(user_input.get(CONF_FORECAST_DAYS, DEFAULT_FORECAST_DAYS))
                _LOGGER.debug("Creating entry '%s' for species %s", data[CONF_NAME], chosen)
                return self.async_create_entry(title=data[CONF_NAME], data=data)

        return self.async_show_form(
            step_id="species",
            data_schema=vol.Schema(
                {
                    vol.Required(CONF_SPECIES): selector.SelectSelector(
                        selector.SelectSelectorConfig(options=options, multiple=True, mode="dropdown")
                    ),
                    vol.Required(CONF_ALGORITHM_VERSION, default=ALGORITHM_VERSION_V2): selector.SelectSelector(
                        selector.SelectSelectorConfig(
                            options=[
                                {"value": ALGORITHM_VERSION_V2, "label": "V2 (physics-based)"},
                                {"value": ALGORITHM_VERSION_V1, "label": "V1 (legacy)"},
                            ],
                            mode="list",
                        )
                    ),
                    vol.Required(CONF_FORECAST_DAYS, default=DEFAULT_FORECAST_DAYS): vol.All(
                        vol.Coerce(int), vol.Range(min=1, max=7)
                    ),
                }
            ),
            errors=errors,
        )
