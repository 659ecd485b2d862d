"""
Per-species fishing score sensors.

One sensor per configured species. The state is the 0-100 score of the
current tick; attributes carry the factor breakdown, safety, season status,
the best upcoming window and the recommendation bundle.

Assumes the canonical coordinator payload produced by DataFormatter:
 - coordinator.data["species"][species_id] with keys
   "per_timestamp_forecasts", "best_window" and "current"
 - coordinator.data["confidence"]
"""
from typing import Any, Dict, Optional
import logging

from homeassistant.helpers.update_coordinator import CoordinatorEntity
from homeassistant.const import ATTR_ATTRIBUTION
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from .const import CONF_NAME, CONF_SPECIES, DOMAIN
from .explanations import default_explanation_table, get_score_label

_LOGGER = logging.getLogger(__name__)

ATTRIBUTION = "Data provided by Open-Meteo"


class CFFSpeciesSensor(CoordinatorEntity):
    """Fishing score for one species at the configured location."""

    _attr_icon = "mdi:fish"
    _attr_native_unit_of_measurement = "score"

    def __init__(self, coordinator, name: str, species_id: str):
        if not name:
            raise RuntimeError("Sensor name must be provided (strict)")
        super().__init__(coordinator)
        self.species_id = species_id
        display = default_explanation_table().species(species_id).display_name
        self._attr_name = f"{name} {display}"
        self._attr_unique_id = f"{DOMAIN}_{getattr(coordinator, 'entry_id', 'noentry')}_{species_id}"

    @property
    def available(self) -> bool:
        return bool(self.coordinator.last_update_success and self._species_block())

    def _species_block(self) -> Optional[Dict[str, Any]]:
        data = self.coordinator.data
        if not data:
            return None
        return data.get("species", {}).get(self.species_id)

    def _current(self) -> Dict[str, Any]:
        block = self._species_block()
        if not block or not block.get("current"):
            raise RuntimeError(f"Coordinator data missing current forecast for {self.species_id} (strict)")
        return block["current"]

    @property
    def state(self) -> Optional[int]:
        return int(self._current()["score_100"])

    @property
    def extra_state_attributes(self) -> Dict[str, Any]:
        block = self._species_block() or {}
        current = self._current()
        label = get_score_label(current["total"])
        attrs: Dict[str, Any] = {
            ATTR_ATTRIBUTION: ATTRIBUTION,
            "species_id": self.species_id,
            "time": current.get("time"),
            "total": current.get("total"),
            "confidence_adjusted_total": current.get("confidence_adjusted_total"),
            "label": label.label,
            "color": label.color,
            "factors": {
                key: {"score": f.get("score"), "weight": f.get("weight"), "description": f.get("description")}
                for key, f in (current.get("factors") or {}).items()
            },
            "is_safe": current.get("is_safe"),
            "safety_warnings": current.get("safety_warnings"),
            "is_in_season": current.get("is_in_season"),
            "algorithm_version": current.get("algorithm_version"),
            "strategy_advice": current.get("strategy_advice"),
            "best_window": block.get("best_window"),
            "recommendation": current.get("recommendation"),
        }
        confidence = (self.coordinator.data or {}).get("confidence")
        if confidence:
            attrs["confidence"] = confidence
        return attrs


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry, async_add_entities):
    """Create one sensor per species stored on the entry."""
    coordinator = hass.data[DOMAIN].get(entry.entry_id) if hass.data.get(DOMAIN) else None
    if coordinator is None:
        raise RuntimeError("Coordinator not found in hass.data for this config entry (strict)")

    sensor_name = entry.data.get(CONF_NAME)
    if not sensor_name:
        raise RuntimeError("Missing required name in config entry data (strict)")

    species = entry.data.get(CONF_SPECIES) or []
    entities = [CFFSpeciesSensor(coordinator, name=sensor_name, species_id=sid) for sid in coordinator.species]
    _LOGGER.debug("Adding %d species sensors for entry %s (configured=%s)", len(entities), entry.entry_id, species)
    async_add_entities(entities)
