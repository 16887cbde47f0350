"""Pattern persistence for Oelo Lights Zone integration.

Each zone's PatternStore is saved in its own Home Assistant Store:
{DOMAIN}_patterns_{entry_id}_zone_{zone}.json (max 20 patterns).
Pattern structure: id, name, command_params, plan_type, original_colors.
"""

from __future__ import annotations
import logging
from typing import Any

from homeassistant.core import HomeAssistant
from homeassistant.helpers.storage import Store

from .const import MAX_PATTERNS, STORAGE_KEY_PATTERNS, STORAGE_VERSION
from .pattern_store import PatternStore

_LOGGER = logging.getLogger(__name__)


def storage_key(entry_id: str, zone: int) -> str:
    return f"{STORAGE_KEY_PATTERNS}_{entry_id}_zone_{zone}"


class PatternStorage:
    """Loads and saves one zone's captured patterns."""

    def __init__(self, hass: HomeAssistant, entry_id: str, zone: int) -> None:
        self.hass = hass
        self.entry_id = entry_id
        self.zone = zone
        self.store: Store[dict[str, Any]] = Store(hass, STORAGE_VERSION, storage_key(entry_id, zone))

    async def async_load(self) -> PatternStore:
        """Load the zone's patterns into a new PatternStore."""
        patterns = PatternStore(MAX_PATTERNS)
        data = await self.store.async_load()
        if data and isinstance(data, dict):
            patterns.load(data)
        _LOGGER.debug("Zone %s: Loaded %d stored patterns", self.zone, len(patterns))
        return patterns

    async def async_save(self, patterns: PatternStore) -> None:
        """Save the zone's patterns."""
        await self.store.async_save(patterns.as_dict())
        _LOGGER.debug("Zone %s: Saved %d patterns", self.zone, len(patterns))

    async def async_remove(self) -> None:
        """Delete the saved patterns."""
        await self.store.async_remove()
