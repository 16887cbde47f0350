"""Oelo Lights Zone Home Assistant integration.

Controls Oelo Lights controllers via HTTP REST API. Every configured zone gets
its own ZoneController: a poll timer, an optional command verifier and a
store of up to 20 captured patterns.

Protocol:
    GET http://{IP}/getController - Returns zone statuses (JSON array)
    GET http://{IP}/setPattern?patternType={type}&zones={zone}&... - Sets pattern

Workflow:
    1. Create/set pattern in Oelo app
    2. Capture in HA (stored per zone)
    3. Rename (optional)
    4. Apply by name (captured patterns or the built-in catalog)

Storage: {DOMAIN}_patterns_{entry_id}_zone_{zone}.json
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import Platform
from homeassistant.core import HomeAssistant, callback
from homeassistant.exceptions import ConfigEntryError
from homeassistant.helpers.aiohttp_client import async_get_clientsession
import homeassistant.helpers.config_validation as cv

from .catalog import PatternCatalog
from .client import ControllerClient
from .config import build_entry_zone_configs
from .const import DOMAIN, MAX_ZONE, MIN_ZONE
from .errors import ConfigurationError
from .pattern_storage import PatternStorage
from .scheduling import HassScheduler
from .services import async_register_services
from .zone import ZoneController

_LOGGER = logging.getLogger(__name__)

PLATFORMS = [Platform.LIGHT]
DATA_CATALOG = "catalog"

CONFIG_SCHEMA = cv.config_entry_only_config_schema(DOMAIN)


@dataclass
class OeloEntryData:
    """Runtime objects of one config entry."""

    scheduler: HassScheduler
    controllers: dict[int, ZoneController] = field(default_factory=dict)
    storages: dict[int, PatternStorage] = field(default_factory=dict)


async def async_setup(hass: HomeAssistant, config: dict) -> bool:
    """Set up the Oelo Lights Zone integration."""
    async_register_services(hass)
    return True


async def _async_get_catalog(hass: HomeAssistant) -> PatternCatalog:
    domain_data = hass.data.setdefault(DOMAIN, {})
    if DATA_CATALOG not in domain_data:
        domain_data[DATA_CATALOG] = await hass.async_add_executor_job(PatternCatalog.load)
    return domain_data[DATA_CATALOG]


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up the Oelo Lights Zone integration from a config entry."""
    try:
        zone_configs = build_entry_zone_configs(entry.data, entry.options)
    except ConfigurationError as err:
        raise ConfigEntryError(str(err)) from err

    catalog = await _async_get_catalog(hass)
    session = async_get_clientsession(hass)
    data = OeloEntryData(scheduler=HassScheduler(hass, entry.title))

    for zone_config in zone_configs:
        storage = PatternStorage(hass, entry.entry_id, zone_config.zone)

        @callback
        def _save_patterns(controller: ZoneController, storage: PatternStorage = storage) -> None:
            hass.async_create_task(storage.async_save(controller.store), f"{DOMAIN} save patterns")

        client = ControllerClient(session, zone_config.ip_address, zone_config.command_timeout)
        data.storages[zone_config.zone] = storage
        data.controllers[zone_config.zone] = ZoneController(
            zone_config,
            client,
            catalog,
            data.scheduler,
            await storage.async_load(),
            on_patterns_changed=_save_patterns,
        )

    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = data

    try:
        for controller in data.controllers.values():
            await controller.async_start()
        await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    except Exception:
        _LOGGER.debug("Setup of %s failed, stopping its zones", entry.title)
        hass.data[DOMAIN].pop(entry.entry_id, None)
        _stop_entry_data(data)
        raise

    entry.async_on_unload(entry.add_update_listener(_async_update_listener))
    return True


def _stop_entry_data(data: OeloEntryData) -> None:
    for controller in data.controllers.values():
        controller.stop()
    data.scheduler.shutdown()


async def _async_update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload the entry so changed options take effect."""
    await hass.config_entries.async_reload(entry.entry_id)


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    unloaded = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unloaded:
        data: OeloEntryData | None = hass.data.get(DOMAIN, {}).pop(entry.entry_id, None)
        if data is not None:
            _stop_entry_data(data)
    return unloaded


async def async_remove_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Remove saved patterns when the entry is deleted."""
    for zone in range(MIN_ZONE, MAX_ZONE + 1):
        await PatternStorage(hass, entry.entry_id, zone).async_remove()
