"""Services for Oelo Lights Zone integration.

Services: capture_effect, apply_effect, on_and_apply_effect, rename_effect,
delete_effect, list_effects.

Workflow: Create pattern in Oelo app → capture_effect (zone must be ON) →
rename_effect (optional) → apply_effect.

Every service targets one zone entity; captured patterns belong to that zone.
"""

from __future__ import annotations
import logging
from typing import Any

import voluptuous as vol
from homeassistant.core import HomeAssistant, ServiceCall, ServiceResponse, SupportsResponse
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers import entity_registry as er

from .const import (
    DOMAIN,
    EVENT_PATTERNS_UPDATED,
    SERVICE_APPLY_EFFECT,
    SERVICE_CAPTURE_EFFECT,
    SERVICE_DELETE_EFFECT,
    SERVICE_LIST_EFFECTS,
    SERVICE_ON_AND_APPLY_EFFECT,
    SERVICE_RENAME_EFFECT,
)
from .errors import CaptureError, NameCollision, OeloError
from .zone import ZoneController

_LOGGER = logging.getLogger(__name__)

ATTR_ENTITY_ID = "entity_id"
ATTR_EFFECT_NAME = "effect_name"
ATTR_NEW_NAME = "new_name"


def get_zone_from_entity_id(entity_id: str) -> int | None:
    """Extract zone number from entity ID or unique ID (..._zone_N)."""
    tail = entity_id.rsplit("_", 1)[-1]
    return int(tail) if tail.isdigit() else None


def get_zone_controller(hass: HomeAssistant, entity_id: str) -> ZoneController:
    """Find the ZoneController behind a light entity."""
    if not entity_id:
        raise HomeAssistantError("entity_id is required")

    registry = er.async_get(hass)
    entity = registry.async_get(entity_id)
    if entity is None or not entity.config_entry_id:
        raise HomeAssistantError(f"Could not find config entry for entity {entity_id}")

    entry_data = hass.data.get(DOMAIN, {}).get(entity.config_entry_id)
    if entry_data is None:
        raise HomeAssistantError(f"Config entry {entity.config_entry_id} is not loaded")

    zone = get_zone_from_entity_id(entity.unique_id or "") or get_zone_from_entity_id(entity_id)
    controller = entry_data.controllers.get(zone) if zone else None
    if controller is None:
        raise HomeAssistantError(f"Could not find zone for entity {entity_id}")
    return controller


async def async_capture_effect(hass: HomeAssistant, call: ServiceCall) -> None:
    """Capture current effect from controller."""
    controller = get_zone_controller(hass, call.data[ATTR_ENTITY_ID])
    effect_name = (call.data.get(ATTR_EFFECT_NAME) or "").strip()

    try:
        pattern = await controller.async_capture()
    except CaptureError as err:
        if err.reason == CaptureError.DEVICE_OFF:
            raise HomeAssistantError(f"Zone {controller.zone} is off or has no pattern to capture") from err
        raise HomeAssistantError(str(err)) from err

    if effect_name and effect_name != pattern.name:
        try:
            controller.rename_pattern(pattern.name, effect_name)
        except NameCollision as err:
            raise HomeAssistantError(
                f"Captured '{pattern.id}' but could not name it: {err}"
            ) from err

    _LOGGER.info("Captured pattern '%s' (ID: %s) from zone %d", pattern.name, pattern.id, controller.zone)
    hass.bus.async_fire(
        EVENT_PATTERNS_UPDATED,
        {"entity_id": call.data[ATTR_ENTITY_ID], "zone": controller.zone},
    )


async def async_apply_effect(hass: HomeAssistant, call: ServiceCall) -> None:
    """Apply a captured or built-in effect to a zone."""
    controller = get_zone_controller(hass, call.data[ATTR_ENTITY_ID])
    effect_name = call.data[ATTR_EFFECT_NAME]
    try:
        sent = await controller.async_set_pattern(effect_name)
    except OeloError as err:
        raise HomeAssistantError(str(err)) from err
    if not sent:
        raise HomeAssistantError(f"Controller did not accept effect '{effect_name}'")
    _LOGGER.info("Applied pattern '%s' to zone %d", effect_name, controller.zone)


async def async_on_and_apply_effect(hass: HomeAssistant, call: ServiceCall) -> None:
    """Turn on and apply effect in one action."""
    # Applying a pattern turns the zone on
    await async_apply_effect(hass, call)


async def async_rename_effect(hass: HomeAssistant, call: ServiceCall) -> None:
    """Rename a captured effect."""
    controller = get_zone_controller(hass, call.data[ATTR_ENTITY_ID])
    new_name = call.data[ATTR_NEW_NAME].strip()
    if not new_name:
        raise HomeAssistantError("new_name is required")
    try:
        controller.rename_pattern(call.data[ATTR_EFFECT_NAME], new_name)
    except OeloError as err:
        raise HomeAssistantError(str(err)) from err
    hass.bus.async_fire(
        EVENT_PATTERNS_UPDATED,
        {"entity_id": call.data[ATTR_ENTITY_ID], "zone": controller.zone},
    )


async def async_delete_effect(hass: HomeAssistant, call: ServiceCall) -> None:
    """Delete a captured effect."""
    controller = get_zone_controller(hass, call.data[ATTR_ENTITY_ID])
    try:
        controller.delete_pattern(call.data[ATTR_EFFECT_NAME])
    except OeloError as err:
        raise HomeAssistantError(str(err)) from err
    hass.bus.async_fire(
        EVENT_PATTERNS_UPDATED,
        {"entity_id": call.data[ATTR_ENTITY_ID], "zone": controller.zone},
    )


async def async_list_effects(hass: HomeAssistant, call: ServiceCall) -> ServiceResponse:
    """List captured effects of a zone."""
    controller = get_zone_controller(hass, call.data[ATTR_ENTITY_ID])
    patterns: list[dict[str, Any]] = [pattern.as_dict() for pattern in controller.store]
    _LOGGER.debug("Listed %d patterns for zone %d", len(patterns), controller.zone)
    return {
        "zone": controller.zone,
        "effects": controller.pattern_names,
        "patterns": patterns,
        "last_captured": controller.store.last_captured_name,
    }


ENTITY_SCHEMA = vol.Schema({vol.Required(ATTR_ENTITY_ID): str})
CAPTURE_SCHEMA = ENTITY_SCHEMA.extend({vol.Optional(ATTR_EFFECT_NAME): str})
EFFECT_SCHEMA = ENTITY_SCHEMA.extend({vol.Required(ATTR_EFFECT_NAME): str})
RENAME_SCHEMA = EFFECT_SCHEMA.extend({vol.Required(ATTR_NEW_NAME): str})


def async_register_services(hass: HomeAssistant) -> None:
    """Register Oelo Lights Zone services."""

    async def _capture(call: ServiceCall) -> None:
        await async_capture_effect(hass, call)

    async def _apply(call: ServiceCall) -> None:
        await async_apply_effect(hass, call)

    async def _on_and_apply(call: ServiceCall) -> None:
        await async_on_and_apply_effect(hass, call)

    async def _rename(call: ServiceCall) -> None:
        await async_rename_effect(hass, call)

    async def _delete(call: ServiceCall) -> None:
        await async_delete_effect(hass, call)

    async def _list(call: ServiceCall) -> ServiceResponse:
        return await async_list_effects(hass, call)

    hass.services.async_register(DOMAIN, SERVICE_CAPTURE_EFFECT, _capture, schema=CAPTURE_SCHEMA)
    hass.services.async_register(DOMAIN, SERVICE_APPLY_EFFECT, _apply, schema=EFFECT_SCHEMA)
    hass.services.async_register(DOMAIN, SERVICE_ON_AND_APPLY_EFFECT, _on_and_apply, schema=EFFECT_SCHEMA)
    hass.services.async_register(DOMAIN, SERVICE_RENAME_EFFECT, _rename, schema=RENAME_SCHEMA)
    hass.services.async_register(DOMAIN, SERVICE_DELETE_EFFECT, _delete, schema=EFFECT_SCHEMA)
    hass.services.async_register(
        DOMAIN,
        SERVICE_LIST_EFFECTS,
        _list,
        schema=ENTITY_SCHEMA,
        supports_response=SupportsResponse.ONLY,
    )

    _LOGGER.info("Registered Oelo Lights Zone services")
