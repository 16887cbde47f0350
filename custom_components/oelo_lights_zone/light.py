"""Light platform for the Oelo Lights Zone integration.

Provides one light entity per configured zone. The entity is a view of its
ZoneController: state comes from the controller's observable state and every
command is delegated to it.

**Key Features:**
- Effect list: captured patterns first, then the built-in catalog
- Pattern application via effect attribute (Home Assistant native)
- RGB color and brightness control (sent as a one-color custom pattern)
- Extra attributes: zone, controller IP, current pattern, verification status

**Refresh:**
- Use standard `homeassistant.update_entity` service
"""

from __future__ import annotations
import logging
from typing import Any

from homeassistant.components.light import (
    ATTR_BRIGHTNESS,
    ATTR_EFFECT,
    ATTR_RGB_COLOR,
    ColorMode,
    LightEntity,
    LightEntityFeature,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import DOMAIN, PATTERN_CUSTOM
from .errors import PatternNotFound
from .pattern_utils import first_color
from .zone import ZoneController

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant, entry: ConfigEntry, async_add_entities: AddEntitiesCallback,
) -> None:
    data = hass.data[DOMAIN][entry.entry_id]
    async_add_entities(
        OeloZoneLight(controller, entry) for _, controller in sorted(data.controllers.items())
    )


class OeloZoneLight(LightEntity):
    _attr_has_entity_name = True
    _attr_should_poll = False
    _attr_supported_color_modes = {ColorMode.RGB}
    _attr_color_mode = ColorMode.RGB
    _attr_supported_features = LightEntityFeature.EFFECT

    def __init__(self, controller: ZoneController, entry: ConfigEntry) -> None:
        self.controller = controller
        self._zone = controller.zone
        self._entry = entry
        self._brightness: int = 255
        self._rgb_color: tuple[int, int, int] = (255, 255, 255)
        self._attr_unique_id = f"{entry.entry_id}_zone_{self._zone}"
        self._attr_name = f"Zone {self._zone}"

    @property
    def device_info(self) -> DeviceInfo:
        return DeviceInfo(
            identifiers={(DOMAIN, self._entry.entry_id)},
            name=self._entry.title,
            manufacturer="Oelo",
            model="Light Controller",
            configuration_url=f"http://{self.controller.config.ip_address}/",
        )

    @property
    def available(self) -> bool:
        return self.controller.state.available

    @property
    def is_on(self) -> bool | None:
        return self.controller.state.is_on if self.available else None

    @property
    def brightness(self) -> int | None:
        return self._brightness if self.available else None

    @property
    def rgb_color(self) -> tuple[int, int, int] | None:
        return self._rgb_color if self.available else None

    @property
    def effect(self) -> str | None:
        if not self.available or not self.is_on:
            return None
        return self.controller.state.effect_name or None

    @property
    def effect_list(self) -> list[str] | None:
        """Return captured pattern names followed by catalog names."""
        return self.controller.effect_list

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        state = self.controller.state
        return {
            "zone": self._zone,
            "controller_ip": self.controller.config.ip_address,
            "current_pattern": state.current_pattern,
            "verification_status": str(state.verification_status) if state.verification_status else None,
            "last_command": state.last_command,
        }

    async def async_added_to_hass(self) -> None:
        await super().async_added_to_hass()
        self.async_on_remove(self.controller.async_add_listener(self.async_write_ha_state))

    async def async_update(self) -> None:
        await self.controller.async_refresh()

    async def async_turn_on(self, **kwargs: Any) -> None:
        log_prefix = self.entity_id or self._attr_name
        _LOGGER.debug("%s: Turning on with kwargs: %s", log_prefix, kwargs)

        if ATTR_BRIGHTNESS in kwargs:
            self._brightness = max(0, min(int(kwargs[ATTR_BRIGHTNESS]), 255))

        if ATTR_EFFECT in kwargs:
            effect = kwargs[ATTR_EFFECT]
            try:
                sent = await self.controller.async_set_pattern(effect)
            except PatternNotFound as err:
                raise HomeAssistantError(str(err)) from err
            if sent:
                params = self.controller.resolve_pattern(effect)
                self._rgb_color = first_color(params.get("colors", "")) or self._rgb_color
        elif ATTR_RGB_COLOR in kwargs or (
            ATTR_BRIGHTNESS in kwargs and self.controller.state.current_pattern == PATTERN_CUSTOM
        ):
            if ATTR_RGB_COLOR in kwargs:
                self._rgb_color = tuple(max(0, min(int(c), 255)) for c in kwargs[ATTR_RGB_COLOR])
            sent = await self.controller.async_set_color(self._rgb_color, self._brightness)
        else:
            sent = await self.controller.async_turn_on()

        if not sent:
            _LOGGER.warning("%s: Turn on was not acknowledged by the controller", log_prefix)
        self.async_write_ha_state()

    async def async_turn_off(self, **kwargs: Any) -> None:
        log_prefix = self.entity_id or self._attr_name
        if not await self.controller.async_turn_off():
            _LOGGER.warning("%s: Turn off was not acknowledged by the controller", log_prefix)
        self.async_write_ha_state()
