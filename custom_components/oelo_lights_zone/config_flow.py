"""Config flow for Oelo Lights Zone integration.

Handles initial setup (address validation and controller reachability check), reconfigure
(new address) and the options flow (zones, polling, spotlight, verification,
advanced settings).
"""

from __future__ import annotations
import logging
from typing import Any

import voluptuous as vol
from homeassistant.config_entries import ConfigEntry, ConfigFlow, ConfigFlowResult, OptionsFlow
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.aiohttp_client import async_get_clientsession
import homeassistant.helpers.config_validation as cv

from .client import ControllerClient
from .config import is_valid_host, parse_zones
from .const import (
    CONF_AUTO_POLL,
    CONF_COMMAND_TIMEOUT,
    CONF_DEBUG_LOGGING,
    CONF_IP_ADDRESS,
    CONF_MAX_LEDS,
    CONF_POLL_INTERVAL,
    CONF_SPOTLIGHT_PLAN_LIGHTS,
    CONF_VERIFICATION_DELAY,
    CONF_VERIFICATION_RETRIES,
    CONF_VERIFICATION_TIMEOUT,
    CONF_VERIFY_COMMANDS,
    CONF_ZONES,
    DEFAULT_AUTO_POLL,
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_DEBUG_LOGGING,
    DEFAULT_MAX_LEDS,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_SPOTLIGHT_PLAN_LIGHTS,
    DEFAULT_VERIFICATION_DELAY,
    DEFAULT_VERIFICATION_RETRIES,
    DEFAULT_VERIFICATION_TIMEOUT,
    DEFAULT_VERIFY_COMMANDS,
    DEFAULT_ZONES,
    DOMAIN,
    MAX_ZONE,
    MIN_ZONE,
)
from .errors import ConfigurationError
from .pattern_utils import normalize_led_indices

_LOGGER = logging.getLogger(__name__)

DEFAULT_OPTIONS = {
    CONF_ZONES: DEFAULT_ZONES,
    CONF_POLL_INTERVAL: DEFAULT_POLL_INTERVAL,
    CONF_AUTO_POLL: DEFAULT_AUTO_POLL,
    CONF_COMMAND_TIMEOUT: DEFAULT_COMMAND_TIMEOUT,
    CONF_DEBUG_LOGGING: DEFAULT_DEBUG_LOGGING,
    CONF_MAX_LEDS: DEFAULT_MAX_LEDS,
    CONF_SPOTLIGHT_PLAN_LIGHTS: DEFAULT_SPOTLIGHT_PLAN_LIGHTS,
    CONF_VERIFY_COMMANDS: DEFAULT_VERIFY_COMMANDS,
    CONF_VERIFICATION_RETRIES: DEFAULT_VERIFICATION_RETRIES,
    CONF_VERIFICATION_DELAY: DEFAULT_VERIFICATION_DELAY,
    CONF_VERIFICATION_TIMEOUT: DEFAULT_VERIFICATION_TIMEOUT,
}


class CannotConnect(Exception):
    """Exception raised when a connection to the device cannot be established."""


class InvalidHost(Exception):
    """Exception raised for an invalid controller address."""


async def validate_input(hass: HomeAssistant, data: dict[str, Any]) -> dict[str, str]:
    """Validate user input allows us to connect."""
    host = (data.get(CONF_IP_ADDRESS) or "").strip()
    if not is_valid_host(host):
        _LOGGER.debug("Invalid controller address: %s", host)
        raise InvalidHost("Invalid IP address or hostname.")

    client = ControllerClient(async_get_clientsession(hass), host, DEFAULT_COMMAND_TIMEOUT)
    _LOGGER.debug("Attempting to connect to Oelo controller at %s", client.status_url)
    result = await client.async_fetch_status()
    if not result.success:
        _LOGGER.warning("Failed to connect to Oelo controller at %s: %s", host, result.reason)
        raise CannotConnect(f"Could not read zone status from {host} ({result.reason})")

    _LOGGER.debug("Successfully connected to Oelo controller at %s (%d zones)", host, len(result.zones))
    return {"title": f"Oelo {host}", CONF_IP_ADDRESS: host}


STEP_USER_DATA_SCHEMA = vol.Schema({
    vol.Required(CONF_IP_ADDRESS): str,
})


class OeloLightsZoneConfigFlow(ConfigFlow, domain=DOMAIN):
    """Handle a config flow for Oelo Lights Zone."""

    VERSION = 1

    @staticmethod
    @callback
    def async_get_options_flow(config_entry: ConfigEntry) -> OptionsFlow:
        """Get the options flow for this handler."""
        return OeloLightsZoneOptionsFlow()

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Handle the initial step."""
        errors: dict[str, str] = {}

        if user_input is not None:
            try:
                info = await validate_input(self.hass, user_input)
            except InvalidHost:
                errors["base"] = "invalid_ip"
            except CannotConnect:
                errors["base"] = "cannot_connect"
            else:
                await self.async_set_unique_id(info[CONF_IP_ADDRESS], raise_on_progress=False)
                self._abort_if_unique_id_configured()
                return self.async_create_entry(
                    title=info["title"],
                    data={CONF_IP_ADDRESS: info[CONF_IP_ADDRESS]},
                    options=dict(DEFAULT_OPTIONS),
                )

        return self.async_show_form(
            step_id="user",
            data_schema=STEP_USER_DATA_SCHEMA,
            errors=errors,
        )

    async def async_step_reconfigure(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Allow reconfiguration of the controller address."""
        errors: dict[str, str] = {}
        config_entry = self._get_reconfigure_entry()

        if user_input is not None:
            try:
                info = await validate_input(self.hass, user_input)
            except InvalidHost:
                errors["base"] = "invalid_ip"
            except CannotConnect:
                errors["base"] = "cannot_connect"
            else:
                for entry in self._async_current_entries(include_ignore=False):
                    if entry.unique_id == info[CONF_IP_ADDRESS] and entry.entry_id != config_entry.entry_id:
                        errors["base"] = "reconfigure_failed_duplicate_ip"
                        break
                else:
                    _LOGGER.debug(
                        "Oelo controller address changed from %s to %s",
                        config_entry.data.get(CONF_IP_ADDRESS), info[CONF_IP_ADDRESS],
                    )
                    return self.async_update_reload_and_abort(
                        config_entry,
                        unique_id=info[CONF_IP_ADDRESS],
                        data={**config_entry.data, CONF_IP_ADDRESS: info[CONF_IP_ADDRESS]},
                        reason="reconfigure_successful",
                    )

        return self.async_show_form(
            step_id="reconfigure",
            data_schema=vol.Schema({
                vol.Required(CONF_IP_ADDRESS, default=config_entry.data.get(CONF_IP_ADDRESS)): str,
            }),
            errors=errors,
        )


class OeloLightsZoneOptionsFlow(OptionsFlow):
    """Handle options flow for Oelo Lights Zone."""

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Manage the options."""
        options = self.config_entry.options
        errors: dict[str, str] = {}

        if user_input is not None:
            try:
                user_input[CONF_ZONES] = parse_zones(user_input.get(CONF_ZONES) or [])
            except ConfigurationError:
                errors[CONF_ZONES] = "invalid_zones"
            if not errors and not user_input[CONF_ZONES]:
                errors[CONF_ZONES] = "no_zones"

            if not errors:
                spotlight_lights_raw = user_input.get(CONF_SPOTLIGHT_PLAN_LIGHTS)
                if spotlight_lights_raw:
                    max_leds = user_input.get(CONF_MAX_LEDS, options.get(CONF_MAX_LEDS, DEFAULT_MAX_LEDS))
                    user_input[CONF_SPOTLIGHT_PLAN_LIGHTS] = normalize_led_indices(spotlight_lights_raw, max_leds)
                return self.async_create_entry(title="", data=user_input)

        current_zones = options.get(CONF_ZONES, DEFAULT_ZONES)
        try:
            zone_defaults = [str(z) for z in parse_zones(current_zones)]
        except ConfigurationError:
            zone_defaults = [str(z) for z in DEFAULT_ZONES]

        data_schema = vol.Schema({
            vol.Optional(
                CONF_ZONES,
                default=zone_defaults,
            ): cv.multi_select({str(i): f"Zone {i}" for i in range(MIN_ZONE, MAX_ZONE + 1)}),
            vol.Optional(
                CONF_POLL_INTERVAL,
                default=options.get(CONF_POLL_INTERVAL, DEFAULT_POLL_INTERVAL),
            ): vol.All(vol.Coerce(int), vol.Range(min=10, max=3600)),
            vol.Optional(
                CONF_AUTO_POLL,
                default=options.get(CONF_AUTO_POLL, DEFAULT_AUTO_POLL),
            ): bool,
            vol.Optional(
                CONF_COMMAND_TIMEOUT,
                default=options.get(CONF_COMMAND_TIMEOUT, DEFAULT_COMMAND_TIMEOUT),
            ): vol.All(vol.Coerce(int), vol.Range(min=5, max=30)),
            vol.Optional(
                CONF_DEBUG_LOGGING,
                default=options.get(CONF_DEBUG_LOGGING, DEFAULT_DEBUG_LOGGING),
            ): bool,
            vol.Optional(
                CONF_MAX_LEDS,
                default=options.get(CONF_MAX_LEDS, DEFAULT_MAX_LEDS),
            ): vol.All(vol.Coerce(int), vol.Range(min=1, max=500)),
            vol.Optional(
                CONF_SPOTLIGHT_PLAN_LIGHTS,
                default=options.get(CONF_SPOTLIGHT_PLAN_LIGHTS, DEFAULT_SPOTLIGHT_PLAN_LIGHTS),
            ): str,
            vol.Optional(
                CONF_VERIFY_COMMANDS,
                default=options.get(CONF_VERIFY_COMMANDS, DEFAULT_VERIFY_COMMANDS),
            ): bool,
            vol.Optional(
                CONF_VERIFICATION_RETRIES,
                default=options.get(CONF_VERIFICATION_RETRIES, DEFAULT_VERIFICATION_RETRIES),
            ): vol.All(vol.Coerce(int), vol.Range(min=1, max=10)),
            vol.Optional(
                CONF_VERIFICATION_DELAY,
                default=options.get(CONF_VERIFICATION_DELAY, DEFAULT_VERIFICATION_DELAY),
            ): vol.All(vol.Coerce(int), vol.Range(min=1, max=10)),
            vol.Optional(
                CONF_VERIFICATION_TIMEOUT,
                default=options.get(CONF_VERIFICATION_TIMEOUT, DEFAULT_VERIFICATION_TIMEOUT),
            ): vol.All(vol.Coerce(int), vol.Range(min=10, max=120)),
        })

        return self.async_show_form(step_id="init", data_schema=data_schema, errors=errors)
