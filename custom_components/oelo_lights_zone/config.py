"""Per-zone settings built from a config entry's data and options."""

from __future__ import annotations
import ipaddress
import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping

import voluptuous as vol

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
    CONF_ZONE,
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
    MAX_ZONE,
    MIN_ZONE,
)
from .errors import ConfigurationError
from .pattern_utils import normalize_led_indices

_LOGGER = logging.getLogger(__name__)

_HOSTNAME_LABEL = re.compile(r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$")


def is_valid_host(value: Any) -> bool:
    """Return True for an IPv4/IPv6 address or a DNS hostname."""
    if not isinstance(value, str) or not value.strip():
        return False
    host = value.strip()
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        pass
    if len(host) > 253 or host.replace(".", "").isdigit():
        return False
    return all(_HOSTNAME_LABEL.match(label) for label in host.rstrip(".").split("."))


def _host(value: Any) -> str:
    if not is_valid_host(value):
        raise vol.Invalid(f"invalid controller address: {value!r}")
    return value.strip()


ZONE_CONFIG_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_IP_ADDRESS): _host,
        vol.Required(CONF_ZONE): vol.All(vol.Coerce(int), vol.Range(min=MIN_ZONE, max=MAX_ZONE)),
        vol.Optional(CONF_POLL_INTERVAL, default=DEFAULT_POLL_INTERVAL): vol.All(
            vol.Coerce(int), vol.Range(min=1)
        ),
        vol.Optional(CONF_AUTO_POLL, default=DEFAULT_AUTO_POLL): bool,
        vol.Optional(CONF_COMMAND_TIMEOUT, default=DEFAULT_COMMAND_TIMEOUT): vol.All(
            vol.Coerce(float), vol.Range(min=0, min_included=False)
        ),
        vol.Optional(CONF_DEBUG_LOGGING, default=DEFAULT_DEBUG_LOGGING): bool,
        vol.Optional(CONF_MAX_LEDS, default=DEFAULT_MAX_LEDS): vol.All(
            vol.Coerce(int), vol.Range(min=1, max=500)
        ),
        vol.Optional(CONF_SPOTLIGHT_PLAN_LIGHTS, default=DEFAULT_SPOTLIGHT_PLAN_LIGHTS): vol.Any(str, None),
        vol.Optional(CONF_VERIFY_COMMANDS, default=DEFAULT_VERIFY_COMMANDS): bool,
        vol.Optional(CONF_VERIFICATION_RETRIES, default=DEFAULT_VERIFICATION_RETRIES): vol.All(
            vol.Coerce(int), vol.Range(min=1)
        ),
        vol.Optional(CONF_VERIFICATION_DELAY, default=DEFAULT_VERIFICATION_DELAY): vol.All(
            vol.Coerce(float), vol.Range(min=0)
        ),
        vol.Optional(CONF_VERIFICATION_TIMEOUT, default=DEFAULT_VERIFICATION_TIMEOUT): vol.All(
            vol.Coerce(float), vol.Range(min=0, min_included=False)
        ),
    },
    extra=vol.REMOVE_EXTRA,
)


@dataclass(frozen=True)
class ZoneConfig:
    """Validated settings for one zone."""

    ip_address: str
    zone: int
    poll_interval: int = DEFAULT_POLL_INTERVAL
    auto_poll: bool = DEFAULT_AUTO_POLL
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT
    debug_logging: bool = DEFAULT_DEBUG_LOGGING
    max_leds: int = DEFAULT_MAX_LEDS
    spotlight_plan_lights: str = DEFAULT_SPOTLIGHT_PLAN_LIGHTS
    verify_commands: bool = DEFAULT_VERIFY_COMMANDS
    verification_retries: int = DEFAULT_VERIFICATION_RETRIES
    verification_delay: float = DEFAULT_VERIFICATION_DELAY
    verification_timeout: float = DEFAULT_VERIFICATION_TIMEOUT


def build_zone_config(data: Mapping[str, Any]) -> ZoneConfig:
    """Validate raw settings for one zone.

    Raises ConfigurationError naming the offending setting.
    """
    try:
        valid = ZONE_CONFIG_SCHEMA(dict(data))
    except vol.Invalid as err:
        raise ConfigurationError(f"Invalid zone configuration: {err}") from err

    lights = normalize_led_indices(valid[CONF_SPOTLIGHT_PLAN_LIGHTS] or "", valid[CONF_MAX_LEDS])
    return ZoneConfig(
        ip_address=valid[CONF_IP_ADDRESS],
        zone=valid[CONF_ZONE],
        poll_interval=valid[CONF_POLL_INTERVAL],
        auto_poll=valid[CONF_AUTO_POLL],
        command_timeout=valid[CONF_COMMAND_TIMEOUT],
        debug_logging=valid[CONF_DEBUG_LOGGING],
        max_leds=valid[CONF_MAX_LEDS],
        spotlight_plan_lights=lights,
        verify_commands=valid[CONF_VERIFY_COMMANDS],
        verification_retries=valid[CONF_VERIFICATION_RETRIES],
        verification_delay=valid[CONF_VERIFICATION_DELAY],
        verification_timeout=valid[CONF_VERIFICATION_TIMEOUT],
    )


def parse_zones(value: Any) -> list[int]:
    """Normalize the zones option into sorted, unique zone numbers.

    Raises ConfigurationError for zones outside 1-6.
    """
    if value is None:
        return list(DEFAULT_ZONES)
    if isinstance(value, (int, str)):
        value = [value]
    zones = set()
    for item in value:
        try:
            zone = int(str(item).strip())
        except ValueError as err:
            raise ConfigurationError(f"Invalid zone number: {item!r}") from err
        if not MIN_ZONE <= zone <= MAX_ZONE:
            raise ConfigurationError(f"Zone {zone} outside {MIN_ZONE}-{MAX_ZONE}")
        zones.add(zone)
    return sorted(zones)


def build_entry_zone_configs(data: Mapping[str, Any], options: Mapping[str, Any]) -> list[ZoneConfig]:
    """Build one ZoneConfig per configured zone of a config entry."""
    if not data.get(CONF_IP_ADDRESS):
        raise ConfigurationError("No controller address configured")
    settings = {**data, **options}
    zones = parse_zones(settings.pop(CONF_ZONES, None))
    configs = [build_zone_config({**settings, CONF_ZONE: zone}) for zone in zones]
    _LOGGER.debug("Built settings for zones %s at %s", zones, data.get(CONF_IP_ADDRESS))
    return configs
