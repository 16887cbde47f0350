"""Per-zone controller.

Wires the client, pattern store, catalog, poller and verifier of one zone
together and owns the zone's observable state. Observers register with
``async_add_listener`` and are called after every state change.

State writes:
- poll ticks and manual refreshes publish the controller's record
- a verified command publishes the record it was verified against
- with verification off, a sent command publishes an optimistic placeholder
"""

from __future__ import annotations
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

from .catalog import PatternCatalog
from .client import ControllerClient, StatusResult, ZoneRecord
from .config import ZoneConfig
from .const import PATTERN_CUSTOM, PATTERN_OFF, PLAN_SPOTLIGHT
from .errors import CaptureError, PatternNotFound
from .pattern_store import Pattern, PatternStore
from .pattern_utils import (
    count_color_triplets,
    custom_color_params,
    modify_spotlight_plan_colors,
    off_command_params,
    scale_colors,
    validate_command_params,
)
from .poller import ZonePoller
from .scheduling import Scheduler
from .verification import CommandVerifier, VerificationSession, VerificationStatus

_LOGGER = logging.getLogger(__name__)

SWITCH_ON = "on"
SWITCH_OFF = "off"


@dataclass
class ZoneObservableState:
    """What the host sees for a zone."""

    switch_state: str = SWITCH_OFF
    current_pattern: str = PATTERN_OFF
    effect_name: str = ""
    verification_status: VerificationStatus | None = None
    last_command: str | None = None
    available: bool = True

    @property
    def is_on(self) -> bool:
        return self.switch_state == SWITCH_ON

    def as_attributes(self) -> dict[str, Any]:
        return {
            "switch_state": self.switch_state,
            "current_pattern": self.current_pattern,
            "effect_name": self.effect_name,
            "verification_status": str(self.verification_status) if self.verification_status else None,
            "last_command": self.last_command,
        }


class ZoneController:
    """Commands, captures and observable state for one zone."""

    def __init__(
        self,
        config: ZoneConfig,
        client: ControllerClient,
        catalog: PatternCatalog,
        scheduler: Scheduler,
        store: PatternStore | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        on_patterns_changed: Callable[[ZoneController], None] | None = None,
    ) -> None:
        self.config = config
        self.zone = config.zone
        self.client = client
        self.catalog = catalog
        self.store = store if store is not None else PatternStore()
        self.on_patterns_changed = on_patterns_changed
        self.state = ZoneObservableState()
        self.last_used_pattern: str | None = None
        self._listeners: list[Callable[[], None]] = []
        self.log_prefix = f"Zone {self.zone}"

        self.poller = ZonePoller(
            client,
            self.zone,
            scheduler,
            self.update_from_record,
            interval=config.poll_interval,
            on_unavailable=self._handle_unavailable,
        )
        self.verifier: CommandVerifier | None = None
        if config.verify_commands:
            self.verifier = CommandVerifier(
                client,
                self.zone,
                scheduler,
                max_retries=config.verification_retries,
                delay=config.verification_delay,
                timeout=config.verification_timeout,
                clock=clock,
                on_verified=self.update_from_record,
                on_status=self._handle_verification_status,
            )

    # Lifecycle

    async def async_start(self) -> None:
        """Start polling (when enabled) and load the initial state."""
        logging.getLogger(__package__).setLevel(
            logging.DEBUG if self.config.debug_logging else logging.NOTSET
        )
        _LOGGER.info(
            "%s: Starting (controller %s, auto poll %s, verify %s)",
            self.log_prefix, self.config.ip_address, self.config.auto_poll, self.config.verify_commands,
        )
        if self.config.auto_poll:
            self.poller.start()
        await self.async_refresh()

    def stop(self) -> None:
        """Stop polling and drop any pending verification."""
        self.poller.stop()
        if self.verifier is not None:
            self.verifier.stop()
        _LOGGER.debug("%s: Stopped", self.log_prefix)

    def async_add_listener(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Register a state listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    def _patterns_changed(self) -> None:
        if self.on_patterns_changed is not None:
            self.on_patterns_changed(self)
        self._notify()

    # Observable state

    def find_effect_name(self, pattern_type: str) -> str:
        """Reverse lookup of a controller pattern type, store first."""
        return self.store.find_effect_name(pattern_type) or self.catalog.find_name_for_type(pattern_type) or ""

    def update_from_record(self, record: ZoneRecord) -> None:
        """Publish a controller record as the zone's state."""
        state = self.state
        is_on = record.switched_on
        if state.switch_state != (SWITCH_ON if is_on else SWITCH_OFF):
            _LOGGER.info(
                "%s: State change: %s -> %s (Pattern: '%s')",
                self.log_prefix, state.switch_state, SWITCH_ON if is_on else SWITCH_OFF, record.pattern,
            )
        state.switch_state = SWITCH_ON if is_on else SWITCH_OFF
        state.current_pattern = record.pattern
        if is_on and record.pattern not in (PATTERN_OFF, PATTERN_CUSTOM):
            state.effect_name = self.find_effect_name(record.pattern)
        else:
            state.effect_name = ""
        state.available = True
        self._notify()

    def _handle_unavailable(self, result: StatusResult) -> None:
        if self.state.available:
            _LOGGER.warning("%s: Controller unreachable (%s), marking unavailable", self.log_prefix, result.reason)
        self.state.available = False
        self._notify()

    def _handle_verification_status(self, session: VerificationSession) -> None:
        self.state.verification_status = session.status
        self._notify()

    def _apply_optimistic(self, params: dict[str, str], effect_name: str | None) -> None:
        pattern_type = params.get("patternType", "")
        state = self.state
        if pattern_type == PATTERN_OFF:
            state.switch_state = SWITCH_OFF
            state.effect_name = ""
        else:
            state.switch_state = SWITCH_ON
            if pattern_type == PATTERN_CUSTOM:
                state.effect_name = ""
            else:
                state.effect_name = effect_name or self.find_effect_name(pattern_type)
        state.current_pattern = pattern_type

    # Commands

    async def async_refresh(self) -> ZoneRecord | None:
        """Poll the controller once."""
        self.state.last_command = "refresh"
        return await self.poller.async_refresh()

    async def async_send_command(self, params: dict[str, str], effect_name: str | None = None) -> bool:
        """Send setPattern parameters to this zone.

        Returns True when the controller acknowledged the command.
        """
        url = self.client.build_command_url(params)
        result = await self.client.async_send_command(url)
        if not result.success:
            _LOGGER.error("%s: Command failed (%s)", self.log_prefix, result.reason)
            if self.verifier is not None:
                self.verifier.mark_error(url, result.reason)
            return False

        self.state.last_command = url
        if self.verifier is not None:
            self.verifier.start(url)
        else:
            self._apply_optimistic(params, effect_name)
        self._notify()
        return True

    def resolve_pattern(self, name: str) -> dict[str, str]:
        """Return this zone's command parameters for a pattern name.

        Captured patterns win over catalog entries of the same name. Raises
        PatternNotFound.
        """
        pattern = self.store.get(name)
        if pattern is not None:
            return self._pattern_params(pattern)
        params = self.catalog.command_params(name, self.zone)
        if params is None:
            raise PatternNotFound(name)
        return params

    def _pattern_params(self, pattern: Pattern) -> dict[str, str]:
        params = dict(pattern.command_params)
        params["zones"] = str(self.zone)
        params["num_zones"] = "1"
        lights = self.config.spotlight_plan_lights
        if pattern.plan_type == PLAN_SPOTLIGHT and lights:
            colors = modify_spotlight_plan_colors(
                pattern.original_colors or params.get("colors", ""), lights, self.config.max_leds
            )
            params["colors"] = colors
            params["num_colors"] = str(max(count_color_triplets(colors), 1))
        return params

    async def async_set_pattern(self, name: str) -> bool:
        """Apply a captured or catalog pattern by name."""
        params = self.resolve_pattern(name)
        if not validate_command_params(params):
            _LOGGER.error("%s: Pattern '%s' has invalid parameters, not sending", self.log_prefix, name)
            return False
        _LOGGER.debug("%s: Applying pattern '%s'", self.log_prefix, name)
        sent = await self.async_send_command(params, effect_name=name)
        if sent:
            self.last_used_pattern = name
        return sent

    async def async_turn_on(self) -> bool:
        """Turn the zone on with the last used pattern, else the first stored one."""
        name = self.last_used_pattern
        if name is not None and name not in self.store and name not in self.catalog:
            name = None
        if name is None:
            names = self.store.list_names()
            name = names[0] if names else None
        if name is None:
            _LOGGER.warning("%s: No pattern to turn on with, capture one first", self.log_prefix)
            return False
        return await self.async_set_pattern(name)

    async def async_turn_off(self) -> bool:
        """Switch the zone off."""
        return await self.async_send_command(off_command_params(self.zone))

    async def async_set_color(self, rgb: tuple[int, int, int], brightness: int = 255) -> bool:
        """Show a single solid color, scaled by brightness."""
        params = custom_color_params(self.zone, rgb)
        params["colors"] = scale_colors(params["colors"], brightness)
        return await self.async_send_command(params)

    # Pattern management

    async def async_capture(self) -> Pattern:
        """Capture the pattern the zone is currently running.

        Raises CaptureError (unavailable, device_off, invalid_pattern, store_full).
        """
        result = await self.client.async_fetch_status()
        if not result.success:
            raise CaptureError(CaptureError.UNAVAILABLE, f"Could not read controller status ({result.reason})")
        record = result.find_zone(self.zone)
        if record is None:
            raise CaptureError(CaptureError.UNAVAILABLE, f"Zone {self.zone} not found in controller status")

        self.update_from_record(record)
        pattern = self.store.capture(record, self.zone)
        self._patterns_changed()
        return pattern

    def rename_pattern(self, old_name: str, new_name: str) -> Pattern:
        """Rename a captured pattern. Raises PatternNotFound or NameCollision."""
        pattern = self.store.rename(old_name, new_name)
        if self.last_used_pattern == old_name:
            self.last_used_pattern = pattern.name
        if self.state.effect_name == old_name:
            self.state.effect_name = pattern.name
        self._patterns_changed()
        return pattern

    def delete_pattern(self, name: str) -> Pattern:
        """Delete a captured pattern. Raises PatternNotFound."""
        pattern = self.store.delete(name)
        if self.last_used_pattern == name:
            self.last_used_pattern = None
        self._patterns_changed()
        return pattern

    @property
    def pattern_names(self) -> list[str]:
        """Captured pattern names in slot order."""
        return self.store.list_names()

    @property
    def effect_list(self) -> list[str]:
        """Captured names followed by catalog names not shadowed by them."""
        names = self.store.list_names()
        taken = set(names)
        return names + [name for name in self.catalog.names() if name not in taken]
