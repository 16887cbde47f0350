"""Periodic zone status refresh."""

from __future__ import annotations
import logging
from typing import Callable

from .client import ControllerClient, StatusResult, ZoneRecord
from .const import DEFAULT_POLL_INTERVAL
from .scheduling import Cancel, Scheduler

_LOGGER = logging.getLogger(__name__)


class ZonePoller:
    """Self-rescheduling poll timer for one zone.

    Each tick fetches the controller status and hands this zone's record to
    ``on_record``. The next tick is scheduled whether or not the fetch
    worked; ``stop()`` bumps a generation counter so a tick that was already
    running when polling was disabled does not schedule another one.
    """

    def __init__(
        self,
        client: ControllerClient,
        zone: int,
        scheduler: Scheduler,
        on_record: Callable[[ZoneRecord], None],
        interval: float = DEFAULT_POLL_INTERVAL,
        on_unavailable: Callable[[StatusResult], None] | None = None,
    ) -> None:
        self.client = client
        self.zone = zone
        self.scheduler = scheduler
        self.on_record = on_record
        self.on_unavailable = on_unavailable
        self.interval = interval
        self._generation = 0
        self._enabled = False
        self._cancel: Cancel | None = None
        self.log_prefix = f"Zone {zone}"

    @property
    def enabled(self) -> bool:
        return self._enabled

    def start(self) -> None:
        """Enable polling; the first tick runs after one interval."""
        self.stop()
        self._enabled = True
        _LOGGER.debug("%s: Polling every %ss", self.log_prefix, self.interval)
        self._schedule(self._generation)

    def stop(self) -> None:
        """Disable polling and drop any pending tick."""
        self._generation += 1
        self._enabled = False
        if self._cancel is not None:
            self._cancel()
            self._cancel = None

    def set_interval(self, interval: float) -> None:
        """Change the interval, restarting the timer when polling is on."""
        self.interval = interval
        if self._enabled:
            self.start()

    def _schedule(self, generation: int) -> None:
        async def _tick() -> None:
            await self._async_tick(generation)

        self._cancel = self.scheduler(self.interval, _tick)

    async def _async_tick(self, generation: int) -> None:
        if generation != self._generation or not self._enabled:
            return
        self._cancel = None
        try:
            await self.async_refresh()
        finally:
            if generation == self._generation and self._enabled:
                self._schedule(generation)

    async def async_refresh(self) -> ZoneRecord | None:
        """Poll once and publish the zone's record when present."""
        result = await self.client.async_fetch_status()
        if not result.success:
            _LOGGER.warning("%s: Poll failed (%s), keeping previous state", self.log_prefix, result.reason)
            if self.on_unavailable is not None:
                self.on_unavailable(result)
            return None

        record = result.find_zone(self.zone)
        if record is None:
            _LOGGER.warning("%s: Zone not found in controller status", self.log_prefix)
            return None

        _LOGGER.debug("%s: Polled pattern '%s'", self.log_prefix, record.pattern)
        self.on_record(record)
        return record
