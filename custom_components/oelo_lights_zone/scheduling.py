"""Timer scheduling for the zone engine.

The poller and the verification session never sleep: they hand a delay and a
coroutine function to a ``Scheduler`` and get back a callable that cancels
the pending run. Inside Home Assistant this is ``async_call_later``.
"""

from __future__ import annotations
import logging
from typing import Awaitable, Callable

from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.event import async_call_later

_LOGGER = logging.getLogger(__name__)

Job = Callable[[], Awaitable[None]]
Cancel = Callable[[], None]
Scheduler = Callable[[float, Job], Cancel]


class HassScheduler:
    """Scheduler backed by the Home Assistant event loop."""

    def __init__(self, hass: HomeAssistant, name: str = "oelo") -> None:
        self.hass = hass
        self.name = name
        self._pending: dict[int, Cancel] = {}
        self._next_handle = 0

    def __call__(self, delay: float, job: Job) -> Cancel:
        handle = self._next_handle
        self._next_handle += 1

        @callback
        def _fire(_now) -> None:
            self._pending.pop(handle, None)
            self.hass.async_create_task(job(), f"{self.name} scheduled job")

        self._pending[handle] = async_call_later(self.hass, max(delay, 0), _fire)

        @callback
        def _cancel() -> None:
            unsub = self._pending.pop(handle, None)
            if unsub is not None:
                unsub()

        return _cancel

    @callback
    def shutdown(self) -> None:
        """Cancel every pending timer."""
        if self._pending:
            _LOGGER.debug("%s: cancelling %d pending timers", self.name, len(self._pending))
        for unsub in list(self._pending.values()):
            unsub()
        self._pending.clear()
