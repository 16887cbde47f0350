"""Test helpers: fakes for the controller, its HTTP session and the scheduler.

Usage:
    from test_helpers import FakeClient, FakeScheduler, status, zone_record

    client = FakeClient(status(zone_record(1, "march")))
    scheduler = FakeScheduler()
    await scheduler.run_all()

FakeScheduler never starts real timers: jobs run when a test calls
``run_next``/``run_all``/``advance`` and its manual clock doubles as the
verification clock.
"""

from __future__ import annotations
import json
from typing import Any

from custom_components.oelo_lights_zone.client import (
    CommandResult,
    StatusResult,
    ZoneRecord,
)
from custom_components.oelo_lights_zone.const import COMMAND_ACK_TEXT
from custom_components.oelo_lights_zone.errors import FailureReason
from custom_components.oelo_lights_zone.pattern_utils import build_command_url

CONTROLLER_IP = "10.16.52.41"


def zone_record(num: Any = 1, pattern: str = "off", **fields: Any) -> ZoneRecord:
    """Build a ZoneRecord the way the controller reports it."""
    return ZoneRecord.from_raw({"num": num, "pattern": pattern, **fields})


def status(*records: ZoneRecord) -> StatusResult:
    return StatusResult(list(records))


def failed_status(reason: FailureReason = FailureReason.TIMEOUT) -> StatusResult:
    return StatusResult(None, reason)


class FakeScheduler:
    """Scheduler with a manual clock; jobs run only when the test says so."""

    def __init__(self) -> None:
        self.now = 0.0
        self.calls: list[tuple[float, Any]] = []
        self._jobs: list[dict[str, Any]] = []

    def clock(self) -> float:
        return self.now

    def __call__(self, delay, job):
        entry = {"due": self.now + delay, "delay": delay, "job": job, "cancelled": False}
        self._jobs.append(entry)
        self.calls.append((delay, job))

        def _cancel() -> None:
            entry["cancelled"] = True

        return _cancel

    @property
    def pending(self) -> list[dict[str, Any]]:
        return [job for job in self._jobs if not job["cancelled"]]

    async def run_next(self) -> bool:
        """Advance the clock to the next job and run it."""
        pending = sorted(self.pending, key=lambda job: job["due"])
        if not pending:
            return False
        entry = pending[0]
        self._jobs.remove(entry)
        self.now = max(self.now, entry["due"])
        await entry["job"]()
        return True

    async def run_all(self, limit: int = 50) -> int:
        ran = 0
        while ran < limit and await self.run_next():
            ran += 1
        return ran

    async def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while self.pending and min(job["due"] for job in self.pending) <= target:
            await self.run_next()
        self.now = target


class FakeClient:
    """Stands in for ControllerClient.

    Status results are returned in order; the last one repeats.
    """

    def __init__(self, *results: StatusResult, ip_address: str = CONTROLLER_IP) -> None:
        self.ip_address = ip_address
        self.results = list(results) or [status()]
        self.command_result = CommandResult(True, None, 200, COMMAND_ACK_TEXT)
        self.sent_urls: list[str] = []
        self.fetch_count = 0
        self.on_fetch = None

    def build_command_url(self, params):
        return build_command_url(self.ip_address, params)

    async def async_send_command(self, url: str) -> CommandResult:
        self.sent_urls.append(url)
        return self.command_result

    async def async_fetch_status(self) -> StatusResult:
        self.fetch_count += 1
        if self.on_fetch is not None:
            self.on_fetch()
        if len(self.results) > 1:
            return self.results.pop(0)
        return self.results[0]


class FakeResponse:
    """Minimal aiohttp response for ControllerClient tests."""

    def __init__(
        self, status: int = 200, text: str = "", json_data: Any = None, body: bytes | None = None
    ) -> None:
        self.status = status
        self._text = text
        self._json = json_data
        self._body = body

    async def text(self, encoding: str | None = None, errors: str = "strict") -> str:
        if self._body is not None:
            return self._body.decode(encoding or "utf-8", errors)
        return self._text

    async def json(self, content_type=None) -> Any:
        if self._json is not None:
            return self._json
        return json.loads(self._text)

    async def __aenter__(self) -> FakeResponse:
        return self

    async def __aexit__(self, *exc_info) -> bool:
        return False


class FakeSession:
    """Minimal aiohttp session returning one response or raising one error."""

    def __init__(self, response: FakeResponse | None = None, error: BaseException | None = None) -> None:
        self.response = response
        self.error = error
        self.requested: list[str] = []

    def get(self, url: str) -> FakeResponse:
        self.requested.append(url)
        if self.error is not None:
            raise self.error
        return self.response


