"""HTTP client for the Oelo controller.

Protocol:
    GET http://{IP}/getController - Returns zone statuses (JSON array)
    GET http://{IP}/setPattern?patternType={type}&zones={zone}&... - Sets pattern

The client is stateless apart from its address and timeout and never retries:
every call returns a result object carrying either data or a FailureReason.
"""

from __future__ import annotations
import asyncio
import json
import logging
import socket
from dataclasses import dataclass, field
from typing import Any, Mapping

import aiohttp
import async_timeout

from .const import COMMAND_ACK_TEXT, DEFAULT_COMMAND_TIMEOUT, PATTERN_OFF, STATUS_PATH
from .errors import FailureReason
from .pattern_utils import build_command_url, to_int

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ZoneRecord:
    """One zone entry of the getController payload."""

    num: Any
    pattern: str = PATTERN_OFF
    is_on: bool | None = None
    direction: Any = None
    speed: Any = None
    number_of_colors: Any = None
    color_str: str = ""
    gap: Any = None
    other: Any = None
    led_count: Any = None
    name: str | None = None
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_raw(cls, data: Mapping[str, Any]) -> ZoneRecord:
        """Build a record from a decoded JSON object."""
        pattern = data.get("pattern") or data.get("patternType") or PATTERN_OFF
        is_on = data.get("isOn")
        number_of_colors = data.get("numberOfColors", data.get("num_colors"))
        color_str = data.get("colorStr")
        if not color_str and "colors" in data:
            color_str = str(data["colors"]).replace(",", "&")
        return cls(
            num=data.get("num"),
            pattern=str(pattern),
            is_on=bool(is_on) if is_on is not None else None,
            direction=data.get("direction"),
            speed=data.get("speed"),
            number_of_colors=number_of_colors,
            color_str=str(color_str or ""),
            gap=data.get("gap"),
            other=data.get("other"),
            led_count=data.get("ledCnt"),
            name=data.get("name"),
            raw=dict(data),
        )

    def matches_zone(self, zone: int | str) -> bool:
        """Match by numeric or string-coerced equality."""
        if self.num is None:
            return False
        return self.num == zone or str(self.num).strip() == str(zone).strip()

    @property
    def is_off(self) -> bool:
        """Return True when the controller reports no running pattern."""
        return self.pattern == PATTERN_OFF or not self.pattern.strip()

    @property
    def switched_on(self) -> bool:
        """Return the on/off state, trusting isOn only for running patterns."""
        if self.is_off:
            return False
        return self.is_on if self.is_on is not None else True


def decode_status(payload: Any) -> list[ZoneRecord]:
    """Normalize a getController payload into zone records.

    The controller answers with either a JSON array or a JSON string that
    itself holds the array; bytes/str input is decoded until a list remains.
    Raises ValueError when the payload is not a list of zone objects.
    """
    for _ in range(3):
        if isinstance(payload, (bytes, bytearray)):
            payload = payload.decode("utf-8")
        if not isinstance(payload, str):
            break
        payload = json.loads(payload)

    if not isinstance(payload, list):
        raise ValueError(f"Controller did not return a list: {str(payload)[:200]}")

    records = []
    for item in payload:
        if not isinstance(item, Mapping):
            raise ValueError(f"Unexpected zone entry: {str(item)[:200]}")
        records.append(ZoneRecord.from_raw(item))
    return records


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a setPattern request."""

    success: bool
    reason: FailureReason | None = None
    status: int | None = None
    body: str = ""


@dataclass(frozen=True)
class StatusResult:
    """Outcome of a getController request."""

    zones: list[ZoneRecord] | None = None
    reason: FailureReason | None = None

    @property
    def success(self) -> bool:
        return self.zones is not None

    def find_zone(self, zone: int | str) -> ZoneRecord | None:
        """Return the record for a zone, if present."""
        for record in self.zones or []:
            if record.matches_zone(zone):
                return record
        return None


def classify_transport_error(err: BaseException) -> FailureReason:
    """Map a network exception onto a transport FailureReason."""
    if isinstance(err, asyncio.TimeoutError):
        return FailureReason.TIMEOUT
    candidates = [err, getattr(err, "os_error", None), err.__cause__]
    for candidate in candidates:
        if isinstance(candidate, socket.gaierror):
            return FailureReason.HOST_UNRESOLVED
        if isinstance(candidate, ConnectionRefusedError):
            return FailureReason.CONNECTION_REFUSED
    if isinstance(err, getattr(aiohttp, "ClientConnectorDNSError", ())):
        return FailureReason.HOST_UNRESOLVED
    return FailureReason.CONNECTION_ERROR


class ControllerClient:
    """Sends commands to and reads status from one Oelo controller."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        ip_address: str,
        timeout: float = DEFAULT_COMMAND_TIMEOUT,
    ) -> None:
        self.session = session
        self.ip_address = ip_address
        self.timeout = timeout

    @property
    def status_url(self) -> str:
        return f"http://{self.ip_address}/{STATUS_PATH}"

    def build_command_url(self, params: Mapping[str, Any]) -> str:
        """Render setPattern parameters into a URL for this controller."""
        return build_command_url(self.ip_address, params)

    async def async_send_command(self, url: str) -> CommandResult:
        """Send a setPattern command and check for the acknowledgment text."""
        _LOGGER.debug("Sending command: %s", url)
        try:
            async with async_timeout.timeout(self.timeout):
                async with self.session.get(url) as response:
                    status = response.status
                    text = await response.text(errors="replace")
        except (asyncio.TimeoutError, aiohttp.ClientError, OSError) as err:
            reason = classify_transport_error(err)
            _LOGGER.error("Command failed (%s): %s (%s)", reason, err, url)
            return CommandResult(False, reason)

        if status != 200:
            _LOGGER.error("Command failed with HTTP status %d: '%s'", status, text.strip()[:100])
            return CommandResult(False, FailureReason.HTTP_STATUS, status, text)

        if COMMAND_ACK_TEXT not in text:
            _LOGGER.warning("Command not acknowledged (Status: %d, Resp: '%s')", status, text.strip()[:100])
            return CommandResult(False, FailureReason.NO_ACKNOWLEDGMENT, status, text)

        _LOGGER.debug("Command OK (Status: %d, Resp: '%s')", status, text.strip()[:50])
        return CommandResult(True, None, status, text)

    async def async_fetch_status(self) -> StatusResult:
        """Fetch and decode the status of every zone."""
        url = self.status_url
        _LOGGER.debug("Fetching zone data: %s", url)
        try:
            async with async_timeout.timeout(self.timeout):
                async with self.session.get(url) as response:
                    status = response.status
                    if status != 200:
                        text = await response.text(errors="replace")
                        _LOGGER.error(
                            "Fetch zone data failed with HTTP status %d: '%s'",
                            status, text.strip()[:100],
                        )
                        return StatusResult(None, FailureReason.HTTP_STATUS)
                    payload = await response.json(content_type=None)
        except (asyncio.TimeoutError, aiohttp.ClientError, OSError) as err:
            reason = classify_transport_error(err)
            _LOGGER.error("Fetch zone data failed (%s): %s (%s)", reason, err, url)
            return StatusResult(None, reason)
        except ValueError as err:
            _LOGGER.error("Invalid JSON from controller at %s: %s", self.ip_address, err)
            return StatusResult(None, FailureReason.MALFORMED_PAYLOAD)

        try:
            zones = decode_status(payload)
        except ValueError as err:
            _LOGGER.error("Malformed zone data from %s: %s", self.ip_address, err)
            return StatusResult(None, FailureReason.MALFORMED_PAYLOAD)

        _LOGGER.debug("Fetched %d zone records from %s", len(zones), self.ip_address)
        return StatusResult(zones)
