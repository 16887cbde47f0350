"""Error types for the Oelo Lights Zone integration.

Transport and protocol failures of the controller API are not raised: they
travel as a ``FailureReason`` on the client's result objects so the owning
loop (poller or verification) can decide whether to retry. Everything the
caller must handle synchronously derives from ``OeloError``.
"""

from __future__ import annotations

from enum import StrEnum


class FailureReason(StrEnum):
    """Why a controller request did not succeed."""

    TIMEOUT = "timeout"
    CONNECTION_REFUSED = "connection_refused"
    HOST_UNRESOLVED = "host_unresolved"
    CONNECTION_ERROR = "connection_error"
    HTTP_STATUS = "http_status"
    NO_ACKNOWLEDGMENT = "no_acknowledgment"
    MALFORMED_PAYLOAD = "malformed_payload"

    @property
    def is_transport(self) -> bool:
        """Return True for network level failures."""
        return self in _TRANSPORT_REASONS


_TRANSPORT_REASONS = frozenset(
    {
        FailureReason.TIMEOUT,
        FailureReason.CONNECTION_REFUSED,
        FailureReason.HOST_UNRESOLVED,
        FailureReason.CONNECTION_ERROR,
    }
)


class OeloError(Exception):
    """Base class for Oelo Lights Zone errors."""


class ConfigurationError(OeloError):
    """Raised when the controller address or zone settings are invalid."""


class CaptureError(OeloError):
    """Raised when the current controller pattern cannot be captured."""

    DEVICE_OFF = "device_off"
    STORE_FULL = "store_full"
    UNAVAILABLE = "unavailable"
    INVALID_PATTERN = "invalid_pattern"

    def __init__(self, reason: str, message: str | None = None) -> None:
        self.reason = reason
        super().__init__(message or reason)


class PatternNotFound(OeloError):
    """Raised when no stored or catalog pattern has the requested name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Pattern '{name}' not found")


class NameCollision(OeloError):
    """Raised when a rename targets a name held by another pattern."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Pattern name '{name}' already exists")
