"""Command verification for one zone.

After a command is sent the controller is polled until it reports the
expected state, the attempts run out, or the overall timeout elapses.

State machine::

    pending -> polling -> verified | failed | timeout
    (start)  -> skipped        command has no patternType or targets another zone
    (send)   -> error          the command itself could not be delivered

Only one session is active per zone. Every session carries a token and each
scheduled continuation compares it with the verifier's current token, both
when it resumes and again after every await. A continuation belonging to a
superseded session is dropped without touching state.
"""

from __future__ import annotations
import logging
import time
from dataclasses import dataclass
from enum import StrEnum
from typing import Callable

from .client import ControllerClient, ZoneRecord
from .const import (
    DEFAULT_VERIFICATION_DELAY,
    DEFAULT_VERIFICATION_RETRIES,
    DEFAULT_VERIFICATION_TIMEOUT,
    PATTERN_CUSTOM,
    PATTERN_OFF,
)
from .errors import FailureReason
from .pattern_utils import parse_url_params
from .scheduling import Cancel, Scheduler

_LOGGER = logging.getLogger(__name__)


class VerificationStatus(StrEnum):
    """Outcome of a verification session."""

    PENDING = "pending"
    POLLING = "polling"
    VERIFIED = "verified"
    FAILED = "failed"
    TIMEOUT = "timeout"
    SKIPPED = "skipped"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {
        VerificationStatus.VERIFIED,
        VerificationStatus.FAILED,
        VerificationStatus.TIMEOUT,
        VerificationStatus.SKIPPED,
        VerificationStatus.ERROR,
    }
)


@dataclass(frozen=True)
class ExpectedState:
    """What the zone should report once a command took effect."""

    pattern_type: str
    is_off: bool | None = None
    colors: str | None = None


@dataclass(frozen=True)
class ObservedState:
    """What the controller currently reports for the zone."""

    pattern: str
    is_off: bool

    @classmethod
    def from_record(cls, record: ZoneRecord) -> ObservedState:
        return cls(pattern=record.pattern, is_off=not record.switched_on)


def parse_command_expectation(command_url: str, zone: int) -> ExpectedState | None:
    """Derive the expected state from a setPattern URL.

    Returns None when the URL carries no patternType or when its zones
    selector does not include this zone.
    """
    params = parse_url_params(command_url)
    pattern_type = params.get("patternType", "").strip()
    if not pattern_type:
        return None

    zones = params.get("zones", "").strip()
    if zones:
        selected = {z.strip() for z in zones.split(",") if z.strip()}
        if str(zone) not in selected:
            return None

    return ExpectedState(
        pattern_type=pattern_type,
        is_off=pattern_type == PATTERN_OFF,
        colors=params.get("colors"),
    )


def matches_expected_state(expected: ExpectedState, observed: ObservedState) -> bool:
    """Compare observed and expected state.

    The controller does not echo the full pattern parameters back, so the
    comparison is approximate. When no rule decides, the result is a match.
    """
    if expected.is_off is not None and expected.is_off != observed.is_off:
        return False
    if expected.is_off:
        return True
    if expected.pattern_type == PATTERN_CUSTOM:
        return not observed.is_off
    if observed.pattern not in (PATTERN_OFF, PATTERN_CUSTOM):
        return True
    # Undetermined: optimistic default.
    return True


@dataclass
class VerificationSession:
    """State of one command's verification."""

    token: int
    command_url: str
    expected: ExpectedState | None
    started_at: float
    attempt: int = 0
    status: VerificationStatus = VerificationStatus.PENDING
    failure: FailureReason | None = None


class CommandVerifier:
    """Runs verification sessions for a single zone."""

    def __init__(
        self,
        client: ControllerClient,
        zone: int,
        scheduler: Scheduler,
        *,
        max_retries: int = DEFAULT_VERIFICATION_RETRIES,
        delay: float = DEFAULT_VERIFICATION_DELAY,
        timeout: float = DEFAULT_VERIFICATION_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
        on_verified: Callable[[ZoneRecord], None] | None = None,
        on_status: Callable[[VerificationSession], None] | None = None,
    ) -> None:
        self.client = client
        self.zone = zone
        self.scheduler = scheduler
        self.max_retries = max(int(max_retries), 1)
        self.delay = max(float(delay), 0)
        self.timeout = float(timeout)
        self.clock = clock
        self.on_verified = on_verified
        self.on_status = on_status
        self.session: VerificationSession | None = None
        self._token = 0
        self._cancel: Cancel | None = None
        self.log_prefix = f"Zone {zone}"

    @property
    def status(self) -> VerificationStatus | None:
        return self.session.status if self.session else None

    @property
    def active(self) -> bool:
        return self.session is not None and not self.session.status.is_terminal

    def start(self, command_url: str) -> VerificationSession:
        """Start verifying a command that was just acknowledged.

        Supersedes any running session. The first attempt is scheduled, not
        awaited, so this returns immediately.
        """
        session = self._new_session(command_url, parse_command_expectation(command_url, self.zone))
        if session.expected is None:
            _LOGGER.debug("%s: Verification skipped for %s", self.log_prefix, command_url)
            self._finish(session, VerificationStatus.SKIPPED)
            return session

        _LOGGER.debug(
            "%s: Verifying '%s' (%d attempts, %ss apart, %ss timeout)",
            self.log_prefix, session.expected.pattern_type,
            self.max_retries, self.delay, self.timeout,
        )
        self._publish(session)
        self._schedule(session, 0)
        return session

    def mark_error(self, command_url: str, reason: FailureReason | None = None) -> VerificationSession:
        """Record that a command could not be delivered."""
        session = self._new_session(command_url, None)
        session.failure = reason
        self._finish(session, VerificationStatus.ERROR)
        return session

    def stop(self) -> None:
        """Supersede the running session, if any, without a new outcome."""
        self._cancel_pending()
        self._token += 1

    def _new_session(self, command_url: str, expected: ExpectedState | None) -> VerificationSession:
        self._cancel_pending()
        self._token += 1
        self.session = VerificationSession(
            token=self._token,
            command_url=command_url,
            expected=expected,
            started_at=self.clock(),
        )
        return self.session

    def _cancel_pending(self) -> None:
        if self._cancel is not None:
            self._cancel()
            self._cancel = None

    def _is_current(self, session: VerificationSession) -> bool:
        return self.session is session and session.token == self._token

    def _timed_out(self, session: VerificationSession) -> bool:
        return self.clock() - session.started_at > self.timeout

    def _schedule(self, session: VerificationSession, delay: float) -> None:
        async def _resume() -> None:
            await self._async_attempt(session)

        self._cancel = self.scheduler(delay, _resume)

    def _publish(self, session: VerificationSession) -> None:
        if self.on_status is not None:
            self.on_status(session)

    def _finish(self, session: VerificationSession, status: VerificationStatus) -> None:
        session.status = status
        self._cancel = None
        if status == VerificationStatus.VERIFIED:
            _LOGGER.info("%s: Command verified on attempt %d", self.log_prefix, session.attempt)
        elif status in (VerificationStatus.FAILED, VerificationStatus.TIMEOUT):
            _LOGGER.warning(
                "%s: Verification %s after %d attempt(s) (%.1fs)",
                self.log_prefix, status, session.attempt, self.clock() - session.started_at,
            )
        elif status == VerificationStatus.ERROR:
            _LOGGER.warning("%s: Command failed (%s), not verifying", self.log_prefix, session.failure)
        self._publish(session)

    async def _async_attempt(self, session: VerificationSession) -> None:
        if not self._is_current(session):
            _LOGGER.debug("%s: Dropping stale verification continuation", self.log_prefix)
            return
        self._cancel = None

        if self._timed_out(session):
            self._finish(session, VerificationStatus.TIMEOUT)
            return

        session.attempt += 1
        session.status = VerificationStatus.POLLING
        self._publish(session)
        _LOGGER.debug("%s: Verification attempt %d/%d", self.log_prefix, session.attempt, self.max_retries)

        result = await self.client.async_fetch_status()
        if not self._is_current(session):
            _LOGGER.debug("%s: Session superseded during attempt %d", self.log_prefix, session.attempt)
            return

        record = result.find_zone(self.zone) if result.success else None
        if record is not None:
            observed = ObservedState.from_record(record)
            if matches_expected_state(session.expected, observed):
                if self.on_verified is not None:
                    self.on_verified(record)
                self._finish(session, VerificationStatus.VERIFIED)
                return
            _LOGGER.debug(
                "%s: State mismatch (expected %s, observed '%s')",
                self.log_prefix, session.expected, observed.pattern,
            )
        elif not result.success:
            session.failure = result.reason
            _LOGGER.debug("%s: Status fetch failed during verification (%s)", self.log_prefix, result.reason)
        else:
            _LOGGER.warning("%s: Zone not found in controller status", self.log_prefix)

        if session.attempt >= self.max_retries:
            self._finish(session, VerificationStatus.FAILED)
            return
        if self._timed_out(session):
            self._finish(session, VerificationStatus.TIMEOUT)
            return
        self._schedule(session, self.delay)
