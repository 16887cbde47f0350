"""Captured pattern store for one zone.

Patterns are kept in a bounded, ordered slot list (MAX_PATTERNS slots). A
pattern's ID is derived from the controller fields that define it, so
capturing the same effect twice refreshes the existing entry instead of
creating a duplicate. Names start out equal to the ID and can be renamed.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Iterator

from .client import ZoneRecord
from .const import MAX_PATTERNS, PLAN_NON_SPOTLIGHT, PLAN_SPOTLIGHT, PLAN_STRING_WARN_LENGTH
from .errors import CaptureError, NameCollision, PatternNotFound
from .pattern_utils import (
    build_command_params,
    generate_pattern_id,
    identify_plan_type,
    parse_color_str,
    validate_command_params,
)

_LOGGER = logging.getLogger(__name__)


@dataclass
class Pattern:
    """A captured, reusable controller pattern."""

    id: str
    name: str
    command_params: dict[str, str]
    plan_type: str = PLAN_NON_SPOTLIGHT
    original_colors: str | None = None

    @property
    def pattern_type(self) -> str:
        return self.command_params.get("patternType", "")

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "command_params": dict(self.command_params),
            "plan_type": self.plan_type,
            "original_colors": self.original_colors,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Pattern:
        params = {str(k): str(v) for k, v in (data.get("command_params") or {}).items()}
        return cls(
            id=data["id"],
            name=data.get("name") or data["id"],
            command_params=params,
            plan_type=data.get("plan_type") or identify_plan_type(params.get("patternType")),
            original_colors=data.get("original_colors"),
        )


def pattern_from_record(record: ZoneRecord, zone: int) -> Pattern:
    """Build a Pattern from a zone record.

    Raises CaptureError(DEVICE_OFF) when the zone is off.
    """
    if record.is_off or not record.switched_on:
        raise CaptureError(CaptureError.DEVICE_OFF, f"Zone {zone} is off, nothing to capture")

    colors = parse_color_str(record.color_str)
    params = build_command_params(
        record.pattern,
        zone,
        colors=colors,
        direction=record.direction,
        speed=record.speed,
        gap=record.gap,
        other=record.other,
    )
    pattern_id = generate_pattern_id(
        record.pattern, record.direction, record.speed, record.number_of_colors
    )
    plan_type = identify_plan_type(record.pattern)
    return Pattern(
        id=pattern_id,
        name=pattern_id,
        command_params=params,
        plan_type=plan_type,
        original_colors=colors if plan_type == PLAN_SPOTLIGHT else None,
    )


class PatternStore:
    """Bounded, ordered collection of captured patterns."""

    def __init__(self, capacity: int = MAX_PATTERNS) -> None:
        self.capacity = capacity
        self._slots: list[Pattern | None] = []
        self.last_captured_name: str | None = None

    def __len__(self) -> int:
        return sum(1 for p in self._slots if p is not None)

    def __iter__(self) -> Iterator[Pattern]:
        return (p for p in self._slots if p is not None)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self._index_of(name=name) >= 0

    @property
    def is_full(self) -> bool:
        return self._first_free_slot() < 0

    def _first_free_slot(self) -> int:
        for i in range(self.capacity):
            if i >= len(self._slots) or self._slots[i] is None:
                return i
        return -1

    def _compact(self) -> None:
        self._slots = [p for p in self._slots if p is not None]

    def _index_of(self, *, pattern_id: str | None = None, name: str | None = None) -> int:
        for i, pattern in enumerate(self._slots):
            if pattern is None:
                continue
            if pattern_id is not None and pattern.id == pattern_id:
                return i
            if name is not None and pattern.name == name:
                return i
        return -1

    def capture(self, record: ZoneRecord, zone: int) -> Pattern:
        """Capture the pattern running in a zone record.

        Raises CaptureError with DEVICE_OFF, INVALID_PATTERN or STORE_FULL.
        """
        pattern = pattern_from_record(record, zone)
        if not validate_command_params(pattern.command_params):
            _LOGGER.error("Zone %s: Refusing to store invalid pattern '%s'", zone, pattern.id)
            raise CaptureError(
                CaptureError.INVALID_PATTERN,
                f"Zone {zone} reports a pattern the controller would not accept",
            )
        query_length = sum(len(k) + len(v) + 2 for k, v in pattern.command_params.items())
        if query_length >= PLAN_STRING_WARN_LENGTH:
            _LOGGER.warning(
                "Plan '%s' received at full length (%d chars), it may be truncated",
                pattern.id, query_length,
            )
        return self.upsert(pattern)

    def upsert(self, pattern: Pattern) -> Pattern:
        """Insert a pattern or refresh the entry holding its ID.

        An existing entry keeps its name; only its parameters are replaced.
        """
        index = self._index_of(pattern_id=pattern.id)
        if index >= 0:
            existing = self._slots[index]
            existing.command_params = dict(pattern.command_params)
            existing.plan_type = pattern.plan_type
            existing.original_colors = pattern.original_colors
            self.last_captured_name = existing.name
            _LOGGER.info("Updated existing pattern '%s' (ID: %s)", existing.name, existing.id)
            self._compact()
            return existing

        slot = self._first_free_slot()
        if slot < 0:
            _LOGGER.warning("Pattern limit reached (%d), cannot add '%s'", self.capacity, pattern.id)
            raise CaptureError(
                CaptureError.STORE_FULL,
                f"No empty pattern slots (maximum {self.capacity} patterns)",
            )

        if slot >= len(self._slots):
            self._slots.append(pattern)
        else:
            self._slots[slot] = pattern
        self._compact()
        self.last_captured_name = pattern.name
        _LOGGER.info("Stored new pattern '%s' (ID: %s) in slot %d", pattern.name, pattern.id, slot + 1)
        return pattern

    def get(self, name: str) -> Pattern | None:
        index = self._index_of(name=name)
        return self._slots[index] if index >= 0 else None

    def get_by_id(self, pattern_id: str) -> Pattern | None:
        index = self._index_of(pattern_id=pattern_id)
        return self._slots[index] if index >= 0 else None

    def resolve(self, name: str) -> dict[str, str]:
        """Return a copy of the command parameters stored under name."""
        pattern = self.get(name)
        if pattern is None:
            raise PatternNotFound(name)
        return dict(pattern.command_params)

    def rename(self, old_name: str, new_name: str) -> Pattern:
        """Rename a pattern. The ID never changes."""
        new_name = new_name.strip()
        pattern = self.get(old_name)
        if pattern is None:
            raise PatternNotFound(old_name)
        if pattern.name == new_name:
            return pattern
        holder = self.get(new_name)
        if holder is not None and holder is not pattern:
            raise NameCollision(new_name)

        pattern.name = new_name
        if self.last_captured_name == old_name:
            self.last_captured_name = new_name
        self._compact()
        _LOGGER.info("Renamed pattern '%s' to '%s'", old_name, new_name)
        return pattern

    def delete(self, name: str) -> Pattern:
        """Delete a pattern and compact the slot list."""
        index = self._index_of(name=name)
        if index < 0:
            raise PatternNotFound(name)
        pattern = self._slots.pop(index)
        while self._slots and self._slots[-1] is None:
            self._slots.pop()
        self._compact()
        if self.last_captured_name == name:
            self.last_captured_name = None
        _LOGGER.info("Deleted pattern '%s' and compacted list", name)
        return pattern

    def list_names(self) -> list[str]:
        """Return pattern names in slot order."""
        return [p.name for p in self]

    def find_effect_name(self, pattern_type: str) -> str | None:
        """Return the first stored name whose pattern type matches."""
        for pattern in self:
            if pattern.pattern_type == pattern_type:
                return pattern.name
        return None

    def as_dict(self) -> dict[str, Any]:
        return {
            "patterns": [p.as_dict() for p in self],
            "last_captured_name": self.last_captured_name,
        }

    def load(self, data: dict[str, Any] | None) -> None:
        """Replace the contents with previously saved data."""
        patterns: list[Pattern | None] = []
        seen: set[str] = set()
        for item in (data or {}).get("patterns") or []:
            if not item or not item.get("id") or item["id"] in seen:
                continue
            if len(patterns) >= self.capacity:
                _LOGGER.warning("Ignoring saved patterns beyond the %d slot limit", self.capacity)
                break
            seen.add(item["id"])
            patterns.append(Pattern.from_dict(item))
        self._slots = patterns
        self.last_captured_name = (data or {}).get("last_captured_name")
