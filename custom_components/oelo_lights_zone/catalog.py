"""Built-in pattern catalog.

The catalog is a read-only mapping of display names to setPattern query
templates, loaded from the packaged patterns.json resource. Templates carry a
``{zone}`` placeholder that is filled in when a pattern is applied.
"""

from __future__ import annotations
import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from .pattern_utils import parse_command_template, parse_url_params

_LOGGER = logging.getLogger(__name__)

CATALOG_FILE = Path(__file__).parent / "patterns.json"


class PatternCatalog:
    """Immutable name -> command template table."""

    def __init__(self, templates: Mapping[str, str]) -> None:
        self._templates = MappingProxyType(dict(templates))
        self._types = MappingProxyType(
            {name: parse_url_params(template).get("patternType", "") for name, template in templates.items()}
        )

    @classmethod
    def load(cls, path: Path = CATALOG_FILE) -> PatternCatalog:
        """Load the catalog from a JSON file (blocking I/O)."""
        with open(path, encoding="utf-8") as handle:
            data = json.load(handle)
        if not isinstance(data, dict):
            raise ValueError(f"Pattern catalog {path} must be a JSON object")
        _LOGGER.debug("Loaded %d catalog patterns from %s", len(data), path)
        return cls(data)

    def __contains__(self, name: object) -> bool:
        return name in self._templates

    def __len__(self) -> int:
        return len(self._templates)

    def names(self) -> list[str]:
        """Return catalog pattern names in sorted order."""
        return sorted(self._templates)

    def template(self, name: str) -> str | None:
        return self._templates.get(name)

    def command_params(self, name: str, zone: int) -> dict[str, str] | None:
        """Return command parameters for a catalog pattern on a zone."""
        template = self._templates.get(name)
        if template is None:
            return None
        params = parse_command_template(template, zone)
        return params or None

    def find_name_for_type(self, pattern_type: str) -> str | None:
        """Return the first catalog name whose template uses pattern_type."""
        for name in self.names():
            if self._types[name] == pattern_type:
                return name
        return None
