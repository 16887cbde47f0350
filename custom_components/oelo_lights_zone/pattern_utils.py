"""Pattern utility functions for Oelo Lights Zone integration.

Utilities: pattern ID generation, controller color string parsing, command
parameter building/parsing/validation, spotlight plan color reconstruction,
brightness scaling.

Spotlight Plan (CRITICAL): Controller returns only 40 LEDs, zones up to 500.
Capture: store original colors separately. Apply: reconstruct full array using
Spotlight Plan Lights config (only specified LEDs lit, others off).
"""

from __future__ import annotations
import logging
import urllib.parse
from typing import Any, Mapping

from .const import (
    COMMAND_PARAM_ORDER,
    COMMAND_PATH,
    DEFAULT_COLORS,
    DEFAULT_MAX_LEDS,
    MAX_ZONE,
    MIN_ZONE,
    PATTERN_CUSTOM,
    PATTERN_OFF,
    PATTERN_SPOTLIGHT,
    PLAN_NON_SPOTLIGHT,
    PLAN_SPOTLIGHT,
)

_LOGGER = logging.getLogger(__name__)


def to_int(value: Any, default: int = 0) -> int:
    """Convert a controller value to int, falling back to default."""
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return int(value)
    try:
        return int(str(value).strip())
    except (ValueError, TypeError):
        return default


def generate_pattern_id(
    pattern_type: str,
    direction: Any = None,
    speed: Any = None,
    num_colors: Any = None,
) -> str:
    """Generate a stable pattern ID from the controller's reported fields.

    Format: {patternType}[_dir{direction}][_spd{speed}][_{num_colors}colors]

    Default values are left out: direction "0" or "F", speed 0 and a color
    count of 1. Identical inputs always give the identical ID, which makes the
    ID usable as the deduplication key.
    """
    suffix_parts = []

    direction_str = str(direction).strip() if direction is not None else ""
    if direction_str and direction_str not in ("0", "F"):
        suffix_parts.append(f"dir{direction_str}")

    speed_int = to_int(speed)
    if speed_int != 0:
        suffix_parts.append(f"spd{speed_int}")

    num_colors_int = to_int(num_colors, 1)
    if num_colors_int > 1:
        suffix_parts.append(f"{num_colors_int}colors")

    if not suffix_parts:
        return str(pattern_type)
    return f"{pattern_type}_{'_'.join(suffix_parts)}"


def identify_plan_type(pattern_type: str | None) -> str:
    """Return the plan type for a controller pattern type."""
    return PLAN_SPOTLIGHT if pattern_type == PATTERN_SPOTLIGHT else PLAN_NON_SPOTLIGHT


def parse_color_str(color_str: str | None) -> str:
    """Convert controller colorStr ("R&G&B&R&G&B...") to "R,G,B,R,G,B...".

    An incomplete trailing triplet is dropped. Missing or empty input, or
    input without a single complete triplet, gives solid white.
    """
    if not color_str or not str(color_str).strip():
        return DEFAULT_COLORS

    parts = [part.strip() for part in str(color_str).split("&")]
    triplets = []
    for i in range(0, len(parts) - 2, 3):
        triplets.append(f"{parts[i]},{parts[i + 1]},{parts[i + 2]}")

    if len(parts) % 3:
        _LOGGER.debug("Incomplete RGB triplet at end of colorStr (%d parts), skipping", len(parts))

    if not triplets:
        return DEFAULT_COLORS
    return ",".join(triplets)


def count_color_triplets(colors: str) -> int:
    """Count RGB triplets in a comma-delimited colors string."""
    values = [c for c in colors.strip().strip(",").split(",") if c.strip()]
    return len(values) // 3


def build_command_params(
    pattern_type: str,
    zone: int,
    colors: str = DEFAULT_COLORS,
    direction: Any = "F",
    speed: Any = 0,
    gap: Any = 0,
    other: Any = 0,
    pause: Any = 0,
    num_colors: int | None = None,
) -> dict[str, str]:
    """Build ordered setPattern parameters for a single zone."""
    colors = colors.strip().strip(",") or DEFAULT_COLORS
    if num_colors is None:
        num_colors = max(count_color_triplets(colors), 1)
    values = {
        "patternType": pattern_type,
        "zones": zone,
        "num_zones": 1,
        "num_colors": num_colors,
        "colors": colors,
        "direction": direction if direction not in (None, "") else "F",
        "speed": speed if speed not in (None, "") else 0,
        "gap": gap if gap not in (None, "") else 0,
        "other": other if other not in (None, "") else 0,
        "pause": pause if pause not in (None, "") else 0,
    }
    return {key: str(values[key]) for key in COMMAND_PARAM_ORDER}


def off_command_params(zone: int) -> dict[str, str]:
    """Return the parameters that switch a zone off."""
    return build_command_params(PATTERN_OFF, zone, colors="0,0,0")


def custom_color_params(zone: int, rgb: tuple[int, int, int]) -> dict[str, str]:
    """Return parameters for a solid single-color custom pattern."""
    colors = ",".join(str(max(0, min(int(c), 255))) for c in rgb)
    return build_command_params(PATTERN_CUSTOM, zone, colors=colors)


def build_command_url(ip_address: str, params: Mapping[str, Any]) -> str:
    """Build a setPattern URL for the controller."""
    query_string = urllib.parse.urlencode({key: str(value) for key, value in params.items()})
    return f"http://{ip_address}/{COMMAND_PATH}?{query_string}"


def parse_url_params(url: str) -> dict[str, str]:
    """Parse the query parameters of a command URL or bare query string."""
    if not url:
        return {}
    query = url.split("?", 1)[1] if "?" in url else url
    return dict(urllib.parse.parse_qsl(query, keep_blank_values=True))


def parse_command_template(template: str, zone: int) -> dict[str, str]:
    """Turn a catalog template ("patternType=...&zones={zone}...") into params."""
    raw = parse_url_params(template.replace("{zone}", str(zone)))
    if "patternType" not in raw:
        return {}
    return build_command_params(
        raw["patternType"],
        zone,
        colors=raw.get("colors", DEFAULT_COLORS),
        direction=raw.get("direction"),
        speed=raw.get("speed"),
        gap=raw.get("gap"),
        other=raw.get("other"),
        pause=raw.get("pause"),
        num_colors=to_int(raw.get("num_colors"), 0) or None,
    )


def validate_colors(colors: str, expected_triplets: int) -> bool:
    """Check a colors string has the expected triplet count and 0-255 values."""
    if not colors or not colors.strip():
        return False

    values = [c.strip() for c in colors.strip().strip(",").split(",")]
    if len(values) // 3 != expected_triplets:
        _LOGGER.warning(
            "Colors validation failed: expected %d triplets, got %d (%d values)",
            expected_triplets, len(values) // 3, len(values),
        )
        return False

    for value in values:
        try:
            number = int(value)
        except ValueError:
            _LOGGER.warning("Colors validation failed: invalid number '%s'", value)
            return False
        if not 0 <= number <= 255:
            _LOGGER.warning("Colors validation failed: value %d out of range", number)
            return False
    return True


def validate_command_params(params: Mapping[str, Any]) -> bool:
    """Validate setPattern parameters before they are sent."""
    missing = [key for key in COMMAND_PARAM_ORDER if key not in params]
    if missing:
        _LOGGER.warning("Pattern validation failed: missing parameters %s", missing)
        return False

    num_colors = to_int(params.get("num_colors"))
    if num_colors > 0 and not validate_colors(str(params["colors"]), num_colors):
        return False

    zone = to_int(params.get("zones"))
    if not MIN_ZONE <= zone <= MAX_ZONE:
        _LOGGER.warning("Pattern validation failed: invalid zones value %s", params.get("zones"))
        return False

    speed = to_int(params.get("speed"), -1)
    if not 0 <= speed <= 255:
        _LOGGER.warning("Pattern validation failed: invalid speed value %s", params.get("speed"))
        return False

    return True


def normalize_led_indices(led_indices_str: str, max_leds: int = DEFAULT_MAX_LEDS) -> str:
    """Normalize LED indices string (remove duplicates, sort, validate)."""
    if not led_indices_str or not led_indices_str.strip():
        return ""

    indices = set()
    for part in led_indices_str.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            idx = int(part)
        except ValueError:
            _LOGGER.warning("Invalid LED index '%s' in: %s", part, led_indices_str)
            continue
        if 1 <= idx <= max_leds:
            indices.add(idx)

    return ",".join(str(i) for i in sorted(indices))


def modify_spotlight_plan_colors(
    original_colors: str,
    led_indices_str: str,
    max_leds: int = DEFAULT_MAX_LEDS,
) -> str:
    """Rebuild a full LED array for a spotlight plan.

    **CRITICAL**: The controller only returns 40 LEDs worth of color data, but
    zones can have up to 500 LEDs. The first non-black color of the captured
    data lights every LED listed in led_indices_str; all other LEDs are off.

    Returns the original colors unchanged when either input has nothing usable.
    """
    values = original_colors.strip().strip(",").split(",") if original_colors else []
    base_color = None
    for i in range(0, len(values) - 2, 3):
        try:
            rgb = tuple(max(0, min(255, int(values[i + k].strip()))) for k in range(3))
        except ValueError:
            continue
        if any(rgb):
            base_color = rgb
            break
        if base_color is None:
            base_color = rgb

    if base_color is None:
        _LOGGER.warning("No valid colors found in original_colors: %s", original_colors)
        return original_colors

    led_indices = {int(i) for i in normalize_led_indices(led_indices_str, max_leds).split(",") if i}
    if not led_indices:
        _LOGGER.warning("No valid LED indices found: %s", led_indices_str)
        return original_colors

    modified_colors: list[int] = []
    for led_num in range(1, max_leds + 1):
        modified_colors.extend(base_color if led_num in led_indices else (0, 0, 0))

    return ",".join(str(c) for c in modified_colors)


def scale_colors(colors: str, brightness: int) -> str:
    """Scale every value in a colors string by brightness (0-255)."""
    factor = max(0, min(brightness, 255)) / 255.0
    scaled = []
    for value in colors.strip().strip(",").split(","):
        value = value.strip()
        if not value.isdigit():
            continue
        scaled.append(str(max(0, min(int(round(int(value) * factor)), 255))))
    return ",".join(scaled) if scaled else colors


def first_color(colors: str) -> tuple[int, int, int] | None:
    """Return the first RGB triplet of a colors string."""
    values = colors.strip().strip(",").split(",") if colors else []
    if len(values) < 3:
        return None
    try:
        return tuple(max(0, min(int(v.strip()), 255)) for v in values[:3])
    except ValueError:
        return None
