"""
Color Utility Functions

Parses the CSS-style colour strings stored in text and shadow settings into
RGBA tuples for drawing.

Usage:
    from frameflow.services.color_utils import parse_color

    rgba = parse_color("rgba(0, 0, 0, 0.5)")  # (0, 0, 0, 128)
"""

import re
from typing import Tuple

from PIL import ImageColor

RGBA = Tuple[int, int, int, int]

_RGB_FUNC = re.compile(
    r"^rgba?\(\s*([\d.]+)\s*,\s*([\d.]+)\s*,\s*([\d.]+)\s*(?:,\s*([\d.]+%?)\s*)?\)$",
    re.IGNORECASE,
)


def hex_to_rgba(hex_color: str) -> RGBA:
    """
    Convert hex color (3, 4, 6 or 8 digits) to an RGBA tuple

    Example:
        >>> hex_to_rgba("#00000080")
        (0, 0, 0, 128)
    """
    digits = hex_color.strip().lstrip('#')
    if len(digits) in (3, 4):
        digits = ''.join(c * 2 for c in digits)
    if len(digits) == 6:
        digits += 'ff'
    if len(digits) != 8:
        raise ValueError(f"Invalid hex color: {hex_color!r}")
    try:
        return tuple(int(digits[i:i+2], 16) for i in (0, 2, 4, 6))
    except ValueError:
        raise ValueError(f"Invalid hex color: {hex_color!r}")


def _alpha_component(value: str) -> int:
    if value.endswith('%'):
        fraction = float(value[:-1]) / 100.0
    else:
        fraction = float(value)
    return int(round(max(0.0, min(1.0, fraction)) * 255))


def parse_color(color: str) -> RGBA:
    """
    Parse a CSS-style color into an RGBA tuple

    Accepts hex colors, rgb()/rgba() functions and named colors.

    Args:
        color: Color string (e.g., "#fff", "rgba(0,0,0,0.5)", "white")

    Returns:
        Tuple of (R, G, B, A) values in 0-255 range

    Raises:
        ValueError: If the color cannot be parsed
    """
    if not isinstance(color, str) or not color.strip():
        raise ValueError(f"Invalid color: {color!r}")

    value = color.strip()

    if value.startswith('#'):
        return hex_to_rgba(value)

    match = _RGB_FUNC.match(value)
    if match:
        r, g, b = (max(0, min(255, int(round(float(c))))) for c in match.group(1, 2, 3))
        alpha = _alpha_component(match.group(4)) if match.group(4) else 255
        return (r, g, b, alpha)

    # Named colors
    return ImageColor.getcolor(value, "RGBA")
