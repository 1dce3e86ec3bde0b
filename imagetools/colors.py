"""
Parsing of user-supplied colour and angle strings.

Accepted colour forms::

    #f00  f00  #f008  #ff0000  #ff000080
    255,0,0   255 0 0   rgb(255, 0, 0)   rgba(255, 0, 0, 0.5)   rgba(0,0,0,128)

Alpha in the functional form is an integer 0 -- 255, or a fraction when the
value is below 1.
"""

from __future__ import annotations

import re
from typing import Tuple

from .exceptions import InvalidAngle, InvalidColor
from .specs import match_patterns

RGBColor = Tuple[int, int, int]
RGBAColor = Tuple[int, int, int, int]

TRANSPARENT: RGBAColor = (0, 0, 0, 0)

_HEX_RE = re.compile(r"^#?(?P<hex>[0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")
_FUNC_RE = re.compile(
    r"^(?:rgba?)?\s*\(?\s*"
    r"(?P<r>\d{1,3})(?:\s*,\s*|\s+)"
    r"(?P<g>\d{1,3})(?:\s*,\s*|\s+)"
    r"(?P<b>\d{1,3})"
    r"(?:(?:\s*,\s*|\s+)(?P<a>\d{1,3}(?:\.\d+)?|\.\d+))?"
    r"\s*\)?$",
    re.IGNORECASE,
)
# Leading integer, the rest ignored: "45.5" -> 45, "90deg" -> 90.
_LEADING_INT_RE = re.compile(r"^[+-]?\d+")

VERTICAL_TOKENS = frozenset({"上下", "竖直", "vertical"})
HORIZONTAL_TOKENS = frozenset({"左右", "水平", "horizontal"})


def _from_hex(match: re.Match, text: str) -> RGBAColor:
    digits = match.group("hex")
    if len(digits) <= 4:
        digits = "".join(ch * 2 for ch in digits)
    channels = [int(digits[i:i + 2], 16) for i in range(0, len(digits), 2)]
    if len(channels) == 3:
        channels.append(255)
    return tuple(channels)  # type: ignore[return-value]


def _from_functional(match: re.Match, text: str) -> RGBAColor:
    def check(value: float) -> int:
        if value < 0 or value > 255:
            raise InvalidColor(text)
        return int(value + 0.5)

    alpha = 255
    raw_alpha = match.group("a")
    if raw_alpha is not None:
        a = float(raw_alpha)
        alpha = check(a * 255 if a < 1 else a)
    return (
        check(int(match.group("r"))),
        check(int(match.group("g"))),
        check(int(match.group("b"))),
        alpha,
    )


def parse_color(text: str) -> RGBAColor:
    """Parse *text* into an ``(r, g, b, a)`` tuple or raise InvalidColor."""
    text = text.strip()

    def fail() -> None:
        raise InvalidColor(text)

    return match_patterns(
        text,
        [
            (_HEX_RE, lambda m: _from_hex(m, text)),
            (_FUNC_RE, lambda m: _from_functional(m, text)),
        ],
        on_fail=fail,
    )


def rgba_to_rgb(color: RGBAColor) -> RGBColor:
    return (color[0], color[1], color[2])


def rgb_to_rgba(color: RGBColor) -> RGBAColor:
    return (color[0], color[1], color[2], 255)


def color_to_css(color: RGBColor | RGBAColor) -> str:
    """Format a colour tuple as a CSS ``rgb()`` / ``rgba()`` string."""
    r, g, b = color[:3]
    if len(color) == 3 or color[3] == 255:
        return f"rgb({r}, {g}, {b})"
    return f"rgba({r}, {g}, {b}, {round(color[3] / 255, 4)})"


def parse_angle(text: str) -> int:
    """Parse a gradient angle in degrees (0 -- 360 inclusive).

    Text after the leading integer is ignored, so ``"45.5"`` is 45.
    """
    token = text.strip()
    if token.lower() in VERTICAL_TOKENS:
        return 90
    if token.lower() in HORIZONTAL_TOKENS:
        return 0
    match = _LEADING_INT_RE.match(token)
    if match is None:
        raise InvalidAngle(text)
    value = int(match.group())
    if 0 <= value <= 360:
        return value
    raise InvalidAngle(text)
