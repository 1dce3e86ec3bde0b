"""
Parsing of size, crop and frame-rate specifier strings.

Every parser here works against the dimensions (or frame durations) of the
source image and raises :class:`~imagetools.exceptions.InvalidArgFormat`
when no pattern matches or the result is not usable.

Size forms::

    100x50   100*50   100,50   100 50   x50   100x      (absolute)
    50%                                                 (percentage)
    16:9     16：9    16比9                              (ratio)

Rate forms (``gif-change-fps``)::

    2x  0.5x      speed multiplier
    150%          speed percentage
    25fps         uniform frame rate
    40ms  2s      uniform frame duration
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional, Pattern, Sequence, Tuple, TypeVar

from .exceptions import InvalidArgFormat, InvalidRange

T = TypeVar("T")

PatternHandler = Tuple[Pattern[str], Callable[[re.Match], Any]]

SIZE_RE = re.compile(r"^(?P<w>\d{1,4})?[*xX, ](?P<h>\d{1,4})?$")
PERCENT_RE = re.compile(r"^(?P<p>\d{1,3})%$")
RATIO_RE = re.compile(r"^(?P<pw>\d{1,2})[:：比](?P<ph>\d{1,2})$")

_NUM = r"(?P<n>\d+(?:\.\d+)?|\.\d+)"
MULTIPLIER_RE = re.compile(rf"^{_NUM}\s*[xX×]$")
RATE_PERCENT_RE = re.compile(rf"^{_NUM}\s*%$")
FPS_RE = re.compile(rf"^{_NUM}\s*fps$", re.IGNORECASE)
MILLIS_RE = re.compile(rf"^{_NUM}\s*ms$", re.IGNORECASE)
SECONDS_RE = re.compile(rf"^{_NUM}\s*s$", re.IGNORECASE)


def match_patterns(
    text: str,
    patterns: Sequence[PatternHandler],
    on_fail: Optional[Callable[[], Any]] = None,
) -> Any:
    """Return the handler result of the first pattern matching *text*."""
    for regex, handler in patterns:
        m = regex.match(text)
        if m is None:
            continue
        return handler(m)
    if on_fail is not None:
        on_fail()
    raise InvalidArgFormat(text)


# ---------------------------------------------------------------------------
# Size specifiers
# ---------------------------------------------------------------------------

def _positive(text: str, *values: int) -> None:
    if any(v <= 0 for v in values):
        raise InvalidArgFormat(text)


def size_pattern(width: int, height: int, keep_aspect: bool) -> PatternHandler:
    """Absolute ``WxH``; a missing side follows the aspect ratio or the source."""
    def handle(m: re.Match) -> tuple[int, int]:
        w, h = m.group("w"), m.group("h")
        wn = int(w) if w else None
        hn = int(h) if h else None
        if keep_aspect and (wn is None) != (hn is None):
            if wn is None:
                wn = max(1, round(width * hn / height))
            else:
                hn = max(1, round(height * wn / width))
        wn = width if wn is None else wn
        hn = height if hn is None else hn
        _positive(m.string, wn, hn)
        return wn, hn
    return SIZE_RE, handle


def percent_pattern(width: int, height: int) -> PatternHandler:
    def handle(m: re.Match) -> tuple[int, int]:
        p = int(m.group("p"))
        _positive(m.string, p)
        size = (math.floor(width * p / 100), math.floor(height * p / 100))
        _positive(m.string, *size)
        return size
    return PERCENT_RE, handle


def ratio_pattern(width: int, height: int) -> PatternHandler:
    """Largest ``pw:ph`` box, measured against the source *width* only.

    Both terms use the source width, so tall ratios on wide images yield a
    box taller than the source; crop clamps it afterwards.
    """
    def handle(m: re.Match) -> tuple[int, int]:
        pw, ph = int(m.group("pw")), int(m.group("ph"))
        _positive(m.string, pw, ph)
        unit = min(width / pw, width / ph)
        size = (math.floor(pw * unit), math.floor(ph * unit))
        _positive(m.string, *size)
        return size
    return RATIO_RE, handle


def parse_size(text: str, width: int, height: int,
               keep_aspect: bool = True) -> tuple[int, int]:
    return match_patterns(text.strip(), [size_pattern(width, height, keep_aspect)])


def resize_target(text: str, width: int, height: int) -> tuple[int, int]:
    """Target size for ``resize``: absolute or percentage."""
    return match_patterns(text.strip(), [
        size_pattern(width, height, keep_aspect=True),
        percent_pattern(width, height),
    ])


def crop_target(text: str, width: int, height: int) -> tuple[int, int]:
    """Target size for ``crop``: absolute or ratio."""
    return match_patterns(text.strip(), [
        size_pattern(width, height, keep_aspect=False),
        ratio_pattern(width, height),
    ])


# ---------------------------------------------------------------------------
# Rate specifiers
# ---------------------------------------------------------------------------

def _factor(m: re.Match) -> float:
    value = float(m.group("n"))
    if value <= 0:
        raise InvalidArgFormat(m.string)
    return value


def parse_rate(text: str, durations: Sequence[int]) -> list[int]:
    """Return new per-frame durations (ms) for the rate spec *text*."""
    n = len(durations)

    def scaled(divisor: float) -> list[int]:
        return [max(0, round(d / divisor)) for d in durations]

    return match_patterns(text.strip(), [
        (MULTIPLIER_RE, lambda m: scaled(_factor(m))),
        (RATE_PERCENT_RE, lambda m: scaled(_factor(m) / 100)),
        (FPS_RE, lambda m: [round(1000 / _factor(m))] * n),
        (MILLIS_RE, lambda m: [round(float(m.group("n")))] * n),
        (SECONDS_RE, lambda m: [round(float(m.group("n")) * 1000)] * n),
    ])


# ---------------------------------------------------------------------------
# Generated image bounds
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SizeLimits:
    default_width: int = 500
    default_height: int = 500
    min_width: int = 1
    min_height: int = 1
    max_width: int = 1920
    max_height: int = 1920


def check_size(
    width: Optional[int],
    height: Optional[int],
    limits: Optional[SizeLimits] = None,
) -> tuple[int, int]:
    """Apply defaults and validate a generated image size."""
    limits = limits or SizeLimits()
    width = limits.default_width if width is None else width
    height = limits.default_height if height is None else height
    if not limits.min_width <= width <= limits.max_width:
        raise InvalidRange(width, limits.min_width, limits.max_width)
    if not limits.min_height <= height <= limits.max_height:
        raise InvalidRange(height, limits.min_height, limits.max_height)
    return width, height
