"""
2D drawing capability used by the image generators.

The generators only need a tiny slice of a canvas API: rectangle fills with
either a solid colour or a linear gradient, and PNG export.  The abstract
:class:`Canvas` describes that slice; :class:`PillowCanvas` implements it on
top of Pillow with numpy doing the gradient rasterisation.

Colours are passed as CSS strings (``rgb()``, ``rgba()`` with fractional
alpha, hex, or a colour name Pillow knows).
"""

from __future__ import annotations

import abc
import io
import logging
import re
from typing import Callable, List, Tuple, Union

import numpy as np
from PIL import Image, ImageColor

logger = logging.getLogger(__name__)

_CSS_FUNC_RE = re.compile(
    r"^rgba?\(\s*(?P<r>\d+(?:\.\d+)?)\s*,\s*(?P<g>\d+(?:\.\d+)?)\s*,\s*"
    r"(?P<b>\d+(?:\.\d+)?)\s*(?:,\s*(?P<a>\d*\.?\d+)\s*)?\)$",
    re.IGNORECASE,
)


def css_to_rgba(css: str) -> Tuple[int, int, int, int]:
    """Parse a CSS colour; ``rgba()`` alpha is a 0 -- 1 fraction."""
    m = _CSS_FUNC_RE.match(css.strip())
    if m:
        alpha = float(m.group("a")) if m.group("a") is not None else 1.0
        channels = [float(m.group(k)) for k in ("r", "g", "b")]
        if any(c > 255 for c in channels) or alpha > 1:
            raise ValueError(f"Colour out of range: {css!r}")
        r, g, b = (int(c + 0.5) for c in channels)
        return r, g, b, int(alpha * 255 + 0.5)
    rgba = ImageColor.getcolor(css, "RGBA")
    return tuple(rgba)  # type: ignore[return-value]


class LinearGradient:
    """Colour stops along the line (x0, y0) -> (x1, y1)."""

    def __init__(self, x0: float, y0: float, x1: float, y1: float) -> None:
        self.start = (float(x0), float(y0))
        self.end = (float(x1), float(y1))
        self.stops: List[Tuple[float, Tuple[int, int, int, int]]] = []

    def add_color_stop(self, offset: float, color: str) -> None:
        if not 0 <= offset <= 1:
            raise ValueError(f"Colour stop offset {offset} outside [0, 1].")
        self.stops.append((float(offset), css_to_rgba(color)))

    def render(self, width: int, height: int) -> np.ndarray:
        """Rasterise to an ``(height, width, 4)`` float array."""
        if not self.stops:
            return np.zeros((height, width, 4))
        stops = sorted(self.stops, key=lambda s: s[0])
        offsets = np.array([s[0] for s in stops])
        colors = np.array([s[1] for s in stops], dtype=np.float64)

        (x0, y0), (x1, y1) = self.start, self.end
        dx, dy = x1 - x0, y1 - y0
        length_sq = dx * dx + dy * dy
        if length_sq == 0:
            t = np.ones((height, width))
        else:
            ys, xs = np.mgrid[0:height, 0:width]
            t = ((xs + 0.5 - x0) * dx + (ys + 0.5 - y0) * dy) / length_sq
            t = np.clip(t, 0, 1)
        out = np.empty((height, width, 4))
        for ch in range(4):
            out[..., ch] = np.interp(t, offsets, colors[:, ch])
        return out


FillStyle = Union[str, LinearGradient]


class Canvas(abc.ABC):
    """Abstract drawing surface."""

    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height

    @abc.abstractmethod
    def fill_rect(self, x: int, y: int, width: int, height: int,
                  style: FillStyle) -> None:
        """Fill a rectangle with a CSS colour or a gradient."""

    def create_linear_gradient(self, x0: float, y0: float,
                               x1: float, y1: float) -> LinearGradient:
        return LinearGradient(x0, y0, x1, y1)

    @abc.abstractmethod
    def to_image(self) -> Image.Image:
        """Return the canvas contents as an RGBA image."""

    def to_buffer(self, fmt: str = "png") -> bytes:
        buf = io.BytesIO()
        self.to_image().save(buf, format=fmt.split("/")[-1].upper())
        return buf.getvalue()


class PillowCanvas(Canvas):
    """Canvas backed by a Pillow RGBA image."""

    def __init__(self, width: int, height: int) -> None:
        super().__init__(width, height)
        self._image = Image.new("RGBA", (width, height), (0, 0, 0, 0))

    def fill_rect(self, x: int, y: int, width: int, height: int,
                  style: FillStyle) -> None:
        if isinstance(style, LinearGradient):
            full = style.render(self.width, self.height)
            layer = Image.fromarray(np.clip(np.rint(full), 0, 255).astype(np.uint8))
            region = layer.crop((x, y, x + width, y + height))
        else:
            region = Image.new("RGBA", (width, height), css_to_rgba(style))
        self._image.alpha_composite(region, dest=(x, y))

    def to_image(self) -> Image.Image:
        return self._image.copy()


CanvasFactory = Callable[[int, int], Canvas]


def create_canvas(width: int, height: int) -> Canvas:
    logger.debug("Creating %dx%d canvas", width, height)
    return PillowCanvas(width, height)
