"""
Images synthesised from scratch on a drawing canvas.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

from .canvas import CanvasFactory, create_canvas
from .codec import decode
from .colors import color_to_css, parse_angle, parse_color
from .exceptions import InvalidArgFormat
from .specs import SizeLimits, check_size
from .types import MIME_PNG, ImageModel

logger = logging.getLogger(__name__)


def calc_gradient_line(angle: float, width: int,
                       height: int) -> tuple[float, float, float, float]:
    """End points (x0, y0, x1, y1) of a gradient line at *angle* degrees.

    0/180 degrees run left to right across the full width, 90/270 top to
    bottom across the full height.  Other angles pass through the centre
    and end on the canvas border they meet first.
    """
    half_w, half_h = width / 2, height / 2

    if angle % 180 == 0:
        x0, y0, x1, y1 = -half_w, 0.0, half_w, 0.0
    elif angle % 180 == 90:
        x0, y0, x1, y1 = 0.0, -half_h, 0.0, half_h
    else:
        tan = math.tan(math.radians(angle))
        intercept_w = half_w * tan
        intercept_h = half_h / tan
        if 0 < angle < 180:
            x0, y0, x1, y1 = -half_w, -intercept_w, half_w, intercept_w
        else:
            x0, y0, x1, y1 = half_w, -intercept_w, -half_w, intercept_w
        if abs(tan) > height / width:
            if angle < 90 or 180 < angle < 270:
                x0, y0, x1, y1 = intercept_h, -half_h, -intercept_h, half_h
            else:
                x0, y0, x1, y1 = -intercept_h, half_h, intercept_h, -half_h

    return x0 + half_w, y0 + half_h, x1 + half_w, y1 + half_h


def color_image(color: str, width: Optional[int] = None,
                height: Optional[int] = None,
                canvas_factory: CanvasFactory = create_canvas,
                limits: Optional[SizeLimits] = None) -> ImageModel:
    """Solid colour fill."""
    css = color_to_css(parse_color(color))
    width, height = check_size(width, height, limits)
    canvas = canvas_factory(width, height)
    canvas.fill_rect(0, 0, width, height, css)
    return decode(canvas.to_buffer("png"), MIME_PNG)


def gradient_image(colors: Sequence[str], angle: Optional[str] = None,
                   width: Optional[int] = None, height: Optional[int] = None,
                   canvas_factory: CanvasFactory = create_canvas,
                   limits: Optional[SizeLimits] = None) -> ImageModel:
    """Linear gradient through evenly spaced *colors*.

    A single colour paints a solid fill.
    """
    if not colors:
        raise InvalidArgFormat("")
    stops = [color_to_css(parse_color(c)) for c in colors]
    width, height = check_size(width, height, limits)
    degrees = parse_angle(angle) if angle else 0

    canvas = canvas_factory(width, height)
    gradient = canvas.create_linear_gradient(
        *calc_gradient_line(degrees, width, height))
    if len(stops) == 1:
        gradient.add_color_stop(0, stops[0])
        gradient.add_color_stop(1, stops[0])
    else:
        for i, css in enumerate(stops):
            gradient.add_color_stop(i / (len(stops) - 1), css)
    logger.debug("Gradient %s at %d deg, %dx%d", stops, degrees, width, height)
    canvas.fill_rect(0, 0, width, height, gradient)
    return decode(canvas.to_buffer("png"), MIME_PNG)
