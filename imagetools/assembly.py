"""
Multi-frame and multi-image assembly.

Operations that reorder, retime, split or combine whole frame sequences:

* GIF reverse / obverse-reverse / split / frame-rate change
* GIF join (every frame of every input becomes one animation)
* 2x2 and 3x3 grid slicing
* horizontal and vertical image joins

Inputs are never mutated; each operation returns fresh models.
"""

from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence

from PIL import Image

from .colors import TRANSPARENT, parse_color
from .exceptions import (FpsExceedsRangeWarning, ImageAnimatedWarning,
                         GridTooSmall, ImageMustBeAnimated, ImageNotEnough,
                         ValueTooSmall)
from .processing import DEFAULT_WORKERS, map_frames, ordered_map
from .specs import parse_rate
from .types import Frame, ImageModel

logger = logging.getLogger(__name__)

FPS_WARN_THRESHOLD_MS = 20
DEFAULT_JOIN_DURATION_MS = 100
DEFAULT_SPACING = 10
MIN_JOIN_IMAGES = 2


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------

def ensure_animation(model: ImageModel) -> None:
    if not model.is_animated:
        raise ImageMustBeAnimated()


def ensure_min_images(items: Sequence, minimum: int = MIN_JOIN_IMAGES) -> None:
    if len(items) < minimum:
        raise ImageNotEnough(minimum)


def warn_animation(models: Sequence[ImageModel], force: bool = False) -> None:
    if not force and any(m.is_animated for m in models):
        raise ImageAnimatedWarning()


def check_frame_rate(durations: Sequence[int], force: bool = False,
                     threshold_ms: float = FPS_WARN_THRESHOLD_MS) -> None:
    """Refuse (unless forced) timings that average below *threshold_ms*."""
    average = sum(durations) / len(durations)
    if not force and average < threshold_ms:
        raise FpsExceedsRangeWarning(round(average, 2))


# ---------------------------------------------------------------------------
# Frame order and timing
# ---------------------------------------------------------------------------

def gif_reverse(model: ImageModel) -> ImageModel:
    """[f0, f1, ..., fn] -> [fn, ..., f1, f0]."""
    ensure_animation(model)
    frames = model.frames
    reordered = [frames[-1].copy(), *frames[-2:0:-1], frames[0]]
    return ImageModel(reordered, model.loop)


def gif_obverse_reverse(model: ImageModel) -> ImageModel:
    """[f0, ..., fn] -> [f0, ..., fn, f(n-1), ..., f1]."""
    ensure_animation(model)
    frames = model.frames
    return ImageModel([*frames, *frames[-2:0:-1]], model.loop)


def gif_split(model: ImageModel) -> List[ImageModel]:
    """Every frame as an independent still, in order."""
    ensure_animation(model)
    return [ImageModel.still(f.image.copy()) for f in model.frames]


def gif_change_fps(model: ImageModel, rate: str, force: bool = False,
                   threshold_ms: float = FPS_WARN_THRESHOLD_MS) -> ImageModel:
    ensure_animation(model)
    durations = parse_rate(rate, model.durations)
    check_frame_rate(durations, force, threshold_ms)
    logger.debug("Retimed %d frames: %s -> %s", len(model), model.durations, durations)
    frames = [f.with_duration(d) for f, d in zip(model.frames, durations)]
    return ImageModel(frames, model.loop)


# ---------------------------------------------------------------------------
# GIF join
# ---------------------------------------------------------------------------

def fit_within(img: Image.Image, box: tuple[int, int]) -> Image.Image:
    """Proportionally shrink *img* to fit *box*; never enlarges."""
    bw, bh = box
    w, h = img.size
    if w <= bw and h <= bh:
        return img
    scale = min(bw / w, bh / h)
    size = (max(1, round(w * scale)), max(1, round(h * scale)))
    return img.resize(size, Image.Resampling.BICUBIC)


def center_on_canvas(img: Image.Image, size: tuple[int, int]) -> Image.Image:
    canvas = Image.new("RGBA", size, TRANSPARENT)
    fitted = fit_within(img.convert("RGBA"), size)
    dest = ((size[0] - fitted.width) // 2, (size[1] - fitted.height) // 2)
    canvas.alpha_composite(fitted, dest=dest)
    return canvas


def gif_join(models: Sequence[ImageModel], duration: Optional[int] = None,
             force: bool = False, threshold_ms: float = FPS_WARN_THRESHOLD_MS,
             workers: int = DEFAULT_WORKERS) -> ImageModel:
    """Pool every frame of every input into one uniformly timed animation."""
    frames = [f for m in models for f in m.frames]
    ensure_min_images(frames, MIN_JOIN_IMAGES)
    if duration is not None and duration < 0:
        raise ValueTooSmall(duration, 0)
    duration = DEFAULT_JOIN_DURATION_MS if duration is None else int(duration)
    check_frame_rate([duration], force, threshold_ms)

    size = (max(f.width for f in frames), max(f.height for f in frames))
    logger.debug("Joining %d frames on a %dx%d canvas", len(frames), *size)
    images = ordered_map(lambda f: center_on_canvas(f.image, size), frames, workers)
    return ImageModel([Frame(img, duration) for img in images], loop=0)


# ---------------------------------------------------------------------------
# Grid slicing
# ---------------------------------------------------------------------------

def grid_boxes(side: int, n: int) -> List[tuple[int, int, int, int]]:
    """Row-major cell boxes of a side x side square split n x n."""
    cell = math.ceil(side / n)
    boxes = []
    for row in range(n):
        for col in range(n):
            x, y = col * cell, row * cell
            w, h = min(cell, side - x), min(cell, side - y)
            if w <= 0 or h <= 0:
                raise GridTooSmall(side, n)
            boxes.append((x, y, x + w, y + h))
    return boxes


def crop_to_grids(model: ImageModel, n: int,
                  workers: int = DEFAULT_WORKERS) -> List[ImageModel]:
    """Centre-crop to a square and cut it into n x n cells."""
    width, height = model.size
    side = min(width, height)
    boxes = grid_boxes(side, n)
    left, top = (width - side) // 2, (height - side) // 2
    square = map_frames(
        model, lambda img: img.crop((left, top, left + side, top + side)), workers)
    return [map_frames(square, lambda img, b=box: img.crop(b), workers)
            for box in boxes]


def four_grid(model: ImageModel, workers: int = DEFAULT_WORKERS) -> List[ImageModel]:
    return crop_to_grids(model, 2, workers)


def nine_grid(model: ImageModel, workers: int = DEFAULT_WORKERS) -> List[ImageModel]:
    return crop_to_grids(model, 3, workers)


# ---------------------------------------------------------------------------
# Horizontal / vertical joins
# ---------------------------------------------------------------------------

def _scale_to(img: Image.Image, width: Optional[int] = None,
              height: Optional[int] = None) -> Image.Image:
    w, h = img.size
    if height is not None:
        size = (max(1, round(w * height / h)), height)
    else:
        size = (width, max(1, round(h * width / w)))
    if size == img.size:
        return img
    return img.resize(size, Image.Resampling.BICUBIC)


def _join(models: Sequence[ImageModel], vertical: bool, spacing: Optional[int],
          bg_color: Optional[str], force: bool) -> ImageModel:
    ensure_min_images(models, MIN_JOIN_IMAGES)
    warn_animation(models, force)
    if spacing is not None and spacing < 0:
        raise ValueTooSmall(spacing, 0)
    spacing = DEFAULT_SPACING if spacing is None else int(spacing)
    background = parse_color(bg_color) if bg_color else TRANSPARENT

    firsts = [m.primary.image for m in models]
    if vertical:
        common = max(img.width for img in firsts)
        parts = [_scale_to(img, width=common) for img in firsts]
        size = (common, sum(p.height for p in parts) + spacing * (len(parts) - 1))
    else:
        common = max(img.height for img in firsts)
        parts = [_scale_to(img, height=common) for img in firsts]
        size = (sum(p.width for p in parts) + spacing * (len(parts) - 1), common)

    canvas = Image.new("RGBA", size, background)
    offset = 0
    for part in parts:
        canvas.alpha_composite(part, dest=(0, offset) if vertical else (offset, 0))
        offset += (part.height if vertical else part.width) + spacing
    logger.debug("Joined %d images into %dx%d", len(parts), *size)
    return ImageModel.still(canvas)


def horizontal_join(models: Sequence[ImageModel], spacing: Optional[int] = None,
                    bg_color: Optional[str] = None,
                    force: bool = False) -> ImageModel:
    return _join(models, False, spacing, bg_color, force)


def vertical_join(models: Sequence[ImageModel], spacing: Optional[int] = None,
                  bg_color: Optional[str] = None,
                  force: bool = False) -> ImageModel:
    return _join(models, True, spacing, bg_color, force)
