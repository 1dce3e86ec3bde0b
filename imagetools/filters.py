"""
Geometric and filter operations over the frame model.

Every operation takes an :class:`~imagetools.types.ImageModel`, validates
its arguments before touching any pixels, and returns a new model whose
frames were transformed independently (durations and loop count kept).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np
from PIL import Image, ImageFilter

from .colors import parse_color, rgba_to_rgb
from .exceptions import AlphaNotSupported, ValueTooSmall
from .processing import DEFAULT_WORKERS, map_frames
from .specs import crop_target, resize_target
from .types import ImageModel

logger = logging.getLogger(__name__)

LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114])

DEFAULT_BLUR_RADIUS = 5
DEFAULT_PIXEL_SIZE = 8


# ---------------------------------------------------------------------------
# Pixel helpers
# ---------------------------------------------------------------------------

def _to_array(img: Image.Image) -> np.ndarray:
    return np.asarray(img.convert("RGBA"), dtype=np.float64)


def _from_array(arr: np.ndarray) -> Image.Image:
    return Image.fromarray(np.clip(np.rint(arr), 0, 255).astype(np.uint8))


def luminance(rgb: np.ndarray) -> np.ndarray:
    """Rounded Rec. 601 luma of an ``[..., 3]`` array."""
    return np.rint(rgb @ LUMA_WEIGHTS)


def rgb_to_hsl(rgb: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Vectorised RGB (0 -- 255) to HSL (each 0 -- 1)."""
    c = rgb / 255.0
    r, g, b = c[..., 0], c[..., 1], c[..., 2]
    mx = c.max(axis=-1)
    mn = c.min(axis=-1)
    l = (mx + mn) / 2
    d = mx - mn
    with np.errstate(divide="ignore", invalid="ignore"):
        s = np.where(l > 0.5, d / (2 - mx - mn), d / (mx + mn))
        h = np.where(
            mx == r, (g - b) / d + np.where(g < b, 6, 0),
            np.where(mx == g, (b - r) / d + 2, (r - g) / d + 4),
        ) / 6
    s = np.where(d == 0, 0.0, s)
    h = np.where(d == 0, 0.0, h)
    return h, s, l


def hsl_to_rgb(h: np.ndarray, s: np.ndarray, l: np.ndarray) -> np.ndarray:
    """Vectorised HSL (each 0 -- 1) to RGB (0 -- 255, rounded)."""
    q = np.where(l < 0.5, l * (1 + s), l + s - l * s)
    p = 2 * l - q

    def hue_to_channel(t: np.ndarray) -> np.ndarray:
        t = np.mod(t, 1.0)
        return np.where(
            t < 1 / 6, p + (q - p) * 6 * t,
            np.where(t < 1 / 2, q,
                     np.where(t < 2 / 3, p + (q - p) * (2 / 3 - t) * 6, p)),
        )

    rgb = np.stack([hue_to_channel(h + 1 / 3), hue_to_channel(h),
                    hue_to_channel(h - 1 / 3)], axis=-1)
    grey = np.repeat(l[..., None], 3, axis=-1)
    rgb = np.where((s == 0)[..., None], grey, rgb)
    return np.rint(rgb * 255)


# ---------------------------------------------------------------------------
# Convolution kernels
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Kernel:
    """3x3 kernel applied as ``sum(weights * neighbourhood) / div + offset``."""
    weights: tuple[int, ...]
    div: float = 1
    offset: float = 0

    def apply(self, img: Image.Image) -> Image.Image:
        arr = _to_array(img)
        rgb = arr[..., :3]
        h, w = rgb.shape[:2]
        padded = np.pad(rgb, ((1, 1), (1, 1), (0, 0)), mode="edge")
        acc = np.zeros_like(rgb)
        for idx, weight in enumerate(self.weights):
            if not weight:
                continue
            ky, kx = divmod(idx, 3)
            acc += weight * padded[ky:ky + h, kx:kx + w]
        out = arr.copy()
        out[..., :3] = np.clip(acc / self.div + self.offset, 0, 255)
        return _from_array(out)


# Row-major weights.
CONTOUR = Kernel((-1, -1, -1,
                  -1, 8, -1,
                  -1, -1, -1), div=1, offset=255)
EMBOSS = Kernel((-1, 0, 0,
                 0, 1, 0,
                 0, 0, 0), div=1, offset=128)
SHARPEN = Kernel((-2, -2, -2,
                  -2, 32, -2,
                  -2, -2, -2), div=16, offset=0)


# ---------------------------------------------------------------------------
# Frame-level primitives
# ---------------------------------------------------------------------------

def flip_h_frame(img: Image.Image) -> Image.Image:
    return img.transpose(Image.Transpose.FLIP_LEFT_RIGHT)


def flip_v_frame(img: Image.Image) -> Image.Image:
    return img.transpose(Image.Transpose.FLIP_TOP_BOTTOM)


def flip_both_frame(img: Image.Image) -> Image.Image:
    return flip_v_frame(flip_h_frame(img))


def grayscale_frame(img: Image.Image) -> Image.Image:
    arr = _to_array(img)
    gray = luminance(arr[..., :3])
    arr[..., 0] = arr[..., 1] = arr[..., 2] = gray
    return _from_array(arr)


def invert_frame(img: Image.Image) -> Image.Image:
    arr = _to_array(img)
    arr[..., :3] = 255 - arr[..., :3]
    return _from_array(arr)


def pixelate_frame(img: Image.Image, size: int) -> Image.Image:
    """Replace each size x size block by its average colour."""
    if size <= 1:
        return img.copy()
    w, h = img.size
    small = img.reduce(size)
    big = small.resize((small.width * size, small.height * size),
                       Image.Resampling.NEAREST)
    return big.crop((0, 0, w, h))


def color_mask_frame(img: Image.Image, color: Sequence[int]) -> Image.Image:
    """Tint *img* with *color* while keeping the source lightness."""
    arr = _to_array(img)
    rgb, alpha = arr[..., :3], arr[..., 3]
    target = np.asarray(color[:3], dtype=np.float64)
    total = target.sum()
    if total:
        remapped = np.rint(luminance(rgb)[..., None] * target / total)
    else:
        remapped = np.zeros_like(rgb)
    hue, sat, _ = rgb_to_hsl(remapped)
    _, _, light = rgb_to_hsl(rgb)
    out = np.empty_like(arr)
    out[..., :3] = hsl_to_rgb(hue, sat, light)
    out[..., 3] = alpha
    out[alpha == 0] = 0
    return _from_array(out)


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def flip_horizontal(model: ImageModel, workers: int = DEFAULT_WORKERS) -> ImageModel:
    return map_frames(model, flip_h_frame, workers)


def flip_vertical(model: ImageModel, workers: int = DEFAULT_WORKERS) -> ImageModel:
    return map_frames(model, flip_v_frame, workers)


def flip_both(model: ImageModel, workers: int = DEFAULT_WORKERS) -> ImageModel:
    return map_frames(model, flip_both_frame, workers)


def grayscale(model: ImageModel, workers: int = DEFAULT_WORKERS) -> ImageModel:
    return map_frames(model, grayscale_frame, workers)


def invert(model: ImageModel, workers: int = DEFAULT_WORKERS) -> ImageModel:
    return map_frames(model, invert_frame, workers)


def rotate(model: ImageModel, angle: float,
           workers: int = DEFAULT_WORKERS) -> ImageModel:
    """Rotate clockwise by *angle* degrees; the canvas grows to fit."""
    def rotate_frame(img: Image.Image) -> Image.Image:
        return img.convert("RGBA").rotate(
            -angle, resample=Image.Resampling.BICUBIC, expand=True)
    return map_frames(model, rotate_frame, workers)


def resize(model: ImageModel, size: str,
           workers: int = DEFAULT_WORKERS) -> ImageModel:
    """Nearest-neighbour when shrinking on both axes, bicubic otherwise."""
    iw, ih = model.size
    width, height = resize_target(size, iw, ih)
    if width <= iw and height <= ih:
        resample = Image.Resampling.NEAREST
    else:
        resample = Image.Resampling.BICUBIC
    logger.debug("Resizing %dx%d -> %dx%d", iw, ih, width, height)
    return map_frames(model, lambda img: img.resize((width, height), resample),
                      workers)


def crop_box(size: str, iw: int, ih: int) -> tuple[int, int, int, int]:
    """Centred crop rectangle, clamped to the source bounds."""
    width, height = crop_target(size, iw, ih)
    width, height = min(width, iw), min(height, ih)
    x = (iw - width) // 2
    y = (ih - height) // 2
    return x, y, x + width, y + height


def crop(model: ImageModel, size: str,
         workers: int = DEFAULT_WORKERS) -> ImageModel:
    box = crop_box(size, *model.size)
    return map_frames(model, lambda img: img.crop(box), workers)


def contour(model: ImageModel, workers: int = DEFAULT_WORKERS) -> ImageModel:
    return map_frames(model, CONTOUR.apply, workers)


def emboss(model: ImageModel, workers: int = DEFAULT_WORKERS) -> ImageModel:
    return map_frames(model, EMBOSS.apply, workers)


def sharpen(model: ImageModel, workers: int = DEFAULT_WORKERS) -> ImageModel:
    return map_frames(model, SHARPEN.apply, workers)


def blur(model: ImageModel, radius: float | None = None,
         workers: int = DEFAULT_WORKERS) -> ImageModel:
    if radius is not None and radius < 0:
        raise ValueTooSmall(radius, 0)
    radius = DEFAULT_BLUR_RADIUS if radius is None else radius
    if radius == 0:
        return model.copy()
    gaussian = ImageFilter.GaussianBlur(radius=radius)
    return map_frames(model, lambda img: img.filter(gaussian), workers)


def pixelate(model: ImageModel, size: int | None = None,
             workers: int = DEFAULT_WORKERS) -> ImageModel:
    if size is not None and size < 0:
        raise ValueTooSmall(size, 0)
    size = DEFAULT_PIXEL_SIZE if size is None else int(size)
    return map_frames(model, lambda img: pixelate_frame(img, size), workers)


def color_mask(model: ImageModel, color: str,
               workers: int = DEFAULT_WORKERS) -> ImageModel:
    rgba = parse_color(color)
    if rgba[3] != 255:
        raise AlphaNotSupported()
    rgb = rgba_to_rgb(rgba)
    return map_frames(model, lambda img: color_mask_frame(img, rgb), workers)
