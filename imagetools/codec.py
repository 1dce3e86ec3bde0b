"""
Codec adapters between encoded bytes and the frame model.

Decoding
--------
Any format Pillow can open is accepted when its MIME type is listed in
:data:`MIME_FORMATS`.  Animated containers (GIF, APNG, animated WebP) are
expanded into one :class:`~imagetools.types.Frame` per stored frame.

Frames are **full-canvas snapshots**: Pillow composites disposal-based GIF
frames onto the logical screen while seeking, so every decoded frame can be
rendered on its own.  Pillow also reports GIF delays in milliseconds (it
multiplies the stored centiseconds by 10), which makes this module the one
seam where timing enters the model.

Encoding
--------
A single-frame model is written as PNG; anything longer becomes a GIF that
carries the per-frame durations and the loop count.  GIF stores delays in
centiseconds, so durations are rounded to the nearest 10 ms on write (17 ms
is stored as 2 cs).  Pillow quantizes and compresses each frame on its own
and the blocks are assembled here, one per model frame: Pillow's animated
writer would merge identical consecutive frames.
"""

from __future__ import annotations

import io
import logging
import struct

from PIL import Image, ImageSequence

from .exceptions import DecodeError, EncodeError
from .types import MIME_GIF, MIME_PNG, EncodedImage, Frame, ImageModel

logger = logging.getLogger(__name__)

MIME_FORMATS: dict[str, tuple[str, ...]] = {
    "image/png": ("PNG",),
    "image/apng": ("PNG",),
    "image/jpeg": ("JPEG",),
    "image/jpg": ("JPEG",),
    "image/pjpeg": ("JPEG",),
    "image/gif": ("GIF",),
    "image/webp": ("WEBP",),
    "image/bmp": ("BMP",),
    "image/x-ms-bmp": ("BMP",),
    "image/tiff": ("TIFF",),
}

DEFAULT_FRAME_DURATION_MS = 100

_DECODE_ERRORS = (OSError, ValueError, SyntaxError, EOFError,
                  Image.DecompressionBombError)


def _formats_for(mime_type: str | None) -> tuple[str, ...] | None:
    if mime_type is None:
        return None
    mime = mime_type.split(";", 1)[0].strip().lower()
    if mime not in MIME_FORMATS:
        raise DecodeError(f"Unsupported image type: {mime_type!r}")
    return MIME_FORMATS[mime]


def sniff_mime(data: bytes) -> str | None:
    """Return the MIME type Pillow detects for *data*, or None."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            return Image.MIME.get(img.format or "")
    except _DECODE_ERRORS:
        return None


def decode(data: bytes, mime_type: str | None = None) -> ImageModel:
    """Decode *data* into an :class:`ImageModel`.

    Raises
    ------
    DecodeError
        If the MIME type is unsupported or the bytes cannot be decoded.
    """
    formats = _formats_for(mime_type)
    try:
        with Image.open(io.BytesIO(data), formats=formats) as img:
            n_frames = getattr(img, "n_frames", 1)
            loop = img.info.get("loop")
            frames: list[Frame] = []
            for frame in ImageSequence.Iterator(img):
                duration = frame.info.get("duration")
                if n_frames == 1:
                    duration = 0
                elif duration is None:
                    duration = DEFAULT_FRAME_DURATION_MS
                frames.append(Frame(frame.convert("RGBA"), int(duration)))
    except _DECODE_ERRORS as exc:
        raise DecodeError(f"Cannot decode image: {exc}") from exc

    if not frames:
        raise DecodeError("Image has no frames.")
    logger.debug("Decoded %d frame(s) of %dx%d (%s)", len(frames),
                 frames[0].width, frames[0].height, mime_type or "sniffed")
    return ImageModel(frames, loop if len(frames) > 1 else None)


def encode_png(model: ImageModel) -> EncodedImage:
    """Encode the primary frame as PNG, dropping animation metadata."""
    buf = io.BytesIO()
    try:
        model.primary.image.save(buf, format="PNG")
    except (OSError, ValueError) as exc:
        raise EncodeError(f"PNG encoding failed: {exc}") from exc
    return EncodedImage(buf.getvalue(), MIME_PNG)


# ---------------------------------------------------------------------------
# GIF frame assembly
# ---------------------------------------------------------------------------

_EXTENSION = 0x21
_GRAPHIC_CONTROL = 0xF9
_IMAGE_SEPARATOR = 0x2C
_TRAILER = 0x3B
_DISPOSE_TO_BACKGROUND = 2
_NETSCAPE_LOOP = b"!\xFF\x0BNETSCAPE2.0\x03\x01"


def delay_centiseconds(duration_ms: int) -> int:
    """Nearest whole centisecond for a frame duration, half rounding up."""
    return min(max((int(duration_ms) + 5) // 10, 0), 0xFFFF)


def _skip_sub_blocks(data: bytes, pos: int) -> int:
    while data[pos]:
        pos += data[pos] + 1
    return pos + 1


def _frame_block(image: Image.Image, delay_cs: int) -> bytes:
    """Control extension, descriptor, colour table and LZW data for one frame.

    Pillow quantizes and compresses *image* as a single-frame GIF; its
    global colour table becomes the frame's local table.
    """
    still = image.copy()
    still.info = {}
    buf = io.BytesIO()
    still.save(buf, format="GIF")
    data = buf.getvalue()

    screen_flags = data[10]
    pos = 13
    global_table = b""
    if screen_flags & 0x80:
        table_len = 3 << ((screen_flags & 0x07) + 1)
        global_table = data[pos:pos + table_len]
        pos += table_len

    transparency = None
    while data[pos] == _EXTENSION:
        if data[pos + 1] == _GRAPHIC_CONTROL and data[pos + 3] & 0x01:
            transparency = data[pos + 6]
        pos = _skip_sub_blocks(data, pos + 2)
    if data[pos] != _IMAGE_SEPARATOR:
        raise EncodeError("GIF encoding failed: no image block written.")

    start = pos
    flags = data[pos + 9]
    pos += 10
    local_table = b""
    if flags & 0x80:
        pos += 3 << ((flags & 0x07) + 1)
    elif global_table:
        flags = (flags & 0x40) | 0x80 | (screen_flags & 0x07)
        local_table = global_table
    else:
        raise EncodeError("GIF encoding failed: frame has no colour table.")
    pos = _skip_sub_blocks(data, pos + 1)       # LZW minimum code size

    packed = _DISPOSE_TO_BACKGROUND << 2
    if transparency is not None:
        packed |= 0x01
    control = bytes((_EXTENSION, _GRAPHIC_CONTROL, 4, packed))
    control += struct.pack("<HB", delay_cs, transparency or 0) + b"\x00"
    descriptor = data[start:start + 9] + bytes((flags,))
    return control + descriptor + local_table + data[start + 10:pos]


def encode_gif(model: ImageModel) -> EncodedImage:
    """Encode every frame as an animated GIF.

    Frames are written one block each, so repeated frames survive and keep
    their own delays.
    """
    width, height = model.size
    for i, frame in enumerate(model.frames):
        if frame.size != (width, height):
            raise EncodeError(
                f"Frame {i}: size {frame.size} != first frame {(width, height)}.")

    loop = model.loop if model.loop is not None else 0
    out = bytearray(b"GIF89a")
    out += struct.pack("<HHBBB", width, height, 0x70, 0, 0)
    out += _NETSCAPE_LOOP + struct.pack("<H", min(max(loop, 0), 0xFFFF)) + b"\x00"
    try:
        for frame in model.frames:
            out += _frame_block(frame.image, delay_centiseconds(frame.duration))
    except (OSError, ValueError, IndexError) as exc:
        raise EncodeError(f"GIF encoding failed: {exc}") from exc
    out.append(_TRAILER)
    logger.debug("Encoded %d GIF frame(s) of %dx%d", len(model.frames),
                 width, height)
    return EncodedImage(bytes(out), MIME_GIF)


def encode(model: ImageModel) -> EncodedImage:
    """PNG for a still, GIF for an animation."""
    if model.is_animated:
        return encode_gif(model)
    return encode_png(model)
