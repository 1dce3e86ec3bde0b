"""
Core data structures: the in-memory frame model and encoded output blobs.

An :class:`ImageModel` is an ordered, non-empty sequence of :class:`Frame`
objects plus an optional loop count.  One frame means a still image; more
than one means an animation.  Every frame holds an RGBA Pillow image and
its display duration in milliseconds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable

from PIL import Image

MIME_PNG = "image/png"
MIME_GIF = "image/gif"

_EXTENSIONS = {
    MIME_PNG: "png",
    MIME_GIF: "gif",
}


def _as_rgba(img: Image.Image) -> Image.Image:
    return img if img.mode == "RGBA" else img.convert("RGBA")


@dataclass
class Frame:
    """A single raster frame and its duration (ms, 0 for a still)."""
    image: Image.Image
    duration: int = 0

    def __post_init__(self) -> None:
        self.image = _as_rgba(self.image)
        self.duration = int(self.duration)

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size

    def copy(self) -> Frame:
        """Return a frame with a detached pixel buffer."""
        return Frame(self.image.copy(), self.duration)

    def with_image(self, image: Image.Image) -> Frame:
        return Frame(image, self.duration)

    def with_duration(self, duration: int) -> Frame:
        return Frame(self.image, duration)


@dataclass
class ImageModel:
    """Ordered frames plus loop count (None = format default)."""
    frames: list[Frame]
    loop: int | None = None

    def __post_init__(self) -> None:
        self.frames = list(self.frames)
        if not self.frames:
            raise ValueError("ImageModel requires at least one frame.")

    @classmethod
    def still(cls, image: Image.Image) -> ImageModel:
        return cls([Frame(image, 0)])

    @classmethod
    def from_frames(
        cls,
        images: Iterable[Image.Image],
        durations: Iterable[int],
        loop: int | None = None,
    ) -> ImageModel:
        return cls([Frame(img, d) for img, d in zip(images, durations)], loop)

    @property
    def is_animated(self) -> bool:
        return len(self.frames) > 1

    @property
    def primary(self) -> Frame:
        return self.frames[0]

    @property
    def width(self) -> int:
        return self.primary.width

    @property
    def height(self) -> int:
        return self.primary.height

    @property
    def size(self) -> tuple[int, int]:
        return self.primary.size

    @property
    def durations(self) -> list[int]:
        return [f.duration for f in self.frames]

    @property
    def average_duration(self) -> float:
        return sum(self.durations) / len(self.frames)

    def __len__(self) -> int:
        return len(self.frames)

    def copy(self) -> ImageModel:
        return ImageModel([f.copy() for f in self.frames], self.loop)

    def map_images(
        self, fn: Callable[[Image.Image], Image.Image],
    ) -> ImageModel:
        """Apply *fn* to every frame sequentially; durations and loop kept."""
        return ImageModel([f.with_image(fn(f.image)) for f in self.frames],
                          self.loop)


@dataclass(frozen=True)
class EncodedImage:
    """One encoded output blob."""
    data: bytes = field(repr=False)
    mime_type: str

    @property
    def extension(self) -> str:
        return _EXTENSIONS.get(self.mime_type, self.mime_type.split("/")[-1])

    def __len__(self) -> int:
        return len(self.data)
