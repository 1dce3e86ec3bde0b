"""
Shared fixtures for the imagetools test suite.
"""

from __future__ import annotations

import io
import tempfile
from pathlib import Path

import pytest
from PIL import Image

from imagetools.types import Frame, ImageModel

RED = (255, 0, 0, 255)
GREEN = (0, 255, 0, 255)
BLUE = (0, 0, 255, 255)


@pytest.fixture(autouse=True)
def _no_config_env(monkeypatch):
    """Keep a developer's $IMAGETOOLS_CONFIG out of the tests."""
    monkeypatch.delenv("IMAGETOOLS_CONFIG", raising=False)


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory(prefix="imagetools_test_") as d:
        yield Path(d)


@pytest.fixture
def red_still() -> ImageModel:
    """A 40x20 opaque red still."""
    return ImageModel.still(Image.new("RGBA", (40, 20), RED))


@pytest.fixture
def rgb_animation() -> ImageModel:
    """Three distinct 16x16 frames (red, green, blue) at 100/200/300 ms."""
    frames = [Frame(Image.new("RGBA", (16, 16), c), d)
              for c, d in ((RED, 100), (GREEN, 200), (BLUE, 300))]
    return ImageModel(frames, loop=0)


@pytest.fixture
def png_bytes() -> bytes:
    buf = io.BytesIO()
    Image.new("RGBA", (8, 6), RED).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def gif_bytes(rgb_animation) -> bytes:
    buf = io.BytesIO()
    images = [f.image for f in rgb_animation.frames]
    images[0].save(buf, format="GIF", save_all=True, append_images=images[1:],
                   duration=rgb_animation.durations, loop=0)
    return buf.getvalue()
