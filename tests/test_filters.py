"""
Tests for per-frame geometric and filter operations.
"""

from __future__ import annotations

import numpy as np
import pytest
from PIL import Image

from imagetools import filters
from imagetools.exceptions import AlphaNotSupported, InvalidArgFormat, InvalidColor, ValueTooSmall
from imagetools.types import Frame, ImageModel


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_model(color=(255, 0, 0, 255), size=(20, 10)) -> ImageModel:
    return ImageModel.still(Image.new("RGBA", size, color))


def _make_gradient_model(width: int = 6, height: int = 4) -> ImageModel:
    """Every pixel distinct, so flips and rotations are observable."""
    arr = np.zeros((height, width, 4), dtype=np.uint8)
    for y in range(height):
        for x in range(width):
            arr[y, x] = (x * 40, y * 60, 100, 255)
    return ImageModel.still(Image.fromarray(arr))


def _pixels(model: ImageModel) -> bytes:
    return model.primary.image.tobytes()


# ---------------------------------------------------------------------------
# Flips
# ---------------------------------------------------------------------------

class TestFlips:
    def test_flip_h_moves_left_column_right(self):
        model = _make_gradient_model()
        out = filters.flip_horizontal(model)
        src = model.primary.image
        assert out.primary.image.getpixel((5, 0)) == src.getpixel((0, 0))

    def test_flip_v_moves_top_row_down(self):
        model = _make_gradient_model()
        out = filters.flip_vertical(model)
        assert out.primary.image.getpixel((0, 3)) == model.primary.image.getpixel((0, 0))

    @pytest.mark.parametrize("op", [filters.flip_horizontal, filters.flip_vertical,
                                    filters.flip_both])
    def test_involution(self, op):
        model = _make_gradient_model()
        assert _pixels(op(op(model))) == _pixels(model)

    def test_flip_both_is_h_then_v(self):
        model = _make_gradient_model()
        expected = filters.flip_vertical(filters.flip_horizontal(model))
        assert _pixels(filters.flip_both(model)) == _pixels(expected)

    def test_animation_timing_kept(self, rgb_animation):
        out = filters.flip_horizontal(rgb_animation, workers=2)
        assert out.durations == [100, 200, 300]
        assert out.loop == 0


# ---------------------------------------------------------------------------
# Colour remaps
# ---------------------------------------------------------------------------

class TestColourRemaps:
    def test_gray_of_red(self):
        out = filters.grayscale(_make_model())
        assert out.primary.image.getpixel((0, 0)) == (76, 76, 76, 255)

    def test_gray_keeps_alpha(self):
        out = filters.grayscale(_make_model((0, 0, 255, 40)))
        assert out.primary.image.getpixel((0, 0)) == (29, 29, 29, 40)

    def test_invert_red_is_cyan(self):
        out = filters.invert(_make_model())
        assert out.primary.image.getpixel((0, 0)) == (0, 255, 255, 255)

    def test_invert_involution(self):
        model = _make_gradient_model()
        assert _pixels(filters.invert(filters.invert(model))) == _pixels(model)

    def test_color_mask_keeps_lightness(self):
        out = filters.color_mask(_make_model(), "#00ff00")
        r, g, b, a = out.primary.image.getpixel((0, 0))
        assert g >= 250 and r <= 5 and b <= 5
        assert a == 255

    def test_color_mask_transparent_pixels_cleared(self):
        out = filters.color_mask(_make_model((10, 200, 30, 0)), "#ff0000")
        assert out.primary.image.getpixel((0, 0)) == (0, 0, 0, 0)

    def test_color_mask_rejects_alpha(self):
        with pytest.raises(AlphaNotSupported):
            filters.color_mask(_make_model(), "rgba(0, 255, 0, 0.5)")

    def test_color_mask_rejects_bad_colour(self):
        with pytest.raises(InvalidColor):
            filters.color_mask(_make_model(), "greenish")


class TestHsl:
    def test_round_trip(self):
        rgb = np.array([[[255, 0, 0], [12, 200, 90], [128, 128, 128]]], dtype=np.float64)
        h, s, l = filters.rgb_to_hsl(rgb)
        assert np.allclose(filters.hsl_to_rgb(h, s, l), rgb, atol=1)

    def test_grey_has_no_saturation(self):
        _, s, l = filters.rgb_to_hsl(np.array([[128.0, 128.0, 128.0]]))
        assert s[0] == 0
        assert l[0] == pytest.approx(128 / 255)


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------

class TestRotate:
    def test_quarter_turn_swaps_dimensions(self):
        out = filters.rotate(_make_model(size=(20, 10)), 90)
        assert out.size == (10, 20)

    def test_clockwise(self):
        img = Image.new("RGBA", (2, 1))
        img.putpixel((0, 0), (255, 0, 0, 255))
        img.putpixel((1, 0), (0, 0, 255, 255))
        out = filters.rotate(ImageModel.still(img), 90)
        # Left pixel ends up on top after a clockwise quarter turn.
        assert out.primary.image.getpixel((0, 0)) == (255, 0, 0, 255)
        assert out.primary.image.getpixel((0, 1)) == (0, 0, 255, 255)

    def test_canvas_grows_for_diagonal(self):
        out = filters.rotate(_make_model(size=(20, 20)), 45)
        assert out.width > 20 and out.height > 20
        assert out.primary.image.getpixel((0, 0))[3] == 0


class TestResize:
    def test_percent(self):
        assert filters.resize(_make_model(size=(40, 20)), "50%").size == (20, 10)

    def test_height_only_keeps_aspect(self):
        assert filters.resize(_make_model(size=(40, 20)), "x40").size == (80, 40)

    def test_all_frames(self, rgb_animation):
        out = filters.resize(rgb_animation, "8x8")
        assert all(f.size == (8, 8) for f in out.frames)
        assert out.durations == rgb_animation.durations

    def test_invalid(self):
        with pytest.raises(InvalidArgFormat):
            filters.resize(_make_model(), "big")


class TestCrop:
    def test_centred(self):
        model = _make_gradient_model(6, 4)
        assert filters.crop_box("2x2", 6, 4) == (2, 1, 4, 3)
        out = filters.crop(model, "2x2")
        assert out.size == (2, 2)
        assert out.primary.image.getpixel((0, 0)) == model.primary.image.getpixel((2, 1))

    def test_clamped_to_source(self):
        assert filters.crop_box("100x100", 6, 4) == (0, 0, 6, 4)

    def test_square_ratio_on_wide_image(self):
        assert filters.crop_box("1:1", 200, 100) == (50, 0, 150, 100)


# ---------------------------------------------------------------------------
# Convolution and smoothing
# ---------------------------------------------------------------------------

class TestKernels:
    def test_contour_of_flat_area_is_white(self):
        out = filters.contour(_make_model((90, 40, 10, 255)))
        assert out.primary.image.getpixel((5, 5)) == (255, 255, 255, 255)

    def test_emboss_of_flat_area_is_mid_grey(self):
        out = filters.emboss(_make_model((90, 40, 10, 255)))
        assert out.primary.image.getpixel((5, 5)) == (128, 128, 128, 255)

    def test_sharpen_of_flat_area_is_unchanged(self):
        out = filters.sharpen(_make_model((90, 40, 10, 255)))
        assert out.primary.image.getpixel((5, 5)) == (90, 40, 10, 255)

    def test_alpha_untouched(self):
        out = filters.contour(_make_model((90, 40, 10, 70)))
        assert out.primary.image.getpixel((0, 0))[3] == 70

    def test_contour_marks_edges(self):
        img = Image.new("RGBA", (10, 10), (255, 255, 255, 255))
        for y in range(10):
            img.putpixel((5, y), (0, 0, 0, 255))
        out = filters.contour(ImageModel.still(img))
        assert out.primary.image.getpixel((5, 5))[:3] == (0, 0, 0)
        assert out.primary.image.getpixel((1, 5))[:3] == (255, 255, 255)


class TestBlur:
    def test_default_radius_smooths_edge(self):
        img = Image.new("RGBA", (40, 10), (0, 0, 0, 255))
        img.paste((255, 255, 255, 255), (20, 0, 40, 10))
        out = filters.blur(ImageModel.still(img))
        assert 0 < out.primary.image.getpixel((19, 5))[0] < 255

    def test_zero_radius_is_identity(self):
        model = _make_gradient_model()
        assert _pixels(filters.blur(model, 0)) == _pixels(model)

    def test_negative_radius(self):
        with pytest.raises(ValueTooSmall):
            filters.blur(_make_model(), -1)


class TestPixelate:
    def test_blocks_are_uniform(self):
        img = Image.new("RGBA", (4, 4), (0, 0, 0, 255))
        img.putpixel((0, 0), (255, 255, 255, 255))
        out = filters.pixelate(ImageModel.still(img), 2).primary.image
        assert out.size == (4, 4)
        assert out.getpixel((0, 0)) == out.getpixel((1, 1))
        assert out.getpixel((2, 2)) == (0, 0, 0, 255)

    def test_ragged_edges_keep_size(self):
        out = filters.pixelate(_make_model(size=(13, 7)), 4)
        assert out.size == (13, 7)

    @pytest.mark.parametrize("size", [0, 1])
    def test_no_op_sizes(self, size):
        model = _make_gradient_model()
        assert _pixels(filters.pixelate(model, size)) == _pixels(model)

    def test_negative_size(self):
        with pytest.raises(ValueTooSmall):
            filters.pixelate(_make_model(), -2)

    def test_default_size(self):
        model = _make_gradient_model(16, 16)
        out = filters.pixelate(model).primary.image
        assert out.getpixel((0, 0)) == out.getpixel((7, 7))
