"""
Tests for colour and angle parsing.
"""

from __future__ import annotations

import pytest

from imagetools.colors import (color_to_css, parse_angle, parse_color,
                               rgb_to_rgba, rgba_to_rgb)
from imagetools.exceptions import InvalidAngle, InvalidColor


class TestParseColor:
    @pytest.mark.parametrize("text, expected", [
        ("#f00", (255, 0, 0, 255)),
        ("f00", (255, 0, 0, 255)),
        ("#f008", (255, 0, 0, 136)),
        ("#00FF00", (0, 255, 0, 255)),
        ("#0000ff80", (0, 0, 255, 128)),
        ("255,128,0", (255, 128, 0, 255)),
        ("10 20 30", (10, 20, 30, 255)),
        ("rgb(1, 2, 3)", (1, 2, 3, 255)),
        ("RGBA(1, 2, 3, 0.5)", (1, 2, 3, 128)),
        ("rgba(1, 2, 3, 200)", (1, 2, 3, 200)),
        ("  #fff  ", (255, 255, 255, 255)),
    ])
    def test_accepted_forms(self, text, expected):
        assert parse_color(text) == expected

    def test_zero_alpha_is_transparent(self):
        assert parse_color("rgba(0, 0, 0, 0)") == (0, 0, 0, 0)

    @pytest.mark.parametrize("text", ["", "#12", "#12345", "rgb(256, 0, 0)",
                                      "rgba(0, 0, 0, 300)", "red", "1,2"])
    def test_rejected(self, text):
        with pytest.raises(InvalidColor):
            parse_color(text)

    def test_error_carries_input(self):
        with pytest.raises(InvalidColor) as exc_info:
            parse_color("nope")
        assert exc_info.value.params == ["nope"]


class TestConversions:
    def test_rgba_to_rgb(self):
        assert rgba_to_rgb((1, 2, 3, 4)) == (1, 2, 3)

    def test_rgb_to_rgba(self):
        assert rgb_to_rgba((1, 2, 3)) == (1, 2, 3, 255)

    def test_css_opaque(self):
        assert color_to_css((1, 2, 3, 255)) == "rgb(1, 2, 3)"
        assert color_to_css((1, 2, 3)) == "rgb(1, 2, 3)"

    def test_css_translucent(self):
        assert color_to_css((1, 2, 3, 0)) == "rgba(1, 2, 3, 0.0)"
        assert color_to_css((1, 2, 3, 51)) == "rgba(1, 2, 3, 0.2)"


class TestParseAngle:
    @pytest.mark.parametrize("text, expected", [
        ("上下", 90), ("竖直", 90), ("Vertical", 90),
        ("左右", 0), ("水平", 0), ("horizontal", 0),
        ("0", 0), ("45", 45), ("360", 360),
        ("45.5", 45), ("90deg", 90), ("4.5", 4), (" 30 ", 30),
    ])
    def test_accepted(self, text, expected):
        assert parse_angle(text) == expected

    @pytest.mark.parametrize("text", ["361", "-1", "400deg", "diagonal", "deg90", ""])
    def test_rejected(self, text):
        with pytest.raises(InvalidAngle):
            parse_angle(text)
