"""Unit tests for fill colour parsing."""

import pytest

from imagefilter.processing.colors import TRANSPARENT, parse_color


class TestParseColor:

    def test_named_color(self):
        assert parse_color("red") == (1.0, 0.0, 0.0, 1.0)

    def test_named_color_is_case_insensitive(self):
        assert parse_color(" Navy ") == parse_color("navy")

    def test_transparent(self):
        assert parse_color("transparent") == TRANSPARENT

    def test_short_hex(self):
        assert parse_color("#fff") == (1.0, 1.0, 1.0, 1.0)

    def test_short_hex_with_alpha(self):
        assert parse_color("#0f08")[3] == pytest.approx(0x88 / 255.0)

    def test_long_hex(self):
        r, g, b, a = parse_color("#336699")
        assert (r, g, b, a) == pytest.approx((0x33 / 255.0, 0x66 / 255.0, 0x99 / 255.0, 1.0))

    def test_long_hex_with_alpha(self):
        assert parse_color("#ff000080")[3] == pytest.approx(128 / 255.0)

    def test_rgb_function(self):
        assert parse_color("rgb(0, 255, 0)") == (0.0, 1.0, 0.0, 1.0)

    def test_rgba_function(self):
        assert parse_color("rgba(255, 0, 0, 0.5)") == (1.0, 0.0, 0.0, 0.5)

    def test_percentages(self):
        assert parse_color("rgba(100%, 50%, 0%, 25%)") == pytest.approx((1.0, 0.5, 0.0, 0.25))

    @pytest.mark.parametrize("text", [
        "notacolor",
        "#12",
        "#ggg",
        "123456",
        "rgb(300, 0, 0)",
        "rgb(1, 2)",
        "rgba(1, 2, 3)",
        "",
    ])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            parse_color(text)
