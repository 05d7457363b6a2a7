"""Tests for the pixel recoloring engine."""

import numpy as np
import pytest

from docpipe.services.recolor import (
    RecolorMode,
    brightness,
    recolor,
    recolor_buffer,
    validate_color,
)
from docpipe.utils.exceptions import InvalidOptionsError


def _buffer(*pixels):
    """One-row RGBA buffer from (r, g, b, a) tuples."""
    return np.array([list(pixels)], dtype=np.uint8)


class TestRecolor:
    def test_dark_mode_rewrites_dark_pixels(self):
        pixels = _buffer((10, 10, 10, 255), (250, 250, 250, 255))
        changed = recolor(pixels, RecolorMode.DARK, 128, (0, 0, 200))
        assert changed == 1
        assert pixels[0, 0].tolist() == [0, 0, 200, 255]
        assert pixels[0, 1].tolist() == [250, 250, 250, 255]

    def test_light_mode_rewrites_light_pixels(self):
        pixels = _buffer((10, 10, 10, 255), (250, 250, 250, 255))
        changed = recolor(pixels, "light", 128, (255, 0, 0))
        assert changed == 1
        assert pixels[0, 0].tolist() == [10, 10, 10, 255]
        assert pixels[0, 1].tolist() == [255, 0, 0, 255]

    def test_threshold_is_strict(self):
        pixels = _buffer((128, 128, 128, 255))
        assert recolor(pixels, "dark", 128, (1, 2, 3)) == 0
        assert recolor(pixels, "light", 128, (1, 2, 3)) == 0

    def test_brightness_is_channel_mean(self):
        # mean = (0 + 0 + 255) / 3 = 85
        pixels = _buffer((0, 0, 255, 255))
        assert brightness(pixels)[0, 0] == pytest.approx(85.0)
        assert recolor(pixels.copy(), "dark", 86, (9, 9, 9)) == 1
        assert recolor(pixels.copy(), "dark", 85, (9, 9, 9)) == 0

    def test_alpha_untouched(self):
        pixels = _buffer((0, 0, 0, 17), (0, 0, 0, 0))
        recolor(pixels, "dark", 128, (200, 100, 50))
        assert pixels[0, :, 3].tolist() == [17, 0]

    def test_idempotent_for_same_target(self):
        pixels = _buffer((20, 20, 20, 255), (240, 240, 240, 255))
        recolor(pixels, "dark", 128, (0, 0, 0))
        first = pixels.copy()
        recolor(pixels, "dark", 128, (0, 0, 0))
        assert np.array_equal(first, pixels)

    def test_threshold_zero_dark_changes_nothing(self):
        pixels = _buffer((0, 0, 0, 255))
        assert recolor(pixels, "dark", 0, (255, 255, 255)) == 0

    def test_threshold_max_light_changes_nothing(self):
        pixels = _buffer((255, 255, 255, 255))
        assert recolor(pixels, "light", 255, (0, 0, 0)) == 0

    def test_invalid_shape(self):
        with pytest.raises(ValueError):
            recolor(np.zeros((2, 2, 3), dtype=np.uint8))

    def test_invalid_dtype(self):
        with pytest.raises(ValueError):
            recolor(np.zeros((2, 2, 4), dtype=np.float32))

    def test_invalid_threshold(self):
        with pytest.raises(InvalidOptionsError):
            recolor(_buffer((0, 0, 0, 255)), "dark", 300)

    def test_invalid_mode(self):
        with pytest.raises(InvalidOptionsError):
            recolor(_buffer((0, 0, 0, 255)), "medium")


class TestRecolorBuffer:
    def test_raw_bytes_in_place(self):
        raw = bytearray([0, 0, 0, 255, 255, 255, 255, 255])
        assert recolor_buffer(raw, 2, 1, "dark", 128, (10, 20, 30)) == 1
        assert list(raw[:4]) == [10, 20, 30, 255]

    def test_size_mismatch(self):
        with pytest.raises(ValueError):
            recolor_buffer(bytearray(7), 2, 1)


class TestValidateColor:
    def test_returns_ints(self):
        assert validate_color([1, 2, 3]) == (1, 2, 3)

    @pytest.mark.parametrize("color", [(1, 2), (0, 0, 256), (-1, 0, 0), "red"])
    def test_rejects_bad_colors(self, color):
        with pytest.raises(InvalidOptionsError):
            validate_color(color)
