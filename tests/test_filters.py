from __future__ import annotations

import unittest

from PIL import Image

from noai_feed.errors import InvalidFilter
from noai_feed.filters import (
    FilterId,
    apply_filter,
    brightness,
    contrast,
    hue_rotate,
    parse_filter_id,
    saturate,
    sepia,
)

_IDENTITY = (1.0, 0.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 0.0, 1.0, 0.0)


class TestFilters(unittest.TestCase):
    def test_parse_filter_id(self) -> None:
        self.assertIs(parse_filter_id("warm"), FilterId.WARM)
        self.assertIs(parse_filter_id(" Vintage "), FilterId.VINTAGE)
        self.assertIs(parse_filter_id(FilterId.COOL), FilterId.COOL)

        for bad in ("sparkle", "", "none"):
            with self.subTest(bad=bad):
                with self.assertRaises(InvalidFilter):
                    parse_filter_id(bad)

    def test_invalid_filter_is_a_value_error(self) -> None:
        with self.assertRaises(ValueError):
            parse_filter_id("ai-enhance")

    def test_neutral_amounts_are_identity_matrices(self) -> None:
        for matrix in (sepia(0.0), saturate(1.0), hue_rotate(0), brightness(1.0), contrast(1.0)):
            for got, want in zip(matrix, _IDENTITY):
                self.assertAlmostEqual(got, want, places=6)

    def test_identity_returns_equal_copy(self) -> None:
        img = Image.new("RGB", (8, 4), (10, 120, 230))
        out = apply_filter(img, FilterId.IDENTITY)
        self.assertIsNot(out, img)
        self.assertEqual(out.tobytes(), img.tobytes())

    def test_monochrome_equalizes_channels(self) -> None:
        img = Image.new("RGB", (4, 4), (200, 40, 90))
        r, g, b = apply_filter(img, "monochrome").getpixel((0, 0))
        self.assertEqual(r, g)
        self.assertEqual(g, b)

    def test_every_filter_keeps_size_and_input(self) -> None:
        img = Image.new("RGB", (6, 3), (90, 140, 60))
        before = img.tobytes()
        for fid in FilterId:
            with self.subTest(fid=fid):
                out = apply_filter(img, fid)
                self.assertEqual(out.size, img.size)
                self.assertEqual(out.mode, "RGB")
        self.assertEqual(img.tobytes(), before)

    def test_warm_shifts_gray_toward_red(self) -> None:
        img = Image.new("RGB", (2, 2), (128, 128, 128))
        r, _, b = apply_filter(img, FilterId.WARM).getpixel((0, 0))
        self.assertGreater(r, b)

    def test_converts_non_rgb_input(self) -> None:
        img = Image.new("L", (3, 3), 100)
        out = apply_filter(img, FilterId.IDENTITY)
        self.assertEqual(out.mode, "RGB")
        self.assertEqual(out.getpixel((1, 1)), (100, 100, 100))


if __name__ == "__main__":
    unittest.main()
