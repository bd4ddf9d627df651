"""Non-generative photographic filters.

Every filter is a fixed chain of colour operations (the same functions CSS
`filter:` offers: sepia, grayscale, saturate, hue-rotate, brightness,
contrast). Each operation is an affine RGB transform, so a chain is applied
as successive Pillow colour-matrix conversions, clamping to 0..255 between
steps.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Sequence

from PIL import Image

from .errors import InvalidFilter

# Row-major 3x4 affine matrix: (r_r, r_g, r_b, r_off, g_r, ..., b_off).
Matrix = tuple[float, ...]


class FilterId(str, Enum):
    IDENTITY = "identity"
    WARM = "warm"
    COOL = "cool"
    MONOCHROME = "monochrome"
    VINTAGE = "vintage"


def parse_filter_id(value: FilterId | str) -> FilterId:
    if isinstance(value, FilterId):
        return value
    key = (value or "").strip().lower() if isinstance(value, str) else ""
    try:
        return FilterId(key)
    except ValueError:
        raise InvalidFilter(f"Unknown filter id: {value!r}") from None


def _linear(rows: Sequence[Sequence[float]], offset: float = 0.0) -> Matrix:
    out: list[float] = []
    for row in rows:
        out.extend(float(v) for v in row)
        out.append(float(offset))
    return tuple(out)


def sepia(amount: float) -> Matrix:
    a = 1.0 - min(max(amount, 0.0), 1.0)
    return _linear(
        [
            (0.393 + 0.607 * a, 0.769 - 0.769 * a, 0.189 - 0.189 * a),
            (0.349 - 0.349 * a, 0.686 + 0.314 * a, 0.168 - 0.168 * a),
            (0.272 - 0.272 * a, 0.534 - 0.534 * a, 0.131 + 0.869 * a),
        ]
    )


def grayscale(amount: float) -> Matrix:
    a = 1.0 - min(max(amount, 0.0), 1.0)
    return _linear(
        [
            (0.2126 + 0.7874 * a, 0.7152 - 0.7152 * a, 0.0722 - 0.0722 * a),
            (0.2126 - 0.2126 * a, 0.7152 + 0.2848 * a, 0.0722 - 0.0722 * a),
            (0.2126 - 0.2126 * a, 0.7152 - 0.7152 * a, 0.0722 + 0.9278 * a),
        ]
    )


def saturate(amount: float) -> Matrix:
    s = max(amount, 0.0)
    return _linear(
        [
            (0.213 + 0.787 * s, 0.715 - 0.715 * s, 0.072 - 0.072 * s),
            (0.213 - 0.213 * s, 0.715 + 0.285 * s, 0.072 - 0.072 * s),
            (0.213 - 0.213 * s, 0.715 - 0.715 * s, 0.072 + 0.928 * s),
        ]
    )


def hue_rotate(degrees: float) -> Matrix:
    rad = math.radians(degrees)
    c = math.cos(rad)
    s = math.sin(rad)
    return _linear(
        [
            (0.213 + c * 0.787 - s * 0.213, 0.715 - c * 0.715 - s * 0.715, 0.072 - c * 0.072 + s * 0.928),
            (0.213 - c * 0.213 + s * 0.143, 0.715 + c * 0.285 + s * 0.140, 0.072 - c * 0.072 - s * 0.283),
            (0.213 - c * 0.213 - s * 0.787, 0.715 - c * 0.715 + s * 0.715, 0.072 + c * 0.928 + s * 0.072),
        ]
    )


def brightness(amount: float) -> Matrix:
    b = max(amount, 0.0)
    return _linear([(b, 0, 0), (0, b, 0), (0, 0, b)])


def contrast(amount: float) -> Matrix:
    c = max(amount, 0.0)
    return _linear([(c, 0, 0), (0, c, 0), (0, 0, c)], offset=127.5 * (1.0 - c))


FILTER_CHAINS: dict[FilterId, tuple[Matrix, ...]] = {
    FilterId.IDENTITY: (),
    FilterId.WARM: (sepia(0.4), contrast(1.1), brightness(1.1)),
    FilterId.COOL: (hue_rotate(180), sepia(0.2)),
    FilterId.MONOCHROME: (grayscale(1.0), contrast(1.2)),
    FilterId.VINTAGE: (sepia(0.6), contrast(1.1), saturate(0.8)),
}


def apply_filter(image: Image.Image, filter_id: FilterId | str) -> Image.Image:
    """Return a new RGB image with the filter applied; `image` is left untouched."""
    fid = parse_filter_id(filter_id)

    out = image.convert("RGB") if image.mode != "RGB" else image.copy()
    for matrix in FILTER_CHAINS[fid]:
        out = out.convert("RGB", matrix)
    return out
