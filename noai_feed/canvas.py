from __future__ import annotations

from dataclasses import dataclass

Point = tuple[float, float]
Size = tuple[int, int]


@dataclass(frozen=True)
class CanvasRect:
    """On-screen placement of the drawing canvas, in client (CSS) pixels."""

    left: float
    top: float
    width: float
    height: float


def constrain_size(size: Size, max_width: int) -> tuple[Size, float]:
    """
    Fit `size` within `max_width`, preserving aspect ratio.

    Only downscales: sources narrower than the limit keep scale 1.0.
    """
    width, height = size
    if width <= 0 or height <= 0:
        raise ValueError("image size must be positive")
    if max_width <= 0:
        raise ValueError("max_width must be positive")

    scale = max_width / width if width > max_width else 1.0
    out_w = max(1, round(width * scale))
    out_h = max(1, round(height * scale))
    return (out_w, out_h), scale


def to_backing_point(client_x: float, client_y: float, rect: CanvasRect, backing_size: Size) -> Point:
    """
    Map a pointer position in client space onto the canvas backing buffer.

    The canvas may be displayed at a different size than its pixel buffer,
    and the two axes can scale independently.
    """
    if rect.width <= 0 or rect.height <= 0:
        raise ValueError("canvas rect must have a positive size")

    backing_w, backing_h = backing_size
    scale_x = backing_w / rect.width
    scale_y = backing_h / rect.height
    return ((client_x - rect.left) * scale_x, (client_y - rect.top) * scale_y)
