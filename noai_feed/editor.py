"""Capture/editor engine: filter + freehand strokes flattened into one JPEG.

Composition is always two layers, in this order:

1. the base image resized to the constrained display size, with the active
   filter applied;
2. every stroke, in drawing order, as connected round-capped line segments,
   drawn unfiltered on top.

The source pixels are never modified; each flatten works on fresh copies.
"""

from __future__ import annotations

import base64
import io
from dataclasses import dataclass
from typing import Iterable

from PIL import Image, ImageDraw, ImageOps, UnidentifiedImageError

from .canvas import Point, Size, constrain_size
from .config_schema import EditorConfig
from .errors import DecodeError, DraftClosedError
from .filters import FilterId, apply_filter, parse_filter_id


@dataclass(frozen=True)
class Stroke:
    points: tuple[Point, ...]
    width: int
    color: str


@dataclass(frozen=True)
class FlattenedImage:
    data: bytes
    width: int
    height: int
    mime_type: str = "image/jpeg"

    def as_data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


def _decode(data: bytes) -> Image.Image:
    if not data:
        raise DecodeError("No image data")

    try:
        img = Image.open(io.BytesIO(data))
        img.load()
        # upright, as a browser would draw it
        img = ImageOps.exif_transpose(img)
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeError(f"Unreadable image: {e}") from e

    if img.mode != "RGB":
        img = img.convert("RGB")
    return img


def apply_filter_only(base_image: Image.Image, filter_id: FilterId | str, display_size: Size) -> Image.Image:
    """The base layer alone: resize to the display size, then filter."""
    if base_image.size == tuple(display_size):
        resized = base_image.copy()
    else:
        resized = base_image.resize(display_size, Image.LANCZOS)
    return apply_filter(resized, filter_id)


def draw_strokes(image: Image.Image, strokes: Iterable[Stroke]) -> None:
    """Draw strokes onto `image` in order. A stroke needs two points to leave a mark."""
    draw = ImageDraw.Draw(image)
    for stroke in strokes:
        if len(stroke.points) < 2:
            continue

        draw.line(list(stroke.points), fill=stroke.color, width=stroke.width, joint="curve")

        # round line caps
        r = stroke.width / 2.0
        for x, y in (stroke.points[0], stroke.points[-1]):
            draw.ellipse((x - r, y - r, x + r, y + r), fill=stroke.color)


class EditorDraft:
    """
    The single in-progress edit: a base image, one filter and ordered strokes.

    Points are in backing-buffer pixels (the display size); use
    canvas.to_backing_point to convert pointer positions first.
    """

    def __init__(self, base_image: Image.Image, *, config: EditorConfig | None = None) -> None:
        self._config = config or EditorConfig()
        self._base = base_image
        self._display_size, self._scale = constrain_size(base_image.size, self._config.max_width)
        self._filter_id = FilterId.IDENTITY
        self._strokes: list[Stroke] = []
        self._open_points: list[Point] | None = None
        self._closed = False

    @property
    def base_image(self) -> Image.Image:
        return self._base

    @property
    def display_size(self) -> Size:
        return self._display_size

    @property
    def scale(self) -> float:
        return self._scale

    @property
    def filter_id(self) -> FilterId:
        return self._filter_id

    @property
    def strokes(self) -> tuple[Stroke, ...]:
        return tuple(self._strokes)

    @property
    def stroke_open(self) -> bool:
        return self._open_points is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def set_filter(self, filter_id: FilterId | str) -> None:
        self._ensure_open()
        self._filter_id = parse_filter_id(filter_id)

    def begin_stroke(self, point: Point) -> None:
        self._ensure_open()
        if self._open_points is not None:
            self.end_stroke()
        self._open_points = [_as_point(point)]

    def append_stroke_point(self, point: Point) -> None:
        self._ensure_open()
        # move events can arrive before the pointer-down on some devices
        if self._open_points is None:
            return
        self._open_points.append(_as_point(point))

    def end_stroke(self) -> None:
        self._ensure_open()
        if self._open_points is None:
            return
        self._strokes.append(self._make_stroke(self._open_points))
        self._open_points = None

    def compose(self) -> Image.Image:
        """Render both layers into a new RGB image without encoding it."""
        self._ensure_open()
        out = apply_filter_only(self._base, self._filter_id, self._display_size)
        strokes = list(self._strokes)
        if self._open_points is not None:
            strokes.append(self._make_stroke(self._open_points))
        draw_strokes(out, strokes)
        return out

    def flatten(self) -> FlattenedImage:
        image = self.compose()
        buf = io.BytesIO()
        image.save(buf, format="JPEG", quality=self._config.jpeg_quality)
        return FlattenedImage(data=buf.getvalue(), width=image.width, height=image.height)

    def discard(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._strokes.clear()
        self._open_points = None

    def _make_stroke(self, points: list[Point]) -> Stroke:
        return Stroke(
            points=tuple(points),
            width=self._config.stroke_width,
            color=self._config.stroke_color,
        )

    def _ensure_open(self) -> None:
        if self._closed:
            raise DraftClosedError("Editor draft was discarded")


def _as_point(point: Point) -> Point:
    x, y = point
    return (float(x), float(y))


def load_image(data: bytes, *, config: EditorConfig | None = None) -> EditorDraft:
    """Decode image bytes into a fresh draft (identity filter, no strokes)."""
    return EditorDraft(_decode(data), config=config)


class EditorSession:
    """Holds at most one active draft; opening a new image drops the previous one."""

    def __init__(self, *, config: EditorConfig | None = None) -> None:
        self._config = config or EditorConfig()
        self._draft: EditorDraft | None = None

    @property
    def draft(self) -> EditorDraft | None:
        return self._draft

    def open(self, data: bytes) -> EditorDraft:
        self.cancel()
        self._draft = load_image(data, config=self._config)
        return self._draft

    def cancel(self) -> None:
        if self._draft is not None:
            self._draft.discard()
            self._draft = None

    def flatten(self) -> FlattenedImage:
        """Flatten the active draft without consuming it."""
        if self._draft is None:
            raise DraftClosedError("No active editor draft")
        return self._draft.flatten()

    def save(self) -> FlattenedImage:
        image = self.flatten()
        self.cancel()
        return image
