"""Freehand signature capture for the order form.

The pad keeps strokes in a fixed logical coordinate space and paints them into a
Pillow RGBA buffer at device resolution. After each finished stroke the buffer is
encoded to a PNG data URI, which is the only thing the order form ever stores.
"""

from __future__ import annotations

import base64
import enum
import io
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from PIL import Image, ImageColor, ImageDraw

from config import (
    SIGNATURE_HEIGHT,
    SIGNATURE_PEN_COLOR,
    SIGNATURE_PEN_WIDTH,
    SIGNATURE_PIXEL_RATIO,
    SIGNATURE_WIDTH,
)

LOGGER = logging.getLogger("drinkmix")

DATA_URI_PREFIX = "data:image/png;base64,"

Point = Tuple[float, float]


class PadState(enum.Enum):
    EMPTY = "empty"
    DRAWING = "drawing"
    HAS_SIGNATURE = "has_signature"


@dataclass
class Stroke:
    points: List[Point] = field(default_factory=list)
    closed: bool = False

    def segments(self) -> Iterable[Tuple[Point, Point]]:
        for i in range(1, len(self.points)):
            yield self.points[i - 1], self.points[i]


@dataclass
class SurfaceGeometry:
    """Logical surface size plus how it is currently shown on screen.

    `display_width`/`display_height` are the CSS pixel size of the element the user
    draws on; `pixel_ratio` is the device pixel ratio used for the raster buffer.
    """

    width: int = SIGNATURE_WIDTH
    height: int = SIGNATURE_HEIGHT
    display_width: float = float(SIGNATURE_WIDTH)
    display_height: float = float(SIGNATURE_HEIGHT)
    pixel_ratio: float = SIGNATURE_PIXEL_RATIO

    def __post_init__(self) -> None:
        if self.display_width <= 0:
            self.display_width = float(self.width)
        if self.display_height <= 0:
            self.display_height = float(self.height)
        if self.pixel_ratio <= 0:
            self.pixel_ratio = 1.0

    @property
    def raster_size(self) -> Tuple[int, int]:
        return (
            max(1, int(round(self.width * self.pixel_ratio))),
            max(1, int(round(self.height * self.pixel_ratio))),
        )

    def normalize(self, raw: Sequence[float]) -> Point:
        x = float(raw[0]) * self.width / self.display_width
        y = float(raw[1]) * self.height / self.display_height
        x = min(max(x, 0.0), float(self.width))
        y = min(max(y, 0.0), float(self.height))
        return (x, y)

    def to_pixels(self, point: Point) -> Tuple[float, float]:
        return (point[0] * self.pixel_ratio, point[1] * self.pixel_ratio)

    def same_raster(self, other: "SurfaceGeometry") -> bool:
        return (self.width, self.height, self.pixel_ratio) == (other.width, other.height, other.pixel_ratio)


class StrokeRenderer:
    """Paints strokes into a live RGBA buffer.

    Painting is opaque and not antialiased, so the pixels after `redraw_all` match
    the pixels produced by incremental `draw_dot`/`draw_segment` calls.
    """

    def __init__(
        self,
        geometry: SurfaceGeometry,
        pen_color: str = SIGNATURE_PEN_COLOR,
        pen_width: float = SIGNATURE_PEN_WIDTH,
    ):
        self.geometry = geometry
        self.pen_rgba = ImageColor.getrgb(pen_color)[:3] + (255,)
        self.pen_width = pen_width
        self.segment_count = 0
        self._image = Image.new("RGBA", geometry.raster_size, (0, 0, 0, 0))
        self._draw = ImageDraw.Draw(self._image)

    @property
    def image(self) -> Image.Image:
        return self._image

    @property
    def pen_px(self) -> int:
        return max(1, int(round(self.pen_width * self.geometry.pixel_ratio)))

    def _cap(self, px: Tuple[float, float]) -> None:
        r = self.pen_px / 2.0
        x, y = int(round(px[0])), int(round(px[1]))
        self._draw.ellipse((x - r, y - r, x + r, y + r), fill=self.pen_rgba)

    def draw_dot(self, point: Point) -> None:
        self._cap(self.geometry.to_pixels(point))

    def draw_segment(self, a: Point, b: Point) -> None:
        pa = self.geometry.to_pixels(a)
        pb = self.geometry.to_pixels(b)
        self._draw.line(
            [(int(round(pa[0])), int(round(pa[1]))), (int(round(pb[0])), int(round(pb[1])))],
            fill=self.pen_rgba,
            width=self.pen_px,
        )
        self._cap(pa)
        self._cap(pb)
        self.segment_count += 1

    def reset_surface(self, geometry: Optional[SurfaceGeometry] = None) -> None:
        if geometry is not None:
            self.geometry = geometry
        self._image = Image.new("RGBA", self.geometry.raster_size, (0, 0, 0, 0))
        self._draw = ImageDraw.Draw(self._image)

    def redraw_all(self, strokes: Sequence[Stroke]) -> None:
        self.reset_surface()
        for stroke in strokes:
            if not stroke.points:
                continue
            self.draw_dot(stroke.points[0])
            for a, b in stroke.segments():
                self.draw_segment(a, b)


def encode_png_data_uri(img: Image.Image) -> str:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return DATA_URI_PREFIX + base64.b64encode(buf.getvalue()).decode("ascii")


class SignaturePad:
    """Stateful signature surface consumed by the order form.

    The form passes `on_change` and reads `signature_value`; it never touches strokes.
    `on_change` fires once for every closed stroke and once for every `clear()`.
    """

    def __init__(
        self,
        on_change: Optional[Callable[[str], None]] = None,
        geometry: Optional[SurfaceGeometry] = None,
    ):
        self.geometry = geometry or SurfaceGeometry()
        self.renderer = StrokeRenderer(self.geometry)
        self._on_change = on_change
        self._committed: List[Stroke] = []
        self._open: Optional[Stroke] = None
        self._artifact = ""
        # (mount id, nonce) of the browser surface the strokes were last synced from
        self.source: Optional[Tuple[str, int]] = None

    def bind(self, on_change: Optional[Callable[[str], None]]) -> None:
        self._on_change = on_change

    # ------------------------------------------------------------------
    # input capture
    # ------------------------------------------------------------------
    def begin(self, raw: Sequence[float]) -> None:
        if self._open is not None:
            LOGGER.debug("begin ignored; stroke already open", extra={"ctx": {"component": "signature"}})
            return
        point = self.geometry.normalize(raw)
        self._open = Stroke(points=[point])
        self.renderer.draw_dot(point)

    def extend(self, raw: Sequence[float]) -> None:
        if self._open is None:
            return
        point = self.geometry.normalize(raw)
        prev = self._open.points[-1]
        self._open.points.append(point)
        self.renderer.draw_segment(prev, point)

    def end(self) -> None:
        if self._open is None:
            return
        stroke = self._open
        stroke.closed = True
        self._open = None
        self._committed.append(stroke)
        self._artifact = self.encode()
        LOGGER.debug(
            "Stroke committed",
            extra={"ctx": {"component": "signature", "strokes": len(self._committed), "points": len(stroke.points)}},
        )
        self._notify()

    # ------------------------------------------------------------------
    # rendering / encoding
    # ------------------------------------------------------------------
    def redraw_all(self, strokes: Optional[Sequence[Stroke]] = None) -> None:
        self.renderer.redraw_all(self._committed if strokes is None else strokes)

    def resize(self, geometry: SurfaceGeometry) -> None:
        """Apply a new on-screen size or pixel ratio, redrawing when the raster changes."""
        raster_changed = not self.geometry.same_raster(geometry)
        self.geometry = geometry
        self.renderer.geometry = geometry
        if raster_changed:
            self.renderer.reset_surface(geometry)
            # The emitted artifact stays as-is; the next closed stroke re-encodes at the new size.
            self.redraw_all()
            if self._open is not None:
                self.renderer.draw_dot(self._open.points[0])
                for a, b in self._open.segments():
                    self.renderer.draw_segment(a, b)

    def encode(self) -> str:
        return encode_png_data_uri(self.renderer.image)

    def is_empty(self) -> bool:
        return not self._committed and (self._open is None or not self._open.points)

    # ------------------------------------------------------------------
    # reset / host contract
    # ------------------------------------------------------------------
    def clear(self) -> None:
        self._committed = []
        self._open = None
        self._artifact = ""
        self.redraw_all([])
        self._notify()

    @property
    def state(self) -> PadState:
        if self._open is not None:
            return PadState.DRAWING
        if self._committed:
            return PadState.HAS_SIGNATURE
        return PadState.EMPTY

    @property
    def signature_value(self) -> str:
        return self._artifact

    @property
    def committed_strokes(self) -> Tuple[Stroke, ...]:
        return tuple(self._committed)

    @property
    def image(self) -> Image.Image:
        return self.renderer.image

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self._artifact)
