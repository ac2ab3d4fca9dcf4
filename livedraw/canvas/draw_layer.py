"""Freehand stroke layer drawn over the input image."""
from dataclasses import dataclass, field
from typing import Optional, Sequence

import PIL.Image
import PIL.ImageColor
import PIL.ImageDraw

from ..config import DEFAULT_BRUSH_COLOR, DEFAULT_BRUSH_SIZE, MAX_BRUSH_SIZE
from ..exceptions import CaptureError, ValidationError
from .images import encode_jpeg, normalize_image

Point = tuple[float, float]


def _check_brush(color: str, size: int) -> None:
    if not 1 <= size <= MAX_BRUSH_SIZE:
        raise ValidationError(f"Brush size must be between 1 and {MAX_BRUSH_SIZE}", field="size")
    try:
        PIL.ImageColor.getrgb(color)
    except ValueError:
        raise ValidationError(f"Unknown brush color: {color}", field="color")


@dataclass(frozen=True)
class BrushSettings:
    color: str = DEFAULT_BRUSH_COLOR
    size: int = DEFAULT_BRUSH_SIZE

    def __post_init__(self):
        _check_brush(self.color, self.size)


@dataclass(frozen=True)
class Stroke:
    """One pen-down..pen-up gesture, in image pixel coordinates."""
    points: tuple[Point, ...]
    color: str = DEFAULT_BRUSH_COLOR
    size: int = DEFAULT_BRUSH_SIZE

    def __post_init__(self):
        if not self.points:
            raise ValidationError("A stroke needs at least one point", field="points")
        _check_brush(self.color, self.size)

    @classmethod
    def from_points(cls, points: Sequence[Sequence[float]], brush: BrushSettings) -> "Stroke":
        return cls(
            points=tuple((float(x), float(y)) for x, y in points),
            color=brush.color,
            size=brush.size,
        )


@dataclass
class DrawLayer:
    strokes: list[Stroke] = field(default_factory=list)

    def add_stroke(self, stroke: Stroke) -> None:
        self.strokes.append(stroke)

    def undo_stroke(self) -> Optional[Stroke]:
        """Drop and return the most recent stroke."""
        if not self.strokes:
            return None
        return self.strokes.pop()

    def clear(self) -> None:
        self.strokes.clear()

    def render(self, base: PIL.Image.Image) -> PIL.Image.Image:
        """Return a copy of ``base`` with every stroke painted on it."""
        canvas = base.convert("RGB")
        draw = PIL.ImageDraw.Draw(canvas)
        for stroke in self.strokes:
            radius = stroke.size / 2
            if len(stroke.points) > 1:
                draw.line(stroke.points, fill=stroke.color, width=stroke.size)
            # Round caps and joins
            for x, y in stroke.points:
                draw.ellipse((x - radius, y - radius, x + radius, y + radius), fill=stroke.color)
        return canvas


def capture_composite(
    base: Optional[PIL.Image.Image],
    layer: DrawLayer,
    size: int,
    quality: int = 90,
) -> bytes:
    """Flatten ``base`` and the layer's strokes into a square JPEG.

    Raises:
        CaptureError: If there is no base image to draw on
    """
    if base is None:
        raise CaptureError("No input image loaded")
    try:
        flattened = layer.render(normalize_image(base, size))
        return encode_jpeg(flattened, quality=quality)
    except (OSError, ValueError) as e:
        raise CaptureError(f"Could not capture canvas: {e}") from e
