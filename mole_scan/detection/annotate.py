"""Render detection boxes and confidence labels onto a copy of a photo."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from PIL import Image, ImageDraw, ImageFont

from mole_scan.config import AppSettings
from mole_scan.imaging import Orientation, Photo

from .geometry import to_pixel_box
from .types import Detection


@dataclass(frozen=True)
class AnnotationStyle:
    """Stroke and label appearance."""

    stroke_width: int = 2
    color: tuple[int, int, int] = (255, 0, 0)
    font_size: int = 12
    label_height: int = 15
    opacity: int = 200

    @classmethod
    def from_settings(cls, settings: AppSettings) -> AnnotationStyle:
        return cls(stroke_width=settings.stroke_width, font_size=settings.font_size)


def format_label(detection: Detection) -> str:
    """Return e.g. ``"Mole (91.00%)"``."""
    return f"{detection.label} ({detection.confidence * 100:.2f}%)"


def _ordered_rect(detection: Detection, image_size: tuple[int, int]) -> tuple[int, int, int, int]:
    x0, y0, x1, y1 = to_pixel_box(detection.box, image_size).xyxy
    x0, x1 = sorted((int(round(x0)), int(round(x1))))
    y0, y1 = sorted((int(round(y0)), int(round(y1))))
    return x0, y0, x1, y1


def annotate_photo(
    photo: Photo,
    detections: Sequence[Detection],
    style: AnnotationStyle | None = None,
) -> Photo:
    """Draw every detection onto a new upright image.

    With no detections the result is an exact copy of ``photo``. Labels sit in a
    band directly above each box and are clipped when the box touches the top
    edge. Boxes outside the image are clipped by the rasterizer. Ink is
    blended with ``style.opacity``, so drawing over an annotated photo deepens
    the ink further.
    """
    if not detections:
        return photo.copy()

    style = style or AnnotationStyle()
    font = ImageFont.load_default(size=style.font_size)
    base = photo.upright()
    output_mode = "RGBA" if base.mode == "RGBA" else "RGB"
    base = base.convert("RGBA")

    ink = (*style.color, style.opacity)
    overlay = Image.new("RGBA", base.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)
    for detection in detections:
        x0, y0, x1, y1 = _ordered_rect(detection, base.size)
        draw.rectangle(((x0, y0), (x1, y1)), outline=ink, width=style.stroke_width)
        if detection.label:
            draw.text((x0, y0 - style.label_height), format_label(detection), fill=ink, font=font)

    canvas = Image.alpha_composite(base, overlay)
    return Photo(pixels=canvas.convert(output_mode), orientation=Orientation.UP, scale=photo.scale)
