"""Conversion from model-normalized boxes to pixel rectangles."""

from __future__ import annotations

from .types import ImageSize, NormalizedBox, PixelBox


def to_pixel_box(box: NormalizedBox, image_size: ImageSize) -> PixelBox:
    """Scale a bottom-left-origin normalized box to top-left-origin pixels.

    The box is not clamped; out-of-range input maps to out-of-range pixels.
    """
    width, height = image_size
    if width <= 0 or height <= 0:
        raise ValueError(f"Image size must be positive, got {width}x{height}")
    return PixelBox(
        x=box.x * width,
        y=(1.0 - box.y - box.height) * height,
        width=box.width * width,
        height=box.height * height,
    )
