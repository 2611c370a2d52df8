"""Detection value types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, TypeAlias

from mole_scan.imaging import Photo


ImageSize: TypeAlias = tuple[float, float]


def _clamp_unit(value: float) -> float:
    return min(1.0, max(0.0, float(value)))


@dataclass(frozen=True, slots=True)
class NormalizedBox:
    """Box in unit fractions of the image, origin at the bottom-left."""

    x: float
    y: float
    width: float
    height: float

    @property
    def in_unit_square(self) -> bool:
        return (
            0.0 <= self.x <= 1.0
            and 0.0 <= self.y <= 1.0
            and self.width >= 0.0
            and self.height >= 0.0
            and self.x + self.width <= 1.0
            and self.y + self.height <= 1.0
        )

    def clamped(self) -> NormalizedBox:
        """Intersect the box with the unit square."""
        x0 = _clamp_unit(self.x)
        y0 = _clamp_unit(self.y)
        x1 = _clamp_unit(self.x + self.width)
        y1 = _clamp_unit(self.y + self.height)
        return NormalizedBox(x=x0, y=y0, width=max(0.0, x1 - x0), height=max(0.0, y1 - y0))


@dataclass(frozen=True, slots=True)
class PixelBox:
    """Box in image pixels, origin at the top-left."""

    x: float
    y: float
    width: float
    height: float

    @property
    def xyxy(self) -> tuple[float, float, float, float]:
        return self.x, self.y, self.x + self.width, self.y + self.height


@dataclass(frozen=True, slots=True)
class Detection:
    """One region reported by the model."""

    box: NormalizedBox
    label: str
    confidence: float


class Detector(Protocol):
    def detect(self, photo: Photo) -> list[Detection]:
        ...
