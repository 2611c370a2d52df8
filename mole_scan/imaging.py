"""Photo buffer with orientation metadata, plus decode/encode helpers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from io import BytesIO
from pathlib import Path

from PIL import Image, UnidentifiedImageError


EXIF_ORIENTATION_TAG = 0x0112


class Orientation(IntEnum):
    """The 8 canonical rotation/mirror states, numbered like the EXIF tag."""

    UP = 1
    UP_MIRRORED = 2
    DOWN = 3
    DOWN_MIRRORED = 4
    LEFT_MIRRORED = 5
    RIGHT = 6
    RIGHT_MIRRORED = 7
    LEFT = 8

    @property
    def swaps_axes(self) -> bool:
        """Return True when the upright image has width and height exchanged."""
        return self >= Orientation.LEFT_MIRRORED

    @classmethod
    def from_exif(cls, value: object) -> "Orientation":
        """Map a raw EXIF orientation value, falling back to UP when absent or invalid."""
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            return cls.UP


_UPRIGHT_TRANSPOSE = {
    Orientation.UP_MIRRORED: Image.Transpose.FLIP_LEFT_RIGHT,
    Orientation.DOWN: Image.Transpose.ROTATE_180,
    Orientation.DOWN_MIRRORED: Image.Transpose.FLIP_TOP_BOTTOM,
    Orientation.LEFT_MIRRORED: Image.Transpose.TRANSPOSE,
    Orientation.RIGHT: Image.Transpose.ROTATE_270,
    Orientation.RIGHT_MIRRORED: Image.Transpose.TRANSVERSE,
    Orientation.LEFT: Image.Transpose.ROTATE_90,
}


class PhotoDecodeError(ValueError):
    """Raised when bytes or a file cannot be decoded into a photo."""


def to_upright(pixels: Image.Image, orientation: Orientation) -> Image.Image:
    """Return a new image with the orientation transform applied."""
    method = _UPRIGHT_TRANSPOSE.get(Orientation(orientation))
    if method is None:
        return pixels.copy()
    return pixels.transpose(method)


@dataclass(frozen=True, slots=True)
class Photo:
    """Decoded bitmap as stored, its orientation tag and display scale.

    ``pixels`` is never modified in place; every transformation returns a new
    image. ``width`` and ``height`` are the displayed (oriented) dimensions.
    """

    pixels: Image.Image
    orientation: Orientation = Orientation.UP
    scale: float = 1.0

    @property
    def size(self) -> tuple[int, int]:
        width, height = self.pixels.size
        if Orientation(self.orientation).swaps_axes:
            return height, width
        return width, height

    @property
    def width(self) -> int:
        return self.size[0]

    @property
    def height(self) -> int:
        return self.size[1]

    def upright(self) -> Image.Image:
        """Return a new image rendered in display orientation."""
        return to_upright(self.pixels, self.orientation)

    def copy(self) -> Photo:
        return Photo(pixels=self.pixels.copy(), orientation=self.orientation, scale=self.scale)

    def to_png_bytes(self) -> bytes:
        """Encode the upright rendering as PNG."""
        buff = BytesIO()
        self.upright().save(buff, format="PNG")
        return buff.getvalue()


def _photo_from_image(image: Image.Image) -> Photo:
    image.load()
    orientation = Orientation.from_exif(image.getexif().get(EXIF_ORIENTATION_TAG))
    pixels = image if image.mode in ("RGB", "RGBA") else image.convert("RGB")
    return Photo(pixels=pixels.copy(), orientation=orientation)


def decode_photo(data: bytes) -> Photo:
    """Decode encoded image bytes, keeping the EXIF orientation tag."""
    try:
        with Image.open(BytesIO(data)) as image:
            return _photo_from_image(image)
    except (UnidentifiedImageError, OSError) as exc:
        raise PhotoDecodeError(f"Cannot decode image: {exc}") from exc


def load_photo(path: str) -> Photo:
    """Load an image file, keeping the EXIF orientation tag."""
    source = Path(path).expanduser()
    try:
        with Image.open(source) as image:
            return _photo_from_image(image)
    except FileNotFoundError:
        raise
    except (UnidentifiedImageError, OSError) as exc:
        raise PhotoDecodeError(f"Cannot decode image {source}: {exc}") from exc


def save_png(photo: Photo, output_path: str) -> str:
    """Save the upright rendering as PNG and return the absolute location."""
    target = Path(output_path).expanduser().resolve()
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(photo.to_png_bytes())
    return str(target)
