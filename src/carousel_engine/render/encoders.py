from __future__ import annotations

import io
import math
from dataclasses import dataclass

from PIL import Image

from src.carousel_engine.render.errors import EncodeError, InvalidInputError

__all__ = [
    "EncodedImage",
    "encode_jpeg",
    "format_size",
    "map_jpeg_quality",
    "normalise_quality",
    "size_kb",
    "size_mb",
]


@dataclass(frozen=True)
class EncodedImage:
    """JPEG bytes plus the size figures shown next to exports."""

    data: bytes
    width: int
    height: int
    quality: float

    @property
    def byte_size(self) -> int:
        return len(self.data)

    @property
    def size_kb(self) -> int:
        return size_kb(self.byte_size)

    @property
    def size_mb(self) -> float:
        return size_mb(self.byte_size)


def size_kb(byte_size: int) -> int:
    """Whole kilobytes, rounded."""

    return int(round(byte_size / 1024))


def size_mb(byte_size: int) -> float:
    """Megabytes to two decimals."""

    return round(byte_size / (1024 * 1024), 2)


def format_size(kb: float) -> str:
    """Render a kilobyte figure as ``"812 KB"`` or ``"1.59 MB"``."""

    if kb > 1024:
        return f"{kb / 1024:.2f} MB"
    return f"{int(round(kb))} KB"


def normalise_quality(quality: float) -> float:
    """Validate an encoder quality in the (0, 1] range."""

    try:
        value = float(quality)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"JPEG quality must be a number, got {quality!r}") from exc
    if not math.isfinite(value) or value <= 0 or value > 1:
        raise InvalidInputError(f"JPEG quality must be within (0, 1], got {value}")
    return value


def map_jpeg_quality(quality: float) -> int:
    """Translate a (0, 1] quality into Pillow's 1-100 JPEG scale."""

    value = normalise_quality(quality)
    return max(1, min(100, int(round(value * 100))))


def encode_jpeg(surface: Image.Image, quality: float) -> EncodedImage:
    """
    Serialize ``surface`` as a baseline JPEG.

    Raises:
        InvalidInputError: If the surface has no pixels or the quality is out of range.
        EncodeError: If Pillow fails to write the stream.
    """

    width, height = surface.size
    if width <= 0 or height <= 0:
        raise InvalidInputError("Cannot encode an empty surface")
    pil_quality = map_jpeg_quality(quality)

    image = surface if surface.mode == "RGB" else surface.convert("RGB")
    buffer = io.BytesIO()
    try:
        image.save(buffer, format="JPEG", quality=pil_quality, optimize=True)
    except (OSError, ValueError) as exc:
        raise EncodeError(f"JPEG encode failed for {width}x{height} surface: {exc}") from exc
    return EncodedImage(buffer.getvalue(), width, height, float(quality))
