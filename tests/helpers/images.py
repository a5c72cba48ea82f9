from __future__ import annotations

import io
from pathlib import Path
from typing import Optional, Tuple, Union

from PIL import Image

from src.carousel_engine.render.geometry import ZERO_OFFSET, PanOffset
from src.carousel_engine.sources import SourceImage

Color = Union[int, Tuple[int, ...]]


def image_bytes(
    width: int,
    height: int,
    *,
    color: Color = (200, 120, 40),
    fmt: str = "PNG",
    mode: str = "RGB",
    orientation: Optional[int] = None,
) -> bytes:
    """Encode a solid-colour image, optionally tagged with an EXIF orientation."""

    image = Image.new(mode, (width, height), color)
    buffer = io.BytesIO()
    save_kwargs = {}
    if orientation is not None:
        exif = Image.Exif()
        exif[0x0112] = orientation
        save_kwargs["exif"] = exif.tobytes()
    image.save(buffer, format=fmt, **save_kwargs)
    return buffer.getvalue()


def gradient_bytes(width: int, height: int, *, fmt: str = "PNG") -> bytes:
    """Encode a horizontal/vertical gradient so JPEG sizes vary with quality."""

    image = Image.new("RGB", (width, height))
    pixels = [
        ((x * 255) // max(1, width - 1), (y * 255) // max(1, height - 1), ((x ^ y) * 7) % 256)
        for y in range(height)
        for x in range(width)
    ]
    image.putdata(pixels)
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


def make_source(
    name: str = "photo.png",
    width: int = 40,
    height: int = 30,
    *,
    offset: PanOffset = ZERO_OFFSET,
    color: Color = (200, 120, 40),
) -> SourceImage:
    return SourceImage(name=name, data=image_bytes(width, height, color=color), offset=offset)


def write_image(path: Path, width: int = 40, height: int = 30, **kwargs) -> Path:
    fmt = kwargs.pop("fmt", None) or {
        ".jpg": "JPEG",
        ".jpeg": "JPEG",
        ".png": "PNG",
        ".webp": "WEBP",
    }.get(path.suffix.lower(), "PNG")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(image_bytes(width, height, fmt=fmt, **kwargs))
    return path
