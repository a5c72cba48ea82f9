"""Source ingestion: ordering, reading and decoding user-supplied images."""

from __future__ import annotations

import io
import logging
import re
import uuid
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from src.carousel_engine.render.errors import DecodeError, InvalidInputError
from src.carousel_engine.render.geometry import ZERO_OFFSET, PanOffset

__all__ = [
    "ACCEPTED_EXTENSIONS",
    "SourceImage",
    "collect_sources",
    "decode_source",
    "expand_inputs",
    "natural_sort_key",
    "read_source",
]

logger = logging.getLogger(__name__)

ACCEPTED_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".webp"})

_DIGITS = re.compile(r"(\d+)")


@dataclass(frozen=True)
class SourceImage:
    """
    Original upload held for the whole session.

    Attributes:
        name (str): File name as supplied, including extension.
        data (bytes): Untouched source bytes; exports always decode from these.
        offset (PanOffset): Cover-mode pan travelling with this image through reorders.
        source_id (str): Stable identity independent of list position.
    """

    name: str
    data: bytes = field(repr=False)
    offset: PanOffset = ZERO_OFFSET
    source_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def byte_size(self) -> int:
        return len(self.data)

    @property
    def stem(self) -> str:
        """Base name without its final extension."""

        return Path(self.name).stem or self.name

    def with_offset(self, offset: PanOffset) -> "SourceImage":
        return replace(self, offset=offset)


def natural_sort_key(name: str) -> Tuple[object, ...]:
    """Case-insensitive key that orders embedded numbers numerically (``2`` < ``10``)."""

    parts: List[object] = []
    for chunk in _DIGITS.split(name.casefold()):
        if not chunk:
            continue
        if chunk.isdigit():
            parts.append((0, int(chunk), chunk))
        else:
            parts.append((1, 0, chunk))
    return tuple(parts)


def expand_inputs(paths: Iterable[Path]) -> List[Path]:
    """
    Resolve files and directories into an ordered list of image paths.

    Directory contents are filtered by extension and naturally sorted; the
    combined list is then naturally sorted by file name, matching how the
    upload zone ordered dropped files.

    Raises:
        InvalidInputError: If a path does not exist or an explicit file has an unsupported extension.
    """

    collected: List[Path] = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            for child in path.iterdir():
                if child.is_file() and child.suffix.lower() in ACCEPTED_EXTENSIONS:
                    collected.append(child)
            continue
        if not path.is_file():
            raise InvalidInputError(f"Input not found: {path}")
        if path.suffix.lower() not in ACCEPTED_EXTENSIONS:
            allowed = "/".join(ext.strip(".").upper() for ext in sorted(ACCEPTED_EXTENSIONS))
            raise InvalidInputError(f"{path.name}: only {allowed} files are supported")
        collected.append(path)
    return sorted(collected, key=lambda item: natural_sort_key(item.name))


def read_source(path: Path) -> SourceImage:
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        raise InvalidInputError(f"Unable to read {path}: {exc.strerror or exc}") from exc
    if not data:
        raise InvalidInputError(f"{Path(path).name} is empty")
    return SourceImage(name=Path(path).name, data=data)


def collect_sources(paths: Sequence[Path]) -> List[SourceImage]:
    """Expand, order and read ``paths`` into SourceImage records."""

    ordered = expand_inputs(paths)
    sources = [read_source(path) for path in ordered]
    logger.info("Collected %d source image(s)", len(sources))
    return sources


def decode_source(source: SourceImage) -> Image.Image:
    """
    Decode source bytes into an upright RGB bitmap.

    EXIF orientation is applied and any alpha channel is flattened onto
    black, the same colour the canvas is filled with.

    Raises:
        DecodeError: If the bytes are not a readable image.
        InvalidInputError: If the decoded image has no pixels.
    """

    try:
        with Image.open(io.BytesIO(source.data)) as opened:
            opened.load()
            image = ImageOps.exif_transpose(opened)
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
        raise DecodeError(f"{source.name}: not a decodable image ({exc})") from exc

    width, height = image.size
    if width <= 0 or height <= 0:
        raise InvalidInputError(f"{source.name}: image has no pixels ({width}x{height})")

    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        flattened = Image.new("RGB", rgba.size, (0, 0, 0))
        flattened.paste(rgba, mask=rgba.getchannel("A"))
        image = flattened
    elif image.mode != "RGB":
        image = image.convert("RGB")
    return image
