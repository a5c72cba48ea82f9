"""Settings and artifact records passed between the session, renderer, and exporter."""

from __future__ import annotations

import base64
import hashlib
import threading
import uuid
from dataclasses import dataclass, field
from typing import Optional, Tuple

from src.carousel_engine.render.compositor import BACKGROUND_BRIGHTNESS, BASE_BLUR_RADIUS
from src.carousel_engine.render.encoders import EncodedImage, size_kb, size_mb
from src.carousel_engine.render.geometry import PanOffset, normalise_fit_mode
from src.carousel_engine.sources import SourceImage
from src.datatypes import FitMode

__all__ = [
    "ExportedArtifact",
    "PreviewHandle",
    "RenderSettings",
    "RenderedArtifact",
]


@dataclass(frozen=True)
class RenderSettings:
    """Global render parameters shared by every image in a session."""

    aspect_id: str = "4:5"
    fit_mode: FitMode = FitMode.CONTAIN
    blur_radius: float = BASE_BLUR_RADIUS
    background_brightness: float = BACKGROUND_BRIGHTNESS

    def __post_init__(self) -> None:
        object.__setattr__(self, "fit_mode", normalise_fit_mode(self.fit_mode))

    def cache_key(self) -> str:
        """Stable digest identifying renders produced under these settings."""

        payload = "|".join(
            (
                self.aspect_id,
                self.fit_mode.value,
                repr(float(self.blur_radius)),
                repr(float(self.background_brightness)),
            )
        )
        return hashlib.sha1(payload.encode("utf-8")).hexdigest()[:16]


class PreviewHandle:
    """
    Releasable display handle wrapping preview JPEG bytes.

    Holders must call :meth:`release` once the preview is superseded; reading
    a released handle raises ``RuntimeError``.
    """

    def __init__(self, data: bytes) -> None:
        self.handle_id = uuid.uuid4().hex
        self._data: Optional[bytes] = data
        self._lock = threading.Lock()

    @property
    def released(self) -> bool:
        return self._data is None

    @property
    def data(self) -> bytes:
        data = self._data
        if data is None:
            raise RuntimeError(f"Preview handle {self.handle_id} was released")
        return data

    def as_data_uri(self) -> str:
        return "data:image/jpeg;base64," + base64.b64encode(self.data).decode("ascii")

    def release(self) -> bool:
        """Drop the bytes; returns False when already released."""

        with self._lock:
            if self._data is None:
                return False
            self._data = None
            return True

    def __repr__(self) -> str:
        state = "released" if self.released else "live"
        return f"PreviewHandle({self.handle_id[:8]}, {state})"


@dataclass
class RenderedArtifact:
    """
    Preview render of one source under one set of render settings.

    Attributes:
        source (Optional[SourceImage]): Originating upload; required for true-resolution export.
        settings (RenderSettings): Settings the preview was rendered with.
        preview (EncodedImage): HD preview JPEG.
        handle (PreviewHandle): Display handle over the preview bytes.
        natural_size (tuple[int, int]): Decoded pixel size of the original source.
        generation (int): Session generation the render belongs to.
    """

    source: Optional[SourceImage]
    settings: RenderSettings
    preview: EncodedImage
    handle: PreviewHandle
    natural_size: Tuple[int, int]
    generation: int = 0

    @property
    def name(self) -> str:
        return self.source.name if self.source is not None else "(missing)"

    @property
    def offset(self) -> PanOffset:
        return self.source.offset if self.source is not None else PanOffset()

    @property
    def preview_size_kb(self) -> int:
        return self.preview.size_kb

    @property
    def preview_size_mb(self) -> float:
        return self.preview.size_mb


@dataclass(frozen=True)
class ExportedArtifact:
    """Final JPEG for one source, tagged with its 1-based position in the batch."""

    data: bytes = field(repr=False)
    width: int
    height: int
    sequence_number: int
    name: str
    aspect_id: str
    resolution_id: str
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
