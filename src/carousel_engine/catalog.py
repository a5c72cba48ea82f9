"""Static catalogs of aspect targets, resolution tiers, and compression tiers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from src.carousel_engine.render.errors import UnknownPresetError

__all__ = [
    "ASPECT_RATIOS",
    "COMPRESSION_PRESETS",
    "EXPORT_RESOLUTIONS",
    "AspectTarget",
    "CompressionTier",
    "ResolutionTier",
    "get_aspect",
    "get_compression",
    "get_resolution",
]


@dataclass(frozen=True)
class AspectTarget:
    """Canonical canvas dimensions for one aspect ratio at HD resolution."""

    id: str
    width: int
    height: int
    label: str

    @property
    def file_token(self) -> str:
        """Return the id in a filesystem-safe form (``4:5`` -> ``4-5``)."""

        return self.id.replace(":", "-")


@dataclass(frozen=True)
class ResolutionTier:
    """Named multiplier applied to the HD dimensions of an aspect target."""

    id: str
    multiplier: float
    label: str
    description: str


@dataclass(frozen=True)
class CompressionTier:
    """Named JPEG quality preset; ``quality`` lies in (0, 1]."""

    id: str
    quality: float
    label: str
    description: str


def _index(*entries):
    return {entry.id: entry for entry in entries}


ASPECT_RATIOS: Mapping[str, AspectTarget] = _index(
    AspectTarget("4:5", 1080, 1350, "Insta Portrait (4:5)"),
    AspectTarget("1:1", 1080, 1080, "Square (1:1)"),
    AspectTarget("16:9", 1920, 1080, "Landscape (16:9)"),
    AspectTarget("9:16", 1080, 1920, "Story (9:16)"),
    AspectTarget("LinkedIn", 1080, 1350, "LinkedIn (4:5)"),
)

EXPORT_RESOLUTIONS: Mapping[str, ResolutionTier] = _index(
    ResolutionTier("HD", 1.0, "HD (1080p)", "Standard quality"),
    ResolutionTier("2K", 2560 / 1080, "2K (1440p)", "High quality"),
    ResolutionTier("4K", 3840 / 1080, "4K (2160p)", "Ultra quality"),
)

COMPRESSION_PRESETS: Mapping[str, CompressionTier] = _index(
    CompressionTier("max", 1.0, "Maximum", "Highest quality, largest file"),
    CompressionTier("high", 0.95, "High", "Excellent quality, balanced size"),
    CompressionTier("balanced", 0.88, "Balanced", "Great quality, smaller file"),
    CompressionTier("compact", 0.80, "Compact", "Good quality, much smaller file"),
    CompressionTier("optimized", 0.72, "Optimized", "Acceptable quality, smallest file"),
)


def _lookup(catalog: Mapping[str, object], key: str, kind: str):
    try:
        return catalog[key]
    except KeyError:
        options = ", ".join(catalog)
        raise UnknownPresetError(f"Unknown {kind} '{key}' (expected one of: {options})") from None


def get_aspect(aspect_id: str) -> AspectTarget:
    return _lookup(ASPECT_RATIOS, aspect_id, "aspect ratio")


def get_resolution(resolution_id: str) -> ResolutionTier:
    return _lookup(EXPORT_RESOLUTIONS, resolution_id, "resolution tier")


def get_compression(compression_id: str) -> CompressionTier:
    return _lookup(COMPRESSION_PRESETS, compression_id, "compression tier")
