"""
Output size heuristics for live feedback while export settings change.

The model is an approximation, not a measurement: size grows with the pixel
count (the square of the resolution multiplier) and with a coarse step
function of JPEG quality. Only its direction is meaningful; real encoder
output can diverge substantially for busy or flat images.
"""

from __future__ import annotations

from typing import Sequence, Tuple

from src.carousel_engine.catalog import get_compression, get_resolution

__all__ = [
    "QUALITY_STEPS",
    "estimate_file_size",
    "estimate_total_size",
    "quality_factor",
    "savings_percent",
]

# (minimum quality, factor), checked top-down; must stay descending in both.
QUALITY_STEPS: Sequence[Tuple[float, float]] = (
    (0.9, 1.0),
    (0.8, 0.6),
    (0.7, 0.4),
)
_FLOOR_FACTOR = 0.3


def quality_factor(quality: float) -> float:
    """Return the size factor for a JPEG quality in (0, 1]."""

    for threshold, factor in QUALITY_STEPS:
        if quality >= threshold:
            return factor
    return _FLOOR_FACTOR


def estimate_file_size(original_size: float, resolution_id: str, compression_id: str) -> float:
    """
    Predict an exported file size in the same unit as ``original_size``.

    ``original_size`` is the baseline measured at HD / maximum quality.
    """

    if original_size < 0:
        raise ValueError("original_size must be >= 0")
    tier = get_resolution(resolution_id)
    compression = get_compression(compression_id)
    return original_size * tier.multiplier**2 * quality_factor(compression.quality)


def estimate_total_size(
    original_sizes: Sequence[float],
    resolution_id: str,
    compression_id: str,
) -> float:
    """Sum of :func:`estimate_file_size` over a batch."""

    return sum(
        estimate_file_size(size, resolution_id, compression_id) for size in original_sizes
    )


def savings_percent(reference_size: float, compressed_size: float) -> int:
    """Whole-percent reduction from ``reference_size``; never negative."""

    if reference_size <= 0:
        return 0
    saved = (reference_size - compressed_size) / reference_size * 100
    return int(round(saved)) if saved > 0 else 0
