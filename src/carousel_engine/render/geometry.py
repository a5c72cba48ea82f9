from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

from src.carousel_engine.render.errors import InvalidInputError
from src.datatypes import FitMode

__all__ = [
    "DrawRect",
    "LayerPlan",
    "PanOffset",
    "ZERO_OFFSET",
    "contain_scale",
    "cover_scale",
    "format_dimensions",
    "normalise_fit_mode",
    "resolve_geometry",
    "scaled_dimensions",
]


@dataclass(frozen=True)
class PanOffset:
    """Fractional displacement of the cover crop, relative to canvas size."""

    x: float = 0.0
    y: float = 0.0

    def is_zero(self) -> bool:
        return self.x == 0 and self.y == 0


ZERO_OFFSET = PanOffset()


@dataclass(frozen=True)
class DrawRect:
    """Placement of a scaled source bitmap on the canvas (float precision)."""

    x: float
    y: float
    width: float
    height: float

    def to_box(self) -> Tuple[int, int, int, int]:
        """
        Snap the rect to whole pixels as ``(left, top, width, height)``.

        Edges are rounded independently so adjacent rects never open a
        one-pixel gap; width and height are at least one pixel.
        """

        left = int(round(self.x))
        top = int(round(self.y))
        right = int(round(self.x + self.width))
        bottom = int(round(self.y + self.height))
        return (left, top, max(1, right - left), max(1, bottom - top))


@dataclass(frozen=True)
class LayerPlan:
    """
    Resolved draw rects for one source on one canvas.

    Attributes:
        mode (FitMode): Fit mode the plan was resolved for.
        canvas (tuple[int, int]): Target canvas width and height.
        foreground (DrawRect): Rect for the primary (sharp) draw.
        background (Optional[DrawRect]): Cover-scaled backdrop rect, only set in contain mode.
    """

    mode: FitMode
    canvas: Tuple[int, int]
    foreground: DrawRect
    background: Optional[DrawRect] = None


def format_dimensions(width: int, height: int) -> str:
    """Return width × height using integer values."""

    return f"{int(width)} × {int(height)}"


def normalise_fit_mode(value: FitMode | str) -> FitMode:
    """Return a canonical FitMode, rejecting unknown labels."""

    if isinstance(value, FitMode):
        return value
    try:
        return FitMode(str(value).strip().lower())
    except ValueError:
        options = ", ".join(member.value for member in FitMode)
        raise InvalidInputError(f"Unknown fit mode '{value}' (expected one of: {options})") from None


def _require_positive(width: float, height: float, what: str) -> None:
    for value in (width, height):
        if not isinstance(value, (int, float)) or not math.isfinite(value) or value <= 0:
            raise InvalidInputError(f"{what} dimensions must be positive, got {width}x{height}")


def cover_scale(sw: float, sh: float, tw: float, th: float) -> float:
    """Scale that fills the canvas edge to edge, cropping the overflow."""

    return max(tw / sw, th / sh)


def contain_scale(sw: float, sh: float, tw: float, th: float) -> float:
    """Scale that shows the whole source inside the canvas."""

    return min(tw / sw, th / sh)


def _centred(sw: float, sh: float, tw: float, th: float, scale: float) -> DrawRect:
    width = sw * scale
    height = sh * scale
    return DrawRect((tw - width) / 2, (th - height) / 2, width, height)


def resolve_geometry(
    sw: float,
    sh: float,
    tw: float,
    th: float,
    mode: FitMode | str,
    offset: PanOffset | None = None,
) -> LayerPlan:
    """
    Compute where the source bitmap(s) land on a ``tw`` x ``th`` canvas.

    ``stretch`` maps the source onto the full canvas. ``contain`` returns a
    cover-scaled background and a contain-scaled foreground, both centred.
    ``cover`` centres a cover-scaled rect and then shifts it by
    ``(offset.x * tw, offset.y * th)``; the offset is not clamped, so large
    offsets expose the canvas fill at the edges. Offsets are ignored outside
    cover mode.

    Raises:
        InvalidInputError: If source or target dimensions are not positive.
    """

    _require_positive(sw, sh, "Source")
    _require_positive(tw, th, "Target")
    resolved = normalise_fit_mode(mode)
    canvas = (int(tw), int(th))

    if resolved is FitMode.STRETCH:
        return LayerPlan(resolved, canvas, DrawRect(0.0, 0.0, float(tw), float(th)))

    if resolved is FitMode.CONTAIN:
        background = _centred(sw, sh, tw, th, cover_scale(sw, sh, tw, th))
        foreground = _centred(sw, sh, tw, th, contain_scale(sw, sh, tw, th))
        return LayerPlan(resolved, canvas, foreground, background)

    pan = offset or ZERO_OFFSET
    base = _centred(sw, sh, tw, th, cover_scale(sw, sh, tw, th))
    shifted = DrawRect(base.x + pan.x * tw, base.y + pan.y * th, base.width, base.height)
    return LayerPlan(resolved, canvas, shifted)


def scaled_dimensions(width: int, height: int, multiplier: float) -> Tuple[int, int]:
    """Return ``round(width * multiplier)`` x ``round(height * multiplier)``."""

    if not math.isfinite(multiplier) or multiplier <= 0:
        raise InvalidInputError(f"Resolution multiplier must be positive, got {multiplier}")
    scaled_w = int(round(width * multiplier))
    scaled_h = int(round(height * multiplier))
    if scaled_w <= 0 or scaled_h <= 0:
        raise InvalidInputError(
            f"Scaled target {format_dimensions(scaled_w, scaled_h)} has no pixels"
        )
    return (scaled_w, scaled_h)
