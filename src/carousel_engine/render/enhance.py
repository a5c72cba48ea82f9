from __future__ import annotations

from typing import Any, Callable, Sequence, Tuple

from PIL import Image, ImageEnhance

from src.carousel_engine.render.errors import InvalidInputError

__all__ = ["ENHANCE_STACK", "enhance_surface"]

# Applied in order. Fixed for every image; nothing here inspects content.
ENHANCE_STACK: Sequence[Tuple[Callable[[Image.Image], Any], float]] = (
    (ImageEnhance.Contrast, 1.05),
    (ImageEnhance.Color, 1.05),
    (ImageEnhance.Brightness, 1.01),
)


def enhance_surface(surface: Image.Image) -> Image.Image:
    """Redraw ``surface`` in place through the contrast/saturation/brightness stack."""

    width, height = surface.size
    if width <= 0 or height <= 0:
        raise InvalidInputError("Cannot enhance an empty surface")

    snapshot = surface.copy()
    for enhancer_cls, factor in ENHANCE_STACK:
        snapshot = enhancer_cls(snapshot).enhance(factor)
    surface.paste((0, 0, 0), (0, 0, width, height))
    surface.paste(snapshot, (0, 0))
    return surface
