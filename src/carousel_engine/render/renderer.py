"""Render a source bitmap onto a canvas for a given aspect target and tier."""

from __future__ import annotations

import logging
from typing import Tuple

from PIL import Image

from src.carousel_engine.catalog import AspectTarget
from src.carousel_engine.render.compositor import (
    BACKGROUND_BRIGHTNESS,
    BASE_BLUR_RADIUS,
    FILL_COLOR,
    composite,
)
from src.carousel_engine.render.enhance import enhance_surface
from src.carousel_engine.render.errors import InvalidInputError
from src.carousel_engine.render.geometry import (
    PanOffset,
    resolve_geometry,
    scaled_dimensions,
)
from src.datatypes import FitMode

__all__ = ["render_surface", "target_dimensions"]

logger = logging.getLogger(__name__)


def target_dimensions(aspect: AspectTarget, multiplier: float = 1.0) -> Tuple[int, int]:
    """Return the canvas size for ``aspect`` scaled by a resolution multiplier."""

    return scaled_dimensions(aspect.width, aspect.height, multiplier)


def render_surface(
    source: Image.Image,
    aspect: AspectTarget,
    mode: FitMode | str,
    offset: PanOffset | None = None,
    *,
    multiplier: float = 1.0,
    enhance: bool = False,
    blur_radius: float = BASE_BLUR_RADIUS,
    background_brightness: float = BACKGROUND_BRIGHTNESS,
) -> Image.Image:
    """
    Produce a fully composited RGB surface for one source.

    ``blur_radius`` is the HD value; it is multiplied by ``multiplier`` so the
    background blur keeps the same visual weight at every tier. Export callers
    must pass the decoded original, never a preview surface.

    Raises:
        InvalidInputError: If the source has no pixels or the target collapses to zero.
    """

    sw, sh = source.size
    if sw <= 0 or sh <= 0:
        raise InvalidInputError(f"Source image has no pixels ({sw}x{sh})")
    width, height = target_dimensions(aspect, multiplier)
    plan = resolve_geometry(sw, sh, width, height, mode, offset)

    surface = Image.new("RGB", (width, height), FILL_COLOR)
    composite(
        surface,
        source,
        plan,
        blur_radius=blur_radius * multiplier,
        background_brightness=background_brightness,
    )
    if enhance:
        enhance_surface(surface)
    logger.debug(
        "Rendered %dx%d source to %s at %dx%d (mode=%s enhance=%s)",
        sw,
        sh,
        aspect.id,
        width,
        height,
        plan.mode.value,
        enhance,
    )
    return surface
