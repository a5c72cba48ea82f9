"""Draw resolved layer plans onto Pillow surfaces."""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from PIL import Image, ImageDraw, ImageEnhance, ImageFilter

from src.carousel_engine.render.errors import InvalidInputError
from src.carousel_engine.render.geometry import DrawRect, LayerPlan
from src.datatypes import FitMode

__all__ = [
    "BACKGROUND_BRIGHTNESS",
    "BASE_BLUR_RADIUS",
    "FILL_COLOR",
    "SHADOW_BLUR_RATIO",
    "SHADOW_OFFSET_RATIO",
    "SHADOW_OPACITY",
    "composite",
    "draw_layer",
    "shadow_metrics",
]

logger = logging.getLogger(__name__)

FILL_COLOR: Tuple[int, int, int] = (0, 0, 0)
BASE_BLUR_RADIUS = 20.0
BACKGROUND_BRIGHTNESS = 0.6
SHADOW_OPACITY = 0.5
SHADOW_BLUR_RATIO = 0.02
SHADOW_OFFSET_RATIO = 0.01

_RESAMPLE = Image.Resampling.LANCZOS


def _visible_layer(
    source: Image.Image,
    rect: DrawRect,
    canvas: Tuple[int, int],
) -> Optional[Tuple[Image.Image, Tuple[int, int]]]:
    """Resample only the part of ``rect`` that lands on the canvas; ``None`` if nothing does."""

    left, top, width, height = rect.to_box()
    canvas_w, canvas_h = canvas
    vis_left, vis_top = max(left, 0), max(top, 0)
    vis_right, vis_bottom = min(left + width, canvas_w), min(top + height, canvas_h)
    if vis_right <= vis_left or vis_bottom <= vis_top:
        return None

    src_w, src_h = source.size
    scale_x = src_w / width
    scale_y = src_h / height
    box = (
        (vis_left - left) * scale_x,
        (vis_top - top) * scale_y,
        (vis_right - left) * scale_x,
        (vis_bottom - top) * scale_y,
    )
    size = (vis_right - vis_left, vis_bottom - vis_top)
    if size == source.size and box == (0, 0, src_w, src_h):
        return source.copy(), (vis_left, vis_top)
    return source.resize(size, _RESAMPLE, box=box), (vis_left, vis_top)


def shadow_metrics(canvas_width: int) -> Tuple[float, int]:
    """Return ``(blur, offset_y)`` in pixels for the contain-mode drop shadow."""

    blur = canvas_width * SHADOW_BLUR_RATIO
    return blur, int(round(canvas_width * SHADOW_OFFSET_RATIO))


def draw_layer(surface: Image.Image, source: Image.Image, rect: DrawRect) -> None:
    """Paste ``source`` scaled to ``rect``; parts outside the surface are never resampled."""

    visible = _visible_layer(source, rect, surface.size)
    if visible is None:
        return
    layer, origin = visible
    surface.paste(layer, origin)


def _draw_background(
    surface: Image.Image,
    source: Image.Image,
    rect: DrawRect,
    blur_radius: float,
    brightness: float,
) -> None:
    visible = _visible_layer(source, rect, surface.size)
    if visible is None:
        return
    layer, origin = visible
    if blur_radius > 0:
        layer = layer.filter(ImageFilter.GaussianBlur(radius=blur_radius))
    if brightness != 1.0:
        layer = ImageEnhance.Brightness(layer).enhance(brightness)
    surface.paste(layer, origin)


def _draw_shadow(surface: Image.Image, rect: DrawRect) -> None:
    blur, offset_y = shadow_metrics(surface.size[0])
    left, top, width, height = rect.to_box()
    top += offset_y

    mask = Image.new("L", surface.size, 0)
    ImageDraw.Draw(mask).rectangle(
        (left, top, left + width - 1, top + height - 1),
        fill=int(round(255 * SHADOW_OPACITY)),
    )
    if blur > 0:
        # Canvas shadow blur is twice the Gaussian standard deviation.
        mask = mask.filter(ImageFilter.GaussianBlur(radius=blur / 2))
    surface.paste(Image.new(surface.mode, surface.size, FILL_COLOR), (0, 0), mask)


def composite(
    surface: Image.Image,
    source: Image.Image,
    plan: LayerPlan,
    *,
    blur_radius: float = BASE_BLUR_RADIUS,
    background_brightness: float = BACKGROUND_BRIGHTNESS,
) -> Image.Image:
    """
    Draw ``source`` onto ``surface`` following ``plan``.

    The surface is filled with opaque black first. In contain mode the
    background rect is drawn blurred and darkened, then the foreground rect
    is drawn over a soft drop shadow. Cover and stretch draw a single rect
    without filters. Pillow keeps no drawing state on the surface, so nothing
    leaks into later draws.

    Parameters:
        surface: RGB image mutated in place; its size must match ``plan.canvas``.
        source: Decoded RGB source bitmap.
        plan: Rects returned by :func:`resolve_geometry`.
        blur_radius: Background blur radius in pixels, already scaled for the target tier.
        background_brightness: Brightness multiplier for the contain-mode background.

    Returns:
        Image.Image: The same ``surface`` object, for chaining.

    Raises:
        InvalidInputError: If the surface is empty or does not match the plan's canvas.
    """

    width, height = surface.size
    if width <= 0 or height <= 0:
        raise InvalidInputError("Cannot composite onto an empty surface")
    if (width, height) != tuple(plan.canvas):
        raise InvalidInputError(
            f"Surface {width}x{height} does not match planned canvas {plan.canvas[0]}x{plan.canvas[1]}"
        )

    surface.paste(FILL_COLOR, (0, 0, width, height))

    if plan.mode is FitMode.CONTAIN and plan.background is not None:
        _draw_background(surface, source, plan.background, blur_radius, background_brightness)
        _draw_shadow(surface, plan.foreground)
        logger.debug(
            "Composited contain layers on %dx%d blur=%.1f brightness=%.2f",
            width,
            height,
            blur_radius,
            background_brightness,
        )

    draw_layer(surface, source, plan.foreground)
    return surface
