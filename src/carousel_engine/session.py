"""Session state: the ordered upload list, render settings, and the preview cache."""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from src.carousel_engine.artifacts import PreviewHandle, RenderedArtifact, RenderSettings
from src.carousel_engine.batch import map_ordered
from src.carousel_engine.catalog import get_aspect
from src.carousel_engine.estimate import estimate_total_size
from src.carousel_engine.render.encoders import encode_jpeg
from src.carousel_engine.render.errors import InvalidInputError
from src.carousel_engine.render.geometry import PanOffset
from src.carousel_engine.render.renderer import render_surface
from src.carousel_engine.sources import SourceImage, decode_source

__all__ = ["PREVIEW_QUALITY", "CarouselSession", "render_preview"]

logger = logging.getLogger(__name__)

PREVIEW_QUALITY = 0.95


def render_preview(
    source: SourceImage,
    settings: RenderSettings,
    *,
    generation: int = 0,
) -> RenderedArtifact:
    """Render the HD preview artifact for ``source`` under ``settings``."""

    aspect = get_aspect(settings.aspect_id)
    original = decode_source(source)
    surface = render_surface(
        original,
        aspect,
        settings.fit_mode,
        source.offset,
        blur_radius=settings.blur_radius,
        background_brightness=settings.background_brightness,
    )
    preview = encode_jpeg(surface, PREVIEW_QUALITY)
    return RenderedArtifact(
        source=source,
        settings=settings,
        preview=preview,
        handle=PreviewHandle(preview.data),
        natural_size=original.size,
        generation=generation,
    )


class CarouselSession:
    """
    Ordered uploads plus the preview renders derived from them.

    Every mutation (adding, removing or reordering sources, changing an
    offset, changing settings) bumps the generation and drops the preview
    cache in full, releasing its handles. :meth:`refresh` renders against a
    snapshot and commits only if no mutation happened in the meantime;
    otherwise its results are released and discarded.
    """

    def __init__(
        self,
        settings: Optional[RenderSettings] = None,
        *,
        max_workers: Optional[int] = None,
    ) -> None:
        self._lock = threading.RLock()
        self._settings = settings or RenderSettings()
        get_aspect(self._settings.aspect_id)
        self._sources: List[SourceImage] = []
        self._artifacts: List[RenderedArtifact] = []
        self._generation = 0
        self._max_workers = max_workers

    # -- read side -----------------------------------------------------------

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    @property
    def settings(self) -> RenderSettings:
        with self._lock:
            return self._settings

    def sources(self) -> Tuple[SourceImage, ...]:
        with self._lock:
            return tuple(self._sources)

    def artifacts(self) -> Tuple[RenderedArtifact, ...]:
        """Committed previews for the current generation (empty until refreshed)."""

        with self._lock:
            return tuple(self._artifacts)

    def snapshot(self) -> Tuple[int, RenderSettings, Tuple[SourceImage, ...]]:
        with self._lock:
            return (self._generation, self._settings, tuple(self._sources))

    def estimate_total(self, resolution_id: str, compression_id: str) -> float:
        """Estimated export size in KB, using each preview's size as baseline."""

        baselines = [artifact.preview_size_kb for artifact in self.artifacts()]
        return estimate_total_size(baselines, resolution_id, compression_id)

    # -- mutations -------------------------------------------------------------

    def _invalidate_locked(self, reason: str) -> None:
        self._generation += 1
        released = sum(1 for artifact in self._artifacts if artifact.handle.release())
        self._artifacts = []
        logger.debug(
            "Session invalidated (%s): generation=%d released=%d",
            reason,
            self._generation,
            released,
        )

    def _index_of_locked(self, source_id: str) -> int:
        for index, source in enumerate(self._sources):
            if source.source_id == source_id:
                return index
        raise InvalidInputError(f"Unknown source id '{source_id}'")

    def add(self, sources: Iterable[SourceImage]) -> None:
        """Append sources in the order given; no re-sorting happens here."""

        incoming = list(sources)
        if not incoming:
            return
        with self._lock:
            self._sources.extend(incoming)
            self._invalidate_locked("add")

    def remove(self, source_id: str) -> SourceImage:
        with self._lock:
            removed = self._sources.pop(self._index_of_locked(source_id))
            self._invalidate_locked("remove")
            return removed

    def move(self, source_id: str, new_index: int) -> None:
        with self._lock:
            source = self._sources.pop(self._index_of_locked(source_id))
            bounded = max(0, min(int(new_index), len(self._sources)))
            self._sources.insert(bounded, source)
            self._invalidate_locked("move")

    def set_offset(self, source_id: str, offset: PanOffset) -> SourceImage:
        """Attach a new pan offset to one source record."""

        with self._lock:
            index = self._index_of_locked(source_id)
            updated = self._sources[index].with_offset(offset)
            self._sources[index] = updated
            self._invalidate_locked("offset")
            return updated

    def update_settings(self, **changes: object) -> RenderSettings:
        """Replace fields of the render settings (``aspect_id``, ``fit_mode``, ...)."""

        with self._lock:
            updated = replace(self._settings, **changes)  # type: ignore[arg-type]
            get_aspect(updated.aspect_id)
            if updated == self._settings:
                return updated
            self._settings = updated
            self._invalidate_locked("settings")
            return updated

    def clear(self) -> None:
        with self._lock:
            self._sources = []
            self._invalidate_locked("clear")

    # -- rendering ---------------------------------------------------------------

    def refresh(
        self,
        *,
        progress_callback: Optional[Callable[[int], None]] = None,
    ) -> Optional[Sequence[RenderedArtifact]]:
        """
        Render previews for the current snapshot.

        Returns:
            The committed artifacts, or ``None`` when the session changed while
            rendering and the results were discarded as stale.
        """

        generation, settings, sources = self.snapshot()
        logger.info(
            "Rendering %d preview(s) for %s/%s (generation %d)",
            len(sources),
            settings.aspect_id,
            settings.fit_mode.value,
            generation,
        )

        completed: List[RenderedArtifact] = []
        completed_lock = threading.Lock()

        def _render(index: int, source: SourceImage) -> RenderedArtifact:
            artifact = render_preview(source, settings, generation=generation)
            with completed_lock:
                completed.append(artifact)
            return artifact

        try:
            rendered = map_ordered(
                _render,
                sources,
                max_workers=self._max_workers,
                progress_callback=progress_callback,
                thread_name_prefix="CarouselPreview",
            )
        except BaseException:
            # The pool has drained by now, so every finished preview is in ``completed``.
            for artifact in completed:
                artifact.handle.release()
            logger.debug("Released %d preview(s) after a failed refresh", len(completed))
            raise
        return self.commit(generation, rendered)

    def commit(
        self,
        generation: int,
        rendered: Sequence[RenderedArtifact],
    ) -> Optional[Sequence[RenderedArtifact]]:
        """Install ``rendered`` if ``generation`` is still current, else release it."""

        with self._lock:
            if generation != self._generation:
                for artifact in rendered:
                    artifact.handle.release()
                logger.info(
                    "Discarded %d stale preview(s) from generation %d (current %d)",
                    len(rendered),
                    generation,
                    self._generation,
                )
                return None
            for artifact in self._artifacts:
                artifact.handle.release()
            self._artifacts = list(rendered)
            return tuple(self._artifacts)
