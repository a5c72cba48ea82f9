"""Ordered export of rendered artifacts at a chosen resolution and compression."""

from __future__ import annotations

import logging
import os
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, TypeVar, cast

from src.carousel_engine.artifacts import ExportedArtifact, RenderedArtifact
from src.carousel_engine.catalog import (
    AspectTarget,
    get_aspect,
    get_compression,
    get_resolution,
)
from src.carousel_engine.estimate import savings_percent
from src.carousel_engine.render.encoders import EncodedImage, encode_jpeg
from src.carousel_engine.render.errors import InvalidInputError, MissingOriginalError
from src.carousel_engine.render.renderer import render_surface
from src.carousel_engine.sources import decode_source

__all__ = [
    "CompressionPreview",
    "default_worker_count",
    "export_artifact",
    "export_batch",
    "map_ordered",
    "preview_compression",
]

logger = logging.getLogger(__name__)

_T = TypeVar("_T")
_R = TypeVar("_R")

_MAX_DEFAULT_WORKERS = 4


def default_worker_count(job_count: int) -> int:
    """Pick a pool size: one per job, capped by CPU count and a small ceiling."""

    cpus = os.cpu_count() or 1
    return max(1, min(job_count, cpus, _MAX_DEFAULT_WORKERS))


def map_ordered(
    worker: Callable[[int, _T], _R],
    items: Sequence[_T],
    *,
    max_workers: Optional[int] = None,
    progress_callback: Optional[Callable[[int], None]] = None,
    thread_name_prefix: str = "CarouselRender",
) -> List[_R]:
    """
    Run ``worker(index, item)`` for every item and return results in input order.

    Each job is tagged with its submission index and results are slotted back
    by that index, so completion order never leaks into the output. The first
    failure cancels every job that has not started and is re-raised; no
    partial result list is returned.

    Notes:
        ``progress_callback`` is invoked with 1 per finished job from the
        calling thread.
    """

    jobs = list(items)
    if not jobs:
        return []
    worker_count = max_workers if max_workers and max_workers > 0 else default_worker_count(len(jobs))
    worker_count = min(worker_count, len(jobs))

    if worker_count == 1:
        ordered: List[_R] = []
        for index, item in enumerate(jobs):
            ordered.append(worker(index, item))
            if progress_callback is not None:
                progress_callback(1)
        return ordered

    slots: List[Optional[_R]] = [None] * len(jobs)
    with ThreadPoolExecutor(max_workers=worker_count, thread_name_prefix=thread_name_prefix) as executor:
        futures: Dict[Future[_R], int] = {
            executor.submit(worker, index, item): index for index, item in enumerate(jobs)
        }
        try:
            for future in as_completed(futures):
                slots[futures[future]] = future.result()
                if progress_callback is not None:
                    progress_callback(1)
        except BaseException:
            for future in futures:
                future.cancel()
            raise
    return cast(List[_R], slots)


def export_artifact(
    artifact: RenderedArtifact,
    resolution_id: str,
    compression_id: str,
    *,
    enhance: bool = False,
) -> EncodedImage:
    """
    Re-render ``artifact`` from its original source at the requested tier and encode it.

    Raises:
        MissingOriginalError: If the artifact lost the reference to its original upload.
        DecodeError: If the original bytes fail to decode.
        EncodeError: If JPEG encoding fails.
    """

    source = artifact.source
    if source is None:
        raise MissingOriginalError(
            "Rendered artifact has no original source; refusing to export from the preview"
        )
    tier = get_resolution(resolution_id)
    compression = get_compression(compression_id)
    aspect: AspectTarget = get_aspect(artifact.settings.aspect_id)

    original = decode_source(source)
    surface = render_surface(
        original,
        aspect,
        artifact.settings.fit_mode,
        source.offset,
        multiplier=tier.multiplier,
        enhance=enhance,
        blur_radius=artifact.settings.blur_radius,
        background_brightness=artifact.settings.background_brightness,
    )
    return encode_jpeg(surface, compression.quality)


def export_batch(
    artifacts: Sequence[RenderedArtifact],
    resolution_id: str = "HD",
    compression_id: str = "high",
    *,
    enhance: bool = False,
    max_workers: Optional[int] = None,
    progress_callback: Optional[Callable[[int], None]] = None,
) -> List[ExportedArtifact]:
    """
    Export every artifact under one shared setting, preserving input order.

    Sequence numbers are assigned from the position at submission time
    (1-based). Any single failure aborts the whole batch and propagates.

    Parameters:
        artifacts: Rendered artifacts in user-facing order.
        resolution_id: Key into the resolution tier catalog.
        compression_id: Key into the compression tier catalog.
        enhance: Apply the fixed contrast/saturation/brightness pass.
        max_workers: Thread pool size; ``None`` or 0 selects a default.
        progress_callback: Invoked with 1 for each exported image.

    Returns:
        List[ExportedArtifact]: One entry per input, in input order.
    """

    snapshot = tuple(artifacts)
    # Fail on unknown ids before any work is scheduled.
    tier = get_resolution(resolution_id)
    compression = get_compression(compression_id)
    logger.info(
        "Exporting %d image(s) at %s, quality %.2f%s",
        len(snapshot),
        tier.id,
        compression.quality,
        " with enhancement" if enhance else "",
    )

    def _export_one(index: int, artifact: RenderedArtifact) -> ExportedArtifact:
        encoded = export_artifact(artifact, tier.id, compression.id, enhance=enhance)
        logger.debug(
            "Exported #%d %s: %dx%d %d KB",
            index + 1,
            artifact.name,
            encoded.width,
            encoded.height,
            encoded.size_kb,
        )
        return ExportedArtifact(
            data=encoded.data,
            width=encoded.width,
            height=encoded.height,
            sequence_number=index + 1,
            name=artifact.name,
            aspect_id=artifact.settings.aspect_id,
            resolution_id=tier.id,
            quality=compression.quality,
        )

    exported = map_ordered(
        _export_one,
        snapshot,
        max_workers=max_workers,
        progress_callback=progress_callback,
        thread_name_prefix="CarouselExport",
    )
    logger.info(
        "Export complete: %d image(s), %d KB total",
        len(exported),
        sum(item.size_kb for item in exported),
    )
    return exported


@dataclass(frozen=True)
class CompressionPreview:
    """Side-by-side sizes of one image at maximum and at the chosen compression."""

    reference: EncodedImage
    compressed: EncodedImage
    image_count: int

    @property
    def reference_total_kb(self) -> int:
        return self.reference.size_kb * self.image_count

    @property
    def compressed_total_kb(self) -> int:
        return self.compressed.size_kb * self.image_count

    @property
    def savings_percent(self) -> int:
        return savings_percent(self.reference_total_kb, self.compressed_total_kb)


def preview_compression(
    artifacts: Sequence[RenderedArtifact],
    resolution_id: str,
    compression_id: str,
    *,
    enhance: bool = False,
) -> CompressionPreview:
    """
    Encode the first artifact at maximum quality and at ``compression_id``.

    Totals are projected by multiplying the single-image sizes by the batch
    size, as a quick stand-in for exporting everything.

    Raises:
        InvalidInputError: If ``artifacts`` is empty.
    """

    if not artifacts:
        raise InvalidInputError("No rendered images to preview")
    first = artifacts[0]
    reference = export_artifact(first, resolution_id, "max", enhance=enhance)
    compressed = export_artifact(first, resolution_id, compression_id, enhance=enhance)
    return CompressionPreview(reference, compressed, len(artifacts))
