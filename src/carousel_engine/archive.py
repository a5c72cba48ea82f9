"""Zip sink for exported carousels and the file naming convention it uses."""

from __future__ import annotations

import datetime as _dt
import logging
import zipfile
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from src.carousel_engine.artifacts import ExportedArtifact, RenderedArtifact
from src.carousel_engine.catalog import get_aspect

__all__ = [
    "archive_filename",
    "entry_name",
    "exported_entries",
    "quick_entries",
    "write_archive",
]

logger = logging.getLogger(__name__)

QUICK_ARCHIVE_NAME = "carousel-engine-export.zip"


def _basename(name: str) -> str:
    # Everything before the first dot, as the upload names were split.
    head = Path(name).name.split(".")[0]
    return head or "image"


def entry_name(sequence_number: int, source_name: str, aspect_id: str, resolution_id: Optional[str] = None) -> str:
    """
    Build ``{NN}_{basename}_{ratio}[_{resolution}].jpg``.

    ``NN`` is the sequence number padded to two digits; the ratio has ``:``
    replaced by ``-``.
    """

    parts = [f"{int(sequence_number):02d}", _basename(source_name), get_aspect(aspect_id).file_token]
    if resolution_id:
        parts.append(resolution_id)
    return "_".join(parts) + ".jpg"


def archive_filename(resolution_id: Optional[str] = None, when: Optional[_dt.date] = None) -> str:
    """Return ``carousel-{resolution}-{YYYY-MM-DD}.zip``, or the quick-export name."""

    if resolution_id is None:
        return QUICK_ARCHIVE_NAME
    day = when or _dt.date.today()
    return f"carousel-{resolution_id}-{day.isoformat()}.zip"


def exported_entries(exported: Sequence[ExportedArtifact]) -> List[Tuple[str, bytes]]:
    return [
        (
            entry_name(item.sequence_number, item.name, item.aspect_id, item.resolution_id),
            item.data,
        )
        for item in exported
    ]


def quick_entries(artifacts: Sequence[RenderedArtifact]) -> List[Tuple[str, bytes]]:
    """Entries for a download of the HD previews as they are, numbered by position."""

    return [
        (
            entry_name(index, artifact.name, artifact.settings.aspect_id),
            artifact.handle.data,
        )
        for index, artifact in enumerate(artifacts, start=1)
    ]


def write_archive(entries: Iterable[Tuple[str, bytes]], destination: Path) -> Path:
    """
    Write ``(name, bytes)`` pairs into a deflated zip at ``destination``.

    The file is written next to its final path and renamed into place, so an
    interrupted write never leaves a truncated archive behind.
    """

    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)
    partial = destination.with_name(destination.name + ".part")
    count = 0
    try:
        with zipfile.ZipFile(partial, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for name, data in entries:
                archive.writestr(name, data)
                count += 1
        partial.replace(destination)
    except BaseException:
        partial.unlink(missing_ok=True)
        raise
    logger.info("Wrote %d file(s) to %s", count, destination)
    return destination
