from __future__ import annotations

import datetime as dt
import zipfile
from pathlib import Path
from typing import Callable

import pytest

from src.carousel_engine import archive
from src.carousel_engine.artifacts import ExportedArtifact, RenderedArtifact, RenderSettings


def _exported(seq: int, name: str, aspect: str = "4:5", resolution: str = "4K") -> ExportedArtifact:
    return ExportedArtifact(
        data=f"jpeg-{seq}".encode("ascii"),
        width=3840,
        height=4800,
        sequence_number=seq,
        name=name,
        aspect_id=aspect,
        resolution_id=resolution,
        quality=0.95,
    )


def test_entry_name_pads_sequence_and_sanitises_ratio() -> None:
    assert archive.entry_name(3, "beach.day.jpg", "16:9", "2K") == "03_beach_16-9_2K.jpg"
    assert archive.entry_name(12, "IMG_0042.png", "LinkedIn") == "12_IMG_0042_LinkedIn.jpg"


def test_archive_filename_uses_tier_and_date() -> None:
    assert archive.archive_filename("4K", dt.date(2024, 3, 9)) == "carousel-4K-2024-03-09.zip"
    assert archive.archive_filename() == archive.QUICK_ARCHIVE_NAME


def test_write_archive_round_trips_entries_in_order(tmp_path: Path) -> None:
    exported = [_exported(1, "b.jpg"), _exported(2, "a.jpg")]
    destination = tmp_path / "out" / "carousel.zip"

    written = archive.write_archive(archive.exported_entries(exported), destination)

    assert written == destination
    assert not destination.with_name("carousel.zip.part").exists()
    with zipfile.ZipFile(destination) as bundle:
        assert bundle.namelist() == ["01_b_4-5_4K.jpg", "02_a_4-5_4K.jpg"]
        assert bundle.read("02_a_4-5_4K.jpg") == b"jpeg-2"


def test_write_archive_leaves_nothing_on_failure(tmp_path: Path) -> None:
    destination = tmp_path / "broken.zip"

    def _entries():
        yield ("01_ok.jpg", b"ok")
        raise RuntimeError("render died")

    with pytest.raises(RuntimeError, match="render died"):
        archive.write_archive(_entries(), destination)
    assert not destination.exists()
    assert list(tmp_path.iterdir()) == []


def test_quick_entries_use_preview_bytes(artifact_factory: Callable[..., RenderedArtifact]) -> None:
    settings = RenderSettings(aspect_id="1:1")
    artifacts = [artifact_factory("z.png", settings=settings), artifact_factory("y.png", settings=settings)]

    entries = archive.quick_entries(artifacts)

    assert [name for name, _ in entries] == ["01_z_1-1.jpg", "02_y_1-1.jpg"]
    assert entries[0][1] == artifacts[0].preview.data
