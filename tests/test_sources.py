from __future__ import annotations

from pathlib import Path

import pytest

from src.carousel_engine import sources
from src.carousel_engine.render.errors import DecodeError, InvalidInputError
from src.carousel_engine.render.geometry import PanOffset
from src.carousel_engine.sources import SourceImage
from tests.helpers.images import image_bytes, write_image


def test_natural_sort_orders_numbers_numerically() -> None:
    names = ["img10.jpg", "IMG2.jpg", "img1.jpg", "a.png"]

    assert sorted(names, key=sources.natural_sort_key) == ["a.png", "img1.jpg", "IMG2.jpg", "img10.jpg"]


def test_expand_inputs_filters_and_orders_directory(image_dir: Path) -> None:
    expanded = sources.expand_inputs([image_dir])

    assert [path.name for path in expanded] == ["img1.webp", "img2.jpg", "img10.png"]


def test_expand_inputs_merges_files_and_directories(image_dir: Path, tmp_path: Path) -> None:
    extra = write_image(tmp_path / "img3.jpeg")

    expanded = sources.expand_inputs([extra, image_dir])

    assert [path.name for path in expanded] == ["img1.webp", "img2.jpg", "img3.jpeg", "img10.png"]


def test_expand_inputs_rejects_missing_and_unsupported(tmp_path: Path) -> None:
    with pytest.raises(InvalidInputError, match="not found"):
        sources.expand_inputs([tmp_path / "missing.jpg"])

    gif = tmp_path / "anim.gif"
    gif.write_bytes(b"GIF89a")
    with pytest.raises(InvalidInputError, match="only"):
        sources.expand_inputs([gif])


def test_read_source_rejects_empty_file(tmp_path: Path) -> None:
    empty = tmp_path / "empty.png"
    empty.write_bytes(b"")

    with pytest.raises(InvalidInputError, match="empty"):
        sources.read_source(empty)


def test_collect_sources_keeps_bytes_and_names(image_dir: Path) -> None:
    collected = sources.collect_sources([image_dir])

    assert [item.name for item in collected] == ["img1.webp", "img2.jpg", "img10.png"]
    assert all(item.byte_size > 0 for item in collected)
    assert len({item.source_id for item in collected}) == 3


def test_decode_source_applies_exif_orientation() -> None:
    # Orientation 6 means the stored pixels must be rotated 90 degrees for display.
    data = image_bytes(40, 20, fmt="JPEG", orientation=6)

    decoded = sources.decode_source(SourceImage("rotated.jpg", data))

    assert decoded.size == (20, 40)
    assert decoded.mode == "RGB"


def test_decode_source_flattens_alpha_onto_black() -> None:
    data = image_bytes(8, 8, color=(255, 255, 255, 0), mode="RGBA")

    decoded = sources.decode_source(SourceImage("clear.png", data))

    assert decoded.mode == "RGB"
    assert decoded.getpixel((4, 4)) == (0, 0, 0)


def test_decode_source_converts_greyscale() -> None:
    decoded = sources.decode_source(SourceImage("grey.png", image_bytes(4, 4, color=90, mode="L")))

    assert decoded.mode == "RGB"
    assert decoded.getpixel((0, 0)) == (90, 90, 90)


def test_decode_source_wraps_garbage_bytes() -> None:
    with pytest.raises(DecodeError, match="broken.jpg"):
        sources.decode_source(SourceImage("broken.jpg", b"definitely not an image"))


def test_with_offset_keeps_identity() -> None:
    original = SourceImage("a.png", b"x")

    moved = original.with_offset(PanOffset(0.1, -0.2))

    assert moved.source_id == original.source_id
    assert moved.offset == PanOffset(0.1, -0.2)
    assert original.offset.is_zero()
    assert moved.stem == "a"
