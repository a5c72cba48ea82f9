from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from click.testing import CliRunner

from src.carousel_engine.artifacts import RenderedArtifact, RenderSettings
from src.carousel_engine.render.geometry import ZERO_OFFSET, PanOffset
from src.carousel_engine.session import render_preview
from src.carousel_engine.sources import SourceImage
from tests.helpers.images import make_source, write_image


@pytest.fixture
def runner() -> CliRunner:
    """Provide a Click runner configured for CLI smoke tests."""

    return CliRunner()


@pytest.fixture
def source_factory() -> Callable[..., SourceImage]:
    """Return a factory producing in-memory PNG sources."""

    return make_source


@pytest.fixture
def artifact_factory() -> Callable[..., RenderedArtifact]:
    """Render a real preview artifact for a small solid-colour source."""

    def _factory(
        name: str = "photo.png",
        width: int = 40,
        height: int = 30,
        *,
        offset: PanOffset = ZERO_OFFSET,
        settings: RenderSettings | None = None,
    ) -> RenderedArtifact:
        source = make_source(name, width, height, offset=offset)
        return render_preview(source, settings or RenderSettings())

    return _factory


@pytest.fixture
def image_dir(tmp_path: Path) -> Path:
    """Directory holding three small images whose natural order differs from lexical order."""

    folder = tmp_path / "images"
    write_image(folder / "img10.png", 60, 40)
    write_image(folder / "img2.jpg", 30, 60)
    write_image(folder / "img1.webp", 50, 50)
    (folder / "notes.txt").write_text("not an image", encoding="utf-8")
    return folder


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Iterator[None]:
    """Undo handlers installed by configure_logging during CLI tests."""

    package_logger = logging.getLogger("src.carousel_engine")
    handlers = list(package_logger.handlers)
    level = package_logger.level
    propagate = package_logger.propagate
    yield
    package_logger.handlers = handlers
    package_logger.setLevel(level)
    package_logger.propagate = propagate
