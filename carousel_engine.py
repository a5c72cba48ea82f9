"""Public shim exposing the carousel_engine CLI and library surface."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, cast

import src.carousel_engine.cli_entry as _cli_entry
from src.carousel_engine import runner
from src.carousel_engine.batch import export_batch, preview_compression
from src.carousel_engine.cli_runtime import CLIAppError
from src.carousel_engine.render.errors import (
    CarouselError,
    DecodeError,
    EncodeError,
    InvalidInputError,
    MissingOriginalError,
    UnknownPresetError,
)
from src.carousel_engine.render.geometry import PanOffset, resolve_geometry
from src.carousel_engine.render.renderer import render_surface
from src.carousel_engine.session import CarouselSession

RunResult = runner.RunResult
RunRequest = runner.RunRequest

__all__ = (
    "run_cli",
    "main",
    "RunRequest",
    "RunResult",
    "CLIAppError",
    "CarouselError",
    "CarouselSession",
    "DecodeError",
    "EncodeError",
    "InvalidInputError",
    "MissingOriginalError",
    "PanOffset",
    "UnknownPresetError",
    "export_batch",
    "preview_compression",
    "render_surface",
    "resolve_geometry",
)


def run_cli(
    inputs: Sequence[str | Path],
    config_path: str | Path | None = None,
    *,
    overrides: Optional[Mapping[str, Any]] = None,
    offsets: Optional[Mapping[str, PanOffset]] = None,
    quick: bool = False,
) -> RunResult:
    """Delegate to the shared runner module without console output."""
    request = RunRequest(
        inputs=[Path(item) for item in inputs],
        config_path=Path(config_path) if config_path is not None else None,
        overrides=dict(overrides or {}),
        offsets=cast(Dict[str, PanOffset], dict(offsets or {})),
        quick=quick,
    )
    return runner.run(request)


main = _cli_entry.main
cli = getattr(_cli_entry, "cli", main)


if __name__ == "__main__":
    _entry_point = cast(Callable[[], None], main)
    _entry_point()
