"""End-to-end workflow used by the CLI: ingest, preview, export, archive."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from rich.markup import escape

from src.carousel_engine.archive import (
    archive_filename,
    exported_entries,
    quick_entries,
    write_archive,
)
from src.carousel_engine.artifacts import ExportedArtifact, RenderedArtifact, RenderSettings
from src.carousel_engine.batch import CompressionPreview, export_batch, preview_compression
from src.carousel_engine.catalog import COMPRESSION_PRESETS, EXPORT_RESOLUTIONS
from src.carousel_engine.cli_runtime import CLIAppError, CliOutputManager
from src.carousel_engine.render.errors import CarouselError
from src.carousel_engine.render.geometry import PanOffset
from src.carousel_engine.session import CarouselSession
from src.carousel_engine.sources import SourceImage, collect_sources
from src.config_loader import ConfigError, load_config, validate_config
from src.datatypes import AppConfig

__all__ = [
    "EstimateReport",
    "EstimateRow",
    "RunRequest",
    "RunResult",
    "apply_overrides",
    "estimate",
    "prepare_session",
    "run",
]

logger = logging.getLogger(__name__)

_OVERRIDE_TARGETS: Mapping[str, Tuple[str, str]] = {
    "aspect": ("render", "aspect"),
    "fit_mode": ("render", "fit_mode"),
    "resolution": ("export", "resolution"),
    "compression": ("export", "compression"),
    "enhance": ("export", "enhance"),
    "workers": ("export", "workers"),
    "output_dir": ("paths", "output_dir"),
}


@dataclass
class RunRequest:
    """
    Parameters for one CLI invocation.

    Attributes:
        inputs (Sequence[Path]): Files and/or directories to ingest.
        config_path (Optional[Path]): TOML config file; defaults apply when omitted.
        overrides (Dict[str, Any]): Flag values overriding the config (keys of ``_OVERRIDE_TARGETS``).
        offsets (Dict[str, PanOffset]): Pan offsets keyed by file name or stem.
        quick (bool): Archive the HD previews instead of re-rendering at the export tier.
    """

    inputs: Sequence[Path]
    config_path: Optional[Path] = None
    overrides: Dict[str, Any] = field(default_factory=dict)
    offsets: Dict[str, PanOffset] = field(default_factory=dict)
    quick: bool = False


@dataclass
class RunResult:
    config: AppConfig
    archive_path: Path
    artifacts: List[RenderedArtifact]
    exported: List[ExportedArtifact] = field(default_factory=list)
    estimated_kb: float = 0.0

    @property
    def total_kb(self) -> int:
        if self.exported:
            return sum(item.size_kb for item in self.exported)
        return sum(artifact.preview_size_kb for artifact in self.artifacts)


@dataclass(frozen=True)
class EstimateRow:
    resolution_id: str
    compression_id: str
    estimated_kb: float


def apply_overrides(cfg: AppConfig, overrides: Mapping[str, Any]) -> AppConfig:
    """Copy non-``None`` flag values onto ``cfg`` and re-validate it."""

    for key, value in overrides.items():
        if value is None:
            continue
        try:
            section_name, attr = _OVERRIDE_TARGETS[key]
        except KeyError:
            raise ConfigError(f"Unknown override '{key}'") from None
        setattr(getattr(cfg, section_name), attr, value)
    return validate_config(cfg)


def _attach_offsets(
    sources: Sequence[SourceImage],
    offsets: Mapping[str, PanOffset],
    reporter: Optional[CliOutputManager],
) -> List[SourceImage]:
    remaining = dict(offsets)
    attached: List[SourceImage] = []
    for source in sources:
        offset = remaining.pop(source.name, None)
        if offset is None:
            offset = remaining.pop(source.stem, None)
        attached.append(source.with_offset(offset) if offset is not None else source)
    for unmatched in remaining:
        message = f"Offset for '{unmatched}' does not match any input image"
        logger.warning(message)
        if reporter is not None:
            reporter.warn(message)
    return attached


def prepare_session(
    request: RunRequest,
    reporter: Optional[CliOutputManager] = None,
) -> Tuple[AppConfig, CarouselSession, List[RenderedArtifact]]:
    """
    Load config, ingest sources and render their HD previews.

    Raises:
        CLIAppError: On configuration, ingestion, decode or render failures.
    """

    try:
        cfg = apply_overrides(load_config(request.config_path), request.overrides)
        sources = _attach_offsets(collect_sources(list(request.inputs)), request.offsets, reporter)
    except (ConfigError, CarouselError) as exc:
        raise CLIAppError(
            str(exc),
            code=2,
            rich_message=f"[red]Invalid input:[/red] {escape(str(exc))}",
        ) from exc
    if not sources:
        raise CLIAppError("No supported images found (JPG, JPEG, PNG, WEBP)", code=2)

    settings = RenderSettings(
        aspect_id=cfg.render.aspect,
        fit_mode=cfg.render.fit_mode,
        blur_radius=cfg.render.blur_radius,
        background_brightness=cfg.render.background_brightness,
    )
    session = CarouselSession(settings, max_workers=cfg.export.workers or None)
    session.add(sources)

    show = reporter is not None and cfg.cli.progress
    try:
        if show:
            assert reporter is not None
            with reporter.progress("Rendering previews", len(sources)) as advance:
                committed = session.refresh(progress_callback=advance)
        else:
            committed = session.refresh()
    except CarouselError as exc:
        raise CLIAppError(
            f"Preview render failed: {exc}",
            rich_message=f"[red]Preview render failed:[/red] {escape(str(exc))}",
        ) from exc
    if committed is None:
        raise CLIAppError("Preview render was superseded before it finished")
    return cfg, session, list(committed)


def run(request: RunRequest, reporter: Optional[CliOutputManager] = None) -> RunResult:
    """
    Execute the export workflow and write the zip archive.

    Any single image failing aborts the run before an archive is written.

    Raises:
        CLIAppError: On any configuration, ingestion, render, encode or write failure.
    """

    cfg, session, artifacts = prepare_session(request, reporter)
    output_dir = Path(cfg.paths.output_dir)
    estimated = session.estimate_total(cfg.export.resolution, cfg.export.compression)

    if request.quick:
        destination = output_dir / archive_filename(None)
        entries = quick_entries(artifacts)
        exported: List[ExportedArtifact] = []
    else:
        try:
            if reporter is not None and cfg.cli.progress:
                with reporter.progress(f"Exporting {cfg.export.resolution}", len(artifacts)) as advance:
                    exported = export_batch(
                        artifacts,
                        cfg.export.resolution,
                        cfg.export.compression,
                        enhance=cfg.export.enhance,
                        max_workers=cfg.export.workers or None,
                        progress_callback=advance,
                    )
            else:
                exported = export_batch(
                    artifacts,
                    cfg.export.resolution,
                    cfg.export.compression,
                    enhance=cfg.export.enhance,
                    max_workers=cfg.export.workers or None,
                )
        except CarouselError as exc:
            raise CLIAppError(
                f"Export failed, no archive written: {exc}",
                rich_message=f"[red]Export failed, no archive written:[/red] {escape(str(exc))}",
            ) from exc
        destination = output_dir / archive_filename(cfg.export.resolution)
        entries = exported_entries(exported)

    try:
        archive_path = write_archive(entries, destination)
    except OSError as exc:
        raise CLIAppError(f"Unable to write archive '{destination}': {exc.strerror or exc}") from exc
    return RunResult(
        config=cfg,
        archive_path=archive_path,
        artifacts=artifacts,
        exported=exported,
        estimated_kb=estimated,
    )


@dataclass(frozen=True)
class EstimateReport:
    """Size projections for a batch plus a measured sample at the configured tier."""

    config: AppConfig
    image_count: int
    rows: List[EstimateRow]
    sample: CompressionPreview


def estimate(request: RunRequest, reporter: Optional[CliOutputManager] = None) -> EstimateReport:
    """
    Estimate batch size for every resolution x compression combination.

    The first image is additionally encoded at maximum quality and at the
    configured compression so the projected savings come from real bytes.
    """

    cfg, session, artifacts = prepare_session(request, reporter)
    rows = [
        EstimateRow(resolution_id, compression_id, session.estimate_total(resolution_id, compression_id))
        for resolution_id in EXPORT_RESOLUTIONS
        for compression_id in COMPRESSION_PRESETS
    ]
    try:
        sample = preview_compression(
            artifacts,
            cfg.export.resolution,
            cfg.export.compression,
            enhance=cfg.export.enhance,
        )
    except CarouselError as exc:
        raise CLIAppError(f"Compression sample failed: {exc}") from exc
    return EstimateReport(config=cfg, image_count=len(artifacts), rows=rows, sample=sample)
