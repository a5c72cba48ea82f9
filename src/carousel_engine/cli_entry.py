"""Click CLI wiring and entry points for carousel_engine."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, cast

import click
from rich import print
from rich.table import Table

from src.carousel_engine.catalog import ASPECT_RATIOS, COMPRESSION_PRESETS, EXPORT_RESOLUTIONS
from src.carousel_engine.cli_runtime import CLIAppError, CliOutputManager, configure_logging
from src.carousel_engine.render.encoders import format_size
from src.carousel_engine.render.geometry import PanOffset
from src.carousel_engine.runner import RunRequest, estimate, run
from src.datatypes import FitMode

_INPUTS_ARGUMENT = click.argument(
    "inputs",
    nargs=-1,
    required=True,
    type=click.Path(path_type=Path),
)


def _parse_offsets(
    ctx: click.Context,
    param: click.Parameter,
    values: Tuple[str, ...],
) -> Dict[str, PanOffset]:
    """Parse repeated ``NAME=X,Y`` values into pan offsets keyed by name."""

    offsets: Dict[str, PanOffset] = {}
    for raw in values:
        name, sep, coords = raw.partition("=")
        parts = coords.split(",")
        if not sep or not name.strip() or len(parts) != 2:
            raise click.BadParameter(f"'{raw}' is not of the form NAME=X,Y", ctx=ctx, param=param)
        try:
            x, y = (float(part) for part in parts)
        except ValueError:
            raise click.BadParameter(f"'{raw}' has non-numeric coordinates", ctx=ctx, param=param) from None
        offsets[name.strip()] = PanOffset(x, y)
    return offsets


def _render_options(func):
    func = click.option(
        "--mode",
        "fit_mode",
        type=click.Choice([mode.value for mode in FitMode], case_sensitive=False),
        default=None,
        help="Override [render].fit_mode.",
    )(func)
    func = click.option(
        "--ratio",
        "aspect",
        type=click.Choice(list(ASPECT_RATIOS)),
        default=None,
        help="Override [render].aspect.",
    )(func)
    return func


def _reporter(ctx: click.Context, *, show_progress: bool = True) -> CliOutputManager:
    params = cast(Dict[str, Any], ctx.ensure_object(dict))
    reporter = CliOutputManager(
        quiet=bool(params.get("quiet", False)),
        verbose=bool(params.get("verbose", False)),
        no_color=bool(params.get("no_color", False)),
        show_progress=show_progress,
    )
    configure_logging(verbose=reporter.verbose, console=reporter.console)
    return reporter


def _guarded(func, *args: Any, **kwargs: Any) -> Any:
    try:
        return func(*args, **kwargs)
    except CLIAppError as exc:
        print(exc.rich_message)
        raise click.exceptions.Exit(exc.code) from exc
    except SystemExit:
        raise
    except Exception:  # noqa: BLE001
        from rich.console import Console

        Console().print_exception()
        sys.exit(1)


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="TOML configuration file; built-in defaults apply when omitted.",
)
@click.option("--quiet", is_flag=True, help="Only print the archive path and errors.")
@click.option("--verbose", is_flag=True, help="Show per-stage log output.")
@click.option("--no-color", is_flag=True, help="Disable ANSI colour output.")
@click.pass_context
def main(
    ctx: click.Context,
    config_path: Optional[Path],
    *,
    quiet: bool,
    verbose: bool,
    no_color: bool,
) -> None:
    """Reformat photo batches into carousel-ready JPEGs."""

    params_map = cast(Dict[str, Any], ctx.ensure_object(dict))
    params_map.update(
        {
            "config_path": config_path,
            "quiet": quiet,
            "verbose": verbose,
            "no_color": no_color,
        }
    )


@main.command("export")
@_INPUTS_ARGUMENT
@_render_options
@click.option(
    "--resolution",
    type=click.Choice(list(EXPORT_RESOLUTIONS)),
    default=None,
    help="Override [export].resolution.",
)
@click.option(
    "--compression",
    type=click.Choice(list(COMPRESSION_PRESETS)),
    default=None,
    help="Override [export].compression.",
)
@click.option(
    "--enhance/--no-enhance",
    default=None,
    help="Toggle the contrast/saturation/brightness pass.",
)
@click.option(
    "--offset",
    "offsets",
    multiple=True,
    callback=_parse_offsets,
    metavar="NAME=X,Y",
    help="Pan offset for one image in cover mode, as fractions of the canvas. Repeatable.",
)
@click.option(
    "--output",
    "output_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Override [paths].output_dir.",
)
@click.option("--workers", type=click.IntRange(min=0), default=None, help="Override [export].workers.")
@click.option("--quick", is_flag=True, help="Archive the HD previews without re-rendering.")
@click.pass_context
def export_command(
    ctx: click.Context,
    inputs: Tuple[Path, ...],
    *,
    aspect: Optional[str],
    fit_mode: Optional[str],
    resolution: Optional[str],
    compression: Optional[str],
    enhance: Optional[bool],
    offsets: Dict[str, PanOffset],
    output_dir: Optional[Path],
    workers: Optional[int],
    quick: bool,
) -> None:
    """Render INPUTS (files or directories) and write them to a zip archive."""

    params = cast(Dict[str, Any], ctx.ensure_object(dict))
    reporter = _reporter(ctx)
    request = RunRequest(
        inputs=inputs,
        config_path=params.get("config_path"),
        overrides={
            "aspect": aspect,
            "fit_mode": fit_mode,
            "resolution": resolution,
            "compression": compression,
            "enhance": enhance,
            "workers": workers,
            "output_dir": str(output_dir) if output_dir is not None else None,
        },
        offsets=offsets,
        quick=quick,
    )
    result = _guarded(run, request, reporter)

    if reporter.quiet:
        reporter.console.print(str(result.archive_path), soft_wrap=True, markup=False)
        return
    cfg = result.config
    reporter.banner("Carousel export complete")
    reporter.line(
        f"Images: {len(result.artifacts)}  "
        f"Ratio: {cfg.render.aspect}  Mode: {cfg.render.fit_mode.value}"
    )
    if quick:
        reporter.line("Tier: HD previews (quick export)")
    else:
        reporter.line(
            f"Tier: {cfg.export.resolution}  Compression: {cfg.export.compression}"
            f"{'  Enhanced' if cfg.export.enhance else ''}"
        )
        reporter.verbose_line(f"Estimated size: {format_size(result.estimated_kb)}")
    reporter.line(f"Total size: {format_size(result.total_kb)}")
    for item in result.exported:
        reporter.verbose_line(
            f"#{item.sequence_number:02d} {item.name}: {item.width}x{item.height} {format_size(item.size_kb)}"
        )
    reporter.line(f"Archive: {result.archive_path}")


@main.command("estimate")
@_INPUTS_ARGUMENT
@_render_options
@click.option(
    "--resolution",
    type=click.Choice(list(EXPORT_RESOLUTIONS)),
    default=None,
    help="Tier used for the measured compression sample.",
)
@click.option(
    "--compression",
    type=click.Choice(list(COMPRESSION_PRESETS)),
    default=None,
    help="Compression used for the measured sample.",
)
@click.pass_context
def estimate_command(
    ctx: click.Context,
    inputs: Tuple[Path, ...],
    *,
    aspect: Optional[str],
    fit_mode: Optional[str],
    resolution: Optional[str],
    compression: Optional[str],
) -> None:
    """Print projected archive sizes for every resolution and compression tier."""

    params = cast(Dict[str, Any], ctx.ensure_object(dict))
    reporter = _reporter(ctx)
    request = RunRequest(
        inputs=inputs,
        config_path=params.get("config_path"),
        overrides={
            "aspect": aspect,
            "fit_mode": fit_mode,
            "resolution": resolution,
            "compression": compression,
        },
    )
    report = _guarded(estimate, request, reporter)

    table = Table(title=f"Estimated size for {report.image_count} image(s)")
    table.add_column("Resolution")
    for compression_id in COMPRESSION_PRESETS:
        table.add_column(COMPRESSION_PRESETS[compression_id].label, justify="right")
    for resolution_id in EXPORT_RESOLUTIONS:
        cells = [
            format_size(row.estimated_kb)
            for row in report.rows
            if row.resolution_id == resolution_id
        ]
        table.add_row(EXPORT_RESOLUTIONS[resolution_id].label, *cells)
    reporter.console.print(table)

    sample = report.sample
    reporter.console.print(
        f"Sample at {report.config.export.resolution}/{report.config.export.compression}: "
        f"{format_size(sample.compressed_total_kb)} vs {format_size(sample.reference_total_kb)} "
        f"at maximum ({sample.savings_percent}% smaller)"
    )


@main.command("presets")
@click.pass_context
def presets_command(ctx: click.Context) -> None:
    """List aspect ratios, resolution tiers, and compression tiers."""

    reporter = _reporter(ctx, show_progress=False)

    aspects = Table(title="Aspect ratios")
    aspects.add_column("Id")
    aspects.add_column("Label")
    aspects.add_column("HD canvas", justify="right")
    for aspect in ASPECT_RATIOS.values():
        aspects.add_row(aspect.id, aspect.label, f"{aspect.width}x{aspect.height}")

    tiers = Table(title="Resolution tiers")
    tiers.add_column("Id")
    tiers.add_column("Label")
    tiers.add_column("Multiplier", justify="right")
    for tier in EXPORT_RESOLUTIONS.values():
        tiers.add_row(tier.id, tier.label, f"{tier.multiplier:.3f}")

    compressions = Table(title="Compression tiers")
    compressions.add_column("Id")
    compressions.add_column("Label")
    compressions.add_column("Quality", justify="right")
    compressions.add_column("Description")
    for preset in COMPRESSION_PRESETS.values():
        compressions.add_row(preset.id, preset.label, f"{preset.quality:.2f}", preset.description)

    for table in (aspects, tiers, compressions):
        reporter.console.print(table)


cli = main

__all__ = ["cli", "main"]
