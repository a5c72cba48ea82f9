from __future__ import annotations

import zipfile
from pathlib import Path

import pytest

from src.carousel_engine import runner
from src.carousel_engine.cli_runtime import CLIAppError, CliOutputManager
from src.carousel_engine.render.geometry import PanOffset
from src.config_loader import ConfigError
from src.datatypes import AppConfig, FitMode


def _request(inputs: list[Path], tmp_path: Path, **overrides: object) -> runner.RunRequest:
    merged = {"output_dir": str(tmp_path / "exports")}
    merged.update(overrides)
    return runner.RunRequest(inputs=inputs, overrides=merged)


def test_apply_overrides_skips_none_and_validates() -> None:
    cfg = runner.apply_overrides(AppConfig(), {"aspect": "9:16", "fit_mode": "Stretch", "enhance": None})

    assert cfg.render.aspect == "9:16"
    assert cfg.render.fit_mode is FitMode.STRETCH
    assert cfg.export.enhance is False


def test_apply_overrides_rejects_unknown_keys_and_values() -> None:
    with pytest.raises(ConfigError, match="Unknown override"):
        runner.apply_overrides(AppConfig(), {"quality": 0.5})
    with pytest.raises(ConfigError, match="export.resolution"):
        runner.apply_overrides(AppConfig(), {"resolution": "8K"})


def test_empty_directory_is_reported(tmp_path: Path) -> None:
    empty = tmp_path / "empty"
    empty.mkdir()

    with pytest.raises(CLIAppError) as excinfo:
        runner.run(_request([empty], tmp_path))

    assert excinfo.value.code == 2
    assert "No supported images" in str(excinfo.value)


def test_offsets_attach_by_name_or_stem(image_dir: Path, tmp_path: Path) -> None:
    reporter = CliOutputManager(quiet=True)
    request = _request([image_dir], tmp_path, fit_mode="cover")
    request.offsets = {"img10.png": PanOffset(0.1, 0.0), "img2": PanOffset(0.0, -0.1), "other": PanOffset()}

    _cfg, session, artifacts = runner.prepare_session(request, reporter)

    offsets = {artifact.name: artifact.offset for artifact in artifacts}
    assert offsets["img10.png"] == PanOffset(0.1, 0.0)
    assert offsets["img2.jpg"] == PanOffset(0.0, -0.1)
    assert offsets["img1.webp"].is_zero()
    assert reporter.get_warnings() == ["Offset for 'other' does not match any input image"]
    assert len(session.sources()) == 3


def test_run_exports_at_requested_tier(image_dir: Path, tmp_path: Path) -> None:
    result = runner.run(_request([image_dir], tmp_path, aspect="16:9", resolution="2K", compression="optimized"))

    assert result.archive_path.parent == tmp_path / "exports"
    assert result.archive_path.name.startswith("carousel-2K-")
    assert all((item.width, item.height) == (4551, 2560) for item in result.exported)
    assert result.estimated_kb > 0
    with zipfile.ZipFile(result.archive_path) as archive:
        assert archive.namelist()[0] == "01_img1_16-9_2K.jpg"


def test_quick_run_archives_previews(image_dir: Path, tmp_path: Path) -> None:
    result = runner.run(runner.RunRequest(inputs=[image_dir], overrides={"output_dir": str(tmp_path)}, quick=True))

    assert result.exported == []
    with zipfile.ZipFile(result.archive_path) as archive:
        assert archive.read("02_img2_4-5.jpg") == result.artifacts[1].preview.data


def test_estimate_covers_every_combination(image_dir: Path, tmp_path: Path) -> None:
    report = runner.estimate(_request([image_dir], tmp_path))

    assert report.image_count == 3
    assert len(report.rows) == 15
    by_key = {(row.resolution_id, row.compression_id): row.estimated_kb for row in report.rows}
    assert by_key[("4K", "max")] > by_key[("HD", "max")] > by_key[("HD", "optimized")]
    assert report.sample.image_count == 3
