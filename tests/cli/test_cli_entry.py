"""CLI entry regression tests driven through Click's runner."""

from __future__ import annotations

import zipfile
from pathlib import Path

from click.testing import CliRunner

import carousel_engine
from src.carousel_engine.archive import QUICK_ARCHIVE_NAME
from src.carousel_engine.cli_entry import main
from tests.helpers.images import write_image


def _single_zip(folder: Path) -> Path:
    archives = sorted(folder.glob("*.zip"))
    assert len(archives) == 1, archives
    return archives[0]


def test_presets_lists_catalogs(runner: CliRunner) -> None:
    result = runner.invoke(main, ["--no-color", "presets"])

    assert result.exit_code == 0, result.output
    for token in ("4:5", "LinkedIn", "2K", "optimized", "0.72"):
        assert token in result.output


def test_export_writes_numbered_archive(runner: CliRunner, image_dir: Path, tmp_path: Path) -> None:
    out_dir = tmp_path / "out"

    result = runner.invoke(
        main,
        [
            "--no-color",
            "export",
            str(image_dir),
            "--ratio",
            "1:1",
            "--compression",
            "compact",
            "--output",
            str(out_dir),
            "--workers",
            "2",
        ],
    )

    assert result.exit_code == 0, result.output
    bundle = _single_zip(out_dir)
    assert bundle.name.startswith("carousel-HD-")
    with zipfile.ZipFile(bundle) as archive:
        assert archive.namelist() == [
            "01_img1_1-1_HD.jpg",
            "02_img2_1-1_HD.jpg",
            "03_img10_1-1_HD.jpg",
        ]
    assert "Carousel export complete" in result.output


def test_quick_export_uses_fixed_archive_name(runner: CliRunner, image_dir: Path, tmp_path: Path) -> None:
    out_dir = tmp_path / "quick"

    result = runner.invoke(main, ["--quiet", "export", str(image_dir), "--quick", "--output", str(out_dir)])

    assert result.exit_code == 0, result.output
    assert result.output.strip() == str(out_dir / QUICK_ARCHIVE_NAME)
    with zipfile.ZipFile(out_dir / QUICK_ARCHIVE_NAME) as archive:
        assert archive.namelist()[0] == "01_img1_4-5.jpg"


def test_export_applies_config_file(runner: CliRunner, tmp_path: Path) -> None:
    image = write_image(tmp_path / "in" / "solo.png", 30, 20)
    out_dir = tmp_path / "configured"
    config = tmp_path / "carousel.toml"
    config.write_text(
        f'[render]\naspect = "16:9"\nfit_mode = "cover"\n\n[paths]\noutput_dir = "{out_dir.as_posix()}"\n',
        encoding="utf-8",
    )

    result = runner.invoke(main, ["--config", str(config), "--quiet", "export", str(image)])

    assert result.exit_code == 0, result.output
    with zipfile.ZipFile(_single_zip(out_dir)) as archive:
        assert archive.namelist() == ["01_solo_16-9_HD.jpg"]


def test_export_offset_for_unknown_image_warns(runner: CliRunner, image_dir: Path, tmp_path: Path) -> None:
    result = runner.invoke(
        main,
        [
            "--no-color",
            "export",
            str(image_dir),
            "--mode",
            "cover",
            "--offset",
            "img2=0.1,0",
            "--offset",
            "ghost=0,0",
            "--output",
            str(tmp_path / "o"),
        ],
    )

    assert result.exit_code == 0, result.output
    assert "warning:" in result.output
    assert "ghost" in result.output


def test_malformed_offset_is_usage_error(runner: CliRunner, image_dir: Path) -> None:
    result = runner.invoke(main, ["export", str(image_dir), "--offset", "img2:0.1"])

    assert result.exit_code == 2
    assert "NAME=X,Y" in result.output


def test_missing_input_exits_with_code_2(runner: CliRunner, tmp_path: Path) -> None:
    result = runner.invoke(main, ["--no-color", "export", str(tmp_path / "nope.jpg")])

    assert result.exit_code == 2
    assert "Input not found" in result.output
    assert not list(tmp_path.glob("**/*.zip"))


def test_invalid_config_exits_with_code_2(runner: CliRunner, image_dir: Path, tmp_path: Path) -> None:
    config = tmp_path / "bad.toml"
    config.write_text("[export]\nquality = 1\n", encoding="utf-8")

    result = runner.invoke(main, ["--no-color", "--config", str(config), "export", str(image_dir)])

    assert result.exit_code == 2
    assert "[export]" in result.output


def test_corrupt_image_aborts_without_archive(runner: CliRunner, tmp_path: Path) -> None:
    folder = tmp_path / "mixed"
    write_image(folder / "a.png")
    (folder / "b.jpg").write_bytes(b"garbage")
    out_dir = tmp_path / "never"

    result = runner.invoke(main, ["--no-color", "export", str(folder), "--output", str(out_dir)])

    assert result.exit_code == 1
    assert "b.jpg" in result.output
    assert not out_dir.exists() or not list(out_dir.iterdir())


def test_estimate_prints_table_and_sample(runner: CliRunner, image_dir: Path) -> None:
    result = runner.invoke(main, ["--no-color", "estimate", str(image_dir), "--compression", "balanced"])

    assert result.exit_code == 0, result.output
    assert "Estimated size for 3 image(s)" in result.output
    assert "Sample at HD/balanced" in result.output


def test_run_cli_shim_returns_result(image_dir: Path, tmp_path: Path) -> None:
    result = carousel_engine.run_cli(
        [image_dir],
        overrides={"output_dir": str(tmp_path / "api"), "resolution": "HD"},
    )

    assert result.archive_path.exists()
    assert [item.sequence_number for item in result.exported] == [1, 2, 3]
    assert result.total_kb == sum(item.size_kb for item in result.exported)
