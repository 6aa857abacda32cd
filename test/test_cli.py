from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import footage_main


def _touch(directory: Path, *names: str) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    for name in names:
        (directory / name).write_bytes(b"clip")


def test_missing_tools_exit_with_environment_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(footage_main.shutil, "which", lambda name: None)
    assert footage_main.main([str(tmp_path), "--no-edit"]) == footage_main.EXIT_ENVIRONMENT


def test_missing_input_directory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    assert footage_main.main([str(tmp_path / "nope")]) == footage_main.EXIT_ENVIRONMENT


def test_dry_run_touches_nothing(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    _touch(tmp_path, "DJI_100_0001.MP4", "DJI_200_0001.MP4")
    monkeypatch.setattr(footage_main.shutil, "which", lambda name: None)

    assert footage_main.main([str(tmp_path), "--dry-run"]) == footage_main.EXIT_OK

    assert sorted(p.name for p in tmp_path.iterdir()) == ["DJI_100_0001.MP4", "DJI_200_0001.MP4"]


def test_no_clips_is_success(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(footage_main.shutil, "which", lambda name: f"/usr/bin/{name}")
    assert footage_main.main([str(tmp_path)]) == footage_main.EXIT_OK


def test_explicit_config_must_exist(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    with pytest.raises(SystemExit) as excinfo:
        footage_main.main([str(tmp_path), "--config", str(tmp_path / "missing.yaml")])
    assert excinfo.value.code == 2


def test_preview_flag_defaults_to_ten_seconds() -> None:
    parser = footage_main.build_parser()
    assert parser.parse_args(["--preview"]).preview == 10.0
    assert parser.parse_args(["--preview", "4"]).preview == 4.0
    assert parser.parse_args([]).preview is None
    assert parser.parse_args([]).input_dir == "."


def test_preview_after_directory_keeps_both() -> None:
    parser = footage_main.build_parser()
    args = parser.parse_args(["/footage/shoot", "--preview"])
    assert args.input_dir == "/footage/shoot"
    assert args.preview == 10.0
    assert "input directory first" in " ".join(parser.format_help().split())
