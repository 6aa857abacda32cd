from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from footage.discovery import classify_clip, discover_groups, scan_clips


def _touch(directory: Path, *names: str) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    for name in names:
        (directory / name).write_bytes(b"clip")


def test_classify_families() -> None:
    dji = classify_clip(Path("DJI_20240512143210_0001_D.MP4"))
    vid = classify_clip(Path("VID_20240512_143210_001.mp4"))
    assert dji is not None and dji.group_key == "DJI_20240512143210"
    assert vid is not None and vid.group_key == "VID_20240512_143210"
    assert classify_clip(Path("DJI_20240512143210_0001_D.SRT")) is None
    assert classify_clip(Path("holiday.mp4")) is None


def test_artifacts_and_partials_are_not_clips(tmp_path: Path) -> None:
    _touch(
        tmp_path,
        "DJI_2024_0001.MP4",
        "DJI_2024_combined.mp4",
        "DJI_2024_final.mp4",
        "DJI_2024_preview.mp4",
        ".partial-DJI_2024_final.mp4",
    )
    assert [clip.name for clip in scan_clips(tmp_path)] == ["DJI_2024_0001.MP4"]


def test_mixed_root_is_grouped_and_second_run_moves_nothing(tmp_path: Path) -> None:
    _touch(
        tmp_path,
        "DJI_100_0001.MP4",
        "DJI_100_0002.MP4",
        "DJI_200_0001.MP4",
        "VID_20240101_120000_001.mp4",
    )

    groups = discover_groups(tmp_path)

    assert [g.name for g in groups] == ["DJI_100", "DJI_200", "VID_20240101_120000"]
    assert sorted(p.name for p in (tmp_path / "DJI_100").iterdir()) == ["DJI_100_0001.MP4", "DJI_100_0002.MP4"]
    assert not list(tmp_path.glob("*.MP4"))

    before = sorted(str(p.relative_to(tmp_path)) for p in tmp_path.rglob("*"))
    again = discover_groups(tmp_path)
    after = sorted(str(p.relative_to(tmp_path)) for p in tmp_path.rglob("*"))
    assert [g.name for g in again] == [g.name for g in groups]
    assert before == after


def test_single_prefix_root_is_the_group(tmp_path: Path) -> None:
    root = tmp_path / "shoot"
    _touch(root, "DJI_300_0001.MP4", "DJI_300_0002.MP4")
    assert discover_groups(root) == [root.resolve()]
    assert (root / "DJI_300_0001.MP4").exists()


def test_existing_destination_is_skipped(tmp_path: Path) -> None:
    _touch(tmp_path, "DJI_100_0001.MP4", "DJI_200_0001.MP4")
    (tmp_path / "DJI_100").mkdir()
    (tmp_path / "DJI_100" / "DJI_100_0001.MP4").write_bytes(b"already there")

    groups = discover_groups(tmp_path)

    assert (tmp_path / "DJI_100_0001.MP4").exists()
    assert (tmp_path / "DJI_100" / "DJI_100_0001.MP4").read_bytes() == b"already there"
    assert (tmp_path / "DJI_200" / "DJI_200_0001.MP4").exists()
    assert [g.name for g in groups] == ["DJI_100", "DJI_200"]


def test_dry_run_moves_nothing(tmp_path: Path) -> None:
    _touch(tmp_path, "DJI_100_0001.MP4", "DJI_200_0001.MP4")

    groups = discover_groups(tmp_path, dry_run=True)

    assert [g.name for g in groups] == ["DJI_100", "DJI_200"]
    assert (tmp_path / "DJI_100_0001.MP4").exists()
    assert not (tmp_path / "DJI_100").exists()


def test_skip_normalization_uses_existing_folders(tmp_path: Path) -> None:
    _touch(tmp_path, "DJI_100_0001.MP4", "DJI_200_0001.MP4")
    _touch(tmp_path / "DJI_300", "DJI_300_0001.MP4")

    groups = discover_groups(tmp_path, move=False)

    assert [g.name for g in groups] == ["DJI_300"]
    assert (tmp_path / "DJI_100_0001.MP4").exists()


def test_rerun_after_conflict_keeps_returning_group_folders(tmp_path: Path) -> None:
    _touch(tmp_path, "DJI_100_0001.MP4", "DJI_200_0001.MP4")
    _touch(tmp_path / "DJI_100", "DJI_100_0001.MP4")

    first = discover_groups(tmp_path)
    second = discover_groups(tmp_path)

    assert [g.name for g in first] == ["DJI_100", "DJI_200"]
    assert [g.name for g in second] == ["DJI_100", "DJI_200"]
    assert (tmp_path / "DJI_100_0001.MP4").exists()
