from __future__ import annotations

import sys
from pathlib import Path
from typing import List, Tuple

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import trim_main
from footage.errors import TrimRangeError
from footage.ffmpeg.encoder import EncodeOptions, FileInput
from footage.probe import MediaInfo
from footage.trim import plan_clip_trim, trim_clip


class _Probe:
    def __init__(self, duration: float) -> None:
        self.duration = duration

    def probe(self, path: Path) -> MediaInfo:
        return MediaInfo(path=path, width=1920, height=1080, duration=self.duration, video_codec="h264")


class _Encoder:
    def __init__(self) -> None:
        self.calls: List[Tuple[FileInput, Path, EncodeOptions]] = []

    def encode(self, source: FileInput, output: Path, options: EncodeOptions) -> Path:
        self.calls.append((source, output, options))
        output.write_bytes(b"cut")
        return output


def test_plan_keeps_middle_and_places_previews_at_cut_points() -> None:
    plan = plan_clip_trim(Path("clip.mp4"), 120.0, 15.0, 20.0, preview_start=True, preview_end=True)
    assert (plan.keep.start, plan.keep.duration) == (15.0, pytest.approx(85.0))
    assert plan.start_preview == FileInput(path=Path("clip.mp4"), start=15.0, duration=10.0)
    assert plan.end_preview is not None
    assert plan.end_preview.start == pytest.approx(90.0)
    assert plan.end_preview.duration == 10.0


def test_end_preview_is_skipped_when_clip_is_too_short() -> None:
    plan = plan_clip_trim(Path("clip.mp4"), 12.0, 0.0, 5.0, preview_end=True)
    assert plan.end_preview is None
    assert plan.keep.duration == pytest.approx(7.0)


def test_trim_that_leaves_nothing_is_refused() -> None:
    with pytest.raises(TrimRangeError):
        plan_clip_trim(Path("clip.mp4"), 80.0, 0.0, 80.0)
    with pytest.raises(TrimRangeError):
        plan_clip_trim(Path("clip.mp4"), 60.0, 40.0, 30.0)


def test_trim_clip_writes_outputs_by_stream_copy(tmp_path: Path) -> None:
    source = tmp_path / "ride.mov"
    source.write_bytes(b"raw")
    encoder = _Encoder()

    outputs = trim_clip(source, probe=_Probe(100.0), encoder=encoder, start=5, end=10, preview_start=True, preview_end=True)

    assert outputs == {
        "final": tmp_path / "ride_final.mp4",
        "preview": tmp_path / "ride_preview.mp4",
        "preview_end": tmp_path / "ride_preview_end.mp4",
    }
    assert all(options.profile is None for _, _, options in encoder.calls)
    assert encoder.calls[0][2].faststart is True
    assert encoder.calls[2][0].start == pytest.approx(80.0)


def test_trim_clip_writes_nothing_when_range_is_empty(tmp_path: Path) -> None:
    source = tmp_path / "ride.mov"
    source.write_bytes(b"raw")
    encoder = _Encoder()
    with pytest.raises(TrimRangeError):
        trim_clip(source, probe=_Probe(30.0), encoder=encoder, end=30)
    assert encoder.calls == []


def test_cli_rejects_bad_seconds_and_missing_input(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    with pytest.raises(SystemExit):
        trim_main.main([str(tmp_path / "a.mp4"), "-e", "nan"])
    assert trim_main.main([str(tmp_path / "missing.mp4")]) == trim_main.EXIT_ENVIRONMENT


def test_cli_parses_combined_preview_flags() -> None:
    args = trim_main.build_parser().parse_args(["clip.mp4", "-s", "3", "-e", "4.5", "-pP"])
    assert (args.start, args.end, args.preview_start, args.preview_end) == (3.0, 4.5, True, True)
