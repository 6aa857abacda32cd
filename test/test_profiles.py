from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from footage.probe import Colorimetry
from footage.profiles import AUDIO_CLEANUP_FILTER, AudioSettings, ProfileSelector, codec_family


def test_codec_families() -> None:
    assert codec_family("h264") == "h264"
    assert codec_family("AVC1") == "h264"
    assert codec_family("hevc") == "hevc"
    assert codec_family("hvc1") == "hevc"
    assert codec_family("prores") == "default"
    assert codec_family(None) == "default"


def test_builtin_profiles() -> None:
    selector = ProfileSelector()
    h264 = selector.select("h264")
    assert (h264.video_codec, h264.crf, h264.preset, h264.pix_fmt) == ("libx264", 16, "slow", "yuv420p")
    hevc = selector.select("hevc")
    assert (hevc.video_codec, hevc.crf, hevc.pix_fmt) == ("libx265", 18, "yuv420p10le")
    assert "hvc1" in hevc.video_flags()
    fallback = selector.select("vp9")
    assert (fallback.video_codec, fallback.crf, fallback.preset) == ("libx264", 18, "medium")


def test_source_colorimetry_wins_over_bt709_default() -> None:
    profile = ProfileSelector().select("hevc", Colorimetry(primaries="bt2020", transfer="arib-std-b67"))
    flags = profile.video_flags()
    assert flags[flags.index("-color_primaries") + 1] == "bt2020"
    assert flags[flags.index("-color_trc") + 1] == "arib-std-b67"
    assert flags[flags.index("-colorspace") + 1] == "bt709"
    assert flags[flags.index("-color_range") + 1] == "tv"


def test_tool_config_overrides() -> None:
    selector = ProfileSelector({"h264": {"video_codec": "h264_videotoolbox", "bitrate": "60M", "crf": None}})
    flags = selector.select("avc1").video_flags(threads=4)
    assert flags[:2] == ["-c:v", "h264_videotoolbox"]
    assert "-crf" not in flags
    assert flags[flags.index("-b:v") + 1] == "60M"
    assert flags[-2:] == ["-threads", "4"]


def test_audio_flags_with_cleanup_filter() -> None:
    assert AudioSettings(filters=AUDIO_CLEANUP_FILTER).flags() == [
        "-c:a",
        "aac",
        "-b:a",
        "384k",
        "-ar",
        "48000",
        "-ac",
        "2",
        "-af",
        "highpass=f=200,lowpass=f=3000",
    ]
