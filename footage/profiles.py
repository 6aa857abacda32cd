"""Codec-adaptive encoder profiles used whenever the pipeline re-encodes."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional

from logging_utils import get_logger

from .probe import Colorimetry

logger = get_logger(__name__)

H264_CODECS = {"h264", "avc", "avc1"}
HEVC_CODECS = {"hevc", "h265", "hvc1", "hev1"}

DEFAULT_COLORIMETRY = Colorimetry(primaries="bt709", transfer="bt709", matrix="bt709", color_range="tv")


def codec_family(codec: Optional[str]) -> str:
    name = (codec or "").strip().lower()
    if name in H264_CODECS:
        return "h264"
    if name in HEVC_CODECS:
        return "hevc"
    return "default"


@dataclass(frozen=True)
class AudioSettings:
    codec: str = "aac"
    bitrate: str = "384k"
    sample_rate: int = 48000
    channels: int = 2
    filters: Optional[str] = None

    def flags(self) -> List[str]:
        flags = ["-c:a", self.codec, "-b:a", self.bitrate, "-ar", str(self.sample_rate), "-ac", str(self.channels)]
        if self.filters:
            flags += ["-af", self.filters]
        return flags


FINAL_AUDIO = AudioSettings()
AUDIO_CLEANUP_FILTER = "highpass=f=200,lowpass=f=3000"


@dataclass(frozen=True)
class EncoderProfile:
    name: str
    video_codec: str
    pix_fmt: str
    preset: Optional[str] = None
    crf: Optional[int] = None
    bitrate: Optional[str] = None
    extra_video_flags: List[str] = field(default_factory=list)
    colorimetry: Colorimetry = DEFAULT_COLORIMETRY

    def with_source_colorimetry(self, source: Optional[Colorimetry]) -> "EncoderProfile":
        """Keep the source's tags where it has them; BT.709 limited range otherwise."""
        if source is None:
            return self
        return replace(
            self,
            colorimetry=Colorimetry(
                primaries=source.primaries or self.colorimetry.primaries,
                transfer=source.transfer or self.colorimetry.transfer,
                matrix=source.matrix or self.colorimetry.matrix,
                color_range=source.color_range or self.colorimetry.color_range,
            ),
        )

    def video_flags(self, threads: Optional[int] = None) -> List[str]:
        flags = ["-c:v", self.video_codec]
        if self.preset:
            flags += ["-preset", self.preset]
        if self.crf is not None:
            flags += ["-crf", str(self.crf)]
        if self.bitrate:
            flags += ["-b:v", self.bitrate]
        flags += ["-pix_fmt", self.pix_fmt]
        color = self.colorimetry
        if color.primaries:
            flags += ["-color_primaries", color.primaries]
        if color.transfer:
            flags += ["-color_trc", color.transfer]
        if color.matrix:
            flags += ["-colorspace", color.matrix]
        if color.color_range:
            flags += ["-color_range", color.color_range]
        flags.extend(self.extra_video_flags)
        if threads:
            flags += ["-threads", str(threads)]
        return flags


BUILTIN_PROFILES: Dict[str, EncoderProfile] = {
    "h264": EncoderProfile(
        name="h264",
        video_codec="libx264",
        pix_fmt="yuv420p",
        preset="slow",
        crf=16,
        extra_video_flags=["-profile:v", "high"],
    ),
    "hevc": EncoderProfile(
        name="hevc",
        video_codec="libx265",
        pix_fmt="yuv420p10le",
        preset="slow",
        crf=18,
        extra_video_flags=["-tag:v", "hvc1"],
    ),
    "default": EncoderProfile(
        name="default",
        video_codec="libx264",
        pix_fmt="yuv420p",
        preset="medium",
        crf=18,
    ),
}

_OVERRIDABLE = ("video_codec", "pix_fmt", "preset", "crf", "bitrate")


def _apply_overrides(profile: EncoderProfile, overrides: Mapping[str, Any]) -> EncoderProfile:
    changes: Dict[str, Any] = {}
    for field_name in _OVERRIDABLE:
        if field_name in overrides:
            value = overrides[field_name]
            if field_name == "crf":
                changes[field_name] = int(value) if value is not None else None
            else:
                changes[field_name] = str(value) if value is not None else None
    extra_flags = overrides.get("extra_video_flags")
    if isinstance(extra_flags, list):
        changes["extra_video_flags"] = [str(flag) for flag in extra_flags]
    return replace(profile, **changes) if changes else profile


class ProfileSelector:
    """Pick an encoder profile for a probed codec, honouring tool-config overrides."""

    def __init__(self, overrides: Optional[Mapping[str, Mapping[str, Any]]] = None) -> None:
        self.profiles: Dict[str, EncoderProfile] = {}
        for family, profile in BUILTIN_PROFILES.items():
            family_overrides = (overrides or {}).get(family) or {}
            self.profiles[family] = _apply_overrides(profile, family_overrides)

    def select(self, codec: Optional[str], colorimetry: Optional[Colorimetry] = None) -> EncoderProfile:
        family = codec_family(codec)
        profile = self.profiles[family]
        if family == "default":
            logger.info("Unrecognized codec %r; using conservative %s profile", codec, profile.video_codec)
        return profile.with_source_colorimetry(colorimetry)
