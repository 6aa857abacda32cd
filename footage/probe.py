"""ffprobe adapter returning structured media metadata."""
from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from logging_utils import get_logger

from .errors import ProbeError

logger = get_logger(__name__)


@dataclass(frozen=True)
class Colorimetry:
    primaries: Optional[str] = None
    transfer: Optional[str] = None
    matrix: Optional[str] = None
    color_range: Optional[str] = None


@dataclass(frozen=True)
class MediaInfo:
    path: Path
    width: int
    height: int
    duration: float
    video_codec: str
    audio_codec: Optional[str] = None
    colorimetry: Colorimetry = field(default_factory=Colorimetry)

    @property
    def resolution(self) -> tuple[int, int]:
        return (self.width, self.height)


def _tag(value: Any) -> Optional[str]:
    text = str(value or "").strip().lower()
    if not text or text in {"unknown", "unspecified", "reserved"}:
        return None
    return text


def _parse_duration(fmt: Dict[str, Any], stream: Dict[str, Any]) -> Optional[float]:
    for raw in (fmt.get("duration"), stream.get("duration")):
        try:
            value = float(raw)
        except (TypeError, ValueError):
            continue
        if value > 0:
            return value
    return None


def parse_probe_output(path: Path, payload: Dict[str, Any]) -> MediaInfo:
    """Turn `ffprobe -of json -show_streams -show_format` output into MediaInfo."""
    streams = payload.get("streams") or []
    video = next((s for s in streams if s.get("codec_type") == "video"), None)
    audio = next((s for s in streams if s.get("codec_type") == "audio"), None)
    if video is None:
        raise ProbeError("No video stream found", path=path, stage="probe")

    try:
        width = int(video.get("width") or 0)
        height = int(video.get("height") or 0)
    except (TypeError, ValueError) as exc:
        raise ProbeError("Unreadable video dimensions", path=path, stage="probe") from exc
    if width <= 0 or height <= 0:
        raise ProbeError("Video stream reports no dimensions", path=path, stage="probe")

    duration = _parse_duration(payload.get("format") or {}, video)
    if duration is None:
        raise ProbeError("Duration unavailable", path=path, stage="probe")

    return MediaInfo(
        path=path,
        width=width,
        height=height,
        duration=duration,
        video_codec=str(video.get("codec_name") or "unknown").lower(),
        audio_codec=str(audio.get("codec_name")).lower() if audio and audio.get("codec_name") else None,
        colorimetry=Colorimetry(
            primaries=_tag(video.get("color_primaries")),
            transfer=_tag(video.get("color_transfer")),
            matrix=_tag(video.get("color_space")),
            color_range=_tag(video.get("color_range")),
        ),
    )


class FFprobeProbe:
    """Query media metadata through the ffprobe binary. No side effects."""

    def __init__(self, ffprobe_path: str = "ffprobe") -> None:
        self.ffprobe_path = ffprobe_path

    def probe(self, path: Path) -> MediaInfo:
        cmd = [
            self.ffprobe_path,
            "-v",
            "error",
            "-show_streams",
            "-show_format",
            "-of",
            "json",
            str(path),
        ]
        logger.debug("ffprobe: %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as exc:
            raise ProbeError(f"Could not run ffprobe: {exc}", path=path, stage="probe") from exc
        if result.returncode != 0:
            stderr = (result.stderr or "").strip().splitlines()
            detail = stderr[-1] if stderr else f"exit code {result.returncode}"
            raise ProbeError(f"ffprobe failed: {detail}", path=path, stage="probe")
        try:
            payload = json.loads(result.stdout or "{}")
        except json.JSONDecodeError as exc:
            raise ProbeError("ffprobe returned invalid JSON", path=path, stage="probe") from exc
        info = parse_probe_output(path, payload)
        logger.debug(
            "Probed %s: %dx%d %.3fs video=%s audio=%s",
            path.name,
            info.width,
            info.height,
            info.duration,
            info.video_codec,
            info.audio_codec,
        )
        return info
