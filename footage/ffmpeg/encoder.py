"""ffmpeg-backed encode collaborator with write-then-rename outputs."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Tuple, Union

from logging_utils import get_logger

from ..concat import ConcatEntry, write_concat_list
from ..discovery import PARTIAL_PREFIX
from ..errors import EncodeError
from ..profiles import AudioSettings, EncoderProfile
from .runner import run_ffmpeg, run_ffmpeg_stream

logger = get_logger(__name__)


@dataclass(frozen=True)
class FileInput:
    path: Path
    start: float = 0.0
    duration: Optional[float] = None


@dataclass(frozen=True)
class ConcatInput:
    entries: Tuple[ConcatEntry, ...]
    list_path: Path
    duration: Optional[float] = None


InputSpec = Union[FileInput, ConcatInput]


@dataclass(frozen=True)
class EncodeOptions:
    """How to write one artifact. `profile=None` means stream copy."""

    filter_graph: Optional[str] = None
    profile: Optional[EncoderProfile] = None
    audio: Optional[AudioSettings] = None
    faststart: bool = False
    metadata: Dict[str, str] = field(default_factory=dict)
    label: str = "encode"
    threads: Optional[int] = None


class Encoder(Protocol):
    def encode(self, source: InputSpec, output: Path, options: EncodeOptions) -> Path:
        ...


def partial_path(output: Path) -> Path:
    """Hidden sibling that receives the bytes until the encode succeeds."""
    return output.with_name(f"{PARTIAL_PREFIX}{output.name}")


def build_ffmpeg_args(source: InputSpec, target: Path, options: EncodeOptions) -> List[str]:
    args: List[str] = ["-y"]
    if isinstance(source, ConcatInput):
        args += ["-f", "concat", "-safe", "0", "-i", str(source.list_path)]
    else:
        if source.start > 0:
            args += ["-ss", f"{source.start:.3f}"]
        args += ["-i", str(source.path)]
        if source.duration is not None:
            args += ["-t", f"{source.duration:.3f}"]

    # Camera files carry data tracks the mp4 muxer rejects; keep one video and one audio stream.
    args += ["-map", "0:v:0", "-map", "0:a:0?"]
    if options.profile is None:
        args += ["-c", "copy"]
    else:
        if options.filter_graph:
            args += ["-vf", options.filter_graph]
        args += options.profile.video_flags(options.threads)
        if options.audio is not None:
            args += options.audio.flags()
        else:
            args += ["-c:a", "copy"]

    if options.faststart:
        args += ["-movflags", "+faststart"]
    for key, value in options.metadata.items():
        args += ["-metadata", f"{key}={value}"]
    args.append(str(target))
    return args


class FFmpegEncoder:
    """Run ffmpeg for one artifact; the final name appears only on success."""

    def __init__(self, ffmpeg_path: str = "ffmpeg", *, show_progress: bool = False) -> None:
        self.ffmpeg_path = ffmpeg_path
        self.show_progress = show_progress

    def encode(self, source: InputSpec, output: Path, options: EncodeOptions) -> Path:
        output.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(source, ConcatInput):
            write_concat_list(source.entries, source.list_path)

        target = partial_path(output)
        if target.exists():
            logger.info("Removing leftover partial output %s", target.name)
            target.unlink()

        args = build_ffmpeg_args(source, target, options)
        duration = source.duration
        logger.info("Encoding %s -> %s", options.label, output.name)
        try:
            if self.show_progress and duration:
                run_ffmpeg_stream(
                    args,
                    expected_duration_sec=duration,
                    label=options.label,
                    ffmpeg_path=self.ffmpeg_path,
                    output=output,
                )
            else:
                run_ffmpeg(args, ffmpeg_path=self.ffmpeg_path, label=options.label, output=output)
        except EncodeError:
            if target.exists():
                target.unlink()
            raise

        if not target.exists() or target.stat().st_size == 0:
            if target.exists():
                target.unlink()
            raise EncodeError("ffmpeg produced no output", stage=options.label, path=output)
        os.replace(target, output)
        logger.info("Wrote %s", output)
        return output
