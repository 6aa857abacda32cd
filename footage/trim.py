"""Single-file trim by stream copy, with optional previews around both cut points.

Outputs sit next to the input:

- ``<stem>_final.mp4``: the input without ``start`` seconds at the head and
  ``end`` seconds at the tail.
- ``<stem>_preview.mp4``: the first seconds after the start cut.
- ``<stem>_preview_end.mp4``: the last seconds before the end cut.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from logging_utils import get_logger

from .errors import FootageError, TrimRangeError
from .ffmpeg.encoder import EncodeOptions, Encoder, FileInput
from .group_config import DEFAULT_PREVIEW_LENGTH
from .pipeline import ARTIFACT_EXTENSION, Prober

logger = get_logger(__name__)


@dataclass(frozen=True)
class ClipTrimPlan:
    source: Path
    duration: float
    keep: FileInput
    start_preview: Optional[FileInput] = None
    end_preview: Optional[FileInput] = None


def plan_clip_trim(
    source: Path,
    duration: float,
    start: float = 0.0,
    end: float = 0.0,
    *,
    preview_start: bool = False,
    preview_end: bool = False,
    preview_length: float = DEFAULT_PREVIEW_LENGTH,
) -> ClipTrimPlan:
    if start < 0 or end < 0:
        raise TrimRangeError(f"Trims must not be negative (start={start}, end={end})", path=source, stage="trim")
    keep = duration - start - end
    if keep <= 0:
        raise TrimRangeError(
            f"Trimmed duration is {keep:.2f}s (duration={duration:.2f}, start={start}, end={end})",
            path=source,
            stage="trim",
        )

    start_preview = None
    if preview_start:
        start_preview = FileInput(path=source, start=start, duration=min(preview_length, keep))

    end_preview = None
    if preview_end:
        end_point = duration - end - preview_length
        if end_point < 0:
            logger.warning("Not enough duration for a %.1fs end preview of %s. Skipping.", preview_length, source.name)
        else:
            end_preview = FileInput(path=source, start=end_point, duration=preview_length)

    return ClipTrimPlan(
        source=source,
        duration=duration,
        keep=FileInput(path=source, start=start, duration=keep),
        start_preview=start_preview,
        end_preview=end_preview,
    )


def trim_output_path(source: Path, kind: str) -> Path:
    return source.with_name(f"{source.stem}_{kind}{ARTIFACT_EXTENSION}")


def trim_clip(
    source: Path,
    *,
    probe: Prober,
    encoder: Encoder,
    start: float = 0.0,
    end: float = 0.0,
    preview_start: bool = False,
    preview_end: bool = False,
    preview_length: float = DEFAULT_PREVIEW_LENGTH,
) -> Dict[str, Path]:
    """Write the trimmed clip and the requested previews; returns them by kind."""
    info = probe.probe(source)
    plan = plan_clip_trim(
        source,
        info.duration,
        start,
        end,
        preview_start=preview_start,
        preview_end=preview_end,
        preview_length=preview_length,
    )
    logger.info(
        "Trimming %s: duration=%.2f start=%s end=%s keep=%.2f",
        source.name,
        info.duration,
        start,
        end,
        plan.keep.duration,
    )

    jobs = [("final", plan.keep), ("preview", plan.start_preview), ("preview_end", plan.end_preview)]
    outputs: Dict[str, Path] = {}
    for kind, clip in jobs:
        if clip is None:
            continue
        output = trim_output_path(source, kind)
        try:
            encoder.encode(clip, output, EncodeOptions(faststart=kind == "final", label=f"{source.stem} {kind}"))
        except FootageError as exc:
            raise exc.with_context(group=source.stem, stage=kind)
        outputs[kind] = output
    return outputs
