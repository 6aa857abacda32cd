"""Concat list planning for the zero re-encode fast path."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from logging_utils import get_logger

from .errors import TrimRangeError

logger = get_logger(__name__)


@dataclass(frozen=True)
class ConcatEntry:
    path: Path
    inpoint: Optional[float] = None
    outpoint: Optional[float] = None


def plan_trimmed_concat(
    clips: Sequence[Tuple[Path, float]],
    start_trim: float,
    end_trim: float,
) -> List[ConcatEntry]:
    """Spread start/end trims over an ordered list of (path, duration) clips.

    Leading clips that fit entirely inside the start trim are dropped; the
    first kept clip starts at the remaining trim. The end trim works the same
    way from the back, ending the last kept clip at ``duration - remaining``.
    """
    if not clips:
        raise TrimRangeError("No clips to concatenate", stage="fast-path")

    first = 0
    remaining_start = max(0.0, float(start_trim))
    while first < len(clips) and clips[first][1] <= remaining_start:
        remaining_start -= clips[first][1]
        first += 1

    last = len(clips) - 1
    remaining_end = max(0.0, float(end_trim))
    while last >= first and clips[last][1] <= remaining_end:
        remaining_end -= clips[last][1]
        last -= 1

    if first > last:
        raise TrimRangeError(
            f"Trims (start={start_trim}, end={end_trim}) remove every clip",
            stage="fast-path",
        )

    entries: List[ConcatEntry] = []
    for index in range(first, last + 1):
        path, duration = clips[index]
        inpoint = remaining_start if index == first and remaining_start > 0 else None
        outpoint = duration - remaining_end if index == last and remaining_end > 0 else None
        if inpoint is not None and outpoint is not None and outpoint <= inpoint:
            raise TrimRangeError(
                f"Trims leave nothing of {path.name} (in={inpoint:.3f}, out={outpoint:.3f})",
                stage="fast-path",
                path=path,
            )
        entries.append(ConcatEntry(path=path, inpoint=inpoint, outpoint=outpoint))

    logger.debug(
        "Concat plan: %d of %d clips, first=%s in=%s, last=%s out=%s",
        len(entries),
        len(clips),
        entries[0].path.name,
        entries[0].inpoint,
        entries[-1].path.name,
        entries[-1].outpoint,
    )
    return entries


def planned_duration(entries: Sequence[ConcatEntry], durations: Sequence[float]) -> float:
    total = 0.0
    for entry, duration in zip(entries, durations):
        end = entry.outpoint if entry.outpoint is not None else duration
        start = entry.inpoint or 0.0
        total += max(0.0, end - start)
    return total


def _quote(path: Path) -> str:
    # ffconcat escapes a single quote as '\''
    return "'" + str(path.resolve()).replace("'", "'\\''") + "'"


def render_concat_list(entries: Sequence[ConcatEntry]) -> str:
    lines = ["ffconcat version 1.0"]
    for entry in entries:
        lines.append(f"file {_quote(entry.path)}")
        if entry.inpoint is not None:
            lines.append(f"inpoint {entry.inpoint:.6f}")
        if entry.outpoint is not None:
            lines.append(f"outpoint {entry.outpoint:.6f}")
    return "\n".join(lines) + "\n"


def write_concat_list(entries: Sequence[ConcatEntry], list_path: Path) -> Path:
    list_path.parent.mkdir(parents=True, exist_ok=True)
    list_path.write_text(render_concat_list(entries), encoding="utf-8")
    logger.debug("concat: list file => %s (%d entries)", list_path, len(entries))
    return list_path
