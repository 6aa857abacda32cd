from __future__ import annotations

import subprocess
import threading
from pathlib import Path
from typing import IO, List, Optional, Sequence

from logging_utils import get_logger

from ..errors import EncodeError

logger = get_logger(__name__)

STDERR_TAIL_LINES = 30


def _pretty(cmd: Sequence[str]) -> str:
    return " ".join(a if " " not in a else f"'{a}'" for a in cmd)


def _drain(stream: Optional[IO[str]], sink: List[str]) -> None:
    if stream is None:
        return
    for line in stream:
        sink.append(line)
        if len(sink) > STDERR_TAIL_LINES:
            del sink[0]


def _fail(returncode: int, stderr: str, *, label: str, output: Optional[Path]) -> EncodeError:
    tail = (stderr or "").splitlines()[-STDERR_TAIL_LINES:]
    for line in tail:
        logger.error("ffmpeg(%s): %s", label, line)
    return EncodeError(f"ffmpeg failed with exit code {returncode}", stage=label, path=output)


def run_ffmpeg(
    args: Sequence[str],
    *,
    ffmpeg_path: str = "ffmpeg",
    label: str = "ffmpeg",
    output: Optional[Path] = None,
    cwd: Optional[Path] = None,
) -> None:
    """Run ffmpeg quietly, raising EncodeError on non-zero exit."""
    cmd: List[str] = [ffmpeg_path, "-hide_banner", "-loglevel", "error", "-nostats"] + list(args)
    logger.debug("FFmpeg(%s): %s", label, _pretty(cmd))
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd) if cwd else None,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
        )
    except OSError as exc:
        raise EncodeError(f"Could not run ffmpeg: {exc}", stage=label, path=output) from exc
    if proc.returncode != 0:
        raise _fail(proc.returncode, proc.stderr, label=label, output=output)


def run_ffmpeg_stream(
    args: Sequence[str],
    *,
    expected_duration_sec: float,
    label: str,
    ffmpeg_path: str = "ffmpeg",
    output: Optional[Path] = None,
    cwd: Optional[Path] = None,
) -> None:
    """Run ffmpeg with `-progress pipe:1` and draw a console bar while it encodes."""
    from .progress import ConsoleBar, ProgressParser

    cmd: List[str] = [
        ffmpeg_path,
        "-hide_banner",
        "-loglevel",
        "error",
        "-nostats",
        "-progress",
        "pipe:1",
    ] + list(args)
    logger.debug("FFmpeg(stream, %s): %s", label, _pretty(cmd))

    bar = ConsoleBar(total_seconds=expected_duration_sec, label=label)
    parser = ProgressParser(on_time=bar.update, on_speed=bar.set_speed)
    try:
        proc = subprocess.Popen(
            cmd,
            cwd=str(cwd) if cwd else None,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            bufsize=1,
        )
    except OSError as exc:
        raise EncodeError(f"Could not run ffmpeg: {exc}", stage=label, path=output) from exc
    assert proc.stdout is not None
    # Read stderr alongside stdout; an unread full pipe stalls ffmpeg.
    stderr_lines: List[str] = []
    drain = threading.Thread(target=_drain, args=(proc.stderr, stderr_lines), name=f"ffmpeg-stderr-{label}", daemon=True)
    drain.start()
    try:
        for line in proc.stdout:
            parser.feed_line(line)
    finally:
        proc.wait()
        drain.join()
        bar.finish(completed=proc.returncode == 0)
    if proc.returncode != 0:
        raise _fail(proc.returncode, "".join(stderr_lines), label=label, output=output)
