from __future__ import annotations

import sys
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, TextIO

# Redraw at most 10 times per second.
REDRAW_INTERVAL = 0.1


def format_hms(seconds: float) -> str:
    seconds = int(round(max(seconds, 0)))
    h, rem = divmod(seconds, 3600)
    m, s = divmod(rem, 60)
    if h > 0:
        return f"{h:02d}:{m:02d}:{s:02d}"
    return f"{m:02d}:{s:02d}"


@dataclass
class ConsoleBar:
    """Single-line encode progress: position in the output timeline, speed and ETA."""

    total_seconds: float
    label: str = "Render"
    width: int = 24
    stream: TextIO = field(default_factory=lambda: sys.stderr)

    def __post_init__(self) -> None:
        self.started = time.monotonic()
        self.drawn_at = 0.0
        self.position = 0.0
        self.speed: Optional[float] = None
        self._draw()

    def update(self, position: float) -> None:
        self.position = min(max(position, 0.0), self.total_seconds)
        now = time.monotonic()
        if now - self.drawn_at < REDRAW_INTERVAL:
            return
        self.drawn_at = now
        self._draw()

    def set_speed(self, speed: float) -> None:
        self.speed = speed

    def finish(self, completed: bool = True) -> None:
        if completed:
            self.position = self.total_seconds
        self._draw()
        self.stream.write("\n")
        self.stream.flush()

    def _eta(self, fraction: float) -> Optional[float]:
        if self.speed:
            return (self.total_seconds - self.position) / self.speed
        if fraction <= 0.0001:
            return None
        return (time.monotonic() - self.started) * (1.0 / fraction - 1.0)

    def _draw(self) -> None:
        total = max(self.total_seconds, 0.001)
        fraction = self.position / total
        filled = int(round(self.width * fraction))
        eta = self._eta(fraction)
        speed = f"{self.speed:.2f}x" if self.speed else "--"
        line = (
            f"[{'#' * filled}{'.' * (self.width - filled)}] {int(fraction * 100):3d}% "
            f"{format_hms(self.position)}/{format_hms(total)} {speed} "
            f"ETA {format_hms(eta) if eta is not None else '--:--'} {self.label}"
        )
        self.stream.write("\r" + line)
        self.stream.flush()


class ProgressParser:
    """Feed ffmpeg `-progress` key=value lines; report output time and speed."""

    def __init__(
        self,
        on_time: Callable[[float], None],
        on_speed: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.on_time = on_time
        self.on_speed = on_speed
        self.finished = False

    def feed_line(self, line: str) -> None:
        key, sep, value = line.strip().partition("=")
        if not sep:
            return
        value = value.strip()
        if key == "progress":
            self.finished = value == "end"
        elif key in ("out_time_us", "out_time_ms"):
            # both keys carry microseconds
            if value.isdigit():
                self.on_time(int(value) / 1_000_000.0)
        elif key == "speed" and self.on_speed is not None:
            try:
                self.on_speed(float(value.rstrip("x")))
            except ValueError:
                pass
