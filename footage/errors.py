"""Error taxonomy for the footage render pipeline."""
from __future__ import annotations

from pathlib import Path
from typing import Optional


class FootageError(RuntimeError):
    """Base error; carries the group, stage and file it relates to."""

    def __init__(
        self,
        message: str,
        *,
        group: Optional[str] = None,
        stage: Optional[str] = None,
        path: Optional[Path] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.group = group
        self.stage = stage
        self.path = path

    def __str__(self) -> str:
        context = []
        if self.group:
            context.append(f"group={self.group}")
        if self.stage:
            context.append(f"stage={self.stage}")
        if self.path is not None:
            context.append(f"file={self.path}")
        if not context:
            return self.message
        return f"{self.message} [{' '.join(context)}]"

    def with_context(self, *, group: Optional[str] = None, stage: Optional[str] = None) -> "FootageError":
        """Fill in group/stage when they were not known where the error was raised."""
        if group and not self.group:
            self.group = group
        if stage and not self.stage:
            self.stage = stage
        return self


class ConfigParseError(FootageError):
    """Raised when a group config file cannot be read at all."""


class ProbeError(FootageError):
    """Raised when ffprobe cannot provide the metadata a stage needs."""


class TrimRangeError(FootageError):
    """Raised when start/end trims leave nothing to render."""


class EncodeError(FootageError):
    """Raised when an ffmpeg invocation exits with a failure."""


class RelocationConflict(FootageError):
    """A clip's destination already exists during grouping. Logged, never fatal."""
