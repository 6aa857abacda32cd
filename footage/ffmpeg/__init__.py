"""FFmpeg execution for the footage pipeline.

Modules:
- encoder: encode collaborator writing artifacts via partial-then-rename
- runner: subprocess execution and logging helpers
- progress: `-progress pipe:1` parsing and a console bar
"""

from .encoder import ConcatInput, EncodeOptions, Encoder, FFmpegEncoder, FileInput, InputSpec, partial_path

__all__ = [
    "ConcatInput",
    "EncodeOptions",
    "Encoder",
    "FFmpegEncoder",
    "FileInput",
    "InputSpec",
    "partial_path",
]
