"""Command line entry for trimming a single clip without re-encoding."""
from __future__ import annotations

import argparse
import math
import sys
from pathlib import Path
from typing import List, Optional

from config_loader import load_config
from footage.errors import FootageError
from footage.ffmpeg.encoder import FFmpegEncoder
from footage.group_config import DEFAULT_PREVIEW_LENGTH
from footage.probe import FFprobeProbe
from footage.trim import trim_clip
from footage_main import EXIT_ENVIRONMENT, EXIT_GROUP_FAILED, EXIT_OK, missing_tools
from logging_utils import configure_logging, get_logger

logger = get_logger(__name__)


def _seconds(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number of seconds: {value!r}") from None
    if not math.isfinite(number) or number < 0:
        raise argparse.ArgumentTypeError(f"seconds must be a finite value >= 0: {value!r}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Trim seconds from the start and/or end of one video by stream copy",
    )
    parser.add_argument("input", help="Video file to trim")
    parser.add_argument("-s", "--start", type=_seconds, default=0.0, help="Seconds to cut from the start (default: 0)")
    parser.add_argument("-e", "--end", type=_seconds, default=0.0, help="Seconds to cut from the end (default: 0)")
    parser.add_argument(
        "-p",
        dest="preview_start",
        action="store_true",
        help="Also write <name>_preview.mp4 with the first seconds after the start cut",
    )
    parser.add_argument(
        "-P",
        dest="preview_end",
        action="store_true",
        help="Also write <name>_preview_end.mp4 with the last seconds before the end cut",
    )
    parser.add_argument(
        "--preview-length",
        type=_seconds,
        default=DEFAULT_PREVIEW_LENGTH,
        help=f"Preview length in seconds (default: {DEFAULT_PREVIEW_LENGTH:g})",
    )
    parser.add_argument("-d", "--debug", action="store_true", help="Verbose logging including ffmpeg commands")
    parser.add_argument("--config", default=None, help="Path to a footage.yaml tool configuration (optional)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.preview_length <= 0:
        parser.error("--preview-length must be positive")

    try:
        config = load_config(args.config, project_root=Path.cwd())
    except (FileNotFoundError, ValueError) as exc:
        parser.error(str(exc))
    configure_logging("DEBUG" if args.debug else config.logging_level, config.log_file)

    source = Path(args.input).expanduser().resolve()
    if not source.is_file():
        logger.error("Input file not found: %s", source)
        return EXIT_ENVIRONMENT
    missing = missing_tools(config.ffmpeg_path, config.ffprobe_path)
    if missing:
        logger.error("Required tool(s) not found on PATH: %s", ", ".join(missing))
        return EXIT_ENVIRONMENT

    try:
        outputs = trim_clip(
            source,
            probe=FFprobeProbe(config.ffprobe_path),
            encoder=FFmpegEncoder(config.ffmpeg_path, show_progress=sys.stderr.isatty()),
            start=args.start,
            end=args.end,
            preview_start=args.preview_start,
            preview_end=args.preview_end,
            preview_length=args.preview_length,
        )
    except FootageError as exc:
        logger.error("Trim failed: %s", exc)
        return EXIT_GROUP_FAILED

    for kind, path in outputs.items():
        logger.info("%s: %s", kind, path)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
