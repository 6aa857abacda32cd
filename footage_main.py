"""Command line entry for the footage render pipeline."""
from __future__ import annotations

import argparse
import shutil
import sys
from pathlib import Path
from typing import List, Optional

from config_loader import load_config
from footage.discovery import discover_groups
from footage.group_config import DEFAULT_PREVIEW_LENGTH
from footage.profiles import BUILTIN_PROFILES
from footage.scheduler import GroupScheduler, RenderSettings
from logging_utils import configure_logging, get_logger

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_GROUP_FAILED = 1
EXIT_ENVIRONMENT = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Group, crop, trim and render multi-clip camera footage with ffmpeg",
    )
    parser.add_argument(
        "input_dir",
        nargs="?",
        default=".",
        help="Folder holding the raw clips or group folders (default: current directory)",
    )
    parser.add_argument("-d", "--debug", action="store_true", help="Verbose logging including ffmpeg commands")
    parser.add_argument(
        "--filter-audio",
        action="store_true",
        help="Apply a highpass/lowpass voice band filter to re-encoded audio",
    )
    parser.add_argument(
        "--preview",
        nargs="?",
        type=float,
        const=DEFAULT_PREVIEW_LENGTH,
        default=None,
        metavar="SECONDS",
        help=(
            f"Render only a preview of SECONDS (default {DEFAULT_PREVIEW_LENGTH:g}) instead of the final. "
            "SECONDS is optional, so give the input directory first: `footage-render DIR --preview`"
        ),
    )
    parser.add_argument(
        "--skip-normalization",
        action="store_true",
        help="Do not move clips into per-group folders",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report groups and planned stages without moving or encoding anything",
    )
    parser.add_argument(
        "-j",
        "--jobs",
        type=int,
        default=None,
        help="Render this many groups in parallel (default: scheduler.jobs from config, else 1)",
    )
    parser.add_argument(
        "--no-edit",
        action="store_true",
        help="Skip the interactive config edit step",
    )
    parser.add_argument(
        "-y",
        "--yes",
        action="store_true",
        help="Overwrite existing final renders without asking",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a footage.yaml tool configuration (optional)",
    )
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")
    return parser


def missing_tools(*names: str) -> List[str]:
    return [name for name in names if shutil.which(name) is None]


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.jobs is not None and args.jobs < 1:
        parser.error("--jobs must be at least 1")
    if args.preview is not None and args.preview <= 0:
        parser.error("--preview length must be positive")

    try:
        config = load_config(args.config, project_root=Path.cwd())
    except (FileNotFoundError, ValueError) as exc:
        parser.error(str(exc))

    level = "DEBUG" if args.debug else config.logging_level
    log_file = Path(args.log_file).expanduser().resolve() if args.log_file else config.log_file
    configure_logging(level, log_file)
    logger.debug("Tool config: %s", config.dumps())

    input_dir = Path(args.input_dir).expanduser().resolve()
    if not input_dir.is_dir():
        logger.error("Input directory does not exist: %s", input_dir)
        return EXIT_ENVIRONMENT

    if args.dry_run:
        logger.info("DRY-RUN: no files will be moved, written or encoded")
    else:
        missing = missing_tools(config.ffmpeg_path, config.ffprobe_path)
        if missing:
            logger.error("Required tool(s) not found on PATH: %s", ", ".join(missing))
            return EXIT_ENVIRONMENT

    directories = discover_groups(input_dir, move=not args.skip_normalization, dry_run=args.dry_run)
    if not directories:
        logger.warning("No DJI_/VID_ clips found under %s", input_dir)
        return EXIT_OK
    logger.info("Found %d group(s): %s", len(directories), ", ".join(d.name for d in directories))

    settings = RenderSettings(
        ffmpeg_path=config.ffmpeg_path,
        ffprobe_path=config.ffprobe_path,
        threads=config.threads,
        encoder_overrides={family: config.encoder_overrides(family) for family in BUILTIN_PROFILES},
        editor=config.editor,
        interactive=not args.no_edit,
        assume_yes=args.yes,
        filter_audio=args.filter_audio,
        preview_length=args.preview,
        dry_run=args.dry_run,
        show_progress=sys.stderr.isatty(),
        log_level=level,
        log_file=log_file,
    )
    scheduler = GroupScheduler(args.jobs or config.jobs)
    report = scheduler.run(directories, settings)

    for outcome in report.failed:
        logger.error("FAILED %s (stage=%s): %s", outcome.group, outcome.stage or "-", outcome.error)
    for outcome in report.outcomes:
        for name, path in outcome.outputs.items():
            logger.info("%s %s: %s", outcome.group, name, path)
    return EXIT_GROUP_FAILED if report.exit_code else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
