"""Raw clip discovery and grouping into per-shoot folders.

Two camera naming families are recognized:

- ``DJI_20240512143210_0001_D.MP4``: group key is the first two ``_`` segments
  (``DJI_20240512143210``).
- ``VID_20240512_143210_001.mp4``: group key is the first three segments
  (``VID_20240512_143210``).

Grouping moves clips of a mixed scan root into ``<root>/<key>/`` folders. A root
whose clips all share one key is already a group and is left alone.
"""
from __future__ import annotations

import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from logging_utils import get_logger

from .errors import RelocationConflict

logger = get_logger(__name__)

VIDEO_EXTENSIONS = {".mp4", ".mov"}
ARTIFACT_SUFFIXES = ("_combined", "_preview", "_final")
PARTIAL_PREFIX = ".partial-"


@dataclass(frozen=True)
class ClipFamily:
    name: str
    pattern: "re.Pattern[str]"
    key_segments: int


CLIP_FAMILIES: Tuple[ClipFamily, ...] = (
    ClipFamily(name="dji", pattern=re.compile(r"^DJI_\d+(?:_.*)?$"), key_segments=2),
    ClipFamily(name="vid", pattern=re.compile(r"^VID_\d+_\d+(?:_.*)?$"), key_segments=3),
)


@dataclass(frozen=True)
class Clip:
    path: Path
    family: str
    group_key: str

    @property
    def name(self) -> str:
        return self.path.name


@dataclass(frozen=True)
class Group:
    key: str
    directory: Path
    clips: Tuple[Clip, ...]

    @property
    def has_sources(self) -> bool:
        return bool(self.clips)


def is_artifact_name(stem: str) -> bool:
    return stem.startswith(".") or stem.endswith(ARTIFACT_SUFFIXES)


def classify_clip(path: Path) -> Optional[Clip]:
    """Return a Clip when the filename follows a known camera convention."""
    if path.suffix.lower() not in VIDEO_EXTENSIONS:
        return None
    stem = path.stem
    if is_artifact_name(stem):
        return None
    for family in CLIP_FAMILIES:
        if family.pattern.match(stem):
            key = "_".join(stem.split("_")[: family.key_segments])
            return Clip(path=path, family=family.name, group_key=key)
    return None


def scan_clips(directory: Path) -> List[Clip]:
    """Raw clips directly inside `directory`, in lexicographic filename order."""
    if not directory.is_dir():
        return []
    clips = []
    for path in sorted(directory.iterdir(), key=lambda p: p.name):
        if not path.is_file():
            continue
        clip = classify_clip(path)
        if clip is not None:
            clips.append(clip)
    return clips


def load_group(directory: Path) -> Group:
    clips = scan_clips(directory)
    return Group(key=directory.name, directory=directory, clips=tuple(clips))


def _relocate(clip: Clip, target_dir: Path, *, dry_run: bool) -> bool:
    destination = target_dir / clip.name
    if destination.exists():
        conflict = RelocationConflict(
            "Destination already exists, leaving source in place",
            group=clip.group_key,
            stage="grouping",
            path=destination,
        )
        logger.warning("SKIP: %s", conflict)
        return False
    if dry_run:
        logger.info("DRY-RUN: would move %s -> %s/", clip.name, target_dir)
        return False
    target_dir.mkdir(parents=True, exist_ok=True)
    shutil.move(str(clip.path), str(destination))
    logger.debug("Moved %s -> %s/", clip.name, target_dir)
    return True


def group_subdirectories(root: Path) -> List[Path]:
    """Subdirectories of `root` holding at least one raw clip, sorted by name."""
    return [
        child
        for child in sorted(root.iterdir(), key=lambda p: p.name)
        if child.is_dir() and not child.name.startswith(".") and scan_clips(child)
    ]


def discover_groups(root: Path, *, move: bool = True, dry_run: bool = False) -> List[Path]:
    """Group raw clips under `root` and return the directories to render.

    Safe to re-run: clips already in their group folder are not touched and an
    existing destination file is skipped rather than overwritten.
    """
    root = root.resolve()
    logger.info("Detecting normalization in %s", root)
    raw_clips = scan_clips(root)

    keys: Dict[str, List[Clip]] = {}
    for clip in raw_clips:
        keys.setdefault(clip.group_key, []).append(clip)

    # Populated group folders make this a scan root even when leftover clips share one key.
    if len(keys) == 1 and not group_subdirectories(root):
        only_key = next(iter(keys))
        logger.info("All clips share prefix '%s'. Treating %s as the group.", only_key, root)
        return [root]

    if raw_clips and move:
        logger.info("Normalizing %d raw clips into %d group folders", len(raw_clips), len(keys))
        moved = 0
        for clip in raw_clips:
            if _relocate(clip, root / clip.group_key, dry_run=dry_run):
                moved += 1
        logger.info("Moved %d clip(s)", moved)
    elif raw_clips:
        logger.info("Skipping normalization of %d raw clip(s) in %s", len(raw_clips), root)

    groups = group_subdirectories(root)
    if dry_run and move:
        # Folders that a real run would have created.
        groups = sorted(set(groups) | {root / key for key in keys}, key=lambda p: p.name)
    if not groups:
        logger.info("No clip groups found under %s", root)
    return groups
