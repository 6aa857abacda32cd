"""Per-group render pipeline: combine -> preview -> final, resumable from disk state.

Artifacts in the group folder are the only persisted progress:

- ``<group>_combined.*`` present: the combine stage is done and never re-run.
- ``<group>_final.*`` present: rendering the final again needs confirmation.

Every artifact is written through the encoder's partial-then-rename path, so a
file carrying an artifact name is always complete.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol, Sequence

from logging_utils import get_logger

from .concat import ConcatEntry, plan_trimmed_concat, planned_duration
from .crop import CropRect, compute_crop
from .discovery import Group, load_group
from .errors import FootageError, TrimRangeError
from .ffmpeg.encoder import ConcatInput, EncodeOptions, Encoder, FileInput
from .filters import FilterChain
from .group_config import (
    ConfigEditor,
    GroupConfig,
    config_path_for,
    load_group_config,
    resolve_group_config,
)
from .manifest import RenderManifest, write_manifest
from .probe import MediaInfo
from .profiles import AUDIO_CLEANUP_FILTER, FINAL_AUDIO, AudioSettings, EncoderProfile, ProfileSelector

logger = get_logger(__name__)

ARTIFACT_EXTENSION = ".mp4"


class Prober(Protocol):
    def probe(self, path: Path) -> MediaInfo:
        ...


class Route(str, Enum):
    NO_SOURCES = "no-sources"
    FAST_PATH = "fast-path"
    SLOW_PATH = "slow-path"


class Stage(str, Enum):
    FAST_PATH = "fast-path"
    COMBINE = "combine"
    PREVIEW = "preview"
    FINAL = "final"


@dataclass(frozen=True)
class GroupState:
    group: Group
    combined: Optional[Path] = None
    preview: Optional[Path] = None
    final: Optional[Path] = None

    @property
    def has_sources(self) -> bool:
        return self.group.has_sources


@dataclass
class GroupResult:
    group: str
    directory: Path
    route: Route
    stages: List[Stage] = field(default_factory=list)
    outputs: Dict[str, Path] = field(default_factory=dict)
    skipped: Optional[str] = None
    manifest_path: Optional[Path] = None


def artifact_name(key: str, kind: str) -> str:
    return f"{key}_{kind}{ARTIFACT_EXTENSION}"


def find_artifact(directory: Path, key: str, kind: str) -> Optional[Path]:
    """Existing `<key>_<kind>.*` file; partial outputs never match."""
    matches = sorted(p for p in directory.glob(f"{key}_{kind}.*") if p.is_file())
    return matches[0] if matches else None


def inspect_group(group: Group) -> GroupState:
    directory, key = group.directory, group.key
    return GroupState(
        group=group,
        combined=find_artifact(directory, key, "combined"),
        preview=find_artifact(directory, key, "preview"),
        final=find_artifact(directory, key, "final"),
    )


def select_route(state: GroupState, config: GroupConfig) -> Route:
    if not state.has_sources and state.combined is None:
        return Route.NO_SOURCES
    if not config.needs_crop and state.final is None and state.combined is None:
        return Route.FAST_PATH
    return Route.SLOW_PATH


def planned_stages(state: GroupState, config: GroupConfig, route: Route) -> List[Stage]:
    if route is Route.NO_SOURCES:
        return []
    if route is Route.FAST_PATH:
        return [Stage.FAST_PATH] + ([Stage.PREVIEW] if config.preview else [])
    stages = [] if state.combined is not None else [Stage.COMBINE]
    stages.append(Stage.PREVIEW if config.preview else Stage.FINAL)
    return stages


def sources_are_uniform(infos: Sequence[MediaInfo]) -> bool:
    """Stream copy concat needs every clip to share codec and frame size."""
    signatures = {(info.video_codec, info.width, info.height) for info in infos}
    return len(signatures) <= 1


def build_filter_chain(config: GroupConfig, crop: Optional[CropRect], info: MediaInfo) -> FilterChain:
    crop_expr = None
    if crop is not None and not crop.is_identity(info.width, info.height):
        crop_expr = crop.filter_expr()
    chain = FilterChain(crop=crop_expr, scale=config.default_scale or None)
    return chain.apply(config.filter_overrides())


def _decline(question: str) -> bool:
    return False


class GroupRenderer:
    """Decide and run the stages for one group folder."""

    def __init__(
        self,
        *,
        probe: Prober,
        encoder: Encoder,
        profiles: Optional[ProfileSelector] = None,
        editor: Optional[ConfigEditor] = None,
        confirm: Callable[[str], bool] = _decline,
        filter_audio: bool = False,
        preview_length: Optional[float] = None,
        threads: Optional[int] = None,
        dry_run: bool = False,
    ) -> None:
        self.probe = probe
        self.encoder = encoder
        self.profiles = profiles or ProfileSelector()
        self.editor = editor
        self.confirm = confirm
        self.filter_audio = filter_audio
        self.preview_length = preview_length
        self.threads = threads
        self.dry_run = dry_run

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def render(self, directory: Path) -> GroupResult:
        group = load_group(directory)
        stage = "config"
        try:
            state = inspect_group(group)
            if not state.has_sources and state.combined is None:
                logger.info("No combined file and no source clips in %s. Nothing to do.", directory)
                return GroupResult(group=group.key, directory=directory, route=Route.NO_SOURCES, skipped="no sources")
            config = self._load_config(directory)
            route = select_route(state, config)
            result = GroupResult(group=group.key, directory=directory, route=route)
            logger.info(
                "Group %s: %d clip(s), combined=%s final=%s -> %s",
                group.key,
                len(group.clips),
                state.combined.name if state.combined else "-",
                state.final.name if state.final else "-",
                route.value,
            )

            if self.dry_run:
                stages = planned_stages(state, config, route)
                logger.info(
                    "DRY-RUN: %s would run: %s",
                    group.key,
                    ", ".join(s.value for s in stages) or "nothing",
                )
                result.skipped = "dry-run"
                return result

            manifest = RenderManifest(folder=directory, group=group.key, route=route.value, config=config)
            if route is Route.FAST_PATH:
                stage = "probe"
                infos = [self.probe.probe(clip.path) for clip in group.clips]
                if sources_are_uniform(infos):
                    stage = Stage.FAST_PATH.value
                    self._run_fast_path(group, config, infos, result, manifest)
                    return self._finish(result, manifest)
                logger.info("Clips in %s differ in codec or size; stream copy is not possible", group.key)
                result.route = Route.SLOW_PATH
                manifest.route = Route.SLOW_PATH.value

            combined = state.combined
            if combined is None:
                stage = Stage.COMBINE.value
                combined = self._combine(group, config, result)
            else:
                logger.info("Using existing combined file: %s", combined.name)

            stage = "probe"
            info = self.probe.probe(combined)
            crop = compute_crop(info.width, info.height, config.left_crop, config.right_crop, config.bottom_crop)
            logger.debug(
                "Video %dx%d %.2fs codec=%s crop=%s",
                info.width,
                info.height,
                info.duration,
                info.video_codec,
                crop,
            )
            chain = build_filter_chain(config, crop, info)
            profile = self.profiles.select(info.video_codec, info.colorimetry)
            manifest.crop_rect = crop
            manifest.source_duration = info.duration
            manifest.encoder_profile = profile.name
            manifest.filter_graph = chain.render(profile.pix_fmt)

            if config.preview:
                stage = Stage.PREVIEW.value
                self._preview(group, config, combined, info, chain, profile, result)
            else:
                stage = Stage.FINAL.value
                manifest.trim_duration = self._final(group, config, state, combined, info, chain, profile, result)
            return self._finish(result, manifest)
        except FootageError as exc:
            raise exc.with_context(group=group.key, stage=stage)

    # ------------------------------------------------------------------ #
    # Stages
    # ------------------------------------------------------------------ #

    def _run_fast_path(
        self,
        group: Group,
        config: GroupConfig,
        infos: Sequence[MediaInfo],
        result: GroupResult,
        manifest: RenderManifest,
    ) -> None:
        logger.info("Fast path: no crop, generating final directly without combined")
        durations = {clip.path: info.duration for clip, info in zip(group.clips, infos)}
        entries = plan_trimmed_concat(list(durations.items()), config.start_trim, config.end_trim)
        total = planned_duration(entries, [durations[entry.path] for entry in entries])
        final_path = group.directory / artifact_name(group.key, "final")
        self.encoder.encode(
            ConcatInput(
                entries=tuple(entries),
                list_path=group.directory / f"{group.key}_concat.txt",
                duration=total,
            ),
            final_path,
            EncodeOptions(faststart=True, label=f"{group.key} fast-path"),
        )
        result.stages.append(Stage.FAST_PATH)
        result.outputs[Stage.FINAL.value] = final_path
        manifest.source_duration = sum(durations.values())
        manifest.trim_duration = total

        if config.preview:
            first = infos[0]
            profile = self.profiles.select(first.video_codec, first.colorimetry)
            preview_path = group.directory / artifact_name(group.key, "preview")
            logger.info("Generating preview from final -> %s", preview_path.name)
            self.encoder.encode(
                FileInput(path=final_path, start=0.0, duration=min(config.preview_length, total)),
                preview_path,
                EncodeOptions(
                    filter_graph=FilterChain().render(profile.pix_fmt),
                    profile=profile,
                    audio=self._audio(),
                    label=f"{group.key} preview",
                    threads=self.threads,
                ),
            )
            result.stages.append(Stage.PREVIEW)
            result.outputs[Stage.PREVIEW.value] = preview_path
            manifest.encoder_profile = profile.name

    def _combine(self, group: Group, config: GroupConfig, result: GroupResult) -> Path:
        combined_path = group.directory / artifact_name(group.key, "combined")
        entries = tuple(ConcatEntry(path=clip.path) for clip in group.clips)
        infos = [self.probe.probe(clip.path) for clip in group.clips]
        total = sum(info.duration for info in infos)
        source = ConcatInput(entries=entries, list_path=group.directory / f"{group.key}_concat.txt", duration=total)

        if config.needs_crop or not sources_are_uniform(infos):
            # Copy-mode concat needs uniform stream parameters; cropping later means re-encoding now.
            first = infos[0]
            profile = self.profiles.select(first.video_codec, first.colorimetry)
            logger.info(
                "Combining %d clip(s) with re-encode (%s) -> %s",
                len(entries),
                profile.video_codec,
                combined_path.name,
            )
            options = EncodeOptions(
                profile=profile,
                audio=self._audio(),
                label=f"{group.key} combine",
                threads=self.threads,
            )
        else:
            logger.info("Combining %d clip(s) by stream copy -> %s", len(entries), combined_path.name)
            if self.filter_audio:
                logger.info("Audio filter is not applied to stream-copied combine")
            options = EncodeOptions(label=f"{group.key} combine")

        self.encoder.encode(source, combined_path, options)
        result.stages.append(Stage.COMBINE)
        result.outputs["combined"] = combined_path
        return combined_path

    def _preview(
        self,
        group: Group,
        config: GroupConfig,
        combined: Path,
        info: MediaInfo,
        chain: FilterChain,
        profile: EncoderProfile,
        result: GroupResult,
    ) -> None:
        if config.preview_length <= 0:
            raise TrimRangeError(f"Preview length must be positive, got {config.preview_length}", path=combined)
        available = info.duration - config.start_trim
        if available <= 0:
            raise TrimRangeError(
                f"start-trim {config.start_trim}s is past the end of the combined clip ({info.duration:.2f}s)",
                path=combined,
            )
        length = min(config.preview_length, available)
        preview_path = group.directory / artifact_name(group.key, "preview")
        logger.info("Generating preview (%.1f sec) -> %s", length, preview_path.name)
        self.encoder.encode(
            FileInput(path=combined, start=config.start_trim, duration=length),
            preview_path,
            EncodeOptions(
                filter_graph=chain.render(profile.pix_fmt),
                profile=profile,
                audio=self._audio(),
                label=f"{group.key} preview",
                threads=self.threads,
            ),
        )
        result.stages.append(Stage.PREVIEW)
        result.outputs[Stage.PREVIEW.value] = preview_path

    def _final(
        self,
        group: Group,
        config: GroupConfig,
        state: GroupState,
        combined: Path,
        info: MediaInfo,
        chain: FilterChain,
        profile: EncoderProfile,
        result: GroupResult,
    ) -> Optional[float]:
        final_path = state.final or group.directory / artifact_name(group.key, "final")
        if state.final is not None and not self.confirm(f"{final_path} already exists. Overwrite?"):
            logger.info("Keeping existing final output %s", final_path.name)
            result.skipped = "final exists"
            return None

        trim_duration = info.duration - config.start_trim - config.end_trim
        if trim_duration <= 0:
            raise TrimRangeError(
                f"Trimmed duration is {trim_duration:.2f}s "
                f"(duration={info.duration:.2f}, start={config.start_trim}, end={config.end_trim})",
                path=combined,
            )

        timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        logger.info("Rendering final output -> %s (trim_duration=%.2f)", final_path.name, trim_duration)
        self.encoder.encode(
            FileInput(path=combined, start=config.start_trim, duration=trim_duration),
            final_path,
            EncodeOptions(
                filter_graph=chain.render(profile.pix_fmt),
                profile=profile,
                audio=self._audio(),
                faststart=True,
                metadata={"comment": f"Rendered from {group.key} with {profile.name} profile. Timestamp: {timestamp}"},
                label=f"{group.key} final",
                threads=self.threads,
            ),
        )
        result.stages.append(Stage.FINAL)
        result.outputs[Stage.FINAL.value] = final_path
        return trim_duration

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _load_config(self, directory: Path) -> GroupConfig:
        if self.dry_run:
            path = config_path_for(directory)
            config = load_group_config(path) if path.exists() else GroupConfig()
        else:
            config = resolve_group_config(directory, self.editor)
        if self.preview_length is not None:
            config = config.with_preview(True, self.preview_length)
        return config

    def _audio(self) -> AudioSettings:
        if self.filter_audio:
            return AudioSettings(filters=AUDIO_CLEANUP_FILTER)
        return FINAL_AUDIO

    def _finish(self, result: GroupResult, manifest: RenderManifest) -> GroupResult:
        if result.outputs:
            manifest.stages = [stage.value for stage in result.stages]
            manifest.outputs = {name: str(path) for name, path in result.outputs.items()}
            result.manifest_path = write_manifest(manifest)
            logger.info("Manifest: %s", result.manifest_path)
        return result
