"""Run group pipelines sequentially or one OS process per group."""
from __future__ import annotations

from concurrent.futures import Executor, ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from logging_utils import configure_logging, get_logger

from .errors import FootageError
from .ffmpeg.encoder import FFmpegEncoder
from .group_config import ConfigEditor, PassthroughConfigEditor, TerminalConfigEditor
from .pipeline import GroupRenderer, GroupResult
from .probe import FFprobeProbe
from .profiles import ProfileSelector

logger = get_logger(__name__)


class OutcomeStatus(str, Enum):
    RENDERED = "rendered"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class RenderSettings:
    """Everything a worker needs to rebuild the pipeline; must stay picklable."""

    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    threads: Optional[int] = None
    encoder_overrides: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)
    editor: Optional[str] = None
    interactive: bool = True
    assume_yes: bool = False
    filter_audio: bool = False
    preview_length: Optional[float] = None
    dry_run: bool = False
    show_progress: bool = True
    log_level: str = "INFO"
    log_file: Optional[Path] = None


@dataclass
class GroupOutcome:
    group: str
    directory: Path
    status: OutcomeStatus
    error: Optional[str] = None
    stage: Optional[str] = None
    outputs: Dict[str, str] = field(default_factory=dict)
    reason: Optional[str] = None


@dataclass
class SchedulerReport:
    outcomes: List[GroupOutcome] = field(default_factory=list)

    @property
    def failed(self) -> List[GroupOutcome]:
        return [o for o in self.outcomes if o.status is OutcomeStatus.FAILED]

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0

    def summary(self) -> str:
        counts = {status: 0 for status in OutcomeStatus}
        for outcome in self.outcomes:
            counts[outcome.status] += 1
        return ", ".join(f"{counts[s]} {s.value}" for s in OutcomeStatus)


def terminal_confirm(question: str) -> bool:
    try:
        answer = input(f"{question} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in {"y", "yes"}


def _always_yes(question: str) -> bool:
    logger.info("%s -> yes (--yes)", question)
    return True


def _decline(question: str) -> bool:
    logger.info("%s -> no (non-interactive)", question)
    return False


def build_renderer(
    settings: RenderSettings,
    *,
    confirm: Optional[Callable[[str], bool]] = None,
) -> GroupRenderer:
    editor: ConfigEditor
    if settings.interactive:
        editor = TerminalConfigEditor(settings.editor)
    else:
        editor = PassthroughConfigEditor()
    if confirm is None:
        if settings.assume_yes:
            confirm = _always_yes
        elif settings.interactive:
            confirm = terminal_confirm
        else:
            confirm = _decline
    return GroupRenderer(
        probe=FFprobeProbe(settings.ffprobe_path),
        encoder=FFmpegEncoder(settings.ffmpeg_path, show_progress=settings.show_progress),
        profiles=ProfileSelector(settings.encoder_overrides),
        editor=editor,
        confirm=confirm,
        filter_audio=settings.filter_audio,
        preview_length=settings.preview_length,
        threads=settings.threads,
        dry_run=settings.dry_run,
    )


def outcome_from_result(result: GroupResult) -> GroupOutcome:
    status = OutcomeStatus.SKIPPED if result.skipped else OutcomeStatus.RENDERED
    return GroupOutcome(
        group=result.group,
        directory=result.directory,
        status=status,
        stage=result.stages[-1].value if result.stages else None,
        outputs={name: str(path) for name, path in result.outputs.items()},
        reason=result.skipped,
    )


def render_with(renderer: GroupRenderer, directory: Path) -> GroupOutcome:
    """Render one group, turning its errors into a FAILED outcome."""
    try:
        return outcome_from_result(renderer.render(directory))
    except FootageError as exc:
        logger.error("Group %s failed: %s", directory.name, exc)
        return GroupOutcome(
            group=exc.group or directory.name,
            directory=directory,
            status=OutcomeStatus.FAILED,
            error=str(exc),
            stage=exc.stage,
        )
    except OSError as exc:
        logger.error("Group %s failed: %s", directory.name, exc)
        return GroupOutcome(group=directory.name, directory=directory, status=OutcomeStatus.FAILED, error=str(exc))
    except Exception as exc:
        logger.exception("Group %s failed unexpectedly", directory.name)
        return GroupOutcome(
            group=directory.name,
            directory=directory,
            status=OutcomeStatus.FAILED,
            error=f"{type(exc).__name__}: {exc}",
        )


def render_group_job(directory: Path, settings: RenderSettings) -> GroupOutcome:
    """Worker entry point; builds its own collaborators from plain settings."""
    return render_with(build_renderer(settings), directory)


def init_worker(level: str, log_file: Optional[Path]) -> None:
    configure_logging(level, log_file)


ExecutorFactory = Callable[..., Executor]
GroupJob = Callable[[Path, RenderSettings], GroupOutcome]


class GroupScheduler:
    """Fan groups out to workers and collect one outcome per group."""

    def __init__(
        self,
        jobs: int = 1,
        *,
        executor_factory: ExecutorFactory = ProcessPoolExecutor,
        job: GroupJob = render_group_job,
    ) -> None:
        self.jobs = max(1, int(jobs))
        self.executor_factory = executor_factory
        self.job = job

    def run(self, directories: Sequence[Path], settings: RenderSettings) -> SchedulerReport:
        unique: List[Path] = []
        seen = set()
        for directory in directories:
            key = Path(directory).resolve()
            if key not in seen:
                seen.add(key)
                unique.append(Path(directory))

        if self.jobs == 1 or len(unique) <= 1:
            report = self._run_sequential(unique, settings)
        else:
            report = self._run_parallel(unique, settings)
        logger.info("Processed %d group(s): %s", len(report.outcomes), report.summary())
        return report

    def _run_sequential(self, directories: Sequence[Path], settings: RenderSettings) -> SchedulerReport:
        report = SchedulerReport()
        for directory in directories:
            logger.info("Processing folder: %s", directory)
            report.outcomes.append(self.job(directory, settings))
        return report

    def _run_parallel(self, directories: Sequence[Path], settings: RenderSettings) -> SchedulerReport:
        # Workers cannot share the terminal: no editor, no prompts, no progress bars.
        worker_settings = replace(settings, interactive=False, show_progress=False)
        workers = min(self.jobs, len(directories))
        logger.info("Rendering %d group(s) with %d parallel job(s)", len(directories), workers)

        outcomes: Dict[Path, GroupOutcome] = {}
        with self.executor_factory(
            max_workers=workers,
            initializer=init_worker,
            initargs=(settings.log_level, settings.log_file),
        ) as pool:
            futures = {pool.submit(self.job, directory, worker_settings): directory for directory in directories}
            for fut in as_completed(futures):
                directory = futures[fut]
                try:
                    outcomes[directory] = fut.result()
                except Exception as exc:
                    logger.exception("Worker for %s crashed", directory.name)
                    outcomes[directory] = GroupOutcome(
                        group=directory.name,
                        directory=directory,
                        status=OutcomeStatus.FAILED,
                        error=str(exc),
                    )
        return SchedulerReport(outcomes=[outcomes[d] for d in directories])
