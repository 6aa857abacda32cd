from __future__ import annotations

import sys
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from footage.errors import EncodeError
from footage.scheduler import (
    GroupOutcome,
    GroupScheduler,
    OutcomeStatus,
    RenderSettings,
    render_with,
)


def _thread_pool(**kwargs) -> ThreadPoolExecutor:  # noqa: ANN003
    return ThreadPoolExecutor(max_workers=kwargs["max_workers"])


def _job(directory: Path, settings: RenderSettings) -> GroupOutcome:
    if directory.name == "boom":
        raise RuntimeError("worker died")
    if directory.name.startswith("bad"):
        return GroupOutcome(group=directory.name, directory=directory, status=OutcomeStatus.FAILED, error="nope")
    return GroupOutcome(group=directory.name, directory=directory, status=OutcomeStatus.RENDERED)


def test_parallel_failure_does_not_stop_siblings() -> None:
    dirs = [Path("/footage/a"), Path("/footage/bad"), Path("/footage/boom"), Path("/footage/c")]
    scheduler = GroupScheduler(jobs=3, executor_factory=_thread_pool, job=_job)

    report = scheduler.run(dirs, RenderSettings())

    assert [o.group for o in report.outcomes] == ["a", "bad", "boom", "c"]
    assert [o.status for o in report.outcomes] == [
        OutcomeStatus.RENDERED,
        OutcomeStatus.FAILED,
        OutcomeStatus.FAILED,
        OutcomeStatus.RENDERED,
    ]
    assert report.outcomes[2].error == "worker died"
    assert report.exit_code == 1


def test_parallel_workers_run_non_interactive() -> None:
    seen: List[RenderSettings] = []
    lock = threading.Lock()

    def job(directory: Path, settings: RenderSettings) -> GroupOutcome:
        with lock:
            seen.append(settings)
        return GroupOutcome(group=directory.name, directory=directory, status=OutcomeStatus.RENDERED)

    scheduler = GroupScheduler(jobs=2, executor_factory=_thread_pool, job=job)
    report = scheduler.run([Path("/f/a"), Path("/f/b")], RenderSettings(interactive=True, show_progress=True))

    assert report.exit_code == 0
    assert all(not s.interactive and not s.show_progress for s in seen)


def test_sequential_runs_in_order_and_deduplicates() -> None:
    order: List[str] = []

    def job(directory: Path, settings: RenderSettings) -> GroupOutcome:
        order.append(directory.name)
        return GroupOutcome(group=directory.name, directory=directory, status=OutcomeStatus.SKIPPED)

    report = GroupScheduler(jobs=1, job=job).run(
        [Path("/f/b"), Path("/f/a"), Path("/f/b")],
        RenderSettings(interactive=True),
    )

    assert order == ["b", "a"]
    assert report.exit_code == 0
    assert report.summary() == "0 rendered, 2 skipped, 0 failed"


def test_render_with_turns_errors_into_failed_outcome() -> None:
    class BrokenRenderer:
        def render(self, directory: Path):  # noqa: ANN201
            raise EncodeError("ffmpeg failed with exit code 1", group="G1", stage="final")

    outcome = render_with(BrokenRenderer(), Path("/f/G1"))  # type: ignore[arg-type]

    assert outcome.status is OutcomeStatus.FAILED
    assert outcome.group == "G1"
    assert outcome.stage == "final"
    assert "exit code 1" in (outcome.error or "")


def test_render_with_contains_unexpected_errors() -> None:
    class CrashingRenderer:
        def render(self, directory: Path):  # noqa: ANN201
            raise ValueError("cannot convert float NaN to integer")

    outcome = render_with(CrashingRenderer(), Path("/f/G2"))  # type: ignore[arg-type]

    assert outcome.status is OutcomeStatus.FAILED
    assert outcome.group == "G2"
    assert outcome.error == "ValueError: cannot convert float NaN to integer"


def test_sequential_run_continues_after_unexpected_error() -> None:
    class FlakyRenderer:
        def render(self, directory: Path):  # noqa: ANN201
            if directory.name == "first":
                raise ValueError("bad geometry")
            raise EncodeError("ffmpeg failed with exit code 1", stage="final")

    renderer = FlakyRenderer()
    scheduler = GroupScheduler(jobs=1, job=lambda d, s: render_with(renderer, d))  # type: ignore[arg-type]

    report = scheduler.run([Path("/f/first"), Path("/f/second")], RenderSettings())

    assert [o.group for o in report.outcomes] == ["first", "second"]
    assert all(o.status is OutcomeStatus.FAILED for o in report.outcomes)
    assert report.exit_code == 1
