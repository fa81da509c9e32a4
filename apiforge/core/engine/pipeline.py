"""
Pipeline engine — runs provisioning steps in order, checkpointing each.

Flow:
    for step in steps:
        gated off?  → skipped (no checkpoint)
        action      → mutate the project
        checkpoint  → format + git commit labelled with the step

The run is forward-only. The first failing step or checkpoint ends it;
commits made by earlier steps stay in history and nothing is retried.
Feature gates read the frozen ``ProjectContext`` captured before the
first step, never anything computed mid-run.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from apiforge.adapters.base import Runner
from apiforge.adapters.vcs.git import GitClient
from apiforge.core.errors import ForgeError
from apiforge.core.models.command import CommandResult
from apiforge.core.models.project import ProjectContext
from apiforge.core.services.checkpoint import checkpoint

logger = logging.getLogger(__name__)

Event = dict[str, Any]


class PipelineState(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


def _always(_project: ProjectContext) -> bool:
    return True


@dataclass
class StepRuntime:
    """What a step action gets to work with.

    Every command runs with an explicit ``cwd``; the project root comes
    from the frozen context and is never taken from the process.
    """

    project: ProjectContext
    runner: Runner
    notify: Callable[[str], None] = logger.info

    @property
    def root(self) -> Path:
        return self.project.target_dir

    @property
    def git(self) -> GitClient:
        return GitClient(self.runner, self.root)

    def run(self, *command: str, cwd: Path | None = None) -> CommandResult:
        return self.runner.execute(list(command), cwd=cwd or self.root)

    def artisan(self, *args: str) -> CommandResult:
        return self.run(self.project.php, "artisan", *args)

    def composer(self, *args: str) -> CommandResult:
        return self.run("composer", *args)


@dataclass(frozen=True)
class Step:
    """One ordered unit of project mutation.

    ``checkpoint`` is the commit message created after the action
    succeeds, or ``None`` for steps that leave no checkpoint.
    """

    name: str
    action: Callable[[StepRuntime], None]
    checkpoint: str | None = None
    when: Callable[[ProjectContext], bool] = _always
    format_sources: bool = True

    def enabled(self, project: ProjectContext) -> bool:
        return bool(self.when(project))


@dataclass
class PipelineRun:
    """Transient state of one pipeline execution."""

    state: PipelineState = PipelineState.NOT_STARTED
    step_index: int = -1
    executed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    checkpoints: list[str] = field(default_factory=list)
    failed_step: str | None = None
    error: BaseException | None = None
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.state == PipelineState.COMPLETED

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "step_index": self.step_index,
            "executed": list(self.executed),
            "skipped": list(self.skipped),
            "checkpoints": list(self.checkpoints),
            "failed_step": self.failed_step,
            "error": str(self.error) if self.error else None,
            "duration_ms": self.duration_ms,
        }


def run_pipeline(
    steps: Sequence[Step],
    runtime: StepRuntime,
    on_event: Callable[[Event], None] | None = None,
) -> PipelineRun:
    """Execute ``steps`` in declaration order.

    Args:
        steps: Static ordered step list.
        runtime: Project context, runner and console sink.
        on_event: Receives progress dicts with a ``type`` key:
            step_start, step_skipped, checkpoint, step_done,
            step_error, pipeline_done.

    Returns:
        The finished ``PipelineRun`` (``completed`` or ``failed``).
    """
    emit = on_event or (lambda _event: None)
    run = PipelineRun(state=PipelineState.RUNNING)
    project = runtime.project
    started = time.monotonic()

    for index, step in enumerate(steps):
        run.step_index = index

        if not step.enabled(project):
            run.skipped.append(step.name)
            logger.debug("Step skipped (gated off): %s", step.name)
            emit({"type": "step_skipped", "index": index, "step": step.name})
            continue

        emit({"type": "step_start", "index": index, "step": step.name})
        step_started = time.monotonic()
        try:
            step.action(runtime)
            run.executed.append(step.name)

            if step.checkpoint:
                emit({"type": "checkpoint", "index": index, "message": step.checkpoint})
                checkpoint(
                    step.checkpoint,
                    runtime.runner,
                    runtime.root,
                    format_sources=step.format_sources,
                    notify=runtime.notify,
                )
                run.checkpoints.append(step.checkpoint)
        except ForgeError as e:
            _fail(run, step, e, emit, index)
            break
        except Exception as e:
            logger.exception("Unexpected error in step %r", step.name)
            _fail(run, step, e, emit, index)
            break

        emit({
            "type": "step_done",
            "index": index,
            "step": step.name,
            "duration_ms": int((time.monotonic() - step_started) * 1000),
        })
    else:
        run.state = PipelineState.COMPLETED

    run.duration_ms = int((time.monotonic() - started) * 1000)
    emit({"type": "pipeline_done", "run": run.to_dict()})
    logger.info(
        "Pipeline %s: %d executed, %d skipped, %d checkpoint(s)",
        run.state.value,
        len(run.executed),
        len(run.skipped),
        len(run.checkpoints),
    )
    return run


def _fail(
    run: PipelineRun,
    step: Step,
    error: BaseException,
    emit: Callable[[Event], None],
    index: int,
) -> None:
    run.state = PipelineState.FAILED
    run.failed_step = step.name
    run.error = error
    logger.info("Step %r failed: %s", step.name, error)
    emit({"type": "step_error", "index": index, "step": step.name, "error": str(error)})
