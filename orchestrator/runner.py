"""
Pipeline Runner

Drives a pipeline through its lifecycle steps in order, running the
before/after hooks around each step and stopping at the first failure.

Provides:
- plan_steps: Which steps a configuration asks for
- PipelineRunner: Executes a plan against a pipeline
- RunResult / StepRecord: What happened, for CLI output
- run_pipeline: Look up a pipeline by name and run it
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable, Optional

from core.config import Configuration
from core.context import RunContext
from core.schemas.errors import (
    InvalidConfigException,
    PipelineError,
    PipelineException,
    StepFailedException,
    UnimplementedException,
)
from pipelines.base import Pipeline, Step

if TYPE_CHECKING:
    from core.engine import Engine
    from pipelines.registry import PipelineRegistry


logger = logging.getLogger(__name__)


STATUS_OK = "ok"
STATUS_FAILED = "failed"
STATUS_SKIPPED = "skipped"


@dataclass
class StepRecord:
    """Outcome of one lifecycle step."""
    step: str
    status: str
    duration_s: float = 0.0
    error: Optional[PipelineError] = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "step": self.step,
            "status": self.status,
            "duration_s": round(self.duration_s, 3),
        }
        if self.error is not None:
            d["error"] = self.error.model_dump()
        return d


@dataclass
class RunResult:
    """
    Result of a pipeline run.

    ``ok`` is False as soon as any step failed; skipped steps do not
    affect it.
    """
    pipeline: str
    steps: list[StepRecord] = field(default_factory=list)
    ok: bool = True
    started_at: str = ""
    finished_at: str = ""

    @property
    def failed_step(self) -> Optional[str]:
        for record in self.steps:
            if record.status == STATUS_FAILED:
                return record.step
        return None

    def add(self, record: StepRecord) -> None:
        self.steps.append(record)
        if record.status == STATUS_FAILED:
            self.ok = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "pipeline": self.pipeline,
            "ok": self.ok,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "steps": [record.to_dict() for record in self.steps],
        }


def _error_model(error: BaseException) -> PipelineError:
    if isinstance(error, PipelineException):
        return error.to_error_model()
    return PipelineError(code=type(error).__name__, message=str(error))


def plan_steps(config: Configuration, steps: Optional[Iterable[str | Step]] = None) -> list[Step]:
    """
    Decide which lifecycle steps to run, in lifecycle order.

    - An explicit ``steps`` list wins (re-ordered into lifecycle order)
    - ``only_test``: setup, test
    - ``only_build``: setup, build
    - otherwise every step
    ``skip_push`` then removes push.

    Raises:
        InvalidConfigException: If an explicit step name is unknown
    """
    if steps is not None:
        requested: set[Step] = set()
        for name in steps:
            try:
                requested.add(Step.parse(name))
            except ValueError as e:
                raise InvalidConfigException(f"invalid step: {name}", field_name="steps") from e
        plan = [step for step in Step.ordered() if step in requested]
    elif config.only_test:
        plan = [Step.SETUP, Step.TEST]
    elif config.only_build:
        plan = [Step.SETUP, Step.BUILD]
    else:
        plan = Step.ordered()

    if config.skip_push:
        plan = [step for step in plan if step is not Step.PUSH]
    return plan


class PipelineRunner:
    """
    Runs lifecycle steps strictly in order.

    The before hook completes before its step starts; the after hook runs
    once the step has finished, whether it succeeded or failed. The first
    failing step ends the run with StepFailedException.
    """

    def __init__(self, config: Configuration, *, tolerate_unimplemented: bool = False) -> None:
        """
        Initialize runner.

        Args:
            config: Configuration the pipeline was built with (selects the plan)
            tolerate_unimplemented: Record Unimplemented steps as skipped
                and continue instead of failing the run
        """
        self.config = config
        self.tolerate_unimplemented = tolerate_unimplemented

    async def run_step(self, ctx: RunContext, pipeline: Pipeline, step: Step) -> None:
        """Run one step with its hooks."""
        before = pipeline.before_step(ctx, step)
        if before is not None:
            await before(ctx)

        try:
            ctx.check()
            await getattr(pipeline, step.value)(ctx)
        except Exception:
            await self._run_after(ctx, pipeline, step, step_failed=True)
            raise
        await self._run_after(ctx, pipeline, step, step_failed=False)

    async def _run_after(self, ctx: RunContext, pipeline: Pipeline, step: Step, *, step_failed: bool) -> None:
        after = pipeline.after_step(ctx, step)
        if after is None:
            return
        try:
            await after(ctx)
        except Exception as e:
            if not step_failed:
                raise
            # The step's own error is the one reported
            logger.error(f"after hook for {step.value} failed: {e}")

    async def run(
        self,
        ctx: RunContext,
        pipeline: Pipeline,
        steps: Optional[Iterable[str | Step]] = None,
    ) -> RunResult:
        """
        Execute the planned steps.

        Returns:
            RunResult with one record per executed step

        Raises:
            StepFailedException: On the first failing step; the partial
                RunResult is attached as ``result``
        """
        plan = plan_steps(self.config, steps)
        result = RunResult(pipeline=pipeline.name, started_at=ctx.now().isoformat())
        logger.info(f"Running {pipeline.name}: {', '.join(step.value for step in plan)}")

        for step in plan:
            started = time.monotonic()
            try:
                await self.run_step(ctx, pipeline, step)
            except UnimplementedException as e:
                if not self.tolerate_unimplemented:
                    self._fail(ctx, result, step, e, started)
                    raise StepFailedException(step.value, e, result) from e
                logger.warning(f"{pipeline.name}: {step.value} not implemented; skipping")
                result.add(StepRecord(step.value, STATUS_SKIPPED, time.monotonic() - started, _error_model(e)))
                continue
            except Exception as e:
                self._fail(ctx, result, step, e, started)
                raise StepFailedException(step.value, e, result) from e

            result.add(StepRecord(step.value, STATUS_OK, time.monotonic() - started))
            logger.info(f"{pipeline.name}: {step.value} completed")

        result.finished_at = ctx.now().isoformat()
        return result

    def _fail(self, ctx: RunContext, result: RunResult, step: Step, error: BaseException, started: float) -> None:
        result.add(StepRecord(step.value, STATUS_FAILED, time.monotonic() - started, _error_model(error)))
        result.finished_at = ctx.now().isoformat()
        logger.error(f"{result.pipeline}: step {step.value} failed: {error}")


async def run_pipeline(
    ctx: RunContext,
    registry: "PipelineRegistry",
    name: str,
    engine: Optional["Engine"],
    config: Configuration,
    *,
    steps: Optional[Iterable[str | Step]] = None,
    tolerate_unimplemented: bool = False,
) -> RunResult:
    """Look up ``name`` in the registry and run it."""
    pipeline = registry.get(name, engine, config)
    runner = PipelineRunner(config, tolerate_unimplemented=tolerate_unimplemented)
    return await runner.run(ctx, pipeline, steps)
