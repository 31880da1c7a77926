"""
CLI Run Command

Execute a pipeline (all planned steps, or a single step) on the Dagger
engine.

Usage:
    syntegrity run --pipeline go-kit --coverage 85 --branch main
    syntegrity run --pipeline docker-go --skip-push --json
    syntegrity step test --pipeline go-kit
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from argparse import Namespace
from dataclasses import dataclass, field, asdict
from typing import Any, Optional

from core.config import (
    Configuration,
    Option,
    env_options,
    new_config,
    with_branch,
    with_coverage,
    with_env,
    with_git_protocol,
    with_git_repo,
    with_only_build,
    with_only_test,
    with_skip_push,
    with_verbose,
)
from core.context import EnvironmentView, ProcessEnvironment, RunContext
from core.schemas.errors import PipelineException, StepFailedException
from orchestrator import RunResult, run_pipeline
from pipelines import Step, create_default_registry
from syntegrity_cli.config import CLIConfig


logger = logging.getLogger(__name__)


# Exit codes
EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1
EXIT_STEP_FAILED = 2

DEFAULT_PIPELINE = "go-kit"
DEFAULT_COVERAGE = 90.0
DEFAULT_BRANCH = "develop"


@dataclass
class RunSummary:
    """Summary of a pipeline run for CLI output."""
    pipeline: str = ""
    ok: bool = True
    failed_step: str | None = None
    error_kind: str | None = None
    error: str | None = None
    steps: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_result(cls, result: RunResult, error: Optional[StepFailedException] = None) -> "RunSummary":
        summary = cls(
            pipeline=result.pipeline,
            ok=result.ok,
            failed_step=result.failed_step,
            steps=[record.to_dict() for record in result.steps],
        )
        if error is not None:
            summary.error_kind = error.kind
            summary.error = str(error.__cause__ or error)
        return summary

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        for key in ("failed_step", "error_kind", "error"):
            if d[key] is None:
                del d[key]
        return d


def default_git_protocol(env: EnvironmentView) -> str:
    """HTTPS when a CI job token is available, SSH otherwise."""
    return "https" if env.get("CI_JOB_TOKEN") else "ssh"


def build_configuration(
    args: Namespace,
    cli_config: CLIConfig,
    env: Optional[EnvironmentView] = None,
) -> Configuration:
    """
    Assemble the pipeline Configuration.

    Precedence (lowest to highest): CLI defaults < project file <
    environment < explicit flags.
    """
    env = env or ProcessEnvironment()
    file_config = cli_config.file_config

    options: list[Option] = [
        with_coverage(DEFAULT_COVERAGE),
        with_branch(DEFAULT_BRANCH),
        with_git_protocol(default_git_protocol(env)),
    ]
    options.extend(file_config.to_options())
    options.extend(env_options(env))

    if getattr(args, "env", None):
        options.append(with_env(args.env))
    if getattr(args, "coverage", None) is not None:
        options.append(with_coverage(args.coverage))
    if getattr(args, "branch", None):
        options.append(with_branch(args.branch))
    if getattr(args, "git_auth", None):
        options.append(with_git_protocol(args.git_auth))
    if getattr(args, "git_repo", None) or getattr(args, "git_ref", None):
        repo = getattr(args, "git_repo", None)
        ref = getattr(args, "git_ref", None)
        options.append(lambda cfg: with_git_repo(repo or cfg.git_repo, ref or cfg.git_ref)(cfg))
    if getattr(args, "skip_push", False):
        options.append(with_skip_push(True))
    if getattr(args, "only_build", False):
        options.append(with_only_build(True))
    if getattr(args, "only_test", False):
        options.append(with_only_test(True))
    if getattr(args, "verbose", False):
        options.append(with_verbose(True))

    return new_config(*options)


def resolve_pipeline_name(args: Namespace, cli_config: CLIConfig) -> str:
    return getattr(args, "pipeline", None) or cli_config.file_config.pipeline.name or DEFAULT_PIPELINE


def resolve_steps(args: Namespace, cli_config: CLIConfig) -> Optional[list[str]]:
    """Explicit --steps, else the project file's step list, else None (plan from flags)."""
    if getattr(args, "steps", None):
        return [s.strip() for s in args.steps.split(",") if s.strip()]
    if cli_config.file_config.pipeline.steps:
        return list(cli_config.file_config.pipeline.steps)
    return None


async def execute(
    name: str,
    config: Configuration,
    steps: Optional[list[str]],
    *,
    tolerate_unimplemented: bool = False,
    timeout: int = 0,
) -> RunResult:
    """Connect to the engine and run the pipeline."""
    from core.engine.dagger_engine import connect_engine

    ctx = RunContext.create_minimal()
    if timeout > 0:
        ctx = ctx.with_timeout(timeout)

    registry = create_default_registry()
    async with connect_engine() as engine:
        return await run_pipeline(
            ctx,
            registry,
            name,
            engine,
            config,
            steps=steps,
            tolerate_unimplemented=tolerate_unimplemented,
        )


def _report(summary: RunSummary, output_json: bool) -> None:
    if output_json:
        print(json.dumps(summary.to_dict(), indent=2))
        return

    for step in summary.steps:
        marker = {"ok": "+", "failed": "x", "skipped": "-"}.get(step["status"], "?")
        print(f"  [{marker}] {step['step']} ({step['duration_s']}s)")
    if summary.ok:
        print(f"pipeline {summary.pipeline}: ok")
    else:
        print(
            f"pipeline {summary.pipeline}: failed at {summary.failed_step} "
            f"({summary.error_kind}): {summary.error}",
            file=sys.stderr,
        )


def _run(args: Namespace, steps: Optional[list[str]]) -> int:
    cli_config: CLIConfig = getattr(args, "cli_config", CLIConfig())
    name = resolve_pipeline_name(args, cli_config)
    output_json = getattr(args, "json", False)

    try:
        config = build_configuration(args, cli_config)
        logger.debug(f"Configuration: {config.to_dict()}")
        result = asyncio.run(
            execute(
                name,
                config,
                steps,
                tolerate_unimplemented=getattr(args, "tolerate_unimplemented", False),
                timeout=cli_config.pipeline_timeout,
            )
        )
    except StepFailedException as e:
        _report(RunSummary.from_result(e.result, e), output_json)
        return EXIT_STEP_FAILED
    except PipelineException as e:
        if output_json:
            print(json.dumps({"ok": False, "error": e.to_error_model().model_dump()}, indent=2))
        else:
            print(f"Error: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    _report(RunSummary.from_result(result), output_json)
    return EXIT_SUCCESS


def run_cmd(args: Namespace) -> int:
    """Execute the planned steps of a pipeline."""
    cli_config: CLIConfig = getattr(args, "cli_config", CLIConfig())
    return _run(args, resolve_steps(args, cli_config))


def step_cmd(args: Namespace) -> int:
    """Execute a single step (preceded by setup when the step needs a working tree)."""
    step = Step.parse(args.step_name)
    steps = [Step.SETUP.value] if step is Step.SETUP else [Step.SETUP.value, step.value]
    return _run(args, steps)
