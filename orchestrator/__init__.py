"""
Orchestrator

Lifecycle driver that runs a pipeline's steps in order with hooks.

Public API:
- PipelineRunner: Executes a step plan against a pipeline
- RunResult: Complete result of a pipeline run
- StepRecord: Outcome of a single step
- plan_steps: Step plan for a configuration
- run_pipeline: Registry lookup plus run
"""

from orchestrator.runner import (
    STATUS_FAILED,
    STATUS_OK,
    STATUS_SKIPPED,
    PipelineRunner,
    RunResult,
    StepRecord,
    plan_steps,
    run_pipeline,
)


__all__ = [
    "PipelineRunner",
    "RunResult",
    "StepRecord",
    "plan_steps",
    "run_pipeline",
    "STATUS_OK",
    "STATUS_FAILED",
    "STATUS_SKIPPED",
]
