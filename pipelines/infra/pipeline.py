"""
Infrastructure Pipeline

Acquires the infrastructure repository and gates it on Go test coverage.
Build and Package have nothing to produce; Tag and Push are not provided.
"""

from __future__ import annotations

import logging

from core.context import RunContext
from pipelines.base import BasePipeline, Step
from pipelines.testers import new_tester


logger = logging.getLogger(__name__)


class InfraPipeline(BasePipeline):
    """Pipeline for syntegrity-infra."""

    pipeline_name = "syntegrity-infra"

    async def build(self, ctx: RunContext) -> None:
        logger.debug(f"{self.name}: build is a no-op")

    async def test(self, ctx: RunContext) -> None:
        src = self.require_source(Step.TEST)
        tester = new_tester(self.require_engine(), src, self.config, language="go")
        await tester.run_tests(ctx)

    async def package(self, ctx: RunContext) -> None:
        logger.debug(f"{self.name}: package is a no-op")

    async def tag(self, ctx: RunContext) -> None:
        raise self.unimplemented(Step.TAG)

    async def push(self, ctx: RunContext) -> None:
        raise self.unimplemented(Step.PUSH)
