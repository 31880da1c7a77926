"""
Go Library Pipeline

Builds and tests a Go library: coverage-gated tests, a stripped binary
build, and tag generation. Packaging and publishing are not provided.
"""

from __future__ import annotations

import logging
from typing import Optional

from core.context import RunContext
from pipelines.base import BasePipeline, Step
from pipelines.shared.builder import GoBuilder
from pipelines.shared.tag import generate_tag
from pipelines.testers import new_tester


logger = logging.getLogger(__name__)


BINARY_PATH = "bin/app"


class GoKitPipeline(BasePipeline):
    """Pipeline for the go-kit library."""

    pipeline_name = "go-kit"

    tag_value: Optional[str] = None

    async def build(self, ctx: RunContext) -> None:
        src = self.require_source(Step.BUILD)
        builder = GoBuilder(self.require_engine(), src, self.config.go_version)
        await builder.build(ctx, BINARY_PATH, env={"CGO_ENABLED": "0"})

    async def test(self, ctx: RunContext) -> None:
        src = self.require_source(Step.TEST)
        logger.info(f"{self.name}: running tests (minimum coverage {self.config.coverage:.2f}%)")
        tester = new_tester(self.require_engine(), src, self.config, language="go")
        await tester.run_tests(ctx)

    async def package(self, ctx: RunContext) -> None:
        raise self.unimplemented(Step.PACKAGE)

    async def tag(self, ctx: RunContext) -> None:
        src = self.require_source(Step.TAG)
        self.tag_value = await generate_tag(ctx, self.require_engine(), src)
        logger.info(f"{self.name}: tag generated: {self.tag_value}")

    async def push(self, ctx: RunContext) -> None:
        raise self.unimplemented(Step.PUSH)
