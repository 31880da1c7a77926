"""
Test Runners

Language test drivers behind a single-operation contract. The Go runner
executes the test suite with coverage and enforces the configured minimum.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from core.config import Configuration
from core.context import RunContext
from core.schemas.errors import CoverageBelowException, CoverageParseException
from pipelines.shared.builder import DEFAULT_GO_VERSION, go_container

if TYPE_CHECKING:
    from core.engine import Container, Directory, Engine


logger = logging.getLogger(__name__)


COVERAGE_PROFILE = "coverage.out"
COVERAGE_REPORT = "/tmp/coverage.txt"


class Testable(Protocol):
    async def run_tests(self, ctx: RunContext) -> None:
        ...


def parse_total_coverage(report: str) -> float:
    """
    Extract the total percentage from ``go tool cover -func`` output.

    Uses the last line starting with ``total:``; its final token, minus a
    trailing ``%``, must parse as a float.

    Raises:
        CoverageParseException: If there is no total line or it is unparseable
    """
    total_line = None
    for line in report.splitlines():
        if line.strip().startswith("total:"):
            total_line = line.strip()
    if total_line is None:
        raise CoverageParseException("coverage report has no total line")

    token = total_line.split()[-1].rstrip("%")
    try:
        return float(token)
    except ValueError as e:
        raise CoverageParseException(
            f"unable to parse coverage percentage from {total_line!r}",
            details={"line": total_line},
        ) from e


def check_coverage(report: str, minimum: float) -> float:
    """
    Enforce the coverage gate on a report.

    Returns:
        The measured coverage

    Raises:
        CoverageParseException: If the report has no parseable total
        CoverageBelowException: If the total is below ``minimum``
    """
    actual = parse_total_coverage(report)
    if actual < minimum:
        raise CoverageBelowException(actual=actual, minimum=minimum)
    return actual


class GoTester:
    """Runs ``go test`` with coverage and applies the minimum coverage gate."""

    def __init__(self, engine: "Engine", src: "Directory", config: Configuration) -> None:
        self.engine = engine
        self.src = src
        self.config = config

    @property
    def image(self) -> str:
        return f"golang:{self.config.go_version or DEFAULT_GO_VERSION}-alpine"

    def container(self) -> "Container":
        return (
            go_container(self.engine, self.src, self.image)
            .with_exec(["go", "test", "./...", "-v", f"-coverprofile={COVERAGE_PROFILE}"])
            .with_exec(
                ["go", "tool", "cover", f"-func={COVERAGE_PROFILE}"],
                redirect_stdout=COVERAGE_REPORT,
            )
        )

    async def run_tests(self, ctx: RunContext) -> None:
        report = await ctx.guard(self.container().file(COVERAGE_REPORT).contents())
        actual = check_coverage(report, self.config.coverage)
        logger.info(f"Coverage {actual:.2f}% meets minimum {self.config.coverage:.2f}%")


class NoopTester:
    """Placeholder for languages without a test driver."""

    def __init__(self, language: str) -> None:
        self.language = language

    async def run_tests(self, ctx: RunContext) -> None:
        logger.warning(f"No test runner for language {self.language!r}; skipping tests")


def new_tester(engine: "Engine", src: "Directory", config: Configuration, language: str = "go") -> Testable:
    """Pick the test runner for ``language``."""
    if language == "go":
        return GoTester(engine, src, config)
    return NoopTester(language)
