"""
Run Context

Provides the ambient state threaded through every lifecycle operation:
- Environment view (read-only access to process variables)
- Clock (can be frozen for deterministic credential expiry)
- Cancellation token
- Optional deadline

Pipelines and clone strategies receive a context rather than reading
os.environ or the wall clock directly, so tests never need to mutate real
process state and parallel runs do not race.
"""

from __future__ import annotations

import asyncio
import os
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Awaitable, Mapping, Optional, Protocol, TypeVar

from core.schemas.errors import CancelledException


T = TypeVar("T")

# Values accepted as "true" for boolean-ish environment flags
TRUTHY_VALUES = frozenset({"1", "true", "yes", "on"})


# =============================================================================
# Clock
# =============================================================================

class Clock(Protocol):
    """
    Protocol for time source.

    Can be real time or frozen for deterministic testing.
    """
    def now(self) -> datetime:
        """Get current UTC time."""
        ...


class RealClock:
    """Real-time clock implementation."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FrozenClock:
    """
    Frozen clock for deterministic testing.

    Always returns the same time.
    """

    def __init__(self, frozen_time: Optional[datetime] = None) -> None:
        self._time = frozen_time or datetime(2026, 1, 1, 0, 0, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._time

    def set_time(self, time: datetime) -> None:
        """Set the frozen time."""
        self._time = time


# =============================================================================
# Environment View
# =============================================================================

class EnvironmentView(Protocol):
    """Read-only view over environment variables."""

    def get(self, name: str, default: str = "") -> str:
        """Get a variable, or ``default`` when it is unset or empty."""
        ...

    def flag(self, name: str) -> bool:
        """Interpret a variable as a boolean-ish flag."""
        ...


class ProcessEnvironment:
    """Environment view backed by the real process environment."""

    def get(self, name: str, default: str = "") -> str:
        return os.environ.get(name) or default

    def flag(self, name: str) -> bool:
        return self.get(name).strip().lower() in TRUTHY_VALUES


class MappingEnvironment:
    """In-memory environment view, used by tests and embedding callers."""

    def __init__(self, values: Optional[Mapping[str, str]] = None) -> None:
        self._values = dict(values or {})

    def get(self, name: str, default: str = "") -> str:
        return self._values.get(name) or default

    def flag(self, name: str) -> bool:
        return self.get(name).strip().lower() in TRUTHY_VALUES

    def __repr__(self) -> str:
        # Names only; values may be secrets
        return f"MappingEnvironment(names={sorted(self._values)!r})"


# =============================================================================
# Cancellation
# =============================================================================

class CancelToken:
    """
    Cooperative cancellation signal shared by a context and its children.

    ``cancel()`` may be called from any thread (e.g. a signal handler);
    waiters are woken on their own event loop.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._waiters: list[asyncio.Future[None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Fire the token. Idempotent."""
        self._cancelled = True
        for waiter in list(self._waiters):
            if not waiter.done():
                waiter.get_loop().call_soon_threadsafe(_resolve_waiter, waiter)

    async def wait(self) -> None:
        """Block until the token fires."""
        if self._cancelled:
            return
        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        finally:
            self._waiters.remove(waiter)


def _resolve_waiter(waiter: asyncio.Future[None]) -> None:
    if not waiter.done():
        waiter.set_result(None)


# =============================================================================
# Run Context
# =============================================================================

@dataclass(frozen=True)
class RunContext:
    """
    Context passed as ``ctx`` to every lifecycle operation.

    Contexts are immutable; ``with_timeout`` derives a child that shares
    the parent's cancellation token but may carry a tighter deadline.

    Usage:
        ctx = RunContext.create_minimal()
        clone_ctx = ctx.with_timeout(300)
        await clone_ctx.guard(container.sync())
    """
    env: EnvironmentView = field(default_factory=ProcessEnvironment)
    clock: Clock = field(default_factory=RealClock)
    token: CancelToken = field(default_factory=CancelToken)
    deadline: Optional[float] = None  # time.monotonic() value

    @classmethod
    def create_minimal(cls) -> "RunContext":
        """Create a context over the real process environment and clock."""
        return cls()

    @classmethod
    def create_mock(
        cls,
        env: Optional[Mapping[str, str]] = None,
        clock: Optional[Clock] = None,
    ) -> "RunContext":
        """
        Create a context for testing.

        Args:
            env: Environment variables visible to the run
            clock: Clock to use (defaults to a FrozenClock)

        Returns:
            RunContext with an in-memory environment
        """
        return cls(
            env=MappingEnvironment(env),
            clock=clock or FrozenClock(),
        )

    # -------------------------------------------------------------------------
    # Deadline & cancellation
    # -------------------------------------------------------------------------

    def now(self) -> datetime:
        return self.clock.now()

    def remaining(self) -> Optional[float]:
        """Seconds until the deadline, or None when there is no deadline."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    @property
    def cancelled(self) -> bool:
        if self.token.cancelled:
            return True
        return self.deadline is not None and time.monotonic() >= self.deadline

    def cancel(self) -> None:
        self.token.cancel()

    def check(self) -> None:
        """Raise CancelledException if the token fired or the deadline passed."""
        if self.token.cancelled:
            raise CancelledException("operation cancelled")
        if self.deadline is not None and time.monotonic() >= self.deadline:
            raise CancelledException("deadline exceeded")

    def with_timeout(self, seconds: float) -> "RunContext":
        """Derive a child context whose deadline is at most ``seconds`` away."""
        deadline = time.monotonic() + seconds
        if self.deadline is not None:
            deadline = min(deadline, self.deadline)
        return replace(self, deadline=deadline)

    async def sleep(self, seconds: float) -> None:
        """
        Sleep, waking early if the context is cancelled.

        Raises:
            CancelledException: If cancelled or the deadline passes while sleeping
        """
        self.check()
        remaining = self.remaining()
        delay = seconds if remaining is None else min(seconds, remaining)
        try:
            await asyncio.wait_for(self.token.wait(), timeout=delay)
        except asyncio.TimeoutError:
            self.check()
            return
        self.check()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """
        Await an engine operation, abandoning it on cancellation or deadline.

        Raises:
            CancelledException: If the context is cancelled first
        """
        try:
            self.check()
        except CancelledException:
            # Never scheduled, so close it here.
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise
        task: asyncio.Future[Any] = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self.token.wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter},
                timeout=self.remaining(),
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            waiter.cancel()
        if task in done:
            return task.result()
        task.cancel()
        self.check()
        raise CancelledException("deadline exceeded")
