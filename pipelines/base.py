"""
Pipeline Lifecycle Contract

Defines the interface every pipeline satisfies:
- A stable name
- Six lifecycle steps, run in a fixed order
- Before/after hooks per step

BasePipeline carries the state shared by the bundled pipelines (engine
handle, configuration, working tree, image, clone strategy, hooks) and the
common Setup template.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Awaitable, Callable, Iterator, Optional, Protocol, runtime_checkable

from core.config import Configuration
from core.context import RunContext
from core.schemas.errors import (
    NoImageException,
    NotSetUpException,
    UnimplementedException,
)

if TYPE_CHECKING:
    from core.engine import Container, Directory, Engine
    from pipelines.shared.cloner import Cloner, GitCloneOptions


logger = logging.getLogger(__name__)


# Host paths never adopted into the working tree
HOST_EXCLUDES = ("**/node_modules", "**/.git", "**/.dagger-cache")


class Step(str, Enum):
    """Lifecycle steps, declared in execution order."""
    SETUP = "setup"
    BUILD = "build"
    TEST = "test"
    PACKAGE = "package"
    TAG = "tag"
    PUSH = "push"

    @classmethod
    def ordered(cls) -> list["Step"]:
        return list(cls)

    @classmethod
    def parse(cls, value: "str | Step") -> "Step":
        """Parse a step name, raising ValueError for unknown names."""
        if isinstance(value, Step):
            return value
        return cls(value.strip().lower())


class HookKind(str, Enum):
    """When a registered hook fires relative to its step."""
    BEFORE = "before"
    AFTER = "after"


HookFunc = Callable[[RunContext], Awaitable[None]]


# =============================================================================
# Hook Manager
# =============================================================================

class HookManager:
    """
    Per-pipeline registry of step hooks.

    Hooks registered for the same (step, kind) run in registration order;
    the first failing hook stops the chain.
    """

    def __init__(self) -> None:
        self._hooks: dict[Step, dict[HookKind, list[HookFunc]]] = {}

    def register(self, step: Step | str, kind: HookKind | str, hook: HookFunc) -> None:
        if hook is None:
            raise ValueError("hook function cannot be None")
        step = Step.parse(step)
        kind = HookKind(kind)
        self._hooks.setdefault(step, {}).setdefault(kind, []).append(hook)

    def hooks_for(self, step: Step | str, kind: HookKind | str) -> list[HookFunc]:
        """Return a copy of the hooks registered for a step and kind."""
        return list(self._hooks.get(Step.parse(step), {}).get(HookKind(kind), []))

    def remove(self, step: Step | str, kind: HookKind | str, hook: HookFunc) -> None:
        """
        Remove a previously registered hook.

        Raises:
            KeyError: If the hook is not registered for this step and kind
        """
        hooks = self._hooks.get(Step.parse(step), {}).get(HookKind(kind), [])
        for i, registered in enumerate(hooks):
            if registered is hook:
                del hooks[i]
                return
        raise KeyError(f"hook not found for step {Step.parse(step).value} ({HookKind(kind).value})")

    def clear(self, step: Optional[Step | str] = None) -> None:
        """Remove hooks for one step, or all hooks when step is None."""
        if step is None:
            self._hooks.clear()
        else:
            self._hooks.pop(Step.parse(step), None)

    def list_hooks(self) -> dict[str, dict[str, int]]:
        """Count of registered hooks per step and kind."""
        return {
            step.value: {kind.value: len(hooks) for kind, hooks in kinds.items()}
            for step, kinds in self._hooks.items()
        }

    def compose(self, step: Step | str, kind: HookKind | str) -> Optional[HookFunc]:
        """Combine the hooks for a step and kind into one callable, or None if there are none."""
        hooks = self.hooks_for(step, kind)
        if not hooks:
            return None
        step_name = Step.parse(step).value

        async def run_hooks(ctx: RunContext) -> None:
            for hook in hooks:
                ctx.check()
                logger.debug(f"Running {HookKind(kind).value} hook for step {step_name}")
                await hook(ctx)

        return run_hooks


# =============================================================================
# Pipeline Contract
# =============================================================================

@runtime_checkable
class Pipeline(Protocol):
    """
    Protocol every pipeline satisfies.

    Lifecycle steps are coroutines taking the run context; each raises a
    PipelineException subclass on failure. Hook accessors return a
    coroutine function to run around the named step, or None.
    """

    @property
    def name(self) -> str:
        ...

    async def setup(self, ctx: RunContext) -> None:
        ...

    async def build(self, ctx: RunContext) -> None:
        ...

    async def test(self, ctx: RunContext) -> None:
        ...

    async def package(self, ctx: RunContext) -> None:
        ...

    async def tag(self, ctx: RunContext) -> None:
        ...

    async def push(self, ctx: RunContext) -> None:
        ...

    def before_step(self, ctx: RunContext, step: Step) -> Optional[HookFunc]:
        ...

    def after_step(self, ctx: RunContext, step: Step) -> Optional[HookFunc]:
        ...


PipelineFactory = Callable[["Engine", Configuration], Pipeline]


class BasePipeline(ABC):
    """
    Abstract base class for the bundled pipelines.

    Subclasses must define the ``pipeline_name`` class attribute and the
    build/test/package/tag/push steps. Setup is shared: it clones through
    the attached Cloner when there is one, otherwise adopts the host's
    current directory.

    The constructor never touches the engine, so instances can be created
    with ``engine=None`` for registry and precondition checks.
    """

    pipeline_name: str = ""

    def __init__(
        self,
        engine: Optional["Engine"],
        config: Configuration,
        *,
        cloner: Optional["Cloner"] = None,
        hooks: Optional[HookManager] = None,
    ) -> None:
        self.engine = engine
        self.config = config
        self.cloner = cloner
        self.hooks = hooks or HookManager()
        self.src: Optional["Directory"] = None
        self.image: Optional["Container"] = None

    @classmethod
    def create(cls, engine: Optional["Engine"], config: Configuration) -> "BasePipeline":
        """
        Registry factory.

        Attaches a protocol-bound clone strategy when the configuration
        names a repository; otherwise Setup adopts the host directory.
        """
        from pipelines.shared.cloner import RepoCloner

        cloner = RepoCloner(config.git_protocol or "https") if config.git_repo else None
        return cls(engine, config, cloner=cloner)

    @property
    def name(self) -> str:
        return self.pipeline_name

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, env={self.config.env!r})"

    # -------------------------------------------------------------------------
    # Setup template
    # -------------------------------------------------------------------------

    async def setup(self, ctx: RunContext) -> None:
        """Acquire the working tree. Idempotent within a run."""
        ctx.check()
        if self.src is not None:
            logger.debug(f"{self.name}: working tree already prepared")
            return
        engine = self.require_engine()

        if self.cloner is not None:
            options = self.clone_options()
            logger.info(f"{self.name}: cloning {options.repo}@{options.branch}")
            self.src = await self.cloner.clone(ctx, engine, options)
        else:
            logger.info(f"{self.name}: using host working directory")
            self.src = engine.host_directory(".", exclude=list(HOST_EXCLUDES))

    def clone_options(self) -> "GitCloneOptions":
        """Clone options derived from the configuration."""
        from pipelines.repos import get_repo_url
        from pipelines.shared.cloner import GitCloneOptions

        cfg = self.config
        protocol = cfg.git_protocol or "https"
        return GitCloneOptions(
            repo=cfg.git_repo or get_repo_url(self.name, protocol),
            branch=cfg.git_ref or cfg.branch_name,
            name=self.name,
            user_email=cfg.git_user_email,
            user_name=cfg.git_user_name,
            ssh_key=cfg.ssh_private_key or None,
        )

    # -------------------------------------------------------------------------
    # Preconditions
    # -------------------------------------------------------------------------

    def require_engine(self) -> "Engine":
        if self.engine is None:
            raise NotSetUpException(f"{self.name}: no engine attached")
        return self.engine

    def require_source(self, step: Step) -> "Directory":
        if self.src is None:
            raise NotSetUpException(
                f"{self.name}: {step.value} requires a working tree; run setup first",
                step=step.value,
            )
        return self.src

    def require_image(self, step: Step) -> "Container":
        if self.image is None:
            raise NoImageException(
                f"{self.name}: {step.value} requires a built image; run build first",
                step=step.value,
            )
        return self.image

    def unimplemented(self, step: Step) -> UnimplementedException:
        return UnimplementedException(self.name, step.value)

    # -------------------------------------------------------------------------
    # Lifecycle steps
    # -------------------------------------------------------------------------

    @abstractmethod
    async def build(self, ctx: RunContext) -> None:
        ...

    @abstractmethod
    async def test(self, ctx: RunContext) -> None:
        ...

    @abstractmethod
    async def package(self, ctx: RunContext) -> None:
        ...

    @abstractmethod
    async def tag(self, ctx: RunContext) -> None:
        ...

    @abstractmethod
    async def push(self, ctx: RunContext) -> None:
        ...

    def steps(self) -> Iterator[tuple[Step, Callable[[RunContext], Awaitable[None]]]]:
        """Yield (step, bound method) pairs in lifecycle order."""
        for step in Step.ordered():
            yield step, getattr(self, step.value)

    # -------------------------------------------------------------------------
    # Hooks
    # -------------------------------------------------------------------------

    def before_step(self, ctx: RunContext, step: Step) -> Optional[HookFunc]:
        return self.hooks.compose(step, HookKind.BEFORE)

    def after_step(self, ctx: RunContext, step: Step) -> Optional[HookFunc]:
        return self.hooks.compose(step, HookKind.AFTER)
