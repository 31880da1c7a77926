"""
Lifecycle Contract Unit Tests
Tests for pipelines/base.py

Tests:
- Step ordering and parsing
- Setup adopts the host directory or clones, and is idempotent
- Preconditions before setup/build
- HookManager registration, ordering, removal and composition
"""
import asyncio

import pytest

from core.schemas.errors import CancelledException, NotSetUpException
from pipelines import HookKind, HookManager, Step
from pipelines.base import HOST_EXCLUDES
from pipelines.go_kit import GoKitPipeline
from pipelines.shared.cloner import GitCloneOptions

from fixtures import FakeEngine, make_config, make_context, make_recording_hook


class StubCloner:
    def __init__(self):
        self.calls = []

    async def clone(self, ctx, engine, opts):
        self.calls.append(opts)
        return "cloned-directory"


class TestSteps:
    def test_order(self):
        assert [s.value for s in Step.ordered()] == ["setup", "build", "test", "package", "tag", "push"]

    @pytest.mark.parametrize("raw", ["test", "TEST", " Test "])
    def test_parse(self, raw):
        assert Step.parse(raw) is Step.TEST

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            Step.parse("deploy")

    def test_pipeline_yields_steps_in_order(self):
        pipeline = GoKitPipeline(None, make_config())
        assert [step for step, _ in pipeline.steps()] == Step.ordered()


class TestSetup:
    def test_adopts_host_directory(self, engine, ctx):
        pipeline = GoKitPipeline(engine, make_config())
        asyncio.run(pipeline.setup(ctx))

        assert pipeline.src is not None
        assert engine.host_calls == [(".", list(HOST_EXCLUDES))]

    def test_idempotent(self, engine, ctx):
        pipeline = GoKitPipeline(engine, make_config())
        asyncio.run(pipeline.setup(ctx))
        first = pipeline.src
        asyncio.run(pipeline.setup(ctx))

        assert pipeline.src is first
        assert len(engine.host_calls) == 1

    def test_clones_with_attached_cloner(self, engine, ctx):
        cloner = StubCloner()
        cfg = make_config(git_repo="https://gitlab.com/syntegrity/go-kit.git", git_ref="develop")
        pipeline = GoKitPipeline(engine, cfg, cloner=cloner)

        asyncio.run(pipeline.setup(ctx))

        assert pipeline.src == "cloned-directory"
        assert engine.host_calls == []
        opts = cloner.calls[0]
        assert isinstance(opts, GitCloneOptions)
        assert opts.repo == "https://gitlab.com/syntegrity/go-kit.git"
        assert opts.branch == "develop"
        assert opts.name == "go-kit"

    def test_clone_options_fall_back_to_repo_table(self):
        pipeline = GoKitPipeline(None, make_config(git_protocol="ssh"))
        assert pipeline.clone_options().repo == "git@gitlab.com:syntegrity/go-kit.git"

    def test_clone_options_carry_key(self):
        pipeline = GoKitPipeline(None, make_config(ssh_private_key="key-material"))
        assert pipeline.clone_options().ssh_key == "key-material"

    def test_without_engine(self, ctx):
        with pytest.raises(NotSetUpException):
            asyncio.run(GoKitPipeline(None, make_config()).setup(ctx))

    def test_cancelled(self, engine):
        ctx = make_context()
        ctx.cancel()
        with pytest.raises(CancelledException):
            asyncio.run(GoKitPipeline(engine, make_config()).setup(ctx))
        assert engine.host_calls == []


class TestPreconditions:
    @pytest.mark.parametrize("step", ["build", "test", "tag"])
    def test_steps_need_working_tree(self, engine, ctx, step):
        pipeline = GoKitPipeline(engine, make_config())
        with pytest.raises(NotSetUpException) as exc_info:
            asyncio.run(getattr(pipeline, step)(ctx))
        assert exc_info.value.details["step"] == step
        assert not engine.used


class TestHookManager:
    def test_register_and_order(self, ctx):
        events = []
        hooks = HookManager()
        hooks.register(Step.BUILD, HookKind.BEFORE, make_recording_hook(events, "first"))
        hooks.register("build", "before", make_recording_hook(events, "second"))

        composed = hooks.compose(Step.BUILD, HookKind.BEFORE)
        asyncio.run(composed(ctx))

        assert events == ["first", "second"]

    def test_compose_none_without_hooks(self):
        assert HookManager().compose(Step.TEST, HookKind.AFTER) is None

    def test_first_failure_stops_chain(self, ctx):
        events = []
        hooks = HookManager()
        hooks.register(Step.TEST, HookKind.AFTER, make_recording_hook(events, "a", RuntimeError("hook failed")))
        hooks.register(Step.TEST, HookKind.AFTER, make_recording_hook(events, "b"))

        with pytest.raises(RuntimeError, match="hook failed"):
            asyncio.run(hooks.compose(Step.TEST, HookKind.AFTER)(ctx))
        assert events == ["a"]

    def test_register_none(self):
        with pytest.raises(ValueError):
            HookManager().register(Step.TEST, HookKind.BEFORE, None)

    def test_register_unknown_step(self):
        with pytest.raises(ValueError):
            HookManager().register("deploy", HookKind.BEFORE, make_recording_hook([], "x"))

    def test_remove(self):
        hook = make_recording_hook([], "x")
        hooks = HookManager()
        hooks.register(Step.TAG, HookKind.BEFORE, hook)
        hooks.remove(Step.TAG, HookKind.BEFORE, hook)

        assert hooks.hooks_for(Step.TAG, HookKind.BEFORE) == []
        with pytest.raises(KeyError):
            hooks.remove(Step.TAG, HookKind.BEFORE, hook)

    def test_hooks_for_returns_copy(self):
        hooks = HookManager()
        hooks.register(Step.TAG, HookKind.BEFORE, make_recording_hook([], "x"))
        hooks.hooks_for(Step.TAG, HookKind.BEFORE).clear()
        assert len(hooks.hooks_for(Step.TAG, HookKind.BEFORE)) == 1

    def test_clear_and_list(self):
        hooks = HookManager()
        hooks.register(Step.BUILD, HookKind.BEFORE, make_recording_hook([], "x"))
        hooks.register(Step.BUILD, HookKind.AFTER, make_recording_hook([], "y"))
        hooks.register(Step.PUSH, HookKind.BEFORE, make_recording_hook([], "z"))

        assert hooks.list_hooks() == {"build": {"before": 1, "after": 1}, "push": {"before": 1}}
        hooks.clear(Step.BUILD)
        assert hooks.list_hooks() == {"push": {"before": 1}}
        hooks.clear()
        assert hooks.list_hooks() == {}

    def test_pipeline_hook_accessors(self, ctx):
        pipeline = GoKitPipeline(FakeEngine(), make_config())
        assert pipeline.before_step(ctx, Step.BUILD) is None

        pipeline.hooks.register(Step.BUILD, HookKind.BEFORE, make_recording_hook([], "x"))
        assert pipeline.before_step(ctx, Step.BUILD) is not None
        assert pipeline.after_step(ctx, Step.BUILD) is None

    def test_composed_hooks_respect_cancellation(self):
        events = []
        hooks = HookManager()
        hooks.register(Step.BUILD, HookKind.BEFORE, make_recording_hook(events, "x"))
        ctx = make_context()
        ctx.cancel()

        with pytest.raises(CancelledException):
            asyncio.run(hooks.compose(Step.BUILD, HookKind.BEFORE)(ctx))
        assert events == []
