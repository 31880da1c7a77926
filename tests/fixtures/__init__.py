"""
Test fixtures package for Syntegrity Dagger tests.

This package provides factory functions and engine doubles.
Organized into layers:
- common.py: Configuration, context, clone option and credential factories
- engine.py: In-memory Engine / Container / Directory stand-ins
- pipelines.py: Recording pipeline and hook helpers for runner tests

Usage:
    from fixtures import make_config, make_context, FakeEngine

    def test_something():
        engine = FakeEngine(directory_results=[RuntimeError("boom"), ["main.go"]])
        ctx = make_context(env={"GITLAB_PAT": "token"})
"""

from .common import (
    FROZEN_NOW,
    make_clone_options,
    make_config,
    make_context,
    make_credentials,
)

from .engine import (
    FakeContainer,
    FakeDirectory,
    FakeEngine,
    FakeSecret,
    exec_args,
    ops_of_kind,
)

from .pipelines import (
    RecordingPipeline,
    attach_hooks,
    make_recording_hook,
)

__all__ = [
    # Common
    "FROZEN_NOW",
    "make_clone_options",
    "make_config",
    "make_context",
    "make_credentials",
    # Engine
    "FakeContainer",
    "FakeDirectory",
    "FakeEngine",
    "FakeSecret",
    "exec_args",
    "ops_of_kind",
    # Pipelines
    "RecordingPipeline",
    "attach_hooks",
    "make_recording_hook",
]
