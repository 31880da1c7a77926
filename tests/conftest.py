"""
Pytest configuration and shared fixtures for Syntegrity Dagger tests.

This conftest.py:
1. Adds project root to sys.path for imports
2. Provides commonly-used fixtures via pytest's autodiscovery
3. Configures pytest markers and settings
"""

import sys
from pathlib import Path

import pytest

# =============================================================================
# Path Setup - Must happen before any local imports
# =============================================================================

# Get the project root (parent of tests/)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_TESTS_ROOT = Path(__file__).resolve().parent

# Add both project root and tests root to sys.path
for _path in [str(_PROJECT_ROOT), str(_TESTS_ROOT)]:
    if _path not in sys.path:
        sys.path.insert(0, _path)

# =============================================================================
# Import fixtures using importlib (more robust for pytest loading)
# =============================================================================

import importlib

# Import fixture modules
_common = importlib.import_module("fixtures.common")
_engine = importlib.import_module("fixtures.engine")
_pipelines = importlib.import_module("fixtures.pipelines")

# Extract factory functions
make_config = _common.make_config
make_context = _common.make_context
make_clone_options = _common.make_clone_options
make_credentials = _common.make_credentials

FakeEngine = _engine.FakeEngine
RecordingPipeline = _pipelines.RecordingPipeline


# =============================================================================
# Pytest Fixtures (autodiscovered by pytest)
# =============================================================================

@pytest.fixture
def engine():
    """Provide a fresh in-memory engine."""
    return FakeEngine()


@pytest.fixture
def ctx():
    """Provide a RunContext with an empty environment and a frozen clock."""
    return make_context()


@pytest.fixture
def config():
    """Provide a default Configuration."""
    return make_config()


@pytest.fixture
def clone_options():
    """Provide complete HTTPS clone options for go-kit."""
    return make_clone_options()


@pytest.fixture
def recording_pipeline():
    """Provide a pipeline that records the steps it runs."""
    return RecordingPipeline()


@pytest.fixture(autouse=True)
def _isolate_syntegrity_env(monkeypatch):
    """Keep CI variables of the machine running the tests out of env-driven code paths."""
    for name in (
        "CI",
        "GITLAB_CI",
        "CI_JOB_TOKEN",
        "GITLAB_PAT",
        "SSH_PRIVATE_KEY",
        "CI_REGISTRY",
        "CI_REGISTRY_USER",
        "CI_REGISTRY_PASSWORD",
        "CI_COMMIT_SHA",
        "CI_COMMIT_BRANCH",
        "CI_COMMIT_SHORT_SHA",
        "TAG_NAME",
        "SYNTEGRITY_PIPELINE",
        "SYNTEGRITY_ENV",
        "SYNTEGRITY_COVERAGE",
        "SYNTEGRITY_GO_VERSION",
        "SYNTEGRITY_GIT_PROTOCOL",
        "SYNTEGRITY_LOG_LEVEL",
        "SYNTEGRITY_LOG_FILE",
        "SYNTEGRITY_PIPELINE_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )


# =============================================================================
# Test Helpers (available to all tests via fixtures)
# =============================================================================

@pytest.fixture
def assert_error_code():
    """Helper to assert a PipelineException carries a specific code."""
    def _assert(exc_info, code: str):
        assert exc_info.value.code == code, (
            f"Expected code {code!r}, got {exc_info.value.code!r}: {exc_info.value}"
        )
        return exc_info.value
    return _assert
