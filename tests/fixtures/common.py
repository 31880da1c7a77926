"""
Common test fixtures shared by all modules.

Provides factory functions for the core pipeline structures:
- Configuration
- RunContext (in-memory environment, frozen clock)
- GitCloneOptions
- Credentials

These are the foundational building blocks used by higher-level fixtures.
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from core.config import Configuration, new_config
from core.context import FrozenClock, RunContext
from pipelines.shared.cloner import GitCloneOptions
from pipelines.shared.credentials import CredentialVariant, Credentials


FROZEN_NOW = datetime(2026, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Configuration Factory
# =============================================================================

def make_config(**overrides: Any) -> Configuration:
    """
    Create a Configuration for testing.

    Args:
        **overrides: Field values replacing the defaults

    Returns:
        Configuration with defaults plus overrides
    """
    return replace(new_config(), **overrides)


# =============================================================================
# Context Factory
# =============================================================================

def make_context(
    env: Optional[dict[str, str]] = None,
    now: datetime = FROZEN_NOW,
) -> RunContext:
    """Create a RunContext over an in-memory environment and a frozen clock."""
    return RunContext.create_mock(env=env or {}, clock=FrozenClock(now))


# =============================================================================
# Clone Options Factory
# =============================================================================

def make_clone_options(
    repo: str = "https://gitlab.com/syntegrity/go-kit.git",
    branch: str = "main",
    name: str = "go-kit",
    **kwargs: Any,
) -> GitCloneOptions:
    return GitCloneOptions(repo=repo, branch=branch, name=name, **kwargs)


# =============================================================================
# Credentials Factory
# =============================================================================

def make_credentials(
    variant: CredentialVariant | str = CredentialVariant.PAT,
    user: str = "oauth2",
    secret: str = "glpat-secret-value",
    ttl: timedelta = timedelta(hours=1),
    now: datetime = FROZEN_NOW,
) -> Credentials:
    return Credentials(variant=variant, user=user, secret=secret, expires_at=now + ttl)
