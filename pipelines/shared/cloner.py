"""
Clone Strategy

Common contract for materializing a git repository inside the engine, the
protocol dispatcher, and helpers shared by the HTTPS and SSH strategies.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Optional, Protocol

from core.context import RunContext
from core.schemas.errors import CloneFailedException, InvalidOptionsException

if TYPE_CHECKING:
    from core.engine import Container, Directory, Engine


logger = logging.getLogger(__name__)


# Identity used when neither the caller nor the strategy defaults provide one
ORG_USER_EMAIL = "ci@getsyntegrity.com"
ORG_USER_NAME = "Syntegrity CI"


@dataclass(frozen=True)
class GitCloneOptions:
    """What to clone and where."""
    repo: str
    branch: str
    name: str
    user_email: str = ""
    user_name: str = ""
    ssh_key: Optional[str] = None

    def __repr__(self) -> str:
        return (
            f"GitCloneOptions(repo={self.repo!r}, branch={self.branch!r}, name={self.name!r}, "
            f"ssh_key={'set' if self.ssh_key else 'unset'})"
        )

    def with_defaults(self, branch: str, user_email: str, user_name: str) -> "GitCloneOptions":
        """Fill empty branch and identity fields."""
        return replace(
            self,
            branch=self.branch or branch,
            user_email=self.user_email or user_email,
            user_name=self.user_name or user_name,
        )


class Cloner(Protocol):
    """A strategy that clones a repository into a directory handle."""

    async def clone(self, ctx: RunContext, engine: "Engine", opts: GitCloneOptions) -> "Directory":
        ...


def validate_clone_options(opts: GitCloneOptions) -> None:
    """
    Check that repo, branch and name are all set.

    Raises:
        InvalidOptionsException: Naming every missing field
    """
    missing = [
        field_name
        for field_name in ("repo", "branch", "name")
        if not getattr(opts, field_name)
    ]
    if missing:
        raise InvalidOptionsException(
            f"clone options missing required fields: {', '.join(missing)}",
            missing=missing,
        )


async def clone_repo(
    ctx: RunContext,
    engine: "Engine",
    opts: GitCloneOptions,
    protocol: str,
    *,
    https: Optional[Cloner] = None,
    ssh: Optional[Cloner] = None,
) -> "Directory":
    """
    Validate options and clone with the strategy matching ``protocol``.

    "ssh" selects the SSH strategy; any other value selects HTTPS.

    Raises:
        InvalidOptionsException: Before any engine use, if options are incomplete
    """
    validate_clone_options(opts)

    if protocol == "ssh":
        from pipelines.shared.ssh_cloner import SSHCloner
        strategy = ssh or SSHCloner()
    else:
        from pipelines.shared.https_cloner import HTTPSCloner
        strategy = https or HTTPSCloner()

    logger.debug(f"Cloning {opts.repo} via {type(strategy).__name__}")
    return await strategy.clone(ctx, engine, opts)


class RepoCloner:
    """Cloner bound to a protocol; what pipelines get attached."""

    def __init__(
        self,
        protocol: str = "https",
        *,
        https: Optional[Cloner] = None,
        ssh: Optional[Cloner] = None,
    ) -> None:
        self.protocol = protocol
        self._https = https
        self._ssh = ssh

    async def clone(self, ctx: RunContext, engine: "Engine", opts: GitCloneOptions) -> "Directory":
        return await clone_repo(ctx, engine, opts, self.protocol, https=self._https, ssh=self._ssh)

    def __repr__(self) -> str:
        return f"RepoCloner(protocol={self.protocol!r})"


# =============================================================================
# Shared helpers
# =============================================================================

def configure_git_identity(container: "Container", user_email: str, user_name: str) -> "Container":
    """Set the global git identity, falling back to the organisation defaults."""
    return (
        container
        .with_exec(["git", "config", "--global", "user.email", user_email or ORG_USER_EMAIL])
        .with_exec(["git", "config", "--global", "user.name", user_name or ORG_USER_NAME])
    )


async def require_entries(ctx: RunContext, directory: "Directory", repo: str, attempts: int = 1) -> None:
    """
    Fail unless a freshly cloned directory has content.

    Raises:
        CloneFailedException: If the directory is empty
    """
    entries = await ctx.guard(directory.entries())
    if not entries:
        raise CloneFailedException(
            f"repository {repo} cloned but empty",
            attempts=attempts,
        )
