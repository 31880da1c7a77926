"""
SSH Clone Strategy

Clones over SSH with a private key taken from the clone options, the
``SSH_PRIVATE_KEY`` variable, or ``$HOME/.ssh/syntegrity``. Not retried:
SSH failures here are almost always key or host-key problems.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from core.context import RunContext
from core.schemas.errors import MissingKeyException
from pipelines.shared.cloner import GitCloneOptions, configure_git_identity, require_entries

if TYPE_CHECKING:
    from core.engine import Directory, Engine


logger = logging.getLogger(__name__)


BASE_IMAGE = "alpine:latest"
WORKDIR = "/workspace"
KEY_PATH = "/root/.ssh/id_rsa"
DEFAULT_KEY_FILE = Path(".ssh") / "syntegrity"
GIT_SSH_COMMAND = "ssh -o StrictHostKeyChecking=no"


class SSHCloner:
    """Clone strategy for SSH remotes."""

    def __init__(self, key_path: Optional[Path] = None) -> None:
        self.key_path = key_path

    def load_key(self, ctx: RunContext, opts: GitCloneOptions) -> str:
        """
        Locate the private key.

        Raises:
            MissingKeyException: If no source provides a key
        """
        if opts.ssh_key:
            return opts.ssh_key

        key = ctx.env.get("SSH_PRIVATE_KEY")
        if key:
            return key

        path = self.key_path
        if path is None:
            home = ctx.env.get("HOME")
            path = Path(home) / DEFAULT_KEY_FILE if home else None

        if path is not None and path.is_file():
            logger.debug(f"Reading SSH key from {path}")
            return path.read_text()

        raise MissingKeyException(
            "SSH private key not found: set SSH_PRIVATE_KEY or create ~/.ssh/syntegrity",
            details={"path": str(path) if path else None},
        )

    async def clone(self, ctx: RunContext, engine: "Engine", opts: GitCloneOptions) -> "Directory":
        """
        Clone ``opts.repo`` over SSH.

        Raises:
            MissingKeyException: Before any engine use, if no key is available
            CloneFailedException: If the clone produced an empty directory
        """
        key = self.load_key(ctx, opts)
        ctx.check()

        secret = engine.set_secret(f"ssh-key-{opts.name}", key)
        container = (
            engine.container()
            .from_(BASE_IMAGE)
            .with_exec(["apk", "add", "--no-cache", "git", "openssh"])
            .with_mounted_secret(KEY_PATH, secret, owner="root", mode=0o600)
            .with_env_variable("GIT_SSH_COMMAND", GIT_SSH_COMMAND)
        )
        container = configure_git_identity(container, opts.user_email, opts.user_name)

        logger.info(f"Cloning {opts.repo} ({opts.branch}) over SSH")
        directory = (
            container
            .with_workdir(WORKDIR)
            .with_exec(["git", "clone", "--depth=1", "--branch", opts.branch, opts.repo, opts.name])
            .directory(opts.name)
        )
        await require_entries(ctx, directory, opts.repo)
        return directory
