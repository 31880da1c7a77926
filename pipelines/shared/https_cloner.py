"""
HTTPS Clone Strategy

Clones over HTTPS inside a minimal Alpine container, authenticating with a
``.netrc`` file built from the resolved credentials. Transient failures are
retried a bounded number of times.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional
from urllib.parse import urlparse

from core.context import RunContext
from core.schemas.errors import (
    CancelledException,
    CloneFailedException,
    InvalidOptionsException,
)
from pipelines.shared.cloner import GitCloneOptions, configure_git_identity
from pipelines.shared.credentials import (
    Credentials,
    resolve_credentials,
    summarize,
    validate_credentials,
)

if TYPE_CHECKING:
    from core.engine import Container, Directory, Engine


logger = logging.getLogger(__name__)


BASE_IMAGE = "alpine:latest"
WORKDIR = "/workspace"
NETRC_PATH = "/root/.netrc"
DEFAULT_NETRC_HOST = "gitlab.com"

DEFAULT_BRANCH = "main"
DEFAULT_USER_EMAIL = "ci@example.com"
DEFAULT_USER_NAME = "CI User"


@dataclass(frozen=True)
class CloneSettings:
    """Tunable parameters for HTTPS cloning."""
    timeout: float = 300.0  # seconds, whole clone including retries
    max_retries: int = 3
    retry_delay: float = 2.0
    shallow: bool = True
    depth: int = 1
    verify_tls: bool = True


def netrc_host(repo: str) -> str:
    """Host the credential file applies to, taken from the repository URL."""
    host = urlparse(repo).hostname
    return host or DEFAULT_NETRC_HOST


def netrc_contents(creds: Credentials, host: str) -> str:
    return f"machine {host} login {creds.user} password {creds.secret}\n"


class HTTPSCloner:
    """
    Clone strategy for HTTPS remotes.

    Usage:
        cloner = HTTPSCloner(CloneSettings(max_retries=5))
        src = await cloner.clone(ctx, engine, opts)
    """

    def __init__(self, settings: Optional[CloneSettings] = None) -> None:
        self.settings = settings or CloneSettings()

    def clone_args(self, opts: GitCloneOptions) -> list[str]:
        args = ["git", "clone"]
        if self.settings.shallow:
            args.append(f"--depth={self.settings.depth}")
        args.extend(["--branch", opts.branch, opts.repo, opts.name])
        return args

    def prepare_container(
        self,
        engine: "Engine",
        creds: Credentials,
        opts: GitCloneOptions,
    ) -> "Container":
        """Base container with git installed, credentials and identity configured."""
        container = (
            engine.container()
            .from_(BASE_IMAGE)
            .with_exec(["apk", "add", "--no-cache", "git", "ca-certificates"])
        )

        if not creds.is_anonymous:
            secret = engine.set_secret(
                f"git-netrc-{opts.name}",
                netrc_contents(creds, netrc_host(opts.repo)),
            )
            container = (
                container
                .with_env_variable("HOME", "/root")
                .with_mounted_secret(NETRC_PATH, secret, owner="root", mode=0o600)
                .with_exec(["git", "config", "--global", "credential.helper", "store"])
            )

        if not self.settings.verify_tls:
            logger.warning(f"TLS verification disabled for clone of {opts.repo}")
            container = container.with_exec(["git", "config", "--global", "http.sslVerify", "false"])

        container = configure_git_identity(container, opts.user_email, opts.user_name)
        return container.with_workdir(WORKDIR)

    async def clone(self, ctx: RunContext, engine: "Engine", opts: GitCloneOptions) -> "Directory":
        """
        Clone ``opts.repo`` and return the checked-out directory.

        Raises:
            InvalidOptionsException: If the repository URL is empty
            CredentialException: If resolved credentials are invalid
            CloneFailedException: After every attempt failed
            CancelledException: If the context is cancelled or the timeout elapses
        """
        if not opts.repo:
            raise InvalidOptionsException("repository URL is required", missing=["repo"])
        opts = opts.with_defaults(DEFAULT_BRANCH, DEFAULT_USER_EMAIL, DEFAULT_USER_NAME)

        creds = resolve_credentials(ctx.env, ctx.clock)
        validate_credentials(creds, ctx.now())
        logger.info(f"Cloning {opts.repo} ({opts.branch}) using {summarize(creds)}")

        clone_ctx = ctx.with_timeout(self.settings.timeout)
        base = self.prepare_container(engine, creds, opts)
        args = self.clone_args(opts)
        max_retries = self.settings.max_retries

        last_error: Optional[BaseException] = None
        for attempt in range(1, max_retries + 1):
            clone_ctx.check()
            try:
                directory = base.with_exec(args).directory(opts.name)
                entries = await clone_ctx.guard(directory.entries())
                if not entries:
                    raise CloneFailedException(
                        f"repository {opts.repo} cloned but empty", attempts=attempt
                    )
                logger.info(f"Cloned {opts.repo} on attempt {attempt} ({len(entries)} entries)")
                return directory
            except CancelledException:
                raise
            except Exception as e:
                last_error = e
                logger.warning(f"Clone attempt {attempt}/{max_retries} for {opts.repo} failed: {e}")

            if attempt < max_retries:
                await clone_ctx.sleep(self.settings.retry_delay)

        raise CloneFailedException(
            f"failed to clone repository after {max_retries} attempts",
            attempts=max_retries,
            last_error=last_error,
        ) from last_error
