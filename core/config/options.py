"""
Pipeline Configuration

Immutable configuration record for a pipeline run, built by applying a
sequence of single-field options to a record with documented defaults.

Usage:
    cfg = new_config(
        with_env("staging"),
        with_registry("registry.gitlab.com/syntegrity", token),
        with_coverage(90.0),
    )

The builder performs no validation; clone and publish steps validate the
fields they need at point of use.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Any, Callable


# Field names whose values must never be rendered
SECRET_FIELDS = frozenset({"registry_token", "token", "ssh_private_key"})


@dataclass(frozen=True)
class Configuration:
    """Configuration for a single pipeline invocation."""

    # Execution shape
    env: str = "dev"
    skip_push: bool = False
    only_test: bool = False
    only_build: bool = False
    verbose: bool = False

    # Source
    git_repo: str = ""
    git_ref: str = "main"
    git_protocol: str = ""  # "ssh" | "https"
    commit_sha: str = ""
    branch_name: str = ""
    build_tag: str = ""
    version: str = ""
    git_user_name: str = ""
    git_user_email: str = ""

    # Registry
    registry_url: str = ""
    registry_user: str = ""
    registry_token: str = field(default="", repr=False)
    image_name: str = ""
    image_tag: str = ""

    # Toolchain
    go_version: str = ""
    java_version: str = ""

    # Secrets
    token: str = field(default="", repr=False)
    ssh_private_key: str = field(default="", repr=False)

    # Quality gate (percent)
    coverage: float = 0.0

    def to_dict(self, redact: bool = True) -> dict[str, Any]:
        """Convert to a dictionary, masking secret fields unless told otherwise."""
        data = asdict(self)
        if redact:
            for name in SECRET_FIELDS:
                if data[name]:
                    data[name] = "***"
        return data


Option = Callable[[Configuration], Configuration]


def new_config(*options: Option) -> Configuration:
    """
    Build a Configuration from defaults plus options, applied in order.

    Later options for the same field override earlier ones.
    """
    cfg = Configuration()
    for option in options:
        cfg = option(cfg)
    return cfg


def _set(**changes: Any) -> Option:
    def apply(cfg: Configuration) -> Configuration:
        return replace(cfg, **changes)
    return apply


# =============================================================================
# Options
# =============================================================================

def with_env(env: str) -> Option:
    """Set the environment label (dev, staging, prod...)."""
    return _set(env=env)


def with_skip_push(skip: bool) -> Option:
    return _set(skip_push=skip)


def with_only_test(only: bool) -> Option:
    """Run only the test step (after setup)."""
    return _set(only_test=only)


def with_only_build(only: bool) -> Option:
    """Run only the build step (after setup)."""
    return _set(only_build=only)


def with_verbose(verbose: bool) -> Option:
    return _set(verbose=verbose)


def with_registry(url: str, token: str) -> Option:
    """Set registry URL and registry password/token together."""
    return _set(registry_url=url, registry_token=token)


def with_registry_user(user: str) -> Option:
    return _set(registry_user=user)


def with_build_tag(tag: str) -> Option:
    return _set(build_tag=tag)


def with_commit_sha(sha: str) -> Option:
    return _set(commit_sha=sha)


def with_branch(branch: str) -> Option:
    return _set(branch_name=branch)


def with_git_protocol(protocol: str) -> Option:
    """Set the clone protocol, "ssh" or "https"."""
    return _set(git_protocol=protocol)


def with_git_repo(repo: str, ref: str) -> Option:
    """Set repository URL and git reference together."""
    return _set(git_repo=repo, git_ref=ref)


def with_token(token: str) -> Option:
    return _set(token=token)


def with_coverage(minimum: float) -> Option:
    """Set the minimum coverage percentage enforced by the test step."""
    return _set(coverage=minimum)


def with_go_version(version: str) -> Option:
    return _set(go_version=version)


def with_java_version(version: str) -> Option:
    return _set(java_version=version)


def with_ssh_private_key(key: str) -> Option:
    return _set(ssh_private_key=key)


def with_git_user_email(email: str) -> Option:
    return _set(git_user_email=email)


def with_git_user_name(name: str) -> Option:
    return _set(git_user_name=name)


def with_image_name(name: str) -> Option:
    return _set(image_name=name)


def with_image_tag(tag: str) -> Option:
    return _set(image_tag=tag)


def with_version(version: str) -> Option:
    return _set(version=version)
