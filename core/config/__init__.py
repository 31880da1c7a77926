"""
Configuration Module

Provides the immutable pipeline Configuration, its option builder, and
loading of the project configuration file.
"""

from .options import (
    Configuration,
    Option,
    new_config,
    with_branch,
    with_build_tag,
    with_commit_sha,
    with_coverage,
    with_env,
    with_git_protocol,
    with_git_repo,
    with_git_user_email,
    with_git_user_name,
    with_go_version,
    with_image_name,
    with_image_tag,
    with_java_version,
    with_only_build,
    with_only_test,
    with_registry,
    with_registry_user,
    with_skip_push,
    with_ssh_private_key,
    with_token,
    with_verbose,
    with_version,
)
from .runtime import (
    FileConfig,
    LIFECYCLE_STEPS,
    env_options,
    find_config_file,
    load_file_config,
)

__all__ = [
    "Configuration",
    "Option",
    "new_config",
    "with_env",
    "with_skip_push",
    "with_only_test",
    "with_only_build",
    "with_verbose",
    "with_registry",
    "with_registry_user",
    "with_build_tag",
    "with_commit_sha",
    "with_branch",
    "with_git_protocol",
    "with_git_repo",
    "with_token",
    "with_coverage",
    "with_go_version",
    "with_java_version",
    "with_ssh_private_key",
    "with_git_user_email",
    "with_git_user_name",
    "with_image_name",
    "with_image_tag",
    "with_version",
    "FileConfig",
    "LIFECYCLE_STEPS",
    "env_options",
    "find_config_file",
    "load_file_config",
]
