"""
Shared pipeline building blocks: credentials, clone strategies, the Go
builder and tag generation.
"""

from .cloner import (
    Cloner,
    GitCloneOptions,
    RepoCloner,
    clone_repo,
    validate_clone_options,
)
from .credentials import (
    CredentialVariant,
    Credentials,
    resolve_credentials,
    summarize,
    validate_credentials,
)
from .https_cloner import CloneSettings, HTTPSCloner
from .ssh_cloner import SSHCloner
from .builder import GoBuilder
from .tag import generate_tag, read_tag, save_tag

__all__ = [
    # Clone
    "Cloner",
    "GitCloneOptions",
    "RepoCloner",
    "clone_repo",
    "validate_clone_options",
    "CloneSettings",
    "HTTPSCloner",
    "SSHCloner",
    # Credentials
    "CredentialVariant",
    "Credentials",
    "resolve_credentials",
    "summarize",
    "validate_credentials",
    # Build & tag
    "GoBuilder",
    "generate_tag",
    "read_tag",
    "save_tag",
]
