"""
Repository Table

Bundled clone URLs for the organisation's repositories, keyed by logical
name. The module-level table is read-only; callers needing extra entries
build a RepoCatalog and register into that instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterator, Mapping, Optional


@dataclass(frozen=True)
class RepoDescriptor:
    """HTTPS and SSH clone URLs for one repository."""
    https_url: str
    ssh_url: str

    def url_for(self, protocol: str) -> str:
        """URL for ``protocol`` ("https" or "ssh", case-sensitive), else empty."""
        if protocol == "https":
            return self.https_url
        if protocol == "ssh":
            return self.ssh_url
        return ""


def _gitlab(name: str) -> RepoDescriptor:
    return RepoDescriptor(
        https_url=f"https://gitlab.com/syntegrity/{name}.git",
        ssh_url=f"git@gitlab.com:syntegrity/{name}.git",
    )


REPOSITORIES: Mapping[str, RepoDescriptor] = MappingProxyType({
    "go-kit": _gitlab("go-kit"),
    "docker-go": _gitlab("docker-go"),
})


def get_repo_url(name: str, protocol: str) -> str:
    """
    Look up the clone URL for a bundled repository.

    Args:
        name: Logical repository name (case-sensitive)
        protocol: "https" or "ssh" (case-sensitive)

    Returns:
        The URL, or "" for an unknown name or protocol
    """
    descriptor = REPOSITORIES.get(name)
    if descriptor is None:
        return ""
    return descriptor.url_for(protocol)


class RepoCatalog:
    """
    Extensible repository table seeded from the bundled entries.

    Registrations only affect this catalog, never REPOSITORIES.
    """

    def __init__(self, entries: Optional[Mapping[str, RepoDescriptor]] = None) -> None:
        self._entries: dict[str, RepoDescriptor] = dict(REPOSITORIES if entries is None else entries)

    def register(self, name: str, descriptor: RepoDescriptor) -> None:
        """Add or replace an entry (last writer wins)."""
        self._entries[name] = descriptor

    def get(self, name: str) -> Optional[RepoDescriptor]:
        return self._entries.get(name)

    def url(self, name: str, protocol: str) -> str:
        descriptor = self._entries.get(name)
        return descriptor.url_for(protocol) if descriptor else ""

    def names(self) -> list[str]:
        return sorted(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
