"""
Engine Capability Interface

The narrow surface of the container-graph engine that pipelines and clone
strategies depend on. Method names and call shapes follow the Dagger Python
SDK, so Dagger's own objects satisfy these protocols structurally and the
production binding never has to wrap them.

Tests substitute in-memory stand-ins (see tests/fixtures/engine.py).
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence, runtime_checkable


class Secret(Protocol):
    """Opaque handle to a value held in the engine's secret store."""


class CacheVolume(Protocol):
    """Named, engine-owned persistent mount."""


@runtime_checkable
class File(Protocol):
    """A file produced inside the engine."""

    async def contents(self) -> str:
        ...

    async def export(self, path: str) -> Any:
        ...


@runtime_checkable
class Directory(Protocol):
    """A directory handle (host directory, clone result, build output)."""

    async def entries(self) -> list[str]:
        ...


@runtime_checkable
class Container(Protocol):
    """
    An immutable container definition.

    Every ``with_*`` call returns a new container; nothing executes until
    one of the async terminal operations (stdout, sync, publish, entries,
    contents, export) is awaited.
    """

    def from_(self, address: str) -> "Container":
        ...

    def with_env_variable(self, name: str, value: str) -> "Container":
        ...

    def with_workdir(self, path: str) -> "Container":
        ...

    def with_mounted_directory(self, path: str, source: Directory) -> "Container":
        ...

    def with_mounted_cache(self, path: str, cache: CacheVolume) -> "Container":
        ...

    def with_new_file(
        self,
        path: str,
        contents: str,
        *,
        permissions: Optional[int] = None,
        owner: Optional[str] = None,
    ) -> "Container":
        ...

    def with_mounted_secret(
        self,
        path: str,
        source: Secret,
        *,
        owner: Optional[str] = None,
        mode: Optional[int] = None,
    ) -> "Container":
        ...

    def with_exec(
        self,
        args: Sequence[str],
        *,
        redirect_stdout: Optional[str] = None,
    ) -> "Container":
        ...

    def with_registry_auth(self, address: str, username: str, secret: Secret) -> "Container":
        ...

    def directory(self, path: str) -> Directory:
        ...

    def file(self, path: str) -> File:
        ...

    async def stdout(self) -> str:
        ...

    async def sync(self) -> "Container":
        ...

    async def publish(self, address: str) -> str:
        ...


@runtime_checkable
class Engine(Protocol):
    """
    Capabilities the core requires from the container-graph engine.
    """

    def host_directory(self, path: str, exclude: Optional[Sequence[str]] = None) -> Directory:
        """Open a host path as a directory handle, skipping excluded patterns."""
        ...

    def container(self) -> Container:
        """Start an empty container definition."""
        ...

    def build_image(self, context: Directory) -> Container:
        """Build an image from a directory containing a Dockerfile."""
        ...

    def cache_volume(self, name: str) -> CacheVolume:
        """Allocate or look up a named cache volume."""
        ...

    def set_secret(self, name: str, plaintext: str) -> Secret:
        """Register a secret and return its opaque handle."""
        ...
