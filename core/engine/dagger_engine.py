"""
Dagger Engine Binding

Production implementation of the Engine capability interface on top of the
Dagger Python SDK. The underlying client stays reachable through the
``client`` attribute for callers that need engine features outside the
narrow interface.
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional, Sequence

import dagger

from core.engine.protocols import CacheVolume, Container, Directory, Secret


logger = logging.getLogger(__name__)


class DaggerEngine:
    """
    Engine backed by a connected Dagger client.

    Usage:
        async with connect_engine() as engine:
            pipeline = registry.get("go-kit", engine, cfg)
    """

    def __init__(self, client: Any) -> None:
        self.client = client

    def host_directory(self, path: str, exclude: Optional[Sequence[str]] = None) -> Directory:
        return self.client.host().directory(path, exclude=list(exclude or []))

    def container(self) -> Container:
        return self.client.container()

    def build_image(self, context: Directory) -> Container:
        return context.docker_build()  # type: ignore[attr-defined]

    def cache_volume(self, name: str) -> CacheVolume:
        return self.client.cache_volume(name)

    def set_secret(self, name: str, plaintext: str) -> Secret:
        return self.client.set_secret(name, plaintext)


@asynccontextmanager
async def connect_engine(log_output: Any = None) -> AsyncIterator[DaggerEngine]:
    """
    Open a Dagger session and yield an engine bound to it.

    Args:
        log_output: Stream for engine progress output (defaults to stderr)
    """
    config = dagger.Config(log_output=log_output or sys.stderr)
    async with dagger.connection(config):
        logger.debug("Connected to Dagger engine")
        yield DaggerEngine(dagger.dag)
