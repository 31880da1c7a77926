"""
Pipeline Registry

Maps pipeline names to factories. Registries are plain instances with no
module-level state; create_default_registry() builds one pre-loaded with
the bundled pipelines.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterator, Optional

from core.config import Configuration
from core.schemas.errors import NotFoundException
from pipelines.base import Pipeline, PipelineFactory

if TYPE_CHECKING:
    from core.engine import Engine


logger = logging.getLogger(__name__)


class PipelineRegistry:
    """
    Registry of pipeline factories.

    Usage:
        registry = PipelineRegistry()
        registry.register("go-kit", GoKitPipeline.create)

        pipeline = registry.get("go-kit", engine, cfg)
    """

    def __init__(self) -> None:
        self._factories: dict[str, PipelineFactory] = {}

    def register(self, name: str, factory: PipelineFactory) -> None:
        """
        Record a factory for ``name``.

        Re-registering a name replaces the earlier factory, which lets tests
        install doubles.
        """
        if name in self._factories:
            logger.debug(f"Replacing pipeline factory for {name}")
        self._factories[name] = factory

    def get(self, name: str, engine: Optional["Engine"], config: Configuration) -> Pipeline:
        """
        Instantiate the pipeline registered under ``name``.

        Raises:
            NotFoundException: If no factory is registered for the name
        """
        factory = self._factories.get(name)
        if factory is None:
            raise NotFoundException(name)
        return factory(engine, config)

    def list(self) -> set[str]:
        """Registered names (unordered)."""
        return set(self._factories)

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._factories))

    def __len__(self) -> int:
        return len(self._factories)


def create_default_registry() -> PipelineRegistry:
    """Create a registry with go-kit, docker-go and syntegrity-infra."""
    from pipelines.docker_go import DockerGoPipeline
    from pipelines.go_kit import GoKitPipeline
    from pipelines.infra import InfraPipeline

    registry = PipelineRegistry()
    for pipeline_cls in (GoKitPipeline, DockerGoPipeline, InfraPipeline):
        registry.register(pipeline_cls.pipeline_name, pipeline_cls.create)
    return registry
