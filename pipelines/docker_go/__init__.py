"""Docker image pipeline ("docker-go")."""

from .pipeline import DockerGoPipeline

__all__ = ["DockerGoPipeline"]
