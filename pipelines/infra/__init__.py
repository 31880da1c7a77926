"""Infrastructure pipeline ("syntegrity-infra")."""

from .pipeline import InfraPipeline

__all__ = ["InfraPipeline"]
