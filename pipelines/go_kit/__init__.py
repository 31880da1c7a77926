"""Go library pipeline ("go-kit")."""

from .pipeline import GoKitPipeline

__all__ = ["GoKitPipeline"]
