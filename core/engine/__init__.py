"""
Engine Module

Narrow capability interface over the container-graph engine, plus the
Dagger production binding (imported lazily so the core does not require a
running engine to be importable).
"""

from .protocols import CacheVolume, Container, Directory, Engine, File, Secret

__all__ = [
    "Engine",
    "Container",
    "Directory",
    "File",
    "Secret",
    "CacheVolume",
]
