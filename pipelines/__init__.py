"""
Pipelines

Lifecycle contract, registry and the bundled pipelines.

Public API:
- Pipeline: Protocol every pipeline satisfies
- BasePipeline: Shared state and Setup template
- Step: Lifecycle steps in execution order
- HookManager: Per-pipeline before/after hooks
- PipelineRegistry: Name-to-factory mapping
- create_default_registry: Registry with go-kit, docker-go, syntegrity-infra
- get_repo_url: Bundled repository URL lookup
"""

from pipelines.base import (
    BasePipeline,
    HookFunc,
    HookKind,
    HookManager,
    Pipeline,
    PipelineFactory,
    Step,
)
from pipelines.registry import PipelineRegistry, create_default_registry
from pipelines.repos import REPOSITORIES, RepoCatalog, RepoDescriptor, get_repo_url


__all__ = [
    "Pipeline",
    "PipelineFactory",
    "BasePipeline",
    "Step",
    "HookFunc",
    "HookKind",
    "HookManager",
    "PipelineRegistry",
    "create_default_registry",
    "REPOSITORIES",
    "RepoCatalog",
    "RepoDescriptor",
    "get_repo_url",
]
