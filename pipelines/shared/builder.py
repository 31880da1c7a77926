"""
Go Builder

Compiles a Go binary inside a golang container with shared module and
build caches, and exports it to the host.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Mapping, Optional

from core.context import RunContext

if TYPE_CHECKING:
    from core.engine import Container, Directory, Engine


logger = logging.getLogger(__name__)


DEFAULT_GO_VERSION = "1.21"
MOD_CACHE = "go-mod-cache"
BUILD_CACHE = "go-build-cache"
MOD_CACHE_PATH = "/go/pkg/mod"
BUILD_CACHE_PATH = "/root/.cache/go-build"
APP_DIR = "/app"


def go_container(engine: "Engine", src: "Directory", image: str) -> "Container":
    """Golang container with the working tree at /app and both Go caches mounted."""
    return (
        engine.container()
        .from_(image)
        .with_mounted_directory(APP_DIR, src)
        .with_mounted_cache(MOD_CACHE_PATH, engine.cache_volume(MOD_CACHE))
        .with_mounted_cache(BUILD_CACHE_PATH, engine.cache_volume(BUILD_CACHE))
        .with_workdir(APP_DIR)
        .with_env_variable("GOPATH", "/go")
        .with_env_variable("GOCACHE", BUILD_CACHE_PATH)
    )


class GoBuilder:
    """
    Builds ``main.go`` of a working tree into a stripped binary.

    Usage:
        builder = GoBuilder(engine, src, go_version="1.22")
        await builder.build(ctx, "bin/app", env={"CGO_ENABLED": "0"})
    """

    def __init__(self, engine: "Engine", src: "Directory", go_version: str = DEFAULT_GO_VERSION) -> None:
        self.engine = engine
        self.src = src
        self.go_version = go_version or DEFAULT_GO_VERSION

    def container(self, target: str, env: Optional[Mapping[str, str]] = None) -> "Container":
        container = go_container(self.engine, self.src, f"golang:{self.go_version}")
        for name, value in (env or {}).items():
            container = container.with_env_variable(name, value)
        return (
            container
            .with_exec(["go", "mod", "tidy"])
            .with_exec(["go", "build", "-ldflags=-s -w", "-o", target, "main.go"])
        )

    async def build(
        self,
        ctx: RunContext,
        out_path: str,
        target: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> str:
        """
        Build and export the binary.

        Args:
            ctx: Run context
            out_path: Host path to export the binary to
            target: Output path inside /app (defaults to out_path)
            env: Extra environment variables for the build

        Returns:
            The host path the binary was exported to
        """
        target = target or out_path
        binary = self.container(target, env).file(f"{APP_DIR}/{target}")
        await ctx.guard(binary.export(out_path))
        logger.info(f"Binary built at {out_path} (go {self.go_version})")
        return out_path
