"""
Docker Image Pipeline

Tests a Go service, builds its Dockerfile into an image, tags it for the
registry and publishes it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from core.config import Configuration
from core.context import RunContext
from core.schemas.errors import (
    CancelledException,
    InvalidConfigException,
    MissingTokenException,
    PublishFailedException,
)
from pipelines.base import BasePipeline, HookManager, Step

if TYPE_CHECKING:
    from core.engine import Engine, Secret
    from pipelines.shared.cloner import Cloner


logger = logging.getLogger(__name__)


TEST_IMAGE = "golang:1.21"
DEFAULT_IMAGE_TAG = "dev"
CI_REGISTRY_USER = "gitlab-ci-token"
CI_SECRET_NAME = "ci-job-token"
LOCAL_SECRET_NAME = "local-registry-password"


def validate_publish_target(branch: str, registry: str, image_tag: str) -> None:
    """
    Check the fields a publish needs.

    Raises:
        InvalidConfigException: For the first empty field (branch, registry, tag)
    """
    if not branch:
        raise InvalidConfigException("branch name is not defined", field_name="branch_name")
    if not registry:
        raise InvalidConfigException("registry is not defined", field_name="registry_url")
    if not image_tag:
        raise InvalidConfigException("image tag is not defined", field_name="image_tag")


class DockerGoPipeline(BasePipeline):
    """
    Pipeline for the docker-go image.

    Tag derives the effective image tag and the registry path and keeps them
    on the instance for Push; the Configuration itself is never modified.
    """

    pipeline_name = "docker-go"

    def __init__(
        self,
        engine: Optional["Engine"],
        config: Configuration,
        *,
        cloner: Optional["Cloner"] = None,
        hooks: Optional[HookManager] = None,
    ) -> None:
        super().__init__(engine, config, cloner=cloner, hooks=hooks)
        self.registry = ""
        self.image_tag = ""

    @property
    def reference(self) -> str:
        """Full image reference ``<registry>:<tag>`` (empty before Tag)."""
        if not self.registry or not self.image_tag:
            return ""
        return f"{self.registry}:{self.image_tag}"

    async def test(self, ctx: RunContext) -> None:
        src = self.require_source(Step.TEST)
        engine = self.require_engine()
        logger.info(f"{self.name}: running tests")
        await ctx.guard(
            engine.container()
            .from_(TEST_IMAGE)
            .with_mounted_directory("/app", src)
            .with_workdir("/app")
            .with_exec(["go", "test", "-v", "./..."])
            .sync()
        )
        logger.info(f"{self.name}: tests passed")

    async def build(self, ctx: RunContext) -> None:
        src = self.require_source(Step.BUILD)
        engine = self.require_engine()
        entries = await ctx.guard(src.entries())
        logger.info(f"{self.name}: building image from {len(entries)} entries")
        for entry in entries:
            logger.debug(f"  - {entry}")
        self.image = engine.build_image(src)

    async def package(self, ctx: RunContext) -> None:
        logger.debug(f"{self.name}: package is a no-op")

    async def tag(self, ctx: RunContext) -> None:
        self.require_image(Step.TAG)

        image_tag = self.config.image_tag
        if not image_tag:
            image_tag = ctx.env.get("CI_COMMIT_SHORT_SHA")
        if not image_tag:
            logger.warning(f"CI_COMMIT_SHORT_SHA not available; using '{DEFAULT_IMAGE_TAG}' as the image tag")
            image_tag = DEFAULT_IMAGE_TAG

        registry = f"{self.config.registry_url}/{self.name}" if self.config.registry_url else ""
        validate_publish_target(self.config.branch_name, registry, image_tag)

        self.registry = registry
        self.image_tag = image_tag
        logger.info(f"{self.name}: image prepared as {self.reference}")

    def registry_auth(self, ctx: RunContext) -> tuple[str, "Secret"]:
        """
        Pick registry credentials and register the secret with the engine.

        Inside GitLab CI the job token is used; elsewhere the configured
        registry user and token.

        Raises:
            MissingTokenException: If the selected source has no secret
            InvalidConfigException: If the local path has no registry user
        """
        engine = self.require_engine()
        if ctx.env.flag("GITLAB_CI") or ctx.env.flag("CI"):
            token = ctx.env.get("CI_JOB_TOKEN")
            if not token:
                raise MissingTokenException("CI_JOB_TOKEN is not available in CI")
            logger.info("Using GitLab CI registry authentication")
            return CI_REGISTRY_USER, engine.set_secret(CI_SECRET_NAME, token)

        if not self.config.registry_user:
            raise InvalidConfigException("registry user is not defined", field_name="registry_user")
        if not self.config.registry_token:
            raise MissingTokenException("registry token is not defined")
        logger.info("Using local registry authentication")
        return self.config.registry_user, engine.set_secret(LOCAL_SECRET_NAME, self.config.registry_token)

    async def push(self, ctx: RunContext) -> None:
        image = self.require_image(Step.PUSH)
        validate_publish_target(self.config.branch_name, self.registry, self.image_tag)

        username, secret = self.registry_auth(ctx)
        reference = self.reference
        logger.info(f"{self.name}: pushing {reference}")
        try:
            address = await ctx.guard(
                image.with_registry_auth(self.registry, username, secret).publish(reference)
            )
        except CancelledException:
            raise
        except Exception as e:
            raise PublishFailedException(
                f"failed to publish {reference}: {e}", reference=reference
            ) from e
        logger.info(f"{self.name}: published {address}")
