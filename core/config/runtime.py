"""
File Configuration

Loads the optional ``.syntegrity-dagger.yml`` project file and environment
overrides, and converts both into Configuration options.

Precedence (lowest to highest): defaults < file < environment < CLI flags.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from core.config.options import (
    Configuration,
    Option,
    with_commit_sha,
    with_branch,
    with_coverage,
    with_env,
    with_git_protocol,
    with_go_version,
    with_image_name,
    with_registry,
    with_registry_user,
    with_ssh_private_key,
    with_token,
)
from core.context import EnvironmentView, ProcessEnvironment
from core.schemas.errors import InvalidConfigException

load_dotenv()

logger = logging.getLogger(__name__)


# Names searched by find_config_file, in order
CONFIG_FILE_NAMES = (
    ".syntegrity-dagger.yml",
    ".syntegrity-dagger.yaml",
    "syntegrity-dagger.yml",
    "syntegrity-dagger.yaml",
    ".github/syntegrity-dagger.yml",
    ".github/syntegrity-dagger.yaml",
)

# Lifecycle step names accepted in the ``pipeline.steps`` list
LIFECYCLE_STEPS = ("setup", "build", "test", "package", "tag", "push")

ENV_PREFIX = "SYNTEGRITY_"


@dataclass
class PipelineSection:
    """The ``pipeline:`` block."""
    name: str = ""
    environment: str = ""
    coverage: float = 0.0
    go_version: str = ""
    steps: list[str] = field(default_factory=list)


@dataclass
class RegistrySection:
    """The ``registry:`` block."""
    base_url: str = ""
    image: str = ""
    user: str = ""


@dataclass
class GitSection:
    """The ``git:`` block."""
    protocol: str = ""
    repo: str = ""
    ref: str = ""


@dataclass
class LoggingSection:
    level: str = ""


@dataclass
class FileConfig:
    """
    Project-level pipeline configuration.

    Can be loaded from:
    - YAML file (``.syntegrity-dagger.yml``)
    - Environment variables (``SYNTEGRITY_*``)
    - Programmatic construction
    """
    pipeline: PipelineSection = field(default_factory=PipelineSection)
    registry: RegistrySection = field(default_factory=RegistrySection)
    git: GitSection = field(default_factory=GitSection)
    logging: LoggingSection = field(default_factory=LoggingSection)
    source: Optional[Path] = None
    extra: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def _get_env_overrides(env: EnvironmentView) -> dict[str, Any]:
        """
        Get configuration overrides from environment variables.

        Supported variables:
        - SYNTEGRITY_PIPELINE: pipeline name
        - SYNTEGRITY_ENV: environment label
        - SYNTEGRITY_COVERAGE: minimum coverage percent
        - SYNTEGRITY_GO_VERSION: Go toolchain version
        - SYNTEGRITY_GIT_PROTOCOL: clone protocol (ssh/https)
        - SYNTEGRITY_LOG_LEVEL: log level
        """
        overrides: dict[str, Any] = {}

        if env.get(f"{ENV_PREFIX}PIPELINE"):
            overrides.setdefault("pipeline", {})["name"] = env.get(f"{ENV_PREFIX}PIPELINE")
        if env.get(f"{ENV_PREFIX}ENV"):
            overrides.setdefault("pipeline", {})["environment"] = env.get(f"{ENV_PREFIX}ENV")
        if env.get(f"{ENV_PREFIX}COVERAGE"):
            raw = env.get(f"{ENV_PREFIX}COVERAGE")
            try:
                overrides.setdefault("pipeline", {})["coverage"] = float(raw)
            except ValueError as e:
                raise InvalidConfigException(
                    f"invalid {ENV_PREFIX}COVERAGE value: {raw!r}",
                    field_name="coverage",
                ) from e
        if env.get(f"{ENV_PREFIX}GO_VERSION"):
            overrides.setdefault("pipeline", {})["go_version"] = env.get(f"{ENV_PREFIX}GO_VERSION")
        if env.get(f"{ENV_PREFIX}GIT_PROTOCOL"):
            overrides.setdefault("git", {})["protocol"] = env.get(f"{ENV_PREFIX}GIT_PROTOCOL")
        if env.get(f"{ENV_PREFIX}LOG_LEVEL"):
            overrides.setdefault("logging", {})["level"] = env.get(f"{ENV_PREFIX}LOG_LEVEL")

        return overrides

    @classmethod
    def from_yaml(cls, path: str | Path) -> "FileConfig":
        """Load configuration from a YAML file."""
        import yaml
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise InvalidConfigException(f"failed to parse YAML configuration {path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise InvalidConfigException(f"configuration root must be a mapping: {path}")

        config = cls.from_dict(data)
        config.source = path
        return config

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FileConfig":
        """Load configuration from a dictionary (supports partial data and camelCase keys)."""
        pipeline_data = _section(data, "pipeline")
        registry_data = _section(data, "registry")
        git_data = _section(data, "git")
        logging_data = _section(data, "logging")

        raw_coverage = pipeline_data.get("coverage", 0.0) or 0.0
        try:
            coverage = float(raw_coverage)
        except (TypeError, ValueError) as e:
            raise InvalidConfigException(
                f"invalid coverage value: {raw_coverage!r}",
                field_name="pipeline.coverage",
            ) from e

        steps = pipeline_data.get("steps", []) or []
        if not isinstance(steps, list):
            raise InvalidConfigException(
                f"pipeline steps must be a list, got {type(steps).__name__}",
                field_name="pipeline.steps",
            )

        pipeline = PipelineSection(
            name=str(pipeline_data.get("name", "") or ""),
            environment=str(pipeline_data.get("environment", "") or ""),
            coverage=coverage,
            go_version=str(pipeline_data.get("goVersion", pipeline_data.get("go_version", "")) or ""),
            steps=[str(s) for s in steps],
        )
        registry = RegistrySection(
            base_url=str(registry_data.get("baseUrl", registry_data.get("base_url", "")) or ""),
            image=str(registry_data.get("image", "") or ""),
            user=str(registry_data.get("user", "") or ""),
        )
        git = GitSection(
            protocol=str(git_data.get("protocol", "") or ""),
            repo=str(git_data.get("repo", "") or ""),
            ref=str(git_data.get("ref", "") or ""),
        )
        logging_section = LoggingSection(level=str(logging_data.get("level", "") or ""))

        known = {"pipeline", "registry", "git", "logging"}
        return cls(
            pipeline=pipeline,
            registry=registry,
            git=git,
            logging=logging_section,
            extra={k: v for k, v in data.items() if k not in known},
        )

    @classmethod
    def from_env(cls, env: Optional[EnvironmentView] = None) -> "FileConfig":
        """Load configuration purely from environment variables."""
        return cls.from_dict(cls._get_env_overrides(env or ProcessEnvironment()))

    def with_env_overrides(self, env: Optional[EnvironmentView] = None) -> "FileConfig":
        """
        Return a new config with environment variable overrides applied.

        This allows loading from a file first, then overlaying env vars.
        """
        overrides = self._get_env_overrides(env or ProcessEnvironment())
        if not overrides:
            return self

        new_config = copy.deepcopy(self)
        for section, values in overrides.items():
            target = getattr(new_config, section)
            for key, value in values.items():
                setattr(target, key, value)
        return new_config

    def validate(self) -> None:
        """
        Validate the loaded configuration.

        Raises:
            InvalidConfigException: If the pipeline name is missing, no steps
                are listed, or a step is not a lifecycle step
        """
        if not self.pipeline.name:
            raise InvalidConfigException("pipeline name is required", field_name="pipeline.name")
        if not self.pipeline.steps:
            raise InvalidConfigException(
                "at least one step must be defined", field_name="pipeline.steps"
            )
        for step in self.pipeline.steps:
            if step not in LIFECYCLE_STEPS:
                raise InvalidConfigException(f"invalid step: {step}", field_name="pipeline.steps")

    def to_options(self) -> list[Option]:
        """Convert file settings into Configuration options (empty values are skipped)."""
        options: list[Option] = []
        if self.pipeline.environment:
            options.append(with_env(self.pipeline.environment))
        if self.pipeline.coverage > 0:
            options.append(with_coverage(self.pipeline.coverage))
        if self.pipeline.go_version:
            options.append(with_go_version(self.pipeline.go_version))
        if self.registry.base_url:
            base_url = self.registry.base_url
            options.append(lambda cfg: with_registry(base_url, cfg.registry_token)(cfg))
        if self.registry.image:
            options.append(with_image_name(self.registry.image))
        if self.registry.user:
            options.append(with_registry_user(self.registry.user))
        if self.git.protocol:
            options.append(with_git_protocol(self.git.protocol))
        if self.git.repo or self.git.ref:
            options.append(_git_source(self.git.repo, self.git.ref))
        return options

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a dictionary in file (camelCase) form."""
        return {
            "pipeline": {
                "name": self.pipeline.name,
                "environment": self.pipeline.environment,
                "coverage": self.pipeline.coverage,
                "goVersion": self.pipeline.go_version,
                "steps": list(self.pipeline.steps),
            },
            "registry": {
                "baseUrl": self.registry.base_url,
                "image": self.registry.image,
                "user": self.registry.user,
            },
            "git": {
                "protocol": self.git.protocol,
                "repo": self.git.repo,
                "ref": self.git.ref,
            },
            "logging": {
                "level": self.logging.level,
            },
        }


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise InvalidConfigException(
            f"configuration section '{name}' must be a mapping, got {type(section).__name__}",
            field_name=name,
        )
    return section


def _git_source(repo: str, ref: str) -> Option:
    def apply(cfg: Configuration) -> Configuration:
        return replace(cfg, git_repo=repo or cfg.git_repo, git_ref=ref or cfg.git_ref)
    return apply


def find_config_file(start: Optional[Path] = None, max_parents: int = 3) -> Optional[Path]:
    """
    Look for a configuration file in ``start`` and up to ``max_parents`` parents.

    Args:
        start: Directory to start from (defaults to the current directory)
        max_parents: How many parent directories to search

    Returns:
        Path to the first file found, or None
    """
    current = (start or Path.cwd()).resolve()
    for _ in range(max_parents + 1):
        for name in CONFIG_FILE_NAMES:
            candidate = current / name
            if candidate.is_file():
                return candidate
        if current.parent == current:
            break
        current = current.parent
    return None


def load_file_config(
    path: Optional[Path] = None,
    env: Optional[EnvironmentView] = None,
) -> FileConfig:
    """
    Load the project configuration file (if any) and apply env overrides.

    When ``path`` is None the file is located with find_config_file; a
    missing file is not an error and yields defaults.
    """
    if path is None:
        path = find_config_file()
    if path is None:
        logger.debug("No pipeline configuration file found; using defaults")
        config = FileConfig()
    else:
        logger.debug(f"Loading pipeline configuration from {path}")
        config = FileConfig.from_yaml(path)
    config = config.with_env_overrides(env)
    if config.source is not None:
        config.validate()
    return config


def env_options(env: Optional[EnvironmentView] = None) -> list[Option]:
    """
    Convert CI-provided environment variables into Configuration options.

    Supported variables:
    - CI_REGISTRY / CI_REGISTRY_PASSWORD: registry URL and token
    - CI_REGISTRY_USER: registry user
    - CI_COMMIT_SHA: commit identifier
    - CI_COMMIT_BRANCH: branch name
    - GITLAB_PAT: generic token
    - SSH_PRIVATE_KEY: SSH key
    """
    env = env or ProcessEnvironment()
    options: list[Option] = []
    if env.get("CI_REGISTRY"):
        options.append(with_registry(env.get("CI_REGISTRY"), env.get("CI_REGISTRY_PASSWORD")))
    if env.get("CI_REGISTRY_USER"):
        options.append(with_registry_user(env.get("CI_REGISTRY_USER")))
    if env.get("CI_COMMIT_SHA"):
        options.append(with_commit_sha(env.get("CI_COMMIT_SHA")))
    if env.get("CI_COMMIT_BRANCH"):
        options.append(with_branch(env.get("CI_COMMIT_BRANCH")))
    if env.get("GITLAB_PAT"):
        options.append(with_token(env.get("GITLAB_PAT")))
    if env.get("SSH_PRIVATE_KEY"):
        options.append(with_ssh_private_key(env.get("SSH_PRIVATE_KEY")))
    return options
