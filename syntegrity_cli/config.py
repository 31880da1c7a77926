"""
CLI Configuration

Settings for the CLI process itself (logging, timeouts) layered on top of
the project configuration file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from core.config import FileConfig, load_file_config


# Environment variable prefix
ENV_PREFIX = "SYNTEGRITY_"

DEFAULT_CONFIG_FILE = ".syntegrity-dagger.yml"


@dataclass
class CLIConfig:
    """Main CLI configuration."""

    # Logging
    log_level: str = "INFO"
    log_file: str | None = None

    # Whole-run timeout in seconds (0 = none)
    pipeline_timeout: int = 0

    # Project file (.syntegrity-dagger.yml) with env overrides applied
    file_config: FileConfig = field(default_factory=FileConfig)


def load_config(config_path: Path | None = None) -> CLIConfig:
    """
    Load configuration from the project file and environment.

    Environment variables override file settings.

    Args:
        config_path: Optional path to the project file (searched for when None)

    Returns:
        Merged configuration
    """
    file_config = load_file_config(config_path)
    config = CLIConfig(file_config=file_config)

    if file_config.logging.level:
        config.log_level = file_config.logging.level
    if os.getenv(f"{ENV_PREFIX}LOG_FILE"):
        config.log_file = os.getenv(f"{ENV_PREFIX}LOG_FILE")
    if os.getenv(f"{ENV_PREFIX}PIPELINE_TIMEOUT"):
        config.pipeline_timeout = int(os.getenv(f"{ENV_PREFIX}PIPELINE_TIMEOUT", "0"))

    return config


def get_default_config_template() -> str:
    """Get a template project configuration file."""
    return """# Syntegrity Dagger pipeline configuration
pipeline:
  name: go-kit
  environment: dev
  coverage: 90
  goVersion: "1.21"
  steps:
    - setup
    - build
    - test
    - tag

registry:
  baseUrl: registry.gitlab.com/syntegrity
  image: go-kit
  user: ""

git:
  protocol: https

logging:
  level: INFO
"""
