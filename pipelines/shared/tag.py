"""
Tag Generation

Derives a release tag for the working tree and persists it to ``.tag_name``
for downstream steps.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from core.context import RunContext
from core.schemas.errors import InvalidConfigException

if TYPE_CHECKING:
    from core.engine import Directory, Engine


logger = logging.getLogger(__name__)


TAG_FILE = ".tag_name"
TAG_FILE_MODE = 0o644
GIT_IMAGE = "alpine/git"
TAG_PREFIX = "v-"


async def generate_tag(
    ctx: RunContext,
    engine: "Engine",
    src: "Directory",
    workdir: Optional[Path] = None,
) -> str:
    """
    Produce a tag and write it to ``<workdir>/.tag_name``.

    ``TAG_NAME`` wins when set; otherwise the tag is ``v-`` plus the short
    HEAD commit of the working tree.

    Args:
        ctx: Run context
        engine: Engine used to run git against the working tree
        src: Working tree
        workdir: Host directory for the tag file (defaults to the current directory)

    Returns:
        The generated tag
    """
    tag = ctx.env.get("TAG_NAME")
    if tag:
        logger.info(f"Using tag from TAG_NAME: {tag}")
    else:
        output = await ctx.guard(
            engine.container()
            .from_(GIT_IMAGE)
            .with_mounted_directory("/repo", src)
            .with_workdir("/repo")
            .with_exec(["git", "rev-parse", "--short", "HEAD"])
            .stdout()
        )
        sha = output.strip()
        if not sha:
            raise InvalidConfigException("git rev-parse returned no commit for HEAD", field_name="tag")
        tag = f"{TAG_PREFIX}{sha}"
        logger.info(f"Generated tag from HEAD: {tag}")

    save_tag(tag, workdir)
    return tag


def save_tag(tag: str, workdir: Optional[Path] = None) -> Path:
    """Write the tag file (mode 0644, no trailing newline) and return its path."""
    path = Path(workdir or Path.cwd()) / TAG_FILE
    path.write_text(tag)
    os.chmod(path, TAG_FILE_MODE)
    return path


def read_tag(workdir: Optional[Path] = None) -> Optional[str]:
    """Read a previously saved tag, or None if there is none."""
    path = Path(workdir or Path.cwd()) / TAG_FILE
    if not path.is_file():
        return None
    return path.read_text().strip() or None
