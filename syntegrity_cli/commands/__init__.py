"""
CLI command modules.
"""

from syntegrity_cli.commands import info, run

__all__ = ["info", "run"]
