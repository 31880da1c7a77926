"""
CLI Info Commands

List registered pipelines and lifecycle steps.
"""

from __future__ import annotations

import json
from argparse import Namespace

from pipelines import Step, create_default_registry
from pipelines.repos import REPOSITORIES


EXIT_SUCCESS = 0


def pipelines_cmd(args: Namespace) -> int:
    """Handle pipelines command."""
    registry = create_default_registry()
    names = sorted(registry.list())

    if getattr(args, "json", False):
        data = [
            {
                "name": name,
                "https_url": REPOSITORIES[name].https_url if name in REPOSITORIES else None,
                "ssh_url": REPOSITORIES[name].ssh_url if name in REPOSITORIES else None,
            }
            for name in names
        ]
        print(json.dumps(data, indent=2))
        return EXIT_SUCCESS

    print("Available pipelines:")
    for name in names:
        print(f"  - {name}")
    return EXIT_SUCCESS


def steps_cmd(args: Namespace) -> int:
    """Handle steps command."""
    steps = [step.value for step in Step.ordered()]

    if getattr(args, "json", False):
        print(json.dumps(steps))
        return EXIT_SUCCESS

    print("Lifecycle steps (in order):")
    for i, step in enumerate(steps, start=1):
        print(f"  {i}. {step}")
    return EXIT_SUCCESS
