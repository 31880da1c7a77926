"""
CLI Main Entry Point

Parses command-line arguments and dispatches to subcommands.

Usage:
    python -m syntegrity_cli run [--pipeline NAME] [--coverage N] [--branch B] [--env E]
                                 [--skip-push] [--only-build] [--only-test] [--verbose]
                                 [--git-repo URL] [--git-ref REF] [--git-auth ssh|https]
                                 [--steps a,b] [--tolerate-unimplemented] [--json]
    python -m syntegrity_cli step <setup|build|test|package|tag|push> [--pipeline NAME]
    python -m syntegrity_cli pipelines [--json]
    python -m syntegrity_cli steps [--json]
    python -m syntegrity_cli config --init|--show

Environment Variables:
    SYNTEGRITY_PIPELINE         Pipeline name (default: go-kit)
    SYNTEGRITY_ENV              Environment label
    SYNTEGRITY_COVERAGE         Minimum coverage percent
    SYNTEGRITY_LOG_LEVEL        Log level (default: INFO)
    SYNTEGRITY_LOG_FILE         Also log to this file
    CI, CI_JOB_TOKEN            GitLab CI credentials
    GITLAB_PAT                  Personal access token for cloning
    SSH_PRIVATE_KEY             SSH key for cloning
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import traceback
from pathlib import Path
from typing import Sequence

from dotenv import load_dotenv

from syntegrity_cli import __version__
from syntegrity_cli.commands import info, run
from syntegrity_cli.config import (
    DEFAULT_CONFIG_FILE,
    CLIConfig,
    get_default_config_template,
    load_config,
)


# Exit codes
EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1
EXIT_STEP_FAILED = 2

STEP_CHOICES = ["setup", "build", "test", "package", "tag", "push"]


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Configure logging for the CLI."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
        force=True,
    )


def _add_pipeline_arguments(parser: argparse.ArgumentParser) -> None:
    """Arguments shared by run and step."""
    parser.add_argument(
        "--pipeline", "-p",
        type=str,
        default=None,
        help="Pipeline to run (default: from config file or go-kit)",
    )
    parser.add_argument(
        "--coverage",
        type=float,
        default=None,
        help="Minimum coverage percent (default: 90)",
    )
    parser.add_argument(
        "--branch",
        type=str,
        default=None,
        help="Branch name (default: develop)",
    )
    parser.add_argument(
        "--env",
        type=str,
        default=None,
        help="Environment label (default: dev)",
    )
    parser.add_argument(
        "--git-repo",
        type=str,
        default=None,
        help="Repository URL to clone (default: use the current directory)",
    )
    parser.add_argument(
        "--git-ref",
        type=str,
        default=None,
        help="Git reference to clone (default: main)",
    )
    parser.add_argument(
        "--git-auth",
        type=str,
        choices=["ssh", "https"],
        default=None,
        help="Clone protocol (default: https when CI_JOB_TOKEN is set, otherwise ssh)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        default=False,
        help="Enable debug logging",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Output machine-readable JSON summary",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Print tracebacks for unexpected errors",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="syntegrity",
        description="Syntegrity Dagger CLI - Build, test, tag and publish with Dagger pipelines.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help=f"Path to project configuration file (default: search for {DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (overrides config)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- run command ---
    run_parser = subparsers.add_parser(
        "run",
        help="Run a pipeline",
        description="Execute the lifecycle steps of a pipeline on the Dagger engine.",
    )
    _add_pipeline_arguments(run_parser)
    run_parser.add_argument(
        "--skip-push",
        action="store_true",
        default=False,
        help="Do not run the push step",
    )
    run_parser.add_argument(
        "--only-build",
        action="store_true",
        default=False,
        help="Run only setup and build",
    )
    run_parser.add_argument(
        "--only-test",
        action="store_true",
        default=False,
        help="Run only setup and test",
    )
    run_parser.add_argument(
        "--steps",
        type=str,
        default=None,
        help="Comma-separated steps to run (run in lifecycle order)",
    )
    run_parser.add_argument(
        "--tolerate-unimplemented",
        action="store_true",
        default=False,
        help="Skip steps a pipeline does not implement instead of failing",
    )
    run_parser.set_defaults(func=run.run_cmd)

    # --- step command ---
    step_parser = subparsers.add_parser(
        "step",
        help="Run a single lifecycle step",
        description="Execute one step (after setup) for debugging.",
    )
    step_parser.add_argument("step_name", type=str, choices=STEP_CHOICES, help="Step to run")
    _add_pipeline_arguments(step_parser)
    step_parser.set_defaults(func=run.step_cmd)

    # --- pipelines command ---
    pipelines_parser = subparsers.add_parser(
        "pipelines",
        help="List available pipelines",
    )
    pipelines_parser.add_argument("--json", action="store_true", default=False, help="JSON output")
    pipelines_parser.set_defaults(func=info.pipelines_cmd)

    # --- steps command ---
    steps_parser = subparsers.add_parser(
        "steps",
        help="List lifecycle steps",
    )
    steps_parser.add_argument("--json", action="store_true", default=False, help="JSON output")
    steps_parser.set_defaults(func=info.steps_cmd)

    # --- config command ---
    config_parser = subparsers.add_parser(
        "config",
        help="Manage project configuration",
        description="Initialize or display configuration.",
    )
    config_parser.add_argument(
        "--init",
        action="store_true",
        default=False,
        help="Create a template configuration file",
    )
    config_parser.add_argument(
        "--show",
        action="store_true",
        default=False,
        help="Show the resolved configuration",
    )
    config_parser.add_argument(
        "--path",
        type=str,
        default=DEFAULT_CONFIG_FILE,
        help=f"Path for config file (default: {DEFAULT_CONFIG_FILE})",
    )
    config_parser.set_defaults(func=config_cmd)

    return parser


def config_cmd(args: argparse.Namespace) -> int:
    """Handle config command."""
    if args.init:
        config_path = Path(args.path)
        if config_path.exists():
            print(f"Error: Config file already exists: {config_path}", file=sys.stderr)
            return EXIT_RUNTIME_ERROR

        config_path.write_text(get_default_config_template())
        print(f"Created configuration file: {config_path}")
        print("\nEdit this file to configure your pipeline.")
        print("You can also use environment variables (SYNTEGRITY_* prefix).")
        return EXIT_SUCCESS

    if args.show:
        cli_config: CLIConfig = getattr(args, "cli_config", CLIConfig())
        file_config = cli_config.file_config
        resolved = run.build_configuration(args, cli_config)
        config_dict = {
            "source": str(file_config.source) if file_config.source else None,
            "pipeline": run.resolve_pipeline_name(args, cli_config),
            "log_level": cli_config.log_level,
            "file": file_config.to_dict(),
            "configuration": resolved.to_dict(),
        }
        print(json.dumps(config_dict, indent=2))
        return EXIT_SUCCESS

    # Default: show help
    print("Usage: syntegrity config [--init|--show]")
    print("  --init  Create a template configuration file")
    print("  --show  Show the resolved configuration")
    return EXIT_SUCCESS


def main(argv: Sequence[str] | None = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0=success, 1=error, 2=step failed)
    """
    load_dotenv()
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_RUNTIME_ERROR

    # Load configuration
    try:
        config = load_config(args.config)
    except Exception as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    # Setup logging
    log_level = args.log_level or config.log_level
    if getattr(args, "verbose", False):
        log_level = "DEBUG"
    setup_logging(level=log_level, log_file=config.log_file)

    # Attach config to args for commands to use
    args.cli_config = config

    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    except Exception as e:
        if getattr(args, "debug", False):
            traceback.print_exc()
        else:
            print(f"Error: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR


if __name__ == "__main__":
    sys.exit(main())
