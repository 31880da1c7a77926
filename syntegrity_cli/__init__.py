"""
Syntegrity Dagger CLI

Command-line interface for running CI pipelines on the Dagger engine.

Usage:
    python -m syntegrity_cli run --pipeline go-kit --coverage 90
    python -m syntegrity_cli run --pipeline docker-go --skip-push
    python -m syntegrity_cli step test --pipeline go-kit
    python -m syntegrity_cli pipelines
"""

__version__ = "0.1.0"
