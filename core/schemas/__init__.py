"""
Schemas Module

Exports the error taxonomy shared by the pipeline core and the CLI.
"""

from .errors import (
    CancelledException,
    CloneFailedException,
    CoverageBelowException,
    CoverageParseException,
    CredentialException,
    CredentialFailure,
    ErrorCodes,
    InvalidConfigException,
    InvalidOptionsException,
    MissingKeyException,
    MissingTokenException,
    NoImageException,
    NotFoundException,
    NotSetUpException,
    PipelineError,
    PipelineException,
    PublishFailedException,
    StepFailedException,
    UnimplementedException,
)

__all__ = [
    "ErrorCodes",
    "PipelineError",
    "PipelineException",
    "InvalidOptionsException",
    "CredentialFailure",
    "CredentialException",
    "MissingKeyException",
    "CloneFailedException",
    "NotSetUpException",
    "NoImageException",
    "CoverageBelowException",
    "CoverageParseException",
    "PublishFailedException",
    "NotFoundException",
    "MissingTokenException",
    "InvalidConfigException",
    "UnimplementedException",
    "CancelledException",
    "StepFailedException",
]
