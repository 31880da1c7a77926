"""
Error Taxonomy

Standard error kinds for pipeline dispatch, cloning and lifecycle steps.
Defines both a Pydantic model for structured error reporting and Python
exceptions for control flow.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Error Codes (Machine-Readable Constants)
# =============================================================================

class ErrorCodes:
    """Stable machine-readable error codes, one per error kind."""

    # Clone & Credential Errors
    INVALID_OPTIONS = "INVALID_OPTIONS"
    CREDENTIAL_ERROR = "CREDENTIAL_ERROR"
    MISSING_KEY = "MISSING_KEY"
    CLONE_FAILED = "CLONE_FAILED"

    # Lifecycle Precondition Errors
    NOT_SET_UP = "NOT_SET_UP"
    NO_IMAGE = "NO_IMAGE"

    # Quality Gate Errors
    COVERAGE_BELOW = "COVERAGE_BELOW"
    PARSE_ERROR = "PARSE_ERROR"

    # Registry & Publish Errors
    PUBLISH_FAILED = "PUBLISH_FAILED"
    MISSING_TOKEN = "MISSING_TOKEN"
    NOT_FOUND = "NOT_FOUND"

    # Configuration Errors
    INVALID_CONFIG = "INVALID_CONFIG"

    # Execution Errors
    UNIMPLEMENTED = "UNIMPLEMENTED"
    CANCELLED = "CANCELLED"
    STEP_FAILED = "STEP_FAILED"


# =============================================================================
# Pydantic Error Model (Structured Reporting)
# =============================================================================

class PipelineError(BaseModel):
    """
    Error model for structured error reporting.

    Used by the CLI JSON output and by run results, so failures can be
    serialized without carrying exception objects around.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=False,
        validate_assignment=True,
    )

    code: str = Field(
        ...,
        description="Stable machine-readable error code",
        examples=[ErrorCodes.CLONE_FAILED],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional structured details about the error",
    )
    retryable: bool = Field(
        default=False,
        description="Whether the operation can be retried",
    )

    def to_exception(self) -> "PipelineException":
        """Convert this error model to a raisable exception."""
        return PipelineException(
            code=self.code,
            message=self.message,
            details=self.details,
            retryable=self.retryable,
        )


# =============================================================================
# Python Exceptions (Control Flow)
# =============================================================================

class PipelineException(Exception):
    """
    Base exception for all pipeline errors.

    Carries a stable error code plus structured details and can be
    converted to a PipelineError model.
    """

    def __init__(
        self,
        message: str,
        code: str = "PIPELINE_ERROR",
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        self.retryable = retryable

    def to_error_model(self) -> PipelineError:
        """Convert this exception to a PipelineError model."""
        return PipelineError(
            code=self.code,
            message=self.message,
            details=self.details,
            retryable=self.retryable,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class InvalidOptionsException(PipelineException):
    """Raised when clone options are incomplete."""

    def __init__(
        self,
        message: str,
        missing: Optional[list[str]] = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if missing:
            full_details["missing"] = list(missing)
        super().__init__(
            message=message,
            code=ErrorCodes.INVALID_OPTIONS,
            details=full_details,
        )


class CredentialFailure(str, Enum):
    """Reason a credential record failed validation."""

    EXPIRED = "expired"
    MISSING_FIELD = "missing_field"
    UNKNOWN_VARIANT = "unknown_variant"


class CredentialException(PipelineException):
    """Raised when resolved credentials fail validation."""

    def __init__(
        self,
        message: str,
        reason: CredentialFailure,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        full_details["reason"] = reason.value
        super().__init__(
            message=message,
            code=ErrorCodes.CREDENTIAL_ERROR,
            details=full_details,
        )
        self.reason = reason


class MissingKeyException(PipelineException):
    """Raised when no SSH private key can be located."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.MISSING_KEY,
            details=details,
        )


class CloneFailedException(PipelineException):
    """Raised when every clone attempt failed."""

    def __init__(
        self,
        message: str,
        attempts: int,
        last_error: Optional[BaseException] = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        full_details["attempts"] = attempts
        if last_error is not None:
            full_details["last_error"] = str(last_error)
        super().__init__(
            message=message,
            code=ErrorCodes.CLONE_FAILED,
            details=full_details,
            retryable=True,
        )
        self.attempts = attempts
        self.last_error = last_error


class NotSetUpException(PipelineException):
    """Raised when a step needs the working tree before Setup produced it."""

    def __init__(
        self,
        message: str = "pipeline has no working tree; run setup first",
        step: Optional[str] = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.NOT_SET_UP,
            details={"step": step} if step else None,
        )


class NoImageException(PipelineException):
    """Raised when Tag or Push run before Build produced an image."""

    def __init__(
        self,
        message: str = "pipeline has no built image; run build first",
        step: Optional[str] = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.NO_IMAGE,
            details={"step": step} if step else None,
        )


class CoverageBelowException(PipelineException):
    """Raised when measured coverage is below the configured minimum."""

    def __init__(self, actual: float, minimum: float) -> None:
        super().__init__(
            message=f"coverage {actual:.2f}% is below the required {minimum:.2f}%",
            code=ErrorCodes.COVERAGE_BELOW,
            details={"actual": actual, "minimum": minimum},
        )
        self.actual = actual
        self.minimum = minimum


class CoverageParseException(PipelineException):
    """Raised when a coverage report has no parseable total line."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.PARSE_ERROR,
            details=details,
        )


class PublishFailedException(PipelineException):
    """Raised when the engine rejects a publish operation."""

    def __init__(
        self,
        message: str,
        reference: Optional[str] = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if reference:
            full_details["reference"] = reference
        super().__init__(
            message=message,
            code=ErrorCodes.PUBLISH_FAILED,
            details=full_details,
            retryable=True,
        )


class NotFoundException(PipelineException):
    """Raised when a registry lookup names an unknown pipeline."""

    def __init__(self, name: str) -> None:
        super().__init__(
            message=f"pipeline not found: {name}",
            code=ErrorCodes.NOT_FOUND,
            details={"name": name},
        )
        self.name = name


class MissingTokenException(PipelineException):
    """Raised when registry authentication has no secret to use."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.MISSING_TOKEN,
            details=details,
        )


class InvalidConfigException(PipelineException):
    """Raised when a required configuration field is empty at point of use."""

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if field_name:
            full_details["field"] = field_name
        super().__init__(
            message=message,
            code=ErrorCodes.INVALID_CONFIG,
            details=full_details,
        )


class UnimplementedException(PipelineException):
    """Raised by lifecycle operations a pipeline deliberately does not provide."""

    def __init__(self, pipeline: str, step: str) -> None:
        super().__init__(
            message=f"{pipeline}: {step} is not implemented",
            code=ErrorCodes.UNIMPLEMENTED,
            details={"pipeline": pipeline, "step": step},
        )
        self.pipeline = pipeline
        self.step = step


class CancelledException(PipelineException):
    """Raised when the run context is cancelled or its deadline has passed."""

    def __init__(self, message: str = "operation cancelled") -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.CANCELLED,
        )


class StepFailedException(PipelineException):
    """
    Raised by the lifecycle driver when a step fails.

    Reports the step name and the error kind of the underlying cause;
    the cause itself is chained via ``__cause__``.
    """

    def __init__(
        self,
        step: str,
        cause: BaseException,
        result: Any = None,
    ) -> None:
        kind = getattr(cause, "code", type(cause).__name__)
        super().__init__(
            message=f"step {step} failed ({kind}): {cause}",
            code=ErrorCodes.STEP_FAILED,
            details={"step": step, "kind": kind},
        )
        self.step = step
        self.kind = kind
        self.result = result
