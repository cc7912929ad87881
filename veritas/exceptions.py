"""
Custom exceptions for Veritas.

Taxonomy:
- ValidatorTimeout: a step exceeded its per-step timeout (non-fatal)
- ValidatorError: a validator raised (non-fatal, recorded in errors[])
- FatalDataError: validator-detected logical impossibility (surfaces as a fatal alert)
- GlobalDeadlineExceeded: the run's shared deadline fired
- ConfigurationError: invalid weights / thresholds, raised at construction time

Only ConfigurationError ever escapes to callers. The others are converted into
structured data by the orchestrator before they cross its public boundary.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Standard error codes for Veritas."""
    # General errors (1xxx)
    UNKNOWN_ERROR = "V1000"
    CONFIGURATION_ERROR = "V1001"

    # Step errors (2xxx)
    VALIDATOR_TIMEOUT = "V2000"
    VALIDATOR_ERROR = "V2001"
    VALIDATOR_MISSING = "V2002"

    # Run errors (3xxx)
    GLOBAL_DEADLINE_EXCEEDED = "V3000"
    FATAL_DATA_ERROR = "V3001"
    SCORING_ERROR = "V3002"


class VeritasError(Exception):
    """
    Base exception for Veritas.

    All custom exceptions inherit from this class.
    """

    error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging."""
        result: Dict[str, Any] = {
            "error_code": self.error_code.value,
            "error_type": type(self).__name__,
            "message": self.message,
        }
        if self.cause is not None:
            result["cause"] = repr(self.cause)
        return result

    def __str__(self) -> str:
        return f"[{self.error_code.value}] {self.message}"


class ConfigurationError(VeritasError):
    """Invalid weights or thresholds. Raised when a config object is built."""

    error_code = ErrorCode.CONFIGURATION_ERROR


class ValidatorTimeout(VeritasError):
    """A validator did not settle within its per-step timeout."""

    error_code = ErrorCode.VALIDATOR_TIMEOUT

    def __init__(self, step: str, timeout_ms: int):
        super().__init__(f"{step} validation timed out after {timeout_ms}ms")
        self.step = step
        self.timeout_ms = timeout_ms


class ValidatorError(VeritasError):
    """A validator raised instead of resolving."""

    error_code = ErrorCode.VALIDATOR_ERROR

    def __init__(
        self,
        step: str,
        message: str,
        cause: Optional[BaseException] = None,
        error_code: Optional[ErrorCode] = None,
    ):
        super().__init__(f"{step} validation failed: {message}", error_code=error_code, cause=cause)
        self.step = step


class FatalDataError(VeritasError):
    """Data contains a logical impossibility reported by a validator."""

    error_code = ErrorCode.FATAL_DATA_ERROR

    def __init__(self, step: str, message: str):
        super().__init__(f"Fatal error in {step} data validation: {message}")
        self.step = step


class GlobalDeadlineExceeded(VeritasError):
    """The run's shared deadline fired before all steps settled."""

    error_code = ErrorCode.GLOBAL_DEADLINE_EXCEEDED

    def __init__(self, deadline_ms: int, pending_steps: list[str]):
        pending = ", ".join(pending_steps) or "none"
        super().__init__(
            f"Validation timed out after {deadline_ms}ms (pending: {pending}). "
            "Returning partial results."
        )
        self.deadline_ms = deadline_ms
        self.pending_steps = pending_steps
