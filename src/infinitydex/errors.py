"""Error taxonomy for swap orchestration.

Validation and economic errors are non-retryable and never reach the
bridging provider. Dependency errors are retried by the activity runner
and only surface once its retry policy is exhausted.
"""

from typing import Optional


class SwapError(Exception):
    """Base class for all swap errors.

    Attributes:
        code: Stable machine-readable error code (e.g. ``INVALID_AMOUNT``)
        message: Human-readable description
        retryable: Whether the activity runner may retry the failing call
    """

    code = "SWAP_ERROR"
    retryable = False

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.message = message
        self.cause = cause
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


# ======================
# Validation
# ======================


class ValidationError(SwapError):
    """Caller input is wrong. Never retried."""

    code = "VALIDATION_ERROR"


class InvalidAmount(ValidationError):
    code = "INVALID_AMOUNT"


class InvalidAddress(ValidationError):
    code = "INVALID_ADDRESS"


class InvalidToken(ValidationError):
    code = "INVALID_TOKEN"


class InvalidTokens(ValidationError):
    code = "INVALID_TOKENS"


# ======================
# Dependency
# ======================


class DependencyError(SwapError):
    """A bridging provider call failed. Retried up to the stage policy."""

    code = "DEPENDENCY_ERROR"
    retryable = True


class FeeEstimateFailed(DependencyError):
    code = "FEE_ESTIMATE_FAILED"


class WrapFailed(DependencyError):
    code = "WRAP_FAILED"


class TransferFailed(DependencyError):
    code = "TRANSFER_FAILED"


class SwapFailed(DependencyError):
    code = "SWAP_FAILED"


class UnwrapFailed(DependencyError):
    code = "UNWRAP_FAILED"


class ActivityTimeout(DependencyError):
    """A single activity attempt exceeded its start-to-close timeout."""

    code = "ACTIVITY_TIMEOUT"


# ======================
# Economic
# ======================


class InsufficientAmount(SwapError):
    """The request cannot cover its fees at the quoted level."""

    code = "INSUFFICIENT_AMOUNT"


# ======================
# Provider / service
# ======================


class BridgeError(Exception):
    """Raised by bridging providers when an operation fails."""

    pass


class SwapNotFound(LookupError):
    """Raised when no orchestrator exists for a request id."""

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Swap not found: {request_id}")


class InvalidSignal(ValueError):
    """Raised when a signal name is not one the orchestrator listens for."""

    pass
