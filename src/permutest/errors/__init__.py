"""permutest error handling.

Provides the exception hierarchy used across the lifecycle, the formatter
registry, the run caches and configuration:

- A single base exception with error codes
- Diagnostic context carrying the rendered permutation state
- Distinct errors for setup, verification and cleanup failures
- The recoverable cannot-verify signal
"""

from permutest.errors.base import (
    CannotVerifyError,
    CleanupError,
    ConfigValidationError,
    ErrorCode,
    ErrorContext,
    PermutationStateError,
    PermutestError,
    RunCacheError,
    SetupError,
    StepContractError,
    UnknownFormatError,
    VerificationError,
)

__all__ = [
    # Base
    "PermutestError",
    "ErrorCode",
    "ErrorContext",
    # Lifecycle
    "StepContractError",
    "SetupError",
    "VerificationError",
    "CleanupError",
    "CannotVerifyError",
    "PermutationStateError",
    # Collaborators
    "UnknownFormatError",
    "RunCacheError",
    "ConfigValidationError",
]
