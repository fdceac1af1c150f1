"""Exception hierarchy for permutest.

Every error raised by the lifecycle carries an ``ErrorCode`` and an
``ErrorContext``. Failures escalated out of a permutation run embed the
serialized description, notes and data of the permutation so a failure
report is self-describing without re-running it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """Stable identifiers for each failure kind."""

    UNKNOWN = "PT000"
    STEP_CONTRACT = "PT100"
    SETUP_FAILED = "PT101"
    VERIFICATION_FAILED = "PT102"
    CLEANUP_FAILED = "PT103"
    CANNOT_VERIFY = "PT104"
    INVALID_STATE = "PT105"
    UNKNOWN_FORMAT = "PT200"
    CACHE_ERROR = "PT300"
    CONFIG_INVALID = "PT400"


@dataclass
class ErrorContext:
    """Diagnostic context attached to an error.

    Attributes:
        scenario: Key of the owning scenario, if known.
        permutation: Identity digest of the permutation, if known.
        step: Name of the step that failed.
        description: Rendered description of the permutation.
        notes: Rendered notes of the permutation.
        data: Rendered data of the permutation.
        extra: Anything else worth reporting.
    """

    scenario: str | None = None
    permutation: str | None = None
    step: str | None = None
    description: str | None = None
    notes: str | None = None
    data: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for name in ("scenario", "permutation", "step", "description", "notes", "data"):
            value = getattr(self, name)
            if value is not None:
                result[name] = value
        if self.extra:
            result["extra"] = dict(self.extra)
        return result

    def details(self) -> list[str]:
        """Human readable lines for the permutation state, in fixed order."""
        if self.description is None and self.notes is None and self.data is None:
            return []
        return [
            f"Description: {self.description or ''}",
            f"Notes: {self.notes or ''}",
            f"Data: {self.data or ''}",
        ]


class PermutestError(Exception):
    """Base class for all permutest errors."""

    default_code = ErrorCode.UNKNOWN

    def __init__(
        self,
        message: str,
        code: ErrorCode | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        self.message = message
        self.code = code or self.default_code
        self.context = context or ErrorContext()
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        lines = [self.message, *self.context.details()]
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": type(self).__name__,
            "code": self.code.value,
            "message": self.message,
            "context": self.context.to_dict(),
        }


class StepContractError(PermutestError):
    """A step broke its contract, e.g. a setup step returned no outcome."""

    default_code = ErrorCode.STEP_CONTRACT


class SetupError(PermutestError):
    """An unexpected exception escaped a setup step."""

    default_code = ErrorCode.SETUP_FAILED


class VerificationError(PermutestError):
    """An unexpected exception escaped a verification step."""

    default_code = ErrorCode.VERIFICATION_FAILED


class CleanupError(PermutestError):
    """At least one cleanup step failed. Chains the first failure."""

    default_code = ErrorCode.CLEANUP_FAILED

    def __init__(
        self,
        message: str,
        failures: list[BaseException] | None = None,
        code: ErrorCode | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        self.failures = list(failures or [])
        super().__init__(message, code=code, context=context)


class CannotVerifyError(PermutestError):
    """Raised by a verification step when postconditions cannot be checked here.

    This is a signal, not a failure: the lifecycle records the permutation
    as not verified and carries on with cleanup.
    """

    default_code = ErrorCode.CANNOT_VERIFY


class PermutationStateError(PermutestError):
    """An operation was attempted in a lifecycle state that forbids it."""

    default_code = ErrorCode.INVALID_STATE


class UnknownFormatError(PermutestError):
    """No output format is registered under the requested name."""

    default_code = ErrorCode.UNKNOWN_FORMAT

    def __init__(self, name: str, available: list[str] | None = None) -> None:
        self.name = name
        self.available = sorted(available or [])
        super().__init__(
            f"Unknown output format '{name}'. Available: {', '.join(self.available)}",
            context=ErrorContext(extra={"available": self.available}),
        )


class RunCacheError(PermutestError):
    """The run cache could not load or save a permutation."""

    default_code = ErrorCode.CACHE_ERROR


class ConfigValidationError(PermutestError):
    """A configuration value failed validation."""

    default_code = ErrorCode.CONFIG_INVALID

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
        context: ErrorContext | None = None,
    ) -> None:
        self.field = field
        self.value = value
        context = context or ErrorContext()
        if field is not None:
            context.extra.setdefault("field", field)
        super().__init__(message, context=context)
