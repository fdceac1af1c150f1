"""Lifecycle states of a permutation."""

from __future__ import annotations

from enum import Enum


class PermutationState(Enum):
    """Where a permutation is in its lifecycle.

    CREATED -> {SKIPPED | RUNNING} -> <outcome> -> SAVED
    """

    CREATED = "created"
    RUNNING = "running"
    SKIPPED = "skipped"  # marked not-to-run before execution
    INVALID = "invalid"  # a setup step reported impossible preconditions
    CANNOT_VERIFY = "cannot_verify"
    VERIFIED = "verified"
    VERIFICATION_FAILED = "verification_failed"
    SETUP_FAILED = "setup_failed"
    CLEANUP_FAILED = "cleanup_failed"
    SAVED = "saved"

    @property
    def is_outcome(self) -> bool:
        return self in OUTCOMES

    @property
    def is_failure(self) -> bool:
        return self in FAILURES


OUTCOMES = frozenset(
    {
        PermutationState.SKIPPED,
        PermutationState.INVALID,
        PermutationState.CANNOT_VERIFY,
        PermutationState.VERIFIED,
        PermutationState.VERIFICATION_FAILED,
        PermutationState.SETUP_FAILED,
        PermutationState.CLEANUP_FAILED,
    }
)

FAILURES = frozenset(
    {
        PermutationState.VERIFICATION_FAILED,
        PermutationState.SETUP_FAILED,
        PermutationState.CLEANUP_FAILED,
    }
)
