"""Core objects for permutest.

This module contains the permutation engine:
- Permutation: one parameter combination with its own lifecycle
- Scenario: the named test that owns permutations
- SetupOutcome (Ok, CannotVerify, Invalid): results of setup steps
- Fingerprint: content-addressed identity of a description
- PermutationState: lifecycle states and outcomes
"""

from permutest.core.fingerprint import Fingerprint, canonical_description, identity_digest
from permutest.core.permutation import Permutation
from permutest.core.scenario import Scenario
from permutest.core.state import PermutationState
from permutest.core.steps import (
    OK,
    CannotVerify,
    CleanupStep,
    FunctionStep,
    Invalid,
    Ok,
    SetupOutcome,
    SetupStep,
    VerificationStep,
)

__all__ = [
    "OK",
    "CannotVerify",
    "CleanupStep",
    "Fingerprint",
    "FunctionStep",
    "Invalid",
    "Ok",
    "Permutation",
    "PermutationState",
    "Scenario",
    "SetupOutcome",
    "SetupStep",
    "VerificationStep",
    "canonical_description",
    "identity_digest",
]
