"""permutest - Verification-test permutation engine.

Describe a permutation, attach setup, verification and cleanup steps, and
run it against a run cache. The permutation's identity is a digest of its
description, so repeated runs of the same parameter combination land on the
same cache entry.

Quick Start:
    from permutest import OK, Invalid, Scenario, SqliteRunCache

    scenario = Scenario("create_table", group="postgres")
    p = scenario.new_permutation()
    p.describe("table_name", "users")
    p.add_setup(lambda: OK)
    p.add_verification(check_table)
    p.add_cleanup(drop_table)

    with SqliteRunCache("sqlite:///.permutest/runs.db") as cache:
        p.run(cache)
"""

from __future__ import annotations

from permutest.config import PermutestSettings, configure_logging, load_config
from permutest.core import (
    OK,
    CannotVerify,
    Fingerprint,
    FunctionStep,
    Invalid,
    Ok,
    Permutation,
    PermutationState,
    Scenario,
    SetupOutcome,
)
from permutest.errors import (
    CannotVerifyError,
    CleanupError,
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
from permutest.formatting import (
    DescribedValue,
    FormatRegistry,
    OutputFormat,
    output_format,
    register_format,
    serialize,
)
from permutest.storage import (
    InMemoryRunCache,
    PermutationSnapshot,
    RunCache,
    SqliteRunCache,
    YamlRunCache,
    create_run_cache,
)

__version__ = "0.1.0"

__all__ = [
    # Core
    "Permutation",
    "PermutationState",
    "Scenario",
    "Fingerprint",
    "FunctionStep",
    # Setup outcomes
    "SetupOutcome",
    "Ok",
    "OK",
    "CannotVerify",
    "Invalid",
    # Formatting
    "DescribedValue",
    "FormatRegistry",
    "OutputFormat",
    "output_format",
    "register_format",
    "serialize",
    # Storage
    "RunCache",
    "PermutationSnapshot",
    "InMemoryRunCache",
    "SqliteRunCache",
    "YamlRunCache",
    "create_run_cache",
    # Configuration
    "PermutestSettings",
    "configure_logging",
    "load_config",
    # Errors
    "PermutestError",
    "ErrorCode",
    "ErrorContext",
    "StepContractError",
    "SetupError",
    "VerificationError",
    "CleanupError",
    "CannotVerifyError",
    "PermutationStateError",
    "UnknownFormatError",
    "RunCacheError",
]
