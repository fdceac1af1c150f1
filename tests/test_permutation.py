"""Tests for the permutation lifecycle: setup, verification, cleanup and persistence."""

from __future__ import annotations

import pytest

from permutest import (
    OK,
    CannotVerify,
    InMemoryRunCache,
    Invalid,
    Permutation,
    PermutationState,
    Scenario,
)
from permutest.errors import (
    CleanupError,
    ErrorCode,
    PermutationStateError,
    RunCacheError,
    SetupError,
    StepContractError,
    VerificationError,
)


# ============================================================
# End-to-end scenarios
# ============================================================


class TestEndToEnd:
    """Complete runs of a single permutation."""

    def test_ok_setup_verified(self, permutation, cache, recorder) -> None:
        permutation.add_setup(recorder.setup("create"))
        permutation.add_verification(recorder.action("check"))
        permutation.add_cleanup(recorder.action("drop"))

        outcome = permutation.run(cache)

        assert outcome is PermutationState.VERIFIED
        assert permutation.verified is True
        assert permutation.is_valid is True
        assert permutation.can_verify is True
        assert permutation.skip_reason is None
        assert recorder.calls == ["create", "check", "drop"]

    def test_invalid_setup_skips_everything(self, permutation, cache, recorder) -> None:
        permutation.add_setup(recorder.setup("create", Invalid("disk full")))
        permutation.add_verification(recorder.action("check"))
        permutation.add_cleanup(recorder.action("drop"))

        outcome = permutation.run(cache)

        assert outcome is PermutationState.INVALID
        assert permutation.is_valid is False
        assert permutation.can_verify is False
        assert permutation.verified is False
        assert permutation.skip_reason == "disk full"
        assert recorder.calls == ["create"]

    def test_cannot_verify_during_verification(self, permutation, cache, recorder) -> None:
        permutation.add_setup(recorder.setup("create"))
        permutation.add_verification(recorder.cannot_verify("check", "no catalog access"))
        permutation.add_verification(recorder.action("check_more"))
        permutation.add_cleanup(recorder.action("drop"))

        outcome = permutation.run(cache)

        assert outcome is PermutationState.CANNOT_VERIFY
        assert permutation.verified is False
        assert permutation.is_valid is True
        assert permutation.skip_reason == "no catalog access"
        assert recorder.calls == ["create", "check", "drop"]

    def test_identical_descriptions_share_a_cache_entry(self, scenario, cache) -> None:
        a = Permutation(scenario).describe("engine", "x").describe("version", 2)
        b = Permutation(scenario).describe("engine", "x", format="str").describe("version", 2, format="json")

        a.run(cache)
        b.run(cache)

        assert a.key == b.key
        assert len(cache) == 1
        assert b.previous_run is not None
        assert b.previously_verified is True

    def test_no_steps_is_verified(self, permutation, cache) -> None:
        assert permutation.run(cache) is PermutationState.VERIFIED
        assert permutation.verified is True


# ============================================================
# Setup phase
# ============================================================


class TestSetupPhase:
    """Tests for setup outcome handling."""

    def test_setup_runs_in_order(self, permutation, cache, recorder) -> None:
        for name in ("one", "two", "three"):
            permutation.add_setup(recorder.setup(name))
        permutation.run(cache)
        assert recorder.calls == ["one", "two", "three"]

    def test_invalid_short_circuits_remaining_setup(self, permutation, cache, recorder) -> None:
        permutation.add_setup(recorder.setup("one"))
        permutation.add_setup(recorder.setup("two", Invalid("impossible")))
        permutation.add_setup(recorder.setup("three"))
        permutation.run(cache)
        assert recorder.calls == ["one", "two"]

    def test_cannot_verify_continues_setup(self, permutation, cache, recorder) -> None:
        permutation.add_setup(recorder.setup("one", CannotVerify("read only")))
        permutation.add_setup(recorder.setup("two"))
        permutation.add_verification(recorder.action("check"))

        outcome = permutation.run(cache)

        assert outcome is PermutationState.CANNOT_VERIFY
        assert recorder.calls == ["one", "two"]
        assert permutation.is_valid is True
        assert permutation.can_verify is False
        assert permutation.skip_reason == "read only"

    def test_later_ok_does_not_re_enable_verification(self, permutation, cache, recorder) -> None:
        permutation.add_setup(recorder.setup("one", CannotVerify("read only")))
        permutation.add_setup(recorder.setup("two", OK))
        permutation.add_verification(recorder.action("check"))
        permutation.run(cache)
        assert permutation.can_verify is False
        assert recorder.count("check") == 0

    def test_validity_dominates_after_cannot_verify(self, permutation, cache, recorder) -> None:
        permutation.add_setup(recorder.setup("one", CannotVerify("read only")))
        permutation.add_setup(recorder.setup("two", Invalid("no such engine")))
        permutation.add_setup(recorder.setup("three", OK))

        outcome = permutation.run(cache)

        assert outcome is PermutationState.INVALID
        assert permutation.is_valid is False
        assert permutation.can_verify is False
        assert permutation.skip_reason == "no such engine"

    def test_cannot_verify_setup_still_cleans_up(self, permutation, cache, recorder) -> None:
        permutation.add_setup(recorder.setup("create", CannotVerify("read only")))
        permutation.add_cleanup(recorder.action("drop"))
        permutation.run(cache)
        assert recorder.calls == ["create", "drop"]

    def test_setup_exception_is_fatal_with_context(self, permutation, cache, recorder) -> None:
        permutation.note("dialect", "postgresql")
        permutation.data("sql", "CREATE TABLE users (id int)")
        permutation.add_setup(recorder.action("create", RuntimeError("connection lost")))
        permutation.add_verification(recorder.action("check"))
        permutation.add_cleanup(recorder.action("drop"))

        with pytest.raises(SetupError) as exc_info:
            permutation.run(cache)

        error = exc_info.value
        assert error.code is ErrorCode.SETUP_FAILED
        assert isinstance(error.__cause__, RuntimeError)
        message = str(error)
        assert "Error executing setup step 'create'" in message
        assert "Description: columns=[id, name], table_name=users" in message
        assert "Notes: dialect=postgresql" in message
        assert "Data: sql=CREATE TABLE users (id int)" in message
        assert recorder.calls == ["create"]
        assert permutation.outcome is PermutationState.SETUP_FAILED

    def test_missing_outcome_is_contract_violation(self, permutation, cache) -> None:
        permutation.add_setup(lambda: None, name="forgot_return")

        with pytest.raises(SetupError) as exc_info:
            permutation.run(cache)

        cause = exc_info.value.__cause__
        assert isinstance(cause, StepContractError)
        assert "forgot_return" in cause.message
        assert "None" in cause.message

    def test_boolean_outcome_is_contract_violation(self, permutation, cache) -> None:
        permutation.add_setup(lambda: True)
        with pytest.raises(SetupError) as exc_info:
            permutation.run(cache)
        assert isinstance(exc_info.value.__cause__, StepContractError)


# ============================================================
# Verification and cleanup
# ============================================================


class TestVerificationPhase:
    """Tests for verification failures and their interaction with cleanup."""

    def test_verification_failure_runs_cleanup_then_raises(self, permutation, cache, recorder) -> None:
        permutation.add_verification(recorder.action("check", AssertionError("table missing")))
        permutation.add_verification(recorder.action("check_more"))
        permutation.add_cleanup(recorder.action("drop"))

        with pytest.raises(VerificationError) as exc_info:
            permutation.run(cache)

        assert isinstance(exc_info.value.__cause__, AssertionError)
        assert "Description: columns=[id, name], table_name=users" in str(exc_info.value)
        assert recorder.calls == ["check", "drop"]
        assert permutation.verified is False
        assert permutation.outcome is PermutationState.VERIFICATION_FAILED

    def test_cleanup_runs_exactly_once_per_run(self, permutation, cache, recorder) -> None:
        permutation.add_verification(recorder.action("check"))
        permutation.add_cleanup(recorder.action("drop_a"))
        permutation.add_cleanup(recorder.action("drop_b"))
        permutation.run(cache)
        assert recorder.count("drop_a") == 1
        assert recorder.count("drop_b") == 1

    def test_all_cleanup_attempted_first_failure_wins(self, permutation, cache, recorder) -> None:
        first = RuntimeError("first")
        second = RuntimeError("second")
        permutation.add_verification(recorder.action("check"))
        permutation.add_cleanup(recorder.action("drop_a", first))
        permutation.add_cleanup(recorder.action("drop_b", second))
        permutation.add_cleanup(recorder.action("drop_c"))

        with pytest.raises(CleanupError) as exc_info:
            permutation.run(cache)

        error = exc_info.value
        assert error.__cause__ is first
        assert error.failures == [first, second]
        assert error.context.step == "drop_a"
        assert recorder.calls == ["check", "drop_a", "drop_b", "drop_c"]
        assert permutation.verified is True
        assert permutation.outcome is PermutationState.CLEANUP_FAILED

    def test_verification_failure_not_masked_by_cleanup(self, permutation, cache, recorder) -> None:
        permutation.add_verification(recorder.action("check", ValueError("wrong column type")))
        permutation.add_cleanup(recorder.action("drop", RuntimeError("drop failed")))

        with pytest.raises(VerificationError) as exc_info:
            permutation.run(cache)

        assert isinstance(exc_info.value.__cause__, ValueError)
        assert "cleanup_errors" in exc_info.value.context.extra
        assert recorder.calls == ["check", "drop"]

    def test_cannot_verify_then_cleanup_failure(self, permutation, cache, recorder) -> None:
        permutation.add_verification(recorder.cannot_verify("check"))
        permutation.add_cleanup(recorder.action("drop", RuntimeError("drop failed")))

        with pytest.raises(CleanupError):
            permutation.run(cache)
        assert permutation.outcome is PermutationState.CLEANUP_FAILED


# ============================================================
# Skipping, persistence and re-runs
# ============================================================


class TestPersistence:
    """Tests for the run cache contract of the lifecycle."""

    def test_one_load_and_one_save_per_run(self, permutation, cache) -> None:
        permutation.run(cache)
        assert cache.loads == 1
        assert cache.saves == 1

    def test_one_save_on_fatal_path(self, permutation, cache, recorder) -> None:
        permutation.add_verification(recorder.action("check", RuntimeError("boom")))
        with pytest.raises(VerificationError):
            permutation.run(cache)
        assert cache.loads == 1
        assert cache.saves == 1
        snapshot = cache.load(permutation.scenario.key, permutation.key)
        assert snapshot.outcome is PermutationState.VERIFICATION_FAILED
        assert "boom" in snapshot.error

    def test_snapshot_contents(self, permutation, cache, recorder) -> None:
        permutation.note("dialect", "postgresql")
        permutation.data("rows", 0)
        permutation.add_verification(recorder.action("check"))
        permutation.run(cache)

        snapshot = cache.load("postgres.create_table", permutation.key)
        assert snapshot.scenario_key == "postgres.create_table"
        assert snapshot.long_key == "columns=[id, name], table_name=users"
        assert snapshot.outcome is PermutationState.VERIFIED
        assert snapshot.verified is True
        assert snapshot.description == {"columns": "[id, name]", "table_name": "users"}
        assert snapshot.notes == {"dialect": "postgresql"}
        assert snapshot.data == {"rows": "0"}
        assert permutation.state is PermutationState.SAVED

    def test_skip_reason_persists_without_running(self, permutation, cache, recorder) -> None:
        permutation.skip("not supported on this engine")
        permutation.add_setup(recorder.setup("create"))
        permutation.add_verification(recorder.action("check"))
        permutation.add_cleanup(recorder.action("drop"))

        outcome = permutation.run(cache)

        assert outcome is PermutationState.SKIPPED
        assert recorder.calls == []
        snapshot = cache.load(permutation.scenario.key, permutation.key)
        assert snapshot.outcome is PermutationState.SKIPPED
        assert snapshot.skip_reason == "not supported on this engine"

    def test_skip_reason_from_constructor(self, scenario, cache, recorder) -> None:
        p = Permutation(scenario, skip_reason="known bug")
        p.add_setup(recorder.setup("create"))
        assert p.run(cache) is PermutationState.SKIPPED
        assert recorder.calls == []

    def test_previous_run_loaded(self, scenario, cache) -> None:
        first = Permutation(scenario).describe("engine", "x")
        first.run(cache)
        assert first.previous_run is None
        assert first.previously_verified is False

        second = Permutation(scenario).describe("engine", "x")
        second.run(cache)
        assert second.previous_run is not None
        assert second.previous_run.outcome is PermutationState.VERIFIED

    def test_rerun_resets_lifecycle_state(self, permutation, cache) -> None:
        outcomes = iter([Invalid("disk full"), OK])
        permutation.add_setup(lambda: next(outcomes))

        assert permutation.run(cache) is PermutationState.INVALID
        assert permutation.run(cache) is PermutationState.VERIFIED
        assert permutation.is_valid is True
        assert permutation.skip_reason is None
        snapshot = cache.load(permutation.scenario.key, permutation.key)
        assert snapshot.outcome is PermutationState.VERIFIED
        assert permutation.previous_run.outcome is PermutationState.INVALID

    def test_cache_failure_on_normal_path_raises(self, permutation, failing_cache) -> None:
        with pytest.raises(RunCacheError, match="disk full"):
            permutation.run(failing_cache)
        assert permutation.outcome is PermutationState.VERIFIED

    def test_cache_failure_on_fatal_path_keeps_original_error(
        self, permutation, failing_cache, recorder
    ) -> None:
        permutation.add_verification(recorder.action("check", RuntimeError("boom")))
        with pytest.raises(VerificationError):
            permutation.run(failing_cache)
        assert failing_cache.saves == 1

    def test_interrupted_run_can_be_rerun(self, permutation, cache, recorder) -> None:
        interrupts = [KeyboardInterrupt()]

        def check():
            if interrupts:
                raise interrupts.pop()

        permutation.add_verification(check)
        permutation.add_cleanup(recorder.action("drop"))

        with pytest.raises(KeyboardInterrupt):
            permutation.run(cache)
        assert permutation.state is PermutationState.CREATED
        assert recorder.calls == ["drop"]

        assert permutation.run(cache) is PermutationState.VERIFIED
        assert recorder.calls == ["drop", "drop"]

    def test_system_exit_in_setup_clears_running_state(self, permutation, cache) -> None:
        def exit_now():
            raise SystemExit(2)

        permutation.add_setup(exit_now)

        with pytest.raises(SystemExit):
            permutation.run(cache)
        assert permutation.state is not PermutationState.RUNNING
        assert permutation.outcome is PermutationState.CREATED

    def test_run_is_not_reentrant(self, permutation, cache) -> None:
        permutation.add_verification(lambda: permutation.run(cache), name="nested")
        with pytest.raises(VerificationError) as exc_info:
            permutation.run(cache)
        assert isinstance(exc_info.value.__cause__, PermutationStateError)


# ============================================================
# Construction and scenario registration
# ============================================================


class TestConstruction:
    """Tests for building permutations."""

    def test_registers_with_scenario(self, scenario) -> None:
        p = Permutation(scenario)
        assert scenario.permutations == [p]
        assert p.state is PermutationState.CREATED

    def test_defaults(self, scenario) -> None:
        p = Permutation(scenario)
        assert p.is_valid is True
        assert p.can_verify is True
        assert p.verified is False
        assert p.skip_reason is None

    def test_add_step_returns_step_for_decorator_use(self, scenario, cache) -> None:
        p = Permutation(scenario)
        calls = []

        @p.add_verification
        def check():
            calls.append("check")

        assert callable(check)
        p.run(cache)
        assert calls == ["check"]

    def test_mappings_iterate_in_key_order(self, scenario) -> None:
        p = Permutation(scenario)
        p.describe("zeta", 1).describe("alpha", 2)
        p.note("b", 1).note("a", 2)
        p.data("y", 1).data("x", 2)
        assert list(p.description) == ["alpha", "zeta"]
        assert list(p.notes) == ["a", "b"]
        assert list(p.data_values) == ["x", "y"]

    def test_description_copy_is_detached(self, scenario) -> None:
        p = Permutation(scenario).describe("engine", "x")
        p.description.clear()
        assert p.long_key == "engine=x"

    def test_setup_object_with_run_method(self, scenario, cache) -> None:
        class RequireEngine:
            name = "require_engine"

            def run(self):
                return Invalid("engine unavailable")

        p = Permutation(scenario)
        p.add_setup(RequireEngine())
        assert p.run(cache) is PermutationState.INVALID

    def test_separate_caches_are_independent(self, scenario) -> None:
        p = Permutation(scenario).describe("engine", "x")
        a, b = InMemoryRunCache(), InMemoryRunCache()
        p.run(a)
        assert len(a) == 1
        assert len(b) == 0

    def test_repr(self, permutation) -> None:
        assert "postgres.create_table" in repr(permutation)
        assert "created" in repr(permutation)


def test_scenario_key_used_for_cache(cache) -> None:
    scenario = Scenario("drop_table")
    p = Permutation(scenario).describe("engine", "x")
    p.run(cache)
    assert cache.load("drop_table", p.key) is not None
    assert cache.load("postgres.drop_table", p.key) is None
