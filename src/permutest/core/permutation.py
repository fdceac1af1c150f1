"""Permutation - one concrete parameter combination of a test scenario.

A permutation is built declaratively and then run once::

    scenario = Scenario("create_table", group="postgres")
    p = Permutation(scenario)
    p.describe("table_name", "users")
    p.describe("columns", ["id", "name"])
    p.note("dialect", "postgresql")

    p.add_setup(lambda: OK if db.available() else Invalid("no database"))
    p.add_verification(check_table_exists)
    p.add_cleanup(drop_table)

    p.run(cache)

Running drives the permutation through setup, verification and cleanup,
then saves a snapshot of the outcome to the run cache. Modelled outcomes
(invalid, cannot verify, verified) are recorded on the permutation; only
unexpected failures are raised, and they carry the rendered description,
notes and data of the permutation.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, NoReturn

from permutest.core.fingerprint import Fingerprint
from permutest.core.state import PermutationState
from permutest.core.steps import (
    CannotVerify,
    Invalid,
    Ok,
    as_step,
    step_name,
)
from permutest.errors import (
    CannotVerifyError,
    CleanupError,
    ErrorContext,
    PermutationStateError,
    PermutestError,
    RunCacheError,
    SetupError,
    StepContractError,
    VerificationError,
)
from permutest.formatting import (
    DescribedValue,
    FormatRegistry,
    FormatSpec,
    get_registry,
    render_values,
    serialize_values,
)

if TYPE_CHECKING:
    from permutest.core.scenario import Scenario
    from permutest.storage.models import PermutationSnapshot
    from permutest.storage.protocol import RunCache

logger = logging.getLogger(__name__)

StepLike = Any


class Permutation:
    """A single permutation of a scenario, with its own identity and lifecycle.

    Values are recorded with ``describe``, ``note`` and ``data`` and read
    back through the ``description``, ``notes`` and ``data_values``
    properties. The data mapping is ``data_values`` because ``data`` is the
    recording method.

    Attributes:
        scenario: The scenario that owns this permutation.
        setup_steps: Setup steps, run in order.
        verification_steps: Verification steps, run in order.
        cleanup_steps: Cleanup steps, all attempted in order.
        is_valid: False once a setup step reported impossible preconditions.
        can_verify: False once a setup step asked to skip verification.
        verified: True once verification completed without a cannot-verify signal.
        state: Current lifecycle state.
        outcome: Terminal state reached by the last run.
        previous_run: Snapshot loaded from the run cache by the last run.
        error: Message of the fatal failure of the last run, if any.
    """

    def __init__(
        self,
        scenario: Scenario,
        formats: FormatRegistry | None = None,
        default_format: FormatSpec = None,
        skip_reason: str | None = None,
    ) -> None:
        self.scenario = scenario
        self.formats = formats or get_registry()
        self.default_format = self.formats.resolve(default_format)

        self._description: dict[str, DescribedValue] = {}
        self._notes: dict[str, DescribedValue] = {}
        self._data: dict[str, DescribedValue] = {}
        self._fingerprint = Fingerprint.of(self._description)

        self.setup_steps: list[StepLike] = []
        self.verification_steps: list[StepLike] = []
        self.cleanup_steps: list[StepLike] = []

        self._requested_skip_reason = skip_reason
        self._skip_reason = skip_reason
        self.is_valid = True
        self.can_verify = True
        self.verified = False

        self.state = PermutationState.CREATED
        self.outcome = PermutationState.CREATED
        self.previous_run: PermutationSnapshot | None = None
        self.error: str | None = None

        scenario.add_permutation(self)

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @property
    def key(self) -> str:
        """Identity digest of the current description."""
        return self._fingerprint.key

    @property
    def long_key(self) -> str:
        """Canonical description the identity digest is computed from."""
        return self._fingerprint.long_key

    @property
    def fingerprint(self) -> Fingerprint:
        return self._fingerprint

    # ------------------------------------------------------------------
    # Description, notes and data
    # ------------------------------------------------------------------

    def describe(self, key: str, value: Any, format: FormatSpec = None) -> Permutation:
        """Set a described attribute. Changes the identity of the permutation."""
        self._description[key] = self._described(value, format)
        self._fingerprint = Fingerprint.of(self._description)
        return self

    def note(self, key: str, value: Any, format: FormatSpec = None) -> Permutation:
        """Set a free-form annotation. Does not change the identity."""
        self._notes[key] = self._described(value, format)
        return self

    def data(self, key: str, value: Any, format: FormatSpec = None) -> Permutation:
        """Record a measured output. Does not change the identity."""
        self._data[key] = self._described(value, format)
        return self

    def _described(self, value: Any, format: FormatSpec) -> DescribedValue:
        fmt = self.default_format if format is None else self.formats.resolve(format)
        return DescribedValue(value, fmt)

    @property
    def description(self) -> dict[str, DescribedValue]:
        return {k: self._description[k] for k in sorted(self._description)}

    @property
    def notes(self) -> dict[str, DescribedValue]:
        return {k: self._notes[k] for k in sorted(self._notes)}

    @property
    def data_values(self) -> dict[str, DescribedValue]:
        return {k: self._data[k] for k in sorted(self._data)}

    def render_description(self) -> str:
        return render_values(self._description)

    def render_notes(self) -> str:
        return render_values(self._notes)

    def render_data(self) -> str:
        return render_values(self._data)

    def serialized_description(self) -> dict[str, str]:
        return serialize_values(self._description)

    def serialized_notes(self) -> dict[str, str]:
        return serialize_values(self._notes)

    def serialized_data(self) -> dict[str, str]:
        return serialize_values(self._data)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def add_setup(self, step: StepLike, name: str | None = None) -> StepLike:
        """Append a setup step. Returns ``step`` so it can be used as a decorator."""
        self.setup_steps.append(as_step(step, name))
        return step

    def add_verification(self, step: StepLike, name: str | None = None) -> StepLike:
        self.verification_steps.append(as_step(step, name))
        return step

    def add_cleanup(self, step: StepLike, name: str | None = None) -> StepLike:
        self.cleanup_steps.append(as_step(step, name))
        return step

    # ------------------------------------------------------------------
    # Skipping
    # ------------------------------------------------------------------

    @property
    def skip_reason(self) -> str | None:
        return self._skip_reason

    @skip_reason.setter
    def skip_reason(self, reason: str | None) -> None:
        self._requested_skip_reason = reason
        self._skip_reason = reason

    def skip(self, reason: str) -> Permutation:
        """Mark the permutation as not-to-run. ``run`` will only persist it."""
        self.skip_reason = reason
        return self

    @property
    def previously_verified(self) -> bool:
        """True if the cache held a verified run of this exact description."""
        previous = self.previous_run
        return (
            previous is not None
            and previous.outcome is PermutationState.VERIFIED
            and previous.long_key == self.long_key
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self, cache: RunCache) -> PermutationState:
        """Run setup, verification and cleanup, then save the outcome.

        Returns:
            The terminal state reached (also available as ``outcome``).

        Raises:
            SetupError: A setup step raised or broke its contract.
            VerificationError: A verification step raised. Cleanup has run.
            CleanupError: Verification passed but a cleanup step raised.
            RunCacheError: The outcome could not be saved.
            PermutationStateError: The permutation is already running.
        """
        if self.state is PermutationState.RUNNING:
            raise PermutationStateError(
                "Permutation is already running",
                context=self._error_context(),
            )

        self._reset()
        self.previous_run = self._load(cache)
        if self.previous_run is not None:
            logger.debug(
                f"{self.scenario.key}/{self.key} previously ran with outcome "
                f"{self.previous_run.outcome.value}"
            )

        if self._skip_reason is not None:
            logger.info(f"Skipping {self.scenario.key}/{self.key}: {self._skip_reason}")
            return self._complete(cache, PermutationState.SKIPPED)

        self.state = PermutationState.RUNNING
        try:
            return self._run_phases(cache)
        finally:
            # Interrupted before an outcome was recorded, e.g. KeyboardInterrupt.
            if self.state is PermutationState.RUNNING:
                self.state = PermutationState.CREATED

    def _run_phases(self, cache: RunCache) -> PermutationState:
        try:
            self._run_setup()
        except SetupError as e:
            self._fail(cache, PermutationState.SETUP_FAILED, e)

        if not self.is_valid:
            return self._complete(cache, PermutationState.INVALID)

        if not self.can_verify:
            cleanup_error = self._run_cleanup()
            if cleanup_error is not None:
                self._fail(cache, PermutationState.CLEANUP_FAILED, cleanup_error)
            return self._complete(cache, PermutationState.CANNOT_VERIFY)

        outcome = PermutationState.VERIFICATION_FAILED
        verification_error: VerificationError | None = None
        cleanup_error: CleanupError | None = None
        try:
            outcome = self._run_verification()
        except VerificationError as e:
            verification_error = e
        finally:
            cleanup_error = self._run_cleanup()

        if verification_error is not None:
            if cleanup_error is not None:
                logger.warning(
                    f"Cleanup of {self.scenario.key}/{self.key} also failed: {cleanup_error.message}"
                )
                verification_error.context.extra["cleanup_errors"] = [
                    repr(f) for f in cleanup_error.failures
                ]
            self._fail(cache, PermutationState.VERIFICATION_FAILED, verification_error)

        if cleanup_error is not None:
            self._fail(cache, PermutationState.CLEANUP_FAILED, cleanup_error)

        return self._complete(cache, outcome)

    def _reset(self) -> None:
        self.is_valid = True
        self.can_verify = True
        self.verified = False
        self._skip_reason = self._requested_skip_reason
        self.error = None
        self.previous_run = None
        self.outcome = PermutationState.CREATED

    def _run_setup(self) -> None:
        for step in self.setup_steps:
            name = step_name(step)
            logger.debug(f"Running setup step '{name}'")
            try:
                result = step.run()
            except Exception as e:
                raise SetupError(
                    f"Error executing setup step '{name}'",
                    context=self._error_context(step=name),
                ) from e

            if isinstance(result, Invalid):
                self.is_valid = False
                self.can_verify = False
                self._skip_reason = result.message
                logger.info(f"{self.scenario.key}/{self.key} is invalid: {result.message}")
                break
            elif isinstance(result, CannotVerify):
                self.can_verify = False
                self._skip_reason = result.message
                logger.info(f"{self.scenario.key}/{self.key} cannot verify: {result.message}")
            elif isinstance(result, Ok):
                continue
            else:
                raise SetupError(
                    f"Error executing setup step '{name}'",
                    context=self._error_context(step=name),
                ) from StepContractError(
                    f"Setup step '{name}' returned {result!r} instead of a SetupOutcome"
                )

    def _run_verification(self) -> PermutationState:
        for step in self.verification_steps:
            name = step_name(step)
            logger.debug(f"Running verification step '{name}'")
            try:
                step.run()
            except CannotVerifyError as e:
                self.verified = False
                self._skip_reason = e.message
                logger.info(f"{self.scenario.key}/{self.key} cannot verify: {e.message}")
                return PermutationState.CANNOT_VERIFY
            except Exception as e:
                raise VerificationError(
                    f"Error executing verification step '{name}'",
                    context=self._error_context(step=name),
                ) from e
        self.verified = True
        return PermutationState.VERIFIED

    def _run_cleanup(self) -> CleanupError | None:
        """Attempt every cleanup step. Returns an error wrapping the first failure."""
        failures: list[Exception] = []
        failed_step: str | None = None
        for step in self.cleanup_steps:
            name = step_name(step)
            logger.debug(f"Running cleanup step '{name}'")
            try:
                step.run()
            except Exception as e:
                logger.warning(f"Cleanup step '{name}' failed: {e}")
                failures.append(e)
                if failed_step is None:
                    failed_step = name

        if not failures:
            return None
        error = CleanupError(
            f"Error executing cleanup step '{failed_step}'",
            failures=failures,
            context=self._error_context(step=failed_step),
        )
        error.__cause__ = failures[0]
        return error

    def _complete(self, cache: RunCache, outcome: PermutationState) -> PermutationState:
        self._set_outcome(outcome)
        self._save(cache)
        return outcome

    def _fail(self, cache: RunCache, outcome: PermutationState, error: PermutestError) -> NoReturn:
        cause = error.__cause__
        self.error = error.message if cause is None else f"{error.message}: {cause!r}"
        self._set_outcome(outcome)
        try:
            self._save(cache)
        except RunCacheError as save_error:
            logger.warning(f"Could not save failed permutation {self.scenario.key}/{self.key}: {save_error.message}")
        raise error

    def _set_outcome(self, outcome: PermutationState) -> None:
        self.outcome = outcome
        self.state = outcome
        logger.info(f"{self.scenario.key}/{self.key}: {outcome.value}")

    def _load(self, cache: RunCache) -> PermutationSnapshot | None:
        try:
            return cache.load(self.scenario.key, self.key)
        except RunCacheError:
            raise
        except Exception as e:
            raise RunCacheError(
                f"Could not load previous run: {e}",
                context=self._error_context(),
            ) from e

    def _save(self, cache: RunCache) -> None:
        # Lazy import to avoid circular imports
        from permutest.storage.models import PermutationSnapshot

        snapshot = PermutationSnapshot.from_permutation(self)
        try:
            cache.save(self.scenario.key, snapshot)
        except RunCacheError:
            raise
        except Exception as e:
            raise RunCacheError(
                f"Could not save permutation run: {e}",
                context=self._error_context(),
            ) from e
        self.state = PermutationState.SAVED

    def _error_context(self, step: str | None = None) -> ErrorContext:
        return ErrorContext(
            scenario=self.scenario.key,
            permutation=self.key,
            step=step,
            description=self.render_description(),
            notes=self.render_notes(),
            data=self.render_data(),
        )

    def __repr__(self) -> str:
        return (
            f"Permutation({self.scenario.key}/{self.key[:8]}, "
            f"{self.long_key!r}, state={self.state.value})"
        )
