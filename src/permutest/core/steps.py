"""Setup, verification and cleanup steps.

Steps are small capabilities with a single ``run`` method. Plain callables
are accepted anywhere a step is expected and wrapped in ``FunctionStep``.

A setup step returns a ``SetupOutcome``, one of three variants:

| Variant            | is_valid | can_verify |
|--------------------|----------|------------|
| ``Ok``             | True     | True       |
| ``CannotVerify``   | True     | False      |
| ``Invalid``        | False    | False      |
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class SetupOutcome:
    """Base of the closed set of setup outcomes. Use the variants."""

    message: str | None = None

    @property
    def is_valid(self) -> bool:
        raise NotImplementedError

    @property
    def can_verify(self) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class Ok(SetupOutcome):
    """Precondition satisfied, proceed normally."""

    @property
    def is_valid(self) -> bool:
        return True

    @property
    def can_verify(self) -> bool:
        return True


@dataclass(frozen=True)
class CannotVerify(SetupOutcome):
    """Precondition satisfied but verification should be skipped."""

    message: str = ""

    @property
    def is_valid(self) -> bool:
        return True

    @property
    def can_verify(self) -> bool:
        return False


@dataclass(frozen=True)
class Invalid(SetupOutcome):
    """Precondition impossible: the permutation is not a meaningful test."""

    message: str = ""

    @property
    def is_valid(self) -> bool:
        return False

    @property
    def can_verify(self) -> bool:
        return False


OK = Ok()


@runtime_checkable
class SetupStep(Protocol):
    def run(self) -> SetupOutcome: ...


@runtime_checkable
class VerificationStep(Protocol):
    def run(self) -> None: ...


@runtime_checkable
class CleanupStep(Protocol):
    def run(self) -> None: ...


class FunctionStep:
    """Adapts a zero-argument callable to the step protocols."""

    def __init__(self, fn: Callable[[], Any], name: str | None = None) -> None:
        if not callable(fn):
            raise TypeError(f"Step must be callable, got {type(fn).__name__}")
        self.fn = fn
        self.name = name or getattr(fn, "__name__", None) or type(fn).__name__

    def run(self) -> Any:
        return self.fn()

    def __repr__(self) -> str:
        return f"FunctionStep({self.name!r})"


def as_step(step: Any, name: str | None = None) -> Any:
    """Return ``step`` as an object with a ``run`` method."""
    if isinstance(step, FunctionStep):
        if name is not None:
            step.name = name
        return step
    run = getattr(step, "run", None)
    if callable(run):
        if name is not None:
            return FunctionStep(run, name=name)
        return step
    if callable(step):
        return FunctionStep(step, name=name)
    raise TypeError(f"{type(step).__name__} is neither callable nor has a run() method")


def step_name(step: Any) -> str:
    name = getattr(step, "name", None)
    if isinstance(name, str) and name:
        return name
    return type(step).__name__
