"""Pytest fixtures for permutest tests."""

from __future__ import annotations

from typing import Any

import pytest

from permutest import OK, InMemoryRunCache, Permutation, Scenario
from permutest.errors import CannotVerifyError


class StepRecorder:
    """Builds steps that record the order in which they were called."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def setup(self, name: str, outcome: Any = OK):
        def step():
            self.calls.append(name)
            return outcome

        step.__name__ = name
        return step

    def action(self, name: str, error: BaseException | None = None):
        def step():
            self.calls.append(name)
            if error is not None:
                raise error

        step.__name__ = name
        return step

    def cannot_verify(self, name: str, message: str = "not supported here"):
        return self.action(name, CannotVerifyError(message))

    def count(self, name: str) -> int:
        return self.calls.count(name)


class FailingRunCache(InMemoryRunCache):
    """Run cache whose save always fails."""

    def save(self, scenario_key, snapshot):
        self.saves += 1
        raise OSError("disk full")


@pytest.fixture
def cache() -> InMemoryRunCache:
    return InMemoryRunCache()


@pytest.fixture
def scenario() -> Scenario:
    return Scenario("create_table", group="postgres")


@pytest.fixture
def permutation(scenario: Scenario) -> Permutation:
    p = Permutation(scenario)
    p.describe("table_name", "users")
    p.describe("columns", ["id", "name"])
    return p


@pytest.fixture
def recorder() -> StepRecorder:
    return StepRecorder()


@pytest.fixture
def failing_cache() -> FailingRunCache:
    return FailingRunCache()
