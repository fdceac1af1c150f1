"""Scenario - a named test that owns its permutations."""

from __future__ import annotations

import logging
from collections import Counter
from typing import TYPE_CHECKING, Any

from permutest.core.state import PermutationState
from permutest.errors import PermutestError
from permutest.formatting import FormatRegistry, FormatSpec

if TYPE_CHECKING:
    from permutest.config import PermutestSettings
    from permutest.core.permutation import Permutation
    from permutest.storage.protocol import RunCache

logger = logging.getLogger(__name__)


class Scenario:
    """A named test scenario.

    Permutations register themselves on construction; a scenario only ever
    grows. Its ``key`` is the first half of every run cache key.

    Example:
        >>> scenario = Scenario("create_table", group="postgres")
        >>> p = scenario.new_permutation()
        >>> p.describe("table_name", "users")
        >>> scenario.run_all(cache)
    """

    def __init__(
        self,
        name: str,
        group: str | None = None,
        formats: FormatRegistry | None = None,
        default_format: FormatSpec = None,
    ) -> None:
        if not name:
            raise ValueError("Scenario name cannot be empty")
        self.name = name
        self.group = group
        self.formats = formats
        self.default_format = default_format
        self.permutations: list[Permutation] = []

    @classmethod
    def from_settings(
        cls,
        name: str,
        settings: PermutestSettings,
        group: str | None = None,
        formats: FormatRegistry | None = None,
    ) -> Scenario:
        """Create a scenario whose permutations use ``settings.default_format``."""
        return cls(name, group=group, formats=formats, default_format=settings.default_format)

    @property
    def key(self) -> str:
        if self.group:
            return f"{self.group}.{self.name}"
        return self.name

    def add_permutation(self, permutation: Permutation) -> None:
        if permutation.scenario is not self:
            raise ValueError("Permutation belongs to a different scenario")
        if any(p is permutation for p in self.permutations):
            raise ValueError("Permutation is already registered with this scenario")
        self.permutations.append(permutation)

    def new_permutation(self, **kwargs: Any) -> Permutation:
        """Create a permutation owned by this scenario, using its formats."""
        from permutest.core.permutation import Permutation

        kwargs.setdefault("formats", self.formats)
        kwargs.setdefault("default_format", self.default_format)
        return Permutation(self, **kwargs)

    def run_all(
        self,
        cache: RunCache,
        stop_on_failure: bool = True,
    ) -> list[PermutationState]:
        """Run every permutation in registration order.

        Args:
            cache: Run cache each permutation loads from and saves to.
            stop_on_failure: Re-raise the first fatal failure. When False,
                failures are logged and the remaining permutations still run;
                the failure stays recorded on the permutation.

        Returns:
            The outcome of each permutation, in order.
        """
        outcomes: list[PermutationState] = []
        for permutation in list(self.permutations):
            try:
                outcomes.append(permutation.run(cache))
            except PermutestError as e:
                if stop_on_failure:
                    raise
                logger.error(f"{self.key}/{permutation.key} failed: {e.message}")
                outcomes.append(permutation.outcome)
        return outcomes

    def summary(self) -> dict[str, int]:
        """Count permutations per outcome of their last run."""
        counts = Counter(p.outcome.value for p in self.permutations)
        return dict(sorted(counts.items()))

    def __len__(self) -> int:
        return len(self.permutations)

    def __repr__(self) -> str:
        return f"Scenario({self.key!r}, permutations={len(self.permutations)})"
