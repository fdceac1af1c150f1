"""RunCache protocol - where permutation outcomes are kept between runs."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from permutest.storage.models import PermutationSnapshot


@runtime_checkable
class RunCache(Protocol):
    """Load-by-identity / save-by-identity persistence of permutation runs.

    Entries are keyed by the scenario key plus the permutation's identity
    digest. A ``save`` replaces any previous entry for the same pair and
    is atomic: a reader never observes a partially written snapshot.

    Example::

        cache = InMemoryRunCache()
        permutation.run(cache)
        previous = cache.load(scenario.key, permutation.key)
    """

    def load(self, scenario_key: str, permutation_key: str) -> PermutationSnapshot | None:
        """Return the stored snapshot, or None if this permutation never ran."""
        ...

    def save(self, scenario_key: str, snapshot: PermutationSnapshot) -> None:
        """Store ``snapshot``. Raises ``RunCacheError`` on failure."""
        ...

    def list_runs(self, scenario_key: str | None = None) -> list[PermutationSnapshot]:
        """All stored snapshots, optionally restricted to one scenario."""
        ...

    def delete(self, scenario_key: str, permutation_key: str) -> bool:
        """Remove one entry. Returns True if something was removed."""
        ...

    def clear(self, scenario_key: str | None = None) -> int:
        """Remove every entry (of one scenario). Returns how many were removed."""
        ...

    def close(self) -> None:
        """Release any resources held by the cache."""
        ...


__all__ = ["RunCache"]
