"""In-memory run cache, for tests and one-off runs."""

from __future__ import annotations

import copy
import logging
import threading

from permutest.storage.models import PermutationSnapshot

logger = logging.getLogger(__name__)


class InMemoryRunCache:
    """Keeps snapshots in a dict keyed by (scenario key, permutation key).

    Snapshots are copied on the way in and out so callers cannot mutate
    stored entries.
    """

    def __init__(self) -> None:
        self._runs: dict[tuple[str, str], PermutationSnapshot] = {}
        self._lock = threading.Lock()
        self.loads = 0
        self.saves = 0

    def load(self, scenario_key: str, permutation_key: str) -> PermutationSnapshot | None:
        with self._lock:
            self.loads += 1
            snapshot = self._runs.get((scenario_key, permutation_key))
            return copy.deepcopy(snapshot) if snapshot is not None else None

    def save(self, scenario_key: str, snapshot: PermutationSnapshot) -> None:
        with self._lock:
            self.saves += 1
            self._runs[(scenario_key, snapshot.key)] = copy.deepcopy(snapshot)
        logger.debug(f"Saved {scenario_key}/{snapshot.key} ({snapshot.outcome.value})")

    def list_runs(self, scenario_key: str | None = None) -> list[PermutationSnapshot]:
        with self._lock:
            items = sorted(self._runs.items())
            return [
                copy.deepcopy(snapshot)
                for (scenario, _), snapshot in items
                if scenario_key is None or scenario == scenario_key
            ]

    def delete(self, scenario_key: str, permutation_key: str) -> bool:
        with self._lock:
            return self._runs.pop((scenario_key, permutation_key), None) is not None

    def clear(self, scenario_key: str | None = None) -> int:
        with self._lock:
            keys = [k for k in self._runs if scenario_key is None or k[0] == scenario_key]
            for k in keys:
                del self._runs[k]
            return len(keys)

    def close(self) -> None:
        pass

    def __len__(self) -> int:
        return len(self._runs)
