"""Run cache backends for persisting permutation outcomes.

Quick Start:
    >>> from permutest.storage import SqliteRunCache
    >>>
    >>> cache = SqliteRunCache("sqlite:///.permutest/runs.db")
    >>> permutation.run(cache)
    >>> previous = cache.load(scenario.key, permutation.key)
    >>> print(previous.outcome)

Backends:
    - InMemoryRunCache: process-local, for tests
    - SqliteRunCache: one row per permutation in SQLite
    - YamlRunCache: one reviewable YAML file per permutation
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from permutest.errors import ConfigValidationError
from permutest.storage.files import YamlRunCache
from permutest.storage.memory import InMemoryRunCache
from permutest.storage.models import PermutationSnapshot
from permutest.storage.protocol import RunCache
from permutest.storage.sqlite import SqliteRunCache

if TYPE_CHECKING:
    from permutest.config import PermutestSettings


def create_run_cache(settings: PermutestSettings) -> RunCache:
    """Build the run cache selected by ``settings.cache_backend``."""
    backend = settings.cache_backend
    if backend == "memory":
        return InMemoryRunCache()
    if backend == "sqlite":
        cache = SqliteRunCache(settings.cache_url)
        cache.initialize()
        return cache
    if backend == "yaml":
        return YamlRunCache(settings.cache_dir)
    raise ConfigValidationError(
        message=f"Unknown cache backend: {backend}",
        field="cache_backend",
        value=backend,
    )


__all__ = [
    "InMemoryRunCache",
    "PermutationSnapshot",
    "RunCache",
    "SqliteRunCache",
    "YamlRunCache",
    "create_run_cache",
]
