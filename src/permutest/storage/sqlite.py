"""SQLite-backed run cache.

Example:
    >>> from permutest.storage import SqliteRunCache
    >>> cache = SqliteRunCache("sqlite:///.permutest/runs.db")
    >>> cache.initialize()
    >>> permutation.run(cache)
    >>> cache.list_runs("create_table.basic")
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

from permutest.core.state import PermutationState
from permutest.errors import ErrorContext, RunCacheError
from permutest.storage.models import PermutationSnapshot

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS permutation_runs (
    scenario_key TEXT NOT NULL,
    permutation_key TEXT NOT NULL,
    long_key TEXT NOT NULL DEFAULT '',
    outcome TEXT NOT NULL,
    is_valid INTEGER NOT NULL,
    can_verify INTEGER NOT NULL,
    verified INTEGER NOT NULL,
    skip_reason TEXT,
    error TEXT,
    description TEXT NOT NULL DEFAULT '{}',
    notes TEXT NOT NULL DEFAULT '{}',
    data TEXT NOT NULL DEFAULT '{}',
    saved_at TEXT NOT NULL,
    PRIMARY KEY (scenario_key, permutation_key)
);

CREATE INDEX IF NOT EXISTS idx_permutation_runs_outcome ON permutation_runs(outcome);
"""


class SqliteRunCache:
    """Stores one row per (scenario, permutation) in a SQLite database.

    Attributes:
        connection_url: Database connection string.
    """

    def __init__(self, connection_url: str = "sqlite:///.permutest/runs.db") -> None:
        """Initialize the cache.

        Args:
            connection_url: Database connection string. Supports:
                - sqlite:///path/to/database.db
                - sqlite://:memory: (in-memory, for testing)
        """
        self.connection_url = connection_url
        self._conn: sqlite3.Connection | None = None
        self._initialized = False

    def initialize(self) -> None:
        """Open the connection and create the schema. Safe to call multiple times."""
        if self._initialized and self._conn:
            return

        db_path = self._parse_connection_url()
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        try:
            self._conn = sqlite3.connect(db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.executescript(SCHEMA_SQL)
            self._conn.commit()
        except sqlite3.Error as e:
            raise RunCacheError(
                f"Could not open run cache: {e}",
                context=ErrorContext(extra={"connection_url": self.connection_url}),
            ) from e

        self._initialized = True
        logger.info(f"Initialized run cache: {db_path}")

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None
            self._initialized = False

    def _parse_connection_url(self) -> str:
        url = self.connection_url

        if url.startswith("sqlite:///"):
            return str(Path(url[10:]).expanduser().absolute())
        if url.startswith("sqlite://"):
            path = url[9:]
            if path == ":memory:":
                return path
            return str(Path(path).expanduser().absolute())
        return url

    def _connection(self) -> sqlite3.Connection:
        if not self._initialized or not self._conn:
            self.initialize()
        assert self._conn is not None
        return self._conn

    def load(self, scenario_key: str, permutation_key: str) -> PermutationSnapshot | None:
        conn = self._connection()
        try:
            row = conn.execute(
                "SELECT * FROM permutation_runs WHERE scenario_key = ? AND permutation_key = ?",
                (scenario_key, permutation_key),
            ).fetchone()
        except sqlite3.Error as e:
            raise RunCacheError(
                f"Could not load {scenario_key}/{permutation_key}: {e}",
                context=ErrorContext(scenario=scenario_key, permutation=permutation_key),
            ) from e
        return self._row_to_snapshot(row) if row else None

    def save(self, scenario_key: str, snapshot: PermutationSnapshot) -> None:
        conn = self._connection()
        try:
            with conn:
                conn.execute(
                    """
                    INSERT OR REPLACE INTO permutation_runs (
                        scenario_key, permutation_key, long_key, outcome,
                        is_valid, can_verify, verified, skip_reason, error,
                        description, notes, data, saved_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        scenario_key,
                        snapshot.key,
                        snapshot.long_key,
                        snapshot.outcome.value,
                        int(snapshot.is_valid),
                        int(snapshot.can_verify),
                        int(snapshot.verified),
                        snapshot.skip_reason,
                        snapshot.error,
                        json.dumps(snapshot.description, sort_keys=True),
                        json.dumps(snapshot.notes, sort_keys=True),
                        json.dumps(snapshot.data, sort_keys=True),
                        snapshot.saved_at.isoformat(),
                    ),
                )
        except sqlite3.Error as e:
            raise RunCacheError(
                f"Could not save {scenario_key}/{snapshot.key}: {e}",
                context=ErrorContext(scenario=scenario_key, permutation=snapshot.key),
            ) from e
        logger.debug(f"Saved permutation run: {scenario_key}/{snapshot.key}")

    def list_runs(self, scenario_key: str | None = None) -> list[PermutationSnapshot]:
        conn = self._connection()
        query = "SELECT * FROM permutation_runs"
        params: list[Any] = []
        if scenario_key is not None:
            query += " WHERE scenario_key = ?"
            params.append(scenario_key)
        query += " ORDER BY scenario_key ASC, permutation_key ASC"
        try:
            rows = conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            raise RunCacheError(
                f"Could not list runs: {e}",
                context=ErrorContext(scenario=scenario_key),
            ) from e
        return [self._row_to_snapshot(row) for row in rows]

    def delete(self, scenario_key: str, permutation_key: str) -> bool:
        conn = self._connection()
        try:
            with conn:
                cursor = conn.execute(
                    "DELETE FROM permutation_runs WHERE scenario_key = ? AND permutation_key = ?",
                    (scenario_key, permutation_key),
                )
        except sqlite3.Error as e:
            raise RunCacheError(
                f"Could not delete {scenario_key}/{permutation_key}: {e}",
                context=ErrorContext(scenario=scenario_key, permutation=permutation_key),
            ) from e
        return cursor.rowcount > 0

    def clear(self, scenario_key: str | None = None) -> int:
        conn = self._connection()
        try:
            with conn:
                if scenario_key is None:
                    cursor = conn.execute("DELETE FROM permutation_runs")
                else:
                    cursor = conn.execute(
                        "DELETE FROM permutation_runs WHERE scenario_key = ?", (scenario_key,)
                    )
        except sqlite3.Error as e:
            raise RunCacheError(
                f"Could not clear runs: {e}",
                context=ErrorContext(scenario=scenario_key),
            ) from e
        return cursor.rowcount

    def _row_to_snapshot(self, row: sqlite3.Row) -> PermutationSnapshot:
        return PermutationSnapshot(
            scenario_key=row["scenario_key"],
            key=row["permutation_key"],
            long_key=row["long_key"],
            outcome=PermutationState(row["outcome"]),
            is_valid=bool(row["is_valid"]),
            can_verify=bool(row["can_verify"]),
            verified=bool(row["verified"]),
            skip_reason=row["skip_reason"],
            error=row["error"],
            description=json.loads(row["description"]),
            notes=json.loads(row["notes"]),
            data=json.loads(row["data"]),
            saved_at=datetime.fromisoformat(row["saved_at"]),
        )

    def __enter__(self) -> SqliteRunCache:
        self.initialize()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
