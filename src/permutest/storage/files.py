"""YAML file run cache: one file per permutation, easy to review in git."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from urllib.parse import quote

import yaml

from permutest.errors import ErrorContext, RunCacheError
from permutest.storage.models import PermutationSnapshot

logger = logging.getLogger(__name__)


def _safe_name(name: str) -> str:
    """Percent-encode ``name`` into a single path component.

    The encoding is injective, so distinct keys never share a file. A leading
    dot is encoded too, which rules out hidden files and ".." components.
    """
    safe = quote(name, safe="")
    if safe.startswith("."):
        safe = "%2E" + safe[1:]
    return safe or "%"


class YamlRunCache:
    """Stores snapshots under ``<root>/<scenario key>/<permutation key>.yaml``.

    Writes go to a temporary file first and are moved into place, so a
    reader sees either the previous snapshot or the new one.
    """

    def __init__(self, root: str | Path = ".permutest/runs") -> None:
        self.root = Path(root)

    def _path(self, scenario_key: str, permutation_key: str) -> Path:
        return self.root / _safe_name(scenario_key) / f"{_safe_name(permutation_key)}.yaml"

    def load(self, scenario_key: str, permutation_key: str) -> PermutationSnapshot | None:
        path = self._path(scenario_key, permutation_key)
        if not path.exists():
            return None
        snapshot = self._read(path)
        if snapshot.scenario_key != scenario_key or snapshot.key != permutation_key:
            logger.warning(
                f"Ignoring {path}: it holds {snapshot.scenario_key}/{snapshot.key}, "
                f"not {scenario_key}/{permutation_key}"
            )
            return None
        return snapshot

    def save(self, scenario_key: str, snapshot: PermutationSnapshot) -> None:
        path = self._path(scenario_key, snapshot.key)
        content = snapshot.to_dict()
        content["scenario_key"] = scenario_key
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    yaml.safe_dump(content, f, sort_keys=True, allow_unicode=True)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except (OSError, yaml.YAMLError) as e:
            raise RunCacheError(
                f"Could not save {scenario_key}/{snapshot.key}: {e}",
                context=ErrorContext(
                    scenario=scenario_key,
                    permutation=snapshot.key,
                    extra={"path": str(path)},
                ),
            ) from e
        logger.debug(f"Saved permutation run to {path}")

    def list_runs(self, scenario_key: str | None = None) -> list[PermutationSnapshot]:
        if not self.root.exists():
            return []
        if scenario_key is not None:
            directories = [self.root / _safe_name(scenario_key)]
        else:
            directories = sorted(p for p in self.root.iterdir() if p.is_dir())
        snapshots = []
        for directory in directories:
            if not directory.is_dir():
                continue
            for path in directory.glob("*.yaml"):
                snapshot = self._read(path)
                if scenario_key is None or snapshot.scenario_key == scenario_key:
                    snapshots.append(snapshot)
        return sorted(snapshots, key=lambda s: (s.scenario_key, s.key))

    def delete(self, scenario_key: str, permutation_key: str) -> bool:
        path = self._path(scenario_key, permutation_key)
        if not path.exists():
            return False
        path.unlink()
        return True

    def clear(self, scenario_key: str | None = None) -> int:
        removed = 0
        for snapshot in self.list_runs(scenario_key):
            if self.delete(snapshot.scenario_key, snapshot.key):
                removed += 1
        return removed

    def close(self) -> None:
        pass

    def _read(self, path: Path) -> PermutationSnapshot:
        try:
            with open(path, encoding="utf-8") as f:
                content = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise RunCacheError(
                f"Could not read run cache entry {path}: {e}",
                context=ErrorContext(extra={"path": str(path)}),
            ) from e
        if not isinstance(content, dict):
            raise RunCacheError(
                f"Run cache entry must be a YAML mapping, got {type(content).__name__}",
                context=ErrorContext(extra={"path": str(path)}),
            )
        return PermutationSnapshot.from_dict(content)
