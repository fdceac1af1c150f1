"""Persisted records of permutation runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from permutest.core.state import PermutationState

if TYPE_CHECKING:
    from permutest.core.permutation import Permutation


@dataclass
class PermutationSnapshot:
    """Everything the run cache keeps about one permutation run.

    Described values are stored already rendered, so a snapshot can be
    read back without the formats that produced it.

    Attributes:
        scenario_key: Key of the owning scenario.
        key: Identity digest of the permutation.
        long_key: Canonical description the digest was computed from.
        outcome: Terminal lifecycle state of the run.
        is_valid: Whether the preconditions were possible.
        can_verify: Whether setup allowed verification.
        verified: Whether verification completed.
        skip_reason: Why the permutation was not run or not verified.
        error: Message of the fatal failure, if the run failed.
        description: Rendered description values.
        notes: Rendered notes.
        data: Rendered data.
        saved_at: When the snapshot was taken.
    """

    scenario_key: str
    key: str
    long_key: str = ""
    outcome: PermutationState = PermutationState.CREATED
    is_valid: bool = True
    can_verify: bool = True
    verified: bool = False
    skip_reason: str | None = None
    error: str | None = None
    description: dict[str, str] = field(default_factory=dict)
    notes: dict[str, str] = field(default_factory=dict)
    data: dict[str, str] = field(default_factory=dict)
    saved_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def from_permutation(cls, permutation: Permutation) -> PermutationSnapshot:
        return cls(
            scenario_key=permutation.scenario.key,
            key=permutation.key,
            long_key=permutation.long_key,
            outcome=permutation.outcome,
            is_valid=permutation.is_valid,
            can_verify=permutation.can_verify,
            verified=permutation.verified,
            skip_reason=permutation.skip_reason,
            error=permutation.error,
            description=permutation.serialized_description(),
            notes=permutation.serialized_notes(),
            data=permutation.serialized_data(),
        )

    @property
    def ran(self) -> bool:
        """True if the permutation reached an outcome past skipping and setup validity."""
        return self.outcome.is_outcome and self.outcome not in (
            PermutationState.SKIPPED,
            PermutationState.INVALID,
        )

    @property
    def failed(self) -> bool:
        return self.outcome.is_failure

    def to_dict(self) -> dict[str, Any]:
        return {
            "scenario_key": self.scenario_key,
            "key": self.key,
            "long_key": self.long_key,
            "outcome": self.outcome.value,
            "is_valid": self.is_valid,
            "can_verify": self.can_verify,
            "verified": self.verified,
            "skip_reason": self.skip_reason,
            "error": self.error,
            "description": dict(self.description),
            "notes": dict(self.notes),
            "data": dict(self.data),
            "saved_at": self.saved_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PermutationSnapshot:
        saved_at = data.get("saved_at")
        if isinstance(saved_at, str):
            saved_at = datetime.fromisoformat(saved_at)
        return cls(
            scenario_key=data["scenario_key"],
            key=data["key"],
            long_key=data.get("long_key", ""),
            outcome=PermutationState(data.get("outcome", PermutationState.CREATED.value)),
            is_valid=bool(data.get("is_valid", True)),
            can_verify=bool(data.get("can_verify", True)),
            verified=bool(data.get("verified", False)),
            skip_reason=data.get("skip_reason"),
            error=data.get("error"),
            description=dict(data.get("description") or {}),
            notes=dict(data.get("notes") or {}),
            data=dict(data.get("data") or {}),
            saved_at=saved_at or datetime.now(),
        )
