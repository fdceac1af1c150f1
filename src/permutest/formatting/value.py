"""DescribedValue: a value paired with the format that renders it."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from permutest.formatting.registry import OutputFormat


@dataclass(frozen=True)
class DescribedValue:
    """A value and its output format. Immutable once created.

    The value is rendered once, on construction. Mutating the original
    object afterwards does not change ``serialize()``.
    """

    value: Any
    format: OutputFormat
    text: str = field(init=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "text", self.format.format(self.value))

    def serialize(self) -> str:
        return self.text

    def __str__(self) -> str:
        return self.serialize()


def render_values(values: Mapping[str, DescribedValue], separator: str = ", ") -> str:
    """Render ``key=value`` pairs in ascending key order."""
    return separator.join(f"{key}={values[key].serialize()}" for key in sorted(values))


def serialize_values(values: Mapping[str, DescribedValue]) -> dict[str, str]:
    return {key: values[key].serialize() for key in sorted(values)}
