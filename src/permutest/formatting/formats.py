"""Built-in renderers for described values.

Each renderer turns an arbitrary value into a canonical string. Renderers
are allowed to raise; ``OutputFormat.format`` makes them total.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable, Mapping
from enum import Enum
from typing import Any

import yaml

Renderer = Callable[[Any], str]


def _qualified_name(cls: type) -> str:
    if cls.__module__ == "builtins":
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


def _render_scalar(value: Any) -> str | None:
    """Render the values every structured format agrees on, or None."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, type):
        return _qualified_name(value)
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return None


def _render_mapping(value: Mapping[Any, Any], render: Renderer) -> str:
    items = sorted((render(k), render(v)) for k, v in value.items())
    return "{" + ", ".join(f"{k}={v}" for k, v in items) + "}"


def render_default(value: Any) -> str:
    """Canonical rendering for primitives and simple collections.

    Lists and tuples keep their order, sets and mapping keys are sorted so
    the result does not depend on insertion or hash order.
    """
    scalar = _render_scalar(value)
    if scalar is not None:
        return scalar
    if isinstance(value, Mapping):
        return _render_mapping(value, render_default)
    if isinstance(value, (set, frozenset)):
        return "[" + ", ".join(sorted(render_default(v) for v in value)) + "]"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(render_default(v) for v in value) + "]"
    return str(value)


def render_sorted(value: Any) -> str:
    """Like ``render_default`` but every iterable is rendered in sorted order."""
    scalar = _render_scalar(value)
    if scalar is not None:
        return scalar
    if isinstance(value, Mapping):
        return _render_mapping(value, render_sorted)
    if isinstance(value, (bytes, bytearray)):
        return str(value)
    if isinstance(value, Iterable):
        return "[" + ", ".join(sorted(render_sorted(v) for v in value)) + "]"
    return str(value)


def render_str(value: Any) -> str:
    return str(value)


def render_repr(value: Any) -> str:
    return repr(value)


def render_json(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def render_yaml(value: Any) -> str:
    text = yaml.safe_dump(
        value,
        default_flow_style=True,
        sort_keys=True,
        width=2**31 - 1,
    ).strip()
    # Scalars come back with an explicit document end marker.
    if text.endswith("..."):
        text = text[:-3].rstrip()
    return text


def render_type(value: Any) -> str:
    return _qualified_name(type(value))


BUILTIN_FORMATS: dict[str, tuple[Renderer, str]] = {
    "default": (render_default, "Canonical rendering of primitives and collections"),
    "str": (render_str, "Python str()"),
    "repr": (render_repr, "Python repr()"),
    "json": (render_json, "JSON with sorted keys"),
    "yaml": (render_yaml, "Single-line flow-style YAML"),
    "type": (render_type, "Qualified class name of the value"),
    "sorted": (render_sorted, "Canonical rendering with every collection sorted"),
}
