"""Value formatting for permutation descriptions, notes and data."""

from permutest.formatting.formats import (
    BUILTIN_FORMATS,
    render_default,
    render_json,
    render_repr,
    render_sorted,
    render_str,
    render_type,
    render_yaml,
)
from permutest.formatting.registry import (
    DEFAULT_FORMAT,
    FormatRegistry,
    FormatSpec,
    OutputFormat,
    get_registry,
    output_format,
    register_format,
    serialize,
)
from permutest.formatting.value import DescribedValue, render_values, serialize_values

__all__ = [
    "BUILTIN_FORMATS",
    "DEFAULT_FORMAT",
    "DescribedValue",
    "FormatRegistry",
    "FormatSpec",
    "OutputFormat",
    "get_registry",
    "output_format",
    "register_format",
    "render_default",
    "render_json",
    "render_repr",
    "render_sorted",
    "render_str",
    "render_type",
    "render_values",
    "render_yaml",
    "serialize",
    "serialize_values",
]
