"""Named output formats and the registry that resolves them."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Union

from permutest.errors import UnknownFormatError
from permutest.formatting.formats import BUILTIN_FORMATS, Renderer

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = "default"


@dataclass(frozen=True)
class OutputFormat:
    """A named way of rendering values to text.

    ``format`` never raises: when the renderer fails it falls back to
    ``repr`` and then to the bare type name.
    """

    name: str
    render: Renderer = field(compare=False, repr=False)
    description: str = field(default="", compare=False)

    def format(self, value: Any) -> str:
        try:
            return self.render(value)
        except Exception as e:
            logger.debug(f"Format '{self.name}' failed for {type(value).__name__}: {e}")
        try:
            return repr(value)
        except Exception:
            return f"<{type(value).__name__}>"


FormatSpec = Union[str, OutputFormat, Callable[[Any], str], None]


class FormatRegistry:
    """Maps format names to ``OutputFormat`` objects.

    The ``default`` format is always resolvable.

    Example:
        >>> registry = FormatRegistry()
        >>> registry.register("upper", lambda v: str(v).upper())
        >>> registry.get("upper").format("abc")
        'ABC'
    """

    def __init__(self, include_builtins: bool = True) -> None:
        self._formats: dict[str, OutputFormat] = {}
        if include_builtins:
            for name, (render, description) in BUILTIN_FORMATS.items():
                self._formats[name] = OutputFormat(name, render, description)
        else:
            render, description = BUILTIN_FORMATS[DEFAULT_FORMAT]
            self._formats[DEFAULT_FORMAT] = OutputFormat(DEFAULT_FORMAT, render, description)

    def register(
        self,
        name: str,
        render: Renderer,
        description: str = "",
        replace: bool = False,
    ) -> OutputFormat:
        if not name:
            raise ValueError("Format name cannot be empty")
        if name in self._formats and not replace:
            raise ValueError(f"Format '{name}' is already registered")
        fmt = OutputFormat(name, render, description)
        self._formats[name] = fmt
        return fmt

    def unregister(self, name: str) -> None:
        if name == DEFAULT_FORMAT:
            raise ValueError("The default format cannot be removed")
        self._formats.pop(name, None)

    def get(self, name: str) -> OutputFormat:
        fmt = self._formats.get(name)
        if fmt is None:
            raise UnknownFormatError(name, list(self._formats))
        return fmt

    @property
    def default(self) -> OutputFormat:
        return self._formats[DEFAULT_FORMAT]

    def names(self) -> list[str]:
        return sorted(self._formats)

    def all(self) -> list[OutputFormat]:
        return [self._formats[name] for name in self.names()]

    def resolve(self, spec: FormatSpec = None) -> OutputFormat:
        """Turn a name, format object or plain callable into an ``OutputFormat``."""
        if spec is None:
            return self.default
        if isinstance(spec, OutputFormat):
            return spec
        if isinstance(spec, str):
            return self.get(spec)
        if callable(spec):
            return OutputFormat(getattr(spec, "__name__", "custom"), spec)
        raise TypeError(f"Cannot use {type(spec).__name__} as an output format")

    def serialize(self, value: Any, spec: FormatSpec = None) -> str:
        return self.resolve(spec).format(value)

    def __contains__(self, name: object) -> bool:
        return name in self._formats


_default_registry = FormatRegistry()


def get_registry() -> FormatRegistry:
    """The process-wide registry used when no registry is passed explicitly."""
    return _default_registry


def register_format(
    name: str,
    render: Renderer,
    description: str = "",
    replace: bool = False,
) -> OutputFormat:
    return _default_registry.register(name, render, description, replace=replace)


def output_format(
    name: str,
    description: str = "",
    registry: FormatRegistry | None = None,
) -> Callable[[Renderer], Renderer]:
    """Decorator registering a renderer under ``name``.

    Example:
        >>> @output_format("hex")
        ... def render_hex(value):
        ...     return hex(value)
    """

    def decorator(render: Renderer) -> Renderer:
        (registry or _default_registry).register(name, render, description or (render.__doc__ or "").strip())
        return render

    return decorator


def serialize(value: Any, spec: FormatSpec = None) -> str:
    """Render ``value`` with the named format from the default registry."""
    return _default_registry.serialize(value, spec)
