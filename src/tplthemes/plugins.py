"""Filters and globals for the template engine.

Plugins are referenced as "module:attribute" in the configuration, e.g.

    filters:
      slug: mypkg.text:slugify
    globals:
      site: mypkg.site:SITE

and imported once when the engine is built.
"""

from __future__ import annotations

import builtins
import importlib
from typing import Any, Callable

from tplthemes.exceptions import PluginError


def import_object(reference: str) -> Any:
    """Import an object from a 'module.submodule:attribute' reference."""
    module_path, sep, attribute = reference.partition(":")
    if not sep or not module_path or not attribute:
        raise PluginError(
            f"Invalid plugin reference {reference!r}: expected 'module:attribute'"
        )

    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        raise PluginError(f"Could not import module '{module_path}': {e}") from e

    value: Any = module
    for part in attribute.split("."):
        try:
            value = getattr(value, part)
        except AttributeError as e:
            raise PluginError(f"Module '{module_path}' has no attribute '{attribute}'") from e
    return value


def load_callables(references: dict[str, str]) -> dict[str, Any]:
    """Import every reference of a name -> reference mapping."""
    return {name: import_object(reference) for name, reference in references.items()}


_BLOCKED_BUILTINS = frozenset(
    {
        "breakpoint",
        "compile",
        "delattr",
        "eval",
        "exec",
        "exit",
        "globals",
        "help",
        "input",
        "locals",
        "open",
        "print",
        "quit",
        "setattr",
        "vars",
    }
)


def _builtin_callable(name: str) -> Callable[..., Any] | None:
    if name.startswith("_") or name in _BLOCKED_BUILTINS:
        return None
    value = getattr(builtins, name, None)
    # builtin functions only, no classes
    if callable(value) and not isinstance(value, type):
        return value
    return None


class PassThroughFilters(dict):
    """Filter table that falls back to Python builtins.

    With this table `{{ items|len }}` or `{{ items|sorted }}` work without
    registering `len` or `sorted` as filters. Registered filters always take
    precedence.
    """

    def __missing__(self, key: str) -> Callable[..., Any]:
        value = _builtin_callable(key)
        if value is None:
            raise KeyError(key)
        return value

    def __contains__(self, key: object) -> bool:
        if dict.__contains__(self, key):
            return True
        return isinstance(key, str) and _builtin_callable(key) is not None

    def get(self, key: str, default: Any = None) -> Any:
        try:
            return self[key]
        except KeyError:
            return default

    def copy(self) -> "PassThroughFilters":
        return PassThroughFilters(self)
