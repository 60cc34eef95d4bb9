"""Resolver - maps logical template names to files through a theme stack.

Resolution order for `pages/home` with themes `[dark, default]` and variant
`mobile`:

    dark/pages/home.mobile.tpl
    dark/pages/home.tpl
    default/pages/home.mobile.tpl
    default/pages/home.tpl
    pages/home.mobile.tpl
    pages/home.tpl

Every path is prefixed with the base path when one is set. The first file
found wins.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from dataclasses import dataclass
from itertools import count
from typing import Iterable, NamedTuple

from tplthemes.exceptions import InvalidPathError, ResourceNotFoundError
from tplthemes.files import EXTENSION, FileLookup, TemplateFile
from tplthemes.listing import list_files

log = logging.getLogger(__name__)

_instance_ids = count()


@dataclass(frozen=True)
class ResolutionContext:
    """Theme stack and variant for a single operation."""

    themes: tuple[str, ...] = ()
    variant: str | None = None

    @classmethod
    def create(
        cls, themes: Iterable[str] | None = None, variant: str | None = None
    ) -> "ResolutionContext":
        return cls(themes=tuple(themes or ()), variant=variant or None)


EMPTY_CONTEXT = ResolutionContext()


class Candidate(NamedTuple):
    """One path to try, with the scope it belongs to."""

    path: str
    theme: str | None
    variant: str | None


def scope_prefix(base_path: str | None, theme: str | None) -> str:
    """Build `base/theme/` with exactly one trailing separator."""
    parts = [part.strip("/") for part in (base_path, theme) if part]
    parts = [part for part in parts if part]
    if not parts:
        return ""
    return "/".join(parts) + "/"


def scope_candidates(
    name: str,
    theme: str | None,
    variant: str | None,
    base_path: str | None = None,
    extension: str = EXTENSION,
) -> list[Candidate]:
    """Candidates for a single scope: the variant file first, then the bare file."""
    prefix = scope_prefix(base_path, theme)
    # names are always relative to the scope
    name = name.lstrip("/")
    candidates = []
    if variant:
        candidates.append(Candidate(f"{prefix}{name}.{variant}.{extension}", theme, variant))
    candidates.append(Candidate(f"{prefix}{name}.{extension}", theme, None))
    return candidates


def candidate_paths(
    name: str,
    context: ResolutionContext,
    base_path: str | None = None,
    extension: str = EXTENSION,
) -> list[Candidate]:
    """All candidates for a name: each theme in stack order, then no theme."""
    candidates: list[Candidate] = []
    for theme in context.themes:
        candidates.extend(scope_candidates(name, theme, context.variant, base_path, extension))
    candidates.extend(scope_candidates(name, None, context.variant, base_path, extension))
    return candidates


def first_match(lookup: FileLookup, candidates: list[Candidate]) -> TemplateFile | None:
    """Return the file of the first candidate the lookup finds."""
    for candidate in candidates:
        file = lookup.find_file(candidate.path)
        if file is not None:
            return file
    return None


class ThemeResourceResolver:
    """Resolves template resources through the themes and variant of the
    current operation.

    The theme stack and variant are transient: `configure` sets them before an
    operation and `clear` resets them afterwards. They are kept in a context
    variable, so concurrent threads or tasks sharing a resolver do not see each
    other's state.
    """

    def __init__(
        self,
        lookup: FileLookup,
        base_path: str | None = None,
        extension: str = EXTENSION,
    ):
        """Initialize the resolver.

        Args:
            lookup: File lookup used for every candidate path.
            base_path: Optional path prefix scoping all lookups.
            extension: Extension of the template resources, without the dot.
        """
        self.lookup = lookup
        self.extension = extension
        self.set_base_path(base_path)
        self._context: ContextVar[ResolutionContext | None] = ContextVar(
            f"tplthemes_resolution_{next(_instance_ids)}", default=None
        )

    @property
    def base_path(self) -> str | None:
        return self._base_path

    def set_base_path(self, base_path: str | None) -> None:
        """Set the path prefix for the lookup.

        Raises:
            InvalidPathError: If the path is set but empty or not a string.
        """
        if base_path is not None and (not isinstance(base_path, str) or not base_path):
            raise InvalidPathError(base_path)
        self._base_path = base_path

    def configure(self, themes: Iterable[str] | None, variant: str | None = None) -> None:
        """Set the theme stack and variant for the current operation."""
        context = ResolutionContext.create(themes, variant)
        self._context.set(context)
        log.debug(f"Resolver configured: themes={list(context.themes)} variant={context.variant}")

    def clear(self) -> None:
        """Reset the theme stack and variant."""
        self._context.set(None)

    @property
    def context(self) -> ResolutionContext:
        return self._context.get() or EMPTY_CONTEXT

    @property
    def themes(self) -> tuple[str, ...] | None:
        context = self._context.get()
        if context is None or not context.themes:
            return None
        return context.themes

    @property
    def variant(self) -> str | None:
        context = self._context.get()
        return context.variant if context else None

    def candidates(self, name: str, context: ResolutionContext | None = None) -> list[Candidate]:
        return candidate_paths(name, context or self.context, self.base_path, self.extension)

    def resolve_in_scope(
        self,
        name: str,
        theme: str | None = None,
        context: ResolutionContext | None = None,
    ) -> TemplateFile:
        """Resolve a name in a single theme scope (or the unthemed scope).

        Raises:
            ResourceNotFoundError: If neither the variant nor the bare file
                exists in this scope.
        """
        variant = (context or self.context).variant
        candidates = scope_candidates(name, theme, variant, self.base_path, self.extension)
        file = first_match(self.lookup, candidates)
        if file is None:
            raise ResourceNotFoundError(name, candidates[-1].path)
        return file

    def resolve_file(self, name: str, context: ResolutionContext | None = None) -> TemplateFile:
        """Resolve a name through every theme, then the unthemed scope.

        Args:
            name: Logical resource name, without extension.
            context: Resolution context; defaults to the configured one.

        Returns:
            The first file found.

        Raises:
            ResourceNotFoundError: If no candidate exists in any scope.
        """
        candidates = self.candidates(name, context)
        file = first_match(self.lookup, candidates)
        if file is None:
            log.debug(f"{name}: none of {len(candidates)} candidate(s) found")
            raise ResourceNotFoundError(name, candidates[-1].path)

        log.debug(f"{name} resolved to {file.path}")
        return file

    def get_files(self, namespace: str, context: ResolutionContext | None = None) -> dict[str, str]:
        """List the resources of a namespace through the theme stack."""
        context = context or self.context
        return list_files(
            self.lookup,
            namespace,
            themes=context.themes,
            base_path=self.base_path,
            extension=self.extension,
        )
