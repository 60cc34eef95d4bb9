"""Theme definitions and parent-chain resolution."""

from __future__ import annotations

import logging

from pydantic import BaseModel, model_validator

from tplthemes.exceptions import ThemeError, ThemeNotFoundError

log = logging.getLogger(__name__)


class Theme(BaseModel):
    """A named theme, optionally extending a parent theme."""

    name: str
    display_name: str | None = None
    parent: str | None = None

    @model_validator(mode="after")
    def default_display_name(self) -> "Theme":
        if self.display_name is None:
            self.display_name = self.name
        return self


class ThemeRegistry:
    """Holds the known themes and the default theme."""

    def __init__(self, themes: list[Theme] | None = None, default: str | None = None):
        self._themes: dict[str, Theme] = {}
        for theme in themes or []:
            self.add_theme(theme)
        self._default = default

    @property
    def default(self) -> str | None:
        return self._default

    def add_theme(self, theme: Theme) -> None:
        self._themes[theme.name] = theme

    def has_theme(self, name: str) -> bool:
        return name in self._themes

    def list_themes(self) -> list[Theme]:
        return sorted(self._themes.values(), key=lambda theme: theme.name)

    def get_theme(self, name: str | None = None) -> Theme | None:
        """Get a theme by name, or the default theme when name is None.

        Returns None when no name is given and no default is configured.

        Raises:
            ThemeNotFoundError: If the requested (or default) theme is unknown.
        """
        if name is None:
            name = self._default
            if name is None:
                return None

        theme = self._themes.get(name)
        if theme is None:
            raise ThemeNotFoundError(name)
        return theme

    def resolve_theme_chain(self, name: str) -> list[str]:
        """Return the theme and its ancestors, most specific first.

        The unthemed base scope is implicit and never part of the chain.

        Raises:
            ThemeNotFoundError: If the theme or one of its parents is unknown.
            ThemeError: If the parent chain loops.
        """
        chain: list[str] = []
        current: str | None = name
        while current is not None:
            if current in chain:
                raise ThemeError(
                    f"Theme hierarchy of {name!r} loops: {' -> '.join(chain + [current])}"
                )
            theme = self.get_theme(current)
            assert theme is not None
            chain.append(theme.name)
            current = theme.parent

        log.debug(f"Theme chain for {name!r}: {chain}")
        return chain
