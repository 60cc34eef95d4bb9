"""Template request objects handed to the engine."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class Template(BaseModel):
    """A template resource plus the variables to render it with."""

    resource: str | None = None
    variables: dict[str, Any] = Field(default_factory=dict)

    def set(self, name: str, value: Any) -> None:
        """Set a single variable."""
        self.variables[name] = value

    def get(self, name: str, default: Any = None) -> Any:
        return self.variables.get(name, default)


class ThemedTemplate(Template):
    """A template rendered through a theme, optionally as a variant.

    `resource_id` selects a variant file: with `resource_id="mobile"` the
    resource `pages/home` is looked up as `pages/home.mobile.tpl` before
    `pages/home.tpl`.
    """

    theme: str | None = None
    resource_id: str | None = None
