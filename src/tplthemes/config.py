"""Configuration parsing for tplthemes.yaml"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from tplthemes.engine import TemplateEngine
from tplthemes.files import EXTENSION, FileSystemLookup
from tplthemes.plugins import load_callables
from tplthemes.resolver import ThemeResourceResolver
from tplthemes.themes import Theme, ThemeRegistry

CONFIG_FILENAME = "tplthemes.yaml"


class ThemeConfig(BaseModel):
    """Configuration for a theme"""

    display_name: str | None = None
    parent: str | None = None


class EngineConfig(BaseModel):
    """Full tplthemes.yaml configuration"""

    roots: list[str] = Field(default_factory=lambda: ["templates"])
    base_path: str | None = None
    extension: str = EXTENSION
    compile_dir: str | None = None
    autoescape: bool = False
    passthrough_filters: bool = False
    cache_size: int = 400
    max_environments: int = 64
    default_theme: str | None = None
    themes: dict[str, ThemeConfig] = {}
    filters: dict[str, str] = {}
    globals: dict[str, str] = {}

    @field_validator("base_path")
    @classmethod
    def base_path_not_empty(cls, value: str | None) -> str | None:
        if value is not None and not value.strip("/ "):
            raise ValueError("base_path must not be empty")
        return value

    @field_validator("extension")
    @classmethod
    def strip_extension_dot(cls, value: str) -> str:
        value = value.lstrip(".")
        if not value:
            raise ValueError("extension must not be empty")
        return value

    @model_validator(mode="after")
    def check_theme_references(self) -> "EngineConfig":
        if self.default_theme is not None and self.default_theme not in self.themes:
            raise ValueError(f"default_theme {self.default_theme!r} is not a defined theme")
        for name, theme in self.themes.items():
            if theme.parent is not None and theme.parent not in self.themes:
                raise ValueError(f"theme {name!r} has unknown parent {theme.parent!r}")
        return self

    @classmethod
    def load(cls, path: Path) -> "EngineConfig":
        """Load config from yaml file"""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls.model_validate(data)

    def build_registry(self) -> ThemeRegistry:
        themes = [
            Theme(name=name, display_name=theme.display_name, parent=theme.parent)
            for name, theme in self.themes.items()
        ]
        return ThemeRegistry(themes, default=self.default_theme)


def find_config_file(start: Path | None = None) -> Path | None:
    """Find tplthemes.yaml in the start directory or its parents."""
    cwd = start or Path.cwd()
    for parent in [cwd] + list(cwd.parents):
        candidate = parent / CONFIG_FILENAME
        if candidate.exists():
            return candidate
    return None


def build_engine(config: EngineConfig, root: Path | None = None) -> TemplateEngine:
    """Wire lookup, resolver, themes and plugins into an engine.

    Relative roots and the compile directory are resolved against `root`
    (the directory of the config file, or the working directory).
    """
    root = root or Path.cwd()
    lookup = FileSystemLookup([root / path for path in config.roots])
    resolver = ThemeResourceResolver(
        lookup, base_path=config.base_path, extension=config.extension
    )
    compile_dir = root / config.compile_dir if config.compile_dir else None

    return TemplateEngine(
        resolver,
        themes=config.build_registry(),
        compile_dir=compile_dir,
        autoescape=config.autoescape,
        filters=load_callables(config.filters),
        globals=load_callables(config.globals),
        passthrough_filters=config.passthrough_filters,
        cache_size=config.cache_size,
        max_environments=config.max_environments,
    )
