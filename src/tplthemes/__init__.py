"""tplthemes - themed template resolution for Jinja2"""

from tplthemes.config import EngineConfig, build_engine, find_config_file
from tplthemes.engine import TemplateEngine, ThemedLoader
from tplthemes.exceptions import (
    InvalidPathError,
    PluginError,
    ResourceNotFoundError,
    ResourceNotSetError,
    TemplateError,
    TemplateRenderError,
    ThemeError,
    ThemeNotFoundError,
)
from tplthemes.files import FileLookup, FileSystemLookup, TemplateDirectory, TemplateFile
from tplthemes.listing import list_files
from tplthemes.resolver import (
    Candidate,
    ResolutionContext,
    ThemeResourceResolver,
    candidate_paths,
)
from tplthemes.template import Template, ThemedTemplate
from tplthemes.themes import Theme, ThemeRegistry

__version__ = "0.1.0"

__all__ = [
    # config
    "EngineConfig",
    "build_engine",
    "find_config_file",
    # engine
    "TemplateEngine",
    "ThemedLoader",
    # resolution
    "Candidate",
    "ResolutionContext",
    "ThemeResourceResolver",
    "candidate_paths",
    "list_files",
    # files
    "FileLookup",
    "FileSystemLookup",
    "TemplateDirectory",
    "TemplateFile",
    # models
    "Template",
    "ThemedTemplate",
    "Theme",
    "ThemeRegistry",
    # errors
    "TemplateError",
    "ResourceNotSetError",
    "ResourceNotFoundError",
    "TemplateRenderError",
    "InvalidPathError",
    "ThemeError",
    "ThemeNotFoundError",
    "PluginError",
]
