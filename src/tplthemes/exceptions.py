"""tplthemes Exceptions

Custom exceptions for themed template resolution and rendering.
"""

from __future__ import annotations


class TemplateError(Exception):
    """Base exception for all tplthemes errors."""

    pass


class ResourceNotSetError(TemplateError):
    """Raised when an operation is called without a template resource."""

    def __init__(self) -> None:
        super().__init__("No template resource set")


class ResourceNotFoundError(TemplateError):
    """Raised when no file matches a resource after every fallback."""

    def __init__(self, name: str, path: str | None = None):
        self.name = name
        self.path = path
        message = f"Template resource not found: {name}"
        if path:
            message += f" (last tried {path})"
        super().__init__(message)


class TemplateRenderError(TemplateError):
    """Raised when the template engine fails while rendering a resource."""

    def __init__(self, name: str, cause: BaseException):
        self.name = name
        self.cause = cause
        super().__init__(f"Could not render {name}: {cause}")


class InvalidPathError(TemplateError):
    """Raised when a base path or lookup path is empty or escapes its root."""

    def __init__(self, path: object, reason: str = "provided path is empty or invalid"):
        self.path = path
        super().__init__(f"Invalid path {path!r}: {reason}")


class ThemeError(TemplateError):
    """Raised when the theme hierarchy is inconsistent."""

    pass


class ThemeNotFoundError(ThemeError):
    """Raised when a theme is not registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Theme not found: {name}")


class PluginError(TemplateError):
    """Raised when a filter or global reference cannot be imported."""

    pass
