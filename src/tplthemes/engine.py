"""Template engine - renders themed templates with Jinja2.

Every public operation is bracketed:

    pre_process(template)    # theme stack + variant on the resolver, compile id
    ...operation...
    post_process()           # always runs, clears all of the above

so no operation ever sees the themes, variant, compile id or variables of a
previous one.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from contextvars import ContextVar
from itertools import count
from pathlib import Path
from typing import Any, Callable

from jinja2 import (
    BaseLoader,
    Environment,
    FileSystemBytecodeCache,
    StrictUndefined,
    TemplateNotFound,
)

from tplthemes.exceptions import (
    ResourceNotFoundError,
    ResourceNotSetError,
    TemplateRenderError,
)
from tplthemes.files import EXTENSION, TemplateFile
from tplthemes.plugins import PassThroughFilters
from tplthemes.resolver import ThemeResourceResolver
from tplthemes.template import Template, ThemedTemplate
from tplthemes.themes import ThemeRegistry

log = logging.getLogger(__name__)

_instance_ids = count()


class ThemedLoader(BaseLoader):
    """Jinja2 loader resolving template names through a resolver.

    Names are logical resource names without extension. `extends` and
    `include` go through the same theme stack and variant as the template
    being rendered.
    """

    def __init__(self, resolver: ThemeResourceResolver):
        self.resolver = resolver

    def get_source(
        self, environment: Environment, template: str
    ) -> tuple[str, str, Callable[[], bool]]:
        context = self.resolver.context
        try:
            file = self.resolver.resolve_file(template, context)
        except ResourceNotFoundError as e:
            raise TemplateNotFound(template) from e

        source = file.read()
        path = file.full_path
        mtime = file.modification_time()

        def uptodate() -> bool:
            try:
                current = self.resolver.resolve_file(template, context)
                return current.full_path == path and current.modification_time() == mtime
            except (ResourceNotFoundError, OSError):
                return False

        return source, file.absolute_path(), uptodate


class TemplateEngine:
    """Renders templates through a theme-aware resolver."""

    NAME = "jinja"
    EXTENSION = EXTENSION
    COMMENT_OPEN = "{#"
    COMMENT_CLOSE = "#}"

    def __init__(
        self,
        resolver: ThemeResourceResolver,
        themes: ThemeRegistry | None = None,
        compile_dir: Path | str | None = None,
        autoescape: bool = False,
        filters: dict[str, Callable] | None = None,
        globals: dict[str, Any] | None = None,
        passthrough_filters: bool = False,
        cache_size: int = 400,
        max_environments: int = 64,
    ):
        """Initialize the engine.

        Args:
            resolver: Resolver for the template resources.
            themes: Registry used to expand a theme into its parent chain.
            compile_dir: Directory for compiled template bytecode, created if
                missing. No bytecode cache when None.
            autoescape: Escape rendered variables for html.
            filters: Extra filters for the templates.
            globals: Extra globals for the templates.
            passthrough_filters: Allow Python builtins as filters.
            cache_size: Compiled templates kept in memory per compile id.
            max_environments: Compile ids kept at once, least recently used
                ones are dropped first.
        """
        self.resolver = resolver
        self.themes = themes or ThemeRegistry()
        self.cache_size = cache_size
        self.max_environments = max_environments

        bytecode_cache = None
        if compile_dir is not None:
            compile_dir = Path(compile_dir)
            compile_dir.mkdir(parents=True, exist_ok=True)
            bytecode_cache = FileSystemBytecodeCache(str(compile_dir))

        self.environment = Environment(
            loader=ThemedLoader(resolver),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
            autoescape=autoescape,
            bytecode_cache=bytecode_cache,
            cache_size=cache_size,
        )
        if passthrough_filters:
            self.environment.filters = PassThroughFilters(self.environment.filters)
        for name, func in (filters or {}).items():
            self.add_filter(name, func)
        for name, value in (globals or {}).items():
            self.add_global(name, value)

        # one environment (and template cache) per compile id
        self._environments: OrderedDict[str | None, Environment] = OrderedDict()
        self._lock = threading.Lock()

        instance_id = next(_instance_ids)
        self._compile_id: ContextVar[str | None] = ContextVar(
            f"tplthemes_compile_id_{instance_id}", default=None
        )
        self._variables: ContextVar[dict[str, Any] | None] = ContextVar(
            f"tplthemes_variables_{instance_id}", default=None
        )

    # --- configuration ---

    def add_filter(self, name: str, func: Callable) -> None:
        self.environment.filters[name] = func

    def add_global(self, name: str, value: Any) -> None:
        self.environment.globals[name] = value

    def get_environment(self, compile_id: str | None = None) -> Environment:
        """Get the environment compiling templates for a compile id."""
        with self._lock:
            environment = self._environments.get(compile_id)
            if environment is not None:
                self._environments.move_to_end(compile_id)
                return environment

            environment = self.environment.overlay(cache_size=self.cache_size)
            self._environments[compile_id] = environment
            log.debug(f"Created environment for compile id {compile_id!r}")
            while len(self._environments) > max(self.max_environments, 1):
                evicted, _ = self._environments.popitem(last=False)
                log.debug(f"Dropped environment for compile id {evicted!r}")
            return environment

    # --- transient state ---

    @property
    def compile_id(self) -> str | None:
        return self._compile_id.get()

    @property
    def variables(self) -> dict[str, Any]:
        return dict(self._variables.get() or {})

    def assign(self, variables: dict[str, Any]) -> None:
        """Stage variables for the next render."""
        staged = dict(self._variables.get() or {})
        staged.update(variables)
        self._variables.set(staged)

    def get_theme_hierarchy(self, theme: str | None) -> list[str]:
        """Theme chain for a theme name, or for the default theme when None."""
        selected = self.themes.get_theme(theme)
        if selected is None:
            return []
        return self.themes.resolve_theme_chain(selected.name)

    def pre_process(self, template: Template) -> None:
        """Set up resolver state and compile id for a themed template."""
        if not isinstance(template, ThemedTemplate):
            return

        hierarchy = self.get_theme_hierarchy(template.theme)
        self.resolver.configure(hierarchy, template.resource_id)

        compile_id = hierarchy[0] if hierarchy else None
        if template.resource_id:
            compile_id = f"{compile_id or ''}-{template.resource_id}"
        self._compile_id.set(compile_id)
        log.debug(f"Pre-processed {template.resource}: compile id {compile_id!r}")

    def post_process(self) -> None:
        """Clear resolver state, compile id and staged variables."""
        self.resolver.clear()
        self._compile_id.set(None)
        self._variables.set(None)

    # --- operations ---

    def render(self, template: Template) -> str:
        """Render a template.

        Raises:
            ResourceNotSetError: If the template has no resource.
            TemplateRenderError: If Jinja2 fails to load or render the resource.
        """
        resource = template.resource
        if not resource:
            raise ResourceNotSetError()

        try:
            self.pre_process(template)
            self.assign(template.variables)
            environment = self.get_environment(self.compile_id)
            try:
                output = environment.get_template(resource).render(self.variables)
            except Exception as e:
                log.debug(f"Rendering {resource} failed: {e}")
                raise TemplateRenderError(resource, e) from e
        finally:
            self.post_process()

        return output

    def get_file(self, template: Template) -> TemplateFile:
        """Get the file a template resolves to.

        Raises:
            ResourceNotSetError: If the template has no resource.
            ResourceNotFoundError: If no file matches the resource.
        """
        resource = template.resource
        if not resource:
            raise ResourceNotSetError()

        try:
            self.pre_process(template)
            return self.resolver.resolve_file(resource)
        finally:
            self.post_process()

    def get_files(self, namespace: str, theme: str | None = None) -> dict[str, str]:
        """Get the available resources of a namespace.

        Returns:
            Dict with the resource name as key and its name in the namespace
            as value.
        """
        if not namespace:
            raise ResourceNotSetError()

        try:
            self.resolver.configure(self.get_theme_hierarchy(theme))
            return self.resolver.get_files(namespace)
        finally:
            self.post_process()
