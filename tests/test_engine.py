"""Tests for the template engine lifecycle."""

import pytest
from jinja2 import TemplateNotFound, UndefinedError

from conftest import write_files
from tplthemes.engine import TemplateEngine
from tplthemes.exceptions import (
    ResourceNotFoundError,
    ResourceNotSetError,
    TemplateRenderError,
    ThemeNotFoundError,
)
from tplthemes.template import Template, ThemedTemplate
from tplthemes.themes import Theme, ThemeRegistry


@pytest.fixture
def registry():
    return ThemeRegistry(
        [
            Theme(name="default"),
            Theme(name="dark", parent="default"),
            Theme(name="light", parent="default"),
        ]
    )


@pytest.fixture
def engine(resolver, registry):
    return TemplateEngine(resolver, themes=registry)


def assert_state_cleared(engine):
    assert engine.resolver.themes is None
    assert engine.resolver.variant is None
    assert engine.compile_id is None
    assert engine.variables == {}


# =============================================================================
# Rendering
# =============================================================================


class TestRender:
    def test_render_plain_template(self, templates_dir, engine):
        write_files(templates_dir, {"hello.tpl": "Hello {{ name }}!"})

        output = engine.render(Template(resource="hello", variables={"name": "world"}))

        assert output == "Hello world!"
        assert_state_cleared(engine)

    def test_render_through_theme_chain(self, templates_dir, engine):
        write_files(
            templates_dir,
            {"default/pages/home.tpl": "default home", "pages/home.tpl": "base home"},
        )

        output = engine.render(ThemedTemplate(resource="pages/home", theme="dark"))

        assert output == "default home"
        assert_state_cleared(engine)

    def test_render_variant(self, templates_dir, engine):
        write_files(
            templates_dir,
            {"dark/home.tpl": "dark", "dark/home.mobile.tpl": "dark mobile"},
        )

        desktop = engine.render(ThemedTemplate(resource="home", theme="dark"))
        mobile = engine.render(ThemedTemplate(resource="home", theme="dark", resource_id="mobile"))

        assert desktop == "dark"
        assert mobile == "dark mobile"

    def test_only_default_theme_file_exists(self, templates_dir, engine):
        write_files(templates_dir, {"default/pages/home.tpl": "default"})

        template = ThemedTemplate(resource="pages/home", theme="dark", resource_id="mobile")

        assert engine.render(template) == "default"
        assert engine.get_file(template).path == "default/pages/home.tpl"

    def test_includes_use_theme_chain(self, templates_dir, engine):
        write_files(
            templates_dir,
            {
                "pages/home.tpl": "[{% include 'partials/header' %}]",
                "partials/header.tpl": "base header",
                "dark/partials/header.tpl": "dark header",
            },
        )

        assert engine.render(Template(resource="pages/home")) == "[base header]"
        assert engine.render(ThemedTemplate(resource="pages/home", theme="dark")) == "[dark header]"

    def test_extends_use_theme_chain(self, templates_dir, engine):
        write_files(
            templates_dir,
            {
                "layout.tpl": "base:{% block body %}{% endblock %}",
                "light/layout.tpl": "light:{% block body %}{% endblock %}",
                "page.tpl": "{% extends 'layout' %}{% block body %}{{ title }}{% endblock %}",
            },
        )

        output = engine.render(ThemedTemplate(resource="page", theme="light", variables={"title": "T"}))

        assert output == "light:T"

    def test_default_theme_is_used_without_theme(self, templates_dir, resolver):
        write_files(templates_dir, {"dark/home.tpl": "dark", "home.tpl": "base"})
        registry = ThemeRegistry([Theme(name="dark")], default="dark")
        engine = TemplateEngine(resolver, themes=registry)

        assert engine.render(ThemedTemplate(resource="home")) == "dark"

    def test_compile_ids_partition_environments(self, templates_dir, engine):
        write_files(
            templates_dir,
            {"home.tpl": "base", "dark/home.tpl": "dark", "light/home.tpl": "light"},
        )

        assert engine.render(ThemedTemplate(resource="home", theme="dark")) == "dark"
        assert engine.render(ThemedTemplate(resource="home", theme="light")) == "light"
        assert engine.render(Template(resource="home")) == "base"
        assert engine.render(ThemedTemplate(resource="home", theme="dark")) == "dark"

        assert engine.get_environment("dark") is engine.get_environment("dark")
        assert engine.get_environment("dark") is not engine.get_environment("light")

    def test_least_recently_used_environment_is_dropped(self, templates_dir, resolver, registry):
        write_files(templates_dir, {"home.tpl": "base"})
        engine = TemplateEngine(resolver, themes=registry, max_environments=2)

        dark = engine.get_environment("dark")
        light = engine.get_environment("light")
        assert engine.get_environment("dark") is dark
        engine.get_environment("-mobile")

        assert engine.get_environment("dark") is dark
        assert engine.get_environment("light") is not light
        for variant in ("a", "b", "c", "d"):
            engine.render(ThemedTemplate(resource="home", resource_id=variant))
        assert len(engine._environments) == 2

    def test_source_changes_are_picked_up(self, templates_dir, engine):
        import os

        write_files(templates_dir, {"home.tpl": "one"})
        assert engine.render(Template(resource="home")) == "one"

        path = templates_dir / "home.tpl"
        path.write_text("two")
        stat = path.stat()
        os.utime(path, (stat.st_atime, stat.st_mtime + 10))

        assert engine.render(Template(resource="home")) == "two"


class TestCompileId:
    def test_theme_only(self, engine):
        engine.pre_process(ThemedTemplate(resource="x", theme="dark"))
        try:
            assert engine.compile_id == "dark"
            assert engine.resolver.themes == ("dark", "default")
        finally:
            engine.post_process()
        assert_state_cleared(engine)

    def test_theme_and_variant(self, engine):
        engine.pre_process(ThemedTemplate(resource="x", theme="dark", resource_id="mobile"))
        try:
            assert engine.compile_id == "dark-mobile"
            assert engine.resolver.variant == "mobile"
        finally:
            engine.post_process()

    def test_variant_without_theme(self, engine):
        engine.pre_process(ThemedTemplate(resource="x", resource_id="mobile"))
        try:
            assert engine.compile_id == "-mobile"
            assert engine.resolver.themes is None
        finally:
            engine.post_process()

    def test_plain_template_leaves_state_untouched(self, engine):
        engine.pre_process(Template(resource="x"))
        assert engine.compile_id is None
        assert engine.resolver.themes is None


# =============================================================================
# Errors and teardown
# =============================================================================


class TestErrors:
    @pytest.mark.parametrize("resource", [None, ""])
    def test_resource_not_set(self, engine, resource):
        with pytest.raises(ResourceNotSetError):
            engine.render(ThemedTemplate(resource=resource, theme="dark"))
        with pytest.raises(ResourceNotSetError):
            engine.get_file(ThemedTemplate(resource=resource, theme="dark"))
        assert_state_cleared(engine)

    def test_resource_not_set_does_not_touch_state(self, engine):
        engine.resolver.configure(["light"], "tablet")
        with pytest.raises(ResourceNotSetError):
            engine.render(ThemedTemplate(resource="", theme="dark", resource_id="mobile"))
        assert engine.resolver.themes == ("light",)
        assert engine.resolver.variant == "tablet"

    def test_render_error_is_wrapped_and_state_cleared(self, templates_dir, engine):
        write_files(templates_dir, {"dark/broken.tpl": "{{ missing_variable }}"})

        with pytest.raises(TemplateRenderError) as exc_info:
            engine.render(
                ThemedTemplate(resource="broken", theme="dark", resource_id="mobile", variables={"a": 1})
            )

        assert exc_info.value.name == "broken"
        assert isinstance(exc_info.value.cause, UndefinedError)
        assert exc_info.value.__cause__ is exc_info.value.cause
        assert_state_cleared(engine)

    def test_syntax_error_is_wrapped(self, templates_dir, engine):
        write_files(templates_dir, {"broken.tpl": "{% if %}"})

        with pytest.raises(TemplateRenderError):
            engine.render(Template(resource="broken"))
        assert_state_cleared(engine)

    def test_missing_template_on_render(self, engine):
        with pytest.raises(TemplateRenderError) as exc_info:
            engine.render(ThemedTemplate(resource="nope", theme="dark"))

        assert isinstance(exc_info.value.cause, TemplateNotFound)
        assert isinstance(exc_info.value.cause.__cause__, ResourceNotFoundError)
        assert_state_cleared(engine)

    def test_missing_template_on_get_file(self, engine):
        with pytest.raises(ResourceNotFoundError):
            engine.get_file(ThemedTemplate(resource="nope", theme="dark", resource_id="mobile"))
        assert_state_cleared(engine)

    def test_unknown_theme(self, engine):
        with pytest.raises(ThemeNotFoundError):
            engine.render(ThemedTemplate(resource="home", theme="neon"))
        assert_state_cleared(engine)

    def test_failed_render_does_not_leak_into_next(self, templates_dir, engine):
        write_files(
            templates_dir,
            {"dark/home.tpl": "{{ boom }}", "home.tpl": "base {{ name }}"},
        )

        with pytest.raises(TemplateRenderError):
            engine.render(ThemedTemplate(resource="home", theme="dark", variables={"name": "x"}))

        with pytest.raises(TemplateRenderError):
            # "name" from the failed render must not be visible here
            engine.render(Template(resource="home"))

        assert engine.render(Template(resource="home", variables={"name": "y"})) == "base y"

    def test_include_ignore_missing(self, templates_dir, engine):
        write_files(templates_dir, {"home.tpl": "a{% include 'nope' ignore missing %}b"})
        assert engine.render(Template(resource="home")) == "ab"


# =============================================================================
# get_file / get_files
# =============================================================================


class TestFiles:
    def test_get_file(self, templates_dir, engine):
        write_files(templates_dir, {"dark/pages/home.mobile.tpl": "m"})

        file = engine.get_file(ThemedTemplate(resource="pages/home", theme="dark", resource_id="mobile"))

        assert file.path == "dark/pages/home.mobile.tpl"
        assert file.absolute_path() == str((templates_dir / file.path).resolve())
        assert_state_cleared(engine)

    def test_get_files_through_theme_chain(self, templates_dir, engine):
        write_files(
            templates_dir,
            {
                "dark/pages/home.tpl": "",
                "default/pages/home.tpl": "",
                "default/pages/about.tpl": "",
                "pages/legal.tpl": "",
            },
        )

        files = engine.get_files("pages", "dark")

        assert files == {"pages/home": "home", "pages/about": "about", "pages/legal": "legal"}
        assert_state_cleared(engine)

    def test_get_files_empty_namespace_result(self, engine):
        assert engine.get_files("nothing", "dark") == {}
        assert_state_cleared(engine)

    def test_get_files_requires_namespace(self, engine):
        with pytest.raises(ResourceNotSetError):
            engine.get_files("")


# =============================================================================
# Configuration
# =============================================================================


class TestEngineOptions:
    def test_filters_and_globals(self, templates_dir, resolver):
        write_files(templates_dir, {"home.tpl": "{{ site }}:{{ name|shout }}"})
        engine = TemplateEngine(
            resolver,
            filters={"shout": lambda value: value.upper() + "!"},
            globals={"site": "Example"},
        )

        assert engine.render(Template(resource="home", variables={"name": "hi"})) == "Example:HI!"

    def test_passthrough_filters(self, templates_dir, resolver):
        write_files(templates_dir, {"home.tpl": "{{ items|len }} {{ items|sorted|join(',') }}"})
        engine = TemplateEngine(resolver, passthrough_filters=True)

        output = engine.render(Template(resource="home", variables={"items": [3, 1, 2]}))

        assert output == "3 1,2,3"

    def test_unknown_filter_without_passthrough(self, templates_dir, resolver):
        write_files(templates_dir, {"home.tpl": "{{ items|len }}"})
        engine = TemplateEngine(resolver)

        with pytest.raises(TemplateRenderError):
            engine.render(Template(resource="home", variables={"items": []}))

    def test_autoescape(self, templates_dir, resolver):
        write_files(templates_dir, {"home.tpl": "{{ html }}"})
        engine = TemplateEngine(resolver, autoescape=True)

        output = engine.render(Template(resource="home", variables={"html": "<b>"}))

        assert output == "&lt;b&gt;"

    def test_compile_dir_is_created(self, tmp_path, templates_dir, resolver):
        write_files(templates_dir, {"home.tpl": "cached"})
        compile_dir = tmp_path / "cache" / "templates"

        engine = TemplateEngine(resolver, compile_dir=compile_dir)

        assert compile_dir.is_dir()
        assert engine.render(Template(resource="home")) == "cached"
        assert any(compile_dir.iterdir())
