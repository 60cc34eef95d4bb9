"""tplthemes CLI

Usage:
    tplthemes render pages/home --theme dark --variant mobile --var title=Hi
    tplthemes resolve pages/home --theme dark
    tplthemes list pages --theme dark
    tplthemes -c path/to/tplthemes.yaml ...
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, NoReturn, Optional

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from tplthemes.config import EngineConfig, build_engine, find_config_file
from tplthemes.engine import TemplateEngine
from tplthemes.exceptions import TemplateError
from tplthemes.template import ThemedTemplate

console = Console(stderr=True)

app = typer.Typer(help="Render and resolve themed templates.")


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the tplthemes CLI.

    Log levels:
    - Normal: Only warnings/errors shown
    - Verbose (-v): INFO level
    - Debug (TPLTHEMES_DEBUG=1): DEBUG level, shows every candidate path
    """
    debug = bool(os.environ.get("TPLTHEMES_DEBUG"))
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler = RichHandler(
        console=console,
        show_time=verbose,
        show_path=debug,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    logger = logging.getLogger("tplthemes")
    logger.setLevel(level)
    logger.handlers = [handler]
    logger.propagate = False


def parse_vars(values: Optional[List[str]]) -> dict[str, str]:
    """Parse KEY=VALUE pairs."""
    variables: dict[str, str] = {}
    for item in values or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"expected KEY=VALUE, got {item!r}", param_hint="--var")
        variables[key] = value
    return variables


def load_engine(config_path: Optional[Path]) -> TemplateEngine:
    """Build the engine from the given or nearest tplthemes.yaml."""
    if config_path is None:
        config_path = find_config_file()
    if config_path is None:
        return build_engine(EngineConfig(), Path.cwd())
    if not config_path.exists():
        typer.secho(f"Error: File not found: {config_path}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1)
    try:
        config = EngineConfig.load(config_path)
    except (ValidationError, yaml.YAMLError) as e:
        fail(e)
    return build_engine(config, config_path.parent.resolve())


def fail(error: Exception) -> NoReturn:
    typer.secho(f"Error: {error}", err=True, fg=typer.colors.RED)
    raise typer.Exit(code=1)


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None, "-c", "--config", help="Path to tplthemes.yaml."
    ),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging."),
) -> None:
    setup_logging(verbose)
    ctx.obj = config


@app.command()
def render(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Template resource, e.g. pages/home"),
    theme: Optional[str] = typer.Option(None, "-t", "--theme", help="Theme to render with."),
    variant: Optional[str] = typer.Option(None, "--variant", help="Template variant id."),
    var: Optional[List[str]] = typer.Option(None, "--var", help="Variable as KEY=VALUE."),
) -> None:
    """Render a template to stdout."""
    variables = parse_vars(var)
    try:
        engine = load_engine(ctx.obj)
        output = engine.render(
            ThemedTemplate(resource=name, theme=theme, resource_id=variant, variables=variables)
        )
    except TemplateError as e:
        fail(e)
    typer.echo(output, nl=False)


@app.command()
def resolve(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Template resource, e.g. pages/home"),
    theme: Optional[str] = typer.Option(None, "-t", "--theme", help="Theme to resolve with."),
    variant: Optional[str] = typer.Option(None, "--variant", help="Template variant id."),
) -> None:
    """Print the file a template resolves to."""
    try:
        engine = load_engine(ctx.obj)
        file = engine.get_file(ThemedTemplate(resource=name, theme=theme, resource_id=variant))
    except TemplateError as e:
        fail(e)
    typer.echo(file.absolute_path())


@app.command("list")
def list_command(
    ctx: typer.Context,
    namespace: str = typer.Argument(..., help="Namespace, e.g. pages"),
    theme: Optional[str] = typer.Option(None, "-t", "--theme", help="Theme to list with."),
) -> None:
    """List the templates of a namespace."""
    try:
        engine = load_engine(ctx.obj)
        files = engine.get_files(namespace, theme)
    except TemplateError as e:
        fail(e)
    for resource, label in sorted(files.items()):
        typer.echo(f"{resource}\t{label}")


if __name__ == "__main__":
    app()
