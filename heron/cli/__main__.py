"""Heron CLI - Main Entry Point.

Commands:
    routes   - List compiled routes
    openapi  - Print or write the OpenAPI document
    serve    - Run the application with uvicorn
"""

import importlib
import json
import os
import sys
from typing import Any, Optional, Tuple

import click
import yaml

from .. import __version__
from ..config import ConfigError, load_config
from ..controller.compiler import RouteCompiler
from ..controller.openapi import OpenAPIGenerator
from ..registry import Registry
from ..server import HeronServer
from . import __cli_name__


# ═══════════════════════════════════════════════════════════════════════════
# Output helpers
# ═══════════════════════════════════════════════════════════════════════════

_METHOD_COLORS = {
    "GET": "green",
    "POST": "blue",
    "PUT": "yellow",
    "PATCH": "yellow",
    "DELETE": "red",
}


def success(message: str) -> None:
    click.echo(click.style(message, fg="green"))


def error(message: str) -> None:
    click.echo(click.style(message, fg="red"), err=True)


def dim(message: str) -> None:
    click.echo(click.style(message, dim=True))


# ═══════════════════════════════════════════════════════════════════════════
# Target loading
# ═══════════════════════════════════════════════════════════════════════════


def load_target(target: str) -> Any:
    """
    Import ``module:attr`` and return a ``Registry`` or ``HeronServer``.

    A zero-argument callable is called first.
    """
    module_name, _, attr = target.partition(":")
    if not module_name or not attr:
        raise click.BadParameter(f"expected 'module:attr', got '{target}'", param_hint="TARGET")

    if os.getcwd() not in sys.path:
        sys.path.insert(0, os.getcwd())

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise click.BadParameter(f"cannot import '{module_name}': {e}", param_hint="TARGET")

    try:
        obj = getattr(module, attr)
    except AttributeError:
        raise click.BadParameter(f"'{module_name}' has no attribute '{attr}'", param_hint="TARGET")

    if not isinstance(obj, (Registry, HeronServer)) and callable(obj):
        obj = obj()
    if not isinstance(obj, (Registry, HeronServer)):
        raise click.BadParameter(
            f"'{target}' is a {type(obj).__name__}, expected Registry or HeronServer",
            param_hint="TARGET",
        )
    return obj


def _split(obj: Any) -> Tuple[Registry, Optional[HeronServer]]:
    if isinstance(obj, HeronServer):
        return obj.registry, obj
    return obj, None


# ═══════════════════════════════════════════════════════════════════════════
# Commands
# ═══════════════════════════════════════════════════════════════════════════


@click.group()
@click.version_option(version=__version__, prog_name=__cli_name__)
def cli():
    """Heron - declarative API registration."""


@cli.command('routes')
@click.argument('target')
def routes_cmd(target: str):
    """List the routes TARGET compiles to."""
    registry, server = _split(load_target(target))
    routes = server.routes if server is not None else RouteCompiler(registry).compile()

    if not routes:
        dim("No routes.")
        return

    width = max(len(r.full_path) for r in routes) + 2
    for r in routes:
        method = click.style(f"{r.method:7}", fg=_METHOD_COLORS.get(r.method, "white"))
        click.echo(
            f"{method} {r.full_path.ljust(width)} "
            f"{r.owner_name}.{r.handler_id} -> {r.status}"
        )
    dim(f"{len(routes)} route(s)")


@cli.command('openapi')
@click.argument('target')
@click.option('--title', type=str, default=None, help='Document title')
@click.option('--format', 'fmt', type=click.Choice(['json', 'yaml']), default='json',
              help='Output format')
@click.option('--output', '-o', type=click.Path(dir_okay=False), default=None,
              help='Write to file instead of stdout')
def openapi_cmd(target: str, title: Optional[str], fmt: str, output: Optional[str]):
    """Generate the OpenAPI document for TARGET."""
    registry, server = _split(load_target(target))
    if server is not None and title is None:
        document = server.openapi()
    else:
        document = OpenAPIGenerator(title or "Heron API").build(registry)

    if fmt == 'yaml':
        text = yaml.safe_dump(document, sort_keys=False, allow_unicode=True)
    else:
        text = json.dumps(document, indent=2)

    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(text)
        success(f"OpenAPI document written to {output}")
    else:
        click.echo(text)


@cli.command('serve')
@click.argument('target')
@click.option('--host', type=str, default=None, help='Host to bind to')
@click.option('--port', type=int, default=None, help='Port to bind to')
@click.option('--config', 'config_files', multiple=True, type=click.Path(exists=True),
              help='Config file (YAML or JSON); repeatable')
@click.option('--env-file', type=click.Path(), default=None, help='.env file')
def serve_cmd(
    target: str,
    host: Optional[str],
    port: Optional[int],
    config_files: Tuple[str, ...],
    env_file: Optional[str],
):
    """Serve TARGET with uvicorn."""
    obj = load_target(target)
    if isinstance(obj, HeronServer):
        server = obj
    else:
        try:
            config = load_config(paths=list(config_files), env_file=env_file)
        except ConfigError as e:
            error(f"Configuration error: {e}")
            sys.exit(1)
        server = HeronServer(obj, config=config)

    server.run(host=host, port=port)


def main():
    cli()


if __name__ == '__main__':
    main()
