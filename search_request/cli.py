"""Command-line interface for search-request."""

from __future__ import annotations

import os
from pathlib import Path

import click

from search_request import __version__
from search_request.config import Config, load_config
from search_request.exceptions import ConfigError
from search_request.utils.output import error, set_color, set_verbosity, warning


class Context:
    """Loaded configuration handed to every command."""

    def __init__(self) -> None:
        self.config: Config | None = None


pass_context = click.make_pass_decorator(Context, ensure=True)


def _color_disabled(no_color: bool) -> bool:
    return no_color or os.environ.get("NO_COLOR") is not None


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=False, path_type=Path),
    help="Path to config file (default: ~/.config/search-request/config.toml)",
)
@click.option("--no-color", is_flag=True, default=False, help="Disable colored output")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Report each step on stderr")
@click.option("--debug", is_flag=True, default=False, help="Log debug records (implies --verbose)")
@click.option("--quiet", "-q", is_flag=True, default=False, help="Only report errors")
@click.version_option(version=__version__, prog_name="search-request")
@click.pass_context
def cli(
    ctx: click.Context,
    config: Path | None,
    no_color: bool,
    verbose: bool,
    debug: bool,
    quiet: bool,
) -> None:
    """search-request: Build and refine search API requests.

    Reads a search request as JSON, adds refinements to its query tree and
    writes the updated request back out as JSON.

    Configuration is loaded from ~/.config/search-request/config.toml by default.

    Examples:

        # Add a single refinement node
        search-request refine request.json --node node.json

        # Apply refinement panel selections
        search-request apply request.json -r exptl.method="X-RAY DIFFRACTION"
    """
    set_verbosity(verbose=verbose, debug=debug, quiet=quiet)
    if _color_disabled(no_color):
        set_color(False)

    try:
        loaded, warnings = load_config(config)
    except ConfigError as e:
        error(str(e), hint="Fix the file or point --config at another one")
        ctx.exit(1)
        return

    if not loaded.colored_output:
        set_color(False)
    for message in warnings:
        warning(message)

    ctx.ensure_object(Context).config = loaded


def register_commands() -> None:
    """Register all commands from the commands package."""
    from search_request.commands import discover_commands

    for command in discover_commands():
        cli.add_command(command)


register_commands()
