"""Initialize configuration file for search-request."""

from __future__ import annotations

from importlib import resources
from pathlib import Path

import click

from search_request.cli import Context, pass_context
from search_request.config import get_default_config_path
from search_request.utils.output import error, info, success


def _load_example_config() -> str:
    """Load the example configuration from package data."""
    return resources.files("search_request").joinpath("config.example.toml").read_text()


@click.command("init-config")
@click.option(
    "--force",
    "-f",
    is_flag=True,
    default=False,
    help="Overwrite existing config file",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Output path for config file (default: ~/.config/search-request/config.toml)",
)
@pass_context
def cli(ctx: Context, force: bool, output: Path | None) -> None:
    """Create a new configuration file with default settings.

    Creates a configuration file at the default location
    (~/.config/search-request/config.toml) or at a custom path
    specified with --output.

    Examples:

    \b
      # Create config at default location
      search-request init-config

    \b
      # Overwrite existing config
      search-request init-config --force
    """
    config_path = output if output is not None else get_default_config_path()
    config_path = config_path.expanduser().resolve()

    if config_path.exists() and not force:
        error(
            f"Config file already exists: {config_path}",
            hint="Use --force to overwrite",
        )
        raise SystemExit(1)

    config_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        config_path.write_text(_load_example_config())
    except OSError as e:
        error(f"Failed to write config file: {e}")
        raise SystemExit(1)

    success(f"Created config file: {config_path}")
    info("Set metadata.registry or metadata.attribute_data_url to enable facet filters.")
