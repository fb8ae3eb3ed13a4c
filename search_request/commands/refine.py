"""Add a single refinement node to a search request."""

from __future__ import annotations

from pathlib import Path
from typing import IO

import click

from search_request.cli import Context, pass_context
from search_request.commands import EXIT_INPUT_ERROR, EXIT_METADATA_ERROR
from search_request.commands._shared import (
    build_registry,
    read_json,
    read_request,
    write_request,
)
from search_request.exceptions import MetadataError, NodeShapeError
from search_request.query.nodes import node_from_dict
from search_request.query.refinement import add_refinement
from search_request.utils.output import error, verbose


@click.command("refine")
@click.argument("request_file", type=click.File("r"), default="-")
@click.option(
    "--node",
    "-n",
    "node_file",
    type=click.File("r"),
    required=True,
    help="JSON file holding the refinement node (terminal or nested-attribute pair)",
)
@click.option("--schema", default="structure", show_default=True, help="Metadata schema")
@click.option("--service", default="text", show_default=True, help="Search service")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the updated request here instead of stdout",
)
@pass_context
def cli(
    ctx: Context,
    request_file: IO[str],
    node_file: IO[str],
    schema: str,
    service: str,
    output: Path | None,
) -> None:
    """Add one refinement node to REQUEST_FILE (default: stdin).

    The node is placed under the groups-refinements group of the service
    group, next to other values of the same attribute. A value that is
    already there is not added twice.

    Examples:

    \b
      # Add an experimental method refinement
      search-request refine request.json --node method.json

    \b
      # Chain refinements through a pipe
      search-request refine request.json -n a.json | search-request refine -n b.json
    """
    try:
        request = read_request(request_file)
        node = node_from_dict(read_json(node_file, "node"))
    except NodeShapeError as e:
        error(str(e))
        raise SystemExit(EXIT_INPUT_ERROR)

    try:
        registry = build_registry(ctx.config)
    except MetadataError as e:
        error(str(e), hint="Check metadata.registry in your config file")
        raise SystemExit(EXIT_METADATA_ERROR)

    try:
        add_refinement(request, node, schema=schema, service=service, registry=registry)
    except NodeShapeError as e:
        error(str(e))
        raise SystemExit(EXIT_INPUT_ERROR)

    verbose(f"Added refinement to the {service} service group")
    write_request(request, output)
