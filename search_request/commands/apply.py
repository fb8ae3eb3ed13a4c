"""Apply refinement panel selections to a search request."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import IO

import click

from search_request.cli import Context, pass_context
from search_request.commands import EXIT_INPUT_ERROR, EXIT_METADATA_ERROR
from search_request.commands._shared import (
    build_registry,
    build_translator,
    parse_refinement_option,
    read_json,
    read_request,
    write_request,
)
from search_request.exceptions import (
    InvalidRefinementValueError,
    MetadataError,
    NodeShapeError,
)
from search_request.query.refinements import Refinement
from search_request.utils.output import error, verbose


def _collect_refinements(
    options: tuple[str, ...], refinements_file: IO[str] | None
) -> list[Refinement]:
    """Merge ``-r`` options and a refinements file, keeping first-seen order."""
    by_attribute: dict[str, Refinement] = {}

    if refinements_file is not None:
        data = read_json(refinements_file, "refinements")
        if not isinstance(data, list):
            raise NodeShapeError("refinements file must hold a list", data)
        for item in data:
            refinement = Refinement.from_dict(item)
            by_attribute.setdefault(refinement.attribute, Refinement(refinement.attribute))
            by_attribute[refinement.attribute].values.extend(refinement.values)

    for option in options:
        attribute, values = parse_refinement_option(option)
        by_attribute.setdefault(attribute, Refinement(attribute))
        by_attribute[attribute].values.extend(values)

    return list(by_attribute.values())


@click.command("apply")
@click.argument("request_file", type=click.File("r"), default="-")
@click.option(
    "--refinement",
    "-r",
    "refinement_options",
    multiple=True,
    metavar="ATTRIBUTE=V1[,V2...]",
    help="Selected values for an attribute (repeatable)",
)
@click.option(
    "--refinements",
    "refinements_file",
    type=click.File("r"),
    default=None,
    help='JSON file with [{"attribute": ..., "values": [...]}, ...]',
)
@click.option(
    "--result-type",
    "-t",
    default=None,
    help="Result type (default from config; mol_definition searches chemicals)",
)
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
    refinement_options: tuple[str, ...],
    refinements_file: IO[str] | None,
    result_type: str | None,
    output: Path | None,
) -> None:
    """Apply refinement selections to REQUEST_FILE (default: stdin).

    All selections of one call go into a new refinements group under the
    service group; refinements applied earlier are kept as they are.
    Attribute metadata (facet filters, nested attributes) comes from the
    configured attribute data service or registry file.

    Examples:

    \b
      # Two organisms and a resolution bucket
      search-request apply request.json \\
          -r "rcsb_entity_source_organism.ncbi_scientific_name=Homo sapiens,Mus musculus" \\
          -r "rcsb_entry_info.resolution_combined=*-0.5"

    \b
      # Chemical components
      search-request apply request.json -t mol_definition -r chem_comp.type=peptide-like
    """
    config = ctx.config
    if result_type is None:
        result_type = config.result_type if config is not None else "entry"

    try:
        request = read_request(request_file)
        refinements = _collect_refinements(refinement_options, refinements_file)
    except NodeShapeError as e:
        error(str(e))
        raise SystemExit(EXIT_INPUT_ERROR)

    if not refinements:
        error("No refinements given", hint="Use -r ATTRIBUTE=VALUE or --refinements FILE")
        raise SystemExit(EXIT_INPUT_ERROR)

    try:
        translator = build_translator(config, build_registry(config))
        asyncio.run(translator.add_refinements(request, refinements, result_type))
    except InvalidRefinementValueError as e:
        error(str(e), hint="Disable refinements.strict_values to pass values through")
        raise SystemExit(EXIT_INPUT_ERROR)
    except MetadataError as e:
        error(f"Attribute metadata lookup failed: {e}")
        raise SystemExit(EXIT_METADATA_ERROR)

    verbose(f"Applied {len(refinements)} refinement(s) for result type {result_type}")
    write_request(request, output)
