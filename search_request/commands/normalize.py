"""Show how refinement values are converted for an attribute."""

from __future__ import annotations

import click

from search_request.cli import Context, pass_context
from search_request.commands import EXIT_INPUT_ERROR
from search_request.exceptions import InvalidRefinementValueError
from search_request.query.nodes import RangeValue
from search_request.query.values import normalize_value
from search_request.utils.output import console, create_table, dump_json, error


def _format_value(value: object) -> str:
    if isinstance(value, RangeValue):
        value = value.to_dict()
    return dump_json(value, indent=None)


@click.command("normalize")
@click.argument("attribute")
@click.argument("values", nargs=-1, required=True)
@click.option(
    "--strict/--no-strict",
    default=None,
    help="Reject malformed values (default from config)",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Print JSON instead")
@pass_context
def cli(
    ctx: Context, attribute: str, values: tuple[str, ...], strict: bool | None, as_json: bool
) -> None:
    """Show the operator and value each raw VALUE of ATTRIBUTE becomes.

    Examples:

    \b
      search-request normalize rcsb_entry_info.resolution_combined "*-0.5" 0.5-1.0 "2.0-*"

    \b
      search-request normalize rcsb_accession_info.initial_release_date 2015
    """
    if strict is None:
        strict = ctx.config.strict_values if ctx.config is not None else False

    rows = []
    for raw in values:
        try:
            operator, value = normalize_value(attribute, raw, strict=strict)
        except InvalidRefinementValueError as e:
            error(str(e))
            raise SystemExit(EXIT_INPUT_ERROR)
        rows.append((raw, operator.value, value))

    if as_json:
        click.echo(
            dump_json(
                [
                    {
                        "raw": raw,
                        "operator": operator,
                        "value": value.to_dict() if isinstance(value, RangeValue) else value,
                    }
                    for raw, operator, value in rows
                ]
            )
        )
        return

    table = create_table(title=attribute)
    table.add_column("Raw", style="node.attribute")
    table.add_column("Operator", style="node.operator")
    table.add_column("Value", style="node.value")
    for raw, operator, value in rows:
        table.add_row(raw, operator, _format_value(value))
    console.print(table)
