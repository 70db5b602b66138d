from __future__ import annotations

import click

from .command_common import open_service, tooling_option
from .exceptions import SfQueryError
from .schema import SchemaCache


@click.command("describe")
@click.argument("object_name")
@click.option(
    "--children/--no-children",
    default=True,
    show_default=True,
    help="Also list child relationships.",
)
@click.option(
    "--filter", "term", default="", help="Only entries whose name or label contains this."
)
@tooling_option
def describe_cmd(object_name: str, children: bool, term: str, tooling: bool) -> None:
    """Show the fields and child relationships of OBJECT_NAME."""
    service = open_service(tooling)
    try:
        schema = SchemaCache(service.describe_object).get(object_name)
    except SfQueryError as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"{schema.name}: {len(schema.fields)} fields")
    for f in schema.fields:
        if not f.matches(term):
            continue
        line = f"  {f.name:<40} {f.type}"
        if f.expandable:
            line += f"  {f.relationship_name} -> {f.reference_to}"
        click.echo(line)

    if children:
        click.echo(f"Child relationships: {len(schema.child_relationships)}")
        for cr in schema.child_relationships:
            if cr.matches(term):
                click.echo(f"  {cr.relationship_name:<40} {cr.child_object}")
