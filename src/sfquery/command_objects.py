from __future__ import annotations

import click

from .command_common import open_service, tooling_option
from .exceptions import SfQueryError


@click.command("objects")
@click.option("--filter", "term", default="", help="Only names containing this text.")
@tooling_option
def objects_cmd(term: str, tooling: bool) -> None:
    """List queryable objects (Tooling API objects with --tooling)."""
    service = open_service(tooling)
    try:
        names = service.list_queryable_objects()
    except SfQueryError as e:
        raise click.ClickException(f"Failed to list objects: {e}") from e

    t = term.lower()
    for n in names:
        if t in n.lower():
            click.echo(n)
