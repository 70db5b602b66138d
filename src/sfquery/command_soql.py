from __future__ import annotations

from typing import Optional, Tuple

import click

from .command_common import builder_config, open_service, tooling_option
from .session import QueryBuilderSession
from .soql import synthesize


@click.command("soql")
@click.argument("object_name")
@click.option(
    "-f",
    "--field",
    "fields",
    multiple=True,
    help="Field path to select (repeatable), e.g. Name, Owner.Name, Contacts.LastName.",
)
@click.option(
    "-c",
    "--child",
    "children",
    multiple=True,
    help="Treat this name as a child relationship without describing the object (repeatable).",
)
@click.option(
    "--limit", type=int, default=None, help="LIMIT clause (default: SFQUERY_QUERY_LIMIT)."
)
@tooling_option
def soql_cmd(
    object_name: str,
    fields: Tuple[str, ...],
    children: Tuple[str, ...],
    limit: Optional[int],
    tooling: bool,
) -> None:
    """Print the SOQL the builder would produce for OBJECT_NAME and a field selection.

    Without --child the object is described so child relationships are
    recognised and turned into sub-selects. Without --field the default
    selection (Id, Name) is used.
    """
    cfg = builder_config(tooling)
    if limit is not None:
        cfg.query_limit = limit

    if children:
        click.echo(synthesize(object_name, fields, children, cfg.query_limit))
        return

    session = QueryBuilderSession(open_service(tooling), query_limit=cfg.query_limit)
    if session.select_root_object(object_name) is None:
        raise click.ClickException(f"Failed to describe object '{object_name}'.")
    if fields:
        # Explicit fields replace the defaults, in the order given.
        session.selection.clear()
        for path in fields:
            session.set_field(path, True)
    click.echo(session.query_text)
