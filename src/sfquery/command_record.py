from __future__ import annotations

import json

import click

from .command_common import open_service, tooling_option
from .exceptions import SfQueryError


@click.command("record")
@click.argument("object_name")
@click.argument("record_id")
@tooling_option
def record_cmd(object_name: str, record_id: str, tooling: bool) -> None:
    """Print every field of a single record as JSON."""
    service = open_service(tooling)
    try:
        rec = service.fetch_single_record(object_name, record_id)
    except SfQueryError as e:
        raise click.ClickException(str(e)) from e
    click.echo(json.dumps(rec, indent=2, ensure_ascii=False))
