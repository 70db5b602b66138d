from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import click
import pandas as pd

from .command_common import builder_config, open_service, tooling_option
from .exceptions import ExportIOError, QueryExecutionError
from .export import CSV, TSV, ClipboardSink, ExportSink, FileSink
from .session import QueryBuilderSession, SessionListener
from .table import PAGE_SIZES, render_rows

_DELIMITERS = {"csv": CSV, "tsv": TSV}


class _ErrorCollector(SessionListener):
    def __init__(self) -> None:
        self.error: Optional[Exception] = None

    def query_failed(self, error: QueryExecutionError) -> None:
        self.error = error

    def export_failed(self, error: ExportIOError) -> None:
        self.error = error


@click.command("query")
@click.argument("soql")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["table", "csv", "tsv", "json"]),
    default="table",
    show_default=True,
)
@click.option("--page", type=int, default=1, show_default=True, help="Page to show (table format).")
@click.option(
    "--page-size",
    type=click.Choice([str(n) for n in PAGE_SIZES]),
    default=None,
    help="Rows per page (table format; default: SFQUERY_PAGE_SIZE).",
)
@click.option(
    "--out",
    "out_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write csv/tsv output to this file instead of stdout.",
)
@click.option("--copy", is_flag=True, help="Copy csv/tsv output to the clipboard.")
@tooling_option
def query_cmd(
    soql: str,
    fmt: str,
    page: int,
    page_size: Optional[str],
    out_path: Optional[Path],
    copy: bool,
    tooling: bool,
) -> None:
    """Run SOQL and show the flattened result table.

    Parent lookups become Parent.Field columns; child sub-selects are
    summarised as '<Relationship> (Subquery)' in the table and left out of
    csv/tsv exports.
    """
    if (out_path or copy) and fmt not in _DELIMITERS:
        raise click.UsageError("--out and --copy need --format csv or tsv.")

    cfg = builder_config(tooling)
    errors = _ErrorCollector()
    session = QueryBuilderSession(
        open_service(tooling),
        query_limit=cfg.query_limit,
        page_size=int(page_size) if page_size else cfg.page_size,
        listener=errors,
    )
    if not session.run_query(soql):
        raise click.ClickException(f"Query failed: {errors.error}")

    if fmt == "json":
        click.echo(json.dumps(session.records, indent=2, ensure_ascii=False))
        return

    if fmt in _DELIMITERS:
        delimiter = _DELIMITERS[fmt]
        sinks: list[ExportSink] = []
        if out_path:
            sinks.append(FileSink(out_path))
        if copy:
            sinks.append(ClipboardSink())
        if not sinks:
            click.echo(session.export_text(delimiter), nl=False)
            return
        for sink in sinks:
            target = session.export(delimiter, sink)
            if target is None:
                raise click.ClickException(str(errors.error or "Nothing to export."))
            click.echo(f"Exported {len(session.records)} records -> {target}")
        return

    pagination = session.pagination
    if not pagination.count:
        click.echo("No results found.")
        return
    session.change_page(page)
    cols = pagination.columns
    df = pd.DataFrame(render_rows(pagination.page_records, cols), columns=cols)
    click.echo(df.to_string(index=False))
    click.echo(pagination.showing)
