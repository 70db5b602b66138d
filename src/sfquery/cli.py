from __future__ import annotations

import logging
from typing import Optional, cast

import click
from click import Command

from . import __version__
from .command_builder import builder_cmd
from .command_describe import describe_cmd
from .command_objects import objects_cmd
from .command_query import query_cmd
from .command_record import record_cmd
from .command_soql import soql_cmd
from .env_loader import load_env_files
from .logging_config import configure_logging

_logger = logging.getLogger(__name__)

# Load .env very early, so everything else sees env vars
load_env_files()


@click.group(
    context_settings={"help_option_names": ["-h", "--help"]},
    invoke_without_command=True,
)
@click.version_option(__version__, "--version", prog_name="sfquery")
@click.option(
    "-v",
    "--verbose",
    "loglevel",
    flag_value=logging.INFO,
    default=None,
    help="Enable INFO logs.",
)
@click.option(
    "-vv",
    "--very-verbose",
    "loglevel",
    flag_value=logging.DEBUG,
    help="Enable DEBUG logs.",
)
@click.pass_context
def cli(ctx: click.Context, loglevel: Optional[int]) -> None:
    """SOQL query builder. Explore objects, build queries, view and export results."""
    configure_logging(loglevel)
    _logger.debug("CLI start, version=%s", __version__)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# Cast ensures IDE knows of the Command type
cli.add_command(cast(Command, objects_cmd))
cli.add_command(cast(Command, describe_cmd))
cli.add_command(cast(Command, soql_cmd))
cli.add_command(cast(Command, query_cmd))
cli.add_command(cast(Command, record_cmd))
cli.add_command(cast(Command, builder_cmd))
