"""Shared plumbing for CLI commands that talk to Salesforce."""

from __future__ import annotations

import click

from .config import BuilderConfig, make_service
from .exceptions import MissingCredentialsError, SfQueryError
from .service import DataService

CREDENTIALS_HELP = (
    "Set these environment variables (or create a .env file), e.g. for "
    "client-credentials auth:\n"
    "  SF_AUTH_FLOW=client_credentials\n"
    "  SF_CLIENT_ID=...             # Connected App Consumer Key\n"
    "  SF_CLIENT_SECRET=...         # Connected App Client Secret\n"
    "  SF_LOGIN_URL=https://login.salesforce.com  # or your custom domain URL\n"
    "  SF_API_VERSION=v60.0         # optional; will auto-discover if omitted\n\n"
    "Or use the sf CLI's default org instead: SFQUERY_BACKEND=sf-cli"
)

tooling_option = click.option(
    "--tooling",
    is_flag=True,
    help="Use the Tooling API (also enabled by SFQUERY_TOOLING=1).",
)


def builder_config(tooling: bool = False) -> BuilderConfig:
    try:
        cfg = BuilderConfig.from_env()
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    if tooling:
        cfg.tooling = True
    return cfg


def open_service(tooling: bool = False) -> DataService:
    """Build and connect the configured data service, with friendly auth errors."""
    service = make_service(builder_config(tooling))
    connect = getattr(service, "connect", None)
    try:
        if connect is not None:
            connect()
    except MissingCredentialsError as e:
        needed = ", ".join(e.missing)
        raise click.ClickException(
            f"Missing Salesforce credentials: {needed}\n\n{CREDENTIALS_HELP}"
        ) from e
    except SfQueryError as e:
        raise click.ClickException(str(e)) from e
    return service
