"""CLI command to launch the Streamlit query builder."""

from __future__ import annotations

import importlib
import importlib.util
import inspect
import os
import subprocess
import sys
from pathlib import Path

import click


@click.command(name="builder")
@click.option("--port", type=int, default=8501, show_default=True)
@click.option("--tooling", is_flag=True, help="Build Tooling API queries.")
def builder_cmd(port: int, tooling: bool) -> None:
    """Launch the interactive Streamlit query builder."""
    if importlib.util.find_spec("streamlit") is None:
        raise click.ClickException(
            "Streamlit is not installed in this environment. "
            "Install it with 'pip install streamlit' and try again."
        )

    try:
        mod = importlib.import_module("sfquery.builder_app.app")
    except ImportError as exc:  # pragma: no cover - packaging issue
        raise click.ClickException(
            "Could not import sfquery.builder_app.app; is sfquery installed correctly?"
        ) from exc

    script_path = Path(inspect.getfile(mod))
    env = os.environ.copy()
    if tooling:
        env["SFQUERY_TOOLING"] = "1"

    cmd = [
        sys.executable,
        "-m",
        "streamlit",
        "run",
        str(script_path),
        "--server.port",
        str(port),
        "--server.headless",
        "true",
    ]

    click.echo(f"Launching query builder on port {port} ...")
    try:
        raise SystemExit(subprocess.call(cmd, env=env))
    except OSError as exc:  # pragma: no cover - runtime environment issue
        raise click.ClickException(f"Failed to launch Streamlit: {exc}") from exc
