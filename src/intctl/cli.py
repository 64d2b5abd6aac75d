"""Command-line interface for intctl."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from .config import load_config
from .context import CommandContext
from .exceptions import ConfigError
from .integration_cli import integration_app
from .logger import setup_logger

app = typer.Typer(
    name="intctl",
    help="Manage integrations on hosted platform projects",
    add_completion=False,
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            help="Verbosity level: 0=silent (default), 1=show actions, 2=show requests, 3=debug",
            min=0,
            max=3,
        ),
    ] = 0,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to config file (default: intctl_config.yaml)",
        ),
    ] = None,
    project: Annotated[
        str | None,
        typer.Option("--project", "-p", help="The project ID (default: 'project' in config)"),
    ] = None,
) -> None:
    """Global options for intctl commands."""
    setup_logger(verbose)
    try:
        cli_config = load_config(config)
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None
    ctx.obj = CommandContext(config=cli_config, project_id=project)


app.add_typer(integration_app, name="integration")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
