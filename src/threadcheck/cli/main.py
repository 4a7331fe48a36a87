"""threadcheck CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from threadcheck.cli.validate import validate_cmd


def _installed_version() -> str:
    try:
        return importlib.metadata.version("threadcheck")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"threadcheck {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="threadcheck",
    help=(
        "threadcheck - verify that a thread summary is grounded in the thread.\n\n"
        "  threadcheck validate  Check every summary sentence against the posts."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """threadcheck - thread-summary grounding validator."""


app.command("validate")(validate_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed threadcheck version."""
    typer.echo(f"threadcheck {_installed_version()}")


if __name__ == "__main__":
    app()
