"""CLI error handling."""

from __future__ import annotations

import typer


def describe(err: BaseException) -> str:
    """Human-readable reason, falling back to the type for bare exceptions."""
    return str(err) or type(err).__name__


def handle_error(err: BaseException) -> None:
    """Print the fatal error and exit non-zero."""
    typer.echo(f"logmux fatal error: {describe(err)}", err=True)
    raise typer.Exit(1)
