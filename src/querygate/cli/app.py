"""
Root Typer application for the querygate CLI.

Sub-commands::

    querygate serve start       run the API under uvicorn
    querygate request validate  parse a request body and show it normalized
"""

from __future__ import annotations

import typer
from typer import Typer

from querygate.cli.request import app as request_app
from querygate.cli.serve import app as serve_app

app = Typer(
    name="querygate",
    help="querygate — dispatch façade for multi-engine reporting queries.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("querygate")
        except PackageNotFoundError:
            from querygate import __version__ as v
        typer.echo(f"querygate {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """querygate CLI — serve the API and inspect requests."""


app.add_typer(serve_app, name="serve", help="Run the API server.")
app.add_typer(request_app, name="request", help="Inspect reporting requests.")
