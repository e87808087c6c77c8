"""
CLI: ``querygate request`` — parse and normalize a request body offline.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.markup import escape

from querygate.cli.utils import console, err_console
from querygate.core.errors import NotFoundError, ValidationError
from querygate.dispatch.facade import read_body
from querygate.dispatch.overrides import apply_overrides
from querygate.domain.enums import Schema
from querygate.domain.request import deserialize_sync

app = typer.Typer(no_args_is_help=True)


@app.command("validate")
def validate(
    body: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON request body"),
    schema: str = typer.Option("advertiser", "--schema", "-s", help="Schema to parse against"),
    debug: bool = typer.Option(False, "--debug", help="Apply the debug override"),
    force_engine: str | None = typer.Option(None, "--force-engine", help="Apply an engine override"),
) -> None:
    """Parse BODY, apply overrides, and print the normalized request."""
    try:
        resolved = Schema.from_name_insensitive(schema)
        if resolved is None:
            raise NotFoundError(f"schema {schema} not found")
        with body.open("rb") as fh:
            request = deserialize_sync(read_body(fh), resolved)
    except (NotFoundError, ValidationError) as e:
        err_console.print(f"[red]{escape(e.message)}[/red]")
        raise typer.Exit(code=1) from e

    request = apply_overrides(request, debug, force_engine)
    console.print_json(request.model_dump_json(by_alias=True))
