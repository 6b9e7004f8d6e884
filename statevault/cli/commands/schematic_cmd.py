"""``statevault schematic`` commands: store and show named schematics."""

from __future__ import annotations

import json
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.syntax import Syntax

from statevault.cli.commands._shared import (
    DATABASE_OPTION,
    NAMESPACE_OPTION,
    build_settings,
    console,
    run_with_repository,
)
from statevault.models.schematic import Schematic


def store_cmd(
    schematic_file: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="JSON file holding the schematic.",
    ),
    database: Path | None = DATABASE_OPTION,
    namespace: str | None = NAMESPACE_OPTION,
) -> None:
    """Store a schematic under its name, replacing any previous version."""
    try:
        schematic = Schematic.model_validate_json(schematic_file.read_bytes())
    except ValidationError as exc:
        console.print(f"[bold red]Invalid schematic:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc

    stored = run_with_repository(
        build_settings(database, namespace),
        lambda repo: repo.store_schematic(schematic),
    )
    console.print(
        f"[bold green]Stored schematic[/bold green] [cyan]{stored.schematic_name}[/cyan]"
    )


def show_cmd(
    schematic_name: str = typer.Argument(..., help="Name of the schematic."),
    database: Path | None = DATABASE_OPTION,
    namespace: str | None = NAMESPACE_OPTION,
) -> None:
    """Print a stored schematic as JSON."""
    schematic = run_with_repository(
        build_settings(database, namespace),
        lambda repo: repo.retrieve_schematic(schematic_name),
    )
    console.print(
        Syntax(json.dumps(schematic.model_dump(mode="json"), indent=2), "json")
    )
