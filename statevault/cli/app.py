"""Main Typer application: imports and registers all CLI commands.

Entry point: ``statevault`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import logging

import typer

from statevault.cli.commands.machine_cmd import (
    bulk_create_cmd,
    create_cmd,
    delete_cmd,
    set_state_cmd,
    status_cmd,
)
from statevault.cli.commands.schematic_cmd import show_cmd, store_cmd
from statevault.config import StoreSettings

app = typer.Typer(
    name="statevault",
    help="statevault: schematic and machine-status repository.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

schematic_app = typer.Typer(help="Store and inspect named schematics.", no_args_is_help=True)
machine_app = typer.Typer(help="Create, inspect, update and delete machines.", no_args_is_help=True)

app.add_typer(schematic_app, name="schematic")
app.add_typer(machine_app, name="machine")

# Register subcommands
schematic_app.command(name="store", help="Store a schematic from a JSON file.")(store_cmd)
schematic_app.command(name="show", help="Print a stored schematic.")(show_cmd)

machine_app.command(name="create", help="Create a machine from a stored schematic.")(create_cmd)
machine_app.command(name="bulk-create", help="Create several machines at once.")(bulk_create_cmd)
machine_app.command(name="status", help="Show a machine's status.")(status_cmd)
machine_app.command(name="set-state", help="Set a machine's state.")(set_state_cmd)
machine_app.command(name="delete", help="Delete a machine.")(delete_cmd)


@app.callback()
def configure_logging(
    log_level: str | None = typer.Option(
        None, "--log-level", help="Logging level (default: STATEVAULT_LOG_LEVEL)."
    ),
) -> None:
    """Configure logging before any command runs."""
    level = (log_level or StoreSettings().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
