"""``statevault machine`` commands: create, inspect, mutate, delete."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.table import Table

from statevault.cli.commands._shared import (
    DATABASE_OPTION,
    NAMESPACE_OPTION,
    build_settings,
    console,
    parse_metadata,
    parse_state,
    render_status,
    run_with_repository,
)


def create_cmd(
    schematic_name: str = typer.Argument(..., help="Name of a stored schematic."),
    machine_id: str | None = typer.Option(
        None, "--id", help="Machine id; a UUID is generated when omitted."
    ),
    meta: list[str] | None = typer.Option(
        None, "--meta", "-m", help="Metadata entry as KEY=VALUE (repeatable)."
    ),
    database: Path | None = DATABASE_OPTION,
    namespace: str | None = NAMESPACE_OPTION,
) -> None:
    """Create a machine from a stored schematic."""
    metadata = parse_metadata(meta or [])
    status = run_with_repository(
        build_settings(database, namespace),
        lambda repo: repo.create_machine(schematic_name, machine_id, metadata),
    )
    render_status(status, title="Machine created")
    # Print the machine id plainly for scripting
    console.print(f"[bold]{status.machine_id}[/bold]")


def bulk_create_cmd(
    schematic_name: str = typer.Argument(..., help="Name of a stored schematic."),
    count: int = typer.Option(..., "--count", "-c", min=1, help="Machines to create."),
    database: Path | None = DATABASE_OPTION,
    namespace: str | None = NAMESPACE_OPTION,
) -> None:
    """Create several machines from one stored schematic."""
    statuses = run_with_repository(
        build_settings(database, namespace),
        lambda repo: repo.bulk_create_machines(schematic_name, [{} for _ in range(count)]),
    )
    table = Table(title=f"Created {len(statuses)} machines")
    table.add_column("Machine ID", style="cyan")
    table.add_column("State", style="green")
    for status in statuses:
        table.add_row(status.machine_id, str(status.state))
    console.print(table)


def status_cmd(
    machine_id: str = typer.Argument(..., help="The machine id."),
    database: Path | None = DATABASE_OPTION,
    namespace: str | None = NAMESPACE_OPTION,
) -> None:
    """Show the current status of a machine."""
    status = run_with_repository(
        build_settings(database, namespace),
        lambda repo: repo.get_machine_status(machine_id),
    )
    render_status(status)


def set_state_cmd(
    machine_id: str = typer.Argument(..., help="The machine id."),
    state: str = typer.Argument(..., help="New state (JSON, or a plain string)."),
    commit: int | None = typer.Option(
        None,
        "--commit",
        "-c",
        help="Only update if the machine is still at this commit number.",
    ),
    database: Path | None = DATABASE_OPTION,
    namespace: str | None = NAMESPACE_OPTION,
) -> None:
    """Set the state of a machine under optimistic concurrency control."""
    status = run_with_repository(
        build_settings(database, namespace),
        lambda repo: repo.set_machine_state(machine_id, parse_state(state), commit),
    )
    render_status(status, title="State updated")


def delete_cmd(
    machine_id: str = typer.Argument(..., help="The machine id."),
    database: Path | None = DATABASE_OPTION,
    namespace: str | None = NAMESPACE_OPTION,
) -> None:
    """Delete a machine. Deleting an unknown machine is not an error."""
    run_with_repository(
        build_settings(database, namespace),
        lambda repo: repo.delete_machine(machine_id),
    )
    console.print(f"[bold]Deleted[/bold] [cyan]{machine_id}[/cyan]")
