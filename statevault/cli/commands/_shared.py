"""Helpers shared by the CLI commands: repository wiring and rendering."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

import typer
from rich.console import Console
from rich.panel import Panel

from statevault.config import StoreSettings
from statevault.core.errors import StateVaultError
from statevault.core.repository import Repository
from statevault.models.machine import MachineStatus

T = TypeVar("T")

console = Console()

DATABASE_OPTION = typer.Option(
    None,
    "--database",
    "-d",
    help="Path to the SQLite store (default: STATEVAULT_DATABASE_PATH).",
)
NAMESPACE_OPTION = typer.Option(
    None,
    "--namespace",
    "-n",
    help="Key namespace (default: STATEVAULT_KEY_NAMESPACE).",
)


def build_settings(database: Path | None, namespace: str | None) -> StoreSettings:
    """Apply command-line overrides on top of the environment settings.

    Each command runs in its own process, so an in-memory store would
    start empty every time: ``--database`` selects SQLite, and the memory
    backend is refused.
    """
    overrides: dict[str, Any] = {}
    if database is not None:
        overrides["database_path"] = database
        overrides["backend"] = "sqlite"
    if namespace is not None:
        overrides["key_namespace"] = namespace
    settings = StoreSettings(**overrides)
    if settings.backend != "sqlite":
        raise typer.BadParameter(
            "The CLI needs a persistent store; pass --database or set "
            "STATEVAULT_BACKEND=sqlite."
        )
    return settings


def run_with_repository(
    settings: StoreSettings,
    action: Callable[[Repository], Awaitable[T]],
) -> T:
    """Run ``action`` against a repository, mapping errors to exit code 1."""

    async def _main() -> T:
        async with Repository.from_settings(settings) as repository:
            return await action(repository)

    try:
        return asyncio.run(_main())
    except StateVaultError as exc:
        console.print(f"[bold red]{type(exc).__name__}:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc


def parse_state(raw: str) -> Any:
    """Interpret a state argument as JSON when possible, else as a string."""
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def parse_metadata(pairs: list[str]) -> dict[str, str]:
    """Turn ``KEY=VALUE`` arguments into a metadata mapping."""
    metadata: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected KEY=VALUE, got {pair!r}.")
        metadata[key] = value
    return metadata


def render_status(status: MachineStatus, title: str = "Machine") -> None:
    """Print a machine status view as a Rich panel."""
    metadata = ", ".join(f"{k}={v}" for k, v in sorted(status.metadata.items()))
    console.print(
        Panel(
            "\n".join([
                f"[bold]Machine ID:[/bold]     {status.machine_id}",
                f"[bold]Schematic:[/bold]      {status.schematic.schematic_name or '-'}",
                f"[bold]State:[/bold]          {json.dumps(status.state)}",
                f"[bold]Commit:[/bold]         {status.commit_number}",
                f"[bold]Updated:[/bold]        {status.updated_time.isoformat()}",
                f"[bold]Metadata:[/bold]       {metadata or '-'}",
            ]),
            title=f"[bold]{title}[/bold]",
            border_style="green",
            padding=(1, 2),
        )
    )
