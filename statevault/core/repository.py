"""Repository facade: the schematic and machine stores over one backend.

The Repository wires the KeyValueStore, KeyLayout, SchematicStore,
MachineStore and OptimisticConcurrencyController together and exposes
their operations to the execution engine above.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from statevault.config import StoreSettings
from statevault.core.keys import KeyLayout
from statevault.core.kv_store import InMemoryKeyValueStore, KeyValueStore, open_store
from statevault.core.machine_store import DEFAULT_MAX_CONCURRENT_WRITES, MachineStore
from statevault.core.schematic_store import SchematicStore
from statevault.models.machine import MachineStatus
from statevault.models.schematic import Schematic


class Repository:
    """Schematic and machine persistence over a single key-value store.

    Parameters
    ----------
    store:
        Backend to use. An in-memory store is created if not provided.
    key_namespace:
        Optional prefix applied to every key.
    max_concurrent_writes:
        Bound on in-flight writes during bulk creation.
    """

    def __init__(
        self,
        store: KeyValueStore | None = None,
        *,
        key_namespace: str = "",
        max_concurrent_writes: int = DEFAULT_MAX_CONCURRENT_WRITES,
    ) -> None:
        self.store = store if store is not None else InMemoryKeyValueStore()
        self.keys = KeyLayout(key_namespace)
        self.schematics = SchematicStore(self.store, self.keys)
        self.machines = MachineStore(
            self.store,
            self.schematics,
            self.keys,
            max_concurrent_writes=max_concurrent_writes,
        )

    @classmethod
    def from_settings(cls, settings: StoreSettings | None = None) -> Repository:
        """Build a repository from ``StoreSettings`` (env-driven by default)."""
        settings = settings or StoreSettings()
        return cls(
            open_store(settings),
            key_namespace=settings.key_namespace,
            max_concurrent_writes=settings.max_concurrent_writes,
        )

    async def close(self) -> None:
        await self.store.close()

    async def __aenter__(self) -> Repository:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Schematics
    # ------------------------------------------------------------------

    async def retrieve_schematic(self, schematic_name: str) -> Schematic:
        return await self.schematics.retrieve_schematic(schematic_name)

    async def store_schematic(self, schematic: Schematic) -> Schematic:
        return await self.schematics.store_schematic(schematic)

    # ------------------------------------------------------------------
    # Machines
    # ------------------------------------------------------------------

    async def create_machine(
        self,
        schematic: Schematic | str,
        machine_id: str | None = None,
        metadata: Mapping[str, str] | None = None,
    ) -> MachineStatus:
        """Create a machine from a schematic value or a stored schematic name."""
        if isinstance(schematic, str):
            return await self.machines.create_machine_from_name(
                schematic, machine_id, metadata
            )
        return await self.machines.create_machine(schematic, machine_id, metadata)

    async def bulk_create_machines(
        self,
        schematic: Schematic | str,
        metadata: Iterable[Mapping[str, str] | None],
    ) -> list[MachineStatus]:
        """Create one machine per metadata entry."""
        if isinstance(schematic, str):
            return await self.machines.bulk_create_machines_from_name(
                schematic, metadata
            )
        return await self.machines.bulk_create_machines(schematic, metadata)

    async def get_machine_status(self, machine_id: str) -> MachineStatus:
        return await self.machines.get_machine_status(machine_id)

    async def set_machine_state(
        self,
        machine_id: str,
        state: Any,
        last_commit_number: int | None = None,
    ) -> MachineStatus:
        return await self.machines.set_machine_state(
            machine_id, state, last_commit_number
        )

    async def delete_machine(self, machine_id: str) -> None:
        await self.machines.delete_machine(machine_id)
