"""Machine store: per-instance status records.

Each record references its schematic by content hash instead of embedding
it. Many records may share one schematic blob, and deleting a record never
touches the blob.

Creation uses a set-if-absent write: an existing machine is never
overwritten, and the caller is told so with ``MachineAlreadyExistsError``.
State changes go through the ``OptimisticConcurrencyController``.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from statevault.core.codec import decode_record, encode_record
from statevault.core.concurrency import OptimisticConcurrencyController
from statevault.core.errors import (
    BulkCreateError,
    InvalidArgumentError,
    MachineAlreadyExistsError,
    MachineDoesNotExistError,
)
from statevault.core.keys import KeyLayout
from statevault.core.kv_store import KeyValueStore
from statevault.core.schematic_store import SchematicStore
from statevault.models.machine import MachineStatus, MachineStatusRecord
from statevault.models.schematic import Schematic

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENT_WRITES = 64


def _new_machine_id() -> str:
    return str(uuid.uuid4())


class MachineStore:
    """Creates, reads, mutates, and deletes machine status records.

    Parameters
    ----------
    store:
        The key-value store holding the records.
    schematics:
        Schematic store used to store and resolve schematic blobs.
    keys:
        Key layout shared with ``schematics``.
    max_concurrent_writes:
        Upper bound on in-flight writes during bulk creation.
    """

    def __init__(
        self,
        store: KeyValueStore,
        schematics: SchematicStore,
        keys: KeyLayout | None = None,
        *,
        max_concurrent_writes: int = DEFAULT_MAX_CONCURRENT_WRITES,
    ) -> None:
        self._store = store
        self._schematics = schematics
        self._keys = keys or KeyLayout()
        self._controller = OptimisticConcurrencyController(store, self._keys)
        self._max_concurrent_writes = max_concurrent_writes

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_machine(
        self,
        schematic: Schematic,
        machine_id: str | None = None,
        metadata: Mapping[str, str] | None = None,
    ) -> MachineStatus:
        """Create a new machine from a schematic.

        Parameters
        ----------
        schematic:
            The schematic of the machine.
        machine_id:
            The id of the machine to create; generated when ``None``.
        metadata:
            Related metadata, stored as-is and never changed afterwards.

        Raises
        ------
        InvalidArgumentError
            If ``machine_id`` is an empty string.
        MachineAlreadyExistsError
            If a machine with ``machine_id`` already exists. The existing
            record is left untouched.
        """
        if machine_id is not None and not machine_id:
            raise InvalidArgumentError("Machine id must not be empty.")
        machine_id = machine_id if machine_id is not None else _new_machine_id()

        data, schematic_hash = self._schematics.prepare(schematic)
        await self._schematics.ensure_schematic_hash(data, schematic_hash)

        record = MachineStatusRecord(
            machine_id=machine_id,
            schematic_hash=schematic_hash,
            state=schematic.initial_state,
            commit_number=0,
            updated_time=datetime.now(timezone.utc),
            metadata=dict(metadata or {}),
        )
        await self._write_new_record(record)

        logger.info(
            "Created machine %s from schematic %s.", machine_id, schematic_hash
        )
        return MachineStatus.from_record(record, schematic)

    async def create_machine_from_name(
        self,
        schematic_name: str,
        machine_id: str | None = None,
        metadata: Mapping[str, str] | None = None,
    ) -> MachineStatus:
        """Create a new machine from a schematic stored by name."""
        schematic = await self._schematics.retrieve_schematic(schematic_name)
        return await self.create_machine(schematic, machine_id, metadata)

    async def bulk_create_machines(
        self,
        schematic: Schematic,
        metadata: Iterable[Mapping[str, str] | None],
    ) -> list[MachineStatus]:
        """Create one machine per metadata entry, each with a fresh id.

        The schematic blob is stored once; the record writes then fan out
        concurrently. Every write is attempted even if some fail.

        Raises
        ------
        BulkCreateError
            After all writes finished, if any of them failed. The error
            carries both the created machines and the per-id failures.
        """
        data, schematic_hash = self._schematics.prepare(schematic)
        await self._schematics.ensure_schematic_hash(data, schematic_hash)

        now = datetime.now(timezone.utc)
        records = [
            MachineStatusRecord(
                machine_id=_new_machine_id(),
                schematic_hash=schematic_hash,
                state=schematic.initial_state,
                commit_number=0,
                updated_time=now,
                metadata=dict(meta or {}),
            )
            for meta in metadata
        ]

        limiter = asyncio.Semaphore(self._max_concurrent_writes)

        async def _bounded_write(record: MachineStatusRecord) -> None:
            async with limiter:
                await self._write_new_record(record)

        outcomes = await asyncio.gather(
            *(_bounded_write(r) for r in records), return_exceptions=True
        )

        created: list[MachineStatus] = []
        failures: dict[str, BaseException] = {}
        for record, outcome in zip(records, outcomes):
            if isinstance(outcome, BaseException):
                failures[record.machine_id] = outcome
            else:
                created.append(MachineStatus.from_record(record, schematic))

        logger.info(
            "Bulk created %d of %d machines from schematic %s.",
            len(created),
            len(records),
            schematic_hash,
        )
        if failures:
            raise BulkCreateError(created, failures)
        return created

    async def bulk_create_machines_from_name(
        self,
        schematic_name: str,
        metadata: Iterable[Mapping[str, str] | None],
    ) -> list[MachineStatus]:
        """Bulk create machines from a schematic stored by name."""
        schematic = await self._schematics.retrieve_schematic(schematic_name)
        return await self.bulk_create_machines(schematic, metadata)

    async def _write_new_record(self, record: MachineStatusRecord) -> None:
        written = await self._store.set(
            self._keys.machine(record.machine_id),
            encode_record(record),
            if_not_exists=True,
        )
        if not written:
            logger.warning("Machine %s already exists; creation refused.", record.machine_id)
            raise MachineAlreadyExistsError(record.machine_id)

    # ------------------------------------------------------------------
    # Read, mutate, delete
    # ------------------------------------------------------------------

    async def get_machine_status(self, machine_id: str) -> MachineStatus:
        """Retrieve a machine's status with its schematic resolved.

        Raises
        ------
        MachineDoesNotExistError
            If no record exists for ``machine_id``.
        SchematicDoesNotExistError
            If the referenced schematic blob is missing.
        """
        if not machine_id:
            raise InvalidArgumentError("A machine id is required.")

        data = await self._store.get(self._keys.machine(machine_id))
        if data is None:
            raise MachineDoesNotExistError(machine_id)

        record = decode_record(data)
        schematic = await self._schematics.retrieve_schematic_by_hash(
            record.schematic_hash
        )
        return MachineStatus.from_record(record, schematic)

    async def set_machine_state(
        self,
        machine_id: str,
        state: Any,
        last_commit_number: int | None = None,
    ) -> MachineStatus:
        """Update a machine's state under optimistic concurrency control.

        See ``OptimisticConcurrencyController.set_machine_state``.
        """
        return await self._controller.set_machine_state(
            machine_id, state, last_commit_number
        )

    async def delete_machine(self, machine_id: str) -> None:
        """Delete a machine. Does not raise if the machine does not exist."""
        if not machine_id:
            raise InvalidArgumentError("A machine id is required.")

        removed = await self._store.delete(self._keys.machine(machine_id))
        if removed:
            logger.info("Deleted machine %s.", machine_id)
        else:
            logger.debug("Delete of machine %s: nothing stored.", machine_id)
