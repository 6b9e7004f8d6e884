"""Optimistic concurrency control over machine state mutation.

One mutation attempt:

1. Read the raw record bytes (the snapshot).
2. Compare the caller's expected commit number, if any.
3. Build the next record locally: new state, commit number + 1, now.
4. Commit in one store transaction, conditioned on the stored bytes still
   equalling the snapshot; read the schematic blob in the same batch.
5. Report a conflict if the condition failed. Nothing is retried here.

The commit-number check gives callers a version token to reason about.
The byte-equality condition is what actually enforces exclusion, and it
also covers writers that never supplied a version.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from statevault.core.codec import decode_record, decode_schematic, encode_record
from statevault.core.errors import (
    InvalidArgumentError,
    MachineDoesNotExistError,
    SchematicDoesNotExistError,
    StateConflictError,
)
from statevault.core.keys import KeyLayout
from statevault.core.kv_store import KeyValueStore
from statevault.models.machine import MachineStatus

logger = logging.getLogger(__name__)


class OptimisticConcurrencyController:
    """Compare-and-swap mutation of machine status records.

    Parameters
    ----------
    store:
        The key-value store holding machine records and schematic blobs.
    keys:
        Key layout shared with the schematic and machine stores.
    """

    def __init__(self, store: KeyValueStore, keys: KeyLayout | None = None) -> None:
        self._store = store
        self._keys = keys or KeyLayout()

    async def set_machine_state(
        self,
        machine_id: str,
        state: Any,
        last_commit_number: int | None = None,
    ) -> MachineStatus:
        """Set the state of a machine if no other writer got there first.

        Parameters
        ----------
        machine_id:
            The id of the machine.
        state:
            The state to set.
        last_commit_number:
            When given, the update only happens if it matches the current
            commit number.

        Raises
        ------
        MachineDoesNotExistError
            If there is no record for ``machine_id``.
        StateConflictError
            If the commit number did not match or the record changed since
            it was read. No update was performed.
        """
        if not machine_id:
            raise InvalidArgumentError("A machine id is required.")

        machine_key = self._keys.machine(machine_id)
        snapshot = await self._store.get(machine_key)
        if snapshot is None:
            raise MachineDoesNotExistError(machine_id)

        record = decode_record(snapshot)
        if last_commit_number is not None and record.commit_number != last_commit_number:
            logger.warning(
                "Commit number conflict on %s: expected %d, found %d.",
                machine_id,
                last_commit_number,
                record.commit_number,
            )
            raise StateConflictError(
                f"Machine {machine_id} is at commit {record.commit_number}, "
                f"not {last_commit_number}."
            )

        updated = record.model_copy(
            update={
                "state": state,
                "commit_number": record.commit_number + 1,
                "updated_time": datetime.now(timezone.utc),
            }
        )

        transaction = self._store.transaction()
        transaction.add_condition(machine_key, snapshot)
        transaction.set(machine_key, encode_record(updated))
        schematic_read = transaction.get(
            self._keys.machine_schematic(updated.schematic_hash)
        )
        committed = await transaction.execute()

        if not committed:
            logger.warning(
                "Machine %s changed since commit %d was read; update rejected.",
                machine_id,
                record.commit_number,
            )
            raise StateConflictError(
                f"Machine {machine_id} was modified concurrently; re-read and retry."
            )

        logger.info(
            "Machine %s moved to commit %d.", machine_id, updated.commit_number
        )

        # The mutation is committed even if the schematic cannot be resolved.
        schematic_bytes = schematic_read.value
        if schematic_bytes is None:
            raise SchematicDoesNotExistError(updated.schematic_hash)
        return MachineStatus.from_record(updated, decode_schematic(schematic_bytes))
