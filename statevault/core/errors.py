"""Error kinds raised by the repository.

Store transport failures (``sqlite3.Error``, ``OSError``, ...) are not
wrapped; they propagate unchanged.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from statevault.models.machine import MachineStatus


class StateVaultError(RuntimeError):
    """Base class for every error raised by statevault."""


class InvalidArgumentError(StateVaultError, ValueError):
    """Raised when a required identifier is missing or empty."""


class NotFoundError(StateVaultError, LookupError):
    """Raised when a requested record has no stored value."""


class SchematicDoesNotExistError(NotFoundError):
    """Raised when no schematic is stored under a name or content hash."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Schematic not found: {key}")
        self.key = key


class MachineDoesNotExistError(NotFoundError):
    """Raised when no machine record is stored for an id."""

    def __init__(self, machine_id: str) -> None:
        super().__init__(f"Machine not found: {machine_id}")
        self.machine_id = machine_id


class StateConflictError(StateVaultError):
    """Raised when an optimistic-concurrency precondition fails.

    No data was changed. Callers should re-read the machine status and
    retry if the mutation still applies.
    """


class MachineAlreadyExistsError(StateConflictError):
    """Raised when creating a machine whose id is already taken."""

    def __init__(self, machine_id: str) -> None:
        super().__init__(f"Machine already exists: {machine_id}")
        self.machine_id = machine_id


class BulkCreateError(StateVaultError):
    """Raised after a bulk creation in which some writes failed.

    Every write was attempted. ``created`` holds the machines that were
    written; ``failures`` maps each failed machine id to its exception.
    """

    def __init__(
        self,
        created: Sequence[MachineStatus],
        failures: Mapping[str, BaseException],
    ) -> None:
        super().__init__(
            f"{len(failures)} of {len(created) + len(failures)} machine "
            f"creations failed"
        )
        self.created = list(created)
        self.failures = dict(failures)


class CorruptRecordError(StateVaultError):
    """Raised when stored bytes cannot be decoded."""


class TransactionNotCommittedError(StateVaultError):
    """Raised when reading a transaction result that was never produced."""
