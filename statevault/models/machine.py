"""Machine status models: the persisted record and the caller-facing view."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from statevault.models.schematic import Schematic


class MachineStatusRecord(BaseModel):
    """The stored form of one machine instance.

    Holds a non-owning reference (``schematic_hash``) to the schematic blob
    instead of the schematic itself. Changed only through the optimistic
    concurrency controller, which produces a new copy per commit.
    """

    model_config = ConfigDict(frozen=True)

    machine_id: str
    schematic_hash: str
    state: Any
    commit_number: int = 0  # optimistic-lock token, +1 per committed mutation
    updated_time: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    metadata: dict[str, str] = {}


class MachineStatus(BaseModel):
    """A status record with its schematic resolved in place. Never persisted."""

    model_config = ConfigDict(frozen=True)

    machine_id: str
    schematic: Schematic
    state: Any
    commit_number: int
    updated_time: datetime
    metadata: dict[str, str] = {}

    @classmethod
    def from_record(
        cls, record: MachineStatusRecord, schematic: Schematic
    ) -> MachineStatus:
        """Assemble the view from a stored record and its resolved schematic."""
        return cls(
            machine_id=record.machine_id,
            schematic=schematic,
            state=record.state,
            commit_number=record.commit_number,
            updated_time=record.updated_time,
            metadata=dict(record.metadata),
        )
