"""statevault data models: all Pydantic v2, all frozen (immutable)."""

from statevault.models.machine import MachineStatus, MachineStatusRecord
from statevault.models.schematic import Schematic

__all__ = [
    # schematics
    "Schematic",
    # machines
    "MachineStatusRecord",
    "MachineStatus",
]
