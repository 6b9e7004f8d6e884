"""Storage key layout.

    [<namespace>/]Schematics/<name>            last-write-wins
    [<namespace>/]MachineSchematics/<hash>     set-if-absent
    [<namespace>/]Machines/<machine_id>        set-if-absent, then CAS
"""

from __future__ import annotations

SCHEMATICS_PREFIX = "Schematics"
MACHINE_SCHEMATICS_PREFIX = "MachineSchematics"
MACHINES_PREFIX = "Machines"


class KeyLayout:
    """Builds store keys, optionally under a shared namespace."""

    def __init__(self, namespace: str = "") -> None:
        self._root = f"{namespace.strip('/')}/" if namespace.strip("/") else ""

    @property
    def namespace(self) -> str:
        return self._root.rstrip("/")

    def schematic(self, name: str) -> str:
        return f"{self._root}{SCHEMATICS_PREFIX}/{name}"

    def machine_schematic(self, schematic_hash: str) -> str:
        return f"{self._root}{MACHINE_SCHEMATICS_PREFIX}/{schematic_hash}"

    def machine(self, machine_id: str) -> str:
        return f"{self._root}{MACHINES_PREFIX}/{machine_id}"
