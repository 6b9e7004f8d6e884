"""statevault: schematic and machine-status persistence over a key-value store.

- Content-addressed, deduplicated storage of immutable schematics
- Machine status records referencing schematics by hash
- Optimistic concurrency control over state changes (commit number + CAS)
- In-memory and SQLite backends behind one async store contract
"""

__version__ = "0.1.0"
__description__ = (
    "Schematic and machine-status repository with content addressing and "
    "optimistic concurrency control"
)

from statevault.core.repository import Repository

__all__ = ["Repository", "__version__"]
