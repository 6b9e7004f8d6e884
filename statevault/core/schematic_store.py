"""Schematic store: schematics by name and content-addressed by hash.

Two indexes into logically the same immutable value:

    Schematics/<name>            last write wins, no versioning
    MachineSchematics/<hash>     written once, never overwritten

Storing the same content under its hash twice is a no-op (idempotent).
There is no delete for hashed schematics: machine records reference them.
"""

from __future__ import annotations

import logging

from statevault.core.codec import (
    compress_schematic,
    decode_schematic,
    encode_schematic,
    schematic_bytes,
)
from statevault.core.errors import InvalidArgumentError, SchematicDoesNotExistError
from statevault.core.hasher import content_hash
from statevault.core.keys import KeyLayout
from statevault.core.kv_store import KeyValueStore
from statevault.models.schematic import Schematic

logger = logging.getLogger(__name__)


class SchematicStore:
    """Stores and resolves schematics.

    Parameters
    ----------
    store:
        The key-value store holding the blobs.
    keys:
        Key layout; defaults to the un-namespaced layout.
    """

    def __init__(self, store: KeyValueStore, keys: KeyLayout | None = None) -> None:
        self._store = store
        self._keys = keys or KeyLayout()

    @staticmethod
    def prepare(schematic: Schematic) -> tuple[bytes, str]:
        """Encode a schematic and compute its content hash.

        The hash covers the canonical JSON, not the compressed blob, so it
        is stable across zlib implementations.
        """
        raw = schematic_bytes(schematic)
        return compress_schematic(raw), content_hash(raw)

    # ------------------------------------------------------------------
    # By name
    # ------------------------------------------------------------------

    async def retrieve_schematic(self, schematic_name: str) -> Schematic:
        """Retrieve a previously stored schematic by name.

        Raises
        ------
        InvalidArgumentError
            If ``schematic_name`` is empty.
        SchematicDoesNotExistError
            If nothing is stored under the name.
        """
        if not schematic_name:
            raise InvalidArgumentError("A schematic name is required.")

        data = await self._store.get(self._keys.schematic(schematic_name))
        if data is None:
            raise SchematicDoesNotExistError(schematic_name)
        return decode_schematic(data)

    async def store_schematic(self, schematic: Schematic) -> Schematic:
        """Store a schematic under its ``schematic_name``, overwriting any
        previous value.
        """
        if not schematic.schematic_name:
            raise InvalidArgumentError("Schematic must have a name to be stored.")

        await self._store.set(
            self._keys.schematic(schematic.schematic_name),
            encode_schematic(schematic),
        )
        logger.info("Stored schematic '%s'.", schematic.schematic_name)
        return schematic

    # ------------------------------------------------------------------
    # By content hash
    # ------------------------------------------------------------------

    async def ensure_schematic_hash(self, data: bytes, schematic_hash: str) -> bool:
        """Write ``data`` under ``schematic_hash`` unless already present.

        Racing callers with identical bytes converge on the same stored
        value; the loser's write is simply skipped. Returns whether this
        call performed the write.
        """
        written = await self._store.set(
            self._keys.machine_schematic(schematic_hash), data, if_not_exists=True
        )
        if written:
            logger.debug("Stored schematic blob %s (%d bytes).", schematic_hash, len(data))
        return written

    async def retrieve_schematic_by_hash(self, schematic_hash: str) -> Schematic:
        """Resolve a content hash back to its schematic."""
        data = await self._store.get(self._keys.machine_schematic(schematic_hash))
        if data is None:
            raise SchematicDoesNotExistError(schematic_hash)
        return decode_schematic(data)
