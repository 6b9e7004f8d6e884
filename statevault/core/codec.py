"""Serialization codec for schematics and machine status records.

Both kinds are written as canonical JSON, so any JSON-representable state
or payload value round-trips without per-type registration. Schematic
blobs are also zlib-compressed: they can be large and are read far more
often than written. Compressed output may differ between zlib builds, so
the content hash is taken over the uncompressed canonical bytes.
"""

from __future__ import annotations

import json
import zlib

from pydantic import ValidationError

from statevault.core.errors import CorruptRecordError
from statevault.core.hasher import canonical_json_bytes
from statevault.models.machine import MachineStatusRecord
from statevault.models.schematic import Schematic

SCHEMATIC_COMPRESSION_LEVEL = 6


def schematic_bytes(schematic: Schematic) -> bytes:
    """Canonical JSON of a schematic, before compression."""
    return canonical_json_bytes(schematic.model_dump(mode="json"))


def compress_schematic(raw: bytes) -> bytes:
    return zlib.compress(raw, SCHEMATIC_COMPRESSION_LEVEL)


def encode_schematic(schematic: Schematic) -> bytes:
    """Serialize and compress a schematic."""
    return compress_schematic(schematic_bytes(schematic))


def decode_schematic(data: bytes) -> Schematic:
    """Decompress and deserialize a schematic blob."""
    try:
        return Schematic.model_validate(json.loads(zlib.decompress(data)))
    except (zlib.error, ValueError, ValidationError) as exc:
        raise CorruptRecordError(f"Cannot decode schematic blob: {exc}") from exc


def encode_record(record: MachineStatusRecord) -> bytes:
    """Serialize a machine status record."""
    return canonical_json_bytes(record.model_dump(mode="json"))


def decode_record(data: bytes) -> MachineStatusRecord:
    """Deserialize a machine status record."""
    try:
        return MachineStatusRecord.model_validate(json.loads(data))
    except (ValueError, ValidationError) as exc:
        raise CorruptRecordError(f"Cannot decode machine record: {exc}") from exc
