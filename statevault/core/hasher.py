"""Canonical serialization and content-address hashing helpers.

The content hash is a deduplication key, not a security boundary: a
128-bit BLAKE2b digest is collision-resistant at any practical scale and
cheap to compute for large schematics.
"""

from __future__ import annotations

import base64
import hashlib
import json
from typing import Any

HASH_DIGEST_SIZE = 16  # bytes, i.e. a 128-bit digest


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes: deterministic, sorted, compact.

    - sorted keys
    - no whitespace separators (",", ":")
    - ensure_ascii=True
    - UTF-8 encoding
    """
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


def content_hash(data: bytes) -> str:
    """Return the printable content address of raw bytes.

    URL-safe base64 of the digest with padding stripped: always 22
    characters and never a ``/``, so it can be used as a key segment.
    """
    digest = hashlib.blake2b(data, digest_size=HASH_DIGEST_SIZE).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
