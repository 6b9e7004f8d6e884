"""Schematic model: an immutable, named state-machine definition.

The repository never interprets ``states``; it only stores the schematic,
addresses it by content, and hands it back.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class Schematic(BaseModel):
    """A state-machine definition.

    ``schematic_name`` is a lookup key only. Two schematics whose serialized
    bytes are identical share one content-addressed blob regardless of the
    name they were stored under.

    Fields the repository does not know about are kept as-is, so callers
    can carry richer definitions (descriptions, retry counts, ...) without
    registering a type.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    schematic_name: str | None = None
    initial_state: Any
    states: list[Any] = []
