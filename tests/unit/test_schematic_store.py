"""Tests for SchematicStore: by-name storage and content-addressed blobs."""

from __future__ import annotations

import asyncio

import pytest

from statevault.core.codec import encode_schematic, schematic_bytes
from statevault.core.errors import InvalidArgumentError, SchematicDoesNotExistError
from statevault.core.hasher import content_hash
from statevault.core.keys import KeyLayout
from statevault.core.kv_store import InMemoryKeyValueStore
from statevault.core.schematic_store import SchematicStore
from statevault.models.schematic import Schematic

pytestmark = pytest.mark.anyio


@pytest.fixture
def schematics(memory_store: InMemoryKeyValueStore) -> SchematicStore:
    return SchematicStore(memory_store)


class TestByName:
    async def test_store_and_retrieve(self, schematics: SchematicStore, door_schematic):
        returned = await schematics.store_schematic(door_schematic)
        assert returned == door_schematic
        assert await schematics.retrieve_schematic("Door") == door_schematic

    async def test_last_write_wins(self, schematics: SchematicStore, make_schematic):
        await schematics.store_schematic(make_schematic(initial_state="Closed"))
        await schematics.store_schematic(make_schematic(initial_state="Open"))
        assert (await schematics.retrieve_schematic("Door")).initial_state == "Open"

    async def test_retrieve_unknown(self, schematics: SchematicStore):
        with pytest.raises(SchematicDoesNotExistError, match="Elevator"):
            await schematics.retrieve_schematic("Elevator")

    async def test_retrieve_requires_name(self, schematics: SchematicStore):
        with pytest.raises(InvalidArgumentError):
            await schematics.retrieve_schematic("")

    @pytest.mark.parametrize("name", [None, ""])
    async def test_store_requires_name(self, schematics: SchematicStore, make_schematic, name):
        with pytest.raises(InvalidArgumentError):
            await schematics.store_schematic(make_schematic(schematic_name=name))

    async def test_key_layout(self, memory_store: InMemoryKeyValueStore, door_schematic):
        store = SchematicStore(memory_store, KeyLayout("ns"))
        await store.store_schematic(door_schematic)
        assert memory_store.keys() == ["ns/Schematics/Door"]


class TestByHash:
    async def test_prepare_hashes_canonical_bytes(self, door_schematic: Schematic):
        data, schematic_hash = SchematicStore.prepare(door_schematic)
        assert schematic_hash == content_hash(schematic_bytes(door_schematic))
        assert data == encode_schematic(door_schematic)

    async def test_ensure_then_retrieve(self, schematics: SchematicStore, door_schematic):
        data, schematic_hash = schematics.prepare(door_schematic)
        assert await schematics.ensure_schematic_hash(data, schematic_hash) is True
        assert await schematics.retrieve_schematic_by_hash(schematic_hash) == door_schematic

    async def test_ensure_is_idempotent(
        self, schematics: SchematicStore, memory_store: InMemoryKeyValueStore, door_schematic
    ):
        data, schematic_hash = schematics.prepare(door_schematic)
        assert await schematics.ensure_schematic_hash(data, schematic_hash) is True
        assert await schematics.ensure_schematic_hash(data, schematic_hash) is False
        assert memory_store.keys("MachineSchematics/") == [
            f"MachineSchematics/{schematic_hash}"
        ]

    async def test_concurrent_ensure_converges(
        self, schematics: SchematicStore, memory_store: InMemoryKeyValueStore, door_schematic
    ):
        data, schematic_hash = schematics.prepare(door_schematic)
        results = await asyncio.gather(
            schematics.ensure_schematic_hash(data, schematic_hash),
            schematics.ensure_schematic_hash(data, schematic_hash),
        )
        assert sorted(results) == [False, True]
        assert len(memory_store.keys("MachineSchematics/")) == 1
        assert await memory_store.get(f"MachineSchematics/{schematic_hash}") == data

    async def test_retrieve_unknown_hash(self, schematics: SchematicStore):
        with pytest.raises(SchematicDoesNotExistError):
            await schematics.retrieve_schematic_by_hash("AAAAAAAAAAAAAAAAAAAAAA")

    async def test_by_name_store_does_not_touch_hash_index(
        self, schematics: SchematicStore, memory_store: InMemoryKeyValueStore, door_schematic
    ):
        await schematics.store_schematic(door_schematic)
        assert memory_store.keys("MachineSchematics/") == []
