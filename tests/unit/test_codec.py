"""Tests for the codec and hasher: round-trips, determinism, corruption."""

from __future__ import annotations

import zlib
from datetime import datetime, timezone

import pytest

from statevault.core import codec
from statevault.core.codec import (
    decode_record,
    decode_schematic,
    encode_record,
    encode_schematic,
    schematic_bytes,
)
from statevault.core.errors import CorruptRecordError
from statevault.core.hasher import canonical_json_bytes, content_hash
from statevault.core.schematic_store import SchematicStore
from statevault.models.machine import MachineStatusRecord
from statevault.models.schematic import Schematic


class TestSchematicCodec:
    def test_round_trip(self, door_schematic: Schematic):
        assert decode_schematic(encode_schematic(door_schematic)) == door_schematic

    def test_round_trip_keeps_unknown_fields(self, make_schematic):
        schematic = make_schematic(
            description="A door", state_conflict_retry_count=3
        )
        decoded = decode_schematic(encode_schematic(schematic))
        assert decoded == schematic
        assert decoded.model_extra == {
            "description": "A door",
            "state_conflict_retry_count": 3,
        }

    def test_structured_initial_state(self, make_schematic):
        schematic = make_schematic(initial_state={"floor": 1, "doors": ["a", "b"]})
        assert decode_schematic(encode_schematic(schematic)).initial_state == {
            "floor": 1,
            "doors": ["a", "b"],
        }

    def test_blob_is_compressed_canonical_json(self, door_schematic: Schematic):
        raw = zlib.decompress(encode_schematic(door_schematic))
        assert raw == canonical_json_bytes(door_schematic.model_dump(mode="json"))

    def test_encoding_is_deterministic(self):
        a = Schematic(
            schematic_name="Door",
            initial_state="Closed",
            states=[{"value": "Closed", "description": "shut"}],
        )
        b = Schematic(
            states=[{"description": "shut", "value": "Closed"}],
            initial_state="Closed",
            schematic_name="Door",
        )
        assert encode_schematic(a) == encode_schematic(b)

    def test_corrupt_blob(self):
        with pytest.raises(CorruptRecordError):
            decode_schematic(b"not a zlib stream")


class TestRecordCodec:
    def test_round_trip(self):
        record = MachineStatusRecord(
            machine_id="m1",
            schematic_hash="abc",
            state={"position": [1, 2]},
            commit_number=7,
            updated_time=datetime(2026, 1, 2, 3, 4, 5, 678901, tzinfo=timezone.utc),
            metadata={"owner": "alice"},
        )
        assert decode_record(encode_record(record)) == record

    def test_large_commit_number_survives(self):
        record = MachineStatusRecord(
            machine_id="m1", schematic_hash="abc", state="s", commit_number=2**63
        )
        assert decode_record(encode_record(record)).commit_number == 2**63

    def test_corrupt_record(self):
        with pytest.raises(CorruptRecordError):
            decode_record(b"{not json")

    def test_record_missing_fields(self):
        with pytest.raises(CorruptRecordError):
            decode_record(b'{"machine_id": "m1"}')


class TestContentHash:
    def test_same_bytes_same_hash(self, door_schematic: Schematic):
        assert content_hash(schematic_bytes(door_schematic)) == content_hash(
            schematic_bytes(door_schematic)
        )

    def test_fixed_length_key_safe_token(self):
        for data in (b"", b"x", b"y" * 10_000):
            digest = content_hash(data)
            assert len(digest) == 22
            assert "/" not in digest
            assert "=" not in digest

    def test_different_bytes_different_hash(self):
        assert content_hash(b"schematic-a") != content_hash(b"schematic-b")

    def test_name_changes_hash(self, make_schematic):
        a = schematic_bytes(make_schematic(schematic_name="Door"))
        b = schematic_bytes(make_schematic(schematic_name="Gate"))
        assert content_hash(a) != content_hash(b)

    def test_hash_is_pinned_across_processes(self):
        schematic = Schematic(
            schematic_name="Door",
            initial_state="Closed",
            states=[{"value": "Closed"}, {"value": "Open"}],
        )
        raw = schematic_bytes(schematic)
        assert raw == (
            b'{"initial_state":"Closed","schematic_name":"Door",'
            b'"states":[{"value":"Closed"},{"value":"Open"}]}'
        )
        assert content_hash(raw) == "jPoAOd_nMOnIhQT7zdHQjA"
        assert SchematicStore.prepare(schematic)[1] == "jPoAOd_nMOnIhQT7zdHQjA"

    def test_hash_ignores_compressed_form(self, door_schematic: Schematic, monkeypatch):
        _, expected = SchematicStore.prepare(door_schematic)
        monkeypatch.setattr(codec, "SCHEMATIC_COMPRESSION_LEVEL", 1)
        data, schematic_hash = SchematicStore.prepare(door_schematic)
        assert schematic_hash == expected
        assert decode_schematic(data) == door_schematic
