"""Shared test fixtures for statevault."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from statevault.core.kv_store import (
    InMemoryKeyValueStore,
    KeyValueStore,
    SqliteKeyValueStore,
)
from statevault.core.repository import Repository
from statevault.models.schematic import Schematic


@pytest.fixture
def anyio_backend() -> str:
    """Run coroutine tests on asyncio only."""
    return "asyncio"


@pytest.fixture
def memory_store() -> InMemoryKeyValueStore:
    """Provide a fresh in-memory store."""
    return InMemoryKeyValueStore()


@pytest.fixture
def sqlite_store(tmp_path: Path) -> SqliteKeyValueStore:
    """Provide a fresh SqliteKeyValueStore backed by a temp database."""
    return SqliteKeyValueStore(tmp_path / "store.db")


@pytest.fixture(params=["memory", "sqlite"])
def kv_store(request: pytest.FixtureRequest, tmp_path: Path) -> KeyValueStore:
    """Provide each backend in turn."""
    if request.param == "memory":
        return InMemoryKeyValueStore()
    return SqliteKeyValueStore(tmp_path / "store.db")


@pytest.fixture
def repository(memory_store: InMemoryKeyValueStore) -> Repository:
    """Provide a Repository over the in-memory store."""
    return Repository(memory_store)


@pytest.fixture
def sqlite_repository(sqlite_store: SqliteKeyValueStore) -> Repository:
    """Provide a Repository over the SQLite store."""
    return Repository(sqlite_store)


# ---------------------------------------------------------------------------
# Schematic factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_schematic() -> Callable[..., Schematic]:
    """Factory fixture: build a Schematic with sensible defaults."""

    def _factory(
        schematic_name: str | None = "Door",
        initial_state: Any = "Closed",
        **overrides: Any,
    ) -> Schematic:
        defaults: dict[str, Any] = {
            "schematic_name": schematic_name,
            "initial_state": initial_state,
            "states": [
                {
                    "value": "Closed",
                    "transitions": [{"input": "open", "result_state": "Open"}],
                },
                {
                    "value": "Open",
                    "transitions": [{"input": "close", "result_state": "Closed"}],
                },
            ],
        }
        defaults.update(overrides)
        return Schematic(**defaults)

    return _factory


@pytest.fixture
def door_schematic(make_schematic: Callable[..., Schematic]) -> Schematic:
    """Convenience: the two-state Door schematic."""
    return make_schematic()
