"""Key-value store contract and its backends.

The repository needs four primitives from a store: get/set of opaque
blobs, set-if-absent, delete, and a transaction that commits a batch of
operations only when every key condition still holds.

Backends:

1. **SQLite** (``SqliteKeyValueStore``): persistent, WAL journal, safe
   across processes. Blocking calls run in a worker thread.
2. **In-memory** (``InMemoryKeyValueStore``): volatile, single process,
   suitable for tests and embedding.
"""

from __future__ import annotations

import abc
import asyncio
import logging
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import TYPE_CHECKING

from statevault.core.errors import StateVaultError, TransactionNotCommittedError

if TYPE_CHECKING:
    from statevault.config import StoreSettings

logger = logging.getLogger(__name__)

# (key, expected bytes or None for "must be absent")
Condition = tuple[str, bytes | None]
# ("set", key, value) or ("get", key, None)
Operation = tuple[str, str, bytes | None]


class TransactionRead:
    """Result slot for a read queued inside a transaction.

    The value is only available after the transaction committed.
    """

    def __init__(self, key: str) -> None:
        self.key = key
        self._resolved = False
        self._value: bytes | None = None

    @property
    def value(self) -> bytes | None:
        if not self._resolved:
            raise TransactionNotCommittedError(
                f"Read of {self.key!r} is only available after commit"
            )
        return self._value

    def _resolve(self, value: bytes | None) -> None:
        self._value = value
        self._resolved = True


class Transaction:
    """A batch of operations guarded by byte-equality conditions.

    Operations are queued, not applied. ``execute()`` hands the whole batch
    to the store, which checks every condition and applies every operation
    atomically, or does nothing at all.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store
        self._conditions: list[Condition] = []
        self._operations: list[Operation] = []
        self._reads: list[TransactionRead] = []
        self._executed = False

    def add_condition(self, key: str, expected: bytes | None) -> None:
        """Require ``key`` to hold exactly ``expected`` (``None``: absent)."""
        self._conditions.append((key, expected))

    def set(self, key: str, value: bytes) -> None:
        self._operations.append(("set", key, bytes(value)))

    def get(self, key: str) -> TransactionRead:
        read = TransactionRead(key)
        self._operations.append(("get", key, None))
        self._reads.append(read)
        return read

    async def execute(self) -> bool:
        """Apply the batch. Returns ``False`` if a condition failed."""
        if self._executed:
            raise StateVaultError("Transaction has already been executed")
        self._executed = True

        results = await self._store._execute_transaction(
            list(self._conditions), list(self._operations)
        )
        if results is None:
            return False
        for read, value in zip(self._reads, results):
            read._resolve(value)
        return True


class KeyValueStore(abc.ABC):
    """Async key-value store with conditional writes and transactions."""

    @abc.abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Return the value stored under ``key``, or ``None``."""

    @abc.abstractmethod
    async def set(
        self, key: str, value: bytes, *, if_not_exists: bool = False
    ) -> bool:
        """Store ``value``. Returns whether the value was written."""

    @abc.abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove ``key``. Returns whether a value was removed."""

    @abc.abstractmethod
    async def _execute_transaction(
        self, conditions: list[Condition], operations: list[Operation]
    ) -> list[bytes | None] | None:
        """Atomically check ``conditions`` and apply ``operations``.

        Returns the values of the queued reads in order, or ``None`` when
        a condition failed and nothing was applied.
        """

    def transaction(self) -> Transaction:
        return Transaction(self)

    async def close(self) -> None:
        """Release backend resources."""

    async def __aenter__(self) -> KeyValueStore:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------


class InMemoryKeyValueStore(KeyValueStore):
    """Dict-backed store.

    Every operation yields to the event loop once before touching the data,
    so concurrent coroutines interleave as they would against a remote
    store. The data access itself never suspends and is therefore atomic.
    """

    def __init__(self) -> None:
        self._data: dict[str, bytes] = {}

    async def get(self, key: str) -> bytes | None:
        await asyncio.sleep(0)
        return self._data.get(key)

    async def set(
        self, key: str, value: bytes, *, if_not_exists: bool = False
    ) -> bool:
        await asyncio.sleep(0)
        if if_not_exists and key in self._data:
            return False
        self._data[key] = bytes(value)
        return True

    async def delete(self, key: str) -> bool:
        await asyncio.sleep(0)
        return self._data.pop(key, None) is not None

    async def _execute_transaction(
        self, conditions: list[Condition], operations: list[Operation]
    ) -> list[bytes | None] | None:
        await asyncio.sleep(0)
        for key, expected in conditions:
            if self._data.get(key) != expected:
                return None

        results: list[bytes | None] = []
        for op, key, value in operations:
            if op == "set":
                self._data[key] = value
            else:
                results.append(self._data.get(key))
        return results

    def __len__(self) -> int:
        return len(self._data)

    def keys(self, prefix: str = "") -> list[str]:
        """Return the stored keys starting with ``prefix``, sorted."""
        return sorted(k for k in self._data if k.startswith(prefix))


# ---------------------------------------------------------------------------
# SQLite backend
# ---------------------------------------------------------------------------

_CREATE_KV_STORE = """
CREATE TABLE IF NOT EXISTS kv_store (
    key    TEXT PRIMARY KEY,
    value  BLOB NOT NULL
);
"""


class SqliteKeyValueStore(KeyValueStore):
    """SQLite-backed store.

    Transactions run under ``BEGIN IMMEDIATE``: the write lock is taken
    before the conditions are read, so no other writer can slip in between
    the check and the commit. A cancelled caller does not interrupt the
    worker thread; the batch is still committed whole or not at all.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file. Created if it does not exist.
    timeout:
        Seconds to wait for a competing writer's lock.
    """

    def __init__(self, db_path: Path, *, timeout: float = 30.0) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._timeout = timeout
        self._init_schema()
        logger.info("SqliteKeyValueStore: using database at %s.", self._db_path)

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        # Autocommit mode; transactions are opened explicitly.
        conn = sqlite3.connect(
            str(self._db_path),
            timeout=self._timeout,
            isolation_level=None,
            check_same_thread=False,
        )
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_schema(self) -> None:
        with closing(self._connect()) as conn:
            conn.execute(_CREATE_KV_STORE)

    # ------------------------------------------------------------------
    # Blocking implementations
    # ------------------------------------------------------------------

    @staticmethod
    def _select(conn: sqlite3.Connection, key: str) -> bytes | None:
        row = conn.execute(
            "SELECT value FROM kv_store WHERE key = ?", (key,)
        ).fetchone()
        return bytes(row[0]) if row else None

    def _get_sync(self, key: str) -> bytes | None:
        with closing(self._connect()) as conn:
            return self._select(conn, key)

    def _set_sync(self, key: str, value: bytes, if_not_exists: bool) -> bool:
        with closing(self._connect()) as conn:
            if if_not_exists:
                cur = conn.execute(
                    "INSERT OR IGNORE INTO kv_store (key, value) VALUES (?, ?)",
                    (key, value),
                )
                return cur.rowcount == 1
            conn.execute(
                """
                INSERT INTO kv_store (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, value),
            )
            return True

    def _delete_sync(self, key: str) -> bool:
        with closing(self._connect()) as conn:
            cur = conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            return cur.rowcount > 0

    def _transaction_sync(
        self, conditions: list[Condition], operations: list[Operation]
    ) -> list[bytes | None] | None:
        with closing(self._connect()) as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                for key, expected in conditions:
                    if self._select(conn, key) != expected:
                        conn.rollback()
                        return None

                results: list[bytes | None] = []
                for op, key, value in operations:
                    if op == "set":
                        conn.execute(
                            """
                            INSERT INTO kv_store (key, value) VALUES (?, ?)
                            ON CONFLICT(key) DO UPDATE SET value = excluded.value
                            """,
                            (key, value),
                        )
                    else:
                        results.append(self._select(conn, key))
                conn.commit()
                return results
            except BaseException:
                if conn.in_transaction:
                    conn.rollback()
                raise

    # ------------------------------------------------------------------
    # Async interface
    # ------------------------------------------------------------------

    async def get(self, key: str) -> bytes | None:
        return await asyncio.to_thread(self._get_sync, key)

    async def set(
        self, key: str, value: bytes, *, if_not_exists: bool = False
    ) -> bool:
        return await asyncio.to_thread(self._set_sync, key, bytes(value), if_not_exists)

    async def delete(self, key: str) -> bool:
        return await asyncio.to_thread(self._delete_sync, key)

    async def _execute_transaction(
        self, conditions: list[Condition], operations: list[Operation]
    ) -> list[bytes | None] | None:
        return await asyncio.to_thread(self._transaction_sync, conditions, operations)


def open_store(settings: StoreSettings) -> KeyValueStore:
    """Build the backend selected by ``settings.backend``."""
    if settings.backend == "memory":
        return InMemoryKeyValueStore()
    return SqliteKeyValueStore(settings.database_path)
