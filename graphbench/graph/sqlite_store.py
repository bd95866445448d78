"""
SQLite Graph Store.

Embedded on-disk graph store created in a fresh temporary directory for each
benchmark run and removed again when the store is closed.

Every transaction is a `BEGIN IMMEDIATE` write transaction on a per-thread
connection, so get-or-create is atomic: the writer lock is held from the
index lookup until commit.
"""

import json
import shutil
import sqlite3
import tempfile
import threading
from pathlib import Path
from typing import Any

import structlog

from graphbench.graph.store import (
    GraphStore,
    NodeInitializer,
    NodeRef,
    StoreUnavailable,
    Transaction,
    TransactionFailure,
)

logger = structlog.get_logger(__name__)


SCHEMA = [
    "CREATE TABLE IF NOT EXISTS nodes (id INTEGER PRIMARY KEY AUTOINCREMENT)",
    """
    CREATE TABLE IF NOT EXISTS node_properties (
        node_id INTEGER NOT NULL REFERENCES nodes(id),
        key TEXT NOT NULL,
        value TEXT,
        PRIMARY KEY (node_id, key)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS relationships (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        start_id INTEGER NOT NULL REFERENCES nodes(id),
        end_id INTEGER NOT NULL REFERENCES nodes(id),
        type TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS index_entries (
        index_name TEXT NOT NULL,
        key TEXT NOT NULL,
        value TEXT NOT NULL,
        node_id INTEGER NOT NULL REFERENCES nodes(id),
        PRIMARY KEY (index_name, key, value)
    )
    """,
]


def _translate(exc: sqlite3.Error) -> TransactionFailure:
    message = str(exc)
    error_type = "lock_timeout" if "locked" in message.lower() else "store_error"
    return TransactionFailure(f"SQLite error: {message}", error_type=error_type)


class SqliteTransaction(Transaction):
    """Write transaction on one thread's connection."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        super().__init__()
        self._conn = conn
        try:
            self._conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as e:
            self._closed = True
            raise _translate(e) from e

    def _execute(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        self._check_open()
        try:
            return self._conn.execute(sql, params)
        except sqlite3.Error as e:
            raise _translate(e) from e

    def create_node(self) -> NodeRef:
        cursor = self._execute("INSERT INTO nodes DEFAULT VALUES")
        return NodeRef(cursor.lastrowid)

    def set_property(self, node: NodeRef, key: str, value: Any) -> None:
        self._execute(
            "INSERT OR REPLACE INTO node_properties (node_id, key, value) VALUES (?, ?, ?)",
            (node.id, key, json.dumps(value)),
        )

    def create_relationship(self, start: NodeRef, end: NodeRef, rel_type: str) -> None:
        self._execute(
            "INSERT INTO relationships (start_id, end_id, type) VALUES (?, ?, ?)",
            (start.id, end.id, rel_type),
        )

    def get_node_by_id(self, node_id: int | str) -> NodeRef:
        row = self._execute("SELECT id FROM nodes WHERE id = ?", (node_id,)).fetchone()
        if row is None:
            raise TransactionFailure(f"Node {node_id} not found", error_type="not_found")
        return NodeRef(row[0])

    def get_or_create(
        self,
        index_name: str,
        key: str,
        value: Any,
        initializer: NodeInitializer,
    ) -> NodeRef:
        encoded = json.dumps(value)
        row = self._execute(
            "SELECT node_id FROM index_entries WHERE index_name = ? AND key = ? AND value = ?",
            (index_name, key, encoded),
        ).fetchone()
        if row is not None:
            return NodeRef(row[0])

        node = self.create_node()
        initializer(node, self)
        self._execute(
            "INSERT INTO index_entries (index_name, key, value, node_id) VALUES (?, ?, ?, ?)",
            (index_name, key, encoded, node.id),
        )
        return node

    def _commit(self) -> None:
        try:
            self._conn.execute("COMMIT")
        except sqlite3.Error as e:
            self._rollback()
            raise _translate(e) from e

    def _rollback(self) -> None:
        try:
            self._conn.execute("ROLLBACK")
        except sqlite3.Error as e:
            logger.warning("Rollback failed", error=str(e))


class SqliteGraphStore(GraphStore):
    """
    Graph store backed by a SQLite database in its own temporary directory.

    Args:
        work_dir: Parent directory for the per-run directory (system temp if None)
        lock_timeout_seconds: How long a transaction waits for the writer lock
        synchronous: SQLite synchronous pragma (FULL, NORMAL or OFF)
    """

    backend = "sqlite"

    def __init__(
        self,
        work_dir: str | Path | None = None,
        lock_timeout_seconds: float = 30.0,
        synchronous: str = "NORMAL",
    ) -> None:
        self._lock_timeout = lock_timeout_seconds
        self._synchronous = synchronous
        self._local = threading.local()
        self._connections: list[sqlite3.Connection] = []
        self._connections_lock = threading.Lock()
        self._closed = False

        try:
            self._dir = Path(tempfile.mkdtemp(prefix="graphbench-", dir=work_dir))
        except OSError as e:
            raise StoreUnavailable(f"Cannot create SQLite store: {e}", location=str(work_dir)) from e

        self._path = self._dir / "graph.db"
        try:
            conn = self._thread_connection()
            conn.execute("PRAGMA journal_mode=WAL")
            for statement in SCHEMA:
                conn.execute(statement)
        except (OSError, sqlite3.Error) as e:
            self._discard()
            raise StoreUnavailable(f"Cannot create SQLite store: {e}", location=str(self._path)) from e

        logger.debug("SQLite store opened", location=str(self._path))

    @property
    def location(self) -> str:
        return str(self._path)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            str(self._path),
            timeout=self._lock_timeout,
            isolation_level=None,
            check_same_thread=False,
        )
        conn.execute(f"PRAGMA synchronous={self._synchronous}")
        with self._connections_lock:
            self._connections.append(conn)
        return conn

    def _thread_connection(self) -> sqlite3.Connection:
        conn = getattr(self._local, "conn", None)
        if conn is None:
            conn = self._connect()
            self._local.conn = conn
        return conn

    def begin_transaction(self) -> Transaction:
        if self._closed:
            raise TransactionFailure("Store is closed", error_type="closed")
        return SqliteTransaction(self._thread_connection())

    def _query_one(self, sql: str, params: tuple[Any, ...] = ()) -> tuple[Any, ...] | None:
        return self._thread_connection().execute(sql, params).fetchone()

    def get_node_by_id(self, node_id: int | str) -> NodeRef | None:
        row = self._query_one("SELECT id FROM nodes WHERE id = ?", (node_id,))
        return NodeRef(row[0]) if row else None

    def get_node_properties(self, node: NodeRef) -> dict[str, Any]:
        rows = self._thread_connection().execute(
            "SELECT key, value FROM node_properties WHERE node_id = ?", (node.id,)
        ).fetchall()
        return {key: json.loads(value) for key, value in rows}

    def count_nodes(self) -> int:
        return self._query_one("SELECT COUNT(*) FROM nodes")[0]

    def count_relationships(self, rel_type: str | None = None) -> int:
        if rel_type is None:
            return self._query_one("SELECT COUNT(*) FROM relationships")[0]
        return self._query_one(
            "SELECT COUNT(*) FROM relationships WHERE type = ?", (rel_type,)
        )[0]

    def index_size(self, index_name: str) -> int:
        return self._query_one(
            "SELECT COUNT(*) FROM index_entries WHERE index_name = ?", (index_name,)
        )[0]

    def close(self) -> None:
        if self._closed:
            return
        self._discard()
        logger.debug("SQLite store removed", location=str(self._dir))

    def _discard(self) -> None:
        self._closed = True
        with self._connections_lock:
            for conn in self._connections:
                conn.close()
            self._connections.clear()
        shutil.rmtree(self._dir, ignore_errors=True)
