"""
In-Memory Graph Store.

Thread-safe transactional store kept entirely in process memory.

Writes are buffered per transaction and applied atomically on commit, so a
rolled-back transaction leaves nothing behind. Unique-index keys are reserved
by the first transaction that creates them; concurrent get-or-create calls on
the same key wait until the reserving transaction ends and then either see
the committed node or take over the reservation.
"""

import itertools
import threading
import time
import uuid
from typing import Any

import structlog

from graphbench.graph.store import (
    GraphStore,
    NodeInitializer,
    NodeRef,
    Transaction,
    TransactionFailure,
)

logger = structlog.get_logger(__name__)

IndexKey = tuple[str, str, Any]


class InMemoryTransaction(Transaction):
    """Buffered transaction against an InMemoryGraphStore."""

    def __init__(self, store: "InMemoryGraphStore") -> None:
        super().__init__()
        self._store = store
        self._new_nodes: dict[int, dict[str, Any]] = {}
        self._updates: dict[int, dict[str, Any]] = {}
        self._relationships: list[tuple[int, int, str]] = []
        self._index_entries: dict[IndexKey, int] = {}

    def _visible(self, node_id: int | str) -> bool:
        return node_id in self._new_nodes or self._store._has_node(node_id)

    def create_node(self) -> NodeRef:
        self._check_open()
        node_id = self._store._next_id()
        self._new_nodes[node_id] = {}
        return NodeRef(node_id)

    def set_property(self, node: NodeRef, key: str, value: Any) -> None:
        self._check_open()
        if node.id in self._new_nodes:
            self._new_nodes[node.id][key] = value
        elif self._store._has_node(node.id):
            self._updates.setdefault(node.id, {})[key] = value
        else:
            raise TransactionFailure(f"Node {node.id} not found", error_type="not_found")

    def create_relationship(self, start: NodeRef, end: NodeRef, rel_type: str) -> None:
        self._check_open()
        for node in (start, end):
            if not self._visible(node.id):
                raise TransactionFailure(f"Node {node.id} not found", error_type="not_found")
        self._relationships.append((start.id, end.id, rel_type))

    def get_node_by_id(self, node_id: int | str) -> NodeRef:
        self._check_open()
        if not self._visible(node_id):
            raise TransactionFailure(f"Node {node_id} not found", error_type="not_found")
        return NodeRef(node_id)

    def get_or_create(
        self,
        index_name: str,
        key: str,
        value: Any,
        initializer: NodeInitializer,
    ) -> NodeRef:
        self._check_open()
        index_key = (index_name, key, value)

        if index_key in self._index_entries:
            return NodeRef(self._index_entries[index_key])

        existing = self._store._reserve(index_key, self)
        if existing is not None:
            return NodeRef(existing)

        node = self.create_node()
        initializer(node, self)
        self._index_entries[index_key] = node.id
        return node

    def _commit(self) -> None:
        self._store._apply(self)
        logger.debug(
            "Transaction committed",
            nodes=len(self._new_nodes),
            relationships=len(self._relationships),
        )

    def _rollback(self) -> None:
        self._store._release(self)


class InMemoryGraphStore(GraphStore):
    """
    Process-local graph store.

    Each instance is its own isolated location; nothing is shared between
    instances and nothing touches the filesystem.
    """

    backend = "memory"

    def __init__(self, lock_timeout_seconds: float = 30.0) -> None:
        self._location = f"memory://{uuid.uuid4().hex}"
        self._lock_timeout = lock_timeout_seconds
        self._cond = threading.Condition()
        self._ids = itertools.count(1)
        self._nodes: dict[int, dict[str, Any]] = {}
        self._relationships: list[tuple[int, int, str]] = []
        self._indexes: dict[str, dict[tuple[str, Any], int]] = {}
        self._reservations: dict[IndexKey, InMemoryTransaction] = {}
        self._closed = False
        logger.debug("In-memory store opened", location=self._location)

    @property
    def location(self) -> str:
        return self._location

    def begin_transaction(self) -> Transaction:
        if self._closed:
            raise TransactionFailure("Store is closed", error_type="closed")
        return InMemoryTransaction(self)

    def get_node_by_id(self, node_id: int | str) -> NodeRef | None:
        with self._cond:
            return NodeRef(node_id) if node_id in self._nodes else None

    def get_node_properties(self, node: NodeRef) -> dict[str, Any]:
        with self._cond:
            return dict(self._nodes.get(node.id, {}))

    def count_nodes(self) -> int:
        with self._cond:
            return len(self._nodes)

    def count_relationships(self, rel_type: str | None = None) -> int:
        with self._cond:
            if rel_type is None:
                return len(self._relationships)
            return sum(1 for _, _, t in self._relationships if t == rel_type)

    def relationships(self) -> list[tuple[int, int, str]]:
        """Snapshot of committed relationships as (start, end, type)."""
        with self._cond:
            return list(self._relationships)

    def index_size(self, index_name: str) -> int:
        with self._cond:
            return len(self._indexes.get(index_name, {}))

    def close(self) -> None:
        self._closed = True

    # =========================================================================
    # Transaction support
    # =========================================================================

    def _next_id(self) -> int:
        with self._cond:
            return next(self._ids)

    def _has_node(self, node_id: int | str) -> bool:
        with self._cond:
            return node_id in self._nodes

    def _reserve(self, index_key: IndexKey, tx: InMemoryTransaction) -> int | None:
        """
        Return the committed node for index_key, or reserve the key for tx.

        Blocks while another live transaction holds the reservation.
        """
        index_name, key, value = index_key
        deadline = time.monotonic() + self._lock_timeout

        with self._cond:
            while True:
                committed = self._indexes.get(index_name, {}).get((key, value))
                if committed is not None:
                    return committed

                holder = self._reservations.get(index_key)
                if holder is None or holder is tx:
                    self._reservations[index_key] = tx
                    return None

                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise TransactionFailure(
                        f"Lock wait timeout on index {index_name} ({key}={value!r})",
                        error_type="lock_timeout",
                    )
                self._cond.wait(remaining)

    def _apply(self, tx: InMemoryTransaction) -> None:
        with self._cond:
            try:
                self._nodes.update(tx._new_nodes)
                for node_id, props in tx._updates.items():
                    self._nodes[node_id].update(props)
                self._relationships.extend(tx._relationships)
                for (index_name, key, value), node_id in tx._index_entries.items():
                    self._indexes.setdefault(index_name, {})[(key, value)] = node_id
            finally:
                self._drop_reservations(tx)

    def _release(self, tx: InMemoryTransaction) -> None:
        with self._cond:
            self._drop_reservations(tx)

    def _drop_reservations(self, tx: InMemoryTransaction) -> None:
        held = [k for k, holder in self._reservations.items() if holder is tx]
        for k in held:
            del self._reservations[k]
        if held:
            self._cond.notify_all()
