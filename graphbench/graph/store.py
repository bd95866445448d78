"""
Graph Store Interface.

Defines the transactional store contract the benchmark engine writes against:
- Node and relationship creation inside a transaction
- Property assignment
- Named unique-index get-or-create
- Commit-if-marked / rollback-otherwise transaction close

Concrete adapters live beside this module (in-memory, SQLite, Neo4j).
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from types import TracebackType
from typing import Any


class GraphBenchError(Exception):
    """Base class for all harness errors."""

    pass


class StoreUnavailable(GraphBenchError):
    """Raised when the store cannot be opened or created."""

    def __init__(self, message: str, location: str | None = None):
        super().__init__(message)
        self.location = location


class TransactionFailure(GraphBenchError):
    """Raised when a transaction fails to commit or a write inside it fails."""

    def __init__(self, message: str, error_type: str = "unknown"):
        super().__init__(message)
        self.error_type = error_type


@dataclass(frozen=True)
class NodeRef:
    """Store-assigned node identity."""

    id: int | str

    def __str__(self) -> str:
        return str(self.id)


# Initializer signature for get_or_create: called with the freshly created
# node and the owning transaction, only when the key was absent.
NodeInitializer = Callable[[NodeRef, "Transaction"], None]


class Transaction(ABC):
    """
    A unit of work against a GraphStore.

    Usage:
        with store.begin_transaction() as tx:
            node = tx.create_node()
            tx.set_property(node, "name", "n1")
            tx.success()

    Leaving the block closes the transaction: it commits when success() was
    called and no exception escaped, otherwise it rolls back.
    """

    def __init__(self) -> None:
        self._marked_success = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def success(self) -> None:
        """Mark the transaction for commit on close."""
        self._marked_success = True

    def failure(self) -> None:
        """Force rollback on close even if success() was called."""
        self._marked_success = False

    def close(self) -> None:
        """Commit if marked successful, else roll back. Idempotent."""
        if self._closed:
            return
        self._closed = True
        if self._marked_success:
            self._commit()
        else:
            self._rollback()

    def __enter__(self) -> "Transaction":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> bool:
        if exc_type is not None:
            self.failure()
        self.close()
        return False

    def _check_open(self) -> None:
        if self._closed:
            raise TransactionFailure("Transaction is already closed", error_type="closed")

    # =========================================================================
    # Write operations
    # =========================================================================

    @abstractmethod
    def create_node(self) -> NodeRef:
        """Create an empty node."""
        pass

    @abstractmethod
    def set_property(self, node: NodeRef, key: str, value: Any) -> None:
        """Set a single property on a node."""
        pass

    @abstractmethod
    def create_relationship(self, start: NodeRef, end: NodeRef, rel_type: str) -> None:
        """Create a directed relationship start -> end."""
        pass

    @abstractmethod
    def get_node_by_id(self, node_id: int | str) -> NodeRef:
        """Look up a node visible to this transaction; raises if missing."""
        pass

    @abstractmethod
    def get_or_create(
        self,
        index_name: str,
        key: str,
        value: Any,
        initializer: NodeInitializer,
    ) -> NodeRef:
        """
        Return the node indexed under (key, value), creating it if absent.

        Atomic with respect to concurrent callers racing on the same key:
        the same node identity is returned to every caller.
        """
        pass

    # =========================================================================
    # Completion hooks
    # =========================================================================

    @abstractmethod
    def _commit(self) -> None:
        pass

    @abstractmethod
    def _rollback(self) -> None:
        pass


class GraphStore(ABC):
    """A transactional graph store opened at one isolated location."""

    backend: str = "abstract"

    @property
    @abstractmethod
    def location(self) -> str:
        """Where this store instance keeps its data."""
        pass

    @abstractmethod
    def begin_transaction(self) -> Transaction:
        """Open a new transaction. Safe to call from many threads."""
        pass

    @abstractmethod
    def get_node_by_id(self, node_id: int | str) -> NodeRef | None:
        """Return the committed node with this id, or None."""
        pass

    @abstractmethod
    def get_node_properties(self, node: NodeRef) -> dict[str, Any]:
        """Return the committed properties of a node."""
        pass

    @abstractmethod
    def count_nodes(self) -> int:
        """Count committed nodes."""
        pass

    @abstractmethod
    def count_relationships(self, rel_type: str | None = None) -> int:
        """Count committed relationships, optionally of one type."""
        pass

    @abstractmethod
    def index_size(self, index_name: str) -> int:
        """Count committed entries in a named index."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the store and anything it holds on disk or on the wire."""
        pass

    def __enter__(self) -> "GraphStore":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> bool:
        self.close()
        return False
