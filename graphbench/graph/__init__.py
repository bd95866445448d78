"""
Graph Store Module.

Transactional graph store interface and its adapters.
"""

from graphbench.graph.factory import open_store
from graphbench.graph.memory_store import InMemoryGraphStore
from graphbench.graph.schema import NodeProperty, RelationType, StoreBackend
from graphbench.graph.sqlite_store import SqliteGraphStore
from graphbench.graph.store import (
    GraphBenchError,
    GraphStore,
    NodeRef,
    StoreUnavailable,
    Transaction,
    TransactionFailure,
)

__all__ = [
    # Interface
    "GraphStore",
    "Transaction",
    "NodeRef",
    # Errors
    "GraphBenchError",
    "StoreUnavailable",
    "TransactionFailure",
    # Schema
    "RelationType",
    "NodeProperty",
    "StoreBackend",
    # Adapters
    "InMemoryGraphStore",
    "SqliteGraphStore",
    "open_store",
]
