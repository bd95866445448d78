"""
Store Factory.

Opens a fresh, isolated graph store for one benchmark run.
"""

import structlog

from graphbench.config.settings import Settings, get_settings
from graphbench.graph.schema import StoreBackend
from graphbench.graph.store import GraphStore, StoreUnavailable

logger = structlog.get_logger(__name__)


def open_store(
    backend: StoreBackend | str | None = None,
    settings: Settings | None = None,
) -> GraphStore:
    """
    Open a new store instance for the given backend.

    Args:
        backend: Store backend (defaults to BENCH_STORE_BACKEND)
        settings: Application settings (defaults to cached settings)

    Returns:
        A store nobody else has written to

    Raises:
        StoreUnavailable: The backend is unknown or cannot be opened
    """
    settings = settings or get_settings()
    bench = settings.benchmark

    try:
        backend = StoreBackend(backend or bench.store_backend)
    except ValueError as e:
        raise StoreUnavailable(f"Unknown store backend: {backend}") from e

    if backend == StoreBackend.MEMORY:
        from graphbench.graph.memory_store import InMemoryGraphStore

        store: GraphStore = InMemoryGraphStore(lock_timeout_seconds=bench.lock_timeout_seconds)
    elif backend == StoreBackend.SQLITE:
        from graphbench.graph.sqlite_store import SqliteGraphStore

        store = SqliteGraphStore(
            work_dir=bench.work_dir,
            lock_timeout_seconds=bench.lock_timeout_seconds,
            synchronous=bench.sqlite_synchronous,
        )
    else:
        from graphbench.graph.neo4j_store import Neo4jGraphStore

        store = Neo4jGraphStore(settings=settings.neo4j, cleanup=bench.cleanup)

    logger.debug("Store opened", backend=backend.value, location=store.location)
    return store
