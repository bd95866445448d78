"""
Pytest Configuration and Shared Fixtures.

This module provides shared fixtures for testing the write-throughput harness.
"""

import threading
from collections.abc import Generator
from pathlib import Path
from unittest.mock import patch

import pytest

from graphbench.config.settings import Settings, get_settings
from graphbench.graph.memory_store import InMemoryGraphStore
from graphbench.graph.sqlite_store import SqliteGraphStore
from graphbench.graph.store import NodeRef, Transaction
from graphbench.observability.logging import configure_logging


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_logging() -> None:
    """Route structlog through stdlib logging at WARNING, on stderr."""
    configure_logging(level="WARNING", format="console")


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def test_settings(tmp_path: Path) -> Generator[Settings, None, None]:
    """Provide settings pointing at the in-memory backend."""
    with patch.dict(
        "os.environ",
        {
            "BENCH_STORE_BACKEND": "memory",
            "BENCH_TOTAL_NODES": "100",
            "BENCH_WORK_DIR": str(tmp_path),
            "NEO4J_PASSWORD": "password123",
        },
    ):
        get_settings.cache_clear()
        yield get_settings()
    get_settings.cache_clear()


# =============================================================================
# Store Fixtures
# =============================================================================


@pytest.fixture
def memory_store() -> Generator[InMemoryGraphStore, None, None]:
    """Fresh in-memory store."""
    store = InMemoryGraphStore(lock_timeout_seconds=5.0)
    yield store
    store.close()


@pytest.fixture
def sqlite_store(tmp_path: Path) -> Generator[SqliteGraphStore, None, None]:
    """Fresh SQLite store under pytest's tmp_path."""
    store = SqliteGraphStore(work_dir=tmp_path, lock_timeout_seconds=10.0)
    yield store
    store.close()


# =============================================================================
# Helpers
# =============================================================================


class CountingNameGenerator:
    """Sequential names; raises once `fail_at` names have been handed out."""

    def __init__(self, fail_at: int | None = None, prefix: str = "node") -> None:
        self._count = 0
        self._fail_at = fail_at
        self._prefix = prefix
        self._lock = threading.Lock()

    @property
    def issued(self) -> int:
        return self._count

    def next(self) -> str:
        with self._lock:
            if self._fail_at is not None and self._count >= self._fail_at:
                raise RuntimeError(f"generator failure after {self._count} names")
            self._count += 1
            return f"{self._prefix}-{self._count}"


@pytest.fixture
def counting_generator() -> CountingNameGenerator:
    return CountingNameGenerator()


def name_initializer(name: str):
    """Initializer that records the name on a freshly created node."""

    def initialize(node: NodeRef, tx: Transaction) -> None:
        tx.set_property(node, "name", name)

    return initialize


@pytest.fixture
def generator_factory() -> type[CountingNameGenerator]:
    """Build CountingNameGenerators with custom failure points."""
    return CountingNameGenerator


@pytest.fixture
def initializer_for():
    return name_initializer
