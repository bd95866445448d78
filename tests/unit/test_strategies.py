"""
Unit Tests for Indexing Strategies.

Tests node creation under UNIQUE and NONE and the synthetic payload.
"""

import random

import pytest

from graphbench.benchmark.names import ReplayNameGenerator
from graphbench.benchmark.strategies import (
    DEFAULT_INDEX_NAME,
    IndexingStrategy,
    synthetic_payload,
)
from graphbench.graph.memory_store import InMemoryGraphStore


class TestIndexingStrategy:
    """Test cases for IndexingStrategy.create_node."""

    def test_unique_returns_existing_node(self, memory_store: InMemoryGraphStore) -> None:
        """Writing the same name twice under UNIQUE yields one node."""
        with memory_store.begin_transaction() as tx:
            first = IndexingStrategy.UNIQUE.create_node(tx, "alice")
            tx.success()
        with memory_store.begin_transaction() as tx:
            second = IndexingStrategy.UNIQUE.create_node(tx, "alice", {"rank": 7})
            tx.success()

        assert first == second
        assert memory_store.count_nodes() == 1
        assert memory_store.index_size(DEFAULT_INDEX_NAME) == 1
        # Existing node is returned untouched
        assert memory_store.get_node_properties(first) == {"name": "alice"}

    def test_none_allows_duplicate_names(self, memory_store: InMemoryGraphStore) -> None:
        """NONE creates a new node every time and never touches the index."""
        with memory_store.begin_transaction() as tx:
            first = IndexingStrategy.NONE.create_node(tx, "bob")
            second = IndexingStrategy.NONE.create_node(tx, "bob")
            tx.success()

        assert first != second
        assert memory_store.count_nodes() == 2
        assert memory_store.index_size(DEFAULT_INDEX_NAME) == 0

    def test_payload_is_written_with_name(self, memory_store: InMemoryGraphStore) -> None:
        """Payload properties land next to the name."""
        with memory_store.begin_transaction() as tx:
            node = IndexingStrategy.NONE.create_node(tx, "carol", {"rank": 3, "status": "x"})
            tx.success()

        assert memory_store.get_node_properties(node) == {
            "name": "carol",
            "rank": 3,
            "status": "x",
        }

    def test_custom_index_name(self, memory_store: InMemoryGraphStore) -> None:
        """UNIQUE writes go to the named index."""
        with memory_store.begin_transaction() as tx:
            IndexingStrategy.UNIQUE.create_node(tx, "dave", index_name="people")
            tx.success()

        assert memory_store.index_size("people") == 1
        assert memory_store.index_size(DEFAULT_INDEX_NAME) == 0

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("UNIQUE", IndexingStrategy.UNIQUE),
            ("unique", IndexingStrategy.UNIQUE),
            ("none", IndexingStrategy.NONE),
            ("plain", IndexingStrategy.NONE),
        ],
    )
    def test_lookup_by_value(self, value: str, expected: IndexingStrategy) -> None:
        """Strategy names are case-insensitive; 'plain' means NONE."""
        assert IndexingStrategy(value) is expected

    def test_unknown_strategy(self) -> None:
        """Unknown names are rejected."""
        with pytest.raises(ValueError):
            IndexingStrategy("fulltext")

    def test_uses_index(self) -> None:
        assert IndexingStrategy.UNIQUE.uses_index
        assert not IndexingStrategy.NONE.uses_index


class TestSyntheticPayload:
    """Test cases for the random node payload."""

    def test_payload_shape(self) -> None:
        """Payload carries the six synthetic properties with their types."""
        generator = ReplayNameGenerator(["g", "s"])
        payload = synthetic_payload(generator, random.Random(1))

        assert set(payload) == {"activityLevel", "rank", "group", "status", "points", "cash"}
        assert payload["group"] == "g"
        assert payload["status"] == "s"
        assert isinstance(payload["activityLevel"], int)
        assert -(1 << 63) <= payload["rank"] < (1 << 63)
        int(payload["points"])
        int(payload["cash"])
