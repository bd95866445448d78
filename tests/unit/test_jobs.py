"""
Unit Tests for Batch Jobs.

Tests that a batch commits as a unit and rolls back as a unit.
"""

import pytest

from graphbench.benchmark.jobs import BatchJob
from graphbench.benchmark.strategies import IndexingStrategy
from graphbench.graph.memory_store import InMemoryGraphStore


@pytest.fixture
def root_id(memory_store: InMemoryGraphStore) -> int:
    with memory_store.begin_transaction() as tx:
        root = tx.create_node()
        tx.success()
    return root.id


class TestBatchJob:
    """Test cases for BatchJob.run."""

    def test_batch_commits_nodes_and_edges(
        self, memory_store: InMemoryGraphStore, counting_generator, root_id: int
    ) -> None:
        """A successful batch writes batch_size nodes, each linked to the root."""
        job = BatchJob(
            job_index=0,
            store=memory_store,
            generator=counting_generator,
            root_id=root_id,
            batch_size=10,
            strategy=IndexingStrategy.NONE,
        )

        outcome = job.run()

        assert outcome.succeeded
        assert outcome.nodes_written == 10
        assert outcome.elapsed_seconds >= 0
        assert memory_store.count_nodes() == 11
        assert memory_store.count_relationships("LIKES") == 10
        assert all(end == root_id for _, end, _ in memory_store.relationships())

    def test_rich_payload_draws_extra_names(
        self, memory_store: InMemoryGraphStore, counting_generator, root_id: int
    ) -> None:
        """Each node consumes a name plus group and status names."""
        job = BatchJob(0, memory_store, counting_generator, root_id, 5, IndexingStrategy.UNIQUE)

        assert job.run().succeeded
        assert counting_generator.issued == 15
        assert memory_store.index_size("Whatever") == 5

    def test_failure_mid_batch_rolls_back_everything(
        self, memory_store: InMemoryGraphStore, generator_factory, root_id: int
    ) -> None:
        """A failure on the fourth node leaves none of the batch visible."""
        generator = generator_factory(fail_at=3)
        job = BatchJob(
            job_index=7,
            store=memory_store,
            generator=generator,
            root_id=root_id,
            batch_size=10,
            strategy=IndexingStrategy.UNIQUE,
            rich_payload=False,
        )

        outcome = job.run()

        assert not outcome.succeeded
        assert isinstance(outcome.error, RuntimeError)
        assert outcome.job_index == 7
        assert outcome.nodes_written == 0
        assert memory_store.count_nodes() == 1
        assert memory_store.count_relationships() == 0
        assert memory_store.index_size("Whatever") == 0

    def test_missing_root_fails_batch(
        self, memory_store: InMemoryGraphStore, counting_generator
    ) -> None:
        """An unknown root id is reported as a failed batch."""
        job = BatchJob(0, memory_store, counting_generator, 424242, 3, IndexingStrategy.NONE)

        outcome = job.run()

        assert not outcome.succeeded
        assert memory_store.count_nodes() == 0

    def test_batch_size_must_be_positive(
        self, memory_store: InMemoryGraphStore, counting_generator
    ) -> None:
        with pytest.raises(ValueError):
            BatchJob(0, memory_store, counting_generator, 1, 0, IndexingStrategy.NONE)
