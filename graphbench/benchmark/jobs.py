"""
Batch Jobs.

A BatchJob writes `batch_size` synthetic nodes, each linked to the run's root
node, inside a single transaction. The batch is all-or-nothing: any failure
rolls the whole transaction back.
"""

import random
import time
from dataclasses import dataclass

import structlog

from graphbench.benchmark.names import NameGenerator
from graphbench.benchmark.strategies import (
    DEFAULT_INDEX_NAME,
    IndexingStrategy,
    synthetic_payload,
)
from graphbench.graph.schema import RelationType
from graphbench.graph.store import GraphStore

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class JobOutcome:
    """Result of one BatchJob."""

    job_index: int
    batch_size: int
    nodes_written: int
    elapsed_seconds: float
    error: Exception | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


class BatchJob:
    """
    One transaction's worth of node writes.

    Args:
        job_index: Position of this job in the run (for reporting)
        store: Shared store handle
        generator: Shared name generator
        root_id: Id of the run's root node
        batch_size: Nodes to write in this transaction
        strategy: Indexing strategy used for every node
        index_name: Unique index used by IndexingStrategy.UNIQUE
        rich_payload: Write the synthetic payload alongside the name
    """

    def __init__(
        self,
        job_index: int,
        store: GraphStore,
        generator: NameGenerator,
        root_id: int | str,
        batch_size: int,
        strategy: IndexingStrategy,
        index_name: str = DEFAULT_INDEX_NAME,
        rich_payload: bool = True,
    ) -> None:
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.job_index = job_index
        self.batch_size = batch_size
        self._store = store
        self._generator = generator
        self._root_id = root_id
        self._strategy = strategy
        self._index_name = index_name
        self._rich_payload = rich_payload

    def run(self) -> JobOutcome:
        """Execute the batch; failures are returned, not raised."""
        start = time.perf_counter()
        try:
            self._write_batch()
        except Exception as e:
            elapsed = time.perf_counter() - start
            logger.warning(
                "Batch rolled back",
                job_index=self.job_index,
                error_type=type(e).__name__,
                error=str(e),
            )
            return JobOutcome(self.job_index, self.batch_size, 0, elapsed, error=e)

        return JobOutcome(
            self.job_index,
            self.batch_size,
            self.batch_size,
            time.perf_counter() - start,
        )

    __call__ = run

    def _write_batch(self) -> None:
        rng = random.Random()
        with self._store.begin_transaction() as tx:
            for _ in range(self.batch_size):
                name = self._generator.next()
                payload = (
                    synthetic_payload(self._generator, rng) if self._rich_payload else None
                )
                node = self._strategy.create_node(tx, name, payload, self._index_name)
                root = tx.get_node_by_id(self._root_id)
                tx.create_relationship(node, root, RelationType.LIKES.value)
            tx.success()
