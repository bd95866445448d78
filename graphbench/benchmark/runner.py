"""
Benchmark Runner.

Executes one write-throughput run: root node, batch jobs across a worker pool,
wall-clock timing and throughput.
"""

import math
import statistics
import time
import uuid
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import structlog

from graphbench.benchmark.jobs import BatchJob, JobOutcome
from graphbench.benchmark.names import NameGenerator, TimeBasedNameGenerator
from graphbench.benchmark.pool import WorkerPool
from graphbench.benchmark.strategies import DEFAULT_INDEX_NAME, IndexingStrategy
from graphbench.config.settings import Settings, get_settings
from graphbench.graph.factory import open_store
from graphbench.graph.schema import RelationType
from graphbench.graph.store import GraphBenchError, GraphStore
from graphbench.observability.logging import LogContext

logger = structlog.get_logger(__name__)

DEFAULT_TOTAL_NODES = 1000


class BenchmarkFailed(GraphBenchError):
    """Raised when any batch of a run failed; no throughput is reported."""

    def __init__(self, failed_jobs: int, total_jobs: int, first_error: BaseException | None):
        self.failed_jobs = failed_jobs
        self.total_jobs = total_jobs
        self.first_error = first_error
        detail = f"{type(first_error).__name__}: {first_error}" if first_error else "unknown"
        super().__init__(f"{failed_jobs} of {total_jobs} batch(es) failed; first failure: {detail}")


class RunState(str, Enum):
    """Lifecycle of a BenchmarkRun."""

    CREATED = "created"
    ROOT_NODE_READY = "root_node_ready"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SHUT_DOWN = "shut_down"


@dataclass(frozen=True)
class BenchmarkConfig:
    """Parameters of one run."""

    batch_size: int
    indexing: IndexingStrategy
    worker_count: int
    total_nodes: int = DEFAULT_TOTAL_NODES

    # Workload shape
    index_name: str = DEFAULT_INDEX_NAME
    rich_payload: bool = True
    include_remainder: bool = False

    # Run control
    verify_counts: bool = False
    timeout_seconds: float | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "indexing", IndexingStrategy(self.indexing))
        for name in ("batch_size", "worker_count", "total_nodes"):
            value = getattr(self, name)
            if not isinstance(value, int) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")

    @classmethod
    def from_settings(
        cls,
        batch_size: int,
        indexing: IndexingStrategy | str,
        worker_count: int,
        settings: Settings | None = None,
        **overrides: Any,
    ) -> "BenchmarkConfig":
        """Build a config, filling workload options from BENCH_* settings."""
        bench = (settings or get_settings()).benchmark
        options: dict[str, Any] = {
            "total_nodes": bench.total_nodes,
            "index_name": bench.index_name,
            "rich_payload": bench.rich_payload,
            "include_remainder": bench.include_remainder,
            "verify_counts": bench.verify_counts,
            "timeout_seconds": bench.timeout_seconds,
        }
        options.update(overrides)
        return cls(
            batch_size=batch_size,
            indexing=IndexingStrategy(indexing),
            worker_count=worker_count,
            **options,
        )

    def batch_sizes(self) -> list[int]:
        """
        Size of every job in the run.

        The remainder of total_nodes / batch_size is dropped unless
        include_remainder is set, in which case it becomes one last batch.
        """
        sizes = [self.batch_size] * (self.total_nodes // self.batch_size)
        remainder = self.total_nodes % self.batch_size
        if remainder and self.include_remainder:
            sizes.append(remainder)
        return sizes


@dataclass(frozen=True)
class LatencyStats:
    """Wall-clock time per batch transaction, in milliseconds."""

    batches: int = 0
    min_ms: float = 0.0
    max_ms: float = 0.0
    mean_ms: float = 0.0
    p50_ms: float = 0.0
    p90_ms: float = 0.0
    p99_ms: float = 0.0

    @classmethod
    def from_outcomes(cls, outcomes: list[JobOutcome]) -> "LatencyStats":
        """Summarize the committed batches of a run."""
        return cls.from_samples([o.elapsed_seconds * 1000 for o in outcomes if o.succeeded])

    @classmethod
    def from_samples(cls, samples_ms: list[float]) -> "LatencyStats":
        if not samples_ms:
            return cls()
        if len(samples_ms) == 1:
            (only,) = samples_ms
            return cls(1, only, only, only, only, only, only)

        # Inclusive method interpolates between observed samples
        cuts = statistics.quantiles(samples_ms, n=100, method="inclusive")
        return cls(
            batches=len(samples_ms),
            min_ms=min(samples_ms),
            max_ms=max(samples_ms),
            mean_ms=statistics.fmean(samples_ms),
            p50_ms=cuts[49],
            p90_ms=cuts[89],
            p99_ms=cuts[98],
        )

    def to_dict(self) -> dict[str, float]:
        return {
            name: value if name == "batches" else round(value, 2)
            for name, value in asdict(self).items()
        }


def compute_throughput(nodes_written: int, elapsed_millis: float) -> float:
    """Nodes per second; infinite when time did not measurably pass."""
    if elapsed_millis <= 0:
        return math.inf if nodes_written > 0 else 0.0
    return nodes_written * 1000 / elapsed_millis


@dataclass(frozen=True)
class BenchmarkResult:
    """Outcome of a completed run."""

    batch_size: int
    indexing: IndexingStrategy
    worker_count: int
    elapsed_millis: float
    throughput_per_second: float

    nodes_written: int = 0
    job_count: int = 0
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    batch_latency: LatencyStats | None = None

    # Filled in when verify_counts is set; node_count includes the root node
    node_count: int | None = None
    relationship_count: int | None = None

    def summary_line(self) -> str:
        throughput = self.throughput_per_second
        rendered = str(int(throughput)) if math.isfinite(throughput) else "inf"
        return (
            f"Batch Size: {self.batch_size}, Indexing: {self.indexing.value}, "
            f"Threads: {self.worker_count}, Throughput: {rendered}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "batch_size": self.batch_size,
            "indexing": self.indexing.value,
            "worker_count": self.worker_count,
            "elapsed_millis": round(self.elapsed_millis, 3),
            "throughput_per_second": round(self.throughput_per_second, 2),
            "nodes_written": self.nodes_written,
            "job_count": self.job_count,
            "started_at": self.started_at.isoformat(),
            "batch_latency": self.batch_latency.to_dict() if self.batch_latency else None,
            "node_count": self.node_count,
            "relationship_count": self.relationship_count,
        }


class BenchmarkRun:
    """
    Executes exactly one benchmark run.

    The store, name generator and worker pool are scoped to the run: created
    in execute() and released before it returns, whatever the outcome.

    Args:
        config: Run parameters
        store_factory: Opens a fresh store (defaults to the configured backend)
        generator: Name generator (a new time-based generator if omitted)
    """

    def __init__(
        self,
        config: BenchmarkConfig,
        store_factory: Callable[[], GraphStore] | None = None,
        generator: NameGenerator | None = None,
    ) -> None:
        self.config = config
        self.run_id = uuid.uuid4().hex[:12]
        self._store_factory = store_factory or open_store
        self._generator = generator
        self._store: GraphStore | None = None
        self._pool: WorkerPool | None = None
        self._state = RunState.CREATED
        self._outcome: RunState | None = None

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def outcome(self) -> RunState | None:
        """COMPLETED or FAILED once execute() has returned or raised."""
        return self._outcome

    @property
    def store(self) -> GraphStore | None:
        """The run's store while it is open."""
        return self._store

    def execute(self) -> BenchmarkResult:
        """
        Run the benchmark.

        Raises:
            GeneratorExhaustion: No name generator could be created
            StoreUnavailable: The store could not be opened
            BenchmarkFailed: At least one batch failed
            PoolTimeout: The run did not finish within timeout_seconds
            RuntimeError: execute() was already called
        """
        if self._state is not RunState.CREATED:
            raise RuntimeError(f"BenchmarkRun already executed (state={self._state.value})")

        with LogContext(
            run_id=self.run_id,
            batch_size=self.config.batch_size,
            indexing=self.config.indexing.value,
            threads=self.config.worker_count,
        ):
            try:
                result = self._execute()
                self._state = self._outcome = RunState.COMPLETED
                return result
            except BaseException:
                self._state = self._outcome = RunState.FAILED
                raise
            finally:
                self._shutdown()

    def _execute(self) -> BenchmarkResult:
        config = self.config
        generator = self._generator or TimeBasedNameGenerator()

        self._store = self._store_factory()
        root_id = self._create_root_node(self._store)
        self._state = RunState.ROOT_NODE_READY

        jobs = [
            BatchJob(
                job_index=i,
                store=self._store,
                generator=generator,
                root_id=root_id,
                batch_size=size,
                strategy=config.indexing,
                index_name=config.index_name,
                rich_payload=config.rich_payload,
            )
            for i, size in enumerate(config.batch_sizes())
        ]
        if not jobs:
            logger.warning(
                "Batch size exceeds total nodes; nothing to write",
                total_nodes=config.total_nodes,
            )

        logger.info("Starting benchmark", jobs=len(jobs), store=self._store.location)

        self._pool = WorkerPool(config.worker_count)
        self._state = RunState.RUNNING
        started_at = datetime.now(timezone.utc)
        start_ns = time.perf_counter_ns()
        outcomes = self._pool.submit_all(jobs, timeout=config.timeout_seconds)
        end_ns = time.perf_counter_ns()

        self._raise_on_failure(outcomes)

        elapsed_millis = (end_ns - start_ns) / 1_000_000
        nodes_written = sum(o.nodes_written for o in outcomes)
        throughput = compute_throughput(nodes_written, elapsed_millis)

        node_count = relationship_count = None
        if config.verify_counts:
            node_count = self._store.count_nodes()
            relationship_count = self._store.count_relationships(RelationType.LIKES.value)

        result = BenchmarkResult(
            batch_size=config.batch_size,
            indexing=config.indexing,
            worker_count=config.worker_count,
            elapsed_millis=elapsed_millis,
            throughput_per_second=throughput,
            nodes_written=nodes_written,
            job_count=len(jobs),
            started_at=started_at,
            batch_latency=LatencyStats.from_outcomes(outcomes),
            node_count=node_count,
            relationship_count=relationship_count,
        )

        logger.info(
            "Benchmark completed",
            elapsed_ms=round(elapsed_millis, 2),
            nodes_written=nodes_written,
            throughput=f"{throughput:.2f} nodes/sec",
            node_count=node_count,
            relationship_count=relationship_count,
        )
        return result

    @staticmethod
    def _create_root_node(store: GraphStore) -> int | str:
        with store.begin_transaction() as tx:
            root = tx.create_node()
            tx.success()
        logger.debug("Root node created", root_id=root.id)
        return root.id

    @staticmethod
    def _raise_on_failure(outcomes: list[JobOutcome]) -> None:
        failures = [o for o in outcomes if not o.succeeded]
        if not failures:
            return
        first = failures[0].error
        logger.error(
            "Benchmark failed",
            failed_jobs=len(failures),
            total_jobs=len(outcomes),
            first_error=str(first),
        )
        raise BenchmarkFailed(len(failures), len(outcomes), first) from first

    def _shutdown(self) -> None:
        if self._pool is not None:
            self._pool.shutdown()
            self._pool = None
        if self._store is not None:
            try:
                self._store.close()
            except Exception as e:
                logger.warning("Store close failed", error=str(e))
            self._store = None
        self._state = RunState.SHUT_DOWN
