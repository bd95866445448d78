"""
Write Throughput Benchmark.

Measures nodes committed per second for:
- Plain node creation vs. unique-index get-or-create
- Varying nodes per transaction
- Varying worker thread counts
"""

from graphbench.benchmark.jobs import BatchJob, JobOutcome
from graphbench.benchmark.names import (
    GeneratorExhaustion,
    NameGenerator,
    ReplayNameGenerator,
    TimeBasedNameGenerator,
)
from graphbench.benchmark.pool import PoolTimeout, WorkerPool
from graphbench.benchmark.runner import (
    BenchmarkConfig,
    BenchmarkFailed,
    BenchmarkResult,
    BenchmarkRun,
    LatencyStats,
    RunState,
)
from graphbench.benchmark.strategies import IndexingStrategy
from graphbench.benchmark.sweep import SweepPoint, SweepReport, build_sweep, run_sweep

__all__ = [
    # Names
    "NameGenerator",
    "TimeBasedNameGenerator",
    "ReplayNameGenerator",
    "GeneratorExhaustion",
    # Strategies
    "IndexingStrategy",
    # Jobs
    "BatchJob",
    "JobOutcome",
    "WorkerPool",
    "PoolTimeout",
    # Runs
    "BenchmarkConfig",
    "BenchmarkResult",
    "BenchmarkRun",
    "BenchmarkFailed",
    "LatencyStats",
    "RunState",
    # Sweeps
    "SweepPoint",
    "SweepReport",
    "build_sweep",
    "run_sweep",
]
