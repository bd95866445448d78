"""
Parameter Sweeps.

Runs a list of benchmark configurations one after another, each on its own
fresh store, and prints one throughput line per successful run.
"""

import json
import sys
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import partial
from pathlib import Path
from typing import TextIO

import structlog

from graphbench.benchmark.runner import BenchmarkConfig, BenchmarkResult, BenchmarkRun
from graphbench.benchmark.strategies import IndexingStrategy
from graphbench.config.settings import Settings, get_settings
from graphbench.graph.factory import open_store
from graphbench.graph.store import GraphBenchError

logger = structlog.get_logger(__name__)

GROUP_SEPARATOR = "=" * 63

DEFAULT_THREAD_COUNTS = (1, 4, 16, 32, 100)
DEFAULT_BATCH_SIZES = (1, 10)


@dataclass(frozen=True)
class SweepPoint:
    """One (batch size, indexing, threads) combination."""

    batch_size: int
    indexing: IndexingStrategy
    worker_count: int
    total_nodes: int | None = None


@dataclass
class SweepReport:
    """Results and failures collected over a sweep."""

    results: list[BenchmarkResult] = field(default_factory=list)
    failures: list[tuple[SweepPoint, GraphBenchError]] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.failures


def build_sweep(
    batch_sizes: Iterable[int] = DEFAULT_BATCH_SIZES,
    strategies: Iterable[IndexingStrategy | str] = (IndexingStrategy.UNIQUE,),
    thread_counts: Iterable[int] = DEFAULT_THREAD_COUNTS,
    total_nodes: Iterable[int | None] = (None,),
) -> list[list[SweepPoint]]:
    """
    Cartesian sweep, grouped so that each group shares a batch size and
    indexing strategy and varies the remaining parameters.
    """
    thread_counts = list(thread_counts)
    total_nodes = list(total_nodes)
    groups = []
    for batch_size in batch_sizes:
        for strategy in strategies:
            groups.append(
                [
                    SweepPoint(batch_size, IndexingStrategy(strategy), threads, total)
                    for total in total_nodes
                    for threads in thread_counts
                ]
            )
    return groups


def run_sweep(
    groups: Sequence[Sequence[SweepPoint]],
    settings: Settings | None = None,
    store_backend: str | None = None,
    out: TextIO | None = None,
) -> SweepReport:
    """
    Execute every point of a sweep.

    A failed run is logged and recorded; it prints no throughput line and
    does not stop the sweep.
    """
    settings = settings or get_settings()
    out = out or sys.stdout
    store_factory = partial(open_store, store_backend, settings)
    report = SweepReport()

    for group_index, group in enumerate(groups):
        if group_index > 0:
            print(GROUP_SEPARATOR, file=out, flush=True)

        for point in group:
            overrides = {"total_nodes": point.total_nodes} if point.total_nodes else {}
            config = BenchmarkConfig.from_settings(
                point.batch_size,
                point.indexing,
                point.worker_count,
                settings=settings,
                **overrides,
            )
            run = BenchmarkRun(config, store_factory=store_factory)
            try:
                result = run.execute()
            except GraphBenchError as e:
                cause = e.__cause__ or e
                logger.error(
                    "Run failed",
                    batch_size=point.batch_size,
                    indexing=point.indexing.value,
                    threads=point.worker_count,
                    error_type=type(cause).__name__,
                    error=str(cause),
                )
                report.failures.append((point, e))
                continue

            report.results.append(result)
            print(result.summary_line(), file=out, flush=True)

    return report


def save_report(report: SweepReport, output_dir: str | Path) -> Path:
    """Write a sweep's results and failures to a timestamped JSON file."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    filepath = output_dir / f"write_throughput_{timestamp}.json"

    payload = {
        "results": [r.to_dict() for r in report.results],
        "failures": [
            {
                "batch_size": point.batch_size,
                "indexing": point.indexing.value,
                "worker_count": point.worker_count,
                "error": str(error),
            }
            for point, error in report.failures
        ],
    }
    with open(filepath, "w") as f:
        json.dump(payload, f, indent=2)

    logger.info("Sweep results saved", path=str(filepath))
    return filepath
