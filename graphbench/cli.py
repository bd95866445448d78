"""
Command-line entry point.

Runs a write-throughput sweep and prints one line per run:

    Batch Size: 10, Indexing: UNIQUE, Threads: 4, Throughput: 5321

Without sweep arguments the default sweep runs: batch sizes 1 and 10 with
UNIQUE indexing across 1, 4, 16, 32 and 100 threads, 1000 nodes each.
"""

import argparse
import sys
from collections.abc import Sequence

import structlog

from graphbench.benchmark.strategies import IndexingStrategy
from graphbench.benchmark.sweep import (
    DEFAULT_BATCH_SIZES,
    DEFAULT_THREAD_COUNTS,
    build_sweep,
    run_sweep,
    save_report,
)
from graphbench.config.settings import Settings, get_settings
from graphbench.graph.schema import StoreBackend
from graphbench.observability.logging import configure_logging

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="graphbench",
        description="Measure graph store write throughput across batch sizes, "
        "indexing strategies and thread counts.",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        nargs="+",
        default=list(DEFAULT_BATCH_SIZES),
        help="Nodes per transaction (default: %(default)s)",
    )
    parser.add_argument(
        "--indexing",
        nargs="+",
        type=IndexingStrategy,
        default=[IndexingStrategy.UNIQUE],
        metavar="{UNIQUE,NONE}",
        help="Indexing strategies; 'plain' is accepted for NONE (default: UNIQUE)",
    )
    parser.add_argument(
        "--threads",
        type=int,
        nargs="+",
        default=list(DEFAULT_THREAD_COUNTS),
        help="Worker thread counts (default: %(default)s)",
    )
    parser.add_argument(
        "--total-nodes",
        type=int,
        nargs="+",
        default=None,
        help="Nodes written per run (default: BENCH_TOTAL_NODES, 1000)",
    )
    parser.add_argument(
        "--store",
        choices=[b.value for b in StoreBackend],
        default=None,
        help="Store backend (default: BENCH_STORE_BACKEND, sqlite)",
    )
    parser.add_argument("--verify", action="store_true", help="Count nodes and edges after each run")
    parser.add_argument(
        "--include-remainder",
        action="store_true",
        help="Write total_nodes %% batch_size as a final undersized batch",
    )
    parser.add_argument(
        "--plain-payload",
        action="store_true",
        help="Write only the name property on each node",
    )
    parser.add_argument("--timeout", type=float, default=None, help="Per-run timeout in seconds")
    parser.add_argument("--output-dir", default=None, help="Also save results as JSON here")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        default=None,
    )
    parser.add_argument("--log-format", choices=["json", "console"], default=None)
    return parser


def settings_from_args(args: argparse.Namespace, settings: Settings) -> Settings:
    """Overlay command-line options on environment settings."""
    bench_updates = {}
    if args.store:
        bench_updates["store_backend"] = args.store
    if args.verify:
        bench_updates["verify_counts"] = True
    if args.include_remainder:
        bench_updates["include_remainder"] = True
    if args.plain_payload:
        bench_updates["rich_payload"] = False
    if args.timeout is not None:
        bench_updates["timeout_seconds"] = args.timeout

    updates = {"benchmark": settings.benchmark.model_copy(update=bench_updates)}
    if args.log_level:
        updates["log_level"] = args.log_level
    if args.log_format:
        updates["observability"] = settings.observability.model_copy(
            update={"log_format": args.log_format}
        )
    return settings.model_copy(update=updates)


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    for name in ("batch_size", "threads", "total_nodes"):
        values = getattr(args, name) or []
        if any(v <= 0 for v in values):
            parser.error(f"--{name.replace('_', '-')} values must be positive")

    settings = settings_from_args(args, get_settings())
    configure_logging(settings.log_level, settings.observability.log_format)

    groups = build_sweep(
        batch_sizes=args.batch_size,
        strategies=args.indexing,
        thread_counts=args.threads,
        total_nodes=args.total_nodes or [None],
    )
    logger.info(
        "Starting sweep",
        runs=sum(len(g) for g in groups),
        store=settings.benchmark.store_backend,
    )

    report = run_sweep(groups, settings=settings, store_backend=settings.benchmark.store_backend)
    if args.output_dir:
        save_report(report, args.output_dir)

    if not report.succeeded:
        for point, error in report.failures:
            print(
                f"FAILED Batch Size: {point.batch_size}, Indexing: {point.indexing.value}, "
                f"Threads: {point.worker_count}: {error}",
                file=sys.stderr,
            )
        return 1
    return 0
