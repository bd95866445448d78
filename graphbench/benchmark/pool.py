"""
Worker Pool.

Fixed-size thread pool that runs BatchJobs and acts as the run's only
synchronization barrier: submit_all() returns once every job has an outcome.
"""

import contextvars
import time
from collections.abc import Sequence
from concurrent.futures import ALL_COMPLETED, Future, ThreadPoolExecutor, wait
from types import TracebackType

import structlog

from graphbench.benchmark.jobs import BatchJob, JobOutcome
from graphbench.graph.store import GraphBenchError

logger = structlog.get_logger(__name__)


class PoolTimeout(GraphBenchError):
    """Raised when jobs are still outstanding after the wait timeout."""

    def __init__(self, timeout_seconds: float, pending: int):
        self.timeout_seconds = timeout_seconds
        self.pending = pending
        super().__init__(f"{pending} job(s) still pending after {timeout_seconds}s")


class WorkerPool:
    """
    Runs jobs on at most `worker_count` threads at a time.

    Jobs beyond the worker count queue until a thread is free. A failing job
    never cancels its siblings.

    Usage:
        with WorkerPool(4) as pool:
            outcomes = pool.submit_all(jobs)
    """

    def __init__(self, worker_count: int, thread_name_prefix: str = "graphbench-worker") -> None:
        if worker_count <= 0:
            raise ValueError(f"worker_count must be positive, got {worker_count}")
        self.worker_count = worker_count
        self._executor = ThreadPoolExecutor(
            max_workers=worker_count,
            thread_name_prefix=thread_name_prefix,
        )
        self._shut_down = False

    def submit_all(
        self,
        jobs: Sequence[BatchJob],
        timeout: float | None = None,
    ) -> list[JobOutcome]:
        """
        Run every job and block until all have finished.

        Args:
            jobs: Jobs to execute
            timeout: Optional bound on the wait, in seconds

        Returns:
            One outcome per job, in submission order

        Raises:
            PoolTimeout: Some jobs had not finished within timeout
        """
        if self._shut_down:
            raise RuntimeError("WorkerPool has been shut down")

        futures: list[Future[JobOutcome]] = [
            self._executor.submit(contextvars.copy_context().run, job.run) for job in jobs
        ]
        logger.debug("Jobs submitted", count=len(futures), workers=self.worker_count)

        _, pending = wait(futures, timeout=timeout, return_when=ALL_COMPLETED)
        if pending:
            cancelled = sum(1 for f in pending if f.cancel())
            logger.error(
                "Timed out waiting for jobs",
                pending=len(pending),
                cancelled=cancelled,
                timeout_seconds=timeout,
            )
            raise PoolTimeout(timeout, len(pending))

        return [self._outcome(job, future) for job, future in zip(jobs, futures)]

    @staticmethod
    def _outcome(job: BatchJob, future: Future[JobOutcome]) -> JobOutcome:
        error = future.exception()
        if error is None:
            return future.result()
        # BatchJob.run reports its own failures; this covers errors escaping it
        return JobOutcome(job.job_index, job.batch_size, 0, 0.0, error=error)

    def shutdown(self, wait: bool = True) -> None:
        """Release the worker threads."""
        if self._shut_down:
            return
        self._shut_down = True
        start = time.perf_counter()
        self._executor.shutdown(wait=wait)
        logger.debug("Worker pool shut down", seconds=round(time.perf_counter() - start, 3))

    def __enter__(self) -> "WorkerPool":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> bool:
        self.shutdown()
        return False
