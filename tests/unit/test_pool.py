"""
Unit Tests for the Worker Pool.

Tests bounded concurrency, ordering, failure isolation and timeouts.
"""

import threading
import time

import pytest

from graphbench.benchmark.jobs import JobOutcome
from graphbench.benchmark.pool import PoolTimeout, WorkerPool
from graphbench.observability.logging import LogContext


class SleepyJob:
    """Stand-in for BatchJob that records concurrency."""

    active = 0
    peak = 0
    lock = threading.Lock()

    def __init__(self, job_index: int, delay: float = 0.01, fail: bool = False) -> None:
        self.job_index = job_index
        self.batch_size = 1
        self.delay = delay
        self.fail = fail

    @classmethod
    def reset(cls) -> None:
        cls.active = 0
        cls.peak = 0

    def run(self) -> JobOutcome:
        cls = type(self)
        with cls.lock:
            cls.active += 1
            cls.peak = max(cls.peak, cls.active)
        try:
            time.sleep(self.delay)
            if self.fail:
                raise RuntimeError(f"job {self.job_index} failed")
            return JobOutcome(self.job_index, 1, 1, self.delay)
        finally:
            with cls.lock:
                cls.active -= 1


@pytest.fixture(autouse=True)
def reset_counters() -> None:
    SleepyJob.reset()


class TestWorkerPool:
    """Test cases for WorkerPool.submit_all."""

    def test_concurrency_is_bounded(self) -> None:
        """Never more than worker_count jobs run at once."""
        jobs = [SleepyJob(i, delay=0.02) for i in range(20)]

        with WorkerPool(3) as pool:
            outcomes = pool.submit_all(jobs)

        assert len(outcomes) == 20
        assert 1 <= SleepyJob.peak <= 3

    def test_outcomes_in_submission_order(self) -> None:
        """Outcomes line up with the submitted jobs."""
        jobs = [SleepyJob(i, delay=0.001 * (10 - i)) for i in range(10)]

        with WorkerPool(4) as pool:
            outcomes = pool.submit_all(jobs)

        assert [o.job_index for o in outcomes] == list(range(10))

    def test_failure_does_not_cancel_siblings(self) -> None:
        """An escaping exception is captured; other jobs still complete."""
        jobs = [SleepyJob(0), SleepyJob(1, fail=True), SleepyJob(2)]

        with WorkerPool(2) as pool:
            outcomes = pool.submit_all(jobs)

        assert [o.succeeded for o in outcomes] == [True, False, True]
        assert isinstance(outcomes[1].error, RuntimeError)
        assert outcomes[1].nodes_written == 0

    def test_timeout_raises(self) -> None:
        """Jobs still pending after the timeout raise PoolTimeout."""
        jobs = [SleepyJob(i, delay=0.2) for i in range(4)]
        pool = WorkerPool(1)

        with pytest.raises(PoolTimeout) as exc_info:
            pool.submit_all(jobs, timeout=0.05)

        assert exc_info.value.pending >= 1
        pool.shutdown()

    def test_log_context_reaches_workers(self) -> None:
        """Workers see the submitting thread's log context."""
        seen = {}

        class ContextJob(SleepyJob):
            def run(self) -> JobOutcome:
                seen[self.job_index] = LogContext.current().get("run_id")
                return super().run()

        with LogContext(run_id="abc123"):
            with WorkerPool(2) as pool:
                pool.submit_all([ContextJob(0), ContextJob(1)])

        assert seen == {0: "abc123", 1: "abc123"}

    def test_submit_after_shutdown(self) -> None:
        pool = WorkerPool(1)
        pool.shutdown()

        with pytest.raises(RuntimeError):
            pool.submit_all([SleepyJob(0)])

    def test_worker_count_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            WorkerPool(0)
