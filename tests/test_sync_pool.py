"""Tests for the bounded worker pool."""

import threading
import time

import pytest

from afssync.exceptions import SyncFailedError
from afssync.sync.pool import WorkerPool


class TestWorkerPoolQueue:
    """Tests for the queueing behaviour of WorkerPool."""

    def test_single_worker_runs_in_submission_order(self):
        done = []

        with WorkerPool(done.append, max_workers=1) as pool:
            for item in (1, 2, 3):
                pool.submit(item)

        assert done == [1, 2, 3]

    def test_closed_pool_still_drains(self):
        """Operations submitted before close run after close."""
        release = threading.Event()
        done = []

        def handler(operation):
            release.wait(timeout=2)
            done.append(operation)

        pool = WorkerPool(handler, max_workers=1)
        pool.start()
        pool.submit("a")
        pool.submit("b")
        pool.close()

        assert pool.closed
        assert pool.pending == 2
        release.set()
        pool.join()

        assert done == ["a", "b"]
        assert pool.pending == 0

    def test_submit_after_close_raises(self):
        pool = WorkerPool(lambda op: None, max_workers=1)
        pool.start()
        pool.close()

        with pytest.raises(RuntimeError, match="closed pool"):
            pool.submit("a")
        pool.join()

    def test_submit_before_start_raises(self):
        pool = WorkerPool(lambda op: None, max_workers=1)

        with pytest.raises(RuntimeError, match="not started"):
            pool.submit("a")

    def test_unbounded_submission(self):
        """Submitting never blocks the producer, however busy the workers are."""
        release = threading.Event()

        pool = WorkerPool(lambda op: release.wait(timeout=2), max_workers=1)
        pool.start()
        start = time.time()
        for index in range(200):
            pool.submit(index)
        elapsed = time.time() - start

        assert elapsed < 1
        release.set()
        pool.join()

class TestWorkerPool:
    """Tests for WorkerPool."""

    def test_executes_every_operation(self):
        done = []
        lock = threading.Lock()

        def handler(operation):
            with lock:
                done.append(operation)

        with WorkerPool(handler, max_workers=4) as pool:
            for index in range(50):
                pool.submit(index)

        assert sorted(done) == list(range(50))

    def test_invalid_sizes_raise(self):
        with pytest.raises(ValueError, match="max_workers"):
            WorkerPool(lambda op: None, max_workers=0)
        with pytest.raises(ValueError, match="max_concurrency"):
            WorkerPool(lambda op: None, max_workers=2, max_concurrency=0)

    def test_max_concurrency_defaults_to_workers(self):
        pool = WorkerPool(lambda op: None, max_workers=6)

        assert pool.max_concurrency == 6

    def test_gate_bounds_concurrent_execution(self):
        """Many pollers, few permits: at most max_concurrency run at once."""
        lock = threading.Lock()
        active = 0
        peak = 0

        def handler(operation):
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            time.sleep(0.01)
            with lock:
                active -= 1

        with WorkerPool(handler, max_workers=10, max_concurrency=3) as pool:
            for index in range(30):
                pool.submit(index)

        assert 1 <= peak <= 3

    def test_failures_are_collected(self):
        """A failing operation does not stop the others; join reports it."""
        done = []
        lock = threading.Lock()

        def handler(operation):
            if operation % 5 == 0:
                raise OSError(f"failed {operation}")
            with lock:
                done.append(operation)

        pool = WorkerPool(handler, max_workers=3)
        pool.start()
        for index in range(1, 21):
            pool.submit(index)

        with pytest.raises(SyncFailedError) as exc_info:
            pool.join()

        failed = sorted(operation for operation, _ in exc_info.value.failures)
        assert failed == [5, 10, 15, 20]
        assert len(done) == 16
        assert "4 operation(s) failed" in str(exc_info.value)

    def test_gate_released_after_failure(self):
        """The single permit is returned even when the operation raises."""
        done = []

        def handler(operation):
            if operation == "bad":
                raise RuntimeError("bad")
            done.append(operation)

        pool = WorkerPool(handler, max_workers=1, max_concurrency=1)
        pool.start()
        pool.submit("bad")
        pool.submit("good")

        with pytest.raises(SyncFailedError):
            pool.join()
        assert done == ["good"]

    def test_start_twice_raises(self):
        pool = WorkerPool(lambda op: None, max_workers=1)
        pool.start()
        try:
            with pytest.raises(RuntimeError, match="already started"):
                pool.start()
        finally:
            pool.join()

    def test_producer_error_propagates_and_joins_workers(self):
        done = []

        def handler(operation):
            done.append(operation)

        with pytest.raises(KeyError):
            with WorkerPool(handler, max_workers=2) as pool:
                pool.submit("queued")
                raise KeyError("traversal failed")

        assert done == ["queued"]
        assert pool.closed

    def test_failures_keep_submission_order(self):
        def handler(operation):
            raise ValueError(operation)

        pool = WorkerPool(handler, max_workers=1)
        pool.start()
        for name in ("first", "second", "third"):
            pool.submit(name)

        with pytest.raises(SyncFailedError) as exc_info:
            pool.join()

        assert [op for op, _ in exc_info.value.failures] == [
            "first",
            "second",
            "third",
        ]
        assert "first failure at first" in str(exc_info.value)
