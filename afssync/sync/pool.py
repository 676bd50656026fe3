"""Bounded worker pool for executing sync operations."""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Generic, Optional, TypeVar

from ..exceptions import SyncFailedError
from ..utils import DEFAULT_MAX_CONCURRENCY

logger = logging.getLogger(__name__)

T = TypeVar("T")


class WorkerPool(Generic[T]):
    """Thread pool draining an unbounded queue of operations.

    Execution is additionally bounded by a global gate so that at most
    ``max_concurrency`` operations run at any instant, independent of the
    number of worker threads.

    Failures do not stop the pool: every exception is kept with its
    operation and reported by join().

    Examples:
        >>> with WorkerPool(handler, max_workers=8) as pool:
        ...     for op in operations:
        ...         pool.submit(op)
        >>> # leaving the block closes the pool and waits for the workers
    """

    def __init__(
        self,
        handler: Callable[[T], Any],
        max_workers: int = DEFAULT_MAX_CONCURRENCY,
        max_concurrency: Optional[int] = None,
        name: str = "afssync-worker",
    ):
        """Initialize the worker pool.

        Args:
            handler: Callable that executes one operation
            max_workers: Number of worker threads
            max_concurrency: Cap on operations executing at once
                (default: max_workers)
            name: Thread name prefix
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")

        self.handler = handler
        self.max_workers = max_workers
        self.max_concurrency = max_concurrency or max_workers
        self.name = name
        self._gate = threading.BoundedSemaphore(self.max_concurrency)
        self._executor: Optional[ThreadPoolExecutor] = None
        self._futures: dict[Future, T] = {}
        self._closed = False

    def start(self) -> None:
        """Start the worker threads."""
        if self._executor is not None:
            raise RuntimeError("Worker pool already started")
        logger.debug(
            "Starting %d workers (max %d concurrent operations)",
            self.max_workers,
            self.max_concurrency,
        )
        self._executor = ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix=self.name
        )

    def submit(self, operation: T) -> None:
        """Enqueue an operation for execution.

        Raises:
            RuntimeError: If the pool is not started or already closed
        """
        if self._executor is None:
            raise RuntimeError("Worker pool not started")
        if self._closed:
            raise RuntimeError("Cannot add operations to a closed pool")
        future = self._executor.submit(self._execute, operation)
        self._futures[future] = operation

    def _execute(self, operation: T) -> None:
        with self._gate:
            start = time.time()
            try:
                self.handler(operation)
            except Exception as e:
                logger.error("Operation %r failed: %s", operation, e)
                raise
            logger.debug("Completed %r in %.2fs", operation, time.time() - start)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Number of submitted operations that have not finished yet."""
        return sum(1 for future in list(self._futures) if not future.done())

    @property
    def failures(self) -> list[tuple[T, BaseException]]:
        """Finished operations that raised, as (operation, exception) pairs."""
        failures = []
        for future, operation in list(self._futures.items()):
            if future.done() and not future.cancelled():
                error = future.exception()
                if error is not None:
                    failures.append((operation, error))
        return failures

    def close(self) -> None:
        """Signal that no more operations will be submitted."""
        self._closed = True

    def wait(self) -> None:
        """Close the pool and wait until every queued operation has run."""
        self.close()
        if self._executor is not None:
            self._executor.shutdown(wait=True)

    def join(self) -> None:
        """Close the pool, wait for the workers and report failures.

        Raises:
            SyncFailedError: If any operation raised an exception
        """
        self.wait()
        failures = self.failures
        if failures:
            raise SyncFailedError(failures)

    def __enter__(self) -> "WorkerPool[T]":
        self.start()
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        if exc_type is not None:
            # Operation failures stay available through self.failures.
            self.wait()
            return
        self.join()
