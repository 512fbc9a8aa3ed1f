"""
SBVC Operation Scheduler - Serialized background execution of mutations.

Front ends run a single-threaded event loop that must never wait on disk or
diff work. The scheduler runs history mutations on one background worker, in
submission order, and hands each outcome back through a bounded completion
queue that the front end polls on its own timer.

Usage:
    from sbvc.scheduler import OperationScheduler

    scheduler = OperationScheduler(history)
    scheduler.submit("commit")
    scheduler.submit("rename", "first draft")

    # From the front end's timer callback:
    result = scheduler.poll()
    if result is not None:
        render(result.snapshot)

    scheduler.shutdown()
"""

import itertools
import logging
import queue
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Any, List, Optional

from sbvc.errors import SbvcError, SchedulerClosedError
from sbvc.history import HistorySnapshot, VersionHistory

logger = logging.getLogger(__name__)

OPERATIONS = frozenset({
    "commit",
    "checkout",
    "rename",
    "delete",
    "rollback",
    "set_tracked_file",
})


@dataclass(frozen=True)
class OperationResult:
    """Terminal outcome of one submitted operation.

    Attributes:
        op_id: Sequence number assigned at submission
        name: Operation name
        value: Return value of the history call (None on error)
        error: Error raised by the history call, if any
        snapshot: History state right after the operation (None if the
            history could not be read)
    """

    op_id: int
    name: str
    value: Any = None
    error: Optional[BaseException] = None
    snapshot: Optional[HistorySnapshot] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class OperationHandle:
    """Handle to a submitted operation."""

    def __init__(self, op_id: int, name: str, future: "Future[OperationResult]") -> None:
        self.op_id = op_id
        self.name = name
        self._future = future

    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: Optional[float] = None) -> OperationResult:
        """Block until the operation finishes.

        Intended for scripts and tests; event loops should poll the scheduler.

        Raises:
            TimeoutError: If the operation is still running after ``timeout``
        """
        try:
            return self._future.result(timeout=timeout)
        except FutureTimeoutError:
            raise TimeoutError(f"Operation {self.op_id} ({self.name}) still running") from None

    def __repr__(self) -> str:
        state = "done" if self.done() else "pending"
        return f"OperationHandle(op_id={self.op_id}, name={self.name!r}, {state})"


class OperationScheduler:
    """Runs history mutations one at a time on a background worker.

    The single-worker executor guarantees that an operation starts only after
    the previous one has finished, so each operation sees exactly the state
    its predecessor left behind.
    """

    def __init__(
        self,
        history: VersionHistory,
        completion_slots: int = 8,
        poll_interval: float = 0.05,
    ) -> None:
        self._history = history
        self._completions: "queue.Queue[OperationResult]" = queue.Queue(maxsize=completion_slots)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="sbvc-op")
        self._poll_interval = poll_interval
        self._ids = itertools.count(1)
        self._handles: List[OperationHandle] = []
        self._submit_lock = threading.Lock()
        self._closed = False

    @property
    def history(self) -> VersionHistory:
        return self._history

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def busy(self) -> bool:
        """Whether any submitted operation has not finished yet."""
        with self._submit_lock:
            return any(not h.done() for h in self._handles)

    def submit(self, name: str, *args: Any, **kwargs: Any) -> OperationHandle:
        """Queue a history mutation.

        Args:
            name: One of commit, checkout, rename, delete, rollback,
                set_tracked_file
            *args: Positional arguments for the history method
            **kwargs: Keyword arguments for the history method

        Returns:
            Handle for the queued operation

        Raises:
            ValueError: If ``name`` is not a known operation
            SchedulerClosedError: If the scheduler has been shut down
        """
        if name not in OPERATIONS:
            raise ValueError(f"Unknown operation: {name}")

        with self._submit_lock:
            if self._closed:
                raise SchedulerClosedError("Scheduler is shut down")
            op_id = next(self._ids)
            future = self._executor.submit(self._run, op_id, name, args, kwargs)
            handle = OperationHandle(op_id, name, future)
            self._handles = [h for h in self._handles if not h.done()]
            self._handles.append(handle)

        logger.debug("Submitted operation %d (%s)", op_id, name)
        return handle

    def _run(self, op_id: int, name: str, args: tuple, kwargs: dict) -> OperationResult:
        value: Any = None
        error: Optional[BaseException] = None
        try:
            value = getattr(self._history, name)(*args, **kwargs)
        except SbvcError as e:
            logger.warning("Operation %d (%s) failed: %s", op_id, name, e)
            error = e
        except Exception as e:
            logger.exception("Operation %d (%s) crashed", op_id, name)
            error = e

        snapshot: Optional[HistorySnapshot] = None
        try:
            snapshot = self._history.snapshot()
        except SbvcError as e:
            logger.warning("No snapshot after operation %d: %s", op_id, e)

        result = OperationResult(op_id=op_id, name=name, value=value, error=error, snapshot=snapshot)
        # Blocks while the queue is full; shutdown() drains it while joining.
        self._completions.put(result)
        logger.debug("Completed operation %d (%s)", op_id, name)
        return result

    def poll(self) -> Optional[OperationResult]:
        """Non-blocking read of the next completed operation."""
        try:
            return self._completions.get_nowait()
        except queue.Empty:
            return None

    def drain(self) -> List[OperationResult]:
        """All completed operations currently waiting, oldest first."""
        results = []
        while True:
            result = self.poll()
            if result is None:
                return results
            results.append(result)

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Wait until every submitted operation has finished.

        Completions stay queued for ``poll``. With a full completion queue
        the worker cannot finish, so callers that do not poll should use
        ``shutdown`` instead.

        Returns:
            True if idle, False on timeout
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while self.busy:
            if deadline is not None and time.monotonic() >= deadline:
                return False
            time.sleep(self._poll_interval)
        return True

    def shutdown(self, close_history: bool = True) -> List[OperationResult]:
        """Stop accepting work and join every queued operation.

        Args:
            close_history: Also close the history once the worker is idle

        Returns:
            Completed results that had not been polled yet
        """
        with self._submit_lock:
            self._closed = True

        pending: List[OperationResult] = []
        while self.busy:
            pending.extend(self.drain())
            time.sleep(self._poll_interval)
        self._executor.shutdown(wait=True)
        pending.extend(self.drain())

        if close_history:
            self._history.close()
        logger.debug("Scheduler shut down with %d undelivered results", len(pending))
        return pending
