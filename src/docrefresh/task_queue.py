"""Single-worker FIFO task queue.

Tasks run strictly one at a time, in push order, on one background worker
thread. Each push may attach a finish observer and a failure observer; the
observer for a task runs before the next task starts.

The queue has no notion of "the run is over" on its own: the caller pushes
any number of bursts, then calls close() to say no more tasks are coming.
join() waits for the drain, fires the drained callback exactly once, and
raises TaskQueueError if any task failed. A failing task never stops the
tasks queued behind it.

Usage:
    queue = TaskQueue(process_fn, on_drained=cleanup)
    queue.push(task, on_finish=record_log, on_failed=report_failure)
    queue.close()
    outcomes = queue.join()
"""

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor

from docrefresh.models import QueueTask, TaskOutcome, TaskStatus

logger = logging.getLogger(__name__)

Observer = Callable[[TaskOutcome], None]


class TaskQueueError(Exception):
    """Raised on misuse of the queue or when queued tasks failed."""

    def __init__(self, message: str, failures: list[TaskOutcome] | None = None):
        self.failures = failures or []
        super().__init__(message)


class TaskQueue:
    """FIFO work queue with concurrency 1."""

    def __init__(
        self,
        process: Callable[[QueueTask], TaskOutcome],
        on_drained: Callable[[], None] | None = None,
    ):
        """Initialize queue.

        Args:
            process: Worker called once per task; returns a typed outcome
            on_drained: Called once, after close(), when no task is pending
        """
        self._process = process
        self._on_drained = on_drained
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="docrefresh-queue")
        self._lock = threading.Lock()
        self._closed = False
        self._drained = False
        self._pending = 0
        self._outcomes: list[TaskOutcome] = []

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Tasks pushed but not yet finished (queued or in flight)."""
        with self._lock:
            return self._pending

    @property
    def outcomes(self) -> list[TaskOutcome]:
        """Finished task outcomes in completion order."""
        with self._lock:
            return list(self._outcomes)

    def push(
        self,
        task: QueueTask,
        on_finish: Observer | None = None,
        on_failed: Observer | None = None,
    ) -> Future:
        """Enqueue a task.

        Raises:
            TaskQueueError: If the queue has been closed
        """
        with self._lock:
            if self._closed:
                raise TaskQueueError(f"Cannot push {task.file}: queue is closed")
            self._pending += 1
            return self._executor.submit(self._run, task, on_finish, on_failed)

    def _run(
        self, task: QueueTask, on_finish: Observer | None, on_failed: Observer | None
    ) -> TaskOutcome:
        try:
            outcome = self._process(task)
        except Exception as e:
            outcome = TaskOutcome.failed(task, e)

        try:
            if outcome.status is TaskStatus.FAILED:
                if on_failed:
                    on_failed(outcome)
            elif on_finish:
                on_finish(outcome)
        except Exception as e:
            logger.error(f"Observer failed for {task.file}: {e}")
            outcome = TaskOutcome.failed(task, e)

        with self._lock:
            self._outcomes.append(outcome)
            self._pending -= 1
        return outcome

    def close(self) -> None:
        """Signal that no more tasks will be pushed."""
        with self._lock:
            self._closed = True

    def join(self) -> list[TaskOutcome]:
        """Wait for every task, fire the drained callback, report failures.

        Returns:
            All outcomes in completion order

        Raises:
            TaskQueueError: If called before close(), or if any task failed.
                Raised only after the drained callback has run.
        """
        if not self._closed:
            raise TaskQueueError("Queue must be closed before join()")

        self._executor.shutdown(wait=True)

        if not self._drained:
            self._drained = True
            if self._on_drained:
                self._on_drained()

        outcomes = self.outcomes
        failures = [o for o in outcomes if o.status is TaskStatus.FAILED]
        if failures:
            details = "; ".join(f"{o.task.file}: {o.error}" for o in failures)
            raise TaskQueueError(
                f"{len(failures)} of {len(outcomes)} task(s) failed: {details}",
                failures=failures,
            )
        return outcomes
