"""
Deferred task queue for notification dispatch.

Each enqueued task runs independently on a worker thread. Zero-delay tasks are
submitted immediately; positive delays are held by a timer first. Tasks have
no ordering guarantee relative to each other, and a failing handler never
affects another task or the code that enqueued it. There is no cancellation:
once enqueued, a task runs.
"""

from __future__ import annotations

import concurrent.futures
import threading
from collections.abc import Callable
from typing import Any
from uuid import uuid4

from changewatch.config import DISPATCH_MAX_WORKERS
from changewatch.observability.logging import get_logger
from changewatch.observability.telemetry import counter, log_event

logger = get_logger(__name__)

TaskHandler = Callable[[dict[str, Any]], None]


class UnknownTaskKindError(LookupError):
    """No handler is registered for the task kind."""

    pass


class QueueClosedError(RuntimeError):
    """The queue has been shut down and accepts no new tasks."""

    pass


class TaskQueue:
    """
    In-process task queue backed by a thread pool.

    Senders register one handler per task kind; the pipeline only enqueues and
    never waits for a handler to finish.
    """

    def __init__(self, max_workers: int = DISPATCH_MAX_WORKERS):
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="dispatch"
        )
        self._handlers: dict[str, TaskHandler] = {}
        self._pending: set[concurrent.futures.Future] = set()
        self._timers: dict[str, threading.Timer] = {}
        self._lock = threading.Lock()
        self._closed = False

    def register(self, kind: str, handler: TaskHandler) -> None:
        """Register (or replace) the handler for a task kind."""
        with self._lock:
            self._handlers[kind] = handler
        logger.info("Registered dispatch handler for %s", kind)

    def has_handler(self, kind: str) -> bool:
        with self._lock:
            return kind in self._handlers

    def enqueue(self, kind: str, payload: dict[str, Any], delay: float = 0.0) -> str:
        """
        Schedule one task.

        Args:
            kind: Task kind (selects the handler)
            payload: Handler argument
            delay: Seconds to wait before the task becomes runnable

        Returns:
            Task id

        Raises:
            UnknownTaskKindError: No handler registered for kind
            QueueClosedError: Queue already shut down
        """
        with self._lock:
            if self._closed:
                raise QueueClosedError("Task queue is shut down")
            handler = self._handlers.get(kind)
        if handler is None:
            counter("queue.unknown_kind")
            raise UnknownTaskKindError(f"No handler registered for task kind: {kind}")

        task_id = f"task_{uuid4().hex[:12]}"
        if delay > 0:
            timer = threading.Timer(delay, self._submit_later, args=(task_id, kind, handler, payload))
            timer.daemon = True
            with self._lock:
                self._timers[task_id] = timer
            timer.start()
        else:
            self._submit(task_id, kind, handler, payload)

        counter(f"queue.enqueued.{kind}")
        log_event("queue.enqueued", task_id=task_id, kind=kind, delay=delay)
        return task_id

    def _submit_later(self, task_id: str, kind: str, handler: TaskHandler, payload: dict) -> None:
        with self._lock:
            self._timers.pop(task_id, None)
        try:
            self._submit(task_id, kind, handler, payload)
        except RuntimeError as e:
            # Executor shut down while the timer was pending
            logger.error("Dropped delayed task %s (%s): %s", task_id, kind, e)
            counter("queue.dropped")

    def _submit(self, task_id: str, kind: str, handler: TaskHandler, payload: dict) -> None:
        future = self._executor.submit(self._run, task_id, kind, handler, payload)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)

    def _forget(self, future: concurrent.futures.Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def _run(self, task_id: str, kind: str, handler: TaskHandler, payload: dict) -> None:
        try:
            handler(payload)
            counter(f"queue.completed.{kind}")
        except Exception as e:
            counter(f"queue.failed.{kind}")
            logger.exception("Task %s (%s) failed: %s", task_id, kind, e)

    def join(self, timeout: float | None = None) -> bool:
        """
        Wait for every task submitted so far to finish.

        Delayed tasks still held by a timer are not waited for.

        Returns:
            True if all tasks finished within the timeout
        """
        with self._lock:
            pending = set(self._pending)
        if not pending:
            return True
        _, not_done = concurrent.futures.wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting tasks; optionally wait for delayed and running ones."""
        with self._lock:
            self._closed = True
            timers = list(self._timers.values())
        if wait:
            for timer in timers:
                timer.join()
        self._executor.shutdown(wait=wait)
        logger.info("Task queue shut down (wait=%s)", wait)
