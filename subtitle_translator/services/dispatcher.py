"""Run task pipelines in the background, one future per task."""

from __future__ import annotations

import concurrent.futures
import logging
import threading
from concurrent.futures import Future
from typing import Dict, Optional

from subtitle_translator import logging_manager as log_mgr
from subtitle_translator import observability
from subtitle_translator.config_manager.constants import DEFAULT_JOB_MAX_WORKERS
from subtitle_translator.errors import NotFoundError, StageFailedError
from subtitle_translator.tasks.models import Task, TaskStatus

from .pipeline import TaskPipeline

logger = log_mgr.get_logger().getChild("dispatcher")


class TaskDispatcher:
    """Submit pipeline runs to a bounded thread pool.

    A queued task can be cancelled outright; a running one is asked to stop
    and marks itself ``CANCELLED`` before its next stage.
    """

    mode = "thread"

    def __init__(
        self,
        pipeline: TaskPipeline,
        *,
        max_workers: Optional[int] = None,
        logger_obj: Optional[logging.Logger] = None,
    ) -> None:
        self._pipeline = pipeline
        self.max_workers = max(1, max_workers or DEFAULT_JOB_MAX_WORKERS)
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="task-worker"
        )
        self._lock = threading.Lock()
        self._futures: Dict[str, Future] = {}
        self._cancel_events: Dict[str, threading.Event] = {}
        self._logger = logger_obj or logger
        observability.worker_pool_event("created", mode=self.mode, max_workers=self.max_workers)

    def dispatch(self, task_id: str) -> Future:
        """Schedule the pipeline for ``task_id``; reject a task already in flight."""

        with self._lock:
            existing = self._futures.get(task_id)
            if existing is not None and not existing.done():
                raise ValueError(f"Task {task_id} is already being processed")
            cancel_event = threading.Event()
            future = self._executor.submit(self._run, task_id, cancel_event)
            self._futures[task_id] = future
            self._cancel_events[task_id] = cancel_event
        future.add_done_callback(lambda done, task_id=task_id: self._forget(task_id, done))
        self._logger.info(
            "Dispatched task", extra={"event": "dispatcher.task.submitted", "task_id": task_id}
        )
        return future

    def _forget(self, task_id: str, future: Future) -> None:
        with self._lock:
            if self._futures.get(task_id) is future:
                del self._futures[task_id]
                del self._cancel_events[task_id]

    def _run(self, task_id: str, cancel_event: threading.Event) -> Optional[Task]:
        with log_mgr.log_context(task_id=task_id):
            try:
                return self._pipeline.process(
                    task_id, should_cancel=lambda _task_id: cancel_event.is_set()
                )
            except StageFailedError as exc:
                self._logger.warning(
                    "Task stopped at stage %s",
                    exc.stage,
                    extra={"event": "dispatcher.task.failed", "stage": exc.stage},
                )
                return self._pipeline.task_store.find_by_id(task_id)
            except Exception:
                self._logger.exception(
                    "Task processing aborted", extra={"event": "dispatcher.task.error"}
                )
                raise

    def is_active(self, task_id: str) -> bool:
        with self._lock:
            future = self._futures.get(task_id)
        return future is not None and not future.done()

    def cancel(self, task_id: str) -> bool:
        """Request cancellation of ``task_id``; return ``False`` if it is not in flight."""

        with self._lock:
            future = self._futures.get(task_id)
            cancel_event = self._cancel_events.get(task_id)
        if future is None or cancel_event is None or future.done():
            return False
        cancel_event.set()
        if future.cancel():
            store = self._pipeline.task_store
            task = store.find_by_id(task_id)
            if task is not None and not task.status.is_terminal:
                task.transition_to(TaskStatus.CANCELLED)
                store.update(task)
            self._logger.info(
                "Cancelled queued task",
                extra={"event": "dispatcher.task.cancelled", "task_id": task_id},
            )
        else:
            self._logger.info(
                "Signalled running task to stop",
                extra={"event": "dispatcher.task.cancel_requested", "task_id": task_id},
            )
        return True

    def wait(self, task_id: str, timeout: Optional[float] = None) -> Task:
        """Block until ``task_id`` finishes and return its stored record.

        A task that is no longer in flight is read straight from the store.
        """

        with self._lock:
            future = self._futures.get(task_id)
        if future is not None:
            try:
                future.result(timeout=timeout)
            except concurrent.futures.CancelledError:
                pass
        task = self._pipeline.task_store.find_by_id(task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")
        return task

    def shutdown(self, wait: bool = True, *, cancel_pending: bool = False) -> None:
        if cancel_pending:
            with self._lock:
                pending = list(self._futures)
            for task_id in pending:
                self.cancel(task_id)
        self._executor.shutdown(wait=wait)
        observability.worker_pool_event("shutdown", mode=self.mode, max_workers=self.max_workers)


__all__ = ["TaskDispatcher"]
