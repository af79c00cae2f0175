"""Worker pool used by the chunked translation engine.

All chunk translations in the process share one bounded pool, so the number
of concurrent outbound API calls never exceeds the configured size however
many tasks are running.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional, TypeVar

from subtitle_translator import config_manager as cfg, observability

T = TypeVar("T")


class TranslationWorkerPool:
    """Lazily started thread pool for chunk translation calls."""

    mode = "thread"

    def __init__(self, *, max_workers: Optional[int] = None) -> None:
        self.max_workers = max(1, max_workers or cfg.get_thread_count())
        self._executor: Optional[ThreadPoolExecutor] = None
        self._closed = False
        self._guard = threading.Lock()
        observability.worker_pool_event("created", mode=self.mode, max_workers=self.max_workers)

    @property
    def is_shutdown(self) -> bool:
        return self._closed

    def _executor_or_start(self) -> ThreadPoolExecutor:
        with self._guard:
            if self._closed:
                raise RuntimeError("Translation worker pool is closed")
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.max_workers, thread_name_prefix="translation-worker"
                )
                observability.worker_pool_event(
                    "started", mode=self.mode, max_workers=self.max_workers
                )
            return self._executor

    def submit(self, func: Callable[..., T], *args: object, **kwargs: object) -> "Future[T]":
        future = self._executor_or_start().submit(func, *args, **kwargs)
        observability.record_metric("worker_pool.submitted", 1.0, {"mode": self.mode})
        return future

    def shutdown(self, wait: bool = True) -> None:
        with self._guard:
            if self._closed:
                return
            self._closed = True
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait, cancel_futures=not wait)
        observability.worker_pool_event("shutdown", mode=self.mode, max_workers=self.max_workers)


_shared_pool: Optional[TranslationWorkerPool] = None
_shared_pool_lock = threading.Lock()


def get_shared_pool() -> TranslationWorkerPool:
    """Return the process-wide translation pool, creating it on first use."""

    global _shared_pool
    with _shared_pool_lock:
        if _shared_pool is None or _shared_pool.is_shutdown:
            _shared_pool = TranslationWorkerPool(max_workers=cfg.get_thread_count())
        return _shared_pool


def reset_shared_pool(wait: bool = True) -> None:
    global _shared_pool
    with _shared_pool_lock:
        pool, _shared_pool = _shared_pool, None
    if pool is not None:
        pool.shutdown(wait=wait)


__all__ = ["TranslationWorkerPool", "get_shared_pool", "reset_shared_pool"]
