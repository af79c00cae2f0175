"""Unit tests for translation_workers module."""

import threading
from unittest.mock import patch

import pytest

from subtitle_translator import translation_workers as tw

pytestmark = pytest.mark.translation


class TestTranslationWorkerPool:
    def test_initialization_default_workers(self):
        with patch("subtitle_translator.translation_workers.cfg.get_thread_count", return_value=4):
            with patch("subtitle_translator.observability.worker_pool_event") as mock_event:
                pool = tw.TranslationWorkerPool()

                assert pool.max_workers == 4
                assert pool.mode == "thread"
                assert pool._executor is None
                mock_event.assert_called_once_with("created", mode="thread", max_workers=4)

    def test_executor_is_started_lazily_and_reused(self):
        pool = tw.TranslationWorkerPool(max_workers=2)

        assert pool._executor is None
        first = pool._executor_or_start()
        assert pool._executor_or_start() is first
        pool.shutdown()
        assert pool._executor is None

    def test_submit_returns_future_result(self):
        pool = tw.TranslationWorkerPool(max_workers=2)
        try:
            future = pool.submit(lambda a, b: a + b, 2, 3)
            assert future.result(timeout=5) == 5
        finally:
            pool.shutdown()

    def test_submit_after_shutdown_raises(self):
        pool = tw.TranslationWorkerPool(max_workers=1)
        pool.shutdown()
        pool.shutdown()

        assert pool.is_shutdown
        with pytest.raises(RuntimeError):
            pool.submit(lambda: None)

    def test_concurrency_never_exceeds_max_workers(self):
        pool = tw.TranslationWorkerPool(max_workers=2)
        active = 0
        peak = 0
        lock = threading.Lock()
        release = threading.Event()

        def work():
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            release.wait(timeout=5)
            with lock:
                active -= 1

        try:
            futures = [pool.submit(work) for _ in range(6)]
            release.set()
            for future in futures:
                future.result(timeout=5)
        finally:
            pool.shutdown()

        assert peak <= 2


class TestSharedPool:
    def test_shared_pool_is_singleton_until_reset(self, settings):
        first = tw.get_shared_pool()

        assert tw.get_shared_pool() is first
        assert first.max_workers == settings.translation_workers

        tw.reset_shared_pool()
        second = tw.get_shared_pool()

        assert second is not first
        assert first.is_shutdown
