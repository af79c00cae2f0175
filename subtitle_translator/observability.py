"""Timing and metric events emitted through the structured log."""

from __future__ import annotations

import contextlib
import time
from typing import Iterator, Mapping, Optional

from . import logging_manager as log_mgr

logger = log_mgr.get_logger()


def record_metric(
    name: str,
    value: float,
    attributes: Optional[Mapping[str, object]] = None,
) -> None:
    """Record a numeric observation as a structured debug event."""

    logger.debug(
        "Metric recorded",
        extra={
            "event": "observability.metric_recorded",
            "metric": name,
            "value": value,
            "attributes": dict(attributes or {}),
        },
    )


def worker_pool_event(event: str, *, mode: str, max_workers: int) -> None:
    """Log a lifecycle event emitted by a worker pool."""

    logger.debug(
        "Worker pool %s",
        event,
        extra={
            "event": f"worker_pool.{event}",
            "mode": mode,
            "max_workers": max_workers,
        },
    )


@contextlib.contextmanager
def timed_stage(stage: str, *, task_id: Optional[str] = None) -> Iterator[None]:
    """Log the start and outcome of ``stage`` and record how long it ran.

    Records logged inside the block carry ``stage`` and ``task_id``.
    """

    with log_mgr.log_context(stage=stage, task_id=task_id):
        logger.info("Stage %s started", stage, extra={"event": "pipeline.stage.start"})
        started = time.perf_counter()
        outcome = "aborted"
        try:
            yield
            outcome = "completed"
        finally:
            elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
            record_metric(
                "pipeline.stage.duration_ms",
                elapsed_ms,
                {"stage": stage, "outcome": outcome},
            )
            logger.info(
                "Stage %s %s",
                stage,
                outcome,
                extra={"event": f"pipeline.stage.{outcome}", "duration_ms": elapsed_ms},
            )


__all__ = ["record_metric", "timed_stage", "worker_pool_event"]
