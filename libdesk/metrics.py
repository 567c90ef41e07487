from __future__ import annotations

import logging
import time
from functools import wraps
from typing import Callable

from libdesk.config import settings


logger = logging.getLogger('libdesk.metrics')


def timed_service(label: str, *, threshold_ms: int | None = None) -> Callable[[Callable[..., object]], Callable[..., object]]:
    """Log a ``service_timer`` line when the wrapped call runs past the threshold."""

    def decorator(func: Callable[..., object]) -> Callable[..., object]:
        threshold_value = threshold_ms if threshold_ms is not None else settings.metrics_slow_ms

        @wraps(func)
        def wrapper(*args: object, **kwargs: object):
            started = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                duration_ms = (time.perf_counter() - started) * 1000.0
                if duration_ms >= threshold_value:
                    logger.info('service_timer label=%s duration_ms=%.2f', label, duration_ms)

        return wrapper

    return decorator


def run_timed_job(label: str, fn: Callable[[], object]) -> object:
    """Run a scheduler job between ``job_start`` and ``job_end`` lines, re-raising failures."""
    started = time.perf_counter()
    logger.info('job_start name=%s', label)
    error: Exception | None = None
    try:
        return fn()
    except Exception as exc:
        error = exc
        raise
    finally:
        duration_ms = (time.perf_counter() - started) * 1000.0
        if error is not None:
            logger.error('job_failed name=%s duration_ms=%.2f', label, duration_ms, exc_info=error)
        status = 'ok' if error is None else 'failed'
        logger.info('job_end name=%s status=%s duration_ms=%.2f', label, status, duration_ms)
