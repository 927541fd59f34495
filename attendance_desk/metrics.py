from __future__ import annotations

import logging
import threading
import time
from functools import wraps
from typing import Callable

from attendance_desk.config import settings


logger = logging.getLogger('attendance_desk.metrics')


class _EventCounter:
    """Counts cache events and logs one summary line per minute."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._minute: int | None = None
        self._counts: dict[str, int] = {}

    def _flush_locked(self) -> None:
        if not self._counts or self._minute is None:
            return
        logger.info(
            'cache_metrics minute=%s %s',
            time.strftime('%Y-%m-%dT%H:%M', time.gmtime(self._minute)),
            ' '.join(f'{key}={value}' for key, value in sorted(self._counts.items())),
        )
        self._counts.clear()

    def record(self, event: str) -> None:
        minute = int(time.time() // 60) * 60
        with self._lock:
            if self._minute is not None and minute != self._minute:
                self._flush_locked()
            self._minute = minute
            self._counts[event] = self._counts.get(event, 0) + 1

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(self._counts)

    def flush(self) -> None:
        with self._lock:
            self._flush_locked()


_cache_counter = _EventCounter()


def record_cache_event(event: str) -> None:
    _cache_counter.record(event)


def cache_event_counts() -> dict[str, int]:
    return _cache_counter.snapshot()


def flush_cache_metrics() -> None:
    _cache_counter.flush()


def timed_service(label: str, *, threshold_ms: int | None = None) -> Callable[[Callable[..., object]], Callable[..., object]]:
    def decorator(func: Callable[..., object]) -> Callable[..., object]:
        @wraps(func)
        def wrapper(*args: object, **kwargs: object):
            threshold = threshold_ms if threshold_ms is not None else settings.metrics_slow_ms
            started = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                duration_ms = (time.perf_counter() - started) * 1000.0
                if duration_ms >= threshold:
                    logger.info('service_timer label=%s duration_ms=%.2f', label, duration_ms)

        return wrapper

    return decorator
