"""Short-lived view cache for the polled student screens.

Assistants' pages poll the list and stats views every few seconds. Those
views are cached for ``settings.default_cache_ttl`` seconds in the serving
process. Every write to a student bumps the generation and drops them, and a
build that overlaps a write is returned but not stored. The history view is
never cached: it must not show a week that has since been un-attended.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable

from attendance_desk.config import settings
from attendance_desk.metrics import record_cache_event


logger = logging.getLogger(__name__)

STUDENT_VIEW_PREFIXES = ('students', 'stats')


def _utc_now() -> datetime:
    return datetime.utcnow()


def cache_key(prefix: str, *parts: Any) -> str:
    cleaned = [str(part).strip().lower() for part in parts if part not in (None, '')]
    if not cleaned:
        return prefix
    return ':'.join([prefix, *cleaned])


def _normalize_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ('1', 'true', 'yes', 'y', 'on')


class CacheBackend:
    def get(self, key: str) -> Any | None:
        raise NotImplementedError

    def set(self, key: str, value: Any, ttl: int) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def delete_prefix(self, prefix: str) -> None:
        raise NotImplementedError


class MemoryCacheBackend(CacheBackend):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._store: dict[str, tuple[datetime, Any]] = {}

    def get(self, key: str) -> Any | None:
        with self._lock:
            item = self._store.get(key)
            if not item:
                return None
            expires_at, value = item
            if _utc_now() >= expires_at:
                self._store.pop(key, None)
                return None
            return value

    def set(self, key: str, value: Any, ttl: int) -> None:
        expires_at = _utc_now() + timedelta(seconds=max(1, int(ttl)))
        with self._lock:
            self._store[key] = (expires_at, value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def delete_prefix(self, prefix: str) -> None:
        with self._lock:
            for key in [key for key in self._store if key.startswith(prefix)]:
                self._store.pop(key, None)


@dataclass
class CacheManager:
    backend: CacheBackend
    # Bumped on every student write; a build that straddles a bump is not stored.
    generation: int = 0
    _generation_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def bump_generation(self) -> int:
        with self._generation_lock:
            self.generation += 1
            return self.generation

    def get_cached(self, key: str) -> Any | None:
        value = self.backend.get(key)
        record_cache_event('cache_hit' if value is not None else 'cache_miss')
        return value

    def set_cached(self, key: str, value: Any, ttl: int | None = None) -> None:
        ttl_value = ttl if ttl is not None else settings.default_cache_ttl
        self.backend.set(key, value, ttl_value)
        logger.debug('cache set: %s ttl=%s', key, ttl_value)

    def invalidate(self, key: str) -> None:
        self.backend.delete(key)
        record_cache_event('cache_invalidate')

    def invalidate_prefix(self, prefix: str) -> None:
        self.backend.delete_prefix(prefix)
        record_cache_event('cache_invalidate')
        logger.debug('cache invalidate prefix: %s', prefix)

    def get_or_build(self, key: str, builder: Callable[[], Any], *, bypass: Any = False, ttl: int | None = None) -> Any:
        if _normalize_bool(bypass):
            record_cache_event('cache_bypass')
            return builder()
        cached = self.get_cached(key)
        if cached is not None:
            return cached
        started_generation = self.generation
        value = builder()
        if self.generation != started_generation:
            record_cache_event('cache_discard')
            logger.debug('cache discard: %s generation=%s->%s', key, started_generation, self.generation)
            return value
        self.set_cached(key, value, ttl)
        return value


cache = CacheManager(backend=MemoryCacheBackend())


def invalidate_student_views() -> None:
    cache.bump_generation()
    for prefix in STUDENT_VIEW_PREFIXES:
        cache.invalidate_prefix(prefix)
