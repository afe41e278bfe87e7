"""
Global storage backend registry.

Reads REGENSYNC_CONFIG['STORAGE_BACKEND']:
    'database' (default) - Django ORM tables, durable
    'redis'              - Redis hashes and sorted sets, durable
    'memory'             - in-process dicts, lost on restart
"""

import logging
from typing import Optional

from .base import CacheBackend, QueueBackend

logger = logging.getLogger(__name__)

_cache_backend: Optional[CacheBackend] = None
_queue_backend: Optional[QueueBackend] = None


def _build_backends():
    from ..config import config

    backend_type = (config.get("STORAGE_BACKEND") or "database").lower()

    if backend_type == "redis":
        from .redis import RedisCacheBackend, RedisQueueBackend

        redis_url = config.get("REDIS_URL", "redis://localhost:6379/0")
        key_prefix = config.get("REDIS_PREFIX", "regensync")
        cache = RedisCacheBackend(redis_url=redis_url, key_prefix=key_prefix)
        queue = RedisQueueBackend(redis_url=redis_url, key_prefix=key_prefix)
    elif backend_type == "memory":
        from .memory import InMemoryCacheBackend, InMemoryQueueBackend

        logger.warning("Using in-memory queue storage; pending writes will not survive a restart")
        cache = InMemoryCacheBackend()
        queue = InMemoryQueueBackend()
    else:
        if backend_type != "database":
            logger.warning("Unknown storage backend: %s, using database", backend_type)
        from .database import DatabaseCacheBackend, DatabaseQueueBackend

        backend_type = "database"
        cache = DatabaseCacheBackend()
        queue = DatabaseQueueBackend()

    logger.info("Initialized storage backends: %s", backend_type)
    return cache, queue


def get_cache_backend() -> CacheBackend:
    """Get or initialize the configured cache backend."""
    global _cache_backend, _queue_backend
    if _cache_backend is None:
        cache, queue = _build_backends()
        _cache_backend = cache
        if _queue_backend is None:
            _queue_backend = queue
    return _cache_backend


def get_queue_backend() -> QueueBackend:
    """Get or initialize the configured queue backend."""
    global _cache_backend, _queue_backend
    if _queue_backend is None:
        cache, queue = _build_backends()
        _queue_backend = queue
        if _cache_backend is None:
            _cache_backend = cache
    return _queue_backend


def set_storage_backends(
    cache: Optional[CacheBackend] = None, queue: Optional[QueueBackend] = None
) -> None:
    """Manually set the storage backends (useful for testing)."""
    global _cache_backend, _queue_backend
    if cache is not None:
        _cache_backend = cache
    if queue is not None:
        _queue_backend = queue


def reset_storage_backends() -> None:
    """Reset to force re-initialization on next access."""
    global _cache_backend, _queue_backend
    _cache_backend = None
    _queue_backend = None
