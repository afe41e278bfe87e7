"""
regensync.backends - Pluggable storage for cache namespaces and pending writes.

Configured via REGENSYNC_CONFIG['STORAGE_BACKEND']:
    'database' - Django ORM (default, durable)
    'redis'    - Redis-backed (durable, multi-process)
    'memory'   - In-process dicts (tests and development only)
"""

from .base import CacheBackend, QueueBackend
from .memory import InMemoryCacheBackend, InMemoryQueueBackend
from .registry import (
    get_cache_backend,
    get_queue_backend,
    set_storage_backends,
    reset_storage_backends,
)

__all__ = [
    "CacheBackend",
    "QueueBackend",
    "InMemoryCacheBackend",
    "InMemoryQueueBackend",
    "get_cache_backend",
    "get_queue_backend",
    "set_storage_backends",
    "reset_storage_backends",
]
