"""
In-memory storage backends for development and tests.
"""

import copy
import logging
from threading import RLock
from typing import Any, Dict, List, Optional

from .base import CacheBackend, QueueBackend

logger = logging.getLogger(__name__)


class InMemoryCacheBackend(CacheBackend):
    """
    Thread-safe in-memory cache namespaces.

    Data structure::

        _namespaces = {
            "regentech-static-v3.0.0": {
                "GET http://localhost:8000/styles.css": {"status": 200, ...},
            }
        }

    Limitations:
        - Single-process only.
        - Data lost on restart.
    """

    def __init__(self) -> None:
        self._namespaces: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = RLock()

    def get(self, namespace: str, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self._namespaces.get(namespace, {}).get(key)
            return copy.deepcopy(record) if record is not None else None

    def put(self, namespace: str, key: str, record: Dict[str, Any]) -> None:
        with self._lock:
            self._namespaces.setdefault(namespace, {})[key] = copy.deepcopy(record)

    def keys(self, namespace: str) -> List[str]:
        with self._lock:
            return list(self._namespaces.get(namespace, {}))

    def namespaces(self) -> List[str]:
        with self._lock:
            return list(self._namespaces)

    def delete_namespace(self, namespace: str) -> bool:
        with self._lock:
            existed = self._namespaces.pop(namespace, None) is not None
        if existed:
            logger.debug("Deleted in-memory cache namespace %s", namespace)
        return existed

    def health_check(self) -> Dict[str, Any]:
        with self._lock:
            total = sum(len(entries) for entries in self._namespaces.values())
        return {
            "status": "healthy",
            "backend": "memory",
            "total_entries": total,
            "total_namespaces": len(self._namespaces),
        }


class InMemoryQueueBackend(QueueBackend):
    """
    Thread-safe in-memory pending write queue.

    Not durable: use it only where losing pending writes on restart is
    acceptable (tests, local development).
    """

    def __init__(self) -> None:
        self._items: Dict[int, Dict[str, Any]] = {}
        self._next_id = 1
        self._lock = RLock()

    def append(self, record: Dict[str, Any]) -> int:
        with self._lock:
            item_id = self._next_id
            self._next_id += 1
            stored = copy.deepcopy(record)
            stored["id"] = item_id
            self._items[item_id] = stored
        return item_id

    def list(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [copy.deepcopy(self._items[i]) for i in sorted(self._items)]

    def get(self, item_id: int) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self._items.get(item_id)
            return copy.deepcopy(record) if record is not None else None

    def remove(self, item_id: int) -> bool:
        with self._lock:
            return self._items.pop(item_id, None) is not None

    def increment_attempts(self, item_id: int, error: Optional[str] = None) -> int:
        with self._lock:
            record = self._items.get(item_id)
            if record is None:
                return -1
            record["attempts"] = record.get("attempts", 0) + 1
            record["last_error"] = error
            return record["attempts"]

    def clear(self) -> int:
        with self._lock:
            removed = len(self._items)
            self._items.clear()
        return removed

    def count(self) -> int:
        with self._lock:
            return len(self._items)
