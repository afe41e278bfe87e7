"""
Abstract base classes for storage backends.

Backends are synchronous; the async ``CacheStore`` and ``DurableQueue`` call
them through ``sync_to_async`` so every storage access is a suspension point.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class CacheBackend(ABC):
    """
    Abstract interface for cache namespace storage.

    Records are JSON-serializable dicts produced by ``ResponseSnapshot.to_dict()``.
    """

    @abstractmethod
    def get(self, namespace: str, key: str) -> Optional[Dict[str, Any]]:
        """Return the record stored under key, or None."""
        ...

    @abstractmethod
    def put(self, namespace: str, key: str, record: Dict[str, Any]) -> None:
        """Store a record, replacing any previous one (last write wins)."""
        ...

    @abstractmethod
    def keys(self, namespace: str) -> List[str]:
        """Return all keys in a namespace."""
        ...

    @abstractmethod
    def namespaces(self) -> List[str]:
        """Return every namespace that currently exists."""
        ...

    @abstractmethod
    def delete_namespace(self, namespace: str) -> bool:
        """Delete a namespace and its entries. Returns True if it existed."""
        ...

    def health_check(self) -> Dict[str, Any]:
        """Check backend health. Override for backend-specific checks."""
        return {"status": "healthy", "backend": self.__class__.__name__}


class QueueBackend(ABC):
    """
    Abstract interface for pending write storage.

    Ids are auto-incrementing integers assigned by the backend; listing
    returns records in id (insertion) order.
    """

    @abstractmethod
    def append(self, record: Dict[str, Any]) -> int:
        """Persist a new record and return its id."""
        ...

    @abstractmethod
    def list(self) -> List[Dict[str, Any]]:
        """Return all records in insertion order."""
        ...

    @abstractmethod
    def get(self, item_id: int) -> Optional[Dict[str, Any]]:
        """Return a single record, or None."""
        ...

    @abstractmethod
    def remove(self, item_id: int) -> bool:
        """Delete a record. Returns True if it existed."""
        ...

    @abstractmethod
    def increment_attempts(self, item_id: int, error: Optional[str] = None) -> int:
        """Atomically bump the attempt counter. Returns the new count, -1 if missing."""
        ...

    @abstractmethod
    def clear(self) -> int:
        """Delete every record. Returns the number removed."""
        ...

    def count(self) -> int:
        return len(self.list())

    def health_check(self) -> Dict[str, Any]:
        return {"status": "healthy", "backend": self.__class__.__name__}
