"""
Durable Queue of client writes waiting for the network.

Items are kept in insertion order and only leave the queue through
``remove()``, which the replayer calls after a confirmed successful replay.
Storage failures raise ``QueueStorageError``.
"""

import base64
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from asgiref.sync import sync_to_async

from .backends.base import QueueBackend
from .exceptions import QueueStorageError
from .http import RequestDescriptor

logger = logging.getLogger(__name__)


@dataclass
class PendingSyncItem:
    """
    A write performed while offline that must be replayed.

    Attributes:
        url: Target URL
        method: HTTP method of the original write
        body: Original request body
        headers: Original request headers
        enqueued_at: When the write was queued
        attempts: Failed replay attempts so far, never reset
        last_error: Reason of the most recent failed replay
        id: Auto-incrementing id assigned by storage on enqueue
    """

    url: str
    method: str
    body: Optional[bytes] = None
    headers: Dict[str, str] = field(default_factory=dict)
    enqueued_at: float = field(default_factory=time.time)
    attempts: int = 0
    last_error: Optional[str] = None
    id: Optional[int] = None

    @classmethod
    def from_descriptor(cls, descriptor: RequestDescriptor) -> "PendingSyncItem":
        return cls(
            url=descriptor.url,
            method=descriptor.method,
            body=descriptor.body,
            headers=dict(descriptor.headers),
        )

    def to_descriptor(self, config=None) -> RequestDescriptor:
        return RequestDescriptor.from_request(
            self.method, self.url, body=self.body, headers=self.headers, config=config
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "id": self.id,
            "url": self.url,
            "method": self.method,
            "body": base64.b64encode(self.body).decode("ascii") if self.body is not None else None,
            "headers": dict(self.headers),
            "enqueued_at": self.enqueued_at,
            "attempts": self.attempts,
            "last_error": self.last_error,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PendingSyncItem":
        """Create from dictionary."""
        body = data.get("body")
        return cls(
            id=data.get("id"),
            url=data["url"],
            method=data["method"],
            body=base64.b64decode(body) if body is not None else None,
            headers=dict(data.get("headers") or {}),
            enqueued_at=float(data.get("enqueued_at") or 0),
            attempts=int(data.get("attempts") or 0),
            last_error=data.get("last_error"),
        )


class DurableQueue:
    """
    Async facade over a ``QueueBackend``.

    Usage:
        queue = DurableQueue()
        item = await queue.enqueue(PendingSyncItem(url=url, method="POST", body=b"{}"))
        for pending in await queue.drain_all():
            ...
    """

    def __init__(self, backend: Optional[QueueBackend] = None):
        if backend is None:
            from .backends.registry import get_queue_backend

            backend = get_queue_backend()
        self.backend = backend

    async def _call(self, operation: str, func, *args):
        try:
            return await sync_to_async(func)(*args)
        except Exception as e:
            logger.error("Durable queue %s failed: %s", operation, e, exc_info=True)
            raise QueueStorageError(operation, str(e)) from e

    async def enqueue(self, item: PendingSyncItem) -> PendingSyncItem:
        """Persist an item with ``attempts = 0`` and return it with its id."""
        item.attempts = 0
        item.last_error = None
        item.id = await self._call("enqueue", self.backend.append, item.to_dict())
        logger.info("Queued %s %s as pending item %s", item.method, item.url, item.id)
        return item

    async def drain_all(self) -> List[PendingSyncItem]:
        """Snapshot of every pending item in insertion order; removes nothing."""
        records = await self._call("drain", self.backend.list)
        return [PendingSyncItem.from_dict(record) for record in records]

    async def get(self, item_id: int) -> Optional[PendingSyncItem]:
        record = await self._call("get", self.backend.get, item_id)
        return PendingSyncItem.from_dict(record) if record is not None else None

    async def remove(self, item_id: int) -> bool:
        """Delete one item. Only called after a confirmed successful replay."""
        return await self._call("remove", self.backend.remove, item_id)

    async def record_failure(self, item_id: int, error: Optional[str] = None) -> int:
        """Increment an item's attempt counter; returns the new count (-1 if gone)."""
        return await self._call("record_failure", self.backend.increment_attempts, item_id, error)

    async def size(self) -> int:
        return await self._call("size", self.backend.count)

    async def clear(self) -> int:
        return await self._call("clear", self.backend.clear)
