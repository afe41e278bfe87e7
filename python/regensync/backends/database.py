"""
Django ORM storage backends (default, durable).

Requires ``regensync`` in ``INSTALLED_APPS`` and its migrations applied.
"""

import base64
import logging
from typing import Any, Dict, List, Optional

from django.db import DatabaseError, transaction
from django.db.models import F

from .base import CacheBackend, QueueBackend

logger = logging.getLogger(__name__)


def _encode(body) -> Optional[str]:
    if body is None:
        return None
    return base64.b64encode(bytes(body)).decode("ascii")


def _decode(body: Optional[str]) -> Optional[bytes]:
    if body is None:
        return None
    return base64.b64decode(body)


class DatabaseCacheBackend(CacheBackend):
    """Cache namespaces stored in the ``CacheEntry`` table."""

    def get(self, namespace: str, key: str) -> Optional[Dict[str, Any]]:
        from ..models import CacheEntry

        entry = CacheEntry.objects.filter(namespace=namespace, key=key).first()
        if entry is None:
            return None
        return {
            "status": entry.status,
            "headers": entry.headers,
            "body": _encode(entry.body),
            "url": entry.url,
            "stored_at": entry.stored_at,
        }

    def put(self, namespace: str, key: str, record: Dict[str, Any]) -> None:
        from ..models import CacheEntry

        CacheEntry.objects.update_or_create(
            namespace=namespace,
            key=key,
            defaults={
                "status": record["status"],
                "headers": record.get("headers") or {},
                "body": _decode(record.get("body")) or b"",
                "url": record.get("url", ""),
                "stored_at": record.get("stored_at"),
            },
        )

    def keys(self, namespace: str) -> List[str]:
        from ..models import CacheEntry

        return list(
            CacheEntry.objects.filter(namespace=namespace).values_list("key", flat=True)
        )

    def namespaces(self) -> List[str]:
        from ..models import CacheEntry

        return list(
            CacheEntry.objects.order_by("namespace")
            .values_list("namespace", flat=True)
            .distinct()
        )

    def delete_namespace(self, namespace: str) -> bool:
        from ..models import CacheEntry

        deleted, _ = CacheEntry.objects.filter(namespace=namespace).delete()
        return deleted > 0

    def health_check(self) -> Dict[str, Any]:
        from ..models import CacheEntry

        try:
            total = CacheEntry.objects.count()
        except DatabaseError as e:
            return {"status": "unhealthy", "backend": "database", "error": str(e)}
        return {"status": "healthy", "backend": "database", "total_entries": total}


class DatabaseQueueBackend(QueueBackend):
    """Pending writes stored in the ``PendingSyncRecord`` table."""

    @staticmethod
    def _to_record(row) -> Dict[str, Any]:
        return {
            "id": row.id,
            "url": row.url,
            "method": row.method,
            "body": _encode(row.body),
            "headers": row.headers,
            "enqueued_at": row.enqueued_at,
            "attempts": row.attempts,
            "last_error": row.last_error,
        }

    def append(self, record: Dict[str, Any]) -> int:
        from ..models import PendingSyncRecord

        row = PendingSyncRecord.objects.create(
            url=record["url"],
            method=record["method"],
            body=_decode(record.get("body")),
            headers=record.get("headers") or {},
            enqueued_at=record["enqueued_at"],
            attempts=record.get("attempts", 0),
            last_error=record.get("last_error"),
        )
        return row.id

    def list(self) -> List[Dict[str, Any]]:
        from ..models import PendingSyncRecord

        return [self._to_record(row) for row in PendingSyncRecord.objects.order_by("id")]

    def get(self, item_id: int) -> Optional[Dict[str, Any]]:
        from ..models import PendingSyncRecord

        row = PendingSyncRecord.objects.filter(pk=item_id).first()
        return self._to_record(row) if row is not None else None

    def remove(self, item_id: int) -> bool:
        from ..models import PendingSyncRecord

        deleted, _ = PendingSyncRecord.objects.filter(pk=item_id).delete()
        return deleted > 0

    def increment_attempts(self, item_id: int, error: Optional[str] = None) -> int:
        from ..models import PendingSyncRecord

        with transaction.atomic():
            updated = PendingSyncRecord.objects.filter(pk=item_id).update(
                attempts=F("attempts") + 1, last_error=error
            )
            if not updated:
                return -1
            return PendingSyncRecord.objects.values_list("attempts", flat=True).get(pk=item_id)

    def clear(self) -> int:
        from ..models import PendingSyncRecord

        deleted, _ = PendingSyncRecord.objects.all().delete()
        return deleted

    def count(self) -> int:
        from ..models import PendingSyncRecord

        return PendingSyncRecord.objects.count()
