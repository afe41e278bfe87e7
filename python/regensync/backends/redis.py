"""
Redis-backed storage for multi-process deployments.

Redis keys used:
    {prefix}:namespaces           - set of existing cache namespaces
    {prefix}:cache:{namespace}    - hash (request key -> JSON snapshot)
    {prefix}:queue                - sorted set (item id scored by id)
    {prefix}:queue:items          - hash (item id -> JSON record)
    {prefix}:queue:attempts       - hash (item id -> attempt counter)
    {prefix}:queue:seq            - id counter

Attempt counters live in their own hash so HINCRBY can bump them atomically
without a read-modify-write of the record.

Requires: pip install redis
"""

import json
import logging
import time
from typing import Any, Dict, List, Optional

from .base import CacheBackend, QueueBackend

logger = logging.getLogger(__name__)


def _connect(redis_url: str):
    try:
        import redis as redis_lib
    except ImportError:
        raise ImportError(
            "redis is required for the redis storage backend. "
            "Install with: pip install redis"
        )

    client = redis_lib.from_url(redis_url, decode_responses=True)
    try:
        client.ping()
        logger.info("Redis storage backend connected to %s", redis_url)
    except Exception as e:
        logger.error("Redis storage backend failed to connect: %s", e)
        raise
    return client


class RedisCacheBackend(CacheBackend):
    """Cache namespaces stored as Redis hashes."""

    def __init__(self, redis_url: str = "redis://localhost:6379/0", key_prefix: str = "regensync"):
        self._client = _connect(redis_url)
        self._prefix = key_prefix

    def _namespaces_key(self) -> str:
        return f"{self._prefix}:namespaces"

    def _hash_key(self, namespace: str) -> str:
        return f"{self._prefix}:cache:{namespace}"

    def get(self, namespace: str, key: str) -> Optional[Dict[str, Any]]:
        raw = self._client.hget(self._hash_key(namespace), key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.warning("Discarding unreadable cache entry %s in %s", key, namespace)
            return None

    def put(self, namespace: str, key: str, record: Dict[str, Any]) -> None:
        pipe = self._client.pipeline()
        pipe.hset(self._hash_key(namespace), key, json.dumps(record))
        pipe.sadd(self._namespaces_key(), namespace)
        pipe.execute()

    def keys(self, namespace: str) -> List[str]:
        return list(self._client.hkeys(self._hash_key(namespace)))

    def namespaces(self) -> List[str]:
        return sorted(self._client.smembers(self._namespaces_key()))

    def delete_namespace(self, namespace: str) -> bool:
        pipe = self._client.pipeline()
        pipe.delete(self._hash_key(namespace))
        pipe.srem(self._namespaces_key(), namespace)
        deleted, removed = pipe.execute()
        return bool(deleted or removed)

    def health_check(self) -> Dict[str, Any]:
        start = time.time()
        try:
            self._client.ping()
            latency = (time.time() - start) * 1000
            return {"status": "healthy", "backend": "redis", "latency_ms": round(latency, 2)}
        except Exception as e:
            latency = (time.time() - start) * 1000
            return {
                "status": "unhealthy",
                "backend": "redis",
                "latency_ms": round(latency, 2),
                "error": str(e),
            }


class RedisQueueBackend(QueueBackend):
    """Pending writes stored in a Redis sorted set plus companion hashes."""

    def __init__(self, redis_url: str = "redis://localhost:6379/0", key_prefix: str = "regensync"):
        self._client = _connect(redis_url)
        self._prefix = key_prefix

    def _key(self, suffix: str = "") -> str:
        return f"{self._prefix}:queue{suffix}"

    def append(self, record: Dict[str, Any]) -> int:
        item_id = int(self._client.incr(self._key(":seq")))
        stored = dict(record)
        stored["id"] = item_id
        stored.pop("attempts", None)

        pipe = self._client.pipeline()
        pipe.hset(self._key(":items"), str(item_id), json.dumps(stored))
        pipe.hset(self._key(":attempts"), str(item_id), int(record.get("attempts", 0)))
        pipe.zadd(self._key(), {str(item_id): item_id})
        pipe.execute()
        return item_id

    def _hydrate(self, raw: Optional[str], attempts: Optional[str]):
        if raw is None:
            return None
        record = json.loads(raw)
        record["attempts"] = int(attempts or 0)
        return record

    def list(self) -> List[Dict[str, Any]]:
        ids = self._client.zrange(self._key(), 0, -1)
        if not ids:
            return []

        pipe = self._client.pipeline()
        pipe.hmget(self._key(":items"), ids)
        pipe.hmget(self._key(":attempts"), ids)
        raws, attempts = pipe.execute()

        records = []
        for raw, count in zip(raws, attempts):
            record = self._hydrate(raw, count)
            if record is not None:
                records.append(record)
        return records

    def get(self, item_id: int) -> Optional[Dict[str, Any]]:
        pipe = self._client.pipeline()
        pipe.hget(self._key(":items"), str(item_id))
        pipe.hget(self._key(":attempts"), str(item_id))
        raw, attempts = pipe.execute()
        return self._hydrate(raw, attempts)

    def remove(self, item_id: int) -> bool:
        pipe = self._client.pipeline()
        pipe.zrem(self._key(), str(item_id))
        pipe.hdel(self._key(":items"), str(item_id))
        pipe.hdel(self._key(":attempts"), str(item_id))
        removed, _, _ = pipe.execute()
        return bool(removed)

    def increment_attempts(self, item_id: int, error: Optional[str] = None) -> int:
        if self._client.zscore(self._key(), str(item_id)) is None:
            return -1

        raw = self._client.hget(self._key(":items"), str(item_id))
        if raw is not None:
            record = json.loads(raw)
            record["last_error"] = error
            self._client.hset(self._key(":items"), str(item_id), json.dumps(record))

        return int(self._client.hincrby(self._key(":attempts"), str(item_id), 1))

    def clear(self) -> int:
        removed = self._client.zcard(self._key())
        pipe = self._client.pipeline()
        pipe.delete(self._key())
        pipe.delete(self._key(":items"))
        pipe.delete(self._key(":attempts"))
        pipe.execute()
        return int(removed)

    def count(self) -> int:
        return int(self._client.zcard(self._key()))
