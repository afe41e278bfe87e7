"""
Sync Replayer: drains the Durable Queue against the network.

Replay is triggered by the host (connectivity regained, background sync
event), never by a timer. Within one cycle items are replayed in enqueue
order; a failing item is left in place with its attempt counter bumped and
the cycle moves on to the next item.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .durable_queue import DurableQueue, PendingSyncItem
from .exceptions import NetworkError, ReplayFailed
from .network import Fetcher

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Result of one replay cycle."""

    processed_count: int = 0
    failed_count: int = 0
    replayed_ids: List[int] = field(default_factory=list)
    failed_ids: List[int] = field(default_factory=list)
    failures: List[ReplayFailed] = field(default_factory=list)
    duration_seconds: float = 0.0
    skipped: bool = False

    @property
    def success(self) -> bool:
        return not self.skipped and self.failed_count == 0

    @property
    def errors(self) -> List[str]:
        return [failure.message for failure in self.failures]

    def to_dict(self) -> Dict[str, object]:
        return {
            "success": self.success,
            "skipped": self.skipped,
            "processed_count": self.processed_count,
            "failed_count": self.failed_count,
            "replayed_ids": list(self.replayed_ids),
            "failed_ids": list(self.failed_ids),
            "errors": self.errors,
            "duration_seconds": self.duration_seconds,
        }


class SyncReplayer:
    """
    Replays pending writes.

    Concurrency:
        - one replay cycle at a time (``_cycle_lock``)
        - one replay per item id at a time (``_item_locks``), so two
          concurrent replays of the same item cannot both remove it
    """

    def __init__(self, queue: DurableQueue, fetcher: Fetcher, config=None):
        if config is None:
            from .config import config
        self.queue = queue
        self.fetcher = fetcher
        self.config = config
        self._cycle_lock = asyncio.Lock()
        self._item_locks: Dict[int, asyncio.Lock] = {}
        self._lock_users: Dict[int, int] = {}

    @asynccontextmanager
    async def _item_lock(self, item_id: int):
        """Hold the lock for one item id; it is discarded once nobody uses it."""
        lock = self._item_locks.setdefault(item_id, asyncio.Lock())
        self._lock_users[item_id] = self._lock_users.get(item_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[item_id] -= 1
            if not self._lock_users[item_id]:
                del self._lock_users[item_id]
                del self._item_locks[item_id]

    async def replay_one(self, item: PendingSyncItem) -> bool:
        """
        Re-issue one queued write.

        Returns True only if this call delivered the write and removed the
        item. On failure the stored attempt counter is incremented and the
        item stays queued.
        """
        delivered, _ = await self._replay(item)
        return delivered

    async def _replay(self, item: PendingSyncItem) -> Tuple[bool, Optional[ReplayFailed]]:
        async with self._item_lock(item.id):
            if await self.queue.get(item.id) is None:
                logger.debug("Pending item %s already replayed", item.id)
                return False, None

            try:
                response = await self.fetcher.fetch(item.to_descriptor(self.config))
            except NetworkError as e:
                reason = e.reason
            else:
                if response.ok:
                    await self.queue.remove(item.id)
                    logger.info("Synced pending item %s (%s %s)", item.id, item.method, item.url)
                    return True, None
                reason = f"status {response.status}"

            attempts = await self.queue.record_failure(item.id, reason)
            if attempts >= 0:
                item.attempts = attempts
            item.last_error = reason
            failure = ReplayFailed(item.id, item.attempts, reason)
            logger.warning(failure.message)
            return False, failure

    async def replay_all(self) -> SyncResult:
        """Run one drain cycle over every pending item, in enqueue order."""
        if self._cycle_lock.locked():
            logger.warning("Sync already in progress")
            return SyncResult(skipped=True)

        async with self._cycle_lock:
            start_time = time.time()
            result = SyncResult()
            items = await self.queue.drain_all()

            if not items:
                logger.info("No pending writes to sync")

            for item in items:
                delivered, failure = await self._replay(item)
                if delivered:
                    result.processed_count += 1
                    result.replayed_ids.append(item.id)
                elif failure is not None:
                    result.failed_count += 1
                    result.failed_ids.append(item.id)
                    result.failures.append(failure)

            result.duration_seconds = time.time() - start_time
            logger.info(
                "Sync completed in %.2f seconds: %d replayed, %d failed",
                result.duration_seconds,
                result.processed_count,
                result.failed_count,
            )
            return result
