"""
Strategy Dispatcher: picks a caching strategy per request and runs it.

Classification (first match wins):
    static asset / static extension  -> cache-first             (static tier)
    API prefix / known API endpoint  -> network-first           (api tier)
    image extension                  -> cache-first             (static tier)
    anything else                    -> stale-while-revalidate  (dynamic tier)
"""

import asyncio
import logging
from enum import Enum
from typing import Set

from .cache import CacheStore
from .exceptions import NetworkError, Unavailable
from .fallback import OfflineFallbackGenerator
from .http import DEGRADED_HEADER, CacheTier, RequestDescriptor, ResourceClass, ResponseSnapshot
from .network import Fetcher

logger = logging.getLogger(__name__)


class CacheStrategy(Enum):
    """Caching strategies available to the dispatcher."""

    CACHE_FIRST = "cache-first"
    NETWORK_FIRST = "network-first"
    STALE_WHILE_REVALIDATE = "stale-while-revalidate"


STRATEGY_BY_CLASS = {
    ResourceClass.STATIC: CacheStrategy.CACHE_FIRST,
    ResourceClass.API: CacheStrategy.NETWORK_FIRST,
    ResourceClass.IMAGE: CacheStrategy.CACHE_FIRST,
    ResourceClass.DYNAMIC: CacheStrategy.STALE_WHILE_REVALIDATE,
}


class StrategyDispatcher:
    """
    Routes each request through the strategy its resource class calls for.

    Stale-while-revalidate refreshes run as background tasks tracked in
    ``_refreshes``; ``aclose()`` cancels them, leaving the previously cached
    entry in place.
    """

    def __init__(
        self,
        cache: CacheStore,
        fetcher: Fetcher,
        fallback: OfflineFallbackGenerator,
    ):
        self.cache = cache
        self.fetcher = fetcher
        self.fallback = fallback
        self._refreshes: Set[asyncio.Task] = set()

    def strategy_for(self, descriptor: RequestDescriptor) -> CacheStrategy:
        return STRATEGY_BY_CLASS[descriptor.resource_class]

    async def dispatch(self, descriptor: RequestDescriptor) -> ResponseSnapshot:
        """
        Answer a request.

        Raises:
            Unavailable: Cache-first miss with the network down
            NetworkError: Pass-through requests (non-HTTP, non-GET, or
                stale-while-revalidate with nothing cached) whose fetch failed
        """
        if not descriptor.is_http:
            logger.debug("Not intercepting %s request: %s", descriptor.scheme, descriptor.url)
            return await self.fetcher.fetch(descriptor)

        if descriptor.method != "GET":
            return await self.fetcher.fetch(descriptor)

        strategy = self.strategy_for(descriptor)
        if strategy is CacheStrategy.CACHE_FIRST:
            return await self.cache_first(descriptor)
        elif strategy is CacheStrategy.NETWORK_FIRST:
            return await self.network_first(descriptor)
        return await self.stale_while_revalidate(descriptor)

    async def cache_first(self, descriptor: RequestDescriptor) -> ResponseSnapshot:
        cached = await self.cache.get(CacheTier.STATIC, descriptor)
        if cached is not None:
            logger.debug("Cache hit: %s", descriptor.url)
            return cached

        try:
            response = await self.fetcher.fetch(descriptor)
        except NetworkError as e:
            logger.warning("Cache-first exhausted for %s: %s", descriptor.url, e.reason)
            raise Unavailable(descriptor.url, e.reason) from e

        if response.ok:
            await self.cache.put(CacheTier.STATIC, descriptor, response)
        return response

    async def network_first(self, descriptor: RequestDescriptor) -> ResponseSnapshot:
        try:
            response = await self.fetcher.fetch(descriptor)
        except NetworkError as e:
            reason = e.reason
        else:
            if response.ok:
                await self.cache.put(CacheTier.API, descriptor, response)
                return response
            reason = f"status {response.status}"

        logger.info("Network-first falling back to cache for %s (%s)", descriptor.url, reason)
        cached = await self.cache.get(CacheTier.API, descriptor)
        if cached is not None:
            return cached.with_headers(**{DEGRADED_HEADER: "cache"})

        return self.fallback.generate(descriptor)

    async def stale_while_revalidate(self, descriptor: RequestDescriptor) -> ResponseSnapshot:
        cached = await self.cache.get(CacheTier.DYNAMIC, descriptor)
        if cached is not None:
            self._schedule_refresh(descriptor)
            logger.debug("Serving from cache (revalidating): %s", descriptor.url)
            return cached

        response = await self.fetcher.fetch(descriptor)
        if response.ok:
            await self.cache.put(CacheTier.DYNAMIC, descriptor, response)
        return response

    def _schedule_refresh(self, descriptor: RequestDescriptor) -> None:
        task = asyncio.create_task(self._refresh(descriptor))
        self._refreshes.add(task)
        task.add_done_callback(self._refreshes.discard)

    async def _refresh(self, descriptor: RequestDescriptor) -> None:
        try:
            response = await self.fetcher.fetch(descriptor)
        except NetworkError as e:
            logger.debug("Background refresh failed for %s: %s", descriptor.url, e.reason)
            return

        if response.ok:
            await self.cache.put(CacheTier.DYNAMIC, descriptor, response)

    async def wait_for_refreshes(self) -> None:
        """Wait until every outstanding background refresh has finished."""
        while True:
            pending = [task for task in self._refreshes if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def aclose(self) -> None:
        """Abandon outstanding background refreshes."""
        pending = list(self._refreshes)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._refreshes.clear()
