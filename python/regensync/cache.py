"""
Cache Store: versioned cache namespaces holding response snapshots.

Each tier (static, dynamic, api) maps to one namespace named
``<APP_NAME>-<tier>-<VERSION>``. Only successful (2xx) responses are ever
written; a miss is reported as ``None``, never as an exception.

Reads and writes resolve against ``active_version``, the version the worker
last activated. Until a version has been activated the configured
``VERSION`` is used.
"""

import logging
from typing import List, Optional

from asgiref.sync import sync_to_async

from .backends.base import CacheBackend
from .http import CacheTier, RequestDescriptor, ResponseSnapshot

logger = logging.getLogger(__name__)


class CacheStore:
    """
    Async facade over a ``CacheBackend``.

    Usage:
        store = CacheStore(InMemoryCacheBackend())
        await store.put(CacheTier.STATIC, descriptor, response)
        cached = await store.get(CacheTier.STATIC, descriptor)
    """

    def __init__(self, backend: Optional[CacheBackend] = None, config=None):
        if backend is None:
            from .backends.registry import get_cache_backend

            backend = get_cache_backend()
        if config is None:
            from .config import config
        self.backend = backend
        self.config = config
        self.active_version: Optional[str] = None

    @property
    def version(self) -> str:
        """Version whose namespaces are served."""
        return self.active_version or self.config.get("VERSION")

    def namespace(self, tier: CacheTier, version: Optional[str] = None) -> str:
        return self.config.namespace(tier.value, version or self.version)

    def owns(self, namespace: str) -> bool:
        """True if the namespace belongs to this application."""
        return namespace.startswith(f"{self.config.get('APP_NAME')}-")

    async def put(
        self,
        tier: CacheTier,
        descriptor: RequestDescriptor,
        response: ResponseSnapshot,
        version: Optional[str] = None,
    ) -> bool:
        """
        Store a response, overwriting any previous entry for the descriptor.

        ``version`` selects a version other than the served one (install
        primes the namespaces of the version being installed).

        Returns False (and stores nothing) for non-2xx responses or when the
        backend write failed.
        """
        if not response.ok:
            logger.debug("Not caching %s: status %s", descriptor.url, response.status)
            return False

        namespace = self.namespace(tier, version)
        try:
            await sync_to_async(self.backend.put)(
                namespace, descriptor.cache_key, response.stamped().to_dict()
            )
        except Exception as e:
            logger.error(
                "Cache write to %s failed for %s: %s", namespace, descriptor.url, e, exc_info=True
            )
            return False
        return True

    async def get(
        self, tier: CacheTier, descriptor: RequestDescriptor
    ) -> Optional[ResponseSnapshot]:
        """Return the cached snapshot for a descriptor, or None."""
        namespace = self.namespace(tier)
        try:
            record = await sync_to_async(self.backend.get)(namespace, descriptor.cache_key)
        except Exception as e:
            logger.error(
                "Cache read from %s failed for %s: %s", namespace, descriptor.url, e, exc_info=True
            )
            return None

        if record is None:
            return None
        return ResponseSnapshot.from_dict(record)

    async def match(self, descriptor: RequestDescriptor) -> Optional[ResponseSnapshot]:
        """Look a descriptor up across every current tier."""
        for tier in CacheTier:
            cached = await self.get(tier, descriptor)
            if cached is not None:
                return cached
        return None

    async def keys(self, tier: CacheTier, version: Optional[str] = None) -> List[str]:
        return await sync_to_async(self.backend.keys)(self.namespace(tier, version))

    async def namespaces(self) -> List[str]:
        """Every namespace of this application currently in storage."""
        names = await sync_to_async(self.backend.namespaces)()
        return [name for name in names if self.owns(name)]

    async def delete_namespace(self, namespace: str) -> bool:
        """Delete a namespace. Backend errors propagate to the caller."""
        return await sync_to_async(self.backend.delete_namespace)(namespace)
