"""
Lifecycle Manager: owns cache-tier versioning.

- install: prime the static tier with the asset manifest and the api tier
  with the known endpoints; individual failures are skipped
- activate: sweep every namespace of this app that is not current
- purge: drop every namespace of this app
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional
from urllib.parse import urljoin

from .cache import CacheStore
from .exceptions import LifecycleSweepFailed, NetworkError
from .http import CacheTier, RequestDescriptor
from .network import Fetcher

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    """Outcome of an activation sweep."""

    deleted: List[str] = field(default_factory=list)
    kept: List[str] = field(default_factory=list)
    failures: List[LifecycleSweepFailed] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failures


@dataclass
class PrimeResult:
    """Outcome of priming one tier."""

    tier: CacheTier
    stored: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


class LifecycleManager:
    """
    Supervises cache namespaces across versions.

    Usage:
        lifecycle = LifecycleManager(store, fetcher)
        await lifecycle.install()
        await lifecycle.activate_sweep(lifecycle.current_tier_names())
    """

    def __init__(self, cache: CacheStore, fetcher: Fetcher, config=None):
        if config is None:
            config = cache.config
        self.cache = cache
        self.fetcher = fetcher
        self.config = config

    @property
    def version(self) -> str:
        """Version string reported to clients, e.g. ``regentech-v3.0.0``."""
        return f"{self.config.get('APP_NAME')}-{self.cache.version}"

    @property
    def pending_version(self) -> str:
        """The configured ``VERSION``; it becomes current on activation."""
        return self.config.get("VERSION")

    def current_tier_names(self, version: Optional[str] = None) -> List[str]:
        """Namespace names of ``version``, by default the configured one."""
        version = version or self.pending_version
        return [self.cache.namespace(tier, version) for tier in CacheTier]

    def descriptor_for(self, path: str) -> RequestDescriptor:
        """Build a GET descriptor for a manifest path relative to BASE_URL."""
        url = urljoin(self.config.get("BASE_URL", "http://localhost:8000"), path)
        return RequestDescriptor.from_request("GET", url, config=self.config)

    async def install_prime(
        self,
        tier: CacheTier,
        descriptors: Iterable[RequestDescriptor],
        version: Optional[str] = None,
    ) -> PrimeResult:
        """
        Fetch and store a fixed manifest of resources.

        Entries go to the namespace of ``version``, by default the served
        one. A resource that fails to fetch or store is skipped; the rest of
        the manifest is still stored.
        """
        result = PrimeResult(tier=tier)

        async def prime(descriptor: RequestDescriptor) -> None:
            try:
                response = await self.fetcher.fetch(descriptor)
            except NetworkError as e:
                logger.warning("Pre-cache skipped %s: %s", descriptor.url, e.reason)
                result.skipped.append(descriptor.url)
                return
            except Exception as e:
                logger.error("Pre-cache failed for %s: %s", descriptor.url, e, exc_info=True)
                result.skipped.append(descriptor.url)
                return

            if response.ok and await self.cache.put(tier, descriptor, response, version):
                result.stored.append(descriptor.url)
            else:
                logger.warning("Pre-cache skipped %s: status %s", descriptor.url, response.status)
                result.skipped.append(descriptor.url)

        await asyncio.gather(*(prime(d) for d in descriptors))
        logger.info(
            "Primed %s tier: %d stored, %d skipped",
            tier.value,
            len(result.stored),
            len(result.skipped),
        )
        return result

    async def install(self, version: Optional[str] = None) -> List[PrimeResult]:
        """Prime the static and api tiers of ``version`` (default: the configured one)."""
        version = version or self.pending_version
        static = [self.descriptor_for(path) for path in self.config.get("STATIC_ASSETS", [])]
        api = [self.descriptor_for(path) for path in self.config.get("API_ENDPOINTS", [])]
        return list(
            await asyncio.gather(
                self.install_prime(CacheTier.STATIC, static, version),
                self.install_prime(CacheTier.API, api, version),
            )
        )

    async def activate_sweep(
        self, current_versions: Optional[Iterable[str]] = None
    ) -> SweepResult:
        """
        Delete every namespace of this app that is not a current one.

        Deletion is best-effort: a failure is recorded and logged, and the
        remaining stale namespaces are still deleted.
        """
        if current_versions is None:
            current_versions = self.current_tier_names()
        current = set(current_versions)
        result = SweepResult()

        for name in await self.cache.namespaces():
            if name in current:
                result.kept.append(name)
                continue
            try:
                await self.cache.delete_namespace(name)
            except Exception as e:
                failure = LifecycleSweepFailed(name, str(e))
                logger.error(failure.message, exc_info=True)
                result.failures.append(failure)
                continue
            logger.info("Removed stale cache: %s", name)
            result.deleted.append(name)

        return result

    async def purge_all(self) -> List[str]:
        """Delete every namespace belonging to this application."""
        deleted = []
        for name in await self.cache.namespaces():
            try:
                await self.cache.delete_namespace(name)
            except Exception as e:
                logger.error("Could not purge cache %s: %s", name, e, exc_info=True)
                continue
            deleted.append(name)
        logger.info("Purged %d caches", len(deleted))
        return deleted

    async def refresh_api_tier(self) -> PrimeResult:
        """Re-fetch the known API endpoints into the api tier."""
        api = [self.descriptor_for(path) for path in self.config.get("API_ENDPOINTS", [])]
        return await self.install_prime(CacheTier.API, api)
