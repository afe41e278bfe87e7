"""
OfflineWorker: the host-facing boundary of the engine.

Each worker event is an explicit coroutine method:

    install()             prime the cache tiers for the current version
    activate()            sweep superseded namespaces, start serving
    fetch(descriptor)     answer an intercepted request
    submit(descriptor)    deliver a client write, queueing it when offline
    sync(tag)             replay queued writes (connectivity regained)
    message(msg)          control messages: SKIP_WAITING, GET_VERSION, CLEAR_CACHE
    push(payload)         build a notification descriptor
    notification_click()  where a notification click should lead

Example:

    worker = OfflineWorker()
    await worker.install()
    await worker.activate()

    response = await worker.fetch(RequestDescriptor.from_request("GET", url))
    if response.is_degraded:
        show_degraded_indicator()
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from .backends.base import CacheBackend, QueueBackend
from .cache import CacheStore
from .durable_queue import DurableQueue, PendingSyncItem
from .exceptions import NetworkError, SyncDeferred, Unavailable
from .fallback import OfflineFallbackGenerator
from .http import DEFERRED_HEADER, RequestDescriptor, ResponseSnapshot
from .lifecycle import LifecycleManager, PrimeResult, SweepResult
from .network import Fetcher
from .notifications import NotificationDescriptor, NotificationGateway
from .strategies import StrategyDispatcher
from .sync import SyncResult, SyncReplayer

logger = logging.getLogger(__name__)


class WorkerState(Enum):
    """Lifecycle states of a worker version."""

    PARSED = "parsed"
    INSTALLING = "installing"
    INSTALLED = "installed"
    ACTIVATING = "activating"
    ACTIVATED = "activated"


class MessageType(Enum):
    """Control messages accepted from the host."""

    SKIP_WAITING = "SKIP_WAITING"
    GET_VERSION = "GET_VERSION"
    CLEAR_CACHE = "CLEAR_CACHE"


class OfflineWorker:
    """
    Wires the cache store, durable queue, dispatcher, lifecycle manager,
    replayer and notification gateway together.

    Requests are only intercepted once the worker is activated; before that
    they go straight to the network. A request arriving while activation is
    running waits for the sweep to finish.

    A version installed while another one is active waits in ``waiting``;
    the active version keeps serving until ``activate()`` switches over.
    """

    def __init__(
        self,
        cache_backend: Optional[CacheBackend] = None,
        queue_backend: Optional[QueueBackend] = None,
        fetcher: Optional[Fetcher] = None,
        config=None,
        fallbacks: Optional[Dict[str, Dict[str, Any]]] = None,
    ):
        if config is None:
            from .config import config
        self.config = config

        self.fetcher = fetcher or Fetcher(timeout=config.get("FETCH_TIMEOUT", 30.0))
        self.cache = CacheStore(cache_backend, config)
        self.queue = DurableQueue(queue_backend)
        self.fallback = OfflineFallbackGenerator(
            fallbacks if fallbacks is not None else config.get("OFFLINE_FALLBACKS", {})
        )
        self.dispatcher = StrategyDispatcher(self.cache, self.fetcher, self.fallback)
        self.lifecycle = LifecycleManager(self.cache, self.fetcher, config)
        self.replayer = SyncReplayer(self.queue, self.fetcher, config)
        self.notifications = NotificationGateway(config)

        self.state = WorkerState.PARSED
        self.waiting: Optional[str] = None
        self.last_sweep: Optional[SweepResult] = None
        self._activation: Optional[asyncio.Task] = None

    @property
    def version(self) -> str:
        return self.lifecycle.version

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def install(self) -> List[PrimeResult]:
        """
        Prime the static and api tiers of the configured version.

        Individual failures are skipped. On an active worker the new version
        is installed alongside the served one and waits for ``activate()``;
        requests keep being answered from the active version meanwhile.
        """
        pending = self.lifecycle.pending_version
        logger.info("Installing offline worker version %s", pending)

        if self.state is WorkerState.ACTIVATED:
            results = await self.lifecycle.install()
            if pending != self.cache.active_version:
                self.waiting = pending
            logger.info("Offline worker version %s installed and waiting", pending)
            return results

        previous = self.state
        self.state = WorkerState.INSTALLING
        try:
            results = await self.lifecycle.install()
        except BaseException:
            # Abandoned install: the version never becomes current
            self.state = previous
            raise

        if self.state is WorkerState.INSTALLING:
            self.state = WorkerState.INSTALLED
        logger.info("Offline worker version %s installed", pending)
        return results

    async def activate(self) -> SweepResult:
        """
        Make the configured version active.

        Sweeps every superseded namespace before any request is served.
        Calling it again once active is a no-op unless a newer version was
        installed in the meantime.
        """
        if (
            self.state is WorkerState.ACTIVATED
            and self.waiting is None
            and self.last_sweep is not None
        ):
            return self.last_sweep

        if self._activation is None or self._activation.done():
            self._activation = asyncio.ensure_future(self._activate())
        return await asyncio.shield(self._activation)

    async def _activate(self) -> SweepResult:
        pending = self.lifecycle.pending_version
        logger.info("Activating offline worker version %s", pending)
        previous = self.state
        self.state = WorkerState.ACTIVATING
        try:
            sweep = await self.lifecycle.activate_sweep(self.lifecycle.current_tier_names(pending))
        except BaseException:
            self.state = previous
            raise

        self.cache.active_version = pending
        self.waiting = None
        self.last_sweep = sweep
        self.state = WorkerState.ACTIVATED
        logger.info(
            "Offline worker %s activated (%d stale caches removed)",
            self.version,
            len(sweep.deleted),
        )
        return sweep

    async def skip_waiting(self) -> None:
        if self.state is not WorkerState.ACTIVATED or self.waiting is not None:
            await self.activate()

    # ------------------------------------------------------------------
    # Traffic
    # ------------------------------------------------------------------

    async def fetch(self, descriptor: RequestDescriptor) -> ResponseSnapshot:
        """
        Answer an intercepted request.

        Cache-first exhaustion comes back as a 503 response. Pass-through
        requests whose fetch failed raise ``NetworkError``.
        """
        if self.state is WorkerState.ACTIVATING and self._activation is not None:
            await asyncio.shield(self._activation)

        if self.state is not WorkerState.ACTIVATED:
            return await self.fetcher.fetch(descriptor)

        try:
            return await self.dispatcher.dispatch(descriptor)
        except Unavailable as e:
            return e.to_response()

    async def submit(self, descriptor: RequestDescriptor, defer: bool = True) -> ResponseSnapshot:
        """
        Deliver a client write.

        If the network cannot be reached and ``defer`` is set, the write is
        queued for replay and a 202 response marked with
        ``X-Regensync-Deferred`` is returned; otherwise ``NetworkError``
        propagates.
        """
        try:
            return await self.fetcher.fetch(descriptor)
        except NetworkError:
            if not defer:
                raise

        item = await self.queue.enqueue(PendingSyncItem.from_descriptor(descriptor))
        deferred = SyncDeferred(item)
        logger.info(deferred.message)
        return ResponseSnapshot.from_json(
            {
                "status": "queued",
                "id": item.id,
                "message": "Saved offline - will sync when the connection returns",
            },
            status=202,
            headers={DEFERRED_HEADER: "true"},
            url=descriptor.url,
        )

    async def sync(self, tag: Optional[str] = None) -> Optional[SyncResult]:
        """
        React to a sync opportunity.

        Events with a tag other than ``SYNC_TAG`` are ignored. After a cycle
        the api tier is refreshed when ``REFRESH_API_AFTER_SYNC`` is set.
        """
        expected = self.config.get("SYNC_TAG", "background-sync")
        if tag is not None and tag != expected:
            logger.debug("Ignoring sync event with tag %s", tag)
            return None

        result = await self.replayer.replay_all()
        if not result.skipped and self.config.get("REFRESH_API_AFTER_SYNC", True):
            await self.lifecycle.refresh_api_tier()
        return result

    # ------------------------------------------------------------------
    # Control messages and notifications
    # ------------------------------------------------------------------

    async def message(self, message: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        """Handle a control message; only GET_VERSION has a reply."""
        message_type = message.get("type") if isinstance(message, dict) else None

        if message_type == MessageType.SKIP_WAITING.value:
            await self.skip_waiting()
            return None
        if message_type == MessageType.GET_VERSION.value:
            return {"version": self.version}
        if message_type == MessageType.CLEAR_CACHE.value:
            await self.lifecycle.purge_all()
            return None

        logger.info("Unknown message type: %s", message_type)
        return None

    def push(self, payload=None) -> NotificationDescriptor:
        return self.notifications.build(payload)

    def notification_click(self, action: Optional[str] = None) -> Optional[str]:
        return self.notifications.notification_click(action)

    async def aclose(self) -> None:
        """Abandon background refreshes and close the network client."""
        await self.dispatcher.aclose()
        await self.fetcher.aclose()

    async def __aenter__(self) -> "OfflineWorker":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
