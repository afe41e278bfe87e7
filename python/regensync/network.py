"""
Network layer for regensync.

``Fetcher`` is the worker's only way out to the network; it wraps an
``httpx.AsyncClient`` and turns transport failures into ``NetworkError``.
``OfflineTransport`` goes the other way: it lets any ``httpx.AsyncClient`` in
the host application route its requests through an ``OfflineWorker``.

Example usage:

    from regensync import OfflineWorker
    from regensync.network import OfflineTransport

    worker = OfflineWorker()
    await worker.install()
    await worker.activate()

    async with httpx.AsyncClient(transport=OfflineTransport(worker)) as client:
        response = await client.get("http://localhost:8000/api/metrics")
        if response.headers.get("X-Offline-Response") == "true":
            show_offline_banner()
"""

import asyncio
import logging
from typing import Any, Optional

import httpx

from .exceptions import NetworkError
from .http import RequestDescriptor, ResponseSnapshot

logger = logging.getLogger(__name__)


class Fetcher:
    """
    Issues real network requests for the worker.

    The client it creates is tied to the event loop it was created on. Under
    WSGI each async view runs on a fresh loop, so a client left over from a
    previous loop is dropped and a new one is created.

    Attributes:
        timeout: Client timeout in seconds
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``)
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ):
        if timeout is None:
            from .config import config

            timeout = config.get("FETCH_TIMEOUT", 30.0)
        self.timeout = timeout
        self.transport = transport
        self._client = client
        self._owns_client = client is None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def _ensure_client(self) -> httpx.AsyncClient:
        loop = asyncio.get_running_loop()
        if self._owns_client and self._client is not None and self._loop is not loop:
            # Pooled connections belong to the loop that opened them
            logger.debug("Event loop changed, replacing network client")
            self._client = None

        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self.transport)
            self._loop = loop
        return self._client

    async def fetch(self, descriptor: RequestDescriptor) -> ResponseSnapshot:
        """
        Fetch a request from the network.

        Returns the response whatever its status code; only failures to get
        any response at all raise.

        Raises:
            NetworkError: If the request could not be delivered
        """
        client = self._ensure_client()
        try:
            response = await client.request(
                method=descriptor.method,
                url=descriptor.url,
                content=descriptor.body,
                headers=descriptor.headers or None,
            )
        except httpx.HTTPError as e:
            logger.debug("Network fetch failed for %s: %s", descriptor.url, e)
            raise NetworkError(descriptor.url, str(e) or type(e).__name__) from e

        return ResponseSnapshot.from_httpx(response)

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
        self._loop = None


class OfflineTransport(httpx.AsyncBaseTransport):
    """
    httpx transport that answers every request through an ``OfflineWorker``.

    The worker keeps its own ``Fetcher`` for the real network, so a client
    using this transport never loops back into itself.
    """

    def __init__(self, worker: Any, defer_writes: bool = True):
        self.worker = worker
        self.defer_writes = defer_writes

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        body = await request.aread()
        descriptor = RequestDescriptor.from_request(
            method=request.method,
            url=str(request.url),
            body=body or None,
            headers=dict(request.headers),
            config=self.worker.config,
        )

        try:
            if descriptor.method == "GET":
                snapshot = await self.worker.fetch(descriptor)
            else:
                snapshot = await self.worker.submit(descriptor, defer=self.defer_writes)
        except NetworkError as e:
            raise httpx.ConnectError(e.message, request=request) from e

        return httpx.Response(
            status_code=snapshot.status,
            headers=snapshot.headers,
            content=snapshot.body,
            request=request,
        )
