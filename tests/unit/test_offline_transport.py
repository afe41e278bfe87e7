"""
Tests for OfflineTransport (an httpx client whose requests go through the
offline worker) and for the Fetcher's event-loop handling.
"""

import json

import httpx
import pytest
from asgiref.sync import async_to_sync

from regensync.http import RequestDescriptor
from regensync.network import OfflineTransport

BASE = "http://testserver"


class TestOfflineTransport:
    @pytest.mark.asyncio
    async def test_get_is_answered_by_worker(self, worker, network):
        await worker.install()
        await worker.activate()
        network.online = False

        async with httpx.AsyncClient(transport=OfflineTransport(worker)) as client:
            css = await client.get(BASE + "/styles.css")
            metrics = await client.get(BASE + "/api/metrics")

        assert css.status_code == 200
        assert metrics.json()["path"] == "/api/metrics"
        assert metrics.headers["X-Regensync-Degraded"] == "cache"

    @pytest.mark.asyncio
    async def test_offline_fallback_through_client(self, worker, network):
        await worker.activate()
        network.online = False

        async with httpx.AsyncClient(transport=OfflineTransport(worker)) as client:
            response = await client.get(BASE + "/api/marketplace")

        assert response.status_code == 200
        assert response.headers["X-Offline-Response"] == "true"
        assert response.json()["products"] == []

    @pytest.mark.asyncio
    async def test_post_offline_is_queued(self, worker, network):
        network.online = False

        async with httpx.AsyncClient(transport=OfflineTransport(worker)) as client:
            response = await client.post(BASE + "/api/sensors", json={"id": 3})

        assert response.status_code == 202
        items = await worker.queue.drain_all()
        assert len(items) == 1
        assert items[0].method == "POST"
        assert json.loads(items[0].body) == {"id": 3}

    @pytest.mark.asyncio
    async def test_network_error_surfaces_as_httpx_error(self, worker, network):
        network.online = False

        async with httpx.AsyncClient(
            transport=OfflineTransport(worker, defer_writes=False)
        ) as client:
            with pytest.raises(httpx.ConnectError):
                await client.post(BASE + "/api/sensors", json={"id": 3})

        assert await worker.queue.size() == 0


class TestFetcherEventLoops:
    def test_client_is_replaced_on_a_new_event_loop(self, fetcher, app_config):
        clients = []

        async def fetch_once():
            descriptor = RequestDescriptor.from_request("GET", BASE + "/", config=app_config)
            await fetcher.fetch(descriptor)
            clients.append(fetcher._client)

        async_to_sync(fetch_once)()
        async_to_sync(fetch_once)()

        assert len(clients) == 2
        assert clients[0] is not clients[1]

    @pytest.mark.asyncio
    async def test_client_is_reused_on_the_same_loop(self, fetcher, app_config):
        descriptor = RequestDescriptor.from_request("GET", BASE + "/", config=app_config)

        await fetcher.fetch(descriptor)
        first = fetcher._client
        await fetcher.fetch(descriptor)

        assert fetcher._client is first
        await fetcher.aclose()
