"""
Pytest configuration and fixtures for regensync tests.

The network is faked with ``httpx.MockTransport``; storage uses the in-memory
backends unless a test asks for the database.
"""

import json

import httpx
import pytest

from regensync.backends.memory import InMemoryCacheBackend, InMemoryQueueBackend
from regensync.backends.registry import reset_storage_backends
from regensync.config import RegenSyncConfig
from regensync.network import Fetcher
from regensync.registry import reset_worker
from regensync.worker import OfflineWorker


class FakeNetwork:
    """
    Scriptable network behind ``httpx.MockTransport``.

    ``routes`` maps a path to ``(status, payload)``; dict/list payloads are
    sent as JSON, bytes as-is. Unknown paths answer 200 with
    ``{"path": <path>}``. While ``online`` is False every request fails with
    ``httpx.ConnectError``.
    """

    def __init__(self):
        self.online = True
        self.routes = {}
        self.unreachable = set()
        self.calls = []

    def route(self, path, payload, status=200):
        self.routes[path] = (status, payload)

    def handler(self, request):
        self.calls.append((request.method, request.url.path, request.content))

        if not self.online or request.url.path in self.unreachable:
            raise httpx.ConnectError("Network unreachable", request=request)

        status, payload = self.routes.get(request.url.path, (200, {"path": request.url.path}))
        if isinstance(payload, bytes):
            return httpx.Response(status, content=payload)
        return httpx.Response(
            status,
            content=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": "application/json"},
        )

    def paths(self, method=None):
        return [path for m, path, _ in self.calls if method is None or m == method]

    def reset_calls(self):
        self.calls = []


@pytest.fixture
def network():
    return FakeNetwork()


@pytest.fixture
def app_config():
    """A fresh configuration object, isolated from the global one."""
    cfg = RegenSyncConfig()
    cfg.set("BASE_URL", "http://testserver")
    return cfg


@pytest.fixture
def fetcher(network):
    return Fetcher(transport=httpx.MockTransport(network.handler), timeout=5.0)


@pytest.fixture
def cache_backend():
    return InMemoryCacheBackend()


@pytest.fixture
def queue_backend():
    return InMemoryQueueBackend()


@pytest.fixture
def worker(cache_backend, queue_backend, fetcher, app_config):
    return OfflineWorker(
        cache_backend=cache_backend,
        queue_backend=queue_backend,
        fetcher=fetcher,
        config=app_config,
    )


@pytest.fixture(autouse=True)
def reset_registries():
    """Process-wide registries never leak between tests."""
    reset_worker()
    reset_storage_backends()
    yield
    reset_worker()
    reset_storage_backends()
