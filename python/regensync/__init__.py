"""
regensync - Offline-capable resource caching and write synchronization.

Sits between an application and the network:
- Classifies every request and serves it cache-first, network-first or
  stale-while-revalidate depending on the resource class
- Serves cached or synthesized offline responses when the network is down
- Durably queues writes made offline and replays them when connectivity returns
- Versions its cache namespaces and sweeps superseded ones on activation

Quick Start::

    import httpx
    from regensync import OfflineWorker, OfflineTransport

    worker = OfflineWorker()
    await worker.install()
    await worker.activate()

    async with httpx.AsyncClient(transport=OfflineTransport(worker)) as client:
        response = await client.get("http://localhost:8000/api/metrics")
        if response.headers.get("X-Offline-Response") == "true":
            ...  # offline payload

        # Queued when offline, replayed by worker.sync()
        await client.post("http://localhost:8000/api/sensors", json={"id": 7})

Configuration in settings.py::

    INSTALLED_APPS = [..., "regensync"]

    REGENSYNC_CONFIG = {
        'APP_NAME': 'regentech',
        'VERSION': 'v3.0.0',
        'BASE_URL': 'https://regentech.example',
        'STORAGE_BACKEND': 'database',  # 'redis', 'memory'
        'OFFLINE_FALLBACKS': {
            '/api/metrics': {'data': {'energy': 0}, 'timestamp': None},
        },
    }

URLs::

    path("regensync/", include("regensync.urls"))
"""

from .config import RegenSyncConfig, config, get_config
from .exceptions import (
    ErrorKind,
    LifecycleSweepFailed,
    NetworkError,
    QueueStorageError,
    RegenSyncError,
    ReplayFailed,
    SyncDeferred,
    Unavailable,
)
from .http import (
    DEFERRED_HEADER,
    DEGRADED_HEADER,
    OFFLINE_HEADER,
    CacheTier,
    RequestDescriptor,
    ResourceClass,
    ResponseSnapshot,
    classify_request,
)
from .cache import CacheStore
from .durable_queue import DurableQueue, PendingSyncItem
from .fallback import OfflineFallbackGenerator
from .lifecycle import LifecycleManager, PrimeResult, SweepResult
from .network import Fetcher, OfflineTransport
from .notifications import NotificationDescriptor, NotificationGateway
from .strategies import CacheStrategy, StrategyDispatcher
from .sync import SyncReplayer, SyncResult
from .worker import MessageType, OfflineWorker, WorkerState

__version__ = "3.0.0"

__all__ = [
    # Configuration
    "RegenSyncConfig",
    "config",
    "get_config",
    # Errors
    "ErrorKind",
    "RegenSyncError",
    "NetworkError",
    "Unavailable",
    "SyncDeferred",
    "ReplayFailed",
    "LifecycleSweepFailed",
    "QueueStorageError",
    # Requests and responses
    "OFFLINE_HEADER",
    "DEGRADED_HEADER",
    "DEFERRED_HEADER",
    "CacheTier",
    "ResourceClass",
    "RequestDescriptor",
    "ResponseSnapshot",
    "classify_request",
    # Components
    "CacheStore",
    "DurableQueue",
    "PendingSyncItem",
    "OfflineFallbackGenerator",
    "LifecycleManager",
    "PrimeResult",
    "SweepResult",
    "Fetcher",
    "OfflineTransport",
    "NotificationDescriptor",
    "NotificationGateway",
    "CacheStrategy",
    "StrategyDispatcher",
    "SyncReplayer",
    "SyncResult",
    # Worker
    "MessageType",
    "OfflineWorker",
    "WorkerState",
]
