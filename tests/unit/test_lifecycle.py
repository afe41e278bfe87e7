"""
Tests for cache store namespacing and the lifecycle manager
(install priming, activation sweep, purge).
"""

import httpx
import pytest

from regensync.backends.memory import InMemoryCacheBackend
from regensync.cache import CacheStore
from regensync.http import CacheTier, RequestDescriptor, ResponseSnapshot
from regensync.lifecycle import LifecycleManager
from regensync.network import Fetcher

BASE = "http://testserver"


@pytest.fixture
def store(cache_backend, app_config):
    return CacheStore(cache_backend, app_config)


@pytest.fixture
def lifecycle(store, fetcher, app_config):
    return LifecycleManager(store, fetcher, app_config)


class TestCacheStore:
    def test_namespace_names(self, store):
        assert store.namespace(CacheTier.STATIC) == "regentech-static-v3.0.0"
        assert store.namespace(CacheTier.DYNAMIC) == "regentech-dynamic-v3.0.0"
        assert store.namespace(CacheTier.API) == "regentech-api-v3.0.0"

    @pytest.mark.asyncio
    async def test_only_successful_responses_are_stored(self, store, app_config):
        descriptor = RequestDescriptor.from_request("GET", BASE + "/a.js", config=app_config)

        assert await store.put(CacheTier.STATIC, descriptor, ResponseSnapshot(status=500)) is False
        assert await store.get(CacheTier.STATIC, descriptor) is None

        assert await store.put(CacheTier.STATIC, descriptor, ResponseSnapshot(status=200)) is True
        cached = await store.get(CacheTier.STATIC, descriptor)
        assert cached.stored_at is not None

    @pytest.mark.asyncio
    async def test_match_looks_across_tiers(self, store, app_config):
        descriptor = RequestDescriptor.from_request("GET", BASE + "/page", config=app_config)
        await store.put(CacheTier.DYNAMIC, descriptor, ResponseSnapshot(status=200, body=b"x"))

        assert (await store.match(descriptor)).body == b"x"

    @pytest.mark.asyncio
    async def test_backend_failures_are_absorbed(self, app_config):
        class BrokenBackend(InMemoryCacheBackend):
            def get(self, namespace, key):
                raise ConnectionError("down")

            def put(self, namespace, key, record):
                raise ConnectionError("down")

        store = CacheStore(BrokenBackend(), app_config)
        descriptor = RequestDescriptor.from_request("GET", BASE + "/a.js", config=app_config)

        assert await store.put(CacheTier.STATIC, descriptor, ResponseSnapshot(status=200)) is False
        assert await store.get(CacheTier.STATIC, descriptor) is None

    @pytest.mark.asyncio
    async def test_foreign_namespaces_are_ignored(self, store, cache_backend):
        cache_backend.put("otherapp-static-v1", "GET /", {"status": 200})
        cache_backend.put("regentech-static-v1.0.0", "GET /", {"status": 200})

        assert await store.namespaces() == ["regentech-static-v1.0.0"]


class TestInstall:
    @pytest.mark.asyncio
    async def test_primes_static_and_api_tiers(self, lifecycle, store, network):
        results = await lifecycle.install()

        static_keys = await store.keys(CacheTier.STATIC)
        api_keys = await store.keys(CacheTier.API)
        assert "GET http://testserver/styles.css" in static_keys
        assert len(static_keys) == 5
        assert len(api_keys) == 5
        assert all(not result.skipped for result in results)

    @pytest.mark.asyncio
    async def test_failures_are_skipped(self, lifecycle, store, network):
        network.unreachable.add("/script.js")
        network.route("/api/iot", {"error": "down"}, status=503)

        static, api = await lifecycle.install()

        assert static.skipped == ["http://testserver/script.js"]
        assert api.skipped == ["http://testserver/api/iot"]
        assert len(await store.keys(CacheTier.STATIC)) == 4
        assert len(await store.keys(CacheTier.API)) == 4

    @pytest.mark.asyncio
    async def test_install_prime_is_idempotent(self, lifecycle, store):
        descriptors = [lifecycle.descriptor_for("/styles.css"), lifecycle.descriptor_for("/")]

        await lifecycle.install_prime(CacheTier.STATIC, descriptors)
        first = sorted(await store.keys(CacheTier.STATIC))
        await lifecycle.install_prime(CacheTier.STATIC, descriptors)
        second = sorted(await store.keys(CacheTier.STATIC))

        assert first == second
        assert len(second) == 2

    @pytest.mark.asyncio
    async def test_unexpected_fetch_error_skips_resource(self, store, network, app_config):
        class FlakyFetcher(Fetcher):
            async def fetch(self, descriptor):
                if descriptor.url.endswith("/broken.js"):
                    raise RuntimeError("Event loop is closed")
                return await super().fetch(descriptor)

        lifecycle = LifecycleManager(
            store, FlakyFetcher(transport=httpx.MockTransport(network.handler)), app_config
        )
        descriptors = [lifecycle.descriptor_for(path) for path in ("/broken.js", "/ok.js")]

        result = await lifecycle.install_prime(CacheTier.STATIC, descriptors)

        assert result.skipped == ["http://testserver/broken.js"]
        assert result.stored == ["http://testserver/ok.js"]

    @pytest.mark.asyncio
    async def test_install_targets_configured_version(self, lifecycle, store, app_config):
        store.active_version = "v3.0.0"
        app_config.set("VERSION", "v4.0.0")

        await lifecycle.install()

        assert await store.keys(CacheTier.STATIC) == []
        assert len(await store.keys(CacheTier.STATIC, "v4.0.0")) == 5
        assert lifecycle.version == "regentech-v3.0.0"
        assert lifecycle.current_tier_names()[0] == "regentech-static-v4.0.0"


class TestActivateSweep:
    @pytest.mark.asyncio
    async def test_removes_superseded_versions_only(self, lifecycle, cache_backend):
        for name in (
            "regentech-static-v2.0.0",
            "regentech-api-v2.0.0",
            "regentech-static-v3.0.0",
            "otherapp-static-v1",
        ):
            cache_backend.put(name, "GET /", {"status": 200})

        result = await lifecycle.activate_sweep(lifecycle.current_tier_names())

        assert sorted(result.deleted) == ["regentech-api-v2.0.0", "regentech-static-v2.0.0"]
        assert result.kept == ["regentech-static-v3.0.0"]
        assert result.success
        assert sorted(cache_backend.namespaces()) == [
            "otherapp-static-v1",
            "regentech-static-v3.0.0",
        ]

    @pytest.mark.asyncio
    async def test_failed_deletion_is_recorded_not_raised(self, app_config, fetcher):
        backend = InMemoryCacheBackend()
        backend.put("regentech-static-v1.0.0", "GET /", {"status": 200})
        backend.put("regentech-static-v2.0.0", "GET /", {"status": 200})
        real_delete = backend.delete_namespace

        def flaky_delete(namespace):
            if namespace == "regentech-static-v1.0.0":
                raise OSError("disk full")
            return real_delete(namespace)

        backend.delete_namespace = flaky_delete
        lifecycle = LifecycleManager(CacheStore(backend, app_config), fetcher, app_config)

        result = await lifecycle.activate_sweep()

        assert result.deleted == ["regentech-static-v2.0.0"]
        assert len(result.failures) == 1
        assert result.failures[0].tier_name == "regentech-static-v1.0.0"
        assert not result.success

    @pytest.mark.asyncio
    async def test_version_bump_sweeps_previous_version(self, store, fetcher, app_config, network):
        old = LifecycleManager(store, fetcher, app_config)
        await old.install()

        app_config.set("VERSION", "v3.1.0")
        new = LifecycleManager(store, fetcher, app_config)
        await new.install()
        result = await new.activate_sweep(new.current_tier_names())

        assert sorted(result.deleted) == ["regentech-api-v3.0.0", "regentech-static-v3.0.0"]
        assert sorted(await store.namespaces()) == [
            "regentech-api-v3.1.0",
            "regentech-static-v3.1.0",
        ]


class TestPurgeAndRefresh:
    @pytest.mark.asyncio
    async def test_purge_all(self, lifecycle, store, cache_backend):
        await lifecycle.install()
        cache_backend.put("otherapp-static-v1", "GET /", {"status": 200})

        deleted = await lifecycle.purge_all()

        assert sorted(deleted) == ["regentech-api-v3.0.0", "regentech-static-v3.0.0"]
        assert await store.namespaces() == []
        assert cache_backend.namespaces() == ["otherapp-static-v1"]

    @pytest.mark.asyncio
    async def test_refresh_api_tier(self, lifecycle, store, network):
        network.route("/api/metrics", {"energy": 1})
        result = await lifecycle.refresh_api_tier()

        assert result.tier is CacheTier.API
        assert len(result.stored) == 5
        cached = await store.get(CacheTier.API, lifecycle.descriptor_for("/api/metrics"))
        assert cached.json() == {"energy": 1}

    def test_version(self, lifecycle):
        assert lifecycle.version == "regentech-v3.0.0"
