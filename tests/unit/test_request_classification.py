"""
Tests for request classification and the request/response value types.
"""

import httpx
import pytest

from regensync.http import (
    DEGRADED_HEADER,
    OFFLINE_HEADER,
    ResourceClass,
    RequestDescriptor,
    ResponseSnapshot,
    classify_request,
)

BASE = "http://testserver"


class TestClassifyRequest:
    """Ordered classification rules, first match wins."""

    @pytest.mark.parametrize(
        "path",
        ["/", "/index.html", "/script.js", "/styles.css", "/manifest.json", "/js/app.JS"],
    )
    def test_static_assets_and_extensions(self, path, app_config):
        assert classify_request(BASE + path, app_config) is ResourceClass.STATIC

    @pytest.mark.parametrize("path", ["/api/metrics", "/api/sensors/7", "/api/anything"])
    def test_api_surface(self, path, app_config):
        assert classify_request(BASE + path, app_config) is ResourceClass.API

    @pytest.mark.parametrize("path", ["/img/logo.png", "/photo.JPEG", "/icons/a.svg", "/x.webp"])
    def test_images(self, path, app_config):
        assert classify_request(BASE + path, app_config) is ResourceClass.IMAGE

    @pytest.mark.parametrize("path", ["/dashboard", "/about/", "/reports/2024"])
    def test_everything_else_is_dynamic(self, path, app_config):
        assert classify_request(BASE + path, app_config) is ResourceClass.DYNAMIC

    def test_static_extension_wins_over_api_prefix(self, app_config):
        # Rule 1 is checked before rule 2
        assert classify_request(BASE + "/api/schema.json", app_config) is ResourceClass.STATIC

    def test_api_image_is_api(self, app_config):
        # Rule 2 is checked before rule 3
        assert classify_request(BASE + "/api/chart.png", app_config) is ResourceClass.API

    def test_query_string_is_ignored(self, app_config):
        assert classify_request(BASE + "/styles.css?v=3", app_config) is ResourceClass.STATIC

    def test_custom_api_endpoint_outside_prefix(self, app_config):
        app_config.set("API_ENDPOINTS", ["/graphql"])
        assert classify_request(BASE + "/graphql", app_config) is ResourceClass.API


class TestRequestDescriptor:
    def test_method_is_upper_cased(self, app_config):
        descriptor = RequestDescriptor.from_request("get", BASE + "/", config=app_config)
        assert descriptor.method == "GET"
        assert descriptor.cache_key == "GET http://testserver/"

    def test_classification_fixed_at_construction(self, app_config):
        descriptor = RequestDescriptor.from_request("GET", BASE + "/api/iot", config=app_config)
        assert descriptor.resource_class is ResourceClass.API

    def test_json_body_is_encoded(self, app_config):
        descriptor = RequestDescriptor.from_request(
            "POST", BASE + "/api/sensors", body={"id": 1}, config=app_config
        )
        assert descriptor.body == b'{"id": 1}'
        assert descriptor.headers["Content-Type"] == "application/json"

    def test_str_body_is_encoded(self, app_config):
        descriptor = RequestDescriptor.from_request(
            "POST", BASE + "/api/sensors", body="hello", config=app_config
        )
        assert descriptor.body == b"hello"

    def test_equality_ignores_body_and_headers(self, app_config):
        a = RequestDescriptor.from_request("GET", BASE + "/x", {"k": 1}, {"A": "1"}, app_config)
        b = RequestDescriptor.from_request("GET", BASE + "/x", None, {"B": "2"}, app_config)
        assert a == b
        assert hash(a) == hash(b)

    def test_non_http_scheme(self, app_config):
        descriptor = RequestDescriptor.from_request(
            "GET", "chrome-extension://abc/page.html", config=app_config
        )
        assert descriptor.is_http is False
        assert descriptor.scheme == "chrome-extension"


class TestResponseSnapshot:
    def test_ok_range(self):
        assert ResponseSnapshot(status=200).ok
        assert ResponseSnapshot(status=204).ok
        assert not ResponseSnapshot(status=304).ok
        assert not ResponseSnapshot(status=500).ok

    def test_header_lookup_is_case_insensitive(self):
        snapshot = ResponseSnapshot(status=200, headers={"Content-Type": "text/plain"})
        assert snapshot.header("content-type") == "text/plain"
        assert snapshot.header("missing", "x") == "x"

    def test_offline_and_degraded_markers(self):
        offline = ResponseSnapshot(status=200, headers={OFFLINE_HEADER: "true"})
        degraded = ResponseSnapshot(status=200).with_headers(**{DEGRADED_HEADER: "cache"})
        fresh = ResponseSnapshot(status=200)

        assert offline.is_offline and offline.is_degraded
        assert degraded.is_degraded and not degraded.is_offline
        assert not fresh.is_degraded

    def test_storage_dict_preserves_binary_body(self):
        snapshot = ResponseSnapshot(
            status=200, headers={"X": "1"}, body=b"\x00\xffdata", url=BASE + "/a.png"
        ).stamped()
        restored = ResponseSnapshot.from_dict(snapshot.to_dict())

        assert restored == snapshot
        assert restored.stored_at == snapshot.stored_at

    def test_from_httpx_drops_transfer_headers(self):
        request = httpx.Request("GET", BASE + "/api/metrics")
        response = httpx.Response(
            200,
            content=b'{"a": 1}',
            headers={"Content-Type": "application/json", "Content-Length": "8"},
            request=request,
        )

        snapshot = ResponseSnapshot.from_httpx(response)

        assert snapshot.url == BASE + "/api/metrics"
        assert snapshot.json() == {"a": 1}
        assert snapshot.header("content-length") is None
        assert snapshot.header("content-type") == "application/json"

    def test_from_httpx_without_request(self):
        snapshot = ResponseSnapshot.from_httpx(httpx.Response(204))
        assert snapshot.url == ""
        assert snapshot.status == 204
