"""
Request and response value types shared by every regensync component.
"""

import base64
import json
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional
from urllib.parse import urlsplit

OFFLINE_HEADER = "X-Offline-Response"
DEGRADED_HEADER = "X-Regensync-Degraded"
DEFERRED_HEADER = "X-Regensync-Deferred"


class ResourceClass(Enum):
    """Classification tag of an intercepted request."""

    STATIC = "static"
    API = "api"
    IMAGE = "image"
    DYNAMIC = "dynamic"


class CacheTier(Enum):
    """Cache namespaces, one per resource family."""

    STATIC = "static"
    DYNAMIC = "dynamic"
    API = "api"


def _extension(path: str) -> str:
    last = path.rsplit("/", 1)[-1]
    if "." not in last:
        return ""
    return last.rsplit(".", 1)[-1].lower()


def classify_request(url: str, config=None) -> ResourceClass:
    """
    Classify a URL into a resource class. First match wins:

    1. known static asset or static file extension
    2. API prefix or known API endpoint
    3. image extension
    4. anything else is dynamic
    """
    if config is None:
        from .config import config

    path = urlsplit(url).path or "/"
    extension = _extension(path)

    if path in config.get("STATIC_ASSETS", []) or extension in config.get(
        "STATIC_EXTENSIONS", []
    ):
        return ResourceClass.STATIC

    if path.startswith(config.get("API_PREFIX", "/api/")) or any(
        path.startswith(endpoint) for endpoint in config.get("API_ENDPOINTS", [])
    ):
        return ResourceClass.API

    if extension in config.get("IMAGE_EXTENSIONS", []):
        return ResourceClass.IMAGE

    return ResourceClass.DYNAMIC


@dataclass(frozen=True)
class RequestDescriptor:
    """
    Normalized identity of an interceptable request.

    Attributes:
        method: Upper-case HTTP method
        url: Absolute URL
        resource_class: Classification tag, fixed at construction
        body: Request body (writes only)
        headers: Request headers
    """

    method: str
    url: str
    resource_class: ResourceClass
    body: Optional[bytes] = field(default=None, compare=False)
    headers: Dict[str, str] = field(default_factory=dict, compare=False, hash=False)

    @classmethod
    def from_request(
        cls,
        method: str,
        url: str,
        body: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
        config=None,
    ) -> "RequestDescriptor":
        """Build a descriptor, classifying the URL with the given config."""
        if isinstance(body, str):
            body = body.encode("utf-8")
        elif body is not None and not isinstance(body, bytes):
            body = json.dumps(body).encode("utf-8")
            headers = {"Content-Type": "application/json", **(headers or {})}

        return cls(
            method=method.upper(),
            url=url,
            resource_class=classify_request(url, config),
            body=body,
            headers=dict(headers or {}),
        )

    @property
    def path(self) -> str:
        return urlsplit(self.url).path or "/"

    @property
    def scheme(self) -> str:
        return urlsplit(self.url).scheme.lower()

    @property
    def is_http(self) -> bool:
        return self.scheme in ("http", "https")

    @property
    def cache_key(self) -> str:
        return f"{self.method} {self.url}"


@dataclass(frozen=True)
class ResponseSnapshot:
    """
    Replayable, immutable copy of an HTTP response.

    Attributes:
        status: HTTP status code
        headers: Response headers
        body: Raw response body
        url: URL the response answered
        stored_at: When the snapshot was written to a cache tier, if it was
    """

    status: int
    headers: Dict[str, str] = field(default_factory=dict, hash=False)
    body: bytes = b""
    url: str = ""
    stored_at: Optional[float] = field(default=None, compare=False)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        return json.loads(self.body)

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return default

    @property
    def is_offline(self) -> bool:
        """True when the response was synthesized by the fallback generator."""
        return self.header(OFFLINE_HEADER) == "true"

    @property
    def is_degraded(self) -> bool:
        """True for cached-but-possibly-stale or synthetic answers."""
        return self.is_offline or self.header(DEGRADED_HEADER) is not None

    def with_headers(self, **extra: str) -> "ResponseSnapshot":
        """Return a copy with extra headers (underscores become dashes)."""
        headers = dict(self.headers)
        for key, value in extra.items():
            headers[key.replace("_", "-")] = value
        return replace(self, headers=headers)

    def stamped(self) -> "ResponseSnapshot":
        return replace(self, stored_at=time.time())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary for storage."""
        return {
            "status": self.status,
            "headers": dict(self.headers),
            "body": base64.b64encode(self.body).decode("ascii"),
            "url": self.url,
            "stored_at": self.stored_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResponseSnapshot":
        return cls(
            status=int(data["status"]),
            headers=dict(data.get("headers") or {}),
            body=base64.b64decode(data.get("body") or ""),
            url=data.get("url", ""),
            stored_at=data.get("stored_at"),
        )

    @classmethod
    def from_httpx(cls, response) -> "ResponseSnapshot":
        """Snapshot an already-read ``httpx.Response``."""
        try:
            url = str(response.request.url)
        except RuntimeError:
            # Responses built by hand carry no request
            url = ""
        # The body is stored decoded, so transfer headers no longer apply
        headers = {
            key: value
            for key, value in response.headers.items()
            if key.lower() not in ("content-encoding", "content-length", "transfer-encoding")
        }
        return cls(
            status=response.status_code,
            headers=headers,
            body=response.content,
            url=url,
        )

    @classmethod
    def from_json(
        cls, data: Any, status: int = 200, headers: Optional[Dict[str, str]] = None, url: str = ""
    ) -> "ResponseSnapshot":
        merged = {"Content-Type": "application/json"}
        merged.update(headers or {})
        return cls(
            status=status,
            headers=merged,
            body=json.dumps(data, default=str).encode("utf-8"),
            url=url,
        )
