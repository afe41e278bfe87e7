"""
Offline Fallback Generator.

Produces a synthetic, schema-consistent JSON answer for an API request when
neither the network nor the cache can answer it. The table is configuration
data (``OFFLINE_FALLBACKS``) supplied by the host application.
"""

import copy
import logging
import time
from typing import Any, Dict, Optional

from .http import OFFLINE_HEADER, RequestDescriptor, ResponseSnapshot

logger = logging.getLogger(__name__)

GENERIC_FALLBACK = {
    "status": "offline",
    "message": "service unavailable",
}


class OfflineFallbackGenerator:
    """
    Builds offline responses from a path -> payload table.

    Every payload is guaranteed to carry ``status: "offline"`` and a
    ``message``; a ``timestamp`` key, when present, is filled with the
    current time in milliseconds.
    """

    def __init__(self, fallbacks: Optional[Dict[str, Dict[str, Any]]] = None):
        if fallbacks is None:
            from .config import config

            fallbacks = config.get("OFFLINE_FALLBACKS", {})
        self.fallbacks = dict(fallbacks)

    def payload_for(self, path: str) -> Dict[str, Any]:
        """Return the payload for a path, falling back to the generic one."""
        template = self.fallbacks.get(path)
        if template is None:
            template = self._longest_prefix(path)

        payload = copy.deepcopy(template) if isinstance(template, dict) else {}
        payload["status"] = "offline"
        payload.setdefault("message", GENERIC_FALLBACK["message"])
        if "timestamp" in payload:
            payload["timestamp"] = int(time.time() * 1000)
        return payload

    def _longest_prefix(self, path: str) -> Optional[Dict[str, Any]]:
        matches = [
            prefix
            for prefix in self.fallbacks
            if path.startswith(prefix.rstrip("/") + "/")
        ]
        if not matches:
            return None
        return self.fallbacks[max(matches, key=len)]

    def generate(self, descriptor: RequestDescriptor) -> ResponseSnapshot:
        """Build the offline response for a request. Never raises."""
        try:
            payload = self.payload_for(descriptor.path)
        except Exception as e:
            logger.error(
                "Offline fallback table failed for %s: %s", descriptor.path, e, exc_info=True
            )
            payload = dict(GENERIC_FALLBACK)

        logger.info("Serving offline fallback for %s", descriptor.path)
        return ResponseSnapshot.from_json(
            payload,
            status=200,
            headers={OFFLINE_HEADER: "true"},
            url=descriptor.url,
        )
