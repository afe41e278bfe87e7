"""
Notification Gateway: turns a push payload into a displayable descriptor.

Rendering the notification is the host's job; this module only decides what
to show and where a click should lead.
"""

import json
import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_ACTIONS = [
    {"action": "explore", "title": "Explore", "icon": "/icons/action-explore.png"},
    {"action": "close", "title": "Close", "icon": "/icons/action-close.png"},
]

CLICK_TARGETS = {
    "explore": "/#dashboard",
    "close": None,
}


@dataclass
class NotificationDescriptor:
    """Everything the host needs to display one notification."""

    title: str
    body: str
    icon: str
    badge: str
    vibrate: List[int] = field(default_factory=lambda: [100, 50, 100])
    data: Dict[str, Any] = field(default_factory=dict)
    actions: List[Dict[str, str]] = field(default_factory=lambda: list(DEFAULT_ACTIONS))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class NotificationGateway:
    """Pass-through from push payloads to notification descriptors."""

    def __init__(self, config=None):
        if config is None:
            from .config import config
        self.config = config

    def build(
        self, payload: Optional[Union[Dict[str, Any], str, bytes]] = None
    ) -> NotificationDescriptor:
        """
        Build a descriptor from a ``{title?, body?, data?}`` payload.

        Missing fields fall back to the application name and a generic body.
        A payload that is not JSON is used as the body text.
        """
        payload = self._parse(payload)

        data = {"date_of_arrival": int(time.time() * 1000), "primary_key": 1}
        if isinstance(payload.get("data"), dict):
            data.update(payload["data"])

        return NotificationDescriptor(
            title=payload.get("title") or self.config.get("DISPLAY_NAME"),
            body=payload.get("body") or self.config.get("NOTIFICATION_BODY"),
            icon=self.config.get("NOTIFICATION_ICON"),
            badge=self.config.get("NOTIFICATION_BADGE"),
            data=data,
        )

    def _parse(self, payload) -> Dict[str, Any]:
        if payload is None:
            return {}
        if isinstance(payload, dict):
            return payload
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8", errors="replace")
        try:
            parsed = json.loads(payload)
        except (json.JSONDecodeError, TypeError):
            logger.debug("Push payload is not JSON, using it as body text")
            return {"body": str(payload)}
        return parsed if isinstance(parsed, dict) else {}

    def notification_click(self, action: Optional[str] = None) -> Optional[str]:
        """URL to open for a notification click, or None to just close it."""
        if action in CLICK_TARGETS:
            return CLICK_TARGETS[action]
        return "/"
