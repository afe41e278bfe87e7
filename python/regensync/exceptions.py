"""
Exceptions and outcome records for regensync.

Errors that a fallback can absorb (cache miss, network miss) never leave the
engine; they are classified with an ``ErrorKind`` and logged. Only true
exhaustion (``Unavailable``) and durable queue failures
(``QueueStorageError``) propagate to callers.
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Classification of non-happy-path outcomes."""

    UNAVAILABLE = "unavailable"
    DEGRADED_SERVED = "degraded_served"
    SYNC_DEFERRED = "sync_deferred"
    REPLAY_FAILED = "replay_failed"
    LIFECYCLE_SWEEP_FAILED = "lifecycle_sweep_failed"


class RegenSyncError(Exception):
    """Base exception for regensync errors."""

    kind: Optional[ErrorKind] = None

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.hint = hint


class NetworkError(RegenSyncError):
    """Raised when a fetch could not reach the network at all."""

    def __init__(self, url: str, reason: str):
        super().__init__(
            f"Network request to {url} failed: {reason}",
            hint="The host is offline or the server is unreachable.",
        )
        self.url = url
        self.reason = reason


class Unavailable(RegenSyncError):
    """
    Raised when a cache-first lookup missed and the network failed too.

    Callers that need a response object instead of an exception use
    ``to_response()``, which mirrors the 503 a browser worker would return.
    """

    kind = ErrorKind.UNAVAILABLE

    def __init__(self, url: str, reason: Optional[str] = None):
        message = f"Resource not available offline: {url}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.url = url
        self.reason = reason

    def to_response(self):
        from .http import ResponseSnapshot

        return ResponseSnapshot(
            status=503,
            headers={"Content-Type": "text/plain; charset=utf-8"},
            body=b"Resource not available offline",
            url=self.url,
        )


class SyncDeferred(RegenSyncError):
    """A write could not reach the network and was queued for replay."""

    kind = ErrorKind.SYNC_DEFERRED

    def __init__(self, item):
        super().__init__(
            f"Write {item.method} {item.url} deferred as pending item {item.id}",
        )
        self.item = item


class ReplayFailed(RegenSyncError):
    """A queued write failed to replay; it stays queued for the next cycle."""

    kind = ErrorKind.REPLAY_FAILED

    def __init__(self, item_id: int, attempts: int, reason: str):
        super().__init__(
            f"Replay of pending item {item_id} failed (attempt {attempts}): {reason}"
        )
        self.item_id = item_id
        self.attempts = attempts
        self.reason = reason


class LifecycleSweepFailed(RegenSyncError):
    """A superseded cache namespace could not be deleted during activation."""

    kind = ErrorKind.LIFECYCLE_SWEEP_FAILED

    def __init__(self, tier_name: str, reason: str):
        super().__init__(f"Could not delete stale cache '{tier_name}': {reason}")
        self.tier_name = tier_name
        self.reason = reason


class QueueStorageError(RegenSyncError):
    """
    Raised when the durable queue's storage cannot be read or written.

    The engine never swallows it.
    """

    def __init__(self, operation: str, reason: str):
        super().__init__(
            f"Durable queue {operation} failed: {reason}",
            hint="Check that the configured STORAGE_BACKEND is reachable.",
        )
        self.operation = operation
        self.reason = reason
