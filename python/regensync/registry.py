"""
Process-wide OfflineWorker registry.

Views and management commands share one worker per process so that the
replay cycle lock and the activation barrier are shared as well.
"""

import logging
from typing import Optional

from .worker import OfflineWorker

logger = logging.getLogger(__name__)

_worker: Optional[OfflineWorker] = None


def get_worker() -> OfflineWorker:
    """Get or create the worker, wired to the configured storage backends."""
    global _worker
    if _worker is not None:
        return _worker

    from .backends.registry import get_cache_backend, get_queue_backend

    _worker = OfflineWorker(
        cache_backend=get_cache_backend(),
        queue_backend=get_queue_backend(),
    )
    logger.info("Initialized offline worker %s", _worker.version)
    return _worker


def set_worker(worker: OfflineWorker) -> None:
    """Manually set the worker (useful for testing)."""
    global _worker
    _worker = worker


def reset_worker() -> None:
    """Reset to force re-initialization on next access."""
    global _worker
    _worker = None
