"""
Configuration system for regensync

Provides centralized configuration for:
- Application name and cache version
- Resource classification (static assets, API surface, image types)
- Offline fallback payloads
- Storage backend selection
- Push notification defaults
"""

import copy
from typing import Dict, Any


DEFAULT_OFFLINE_FALLBACKS = {
    "/api/metrics": {
        "status": "offline",
        "data": {
            "energy": {"value": 0, "status": "offline"},
            "water": {"value": 0, "status": "offline"},
            "carbon": {"value": 0, "status": "offline"},
        },
        "timestamp": None,  # filled in when the fallback is generated
        "message": "Offline data - sync pending",
    },
    "/api/sensors": {
        "status": "offline",
        "sensors": [],
        "message": "Sensors offline - waiting for connection",
    },
    "/api/marketplace": {
        "status": "offline",
        "products": [],
        "message": "Marketplace offline - showing cached products",
    },
}


class RegenSyncConfig:
    """
    Central configuration for the offline worker.

    Usage:
        # In settings.py
        REGENSYNC_CONFIG = {
            'VERSION': 'v3.1.0',
            'API_ENDPOINTS': ['/api/metrics', '/api/sensors'],
            'STORAGE_BACKEND': 'redis',
        }

        # Or programmatically
        from regensync.config import config
        config.set('VERSION', 'v3.1.0')
    """

    _defaults = {
        # Identity and versioning
        "APP_NAME": "regentech",  # Prefix of every cache namespace
        "DISPLAY_NAME": "RegenTech",  # Default notification title
        "VERSION": "v3.0.0",  # Current cache-tier version
        # Resource classification
        "STATIC_ASSETS": [
            "/",
            "/index.html",
            "/script.js",
            "/styles.css",
            "/manifest.json",
        ],
        "API_PREFIX": "/api/",
        "API_ENDPOINTS": [
            "/api/metrics",
            "/api/sensors",
            "/api/blockchain",
            "/api/marketplace",
            "/api/iot",
        ],
        "STATIC_EXTENSIONS": ["js", "css", "html", "json"],
        "IMAGE_EXTENSIONS": ["png", "jpg", "jpeg", "gif", "svg", "webp", "ico"],
        # Offline fallbacks, keyed by API path
        "OFFLINE_FALLBACKS": DEFAULT_OFFLINE_FALLBACKS,
        # Network
        "BASE_URL": "http://localhost:8000",  # Resolves relative manifest paths
        "FETCH_TIMEOUT": 30.0,  # seconds
        # Storage
        "STORAGE_BACKEND": "database",  # 'database', 'redis' or 'memory'
        "REDIS_URL": "redis://localhost:6379/0",
        "REDIS_PREFIX": "regensync",
        # Background sync
        "SYNC_TAG": "background-sync",
        "REFRESH_API_AFTER_SYNC": True,  # Re-fetch API_ENDPOINTS after a sync cycle
        # Notifications
        "NOTIFICATION_BODY": "New update available on RegenTech!",
        "NOTIFICATION_ICON": "/icons/icon-192x192.png",
        "NOTIFICATION_BADGE": "/icons/badge-72x72.png",
    }

    def __init__(self):
        self._config = copy.deepcopy(self._defaults)
        self._load_from_settings()

    def _load_from_settings(self):
        """Load configuration from Django settings if available"""
        try:
            from django.conf import settings
            from django.core.exceptions import ImproperlyConfigured

            try:
                overrides = getattr(settings, "REGENSYNC_CONFIG", None)
            except ImproperlyConfigured:
                overrides = None

            if overrides:
                self._config.update(overrides)
        except ImportError:
            pass

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: Configuration key (supports dot notation for nested values)
            default: Default value if key not found

        Returns:
            Configuration value or default

        Example:
            config.get('VERSION')  # 'v3.0.0'
            config.get('STORAGE_BACKEND')  # 'database'
        """
        keys = key.split(".")
        value = self._config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value if value is not None else default

    def set(self, key: str, value: Any):
        """
        Set a configuration value.

        Args:
            key: Configuration key (supports dot notation for nested values)
            value: Value to set
        """
        keys = key.split(".")

        target = self._config
        for k in keys[:-1]:
            if k not in target:
                target[k] = {}
            target = target[k]

        target[keys[-1]] = value

    def namespace(self, tier: str, version: str = None) -> str:
        """
        Build the namespace name for a cache tier.

        Example:
            config.namespace('static')  # 'regentech-static-v3.0.0'
        """
        return f"{self.get('APP_NAME')}-{tier}-{version or self.get('VERSION')}"

    def reset(self):
        """Reset configuration to defaults"""
        self._config = copy.deepcopy(self._defaults)
        self._load_from_settings()

    def update(self, config_dict: Dict[str, Any]):
        """Update multiple configuration values at once."""
        self._config.update(config_dict)

    def as_dict(self) -> Dict[str, Any]:
        """Get the entire configuration as a dictionary"""
        return copy.deepcopy(self._config)


# Global configuration instance
config = RegenSyncConfig()


def get_config() -> RegenSyncConfig:
    """Get the global configuration instance"""
    return config
