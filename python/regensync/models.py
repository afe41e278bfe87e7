"""
Durable storage for cache namespaces and pending writes.
"""

from django.db import models


class CacheEntry(models.Model):
    """One cached response inside a versioned cache namespace."""

    namespace = models.CharField(max_length=200, db_index=True)
    key = models.CharField(max_length=2048)
    status = models.PositiveSmallIntegerField()
    headers = models.JSONField(default=dict)
    body = models.BinaryField(default=b"")
    url = models.TextField(blank=True, default="")
    stored_at = models.FloatField(null=True, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["namespace", "key"], name="regensync_unique_cache_key"),
        ]

    def __str__(self):
        return f"{self.namespace}: {self.key}"


class PendingSyncRecord(models.Model):
    """A client write waiting to be replayed against the network."""

    id = models.BigAutoField(primary_key=True)
    url = models.TextField()
    method = models.CharField(max_length=16)
    body = models.BinaryField(null=True, blank=True)
    headers = models.JSONField(default=dict)
    enqueued_at = models.FloatField()
    attempts = models.PositiveIntegerField(default=0)
    last_error = models.TextField(null=True, blank=True)

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return f"#{self.id} {self.method} {self.url} ({self.attempts} attempts)"
