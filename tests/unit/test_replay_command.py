"""
Tests for the regensync_replay management command.
"""

import time
from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from regensync.durable_queue import PendingSyncItem
from regensync.registry import set_worker


def queue_write(queue_backend, path, body=b"{}"):
    item = PendingSyncItem(
        url="http://testserver" + path, method="POST", body=body, enqueued_at=time.time()
    )
    return queue_backend.append(item.to_dict())


class TestReplayCommand:
    def test_replays_pending_writes(self, worker, queue_backend, network):
        set_worker(worker)
        queue_write(queue_backend, "/api/sensors")
        queue_write(queue_backend, "/api/marketplace")

        out = StringIO()
        call_command("regensync_replay", stdout=out)

        output = out.getvalue()
        assert "Replayed 2, failed 0" in output
        assert "All pending writes synced" in output
        assert queue_backend.count() == 0
        assert network.paths("POST") == ["/api/sensors", "/api/marketplace"]

    def test_reports_failures(self, worker, queue_backend, network):
        set_worker(worker)
        network.unreachable.add("/api/sensors")
        item_id = queue_write(queue_backend, "/api/sensors")

        out = StringIO()
        call_command("regensync_replay", stdout=out)

        assert "Replayed 0, failed 1" in out.getvalue()
        assert queue_backend.get(item_id)["attempts"] == 1

    def test_status_lists_without_replaying(self, worker, queue_backend, network):
        set_worker(worker)
        item_id = queue_write(queue_backend, "/api/sensors")
        queue_backend.increment_attempts(item_id, "status 502")

        out = StringIO()
        call_command("regensync_replay", "--status", stdout=out)

        output = out.getvalue()
        assert "1 pending write(s)" in output
        assert "POST http://testserver/api/sensors (attempts: 1)" in output
        assert "status 502" in output
        assert network.calls == []

    def test_status_when_empty(self, worker):
        set_worker(worker)

        out = StringIO()
        call_command("regensync_replay", "--status", stdout=out)

        assert "No pending writes" in out.getvalue()

    def test_unknown_tag(self, worker):
        set_worker(worker)

        with pytest.raises(CommandError):
            call_command("regensync_replay", "--tag", "nope", stdout=StringIO())
