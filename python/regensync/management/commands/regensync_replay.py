"""
Django management command to replay queued offline writes.

Usage:
    python manage.py regensync_replay
    python manage.py regensync_replay --tag background-sync
    python manage.py regensync_replay --status
"""

from asgiref.sync import async_to_sync
from django.core.management.base import BaseCommand, CommandError

from regensync.exceptions import QueueStorageError
from regensync.registry import get_worker


class Command(BaseCommand):
    help = "Replay pending offline writes against the network"

    def add_arguments(self, parser):
        parser.add_argument(
            "--tag",
            type=str,
            default=None,
            help="Sync tag to deliver (default: the configured SYNC_TAG)",
        )
        parser.add_argument(
            "--status",
            action="store_true",
            help="List pending writes without replaying them",
        )

    def handle(self, *args, **options):
        worker = get_worker()
        try:
            if options["status"]:
                self._show_status(worker)
                return
            result = async_to_sync(self._replay)(worker, options["tag"])
        except QueueStorageError as e:
            raise CommandError(e.message)

        if result is None:
            raise CommandError("Unknown sync tag: %s" % options["tag"])

        if result.skipped:
            self.stdout.write(self.style.WARNING("Sync already in progress, nothing done"))
            return

        self.stdout.write(
            "Replayed %d, failed %d in %.2fs"
            % (result.processed_count, result.failed_count, result.duration_seconds)
        )
        for error in result.errors:
            self.stdout.write(self.style.ERROR("  %s" % error))
        if result.success:
            self.stdout.write(self.style.SUCCESS("All pending writes synced"))

    async def _replay(self, worker, tag):
        try:
            return await worker.sync(tag)
        finally:
            await worker.aclose()

    def _show_status(self, worker):
        items = async_to_sync(worker.queue.drain_all)()
        if not items:
            self.stdout.write(self.style.SUCCESS("No pending writes"))
            return

        self.stdout.write("%d pending write(s):" % len(items))
        for item in items:
            line = "  #%s %s %s (attempts: %d)" % (item.id, item.method, item.url, item.attempts)
            if item.last_error:
                line += " last error: %s" % item.last_error
            self.stdout.write(line)
