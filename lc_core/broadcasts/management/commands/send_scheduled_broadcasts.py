# lc_core/broadcasts/management/commands/send_scheduled_broadcasts.py
from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from lc_core.broadcasts.selectors import BroadcastSelector
from lc_core.broadcasts.services import BroadcastService
from lc_core.common.scope import Scope, parse_uuid


class Command(BaseCommand):
    help = "Send every scheduled broadcast whose scheduled_at has passed. Meant to run from cron."

    def add_arguments(self, parser):
        parser.add_argument("--dry-run", action="store_true", help="List due broadcasts; do not send.")
        parser.add_argument("--tenant-id", type=str, default=None, help="Optional tenant UUID filter.")
        parser.add_argument("--now", type=str, default=None, help="ISO datetime to treat as 'now' (backfills).")

    def handle(self, *args, **opts):
        scope = None
        if opts["tenant_id"]:
            tenant_id = parse_uuid(opts["tenant_id"])
            if tenant_id is None:
                raise CommandError("--tenant-id must be a UUID.")
            scope = Scope(tenant_id=tenant_id)

        now = timezone.now()
        if opts["now"]:
            now = parse_datetime(opts["now"])
            if now is None:
                raise CommandError("--now must be an ISO datetime.")
            if timezone.is_naive(now):
                now = timezone.make_aware(now)

        if opts["dry_run"]:
            due = list(BroadcastSelector.due_scheduled(now=now, scope=scope))
            for b in due:
                self.stdout.write(f"due: {b.id} {b.name!r} scheduled_at={b.scheduled_at.isoformat()}")
            self.stdout.write(self.style.SUCCESS(f"DRY RUN: {len(due)} broadcast(s) due."))
            return

        results = BroadcastService.send_due_scheduled(now=now, scope=scope)
        for r in results:
            d = r.delivery
            self.stdout.write(
                f"sent: {r.broadcast.id} total={r.total} sent={d.sent} failed={d.failed} no_uid={d.no_uid}"
            )
        self.stdout.write(self.style.SUCCESS(f"Done. broadcasts_sent={len(results)}"))
