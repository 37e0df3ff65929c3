from datetime import timedelta
from io import StringIO

import pytest
from django.core.management import CommandError, call_command
from django.utils import timezone

from lc_core.broadcasts import services
from lc_core.broadcasts.line_push import PushResult
from lc_core.broadcasts.models import Broadcast, BroadcastStatus
from lc_core.tests.helpers import seed_patient


@pytest.fixture
def due_broadcast(scope, monkeypatch):
    monkeypatch.setattr(
        services,
        "push_message",
        lambda line_id, messages, *, scope, channel_token=None: PushResult(ok=True, status_code=200),
    )
    seed_patient(scope, "P1", line_id="U1")
    return Broadcast.objects.create(
        tenant_id=scope.tenant_id,
        name="reminder",
        message_content="see you",
        status=BroadcastStatus.SCHEDULED,
        scheduled_at=timezone.now() - timedelta(minutes=1),
    )


@pytest.mark.django_db
def test_dry_run_lists_without_sending(due_broadcast):
    out = StringIO()
    call_command("send_scheduled_broadcasts", "--dry-run", stdout=out)

    assert str(due_broadcast.id) in out.getvalue()
    assert "1 broadcast(s) due" in out.getvalue()
    due_broadcast.refresh_from_db()
    assert due_broadcast.status == BroadcastStatus.SCHEDULED


@pytest.mark.django_db
def test_command_sends_due_broadcasts(due_broadcast):
    out = StringIO()
    call_command("send_scheduled_broadcasts", stdout=out)

    due_broadcast.refresh_from_db()
    assert due_broadcast.status == BroadcastStatus.SENT
    assert due_broadcast.sent_count == 1
    assert "broadcasts_sent=1" in out.getvalue()


@pytest.mark.django_db
def test_command_tenant_filter(due_broadcast, other_tenant):
    call_command("send_scheduled_broadcasts", "--tenant-id", str(other_tenant.id), stdout=StringIO())

    due_broadcast.refresh_from_db()
    assert due_broadcast.status == BroadcastStatus.SCHEDULED


def test_command_rejects_bad_tenant_id():
    with pytest.raises(CommandError):
        call_command("send_scheduled_broadcasts", "--tenant-id", "nope", stdout=StringIO())
