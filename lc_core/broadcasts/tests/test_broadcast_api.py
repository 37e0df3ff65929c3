from datetime import timedelta

import pytest
from django.db import DatabaseError
from django.utils import timezone

from lc_core.broadcasts import audience, services
from lc_core.broadcasts.line_push import PushResult
from lc_core.broadcasts.models import Broadcast, BroadcastStatus, MessageLog
from lc_core.tests.helpers import seed_patient

URL = "/api/v1/broadcasts/"


@pytest.fixture
def pushed(monkeypatch):
    sent = []

    def fake_push(line_id, messages, *, scope, channel_token=None):
        sent.append(line_id)
        return PushResult(ok=True, status_code=200)

    monkeypatch.setattr(services, "push_message", fake_push)
    return sent


@pytest.fixture
def patients(scope):
    seed_patient(scope, "P1", name="Aoi", line_id="U1")
    seed_patient(scope, "P2", name="Ren", line_id=None)
    return scope


@pytest.mark.django_db
def test_post_sends_immediately(api_client, headers, patients, pushed, user):
    resp = api_client.post(
        URL,
        {"name": "Spring", "message": "{name}さん", "filter_rules": {"include": {"conditions": []}}},
        format="json",
        **headers,
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    assert (body["total"], body["sent"], body["failed"], body["no_uid"]) == (2, 1, 0, 1)
    assert pushed == ["U1"]

    b = Broadcast.objects.get(id=body["broadcast_id"])
    assert b.created_by_id == user.id
    assert b.filter_rules == {"include": {"conditions": []}}


@pytest.mark.django_db
def test_post_scheduled(api_client, headers, patients, pushed):
    when = (timezone.now() + timedelta(days=1)).isoformat()

    resp = api_client.post(URL, {"message": "later", "scheduled_at": when}, format="json", **headers)

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "scheduled"
    assert body["total"] == 2
    assert "sent" not in body
    assert pushed == []


@pytest.mark.parametrize("payload", [{}, {"message": ""}, {"message": "  \n "}])
@pytest.mark.django_db
def test_post_requires_message(api_client, headers, patients, pushed, payload):
    resp = api_client.post(URL, payload, format="json", **headers)

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "validation_error"
    assert not Broadcast.objects.exists()


@pytest.mark.django_db
def test_post_rejects_malformed_filter_rules(api_client, headers, patients, pushed):
    resp = api_client.post(URL, {"message": "x", "filter_rules": {"include": []}}, format="json", **headers)

    assert resp.status_code == 400
    assert "filter_rules" in resp.json()["error"]["details"]


@pytest.mark.django_db
@pytest.mark.parametrize(
    "condition",
    [
        {"type": "tag", "tag_id": "abc"},
        {"type": "field", "field_id": "abc", "operator": "=", "value": "1"},
    ],
)
def test_post_rejects_non_integer_ids(api_client, headers, patients, pushed, condition):
    resp = api_client.post(
        URL,
        {"message": "x", "filter_rules": {"include": {"conditions": [condition]}}},
        format="json",
        **headers,
    )

    assert resp.status_code == 400
    assert "filter_rules" in resp.json()["error"]["details"]
    assert not Broadcast.objects.exists()
    assert pushed == []


@pytest.mark.django_db
def test_post_returns_503_when_audience_cannot_be_read(api_client, headers, patients, pushed, monkeypatch):
    def broken(**kwargs):
        raise DatabaseError("down")

    monkeypatch.setattr(audience, "intake_rows_qs", broken)

    resp = api_client.post(URL, {"message": "x"}, format="json", **headers)

    assert resp.status_code == 503
    assert resp.json()["error"]["code"] == "audience_unavailable"
    assert not Broadcast.objects.exists()
    assert pushed == []


@pytest.mark.django_db
def test_preview_counts_without_writing(api_client, headers, patients, pushed):
    resp = api_client.post(
        f"{URL}preview/",
        {"filter_rules": {"include": {"conditions": [{"type": "has_line_uid"}]}}},
        format="json",
        **headers,
    )

    assert resp.status_code == 200
    assert resp.json() == {
        "total": 1,
        "sample": [{"patient_id": "P1", "patient_name": "Aoi", "line_id": "U1"}],
    }
    assert not Broadcast.objects.exists()
    assert pushed == []


@pytest.mark.django_db
def test_list_is_tenant_scoped_and_filterable(api_client, headers, scope, other_scope):
    for i in range(3):
        Broadcast.objects.create(tenant_id=scope.tenant_id, name=f"b{i}", message_content="m", status=BroadcastStatus.SENT)
    Broadcast.objects.create(tenant_id=scope.tenant_id, name="s", message_content="m", status=BroadcastStatus.SCHEDULED)
    Broadcast.objects.create(tenant_id=other_scope.tenant_id, name="other", message_content="m")

    resp = api_client.get(URL, **headers)
    assert resp.status_code == 200
    assert len(resp.json()) == 4

    resp = api_client.get(URL, {"status": "scheduled"}, **headers)
    assert [b["name"] for b in resp.json()] == ["s"]


@pytest.mark.django_db
def test_list_returns_at_most_fifty(api_client, headers, scope):
    Broadcast.objects.bulk_create(
        [Broadcast(tenant_id=scope.tenant_id, name=f"b{i}", message_content="m") for i in range(55)]
    )

    resp = api_client.get(URL, **headers)

    assert len(resp.json()) == 50


@pytest.mark.django_db
def test_logs_for_one_broadcast(api_client, headers, patients, pushed, other_tenant):
    created = api_client.post(URL, {"message": "hi"}, format="json", **headers).json()

    resp = api_client.get(f"{URL}{created['broadcast_id']}/logs/", **headers)

    assert resp.status_code == 200
    body = resp.json()
    assert body["count"] == 2
    assert {row["status"] for row in body["results"]} == {"sent", "no_uid"}
    assert MessageLog.objects.count() == 2

    # invisible from another tenant
    other = api_client.get(f"{URL}{created['broadcast_id']}/logs/", HTTP_X_TENANT_ID=str(other_tenant.id))
    assert other.status_code == 404
    assert other.json()["error"]["code"] == "not_found"
