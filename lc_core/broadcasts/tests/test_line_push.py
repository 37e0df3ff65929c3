import httpx
import pytest

from lc_core.broadcasts import line_push
from lc_core.broadcasts.line_push import push_message, text_message


class Recorder:
    def __init__(self, status_code=200, exc=None):
        self.status_code = status_code
        self.exc = exc
        self.calls = []

    def __call__(self, url, *, json, headers, timeout):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if self.exc is not None:
            raise self.exc
        return httpx.Response(self.status_code, json={}, request=httpx.Request("POST", url))


@pytest.fixture
def recorder(monkeypatch):
    rec = Recorder()
    monkeypatch.setattr(line_push.httpx, "post", rec)
    return rec


@pytest.mark.django_db
def test_push_posts_messages_with_tenant_token(tenant, scope, recorder, settings):
    settings.LINE_PUSH_API_URL = "https://line.test/v2/bot/message/push"
    tenant.line_channel_access_token = "tenant-token"
    tenant.save()

    result = push_message("U123", [text_message("hello")], scope=scope)

    assert result.ok
    assert result.status_code == 200
    call = recorder.calls[0]
    assert call["url"] == "https://line.test/v2/bot/message/push"
    assert call["json"] == {"to": "U123", "messages": [{"type": "text", "text": "hello"}]}
    assert call["headers"]["Authorization"] == "Bearer tenant-token"


@pytest.mark.django_db
def test_push_falls_back_to_default_token(scope, recorder):
    push_message("U1", [text_message("x")], scope=scope)
    assert recorder.calls[0]["headers"]["Authorization"] == "Bearer test-channel-token"


@pytest.mark.django_db
def test_http_error_is_reported_not_raised(scope, recorder):
    recorder.status_code = 400

    result = push_message("U1", [text_message("x")], scope=scope, channel_token="t")

    assert not result.ok
    assert result.status_code == 400
    assert result.error


@pytest.mark.django_db
def test_transport_error_is_reported_not_raised(scope, recorder):
    recorder.exc = httpx.ConnectError("connection refused")

    result = push_message("U1", [text_message("x")], scope=scope, channel_token="t")

    assert not result.ok
    assert result.status_code is None
    assert "connection refused" in result.error


@pytest.mark.django_db
def test_missing_token_skips_request(scope, recorder, settings):
    settings.LINE_CHANNEL_ACCESS_TOKEN = ""

    result = push_message("U1", [text_message("x")], scope=scope)

    assert not result.ok
    assert recorder.calls == []
