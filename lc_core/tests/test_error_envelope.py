import json

import pytest
from django.contrib.auth.models import User
from django.core.exceptions import ValidationError as DjangoValidationError
from django.test import RequestFactory

from lc_core.common.api.exceptions import api_exception_handler, build_error_envelope
from lc_core.common.middleware import TenantScopeMiddleware


@pytest.mark.django_db
def test_middleware_missing_scope_returns_error_envelope():
    rf = RequestFactory()
    req = rf.get("/api/v1/broadcasts/")

    # A real User instance is authenticated; no need (and not allowed) to set is_authenticated.
    req.user = User.objects.create_user(username="u1", password="pass123")

    mw = TenantScopeMiddleware(get_response=lambda r: None)
    resp = mw.process_request(req)

    assert resp is not None
    assert resp.status_code == 400

    body = json.loads(resp.content.decode("utf-8"))
    assert "error" in body
    assert body["error"]["code"] == "validation_error"
    assert "Missing scope header" in body["error"]["message"]
    assert "request_id" in body["error"]


@pytest.mark.django_db
def test_api_validation_error_uses_envelope(api_client, headers):
    resp = api_client.post("/api/v1/broadcasts/", {"message": "   "}, format="json", **headers)

    assert resp.status_code == 400
    body = resp.json()
    assert body["error"]["code"] == "validation_error"
    assert "message" in body["error"]["details"]
    assert body["error"]["request_id"]


def test_handler_maps_django_validation_error_to_400():
    resp = api_exception_handler(DjangoValidationError("message is required."), {"request": None})

    assert resp.status_code == 400
    assert resp.data["error"]["code"] == "validation_error"
    assert resp.data["error"]["message"] == "message is required."
    assert resp.data["error"]["details"] is None


def test_handler_wraps_unexpected_errors():
    try:
        raise RuntimeError("boom")
    except RuntimeError as exc:
        resp = api_exception_handler(exc, {"request": None})

    assert resp.status_code == 500
    assert resp.data["error"]["code"] == "server_error"
    assert resp.data["error"]["message"] == "Unexpected server error."


def test_upstream_request_id_is_reused():
    req = RequestFactory().get("/api/v1/broadcasts/", HTTP_X_REQUEST_ID="cron-run-20260401")
    body = build_error_envelope(request=req, code="x", message="y")

    assert body["error"]["request_id"] == "cron-run-20260401"

    bad = RequestFactory().get("/api/v1/broadcasts/", HTTP_X_REQUEST_ID="not ok!")
    assert build_error_envelope(request=bad, code="x", message="y")["error"]["request_id"] != "not ok!"
