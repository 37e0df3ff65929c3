import json

import pytest
from django.contrib.auth.models import AnonymousUser, User
from django.test import RequestFactory

from lc_core.common.middleware import TenantScopeMiddleware
from lc_core.common.scope import Scope


@pytest.mark.django_db
def test_middleware_invalid_scope_returns_error_envelope():
    rf = RequestFactory()
    req = rf.get("/api/v1/broadcasts/", **{"HTTP_X_TENANT_ID": "not-a-uuid"})
    req.user = User.objects.create_user(username="u2", password="pass123")

    mw = TenantScopeMiddleware(get_response=lambda r: None)
    resp = mw.process_request(req)

    assert resp is not None
    assert resp.status_code == 400

    body = json.loads(resp.content.decode("utf-8"))
    assert body["error"]["code"] == "validation_error"
    assert "Invalid scope header" in body["error"]["message"]


@pytest.mark.django_db
def test_middleware_attaches_scope_for_valid_header():
    rf = RequestFactory()
    tenant_id = "11111111-1111-1111-1111-111111111111"
    req = rf.get("/api/v1/broadcasts/", **{"HTTP_X_TENANT_ID": tenant_id})
    req.user = User.objects.create_user(username="u3", password="pass123")

    mw = TenantScopeMiddleware(get_response=lambda r: None)
    assert mw.process_request(req) is None

    assert isinstance(req.scope, Scope)
    assert str(req.scope.tenant_id) == tenant_id
    assert str(req.tenant_id) == tenant_id


def test_middleware_ignores_public_and_anonymous_paths():
    rf = RequestFactory()
    mw = TenantScopeMiddleware(get_response=lambda r: None)

    docs = rf.get("/api/docs/")
    docs.user = AnonymousUser()
    assert mw.process_request(docs) is None

    anon = rf.get("/api/v1/broadcasts/")
    anon.user = AnonymousUser()
    assert mw.process_request(anon) is None


@pytest.mark.django_db
def test_view_without_scope_header_is_rejected(api_client):
    resp = api_client.get("/api/v1/broadcasts/")

    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "Missing scope header. Provide X-Tenant-Id."


@pytest.mark.django_db
def test_unauthenticated_request_is_401(tenant):
    from rest_framework.test import APIClient

    resp = APIClient().get("/api/v1/broadcasts/", HTTP_X_TENANT_ID=str(tenant.id))
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "not_authenticated"
