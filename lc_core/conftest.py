# lc_core/conftest.py
import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from lc_core.common.scope import Scope
from lc_core.tenants.models import Tenant


def scope_headers(tenant):
    """
    Scope header used by the scope resolver.
    DRF test client requires HTTP_ prefix.
    """
    return {"HTTP_X_TENANT_ID": str(tenant.id)}


@pytest.fixture
def tenant(db):
    return Tenant.objects.create(code="test-clinic", name="Test Clinic")


@pytest.fixture
def other_tenant(db):
    return Tenant.objects.create(code="other-clinic", name="Other Clinic")


@pytest.fixture
def scope(tenant):
    return Scope(tenant_id=tenant.id)


@pytest.fixture
def other_scope(other_tenant):
    return Scope(tenant_id=other_tenant.id)


@pytest.fixture
def user(db):
    User = get_user_model()
    return User.objects.create_user(username="admin", password="testpass", is_active=True)


@pytest.fixture
def api_client(user):
    c = APIClient()
    c.force_authenticate(user=user)
    return c


@pytest.fixture
def headers(tenant):
    return scope_headers(tenant)
