# lc_core/tenants/selectors.py
from __future__ import annotations

from uuid import UUID

from django.conf import settings

from lc_core.tenants.models import Tenant


def get_line_channel_token(*, tenant_id: UUID) -> str:
    """
    Tenant-specific channel token when configured, else the deployment-wide default.
    """
    token = (
        Tenant.objects.filter(id=tenant_id)
        .values_list("line_channel_access_token", flat=True)
        .first()
    )
    return token or getattr(settings, "LINE_CHANNEL_ACCESS_TOKEN", "")
