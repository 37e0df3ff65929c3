# lc_core/orders/selectors.py
from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from django.db.models import QuerySet

from lc_core.common.scope import Scope
from lc_core.orders.models import Order, Reorder


def paid_order_rows_qs(
    *,
    scope: Scope,
    patient_ids: Sequence[str],
    paid_since: Optional[datetime] = None,
) -> QuerySet:
    qs = Order.objects.filter(
        tenant_id=scope.tenant_id,
        patient_id__in=list(patient_ids),
        paid_at__isnull=False,
    )
    if paid_since is not None:
        qs = qs.filter(paid_at__gte=paid_since)
    return qs.order_by("id").values("patient_id", "amount")


def reorder_rows_qs(*, scope: Scope, patient_ids: Sequence[str]) -> QuerySet:
    return (
        Reorder.objects.filter(tenant_id=scope.tenant_id, patient_id__in=list(patient_ids))
        .order_by("id")
        .values("patient_id")
    )
