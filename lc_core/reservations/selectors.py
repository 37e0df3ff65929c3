# lc_core/reservations/selectors.py
from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from django.db.models import QuerySet

from lc_core.common.scope import Scope
from lc_core.reservations.models import Reservation, ReservationStatus


def visit_rows_qs(
    *,
    scope: Scope,
    patient_ids: Sequence[str],
    since: Optional[date] = None,
    until: Optional[date] = None,
    newest_first: bool = False,
) -> QuerySet:
    qs = Reservation.objects.filter(
        tenant_id=scope.tenant_id,
        patient_id__in=list(patient_ids),
    ).exclude(status=ReservationStatus.CANCELED)

    if since is not None:
        qs = qs.filter(reserved_date__gte=since)
    if until is not None:
        qs = qs.filter(reserved_date__lte=until)

    if newest_first:
        qs = qs.order_by("-reserved_date", "-reserved_time", "id")
    else:
        qs = qs.order_by("id")
    return qs.values("patient_id", "reserved_date")


def upcoming_reservation_rows_qs(*, scope: Scope, patient_ids: Sequence[str], today: date) -> QuerySet:
    """
    Earliest upcoming slot first per patient (date, then time).
    """
    return (
        Reservation.objects.filter(
            tenant_id=scope.tenant_id,
            patient_id__in=list(patient_ids),
            reserved_date__gte=today,
        )
        .exclude(status=ReservationStatus.CANCELED)
        .order_by("reserved_date", "reserved_time", "id")
        .values("patient_id", "reserved_date", "reserved_time")
    )
