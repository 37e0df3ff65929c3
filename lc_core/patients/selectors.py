# lc_core/patients/selectors.py
from __future__ import annotations

from typing import Iterable

from django.db.models import QuerySet

from lc_core.common.scope import Scope
from lc_core.patients.models import FriendFieldValue, Intake, Patient, PatientMark, PatientTag


# All builders return fresh, deterministically ordered QuerySets so callers can
# window them with [offset:offset+limit] without rows shifting between pages.


def intake_rows_qs(*, scope: Scope) -> QuerySet:
    """
    Newest submission first; the first row seen per patient_id is the one that counts.
    """
    return (
        Intake.objects.filter(tenant_id=scope.tenant_id, patient_id__isnull=False)
        .exclude(patient_id="")
        .order_by("-created_at", "-id")
        .values("patient_id", "patient_name", "line_id")
    )


def patient_rows_qs(*, scope: Scope) -> QuerySet:
    return (
        Patient.objects.filter(tenant_id=scope.tenant_id)
        .order_by("id")
        .values("patient_id", "name", "line_id")
    )


def tagged_patient_rows_qs(*, scope: Scope, tag_id) -> QuerySet:
    return (
        PatientTag.objects.filter(tenant_id=scope.tenant_id, tag_id=tag_id)
        .order_by("id")
        .values("patient_id")
    )


def marked_patient_rows_qs(*, scope: Scope, marks: Iterable[str]) -> QuerySet:
    return (
        PatientMark.objects.filter(tenant_id=scope.tenant_id, mark__in=list(marks))
        .order_by("id")
        .values("patient_id", "mark")
    )


def field_value_rows_qs(*, scope: Scope, field_id) -> QuerySet:
    return (
        FriendFieldValue.objects.filter(tenant_id=scope.tenant_id, field_id=field_id)
        .order_by("id")
        .values("patient_id", "value")
    )
