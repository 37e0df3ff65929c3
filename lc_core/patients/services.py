# lc_core/patients/services.py
from __future__ import annotations

from typing import Any, Optional

from django.db import transaction

from lc_core.common.scope import Scope
from lc_core.patients.models import FriendField, FriendFieldValue, Intake, Patient, PatientMark, PatientTag, Tag


class PatientService:
    """
    Write-model for patients and the membership tables broadcast filters read.
    """

    @staticmethod
    @transaction.atomic
    def record_intake(
        *,
        scope: Scope,
        patient_id: str,
        patient_name: str = "",
        line_id: Optional[str] = None,
        answers: Optional[dict[str, Any]] = None,
    ) -> Intake:
        """
        Stores a questionnaire submission. A patient row is created the first
        time an id is seen; existing rows only gain a LINE id they were missing.
        """
        patient_id = (patient_id or "").strip()
        if not patient_id:
            raise ValueError("patient_id is required.")

        intake = Intake.objects.create(
            tenant_id=scope.tenant_id,
            patient_id=patient_id,
            patient_name=patient_name or "",
            line_id=line_id or None,
            answers=answers or {},
        )

        patient, created = Patient.objects.get_or_create(
            tenant_id=scope.tenant_id,
            patient_id=patient_id,
            defaults={"name": patient_name or "", "line_id": line_id or None},
        )
        if not created and line_id and not patient.line_id:
            patient.line_id = line_id
            patient.save(update_fields=["line_id", "updated_at"])

        return intake

    @staticmethod
    @transaction.atomic
    def add_tag(*, scope: Scope, patient_id: str, tag: Tag) -> PatientTag:
        obj, _ = PatientTag.objects.get_or_create(
            tenant_id=scope.tenant_id,
            patient_id=patient_id,
            tag=tag,
        )
        return obj

    @staticmethod
    @transaction.atomic
    def set_mark(*, scope: Scope, patient_id: str, mark: str) -> PatientMark:
        obj, _ = PatientMark.objects.update_or_create(
            tenant_id=scope.tenant_id,
            patient_id=patient_id,
            defaults={"mark": mark},
        )
        return obj

    @staticmethod
    @transaction.atomic
    def set_field_value(*, scope: Scope, patient_id: str, field: FriendField, value: Optional[str]) -> FriendFieldValue:
        obj, _ = FriendFieldValue.objects.update_or_create(
            tenant_id=scope.tenant_id,
            patient_id=patient_id,
            field=field,
            defaults={"value": value},
        )
        return obj
