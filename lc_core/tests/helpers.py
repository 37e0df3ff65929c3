# lc_core/tests/helpers.py
from __future__ import annotations

from lc_core.patients.services import PatientService


def scoped(tenant):
    return {"HTTP_X_TENANT_ID": str(tenant.id)}


def seed_patient(scope, patient_id, *, name=None, line_id=None, answers=None):
    """
    Registers a patient the way the intake form does (intake row + patient row).
    """
    return PatientService.record_intake(
        scope=scope,
        patient_id=patient_id,
        patient_name=name or f"Patient {patient_id}",
        line_id=line_id,
        answers=answers or {},
    )
