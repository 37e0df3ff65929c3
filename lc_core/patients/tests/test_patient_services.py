import pytest

from lc_core.patients.models import Intake, MarkValue, Patient, PatientMark, Tag
from lc_core.patients.services import PatientService


@pytest.mark.django_db
def test_record_intake_creates_patient_once(scope):
    PatientService.record_intake(scope=scope, patient_id="P1", patient_name="Hanako", line_id=None)
    PatientService.record_intake(scope=scope, patient_id="P1", patient_name="Hanako", line_id="U1")

    assert Intake.objects.filter(tenant_id=scope.tenant_id, patient_id="P1").count() == 2

    patient = Patient.objects.get(tenant_id=scope.tenant_id, patient_id="P1")
    # a later intake fills in a LINE id the patient row was missing
    assert patient.line_id == "U1"


@pytest.mark.django_db
def test_record_intake_does_not_overwrite_existing_line_id(scope):
    PatientService.record_intake(scope=scope, patient_id="P1", line_id="U1")
    PatientService.record_intake(scope=scope, patient_id="P1", line_id="U2")

    assert Patient.objects.get(tenant_id=scope.tenant_id, patient_id="P1").line_id == "U1"


@pytest.mark.django_db
def test_record_intake_requires_patient_id(scope):
    with pytest.raises(ValueError):
        PatientService.record_intake(scope=scope, patient_id="  ")


@pytest.mark.django_db
def test_tag_and_mark_writes_are_idempotent(scope):
    tag = Tag.objects.create(tenant_id=scope.tenant_id, name="VIP")

    a = PatientService.add_tag(scope=scope, patient_id="P1", tag=tag)
    b = PatientService.add_tag(scope=scope, patient_id="P1", tag=tag)
    assert a.id == b.id

    PatientService.set_mark(scope=scope, patient_id="P1", mark=MarkValue.RED)
    PatientService.set_mark(scope=scope, patient_id="P1", mark=MarkValue.URGENT)
    marks = PatientMark.objects.filter(tenant_id=scope.tenant_id, patient_id="P1")
    assert marks.count() == 1
    assert marks.get().mark == MarkValue.URGENT
