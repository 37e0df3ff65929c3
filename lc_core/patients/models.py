# lc_core/patients/models.py
from django.db import models

from lc_core.common.models import TenantScopedModel


class Patient(TenantScopedModel):
    """
    LINE friend / clinic patient.
    patient_id is the clinic-facing stable identifier (string), not the row UUID.
    line_id NULL means the patient cannot receive push messages.
    """
    patient_id = models.CharField(max_length=64, null=True, blank=True)
    name = models.CharField(max_length=255, blank=True, default="")
    line_id = models.CharField(max_length=64, null=True, blank=True)

    class Meta:
        db_table = "patients_patient"
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "patient_id"],
                name="uq_patient_tenant_patient_id",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant_id", "line_id"]),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.patient_id})"


class Intake(TenantScopedModel):
    """
    One questionnaire submission. The set of patient_ids seen here is the broadcast universe.
    Name/line_id are snapshots taken at submission time.
    """
    patient_id = models.CharField(max_length=64, null=True, blank=True, db_index=True)
    patient_name = models.CharField(max_length=255, blank=True, default="")
    line_id = models.CharField(max_length=64, null=True, blank=True)
    answers = models.JSONField(default=dict, blank=True)

    class Meta:
        db_table = "patients_intake"
        indexes = [
            models.Index(fields=["tenant_id", "created_at"]),
        ]


class Tag(TenantScopedModel):
    # Integer ids: broadcast filter rules reference tags as numbers.
    id = models.BigAutoField(primary_key=True)
    name = models.CharField(max_length=64)
    color = models.CharField(max_length=16, blank=True, default="")

    class Meta:
        db_table = "patients_tag"
        constraints = [
            models.UniqueConstraint(fields=["tenant_id", "name"], name="uq_tag_tenant_name"),
        ]

    def __str__(self) -> str:
        return self.name


class PatientTag(TenantScopedModel):
    # Loose link by patient_id (string), same as every other patient-keyed table.
    patient_id = models.CharField(max_length=64, db_index=True)
    tag = models.ForeignKey(Tag, on_delete=models.CASCADE, related_name="memberships")

    class Meta:
        db_table = "patients_patient_tag"
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "patient_id", "tag"],
                name="uq_patient_tag_membership",
            ),
        ]


class MarkValue(models.TextChoices):
    NONE = "none", "None"
    RED = "red", "Red"
    YELLOW = "yellow", "Yellow"
    GREEN = "green", "Green"
    BLUE = "blue", "Blue"
    STAR = "star", "Star"
    IMPORTANT = "important", "Important"
    URGENT = "urgent", "Urgent"


class PatientMark(TenantScopedModel):
    patient_id = models.CharField(max_length=64, db_index=True)
    mark = models.CharField(max_length=16, choices=MarkValue.choices, default=MarkValue.NONE, db_index=True)

    class Meta:
        db_table = "patients_patient_mark"
        indexes = [
            models.Index(fields=["tenant_id", "mark"]),
        ]


class FriendFieldType(models.TextChoices):
    TEXT = "text", "Text"
    NUMBER = "number", "Number"
    DATE = "date", "Date"
    SELECT = "select", "Select"


class FriendField(TenantScopedModel):
    """
    Tenant-defined custom attribute on a LINE friend.
    """
    id = models.BigAutoField(primary_key=True)
    name = models.CharField(max_length=64)
    field_type = models.CharField(max_length=16, choices=FriendFieldType.choices, default=FriendFieldType.TEXT)

    class Meta:
        db_table = "patients_friend_field"

    def __str__(self) -> str:
        return self.name


class FriendFieldValue(TenantScopedModel):
    patient_id = models.CharField(max_length=64, db_index=True)
    field = models.ForeignKey(FriendField, on_delete=models.CASCADE, related_name="values")
    # Untyped on purpose: compared lexically or numerically at filter time.
    value = models.TextField(null=True, blank=True)

    class Meta:
        db_table = "patients_friend_field_value"
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "patient_id", "field"],
                name="uq_friend_field_value",
            ),
        ]
