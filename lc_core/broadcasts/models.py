# lc_core/broadcasts/models.py
from django.conf import settings
from django.db import models

from lc_core.common.models import TenantScopedModel


class BroadcastStatus(models.TextChoices):
    SCHEDULED = "scheduled", "Scheduled"
    SENDING = "sending", "Sending"
    SENT = "sent", "Sent"
    FAILED = "failed", "Failed"


class Broadcast(TenantScopedModel):
    """
    One bulk LINE send. filter_rules is stored verbatim; the resolved audience is
    never persisted, only the counters of the send that used it.
    """
    name = models.CharField(max_length=255)
    filter_rules = models.JSONField(default=dict, blank=True)
    message_content = models.TextField()

    status = models.CharField(
        max_length=16,
        choices=BroadcastStatus.choices,
        default=BroadcastStatus.SENDING,
        db_index=True,
    )
    scheduled_at = models.DateTimeField(null=True, blank=True, db_index=True)
    sent_at = models.DateTimeField(null=True, blank=True)

    total_targets = models.PositiveIntegerField(default=0)
    sent_count = models.PositiveIntegerField(default=0)
    failed_count = models.PositiveIntegerField(default=0)
    no_uid_count = models.PositiveIntegerField(default=0)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="broadcasts",
        null=True,
        blank=True,
    )

    class Meta:
        db_table = "broadcasts_broadcast"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["tenant_id", "status", "scheduled_at"]),
            models.Index(fields=["tenant_id", "created_at"]),
        ]

    def __str__(self) -> str:
        return f"{self.name} [{self.status}]"


class MessageDirection(models.TextChoices):
    OUTGOING = "outgoing", "Outgoing"
    INCOMING = "incoming", "Incoming"


class MessageLogStatus(models.TextChoices):
    SENT = "sent", "Sent"
    FAILED = "failed", "Failed"
    NO_UID = "no_uid", "No LINE UID"


class MessageLog(TenantScopedModel):
    """
    One delivery attempt (or skipped attempt) per patient per broadcast.
    """
    patient_id = models.CharField(max_length=64, db_index=True)
    line_uid = models.CharField(max_length=64, null=True, blank=True)
    message_type = models.CharField(max_length=32, default="broadcast")
    content = models.TextField(blank=True, default="")
    status = models.CharField(max_length=16, choices=MessageLogStatus.choices, db_index=True)
    campaign = models.ForeignKey(
        Broadcast,
        on_delete=models.CASCADE,
        related_name="message_logs",
        null=True,
        blank=True,
    )
    direction = models.CharField(
        max_length=16,
        choices=MessageDirection.choices,
        default=MessageDirection.OUTGOING,
    )

    class Meta:
        db_table = "broadcasts_message_log"
        indexes = [
            models.Index(fields=["tenant_id", "campaign", "status"]),
        ]
