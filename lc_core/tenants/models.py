# lc_core/tenants/models.py
import uuid
from django.db import models


class TenantStatus(models.TextChoices):
    ACTIVE = "ACTIVE", "Active"
    SUSPENDED = "SUSPENDED", "Suspended"


class Tenant(models.Model):
    """
    One clinic (customer organization) and its LINE official account.
    Root of all scoping in the system.
    NOT a TenantScopedModel (it *is* the tenant).
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=255)
    code = models.SlugField(max_length=64, unique=True)

    status = models.CharField(
        max_length=16,
        choices=TenantStatus.choices,
        default=TenantStatus.ACTIVE,
        db_index=True,
    )

    # Messaging API channel token; blank -> settings.LINE_CHANNEL_ACCESS_TOKEN
    line_channel_access_token = models.CharField(max_length=255, blank=True, default="")

    metadata = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "tenants_tenant"

    def __str__(self) -> str:
        return f"{self.name} ({self.code})"
