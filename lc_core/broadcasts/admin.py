# lc_core/broadcasts/admin.py
from __future__ import annotations

from django.contrib import admin

from lc_core.broadcasts.models import Broadcast, MessageLog


@admin.register(Broadcast)
class BroadcastAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "tenant_id",
        "name",
        "status",
        "scheduled_at",
        "sent_at",
        "total_targets",
        "sent_count",
        "failed_count",
        "no_uid_count",
    )
    list_filter = ("status",)
    search_fields = ("id", "name", "tenant_id")
    readonly_fields = ("id", "filter_rules", "created_at", "updated_at")
    ordering = ("-created_at",)


@admin.register(MessageLog)
class MessageLogAdmin(admin.ModelAdmin):
    list_display = ("id", "tenant_id", "campaign", "patient_id", "line_uid", "status", "created_at")
    list_filter = ("status", "message_type")
    search_fields = ("patient_id", "line_uid", "campaign__id")
    readonly_fields = ("id", "created_at")
    ordering = ("-created_at",)
