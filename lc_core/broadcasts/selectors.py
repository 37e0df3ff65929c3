# lc_core/broadcasts/selectors.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import QuerySet
from django.utils import timezone

from lc_core.broadcasts.models import Broadcast, BroadcastStatus, MessageLog
from lc_core.common.scope import Scope

RECENT_BROADCASTS_LIMIT = 50


class BroadcastSelector:
    class NotFound(Exception):
        pass

    @staticmethod
    def list_broadcasts(*, scope: Scope) -> QuerySet:
        return Broadcast.objects.filter(tenant_id=scope.tenant_id).order_by("-created_at", "-id")

    @staticmethod
    def get_broadcast(*, scope: Scope, broadcast_id: UUID) -> Broadcast:
        try:
            return Broadcast.objects.get(tenant_id=scope.tenant_id, id=broadcast_id)
        except (Broadcast.DoesNotExist, ValueError, DjangoValidationError):
            raise BroadcastSelector.NotFound()

    @staticmethod
    def list_message_logs(*, scope: Scope, broadcast_id: UUID) -> QuerySet:
        return MessageLog.objects.filter(
            tenant_id=scope.tenant_id,
            campaign_id=broadcast_id,
        ).order_by("created_at", "id")

    @staticmethod
    def due_scheduled(*, now=None, scope: Optional[Scope] = None) -> QuerySet:
        """
        Scheduled broadcasts whose time has come. All tenants unless scope is given.
        """
        qs = Broadcast.objects.filter(
            status=BroadcastStatus.SCHEDULED,
            scheduled_at__isnull=False,
            scheduled_at__lte=now or timezone.now(),
        )
        if scope is not None:
            qs = qs.filter(tenant_id=scope.tenant_id)
        return qs.order_by("scheduled_at", "id")
