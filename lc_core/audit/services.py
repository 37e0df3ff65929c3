# lc_core/audit/services.py
from __future__ import annotations

from typing import Any, Dict, Optional
from uuid import UUID

from django.db import transaction

from lc_core.audit.models import AuditEvent
from lc_core.common.scope import Scope


class AuditService:
    """
    Central audit writer. Persists into AuditEvent (immutable).
    """

    @staticmethod
    @transaction.atomic
    def log(
        *,
        scope: Scope,
        event_code: str,
        entity_type: str,
        entity_id: UUID,
        actor_user_id: int | None = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AuditEvent:
        return AuditEvent.objects.create(
            tenant_id=scope.tenant_id,
            event_code=event_code,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_user_id=actor_user_id,
            metadata=metadata or {},
        )
