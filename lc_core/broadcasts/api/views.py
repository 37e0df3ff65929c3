# lc_core/broadcasts/api/views.py
from __future__ import annotations

import logging

from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound, ValidationError as DRFValidationError
from rest_framework.response import Response

from lc_core.broadcasts.api.filters import BroadcastFilter
from lc_core.broadcasts.api.serializers import (
    AudienceMemberSerializer,
    BroadcastCreateSerializer,
    BroadcastSendResponseSerializer,
    BroadcastSerializer,
    MessageLogSerializer,
    PreviewRequestSerializer,
    PreviewResponseSerializer,
)
from lc_core.broadcasts.exceptions import AudienceResolutionError, InvalidFilterRules
from lc_core.broadcasts.models import Broadcast
from lc_core.broadcasts.selectors import RECENT_BROADCASTS_LIMIT, BroadcastSelector
from lc_core.broadcasts.services import BroadcastService
from lc_core.common.api.exceptions import ServiceUnavailableError
from lc_core.common.api.pagination import paginate
from lc_core.common.scope import require_scope

logger = logging.getLogger(__name__)


class AudienceUnavailable(ServiceUnavailableError):
    default_detail = "Broadcast audience could not be resolved. Nothing was sent."
    default_code = "audience_unavailable"


class BroadcastViewSet(viewsets.GenericViewSet):
    """
    Thin API layer:
    - scope parsing
    - validation mapping
    - selectors for reads, BroadcastService for writes
    """
    serializer_class = BroadcastSerializer
    queryset = Broadcast.objects.none()

    @staticmethod
    def _resolve_errors(exc: Exception):
        if isinstance(exc, InvalidFilterRules):
            return DRFValidationError({"filter_rules": str(exc)})
        logger.error("broadcast audience unavailable: %s", exc)
        return AudienceUnavailable()

    @extend_schema(tags=["Broadcasts"], responses={200: BroadcastSerializer(many=True)})
    def list(self, request):
        scope = require_scope(request)
        filterset = BroadcastFilter(request.query_params, queryset=BroadcastSelector.list_broadcasts(scope=scope))
        if not filterset.is_valid():
            raise DRFValidationError(filterset.errors)
        return Response(BroadcastSerializer(filterset.qs[:RECENT_BROADCASTS_LIMIT], many=True).data)

    @extend_schema(tags=["Broadcasts"], responses={200: BroadcastSerializer})
    def retrieve(self, request, pk=None):
        scope = require_scope(request)
        try:
            broadcast = BroadcastSelector.get_broadcast(scope=scope, broadcast_id=pk)
        except BroadcastSelector.NotFound:
            raise NotFound("Broadcast not found in this scope.")
        return Response(BroadcastSerializer(broadcast).data)

    @extend_schema(
        tags=["Broadcasts"],
        request=BroadcastCreateSerializer,
        responses={200: BroadcastSendResponseSerializer},
    )
    def create(self, request):
        scope = require_scope(request)

        ser = BroadcastCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        user_id = getattr(request.user, "id", None)
        try:
            result = BroadcastService.create_broadcast(
                scope=scope,
                message=data["message"],
                name=data.get("name") or None,
                filter_rules=data.get("filter_rules") or {},
                scheduled_at=data.get("scheduled_at"),
                created_by_id=user_id,
            )
        except (InvalidFilterRules, AudienceResolutionError) as e:
            raise self._resolve_errors(e)

        return Response(result.as_response(), status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Broadcasts"],
        request=PreviewRequestSerializer,
        responses={200: PreviewResponseSerializer},
    )
    @action(detail=False, methods=["post"])
    def preview(self, request):
        scope = require_scope(request)

        ser = PreviewRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        try:
            total, sample = BroadcastService.preview(scope=scope, filter_rules=ser.validated_data.get("filter_rules"))
        except (InvalidFilterRules, AudienceResolutionError) as e:
            raise self._resolve_errors(e)

        return Response(
            {
                "total": total,
                "sample": AudienceMemberSerializer([m.as_dict() for m in sample], many=True).data,
            },
            status=status.HTTP_200_OK,
        )

    @extend_schema(tags=["Broadcasts"], responses={200: MessageLogSerializer(many=True)})
    @action(detail=True, methods=["get"])
    def logs(self, request, pk=None):
        scope = require_scope(request)
        try:
            broadcast = BroadcastSelector.get_broadcast(scope=scope, broadcast_id=pk)
        except BroadcastSelector.NotFound:
            raise NotFound("Broadcast not found in this scope.")

        qs = BroadcastSelector.list_message_logs(scope=scope, broadcast_id=broadcast.id)
        return paginate(request, qs, MessageLogSerializer)
