# lc_core/broadcasts/api/serializers.py
from __future__ import annotations

from drf_spectacular.utils import extend_schema_field
from rest_framework import serializers

from lc_core.broadcasts.behavior import DATE_RANGE_TOKENS
from lc_core.broadcasts.conditions import CONDITION_TYPES, TagMatch, parse_filter_rules
from lc_core.broadcasts.exceptions import InvalidFilterRules
from lc_core.broadcasts.matchers import DATE_OPERATORS, FIELD_OPERATORS, NUMERIC_OPERATORS, RANGE_OPERATOR
from lc_core.broadcasts.models import Broadcast, MessageLog


class FilterConditionSerializer(serializers.Serializer):
    """
    Condition shape, enforced on posted rules. Unknown types are accepted and ignored at evaluation time.
    """
    type = serializers.CharField(help_text=f"One of: {', '.join(CONDITION_TYPES)}")
    tag_id = serializers.IntegerField(required=False, allow_null=True)
    match = serializers.ChoiceField(choices=[TagMatch.HAS, TagMatch.NOT_HAS], required=False)
    values = serializers.ListField(child=serializers.CharField(), required=False)
    field_id = serializers.IntegerField(required=False, allow_null=True)
    operator = serializers.CharField(
        required=False,
        allow_blank=True,
        allow_null=True,
        help_text=(
            f"Field: {', '.join(FIELD_OPERATORS)}. "
            f"Behavior: {', '.join((*NUMERIC_OPERATORS, RANGE_OPERATOR, *DATE_OPERATORS))}."
        ),
    )
    value = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    value_end = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    date_range = serializers.CharField(
        required=False,
        allow_blank=True,
        allow_null=True,
        help_text=f"One of: {', '.join(DATE_RANGE_TOKENS)}",
    )


class IncludeBlockSerializer(serializers.Serializer):
    operator = serializers.CharField(required=False, allow_blank=True, help_text="Reserved. Includes are always ANDed.")
    conditions = FilterConditionSerializer(many=True, required=False)


class ExcludeBlockSerializer(serializers.Serializer):
    conditions = FilterConditionSerializer(many=True, required=False)


class FilterRulesSerializer(serializers.Serializer):
    include = IncludeBlockSerializer(required=False)
    exclude = ExcludeBlockSerializer(required=False)


@extend_schema_field(FilterRulesSerializer)
class FilterRulesField(serializers.JSONField):
    """
    Keeps the posted JSON verbatim (it is stored as-is) but rejects shapes the
    resolver cannot read.
    """

    def to_internal_value(self, data):
        data = super().to_internal_value(data)
        try:
            parse_filter_rules(data)
        except InvalidFilterRules as e:
            raise serializers.ValidationError(str(e))
        if data:
            shape = FilterRulesSerializer(data=data)
            if not shape.is_valid():
                raise serializers.ValidationError(shape.errors)
        return data or {}


class BroadcastCreateSerializer(serializers.Serializer):
    name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    filter_rules = FilterRulesField(required=False, allow_null=True)
    message = serializers.CharField(trim_whitespace=True, error_messages={"blank": "message is required."})
    scheduled_at = serializers.DateTimeField(required=False, allow_null=True)


class PreviewRequestSerializer(serializers.Serializer):
    filter_rules = FilterRulesField(required=False, allow_null=True)


class AudienceMemberSerializer(serializers.Serializer):
    patient_id = serializers.CharField()
    patient_name = serializers.CharField(allow_blank=True)
    line_id = serializers.CharField(allow_null=True)


class PreviewResponseSerializer(serializers.Serializer):
    total = serializers.IntegerField()
    sample = AudienceMemberSerializer(many=True)


class BroadcastSendResponseSerializer(serializers.Serializer):
    ok = serializers.BooleanField()
    broadcast_id = serializers.UUIDField()
    total = serializers.IntegerField()
    status = serializers.CharField(required=False)
    sent = serializers.IntegerField(required=False)
    failed = serializers.IntegerField(required=False)
    no_uid = serializers.IntegerField(required=False)


class BroadcastSerializer(serializers.ModelSerializer):
    class Meta:
        model = Broadcast
        fields = [
            "id",
            "tenant_id",
            "name",
            "filter_rules",
            "message_content",
            "status",
            "scheduled_at",
            "sent_at",
            "total_targets",
            "sent_count",
            "failed_count",
            "no_uid_count",
            "created_by_id",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class MessageLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = MessageLog
        fields = [
            "id",
            "patient_id",
            "line_uid",
            "message_type",
            "content",
            "status",
            "campaign_id",
            "direction",
            "created_at",
        ]
        read_only_fields = fields
