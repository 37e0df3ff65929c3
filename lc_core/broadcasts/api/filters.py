# lc_core/broadcasts/api/filters.py
from __future__ import annotations

import django_filters

from lc_core.broadcasts.models import Broadcast, BroadcastStatus


class BroadcastFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=BroadcastStatus.choices)

    class Meta:
        model = Broadcast
        fields = ["status"]
