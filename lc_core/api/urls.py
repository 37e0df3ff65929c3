# lc_core/api/urls.py
from __future__ import annotations

from rest_framework.routers import DefaultRouter

from lc_core.broadcasts.api.views import BroadcastViewSet

router = DefaultRouter()

router.register(r"broadcasts", BroadcastViewSet, basename="broadcasts")

urlpatterns = [
    *router.urls,
]
