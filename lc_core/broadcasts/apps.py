# lc_core/broadcasts/apps.py
from __future__ import annotations

from django.apps import AppConfig


class BroadcastsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "lc_core.broadcasts"
    label = "broadcasts"
