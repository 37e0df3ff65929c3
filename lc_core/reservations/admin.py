# lc_core/reservations/admin.py
from django.contrib import admin

from lc_core.reservations.models import Reservation


@admin.register(Reservation)
class ReservationAdmin(admin.ModelAdmin):
    list_display = ("patient_id", "reserved_date", "reserved_time", "status", "tenant_id")
    list_filter = ("status", "tenant_id")
    search_fields = ("patient_id",)
    ordering = ("-reserved_date",)
