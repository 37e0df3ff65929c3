# lc_core/orders/admin.py
from django.contrib import admin

from lc_core.orders.models import Order, Reorder


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("patient_id", "amount", "status", "paid_at", "tenant_id")
    list_filter = ("status", "tenant_id")
    search_fields = ("patient_id",)
    ordering = ("-created_at",)


@admin.register(Reorder)
class ReorderAdmin(admin.ModelAdmin):
    list_display = ("patient_id", "status", "created_at", "tenant_id")
    list_filter = ("status",)
    search_fields = ("patient_id",)
    ordering = ("-created_at",)
