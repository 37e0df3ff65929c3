# lc_core/orders/models.py
from django.db import models

from lc_core.common.models import TenantScopedModel


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    SHIPPED = "shipped", "Shipped"
    REFUNDED = "refunded", "Refunded"
    CANCELLED = "cancelled", "Cancelled"


class Order(TenantScopedModel):
    """
    A prescription/product purchase. Only rows with paid_at set count as purchases.
    """
    patient_id = models.CharField(max_length=64, db_index=True)
    amount = models.DecimalField(max_digits=12, decimal_places=0, null=True, blank=True)
    status = models.CharField(max_length=16, choices=OrderStatus.choices, default=OrderStatus.PENDING)
    paid_at = models.DateTimeField(null=True, blank=True, db_index=True)

    class Meta:
        db_table = "orders_order"
        indexes = [
            models.Index(fields=["tenant_id", "patient_id", "paid_at"]),
        ]


class ReorderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    PAID = "paid", "Paid"
    REJECTED = "rejected", "Rejected"


class Reorder(TenantScopedModel):
    """
    A repeat-prescription request. Every row counts, whatever its status.
    """
    patient_id = models.CharField(max_length=64, db_index=True)
    status = models.CharField(max_length=16, choices=ReorderStatus.choices, default=ReorderStatus.PENDING)

    class Meta:
        db_table = "orders_reorder"
        indexes = [
            models.Index(fields=["tenant_id", "patient_id"]),
        ]
