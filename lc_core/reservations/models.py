# lc_core/reservations/models.py
from django.db import models

from lc_core.common.models import TenantScopedModel


class ReservationStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    COMPLETED = "completed", "Completed"
    CANCELED = "canceled", "Canceled"


class Reservation(TenantScopedModel):
    """
    A booked consultation slot. Every non-canceled reservation counts as a visit
    for broadcast segmentation.
    """
    patient_id = models.CharField(max_length=64, db_index=True)
    reserved_date = models.DateField(db_index=True)
    reserved_time = models.TimeField(null=True, blank=True)
    status = models.CharField(
        max_length=16,
        choices=ReservationStatus.choices,
        default=ReservationStatus.PENDING,
        db_index=True,
    )

    class Meta:
        db_table = "reservations_reservation"
        indexes = [
            models.Index(fields=["tenant_id", "patient_id", "reserved_date"]),
        ]
